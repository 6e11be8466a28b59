"""
Resource Lifecycle
==================

Binds the lifetime of engine resources to host-visible handles.

Components:
- ResourceTable: token-indexed ownership records with leases
- DocumentHandle / StylesheetHandle: token-carrying proxies
- get_table / reset_table: process-wide default table
"""

from xslt_bridge.lifecycle.table import (
    ResourceKind,
    ResourceRecord,
    ResourceTable,
    get_table,
    reset_table,
)

from xslt_bridge.lifecycle.handles import (
    ResourceHandle,
    DocumentHandle,
    StylesheetHandle,
)

__all__ = [
    "ResourceKind",
    "ResourceRecord",
    "ResourceTable",
    "get_table",
    "reset_table",
    "ResourceHandle",
    "DocumentHandle",
    "StylesheetHandle",
]
