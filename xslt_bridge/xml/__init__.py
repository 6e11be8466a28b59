"""
XML Parsing
===========

Turns XML text into lifecycle-managed document handles.
"""

from xslt_bridge.xml.parser import (
    DocumentParser,
    to_utf8,
)

__all__ = [
    "DocumentParser",
    "to_utf8",
]
