"""
Resource Handles
================

Host-facing proxies for engine resources. A handle carries a token into a
ResourceTable and nothing else; the engine object never leaves the table.

Release is deterministic through close() or a ``with`` block. A handle that
becomes unreachable without being closed is released by its finalizer, and
any still-open handle is released at interpreter exit.
"""

from typing import Any, Callable, ContextManager, Optional
import weakref

from xslt_bridge.lifecycle.table import (
    ResourceKind,
    ResourceRecord,
    ResourceTable,
    get_table,
)


class ResourceHandle:
    """
    Base class for document and stylesheet handles.

    Example:
        with DocumentHandle.create(tree) as handle:
            ...  # resource is released when the block exits
    """

    kind: ResourceKind

    __slots__ = ('_token', '_table', '_finalizer', '__weakref__')

    def __init__(self, table: ResourceTable, token: int):
        self._token = token
        self._table = table
        # Must not reference self, otherwise the handle could never be collected
        self._finalizer = weakref.finalize(self, table.release, token)

    @classmethod
    def create(cls,
               resource: Any,
               table: Optional[ResourceTable] = None,
               release_fn: Optional[Callable[[Any], None]] = None) -> 'ResourceHandle':
        """
        Register a resource and wrap its token in a new handle.

        Args:
            resource: Engine object; ownership passes to the table
            table: Table to register with (defaults to the global table)
            release_fn: Optional callback run when the resource is released

        Returns:
            New handle of this class
        """
        if table is None:
            table = get_table()
        token = table.register(cls.kind, resource, release_fn)
        return cls(table, token)

    @property
    def token(self) -> int:
        """Opaque identity of the underlying resource."""
        return self._token

    @property
    def table(self) -> ResourceTable:
        return self._table

    @property
    def closed(self) -> bool:
        """True once the underlying resource has been released."""
        return not self._finalizer.alive or not self._table.is_live(self._token)

    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""
        self._finalizer()

    def lease(self) -> ContextManager[ResourceRecord]:
        """Hold the resource alive for the duration of a ``with`` block."""
        return self._table.lease(self._token, self.kind)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self.closed else "live"
        return f"<{type(self).__name__} token={self._token} {state}>"


class DocumentHandle(ResourceHandle):
    """Handle to a parsed XML document."""

    kind = ResourceKind.DOCUMENT
    __slots__ = ()


class StylesheetHandle(ResourceHandle):
    """Handle to a compiled XSLT stylesheet."""

    kind = ResourceKind.STYLESHEET
    __slots__ = ()
