"""
Resource Table
==============

Owns every engine resource (parsed documents, compiled stylesheets) handed
out to callers. Callers only ever see integer tokens; the table maps each
token to a record holding the resource and its release callback.

Guarantees:
- a release callback fires at most once per registered resource
- a resource is never registered twice (no aliasing)
- a release requested while a call holds a lease is deferred until the
  last lease ends
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional
import itertools
import logging
import threading

from xslt_bridge.errors import InvalidArgument, ReleasedHandle

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Kinds of engine resources tracked by the table."""
    DOCUMENT = "document"
    STYLESHEET = "stylesheet"


@dataclass
class ResourceRecord:
    """Ownership record for a single engine resource."""

    token: int
    kind: ResourceKind
    resource: Any
    release_fn: Optional[Callable[[Any], None]] = None
    leases: int = 0
    pending_release: bool = False
    released: bool = False
    # Serializes engine calls made against this resource
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


class ResourceTable:
    """
    Token-indexed table of engine resources.

    Example usage:
        table = ResourceTable()
        token = table.register(ResourceKind.DOCUMENT, tree)

        with table.lease(token, ResourceKind.DOCUMENT) as record:
            record.resource.getroot()

        table.release(token)
    """

    def __init__(self):
        """Initialize empty table."""
        self._records: Dict[int, ResourceRecord] = {}
        self._tokens_by_identity: Dict[int, int] = {}  # id(resource) -> token
        self._counter = itertools.count(1)
        self._lock = threading.RLock()

        # Statistics
        self._registered = 0
        self._released = 0

    def register(self,
                 kind: ResourceKind,
                 resource: Any,
                 release_fn: Optional[Callable[[Any], None]] = None) -> int:
        """
        Take ownership of an engine resource.

        Args:
            kind: Resource kind
            resource: Engine object to own
            release_fn: Called with exactly ``resource`` when it is released

        Returns:
            Token identifying the resource

        Raises:
            InvalidArgument: If the resource is already owned by this table
        """
        if resource is None:
            raise InvalidArgument("Cannot register an empty resource")

        with self._lock:
            if id(resource) in self._tokens_by_identity:
                existing = self._tokens_by_identity[id(resource)]
                raise InvalidArgument(
                    f"Resource already registered under token {existing}"
                )

            token = next(self._counter)
            self._records[token] = ResourceRecord(
                token=token,
                kind=kind,
                resource=resource,
                release_fn=release_fn,
            )
            self._tokens_by_identity[id(resource)] = token
            self._registered += 1

        logger.debug(f"Registered {kind.value} resource as token {token}")
        return token

    def release(self, token: int) -> bool:
        """
        Release a resource, or schedule its release if it is leased.

        Releasing an unknown or already released token is a no-op.

        Args:
            token: Token returned by register()

        Returns:
            True if the resource was released or scheduled for release
        """
        with self._lock:
            record = self._records.get(token)
            if record is None:
                return False

            if record.leases > 0:
                record.pending_release = True
                logger.debug(f"Deferred release of token {token} ({record.leases} lease(s) held)")
                return True

            self._detach(record)

        self._run_release(record)
        return True

    @contextmanager
    def lease(self, token: int, kind: ResourceKind) -> Iterator[ResourceRecord]:
        """
        Hold a resource for the duration of a call into the engine.

        Args:
            token: Token returned by register()
            kind: Expected resource kind

        Yields:
            The live ResourceRecord

        Raises:
            ReleasedHandle: If the token is unknown or already released
            InvalidArgument: If the token refers to a different kind of resource
        """
        with self._lock:
            record = self._records.get(token)
            if record is None:
                raise ReleasedHandle(f"{kind.value.capitalize()} handle {token} has been released")
            if record.kind != kind:
                raise InvalidArgument(
                    f"Token {token} refers to a {record.kind.value}, not a {kind.value}"
                )
            record.leases += 1

        try:
            yield record
        finally:
            release_now = False
            with self._lock:
                record.leases -= 1
                if record.leases == 0 and record.pending_release:
                    self._detach(record)
                    release_now = True
            if release_now:
                self._run_release(record)

    def is_live(self, token: int) -> bool:
        """Return True if the token refers to an unreleased resource."""
        with self._lock:
            return token in self._records

    def kind_of(self, token: int) -> Optional[ResourceKind]:
        """Return the kind of a live token, or None."""
        with self._lock:
            record = self._records.get(token)
            return record.kind if record else None

    def release_all(self) -> int:
        """
        Release every unleased resource (used on shutdown and between tests).

        Returns:
            Number of resources released or scheduled for release
        """
        with self._lock:
            tokens = list(self._records)
        return sum(1 for token in tokens if self.release(token))

    def stats(self) -> Dict[str, int]:
        """Get table statistics."""
        with self._lock:
            live = list(self._records.values())
            return {
                'live': len(live),
                'documents': sum(1 for r in live if r.kind == ResourceKind.DOCUMENT),
                'stylesheets': sum(1 for r in live if r.kind == ResourceKind.STYLESHEET),
                'leased': sum(1 for r in live if r.leases),
                'registered': self._registered,
                'released': self._released,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _detach(self, record: ResourceRecord) -> None:
        # Caller holds self._lock
        del self._records[record.token]
        self._tokens_by_identity.pop(id(record.resource), None)
        record.released = True
        record.pending_release = False
        self._released += 1

    def _run_release(self, record: ResourceRecord) -> None:
        resource, record.resource = record.resource, None
        logger.debug(f"Released {record.kind.value} token {record.token}")
        if record.release_fn is not None:
            record.release_fn(resource)


# Global table instance
_global_table: Optional[ResourceTable] = None
_global_lock = threading.Lock()


def get_table() -> ResourceTable:
    """Get or create the global resource table instance."""
    global _global_table
    with _global_lock:
        if _global_table is None:
            _global_table = ResourceTable()
        return _global_table


def reset_table() -> None:
    """Reset the global table, releasing everything it still owns."""
    global _global_table
    with _global_lock:
        old, _global_table = _global_table, ResourceTable()
    if old is not None:
        old.release_all()
