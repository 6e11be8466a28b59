"""
Bridge Errors
=============

Exception hierarchy for the parse / compile / transform operations.

Every error carries a human-readable message and, when the engine produced
any, the entries of its error log so callers can point at the offending
line and column.
"""

from typing import Any, Dict, Iterable, List, Optional


def log_entries(error_log: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    """
    Convert an lxml error log into plain dictionaries.

    Args:
        error_log: lxml ``_ListErrorLog`` (or any iterable of log entries)

    Returns:
        List of dicts with keys line, column, level, message
    """
    if not error_log:
        return []

    entries = []
    for entry in error_log:
        entries.append({
            'line': getattr(entry, 'line', None),
            'column': getattr(entry, 'column', None),
            'level': getattr(entry, 'level_name', 'ERROR'),
            'message': (getattr(entry, 'message', None) or str(entry)).strip(),
        })
    return entries


class BridgeError(Exception):
    """
    Base class for all bridge failures.

    Attributes:
        message: Description of the failure
        log: Engine error log entries (may be empty)
    """

    def __init__(self, message: str, log: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.log = log or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'error': type(self).__name__,
            'detail': self.message,
            'log': self.log,
        }


class InvalidArgument(BridgeError, TypeError):
    """Wrong arity or type at the boundary, or an invalid parameter list."""


class ReleasedHandle(InvalidArgument):
    """A handle whose resource was already released (or never existed) was used."""


class ParseFailure(BridgeError):
    """The input text is not well-formed XML."""


class CompileFailure(BridgeError):
    """The parsed document is not a valid XSLT stylesheet."""


class ApplyFailure(BridgeError):
    """The engine could not produce a result document."""


class AllocationFailure(BridgeError, MemoryError):
    """The engine ran out of memory while marshaling or serializing."""
