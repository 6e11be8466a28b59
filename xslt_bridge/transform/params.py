"""
Stylesheet Parameters
=====================

Converts a flat, ordered host sequence ``[name1, value1, name2, value2, ...]``
into a validated ParameterList, and a ParameterList into the mapping the
engine expects.

Values are passed to the engine as string literals (``XSLT.strparam``), so
quotes and non-ASCII text reach the stylesheet unchanged.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple
import logging
import re

from lxml import etree

from xslt_bridge.config.settings import TransformConfig
from xslt_bridge.errors import AllocationFailure, InvalidArgument

logger = logging.getLogger(__name__)

# XML NCName: NameStartChar / NameChar of XML 1.0 (fifth edition) without the colon
_NAME_START = ('A-Z_a-z\u00c0-\u00d6\u00d8-\u00f6\u00f8-\u02ff\u0370-\u037d\u037f-\u1fff'
               '\u200c\u200d\u2070-\u218f\u2c00-\u2fef\u3001-\ud7ff\uf900-\ufdcf\ufdf0-\ufffd'
               '\U00010000-\U000effff')
_NAME_CHAR = _NAME_START + '\\-.0-9\u00b7\u0300-\u036f\u203f\u2040'
NAME_PATTERN = re.compile(f'[{_NAME_START}][{_NAME_CHAR}]*')

# Characters libxml2 refuses in text: C0 controls other than tab/LF/CR,
# surrogates and the two non-characters U+FFFE / U+FFFF
INVALID_CHARS = re.compile('[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]')

# Keyword names lxml's XSLT.__call__ keeps for itself
RESERVED_NAMES = frozenset({'_input', 'profile_run'})


@dataclass(frozen=True)
class ParameterList:
    """
    Ordered, immutable name/value pairs for a single transform call.

    Attributes:
        pairs: (name, value) tuples in insertion order
    """
    pairs: Tuple[Tuple[str, str], ...] = ()

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.pairs)

    def to_engine(self) -> Dict[str, Any]:
        """
        Build the engine-facing parameter mapping.

        Returns:
            Dict of name -> XSLT string parameter, in insertion order

        Raises:
            InvalidArgument: If the engine rejects a value
            AllocationFailure: If the engine runs out of memory
        """
        engine_params: Dict[str, Any] = {}
        try:
            for name, value in self.pairs:
                engine_params[name] = etree.XSLT.strparam(value)
        except ValueError as e:
            engine_params.clear()
            raise InvalidArgument(f"Parameter rejected by engine: {e}") from e
        except MemoryError as e:
            engine_params.clear()
            raise AllocationFailure("Failed to allocate memory") from e
        return engine_params


def _coerce(value: Any) -> Any:
    # Mirrors the string form a dynamic host would produce
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


class ParameterMarshaler:
    """
    Validate flat parameter sequences.

    Example:
        marshaler = ParameterMarshaler()
        params = marshaler.marshal(["title", "Report", "year", "2024"])
        params.names  # ('title', 'year')
    """

    def __init__(self, config: Optional[TransformConfig] = None):
        self.config = config or TransformConfig()

    def marshal(self, values: Sequence[Any]) -> ParameterList:
        """
        Pair up a flat sequence of names and values.

        Args:
            values: List or tuple with an even number of strings

        Returns:
            ParameterList preserving the original order

        Raises:
            InvalidArgument: On a non-sequence, odd length, non-string element,
                invalid or duplicate name, or a value the engine cannot hold
        """
        if not isinstance(values, (list, tuple)):
            raise InvalidArgument(
                f"Parameters must be a list or tuple, not {type(values).__name__}"
            )

        if len(values) % 2 != 0:
            raise InvalidArgument("Array contains an odd number of parameters")

        count = len(values) // 2
        if count > self.config.max_parameters:
            raise InvalidArgument(
                f"Too many parameters: {count} (maximum {self.config.max_parameters})"
            )

        pairs = []
        seen = set()
        for i in range(count):
            name = values[2 * i]
            value = values[2 * i + 1]

            if not isinstance(name, str):
                raise InvalidArgument(
                    f"Parameter name at position {2 * i} must be a string, not {type(name).__name__}"
                )
            if self.config.coerce_parameter_values:
                value = _coerce(value)
            if not isinstance(value, str):
                raise InvalidArgument(
                    f"Value of parameter '{name}' must be a string, not {type(value).__name__}"
                )

            if not NAME_PATTERN.fullmatch(name):
                raise InvalidArgument(f"Invalid parameter name: {name!r}")
            if name in RESERVED_NAMES:
                raise InvalidArgument(f"Parameter name is reserved: {name!r}")
            if name in seen:
                raise InvalidArgument(f"Duplicate parameter name: {name!r}")
            if INVALID_CHARS.search(value):
                raise InvalidArgument(
                    f"Value of parameter '{name}' contains characters not allowed in XML"
                )

            seen.add(name)
            pairs.append((name, value))

        logger.debug(f"Marshaled {count} parameter(s)")
        return ParameterList(tuple(pairs))


def marshal_parameters(values: Sequence[Any],
                       config: Optional[TransformConfig] = None) -> ParameterList:
    """Convenience wrapper around ParameterMarshaler.marshal()."""
    return ParameterMarshaler(config).marshal(values)
