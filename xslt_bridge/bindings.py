"""
Host Bindings
=============

The three operations exposed to a host environment:

    read_xml_string(text)                        -> DocumentHandle
    read_xslt_string(text)                       -> StylesheetHandle
    transform(stylesheet, document, [n, v, ...]) -> str

Arity and argument types are checked before any engine work. The
XsltBridge class groups a parser, compiler and engine around one
configuration and one resource table; the module-level functions use a
process-wide default bridge.
"""

from typing import Any, Optional
import logging
import threading

from xslt_bridge.config.settings import BridgeConfig
from xslt_bridge.errors import InvalidArgument
from xslt_bridge.lifecycle.handles import DocumentHandle, StylesheetHandle
from xslt_bridge.lifecycle.table import ResourceTable, get_table
from xslt_bridge.transform.engine import TransformEngine, TransformOutput
from xslt_bridge.transform.params import ParameterMarshaler
from xslt_bridge.transform.stylesheet import StylesheetCompiler
from xslt_bridge.xml.parser import DocumentParser

logger = logging.getLogger(__name__)


def _check_arity(args: tuple, expected: int) -> None:
    if len(args) != expected:
        raise InvalidArgument("Wrong number of arguments")


class XsltBridge:
    """
    Parser, compiler and engine sharing one configuration and resource table.

    Example:
        bridge = XsltBridge()
        style = bridge.compile_stylesheet(xslt_text)
        doc = bridge.parse_document(xml_text)
        html = bridge.transform(style, doc, ["title", "Report"])
    """

    def __init__(self,
                 config: Optional[BridgeConfig] = None,
                 table: Optional[ResourceTable] = None):
        self.config = config or BridgeConfig()
        self.table = table if table is not None else get_table()
        self.parser = DocumentParser(self.config.parser, table=self.table)
        self.compiler = StylesheetCompiler(self.config.transform, parser=self.parser, table=self.table)
        self.marshaler = ParameterMarshaler(self.config.transform)
        self.engine = TransformEngine(self.config.transform, marshaler=self.marshaler)

    def parse_document(self, text: Any) -> DocumentHandle:
        return self.parser.parse(text)

    def compile_stylesheet(self, text: Any) -> StylesheetHandle:
        return self.compiler.compile(text)

    def transform_output(self, stylesheet: Any, document: Any, params: Any = None) -> TransformOutput:
        """Like transform() but returns the TransformOutput with bytes and settings."""
        if params is not None and not isinstance(params, (list, tuple)):
            raise InvalidArgument("Third argument not a valid array")
        parameters = self.marshaler.marshal(params or [])
        self._check_owned(stylesheet, StylesheetHandle)
        self._check_owned(document, DocumentHandle)
        return self.engine.apply_output(stylesheet, document, parameters)

    def transform(self, stylesheet: Any, document: Any, params: Any = None) -> str:
        return self.transform_output(stylesheet, document, params).text

    def _check_owned(self, handle: Any, expected: type) -> None:
        if not isinstance(handle, expected):
            raise InvalidArgument(
                f"Expected {expected.__name__}, got {type(handle).__name__}"
            )
        if handle.table is not self.table:
            raise InvalidArgument(f"{expected.__name__} {handle.token} belongs to another bridge")


# Global bridge instance
_default_bridge: Optional[XsltBridge] = None
_default_lock = threading.Lock()


def get_bridge() -> XsltBridge:
    """Get or create the default bridge (bound to the global resource table)."""
    global _default_bridge
    with _default_lock:
        if _default_bridge is None:
            _default_bridge = XsltBridge()
        return _default_bridge


def set_bridge(bridge: Optional[XsltBridge]) -> None:
    """Replace the default bridge (None restores lazy creation)."""
    global _default_bridge
    with _default_lock:
        _default_bridge = bridge


def read_xml_string(*args: Any) -> DocumentHandle:
    """Parse XML text. Takes exactly one argument."""
    _check_arity(args, 1)
    return get_bridge().parse_document(args[0])


def read_xslt_string(*args: Any) -> StylesheetHandle:
    """Parse and compile XSLT text. Takes exactly one argument."""
    _check_arity(args, 1)
    return get_bridge().compile_stylesheet(args[0])


def transform(*args: Any) -> str:
    """Apply a stylesheet to a document. Takes (stylesheet, document, params)."""
    _check_arity(args, 3)
    stylesheet, document, params = args
    if not isinstance(params, (list, tuple)):
        raise InvalidArgument("Third argument not a valid array")
    return get_bridge().transform(stylesheet, document, params)


parse_document = read_xml_string
compile_stylesheet = read_xslt_string
