"""
Transform Engine
================

Applies a compiled stylesheet to a parsed document and serializes the result
with the stylesheet's own output settings (method and encoding), the way
``xsltSaveResultToString`` does.

Both handles are leased for the whole call, so neither resource can be
released while the engine is using it. The engine parameter mapping and the
intermediate result tree never outlive the call.
"""

from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Union
import logging

from lxml import etree

from xslt_bridge.config.settings import TransformConfig
from xslt_bridge.errors import (
    AllocationFailure,
    ApplyFailure,
    InvalidArgument,
    log_entries,
)
from xslt_bridge.lifecycle.handles import DocumentHandle, StylesheetHandle
from xslt_bridge.transform.params import ParameterList, ParameterMarshaler
from xslt_bridge.transform.stylesheet import CompiledStylesheet, OutputSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformOutput:
    """
    Serialized transform result.

    Attributes:
        data: Serialized bytes in the declared output encoding
        encoding: Output encoding declared by the stylesheet
        method: Output method declared by the stylesheet (None for the default)
        media_type: Media type declared by the stylesheet
    """
    data: bytes = b""
    encoding: str = "UTF-8"
    method: Optional[str] = None
    media_type: Optional[str] = None

    @classmethod
    def empty(cls, settings: Optional[OutputSettings] = None) -> 'TransformOutput':
        """Result that serialized to nothing (a success, not an error)."""
        settings = settings or OutputSettings()
        return cls(encoding=settings.encoding, method=settings.method, media_type=settings.media_type)

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return not self.data

    @property
    def text(self) -> str:
        """Decoded output."""
        if not self.data:
            return ""
        try:
            return self.data.decode(self.encoding)
        except (LookupError, UnicodeDecodeError) as e:
            raise ApplyFailure(f"Cannot decode transform output as {self.encoding}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'output': self.text,
            'length': self.length,
            'encoding': self.encoding,
            'method': self.method,
            'media_type': self.media_type,
        }


Params = Union[ParameterList, Sequence[str], None]


class TransformEngine:
    """
    Apply stylesheets to documents.

    Example:
        engine = TransformEngine()
        text = engine.apply(style, doc, ["name", "42"])
    """

    def __init__(self,
                 config: Optional[TransformConfig] = None,
                 marshaler: Optional[ParameterMarshaler] = None):
        self.config = config or TransformConfig()
        self.marshaler = marshaler or ParameterMarshaler(self.config)

    def apply(self,
              stylesheet: StylesheetHandle,
              document: DocumentHandle,
              params: Params = None) -> str:
        """
        Transform a document and return the serialized text.

        Args:
            stylesheet: Compiled stylesheet handle
            document: Input document handle (not consumed)
            params: ParameterList or flat [name, value, ...] sequence

        Returns:
            Serialized output, "" when the result serializes to nothing

        Raises:
            InvalidArgument: Wrong handle types, released handles, invalid parameters
            ApplyFailure: The engine produced no result document
            AllocationFailure: The engine ran out of memory
        """
        return self.apply_output(stylesheet, document, params).text

    def apply_output(self,
                     stylesheet: StylesheetHandle,
                     document: DocumentHandle,
                     params: Params = None) -> TransformOutput:
        """Transform a document and return the serialized bytes with their settings."""
        if not isinstance(stylesheet, StylesheetHandle):
            raise InvalidArgument(
                f"Expected a stylesheet handle, got {type(stylesheet).__name__}"
            )
        if not isinstance(document, DocumentHandle):
            raise InvalidArgument(
                f"Expected a document handle, got {type(document).__name__}"
            )
        if not isinstance(params, ParameterList):
            params = self.marshaler.marshal([] if params is None else params)

        with ExitStack() as stack:
            # Leases first, then record locks, always stylesheet before document
            style_record = stack.enter_context(stylesheet.lease())
            doc_record = stack.enter_context(document.lease())
            stack.enter_context(style_record.lock)
            stack.enter_context(doc_record.lock)

            compiled: CompiledStylesheet = style_record.resource
            engine_params: Dict[str, Any] = {}
            try:
                engine_params = params.to_engine()
                result = self._run(compiled.xslt, doc_record.resource, engine_params)
                try:
                    output = self._serialize(result, compiled.output)
                finally:
                    del result
            finally:
                engine_params.clear()

        logger.info(
            f"Transformed document {document.token} with stylesheet {stylesheet.token} "
            f"({len(params)} parameter(s), {output.length} bytes)"
        )
        return output

    def _run(self, xslt: 'etree.XSLT', tree: 'etree._ElementTree',
             engine_params: Dict[str, Any]) -> 'etree._XSLTResultTree':
        try:
            result = xslt(tree, **engine_params)
        except etree.XSLTApplyError as e:
            logger.error(f"XSLT transformation failed: {e}")
            logger.error(f"Error log: {xslt.error_log}")
            raise ApplyFailure(f"Failed to apply stylesheet: {e}", log_entries(xslt.error_log)) from e
        except MemoryError as e:
            raise AllocationFailure("Failed to allocate memory while applying stylesheet") from e

        if result is None:
            raise ApplyFailure("Failed to apply stylesheet", log_entries(xslt.error_log))

        if self.config.log_messages and xslt.error_log:
            logger.warning("XSLT transformation completed with messages:")
            for entry in xslt.error_log:
                logger.warning(f"  {entry.message}")

        return result

    def _serialize(self, result: 'etree._XSLTResultTree',
                   settings: OutputSettings) -> TransformOutput:
        try:
            data = bytes(result)
        except MemoryError as e:
            raise AllocationFailure("Failed to allocate memory for transform output") from e

        if not data:
            logger.info("Transform produced an empty result")
            return TransformOutput.empty(settings)

        return TransformOutput(
            data=data,
            encoding=settings.encoding,
            method=settings.method,
            media_type=settings.media_type,
        )
