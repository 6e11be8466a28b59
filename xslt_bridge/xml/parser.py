"""
XML Document Parser
===================

Parses XML text into engine documents (lxml trees) and wraps them in
DocumentHandles owned by a ResourceTable.

The parser runs in non-validating, non-network mode: no DTD is loaded,
entities are not resolved and the document's own encoding declaration is
overridden with UTF-8. Stylesheet modules read from files keep their
declared encoding.
"""

from typing import Any, Optional, Union
import logging

from lxml import etree

from xslt_bridge.config.settings import ParserConfig
from xslt_bridge.errors import InvalidArgument, ParseFailure, log_entries
from xslt_bridge.lifecycle.handles import DocumentHandle
from xslt_bridge.lifecycle.table import ResourceTable

logger = logging.getLogger(__name__)

XMLText = Union[str, bytes]


def to_utf8(text: Any) -> bytes:
    """
    Encode host text as UTF-8 bytes for the engine.

    Args:
        text: str (encoded) or bytes-like (taken as UTF-8 already)

    Returns:
        UTF-8 bytes

    Raises:
        InvalidArgument: If text is not str or bytes-like
        ParseFailure: If text cannot be encoded (e.g. lone surrogates)
    """
    if isinstance(text, str):
        try:
            return text.encode('utf-8')
        except UnicodeEncodeError as e:
            raise ParseFailure(f"Failed to parse XML: invalid encoding ({e.reason})") from e
    if isinstance(text, (bytes, bytearray, memoryview)):
        return bytes(text)
    raise InvalidArgument(f"XML text must be str or bytes, not {type(text).__name__}")


def _release_document(tree: Any) -> None:
    logger.debug(f"Released document {id(tree):#x}")


class DocumentParser:
    """
    Parse XML text into lifecycle-managed document handles.

    Example:
        parser = DocumentParser()
        with parser.parse("<root><item/></root>") as doc:
            ...
    """

    def __init__(self,
                 config: Optional[ParserConfig] = None,
                 table: Optional[ResourceTable] = None):
        self.config = config or ParserConfig()
        self.table = table

    def _make_parser(self, encoding: Optional[str] = 'utf-8') -> etree.XMLParser:
        # A fresh parser per call; lxml parsers must not be shared across threads
        return etree.XMLParser(
            encoding=encoding,
            no_network=True,
            load_dtd=False,
            dtd_validation=False,
            resolve_entities=False,
            recover=False,
            huge_tree=self.config.huge_tree,
            remove_blank_text=self.config.remove_blank_text,
            strip_cdata=self.config.strip_cdata,
            remove_comments=self.config.remove_comments,
        )

    def parse_tree(self, text: XMLText) -> 'etree._ElementTree':
        """
        Parse text into an unmanaged lxml tree.

        Args:
            text: XML text

        Returns:
            Parsed ElementTree (the caller owns it)

        Raises:
            InvalidArgument: If text is not str or bytes
            ParseFailure: If text is not well-formed XML
        """
        data = to_utf8(text)
        if not data:
            raise ParseFailure("Failed to parse XML: document is empty")

        try:
            root = etree.fromstring(data, self._make_parser())
        except etree.XMLSyntaxError as e:
            logger.error(f"Failed to parse XML: {e}")
            raise ParseFailure(f"Failed to parse XML: {e}", log_entries(e.error_log)) from e

        return root.getroottree()

    def parse_location(self, location: str) -> 'etree._ElementTree':
        """
        Parse a stylesheet module referenced from another stylesheet.

        The file's own encoding declaration applies, and the returned tree
        records ``location`` as its URL so nested references resolve
        against it.

        Args:
            location: File path or file URL

        Returns:
            Parsed ElementTree (the caller owns it)

        Raises:
            ParseFailure: If the module cannot be read or is not well-formed XML
        """
        try:
            return etree.parse(location, self._make_parser(encoding=None))
        except etree.XMLSyntaxError as e:
            logger.error(f"Failed to parse {location}: {e}")
            raise ParseFailure(f"Failed to parse {location}: {e}", log_entries(e.error_log)) from e
        except OSError as e:
            raise ParseFailure(f"Failed to read {location}: {e}") from e

    def parse(self, text: XMLText) -> DocumentHandle:
        """
        Parse text and hand ownership of the document to a new handle.

        Args:
            text: XML text

        Returns:
            DocumentHandle registered with the resource table

        Raises:
            InvalidArgument: If text is not str or bytes
            ParseFailure: If text is not well-formed XML
        """
        tree = self.parse_tree(text)
        handle = DocumentHandle.create(tree, table=self.table, release_fn=_release_document)
        logger.info(f"Parsed XML document <{etree.QName(tree.getroot()).localname}> as token {handle.token}")
        return handle
