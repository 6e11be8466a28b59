"""
Stylesheet Compiler
===================

Compiles XSLT text into lifecycle-managed stylesheet handles.

A stylesheet is first parsed exactly like any other document, then compiled
by the engine. The compiled program keeps its own copy of the source tree;
the intermediate tree is dropped before compile() returns, whether
compilation succeeded or not.

Output settings are merged from every xsl:output the stylesheet sees,
including those of modules pulled in with xsl:import and xsl:include.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Set, Tuple
from urllib.parse import urljoin
import logging

from lxml import etree

from xslt_bridge.config.settings import ParserConfig, TransformConfig
from xslt_bridge.errors import CompileFailure, log_entries
from xslt_bridge.lifecycle.handles import StylesheetHandle
from xslt_bridge.lifecycle.table import ResourceTable
from xslt_bridge.xml.parser import DocumentParser, XMLText

logger = logging.getLogger(__name__)

XSLT_NAMESPACE = "http://www.w3.org/1999/XSL/Transform"
XSL_OUTPUT = f"{{{XSLT_NAMESPACE}}}output"
XSL_IMPORT = f"{{{XSLT_NAMESPACE}}}import"
XSL_INCLUDE = f"{{{XSLT_NAMESPACE}}}include"

# Reads a referenced stylesheet module given its resolved location
ModuleLoader = Callable[[str], 'etree._ElementTree']


def resolve_href(href: str, base: Optional[str]) -> str:
    """Resolve an xsl:import/xsl:include href against the referencing element's base URI."""
    href = href.strip()
    if not base:
        return href
    return urljoin(base, href)


def _output_declarations(tree: 'etree._ElementTree',
                         loader: Optional[ModuleLoader],
                         active: Set[str]) -> Tuple[List['etree._Element'], List['etree._Element']]:
    """
    Split the xsl:output elements of a stylesheet module by precedence.

    Returns:
        (imported, own): imported declarations in ascending import precedence,
        then the module's own declarations (includes expanded in place)
    """
    imported: List['etree._Element'] = []
    own: List['etree._Element'] = []

    root = tree.getroot()
    if root is None or etree.QName(root).namespace != XSLT_NAMESPACE:
        # Literal result element used as a stylesheet
        return imported, own

    for child in root.iterchildren(XSL_OUTPUT, XSL_IMPORT, XSL_INCLUDE):
        if child.tag == XSL_OUTPUT:
            own.append(child)
            continue

        href = child.get('href')
        if not href or loader is None:
            continue
        location = resolve_href(href, child.base)
        if location in active:
            continue

        active.add(location)
        try:
            module_imported, module_own = _output_declarations(loader(location), loader, active)
        finally:
            active.discard(location)

        if child.tag == XSL_IMPORT:
            # Each import outranks the ones before it
            imported.extend(module_imported + module_own)
        else:
            # Imports of an included module join the including module's imports
            imported.extend(module_imported)
            own.extend(module_own)

    return imported, own


@dataclass(frozen=True)
class OutputSettings:
    """
    Serialization settings declared by a stylesheet's xsl:output elements.

    Attributes:
        method: Declared output method (xml, html, text) or None for the engine default
        encoding: Declared output encoding
        media_type: Declared media type, if any
    """
    method: Optional[str] = None
    encoding: str = "UTF-8"
    media_type: Optional[str] = None

    @classmethod
    def from_tree(cls,
                  tree: 'etree._ElementTree',
                  loader: Optional[ModuleLoader] = None) -> 'OutputSettings':
        """
        Merge the xsl:output declarations of a stylesheet and the modules it references.

        Declarations are applied in ascending import precedence, so an
        importing stylesheet overrides what it imports and, within one
        module, a later declaration overrides an earlier one. Included
        modules count as part of the including module at the point of
        inclusion.

        Args:
            tree: Parsed stylesheet document
            loader: Reads xsl:import / xsl:include targets; without one only
                the stylesheet's own declarations are used

        Returns:
            Merged OutputSettings
        """
        imported, own = _output_declarations(tree, loader, set())

        method = None
        encoding = None
        media_type = None
        for output in imported + own:
            method = output.get('method', method)
            encoding = output.get('encoding', encoding)
            media_type = output.get('media-type', media_type)

        return cls(
            method=method.strip() if method else None,
            encoding=encoding.strip() if encoding else "UTF-8",
            media_type=media_type,
        )


@dataclass
class CompiledStylesheet:
    """Engine resource owned by a StylesheetHandle."""
    xslt: 'etree.XSLT'
    output: OutputSettings = field(default_factory=OutputSettings)


def _release_stylesheet(compiled: Any) -> None:
    logger.debug(f"Released stylesheet {id(compiled):#x}")


class StylesheetCompiler:
    """
    Compile XSLT text into lifecycle-managed stylesheet handles.

    Example:
        compiler = StylesheetCompiler()
        style = compiler.compile(xslt_text)
    """

    def __init__(self,
                 config: Optional[TransformConfig] = None,
                 parser: Optional[DocumentParser] = None,
                 table: Optional[ResourceTable] = None):
        self.config = config or TransformConfig()
        self.parser = parser or DocumentParser(ParserConfig(), table=table)
        self.table = table if table is not None else self.parser.table

    def access_control(self) -> 'etree.XSLTAccessControl':
        """Engine I/O permissions; network access is never granted."""
        return etree.XSLTAccessControl(
            read_file=self.config.read_file,
            write_file=self.config.write_file,
            create_dir=self.config.create_dir,
            read_network=False,
            write_network=False,
        )

    def compile_tree(self, tree: 'etree._ElementTree') -> CompiledStylesheet:
        """
        Compile a parsed tree.

        Args:
            tree: Parsed stylesheet document

        Returns:
            CompiledStylesheet (independent of ``tree``)

        Raises:
            CompileFailure: If the document is not a valid stylesheet
            ParseFailure: If an imported or included module cannot be re-read
                for its output declarations
        """
        try:
            xslt = etree.XSLT(tree, access_control=self.access_control())
        except etree.XSLTParseError as e:
            logger.error(f"Failed to parse stylesheet: {e}")
            raise CompileFailure(f"Failed to parse stylesheet: {e}", log_entries(e.error_log)) from e

        # Referenced modules are only read after the engine has accepted them
        output = OutputSettings.from_tree(tree, loader=self.parser.parse_location)

        for entry in xslt.error_log:
            logger.warning(f"Stylesheet compiled with warning: {entry.message}")

        return CompiledStylesheet(xslt=xslt, output=output)

    def compile(self, text: XMLText) -> StylesheetHandle:
        """
        Parse and compile XSLT text.

        Args:
            text: Stylesheet source

        Returns:
            StylesheetHandle registered with the resource table

        Raises:
            InvalidArgument: If text is not str or bytes
            ParseFailure: If text is not well-formed XML
            CompileFailure: If the document is not a valid stylesheet
        """
        tree = self.parser.parse_tree(text)
        try:
            compiled = self.compile_tree(tree)
        finally:
            del tree

        handle = StylesheetHandle.create(compiled, table=self.table, release_fn=_release_stylesheet)
        method = compiled.output.method or "default"
        logger.info(f"Compiled stylesheet (method={method}) as token {handle.token}")
        return handle
