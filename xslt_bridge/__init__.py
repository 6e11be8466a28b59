"""
XSLT Bridge
===========

Parse XML, compile XSLT and run transforms on libxml2/libxslt (through lxml)
while keeping every engine resource behind a lifecycle-managed handle:

- documents and stylesheets are owned by a token-indexed resource table
- handles carry only tokens; released handles can never reach the engine
- release is deterministic (close() / ``with``) with a finalizer fallback
- transform parameters are validated and passed intact as UTF-8 strings

Architecture
------------

    xslt_bridge/
    ├── lifecycle/     - Resource table and document/stylesheet handles
    ├── xml/           - XML text -> DocumentHandle
    ├── transform/     - Stylesheet compiler, parameter marshaler, engine
    ├── config/        - Configuration management
    ├── bindings.py    - The three host operations
    └── errors.py      - Error taxonomy

Usage
-----

    from xslt_bridge import read_xml_string, read_xslt_string, transform

    style = read_xslt_string(xslt_text)
    doc = read_xml_string(xml_text)
    output = transform(style, doc, ["title", "Quarterly report"])

    # Deterministic release
    with read_xml_string(xml_text) as doc:
        ...
"""

__version__ = "1.0.0"

from xslt_bridge.errors import (
    BridgeError,
    InvalidArgument,
    ReleasedHandle,
    ParseFailure,
    CompileFailure,
    ApplyFailure,
    AllocationFailure,
)

from xslt_bridge.config.settings import (
    BridgeConfig,
    ParserConfig,
    TransformConfig,
    load_config,
    save_config,
)

from xslt_bridge.lifecycle import (
    ResourceKind,
    ResourceTable,
    DocumentHandle,
    StylesheetHandle,
    get_table,
    reset_table,
)

from xslt_bridge.xml.parser import DocumentParser

from xslt_bridge.transform import (
    ParameterList,
    ParameterMarshaler,
    marshal_parameters,
    OutputSettings,
    StylesheetCompiler,
    TransformEngine,
    TransformOutput,
)

from xslt_bridge.bindings import (
    XsltBridge,
    get_bridge,
    set_bridge,
    read_xml_string,
    read_xslt_string,
    transform,
    parse_document,
    compile_stylesheet,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "BridgeError",
    "InvalidArgument",
    "ReleasedHandle",
    "ParseFailure",
    "CompileFailure",
    "ApplyFailure",
    "AllocationFailure",
    # Configuration
    "BridgeConfig",
    "ParserConfig",
    "TransformConfig",
    "load_config",
    "save_config",
    # Lifecycle
    "ResourceKind",
    "ResourceTable",
    "DocumentHandle",
    "StylesheetHandle",
    "get_table",
    "reset_table",
    # Components
    "DocumentParser",
    "ParameterList",
    "ParameterMarshaler",
    "marshal_parameters",
    "OutputSettings",
    "StylesheetCompiler",
    "TransformEngine",
    "TransformOutput",
    # Host operations
    "XsltBridge",
    "get_bridge",
    "set_bridge",
    "read_xml_string",
    "read_xslt_string",
    "transform",
    "parse_document",
    "compile_stylesheet",
]
