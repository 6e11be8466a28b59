"""
Transformation Framework
========================

Stylesheet compilation, parameter marshaling and transform execution.

Components:
- StylesheetCompiler: XSLT text -> StylesheetHandle
- ParameterMarshaler: flat [name, value, ...] -> ParameterList
- TransformEngine: (stylesheet, document, parameters) -> output text
"""

from xslt_bridge.transform.params import (
    ParameterList,
    ParameterMarshaler,
    marshal_parameters,
)

from xslt_bridge.transform.stylesheet import (
    CompiledStylesheet,
    OutputSettings,
    StylesheetCompiler,
)

from xslt_bridge.transform.engine import (
    TransformEngine,
    TransformOutput,
)

__all__ = [
    "ParameterList",
    "ParameterMarshaler",
    "marshal_parameters",
    "CompiledStylesheet",
    "OutputSettings",
    "StylesheetCompiler",
    "TransformEngine",
    "TransformOutput",
]
