"""
Configuration Management
========================

Configuration utilities for the XML/XSLT bridge.
"""

from xslt_bridge.config.settings import (
    BridgeConfig,
    ParserConfig,
    TransformConfig,
    load_config,
    save_config,
    get_default_config,
    configure_logging,
)

__all__ = [
    "BridgeConfig",
    "ParserConfig",
    "TransformConfig",
    "load_config",
    "save_config",
    "get_default_config",
    "configure_logging",
]
