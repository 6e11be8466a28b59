"""
Configuration Settings
======================

Configuration dataclasses for the XML/XSLT bridge.
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Any
import json
import logging

try:
    import yaml
    YAML_AVAILABLE = True
except ImportError:
    YAML_AVAILABLE = False

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class ParserConfig:
    """XML parser options. The parser never validates and never touches the network."""

    huge_tree: bool = False
    remove_blank_text: bool = False
    strip_cdata: bool = False
    remove_comments: bool = False


@dataclass
class TransformConfig:
    """Stylesheet compilation and transform options."""

    max_parameters: int = 256  # name/value pairs per transform call
    coerce_parameter_values: bool = False
    # Engine access control; network access is always denied
    read_file: bool = True
    write_file: bool = False
    create_dir: bool = False
    log_messages: bool = True


@dataclass
class BridgeConfig:
    """
    Complete bridge configuration.

    Example:
        config = BridgeConfig()
        config.transform.max_parameters = 32
        save_config(config, Path("bridge.yaml"))
    """

    parser: ParserConfig = field(default_factory=ParserConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)

    log_level: str = "INFO"

    # Custom extensions
    custom: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'parser': asdict(self.parser),
            'transform': asdict(self.transform),
            'log_level': self.log_level,
            'custom': self.custom,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BridgeConfig':
        """Create from dictionary."""
        config = cls()

        if 'parser' in data:
            config.parser = ParserConfig(**data['parser'])
        if 'transform' in data:
            config.transform = TransformConfig(**data['transform'])

        if 'log_level' in data:
            config.log_level = data['log_level']
        if 'custom' in data:
            config.custom = data['custom']

        return config


def load_config(config_path: Path) -> BridgeConfig:
    """
    Load configuration from file.

    Supports JSON and YAML formats based on file extension.

    Args:
        config_path: Path to config file

    Returns:
        BridgeConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is not supported
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    with open(config_path, 'r', encoding='utf-8') as f:
        if suffix in ['.yaml', '.yml']:
            if not YAML_AVAILABLE:
                raise ImportError("PyYAML is required for YAML config files")
            data = yaml.safe_load(f) or {}
        elif suffix == '.json':
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

    logger.info(f"Loaded configuration from {config_path}")
    return BridgeConfig.from_dict(data)


def save_config(config: BridgeConfig, config_path: Path) -> None:
    """
    Save configuration to file.

    Supports JSON and YAML formats based on file extension.

    Args:
        config: BridgeConfig to save
        config_path: Path to save config file

    Raises:
        ValueError: If file format is not supported
    """
    suffix = config_path.suffix.lower()
    data = config.to_dict()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        if suffix in ['.yaml', '.yml']:
            if not YAML_AVAILABLE:
                raise ImportError("PyYAML is required for YAML config files")
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        elif suffix == '.json':
            json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

    logger.info(f"Saved configuration to {config_path}")


def get_default_config() -> BridgeConfig:
    """Get default configuration."""
    return BridgeConfig()


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging for the CLI and the REST server."""
    numeric = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Invalid log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
