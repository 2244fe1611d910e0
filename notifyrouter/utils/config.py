# notifyrouter/utils/config.py

"""
Configuration management for notifyrouter
"""
import json
import logging
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)


@dataclass
class WatcherConfig:
    """File system watcher configuration"""
    use_polling: bool = False
    poll_interval: float = 1.0  # seconds
    close_timeout: float = 5.0  # seconds to wait for subscription threads
    auto_watch_new_dirs: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "text"  # text, json, or color
    file: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class WatchSpec:
    """A watch to set up at startup"""
    path: str
    kind: str = "dir"  # dir or file
    pattern: str = ""
    ops: str = "all"
    recursive: bool = False

    def __post_init__(self):
        self.path = str(self.path)
        if self.kind not in ("dir", "file"):
            raise ValueError(f"Unknown watch kind {self.kind!r} for {self.path}")


@dataclass
class Config:
    """Main configuration class"""
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    watches: List[WatchSpec] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert config to JSON string"""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_yaml(self) -> str:
        """Convert config to YAML string"""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def save(self, path: Union[str, Path]):
        """Save config to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(self.to_yaml())
        else:  # default to JSON
            with open(path, 'w', encoding='utf-8') as f:
                f.write(self.to_json())

        logger.info(f"Configuration saved to {path}")

    def update_from_dict(self, data: Dict[str, Any]):
        """
        Update config from dictionary

        Args:
            data: Mapping with optional 'watcher', 'logging' and 'watches'
                keys

        Raises:
            ValueError: If a section has an unknown key or a watch is invalid
        """
        for section in ('watcher', 'logging'):
            values = data.get(section) or {}
            target = getattr(self, section)
            known = {f.name for f in fields(target)}
            for key, value in values.items():
                if key not in known:
                    raise ValueError(f"Unknown {section} setting: {key}")
                setattr(target, key, value)

        for raw_watch in data.get('watches') or []:
            try:
                self.watches.append(WatchSpec(**raw_watch))
            except TypeError as e:
                raise ValueError(f"Invalid watch entry {raw_watch!r}: {e}") from e


def _read_file(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:  # JSON
            data = json.load(f)
    return data or {}


def get_default_config_paths() -> List[Path]:
    """Get config file locations searched when no path is given"""
    return [
        Path("notifyrouter.yaml"),
        Path("notifyrouter.json"),
        Path.home() / ".config" / "notifyrouter" / "config.yaml",
    ]


def load_config(path: Union[str, Path, None] = None) -> Config:
    """
    Load configuration from file or create default

    Args:
        path: Explicit config file; must exist and parse if given

    Returns:
        Loaded configuration

    Raises:
        ValueError: If the explicit config file cannot be read
    """
    config = Config()

    if path is not None:
        config_path = Path(path)
        logger.info(f"Loading configuration from {config_path}")
        try:
            config.update_from_dict(_read_file(config_path))
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ValueError(f"Error loading configuration from {config_path}: {e}") from e
        return config

    for config_path in get_default_config_paths():
        if config_path.exists():
            try:
                logger.info(f"Loading configuration from {config_path}")
                config.update_from_dict(_read_file(config_path))
                logger.info("Configuration loaded successfully")
                return config
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Error loading configuration from {config_path}: {e}")
                config = Config()

    logger.info("No configuration file found, using default configuration")
    return config
