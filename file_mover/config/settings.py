"""
Configuration Management System
===============================

Provides dataclass-based configuration with YAML file loading support.
All settings are validated and have sensible defaults.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Any, Dict, Type, TypeVar

import yaml

from file_mover.events import ChangeType
from file_mover.utils.exceptions import ConfigurationError
from file_mover.utils.logging_config import LoggingConfig, get_logger

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)


class ConflictStrategy(Enum):
    """What to do when the target file already exists."""

    RENAME = "rename"  # Add counter suffix
    OVERWRITE = "overwrite"  # Replace existing
    SKIP = "skip"  # Fail the job, leave the source alone


class OverflowPolicy(Enum):
    """What the event dispatcher does when its pending queue is full."""

    BLOCK = "block"  # Wait up to block_timeout, then drop the new event
    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"


def _parse_enum(enum_cls: Type[E], value: Any, config_key: str) -> E:
    """Parse an enum member from its value or name."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"Invalid value {value!r} for {config_key} (expected one of: {choices})",
            config_key=config_key,
            expected_type=enum_cls.__name__,
        )


def _optional_path(value: Any) -> Optional[Path]:
    if value in (None, ""):
        return None
    return Path(value).expanduser()


@dataclass
class WatchConfig:
    """Change monitor configuration.

    Attributes:
        directory: Directory to monitor for new files.
        extensions: Allowed extensions; empty means all extensions.
        filename_pattern: Regex the filename stem must fully match.
        recursive: Whether to watch subdirectories.
    """
    directory: Optional[Path] = None
    extensions: List[str] = field(default_factory=list)
    filename_pattern: Optional[str] = None
    recursive: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatchConfig":
        """Create WatchConfig from dictionary."""
        if not data:
            return cls()

        extensions = data.get("extensions") or []
        if isinstance(extensions, str):
            extensions = [extensions]

        return cls(
            directory=_optional_path(data.get("directory")),
            extensions=[str(ext) for ext in extensions],
            filename_pattern=data.get("filename_pattern") or None,
            recursive=bool(data.get("recursive", False))
        )

    def validate(self) -> None:
        if self.filename_pattern:
            try:
                re.compile(self.filename_pattern)
            except re.error as e:
                raise ConfigurationError(
                    f"Invalid filename pattern: {e}",
                    config_key="watch.filename_pattern",
                    cause=e,
                )


@dataclass
class MoverConfig:
    """Move processor configuration.

    Attributes:
        target_directory: Directory matched files are moved into.
        scan_existing: Enqueue matching files already present at start.
        max_retries: Lock-detection attempts before a move fails.
        retry_delay: Seconds to wait between attempts.
        conflict_strategy: Behaviour when the target already exists.
        trigger_on: Change types that enqueue a move.
        drain_on_shutdown: Process queued jobs before the worker exits.
        shutdown_timeout: Seconds to wait for the worker to exit.
    """
    target_directory: Optional[Path] = None
    scan_existing: bool = False
    max_retries: int = 10
    retry_delay: float = 0.1
    conflict_strategy: ConflictStrategy = ConflictStrategy.RENAME
    trigger_on: List[ChangeType] = field(default_factory=lambda: [ChangeType.CREATED])
    drain_on_shutdown: bool = False
    shutdown_timeout: float = 5.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MoverConfig":
        """Create MoverConfig from dictionary."""
        if not data:
            return cls()
        defaults = cls()

        trigger_on = data.get("trigger_on")
        if trigger_on is None:
            triggers = defaults.trigger_on
        else:
            if isinstance(trigger_on, str):
                trigger_on = [trigger_on]
            triggers = [_parse_enum(ChangeType, t, "mover.trigger_on") for t in trigger_on]

        return cls(
            target_directory=_optional_path(data.get("target_directory")),
            scan_existing=bool(data.get("scan_existing", defaults.scan_existing)),
            max_retries=int(data.get("max_retries", defaults.max_retries)),
            retry_delay=float(data.get("retry_delay", defaults.retry_delay)),
            conflict_strategy=_parse_enum(
                ConflictStrategy,
                data.get("conflict_strategy", defaults.conflict_strategy),
                "mover.conflict_strategy",
            ),
            trigger_on=triggers,
            drain_on_shutdown=bool(data.get("drain_on_shutdown", defaults.drain_on_shutdown)),
            shutdown_timeout=float(data.get("shutdown_timeout", defaults.shutdown_timeout)),
        )

    def validate(self) -> None:
        if self.max_retries < 1:
            raise ConfigurationError(
                "max_retries must be at least 1", config_key="mover.max_retries"
            )
        if self.retry_delay < 0:
            raise ConfigurationError(
                "retry_delay must not be negative", config_key="mover.retry_delay"
            )
        if self.shutdown_timeout < 0:
            raise ConfigurationError(
                "shutdown_timeout must not be negative",
                config_key="mover.shutdown_timeout",
            )


@dataclass
class DispatchConfig:
    """Change event dispatch configuration.

    Attributes:
        workers: Number of dispatch threads; 1 keeps arrival order.
        max_pending: Events buffered before the overflow policy applies.
        overflow_policy: What to do when the buffer is full.
        block_timeout: Seconds the watcher thread may block under BLOCK.
    """
    workers: int = 1
    max_pending: int = 1000
    overflow_policy: OverflowPolicy = OverflowPolicy.BLOCK
    block_timeout: float = 5.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DispatchConfig":
        """Create DispatchConfig from dictionary."""
        if not data:
            return cls()
        defaults = cls()
        return cls(
            workers=int(data.get("workers", defaults.workers)),
            max_pending=int(data.get("max_pending", defaults.max_pending)),
            overflow_policy=_parse_enum(
                OverflowPolicy,
                data.get("overflow_policy", defaults.overflow_policy),
                "dispatch.overflow_policy",
            ),
            block_timeout=float(data.get("block_timeout", defaults.block_timeout)),
        )

    def validate(self) -> None:
        if self.workers < 1:
            raise ConfigurationError(
                "workers must be at least 1", config_key="dispatch.workers"
            )
        if self.max_pending < 1:
            raise ConfigurationError(
                "max_pending must be at least 1", config_key="dispatch.max_pending"
            )
        if self.block_timeout < 0:
            raise ConfigurationError(
                "block_timeout must not be negative",
                config_key="dispatch.block_timeout",
            )


@dataclass
class Config:
    """Main configuration container.

    Aggregates all configuration sections and provides loading from YAML.
    """
    watch: WatchConfig = field(default_factory=WatchConfig)
    mover: MoverConfig = field(default_factory=MoverConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to the configuration file. If None, looks for
                        config.yaml in the current directory.

        Returns:
            Config instance with loaded settings.

        Raises:
            ConfigurationError: If the file is not valid YAML or holds
                invalid values.
        """
        if config_path is None:
            config_path = Path("config.yaml")
        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise ConfigurationError(
                f"Failed to parse config file {config_path}", cause=e
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping",
                expected_type="mapping",
            )

        config = cls._from_dict(data)
        config.validate()
        logger.info(f"Loaded configuration from {config_path}")
        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            watch=WatchConfig.from_dict(data.get("watch", {})),
            mover=MoverConfig.from_dict(data.get("mover", {})),
            dispatch=DispatchConfig.from_dict(data.get("dispatch", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    def validate(self) -> None:
        """Check value ranges and patterns.

        Path existence is checked by the components that use the paths.

        Raises:
            ConfigurationError: On the first invalid value.
        """
        self.watch.validate()
        self.mover.validate()
        self.dispatch.validate()

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the configuration.
        """
        data = {
            "watch": {
                "directory": str(self.watch.directory) if self.watch.directory else None,
                "extensions": list(self.watch.extensions),
                "filename_pattern": self.watch.filename_pattern,
                "recursive": self.watch.recursive
            },
            "mover": {
                "target_directory": (
                    str(self.mover.target_directory) if self.mover.target_directory else None
                ),
                "scan_existing": self.mover.scan_existing,
                "max_retries": self.mover.max_retries,
                "retry_delay": self.mover.retry_delay,
                "conflict_strategy": self.mover.conflict_strategy.value,
                "trigger_on": [t.value for t in self.mover.trigger_on],
                "drain_on_shutdown": self.mover.drain_on_shutdown,
                "shutdown_timeout": self.mover.shutdown_timeout
            },
            "dispatch": {
                "workers": self.dispatch.workers,
                "max_pending": self.dispatch.max_pending,
                "overflow_policy": self.dispatch.overflow_policy.value,
                "block_timeout": self.dispatch.block_timeout
            },
            "logging": self.logging.to_dict()
        }

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration to {config_path}")
