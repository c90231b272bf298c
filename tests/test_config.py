"""
Unit tests for configuration module.
"""

import pytest
from pathlib import Path
import tempfile
import yaml

from file_mover.config.settings import (
    Config,
    WatchConfig,
    MoverConfig,
    DispatchConfig,
    ConflictStrategy,
    OverflowPolicy,
)
from file_mover.events import ChangeType
from file_mover.utils.exceptions import ConfigurationError
from file_mover.utils.logging_config import LoggingConfig


class TestWatchConfig:
    """Tests for WatchConfig."""

    def test_default_values(self):
        """Test default configuration values."""
        config = WatchConfig()

        assert config.directory is None
        assert config.extensions == []
        assert config.filename_pattern is None
        assert config.recursive is False

    def test_from_dict(self):
        """Test creation from dictionary."""
        data = {
            "directory": "~/Inbox",
            "extensions": [".txt", "PDF"],
            "filename_pattern": r"^\d+$",
            "recursive": True
        }
        config = WatchConfig.from_dict(data)

        assert config.directory == Path("~/Inbox").expanduser()
        assert config.extensions == [".txt", "PDF"]
        assert config.recursive is True

    def test_single_extension_string(self):
        """Test a bare string is treated as one extension."""
        config = WatchConfig.from_dict({"extensions": ".txt"})

        assert config.extensions == [".txt"]

    def test_invalid_pattern(self):
        """Test validation rejects a bad regex."""
        config = WatchConfig(filename_pattern="(")

        with pytest.raises(ConfigurationError):
            config.validate()


class TestMoverConfig:
    """Tests for MoverConfig."""

    def test_default_values(self):
        """Test default mover settings."""
        config = MoverConfig()

        assert config.max_retries == 10
        assert config.retry_delay == 0.1
        assert config.conflict_strategy is ConflictStrategy.RENAME
        assert config.trigger_on == [ChangeType.CREATED]
        assert config.drain_on_shutdown is False

    def test_from_dict(self):
        """Test creation from dictionary."""
        config = MoverConfig.from_dict({
            "target_directory": "/srv/out",
            "max_retries": 3,
            "retry_delay": 0.5,
            "conflict_strategy": "SKIP",
            "trigger_on": ["created", "renamed"],
        })

        assert config.target_directory == Path("/srv/out")
        assert config.max_retries == 3
        assert config.conflict_strategy is ConflictStrategy.SKIP
        assert config.trigger_on == [ChangeType.CREATED, ChangeType.RENAMED]

    def test_unknown_strategy(self):
        """Test unknown enum values raise a configuration error."""
        with pytest.raises(ConfigurationError):
            MoverConfig.from_dict({"conflict_strategy": "merge"})

    @pytest.mark.parametrize("field,value", [
        ("max_retries", 0),
        ("retry_delay", -1.0),
        ("shutdown_timeout", -1.0),
    ])
    def test_validate_ranges(self, field, value):
        """Test out-of-range values are rejected."""
        config = MoverConfig(**{field: value})

        with pytest.raises(ConfigurationError):
            config.validate()


class TestDispatchConfig:
    """Tests for DispatchConfig."""

    def test_default_values(self):
        """Test default dispatch settings."""
        config = DispatchConfig()

        assert config.workers == 1
        assert config.max_pending == 1000
        assert config.overflow_policy is OverflowPolicy.BLOCK

    def test_from_dict(self):
        config = DispatchConfig.from_dict({"workers": 2, "overflow_policy": "drop_oldest"})

        assert config.workers == 2
        assert config.overflow_policy is OverflowPolicy.DROP_OLDEST

    def test_validate_workers(self):
        with pytest.raises(ConfigurationError):
            DispatchConfig(workers=0).validate()


class TestConfig:
    """Tests for main Config class."""

    def test_default_config(self):
        """Test default configuration."""
        config = Config()

        assert isinstance(config.watch, WatchConfig)
        assert isinstance(config.mover, MoverConfig)
        assert isinstance(config.dispatch, DispatchConfig)
        assert isinstance(config.logging, LoggingConfig)

    def test_load_from_file(self):
        """Test loading configuration from YAML file."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(yaml.dump({
                "watch": {"extensions": [".txt"], "filename_pattern": r"^\d{17}[\dXx]$"},
                "mover": {"max_retries": 5},
                "logging": {"level": "debug"}
            }))

            config = Config.load(path)

            assert config.watch.extensions == [".txt"]
            assert config.mover.max_retries == 5
            assert config.logging.level == "DEBUG"

    def test_load_missing_file(self):
        """Test loading from non-existent file returns defaults."""
        config = Config.load(Path("/nonexistent/config.yaml"))

        assert config.mover.max_retries == 10

    def test_load_invalid_yaml(self, tmp_path):
        """Test malformed YAML is reported as a configuration error."""
        path = tmp_path / "config.yaml"
        path.write_text("watch: [unclosed")

        with pytest.raises(ConfigurationError):
            Config.load(path)

    def test_load_invalid_values(self, tmp_path):
        """Test loading validates values."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"mover": {"max_retries": 0}}))

        with pytest.raises(ConfigurationError):
            Config.load(path)

    def test_save_and_reload(self, tmp_path):
        """Test a saved configuration loads back with the same values."""
        config = Config()
        config.watch.directory = tmp_path
        config.watch.extensions = [".pdf"]
        config.mover.conflict_strategy = ConflictStrategy.OVERWRITE
        config.dispatch.overflow_policy = OverflowPolicy.DROP_NEWEST

        path = tmp_path / "saved.yaml"
        config.save(path)
        loaded = Config.load(path)

        assert loaded.watch.directory == tmp_path
        assert loaded.watch.extensions == [".pdf"]
        assert loaded.mover.conflict_strategy is ConflictStrategy.OVERWRITE
        assert loaded.dispatch.overflow_policy is OverflowPolicy.DROP_NEWEST
