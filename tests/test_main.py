"""
Tests for the application orchestrator and command line.
"""

import logging

import pytest

from file_mover.config import Config
from file_mover.events import ProcessingStatus, StatusEvent
from file_mover.main import FileMover, build_parser, load_config, log_status, main
from file_mover.utils.exceptions import ConfigurationError

ID_PATTERN = r"^\d{17}[\dXx]$"


def scenario_config(watch_dir, target_dir) -> Config:
    config = Config()
    config.watch.directory = watch_dir
    config.watch.extensions = [".txt", ".pdf"]
    config.watch.filename_pattern = ID_PATTERN
    config.mover.target_directory = target_dir
    config.mover.retry_delay = 0.01
    return config


class TestFileMover:
    """End-to-end tests with a real observer."""

    def test_scenario(self, recorder, watch_dir, target_dir):
        """Test only the ID-named .txt file is moved."""
        mover = FileMover(scenario_config(watch_dir, target_dir), on_status=recorder)
        mover.start()
        try:
            (watch_dir / "abc.txt").write_text("pattern mismatch")
            (watch_dir / "123456789012345678.jpg").write_text("extension mismatch")
            (watch_dir / "123456789012345678.txt").write_text("match")

            assert recorder.wait_terminal("123456789012345678.txt", timeout=10.0)
        finally:
            mover.stop()

        assert recorder.statuses("123456789012345678.txt") == [
            ProcessingStatus.DETECTED,
            ProcessingStatus.MOVING,
            ProcessingStatus.MOVED,
        ]
        assert (target_dir / "123456789012345678.txt").read_text() == "match"
        assert recorder.statuses("abc.txt") == []
        assert recorder.statuses("123456789012345678.jpg") == []
        assert (watch_dir / "abc.txt").exists()
        assert (watch_dir / "123456789012345678.jpg").exists()

    def test_scan_existing_on_start(self, recorder, watch_dir, target_dir):
        (watch_dir / "123456789012345678.pdf").write_text("old")
        config = scenario_config(watch_dir, target_dir)
        config.mover.scan_existing = True

        with FileMover(config, on_status=recorder):
            assert recorder.wait_terminal("123456789012345678.pdf")

        assert (target_dir / "123456789012345678.pdf").exists()

    def test_missing_target_directory(self, watch_dir, tmp_path):
        """Test the core does not create the target directory."""
        mover = FileMover(scenario_config(watch_dir, tmp_path / "missing"))

        with pytest.raises(ConfigurationError):
            mover.start()
        assert not (tmp_path / "missing").exists()

    def test_stop_is_idempotent(self, watch_dir, target_dir):
        mover = FileMover(scenario_config(watch_dir, target_dir))
        mover.start()

        mover.stop()
        mover.stop()

        assert not mover.monitor.is_running
        assert not mover.processor.is_running


class TestCommandLine:
    """Tests for argument handling."""

    def test_arguments_override_config(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "watch:\n  directory: /from/file\n  extensions: [.pdf]\n"
            "mover:\n  target_directory: /from/file/out\n"
        )
        args = build_parser().parse_args([
            "--config", str(config_file),
            "--watch", str(tmp_path),
            "--ext", ".txt", "--ext", ".doc",
            "--pattern", ID_PATTERN,
            "--scan-existing",
        ])

        config = load_config(args)

        assert config.watch.directory == tmp_path
        assert config.watch.extensions == [".txt", ".doc"]
        assert config.watch.filename_pattern == ID_PATTERN
        assert config.mover.scan_existing is True
        assert str(config.mover.target_directory) == "/from/file/out"
        assert config.watch.recursive is False

    def test_missing_watch_directory(self, tmp_path):
        args = build_parser().parse_args(["--target", str(tmp_path)])

        with pytest.raises(ConfigurationError):
            load_config(args)

    def test_main_reports_configuration_errors(self, tmp_path, capsys):
        assert main(["--target", str(tmp_path)]) == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_main_rejects_bad_pattern(self, tmp_path, capsys):
        assert main(["--watch", str(tmp_path), "--target", str(tmp_path), "--pattern", "("]) == 2


class TestLogStatus:
    """Tests for status logging."""

    def test_failure_includes_cause(self, caplog):
        event = StatusEvent(
            file_name="a.txt",
            source_path="/in/a.txt",
            target_path="/out/a.txt",
            status=ProcessingStatus.FAILED,
            message="Error while moving file",
            error=PermissionError("denied"),
        )

        with caplog.at_level(logging.DEBUG, logger="file_mover"):
            log_status(event)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "PermissionError: denied" in record.getMessage()
        assert record.status == "failed"
        assert record.file_path == "/in/a.txt"

    def test_summary_uses_message(self, caplog):
        event = StatusEvent(None, None, None, ProcessingStatus.DETECTED, message="Found 2 matching existing file(s)")

        with caplog.at_level(logging.INFO, logger="file_mover"):
            log_status(event)

        assert caplog.records[-1].getMessage() == "Found 2 matching existing file(s)"
