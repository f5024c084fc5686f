"""Tests for session settings and logging set-up."""

import io
import logging
from pathlib import Path

from hms_scheduler.config import configure_logging, load_settings


class TestLoadSettings:
    """Tests for data directory resolution."""

    def test_command_line_wins(self, monkeypatch):
        """Test an explicit directory beats the environment."""
        monkeypatch.setenv("HMS_DATA_DIR", "/from/env")

        settings = load_settings("/from/cli")

        assert settings.data_dir == Path("/from/cli")

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("HMS_DATA_DIR", "/from/env")
        assert load_settings().data_dir == Path("/from/env")

    def test_default(self, monkeypatch):
        monkeypatch.delenv("HMS_DATA_DIR", raising=False)

        settings = load_settings()

        assert settings.data_dir == Path("data")
        assert settings.save_on_exit is True
        assert settings.verbose is False


class TestConfigureLogging:
    """Tests for the package log handler."""

    def test_quiet_by_default(self):
        """Test INFO records are dropped unless verbose."""
        stream = io.StringIO()
        configure_logging(stream=stream)

        logging.getLogger("hms_scheduler.engine").info("slot published")
        logging.getLogger("hms_scheduler.csv_io").warning("row skipped")

        output = stream.getvalue()
        assert "slot published" not in output
        assert "row skipped" in output

    def test_verbose(self):
        stream = io.StringIO()
        configure_logging(verbose=True, stream=stream)

        logging.getLogger("hms_scheduler.engine").info("slot published")

        assert "INFO hms_scheduler.engine: slot published" in stream.getvalue()

    def test_repeated_calls_do_not_duplicate(self):
        stream = io.StringIO()
        configure_logging(stream=stream)
        configure_logging(stream=stream)

        logging.getLogger("hms_scheduler").warning("once")

        assert stream.getvalue().count("once") == 1
