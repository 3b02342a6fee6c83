"""Tests for the centralized logging configuration module."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from Setup_Radar.logging_config import _MODULE_LOGGERS, LOG_FORMAT, configure_logging


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Reset root and per-area logger state between tests."""
    root = logging.getLogger()
    original_level = root.level
    original_handlers = root.handlers[:]
    area_levels = {name: logging.getLogger(name).level for name in _MODULE_LOGGERS.values()}
    yield
    root.setLevel(original_level)
    root.handlers = original_handlers
    for name, level in area_levels.items():
        logging.getLogger(name).setLevel(level)


class TestConfigureLogging:
    """Level selection precedence and per-area overrides."""

    def test_default_level_is_info(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_verbose_sets_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_quiet_sets_warning(self) -> None:
        configure_logging(quiet=True)
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_beats_quiet(self) -> None:
        configure_logging(verbose=True, quiet=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_level_param_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        configure_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        configure_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_env_level_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_scanner_area_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL_SCANNER", "DEBUG")
        configure_logging(quiet=True)
        assert logging.getLogger("Setup_Radar.scanner").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_area_override_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL_DATA", "LOUD")
        configure_logging(verbose=True)
        assert logging.getLogger("Setup_Radar.data").level == logging.INFO

    def test_non_level_attribute_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "BASIC_FORMAT")
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_force_overrides_existing(self) -> None:
        logging.basicConfig(level=logging.CRITICAL)
        configure_logging(level="INFO")
        assert logging.getLogger().level == logging.INFO

    def test_aiosqlite_demoted(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("aiosqlite").level == logging.WARNING


class TestLogFormat:
    """Tests for the LOG_FORMAT constant."""

    def test_format_fields(self) -> None:
        for field in ("%(asctime)s", "%(levelname)", "%(name)s", "%(message)s"):
            assert field in LOG_FORMAT

    def test_areas_cover_packages(self) -> None:
        assert set(_MODULE_LOGGERS) == {"ANALYSIS", "SCANNER", "DATA", "CLI"}
        assert all(name.startswith("Setup_Radar.") for name in _MODULE_LOGGERS.values())


class TestAreaLevels:
    """Per-area floors and resets."""

    def test_data_floored_at_info_when_verbose(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL_DATA", raising=False)
        monkeypatch.delenv("LOG_LEVEL_SCANNER", raising=False)
        configure_logging(verbose=True)
        assert logging.getLogger("Setup_Radar.data").level == logging.INFO
        assert logging.getLogger("Setup_Radar.scanner").getEffectiveLevel() == logging.DEBUG

    def test_data_floor_follows_quiet_root(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LOG_LEVEL_DATA", raising=False)
        configure_logging(quiet=True)
        assert logging.getLogger("Setup_Radar.data").level == logging.WARNING

    def test_data_override_beats_floor(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL_DATA", "debug")
        configure_logging()
        assert logging.getLogger("Setup_Radar.data").level == logging.DEBUG

    def test_previous_override_cleared(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL_SCANNER", "ERROR")
        configure_logging()
        monkeypatch.delenv("LOG_LEVEL_SCANNER")
        configure_logging()
        assert logging.getLogger("Setup_Radar.scanner").level == logging.NOTSET
