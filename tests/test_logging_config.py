"""
Tests for logging configuration: levels, formatter and environment toggles.
"""

import json
import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fprint_verify.logging_config import (
    VerifyFormatter,
    VerifyLogger,
    configure_from_environment,
    get_logger,
    get_logging_state,
    setup_logging,
)


def make_record(name="fprint_verify.auth.verification_session", level=logging.INFO, msg="Device claimed"):
    return logging.LogRecord(name, level, __file__, 1, msg, (), None)


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.mark.unit
    def test_default_level_is_warning(self, restore_root_logger):
        setup_logging()
        assert restore_root_logger.level == logging.WARNING
        assert get_logging_state()['verbose'] is False

    @pytest.mark.unit
    def test_verbose_level(self, restore_root_logger):
        setup_logging(verbose=True)
        assert restore_root_logger.level == 15
        assert get_logging_state()['verbose'] is True

    @pytest.mark.unit
    def test_trace_implies_verbose(self, restore_root_logger):
        setup_logging(trace=True)
        assert restore_root_logger.level == 5
        assert get_logging_state()['verbose'] is True

    @pytest.mark.unit
    def test_log_file(self, restore_root_logger, temp_dir):
        log_file = temp_dir / "logs" / "verify.log"
        setup_logging(log_file=str(log_file), console=False)

        get_logger("fprint_verify.auth").info("Scan result: verify-match")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert "Scan result: verify-match" in log_file.read_text()
        assert get_logging_state()['console_enabled'] is False

    @pytest.mark.unit
    def test_no_console(self, restore_root_logger):
        setup_logging(console=False)
        assert restore_root_logger.handlers == []


class TestConfigureFromEnvironment:
    """Tests for FPRINT_VERIFY_* logging toggles."""

    @pytest.mark.unit
    def test_verbose_flag(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("FPRINT_VERIFY_VERBOSE", "true")
        configure_from_environment()
        assert restore_root_logger.level == 15

    @pytest.mark.unit
    def test_arguments_are_a_floor(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("FPRINT_VERIFY_VERBOSE", "0")
        configure_from_environment(verbose=True)
        assert restore_root_logger.level == 15

    @pytest.mark.unit
    def test_json_and_no_console(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("FPRINT_VERIFY_LOG_JSON", "1")
        monkeypatch.setenv("FPRINT_VERIFY_LOG_NO_CONSOLE", "yes")
        configure_from_environment()
        state = get_logging_state()
        assert state['json_format'] is True
        assert state['console_enabled'] is False


class TestVerifyFormatter:
    """Tests for VerifyFormatter."""

    @pytest.mark.unit
    def test_text_format_has_component(self):
        text = VerifyFormatter(use_colors=False).format(make_record())
        assert "[auth]" in text
        assert "INFO" in text
        assert text.endswith("Device claimed")

    @pytest.mark.unit
    def test_text_format_extra_data(self):
        record = make_record()
        record.extra_data = {'attempt': 2}
        text = VerifyFormatter(use_colors=False).format(record)
        assert text.endswith("Device claimed | attempt=2")

    @pytest.mark.unit
    def test_json_format(self):
        data = json.loads(VerifyFormatter(json_format=True).format(make_record(level=55)))
        assert data['level'] == "SECURITY"
        assert data['component'] == "auth"
        assert data['logger'] == "fprint_verify.auth.verification_session"

    @pytest.mark.unit
    def test_component_outside_package(self):
        text = VerifyFormatter(use_colors=False).format(make_record(name="pydbus"))
        assert "[pydbus]" in text


class TestVerifyLogger:
    """Tests for the custom logger class."""

    @pytest.mark.unit
    def test_get_logger_returns_verify_logger(self):
        assert isinstance(get_logger("fprint_verify.test_logger"), VerifyLogger)

    @pytest.mark.unit
    def test_security_always_logged(self, caplog):
        logger = get_logger("fprint_verify.test_security")
        logger.setLevel(logging.CRITICAL + 100)
        try:
            with caplog.at_level(logging.DEBUG):
                logger.security("Verification failed: attempts_exhausted")
        finally:
            logger.setLevel(logging.NOTSET)

        assert any(r.levelname == "SECURITY" for r in caplog.records)

    @pytest.mark.unit
    def test_custom_levels(self, caplog):
        logger = get_logger("fprint_verify.test_levels")
        with caplog.at_level(5, logger="fprint_verify.test_levels"):
            logger.trace("t")
            logger.verbose("v")
            logger.notice("n")
            logger.log_with_data(logging.INFO, "d", {'k': 1})

        levels = [r.levelname for r in caplog.records if r.name == "fprint_verify.test_levels"]
        assert levels == ["TRACE", "VERBOSE", "NOTICE", "INFO"]
