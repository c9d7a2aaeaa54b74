"""
Logging Configuration for fprint-verify.

Provides centralized logging configuration with verbose/trace toggles
and structured log formatting.

Usage:
    from fprint_verify.logging_config import setup_logging, get_logger

    setup_logging(verbose=True)

    logger = get_logger('fprint_verify.auth')
    logger.notice("Device claimed")
"""

import os
import sys
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from .constants import env_flag, ENV_PREFIX


# =============================================================================
# LOGGING LEVELS
# =============================================================================

logging.addLevelName(5, 'TRACE')
logging.addLevelName(15, 'VERBOSE')
logging.addLevelName(25, 'NOTICE')
logging.addLevelName(55, 'SECURITY')


# =============================================================================
# THREAD-SAFE CONFIGURATION STATE
# =============================================================================

@dataclass
class LoggingState:
    """Thread-safe logging configuration state."""
    verbose: bool = False
    trace: bool = False
    log_file: Optional[str] = None
    console_enabled: bool = True
    json_format: bool = False
    initialized: bool = False
    _lock: threading.RLock = field(default_factory=threading.RLock)


_state = LoggingState()


# =============================================================================
# CUSTOM FORMATTER
# =============================================================================

class VerifyFormatter(logging.Formatter):
    """Formatter with color support and optional JSON output."""

    COLORS = {
        'TRACE': '\033[90m',      # Gray
        'DEBUG': '\033[36m',      # Cyan
        'VERBOSE': '\033[94m',    # Light blue
        'INFO': '\033[32m',       # Green
        'NOTICE': '\033[33m',     # Yellow
        'WARNING': '\033[33;1m',  # Bold yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[31;1m', # Bold red
        'SECURITY': '\033[35;1m', # Bold magenta
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, json_format: bool = False, stream=None):
        stream = stream if stream is not None else sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()
        self.json_format = json_format
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_name = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level_name, '')
            level_str = f"{color}{level_name:8}{self.COLORS['RESET']}"
        else:
            level_str = f"{level_name:8}"

        component = f"[{self._extract_component(record.name)}]"
        msg = record.getMessage()

        extra_str = ""
        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            extra_str = " | " + ", ".join(f"{k}={v}" for k, v in extra_data.items())

        text = f"{timestamp} {level_str} {component:12} {msg}{extra_str}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text

    def _format_json(self, record: logging.LogRecord) -> str:
        data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'component': self._extract_component(record.name),
        }

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            data['extra'] = extra_data

        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)

    def _extract_component(self, logger_name: str) -> str:
        """fprint_verify.auth.verification_session -> auth"""
        parts = logger_name.split('.')
        if len(parts) >= 2 and parts[0] == 'fprint_verify':
            return parts[1]
        return parts[0] if parts[0] else 'core'


# =============================================================================
# CUSTOM LOGGER CLASS
# =============================================================================

class VerifyLogger(logging.Logger):
    """Logger with the extra levels as methods."""

    def trace(self, msg: str, *args, **kwargs):
        if self.isEnabledFor(5):
            self._log(5, msg, args, **kwargs)

    def verbose(self, msg: str, *args, **kwargs):
        if self.isEnabledFor(15):
            self._log(15, msg, args, **kwargs)

    def notice(self, msg: str, *args, **kwargs):
        if self.isEnabledFor(25):
            self._log(25, msg, args, **kwargs)

    def security(self, msg: str, *args, **kwargs):
        """Log authentication decisions (always logged)."""
        self._log(55, msg, args, **kwargs)

    def log_with_data(self, level: int, msg: str, data: Dict[str, Any], **kwargs):
        """Log with structured extra data."""
        extra = kwargs.get('extra', {})
        extra['extra_data'] = data
        kwargs['extra'] = extra
        self._log(level, msg, (), **kwargs)


logging.setLoggerClass(VerifyLogger)


# =============================================================================
# SETUP AND CONFIGURATION
# =============================================================================

def setup_logging(
    verbose: bool = False,
    trace: bool = False,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
) -> None:
    """
    Initialize the logging system.

    Console output goes to stderr so that stdout carries only the
    verification result.

    Args:
        verbose: Enable verbose logging (VERBOSE level)
        trace: Enable trace logging (TRACE level, implies verbose)
        log_file: Optional file path for log output
        console: Enable console output
        json_format: Use JSON format for logs
    """
    with _state._lock:
        _state.verbose = verbose or trace
        _state.trace = trace
        _state.log_file = log_file
        _state.console_enabled = console
        _state.json_format = json_format

        if trace:
            base_level = 5
        elif verbose:
            base_level = 15
        else:
            base_level = logging.WARNING

        root = logging.getLogger()
        root.setLevel(base_level)

        for handler in root.handlers[:]:
            root.removeHandler(handler)

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(base_level)
            console_handler.setFormatter(VerifyFormatter(
                use_colors=True,
                json_format=json_format,
                stream=sys.stderr,
            ))
            root.addHandler(console_handler)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            # Files always get the operational detail
            file_handler.setLevel(min(base_level, logging.INFO))
            file_handler.setFormatter(VerifyFormatter(
                use_colors=False,
                json_format=json_format
            ))
            root.addHandler(file_handler)
            root.setLevel(min(base_level, logging.INFO))

        _state.initialized = True


def get_logger(name: str) -> VerifyLogger:
    """
    Get a logger with the extra level methods.

    Args:
        name: Logger name (e.g., 'fprint_verify.auth')
    """
    logger = logging.getLogger(name)
    if not isinstance(logger, VerifyLogger):
        logging.setLoggerClass(VerifyLogger)
        logger = logging.getLogger(name)
    return logger


def get_logging_state() -> Dict[str, Any]:
    """Get current logging configuration state."""
    with _state._lock:
        return {
            'verbose': _state.verbose,
            'trace': _state.trace,
            'log_file': _state.log_file,
            'console_enabled': _state.console_enabled,
            'json_format': _state.json_format,
            'initialized': _state.initialized,
        }


# =============================================================================
# ENVIRONMENT VARIABLE CONFIGURATION
# =============================================================================

def configure_from_environment(verbose: bool = False, trace: bool = False,
                               log_file: Optional[str] = None,
                               json_format: bool = False) -> None:
    """
    Configure logging from FPRINT_VERIFY_* environment variables.

    Arguments act as a floor: an environment flag can turn an option on
    but not off.
    """
    setup_logging(
        verbose=verbose or env_flag('VERBOSE'),
        trace=trace or env_flag('TRACE'),
        log_file=log_file or os.environ.get(f'{ENV_PREFIX}LOG_FILE'),
        console=not env_flag('LOG_NO_CONSOLE'),
        json_format=json_format or env_flag('LOG_JSON'),
    )


__all__ = [
    'setup_logging',
    'configure_from_environment',
    'get_logger',
    'get_logging_state',
    'VerifyLogger',
    'VerifyFormatter',
]
