"""
fprint-verify - Fingerprint Verification over fprintd
"""

__version__ = "1.0.0"

# Installs the logger class before any module logger is created
from .logging_config import setup_logging, configure_from_environment, get_logger

from .constants import (
    Fprintd,
    Retries,
    Timeouts,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_DEVICE_PATH,
)
from .event_logger import EventLogger, EventType, AuditEvent, AuditLogError
from .auth import (
    DeviceProxy, DeviceError, RemoteError, ScanResult, VerificationEvent,
    VerificationSession, VerificationOutcome, SessionState, FailureReason,
)
from .config import VerifyConfig, ConfigError, load_config
from .hardware import FprintdDevice, BusUnavailableError, DBUS_AVAILABLE

__all__ = [
    '__version__',
    'setup_logging', 'configure_from_environment', 'get_logger',
    'Fprintd', 'Retries', 'Timeouts', 'DEFAULT_MAX_ATTEMPTS', 'DEFAULT_DEVICE_PATH',
    'EventLogger', 'EventType', 'AuditEvent', 'AuditLogError',
    'DeviceProxy', 'DeviceError', 'RemoteError', 'ScanResult', 'VerificationEvent',
    'VerificationSession', 'VerificationOutcome', 'SessionState', 'FailureReason',
    'VerifyConfig', 'ConfigError', 'load_config',
    # D-Bus transport (needs pydbus + PyGObject at runtime)
    'FprintdDevice', 'BusUnavailableError', 'DBUS_AVAILABLE',
]
