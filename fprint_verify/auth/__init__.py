"""
Authentication Module for fprint-verify
Runs fingerprint verification sessions against a scanner device.
"""

from .device_proxy import (
    DeviceProxy,
    DeviceError,
    RemoteError,
    ScanResult,
    VerificationEvent,
)
from .verification_session import (
    VerificationSession,
    VerificationOutcome,
    SessionState,
    FailureReason,
    DeviceClaim,
)

__all__ = [
    'DeviceProxy',
    'DeviceError',
    'RemoteError',
    'ScanResult',
    'VerificationEvent',
    'VerificationSession',
    'VerificationOutcome',
    'SessionState',
    'FailureReason',
    'DeviceClaim',
]
