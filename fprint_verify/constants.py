"""
Centralized Constants Module for fprint-verify.

Consolidates the fprintd bus contract, retry bounds and timeouts used
throughout the package so that every module agrees on the same names.

Usage:
    from fprint_verify.constants import Fprintd, Retries, Timeouts

    bus.get(Fprintd.BUS_NAME, Fprintd.DEFAULT_DEVICE_PATH)
"""

import os
import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

ENV_PREFIX = "FPRINT_VERIFY_"


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDE UTILITIES
# =============================================================================

T = TypeVar('T')


def _env_override(
    env_var: str,
    default: T,
    converter: Callable[[str], T] = str,
    min_value: Optional[T] = None,
) -> T:
    """Get a configuration value with environment variable override.

    Args:
        env_var: Environment variable name (will be prefixed with FPRINT_VERIFY_)
        default: Default value if env var not set
        converter: Function to convert string to target type
        min_value: Optional minimum allowed value

    Returns:
        Configured value (from env var if valid, otherwise default)
    """
    full_env_var = f"{ENV_PREFIX}{env_var}"
    env_value = os.environ.get(full_env_var)

    if env_value is None:
        return default

    try:
        converted = converter(env_value)
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid value for {full_env_var}={env_value!r}: {e}, using default")
        return default

    if min_value is not None and converted < min_value:
        logger.warning(f"{full_env_var}={env_value} below minimum {min_value}, using default")
        return default

    return converted


def env_flag(env_var: str) -> bool:
    """True when FPRINT_VERIFY_<env_var> is set to a truthy string."""
    return os.environ.get(f"{ENV_PREFIX}{env_var}", '').lower() in ('1', 'true', 'yes')


# =============================================================================
# FPRINTD BUS CONTRACT
# =============================================================================

@dataclass(frozen=True)
class Fprintd:
    """
    Names exposed by the fprintd system service.

    See https://fprint.freedesktop.org/fprintd-dev/Device.html
    """
    BUS_NAME: str = "net.reactivated.Fprint"
    DEVICE_INTERFACE: str = "net.reactivated.Fprint.Device"
    DEFAULT_DEVICE_PATH: str = "/net/reactivated/Fprint/Device/0"

    # Methods
    CLAIM: str = "Claim"
    RELEASE: str = "Release"
    VERIFY_START: str = "VerifyStart"

    # Signals
    VERIFY_STATUS: str = "VerifyStatus"

    # VerifyStatus results
    RESULT_MATCH: str = "verify-match"
    RESULT_NO_MATCH: str = "verify-no-match"

    # Finger selector matching any enrolled finger
    ANY_FINGER: str = "any"


# =============================================================================
# RETRY PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class Retries:
    """
    Retry bounds for verification.

    Only completed scans that did not match are retried; the bound keeps
    the user from being asked to re-scan forever.
    """
    VERIFY_ATTEMPTS: int = 3
    MIN_VERIFY_ATTEMPTS: int = 1


# =============================================================================
# TIMEOUTS
# =============================================================================

@dataclass(frozen=True)
class Timeouts:
    """Timeout values in seconds."""
    # None means wait for the scanner indefinitely
    VERIFY_WAIT: Optional[float] = None
    MAIN_LOOP_JOIN: float = 2.0


# =============================================================================
# CONVENIENCE EXPORTS
# =============================================================================

DEFAULT_MAX_ATTEMPTS = Retries.VERIFY_ATTEMPTS
DEFAULT_DEVICE_PATH = Fprintd.DEFAULT_DEVICE_PATH


__all__ = [
    'Fprintd',
    'Retries',
    'Timeouts',
    'ENV_PREFIX',
    'env_flag',
    'DEFAULT_MAX_ATTEMPTS',
    'DEFAULT_DEVICE_PATH',
]
