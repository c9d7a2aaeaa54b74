"""
Configuration Module for fprint-verify.

Loads verification settings from YAML/JSON files and FPRINT_VERIFY_*
environment variables.
"""

from .settings import (
    VerifyConfig,
    ConfigError,
    ConfigFormat,
    load_config,
    read_config_file,
)

__all__ = [
    'VerifyConfig',
    'ConfigError',
    'ConfigFormat',
    'load_config',
    'read_config_file',
]
