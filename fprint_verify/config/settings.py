"""
Verification Settings - Load and validate fprint-verify configuration.

Values are resolved in this order (later wins):
    defaults -> config file (YAML or JSON) -> FPRINT_VERIFY_* environment -> explicit overrides

Example config file (YAML):

    device_path: /net/reactivated/Fprint/Device/0
    username: alice
    finger: any
    max_attempts: 3
    verify_timeout: 30
    audit_log: /var/log/fprint-verify/audit.log
"""

import json
import logging
from dataclasses import dataclass, fields, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..constants import Fprintd, Retries, Timeouts, _env_override

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration is missing, unreadable or invalid"""
    pass


class ConfigFormat(Enum):
    """Supported configuration file formats."""
    JSON = "json"
    YAML = "yaml"
    AUTO = "auto"  # Detect from file extension


@dataclass
class VerifyConfig:
    """Settings for one verification run"""
    device_path: str = Fprintd.DEFAULT_DEVICE_PATH
    username: str = ""
    finger: str = Fprintd.ANY_FINGER
    max_attempts: int = Retries.VERIFY_ATTEMPTS
    verify_timeout: Optional[float] = Timeouts.VERIFY_WAIT
    audit_log: Optional[str] = None
    log_file: Optional[str] = None
    verbose: bool = False
    json_logs: bool = False

    def validate(self) -> 'VerifyConfig':
        """
        Check value types and ranges.

        Raises:
            ConfigError: If any value has the wrong type or is out of range
        """
        for name in ('device_path', 'username', 'finger'):
            if not isinstance(getattr(self, name), str):
                raise ConfigError(f"{name} must be a string, got {getattr(self, name)!r}")
        for name in ('audit_log', 'log_file'):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{name} must be a file path, got {value!r}")
        for name in ('verbose', 'json_logs'):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ConfigError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < Retries.MIN_VERIFY_ATTEMPTS:
            raise ConfigError(f"max_attempts must be at least {Retries.MIN_VERIFY_ATTEMPTS}, got {self.max_attempts}")
        if self.verify_timeout is not None:
            try:
                self.verify_timeout = float(self.verify_timeout)
            except (TypeError, ValueError):
                raise ConfigError(f"verify_timeout must be a number of seconds, got {self.verify_timeout!r}")
            if self.verify_timeout <= 0:
                raise ConfigError(f"verify_timeout must be positive, got {self.verify_timeout}")
        if not self.device_path or not self.device_path.startswith('/'):
            raise ConfigError(f"device_path must be an absolute object path, got {self.device_path!r}")
        if not self.finger:
            raise ConfigError("finger must not be empty")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_FIELD_NAMES = {f.name for f in fields(VerifyConfig)}

# Environment variable suffix -> (field, converter)
_ENV_FIELDS = {
    'MAX_ATTEMPTS': ('max_attempts', int),
    'DEVICE': ('device_path', str),
    'USER': ('username', str),
    'FINGER': ('finger', str),
    'TIMEOUT': ('verify_timeout', float),
    'AUDIT_LOG': ('audit_log', str),
}


def _detect_format(filepath: Path) -> ConfigFormat:
    """Detect configuration format from file extension."""
    if filepath.suffix.lower() == '.json':
        return ConfigFormat.JSON
    return ConfigFormat.YAML


def read_config_file(filepath: Union[str, Path],
                     format: ConfigFormat = ConfigFormat.AUTO) -> Dict[str, Any]:
    """
    Parse a configuration file into a dictionary.

    Raises:
        ConfigError: If the file is missing, unparsable or not a mapping
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise ConfigError(f"Config file not found: {filepath}")

    if format == ConfigFormat.AUTO:
        format = _detect_format(filepath)

    try:
        content = filepath.read_text()
        if format == ConfigFormat.JSON:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {filepath}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {filepath} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(config_file: Optional[Union[str, Path]] = None,
                overrides: Optional[Dict[str, Any]] = None) -> VerifyConfig:
    """
    Build a validated VerifyConfig.

    Args:
        config_file: Optional YAML/JSON file
        overrides: Explicit values (e.g. from CLI flags); None values are skipped

    Returns:
        Validated configuration
    """
    values: Dict[str, Any] = VerifyConfig().to_dict()

    if config_file:
        for key, value in read_config_file(config_file).items():
            if key not in _FIELD_NAMES:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            values[key] = value
        logger.debug(f"Loaded config from {config_file}")

    for env_name, (field_name, converter) in _ENV_FIELDS.items():
        values[field_name] = _env_override(env_name, values[field_name], converter)

    for key, value in (overrides or {}).items():
        if key not in _FIELD_NAMES:
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    return VerifyConfig(**values).validate()
