"""dbrelay configuration defaults and file loading."""
from __future__ import annotations

import shlex
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError

PROTOCOL_VERSION: str = "0.3"
VERSION_HEADER = "X-DBRelay-Version"
CHECKSUM_HEADER = "X-DBRelay-Checksum"

DEFAULT_CHUNKSIZE: int = 1000
DEFAULT_MIN_CHUNKSIZE: int = 1
DEFAULT_MAX_CHUNKSIZE: int = 100_000
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_SCHEMA_TOOL = "schema"
LOG_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class TransferConfig:
    """Settings for one ``send`` or ``receive`` run."""

    database_url: str
    remote_url: str
    chunksize: int = DEFAULT_CHUNKSIZE
    timeout: Optional[float] = DEFAULT_TIMEOUT
    max_corrupt_retries: Optional[int] = None
    min_chunksize: int = DEFAULT_MIN_CHUNKSIZE
    max_chunksize: int = DEFAULT_MAX_CHUNKSIZE
    fast_seconds: float = 0.8
    slow_seconds: float = 1.1
    critical_seconds: float = 3.0
    schema_tool: str = DEFAULT_SCHEMA_TOOL
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ConfigurationError("Transfer configuration requires database_url")
        if not self.remote_url:
            raise ConfigurationError("Transfer configuration requires remote_url")
        if self.min_chunksize < 1:
            raise ConfigurationError("min_chunksize must be at least 1")
        if self.max_chunksize < self.min_chunksize:
            raise ConfigurationError("max_chunksize must not be smaller than min_chunksize")
        if not self.min_chunksize <= self.chunksize <= self.max_chunksize:
            raise ConfigurationError(
                f"chunksize must be between {self.min_chunksize} and {self.max_chunksize}"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.max_corrupt_retries is not None and self.max_corrupt_retries < 0:
            raise ConfigurationError("max_corrupt_retries must not be negative")
        if not 0 < self.fast_seconds <= self.slow_seconds <= self.critical_seconds:
            raise ConfigurationError(
                "latency thresholds must satisfy 0 < fast_seconds <= slow_seconds <= critical_seconds"
            )
        if not self.schema_command:
            raise ConfigurationError("schema_tool must name an executable")

    @property
    def schema_command(self) -> List[str]:
        return shlex.split(self.schema_tool)

    @property
    def auth(self) -> Optional[tuple[str, str]]:
        if self.username is None:
            return None
        return (self.username, self.password or "")


_FIELD_NAMES = {f.name for f in fields(TransferConfig)}
_INT_FIELDS = {"chunksize", "max_corrupt_retries", "min_chunksize", "max_chunksize"}
_FLOAT_FIELDS = {"timeout", "fast_seconds", "slow_seconds", "critical_seconds"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key in _INT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"Configuration value '{key}' must be an integer")
        return value
    if key in _FLOAT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"Configuration value '{key}' must be a number")
        return float(value)
    if not isinstance(value, str):
        raise ConfigurationError(f"Configuration value '{key}' must be a string")
    return value


def read_config_file(path: str | Path) -> Dict[str, Any]:
    """Read and type-check the settings stored in a YAML file.

    The file may be partial; missing keys are left for command line flags
    or defaults to fill in.
    """

    data = _load_yaml(Path(path))
    unknown = set(data) - _FIELD_NAMES
    if unknown:
        raise ConfigurationError("Unknown configuration keys: " + ", ".join(sorted(unknown)))
    return {key: _coerce(key, value) for key, value in data.items()}


def load_config(path: str | Path | None = None, **overrides: Any) -> TransferConfig:
    """Build a :class:`TransferConfig` from an optional file plus overrides."""

    settings: Dict[str, Any] = read_config_file(path) if path is not None else {}
    settings.update({key: value for key, value in overrides.items() if value is not None})
    missing = {"database_url", "remote_url"} - {k for k, v in settings.items() if v}
    if missing:
        raise ConfigurationError(
            "Transfer configuration missing fields: " + ", ".join(sorted(missing))
        )
    unknown = set(settings) - _FIELD_NAMES
    if unknown:
        raise ConfigurationError("Unknown configuration keys: " + ", ".join(sorted(unknown)))
    return TransferConfig(**settings)
