"""
Platform configuration.

A configuration comes either from a JSON file passed with ``--config`` or from
``ROLLCALL_*`` environment variables. Only ``owner`` is required.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .core.enums import StoreType
from .core.exceptions import ConfigurationError

ENV_PREFIX = "ROLLCALL_"

_NUMERIC_FIELDS = {
    "max_batch_size": int,
    "max_instructors": int,
    "lock_timeout": float,
    "rest_port": int,
}


@dataclass(frozen=True)
class RollcallConfig:
    owner: str
    store_type: str = StoreType.MEMORY.value
    database_path: str = "rollcall.db"
    max_batch_size: int = 256
    max_instructors: int = 64
    lock_timeout: float = 5.0
    log_level: str = "INFO"
    log_file: Optional[str] = None
    rest_host: str = "0.0.0.0"
    rest_port: int = 8000

    def __post_init__(self):
        if not self.owner:
            raise ConfigurationError("owner identity must be configured")
        try:
            StoreType(self.store_type)
        except ValueError:
            raise ConfigurationError(f"Unsupported store type: {self.store_type}")
        for name in ("max_batch_size", "max_instructors"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1")
        if self.lock_timeout <= 0:
            raise ConfigurationError("lock_timeout must be positive")
        if not 0 < self.rest_port < 65536:
            raise ConfigurationError(f"Invalid REST port: {self.rest_port}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RollcallConfig":
        known = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        if "owner" not in data:
            raise ConfigurationError("owner identity must be configured")

        values: Dict[str, Any] = {}
        for key, value in data.items():
            values[key] = _coerce(key, value)
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RollcallConfig":
        environ = os.environ if environ is None else environ
        data = {}
        for f in fields(cls):
            value = environ.get(ENV_PREFIX + f.name.upper())
            if value is not None:
                data[f.name] = value
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str) -> "RollcallConfig":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    target = _NUMERIC_FIELDS.get(key, str)
    if target is str:
        return str(value)
    try:
        return target(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
