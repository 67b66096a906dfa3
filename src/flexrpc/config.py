from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Self
import os

import yaml

from .protocol import DEFAULT_PATH

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class ConfigError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{name}: expected a boolean, got {value!r}")


@dataclass
class RpcConfig:
    """Server-side settings for one registered service."""
    path: str = DEFAULT_PATH
    # Reject calls whose arguments fail to decode instead of substituting zero values.
    strict_args: bool = False
    log_tracebacks: bool = True

    def __post_init__(self):
        if not isinstance(self.path, str) or not self.path.startswith("/"):
            raise ConfigError(f"path must start with '/', got {self.path!r}")
        self.strict_args = _as_bool("strict_args", self.strict_args)
        self.log_tracebacks = _as_bool("log_tracebacks", self.log_tracebacks)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str) -> Self:
        """Load an `RpcConfig` from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at top level")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, prefix: str = "FLEXRPC_", environ: Optional[Mapping[str, str]] = None) -> Self:
        """
        Build a config from environment variables, e.g. FLEXRPC_PATH,
        FLEXRPC_STRICT_ARGS, FLEXRPC_LOG_TRACEBACKS. Unset keys keep their
        defaults.
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for f in fields(cls):
            key = prefix + f.name.upper()
            if key in environ:
                data[f.name] = environ[key]
        return cls.from_dict(data)
