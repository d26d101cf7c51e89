import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import yaml

from jsonparquet.codec.writer import DEFAULT_COMPRESSION, DEFAULT_ROW_GROUP_SIZE

_TRUE = {"1", "true", "yes", "on"}

# Environment variable -> settings field
ENV_OVERRIDES = {
    "JSONPARQUET_ROW_GROUP_SIZE": "row_group_size",
    "JSONPARQUET_PARALLELISM": "row_group_parallelism",
    "JSONPARQUET_STRICT": "strict",
    "JSONPARQUET_COMPRESSION": "compression",
}


@dataclass(frozen=True)
class CodecSettings:
    """
    Tunables shared by the CLI, the config executor and the HTTP service.
    """
    root_name: str = "root"
    strict: bool = False
    row_group_size: int = DEFAULT_ROW_GROUP_SIZE
    row_group_parallelism: int = 1
    compression: Optional[str] = DEFAULT_COMPRESSION

    def __post_init__(self):
        for name in ("row_group_size", "row_group_parallelism"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if not isinstance(self.strict, bool):
            raise ValueError(f"strict must be true or false, got {self.strict!r}")
        if not isinstance(self.root_name, str) or not self.root_name:
            raise ValueError(f"root_name must be a non-empty string, got {self.root_name!r}")
        if self.compression is not None and not isinstance(self.compression, str):
            raise ValueError(f"compression must be a string or null, got {self.compression!r}")

        if self.row_group_size < 1:
            raise ValueError(f"row_group_size must be positive, got {self.row_group_size}")
        if self.row_group_parallelism < 1:
            raise ValueError(f"row_group_parallelism must be positive, got {self.row_group_parallelism}")

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "CodecSettings":
        raw = raw or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"settings must be a mapping, got {type(raw).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return cls(**dict(raw))

    @classmethod
    def from_yaml(cls, path: str) -> "CodecSettings":
        if not os.path.exists(path):
            raise FileNotFoundError(f"Settings file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(yaml.safe_load(f))

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "CodecSettings":
        """
        Apply JSONPARQUET_* environment overrides on top of these settings.
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for env_name, field_name in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value is None:
                continue
            if field_name == "strict":
                overrides[field_name] = value.strip().lower() in _TRUE
            elif field_name == "compression":
                overrides[field_name] = value.strip() or None
            else:
                overrides[field_name] = int(value)
        return replace(self, **overrides)
