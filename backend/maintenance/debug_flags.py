"""
Debug configuration for development installs.

`DebugConfig` is immutable and built once at startup from the persisted
key/value state; routes read it from `request.app.state.debug_config`.
Toggling a flag persists the new mapping and swaps in a new instance.

Persisted format: one key per flag, `debug_<FLAG_NAME>` -> "true" | "false".
Any other value is ignored and the default applies.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional
import json
import logging


logger = logging.getLogger("studycore.maintenance")

KEY_PREFIX = "debug_"


@dataclass(frozen=True)
class DebugConfig:
    enable_test_data: bool = False
    verbose_db_logging: bool = False
    log_auth_events: bool = True
    use_test_database: bool = False

    @classmethod
    def flag_names(cls) -> tuple:
        return tuple(f.name for f in fields(cls))

    @staticmethod
    def storage_key(name: str) -> str:
        return f"{KEY_PREFIX}{name.upper()}"

    @classmethod
    def from_storage(cls, stored: Mapping[str, str]) -> "DebugConfig":
        values: Dict[str, bool] = {}
        for name in cls.flag_names():
            raw = stored.get(cls.storage_key(name))
            if raw == "true":
                values[name] = True
            elif raw == "false":
                values[name] = False
        return cls(**values)

    def to_storage(self) -> Dict[str, str]:
        return {self.storage_key(name): "true" if value else "false" for name, value in asdict(self).items()}

    def with_flag(self, name: str, value: bool) -> "DebugConfig":
        if name not in self.flag_names():
            raise ValueError("unknown_debug_flag")
        return replace(self, **{name: bool(value)})

    @classmethod
    def reset(cls) -> "DebugConfig":
        return cls()


class JsonFlagFile:
    """Trivial key/value persistence backed by a JSON object on disk."""

    def __init__(self, path: Optional[str]) -> None:
        self.path = Path(path) if path else None

    def read(self) -> Dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("debug flags unreadable: %s", exc.__class__.__name__)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str)}

    def write(self, values: Mapping[str, str]) -> None:
        if self.path is None:
            return
        merged = self.read()
        merged.update(values)
        self.path.write_text(json.dumps(merged, indent=2, sort_keys=True), encoding="utf-8")

    def clear(self) -> None:
        """Drop all debug keys (other keys in the file are kept)."""
        if self.path is None or not self.path.exists():
            return
        kept = {k: v for k, v in self.read().items() if not k.startswith(KEY_PREFIX)}
        self.path.write_text(json.dumps(kept, indent=2, sort_keys=True), encoding="utf-8")


def load_debug_config(store: JsonFlagFile) -> DebugConfig:
    config = DebugConfig.from_storage(store.read())
    logger.info("debug flags loaded: %s", ", ".join(f"{k}={v}" for k, v in asdict(config).items()))
    return config


__all__ = ["DebugConfig", "JsonFlagFile", "KEY_PREFIX", "load_debug_config"]
