from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

from .timeutil import DEFAULT_OFFSET, is_valid_offset

DEFAULT_COLOR = "#3174ad"
OFFSET_ENV_VAR = "RESERVATION_DEFAULT_OFFSET"


@dataclass(frozen=True)
class EngineConfig:
    default_offset: str = DEFAULT_OFFSET

    def __post_init__(self) -> None:
        if not is_valid_offset(self.default_offset):
            raise ValueError(f"default_offset must look like +HH:MM or -HH:MM, got {self.default_offset!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        """Build a config from ``RESERVATION_DEFAULT_OFFSET``, falling back to +09:00."""
        env = os.environ if environ is None else environ
        raw = env.get(OFFSET_ENV_VAR, "").strip()
        return cls(default_offset=raw or DEFAULT_OFFSET)


def resolve_config(config: EngineConfig | None) -> EngineConfig:
    return config if config is not None else EngineConfig()
