"""Settings read from the environment; CLI options take precedence."""

import os
from dataclasses import dataclass, field
from pathlib import Path

_DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    known_roots: tuple[Path, ...] = field(default_factory=tuple)
    log_level: str = _DEFAULT_LOG_LEVEL


def get_settings() -> Settings:
    raw_roots = os.getenv("CODE_COUPLET_KNOWN_ROOTS", "")
    return Settings(
        known_roots=tuple(Path(p) for p in raw_roots.split(os.pathsep) if p),
        log_level=os.getenv("CODE_COUPLET_LOG_LEVEL", _DEFAULT_LOG_LEVEL).upper(),
    )
