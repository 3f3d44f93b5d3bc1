"""
Central configuration for the focus nudge engine.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765
    log_level: str = "INFO"

    # Decision cycle
    cycle_interval_s: float = 30.0           # periodic re-evaluation per session
    sample_horizon_s: float = 90.0           # attention samples older than this are pruned
    rolling_window_s: float = 60.0           # window used for the smoothed attention score

    # Cooldown / cap policy
    min_interval_ms: int = 120_000           # min time between two dispatched interventions
    critical_bypass: bool = True             # critical intensity ignores the cooldown
    max_interventions_per_session: int = 10

    # Reasoning service
    reasoning_timeout_s: float = 10.0
    reasoning_api_key: str = ""
    reasoning_model: str = "gemini-2.5-flash"
    reasoning_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Prompt bounds
    excerpt_max_chars: int = 500

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Config":
        cfg = cls()
        path = config_file or _CONFIG_FILE
        if path.exists():
            overrides = json.loads(path.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (NUDGE_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"NUDGE_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, _coerce(getattr(cfg, k), os.environ[env_key]))
        return cfg


def _coerce(default, raw: str):
    # bool("false") is True, so booleans need their own parsing
    if isinstance(default, bool):
        return raw.strip().lower() in _TRUE
    return type(default)(raw)


# Module-level singleton
config = Config.load()
