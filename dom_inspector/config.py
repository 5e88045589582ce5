from __future__ import annotations

import os
from dataclasses import dataclass


def _env_float(name: str, default: float, *, lo: float, hi: float) -> float:
    try:
        value = float(os.environ.get(name) or default)
    except ValueError:
        value = default
    return max(lo, min(value, hi))


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    try:
        value = int(os.environ.get(name) or default)
    except ValueError:
        value = default
    return max(lo, min(value, hi))


@dataclass
class InspectorConfig:
    cdp_port: int = 9222
    cdp_timeout: float = 5.0
    recompute_delay_ms: int = 10
    tooltip_margin: int = 10
    text_preview_chars: int = 50
    mark_attribute: str = ""
    poll_interval: float = 0.05
    session_timeout: float = 300.0

    @property
    def recompute_delay(self) -> float:
        return self.recompute_delay_ms / 1000.0

    @classmethod
    def from_env(cls) -> InspectorConfig:
        return cls(
            cdp_port=_env_int("INSPECTOR_CDP_PORT", 9222, lo=1, hi=65535),
            cdp_timeout=_env_float("INSPECTOR_CDP_TIMEOUT", 5.0, lo=0.5, hi=60.0),
            recompute_delay_ms=_env_int("INSPECTOR_RECOMPUTE_DELAY_MS", 10, lo=0, hi=1000),
            tooltip_margin=_env_int("INSPECTOR_TOOLTIP_MARGIN", 10, lo=0, hi=200),
            text_preview_chars=_env_int("INSPECTOR_TEXT_PREVIEW", 50, lo=1, hi=1000),
            mark_attribute=(os.environ.get("INSPECTOR_MARK_ATTRIBUTE") or "").strip(),
            poll_interval=_env_float("INSPECTOR_POLL_INTERVAL", 0.05, lo=0.01, hi=5.0),
            session_timeout=_env_float("INSPECTOR_SESSION_TIMEOUT", 300.0, lo=1.0, hi=86400.0),
        )
