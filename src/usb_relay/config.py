"""Runtime settings resolved from command-line options and the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

DEFAULT_DIRECTORY = "/tmp"
DEFAULT_BACKOFF_S = 1.0
DEFAULT_POLL_INTERVAL_S = 0.2


def _parse_float(value: Any, default: float) -> float:
    """Parse a positive float or return a default when conversion fails."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def resolve_log_level(value: Optional[str], default: int = logging.WARNING) -> int:
    """Resolve log level from string or numeric value."""
    if not value:
        return default
    raw = value.strip()
    if raw.isdigit():
        return int(raw)
    level = getattr(logging, raw.upper(), None)
    return level if isinstance(level, int) else default


@dataclass
class Settings:
    directory: str = DEFAULT_DIRECTORY
    backoff_s: float = DEFAULT_BACKOFF_S
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    log_level: int = logging.WARNING
    use_syslog: bool = False
    daemon: bool = False
    relays: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> Settings:
        """Build defaults, honouring ``USB_RELAY_*`` and ``LOG_LEVEL`` overrides."""
        env = os.environ if environ is None else environ
        return cls(
            directory=env.get("USB_RELAY_DIR") or DEFAULT_DIRECTORY,
            backoff_s=_parse_float(env.get("USB_RELAY_BACKOFF"), DEFAULT_BACKOFF_S),
            poll_interval_s=_parse_float(
                env.get("USB_RELAY_POLL_INTERVAL"), DEFAULT_POLL_INTERVAL_S
            ),
            log_level=resolve_log_level(env.get("LOG_LEVEL")),
        )
