from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from settings import Settings, get_settings


@dataclass(frozen=True)
class CLIConfig:
    settings: Settings
    base_url: str
    poll_interval: float


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
) -> CLIConfig:
    """Merge command line overrides over the environment settings."""
    settings = get_settings()
    url = base_url or settings.acoem_base_url
    if poll_interval is None or poll_interval <= 0:
        poll_interval = settings.poll_interval
    return CLIConfig(
        settings=settings,
        base_url=url.rstrip("/"),
        poll_interval=poll_interval,
    )
