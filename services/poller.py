"""Fixed-interval re-execution of device sweeps."""

from __future__ import annotations

import logging
from functools import lru_cache
from threading import Event, Thread
from typing import Optional

from models.errors import IntegrationError
from services.integration import IntegrationService, build_default_integration
from settings import get_settings

logger = logging.getLogger(__name__)


class Poller:
    """Runs ``service.run_once`` every ``interval`` seconds until stopped."""

    def __init__(self, service: IntegrationService, interval: float) -> None:
        self.service = service
        self.interval = interval
        self.sweeps = 0
        self._stop = Event()
        self._thread: Optional[Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Poll in a daemon thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = Thread(target=self.run, name="acoem-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run(self) -> None:
        """Poll in the calling thread until :meth:`stop` is called."""
        while not self._stop.is_set():
            self.sweep()
            self._stop.wait(self.interval)

    def sweep(self) -> None:
        self.sweeps += 1
        try:
            self.service.run_once()
        except IntegrationError as exc:
            logger.error("Sweep failed: %s", exc)
        except Exception:
            logger.exception("Sweep failed")


@lru_cache
def build_default_poller() -> Poller:
    settings = get_settings()
    return Poller(service=build_default_integration(), interval=settings.poll_interval)
