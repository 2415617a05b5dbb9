"""
Promotion watchdog - periodic auto-promotion sweep on a daemon thread.
Catches jobs whose completion callback never ran (crash, restart).
"""
import logging
import threading
from typing import Optional

from ..config import get_config
from ..models.versions import PromotionResult
from .engine import PromotionEngine


logger = logging.getLogger(__name__)


class PromotionWatchdog:
    """Runs engine.sweep() every interval_seconds until stopped."""

    def __init__(self, engine: PromotionEngine, interval_seconds: Optional[float] = None):
        self.engine = engine
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None
            else get_config().promotion.watchdog_interval_seconds
        )
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="promotion-watchdog", daemon=True)
        self._thread.start()
        logger.info(f"Promotion watchdog started (every {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Promotion watchdog stopped")

    def run_once(self) -> list[PromotionResult]:
        """One sweep; errors are logged so the loop survives them."""
        try:
            return self.engine.sweep()
        except Exception as e:
            logger.error(f"Promotion sweep failed: {e}")
            return []

    def _run(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval_seconds)
