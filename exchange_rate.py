"""
Exchange Rate Poller
====================
Keeps the latest EUR/USD rate fresh in a background thread. A failed poll is
logged and the previous rate stays in place.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

import requests

from config import ExchangeRateConfig as Config
from data_fetcher import CoinGeckoFetcher, ExchangeRateError

log = logging.getLogger(__name__)


class ExchangeRatePoller:
    """Poll `fetch` once immediately, then every `interval` seconds."""

    def __init__(self,
                 fetch: Callable[[], float] = CoinGeckoFetcher.fetch_eur_usd_rate,
                 interval: float = Config.POLL_INTERVAL):
        self._fetch = fetch
        self.interval = interval
        self.rate: Optional[float] = None
        self.last_updated: Optional[datetime] = None
        self.failures = 0

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> Optional[float]:
        """Fetch a new rate, keep the old one on failure. Returns the current rate."""
        try:
            rate = self._fetch()
        except (requests.RequestException, ExchangeRateError) as e:
            self.failures += 1
            log.warning(f"[RATE] Error fetching EUR/USD rate, keeping {self.rate}: {e}")
            return self.rate

        self.rate = rate
        self.last_updated = datetime.now(timezone.utc)
        log.info(f"[RATE] EUR/USD = {rate:.6f}")
        return self.rate

    def _run(self) -> None:
        self.poll_once()
        while not self._stop.wait(self.interval):
            self.poll_once()

    def start(self) -> "ExchangeRatePoller":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="eur-usd-poller", daemon=True)
        self._thread.start()
        log.info(f"[RATE] Polling every {self.interval}s")
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> "ExchangeRatePoller":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
