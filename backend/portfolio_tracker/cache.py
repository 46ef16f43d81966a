"""
In-memory cache for the aggregated portfolio

Holds the last fully enriched portfolio list so repeated reads within the
TTL do not hit the rate-limited Coinbase API. One slot, last writer wins,
nothing survives a restart.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from portfolio_tracker.constants import PORTFOLIO_CACHE_TTL
from portfolio_tracker.services.models import PortfolioItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedSnapshot:
    """Portfolio list plus the clock reading when it was fetched"""

    items: List[PortfolioItem]
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


class PortfolioCache:
    """
    Single-slot snapshot cache with TTL support

    Safe for asyncio use; ``clock`` is injectable so tests can move time.
    """

    def __init__(self, ttl_seconds: float = PORTFOLIO_CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: Optional[CachedSnapshot] = None
        self._lock = asyncio.Lock()

    async def get(self) -> Optional[CachedSnapshot]:
        """Return the snapshot if it is younger than the TTL"""
        async with self._lock:
            snapshot = self._snapshot
            if snapshot is None:
                return None

            age = snapshot.age(self._clock())
            if age >= self.ttl_seconds:
                logger.debug(f"Portfolio snapshot expired ({age:.1f}s old, ttl {self.ttl_seconds}s)")
                return None

            return snapshot

    async def set(self, items: List[PortfolioItem]) -> CachedSnapshot:
        """Replace the snapshot, stamped with the current clock reading"""
        snapshot = CachedSnapshot(items=items, fetched_at=self._clock())
        async with self._lock:
            self._snapshot = snapshot
        return snapshot

    async def clear(self):
        """Drop the snapshot"""
        async with self._lock:
            self._snapshot = None
