"""
History store for route price samples.

Loads and persists one RouteHistory per route through a storage backend.
Appends prune samples outside the retention window and refresh the
route's statistics before the record is written back. Appends and erases
on the same route are serialized with a per-route lock, which is dropped
again once no thread holds or waits for it.
"""

import json
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .config import get_config
from .deal_detector import assess_deal
from .errors import StorageError
from .price_stats import compute_statistics, samples_since
from .price_storage import HistoryStorageBackend, get_history_storage, storage_key
from .schema import DealAssessment, PriceSample, RouteHistory
from .types import DEFAULT_PRICE_DROP_THRESHOLD, LONG_WINDOW_DAYS, RETENTION_DAYS
from .utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Append-only price history per route.

    Example:
        >>> store = HistoryStore(MemoryHistoryStorage())
        >>> store.append("DUS-WAW", "DUS", "WAW", "flexible", sample)
        >>> store.query("DUS-WAW", window_days=7)
    """

    def __init__(
        self,
        storage: Optional[HistoryStorageBackend] = None,
        retention_days: int = RETENTION_DAYS,
        default_window_days: int = LONG_WINDOW_DAYS,
    ):
        """
        Initialize the store.

        Args:
            storage: Storage backend (default: global backend from config)
            retention_days: Samples older than this are pruned on append
            default_window_days: Window used by query() when none is given
        """
        self.storage = storage if storage is not None else get_history_storage()
        self.retention_days = retention_days
        self.default_window_days = default_window_days
        # storage key -> [lock, number of threads holding or waiting for it]
        self._locks: Dict[str, List[Any]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _route_lock(self, route_id: str) -> Iterator[None]:
        key = storage_key(route_id)
        with self._locks_guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    # ========================================================================
    # Reading
    # ========================================================================

    def load(self, route_id: str) -> RouteHistory:
        """
        Load a route's history.

        Returns an empty history when nothing is stored. Never writes.

        Raises:
            StorageError: If the backend fails or the stored record is corrupt
        """
        key = storage_key(route_id)
        raw = self.storage.read(key)
        if raw is None:
            return RouteHistory(route_id=route_id)

        try:
            history = RouteHistory.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as e:
            raise StorageError(f"Corrupt price history for {route_id}: {e}", key=key) from e

        if not history.route_id:
            history.route_id = route_id
        return history

    def query(
        self,
        route_id: str,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[RouteHistory]:
        """
        Get a route's history restricted to a trailing window.

        Args:
            route_id: Route identifier
            window_days: Trailing window in days (default: default_window_days)
            now: Reference instant (default: current UTC time)

        Returns:
            History whose samples fall inside the window, with the stored
            (unfiltered) statistics. None if the route has no samples.
        """
        history = self.load(route_id)
        if not history.samples:
            return None

        days = window_days if window_days is not None else self.default_window_days
        history.samples = samples_since(history.samples, now or utc_now(), days)
        return history

    # ========================================================================
    # Writing
    # ========================================================================

    def append(
        self,
        route_id: str,
        origin: str,
        destination: str,
        date_range_description: str,
        sample: Union[PriceSample, Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> RouteHistory:
        """
        Record a price check for a route.

        Args:
            route_id: Route identifier
            origin: Origin, stored with the first sample
            destination: Destination, stored with the first sample
            date_range_description: Dates being watched, stored with the first sample
            sample: The new sample
            now: Append time used for pruning and statistics (default: current UTC time)

        Returns:
            The updated history

        Raises:
            InvalidInputError: If the sample is malformed
            StorageError: If the backend fails
        """
        if not isinstance(sample, PriceSample):
            sample = PriceSample.from_dict(sample)
        now = ensure_utc(now) if now is not None else utc_now()

        with self._route_lock(route_id):
            history = self.load(route_id)
            self._add_sample(route_id, history, origin, destination, date_range_description, sample, now)
        return history

    def record_check(
        self,
        route_id: str,
        origin: str,
        destination: str,
        date_range_description: str,
        sample: Union[PriceSample, Dict[str, Any]],
        threshold_percent: float = DEFAULT_PRICE_DROP_THRESHOLD,
        now: Optional[datetime] = None,
    ) -> Tuple[RouteHistory, DealAssessment]:
        """
        Assess a monitored check against the route's history, then record it.

        The statistics are recomputed at `now` from the samples stored before
        this one, so a price is never compared with itself. Assessment and
        append happen under the route lock, so of two concurrent checks the
        later one is assessed with the earlier one's sample.

        Args:
            route_id: Route identifier
            origin: Origin, stored with the first sample
            destination: Destination, stored with the first sample
            date_range_description: Dates being watched, stored with the first sample
            sample: The new sample
            threshold_percent: Drop below the 7-day average that counts as a deal
            now: Check time (default: current UTC time)

        Returns:
            Tuple of (updated history, deal assessment)

        Raises:
            InvalidInputError: If the sample is malformed
            StorageError: If the backend fails
        """
        if not isinstance(sample, PriceSample):
            sample = PriceSample.from_dict(sample)
        now = ensure_utc(now) if now is not None else utc_now()

        with self._route_lock(route_id):
            history = self.load(route_id)
            stats = compute_statistics(history.samples, now) if history.samples else None
            assessment = assess_deal(sample.best_price, stats, threshold_percent)
            self._add_sample(route_id, history, origin, destination, date_range_description, sample, now)
        return history, assessment

    def _add_sample(
        self,
        route_id: str,
        history: RouteHistory,
        origin: str,
        destination: str,
        date_range_description: str,
        sample: PriceSample,
        now: datetime,
    ) -> None:
        # Caller holds the route lock
        if not history.samples:
            history.origin = origin
            history.destination = destination
            history.date_range_description = date_range_description

        history.samples.append(sample)
        history.samples.sort(key=lambda s: s.check_timestamp)

        cutoff = now - timedelta(days=self.retention_days)
        kept = [s for s in history.samples if s.check_timestamp >= cutoff]
        pruned = len(history.samples) - len(kept)
        history.samples = kept
        history.stats = compute_statistics(kept, now)

        self._persist(route_id, history)

        logger.info(
            f"Recorded price check for {route_id}: "
            f"{len(history.samples)} samples, {pruned} pruned"
        )

    def erase(self, route_id: str) -> None:
        """Delete a route's history. Erasing a missing route is a no-op."""
        with self._route_lock(route_id):
            self.storage.delete(storage_key(route_id))
        logger.info(f"Erased price history for {route_id}")

    def route_ids(self):
        """Storage keys of all routes with a stored history."""
        return self.storage.keys()

    def _persist(self, route_id: str, history: RouteHistory) -> None:
        data = json.dumps(history.to_dict(), indent=2).encode("utf-8")
        self.storage.write(storage_key(route_id), data)


# ============================================================================
# Global Store Instance
# ============================================================================

_store: Optional[HistoryStore] = None
_store_lock = threading.Lock()


def get_history_store(**kwargs) -> HistoryStore:
    """
    Get the global history store instance.

    Args:
        **kwargs: Arguments for HistoryStore (only used on first call)

    Returns:
        HistoryStore instance
    """
    global _store

    with _store_lock:
        if _store is None:
            config = get_config()
            kwargs.setdefault("retention_days", config.retention_days)
            kwargs.setdefault("default_window_days", config.default_window_days)
            _store = HistoryStore(**kwargs)
        return _store


def reset_history_store():
    """Reset the global store instance (for testing)."""
    global _store
    with _store_lock:
        _store = None


__all__ = [
    "HistoryStore",
    "get_history_store",
    "reset_history_store",
]
