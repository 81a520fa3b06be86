# /gaswatch/core/series.py
import threading
from typing import Dict, Iterable, Tuple

from gaswatch.core.models import FeeLevels, FeeObservation
from gaswatch.core.logger import get_logger, OBSERVATIONS_INGESTED

log = get_logger(__name__)

DEFAULT_CAPACITY = 100


class ChainSeries:
    """
    Bounded, time-ordered fee history for a single network.

    Every insert re-sorts the whole window by timestamp and keeps only the newest
    `capacity` entries, so observations delivered slightly out of order still end
    up in place. Readers only ever get tuples copied under the lock.
    """
    def __init__(self, network: str, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.network = network
        self.capacity = capacity
        self._points: list[FeeObservation] = []
        self._last_inserted: FeeObservation | None = None
        self._lock = threading.Lock()

    def insert(self, observation: FeeObservation) -> None:
        if observation.network != self.network:
            raise ValueError(f"Observation for {observation.network} sent to {self.network} series")
        with self._lock:
            self._points.append(observation)
            # list.sort is stable: equal timestamps keep arrival order
            self._points.sort(key=lambda p: p.timestamp_ms)
            if len(self._points) > self.capacity:
                del self._points[: len(self._points) - self.capacity]
            self._last_inserted = observation
        OBSERVATIONS_INGESTED.labels(self.network).inc()

    def snapshot(self) -> Tuple[FeeObservation, ...]:
        with self._lock:
            return tuple(self._points)

    def current_levels(self) -> FeeLevels:
        """Levels of the most recently *inserted* observation, which after a late
        arrival is not necessarily the newest one by timestamp."""
        with self._lock:
            last = self._last_inserted
        if last is None:
            return FeeLevels()
        return FeeLevels(base_fee=last.base_fee, priority_fee=last.priority_fee)

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)


class FeeHistoryStore:
    """One ChainSeries per configured network. Networks never share a lock."""
    def __init__(self, networks: Iterable[str], capacity: int = DEFAULT_CAPACITY):
        self._series: Dict[str, ChainSeries] = {n: ChainSeries(n, capacity) for n in networks}
        log.info("FEE_HISTORY_STORE_INITIALIZED", networks=list(self._series), capacity=capacity)

    @property
    def networks(self) -> list[str]:
        return list(self._series)

    def series(self, network: str) -> ChainSeries:
        try:
            return self._series[network]
        except KeyError:
            raise KeyError(f"Network not tracked: {network}") from None

    def insert(self, observation: FeeObservation) -> None:
        self.series(observation.network).insert(observation)

    def snapshot(self, network: str) -> Tuple[FeeObservation, ...]:
        return self.series(network).snapshot()

    def current_levels(self, network: str) -> FeeLevels:
        return self.series(network).current_levels()
