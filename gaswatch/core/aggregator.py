# /gaswatch/core/aggregator.py
from typing import List, Sequence

from gaswatch.core.models import GWEI, FeeObservation, OHLCBar

DEFAULT_INTERVAL_MS = 15 * 60 * 1000


def bucket_key(timestamp_ms: int, interval_ms: int) -> int:
    return (timestamp_ms // interval_ms) * interval_ms


def _bar(key: int, points: List[FeeObservation]) -> OHLCBar:
    fees = [p.total_fee / GWEI for p in points]
    return OHLCBar(
        window_start=key / 1000,
        open=fees[0],
        high=max(fees),
        low=min(fees),
        close=fees[-1],
    )


def aggregate(series: Sequence[FeeObservation], interval_ms: int = DEFAULT_INTERVAL_MS) -> List[OHLCBar]:
    """
    Groups an ascending fee series into OHLC bars (gwei).

    Points are consumed in the given order; a bar closes as soon as a point with a
    different bucket key shows up, so the input must already be sorted (ChainSeries
    snapshots are). Nothing is kept between calls.
    """
    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")
    bars: List[OHLCBar] = []
    current_key = None
    bucket: List[FeeObservation] = []
    for point in series:
        key = bucket_key(point.timestamp_ms, interval_ms)
        if key != current_key and bucket:
            bars.append(_bar(current_key, bucket))
            bucket = []
        current_key = key
        bucket.append(point)
    if bucket:
        bars.append(_bar(current_key, bucket))
    return bars
