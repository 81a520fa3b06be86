import random
import threading
import pytest

from gaswatch.core.models import FeeObservation, FeeLevels
from gaswatch.core.series import ChainSeries, FeeHistoryStore


def _obs(ts: int, base_fee: int = 10**9, priority_fee: int = 10**9, network: str = "ethereum") -> FeeObservation:
    return FeeObservation(network=network, timestamp_ms=ts, base_fee=base_fee, priority_fee=priority_fee, block_height=ts)


def test_shuffled_inserts_end_sorted_and_bounded():
    timestamps = list(range(0, 250_000, 1000))
    random.Random(7).shuffle(timestamps)
    series = ChainSeries("ethereum", capacity=100)

    for ts in timestamps:
        series.insert(_obs(ts))

    snap = [p.timestamp_ms for p in series.snapshot()]
    assert len(snap) == 100
    assert snap == sorted(timestamps)[-100:]


def test_length_is_number_inserted_below_capacity():
    series = ChainSeries("ethereum", capacity=100)
    for ts in (3000, 1000, 2000):
        series.insert(_obs(ts))
    assert [p.timestamp_ms for p in series.snapshot()] == [1000, 2000, 3000]
    assert len(series) == 3


def test_duplicate_timestamps_are_kept_in_arrival_order():
    series = ChainSeries("ethereum", capacity=10)
    series.insert(_obs(1000, base_fee=1))
    series.insert(_obs(1000, base_fee=2))
    assert [p.base_fee for p in series.snapshot()] == [1, 2]


def test_current_levels_follow_insertion_not_timestamp():
    series = ChainSeries("ethereum", capacity=10)
    series.insert(_obs(2000, base_fee=50, priority_fee=5))
    series.insert(_obs(1000, base_fee=70, priority_fee=7))  # late arrival

    assert series.snapshot()[-1].timestamp_ms == 2000
    assert series.current_levels() == FeeLevels(base_fee=70, priority_fee=7)


def test_current_levels_survive_eviction_of_the_late_point():
    series = ChainSeries("ethereum", capacity=2)
    series.insert(_obs(2000, base_fee=1))
    series.insert(_obs(3000, base_fee=2))
    series.insert(_obs(1000, base_fee=3))  # sorts first and is evicted at once

    assert [p.timestamp_ms for p in series.snapshot()] == [2000, 3000]
    assert series.current_levels().base_fee == 3


def test_empty_series_reports_zero_levels():
    assert ChainSeries("polygon").current_levels() == FeeLevels(base_fee=0, priority_fee=0)


def test_snapshot_is_immutable_copy():
    series = ChainSeries("ethereum", capacity=10)
    series.insert(_obs(1000))
    snap = series.snapshot()
    series.insert(_obs(2000))
    assert isinstance(snap, tuple)
    assert len(snap) == 1


def test_rejects_other_network_and_bad_capacity():
    series = ChainSeries("ethereum")
    with pytest.raises(ValueError):
        series.insert(_obs(1000, network="polygon"))
    with pytest.raises(ValueError):
        ChainSeries("ethereum", capacity=0)


def test_concurrent_inserts_keep_invariant():
    series = ChainSeries("ethereum", capacity=50)

    def worker(offset: int):
        for i in range(200):
            series.insert(_obs(offset + i * 7))

    threads = [threading.Thread(target=worker, args=(k,)) for k in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    snap = [p.timestamp_ms for p in series.snapshot()]
    assert len(snap) == 50
    assert snap == sorted(snap)


def test_store_routes_by_network():
    store = FeeHistoryStore(["ethereum", "arbitrum"], capacity=5)
    store.insert(_obs(1000, base_fee=11, network="arbitrum"))

    assert store.snapshot("ethereum") == ()
    assert store.current_levels("arbitrum").base_fee == 11
    with pytest.raises(KeyError):
        store.insert(_obs(1000, network="polygon"))
