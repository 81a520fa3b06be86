import pytest

from gaswatch.core.failover import backoff_delay_ms, backoff_schedule, endpoint_order, next_endpoint_index


def test_backoff_is_linear_and_capped_by_attempt_count():
    assert backoff_schedule(5000, 5) == [5000, 10000, 15000, 20000, 25000]
    assert backoff_schedule(5000, 0) == []


def test_backoff_attempts_start_at_one():
    with pytest.raises(ValueError):
        backoff_delay_ms(5000, 0)


def test_next_endpoint_index_wraps():
    assert next_endpoint_index(3, 0) == 1
    assert next_endpoint_index(3, 2) == 0
    with pytest.raises(ValueError):
        next_endpoint_index(0, 0)


def test_endpoint_order_visits_each_once_from_cursor():
    assert endpoint_order(3, 1) == [1, 2, 0]
    assert endpoint_order(1, 0) == [0]
    assert endpoint_order(0, 0) == []
