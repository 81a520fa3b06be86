import math
from decimal import Decimal
import pytest

from gaswatch.core.simulator import NetworkQuote, compare, parse_amount, simulate


def test_reference_transfer_cost():
    result = simulate("X", 21000, 30_000_000_000, 2_000_000_000, "0.5", 3000)

    assert result.gas_cost_base == pytest.approx(672e12)
    assert result.gas_cost_native == pytest.approx(0.000672)
    assert result.gas_cost_quote == pytest.approx(2.016)
    assert result.transfer_value_quote == pytest.approx(1500)
    assert result.total_cost_quote == pytest.approx(1502.016)


@pytest.mark.parametrize("amount", ["abc", "", "-1", None, "nan", "inf", "0.1.2"])
def test_bad_amount_counts_as_zero(amount):
    result = simulate("X", 21000, 30 * 10**9, 2 * 10**9, amount, 3000)
    assert result.transfer_value_quote == 0
    assert result.total_cost_quote == pytest.approx(2.016)


def test_parse_amount_accepts_numbers_and_strings():
    assert parse_amount(" 1.25 ") == 1.25
    assert parse_amount(2) == 2.0
    assert parse_amount(True) == 0.0


@pytest.mark.parametrize("price", [math.nan, math.inf, -math.inf])
def test_non_finite_price_degrades_to_zero(price):
    result = simulate("X", 21000, 30 * 10**9, 2 * 10**9, "0.5", price)
    assert result.gas_cost_quote == 0
    assert result.transfer_value_quote == 0
    assert result.total_cost_quote == 0
    assert result.gas_cost_native == pytest.approx(0.000672)


def test_compare_marks_cheapest_and_keeps_order():
    quotes = [
        NetworkQuote("ethereum", 21000, 30 * 10**9, 3 * 10**9),
        NetworkQuote("polygon", 21000, 100 * 10**9, 10 * 10**9),
        NetworkQuote("arbitrum", 21000, 10**7, 10**9),
    ]
    comparison = compare(quotes, "0.1", 3000)

    assert [r.network for r in comparison.results] == ["ethereum", "polygon", "arbitrum"]
    assert comparison.cheapest.network == "arbitrum"


def test_compare_ties_go_to_first_entry():
    quotes = [NetworkQuote("a", 21000, 10**9, 10**9), NetworkQuote("b", 21000, 10**9, 10**9)]
    assert compare(quotes, "1", 2000).cheapest.network == "a"


def test_compare_empty():
    comparison = compare([], "1", 2000)
    assert comparison.results == []
    assert comparison.cheapest is None


def test_native_decimals_scale():
    result = simulate("X", 10, 10**6, 0, "0", 1.0, native_decimals=6)
    assert result.gas_cost_native == pytest.approx(10.0)


def test_decimal_price_is_used():
    result = simulate("X", 21000, 30 * 10**9, 2 * 10**9, "0.5", Decimal("3000"))
    assert result.gas_cost_quote == pytest.approx(2.016)
    assert result.total_cost_quote == pytest.approx(1502.016)


def test_fee_too_large_for_float_degrades_to_zero():
    result = simulate("X", 21000, 10**400, 0, "0.5", 3000)
    assert result.gas_cost_base == 0
    assert result.gas_cost_quote == 0
    assert result.transfer_value_quote == pytest.approx(1500)
