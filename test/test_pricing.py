import math
import pytest

from gaswatch.core.config import DEFAULT_POOL, WETH_ADDRESS
from gaswatch.core.errors import PriceOutOfRange
from gaswatch.core.pricing import Q192, derive_price, resolve_orientation, sqrt_price_to_price, validate_price

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
OTHER_POOL = "0x8ad599c3A0ff1De082011EFDDc58f1908eb6e6D8"


def sqrt_for_base_token0(price: int, decimal_diff: int = 12) -> int:
    return math.isqrt(price * Q192 // 10**decimal_diff)


def sqrt_for_base_token1(price: int, decimal_diff: int = 12) -> int:
    return math.isqrt(Q192 * 10**decimal_diff // price)


def test_base_token0_price_is_exact():
    price = sqrt_price_to_price(sqrt_for_base_token0(3000), True, 12)
    assert price == pytest.approx(3000, rel=1e-6)


def test_base_token1_price_is_exact():
    price = sqrt_price_to_price(sqrt_for_base_token1(3000), False, 12)
    assert price == pytest.approx(3000, rel=1e-6)


def test_large_sqrt_price_does_not_lose_precision():
    # Q**2 is far beyond 2**53; doing the square in floats would drift
    q = sqrt_for_base_token1(1234)
    assert q * q > 2**200
    assert sqrt_price_to_price(q, False, 12) == pytest.approx(1234, rel=1e-12)


def test_out_of_range_price_uses_fallback():
    price, used_fallback = derive_price(sqrt_for_base_token0(50), True, 12, 500, 20000, 3700)
    assert (price, used_fallback) == (3700, True)


def test_non_positive_sqrt_price_is_rejected():
    with pytest.raises(PriceOutOfRange):
        sqrt_price_to_price(0, True, 12)
    assert derive_price(-5, False, 12, 500, 20000, 3700) == (3700, True)


def test_fallback_constant_is_configurable():
    assert derive_price(0, True, 12, 500, 20000, 1234.5) == (1234.5, True)


def test_in_range_price_passes_through():
    price, used_fallback = derive_price(sqrt_for_base_token1(2500), False, 12, 500, 20000, 3700)
    assert price == pytest.approx(2500, rel=1e-6)
    assert used_fallback is False


def test_validate_price_rejects_non_finite():
    for bad in (math.inf, -math.inf, math.nan):
        with pytest.raises(PriceOutOfRange):
            validate_price(bad, 500, 20000)


def test_orientation_from_token0_comparison_is_case_insensitive():
    assert resolve_orientation(WETH_ADDRESS.lower(), WETH_ADDRESS, OTHER_POOL, DEFAULT_POOL) is True
    assert resolve_orientation(USDC, WETH_ADDRESS, OTHER_POOL, DEFAULT_POOL) is False


def test_default_pool_overrides_contradicting_advertised_orientation():
    assert resolve_orientation(USDC, WETH_ADDRESS, DEFAULT_POOL.lower(), DEFAULT_POOL, True) is False


def test_advertised_orientation_kept_for_other_pools():
    assert resolve_orientation(USDC, WETH_ADDRESS, OTHER_POOL, DEFAULT_POOL, True) is True
