# /gaswatch/core/pricing.py
# Uniswap V3 sqrtPriceX96 -> quote-per-base price.

import math

from gaswatch.core.errors import PriceOutOfRange
from gaswatch.core.logger import get_logger, PRICE_FALLBACKS

log = get_logger(__name__)

Q192 = 1 << 192  # (2**96) ** 2


def sqrt_price_to_price(sqrt_price_x96: int, base_is_token0: bool, decimal_diff: int) -> float:
    """
    Exact conversion of a Q64.96 square-root price.

    Squaring, the 2**192 scale and the decimal factor stay in Python ints; the only
    float operation is the final true division, which Python rounds correctly for
    arbitrarily large operands.

    base is token0:  price = Q**2 * 10**D / 2**192
    base is token1:  price = 2**192 * 10**D / Q**2
    """
    if sqrt_price_x96 <= 0:
        raise PriceOutOfRange(float(sqrt_price_x96), "non-positive sqrtPriceX96")
    squared = sqrt_price_x96 * sqrt_price_x96
    scale = 10**decimal_diff
    try:
        if base_is_token0:
            return (squared * scale) / Q192
        return (Q192 * scale) / squared
    except OverflowError:
        return math.inf


def validate_price(price: float, min_price: float, max_price: float) -> float:
    if not math.isfinite(price):
        raise PriceOutOfRange(price, "non-finite price")
    if price < min_price or price > max_price:
        raise PriceOutOfRange(price, f"price outside [{min_price}, {max_price}]")
    return price


def derive_price(
    sqrt_price_x96: int,
    base_is_token0: bool,
    decimal_diff: int,
    min_price: float,
    max_price: float,
    fallback_price: float,
) -> tuple[float, bool]:
    """Returns (price, used_fallback). Rejections never escape this function."""
    try:
        price = sqrt_price_to_price(sqrt_price_x96, base_is_token0, decimal_diff)
        return validate_price(price, min_price, max_price), False
    except PriceOutOfRange as e:
        PRICE_FALLBACKS.inc()
        log.error(
            "PRICE_OUT_OF_RANGE_USING_FALLBACK",
            reason=e.reason,
            price=e.price,
            sqrt_price_x96=str(sqrt_price_x96),
            base_is_token0=base_is_token0,
            fallback=fallback_price,
        )
        return fallback_price, True


def resolve_orientation(
    token0_address: str,
    base_token_address: str,
    pool_address: str,
    default_pool_address: str,
    advertised_base_is_token0: bool | None = None,
) -> bool:
    """
    True when the pool's token0 is the base asset.

    The address comparison is authoritative for the default tracked pool when the
    advertised orientation contradicts it; for any other pool an explicit
    advertised orientation is taken as given.
    """
    compared = token0_address.lower() == base_token_address.lower()
    if advertised_base_is_token0 is None:
        return compared
    if advertised_base_is_token0 != compared and pool_address.lower() == default_pool_address.lower():
        log.warning(
            "POOL_ORIENTATION_OVERRIDDEN",
            pool=pool_address,
            advertised_base_is_token0=advertised_base_is_token0,
            base_is_token0=compared,
        )
        return compared
    return advertised_base_is_token0
