# /gaswatch/core/simulator.py
# Transaction cost estimates across networks, in the oracle's quote currency.

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Sequence

from gaswatch.core.models import CostComparison, SimulationResult
from gaswatch.core.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class NetworkQuote:
    """Inputs for one network in a comparison."""
    network: str
    gas_limit: int
    base_fee: int
    priority_fee: int
    native_decimals: int = 18


def parse_amount(amount) -> float:
    """Non-negative decimal amount; anything unparsable, negative or non-finite is 0."""
    if isinstance(amount, bool):
        return 0.0
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return 0.0
    if not value.is_finite() or value < 0:
        return 0.0
    return float(value)


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _as_float(value) -> float | None:
    """float(value), or None when it is not a finite number a float can hold."""
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError, InvalidOperation):
        return None
    return result if math.isfinite(result) else None


def simulate(
    network: str,
    gas_limit: int,
    base_fee: int,
    priority_fee: int,
    amount,
    quote_price: float,
    native_decimals: int = 18,
) -> SimulationResult:
    price = _as_float(quote_price)
    if price is None:
        log.warning("SIMULATION_NON_FINITE_PRICE", network=network, quote_price=str(quote_price))
        price = 0.0

    try:
        gas_cost_base = _as_float((base_fee + priority_fee) * gas_limit)
    except TypeError:
        gas_cost_base = None
    if gas_cost_base is None:
        log.warning("SIMULATION_GAS_COST_UNUSABLE", network=network, gas_limit=gas_limit)
        gas_cost_base = 0.0
    gas_cost_native = _finite(gas_cost_base / 10**native_decimals)
    gas_cost_quote = _finite(gas_cost_native * price)
    transfer_value_quote = _finite(parse_amount(amount) * price)
    total_cost_quote = _finite(transfer_value_quote + gas_cost_quote)

    return SimulationResult(
        network=network,
        gas_limit=gas_limit,
        gas_cost_base=gas_cost_base,
        gas_cost_native=gas_cost_native,
        gas_cost_quote=gas_cost_quote,
        transfer_value_quote=transfer_value_quote,
        total_cost_quote=total_cost_quote,
    )


def compare(quotes: Sequence[NetworkQuote], amount, quote_price: float) -> CostComparison:
    """Simulates every network in order and marks the cheapest (first one wins ties)."""
    results = [
        simulate(q.network, q.gas_limit, q.base_fee, q.priority_fee, amount, quote_price, q.native_decimals)
        for q in quotes
    ]
    cheapest = None
    for result in results:
        if cheapest is None or result.total_cost_quote < cheapest.total_cost_quote:
            cheapest = result
    log.debug("SIMULATION_COMPARED", networks=[r.network for r in results], cheapest=cheapest.network if cheapest else None)
    return CostComparison(results=results, cheapest=cheapest)
