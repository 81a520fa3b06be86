# /gaswatch/core/models.py
import time
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, computed_field

GWEI = 10**9


def now_ms() -> int:
    return int(time.time() * 1000)


class FeeObservation(BaseModel):
    """Fee levels seen on one block. Fees are integers in wei."""
    model_config = ConfigDict(frozen=True)

    network: str
    timestamp_ms: int
    base_fee: int
    priority_fee: int
    block_height: int

    @computed_field
    @property
    def total_fee(self) -> int:
        return self.base_fee + self.priority_fee


class PriceObservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float
    timestamp_ms: int
    source: str = ""
    fallback: bool = False


class FeeLevels(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_fee: int = 0
    priority_fee: int = 0


class OHLCBar(BaseModel):
    """One candlestick in gwei. window_start is in epoch seconds."""
    model_config = ConfigDict(frozen=True)

    window_start: float
    open: float
    high: float
    low: float
    close: float


class SimulationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    network: str
    gas_limit: int
    gas_cost_base: float
    gas_cost_native: float
    gas_cost_quote: float
    transfer_value_quote: float
    total_cost_quote: float


class CostComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    results: List[SimulationResult]
    cheapest: Optional[SimulationResult] = None
