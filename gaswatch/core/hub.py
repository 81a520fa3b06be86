# /gaswatch/core/hub.py
# Single consumer for every watcher channel. Owns writes into the fee history and
# the latest price; everything downstream reads snapshots from here.

import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from gaswatch.core.aggregator import DEFAULT_INTERVAL_MS, aggregate
from gaswatch.core.config import NetworkConfig
from gaswatch.core.errors import Fatal
from gaswatch.core.logger import get_logger
from gaswatch.core.models import CostComparison, FeeObservation, OHLCBar, PriceObservation
from gaswatch.core.series import FeeHistoryStore
from gaswatch.core.simulator import NetworkQuote, compare

log = get_logger(__name__)

FeeCallback = Callable[[str, FeeObservation], None]
PriceCallback = Callable[[PriceObservation], None]
FatalCallback = Callable[[str, Exception], None]


class ObservationHub:
    """
    Drains watcher channels into the store.

    One drain task per channel keeps each network series single-writer. Callbacks
    are optional and there is at most one of each kind.
    """
    def __init__(
        self,
        networks: Iterable[NetworkConfig],
        capacity: int = 100,
        on_fee: Optional[FeeCallback] = None,
        on_price: Optional[PriceCallback] = None,
        on_fatal: Optional[FatalCallback] = None,
    ):
        self.networks: Dict[str, NetworkConfig] = {n.network: n for n in networks}
        self.store = FeeHistoryStore(self.networks, capacity)
        self.on_fee = on_fee
        self.on_price = on_price
        self.on_fatal = on_fatal
        self.latest_price: PriceObservation | None = None
        self.degraded: Dict[str, Exception] = {}
        self._tasks: List[asyncio.Task] = []

    def handle(self, item) -> None:
        if isinstance(item, FeeObservation):
            self.store.insert(item)
            self.degraded.pop(f"chain:{item.network}", None)
            if self.on_fee:
                self.on_fee(item.network, item)
        elif isinstance(item, PriceObservation):
            self.latest_price = item
            self.degraded.pop("oracle", None)
            if self.on_price:
                self.on_price(item)
        elif isinstance(item, Fatal):
            self.degraded[item.source] = item.error
            log.error("HUB_SOURCE_DEGRADED", source=item.source, error=str(item.error))
            if self.on_fatal:
                self.on_fatal(item.source, item.error)
        else:
            log.warning("HUB_UNKNOWN_ITEM", item_type=type(item).__name__)

    async def drain(self, channel: asyncio.Queue) -> None:
        while True:
            item = await channel.get()
            try:
                self.handle(item)
            except Exception as e:
                # a broken callback must not stop ingestion
                log.error("HUB_HANDLE_FAILED", error=str(e), exc_info=True)
            finally:
                channel.task_done()

    def attach(self, channel: asyncio.Queue) -> asyncio.Task:
        task = asyncio.create_task(self.drain(channel))
        self._tasks.append(task)
        return task

    async def close(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # --- read side ------------------------------------------------------------

    def candles(self, network: str, interval_ms: int = DEFAULT_INTERVAL_MS) -> List[OHLCBar]:
        return aggregate(self.store.snapshot(network), interval_ms)

    def quotes(self) -> List[NetworkQuote]:
        quotes = []
        for name, cfg in self.networks.items():
            levels = self.store.current_levels(name)
            quotes.append(NetworkQuote(name, cfg.gas_limit, levels.base_fee, levels.priority_fee, cfg.native_decimals))
        return quotes

    def compare_costs(self, amount, quote_price: float | None = None) -> CostComparison:
        if quote_price is None:
            quote_price = self.latest_price.price if self.latest_price else 0.0
        return compare(self.quotes(), amount, quote_price)
