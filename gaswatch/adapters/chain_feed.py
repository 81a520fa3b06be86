# /gaswatch/adapters/chain_feed.py
import asyncio
from typing import Any, Callable, Mapping

from gaswatch.adapters.base import StreamWatcher, WatcherState, default_web3_factory
from gaswatch.core.config import NetworkConfig
from gaswatch.core.decorators import retriable_network_call
from gaswatch.core.errors import ConnectionSuperseded, FeedConnectionError, Ok, Recovered, TransientFetchError
from gaswatch.core.logger import get_logger, bind_watcher
from gaswatch.core.models import GWEI, FeeObservation, now_ms

log = get_logger(__name__)


def _as_int(value) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise TypeError("boolean is not a quantity")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    raise TypeError(f"unsupported quantity type {type(value).__name__}")


def estimate_priority_fee(base_fee: int) -> int:
    """Headers carry no tips; approximate them as 10% of base fee, floored at 1 gwei."""
    return max(base_fee // 10, GWEI)


class ChainFeedWatcher(StreamWatcher):
    """
    Streams new block headers from one network and turns each into a FeeObservation.
    """
    def __init__(
        self,
        network: NetworkConfig,
        channel: asyncio.Queue | None = None,
        web3_factory: Callable[[str], Any] = default_web3_factory,
        connect_timeout_s: float = 10.0,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(f"chain:{network.network}", channel, web3_factory, connect_timeout_s)
        self.network = network
        self.clock = clock

    def observation_from_header(self, header: Mapping) -> FeeObservation:
        try:
            base_fee = _as_int(header.get("baseFeePerGas"))
            height = _as_int(header["number"])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransientFetchError(f"unparsable block header: {e}") from e
        return FeeObservation(
            network=self.network.network,
            timestamp_ms=self.clock(),
            base_fee=base_fee,
            priority_fee=estimate_priority_fee(base_fee),
            block_height=height,
        )

    @retriable_network_call
    async def _fetch_latest_block(self, w3):
        return await w3.eth.get_block("latest")

    async def connect(self) -> None:
        if self.state in (WatcherState.CONNECTED, WatcherState.CONNECTING):
            log.debug("CHAIN_FEED_CONNECT_SKIPPED", network=self.network.network, state=self.state.value)
            return
        bind_watcher(self.source)
        generation = self._generation
        self.state = WatcherState.CONNECTING
        # a previous session may still be open if its stream died
        await self._teardown_session()
        self._check_live(generation)
        log.info("CHAIN_FEED_CONNECTING", network=self.network.network, url=self.network.rpc_url)

        w3 = self.web3_factory(self.network.rpc_url)
        try:
            await self._timed(w3.provider.connect())
            self._check_live(generation)
            block = await self._timed(self._fetch_latest_block(w3))
            self._check_live(generation)
            if block is None:
                raise TransientFetchError("latest block missing")
            seed = self.observation_from_header(block)
            subscription_id = await self._timed(w3.eth.subscribe("newHeads"))
            self._check_live(generation)
        except ConnectionSuperseded:
            await self._close_session(w3)
            raise
        except Exception as e:
            await self._close_session(w3)
            if generation == self._generation:
                self.state = WatcherState.DISCONNECTED
            log.error("CHAIN_FEED_CONNECT_FAILED", network=self.network.network, error=str(e))
            if isinstance(e, FeedConnectionError):
                raise
            raise FeedConnectionError(f"{self.source}: {e}") from e
        except BaseException:
            await self._close_session(w3)
            raise

        self._install(w3, subscription_id, self._listen(w3, generation))
        self.state = WatcherState.CONNECTED
        self._emit(seed)
        log.info("CHAIN_FEED_CONNECTED", network=self.network.network, block=seed.block_height)

    def _handle_message(self, message: Mapping):
        try:
            header = message["result"]
            return Ok(self.observation_from_header(header))
        except TransientFetchError as e:
            return Recovered(e)
        except (KeyError, TypeError) as e:
            return Recovered(TransientFetchError(f"malformed notification: {e}"))

    async def _listen(self, w3, generation: int) -> None:
        bind_watcher(self.source)
        try:
            async for message in w3.socket.process_subscriptions():
                outcome = self._handle_message(message)
                if isinstance(outcome, Ok):
                    self._emit(outcome.value)
                else:
                    self._recover(outcome.error, network=self.network.network)
            reason = "block notification stream ended"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = f"block notification stream failed: {e}"

        if generation != self._generation:
            return
        self.state = WatcherState.DISCONNECTED
        log.warning("CHAIN_FEED_STREAM_LOST", network=self.network.network, reason=reason)
        self._fatal(FeedConnectionError(f"{self.source}: {reason}"))

    async def disconnect(self) -> None:
        self._generation += 1
        await self._teardown_session()
        if self.state is not WatcherState.IDLE:
            self.state = WatcherState.DISCONNECTED
        log.info("CHAIN_FEED_DISCONNECTED", network=self.network.network)
