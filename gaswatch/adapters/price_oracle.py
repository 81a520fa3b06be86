# /gaswatch/adapters/price_oracle.py
# Streams the base asset price from a Uniswap V3 pool's Swap events, with
# endpoint failover and linear-backoff reconnects.

import asyncio
from contextlib import suppress
from typing import Any, Callable, Mapping

from eth_abi import decode
from web3 import Web3
from websockets.exceptions import ConnectionClosed

from gaswatch.abis.uniswap_v3 import SWAP_DATA_TYPES, SWAP_TOPIC, UNISWAP_V3_POOL_ABI
from gaswatch.adapters.base import StreamWatcher, WatcherState, default_web3_factory
from gaswatch.core.config import DEFAULT_POOL, OracleConfig
from gaswatch.core.decorators import retriable_network_call
from gaswatch.core.errors import (
    ConnectionSuperseded,
    FeedConnectionError,
    Ok,
    Recovered,
    ReconnectExhausted,
    TransientFetchError,
)
from gaswatch.core.failover import backoff_schedule, endpoint_order, next_endpoint_index
from gaswatch.core.logger import get_logger, bind_watcher, PRICES_EMITTED, RECONNECT_ATTEMPTS
from gaswatch.core.models import PriceObservation, now_ms
from gaswatch.core.pricing import derive_price, resolve_orientation

log = get_logger(__name__)


def _log_data(raw) -> bytes:
    if isinstance(raw, str):
        return Web3.to_bytes(hexstr=raw)
    return bytes(raw)


class PriceOracleWatcher(StreamWatcher):
    def __init__(
        self,
        config: OracleConfig,
        channel: asyncio.Queue | None = None,
        web3_factory: Callable[[str], Any] = default_web3_factory,
        clock: Callable[[], int] = now_ms,
        default_pool: str = DEFAULT_POOL,
    ):
        if not config.rpc_endpoints:
            raise ValueError("Price oracle needs at least one RPC endpoint")
        super().__init__("oracle", channel, web3_factory, config.connect_timeout_s)
        self.config = config
        self.clock = clock
        self.default_pool = default_pool
        self.endpoints = list(config.rpc_endpoints)
        self.cursor = 0
        self.active_endpoint: str | None = None
        self.base_is_token0: bool | None = None
        self.reconnect_attempts = 0
        self.exhausted: ReconnectExhausted | None = None
        self.backoff_ms = backoff_schedule(config.reconnect_base_delay_ms, config.max_reconnect_attempts)
        self._pool = None
        self._reconnect_timer: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task | None = None

    @property
    def status(self) -> dict:
        return {
            **super().status,
            "endpoint": self.active_endpoint,
            "reconnect_attempts": self.reconnect_attempts,
            "exhausted": self.exhausted is not None,
        }

    # --- price derivation -------------------------------------------------

    def _observation(self, sqrt_price_x96: int, base_is_token0: bool, source: str) -> PriceObservation:
        cfg = self.config
        price, used_fallback = derive_price(
            sqrt_price_x96, base_is_token0, cfg.decimal_diff, cfg.min_price, cfg.max_price, cfg.fallback_price
        )
        return PriceObservation(price=price, timestamp_ms=self.clock(), source=source, fallback=used_fallback)

    def _fallback_observation(self) -> PriceObservation:
        return PriceObservation(
            price=self.config.fallback_price,
            timestamp_ms=self.clock(),
            source=self.active_endpoint or "",
            fallback=True,
        )

    def _emit_price(self, observation: PriceObservation) -> None:
        PRICES_EMITTED.inc()
        self._emit(observation)

    # --- connection lifecycle ---------------------------------------------

    async def connect(self) -> None:
        """External connect: resets the backoff counter and any exhausted condition."""
        if self.state is WatcherState.CONNECTING:
            log.debug("ORACLE_CONNECT_ALREADY_IN_PROGRESS")
            return
        bind_watcher(self.source)
        await self._cancel_reconnect()
        self.reconnect_attempts = 0
        self.exhausted = None
        self.state = WatcherState.CONNECTING
        await self._connect_with_failover()

    async def _connect_with_failover(self) -> None:
        generation = self._generation
        count = len(self.endpoints)
        for index in endpoint_order(count, self.cursor):
            url = self.endpoints[index]
            self.cursor = index
            try:
                await self._connect_endpoint(url, generation)
            except ConnectionSuperseded:
                raise
            except Exception as e:
                log.error("ORACLE_ENDPOINT_CONNECT_FAILED", url=url, error=str(e))
                self.cursor = next_endpoint_index(count, index)
                continue
            self.state = WatcherState.CONNECTED
            self.reconnect_attempts = 0
            log.info("ORACLE_CONNECTED", url=url, base_is_token0=self.base_is_token0)
            return

        if generation == self._generation:
            self.state = WatcherState.DISCONNECTED
        raise FeedConnectionError(f"Failed to connect to any of {count} RPC endpoints")

    async def _connect_endpoint(self, url: str, generation: int) -> None:
        await self._teardown_session()
        self._pool = None
        self._check_live(generation)
        log.info("ORACLE_CONNECTING", url=url)

        w3 = self.web3_factory(url)
        try:
            await self._timed(w3.provider.connect())
            self._check_live(generation)
            if not await self._timed(w3.is_connected()):
                raise FeedConnectionError(f"Endpoint failed liveness check: {url}")
            self._check_live(generation)

            pool = w3.eth.contract(address=Web3.to_checksum_address(self.config.pool_address), abi=UNISWAP_V3_POOL_ABI)
            token0 = await self._timed(pool.functions.token0().call())
            self._check_live(generation)
            base_is_token0 = resolve_orientation(
                token0,
                self.config.base_token_address,
                self.config.pool_address,
                self.default_pool,
                self.config.base_is_token0,
            )

            slot0 = await self._timed(pool.functions.slot0().call())
            self._check_live(generation)
            seed = self._observation(int(slot0[0]), base_is_token0, url)

            subscription_id = await self._timed(
                w3.eth.subscribe("logs", {"address": pool.address, "topics": [SWAP_TOPIC]})
            )
            self._check_live(generation)
        except BaseException:
            await self._close_session(w3)
            raise

        self._pool = pool
        self.base_is_token0 = base_is_token0
        self.active_endpoint = url
        self._install(w3, subscription_id, self._listen(w3, generation))
        self._emit_price(seed)

    # --- swap stream ---------------------------------------------------------

    def _handle_swap(self, message: Mapping):
        try:
            entry = message["result"]
            _, _, sqrt_price_x96, _, _ = decode(SWAP_DATA_TYPES, _log_data(entry["data"]))
        except Exception as e:
            return Recovered(TransientFetchError(f"undecodable Swap log: {e}"))
        return Ok(self._observation(sqrt_price_x96, self.base_is_token0, self.active_endpoint or ""))

    async def _listen(self, w3, generation: int) -> None:
        bind_watcher(self.source)
        try:
            async for message in w3.socket.process_subscriptions():
                outcome = self._handle_swap(message)
                if isinstance(outcome, Ok):
                    self._emit_price(outcome.value)
                else:
                    self._recover(outcome.error, endpoint=self.active_endpoint)
            reason = "swap stream ended"
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            reason = f"connection closed: {e}"
        except Exception as e:
            reason = f"swap stream failed: {e}"

        if generation != self._generation or self._listener is not asyncio.current_task():
            return
        log.warning("ORACLE_CONNECTION_LOST", endpoint=self.active_endpoint, reason=reason)
        self.state = WatcherState.DISCONNECTED
        self._schedule_reconnect()

    # --- reconnect -----------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self.reconnect_attempts >= self.config.max_reconnect_attempts:
            self.state = WatcherState.FAILED
            self.exhausted = ReconnectExhausted(self.reconnect_attempts)
            log.critical("ORACLE_RECONNECT_EXHAUSTED", attempts=self.reconnect_attempts)
            self._fatal(self.exhausted)
            return
        self.reconnect_attempts += 1
        delay_ms = self.backoff_ms[self.reconnect_attempts - 1]
        RECONNECT_ATTEMPTS.inc()
        self.state = WatcherState.RECONNECTING
        log.warning("ORACLE_RECONNECT_SCHEDULED", attempt=self.reconnect_attempts, delay_ms=delay_ms)
        self._arm_timer(delay_ms)

    def _arm_timer(self, delay_ms: int) -> None:
        loop = asyncio.get_running_loop()
        self._reconnect_timer = loop.call_later(delay_ms / 1000, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        bind_watcher(self.source)
        try:
            await self._connect_with_failover()
        except ConnectionSuperseded:
            return
        except FeedConnectionError as e:
            log.error("ORACLE_RECONNECT_FAILED", attempt=self.reconnect_attempts, error=str(e))
            self._schedule_reconnect()

    async def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def disconnect(self) -> None:
        self._generation += 1
        await self._cancel_reconnect()
        await self._teardown_session()
        self._pool = None
        if self.state is not WatcherState.IDLE:
            self.state = WatcherState.DISCONNECTED
        log.info("ORACLE_DISCONNECTED")

    # --- manual refresh -------------------------------------------------------

    @retriable_network_call
    async def _read_slot0(self, pool):
        return await pool.functions.slot0().call()

    async def refresh(self) -> PriceObservation:
        """Reads slot0 on demand and emits the result like any other observation."""
        pool = self._pool
        if pool is None or self.state is not WatcherState.CONNECTED:
            raise FeedConnectionError("Price oracle is not connected")
        try:
            slot0 = await self._timed(self._read_slot0(pool))
            observation = self._observation(int(slot0[0]), self.base_is_token0, self.active_endpoint or "")
        except Exception as e:
            self._recover(TransientFetchError(f"slot0 refresh failed: {e}"), endpoint=self.active_endpoint)
            observation = self._fallback_observation()
        self._emit_price(observation)
        return observation
