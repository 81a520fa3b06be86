# /gaswatch/adapters/mock.py
# In-memory stand-ins for a websocket JSON-RPC node, shaped like the parts of
# AsyncWeb3 the watchers touch. Used by the test-suite and for offline runs.

import asyncio
import itertools
from typing import Callable, Dict, List

from eth_abi import encode

from gaswatch.abis.uniswap_v3 import SWAP_DATA_TYPES, SWAP_TOPIC
from gaswatch.core.logger import get_logger

log = get_logger(__name__)

USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"

_END = object()
_sub_ids = itertools.count(1)


class MockNode:
    """
    A fake node reachable at `url`. Every call to `web3()` opens a new session;
    `push_*` broadcasts to all open sessions that subscribed to the matching stream.
    """
    def __init__(
        self,
        url: str = "mock://node",
        base_fee: int | None = 30 * 10**9,
        block_number: int = 1,
        token0: str = USDC_ADDRESS,
        sqrt_price_x96: int = 0,
        fail_connect: bool = False,
        live: bool = True,
    ):
        self.url = url
        self.base_fee = base_fee
        self.block_number = block_number
        self.token0 = token0
        self.sqrt_price_x96 = sqrt_price_x96
        self.fail_connect = fail_connect
        self.live = live
        self.fail_get_block = 0  # number of upcoming get_block calls that raise
        self.fail_slot0 = 0
        self.connect_gate: asyncio.Event | None = None
        self.sessions: List["MockWeb3"] = []
        self.connect_attempts = 0

    def web3(self) -> "MockWeb3":
        session = MockWeb3(self)
        self.sessions.append(session)
        return session

    @property
    def open_sessions(self) -> List["MockWeb3"]:
        return [s for s in self.sessions if s.provider.connected]

    def latest_header(self) -> dict:
        header = {"number": self.block_number, "hash": f"0x{self.block_number:064x}"}
        if self.base_fee is not None:
            header["baseFeePerGas"] = self.base_fee
        return header

    def push_header(self, base_fee: int | None = None, number: int | None = None) -> None:
        self.block_number = number if number is not None else self.block_number + 1
        if base_fee is not None:
            self.base_fee = base_fee
        self._broadcast("newHeads", self.latest_header())

    def push_swap(self, sqrt_price_x96: int, amount0: int = -10**6, amount1: int = 10**15,
                  liquidity: int = 10**18, tick: int = 0) -> None:
        self.sqrt_price_x96 = sqrt_price_x96
        data = encode(SWAP_DATA_TYPES, [amount0, amount1, sqrt_price_x96, liquidity, tick])
        self._broadcast("logs", {"topics": [SWAP_TOPIC], "data": data})

    def push_raw(self, kind: str, result) -> None:
        self._broadcast(kind, result)

    def drop_connections(self) -> None:
        """Simulates the remote side hanging up on every open session."""
        for session in self.open_sessions:
            session.socket.close()

    def _broadcast(self, kind: str, result) -> None:
        for session in self.open_sessions:
            session.deliver(kind, result)


class MockProvider:
    def __init__(self, node: MockNode, socket: "MockSocket"):
        self.node = node
        self.socket = socket
        self.connected = False
        self.endpoint_uri = node.url

    async def connect(self) -> None:
        self.node.connect_attempts += 1
        if self.node.connect_gate is not None:
            await self.node.connect_gate.wait()
        if self.node.fail_connect:
            raise ConnectionRefusedError(f"mock endpoint {self.node.url} refused connection")
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False
        self.socket.close()


class MockSocket:
    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_END)

    async def process_subscriptions(self):
        while True:
            message = await self._queue.get()
            if message is _END:
                return
            yield message


class _Call:
    def __init__(self, fn: Callable):
        self._fn = fn

    async def call(self):
        return self._fn()


class MockPoolFunctions:
    def __init__(self, node: MockNode):
        self._node = node

    def token0(self) -> _Call:
        return _Call(lambda: self._node.token0)

    def slot0(self) -> _Call:
        def read():
            if self._node.fail_slot0 > 0:
                self._node.fail_slot0 -= 1
                raise ConnectionResetError("mock slot0 read failed")
            return (self._node.sqrt_price_x96, 0, 0, 1, 1, 0, True)
        return _Call(read)


class MockPoolContract:
    def __init__(self, node: MockNode, address: str):
        self.address = address
        self.functions = MockPoolFunctions(node)


class MockEth:
    def __init__(self, session: "MockWeb3"):
        self._session = session
        self._node = session.node

    async def get_block(self, block_identifier):
        if self._node.fail_get_block > 0:
            self._node.fail_get_block -= 1
            raise ConnectionResetError("mock get_block failed")
        return self._node.latest_header()

    async def subscribe(self, kind: str, params=None) -> str:
        sub_id = f"0x{next(_sub_ids):x}"
        self._session.subscriptions[sub_id] = kind
        return sub_id

    async def unsubscribe(self, sub_id: str) -> bool:
        return self._session.subscriptions.pop(sub_id, None) is not None

    def contract(self, address: str, abi=None) -> MockPoolContract:
        return MockPoolContract(self._node, address)


class MockWeb3:
    def __init__(self, node: MockNode):
        self.node = node
        self.subscriptions: Dict[str, str] = {}
        self.socket = MockSocket()
        self.provider = MockProvider(node, self.socket)
        self.eth = MockEth(self)

    async def is_connected(self) -> bool:
        return self.provider.connected and self.node.live

    def deliver(self, kind: str, result) -> None:
        for sub_id, sub_kind in self.subscriptions.items():
            if sub_kind == kind:
                self.socket._queue.put_nowait({"subscription": sub_id, "result": result})


def mock_web3_factory(*nodes: MockNode) -> Callable[[str], MockWeb3]:
    """Factory for watcher constructors; unknown URLs behave like dead endpoints."""
    by_url = {node.url: node for node in nodes}

    def factory(url: str) -> MockWeb3:
        node = by_url.get(url)
        if node is None:
            log.warning("MOCK_UNKNOWN_ENDPOINT", url=url)
            node = MockNode(url=url, fail_connect=True)
            by_url[url] = node
        return node.web3()

    return factory
