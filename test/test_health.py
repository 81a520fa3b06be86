import pytest
from aiohttp.test_utils import TestClient, TestServer

from gaswatch.adapters.chain_feed import ChainFeedWatcher
from gaswatch.adapters.mock import MockNode, mock_web3_factory
from gaswatch.core.config import NetworkConfig
from gaswatch.core.errors import Fatal, FeedConnectionError
from gaswatch.core.hub import ObservationHub
from gaswatch.core.models import GWEI, FeeObservation, PriceObservation
from main import build_app

NETWORKS = [NetworkConfig(network="ethereum", chain_id=1, rpc_url="mock://eth")]


@pytest.mark.asyncio
async def test_healthz_reports_levels_price_and_degradation():
    hub = ObservationHub(NETWORKS)
    watcher = ChainFeedWatcher(NETWORKS[0], web3_factory=mock_web3_factory(MockNode(url="mock://eth")))
    hub.handle(FeeObservation(network="ethereum", timestamp_ms=1, base_fee=30 * GWEI, priority_fee=3 * GWEI, block_height=1))
    hub.handle(PriceObservation(price=3000.0, timestamp_ms=1))

    async with TestClient(TestServer(build_app(hub, [watcher]))) as client:
        r = await client.get("/healthz")
        assert r.status == 200
        body = await r.json()
        assert body["status"] == "ok"
        assert body["watchers"] == {"chain:ethereum": {"state": "idle", "connected": False, "recovered": 0}}
        assert body["levels"]["ethereum"] == {"base_fee": 30 * GWEI, "priority_fee": 3 * GWEI}
        assert body["price"]["price"] == 3000.0
        assert body["cheapest"]["network"] == "ethereum"

        hub.handle(Fatal("oracle", FeedConnectionError("all endpoints down")))
        body = await (await client.get("/healthz")).json()
        assert body["status"] == "degraded"
        assert body["degraded"] == {"oracle": "all endpoints down"}
