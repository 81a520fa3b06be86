# /main.py
# Runs one chain feed per configured network plus the price oracle, all feeding a
# single hub, and serves a health endpoint.
import asyncio
from aiohttp import web

from gaswatch.core.config import settings
from gaswatch.core.config_validator import validate as validate_config
from gaswatch.core.logger import configure_logging, get_logger
from gaswatch.core.hub import ObservationHub
from gaswatch.adapters.chain_feed import ChainFeedWatcher
from gaswatch.adapters.price_oracle import PriceOracleWatcher


def build_app(hub: ObservationHub, watchers: list) -> web.Application:
    async def healthz(request):
        """Connectivity per watcher, current fee levels and the cheapest network."""
        comparison = hub.compare_costs(settings.SIMULATION_AMOUNT)
        return web.json_response({
            "status": "degraded" if hub.degraded else "ok",
            "watchers": {w.source: w.status for w in watchers},
            "degraded": {source: str(err) for source, err in hub.degraded.items()},
            "price": hub.latest_price.model_dump() if hub.latest_price else None,
            "levels": {n: hub.store.current_levels(n).model_dump() for n in hub.store.networks},
            "cheapest": comparison.cheapest.model_dump() if comparison.cheapest else None,
        })

    app = web.Application()
    app.add_routes([web.get("/healthz", healthz)])
    return app


async def main():
    configure_logging()
    log = get_logger("gaswatch.system")
    validate_config()
    log.info("GAS_TRACKER_STARTING", networks=[n.network for n in settings.NETWORKS])

    hub = ObservationHub(settings.NETWORKS, capacity=settings.HISTORY_LENGTH)
    chain_feeds = [
        ChainFeedWatcher(network, connect_timeout_s=settings.CONNECT_TIMEOUT_S)
        for network in settings.NETWORKS
    ]
    oracle = PriceOracleWatcher(settings.oracle_config())
    watchers = chain_feeds + [oracle]
    for watcher in watchers:
        hub.attach(watcher.channel)

    results = await asyncio.gather(*(w.connect() for w in watchers), return_exceptions=True)
    for watcher, result in zip(watchers, results):
        if isinstance(result, Exception):
            log.error("WATCHER_CONNECT_FAILED", source=watcher.source, error=str(result))

    runner = web.AppRunner(build_app(hub, watchers))
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.HEALTH_PORT)
    await site.start()
    log.info("HEALTHCHECK_SERVER_STARTED", port=settings.HEALTH_PORT)

    try:
        # Watchers run as their own tasks; park here until cancelled.
        await asyncio.Event().wait()
    finally:
        await asyncio.gather(*(w.disconnect() for w in watchers), return_exceptions=True)
        await hub.close()
        await runner.cleanup()
        log.warning("SYSTEM_SHUTDOWN_COMPLETE")

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
