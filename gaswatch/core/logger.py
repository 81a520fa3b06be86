# /gaswatch/core/logger.py
import logging
import structlog
from structlog.contextvars import bind_contextvars
import sentry_sdk
from prometheus_client import Counter
from gaswatch.core.config import settings

# --- Prometheus Metrics ---
OBSERVATIONS_INGESTED = Counter("gaswatch_observations_ingested_total", "Fee observations inserted into history", ["network"])
PRICES_EMITTED = Counter("gaswatch_prices_emitted_total", "Price observations emitted by the oracle watcher")
EVENTS_RECOVERED = Counter("gaswatch_events_recovered_total", "Per-event failures absorbed by a watcher", ["source"])
PRICE_FALLBACKS = Counter("gaswatch_price_fallbacks_total", "Times the fallback price replaced a computed price")
RECONNECT_ATTEMPTS = Counter("gaswatch_reconnect_attempts_total", "Scheduled oracle reconnect attempts")
FATAL_OUTCOMES = Counter("gaswatch_fatal_outcomes_total", "Fatal outcomes surfaced by watchers", ["source"])
CHANNEL_DROPPED = Counter("gaswatch_channel_dropped_total", "Items dropped from a full watcher channel", ["source"])


def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN, traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)


def bind_watcher(source: str):
    """Tags every log line emitted from the current task with the watcher name."""
    bind_contextvars(watcher=source)


configure_logging()
log = get_logger("gaswatch.system")
