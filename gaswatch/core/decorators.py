# /gaswatch/core/decorators.py
# Retry policy for single idempotent RPC reads (seed block, slot0).
import asyncio
import logging

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential, before_sleep_log
from web3.exceptions import Web3Exception
from websockets.exceptions import ConnectionClosed

from gaswatch.core.logger import get_logger

log = get_logger(__name__)

# Transport-level failures only. A malformed response will not improve on retry.
TRANSIENT_ERRORS = (OSError, asyncio.TimeoutError, ConnectionClosed, Web3Exception)

# Endpoint failover and reconnect backoff must never be wrapped in this.
retriable_network_call = retry(
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.25, min=0.25, max=2),
    before_sleep=before_sleep_log(log, logging.WARNING),
    reraise=True,
)
