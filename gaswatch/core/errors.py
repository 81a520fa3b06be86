# /gaswatch/core/errors.py
# Failure taxonomy shared by the watchers and the hub.
from dataclasses import dataclass
from typing import Any, Union


class FeedConnectionError(ConnectionError):
    """A connect() call failed; the caller must retry or choose another endpoint."""


class ConnectionSuperseded(FeedConnectionError):
    """A connect() in flight lost the race against disconnect()."""


class TransientFetchError(Exception):
    """A single block or event could not be fetched or parsed."""


class PriceOutOfRange(ValueError):
    """A derived price failed validation. Recovered locally with the fallback price."""

    def __init__(self, price: float, reason: str):
        super().__init__(f"{reason}: {price}")
        self.price = price
        self.reason = reason


class ReconnectExhausted(Exception):
    """Backoff attempts hit their cap. Only an explicit connect() clears it."""

    def __init__(self, attempts: int):
        super().__init__(f"Reconnect abandoned after {attempts} attempts")
        self.attempts = attempts


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Recovered:
    error: Exception


@dataclass(frozen=True)
class Fatal:
    source: str
    error: Exception


EventOutcome = Union[Ok, Recovered, Fatal]
