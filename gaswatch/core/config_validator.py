# /gaswatch/core/config_validator.py
# Run at startup to reject settings the watchers cannot work with.
from gaswatch.core.config import settings
from gaswatch.core.logger import log


def validate(cfg=settings):
    log.info("--- CONFIG VALIDATION START ---")
    errors = []

    if not cfg.NETWORKS:
        errors.append("No networks configured: NETWORKS")
    names = [n.network for n in cfg.NETWORKS]
    if len(set(names)) != len(names):
        errors.append(f"Duplicate network ids in NETWORKS: {names}")
    for network in cfg.NETWORKS:
        if not network.rpc_url:
            errors.append(f"Missing rpc_url for network {network.network}")
        if network.gas_limit <= 0:
            errors.append(f"gas_limit must be positive for network {network.network}")
    if not cfg.ORACLE_RPC_URLS:
        errors.append("Missing required configuration: ORACLE_RPC_URLS")
    if cfg.PRICE_MIN >= cfg.PRICE_MAX:
        errors.append("PRICE_MIN must be below PRICE_MAX")
    if cfg.HISTORY_LENGTH <= 0:
        errors.append("HISTORY_LENGTH must be positive")
    if cfg.CANDLESTICK_INTERVAL_MS <= 0:
        errors.append("CANDLESTICK_INTERVAL_MS must be positive")
    if cfg.MAX_RECONNECT_ATTEMPTS < 0 or cfg.RECONNECT_BASE_DELAY_MS <= 0:
        errors.append("Reconnect backoff settings must be positive")

    if errors:
        for error in errors:
            log.critical(error)
        raise ValueError("System configuration is incomplete. Halting.")

    log.info("--- CONFIG VALIDATION PASSED ---")

if __name__ == "__main__":
    validate()
