# /gaswatch/core/config.py
from typing import List
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_POOL = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"  # USDC/WETH 0.05%
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class NetworkConfig(BaseModel):
    """Connection and simulation constants for one tracked network."""
    model_config = ConfigDict(frozen=True)

    network: str
    chain_id: int
    rpc_url: str
    gas_limit: int = 21000
    native_decimals: int = 18


class OracleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    pool_address: str = DEFAULT_POOL
    rpc_endpoints: List[str] = [
        "wss://ethereum-rpc.publicnode.com",
        "wss://eth-mainnet.ws.alchemyapi.io/v2/demo",
    ]
    base_token_address: str = WETH_ADDRESS
    # Orientation advertised by whoever configured the pool; None means "derive it".
    base_is_token0: bool | None = None
    decimal_diff: int = 12
    min_price: float = 500.0
    max_price: float = 20000.0
    fallback_price: float = 3700.0
    reconnect_base_delay_ms: int = 5000
    max_reconnect_attempts: int = 5
    connect_timeout_s: float = 10.0


DEFAULT_NETWORKS = [
    NetworkConfig(network="ethereum", chain_id=1, rpc_url="wss://0xrpc.io/eth"),
    NetworkConfig(network="polygon", chain_id=137, rpc_url="wss://polygon-bor-rpc.publicnode.com"),
    NetworkConfig(network="arbitrum", chain_id=42161, rpc_url="wss://arbitrum-one-rpc.publicnode.com"),
]


class Settings(BaseSettings):
    # Tracked networks (JSON list in the environment)
    NETWORKS: List[NetworkConfig] = DEFAULT_NETWORKS

    # Price oracle
    UNISWAP_V3_POOL: str = DEFAULT_POOL
    ORACLE_RPC_URLS: List[str] = list(OracleConfig().rpc_endpoints)
    BASE_TOKEN_ADDRESS: str = WETH_ADDRESS
    BASE_IS_TOKEN0: bool | None = None
    DECIMAL_DIFF: int = 12
    PRICE_MIN: float = 500.0
    PRICE_MAX: float = 20000.0
    FALLBACK_PRICE: float = 3700.0
    RECONNECT_BASE_DELAY_MS: int = 5000
    MAX_RECONNECT_ATTEMPTS: int = 5
    CONNECT_TIMEOUT_S: float = 10.0

    # History / aggregation
    HISTORY_LENGTH: int = 100
    CANDLESTICK_INTERVAL_MS: int = 15 * 60 * 1000
    SIMULATION_AMOUNT: str = "0.1"

    # Operational Settings
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    HEALTH_PORT: int = 8080

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def oracle_config(self) -> OracleConfig:
        return OracleConfig(
            pool_address=self.UNISWAP_V3_POOL,
            rpc_endpoints=list(self.ORACLE_RPC_URLS),
            base_token_address=self.BASE_TOKEN_ADDRESS,
            base_is_token0=self.BASE_IS_TOKEN0,
            decimal_diff=self.DECIMAL_DIFF,
            min_price=self.PRICE_MIN,
            max_price=self.PRICE_MAX,
            fallback_price=self.FALLBACK_PRICE,
            reconnect_base_delay_ms=self.RECONNECT_BASE_DELAY_MS,
            max_reconnect_attempts=self.MAX_RECONNECT_ATTEMPTS,
            connect_timeout_s=self.CONNECT_TIMEOUT_S,
        )

    def network(self, name: str) -> NetworkConfig:
        for cfg in self.NETWORKS:
            if cfg.network == name:
                return cfg
        raise KeyError(f"Unknown network: {name}")


try:
    settings = Settings()
except Exception as e:
    # Late import to avoid circular dependency only for logging the failure
    try:
        from gaswatch.core.logger import get_logger
        log = get_logger("gaswatch.config")
        log.critical("FAILED_TO_LOAD_SETTINGS", error=str(e))
    except Exception:
        print("FAILED_TO_LOAD_SETTINGS", e)
    exit(1)
