from gaswatch.abis.uniswap_v3 import SWAP_TOPIC, UNISWAP_V3_POOL_ABI

__all__ = ["SWAP_TOPIC", "UNISWAP_V3_POOL_ABI"]
