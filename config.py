"""
Configuration settings for evmguard.

This file contains network configurations, DEX defaults and the runtime
settings object. To add a new network, extend CHAINS below and add its
contracts to core/addressbook.json.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from core.errors import UnsupportedNetwork


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain network."""
    name: str
    chain_id: int
    rpc_env: str
    rpc_urls: List[str]
    explorer_url: str
    native_symbol: str = "ETH"

    @property
    def rpc_url(self) -> str:
        return self.rpc_urls[0]


# =============================================================================
# NETWORK CONFIGURATIONS
# =============================================================================
# The RPC URL is read from `rpc_env` when set; otherwise the first public
# endpoint in `rpc_urls` is used.

CHAINS: Dict[str, ChainConfig] = {
    "ethereum": ChainConfig(
        name="Ethereum Mainnet",
        chain_id=1,
        rpc_env="MAINNET_RPC_URL",
        rpc_urls=["https://eth.llamarpc.com", "https://ethereum.publicnode.com"],
        explorer_url="https://etherscan.io",
    ),
    "goerli": ChainConfig(
        name="Goerli",
        chain_id=5,
        rpc_env="GOERLI_RPC_URL",
        rpc_urls=["https://ethereum-goerli.publicnode.com"],
        explorer_url="https://goerli.etherscan.io",
    ),
    "sepolia": ChainConfig(
        name="Sepolia",
        chain_id=11155111,
        rpc_env="SEPOLIA_RPC_URL",
        rpc_urls=["https://ethereum-sepolia.publicnode.com"],
        explorer_url="https://sepolia.etherscan.io",
    ),
    "polygon": ChainConfig(
        name="Polygon",
        chain_id=137,
        rpc_env="POLYGON_RPC_URL",
        rpc_urls=["https://polygon-rpc.com"],
        explorer_url="https://polygonscan.com",
        native_symbol="MATIC",
    ),
    "mumbai": ChainConfig(
        name="Polygon Mumbai",
        chain_id=80001,
        rpc_env="MUMBAI_RPC_URL",
        rpc_urls=["https://rpc-mumbai.maticvigil.com"],
        explorer_url="https://mumbai.polygonscan.com",
        native_symbol="MATIC",
    ),
    "arbitrum": ChainConfig(
        name="Arbitrum One",
        chain_id=42161,
        rpc_env="ARBITRUM_RPC_URL",
        rpc_urls=["https://arb1.arbitrum.io/rpc"],
        explorer_url="https://arbiscan.io",
    ),
    "arbitrum_goerli": ChainConfig(
        name="Arbitrum Goerli",
        chain_id=421613,
        rpc_env="ARBITRUM_GOERLI_RPC_URL",
        rpc_urls=["https://goerli-rollup.arbitrum.io/rpc"],
        explorer_url="https://goerli.arbiscan.io",
    ),
    "optimism": ChainConfig(
        name="Optimism",
        chain_id=10,
        rpc_env="OPTIMISM_RPC_URL",
        rpc_urls=["https://mainnet.optimism.io"],
        explorer_url="https://optimistic.etherscan.io",
    ),
    "optimism_goerli": ChainConfig(
        name="Optimism Goerli",
        chain_id=420,
        rpc_env="OPTIMISM_GOERLI_RPC_URL",
        rpc_urls=["https://goerli.optimism.io"],
        explorer_url="https://goerli-optimism.etherscan.io",
    ),
}

NETWORK_ALIASES: Dict[str, str] = {
    "eth": "ethereum",
    "mainnet": "ethereum",
    "matic": "polygon",
    "arb": "arbitrum",
    "op": "optimism",
}


def normalize_network(network: str) -> str:
    """Map an alias (eth, arb, ...) to its canonical network name."""
    key = network.strip().lower()
    return NETWORK_ALIASES.get(key, key)


def get_chain(network: str) -> ChainConfig:
    """Look up a network by name or alias.

    Raises:
        UnsupportedNetwork: if the network is not configured
    """
    name = normalize_network(network)
    if name not in CHAINS:
        raise UnsupportedNetwork(
            f"Unsupported network: {network}. Available: {', '.join(CHAINS)}"
        )
    return CHAINS[name]


def chain_name_for_id(chain_id: int) -> Optional[str]:
    for name, chain in CHAINS.items():
        if chain.chain_id == chain_id:
            return name
    return None


# =============================================================================
# CONTRACT NAMES AND CONSTANTS
# =============================================================================
# Names used to look up well-known contracts in the bundled addressbook.

WETH_NAME = "weth"
UNISWAP_V2_FACTORY = "uniswap_v2_factory"
UNISWAP_V2_ROUTER = "uniswap_v2_router"
UNISWAP_V3_ROUTER = "uniswap_v3_router"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_UINT256 = 2 ** 256 - 1

DEFAULT_WHITELIST_PATH = "whitelist.json"
DEFAULT_V3_FEE_TIER = 3000          # 0.3%
DEFAULT_V2_SLIPPAGE_PERCENT = 5
DEFAULT_LIQUIDITY_DEADLINE = 3600   # seconds from now
DEFAULT_RPC_TIMEOUT = 30
DEFAULT_RECEIPT_TIMEOUT = 180


# =============================================================================
# RUNTIME SETTINGS
# =============================================================================

@dataclass
class Settings:
    """Runtime settings, built once at startup and passed to components."""
    whitelist_path: Path = Path(DEFAULT_WHITELIST_PATH)
    private_key: Optional[str] = field(default=None, repr=False)
    rpc_overrides: Dict[str, str] = field(default_factory=dict)
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    v3_fee_tier: int = DEFAULT_V3_FEE_TIER
    v2_slippage_percent: int = DEFAULT_V2_SLIPPAGE_PERCENT
    liquidity_deadline_seconds: int = DEFAULT_LIQUIDITY_DEADLINE

    def __post_init__(self):
        if not 0 <= self.v2_slippage_percent <= 100:
            raise ValueError(
                f"Slippage must be between 0 and 100 percent, got {self.v2_slippage_percent}"
            )
        if not 0 < self.v3_fee_tier < 2 ** 24:
            raise ValueError(f"Invalid V3 fee tier: {self.v3_fee_tier}")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Call after python-dotenv has loaded any .env file.
        """
        env = os.environ if environ is None else environ

        overrides = {
            name: env[chain.rpc_env]
            for name, chain in CHAINS.items()
            if env.get(chain.rpc_env)
        }

        return cls(
            whitelist_path=Path(env.get("EVMGUARD_WHITELIST", DEFAULT_WHITELIST_PATH)),
            private_key=env.get("DEV_PRIVATE_KEY") or None,
            rpc_overrides=overrides,
            rpc_timeout=float(env.get("EVMGUARD_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT)),
            receipt_timeout=float(env.get("EVMGUARD_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT)),
            v3_fee_tier=int(env.get("EVMGUARD_V3_FEE_TIER", DEFAULT_V3_FEE_TIER)),
            v2_slippage_percent=int(
                env.get("EVMGUARD_V2_SLIPPAGE_PERCENT", DEFAULT_V2_SLIPPAGE_PERCENT)
            ),
            liquidity_deadline_seconds=int(
                env.get("EVMGUARD_LIQUIDITY_DEADLINE", DEFAULT_LIQUIDITY_DEADLINE)
            ),
        )

    def rpc_url_for(self, network: str) -> str:
        name = normalize_network(network)
        if name in self.rpc_overrides:
            return self.rpc_overrides[name]
        return get_chain(name).rpc_url
