"""Configuration constants for flashloan-deployments library."""

WEI_PER_ETHER = 10**18


def _ether(amount: str) -> int:
    """Convert a decimal ether string to wei without float rounding."""
    whole, _, frac = amount.partition(".")
    frac = (frac + "0" * 18)[:18]
    return int(whole or "0") * WEI_PER_ETHER + int(frac)


# Chain classification
# zksync-mainnet / zksync-sepolia are aliases, see CHAIN_ALIASES
MAINNET_CHAINS = (
    "ethereum",
    "polygon",
    "arbitrum",
    "base",
    "optimism",
    "bsc",
    "avalanche",
    "fantom",
    "zksync",
    "linea",
)

TESTNET_CHAINS = (
    "sepolia",
    "arbitrumSepolia",
    "baseSepolia",
    "zksync-testnet",
)

LOCAL_CHAINS = ("localhost", "hardhat")

# Maps alternate spellings (hardhat network names, explorer names) to canonical names
CHAIN_ALIASES = {
    "zksync-mainnet": "zksync",
    "zksync-sepolia": "zksync-testnet",
}

# Network configuration based on ethereum-lists/chains
NETWORK_CONFIG = {
    "ethereum": {
        "chain_id": 1,
        "chain_name": "Ethereum Mainnet",
        "block_explorer_url": "https://etherscan.io",
        "explorer_api_url": "https://api.etherscan.io/api",
        "default_rpc_env": "ETHEREUM_RPC_URL",
    },
    "polygon": {
        "chain_id": 137,
        "chain_name": "Polygon Mainnet",
        "block_explorer_url": "https://polygonscan.com",
        "explorer_api_url": "https://api.polygonscan.com/api",
        "default_rpc_env": "POLYGON_RPC_URL",
    },
    "arbitrum": {
        "chain_id": 42161,
        "chain_name": "Arbitrum One",
        "block_explorer_url": "https://arbiscan.io",
        "explorer_api_url": "https://api.arbiscan.io/api",
        "default_rpc_env": "ARBITRUM_RPC_URL",
    },
    "base": {
        "chain_id": 8453,
        "chain_name": "Base",
        "block_explorer_url": "https://basescan.org",
        "explorer_api_url": "https://api.basescan.org/api",
        "default_rpc_env": "BASE_RPC_URL",
    },
    "optimism": {
        "chain_id": 10,
        "chain_name": "OP Mainnet",
        "block_explorer_url": "https://optimistic.etherscan.io",
        "explorer_api_url": "https://api-optimistic.etherscan.io/api",
        "default_rpc_env": "OPTIMISM_RPC_URL",
    },
    "bsc": {
        "chain_id": 56,
        "chain_name": "BNB Smart Chain Mainnet",
        "block_explorer_url": "https://bscscan.com",
        "explorer_api_url": "https://api.bscscan.com/api",
        "default_rpc_env": "BSC_RPC_URL",
    },
    "avalanche": {
        "chain_id": 43114,
        "chain_name": "Avalanche C-Chain",
        "block_explorer_url": "https://snowtrace.io",
        "explorer_api_url": "https://api.snowtrace.io/api",
        "default_rpc_env": "AVALANCHE_RPC_URL",
    },
    "fantom": {
        "chain_id": 250,
        "chain_name": "Fantom Opera",
        "block_explorer_url": "https://ftmscan.com",
        "explorer_api_url": "https://api.ftmscan.com/api",
        "default_rpc_env": "FANTOM_RPC_URL",
    },
    "zksync": {
        "chain_id": 324,
        "chain_name": "zkSync Era Mainnet",
        "block_explorer_url": "https://era.zksync.network",
        "explorer_api_url": "https://api-era.zksync.network/api",
        "default_rpc_env": "ZKSYNC_RPC_URL",
    },
    "linea": {
        "chain_id": 59144,
        "chain_name": "Linea",
        "block_explorer_url": "https://lineascan.build",
        "explorer_api_url": "https://api.lineascan.build/api",
        "default_rpc_env": "LINEA_RPC_URL",
    },
    "sepolia": {
        "chain_id": 11155111,
        "chain_name": "Sepolia",
        "block_explorer_url": "https://sepolia.etherscan.io",
        "explorer_api_url": "https://api-sepolia.etherscan.io/api",
        "default_rpc_env": "SEPOLIA_RPC_URL",
    },
    "arbitrumSepolia": {
        "chain_id": 421614,
        "chain_name": "Arbitrum Sepolia",
        "block_explorer_url": "https://sepolia.arbiscan.io",
        "explorer_api_url": "https://api-sepolia.arbiscan.io/api",
        "default_rpc_env": "ARBITRUM_SEPOLIA_RPC_URL",
    },
    "baseSepolia": {
        "chain_id": 84532,
        "chain_name": "Base Sepolia",
        "block_explorer_url": "https://sepolia.basescan.org",
        "explorer_api_url": "https://api-sepolia.basescan.org/api",
        "default_rpc_env": "BASE_SEPOLIA_RPC_URL",
    },
    "zksync-testnet": {
        "chain_id": 300,
        "chain_name": "zkSync Era Sepolia",
        "block_explorer_url": "https://sepolia-era.zksync.network",
        "explorer_api_url": "https://api-sepolia-era.zksync.network/api",
        "default_rpc_env": "ZKSYNC_TESTNET_RPC_URL",
    },
    "localhost": {
        "chain_id": 31337,
        "chain_name": "Hardhat Localhost",
        "block_explorer_url": "",
        "explorer_api_url": "",
        "default_rpc_env": "LOCALHOST_RPC_URL",
    },
    "hardhat": {
        "chain_id": 31337,
        "chain_name": "Hardhat Network",
        "block_explorer_url": "",
        "explorer_api_url": "",
        "default_rpc_env": "HARDHAT_RPC_URL",
    },
}

# Flash loan provider addresses consumed by constructor builders
AAVE_V3_POOLS = {
    "ethereum": "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2",
    "polygon": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "arbitrum": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "optimism": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "avalanche": "0x794a61358D6845594F94dc1DB02A252b5b4814aD",
    "base": "0xA238Dd80C259a72e81d7e4664a9801593F98d1c5",
    "sepolia": "0x6Ae43d3271ff6888e7Fc43Fd7321a503ff738951",
}

BALANCER_V2_VAULTS = {
    "ethereum": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
    "polygon": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
    "arbitrum": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
    "optimism": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
    "base": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
    "avalanche": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
    "fantom": "0x20dd72Ed959b6147912C2e529F0a0C651c33c9ce",  # Beethoven X
}

PANCAKESWAP_V3_FACTORIES = {
    "bsc": "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    "ethereum": "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    "arbitrum": "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    "base": "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    "linea": "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    "zksync": "0x1BB72E0CbbEA93c08f535fc7856E0338D7F7a8aB",
}

SYNCSWAP_VAULTS = {
    "zksync": "0x621425a1Ef6abE91058E9712575dcc4258F8d091",
    "zksync-testnet": "0x4Ff94F499E1E69D687f3C3cE2CE93E717a0769F8",
}

# Only V2-style routers (swapExactTokensForTokens) are supported
APPROVED_ROUTERS = {
    "sepolia": [
        "0xC532a74256D3Db42D0Bf7a0400fEFDbad7694008",  # Uniswap V2
    ],
    "arbitrumSepolia": [
        "0x101F443B4d1b059569D643917553c771E1b9663E",  # Uniswap V2
    ],
    "ethereum": [
        "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",  # Uniswap V2
        "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",  # SushiSwap
    ],
    "arbitrum": [
        "0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",  # SushiSwap
        "0xc873fEcbd354f5A56E00E710B90EF4201db2448d",  # Camelot
    ],
    "base": [
        "0x327Df1E6de05895d2ab08513aaDD9313Fe505d86",  # BaseSwap
        "0x8cFe327CEc66d1C090Dd72bd0FF11d690C33a2Eb",  # Aerodrome
    ],
    "bsc": [
        "0x10ED43C718714eb63d5aA57B78B54704E256024E",  # PancakeSwap V2
        "0x3a6d8cA21D1CF76F653A67577FA0D27453350dD8",  # Biswap
    ],
    "polygon": [
        "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",  # QuickSwap
        "0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",  # SushiSwap
    ],
    "optimism": [
        "0x4A7b5Da61326A6379179b40d00F57E5bbDC962c2",  # Velodrome
    ],
    "avalanche": [
        "0x60aE616a2155Ee3d9A68541Ba4544862310933d4",  # Trader Joe
        "0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",  # SushiSwap
    ],
    "fantom": [
        "0x16327E3FbDaCA3bcF7E38F5Af2599D2DDc33aE52",  # SpookySwap
        "0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",  # SushiSwap
    ],
    "zksync": [
        "0x2da10A1e27bF85cEdD8FFb1AbBe97e53391C0295",  # SyncSwap
    ],
    "linea": [
        "0x8cFe327CEc66d1C090Dd72bd0FF11d690C33a2Eb",  # Lynex
    ],
}

# Minimum profit thresholds in wei of the native token
DEFAULT_MINIMUM_PROFIT = {
    "localhost": 0,
    "hardhat": 0,
    "sepolia": _ether("0.001"),
    "arbitrumSepolia": _ether("0.001"),
    "baseSepolia": _ether("0.001"),
    "zksync-testnet": _ether("0.001"),
    "ethereum": _ether("0.005"),
    "arbitrum": _ether("0.002"),
    "base": _ether("0.002"),
    "optimism": _ether("0.002"),
    "bsc": _ether("0.01"),
    "polygon": _ether("2"),
    "avalanche": _ether("0.1"),
    "fantom": _ether("5"),
    "zksync": _ether("0.002"),
    "linea": _ether("0.002"),
}

# Used for networks missing from DEFAULT_MINIMUM_PROFIT
FALLBACK_MINIMUM_PROFIT = _ether("0.005")

# Below this a mainnet threshold is accepted with a warning
RECOMMENDED_MINIMUM_PROFIT = _ether("0.001")

# Seconds to wait for explorer indexing before the first verification attempt
VERIFICATION_DELAY_BY_NETWORK = {
    "arbitrum": 10,
    "arbitrumSepolia": 10,
    "base": 10,
    "baseSepolia": 10,
    "optimism": 10,
    "bsc": 10,
    "zksync": 15,
    "zksync-testnet": 15,
    "linea": 15,
    "sepolia": 20,
    "ethereum": 30,
}

DEFAULT_VERIFICATION_RETRIES = 3
DEFAULT_VERIFICATION_INITIAL_DELAY = 30

# Seconds to wait for a transaction to be mined
DEFAULT_TX_TIMEOUT = 300

# RPC request timeout in seconds
DEFAULT_RPC_TIMEOUT = 60

# Registry document
REGISTRY_FILENAME = "registry.json"
METADATA_PREFIX = "_"
RESERVATIONS_KEY = "_reservations"
SCHEMA_KEY = "_schema"
REGISTRY_SCHEMA_VERSION = 2

# Registry lock
LOCK_STALE_SECONDS = 30
LOCK_RETRIES = 3
LOCK_RETRY_DELAY = 0.5

# Reservation lease lifetime in seconds
RESERVATION_TTL_SECONDS = 900

# Operator intent tokens
MAINNET_CONFIRMATION_TOKEN = "DEPLOY"
REDEPLOY_CONFIRMATION_TOKEN = "CONFIRM_REDEPLOY"
