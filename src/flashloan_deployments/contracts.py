"""Pipeline configuration for each deployable contract type."""

from typing import Any, Callable, Dict, List

from .constants import (
    AAVE_V3_POOLS,
    BALANCER_V2_VAULTS,
    PANCAKESWAP_V3_FACTORIES,
    SYNCSWAP_VAULTS,
)
from .exceptions import ConfigurationError
from .types import PipelineConfig, SmokeProfile


def _provider_address(table: Dict[str, str], table_name: str, contract_name: str, network: str) -> str:
    address = table.get(network)
    if not address:
        raise ConfigurationError(
            f"No {table_name} address configured for {network}; {contract_name} cannot be "
            f"deployed there. Add it to {table_name} in flashloan_deployments/constants.py"
        )
    return address


def _provider_and_owner(
    table: Dict[str, str], table_name: str, contract_name: str
) -> Callable[[str, str], List[Any]]:
    """Constructor builder for (flash loan provider, owner) constructors."""

    def build(owner: str, network: str) -> List[Any]:
        return [_provider_address(table, table_name, contract_name, network), owner]

    return build


FLASH_LOAN_ARBITRAGE = PipelineConfig(
    contract_name="FlashLoanArbitrage",
    registry_name="registry.json",
    constructor_args=_provider_and_owner(AAVE_V3_POOLS, "AAVE_V3_POOLS", "FlashLoanArbitrage"),
    protocol="aave",
    smoke_profile=SmokeProfile.FLASH_LOAN,
    result_extras=lambda network: {"aavePoolAddress": AAVE_V3_POOLS.get(network)},
    supported_networks=sorted(AAVE_V3_POOLS),
)

BALANCER_V2_FLASH_ARBITRAGE = PipelineConfig(
    contract_name="BalancerV2FlashArbitrage",
    registry_name="balancer-registry.json",
    constructor_args=_provider_and_owner(
        BALANCER_V2_VAULTS, "BALANCER_V2_VAULTS", "BalancerV2FlashArbitrage"
    ),
    protocol="balancer",
    smoke_profile=SmokeProfile.FLASH_LOAN,
    result_extras=lambda network: {
        "vaultAddress": BALANCER_V2_VAULTS.get(network),
        "flashLoanFee": "0",  # bps
    },
    supported_networks=sorted(BALANCER_V2_VAULTS),
)

PANCAKESWAP_FLASH_ARBITRAGE = PipelineConfig(
    contract_name="PancakeSwapFlashArbitrage",
    registry_name="pancakeswap-registry.json",
    constructor_args=_provider_and_owner(
        PANCAKESWAP_V3_FACTORIES, "PANCAKESWAP_V3_FACTORIES", "PancakeSwapFlashArbitrage"
    ),
    protocol="pancakeswap",
    smoke_profile=SmokeProfile.FLASH_LOAN,
    result_extras=lambda network: {
        "factoryAddress": PANCAKESWAP_V3_FACTORIES.get(network),
        "whitelistedPools": [],
    },
    supported_networks=sorted(PANCAKESWAP_V3_FACTORIES),
)

SYNCSWAP_FLASH_ARBITRAGE = PipelineConfig(
    contract_name="SyncSwapFlashArbitrage",
    registry_name="syncswap-registry.json",
    constructor_args=_provider_and_owner(SYNCSWAP_VAULTS, "SYNCSWAP_VAULTS", "SyncSwapFlashArbitrage"),
    protocol="syncswap",
    smoke_profile=SmokeProfile.FLASH_LOAN,
    result_extras=lambda network: {
        "vaultAddress": SYNCSWAP_VAULTS.get(network),
        "flashLoanFee": "30",  # bps
    },
    supported_networks=sorted(SYNCSWAP_VAULTS),
)

# Profit is validated off-chain before commit, so no threshold or routers here
COMMIT_REVEAL_ARBITRAGE = PipelineConfig(
    contract_name="CommitRevealArbitrage",
    registry_name="commit-reveal-registry.json",
    constructor_args=lambda owner, network: [owner],
    configure_min_profit=False,
    configure_routers=False,
    smoke_profile=SmokeProfile.COMMIT_REVEAL,
)

# Stateless utility: no owner, no configuration
MULTI_PATH_QUOTER = PipelineConfig(
    contract_name="MultiPathQuoter",
    registry_name="multi-path-quoter-registry.json",
    constructor_args=lambda owner, network: [],
    configure_min_profit=False,
    configure_routers=False,
    smoke_profile=SmokeProfile.MULTI_PATH_QUOTER,
)

PIPELINE_CONFIGS: Dict[str, PipelineConfig] = {
    config.contract_name: config
    for config in (
        FLASH_LOAN_ARBITRAGE,
        BALANCER_V2_FLASH_ARBITRAGE,
        PANCAKESWAP_FLASH_ARBITRAGE,
        SYNCSWAP_FLASH_ARBITRAGE,
        COMMIT_REVEAL_ARBITRAGE,
        MULTI_PATH_QUOTER,
    )
}


def get_pipeline_config(contract_type: str) -> PipelineConfig:
    """
    Raises:
        ConfigurationError: If the contract type is unknown
    """
    if contract_type not in PIPELINE_CONFIGS:
        raise ConfigurationError(
            f"Unknown contract type '{contract_type}'. "
            f"Known types: {', '.join(sorted(PIPELINE_CONFIGS))}"
        )
    return PIPELINE_CONFIGS[contract_type]
