"""Network name normalization and per-network deployment policy."""

import logging
from typing import Any, Dict, Optional

from .constants import (
    CHAIN_ALIASES,
    DEFAULT_MINIMUM_PROFIT,
    FALLBACK_MINIMUM_PROFIT,
    LOCAL_CHAINS,
    MAINNET_CHAINS,
    NETWORK_CONFIG,
    RECOMMENDED_MINIMUM_PROFIT,
    TESTNET_CHAINS,
    WEI_PER_ETHER,
)
from .exceptions import ConfigurationError, ProfitThresholdError

logger = logging.getLogger(__name__)


def normalize_chain_name(name: str) -> str:
    """
    Convert a network name to canonical form.

    Args:
        name: Network name (canonical or alias)

    Returns:
        Canonical network name
    """
    # If it's an alias, convert to canonical
    if name in CHAIN_ALIASES:
        return CHAIN_ALIASES[name]

    # Otherwise return as-is (might be canonical or unknown)
    return name


def is_mainnet(name: str) -> bool:
    return normalize_chain_name(name) in MAINNET_CHAINS


def is_testnet(name: str) -> bool:
    return normalize_chain_name(name) in TESTNET_CHAINS


def is_local(name: str) -> bool:
    return normalize_chain_name(name) in LOCAL_CHAINS


def requires_production_guards(name: str) -> bool:
    """
    Check whether a network must be treated as mainnet-class.

    Unknown networks are treated as mainnet-class: only networks known to be
    testnets or local development chains skip the production guards.

    Args:
        name: Network name (canonical or alias)

    Returns:
        True unless the network is a known testnet or local chain
    """
    if is_testnet(name) or is_local(name):
        return False
    if not is_mainnet(name):
        logger.warning(
            "Network '%s' is not in the known mainnet or testnet list; "
            "treating it as mainnet",
            name,
        )
    return True


def get_network_config(name: str) -> Dict[str, Any]:
    """
    Get chain ID, explorer and RPC settings for a network.

    Args:
        name: Network name (canonical or alias)

    Returns:
        Network configuration dict

    Raises:
        ConfigurationError: If the network is not configured
    """
    canonical = normalize_chain_name(name)
    if canonical not in NETWORK_CONFIG:
        raise ConfigurationError(
            f"Network '{name}' is not configured. "
            f"Add it to NETWORK_CONFIG in flashloan_deployments/constants.py"
        )
    return NETWORK_CONFIG[canonical]


def format_ether(wei: int) -> str:
    """Format a wei amount as a decimal ether string."""
    sign = "-" if wei < 0 else ""
    whole, frac = divmod(abs(wei), WEI_PER_ETHER)
    frac_str = f"{frac:018d}".rstrip("0")
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def get_minimum_profit_for_protocol(network: str, protocol: str) -> int:
    """
    Get minimum profit threshold adjusted for protocol-specific fees.

    Balancer charges no flash loan fee, so it accepts a 30% lower threshold.

    Args:
        network: Network name (canonical or alias)
        protocol: Flash loan protocol ("aave", "balancer", "pancakeswap", "syncswap")

    Returns:
        Minimum profit threshold in wei
    """
    base_threshold = DEFAULT_MINIMUM_PROFIT.get(normalize_chain_name(network))

    if base_threshold is None:
        return FALLBACK_MINIMUM_PROFIT

    if protocol == "balancer":
        return base_threshold * 70 // 100

    return base_threshold


def validate_minimum_profit(network: str, minimum_profit: Optional[int]) -> int:
    """
    Validate the minimum profit threshold for a network.

    Testnets and local networks accept zero or missing thresholds. Mainnet-class
    networks (including unknown ones) require a positive threshold.

    Args:
        network: Network name (canonical or alias)
        minimum_profit: Threshold in wei, or None if undefined

    Returns:
        The validated threshold in wei

    Raises:
        ProfitThresholdError: If a mainnet-class network has no positive threshold
    """
    if not requires_production_guards(network):
        return minimum_profit or 0

    if not minimum_profit:
        label = "mainnet" if is_mainnet(network) else "unknown - treated as mainnet"
        raise ProfitThresholdError(
            f"Mainnet deployment requires a positive minimum profit threshold. "
            f"Network: {network} ({label}). Provided: {minimum_profit or 0} wei. "
            f"Fix: define DEFAULT_MINIMUM_PROFIT['{normalize_chain_name(network)}'] "
            f"or pass --minimum-profit."
        )

    if minimum_profit < RECOMMENDED_MINIMUM_PROFIT:
        logger.warning(
            "Low profit threshold for mainnet deployment on %s: %s (recommended >= %s)",
            network,
            format_ether(minimum_profit),
            format_ether(RECOMMENDED_MINIMUM_PROFIT),
        )

    return minimum_profit
