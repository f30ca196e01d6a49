"""Post-deployment configuration: minimum profit and router approvals."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .chain import ChainClient
from .networks import format_ether, get_minimum_profit_for_protocol, validate_minimum_profit
from .types import RouterApprovalResult

logger = logging.getLogger(__name__)

# Router admin surface shared by the flash loan contracts
ROUTER_ADMIN_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "addApprovedRouter",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "router", "type": "address"}],
        "outputs": [],
    },
]


def resolve_minimum_profit(
    network: str, protocol: Optional[str], override: Optional[int] = None
) -> int:
    """
    Pick and validate the minimum profit threshold for a deployment.

    Args:
        network: Canonical network name
        protocol: Flash loan protocol, or None if the contract has none
        override: Operator-supplied threshold in wei (0 is a valid override)

    Returns:
        Validated threshold in wei

    Raises:
        ProfitThresholdError: If a mainnet-class network ends up with no positive threshold
    """
    if override is not None:
        minimum_profit: Optional[int] = override
    elif protocol is not None:
        minimum_profit = get_minimum_profit_for_protocol(network, protocol)
    else:
        minimum_profit = None
    return validate_minimum_profit(network, minimum_profit)


def configure_minimum_profit(
    client: ChainClient,
    address: str,
    abi: List[Dict[str, Any]],
    network: str,
    protocol: Optional[str],
    override: Optional[int] = None,
) -> int:
    """
    Validate the threshold and set it on-chain when positive.

    Returns:
        The threshold in wei (0 if not set)

    Raises:
        ProfitThresholdError: Before any transaction, on invalid mainnet policy
    """
    minimum_profit = resolve_minimum_profit(network, protocol, override)

    if minimum_profit > 0:
        logger.info("Setting minimum profit: %s native token", format_ether(minimum_profit))
        client.transact(address, abi, "setMinimumProfit", [minimum_profit])
    else:
        logger.info("Minimum profit is 0 on %s; leaving contract default", network)

    return minimum_profit


def approve_routers(
    client: ChainClient,
    address: str,
    abi: List[Dict[str, Any]],
    routers: Sequence[str],
) -> RouterApprovalResult:
    """
    Approve DEX routers, one transaction each.

    A failed approval does not stop the others.

    Returns:
        RouterApprovalResult with succeeded routers and (router, error) failures
    """
    result = RouterApprovalResult()
    logger.info("Approving %d DEX routers", len(routers))

    for router in routers:
        try:
            client.transact(address, abi, "addApprovedRouter", [router])
        except Exception as e:
            error = str(e).split("\n")[0]
            result.failed.append((router, error))
            logger.error("Failed to approve router %s: %s", router, error)
            continue
        result.succeeded.append(router)
        logger.info("Approved router %s", router)

    logger.info("Router approval: %d/%d succeeded", len(result.succeeded), len(routers))
    return result


def router_remediation(network: str, address: str, failed: Sequence[Any]) -> str:
    """Operator instructions for routers that failed to approve."""
    lines = [
        f"{len(failed)} router approval(s) failed on {network}; the contract is partially "
        f"configured. Approve these manually before executing trades:"
    ]
    for router, error in failed:
        lines.append(
            f"  flashloan-deploy approve-router --network {network} "
            f"--address {address} --router {router}  # {error}"
        )
    return "\n".join(lines)
