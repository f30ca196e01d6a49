"""Deployment gas and cost estimation."""

import logging
from typing import Any, Sequence

from .chain import ChainClient, ContractArtifact
from .exceptions import GasEstimationError, InsufficientBalanceError
from .networks import format_ether
from .types import GasEstimate

logger = logging.getLogger(__name__)


def estimate_deployment_cost(
    client: ChainClient, artifact: ContractArtifact, constructor_args: Sequence[Any]
) -> GasEstimate:
    """
    Estimate gas and cost of deploying a contract.

    Gas price and estimate are fetched fresh on every call.

    Raises:
        GasEstimationError: If the node cannot estimate the deployment
    """
    try:
        gas = client.estimate_deploy_gas(artifact, constructor_args)
        gas_price = client.get_gas_price()
    except GasEstimationError:
        raise
    except Exception as e:
        raise GasEstimationError(
            f"Gas estimation for {artifact.contract_name} failed: {e}"
        ) from e

    estimate = GasEstimate(gas=gas, gas_price=gas_price, cost=gas * gas_price)
    logger.info(
        "Estimated deployment cost: gas=%d gasPrice=%.3f gwei total=%s",
        estimate.gas,
        estimate.gas_price / 1e9,
        format_ether(estimate.cost),
    )
    return estimate


def ensure_affordable(estimate: GasEstimate, balance: int, deployer: str = "") -> None:
    """
    Raises:
        InsufficientBalanceError: With needed vs. available amounts
    """
    if balance < estimate.cost:
        raise InsufficientBalanceError(
            f"Deployer {deployer} cannot cover the deployment. "
            f"Needed: {format_ether(estimate.cost)} ({estimate.gas} gas at {estimate.gas_price} wei), "
            f"available: {format_ether(balance)}, "
            f"shortfall: {format_ether(estimate.cost - balance)}.",
            required=estimate.cost,
            available=balance,
        )
