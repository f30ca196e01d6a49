"""Checks run before any gas is spent."""

import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional

from .chain import ChainClient
from .constants import MAINNET_CONFIRMATION_TOKEN, REDEPLOY_CONFIRMATION_TOKEN
from .exceptions import AlreadyDeployedError, DeploymentCancelledError, InsufficientBalanceError
from .networks import format_ether, is_local, requires_production_guards
from .registry import RegistryStore

logger = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() == "true"


def check_deployer_balance(client: ChainClient, minimum: Optional[int] = None) -> int:
    """
    Check that the deployer can pay for anything at all.

    Args:
        client: Chain client
        minimum: Optional minimum balance in wei

    Returns:
        Deployer balance in wei

    Raises:
        InsufficientBalanceError: If the balance is zero or below minimum
    """
    deployer = client.deployer_address
    balance = client.get_balance(deployer)
    logger.info("Deployer %s balance: %s", deployer, format_ether(balance))

    if balance == 0:
        raise InsufficientBalanceError(
            f"Deployer has zero balance. Fund {deployer} and retry.",
            required=minimum or 0,
            available=0,
        )

    if minimum is not None and balance < minimum:
        raise InsufficientBalanceError(
            f"Deployer balance too low. Required: {format_ether(minimum)}, "
            f"available: {format_ether(balance)}, shortfall: {format_ether(minimum - balance)}. "
            f"Fund {deployer} and retry.",
            required=minimum,
            available=balance,
        )

    return balance


def confirm_mainnet_deployment(
    network: str,
    contract_name: str,
    confirmation: Optional[str] = None,
    prompt: Callable[[str], str] = input,
) -> None:
    """
    Require explicit operator confirmation for mainnet-class networks.

    The confirmation is taken from, in order: the ``confirmation`` argument,
    $DEPLOY_CONFIRMATION, $SKIP_CONFIRMATION=true / $CI=true, or an
    interactive prompt.

    Raises:
        DeploymentCancelledError: If the operator did not type the token
    """
    if not requires_production_guards(network):
        return

    if confirmation is None:
        confirmation = os.environ.get("DEPLOY_CONFIRMATION")

    if confirmation is None and (_env_flag("SKIP_CONFIRMATION") or _env_flag("CI")):
        logger.info("Non-interactive mode: auto-confirming mainnet deployment")
        return

    if confirmation is None:
        logger.warning(
            "MAINNET DEPLOYMENT: %s on %s. This will consume real funds.", contract_name, network
        )
        try:
            confirmation = prompt(
                f"You are about to deploy {contract_name} to {network} MAINNET.\n"
                f"  Type '{MAINNET_CONFIRMATION_TOKEN}' to continue, anything else to abort: "
            )
        except EOFError:
            confirmation = ""

    if confirmation.strip() != MAINNET_CONFIRMATION_TOKEN:
        raise DeploymentCancelledError(
            f"Mainnet deployment cancelled. Network: {network}, contract: {contract_name}. "
            f"Set DEPLOY_CONFIRMATION={MAINNET_CONFIRMATION_TOKEN} to confirm non-interactively."
        )

    logger.info("Mainnet deployment confirmed")


def redeploy_allowed() -> bool:
    """True if the operator set $ALLOW_REDEPLOY to the redeploy token."""
    return os.environ.get("ALLOW_REDEPLOY") == REDEPLOY_CONFIRMATION_TOKEN


def check_existing_deployment(
    store: RegistryStore,
    network: str,
    contract_type: str,
    allow_redeploy: bool = False,
) -> None:
    """
    Refuse to deploy over an existing registry record.

    Local networks are skipped, since their state is discarded on restart.

    Raises:
        AlreadyDeployedError: If a record exists and redeploy was not allowed
        RegistryCorruptError: If the registry cannot be read
    """
    if is_local(network):
        return

    raw = store.get_raw(network, contract_type)
    if not raw:
        return

    address = raw.get("contractAddress", "") if isinstance(raw, dict) else str(raw)
    deployed_at = raw.get("timestamp") if isinstance(raw, dict) else None
    deployed_at_str = (
        datetime.fromtimestamp(deployed_at, tz=timezone.utc).isoformat()
        if isinstance(deployed_at, (int, float))
        else "unknown date"
    )

    if allow_redeploy:
        logger.warning(
            "Re-deploying %s on %s. The old contract at %s (deployed %s) stays on-chain "
            "but the registry will point to the new address.",
            contract_type,
            network,
            address,
            deployed_at_str,
        )
        return

    raise AlreadyDeployedError(
        f"{contract_type} is already deployed on {network} at {address} "
        f"(deployed {deployed_at_str}). To deploy a new instance, set "
        f"ALLOW_REDEPLOY={REDEPLOY_CONFIRMATION_TOKEN}.",
        existing_address=address,
    )
