"""Human-readable deployment summaries and follow-up instructions."""

from datetime import datetime, timezone
from typing import List, Sequence

from .networks import format_ether
from .types import DeploymentRecord

RULE = "=" * 40


def format_deployment_summary(record: DeploymentRecord, warnings: Sequence[str] = ()) -> str:
    """
    Format a deployment record as a console summary.

    Args:
        record: Deployment record
        warnings: Degradation warnings collected by the pipeline

    Returns:
        Multi-line summary text
    """
    deployed_at = datetime.fromtimestamp(record.timestamp, tz=timezone.utc).isoformat()
    lines = [
        RULE,
        "Deployment Summary",
        RULE,
        f"Network:          {record.network} (chainId: {record.chain_id})",
        f"Contract:         {record.contract_address}",
    ]
    if record.owner_address:
        lines.append(f"Owner:            {record.owner_address}")
    lines.extend([
        f"Deployer:         {record.deployer_address}",
        f"Transaction:      {record.transaction_hash}",
        f"Block:            {record.block_number}",
        f"Timestamp:        {deployed_at}",
    ])
    if record.minimum_profit is not None:
        lines.append(f"Minimum Profit:   {format_ether(int(record.minimum_profit))}")
    if record.approved_routers or record.minimum_profit is not None:
        lines.append(f"Approved Routers: {len(record.approved_routers)}")
    if record.gas_used:
        lines.append(f"Gas Used:         {record.gas_used}")
    lines.append(f"Verified:         {'Yes' if record.verified else 'No'}")
    if record.smoke_test_passed is not None:
        lines.append(
            f"Smoke Test:       {'Passed' if record.smoke_test_passed else 'FAILED (needs investigation)'}"
        )

    if warnings:
        lines.append(RULE)
        lines.append(f"Warnings ({len(warnings)}):")
        for warning in warnings:
            first, *rest = warning.split("\n")
            lines.append(f"  - {first}")
            lines.extend(f"    {line}" for line in rest)

    lines.append(RULE)
    return "\n".join(lines)


def format_next_steps(contract_type: str, record: DeploymentRecord) -> str:
    """Follow-up instructions for the operator, per contract type."""
    steps: List[str] = []

    if not record.verified:
        steps.append(f"Verify the contract on the {record.network} block explorer")

    if contract_type == "MultiPathQuoter":
        steps.append(
            f"Set MULTI_PATH_QUOTER_{record.network.upper().replace('-', '_')}="
            f"{record.contract_address} in the execution engine environment"
        )
        steps.append("Batched quotes are read-only; no owner configuration is required")
    elif contract_type == "CommitRevealArbitrage":
        steps.append(
            "Approve DEX routers with addApprovedRouter() before submitting commitments"
        )
        steps.append("Commit and reveal from the owner account; reveals must respect MIN_DELAY_BLOCKS")
    else:
        if not record.approved_routers:
            steps.append("Approve DEX routers with addApprovedRouter()")
        if not record.minimum_profit or int(record.minimum_profit) == 0:
            steps.append("Set a positive minimum profit with setMinimumProfit() before mainnet trading")
        steps.append(
            f"Point the execution engine at {record.contract_address} for {contract_type} on {record.network}"
        )
        steps.append("Run a small test arbitrage to confirm the flash loan callback path")

    if record.smoke_test_passed is False:
        steps.insert(0, "Investigate the failed smoke test before routing any trades to this contract")

    lines = ["Next steps:"]
    lines.extend(f"  {i}. {step}" for i, step in enumerate(steps, start=1))
    return "\n".join(lines)
