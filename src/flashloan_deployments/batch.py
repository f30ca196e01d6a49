"""Batch driver: deploy every missing (contract type, network) pair of a manifest."""

import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .exceptions import ExecutionError
from .networks import normalize_chain_name
from .registry import RegistryStore

logger = logging.getLogger(__name__)

# Deployment order: testnets first, then mainnets; within a network, the
# stateless quoter last
DEPLOYMENT_MANIFEST: List[Tuple[str, str]] = [
    ("FlashLoanArbitrage", "sepolia"),
    ("CommitRevealArbitrage", "sepolia"),
    ("MultiPathQuoter", "sepolia"),
    ("CommitRevealArbitrage", "arbitrumSepolia"),
    ("MultiPathQuoter", "arbitrumSepolia"),
    ("MultiPathQuoter", "baseSepolia"),
    ("SyncSwapFlashArbitrage", "zksync-testnet"),
    ("FlashLoanArbitrage", "ethereum"),
    ("BalancerV2FlashArbitrage", "ethereum"),
    ("CommitRevealArbitrage", "ethereum"),
    ("MultiPathQuoter", "ethereum"),
    ("FlashLoanArbitrage", "arbitrum"),
    ("BalancerV2FlashArbitrage", "arbitrum"),
    ("PancakeSwapFlashArbitrage", "arbitrum"),
    ("MultiPathQuoter", "arbitrum"),
    ("FlashLoanArbitrage", "base"),
    ("BalancerV2FlashArbitrage", "base"),
    ("PancakeSwapFlashArbitrage", "base"),
    ("FlashLoanArbitrage", "optimism"),
    ("BalancerV2FlashArbitrage", "optimism"),
    ("FlashLoanArbitrage", "polygon"),
    ("BalancerV2FlashArbitrage", "polygon"),
    ("PancakeSwapFlashArbitrage", "bsc"),
    ("FlashLoanArbitrage", "avalanche"),
    ("SyncSwapFlashArbitrage", "zksync"),
    ("PancakeSwapFlashArbitrage", "zksync"),
    ("PancakeSwapFlashArbitrage", "linea"),
]

SKIP = "skip"
PENDING = "pending"
SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass
class PlanEntry:
    contract_type: str
    network: str
    status: str = PENDING
    error: Optional[str] = None


@dataclass
class BatchReport:
    entries: List[PlanEntry] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for entry in self.entries if entry.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def skipped(self) -> int:
        return self._count(SKIP)

    @property
    def pending(self) -> int:
        return self._count(PENDING)

    @property
    def exit_code(self) -> int:
        """Non-zero if any pair failed."""
        return 1 if self.failed else 0

    def format(self) -> str:
        lines = []
        for entry in self.entries:
            line = f"  [{entry.status:>9}] {entry.contract_type} on {entry.network}"
            if entry.error:
                line += f": {entry.error}"
            lines.append(line)
        lines.append(
            f"Succeeded: {self.succeeded}  Failed: {self.failed}  "
            f"Skipped: {self.skipped}  Pending: {self.pending}"
        )
        return "\n".join(lines)


Runner = Callable[[PlanEntry], None]


def _split_filter(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


def filters_from_env() -> Tuple[Optional[List[str]], Optional[List[str]], bool]:
    """
    Read batch filters from the environment.

    Returns:
        Tuple of (networks from $DEPLOY_NETWORKS, contract types from
        $DEPLOY_CONTRACTS, dry run from $DRY_RUN); None means no filter
    """
    networks = _split_filter(os.environ.get("DEPLOY_NETWORKS"))
    contracts = _split_filter(os.environ.get("DEPLOY_CONTRACTS"))
    dry_run = os.environ.get("DRY_RUN", "").lower() in ("1", "true", "yes")
    return networks, contracts, dry_run


def build_plan(
    store: RegistryStore,
    manifest: Sequence[Tuple[str, str]] = DEPLOYMENT_MANIFEST,
    networks: Optional[Iterable[str]] = None,
    contracts: Optional[Iterable[str]] = None,
) -> List[PlanEntry]:
    """
    Classify manifest pairs as skip (already recorded) or pending.

    Args:
        store: Central registry store
        manifest: Ordered (contract type, network) pairs
        networks: Only include these networks (aliases accepted)
        contracts: Only include these contract types

    Returns:
        Plan entries in manifest order

    Raises:
        RegistryCorruptError: If the registry cannot be read
    """
    network_filter = {normalize_chain_name(n) for n in networks} if networks else None
    contract_filter = set(contracts) if contracts else None
    document = store.load()

    plan = []
    for contract_type, network in manifest:
        network = normalize_chain_name(network)
        if network_filter is not None and network not in network_filter:
            continue
        if contract_filter is not None and contract_type not in contract_filter:
            continue

        entry = document.get(network)
        recorded = isinstance(entry, dict) and bool(entry.get(contract_type))
        plan.append(PlanEntry(contract_type, network, SKIP if recorded else PENDING))

    logger.info(
        "Batch plan: %d pending, %d already deployed",
        sum(1 for e in plan if e.status == PENDING),
        sum(1 for e in plan if e.status == SKIP),
    )
    return plan


def make_subprocess_runner(
    deployments_dir: Optional[Union[Path, str]] = None,
    artifacts_dir: Optional[Union[Path, str]] = None,
    verbose: bool = False,
) -> Runner:
    """
    Build a runner that deploys one pair in a child process.

    The child writes to the same registry the plan was built from.

    Args:
        deployments_dir: Registry directory passed to the child
        artifacts_dir: Hardhat artifacts directory passed to the child
        verbose: Enable debug logging in the child

    Returns:
        Runner raising ExecutionError if the child exits non-zero
    """

    def run(entry: PlanEntry) -> None:
        command = [sys.executable, "-m", "flashloan_deployments"]
        if verbose:
            command.append("-v")
        if deployments_dir is not None:
            command += ["--deployments-dir", str(Path(deployments_dir).absolute())]
        command += ["deploy", entry.contract_type, "--network", entry.network]
        if artifacts_dir is not None:
            command += ["--artifacts-dir", str(Path(artifacts_dir).absolute())]

        logger.debug("Running: %s", " ".join(command))
        result = subprocess.run(command, check=False)
        if result.returncode != 0:
            raise ExecutionError(
                f"deploy {entry.contract_type} --network {entry.network} exited with code {result.returncode}"
            )

    return run


subprocess_runner = make_subprocess_runner()


def execute_plan(
    plan: List[PlanEntry], runner: Runner = subprocess_runner, dry_run: bool = False
) -> BatchReport:
    """
    Run pending entries strictly in plan order.

    A failing pair is recorded and the batch moves on to the next one.

    Args:
        plan: Entries from build_plan
        runner: Deploys one pair; raises on failure
        dry_run: Only report the plan

    Returns:
        BatchReport over all entries
    """
    report = BatchReport(entries=plan)
    if dry_run:
        logger.info("Dry run: nothing deployed")
        return report

    pending = [entry for entry in plan if entry.status == PENDING]
    for i, entry in enumerate(pending, start=1):
        logger.info("[%d/%d] Deploying %s on %s", i, len(pending), entry.contract_type, entry.network)
        try:
            runner(entry)
        except Exception as e:
            entry.status = FAILED
            entry.error = str(e).split("\n")[0] or type(e).__name__
            logger.error("%s on %s failed: %s", entry.contract_type, entry.network, entry.error)
            continue
        entry.status = SUCCEEDED
        logger.info("%s on %s succeeded", entry.contract_type, entry.network)

    logger.info(
        "Batch finished: %d succeeded, %d failed, %d skipped",
        report.succeeded,
        report.failed,
        report.skipped,
    )
    return report
