"""Deployment pipeline: preflight, estimate, deploy, configure, verify, smoke test, record."""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from .chain import ChainClient, ContractArtifact
from .configuration import approve_routers, configure_minimum_profit, resolve_minimum_profit, router_remediation
from .constants import (
    APPROVED_ROUTERS,
    DEFAULT_TX_TIMEOUT,
    DEFAULT_VERIFICATION_INITIAL_DELAY,
    DEFAULT_VERIFICATION_RETRIES,
    REGISTRY_FILENAME,
)
from .estimation import ensure_affordable, estimate_deployment_cost
from .exceptions import BookkeepingError, ProfitThresholdError, RegistryError
from .explorer import manual_verification_command
from .networks import is_local, normalize_chain_name
from .paths import get_record_path, get_registry_path
from .preflight import check_deployer_balance, check_existing_deployment, confirm_mainnet_deployment
from .registry import RegistryStore
from .smoke import run_smoke_test
from .types import DeploymentReceipt, DeploymentRecord, PipelineConfig, PipelineResult, PipelineStage
from .verification import verify_with_retry

logger = logging.getLogger(__name__)


class DeploymentPipeline:
    """
    Deploys one contract type to one network and records the outcome.

    Stages run strictly in order. Failures up to and including the deploy
    transaction abort the run with no record written. Later failures are
    collected as warnings, and the record is still written, because the
    on-chain deployment cannot be undone.
    """

    def __init__(
        self,
        config: PipelineConfig,
        client: ChainClient,
        store: RegistryStore,
        network: str,
        artifact: ContractArtifact,
        verifier=None,
        minimum_profit: Optional[int] = None,
        routers: Optional[Sequence[str]] = None,
        allow_redeploy: bool = False,
        confirmation: Optional[str] = None,
        prompt: Callable[[str], str] = input,
        reserve: bool = True,
        tx_timeout: float = DEFAULT_TX_TIMEOUT,
        verification_retries: int = DEFAULT_VERIFICATION_RETRIES,
        verification_delay: float = DEFAULT_VERIFICATION_INITIAL_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            config: Contract type configuration
            client: Chain client for the target network
            store: Central registry store
            network: Target network (canonical or alias)
            artifact: Compiled contract
            verifier: Block-explorer verifier, or None to skip automatic verification
            minimum_profit: Threshold override in wei (defaults to network policy)
            routers: Router override (defaults to APPROVED_ROUTERS[network])
            allow_redeploy: Deploy even if a record exists
            confirmation: Pre-supplied mainnet confirmation token
            prompt: Interactive prompt for mainnet confirmation
            reserve: Take a registry reservation for the slot before deploying
            tx_timeout: Seconds to wait for each transaction
            verification_retries: Maximum verification attempts
            verification_delay: Initial verification backoff in seconds
            sleep: Sleep function (injectable for tests)
        """
        self.config = config
        self.client = client
        self.store = store
        self.network = normalize_chain_name(network)
        self.artifact = artifact
        self.verifier = verifier
        self.minimum_profit_override = minimum_profit
        self.routers = list(routers) if routers is not None else None
        self.allow_redeploy = allow_redeploy
        self.confirmation = confirmation
        self.prompt = prompt
        self.reserve = reserve
        self.tx_timeout = tx_timeout
        self.verification_retries = verification_retries
        self.verification_delay = verification_delay
        self.sleep = sleep

        self.stage = PipelineStage.IDLE
        self.warnings: List[str] = []

        self._balance = 0
        self._owner: Optional[str] = None
        self._constructor_args: List[Any] = []
        self._minimum_profit: Optional[int] = None
        self._reservation: Optional[str] = None
        self._router_failures: List[Any] = []
        self._smoke_crashed = False

    @property
    def contract_type(self) -> str:
        return self.config.contract_name

    def _advance(self, stage: PipelineStage) -> None:
        self.stage = stage
        logger.debug("%s on %s: %s", self.contract_type, self.network, stage.value)

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def run(self) -> PipelineResult:
        """
        Run every stage.

        Returns:
            PipelineResult with the written record and any degradation warnings

        Raises:
            ConfigurationError: Preflight failure, or invalid mainnet profit policy
            ResourceError: Insufficient balance or gas estimation failure
            ExecutionError: Deployment transaction reverted or was not mined
            RegistryReservedError: Another run is deploying the same slot
            BookkeepingError: Deployed but not recorded (the record is attached)
        """
        logger.info(
            "%s deployment to %s (chainId %d), deployer %s",
            self.contract_type,
            self.network,
            self.client.chain_id(),
            self.client.deployer_address,
        )

        self.preflight()
        try:
            self.estimate_cost()
            receipt = self.deploy()
        except BaseException:
            self._release_reservation()
            raise

        try:
            minimum_profit, approved = self.configure(receipt.contract_address)
        except ProfitThresholdError:
            self._release_reservation()
            raise

        verified = self.verify(receipt.contract_address)
        smoke_report = self.smoke_test(receipt.contract_address)

        record = self.build_record(receipt, minimum_profit, approved, verified, smoke_report)
        self.record(record)

        return PipelineResult(
            record=record,
            stage=self.stage,
            warnings=list(self.warnings),
            router_failures=list(self._router_failures),
            smoke_report=smoke_report,
        )

    def preflight(self) -> None:
        """Idle -> PreflightChecked. Nothing is broadcast here."""
        config = self.config
        if config.supported_networks and self.network not in config.supported_networks:
            logger.warning(
                "Network '%s' is not in the standard supported list for %s",
                self.network,
                self.contract_type,
            )

        confirm_mainnet_deployment(
            self.network, self.contract_type, confirmation=self.confirmation, prompt=self.prompt
        )
        check_existing_deployment(
            self.store, self.network, self.contract_type, allow_redeploy=self.allow_redeploy
        )
        self._balance = check_deployer_balance(self.client)

        deployer = self.client.deployer_address
        self._owner = (
            config.owner_address(deployer, self.network) if config.owner_address else deployer
        )
        self._constructor_args = list(config.constructor_args(self._owner, self.network))
        if self._constructor_args:
            logger.info("Constructor args: %s", self._constructor_args)

        # Checked before any gas is spent, and again at the Configured stage
        if config.configure_min_profit:
            self._minimum_profit = resolve_minimum_profit(
                self.network, config.protocol, self.minimum_profit_override
            )

        if self.reserve and not is_local(self.network):
            self._reservation = self.store.reserve(self.network, self.contract_type)

        self._advance(PipelineStage.PREFLIGHT_CHECKED)

    def estimate_cost(self) -> None:
        """PreflightChecked -> CostEstimated."""
        estimate = estimate_deployment_cost(self.client, self.artifact, self._constructor_args)
        ensure_affordable(estimate, self._balance, self.client.deployer_address)
        self._advance(PipelineStage.COST_ESTIMATED)

    def deploy(self) -> DeploymentReceipt:
        """CostEstimated -> Deployed. Never retried; a redeploy is a new run."""
        logger.info("Deploying %s...", self.contract_type)
        receipt = self.client.deploy(self.artifact, self._constructor_args, timeout=self.tx_timeout)
        logger.info(
            "%s deployed at %s (tx %s, block %d)",
            self.contract_type,
            receipt.contract_address,
            receipt.transaction_hash,
            receipt.block_number,
        )
        self._advance(PipelineStage.DEPLOYED)
        return receipt

    def configure(self, address: str):
        """
        Deployed -> Configured.

        Returns:
            Tuple of (minimum profit in wei or None, approved router list)

        Raises:
            ProfitThresholdError: Before any transaction, on invalid mainnet policy
        """
        config = self.config
        abi = self.artifact.abi
        minimum_profit: Optional[int] = None
        approved: List[str] = []

        if config.configure_min_profit:
            try:
                minimum_profit = configure_minimum_profit(
                    self.client,
                    address,
                    abi,
                    self.network,
                    config.protocol,
                    override=self._minimum_profit,
                )
            except ProfitThresholdError:
                raise
            except Exception as e:
                minimum_profit = 0
                self._warn(
                    f"Failed to set minimum profit on {address}: {e}. "
                    f"Call setMinimumProfit({self._minimum_profit}) manually before trading."
                )

        if config.configure_routers:
            routers = self.routers if self.routers is not None else APPROVED_ROUTERS.get(self.network, [])
            if routers:
                result = approve_routers(self.client, address, abi, routers)
                approved = result.succeeded
                self._router_failures = result.failed
                if result.failed:
                    self._warn(router_remediation(self.network, address, result.failed))
            else:
                self._warn(
                    f"No routers configured for {self.network}; approve routers manually "
                    f"before the contract can execute swaps."
                )

        self._advance(PipelineStage.CONFIGURED)
        return minimum_profit, approved

    def verify(self, address: str) -> bool:
        """Configured -> Verified. Exhausted retries leave verified=False."""
        verified = False
        if self.config.skip_verification:
            logger.info("Verification skipped for %s", self.contract_type)
        elif not is_local(self.network):
            try:
                verified = verify_with_retry(
                    self.verifier,
                    address,
                    self.artifact,
                    self._constructor_args,
                    self.network,
                    max_retries=self.verification_retries,
                    initial_delay=self.verification_delay,
                    sleep=self.sleep,
                )
            except Exception as e:
                logger.exception("Unexpected verification error for %s", address)
                verified = False
                self._warn(f"Verification error: {e}")

            if not verified:
                self._warn(
                    "Contract is not verified. Verify manually with:\n  "
                    + manual_verification_command(self.network, address, self._constructor_args)
                )

        self._advance(PipelineStage.VERIFIED)
        return verified

    def smoke_test(self, address: str):
        """Verified -> SmokeTested. Failures mark the deployment for investigation."""
        report = None
        try:
            report = run_smoke_test(
                self.config.smoke_profile,
                self.client,
                address,
                self.artifact.abi,
                expected_owner=self._owner,
            )
        except Exception as e:
            logger.exception("Smoke test crashed for %s", address)
            self._smoke_crashed = True
            self._warn(f"Smoke test could not run: {e}. Deployment needs investigation.")

        if report is not None and not report.passed:
            failed = ", ".join(r.name for r in report.failures if r.critical)
            self._warn(f"Smoke test failed ({failed}). Deployment needs investigation.")

        self._advance(PipelineStage.SMOKE_TESTED)
        return report

    def build_record(
        self,
        receipt: DeploymentReceipt,
        minimum_profit: Optional[int],
        approved: List[str],
        verified: bool,
        smoke_report,
    ) -> DeploymentRecord:
        config = self.config
        extras = config.result_extras(self.network) if config.result_extras else {}
        has_owner = bool(self._constructor_args) or config.owner_address is not None
        if self._smoke_crashed:
            smoke_passed: Optional[bool] = False
        else:
            smoke_passed = smoke_report.passed if smoke_report is not None else None

        return DeploymentRecord(
            network=self.network,
            chain_id=self.client.chain_id(),
            contract_address=receipt.contract_address,
            deployer_address=self.client.deployer_address,
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
            timestamp=receipt.timestamp,
            owner_address=self._owner if has_owner else None,
            minimum_profit=str(minimum_profit) if minimum_profit is not None else None,
            approved_routers=list(approved),
            gas_used=str(receipt.gas_used),
            verified=verified,
            smoke_test_passed=smoke_passed,
            extras={k: v for k, v in extras.items() if v is not None},
        )

    def record(self, record: DeploymentRecord) -> None:
        """
        SmokeTested -> Recorded.

        Raises:
            BookkeepingError: If any registry write fails; the contract is live
                but later runs will not know about it until the registry is fixed
        """
        deployments_dir = self.store.path.parent
        record_path = get_record_path(deployments_dir, self.network, self.contract_type)

        try:
            deployments_dir.mkdir(parents=True, exist_ok=True)
            with open(record_path, "w") as f:
                json.dump(record.to_dict(), f, indent=2)
            logger.info("Deployment saved to %s", record_path)

            self.store.put(self.network, self.contract_type, record)
            self._reservation = None
            logger.info("Central registry updated: %s [%s]", self.store.path, self.contract_type)

            if self.config.registry_name != REGISTRY_FILENAME:
                contract_store = RegistryStore(deployments_dir / self.config.registry_name)
                contract_store.put(self.network, self.contract_type, record)
                logger.info("Per-contract registry updated: %s", contract_store.path)
        except (RegistryError, OSError) as e:
            logger.error(
                "BOOKKEEPING FAILURE: %s is deployed at %s on %s but the registry was not "
                "updated: %s\nAdd this entry under [%r][%r] in %s by hand:\n%s",
                self.contract_type,
                record.contract_address,
                self.network,
                e,
                self.network,
                self.contract_type,
                self.store.path,
                json.dumps(record.to_dict(), indent=2),
            )
            self._release_reservation()
            raise BookkeepingError(
                f"{self.contract_type} deployed at {record.contract_address} on {self.network} "
                f"but not recorded in {self.store.path}: {e}",
                record=record,
            ) from e

        self._advance(PipelineStage.RECORDED)

    def _release_reservation(self) -> None:
        if self._reservation is None:
            return
        token, self._reservation = self._reservation, None
        try:
            self.store.release(self.network, self.contract_type, token)
        except (RegistryError, OSError) as e:
            logger.error(
                "Could not release reservation for %s on %s: %s (it expires on its own)",
                self.contract_type,
                self.network,
                e,
            )


def run_pipeline(
    config: PipelineConfig,
    client: ChainClient,
    network: str,
    artifact: ContractArtifact,
    deployments_dir: Optional[Path] = None,
    **options: Any,
) -> PipelineResult:
    """
    Convenience wrapper: run a pipeline against ``<deployments_dir>/registry.json``.

    Args:
        config: Contract type configuration
        client: Chain client
        network: Target network
        artifact: Compiled contract
        deployments_dir: Directory holding registry files (defaults to ./deployments)
        **options: Passed through to DeploymentPipeline

    Returns:
        PipelineResult
    """
    store = RegistryStore(get_registry_path(deployments_dir))
    return DeploymentPipeline(config, client, store, network, artifact, **options).run()
