"""Data types and dataclasses for flashloan-deployments library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def checksum_address(address: str) -> str:
    """
    Validate and checksum a 20-byte hex address.

    Raises:
        ValueError: If the address is malformed or the zero address
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    checksummed = Web3.to_checksum_address(address)
    if checksummed == ZERO_ADDRESS:
        raise ValueError("Zero address is not a valid contract address")
    return checksummed


class PipelineStage(Enum):
    """
    Pipeline states, in execution order.

    Value strings are used in logs and error messages.
    """

    IDLE = "idle"
    PREFLIGHT_CHECKED = "preflight-checked"
    COST_ESTIMATED = "cost-estimated"
    DEPLOYED = "deployed"
    CONFIGURED = "configured"
    VERIFIED = "verified"
    SMOKE_TESTED = "smoke-tested"
    RECORDED = "recorded"


class SmokeProfile(Enum):
    """Read-only check sets run against a freshly deployed contract."""

    FLASH_LOAN = "flashLoan"
    COMMIT_REVEAL = "commitReveal"
    MULTI_PATH_QUOTER = "multiPathQuoter"
    NONE = "none"


class VerificationStatus(Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already-verified"


# Camel-case keys of the registry JSON schema, in output order
_RECORD_FIELDS = (
    ("network", "network"),
    ("chain_id", "chainId"),
    ("contract_address", "contractAddress"),
    ("owner_address", "ownerAddress"),
    ("deployer_address", "deployerAddress"),
    ("transaction_hash", "transactionHash"),
    ("block_number", "blockNumber"),
    ("timestamp", "timestamp"),
    ("minimum_profit", "minimumProfit"),
    ("approved_routers", "approvedRouters"),
    ("gas_used", "gasUsed"),
    ("verified", "verified"),
    ("smoke_test_passed", "smokeTestPassed"),
)


@dataclass
class DeploymentRecord:
    """Evidence of one deployment, as stored in the registry."""

    # Required fields
    network: str  # Canonical network name, e.g. "sepolia"
    chain_id: int
    contract_address: str  # Checksummed address
    deployer_address: str
    transaction_hash: str
    block_number: int
    timestamp: int  # Unix timestamp of the deployment block

    # Optional fields
    owner_address: Optional[str] = None
    minimum_profit: Optional[str] = None  # Decimal wei string
    approved_routers: List[str] = field(default_factory=list)
    gas_used: Optional[str] = None
    verified: bool = False
    smoke_test_passed: Optional[bool] = None
    extras: Dict[str, Any] = field(default_factory=dict)  # Contract-specific fields

    def __post_init__(self):
        self.contract_address = checksum_address(self.contract_address)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the registry JSON schema (camelCase, extras at top level)."""
        data: Dict[str, Any] = {}
        for attr, key in _RECORD_FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            data[key] = list(value) if isinstance(value, list) else value
        for key, value in self.extras.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        """
        Build a record from registry JSON.

        Unknown keys are kept in extras so that re-serializing is lossless.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the contract address is invalid
        """
        known = {key: attr for attr, key in _RECORD_FIELDS}
        kwargs: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for key, value in data.items():
            if key in known:
                kwargs[known[key]] = value
            else:
                extras[key] = value

        for required in ("network", "chainId", "contractAddress", "deployerAddress",
                         "transactionHash", "blockNumber", "timestamp"):
            if required not in data:
                raise KeyError(f"Deployment record is missing required field '{required}'")

        if kwargs.get("approved_routers") is None:
            kwargs["approved_routers"] = []
        kwargs["verified"] = bool(kwargs.get("verified", False))
        return cls(extras=extras, **kwargs)


@dataclass
class GasEstimate:
    gas: int
    gas_price: int  # wei per gas
    cost: int  # wei


@dataclass
class DeploymentReceipt:
    """Metadata of a mined contract-creation transaction."""

    contract_address: str
    transaction_hash: str
    block_number: int
    gas_used: int
    timestamp: int


@dataclass
class RouterApprovalResult:
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (router, error)


@dataclass
class SmokeCheckResult:
    name: str
    passed: bool
    critical: bool
    detail: str = ""


@dataclass
class SmokeTestReport:
    name: str
    results: List[SmokeCheckResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """True if every critical check passed."""
        return all(r.passed for r in self.results if r.critical)

    @property
    def failures(self) -> List[SmokeCheckResult]:
        return [r for r in self.results if not r.passed]


@dataclass
class PipelineConfig:
    """
    Declarative description of how to deploy one contract type.

    Consumed uniformly by DeploymentPipeline; one instance per contract type.
    """

    contract_name: str  # Registry key, e.g. "FlashLoanArbitrage"
    constructor_args: Callable[[str, str], List[Any]]  # (owner, network) -> args
    artifact_name: Optional[str] = None  # Defaults to contract_name
    registry_name: str = "registry.json"
    configure_min_profit: bool = True
    configure_routers: bool = True
    protocol: Optional[str] = None  # "aave", "balancer", "pancakeswap", "syncswap"
    smoke_profile: SmokeProfile = SmokeProfile.FLASH_LOAN
    result_extras: Optional[Callable[[str], Dict[str, Any]]] = None  # (network) -> fields
    skip_verification: bool = False
    supported_networks: Optional[List[str]] = None  # Informational only
    owner_address: Optional[Callable[[str, str], str]] = None  # (deployer, network) -> owner

    @property
    def artifact(self) -> str:
        return self.artifact_name or self.contract_name


@dataclass
class PipelineResult:
    """Outcome of a pipeline run that reached the deployment stage."""

    record: DeploymentRecord
    stage: PipelineStage
    warnings: List[str] = field(default_factory=list)
    router_failures: List[Tuple[str, str]] = field(default_factory=list)
    smoke_report: Optional[SmokeTestReport] = None

    @property
    def needs_investigation(self) -> bool:
        """True if the smoke test failed or crashed."""
        return self.record.smoke_test_passed is False

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)
