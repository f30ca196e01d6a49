"""Shared pytest fixtures for flashloan-deployments tests."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from flashloan_deployments.chain import ChainClient, ContractArtifact
from flashloan_deployments.exceptions import TransactionRevertedError
from flashloan_deployments.registry import RegistryStore
from flashloan_deployments.types import DeploymentReceipt, DeploymentRecord

DEPLOYER = "0x" + "11" * 20
OWNER = "0x" + "22" * 20
CONTRACT = "0x" + "c0" * 20
TX_HASH = "0x" + "ab" * 32
GWEI = 10**9
ETHER = 10**18

FLASH_LOAN_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "pool", "type": "address"},
            {"name": "owner", "type": "address"},
        ],
    },
    {"type": "function", "name": "owner", "inputs": [], "outputs": [{"type": "address"}]},
    {"type": "function", "name": "paused", "inputs": [], "outputs": [{"type": "bool"}]},
    {"type": "function", "name": "minimumProfit", "inputs": [], "outputs": [{"type": "uint256"}]},
    {
        "type": "function",
        "name": "setMinimumProfit",
        "inputs": [{"name": "value", "type": "uint256"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "addApprovedRouter",
        "inputs": [{"name": "router", "type": "address"}],
        "outputs": [],
    },
]


class FakeChainClient(ChainClient):
    """In-memory chain: records every broadcast and answers calls from ``state``."""

    def __init__(
        self,
        balance: int = 2 * ETHER,
        gas: int = 1_000_000,
        gas_price: int = 20 * GWEI,
        chain_id: int = 11155111,
        deployer: str = DEPLOYER,
        contract_address: str = CONTRACT,
        failing_functions: Sequence[str] = (),
        failing_calls: Sequence[tuple] = (),
        deploy_error: Optional[Exception] = None,
    ):
        self.balance = balance
        self.gas = gas
        self.gas_price = gas_price
        self._chain_id = chain_id
        self._deployer = deployer
        self.contract_address = contract_address
        self.failing_functions = set(failing_functions)
        self.failing_calls = set(failing_calls)
        self.deploy_error = deploy_error

        self.deployments: List[List[Any]] = []
        self.transactions: List[tuple] = []
        self.state: Dict[str, Any] = {"paused": False, "minimumProfit": 0}

    @property
    def deployer_address(self) -> str:
        return self._deployer

    def chain_id(self) -> int:
        return self._chain_id

    def get_balance(self, address: str) -> int:
        return self.balance

    def get_gas_price(self) -> int:
        return self.gas_price

    def estimate_deploy_gas(self, artifact, args) -> int:
        return self.gas

    def deploy(self, artifact, args, timeout=300) -> DeploymentReceipt:
        if self.deploy_error is not None:
            raise self.deploy_error
        self.deployments.append(list(args))
        self.state.setdefault("owner", args[-1] if args else self._deployer)
        return DeploymentReceipt(
            contract_address=self.contract_address,
            transaction_hash=TX_HASH,
            block_number=1234,
            gas_used=self.gas * 9 // 10,
            timestamp=1_700_000_000,
        )

    def transact(self, address, abi, function, args=(), timeout=300) -> str:
        if function in self.failing_functions or (function, tuple(args)) in self.failing_calls:
            raise TransactionRevertedError(f"{function} reverted\nrevert data: 0x")
        self.transactions.append((function, list(args)))
        if function == "setMinimumProfit":
            self.state["minimumProfit"] = args[0]
        return TX_HASH

    def call(self, address, abi, function, args=()):
        return self.state[function]

    def get_code(self, address: str) -> bytes:
        return b"\x60\x80\x60\x40" * 64 if self.deployments else b""

    def functions_sent(self, name: str) -> List[List[Any]]:
        return [args for function, args in self.transactions if function == name]


@pytest.fixture
def fake_client() -> FakeChainClient:
    """Funded sepolia deployer."""
    return FakeChainClient()


@pytest.fixture
def sample_artifact() -> ContractArtifact:
    """FlashLoanArbitrage artifact with build info attached."""
    return ContractArtifact(
        contract_name="FlashLoanArbitrage",
        abi=FLASH_LOAN_ABI,
        bytecode="0x6080604052",
        source_name="contracts/FlashLoanArbitrage.sol",
        compiler_version="0.8.19+commit.7dd6d404",
        standard_json_input={"language": "Solidity", "sources": {}},
    )


@pytest.fixture
def deployments_dir(tmp_path: Path) -> Path:
    """Create a temporary deployments directory for tests."""
    path = tmp_path / "deployments"
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def registry_path(deployments_dir: Path) -> Path:
    return deployments_dir / "registry.json"


@pytest.fixture
def store(registry_path: Path) -> RegistryStore:
    return RegistryStore(registry_path, retry_delay=0.01)


@pytest.fixture
def sample_record() -> DeploymentRecord:
    return DeploymentRecord(
        network="sepolia",
        chain_id=11155111,
        contract_address=CONTRACT,
        deployer_address=DEPLOYER,
        transaction_hash=TX_HASH,
        block_number=1234,
        timestamp=1_700_000_000,
        owner_address=DEPLOYER,
        minimum_profit="1000000000000000",
        approved_routers=["0xC532a74256D3Db42D0Bf7a0400fEFDbad7694008"],
        gas_used="900000",
        verified=True,
    )


@pytest.fixture
def existing_registry(registry_path: Path, sample_record: DeploymentRecord) -> Path:
    """Registry file holding one sepolia FlashLoanArbitrage record."""
    with open(registry_path, "w") as f:
        json.dump({"sepolia": {"FlashLoanArbitrage": sample_record.to_dict()}}, f, indent=2)
    return registry_path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep operator environment out of tests."""
    for name in (
        "DEPLOY_CONFIRMATION",
        "SKIP_CONFIRMATION",
        "CI",
        "ALLOW_REDEPLOY",
        "ETHERSCAN_API_KEY",
        "DEPLOYER_PRIVATE_KEY",
        "DEPLOYMENTS_DIR",
        "DEPLOY_NETWORKS",
        "DEPLOY_CONTRACTS",
        "DRY_RUN",
    ):
        monkeypatch.delenv(name, raising=False)
