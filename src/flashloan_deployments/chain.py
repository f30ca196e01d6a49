"""Chain RPC access: contract artifacts and the web3-backed client."""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from .constants import DEFAULT_RPC_TIMEOUT, DEFAULT_TX_TIMEOUT
from .exceptions import (
    ConfigurationError,
    GasEstimationError,
    TransactionRevertedError,
    TransactionTimeoutError,
)
from .networks import get_network_config, is_local, normalize_chain_name
from .types import DeploymentReceipt

logger = logging.getLogger(__name__)

# Gas limit headroom over the node's estimate
GAS_LIMIT_MULTIPLIER = 1.2

DEFAULT_LOCAL_RPC_URL = "http://127.0.0.1:8545"


@dataclass
class ContractArtifact:
    """Compiled contract, as produced by Hardhat (artifacts/contracts/<Name>.sol/<Name>.json)."""

    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source_name: Optional[str] = None  # e.g. "contracts/FlashLoanArbitrage.sol"
    deployed_bytecode: Optional[str] = None
    compiler_version: Optional[str] = None  # e.g. "0.8.19+commit.7dd6d404"
    standard_json_input: Optional[Dict[str, Any]] = None  # solc input, for verification

    @property
    def fully_qualified_name(self) -> str:
        if self.source_name:
            return f"{self.source_name}:{self.contract_name}"
        return self.contract_name

    def has_function(self, name: str) -> bool:
        return any(
            item.get("type") == "function" and item.get("name") == name for item in self.abi
        )


def load_artifact(file_path: Union[Path, str]) -> ContractArtifact:
    """
    Parse a Hardhat artifact JSON file.

    If a sibling ``<Name>.dbg.json`` points at a build-info file, the solc
    input and compiler version are loaded too (needed for verification).

    Args:
        file_path: Path to the artifact JSON file

    Returns:
        ContractArtifact

    Raises:
        ConfigurationError: If the artifact has no deployable bytecode
    """
    file_path = Path(file_path)
    with open(file_path) as f:
        data = json.load(f)

    bytecode = data.get("bytecode", "")
    if not bytecode or bytecode == "0x":
        raise ConfigurationError(
            f"Artifact {file_path} has no bytecode (abstract contract or interface?)"
        )

    artifact = ContractArtifact(
        contract_name=data.get("contractName", file_path.stem),
        abi=data["abi"],
        bytecode=bytecode,
        source_name=data.get("sourceName"),
        deployed_bytecode=data.get("deployedBytecode"),
    )

    # Try to get build info for verification, fall back to none
    debug_file = file_path.with_name(f"{file_path.stem}.dbg.json")
    if debug_file.exists():
        with open(debug_file) as f:
            build_info_ref = json.load(f).get("buildInfo")
        if build_info_ref:
            build_info_path = (debug_file.parent / build_info_ref).resolve()
            if build_info_path.exists():
                with open(build_info_path) as f:
                    build_info = json.load(f)
                artifact.standard_json_input = build_info.get("input")
                artifact.compiler_version = build_info.get("solcLongVersion")

    return artifact


def find_artifact(artifacts_dir: Union[Path, str], contract_name: str) -> ContractArtifact:
    """
    Locate and load the artifact for a contract name.

    Args:
        artifacts_dir: Hardhat artifacts directory
        contract_name: Contract name, e.g. "FlashLoanArbitrage"

    Returns:
        ContractArtifact

    Raises:
        ConfigurationError: If no artifact exists for the contract
    """
    artifacts_dir = Path(artifacts_dir)
    candidates = sorted(
        p for p in artifacts_dir.rglob(f"{contract_name}.json") if "build-info" not in p.parts
    )
    if not candidates:
        raise ConfigurationError(
            f"No artifact found for {contract_name} under {artifacts_dir}. "
            f"Run `npx hardhat compile` first."
        )
    return load_artifact(candidates[0])


class ChainClient(ABC):
    """RPC operations used by the deployment pipeline."""

    @property
    @abstractmethod
    def deployer_address(self) -> str: ...

    @abstractmethod
    def chain_id(self) -> int: ...

    @abstractmethod
    def get_balance(self, address: str) -> int: ...

    @abstractmethod
    def get_gas_price(self) -> int: ...

    @abstractmethod
    def estimate_deploy_gas(self, artifact: ContractArtifact, args: Sequence[Any]) -> int: ...

    @abstractmethod
    def deploy(
        self, artifact: ContractArtifact, args: Sequence[Any], timeout: float = DEFAULT_TX_TIMEOUT
    ) -> DeploymentReceipt: ...

    @abstractmethod
    def transact(
        self,
        address: str,
        abi: List[Dict[str, Any]],
        function: str,
        args: Sequence[Any] = (),
        timeout: float = DEFAULT_TX_TIMEOUT,
    ) -> str:
        """Send a state-changing call, wait for it, and return the tx hash."""

    @abstractmethod
    def call(
        self, address: str, abi: List[Dict[str, Any]], function: str, args: Sequence[Any] = ()
    ) -> Any: ...

    @abstractmethod
    def get_code(self, address: str) -> bytes: ...


class Web3ChainClient(ChainClient):
    """ChainClient backed by web3.py and a local eth-account signer."""

    def __init__(self, w3: Web3, account, network: str = ""):
        self.w3 = w3
        self.account = account
        self.network = network
        self._chain_id: Optional[int] = None

    @property
    def deployer_address(self) -> str:
        return self.account.address

    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(self.w3.eth.chain_id)
        return self._chain_id

    def get_balance(self, address: str) -> int:
        return int(self.w3.eth.get_balance(Web3.to_checksum_address(address)))

    def get_gas_price(self) -> int:
        return int(self.w3.eth.gas_price)

    def _fee_fields(self) -> Dict[str, int]:
        """EIP-1559 fee fields when the chain has a base fee, legacy gasPrice otherwise."""
        latest = self.w3.eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas")
        if base_fee is not None:
            tip = int(self.w3.eth.max_priority_fee)
            return {"maxFeePerGas": int(base_fee) * 2 + tip, "maxPriorityFeePerGas": tip}
        return {"gasPrice": self.get_gas_price()}

    def _base_tx(self) -> Dict[str, Any]:
        tx: Dict[str, Any] = {
            "from": self.account.address,
            "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
            "chainId": self.chain_id(),
        }
        tx.update(self._fee_fields())
        return tx

    def _send_and_wait(self, tx: Dict[str, Any], timeout: float, label: str):
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info("%s transaction sent: %s", label, tx_hash_hex)

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise TransactionTimeoutError(
                f"{label} transaction {tx_hash_hex} was not mined within {timeout}s "
                f"on {self.network or 'the target network'}. Inspect it on the block "
                f"explorer before retrying; it may still be mined."
            ) from e

        if receipt["status"] != 1:
            raise TransactionRevertedError(
                f"{label} transaction {tx_hash_hex} reverted in block "
                f"{receipt['blockNumber']} (gas used {receipt['gasUsed']})"
            )
        return receipt

    def estimate_deploy_gas(self, artifact: ContractArtifact, args: Sequence[Any]) -> int:
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        try:
            return int(factory.constructor(*args).estimate_gas({"from": self.account.address}))
        except (ContractLogicError, ValueError) as e:
            raise GasEstimationError(
                f"Gas estimation for {artifact.contract_name} failed: {e}. Common causes: "
                f"invalid constructor arguments, RPC rate limits, network connectivity."
            ) from e

    def deploy(
        self, artifact: ContractArtifact, args: Sequence[Any], timeout: float = DEFAULT_TX_TIMEOUT
    ) -> DeploymentReceipt:
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        constructor = factory.constructor(*args)

        tx = self._base_tx()
        tx["gas"] = int(constructor.estimate_gas({"from": self.account.address}) * GAS_LIMIT_MULTIPLIER)
        tx = constructor.build_transaction(tx)

        receipt = self._send_and_wait(tx, timeout, f"{artifact.contract_name} deployment")
        block = self.w3.eth.get_block(receipt["blockNumber"])

        return DeploymentReceipt(
            contract_address=receipt["contractAddress"],
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            timestamp=int(block["timestamp"]),
        )

    def _contract(self, address: str, abi: List[Dict[str, Any]]):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def transact(
        self,
        address: str,
        abi: List[Dict[str, Any]],
        function: str,
        args: Sequence[Any] = (),
        timeout: float = DEFAULT_TX_TIMEOUT,
    ) -> str:
        fn = getattr(self._contract(address, abi).functions, function)(*args)
        tx = self._base_tx()
        tx["gas"] = int(fn.estimate_gas({"from": self.account.address}) * GAS_LIMIT_MULTIPLIER)
        receipt = self._send_and_wait(fn.build_transaction(tx), timeout, function)
        return Web3.to_hex(receipt["transactionHash"])

    def call(
        self, address: str, abi: List[Dict[str, Any]], function: str, args: Sequence[Any] = ()
    ) -> Any:
        return getattr(self._contract(address, abi).functions, function)(*args).call()

    def get_code(self, address: str) -> bytes:
        return bytes(self.w3.eth.get_code(Web3.to_checksum_address(address)))


def connect(
    network: str,
    rpc_url: Optional[str] = None,
    private_key: Optional[str] = None,
    timeout: float = DEFAULT_RPC_TIMEOUT,
) -> Web3ChainClient:
    """
    Connect to a network with the deployer key.

    Args:
        network: Network name (canonical or alias)
        rpc_url: RPC URL (defaults to the network's $<NETWORK>_RPC_URL)
        private_key: Deployer key (defaults to $DEPLOYER_PRIVATE_KEY)
        timeout: Per-request RPC timeout in seconds

    Returns:
        Web3ChainClient

    Raises:
        ConfigurationError: If the RPC URL or key is missing, or the chain ID
            reported by the node does not match the network configuration
    """
    canonical = normalize_chain_name(network)
    config = get_network_config(canonical)

    if rpc_url is None:
        rpc_url = os.environ.get(config["default_rpc_env"])
    if rpc_url is None and is_local(canonical):
        rpc_url = DEFAULT_LOCAL_RPC_URL
    if not rpc_url:
        raise ConfigurationError(
            f"RPC URL required for {canonical}: set ${config['default_rpc_env']} "
            f"or pass --rpc-url"
        )

    if private_key is None:
        private_key = os.environ.get("DEPLOYER_PRIVATE_KEY")
    if not private_key:
        raise ConfigurationError(
            "No deployer account available: set DEPLOYER_PRIVATE_KEY in .env.local "
            "(or export it in your shell) and retry."
        )

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    account = Account.from_key(private_key)
    client = Web3ChainClient(w3, account, network=canonical)

    actual_chain_id = client.chain_id()
    if actual_chain_id != config["chain_id"]:
        raise ConfigurationError(
            f"RPC for {canonical} reports chain ID {actual_chain_id}, "
            f"expected {config['chain_id']}. Check ${config['default_rpc_env']}."
        )

    return client
