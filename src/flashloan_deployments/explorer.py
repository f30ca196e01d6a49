"""Block-explorer source verification (Etherscan-compatible API)."""

import json
import logging
import os
import time
from typing import Any, Callable, Optional, Sequence

import requests
from eth_abi import encode

from .chain import ContractArtifact
from .exceptions import VerificationError
from .networks import get_network_config, is_local
from .types import VerificationStatus

logger = logging.getLogger(__name__)

# Explorer messages that mean "try again later"
RETRYABLE_MARKERS = (
    "timeout",
    "network",
    "rate limit",
    "max rate",
    "not yet indexed",
    "unable to locate contractcode",
    "does not have bytecode",
    "pending",
)


def is_already_verified(message: str) -> bool:
    return "already verified" in message.lower()


def is_retryable(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in RETRYABLE_MARKERS)


def encode_constructor_args(artifact: ContractArtifact, args: Sequence[Any]) -> str:
    """
    ABI-encode constructor arguments as hex without 0x prefix.

    Args:
        artifact: Contract artifact (provides the constructor signature)
        args: Constructor arguments

    Returns:
        Hex string, empty if the constructor takes no arguments
    """
    constructor = next((i for i in artifact.abi if i.get("type") == "constructor"), None)
    if constructor is None or not constructor.get("inputs"):
        return ""
    types = [inp["type"] for inp in constructor["inputs"]]
    return encode(types, list(args)).hex()


def manual_verification_command(network: str, address: str, args: Sequence[Any]) -> str:
    """Operator command to verify a contract by hand."""
    quoted = " ".join(f'"{arg}"' for arg in args)
    return f"npx hardhat verify --network {network} {address} {quoted}".rstrip()


class EtherscanVerifier:
    """Submits standard-json-input verification to an Etherscan-compatible API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        session: Optional[requests.Session] = None,
        poll_interval: float = 5,
        poll_attempts: int = 24,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = 30,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.session = session or requests.Session()
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.sleep = sleep
        self.timeout = timeout

    def _request(self, method: str, **kwargs) -> dict:
        try:
            response = self.session.request(method, self.api_url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise VerificationError(f"Network error during verification: {e}", retryable=True) from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise VerificationError(
                f"Explorer request failed with status {response.status_code}",
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            return response.json()
        except ValueError as e:
            raise VerificationError(f"Explorer returned invalid JSON: {e}", retryable=True) from e

    def submit(
        self, address: str, artifact: ContractArtifact, constructor_args: Sequence[Any]
    ) -> VerificationStatus:
        """
        Submit verification and wait for the explorer's verdict.

        Args:
            address: Deployed contract address
            artifact: Contract artifact with standard-json-input and compiler version
            constructor_args: Constructor arguments used for deployment

        Returns:
            VerificationStatus.VERIFIED or VerificationStatus.ALREADY_VERIFIED

        Raises:
            VerificationError: On failure; ``retryable`` tells whether to try again
        """
        if artifact.standard_json_input is None or artifact.compiler_version is None:
            raise VerificationError(
                f"Artifact for {artifact.contract_name} has no build info; "
                f"cannot build standard-json-input"
            )

        result = self._request(
            "POST",
            data={
                "apikey": self.api_key,
                "module": "contract",
                "action": "verifysourcecode",
                "contractaddress": address,
                "sourceCode": json.dumps(artifact.standard_json_input),
                "codeformat": "solidity-standard-json-input",
                "contractname": artifact.fully_qualified_name,
                "compilerversion": f"v{artifact.compiler_version}",
                # Etherscan's own spelling
                "constructorArguements": encode_constructor_args(artifact, constructor_args),
            },
        )

        message = str(result.get("result", ""))
        if result.get("status") != "1":
            if is_already_verified(message):
                return VerificationStatus.ALREADY_VERIFIED
            raise VerificationError(message or "Verification submission rejected", is_retryable(message))

        return self._poll(message)

    def _poll(self, guid: str) -> VerificationStatus:
        for _ in range(self.poll_attempts):
            self.sleep(self.poll_interval)
            result = self._request(
                "GET",
                params={
                    "apikey": self.api_key,
                    "module": "contract",
                    "action": "checkverifystatus",
                    "guid": guid,
                },
            )
            message = str(result.get("result", ""))

            if is_already_verified(message):
                return VerificationStatus.ALREADY_VERIFIED
            if result.get("status") == "1":
                return VerificationStatus.VERIFIED
            if "pending" in message.lower():
                continue
            raise VerificationError(message or "Verification failed", is_retryable(message))

        raise VerificationError(
            f"Verification {guid} still pending after {self.poll_attempts} checks", retryable=True
        )


def make_verifier(network: str, api_key: Optional[str] = None) -> Optional[EtherscanVerifier]:
    """
    Build the verifier for a network.

    Args:
        network: Network name (canonical or alias)
        api_key: Explorer API key (defaults to $ETHERSCAN_API_KEY)

    Returns:
        EtherscanVerifier, or None for local networks or when no API key is set
    """
    if is_local(network):
        return None

    if api_key is None:
        api_key = os.environ.get("ETHERSCAN_API_KEY")
    if not api_key:
        logger.warning("ETHERSCAN_API_KEY not set; automatic verification disabled")
        return None

    api_url = get_network_config(network)["explorer_api_url"]
    if not api_url:
        return None
    return EtherscanVerifier(api_url, api_key)
