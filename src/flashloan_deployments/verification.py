"""Block-explorer verification with bounded exponential backoff."""

import logging
import time
from typing import Any, Callable, Optional, Sequence

from .chain import ContractArtifact
from .constants import (
    DEFAULT_VERIFICATION_INITIAL_DELAY,
    DEFAULT_VERIFICATION_RETRIES,
    VERIFICATION_DELAY_BY_NETWORK,
)
from .exceptions import VerificationError
from .explorer import is_already_verified, manual_verification_command
from .networks import is_local, normalize_chain_name
from .types import VerificationStatus

logger = logging.getLogger(__name__)


def indexing_delay(network: str, default: float = DEFAULT_VERIFICATION_INITIAL_DELAY) -> float:
    """Seconds to let the explorer index a new contract; L2 explorers are faster."""
    return VERIFICATION_DELAY_BY_NETWORK.get(normalize_chain_name(network), default)


def verify_with_retry(
    verifier,
    address: str,
    artifact: ContractArtifact,
    constructor_args: Sequence[Any],
    network: str,
    max_retries: int = DEFAULT_VERIFICATION_RETRIES,
    initial_delay: float = DEFAULT_VERIFICATION_INITIAL_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    wait_for_indexing: Optional[float] = None,
) -> bool:
    """
    Verify a contract, retrying transient failures.

    Delays between attempts double from ``initial_delay``. "Already verified"
    counts as success. Exhausting the retries is not an error: the manual
    verification command is logged and False is returned.

    Args:
        verifier: Object with ``submit(address, artifact, args) -> VerificationStatus``
        address: Deployed contract address
        artifact: Contract artifact
        constructor_args: Constructor arguments used for deployment
        network: Network name
        max_retries: Maximum attempts
        initial_delay: Backoff before the second attempt, in seconds
        sleep: Sleep function (injectable for tests)
        wait_for_indexing: Wait before the first attempt (defaults to the
            network's indexing delay)

    Returns:
        True if verified (or already verified), False otherwise
    """
    if is_local(network):
        logger.info("Skipping verification for local network %s", network)
        return False

    manual = manual_verification_command(network, address, constructor_args)

    if verifier is None:
        logger.warning("No block explorer verifier configured. Verify manually with:\n  %s", manual)
        return False

    if wait_for_indexing is None:
        wait_for_indexing = indexing_delay(network, initial_delay)
    if wait_for_indexing > 0:
        logger.info("Waiting %ss for block explorer to index %s", wait_for_indexing, address)
        sleep(wait_for_indexing)

    for attempt in range(1, max_retries + 1):
        logger.info("Verification attempt %d/%d for %s", attempt, max_retries, address)
        try:
            status = verifier.submit(address, artifact, constructor_args)
        except VerificationError as e:
            if is_already_verified(str(e)):
                logger.info("Contract %s already verified", address)
                return True

            message = str(e).split("\n")[0]
            if not e.retryable or attempt == max_retries:
                logger.error(
                    "Verification failed after %d attempt(s): %s\nVerify manually with:\n  %s",
                    attempt,
                    message,
                    manual,
                )
                return False

            delay = initial_delay * 2 ** (attempt - 1)
            logger.warning(
                "Verification failed (attempt %d/%d): %s. Retrying in %ss",
                attempt,
                max_retries,
                message,
                delay,
            )
            sleep(delay)
            continue

        if status == VerificationStatus.ALREADY_VERIFIED:
            logger.info("Contract %s already verified", address)
        else:
            logger.info("Contract %s verified", address)
        return True

    return False
