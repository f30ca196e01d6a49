"""Lock-guarded JSON registry of deployed contracts."""

import json
import logging
import os
import socket
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from .constants import (
    LOCK_RETRIES,
    LOCK_RETRY_DELAY,
    LOCK_STALE_SECONDS,
    METADATA_PREFIX,
    REGISTRY_SCHEMA_VERSION,
    RESERVATION_TTL_SECONDS,
    RESERVATIONS_KEY,
    SCHEMA_KEY,
)
from .exceptions import RegistryCorruptError, RegistryReservedError
from .locking import RegistryLock
from .paths import get_temp_path
from .types import DeploymentRecord

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
RecordLike = Union[DeploymentRecord, Dict[str, Any], None]


def load_registry(path: Union[Path, str]) -> Document:
    """
    Load a registry document.

    The returned snapshot may be stale but is always a complete document,
    because writers replace the file atomically.

    Args:
        path: Path to the registry JSON file

    Returns:
        Registry document, empty dict if the file does not exist

    Raises:
        RegistryCorruptError: If the file is not a JSON object
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise RegistryCorruptError(
            f"Registry {path} is not valid JSON ({e}). Fix or restore the file "
            f"manually; it is the only record of which contracts are deployed."
        ) from e

    if not isinstance(document, dict):
        raise RegistryCorruptError(
            f"Registry {path} must contain a JSON object, found {type(document).__name__}"
        )
    return document


def network_entries(document: Document) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Iterate over (network, contracts) pairs, skipping metadata keys.

    Args:
        document: Registry document

    Yields:
        Tuples of network name and its contract-type mapping
    """
    for key, value in document.items():
        if key.startswith(METADATA_PREFIX):
            continue
        if isinstance(value, dict):
            yield key, value


def _write_atomic(path: Path, document: Document) -> None:
    """Write pretty JSON to a sibling temp file, then rename it over path."""
    temp_path = get_temp_path(path)
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise


def mutate_registry(
    path: Union[Path, str],
    mutator: Callable[[Document], Document],
    stale_after: float = LOCK_STALE_SECONDS,
    retries: int = LOCK_RETRIES,
    retry_delay: float = LOCK_RETRY_DELAY,
) -> Document:
    """
    Apply a read-modify-write to a registry under its exclusive lock.

    Every mutation starts from a fresh read of the file, so no concurrent
    write is lost to interleaving.

    Args:
        path: Path to the registry JSON file
        mutator: Receives the current document and returns the new one
        stale_after: Lock staleness window in seconds
        retries: Lock acquisition attempts
        retry_delay: Initial delay between lock attempts

    Returns:
        The document as written

    Raises:
        RegistryLockedError: If the lock cannot be acquired
        RegistryCorruptError: If the existing file is not a JSON object
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with RegistryLock(path, stale_after=stale_after, retries=retries, retry_delay=retry_delay):
        document = load_registry(path)
        document = mutator(document)
        document[SCHEMA_KEY] = REGISTRY_SCHEMA_VERSION
        _write_atomic(path, document)

    return document


def _record_to_json(record: RecordLike) -> Optional[Dict[str, Any]]:
    if isinstance(record, DeploymentRecord):
        return record.to_dict()
    return record


def _reservation_key(network: str, contract_type: str) -> str:
    return f"{network}/{contract_type}"


def update_registry(
    path: Union[Path, str],
    network: str,
    contract_type: str,
    record: RecordLike,
    **lock_options: Any,
) -> Document:
    """
    Merge one deployment record into a registry file.

    The record is stored at document[network][contract_type]; every other
    network and contract type is preserved. A reservation for the same slot is
    cleared in the same write.

    Args:
        path: Path to the registry JSON file
        network: Canonical network name
        contract_type: Contract type name, e.g. "FlashLoanArbitrage"
        record: Deployment record, or None to mark the slot undeployed
        **lock_options: stale_after, retries, retry_delay for the lock

    Returns:
        The document as written
    """
    if network.startswith(METADATA_PREFIX):
        raise ValueError(f"Network name '{network}' uses the reserved metadata prefix")

    record_json = _record_to_json(record)

    def merge(document: Document) -> Document:
        entry = document.get(network)
        if not isinstance(entry, dict):
            if entry is not None:
                logger.warning(
                    "Replacing non-object registry entry for network '%s'", network
                )
            entry = {}
            document[network] = entry
        entry[contract_type] = record_json

        reservations = document.get(RESERVATIONS_KEY)
        if isinstance(reservations, dict):
            reservations.pop(_reservation_key(network, contract_type), None)
            if not reservations:
                del document[RESERVATIONS_KEY]
        return document

    return mutate_registry(path, merge, **lock_options)


class RegistryStore:
    """
    Key-value view of a registry file: (network, contract type) -> record.

    All writes go through mutate_registry, so they are lock-guarded and atomic.
    """

    def __init__(self, path: Union[Path, str], **lock_options: Any):
        """
        Args:
            path: Path to the registry JSON file
            **lock_options: stale_after, retries, retry_delay for the lock
        """
        self.path = Path(path)
        self._lock_options = lock_options

    def load(self) -> Document:
        return load_registry(self.path)

    def networks(self) -> List[str]:
        """Networks that have at least one entry, metadata keys excluded."""
        return [network for network, _ in network_entries(self.load())]

    def get_raw(self, network: str, contract_type: str) -> Any:
        """Raw JSON entry for a slot, None if absent."""
        entry = self.load().get(network)
        if not isinstance(entry, dict):
            return None
        return entry.get(contract_type)

    def has(self, network: str, contract_type: str) -> bool:
        return bool(self.get_raw(network, contract_type))

    def get(self, network: str, contract_type: str) -> Optional[DeploymentRecord]:
        """
        Get the deployment record for a slot.

        Returns:
            DeploymentRecord, or None if the slot is undeployed

        Raises:
            RegistryCorruptError: If the entry is not a valid record
        """
        raw = self.get_raw(network, contract_type)
        if not raw:
            return None
        if not isinstance(raw, dict):
            raise RegistryCorruptError(
                f"Registry {self.path} entry {network}.{contract_type} is not a record: {raw!r}"
            )
        try:
            return DeploymentRecord.from_dict(raw)
        except (KeyError, ValueError, TypeError) as e:
            raise RegistryCorruptError(
                f"Registry {self.path} entry {network}.{contract_type} is invalid: {e}"
            ) from e

    def put(self, network: str, contract_type: str, record: RecordLike) -> None:
        update_registry(self.path, network, contract_type, record, **self._lock_options)

    def delete(self, network: str, contract_type: str) -> None:
        """Mark a slot undeployed (stored as null)."""
        self.put(network, contract_type, None)

    def reserve(
        self, network: str, contract_type: str, ttl: float = RESERVATION_TTL_SECONDS
    ) -> str:
        """
        Take a lease on a deployment slot before broadcasting.

        Prevents two concurrent runs from both deploying the same
        (network, contract type). The lease expires after ttl seconds so a
        crashed run does not block the slot forever.

        Returns:
            Reservation token, to be passed to release()

        Raises:
            RegistryReservedError: If another unexpired reservation exists
        """
        token = uuid.uuid4().hex
        key = _reservation_key(network, contract_type)

        def take(document: Document) -> Document:
            reservations = document.get(RESERVATIONS_KEY)
            if not isinstance(reservations, dict):
                reservations = {}
                document[RESERVATIONS_KEY] = reservations

            current = reservations.get(key)
            if isinstance(current, dict) and current.get("expiresAt", 0) > time.time():
                raise RegistryReservedError(
                    f"{contract_type} on {network} is being deployed by another run "
                    f"(pid={current.get('pid')} host={current.get('host')}). Wait for it "
                    f"to finish, or remove '{key}' from {RESERVATIONS_KEY} in {self.path} "
                    f"if that run is dead."
                )

            reservations[key] = {
                "token": token,
                "pid": os.getpid(),
                "host": socket.gethostname(),
                "expiresAt": time.time() + ttl,
            }
            return document

        mutate_registry(self.path, take, **self._lock_options)
        return token

    def release(self, network: str, contract_type: str, token: str) -> None:
        """Drop a reservation if it is still held by token."""
        key = _reservation_key(network, contract_type)

        def drop(document: Document) -> Document:
            reservations = document.get(RESERVATIONS_KEY)
            if isinstance(reservations, dict):
                current = reservations.get(key)
                if isinstance(current, dict) and current.get("token") == token:
                    del reservations[key]
                if not reservations:
                    del document[RESERVATIONS_KEY]
            return document

        mutate_registry(self.path, drop, **self._lock_options)
