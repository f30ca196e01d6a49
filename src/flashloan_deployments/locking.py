"""Advisory cross-process file lock for registry files."""

import json
import logging
import os
import socket
import time
import uuid
from pathlib import Path
from typing import Optional, Union

from .constants import LOCK_RETRIES, LOCK_RETRY_DELAY, LOCK_STALE_SECONDS
from .exceptions import RegistryLockedError
from .paths import get_lock_path

logger = logging.getLogger(__name__)


class RegistryLock:
    """
    Exclusive lock on a registry file, held through a sibling ``.lock`` file.

    The lock file is created with O_CREAT | O_EXCL, which is atomic across
    processes. A lock file older than ``stale_after`` seconds belongs to a
    crashed holder and is reclaimed.

    Usage:
        with RegistryLock(registry_path):
            ...read, merge, write...
    """

    def __init__(
        self,
        path: Union[Path, str],
        stale_after: float = LOCK_STALE_SECONDS,
        retries: int = LOCK_RETRIES,
        retry_delay: float = LOCK_RETRY_DELAY,
    ):
        """
        Args:
            path: Registry file to guard (the lock is ``<path>.lock``)
            stale_after: Age in seconds after which a lock is considered abandoned
            retries: Number of acquisition attempts
            retry_delay: Delay before the second attempt; doubles per attempt
        """
        self.path = Path(path)
        self.lock_path = get_lock_path(self.path)
        self.stale_after = stale_after
        self.retries = max(1, retries)
        self.retry_delay = retry_delay
        self._token: Optional[str] = None

    @property
    def held(self) -> bool:
        return self._token is not None

    def acquire(self) -> None:
        """
        Acquire the lock.

        Raises:
            RegistryLockedError: If the lock is still held after all retries
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)

        for attempt in range(1, self.retries + 1):
            if self._try_create():
                return

            # One immediate retry after reclaiming an abandoned lock
            if self._reclaim_if_stale() and self._try_create():
                return

            if attempt < self.retries:
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    "Registry %s locked by another deployment (attempt %d/%d), retrying in %.2fs",
                    self.path,
                    attempt,
                    self.retries,
                    delay,
                )
                time.sleep(delay)

        raise RegistryLockedError(
            f"Registry locked: could not acquire {self.lock_path} after {self.retries} "
            f"attempt(s). Another deployment is writing {self.path}; wait for it to "
            f"finish and retry. If no deployment is running, delete {self.lock_path}."
        )

    def release(self) -> None:
        """Release the lock if this instance still owns it."""
        if self._token is None:
            return
        token, self._token = self._token, None

        try:
            holder = self._read_holder(self.lock_path)
        except FileNotFoundError:
            logger.warning("Lock %s disappeared before release", self.lock_path)
            return

        if holder.get("token") != token:
            # Reclaimed as stale by another process while we held it
            logger.warning("Lock %s was reclaimed by another process", self.lock_path)
            return

        try:
            os.unlink(self.lock_path)
        except FileNotFoundError:
            pass

    def __enter__(self) -> "RegistryLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _try_create(self) -> bool:
        token = uuid.uuid4().hex
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False

        with os.fdopen(fd, "w") as f:
            json.dump(
                {
                    "token": token,
                    "pid": os.getpid(),
                    "host": socket.gethostname(),
                    "acquiredAt": time.time(),
                },
                f,
            )
        self._token = token
        return True

    def _is_stale(self, path: Path) -> bool:
        try:
            age = time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return False
        return age > self.stale_after

    def _reclaim_if_stale(self) -> bool:
        """
        Remove an abandoned lock file.

        The stale lock is first renamed to a unique tombstone so that two
        processes reclaiming at once cannot both delete it. If the renamed
        file turns out to be fresh, it is linked back into place.

        Returns:
            True if a stale lock was removed
        """
        if not self._is_stale(self.lock_path):
            return False

        tombstone = self.lock_path.with_name(f"{self.lock_path.name}.{uuid.uuid4().hex}.stale")
        try:
            os.rename(self.lock_path, tombstone)
        except FileNotFoundError:
            # Someone else reclaimed or released it first
            return True

        if not self._is_stale(tombstone):
            # Raced with a fresh holder; restore its lock unless a new one exists
            try:
                os.link(tombstone, self.lock_path)
            except FileExistsError:
                logger.warning(
                    "Registry lock %s was replaced while restoring a fresh holder; "
                    "two processes may briefly have held the lock",
                    self.lock_path,
                )
            os.unlink(tombstone)
            return False

        try:
            holder = self._read_holder(tombstone)
        except (FileNotFoundError, ValueError):
            holder = {}
        logger.warning(
            "Reclaiming stale registry lock %s (holder pid=%s host=%s)",
            self.lock_path,
            holder.get("pid", "?"),
            holder.get("host", "?"),
        )
        os.unlink(tombstone)
        return True

    @staticmethod
    def _read_holder(path: Path) -> dict:
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                return {}
        return data if isinstance(data, dict) else {}
