"""Path management utilities for flashloan-deployments library."""

import os
from pathlib import Path
from typing import Optional, Union

from .constants import REGISTRY_FILENAME


def get_default_deployments_dir() -> Path:
    """
    Get default deployments directory.

    Returns:
        Path to ./deployments, or $DEPLOYMENTS_DIR if set
    """
    override = os.environ.get("DEPLOYMENTS_DIR")
    if override:
        return Path(override).absolute()
    return Path.cwd() / "deployments"


def get_registry_path(
    deployments_dir: Optional[Union[Path, str]] = None,
    registry_name: str = REGISTRY_FILENAME,
) -> Path:
    """
    Get the path of a registry file.

    Args:
        deployments_dir: Custom deployments directory (defaults to ./deployments)
        registry_name: Registry file name

    Returns:
        Path to the registry JSON file
    """
    if deployments_dir is None:
        deployments_dir = get_default_deployments_dir()
    else:
        deployments_dir = Path(deployments_dir).absolute()

    return deployments_dir / registry_name


def get_lock_path(registry_path: Union[Path, str]) -> Path:
    """Sibling lock file guarding a registry file."""
    registry_path = Path(registry_path)
    return registry_path.with_name(registry_path.name + ".lock")


def get_temp_path(registry_path: Union[Path, str]) -> Path:
    """Sibling temp file for atomic rewrites, unique per process."""
    registry_path = Path(registry_path)
    return registry_path.with_name(f".{registry_path.name}.{os.getpid()}.tmp")


def get_record_path(
    deployments_dir: Union[Path, str], network: str, contract_type: str
) -> Path:
    """Per-deployment JSON file, e.g. deployments/sepolia-FlashLoanArbitrage.json."""
    return Path(deployments_dir) / f"{network}-{contract_type}.json"
