"""
flashloan-deployments: deployment pipeline and registry for flash loan arbitrage contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .contracts import PIPELINE_CONFIGS, get_pipeline_config
from .exceptions import (
    AlreadyDeployedError,
    BookkeepingError,
    ConfigurationError,
    DeploymentError,
    ExecutionError,
    ProfitThresholdError,
    RegistryCorruptError,
    RegistryError,
    RegistryLockedError,
    ResourceError,
    VerificationError,
)
from .pipeline import DeploymentPipeline, run_pipeline
from .registry import RegistryStore, update_registry
from .types import DeploymentRecord, PipelineConfig, PipelineResult, PipelineStage

try:
    __version__ = version("flashloan-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentPipeline",
    "run_pipeline",
    "RegistryStore",
    "update_registry",
    "PIPELINE_CONFIGS",
    "get_pipeline_config",
    "DeploymentRecord",
    "PipelineConfig",
    "PipelineResult",
    "PipelineStage",
    "DeploymentError",
    "ConfigurationError",
    "ProfitThresholdError",
    "AlreadyDeployedError",
    "ResourceError",
    "ExecutionError",
    "VerificationError",
    "RegistryError",
    "RegistryLockedError",
    "RegistryCorruptError",
    "BookkeepingError",
]
