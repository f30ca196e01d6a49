"""Custom exception classes for flashloan-deployments library."""


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


# Configuration errors: fatal, raised before any gas is spent


class ConfigurationError(DeploymentError, ValueError):
    """Raised when a network, key or contract type is not configured."""

    pass


class ProfitThresholdError(ConfigurationError):
    """Raised when a mainnet-class network has no positive minimum profit."""

    pass


class DeploymentCancelledError(ConfigurationError):
    """Raised when the operator did not confirm a mainnet deployment."""

    pass


class AlreadyDeployedError(ConfigurationError):
    """Raised when a record already exists for (network, contract type)."""

    def __init__(self, message: str, existing_address: str = ""):
        super().__init__(message)
        self.existing_address = existing_address


# Resource errors: fatal, raised before the deploy transaction


class ResourceError(DeploymentError):
    """Base exception for balance and gas estimation failures."""

    pass


class InsufficientBalanceError(ResourceError):
    """Raised when the deployer cannot cover the deployment."""

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class GasEstimationError(ResourceError):
    """Raised when the network cannot estimate the deployment gas."""

    pass


# On-chain execution errors: fatal, gas may have been spent


class ExecutionError(DeploymentError):
    """Base exception for failed contract-creation transactions."""

    pass


class TransactionRevertedError(ExecutionError):
    """Raised when the deployment transaction was mined but reverted."""

    pass


class TransactionTimeoutError(ExecutionError, TimeoutError):
    """Raised when the deployment transaction is not mined in time."""

    pass


# Degraded-success errors: caught inside the pipeline


class VerificationError(DeploymentError):
    """Raised by explorer clients when a verification submission fails."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


# Bookkeeping errors: the contract exists on-chain but may be unrecorded


class RegistryError(DeploymentError):
    """Base exception for registry file failures."""

    pass


class RegistryLockedError(RegistryError, TimeoutError):
    """Raised when the registry lock cannot be acquired."""

    pass


class RegistryCorruptError(RegistryError, ValueError):
    """Raised when the registry file is not a valid JSON object."""

    pass


class RegistryReservedError(RegistryError):
    """Raised when another run holds the reservation for a deployment slot."""

    pass


class BookkeepingError(RegistryError):
    """Raised when a deployment succeeded but could not be recorded."""

    def __init__(self, message: str, record=None):
        super().__init__(message)
        self.record = record
