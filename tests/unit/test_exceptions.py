"""Unit tests for the exception hierarchy."""

import pytest

from flashloan_deployments.exceptions import (
    AlreadyDeployedError,
    BookkeepingError,
    ConfigurationError,
    DeploymentError,
    GasEstimationError,
    InsufficientBalanceError,
    ProfitThresholdError,
    RegistryCorruptError,
    RegistryError,
    RegistryLockedError,
    ResourceError,
    TransactionTimeoutError,
    VerificationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            ProfitThresholdError,
            AlreadyDeployedError,
            InsufficientBalanceError,
            GasEstimationError,
            TransactionTimeoutError,
            VerificationError,
            RegistryLockedError,
            BookkeepingError,
        ],
    )
    def test_all_inherit_from_deployment_error(self, exc_class):
        assert issubclass(exc_class, DeploymentError)

    def test_profit_threshold_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            raise ProfitThresholdError("no threshold")

    def test_builtin_categories(self):
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(RegistryCorruptError, ValueError)
        assert issubclass(RegistryLockedError, TimeoutError)
        assert issubclass(TransactionTimeoutError, TimeoutError)

    def test_resource_errors(self):
        assert issubclass(InsufficientBalanceError, ResourceError)
        assert issubclass(GasEstimationError, ResourceError)

    def test_bookkeeping_is_registry_error(self):
        assert issubclass(BookkeepingError, RegistryError)


class TestAttributes:
    def test_insufficient_balance_carries_amounts(self):
        exc = InsufficientBalanceError("short", required=10, available=3)
        assert exc.required == 10
        assert exc.available == 3

    def test_already_deployed_carries_address(self):
        exc = AlreadyDeployedError("exists", existing_address="0xabc")
        assert exc.existing_address == "0xabc"
        assert str(exc) == "exists"

    def test_verification_error_retryable_flag(self):
        assert VerificationError("rate limit", retryable=True).retryable
        assert not VerificationError("bad source").retryable

    def test_bookkeeping_error_carries_record(self, sample_record):
        exc = BookkeepingError("not recorded", record=sample_record)
        assert exc.record is sample_record
