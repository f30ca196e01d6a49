"""Unit tests for DeploymentRecord serialization and address checks."""

import dataclasses

import pytest
from conftest import CONTRACT, DEPLOYER, TX_HASH

from flashloan_deployments.types import (
    DeploymentRecord,
    PipelineResult,
    PipelineStage,
    SmokeCheckResult,
    SmokeTestReport,
    checksum_address,
)


class TestChecksumAddress:
    def test_checksums_lowercase_address(self):
        address = checksum_address("0x87870bca3f3fd6335c3f4ce8392d69350b4fa4e2")
        assert address == "0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2"

    @pytest.mark.parametrize("bad", ["", "0x1234", "not-an-address", None])
    def test_rejects_malformed(self, bad):
        with pytest.raises(ValueError):
            checksum_address(bad)

    def test_rejects_zero_address(self):
        with pytest.raises(ValueError):
            checksum_address("0x" + "00" * 20)


class TestDeploymentRecord:
    def test_to_dict_uses_camel_case_and_skips_none(self, sample_record):
        data = sample_record.to_dict()

        assert data["contractAddress"] == sample_record.contract_address
        assert data["chainId"] == 11155111
        assert data["minimumProfit"] == "1000000000000000"
        assert "smokeTestPassed" not in data

    def test_extras_are_emitted_at_top_level(self):
        record = DeploymentRecord(
            network="ethereum",
            chain_id=1,
            contract_address=CONTRACT,
            deployer_address=DEPLOYER,
            transaction_hash=TX_HASH,
            block_number=1,
            timestamp=1,
            extras={"vaultAddress": "0xBA12222222228d8Ba445958a75a0704d566BF2C8", "network": "x"},
        )
        data = record.to_dict()

        assert data["vaultAddress"] == "0xBA12222222228d8Ba445958a75a0704d566BF2C8"
        # Extras never overwrite schema fields
        assert data["network"] == "ethereum"

    def test_from_dict_keeps_unknown_keys(self, sample_record):
        data = sample_record.to_dict()
        data["aavePoolAddress"] = "0x6Ae43d3271ff6888e7Fc43Fd7321a503ff738951"

        restored = DeploymentRecord.from_dict(data)

        assert restored.extras == {"aavePoolAddress": "0x6Ae43d3271ff6888e7Fc43Fd7321a503ff738951"}
        assert restored.to_dict() == data

    def test_from_dict_requires_core_fields(self, sample_record):
        data = sample_record.to_dict()
        del data["transactionHash"]

        with pytest.raises(KeyError):
            DeploymentRecord.from_dict(data)

    def test_invalid_contract_address_rejected(self):
        with pytest.raises(ValueError):
            DeploymentRecord(
                network="sepolia",
                chain_id=1,
                contract_address="0x" + "00" * 20,
                deployer_address=DEPLOYER,
                transaction_hash=TX_HASH,
                block_number=1,
                timestamp=1,
            )


class TestReports:
    def test_non_critical_failures_do_not_fail_report(self):
        report = SmokeTestReport(
            name="smoke",
            results=[
                SmokeCheckResult("bytecode", True, True),
                SmokeCheckResult("minimumProfit", False, False),
            ],
        )
        assert report.passed
        assert [r.name for r in report.failures] == ["minimumProfit"]

    def test_pipeline_result_flags(self, sample_record):
        failed = SmokeTestReport(name="smoke", results=[SmokeCheckResult("owner", False, True)])
        result = PipelineResult(
            record=dataclasses.replace(sample_record, smoke_test_passed=False),
            stage=PipelineStage.RECORDED,
            warnings=["verification failed"],
            smoke_report=failed,
        )
        assert result.degraded
        assert result.needs_investigation

    def test_crashed_smoke_test_is_flagged_from_record(self, sample_record):
        crashed = PipelineResult(
            record=dataclasses.replace(sample_record, smoke_test_passed=False),
            stage=PipelineStage.RECORDED,
        )
        skipped = PipelineResult(
            record=dataclasses.replace(sample_record, smoke_test_passed=None),
            stage=PipelineStage.RECORDED,
        )

        assert crashed.smoke_report is None
        assert crashed.needs_investigation
        assert not skipped.needs_investigation
