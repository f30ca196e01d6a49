"""Unit tests for path helpers and artifact loading."""

import json
from pathlib import Path

import pytest

from flashloan_deployments.chain import find_artifact, load_artifact
from flashloan_deployments.exceptions import ConfigurationError
from flashloan_deployments.paths import (
    get_default_deployments_dir,
    get_lock_path,
    get_record_path,
    get_registry_path,
    get_temp_path,
)


class TestPaths:
    def test_default_dir_is_cwd_deployments(self, monkeypatch, tmp_path: Path):
        monkeypatch.chdir(tmp_path)
        assert get_default_deployments_dir() == tmp_path / "deployments"

    def test_default_dir_env_override(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("DEPLOYMENTS_DIR", str(tmp_path / "custom"))
        assert get_default_deployments_dir() == (tmp_path / "custom").absolute()

    def test_registry_path(self, tmp_path: Path):
        assert get_registry_path(tmp_path) == tmp_path.absolute() / "registry.json"
        assert get_registry_path(tmp_path, "balancer-registry.json").name == "balancer-registry.json"

    def test_sibling_paths(self, tmp_path: Path):
        registry = tmp_path / "registry.json"
        assert get_lock_path(registry) == tmp_path / "registry.json.lock"
        assert get_temp_path(registry).parent == tmp_path
        assert get_temp_path(registry).name.endswith(".tmp")

    def test_record_path(self, tmp_path: Path):
        path = get_record_path(tmp_path, "sepolia", "FlashLoanArbitrage")
        assert path == tmp_path / "sepolia-FlashLoanArbitrage.json"


def _write_artifact(artifacts_dir: Path, name: str, bytecode: str = "0x6080") -> Path:
    contract_dir = artifacts_dir / "contracts" / f"{name}.sol"
    contract_dir.mkdir(parents=True)
    path = contract_dir / f"{name}.json"
    path.write_text(
        json.dumps(
            {
                "contractName": name,
                "sourceName": f"contracts/{name}.sol",
                "abi": [],
                "bytecode": bytecode,
            }
        )
    )
    return path


class TestArtifacts:
    def test_loads_build_info(self, tmp_path: Path):
        path = _write_artifact(tmp_path, "MultiPathQuoter")
        build_info = tmp_path / "build-info" / "abc.json"
        build_info.parent.mkdir()
        build_info.write_text(json.dumps({"solcLongVersion": "0.8.19+commit.7dd6d404", "input": {"sources": {}}}))
        path.with_name("MultiPathQuoter.dbg.json").write_text(
            json.dumps({"buildInfo": "../../build-info/abc.json"})
        )

        artifact = load_artifact(path)

        assert artifact.compiler_version == "0.8.19+commit.7dd6d404"
        assert artifact.standard_json_input == {"sources": {}}
        assert artifact.fully_qualified_name == "contracts/MultiPathQuoter.sol:MultiPathQuoter"

    def test_interface_without_bytecode_rejected(self, tmp_path: Path):
        path = _write_artifact(tmp_path, "IPool", bytecode="0x")

        with pytest.raises(ConfigurationError):
            load_artifact(path)

    def test_find_artifact(self, tmp_path: Path):
        _write_artifact(tmp_path, "FlashLoanArbitrage")

        assert find_artifact(tmp_path, "FlashLoanArbitrage").contract_name == "FlashLoanArbitrage"

    def test_find_missing_artifact(self, tmp_path: Path):
        with pytest.raises(ConfigurationError) as exc_info:
            find_artifact(tmp_path, "FlashLoanArbitrage")
        assert "npx hardhat compile" in str(exc_info.value)
