"""Integration tests for the command-line entry point."""

import json
import subprocess
from pathlib import Path

import pytest
from conftest import FakeChainClient

from flashloan_deployments import batch, cli
from flashloan_deployments.exceptions import RegistryLockedError


@pytest.fixture
def artifacts_dir(tmp_path: Path, sample_artifact) -> Path:
    path = tmp_path / "artifacts" / "contracts" / "FlashLoanArbitrage.sol"
    path.mkdir(parents=True)
    (path / "FlashLoanArbitrage.json").write_text(
        json.dumps(
            {
                "contractName": "FlashLoanArbitrage",
                "abi": sample_artifact.abi,
                "bytecode": sample_artifact.bytecode,
            }
        )
    )
    return tmp_path / "artifacts"


@pytest.fixture
def fake_connect(monkeypatch):
    client = FakeChainClient()
    monkeypatch.setattr(cli, "connect", lambda network, rpc_url=None: client)
    return client


class TestDeploy:
    def test_successful_deploy_exits_zero(
        self, deployments_dir, artifacts_dir, fake_connect, capsys
    ):
        code = cli.main(
            [
                "--deployments-dir",
                str(deployments_dir),
                "deploy",
                "FlashLoanArbitrage",
                "--network",
                "sepolia",
                "--artifacts-dir",
                str(artifacts_dir),
                "--minimum-profit",
                "0",
            ]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "Deployment Summary" in out
        assert "Next steps:" in out
        assert (deployments_dir / "registry.json").exists()

    def test_existing_deployment_exits_one(
        self, deployments_dir, existing_registry, artifacts_dir, fake_connect
    ):
        code = cli.main(
            [
                "--deployments-dir",
                str(deployments_dir),
                "deploy",
                "FlashLoanArbitrage",
                "--network",
                "sepolia",
                "--artifacts-dir",
                str(artifacts_dir),
            ]
        )

        assert code == 1
        assert fake_connect.deployments == []

    def test_bookkeeping_failure_exits_two(
        self, deployments_dir, artifacts_dir, fake_connect, monkeypatch
    ):
        def locked(self, *args, **kwargs):
            raise RegistryLockedError("Registry locked")

        monkeypatch.setattr(cli.RegistryStore, "put", locked)

        code = cli.main(
            [
                "--deployments-dir",
                str(deployments_dir),
                "deploy",
                "FlashLoanArbitrage",
                "--network",
                "sepolia",
                "--artifacts-dir",
                str(artifacts_dir),
                "--minimum-profit",
                "0",
            ]
        )

        assert code == 2

    def test_negative_profit_rejected(self):
        with pytest.raises(SystemExit):
            cli.main(["deploy", "FlashLoanArbitrage", "--network", "sepolia", "--minimum-profit", "-1"])


class TestShow:
    def test_lists_records(self, deployments_dir, existing_registry, capsys):
        assert cli.main(["--deployments-dir", str(deployments_dir), "show"]) == 0

        out = capsys.readouterr().out
        assert "sepolia:" in out
        assert "FlashLoanArbitrage" in out
        assert "(verified)" in out

    def test_empty_registry(self, deployments_dir, capsys):
        assert cli.main(["--deployments-dir", str(deployments_dir), "show"]) == 0
        assert "No deployments recorded" in capsys.readouterr().out


class TestApproveRouter:
    def test_failure_exits_one(self, monkeypatch):
        client = FakeChainClient(failing_functions=["addApprovedRouter"])
        monkeypatch.setattr(cli, "connect", lambda network, rpc_url=None: client)

        code = cli.main(
            ["approve-router", "--network", "sepolia", "--address", "0x" + "c0" * 20, "--router", "0x" + "a1" * 20]
        )

        assert code == 1

    def test_success(self, fake_connect):
        router = "0x" + "a1" * 20

        code = cli.main(["approve-router", "--network", "sepolia", "--address", "0x" + "c0" * 20, "--router", router])

        assert code == 0
        assert fake_connect.functions_sent("addApprovedRouter") == [[router]]


class TestBatch:
    def test_dry_run(self, deployments_dir, existing_registry, monkeypatch, capsys):
        monkeypatch.setenv("DEPLOY_NETWORKS", "sepolia")

        code = cli.main(["--deployments-dir", str(deployments_dir), "batch", "--dry-run"])

        out = capsys.readouterr().out
        assert code == 0
        assert "[     skip] FlashLoanArbitrage on sepolia" in out
        assert "[  pending] CommitRevealArbitrage on sepolia" in out

    def test_children_write_to_the_same_registry(self, deployments_dir, existing_registry, artifacts_dir, monkeypatch):
        calls = []

        def run(command, check=False):
            calls.append(command)
            return subprocess.CompletedProcess(command, 0)

        monkeypatch.setattr(batch.subprocess, "run", run)

        code = cli.main(
            [
                "--deployments-dir",
                str(deployments_dir),
                "batch",
                "--networks",
                "sepolia",
                "--contracts",
                "MultiPathQuoter",
                "--artifacts-dir",
                str(artifacts_dir),
            ]
        )

        assert code == 0
        assert len(calls) == 1
        command = calls[0]
        assert command[command.index("--deployments-dir") + 1] == str(deployments_dir)
        assert command.index("--deployments-dir") < command.index("deploy")
        assert command[command.index("--artifacts-dir") + 1] == str(artifacts_dir)
