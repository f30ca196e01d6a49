"""Cross-process registry updates."""

import json
import multiprocessing
import sys
from pathlib import Path

import pytest

from flashloan_deployments.registry import load_registry, update_registry

CONTRACT_TYPES = ["FlashLoanArbitrage", "BalancerV2FlashArbitrage"]


def _write_entries(path: str, worker: int) -> None:
    for contract_type in CONTRACT_TYPES:
        update_registry(
            path,
            f"network{worker}",
            contract_type,
            {"contractAddress": "0x" + f"{worker:02x}" * 20, "worker": worker},
            retries=12,
            retry_delay=0.005,
        )


def _read_until_stopped(path: str, stop, reads) -> None:
    # A RegistryCorruptError here fails the process with a non-zero exit code
    while True:
        document = load_registry(path)
        assert isinstance(document, dict)
        with reads.get_lock():
            reads.value += 1
        if stop.is_set():
            return


@pytest.mark.skipif(sys.platform == "win32", reason="requires fork")
class TestConcurrentUpdates:
    def test_no_update_is_lost(self, registry_path: Path):
        registry_path.write_text(json.dumps({"sepolia": {"FlashLoanArbitrage": {"keep": True}}}))
        ctx = multiprocessing.get_context("fork")
        workers = [ctx.Process(target=_write_entries, args=(str(registry_path), i)) for i in range(8)]

        for process in workers:
            process.start()
        for process in workers:
            process.join(timeout=60)

        assert [p.exitcode for p in workers] == [0] * 8

        document = load_registry(registry_path)
        assert document["sepolia"] == {"FlashLoanArbitrage": {"keep": True}}
        for i in range(8):
            assert set(document[f"network{i}"]) == set(CONTRACT_TYPES)
            assert document[f"network{i}"]["FlashLoanArbitrage"]["worker"] == i

        leftovers = sorted(p.name for p in registry_path.parent.iterdir())
        assert leftovers == ["registry.json"]

    def test_reader_never_sees_partial_document(self, registry_path: Path):
        registry_path.write_text(json.dumps({"sepolia": {"FlashLoanArbitrage": {"keep": True}}}))
        ctx = multiprocessing.get_context("fork")
        stop = ctx.Event()
        reads = ctx.Value("i", 0)
        reader = ctx.Process(target=_read_until_stopped, args=(str(registry_path), stop, reads))
        workers = [ctx.Process(target=_write_entries, args=(str(registry_path), i)) for i in range(6)]

        reader.start()
        for process in workers:
            process.start()
        for process in workers:
            process.join(timeout=60)
        stop.set()
        reader.join(timeout=60)

        assert [p.exitcode for p in workers] == [0] * 6
        assert reader.exitcode == 0
        assert reads.value > 0
        networks = {key for key in load_registry(registry_path) if not key.startswith("_")}
        assert networks == {"sepolia"} | {f"network{i}" for i in range(6)}
