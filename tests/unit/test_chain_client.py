"""Unit tests for Web3ChainClient transaction sending."""

from types import SimpleNamespace

import pytest
from eth_account import Account
from web3.exceptions import TimeExhausted

from flashloan_deployments.chain import Web3ChainClient
from flashloan_deployments.exceptions import TransactionRevertedError, TransactionTimeoutError

PRIVATE_KEY = "0x" + "4c" * 32


class StubEth:
    """Captures raw transactions instead of broadcasting them."""

    def __init__(self, status: int = 1, timeout: bool = False):
        self.sent = []
        self.status = status
        self.timeout = timeout

    def send_raw_transaction(self, raw: bytes) -> bytes:
        self.sent.append(bytes(raw))
        return b"\xab" * 32

    def wait_for_transaction_receipt(self, tx_hash, timeout=None):
        if self.timeout:
            raise TimeExhausted("not mined")
        return {"status": self.status, "blockNumber": 7, "gasUsed": 21000, "transactionHash": tx_hash}


def _client(eth: StubEth) -> Web3ChainClient:
    return Web3ChainClient(SimpleNamespace(eth=eth), Account.from_key(PRIVATE_KEY), network="sepolia")


def _transfer() -> dict:
    return {
        "to": "0x" + "22" * 20,
        "value": 1,
        "gas": 21000,
        "gasPrice": 10**9,
        "nonce": 0,
        "chainId": 11155111,
    }


class TestSendAndWait:
    def test_broadcasts_signed_raw_transaction(self):
        eth = StubEth()

        receipt = _client(eth)._send_and_wait(_transfer(), 30, "transfer")

        expected = Account.from_key(PRIVATE_KEY).sign_transaction(_transfer()).raw_transaction
        assert eth.sent == [bytes(expected)]
        assert receipt["blockNumber"] == 7

    def test_reverted_receipt_raises(self):
        with pytest.raises(TransactionRevertedError, match="reverted in block 7"):
            _client(StubEth(status=0))._send_and_wait(_transfer(), 30, "transfer")

    def test_unmined_transaction_times_out(self):
        with pytest.raises(TransactionTimeoutError, match="may still be mined"):
            _client(StubEth(timeout=True))._send_and_wait(_transfer(), 30, "transfer")
