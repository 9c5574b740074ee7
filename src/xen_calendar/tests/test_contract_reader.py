from __future__ import annotations

import pytest
from eth_abi import encode
from web3 import Web3

from xen_calendar.config.settings import MULTICALL3_ADDRESS, FetchConfig, RPCConfig
from xen_calendar.ingestion.abi import AGGREGATE3, GLOBAL_RANK, TOTAL_SUPPLY, USER_MINTS
from xen_calendar.ingestion.batching import BatchedReader
from xen_calendar.ingestion.contract_reader import ContractCall, ContractReader, ContractReadError

XEN = "0x06450dEe7FD2Fb8E39061434BAbCFC05599a6Fb8"


class _StubEth:
    def __init__(self, payload: bytes) -> None:
        self.payload = payload
        self.transactions = []

    def call(self, transaction):
        self.transactions.append(transaction)
        return self.payload


class _StubClient:
    def __init__(self, payload: bytes) -> None:
        self.eth = _StubEth(payload)


def _reader(monkeypatch: pytest.MonkeyPatch, payload: bytes):
    reader = ContractReader(config=RPCConfig())
    client = _StubClient(payload)
    monkeypatch.setattr(reader, "_client_for", lambda chain_id: client)
    return reader, client


def test_read_decodes_tuple_outputs(monkeypatch: pytest.MonkeyPatch) -> None:
    owner = "0x" + "ab" * 20
    payload = encode(
        ["address", "uint256", "uint256", "uint256", "uint256", "uint256"],
        [owner, 100, 1735689600, 42, 3000, 50],
    )
    reader, client = _reader(monkeypatch, payload)

    record = reader.read(XEN, USER_MINTS, (owner,), 1, sender=owner)

    assert record[1:] == (100, 1735689600, 42, 3000, 50)
    assert record[0].lower() == owner
    transaction = client.eth.transactions[0]
    assert transaction["data"].startswith(Web3.to_hex(USER_MINTS.selector))
    assert transaction["from"] == Web3.to_checksum_address(owner)


def test_read_batch_reports_per_call_success(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = encode(["(bool,bytes)[]"], [[(True, encode(["uint256"], [7])), (False, b"")]])
    reader, client = _reader(monkeypatch, payload)

    results = reader.read_batch([ContractCall(XEN, TOTAL_SUPPLY), ContractCall(XEN, GLOBAL_RANK)], 1)

    assert results[0].success and results[0].value == 7
    assert not results[1].success
    assert "globalRank()" in results[1].error
    transaction = client.eth.transactions[0]
    assert transaction["to"] == MULTICALL3_ADDRESS
    assert transaction["data"].startswith(Web3.to_hex(AGGREGATE3.selector))


def test_read_batch_rejects_mismatched_result_count(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = encode(["(bool,bytes)[]"], [[(True, encode(["uint256"], [7]))]])
    reader, _ = _reader(monkeypatch, payload)

    with pytest.raises(ContractReadError):
        reader.read_batch([ContractCall(XEN, TOTAL_SUPPLY), ContractCall(XEN, GLOBAL_RANK)], 1)


def test_empty_return_data_is_a_permanent_error(monkeypatch: pytest.MonkeyPatch) -> None:
    reader, _ = _reader(monkeypatch, b"")

    with pytest.raises(ContractReadError):
        reader.read(XEN, TOTAL_SUPPLY, (), 1)


def test_unknown_chain_has_no_client() -> None:
    with pytest.raises(ContractReadError):
        ContractReader(config=RPCConfig()).read(XEN, TOTAL_SUPPLY, (), 424242)


def test_one_client_per_chain_across_batches(fetch_config: FetchConfig) -> None:
    reader = ContractReader(config=RPCConfig())
    batched = BatchedReader(fetch_config, sleep=lambda _: None)

    clients = batched.run_batched(list(range(20)), 5, lambda _: reader._client_for(1))

    assert len(clients) == 20
    assert len({id(client) for client in clients}) == 1
    assert reader._client_for(56) is not clients[0]
    reader.close()


def test_close_only_closes_the_session_it_created(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Session:
        closed = False

        def close(self) -> None:
            self.closed = True

    injected = _Session()
    ContractReader(config=RPCConfig(), session=injected).close()
    assert not injected.closed

    reader = ContractReader(config=RPCConfig())
    closed = []
    monkeypatch.setattr(reader._session, "close", lambda: closed.append(True))
    reader._client_for(1)
    reader.close()
    assert closed == [True]
    assert reader._client_for(1) is not None
