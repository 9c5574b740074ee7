from __future__ import annotations

import base64
import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from xen_calendar.config.settings import FetchConfig
from xen_calendar.ingestion.abi import ContractFunction
from xen_calendar.ingestion.batching import BatchedReader
from xen_calendar.ingestion.contract_reader import ContractCall, ContractReadError, ReadResult
from xen_calendar.monitoring.metrics import METRICS
from xen_calendar.utils.constants import ZERO_ADDRESS

OWNER = "0x" + "ab" * 20


class FakeReader:
    """In-memory stand-in for ``ContractReader`` keyed by function name.

    A response is either a value or a callable taking the call arguments.
    Exceptions (returned or raised by the callable) propagate like a failed
    remote read; inside ``read_batch`` they mark only that call as failed.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses: Dict[str, Any] = dict(responses or {})
        self.reads: List[Tuple[str, str, Tuple[Any, ...], int, Optional[str]]] = []
        self.batches: List[List[ContractCall]] = []

    def _resolve(self, function: ContractFunction, args: Sequence[Any]) -> Any:
        if function.name not in self.responses:
            raise ContractReadError(f"{function.signature} reverted")
        response = self.responses[function.name]
        value = response(*args) if callable(response) else response
        if isinstance(value, BaseException):
            raise value
        return value

    def read(
        self,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
        chain_id: int = 1,
        sender: Optional[str] = None,
    ) -> Any:
        self.reads.append((address, function.name, tuple(args), chain_id, sender))
        return self._resolve(function, args)

    def read_batch(
        self,
        calls: Sequence[ContractCall],
        chain_id: int,
        multicall_address: Optional[str] = None,
    ) -> List[ReadResult]:
        self.batches.append(list(calls))
        results: List[ReadResult] = []
        for call in calls:
            try:
                results.append(ReadResult(True, self._resolve(call.function, call.args)))
            except Exception as exc:  # noqa: BLE001
                results.append(ReadResult(False, error=str(exc)))
        return results

    def calls_to(self, name: str) -> int:
        singles = sum(1 for read in self.reads if read[1] == name)
        grouped = sum(1 for batch in self.batches for call in batch if call.function.name == name)
        return singles + grouped


def token_uri(name: str, attributes: Dict[str, Any]) -> str:
    document = {
        "name": name,
        "attributes": [{"trait_type": label, "value": value} for label, value in attributes.items()],
    }
    encoded = base64.b64encode(json.dumps(document).encode()).decode()
    return f"data:application/json;base64,{encoded}"


def mint_record(maturity_ts: int, user: str = "0x" + "11" * 20, term: int = 100) -> Tuple[Any, ...]:
    return (user, term, maturity_ts, 12345, 3000, 50)


EMPTY_MINT = (ZERO_ADDRESS, 0, 0, 0, 0, 0)


@pytest.fixture(autouse=True)
def _reset_metrics():
    METRICS.reset()
    yield
    METRICS.reset()


@pytest.fixture
def fetch_config() -> FetchConfig:
    return FetchConfig(
        xenft_batch_delay_seconds=0.0,
        cointool_batch_delay_seconds=0.0,
        backoff_initial_seconds=1.0,
        backoff_max_seconds=4.0,
    )


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def batched_reader(fetch_config: FetchConfig, sleeps: List[float]) -> BatchedReader:
    return BatchedReader(fetch_config, sleep=sleeps.append)


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def fake_reader_factory() -> Callable[..., FakeReader]:
    return FakeReader


@pytest.fixture
def make_token_uri() -> Callable[[str, Dict[str, Any]], str]:
    return token_uri


@pytest.fixture
def make_mint_record() -> Callable[..., Tuple[Any, ...]]:
    return mint_record


@pytest.fixture
def empty_mint() -> Tuple[Any, ...]:
    return EMPTY_MINT
