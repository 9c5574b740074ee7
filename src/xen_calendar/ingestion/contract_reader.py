"""JSON-RPC contract reads with Multicall3 batching over web3."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from web3 import Web3

from ..config.settings import RPCConfig, get_app_config
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from .abi import AGGREGATE3, ContractFunction

_TRANSIENT_MARKERS = (
    "429",
    "too many requests",
    "rate limit",
    "rate-limit",
    "timeout",
    "timed out",
    "network error",
    "connection reset",
    "connection aborted",
    "temporarily unavailable",
)
_TRANSIENT_STATUS_CODES = {429, 502, 503, 504}


class ContractReadError(RuntimeError):
    """A read that failed for a reason retrying will not fix."""


def is_transient_error(exc: BaseException) -> bool:
    """Return True for rate-limit, timeout, and network-level failures."""

    if isinstance(exc, ContractReadError):
        return False
    if isinstance(exc, (requests.Timeout, requests.ConnectionError, TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, requests.HTTPError):
        response = exc.response
        if response is not None and response.status_code in _TRANSIENT_STATUS_CODES:
            return True
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


@dataclass(frozen=True, slots=True)
class ContractCall:
    """One view-function invocation against a contract."""

    address: str
    function: ContractFunction
    args: Tuple[Any, ...] = ()
    sender: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ReadResult:
    """Outcome of one call inside a grouped read."""

    success: bool
    value: Any = None
    error: Optional[str] = None


class ContractReader:
    """Executes view calls on any configured chain.

    ``read`` issues a single ``eth_call``; ``read_batch`` groups many calls
    into one Multicall3 ``aggregate3`` request with ``allowFailure`` set, so
    every call carries its own success flag.
    """

    def __init__(
        self,
        config: Optional[RPCConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config or get_app_config().rpc
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._clients: Dict[int, Web3] = {}
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)

    def read(
        self,
        address: str,
        function: ContractFunction,
        args: Sequence[Any] = (),
        chain_id: int = 1,
        sender: Optional[str] = None,
    ) -> Any:
        client = self._client_for(chain_id)
        transaction: Dict[str, Any] = {
            "to": Web3.to_checksum_address(address),
            "data": Web3.to_hex(function.encode_call(args)),
        }
        if sender:
            transaction["from"] = Web3.to_checksum_address(sender)
        METRICS.increment("rpc.calls")
        raw = client.eth.call(transaction)
        try:
            return function.decode_output(bytes(raw))
        except Exception as exc:  # noqa: BLE001 - eth_abi raises several decoding errors
            raise ContractReadError(
                f"Cannot decode {function.signature} from {address} on chain {chain_id}: {exc}"
            ) from exc

    def read_batch(
        self,
        calls: Sequence[ContractCall],
        chain_id: int,
        multicall_address: Optional[str] = None,
    ) -> List[ReadResult]:
        if not calls:
            return []
        payload = [
            (Web3.to_checksum_address(call.address), True, call.function.encode_call(call.args))
            for call in calls
        ]
        METRICS.increment("rpc.multicalls")
        responses = self.read(
            multicall_address or self._config.multicall_address,
            AGGREGATE3,
            (payload,),
            chain_id,
        )
        if len(responses) != len(calls):
            raise ContractReadError(
                f"Multicall returned {len(responses)} results for {len(calls)} calls on chain {chain_id}"
            )
        results: List[ReadResult] = []
        for call, (success, return_data) in zip(calls, responses):
            if not success:
                results.append(ReadResult(False, error=f"{call.function.signature} reverted"))
                continue
            try:
                results.append(ReadResult(True, call.function.decode_output(return_data)))
            except Exception as exc:  # noqa: BLE001
                results.append(ReadResult(False, error=f"{call.function.signature}: {exc}"))
        return results

    def close(self) -> None:
        """Drop the cached clients and close the HTTP session this reader created."""

        with self._lock:
            self._clients.clear()
        if self._owns_session:
            self._session.close()

    def _client_for(self, chain_id: int) -> Web3:
        with self._lock:
            client = self._clients.get(chain_id)
            if client is not None:
                return client
            endpoint = self._config.endpoint_for(chain_id)
            if endpoint is None:
                raise ContractReadError(f"No RPC endpoint configured for chain {chain_id}")
            provider = Web3.HTTPProvider(
                endpoint,
                request_kwargs={"timeout": self._config.request_timeout},
                session=self._session,
            )
            client = Web3(provider)
            self._clients[chain_id] = client
        self._logger.debug("Created RPC client for chain %s at %s", chain_id, endpoint)
        return client


__all__ = [
    "ContractCall",
    "ContractReadError",
    "ContractReader",
    "ReadResult",
    "is_transient_error",
]
