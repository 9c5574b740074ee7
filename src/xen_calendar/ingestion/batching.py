"""Batched, rate-limit aware execution of independent remote reads.

Work is cut into consecutive batches. Items of one batch run concurrently,
batches run one after another with a pause in between, which is the only
throttle applied against upstream rate limits. Transient failures are retried
per item with exponential backoff; anything else drops the item and the run
carries on.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config.settings import FetchConfig, get_app_config
from ..monitoring.logger import get_logger
from ..monitoring.metrics import METRICS
from .contract_reader import ContractCall, ContractReader, is_transient_error

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]

_FAILED = object()


class BatchedReader:
    """Runs per-item or grouped reads in throttled batches."""

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._config = config or get_app_config().fetch
        self._sleep = sleep
        self._cancel_event = cancel_event
        self._logger = get_logger(__name__)

    def run_batched(
        self,
        items: Sequence[T],
        batch_size: int,
        worker: Callable[[T], Optional[R]],
        on_progress: Optional[ProgressCallback] = None,
        delay_seconds: float = 0.0,
    ) -> List[R]:
        """Apply ``worker`` to every item and return the successful results.

        Results keep the input order. Items whose worker raised, exhausted its
        retries, or returned ``None`` are left out.
        """

        guarded = self._guard(worker)

        def process(batch: Sequence[T]) -> List[R]:
            if len(batch) == 1:
                outcomes = [guarded(batch[0])]
            else:
                with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                    outcomes = list(executor.map(guarded, batch))
            return [outcome for outcome in outcomes if outcome is not _FAILED and outcome is not None]

        return self._run(items, batch_size, process, on_progress, delay_seconds)

    def run_batched_multicall(
        self,
        items: Sequence[T],
        batch_size: int,
        build_call: Callable[[T], ContractCall],
        reader: ContractReader,
        chain_id: int,
        *,
        multicall_address: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        delay_seconds: float = 0.0,
    ) -> List[Tuple[T, Any]]:
        """Issue one grouped read per batch and pair each item with its value.

        A call that fails inside a grouped read only drops its own item; a
        grouped read that fails as a whole drops that batch.
        """

        def process(batch: Sequence[T]) -> List[Tuple[T, Any]]:
            calls = [build_call(item) for item in batch]
            try:
                results = self.call_with_retry(
                    lambda: reader.read_batch(calls, chain_id, multicall_address)
                )
            except Exception as exc:  # noqa: BLE001
                METRICS.increment("reader.items.failed", len(batch))
                self._logger.error(
                    "Grouped read of %d calls failed on chain %s: %s", len(batch), chain_id, exc
                )
                return []
            paired: List[Tuple[T, Any]] = []
            for item, result in zip(batch, results):
                if result.success:
                    paired.append((item, result.value))
                    METRICS.increment("reader.items.ok")
                else:
                    METRICS.increment("reader.items.failed")
                    self._logger.debug("Call for %r failed: %s", item, result.error)
            return paired

        return self._run(items, batch_size, process, on_progress, delay_seconds)

    def _run(
        self,
        items: Sequence[T],
        batch_size: int,
        process: Callable[[Sequence[T]], List[Any]],
        on_progress: Optional[ProgressCallback],
        delay_seconds: float,
    ) -> List[Any]:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        pending = list(items)
        total = len(pending)
        results: List[Any] = []
        done = 0
        for start in range(0, total, batch_size):
            if self._cancel_event is not None and self._cancel_event.is_set():
                self._logger.info("Cancelled after %d/%d items", done, total)
                break
            batch = pending[start : start + batch_size]
            results.extend(process(batch))
            done += len(batch)
            METRICS.increment("reader.batches")
            self._notify(on_progress, done, total)
            if done < total and delay_seconds > 0:
                self._sleep(delay_seconds)
        return results

    def _guard(self, worker: Callable[[T], Optional[R]]) -> Callable[[T], Any]:
        def guarded(item: T) -> Any:
            try:
                outcome = self.call_with_retry(lambda: worker(item))
            except Exception as exc:  # noqa: BLE001
                METRICS.increment("reader.items.failed")
                if is_transient_error(exc):
                    self._logger.error(
                        "Giving up on %r after %d attempts: %s", item, self._config.max_attempts, exc
                    )
                else:
                    self._logger.error("Read for %r failed: %s", item, exc)
                return _FAILED
            METRICS.increment("reader.items.ok")
            return outcome

        return guarded

    def call_with_retry(self, fn: Callable[[], R]) -> R:
        """Run ``fn`` under the transient-error retry policy; re-raise the last error."""

        retryer = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(
                multiplier=self._config.backoff_initial_seconds,
                min=self._config.backoff_initial_seconds,
                max=self._config.backoff_max_seconds,
            ),
            retry=retry_if_exception(is_transient_error),
            sleep=self._sleep,
            before_sleep=self._before_retry,
            reraise=True,
        )
        return retryer(fn)

    def _before_retry(self, state: RetryCallState) -> None:
        METRICS.increment("reader.retries")
        exc = state.outcome.exception() if state.outcome else None
        delay = state.next_action.sleep if state.next_action else 0.0
        self._logger.warning(
            "Transient read failure, retrying in %.1fs (attempt %d/%d): %s",
            delay,
            state.attempt_number,
            self._config.max_attempts,
            exc,
        )

    def _notify(self, on_progress: Optional[ProgressCallback], done: int, total: int) -> None:
        if on_progress is None:
            return
        try:
            on_progress(done, total)
        except Exception as exc:  # noqa: BLE001 - progress sinks are fire-and-forget
            self._logger.warning("Progress callback failed: %s", exc)


__all__ = ["BatchedReader", "ProgressCallback"]
