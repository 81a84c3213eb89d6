"""Fan-out/fan-in for independent read-only sub-queries."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from liqsim.errors import SimulationSuperseded

T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger(__name__)

# How often a cancellable wait checks its cancel event (seconds).
CANCEL_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class ItemOutcome(Generic[T, R]):
    """Per-item result of a fanned-out query: a value or the error that replaced it."""

    item: T
    value: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _wait_all(
    futures: list[Future], timeout: float | None, cancel: threading.Event | None
) -> set[Future]:
    """Wait for ``futures`` until done or the deadline; return the unfinished ones."""
    if cancel is None:
        _, not_done = wait(futures, timeout=timeout)
        return not_done

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        step = CANCEL_POLL_INTERVAL
        if deadline is not None:
            step = max(0.0, min(step, deadline - time.monotonic()))
        _, not_done = wait(futures, timeout=step)
        if not not_done:
            return not_done
        if cancel.is_set():
            raise SimulationSuperseded("simulation inputs changed; sub-queries abandoned")
        if deadline is not None and time.monotonic() >= deadline:
            return not_done


def fan_out(
    items: Sequence[T],
    query: Callable[[T], R],
    timeout: float | None = None,
    max_workers: int = 8,
    cancel: threading.Event | None = None,
) -> list[ItemOutcome[T, R]]:
    """Run ``query`` once per item concurrently and wait for all of them.

    Every sub-query shares one ``timeout`` deadline counted from submission.
    A sub-query that raises or has not finished by the deadline yields an
    ``ItemOutcome`` carrying the error instead of a value; nothing is raised.

    Args:
        items: Inputs, one sub-query each.
        query: Callable issuing the sub-query.
        timeout: Seconds to wait for all sub-queries, or None to wait forever.
        max_workers: Thread pool size cap.
        cancel: When set while sub-queries are pending, they are abandoned.

    Returns:
        Outcomes in the order of ``items``.

    Raises:
        SimulationSuperseded: ``cancel`` was set before every sub-query finished.
    """
    if not items:
        return []

    executor = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items))))
    try:
        futures = [executor.submit(query, item) for item in items]
        not_done = _wait_all(futures, timeout, cancel)

        outcomes: list[ItemOutcome[T, R]] = []
        for item, future in zip(items, futures):
            if future in not_done:
                future.cancel()
                outcomes.append(
                    ItemOutcome(item=item, error=TimeoutError(f"query timed out after {timeout}s"))
                )
                continue
            error = future.exception()
            if error is not None:
                outcomes.append(ItemOutcome(item=item, error=error))
            else:
                outcomes.append(ItemOutcome(item=item, value=future.result()))
        return outcomes
    finally:
        # Hung sub-queries are abandoned, not joined.
        executor.shutdown(wait=False, cancel_futures=True)


def call_with_timeout(
    query: Callable[[], R],
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> R:
    """Run a single query under the same deadline and cancel rules as ``fan_out``.

    Raises the query's own exception, ``TimeoutError`` or ``SimulationSuperseded``.
    """
    (outcome,) = fan_out([None], lambda _: query(), timeout=timeout, max_workers=1, cancel=cancel)
    if outcome.error is not None:
        raise outcome.error
    return outcome.value  # type: ignore[return-value]


def log_failures(outcomes: Sequence[ItemOutcome[Any, Any]], what: str, label: Callable[[Any], str]) -> list[str]:
    """Log each failed outcome and return the failed item labels."""
    failed = []
    for outcome in outcomes:
        if outcome.ok:
            continue
        name = label(outcome.item)
        logger.warning(
            "%s query failed for %s: %r",
            what,
            name,
            outcome.error,
            exc_info=outcome.error,
        )
        failed.append(name)
    return failed
