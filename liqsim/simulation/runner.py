"""Re-run the waterfall on input changes, keeping only the latest run's result."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from liqsim.data.interfaces import WaterfallQueries
from liqsim.errors import SimulationSuperseded
from liqsim.position.cdp_position import PositionSnapshot
from liqsim.simulation.params import SimulatorConfig
from liqsim.simulation.results import SimulationResult
from liqsim.simulation.waterfall import simulate

logger = logging.getLogger(__name__)


class LatestRunner:
    """Last-write-wins simulation runner.

    Each ``submit`` supersedes the previous run. A run that has not started
    is cancelled outright. A run in flight has its cancel event set, so it
    drops its pending sub-queries and frees its worker, and its result is
    never published. The newest run does not wait for superseded runs to
    finish their queries.

    Parameters
    ----------
    queries : WaterfallQueries
        Query capabilities shared by every run.
    config : SimulatorConfig | None
        Timeouts and pool sizes.
    on_result : Callable[[SimulationResult], None] | None
        Called with each published (latest) result.
    """

    def __init__(
        self,
        queries: WaterfallQueries,
        config: SimulatorConfig | None = None,
        on_result: Callable[[SimulationResult], None] | None = None,
    ) -> None:
        self._queries = queries
        self._config = config or SimulatorConfig()
        self._on_result = on_result
        self._lock = threading.Lock()
        self._generation = 0
        self._cancel: threading.Event | None = None
        self._future: Future | None = None
        self._latest: SimulationResult | None = None
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="waterfall")

    @property
    def latest(self) -> SimulationResult | None:
        """Most recent published result, or None before the first completes."""
        with self._lock:
            return self._latest

    def submit(self, snapshot: PositionSnapshot, user: str | None = None) -> Future:
        """Start a run for ``snapshot``, abandoning any run still in flight.

        Returns:
            Future resolving to the run's SimulationResult. It raises
            ``SimulationSuperseded`` if a newer submit overtook the run, or
            ``CancelledError`` if it was superseded before it started.
        """
        cancel = threading.Event()
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            if self._future is not None:
                self._future.cancel()
            self._cancel = cancel
            self._generation += 1
            generation = self._generation
            self._future = self._executor.submit(self._run, generation, cancel, snapshot, user)
            return self._future

    def _run(
        self,
        generation: int,
        cancel: threading.Event,
        snapshot: PositionSnapshot,
        user: str | None,
    ) -> SimulationResult:
        try:
            result = simulate(snapshot, self._queries, user=user, config=self._config, cancel=cancel)
        except SimulationSuperseded:
            logger.info("Simulation run %d superseded", generation)
            raise

        with self._lock:
            if generation != self._generation:
                logger.info("Discarding result of superseded run %d", generation)
                raise SimulationSuperseded(f"run {generation} finished after a newer submit")
            self._latest = result

        if self._on_result is not None:
            self._on_result(result)
        return result

    def close(self) -> None:
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
        self._executor.shutdown(wait=False, cancel_futures=True)
