"""Background replenishment of the vanity pool.

For every configured pattern, compares the ready count with its minimum
buffer and drives the search worker to close the gap, then sleeps and
re-scans forever. Runs as daemon threads: one thread cycling through all
patterns in order, or one thread per pattern when ``parallel`` is set.

Fill errors are returned as outcomes and logged in one place
(``run_cycle``); they never stop the loop.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from app.config import BufferTarget, ReplenishConfig
from app.services.pool_store import PoolStore
from app.services.search import SearchWorker

logger = logging.getLogger(__name__)


class BufferState(str, Enum):
    IDLE = "idle"  # ready count at or above min_ready
    FILLING = "filling"  # search worker active for this pattern


@dataclass(frozen=True, slots=True)
class TargetOutcome:
    pattern: str
    ready_before: int | None
    requested: int
    found: int
    state: BufferState
    error: BaseException | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class ReplenishmentController:
    """Keeps each pattern's ready buffer at or above its minimum."""

    __slots__ = (
        "_config",
        "_store",
        "_search",
        "_states",
        "_states_lock",
        "_threads",
        "_stop_event",
    )

    def __init__(
        self,
        config: ReplenishConfig,
        store: PoolStore,
        search_worker: SearchWorker,
    ) -> None:
        self._config = config
        self._store = store
        self._search = search_worker
        self._states: dict[str, BufferState] = {
            t.pattern: BufferState.IDLE for t in config.targets
        }
        self._states_lock = threading.Lock()
        self._threads: list[threading.Thread] = []
        self._stop_event = threading.Event()

    @property
    def config(self) -> ReplenishConfig:
        return self._config

    @property
    def store(self) -> PoolStore:
        return self._store

    def states(self) -> dict[str, BufferState]:
        with self._states_lock:
            return dict(self._states)

    def _set_state(self, pattern: str, state: BufferState) -> None:
        with self._states_lock:
            self._states[pattern] = state

    def evaluate(
        self, target: BufferTarget, cancel: threading.Event | None = None
    ) -> TargetOutcome:
        """Run one Idle/Filling decision for ``target``.

        Never raises: any failure is captured in the returned outcome.
        """
        ready: int | None = None
        needed = 0
        try:
            ready = self._store.count_ready(
                target.pattern, target.case_sensitive, target.mode
            )
            if ready >= target.min_ready:
                self._set_state(target.pattern, BufferState.IDLE)
                return TargetOutcome(target.pattern, ready, 0, 0, BufferState.IDLE)

            needed = target.min_ready - ready
            self._set_state(target.pattern, BufferState.FILLING)
            logger.info(
                "Filling pattern=%s ready=%d min_ready=%d need=%d",
                target.pattern,
                ready,
                target.min_ready,
                needed,
            )
            result = self._search.fill_target(target, needed, cancel=cancel)
            return TargetOutcome(
                target.pattern,
                ready,
                needed,
                result.found,
                BufferState.FILLING,
                cancelled=result.cancelled,
            )
        except Exception as exc:
            return TargetOutcome(
                target.pattern, ready, needed, 0, BufferState.FILLING, error=exc
            )
        finally:
            self._set_state(target.pattern, BufferState.IDLE)

    def run_cycle(
        self,
        targets: tuple[BufferTarget, ...] | None = None,
        cancel: threading.Event | None = None,
    ) -> list[TargetOutcome]:
        """Evaluate targets strictly in order, logging each outcome."""
        outcomes: list[TargetOutcome] = []
        for target in targets if targets is not None else self._config.targets:
            if cancel is not None and cancel.is_set():
                break
            outcome = self.evaluate(target, cancel=cancel)
            outcomes.append(outcome)
            if outcome.error is not None:
                logger.error(
                    "Replenish failed pattern=%s ready=%s requested=%d: %s",
                    outcome.pattern,
                    outcome.ready_before,
                    outcome.requested,
                    outcome.error,
                    exc_info=outcome.error,
                )
            elif outcome.requested:
                logger.info(
                    "Replenished pattern=%s found=%d/%d%s",
                    outcome.pattern,
                    outcome.found,
                    outcome.requested,
                    " (cancelled)" if outcome.cancelled else "",
                )
        return outcomes

    def run_forever(
        self,
        targets: tuple[BufferTarget, ...] | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Cycle until ``stop_event`` is set, sleeping between passes."""
        stop_event = stop_event if stop_event is not None else self._stop_event
        while not stop_event.is_set():
            try:
                self.run_cycle(targets, cancel=stop_event)
            except Exception:
                logger.exception("Unhandled error in replenishment cycle")
            stop_event.wait(self._config.interval_seconds)

    def start(self) -> None:
        """Start the daemon replenishment thread(s)."""
        self._stop_event.clear()
        if self._config.parallel:
            groups = [(t,) for t in self._config.targets]
        else:
            groups = [self._config.targets]

        self._threads = []
        for group in groups:
            name = (
                f"vanity-fill-{group[0].pattern}"
                if self._config.parallel
                else "vanity-replenisher"
            )
            thread = threading.Thread(
                target=self.run_forever,
                args=(group, self._stop_event),
                name=name,
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info(
            "Replenishment started patterns=%s min_ready=%s parallel=%s",
            ",".join(t.pattern for t in self._config.targets),
            ",".join(str(t.min_ready) for t in self._config.targets),
            self._config.parallel,
        )

    def stop(self, timeout: float = 10.0) -> None:
        """Signal all threads to stop and wait for them to finish."""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        logger.info("Replenishment stopped")

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)
