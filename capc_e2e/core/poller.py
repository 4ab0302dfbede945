"""Deadline-bounded polling of a probe."""

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

from capc_e2e.core.models import Cancelled, NotFound, PollBudget, PollResult

logger = logging.getLogger(__name__)


class Probe(Protocol):
    """Anything that can be asked for its current poll result."""

    def poll(self) -> PollResult:
        ...


def poll_until(
    probe: Probe,
    interval: float,
    deadline: float,
    cancel_event: threading.Event | None = None,
    on_tick: Callable[[int, PollResult], None] | None = None,
) -> PollResult:
    """Poll probe until it reports a terminal result or the deadline passes.

    The probe is invoked immediately, then every ``interval`` seconds. The
    last wait is shortened so that a final probe happens at the deadline.

    Parameters
    ----------
    probe : Probe
        Object whose ``poll()`` is invoked on each tick
    interval : float
        Tick spacing in seconds; must be positive
    deadline : float
        Total budget in seconds; 0 means a single probe
    cancel_event : threading.Event | None
        Setting this event stops polling within one tick
    on_tick : Callable[[int, PollResult], None] | None
        Called after every probe with the tick number and its result

    Returns
    -------
    PollResult
        ``Found``/``Error`` as soon as the probe returns one, ``NotFound``
        when the deadline elapsed, ``Cancelled`` on external cancellation
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    if deadline < 0:
        raise ValueError(f"deadline must be non-negative, got {deadline}")

    if cancel_event is None:
        cancel_event = threading.Event()

    start = time.monotonic()
    deadline_at = start + deadline
    tick = 0

    while True:
        if cancel_event.is_set():
            logger.debug("Polling cancelled before tick %d", tick)
            return Cancelled("polling cancelled")

        result = probe.poll()
        tick += 1

        if on_tick is not None:
            on_tick(tick, result)

        if result.terminal:
            logger.debug("Poll tick %d returned %s", tick, result.describe())
            return result

        remaining = deadline_at - time.monotonic()
        if remaining <= 0:
            logger.debug(
                "Deadline of %.2fs elapsed after %d ticks", deadline, tick
            )
            return NotFound()

        if cancel_event.wait(min(interval, remaining)):
            logger.debug("Polling cancelled while waiting after tick %d", tick)
            return Cancelled("polling cancelled")


class DeadlinePoller:
    """Drives a probe through a named wait budget.

    Parameters
    ----------
    budget : PollBudget
        Deadline and interval selected for the scenario
    cancel_event : threading.Event | None
        Cancellation event shared with the scenario run
    """

    def __init__(
        self, budget: PollBudget, cancel_event: threading.Event | None = None
    ) -> None:
        self.budget = budget
        self.cancel_event = cancel_event or threading.Event()
        self.ticks = 0
        self.last_result: PollResult | None = None
        self.elapsed_seconds = 0.0

    def _record_tick(self, tick: int, result: PollResult) -> None:
        self.ticks = tick
        self.last_result = result

    def cancel(self) -> None:
        """Request cancellation; the running poll returns within one tick."""
        self.cancel_event.set()

    def run(self, probe: Probe) -> PollResult:
        logger.debug(
            "Polling for scenario '%s': deadline=%.2fs interval=%.2fs",
            self.budget.scenario_name,
            self.budget.deadline,
            self.budget.interval,
        )
        start = time.monotonic()
        try:
            result = poll_until(
                probe,
                interval=self.budget.interval,
                deadline=self.budget.deadline,
                cancel_event=self.cancel_event,
                on_tick=self._record_tick,
            )
        finally:
            self.elapsed_seconds = time.monotonic() - start
        self.last_result = result
        return result
