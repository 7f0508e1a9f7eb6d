"""Debounced change propagation through a compiled form."""

from __future__ import annotations

import asyncio
import logging
import time
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from formcalc._eval_engine import build_context, run_pass

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from formcalc._eval_engine import PassResult, ResultListener
    from formcalc._ir import FormGraph

    from ._timers import TimerHandle, TimerScheduler

logger = logging.getLogger(__name__)


class PropagatorState(StrEnum):
    """Lifecycle state of a ChangePropagator."""

    IDLE = auto()  # Nothing scheduled
    PENDING = auto()  # A debounce window is open
    EVALUATING = auto()  # A pass is running
    SETTLED = auto()  # A pass just finished; pass listeners are being notified


# Changes arriving in these states are queued until the pass is over.
_BUSY_STATES = frozenset({PropagatorState.EVALUATING, PropagatorState.SETTLED})


class ChangePropagator:
    """Re-evaluates derived fields when the values they depend on change.

    Rapid changes are coalesced: each qualifying change restarts the debounce
    window, and a single pass recomputes the union of everything affected
    once the window closes. Passes never overlap; a change arriving while a
    pass runs or settles (for example from a result or pass listener) is
    queued and handled once the propagator is back to IDLE.

    Args:
        form: The compiled form.
        timers: Source of debounce timers. Defaults to the running asyncio loop.
        on_result: Called with each EvaluationResult as its field settles.
        on_pass: Called with each PassResult, in the SETTLED state.
        clock: Source of result timestamps.

    Example:
        >>> timers = ManualTimerScheduler()
        >>> propagator = ChangePropagator(form, timers=timers)
        >>> propagator.handle_change("x", 3)
        >>> timers.advance(300)
        >>> propagator.values["y"]
        6

    """

    def __init__(
        self,
        form: FormGraph,
        *,
        timers: TimerScheduler | None = None,
        on_result: ResultListener | None = None,
        on_pass: Callable[[PassResult], object] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._form = form
        self._timers = timers
        self._on_result = on_result
        self._on_pass = on_pass
        self._clock = clock

        self._state = PropagatorState.IDLE
        self._raw: dict[str, Any] = {}
        self._computed: dict[str, Any] = {}
        self._last_good: dict[str, Any] = {}
        self._pending: set[str] = set()
        self._queued: list[tuple[str, Any]] = []
        self._timer: TimerHandle | None = None
        self.pass_count = 0

    @property
    def state(self) -> PropagatorState:
        return self._state

    @property
    def form(self) -> FormGraph:
        return self._form

    @property
    def pending_fields(self) -> frozenset[str]:
        """Derived fields waiting for the current debounce window to close."""
        return frozenset(self._pending)

    @property
    def values(self) -> dict[str, Any]:
        """Current value of every field: raw inputs merged with computed values."""
        return build_context(self._form, self._raw, self._computed).as_values()

    def handle_change(self, field_id: str, new_value: Any) -> None:
        """Record a new raw value and schedule re-evaluation of its dependents.

        Raises:
            KeyError: If the form has no field ``field_id``.

        """
        if field_id not in self._form:
            msg = f"Field not found: {field_id}"
            raise KeyError(msg)

        if self._state in _BUSY_STATES:
            logger.debug("Queued change to %s while %s", field_id, self._state)
            self._queued.append((field_id, new_value))
            return

        self._raw[field_id] = new_value
        affected = self._form.affected_by([field_id])
        if not affected:
            logger.debug("Change to %s affects no derived field", field_id)
            return

        self._pending |= affected
        self._restart_window()

    def load_values(self, values: Mapping[str, Any]) -> None:
        """Set raw values without scheduling a pass (before ``evaluate_all``).

        Values for ids the form does not have are ignored.
        """
        for field_id, value in values.items():
            if field_id in self._form:
                self._raw[field_id] = value
            else:
                logger.debug("Ignoring value for unknown field %s", field_id)

    def flush(self) -> PassResult | None:
        """Close the open debounce window now and run the pending pass.

        Returns:
            The PassResult, or None when nothing was pending.

        """
        if self._state != PropagatorState.PENDING:
            return None
        self._cancel_timer()
        targets = frozenset(self._pending)
        self._pending.clear()
        return self._run(targets)

    def evaluate_all(self) -> PassResult:
        """Run one full pass over every derived field (initial render).

        Any open debounce window is closed, since the full pass covers it.

        Raises:
            RuntimeError: If called while a pass is running.

        """
        if self._state in _BUSY_STATES:
            msg = "Cannot start a full evaluation while a pass is running"
            raise RuntimeError(msg)
        self._cancel_timer()
        self._pending.clear()
        return self._run(spec.id for spec in self._form.expression_fields())

    def load_form(self, form: FormGraph) -> None:
        """Switch to a new compiled form and reset to IDLE.

        Pending and queued work and all computed values are discarded. Raw
        values of fields that still exist are kept.
        """
        self._cancel_timer()
        self._form = form
        self._state = PropagatorState.IDLE
        self._pending.clear()
        self._queued.clear()
        self._computed.clear()
        self._last_good.clear()
        self._raw = {field_id: value for field_id, value in self._raw.items() if field_id in form}
        logger.debug("Loaded form with %d field(s)", len(form))

    def _restart_window(self) -> None:
        self._cancel_timer()
        self._state = PropagatorState.PENDING
        window_ms = self._form.debounce_for(self._pending)
        if window_ms == 0:
            self.flush()
            return
        logger.debug("Debounce window of %d ms for %d field(s)", window_ms, len(self._pending))
        self._timer = self._timer_source().call_later(window_ms / 1000, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self.flush()

    def _timer_source(self) -> TimerScheduler:
        if self._timers is None:
            return asyncio.get_running_loop()
        return self._timers

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _run(self, targets: Iterable[str]) -> PassResult:
        self._state = PropagatorState.EVALUATING
        try:
            context = build_context(self._form, self._raw, self._computed)
            result = run_pass(
                self._form,
                context,
                targets,
                last_good=self._last_good,
                on_result=self._on_result,
                clock=self._clock,
            )
        except BaseException:
            self._state = PropagatorState.IDLE
            raise

        for field_result in result.results:
            self._computed[field_result.field_id] = field_result.value
            if field_result.ok:
                self._last_good[field_result.field_id] = field_result.value
        self.pass_count += 1
        logger.debug("Pass %d settled: %d field(s)", self.pass_count, len(result.results))

        self._state = PropagatorState.SETTLED
        try:
            if self._on_pass is not None:
                self._on_pass(result)
        finally:
            self._state = PropagatorState.IDLE

        queued, self._queued = self._queued, []
        for field_id, new_value in queued:
            self.handle_change(field_id, new_value)
        return result
