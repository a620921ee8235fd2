"""Stop conditions and their location within an integration step.

An :class:`Event` wraps a scalar function ``g(state, elapsed)`` of the
propagated :class:`~odjax.state.State` and the elapsed integration time.
The event occurs where ``g`` crosses zero in the configured direction.

:class:`EventDetector` examines one accepted step at a time. It brackets
each event's sign change between the step end points, then bisects on the
cubic Hermite interpolant of the step until the bracket is narrower than
the event's epoch tolerance. Events are resolved independently and the
earliest crossing is reported. Time-based events (elapsed time, epoch
reached) are located analytically from their target time.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import NamedTuple

from jax import Array

from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.integrators.hermite import hermite_interpolate
from odjax.state import ELEMENT_NAMES, State
from odjax.utils import wrap_to_pi

_ANGULAR_ELEMENTS = frozenset({"inc", "raan", "aop", "ta", "ea", "ma"})


@dataclass(frozen=True, eq=False)
class Event:
    """A scalar stop condition.

    Attributes:
        name: Label used in results and logs.
        function: ``g(state, elapsed) -> float``; the event occurs where it
            crosses zero.
        direction: ``+1`` for increasing crossings only, ``-1`` for
            decreasing only, ``0`` for both.
        terminal: Stop the propagation at the crossing.
        epoch_tolerance: Width [s] of the final bisection bracket.
        angular: ``g`` is an angle difference wrapped to ``[-pi, pi)``; a
            jump across the wrap is not a crossing.
        target_elapsed: For time-based events, the elapsed time [s] at
            which ``g`` is zero. The propagator lands on it exactly.

    Examples:
        ```python
        from odjax.events import Event
        stop = Event.elapsed_time(3600.0)
        apoapsis = Event.element_crossing("ta", 180.0, direction=1, use_degrees=True)
        ```
    """

    name: str
    function: Callable[[State, float], float]
    direction: int = 0
    terminal: bool = True
    epoch_tolerance: float = 1e-6
    angular: bool = False
    target_elapsed: float | None = None

    def __post_init__(self):
        if self.direction not in (-1, 0, 1):
            raise InvalidConfiguration(f"event direction must be -1, 0 or 1, got {self.direction}")
        if not self.epoch_tolerance > 0.0:
            raise InvalidConfiguration(
                f"event epoch tolerance must be positive, got {self.epoch_tolerance}"
            )

    def __call__(self, state: State, elapsed: float) -> float:
        value = float(self.function(state, elapsed))
        if self.angular:
            value = float(wrap_to_pi(value))
        return value

    @classmethod
    def elapsed_time(cls, seconds: float, name: str | None = None) -> Event:
        """Stop after *seconds* of propagation (negative for backwards)."""
        seconds = float(seconds)
        return cls(
            name=name or f"elapsed {seconds:g} s",
            function=lambda state, elapsed: elapsed - seconds,
            target_elapsed=seconds,
        )

    @classmethod
    def epoch_reached(cls, epoch: Epoch, start: Epoch, name: str | None = None) -> Event:
        """Stop at *epoch*, for a propagation starting at *start*."""
        target = float(epoch - start)
        return cls(
            name=name or f"epoch {epoch}",
            function=lambda state, elapsed: elapsed - target,
            target_elapsed=target,
        )

    @classmethod
    def element_crossing(
        cls,
        element: str,
        value: float,
        direction: int = 0,
        use_degrees: bool = False,
        terminal: bool = True,
        epoch_tolerance: float = 1e-6,
    ) -> Event:
        """Stop when an orbital element crosses *value*.

        Args:
            element: Any name accepted by :meth:`odjax.state.State.element`.
            value: Threshold, in degrees for angles when *use_degrees*.
            direction: Crossing direction filter.
            use_degrees: Interpret *value* in degrees.
            terminal: Stop the propagation at the crossing.
            epoch_tolerance: Bisection tolerance [s].

        Raises:
            KeyError: If *element* is not a known quantity.
        """
        if element not in ELEMENT_NAMES:
            raise KeyError(f"unknown orbital element '{element}'")
        angular = element in _ANGULAR_ELEMENTS
        threshold = math.radians(value) if (angular and use_degrees) else float(value)

        def g(state, elapsed):
            return state.element(element) - threshold

        return cls(
            name=f"{element} = {value:g}",
            function=g,
            direction=direction,
            terminal=terminal,
            epoch_tolerance=epoch_tolerance,
            angular=angular,
        )


class EventCrossing(NamedTuple):
    """A located event.

    Attributes:
        event: The event that occurred.
        t: Elapsed integration time of the crossing [s].
        epoch: Epoch of the crossing.
        direction: ``+1`` if ``g`` was increasing, ``-1`` if decreasing,
            ``0`` for an event satisfied at the start of the propagation.
    """

    event: Event
    t: float
    epoch: Epoch
    direction: int


class StepWindow(NamedTuple):
    """One accepted step, with what the detector needs to interpolate it.

    Attributes:
        t0: Elapsed time at the start of the step.
        x0: State vector at ``t0``.
        f0: Derivative at ``t0``.
        t1: Elapsed time at the end of the step.
        x1: State vector at ``t1``.
        f1: Derivative at ``t1``.
        state_at: Builds the tagged :class:`State` for ``(t, x)``.
    """

    t0: float
    x0: Array
    f0: Array
    t1: float
    x1: Array
    f1: Array
    state_at: Callable[[float, Array], State]


class EventDetector:
    """Locate the earliest event crossing inside an accepted step.

    Args:
        events: Conditions to monitor, in priority order for ties.
    """

    def __init__(self, events: Sequence[Event]):
        self.events = tuple(events)
        self._last = {}

    @property
    def needs_derivatives(self) -> bool:
        """``True`` if any event must be located by interpolation."""
        return any(e.target_elapsed is None for e in self.events)

    def time_targets(self) -> list[float]:
        """Elapsed times of the time-based events."""
        return [e.target_elapsed for e in self.events if e.target_elapsed is not None]

    def at_start(self, window_state: State) -> EventCrossing | None:
        """Return a terminal time event whose target is zero, if any."""
        for event in self.events:
            if event.terminal and event.target_elapsed is not None and event.target_elapsed == 0.0:
                return EventCrossing(event, 0.0, window_state.epoch, 0)
        return None

    def record(self, crossing: EventCrossing) -> None:
        """Remember a crossing the propagator has landed on."""
        self._last[id(crossing.event)] = crossing.t

    def checkpoint(self) -> dict:
        """Copy of the recorded crossings, for :meth:`rewind`."""
        return dict(self._last)

    def rewind(self, mark: dict) -> None:
        """Forget crossings recorded after *mark* was taken."""
        self._last = dict(mark)

    def locate(self, window: StepWindow) -> EventCrossing | None:
        """Return the earliest crossing within *window*, or ``None``."""
        forward = window.t1 >= window.t0
        best = None
        for event in self.events:
            t = self._locate_one(event, window)
            if t is None:
                continue
            if best is None or (t < best[0] if forward else t > best[0]):
                best = (t, event)

        if best is None:
            return None
        t, event = best
        x = self._interpolate(window, t)
        g0 = self._g(event, window, window.t0, window.x0)
        direction = 1 if g0 < 0.0 else -1
        return EventCrossing(event, t, window.state_at(t, x).epoch, direction)

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    @staticmethod
    def _interpolate(window, t):
        if t == window.t1:
            return window.x1
        if t == window.t0:
            return window.x0
        return hermite_interpolate(window.t0, window.x0, window.f0, window.t1, window.x1, window.f1, t)

    @staticmethod
    def _g(event, window, t, x):
        return event(window.state_at(t, x[:6]), t)

    def _accepts(self, event, g0, g1):
        if g0 == 0.0:
            return False
        if event.angular and abs(g1 - g0) > math.pi:
            return False
        if g0 < 0.0 <= g1:
            return event.direction >= 0
        if g0 > 0.0 >= g1:
            return event.direction <= 0
        return False

    def _locate_one(self, event, window):
        if event.target_elapsed is not None:
            target = event.target_elapsed
            if window.t1 >= window.t0:
                hit = window.t0 < target <= window.t1
            else:
                hit = window.t1 <= target < window.t0
            if hit and target != self._last.get(id(event)):
                return target
            return None

        g0 = self._g(event, window, window.t0, window.x0)
        g1 = self._g(event, window, window.t1, window.x1)
        if not self._accepts(event, g0, g1):
            return None

        last = self._last.get(id(event))
        if last is not None and abs(last - window.t0) <= 2.0 * event.epoch_tolerance:
            return None

        ta, tb = window.t0, window.t1
        while abs(tb - ta) > event.epoch_tolerance:
            tm = 0.5 * (ta + tb)
            gm = self._g(event, window, tm, self._interpolate(window, tm))
            if (gm < 0.0) == (g0 < 0.0) and gm != 0.0:
                ta = tm
            else:
                tb = tm
        return tb

