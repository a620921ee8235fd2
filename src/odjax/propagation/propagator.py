"""Single-spacecraft propagation.

:class:`Propagator` binds a :class:`~odjax.orbit_dynamics.ForceModel` to a
spacecraft, then repeatedly asks the :class:`~odjax.integrators.Integrator`
for accepted steps until a terminal :class:`~odjax.events.Event` occurs.

Each step is limited so it never passes the next output epoch or time-based
stop condition; it lands on them exactly. Other events are located inside
the accepted step by the :class:`~odjax.events.EventDetector`; the step is
then discarded and re-taken from its start so it ends on the event epoch.

The spacecraft is only updated once the whole propagation has succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import NamedTuple

import jax.numpy as jnp
from jax import Array

from odjax.config import get_dtype
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.events import Event, EventCrossing, EventDetector, StepWindow
from odjax.integrators import Integrator, IntegratorConfig
from odjax.orbit_dynamics import ForceModel
from odjax.propagation._types import PropagationResult, TrajectorySample, TrajectorySink
from odjax.spacecraft import Spacecraft, SpacecraftParams
from odjax.state import State

logger = logging.getLogger(__name__)

_SNAP = 1e-9
"""Times closer than this [s] to a landing target are snapped onto it."""


class _Cursor(NamedTuple):
    t: float
    x: Array
    h: float


class _Run:
    """Stepping state of one propagation.

    Owned by exactly one propagation task; never shared between threads.
    """

    def __init__(self, propagator: Propagator, params: SpacecraftParams, events: Sequence[Event]):
        self.integrator = propagator.integrator
        self.with_stm = propagator.with_stm
        self.name = params.name

        self.start = params.state.to_cartesian()
        self.dynamics = propagator.force_model.bind(params, self.start.epoch)
        self.rhs = self.dynamics.variational if self.with_stm else self.dynamics

        self.detector = EventDetector(events)
        targets = [t for t in self.detector.time_targets() if t != 0.0]
        if targets and min(targets) < 0.0 < max(targets):
            raise InvalidConfiguration("time stop conditions lie on both sides of the start epoch")
        self.direction = -1.0 if targets and max(targets) < 0.0 else 1.0

        x = self.start.vector
        if self.with_stm:
            x = jnp.concatenate([x, jnp.eye(6, dtype=get_dtype()).reshape(36)])
        self.cursor = _Cursor(0.0, x, self.direction * propagator.config.initial_step)

        self.steps = 0
        self.rejections = 0
        self.crossings: list[EventCrossing] = []

    def state_at(self, t: float, x: Array) -> State:
        return self.start.with_vector(x[:6], self.start.epoch + t)

    def sample(self) -> TrajectorySample:
        t, x, _ = self.cursor
        stm = jnp.reshape(x[6:42], (6, 6)) if self.with_stm else None
        state = self.state_at(t, x)
        return TrajectorySample(state.epoch, state, stm)

    def result(self, crossing: EventCrossing | None) -> PropagationResult:
        return PropagationResult(
            final=self.sample(),
            event=crossing,
            steps=self.steps,
            rejections=self.rejections,
            elapsed=self.cursor.t,
            crossings=tuple(self.crossings),
        )

    def checkpoint(self) -> tuple:
        return (self.cursor, self.steps, self.rejections, len(self.crossings), self.detector.checkpoint())

    def restore(self, mark: tuple) -> None:
        """Return to a :meth:`checkpoint`, discarding the steps taken since."""
        self.cursor, self.steps, self.rejections, n_crossings, detector_mark = mark
        del self.crossings[n_crossings:]
        self.detector.rewind(detector_mark)

    def _next_limit(self, t: float, t_end: float | None) -> float | None:
        ahead = [
            target
            for target in self.detector.time_targets()
            if self.direction * (target - t) > _SNAP
        ]
        if t_end is not None:
            ahead.append(t_end)
        if not ahead:
            return None
        return min(ahead) if self.direction > 0 else max(ahead)

    def _detect(self, t0, x0, t1, x1) -> EventCrossing | None:
        if not self.detector.events:
            return None
        f0 = f1 = None
        if self.detector.needs_derivatives:
            derivative = self.integrator.derivative(self.dynamics)
            f0 = derivative(t0, x0[:6])
            f1 = derivative(t1, x1[:6])
        window = StepWindow(t0, x0[:6], f0, t1, x1[:6], f1, self.state_at)
        return self.detector.locate(window)

    def _land(self, t: float, x: Array, h: float, t_target: float):
        """Re-integrate from ``(t, x)`` until exactly *t_target*."""
        while True:
            result = self.integrator.step(self.rhs, t, x, h, t_target - t, controlled=6)
            if abs(result.t - t_target) <= _SNAP:
                return result
            self.steps += 1
            self.rejections += result.rejections
            t, x, h = result.t, result.state, result.dt_next

    def advance(self, t_end: float | None = None, on_step=None, detect: bool = True) -> EventCrossing | None:
        """Step until *t_end* is reached or a terminal event occurs.

        Args:
            t_end: Elapsed time to stop at, or ``None`` to stop on events only.
            on_step: Called with each new sample after every accepted step.
            detect: Monitor the stop conditions.

        Returns:
            The terminal crossing, or ``None`` if *t_end* was reached first.
        """
        while True:
            t, x, h = self.cursor
            if t_end is not None and self.direction * (t_end - t) <= _SNAP:
                return None

            limit = self._next_limit(t, t_end)
            result = self.integrator.step(
                self.rhs, t, x, h, None if limit is None else limit - t, controlled=6
            )
            t1 = limit if limit is not None and abs(result.t - limit) <= _SNAP else result.t

            crossing = self._detect(t, x, t1, result.state) if detect else None
            if crossing is not None and abs(crossing.t - t1) > _SNAP:
                self.rejections += result.rejections
                dt_next = result.dt_next
                result = self._land(t, x, result.dt_used, crossing.t)
                result = result._replace(dt_next=dt_next)
                t1 = crossing.t

            self.steps += 1
            self.rejections += result.rejections
            self.cursor = _Cursor(t1, result.state, result.dt_next)
            if on_step is not None:
                on_step(self.sample())

            if crossing is not None:
                self.detector.record(crossing)
                self.crossings.append(crossing)
                logger.debug("%s: event '%s' at %s", self.name, crossing.event.name, crossing.epoch)
                if crossing.event.terminal:
                    return crossing


class Propagator:
    """Propagate spacecraft with a force model and integrator configuration.

    The propagator holds only read-only configuration, so one instance can
    serve several spacecraft, including concurrently.

    Args:
        force_model: Dynamics to integrate.
        config: Integrator settings. Defaults to ``IntegratorConfig()``.
        with_stm: Also integrate the 6x6 state transition matrix.

    Raises:
        InvalidConfiguration: If ``rkn1210`` is combined with velocity
            dependent forces or with the STM.

    Examples:
        ```python
        from odjax import Epoch, Spacecraft, State
        from odjax.orbit_dynamics import ForceModel
        from odjax.propagation import Propagator
        epc = Epoch(2018, 2, 27)
        sc = Spacecraft("sat", State.from_keplerian(7000e3, 0.01, 0.5, 0.0, 0.0, 0.0, epc),
                        dry_mass=100.0)
        result = Propagator(ForceModel.two_body()).propagate_for(sc, 3600.0)
        sc.epoch  # epc + 3600 s
        ```
    """

    def __init__(
        self,
        force_model: ForceModel,
        config: IntegratorConfig | None = None,
        with_stm: bool = False,
    ):
        self.force_model = force_model
        self.config = IntegratorConfig() if config is None else config
        self.with_stm = with_stm
        if self.config.method == "rkn1210":
            if with_stm:
                raise InvalidConfiguration("rkn1210 cannot integrate the state transition matrix")
            if force_model.velocity_dependent:
                raise InvalidConfiguration(
                    "rkn1210 requires velocity-independent dynamics; the force model "
                    "includes velocity-dependent terms"
                )
        self.integrator = Integrator(self.config)

    def run(
        self,
        params: SpacecraftParams,
        stop_conditions: Sequence[Event],
        sink: TrajectorySink | None = None,
        output_step: float | None = None,
    ) -> PropagationResult:
        """Propagate a spacecraft snapshot without committing the result.

        Args:
            params: Spacecraft snapshot to start from.
            stop_conditions: Events to monitor. At least one must be terminal.
            sink: Receives the initial sample and then one sample per
                accepted step, or per output epoch when *output_step* is set.
            output_step: Fixed output interval [s].

        Returns:
            PropagationResult: The final sample and step statistics.

        Raises:
            InvalidConfiguration: For missing or inconsistent stop conditions.
            AccuracyViolation: If a step fails under strict policy.
        """
        stop_conditions = tuple(stop_conditions)
        if not any(e.terminal for e in stop_conditions):
            raise InvalidConfiguration("at least one terminal stop condition is required")
        if output_step is not None and not output_step > 0.0:
            raise InvalidConfiguration(f"output_step must be positive, got {output_step}")

        run = _Run(self, params, stop_conditions)
        emit = sink.append if sink is not None else None
        logger.info(
            "%s: propagating from %s until %s",
            params.name, run.start.epoch, " or ".join(e.name for e in stop_conditions),
        )

        if emit is not None:
            emit(run.sample())

        crossing = run.detector.at_start(run.start)
        if crossing is not None:
            run.crossings.append(crossing)
        elif output_step is None:
            crossing = run.advance(on_step=emit)
        else:
            k = 1
            while crossing is None:
                crossing = run.advance(run.direction * k * output_step)
                if emit is not None:
                    emit(run.sample())
                k += 1

        result = run.result(crossing)
        logger.info(
            "%s: stopped at %s on '%s' after %d steps (%d rejected)",
            params.name, result.final.epoch, crossing.event.name, result.steps, result.rejections,
        )
        return result

    def propagate(
        self,
        spacecraft: Spacecraft,
        stop_conditions: Sequence[Event],
        sink: TrajectorySink | None = None,
        output_step: float | None = None,
    ) -> PropagationResult:
        """Propagate *spacecraft* and commit its final Cartesian state.

        See :meth:`run` for the arguments. If the propagation raises, the
        spacecraft is left unchanged.
        """
        result = self.run(spacecraft.snapshot(), stop_conditions, sink, output_step)
        spacecraft.commit_state(result.final.state)
        return result

    def propagate_for(
        self,
        spacecraft: Spacecraft,
        seconds: float,
        sink: TrajectorySink | None = None,
        output_step: float | None = None,
    ) -> PropagationResult:
        """Propagate for a fixed elapsed time (negative for backwards)."""
        return self.propagate(spacecraft, [Event.elapsed_time(seconds)], sink, output_step)

    def propagate_until(
        self,
        spacecraft: Spacecraft,
        epoch: Epoch,
        sink: TrajectorySink | None = None,
        output_step: float | None = None,
    ) -> PropagationResult:
        """Propagate until *epoch*."""
        return self.propagate(
            spacecraft, [Event.epoch_reached(epoch, spacecraft.epoch)], sink, output_step
        )

    def __repr__(self) -> str:
        return f"Propagator({self.force_model!r}, method={self.config.method!r}, with_stm={self.with_stm})"
