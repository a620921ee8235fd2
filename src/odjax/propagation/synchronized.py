"""Lock-step propagation of several spacecraft.

All members start at the same epoch and advance segment by segment to a
common grid of output epochs. Within a segment each member steps on its own
adaptive cadence, on its own worker. The end of every segment is a barrier:
no member proceeds past an output epoch before all members have reached it.

When any member hits a terminal stop condition inside a segment, the
earliest such crossing ends the run for everybody. Members that had
already stepped beyond it are rewound to the start of the segment and
re-advanced to the stopping epoch, so every member's final state refers to
the same epoch.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from odjax.errors import InvalidConfiguration
from odjax.events import Event
from odjax.propagation._types import SynchronizedResult, SynchronizedSample
from odjax.propagation.propagator import _SNAP, Propagator, _Run
from odjax.spacecraft import Spacecraft

logger = logging.getLogger(__name__)


class SynchronizedPropagator:
    """Propagate several spacecraft to common output epochs.

    Args:
        members: ``(propagator, spacecraft)`` pairs. Propagators may be
            shared; each spacecraft must appear once.
        output_step: Interval [s] between common output epochs.
        max_workers: Thread pool size. Defaults to one worker per member.

    Raises:
        InvalidConfiguration: For an empty member list, a repeated
            spacecraft or a non-positive output step.

    Examples:
        ```python
        from odjax.events import Event
        from odjax.propagation import SynchronizedPropagator, Trajectory
        sync = SynchronizedPropagator([(prop, leader), (prop, follower)], output_step=60.0)
        out = Trajectory()
        result = sync.propagate_for(5400.0, sink=out)
        leader.epoch == follower.epoch  # True
        ```
    """

    def __init__(
        self,
        members: Sequence[tuple[Propagator, Spacecraft]],
        output_step: float,
        max_workers: int | None = None,
    ):
        self.members = tuple((prop, sc) for prop, sc in members)
        if not self.members:
            raise InvalidConfiguration("synchronized propagation requires at least one member")
        if len({id(sc) for _, sc in self.members}) != len(self.members):
            raise InvalidConfiguration("a spacecraft appears more than once in the member list")
        if not output_step > 0.0:
            raise InvalidConfiguration(f"output_step must be positive, got {output_step}")
        self.output_step = float(output_step)
        self.max_workers = max_workers or len(self.members)

    def propagate(self, stop_conditions, sink=None) -> SynchronizedResult:
        """Propagate all members until the earliest terminal stop condition.

        Args:
            stop_conditions: Either one sequence of events applied to every
                member, or one sequence per member.
            sink: Receives a :class:`SynchronizedSample` at the start epoch,
                at every output epoch and at the stop epoch.

        Returns:
            SynchronizedResult: The common final sample, the stopping event
            and the index of the member that raised it.

        Raises:
            InvalidConfiguration: For differing start epochs, members
                running in opposite time directions, or no terminal stop
                condition at all.
            AccuracyViolation: If any member fails under strict policy. No
                spacecraft is updated in that case.
        """
        per_member = self._split_conditions(stop_conditions)
        params = [sc.snapshot() for _, sc in self.members]
        start = params[0].state.epoch
        for p in params[1:]:
            if not p.state.epoch == start:
                raise InvalidConfiguration(
                    f"members must share a start epoch: {p.name} starts at {p.state.epoch}, "
                    f"{params[0].name} at {start}"
                )

        runs = [_Run(prop, p, events) for (prop, _), p, events in zip(self.members, params, per_member)]
        directions = {run.direction for run in runs if run.detector.time_targets()}
        if len(directions) > 1:
            raise InvalidConfiguration("members propagate in opposite time directions")
        direction = directions.pop() if directions else 1.0
        for run in runs:
            run.direction = direction
            run.cursor = run.cursor._replace(h=direction * abs(run.cursor.h))

        logger.info(
            "synchronized propagation of %d spacecraft from %s, output every %g s",
            len(runs), start, self.output_step,
        )
        emit = sink.append if sink is not None else None
        if emit is not None:
            emit(self._gather(runs))

        stop = None
        for index, run in enumerate(runs):
            crossing = run.detector.at_start(run.start)
            if crossing is not None:
                run.crossings.append(crossing)
                stop = (index, crossing)
                break

        k = 1
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            while stop is None:
                t_end = direction * k * self.output_step
                marks = [run.checkpoint() for run in runs]
                futures = [executor.submit(run.advance, t_end) for run in runs]
                crossings = [f.result() for f in futures]

                hits = [(c.t, i, c) for i, c in enumerate(crossings) if c is not None]
                if hits:
                    t_stop, index, crossing = min(hits, key=lambda h: (direction * h[0], h[1]))
                    stop = (index, crossing)
                    futures = [
                        executor.submit(self._rewind, run, mark, t_stop)
                        for run, mark, c in zip(runs, marks, crossings)
                        if c is None or abs(c.t - t_stop) > _SNAP
                    ]
                    for f in futures:
                        f.result()

                if emit is not None:
                    emit(self._gather(runs))
                k += 1

        index, crossing = stop
        results = tuple(run.result(crossing) for run in runs)
        for (_, sc), result in zip(self.members, results):
            sc.commit_state(result.final.state)

        final = self._gather(runs)
        logger.info(
            "synchronized propagation stopped at %s on '%s' of %s",
            final.epoch, crossing.event.name, runs[index].name,
        )
        return SynchronizedResult(final=final, event=crossing, member=index, results=results)

    def propagate_for(self, seconds: float, sink=None) -> SynchronizedResult:
        """Propagate all members for a fixed elapsed time."""
        return self.propagate([Event.elapsed_time(seconds)], sink)

    def _split_conditions(self, stop_conditions):
        stop_conditions = list(stop_conditions)
        if stop_conditions and all(isinstance(e, Event) for e in stop_conditions):
            per_member = [tuple(stop_conditions)] * len(self.members)
        else:
            per_member = [tuple(events) for events in stop_conditions]
            if len(per_member) != len(self.members):
                raise InvalidConfiguration(
                    f"got stop conditions for {len(per_member)} members, expected {len(self.members)}"
                )
        if not any(e.terminal for events in per_member for e in events):
            raise InvalidConfiguration("at least one terminal stop condition is required")
        return per_member

    @staticmethod
    def _rewind(run: _Run, mark: tuple, t_stop: float) -> None:
        run.restore(mark)
        run.advance(t_stop, detect=False)

    @staticmethod
    def _gather(runs) -> SynchronizedSample:
        samples = tuple(run.sample() for run in runs)
        return SynchronizedSample(samples[0].epoch, samples)
