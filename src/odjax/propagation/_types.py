"""Data types produced and consumed by the propagators.

- :class:`TrajectorySample`: one immutable (epoch, state, STM) record
- :class:`TrajectorySink`: protocol of anything that accepts samples
- :class:`Trajectory`: in-memory, append-only sink
- :class:`PropagationResult`: summary of one completed propagation
- :class:`PropagationJob` / :class:`PropagationOutcome`: independent-mode
  inputs and per-job results
- :class:`SynchronizedSample` / :class:`SynchronizedResult`: synchronized-mode
  output
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol, runtime_checkable

import numpy as np
from jax import Array

from odjax.epoch import Epoch
from odjax.events import Event, EventCrossing
from odjax.state import State


class TrajectorySample(NamedTuple):
    """State of one spacecraft at one epoch.

    Attributes:
        epoch: Sample epoch.
        state: Cartesian state in the propagation frame.
        stm: 6x6 state transition matrix from the start of the
            propagation, or ``None`` when not propagated.
    """

    epoch: Epoch
    state: State
    stm: Array | None = None


@runtime_checkable
class TrajectorySink(Protocol):
    """Receiver of trajectory samples, in propagation order.

    Samples are immutable; a sink must not expect to modify them.
    """

    def append(self, sample: TrajectorySample) -> None: ...


class Trajectory:
    """Append-only in-memory sequence of :class:`TrajectorySample`.

    Examples:
        ```python
        from odjax.propagation import Trajectory
        traj = Trajectory()
        # propagator.propagate(sc, [stop], sink=traj)
        len(traj)
        ```
    """

    def __init__(self):
        self._samples: list[TrajectorySample] = []

    def append(self, sample: TrajectorySample) -> None:
        self._samples.append(sample)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[TrajectorySample]:
        return iter(self._samples)

    def __getitem__(self, index):
        return self._samples[index]

    @property
    def epochs(self) -> list[Epoch]:
        return [s.epoch for s in self._samples]

    @property
    def states(self) -> list[State]:
        return [s.state for s in self._samples]

    def to_numpy(self) -> tuple[np.ndarray, np.ndarray]:
        """Host copies of the samples.

        Returns:
            tuple: Elapsed seconds since the first sample, shape ``(N,)``,
                and state vectors, shape ``(N, 6)``.
        """
        if not self._samples:
            return np.zeros(0), np.zeros((0, 6))
        start = self._samples[0].epoch
        elapsed = np.array([float(s.epoch - start) for s in self._samples], dtype=np.float64)
        states = np.stack([np.asarray(s.state.vector, dtype=np.float64) for s in self._samples])
        return elapsed, states

    @property
    def last(self) -> TrajectorySample | None:
        return self._samples[-1] if self._samples else None

    def __repr__(self) -> str:
        if not self._samples:
            return "Trajectory([])"
        return f"Trajectory({len(self)} samples, {self._samples[0].epoch} .. {self._samples[-1].epoch})"


class PropagationResult(NamedTuple):
    """Summary of a completed propagation.

    Attributes:
        final: Sample at the stop epoch.
        event: The terminal event that stopped the propagation.
        steps: Accepted integration steps.
        rejections: Rejected trial steps.
        elapsed: Propagated time [s] (negative for backwards propagation).
        crossings: Every event crossing landed on, terminal or not.
    """

    final: TrajectorySample
    event: EventCrossing | None
    steps: int
    rejections: int
    elapsed: float
    crossings: tuple = ()


@dataclass(frozen=True, eq=False)
class PropagationJob:
    """One independent-mode propagation request.

    Attributes:
        propagator: Propagator to use. May be shared between jobs.
        spacecraft: Spacecraft owned exclusively by this job.
        stop_conditions: Terminal events for this spacecraft.
        sink: Optional receiver of this job's samples.
        output_step: Optional fixed output interval [s].
    """

    propagator: object
    spacecraft: object
    stop_conditions: Sequence[Event] = field(default_factory=tuple)
    sink: TrajectorySink | None = None
    output_step: float | None = None


class PropagationOutcome(NamedTuple):
    """Per-job result of :func:`~odjax.propagation.propagate_independent`.

    Exactly one of *result* and *error* is set.

    Attributes:
        index: Position of the job in the submitted sequence.
        spacecraft: The job's spacecraft.
        result: The propagation result on success.
        error: The error that stopped the job otherwise.
    """

    index: int
    spacecraft: object
    result: PropagationResult | None
    error: Exception | None

    @property
    def ok(self) -> bool:
        return self.error is None


class SynchronizedSample(NamedTuple):
    """All members' samples at one common epoch, in member order."""

    epoch: Epoch
    samples: tuple


class SynchronizedResult(NamedTuple):
    """Summary of a synchronized propagation.

    Attributes:
        final: Last common sample.
        event: The earliest terminal event, with the index of the member
            that raised it, or ``None``.
        member: Index of the member whose event stopped the run.
        results: Per-member propagation results.
    """

    final: SynchronizedSample
    event: EventCrossing | None
    member: int | None
    results: tuple
