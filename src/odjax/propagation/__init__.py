"""Spacecraft propagation.

- :class:`Propagator` -- one spacecraft until a terminal stop condition
- :func:`propagate_independent` -- many spacecraft, each on its own cadence
- :class:`SynchronizedPropagator` -- many spacecraft in lock-step at common
  output epochs
- :class:`Trajectory` -- in-memory sink for :class:`TrajectorySample`
"""

from odjax.propagation._types import (
    PropagationJob,
    PropagationOutcome,
    PropagationResult,
    SynchronizedResult,
    SynchronizedSample,
    Trajectory,
    TrajectorySample,
    TrajectorySink,
)
from odjax.propagation.parallel import propagate_independent
from odjax.propagation.propagator import Propagator
from odjax.propagation.synchronized import SynchronizedPropagator

__all__ = [
    "PropagationJob",
    "PropagationOutcome",
    "PropagationResult",
    "Propagator",
    "SynchronizedPropagator",
    "SynchronizedResult",
    "SynchronizedSample",
    "Trajectory",
    "TrajectorySample",
    "TrajectorySink",
    "propagate_independent",
]
