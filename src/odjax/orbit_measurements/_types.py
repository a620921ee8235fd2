"""Measurement container consumed by the estimator."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames import EME2000
from odjax.state import State


def _as_vector(state: State | ArrayLike) -> Array:
    if isinstance(state, State):
        state = state.in_frame(EME2000).vector
    return jnp.asarray(state, dtype=get_dtype())[:6]


@dataclass(frozen=True, eq=False)
class Measurement:
    """An observation of one spacecraft at one epoch.

    The *model* maps the spacecraft's Earth-centred inertial Cartesian
    state at ``epoch`` to the expected observation; it must be
    differentiable with JAX so the estimator can linearize it.

    Attributes:
        epoch: Observation epoch.
        observer: Name of the observing station or receiver.
        observation: Observed values, shape ``(m,)``.
        noise: Observation noise covariance ``R``, shape ``(m, m)``.
        model: ``h(x) -> (m,)`` expected observation of state ``x``.
        visible: ``False`` when the observer could not see the spacecraft;
            the estimator skips such measurements.

    Examples:
        ```python
        from odjax.orbit_measurements import dss65_madrid
        station = dss65_madrid(range_noise=1.0, range_rate_noise=1e-3)
        meas = station.measure(truth_state)
        meas.observation - meas.expected(estimated_state)  # residual
        ```
    """

    epoch: Epoch
    observer: str
    observation: Array
    noise: Array
    model: Callable[[Array], Array]
    visible: bool = True

    def __post_init__(self):
        observation = jnp.atleast_1d(jnp.asarray(self.observation, dtype=get_dtype()))
        noise = jnp.atleast_2d(jnp.asarray(self.noise, dtype=get_dtype()))
        m = observation.shape[0]
        if observation.ndim != 1 or noise.shape != (m, m):
            raise InvalidConfiguration(
                f"{self.observer}: noise covariance must be ({m}, {m}), got {noise.shape}"
            )
        object.__setattr__(self, "observation", observation)
        object.__setattr__(self, "noise", noise)

    @property
    def size(self) -> int:
        """Number of observed components."""
        return self.observation.shape[0]

    def expected(self, state: State | ArrayLike) -> Array:
        """Expected observation for *state*."""
        return self.model(_as_vector(state))

    def sensitivity(self, state: State | ArrayLike) -> Array:
        """Measurement sensitivity ``dh/dx``, shape ``(m, 6)``."""
        return jax.jacfwd(self.model)(_as_vector(state))

    def __repr__(self) -> str:
        return f"Measurement({self.observer!r}, {self.epoch}, size={self.size}, visible={self.visible})"
