"""Type definitions for state estimation.

Provides the data types used by the filter building blocks and by
:class:`~odjax.estimation.KalmanFilter`:

- :class:`FilterState`: Current state estimate and covariance matrix.
- :class:`FilterResult`: Output of a measurement update step, containing the
  updated state plus diagnostic information for filter tuning.
- :class:`KalmanConfig`: Run configuration of a :class:`KalmanFilter`.
- :class:`Estimate`: One filter output record, per time or measurement
  update.

``FilterState`` and ``FilterResult`` are :class:`~typing.NamedTuple`
instances, which JAX treats as pytrees automatically. This means they work
with ``jax.jit``, ``jax.vmap``, and ``jax.lax`` control flow primitives.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp
from jax import Array

from odjax.config import get_dtype
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.state import State


class FilterState(NamedTuple):
    """State of a Kalman filter.

    Attributes:
        x: State estimate vector of shape ``(n,)``. The
            :class:`KalmanFilter` stores the deviation from its reference
            trajectory here.
        P: Error covariance matrix of shape ``(n, n)``. Must be symmetric
            positive semi-definite.
    """

    x: Array
    P: Array


class FilterResult(NamedTuple):
    """Result of a filter measurement update step.

    Attributes:
        state: Updated :class:`FilterState` after incorporating the
            measurement.
        innovation: Measurement residual of shape ``(m,)`` the update was
            computed from.
        innovation_covariance: Innovation covariance ``S`` of shape
            ``(m, m)``. The normalized innovation squared
            ``innovation.T @ S^{-1} @ innovation`` should follow a
            chi-squared distribution with ``m`` degrees of freedom.
        kalman_gain: Kalman gain matrix ``K`` of shape ``(n, m)``.
    """

    state: FilterState
    innovation: Array
    innovation_covariance: Array
    kalman_gain: Array


@dataclass(frozen=True)
class KalmanConfig:
    """Configuration of a :class:`~odjax.estimation.KalmanFilter`.

    Attributes:
        outlier_sigma: A measurement is rejected when any innovation
            component exceeds this multiple of its predicted standard
            deviation ``sqrt(S_ii)``.
        process_noise: 6x6 process noise rate [m^2/s, m^2/s^3]. The time
            update adds ``|dt| * process_noise``. ``None`` disables it.
        ekf_trigger: Number of accepted measurements after which the
            filter switches from classical (deviation) to extended
            (reference-updating) mode. The measurement that brings the count
            to ``ekf_trigger`` is still processed classically, and every
            later one is extended; with ``ekf_trigger=n`` the first extended
            update is measurement ``n + 1``. ``0`` starts in extended mode
            and ``None`` keeps the classical filter.

    Examples:
        ```python
        from odjax.estimation import KalmanConfig
        cfg = KalmanConfig(outlier_sigma=5.0, ekf_trigger=15)
        ```
    """

    outlier_sigma: float = 3.0
    process_noise: Array | None = None
    ekf_trigger: int | None = None

    def __post_init__(self):
        if not self.outlier_sigma > 0.0:
            raise InvalidConfiguration(f"outlier_sigma must be positive, got {self.outlier_sigma}")
        if self.ekf_trigger is not None and self.ekf_trigger < 0:
            raise InvalidConfiguration(f"ekf_trigger must be non-negative, got {self.ekf_trigger}")
        if self.process_noise is not None:
            q = jnp.asarray(self.process_noise, dtype=get_dtype())
            if q.shape != (6, 6):
                raise InvalidConfiguration(f"process_noise must have shape (6, 6), got {q.shape}")
            object.__setattr__(self, "process_noise", q)


class Estimate(NamedTuple):
    """Filter output at one epoch.

    Attributes:
        epoch: Estimate epoch.
        state: Estimated Cartesian state.
        covariance: 6x6 state covariance.
        prefit_residual: Observation minus expected observation before the
            update, ``None`` for a time update.
        postfit_residual: Observation minus expected observation of the
            updated state, ``None`` for a time update or an outlier.
        normalized_innovation: Normalized innovation squared
            ``nu^T S^{-1} nu``, ``None`` for a time update.
        outlier: The measurement was rejected; state and covariance are the
            predicted ones, unchanged by it.
        predicted: Result of a time update only.
        stm: State transition matrix accumulated since the previous
            measurement update.
    """

    epoch: Epoch
    state: State
    covariance: Array
    prefit_residual: Array | None
    postfit_residual: Array | None
    normalized_innovation: float | None
    outlier: bool
    predicted: bool
    stm: Array
