"""State estimation for orbit determination.

Provides Kalman filter building blocks and the sequential
:class:`KalmanFilter`. Measurement models are in the
:mod:`odjax.orbit_measurements` module.

Available components:

- :class:`FilterState` -- Filter state (estimate and covariance)
- :class:`FilterResult` -- Update result with diagnostics
- :func:`kalman_update` -- Linear measurement update (Joseph form)
- :func:`ekf_predict` -- EKF state propagation (autodiff STM)
- :func:`ekf_update` -- EKF measurement update (autodiff sensitivity)
- :class:`KalmanConfig` -- Outlier threshold, process noise, EKF switch
- :class:`KalmanFilter` -- Classical / extended filter over a propagator
- :class:`Estimate` -- Per-update filter output

The building blocks are compatible with ``jax.jit`` and ``jax.lax.scan``.
"""

from odjax.estimation._types import Estimate, FilterResult, FilterState, KalmanConfig
from odjax.estimation.ekf import ekf_predict, ekf_update, kalman_update
from odjax.estimation.kalman import KalmanFilter

__all__ = [
    "FilterState",
    "FilterResult",
    "KalmanConfig",
    "Estimate",
    "kalman_update",
    "ekf_predict",
    "ekf_update",
    "KalmanFilter",
]
