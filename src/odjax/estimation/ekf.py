"""Kalman filter predict and update building blocks.

:func:`kalman_update` is the linear measurement update shared by the
classical and extended filters: given an innovation and the measurement
sensitivity ``H`` it computes the gain and the updated state and covariance.
:func:`ekf_update` and :func:`ekf_predict` linearize a user-supplied
measurement or propagation function with ``jax.jacfwd`` first.

The covariance update uses the Joseph form for guaranteed symmetry and
positive semi-definiteness, which is important for float32 stability.

These functions are pure and compose with ``jax.jit`` and
``jax.lax.scan``; :class:`~odjax.estimation.KalmanFilter` builds its
sequential orbit determination on top of them.
"""

from __future__ import annotations

from collections.abc import Callable

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.estimation._types import FilterResult, FilterState


def kalman_update(
    filter_state: FilterState,
    innovation: ArrayLike,
    H: ArrayLike,
    R: ArrayLike,
) -> FilterResult:
    """Linear Kalman measurement update.

    .. math::

        S &= H P H^T + R \\\\
        K &= P H^T S^{-1} \\\\
        x^+ &= x + K \\nu \\\\
        P^+ &= (I - K H) P (I - K H)^T + K R K^T

    Args:
        filter_state: Predicted filter state ``(x, P)``.
        innovation: Innovation ``nu`` of shape ``(m,)``.
        H: Measurement sensitivity of shape ``(m, n)``.
        R: Measurement noise covariance of shape ``(m, m)``.

    Returns:
        FilterResult: Updated state, innovation, innovation covariance,
            and Kalman gain.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.estimation import FilterState, kalman_update

        fs = FilterState(x=jnp.zeros(2), P=jnp.eye(2))
        H = jnp.array([[1.0, 0.0]])
        result = kalman_update(fs, jnp.array([0.5]), H, jnp.array([[1.0]]))
        result.state.x  # [0.25, 0.0]
        ```
    """
    dtype = get_dtype()
    x = jnp.asarray(filter_state.x, dtype=dtype)
    P = jnp.asarray(filter_state.P, dtype=dtype)
    innovation = jnp.asarray(innovation, dtype=dtype)
    H = jnp.asarray(H, dtype=dtype)
    R = jnp.asarray(R, dtype=dtype)

    n = x.shape[0]

    S = H @ P @ H.T + R

    # K^T = S^{-1} (H P), P symmetric
    K = jnp.linalg.solve(S, H @ P).T

    x_upd = x + K @ innovation

    IKH = jnp.eye(n, dtype=dtype) - K @ H
    P_upd = IKH @ P @ IKH.T + K @ R @ K.T

    return FilterResult(
        state=FilterState(x=x_upd, P=P_upd),
        innovation=innovation,
        innovation_covariance=S,
        kalman_gain=K,
    )


def ekf_predict(
    filter_state: FilterState,
    propagate_fn: Callable[[Array], Array],
    Q: ArrayLike,
) -> FilterState:
    """Propagate the filter state forward one timestep.

    Advances the state estimate through the nonlinear propagation function
    and updates the covariance using the state transition matrix computed
    by automatic differentiation of *propagate_fn*.

    Args:
        filter_state: Current filter state ``(x, P)``.
        propagate_fn: State propagation function ``f(x) -> x_next``.
            Must be differentiable by JAX.
        Q: Process noise covariance matrix of shape ``(n, n)``.

    Returns:
        FilterState: Predicted state and covariance ``(x_pred, P_pred)``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.estimation import FilterState, ekf_predict

        fs = FilterState(x=jnp.array([1.0, 0.0]), P=jnp.eye(2) * 0.01)

        def propagate(x):
            return x + jnp.array([x[1], -x[0]]) * 0.01

        fs_pred = ekf_predict(fs, propagate, jnp.eye(2) * 1e-6)
        ```
    """
    dtype = get_dtype()
    x = jnp.asarray(filter_state.x, dtype=dtype)
    P = jnp.asarray(filter_state.P, dtype=dtype)
    Q = jnp.asarray(Q, dtype=dtype)

    x_pred = propagate_fn(x)
    Phi = jax.jacfwd(propagate_fn)(x)

    return FilterState(x=x_pred, P=Phi @ P @ Phi.T + Q)


def ekf_update(
    filter_state: FilterState,
    z: ArrayLike,
    measurement_fn: Callable[[Array], Array],
    R: ArrayLike,
) -> FilterResult:
    """Incorporate a measurement into the filter state.

    Linearizes *measurement_fn* at the current estimate and applies
    :func:`kalman_update` to the innovation ``z - h(x)``.

    Args:
        filter_state: Predicted filter state ``(x_pred, P_pred)``.
        z: Measurement vector of shape ``(m,)``.
        measurement_fn: Measurement model ``h(x) -> z_pred``. Must be
            differentiable by JAX.
        R: Measurement noise covariance matrix of shape ``(m, m)``.

    Returns:
        FilterResult: Updated state, innovation, innovation covariance,
            and Kalman gain.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.estimation import FilterState, ekf_update
        from odjax.orbit_measurements import gnss_position_measurement

        fs = FilterState(x=jnp.array([7000e3, 0.0, 0.0, 0.0, 7.5e3, 0.0]),
                         P=jnp.eye(6) * 100.0)
        z = jnp.array([7000e3 + 5.0, -3.0, 1.0])
        result = ekf_update(fs, z, gnss_position_measurement, jnp.eye(3) * 25.0)
        ```
    """
    dtype = get_dtype()
    x = jnp.asarray(filter_state.x, dtype=dtype)
    z = jnp.asarray(z, dtype=dtype)

    z_pred = measurement_fn(x)
    H = jax.jacfwd(measurement_fn)(x)

    return kalman_update(FilterState(x=x, P=filter_state.P), z - z_pred, H, R)
