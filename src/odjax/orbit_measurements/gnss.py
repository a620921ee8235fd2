"""GNSS measurement models for orbit determination.

Provides measurement functions and noise covariance constructors for
GNSS-based (GPS, Galileo, etc.) orbit determination, and builders that wrap
a receiver fix into a :class:`~odjax.orbit_measurements.Measurement` for the
:class:`~odjax.estimation.KalmanFilter`.

Measurement functions extract observable quantities from the full state
vector. Noise covariance constructors build the corresponding ``R``
matrix from sensor noise parameters.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.orbit_measurements._types import Measurement, _as_vector
from odjax.state import State


def gnss_position_measurement(state: ArrayLike) -> Array:
    """Extract position from an orbital state vector.

    Measurement model for a GNSS receiver that provides position-only
    observations.

    Args:
        state: State vector of shape ``(n,)`` where ``n >= 3``.

    Returns:
        jax.Array: Position vector of shape ``(3,)``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.orbit_measurements import gnss_position_measurement

        state = jnp.array([6878e3, 0.0, 0.0, 0.0, 7612.0, 0.0])
        z = gnss_position_measurement(state)  # [6878e3, 0.0, 0.0]
        ```
    """
    state = jnp.asarray(state, dtype=get_dtype())
    return state[:3]


def gnss_measurement_noise(sigma_pos: float) -> Array:
    """Construct measurement noise covariance for position-only GNSS.

    Args:
        sigma_pos: Position standard deviation [m].

    Returns:
        jax.Array: Diagonal ``(3, 3)`` covariance with ``sigma_pos**2`` on
            the diagonal.
    """
    dtype = get_dtype()
    return jnp.asarray(sigma_pos**2, dtype=dtype) * jnp.eye(3, dtype=dtype)


def gnss_position_velocity_measurement(state: ArrayLike) -> Array:
    """Extract position and velocity from an orbital state vector.

    Args:
        state: State vector of shape ``(n,)`` where ``n >= 6``.

    Returns:
        jax.Array: Position-velocity vector of shape ``(6,)``.
    """
    state = jnp.asarray(state, dtype=get_dtype())
    return state[:6]


def gnss_position_velocity_noise(sigma_pos: float, sigma_vel: float) -> Array:
    """Construct measurement noise covariance for position-velocity GNSS.

    Args:
        sigma_pos: Position standard deviation [m].
        sigma_vel: Velocity standard deviation [m/s].

    Returns:
        jax.Array: Diagonal ``(6, 6)`` covariance.

    Examples:
        ```python
        from odjax.orbit_measurements import gnss_position_velocity_noise

        R = gnss_position_velocity_noise(10.0, 0.1)  # 10 m, 0.1 m/s
        ```
    """
    variances = jnp.array([sigma_pos**2] * 3 + [sigma_vel**2] * 3, dtype=get_dtype())
    return jnp.diag(variances)


def _observe(model, noise, state, key):
    z = model(_as_vector(state))
    if key is not None:
        sigma = jnp.sqrt(jnp.diag(noise))
        z = z + sigma * jax.random.normal(key, z.shape, dtype=z.dtype)
    return z


def gnss_position_fix(
    state: State,
    sigma_pos: float,
    key: Array | None = None,
    receiver: str = "gnss",
) -> Measurement:
    """Simulate a position-only GNSS fix of *state*.

    Args:
        state: True spacecraft state.
        sigma_pos: Position standard deviation [m].
        key: ``jax.random`` key for Gaussian noise. Without a key the fix
            is exact.
        receiver: Observer name.

    Returns:
        Measurement: Fix at ``state.epoch``.
    """
    noise = gnss_measurement_noise(sigma_pos)
    z = _observe(gnss_position_measurement, noise, state, key)
    return Measurement(state.epoch, receiver, z, noise, gnss_position_measurement)


def gnss_position_velocity_fix(
    state: State,
    sigma_pos: float,
    sigma_vel: float,
    key: Array | None = None,
    receiver: str = "gnss",
) -> Measurement:
    """Simulate a position-velocity GNSS fix of *state*.

    See :func:`gnss_position_fix`.
    """
    noise = gnss_position_velocity_noise(sigma_pos, sigma_vel)
    z = _observe(gnss_position_velocity_measurement, noise, state, key)
    return Measurement(state.epoch, receiver, z, noise, gnss_position_velocity_measurement)


def gnss_measurement(
    epoch: Epoch,
    observation: ArrayLike,
    sigma_pos: float,
    sigma_vel: float | None = None,
    receiver: str = "gnss",
) -> Measurement:
    """Wrap a recorded GNSS fix.

    Args:
        epoch: Fix epoch.
        observation: ``[x, y, z]`` or ``[x, y, z, vx, vy, vz]`` in the
            Earth-centred inertial frame.
        sigma_pos: Position standard deviation [m].
        sigma_vel: Velocity standard deviation [m/s]; required for a
            six-component fix.
        receiver: Observer name.
    """
    observation = jnp.asarray(observation, dtype=get_dtype())
    if observation.shape[0] == 3:
        return Measurement(
            epoch, receiver, observation, gnss_measurement_noise(sigma_pos), gnss_position_measurement
        )
    if sigma_vel is None:
        raise InvalidConfiguration("sigma_vel is required for a position-velocity fix")
    return Measurement(
        epoch,
        receiver,
        observation,
        gnss_position_velocity_noise(sigma_pos, sigma_vel),
        gnss_position_velocity_measurement,
    )
