"""Local error norms and step-size adjustment for embedded Runge-Kutta pairs.

Every norm takes the difference between the high- and low-order solutions
(*error_vec*), the high-order candidate and the state at the start of the
step, and returns a scalar *relative* error that is compared directly with
:attr:`IntegratorConfig.tolerance`.  When the reference magnitude is small
(below ``REL_ERR_THRESHOLD``) the absolute error is used instead so a state
near zero cannot drive the ratio to infinity.

- ``largest_error``: largest component error relative to that component's
  change over the step
- ``rss_step``: root-sum-square error relative to the size of the step
- ``rss_state``: root-sum-square error relative to the mean state magnitude
- ``rss_step_pos_vel``: ``rss_step`` applied separately to the position
  and velocity halves, the larger of the two
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype

REL_ERR_THRESHOLD = 0.1


def _relative(err: Array, ref: Array) -> Array:
    return jnp.where(ref > REL_ERR_THRESHOLD, err / jnp.where(ref > REL_ERR_THRESHOLD, ref, 1.0), err)


def largest_error(error_vec: ArrayLike, candidate: ArrayLike, state: ArrayLike) -> Array:
    """Largest component error relative to that component's change over the step."""
    error_vec = jnp.abs(jnp.asarray(error_vec, dtype=get_dtype()))
    delta = jnp.abs(jnp.asarray(candidate, dtype=get_dtype()) - jnp.asarray(state, dtype=get_dtype()))
    return jnp.max(_relative(error_vec, delta))


def rss_step(error_vec: ArrayLike, candidate: ArrayLike, state: ArrayLike) -> Array:
    """RSS error relative to the RSS change of the state over the step."""
    err = jnp.linalg.norm(jnp.asarray(error_vec, dtype=get_dtype()))
    mag = jnp.linalg.norm(jnp.asarray(candidate, dtype=get_dtype()) - jnp.asarray(state, dtype=get_dtype()))
    return _relative(err, mag)


def rss_state(error_vec: ArrayLike, candidate: ArrayLike, state: ArrayLike) -> Array:
    """RSS error relative to the magnitude of the mean of the two states."""
    err = jnp.linalg.norm(jnp.asarray(error_vec, dtype=get_dtype()))
    mag = 0.5 * jnp.linalg.norm(
        jnp.asarray(candidate, dtype=get_dtype()) + jnp.asarray(state, dtype=get_dtype())
    )
    return _relative(err, mag)


def rss_step_pos_vel(error_vec: ArrayLike, candidate: ArrayLike, state: ArrayLike) -> Array:
    """Larger of :func:`rss_step` over the position half and the velocity half.

    Only the first six components (a Cartesian state) are considered.
    """
    pos = rss_step(error_vec[:3], candidate[:3], state[:3])
    vel = rss_step(error_vec[3:6], candidate[3:6], state[3:6])
    return jnp.maximum(pos, vel)


ERROR_NORMS = {
    "largest_error": largest_error,
    "rss_state": rss_state,
    "rss_step": rss_step,
    "rss_step_pos_vel": rss_step_pos_vel,
}


def compute_next_step_size(
    error: float,
    h: float,
    order: float,
    tolerance: float,
    safety_factor: float,
    min_scale_factor: float,
    max_scale_factor: float,
    min_step: float,
    max_step: float,
) -> float:
    """Compute the magnitude of the next step from the current error estimate.

    Uses the standard optimal step-size formula:

    .. math::

        h_{\\text{next}} = |h| \\cdot S \\cdot
            \\left(\\frac{\\text{tol}}{\\text{error}}\\right)^{1/(p+1)}

    where *S* is the safety factor and *p* is the order of the error
    estimate. The ratio ``h_next / h`` is clamped to the scale-factor
    bounds and the result to ``[min_step, max_step]``.

    Args:
        error: Local error from one of the norms above.
        h: Current step size (sign ignored).
        order: Order of the error estimator.
        tolerance: Target error.
        safety_factor: Multiplicative safety factor (typically 0.9).
        min_scale_factor: Minimum allowed ratio ``h_next / h``.
        max_scale_factor: Maximum allowed ratio ``h_next / h``.
        min_step: Absolute minimum step size.
        max_step: Absolute maximum step size.

    Returns:
        float: Suggested (positive) next step size.
    """
    if error > 0.0:
        scale = safety_factor * (tolerance / error) ** (1.0 / (order + 1.0))
    else:
        scale = max_scale_factor

    scale = min(max(scale, min_scale_factor), max_scale_factor)
    return min(max(abs(h) * scale, min_step), max_step)
