"""Cubic Hermite dense output over an accepted step."""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype


def hermite_interpolate(
    t0: float,
    x0: ArrayLike,
    f0: ArrayLike,
    t1: float,
    x1: ArrayLike,
    f1: ArrayLike,
    t: ArrayLike,
) -> Array:
    """Interpolate the state at *t* inside the step ``[t0, t1]``.

    Uses the cubic Hermite polynomial matching the states and derivatives
    at both ends of the step. It is exact at ``t0`` and ``t1`` and
    third-order accurate in between, which is enough to locate an event to
    well below a millisecond for typical orbital steps.

    Args:
        t0: Time at the start of the step.
        x0: State at ``t0``.
        f0: Derivative at ``t0``.
        t1: Time at the end of the step (may be less than ``t0``).
        x1: State at ``t1``.
        f1: Derivative at ``t1``.
        t: Interpolation time.

    Returns:
        Interpolated state, same shape as ``x0``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.integrators import hermite_interpolate
        x = hermite_interpolate(0.0, jnp.array([0.0]), jnp.array([1.0]),
                                1.0, jnp.array([1.0]), jnp.array([1.0]), 0.5)
        ```
    """
    _float = get_dtype()
    x0 = jnp.asarray(x0, dtype=_float)
    x1 = jnp.asarray(x1, dtype=_float)
    f0 = jnp.asarray(f0, dtype=_float)
    f1 = jnp.asarray(f1, dtype=_float)

    h = t1 - t0
    s = (jnp.asarray(t, dtype=_float) - t0) / h
    s2 = s * s
    s3 = s2 * s

    h00 = 2.0 * s3 - 3.0 * s2 + 1.0
    h10 = s3 - 2.0 * s2 + s
    h01 = -2.0 * s3 + 3.0 * s2
    h11 = s3 - s2

    return h00 * x0 + h10 * h * f0 + h01 * x1 + h11 * h * f1
