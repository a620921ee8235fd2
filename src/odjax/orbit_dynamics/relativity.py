"""Post-Newtonian Schwarzschild correction to central-body gravity.

In the isotropic gauge with ``beta = gamma = 1`` (General Relativity):

.. math::

    \\mathbf{a} = \\frac{GM}{c^2 r^3}\\left[\\left(\\frac{4GM}{r} - v^2\\right)
        \\mathbf{r} + 4(\\mathbf{r}\\cdot\\mathbf{v})\\mathbf{v}\\right]

The magnitude is ~2e-8 m/s^2 in low Earth orbit.

References:
    1. G. Petit and B. Luzum, *IERS Conventions (2010)*, IERS Technical
       Note 36, Eq. 10.12.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import C_LIGHT


def accel_relativity(x: ArrayLike, gm: float) -> Array:
    """Schwarzschild acceleration for a 6-element state about a body of parameter *gm*.

    Args:
        x: ``[r, v]`` relative to the central body [m; m/s].
        gm: Gravitational parameter of the central body [m^3/s^2].

    Returns:
        Acceleration [m/s^2], shape ``(3,)``.
    """
    x = jnp.asarray(x, dtype=get_dtype())
    r = x[:3]
    v = x[3:6]

    r_norm = jnp.linalg.norm(r)
    coeff = gm / (C_LIGHT**2 * r_norm**3)
    return coeff * ((4.0 * gm / r_norm - jnp.dot(v, v)) * r + 4.0 * jnp.dot(r, v) * v)
