"""Atmospheric drag acceleration model.

Computes the non-conservative acceleration due to atmospheric drag on
a spacecraft, using the velocity relative to an atmosphere co-rotating
with the Earth.

All inputs and outputs use SI base units (metres, metres/second,
metres/second squared, kg, kg/m^3).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, Sec. 3.5.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import OMEGA_EARTH


def accel_drag(
    x: ArrayLike,
    density: float,
    mass: float,
    area: float,
    cd: float,
    omega: float = OMEGA_EARTH,
) -> Array:
    """Acceleration due to atmospheric drag.

    .. math::

        \\mathbf{a} = -\\frac{1}{2} C_D \\frac{A}{m} \\rho
            |\\mathbf{v}_r| \\mathbf{v}_r,
        \\quad \\mathbf{v}_r = \\mathbf{v} - \\boldsymbol{\\omega} \\times \\mathbf{r}

    Args:
        x: 6-element inertial state ``[r, v]`` [m; m/s].
        density: Atmospheric density [kg/m^3].
        mass: Spacecraft mass [kg].
        area: Wind-facing cross-sectional area [m^2].
        cd: Coefficient of drag [dimensionless].
        omega: Rotation rate of the atmosphere about ``z`` [rad/s].

    Returns:
        Drag acceleration in the inertial frame [m/s^2], shape ``(3,)``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.orbit_dynamics import accel_drag
        x = jnp.array([6878e3, 0.0, 0.0, 0.0, 7500.0, 0.0])
        a = accel_drag(x, 1e-12, 1000.0, 1.0, 2.0)
        ```
    """
    _float = get_dtype()
    x = jnp.asarray(x, dtype=_float)

    r = x[:3]
    v = x[3:6]

    w = jnp.array([0.0, 0.0, omega], dtype=_float)

    v_rel = v - jnp.cross(w, r)
    v_abs = jnp.linalg.norm(v_rel)

    return -0.5 * cd * (area / mass) * density * v_abs * v_rel
