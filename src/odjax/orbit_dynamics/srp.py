"""Solar radiation pressure and eclipse shadow models.

Provides the acceleration due to solar radiation pressure (SRP) and
two shadow models, conical and cylindrical, for the fraction of the
solar disk visible from the spacecraft behind an occulting body.

All inputs and outputs use SI base units (metres, metres/second squared,
N/m^2).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, Sec. 3.4.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import AU, R_EARTH, R_SUN


def accel_srp(
    r_object: ArrayLike,
    r_sun: ArrayLike,
    mass: float,
    cr: float,
    area: float,
    p0: float,
) -> Array:
    """Acceleration due to solar radiation pressure (cannonball model).

    Args:
        r_object: Position of the object [m]. Shape ``(3,)`` or
            ``(6,)`` (only first 3 elements used).
        r_sun: Position of the Sun [m]. Shape ``(3,)``.
        mass: Spacecraft mass [kg].
        cr: Coefficient of reflectivity [dimensionless].
        area: Sun-facing cross-sectional area [m^2].
        p0: Solar radiation pressure at 1 AU [N/m^2].

    Returns:
        SRP acceleration [m/s^2], shape ``(3,)``, pointing away from the Sun.
    """
    _float = get_dtype()
    r = jnp.asarray(r_object, dtype=_float)[:3]
    r_s = jnp.asarray(r_sun, dtype=_float)

    d = r - r_s
    d_norm = jnp.linalg.norm(d)

    return d * cr * (area / mass) * p0 * AU**2 / d_norm**3


def eclipse_conical(
    r_object: ArrayLike,
    r_sun: ArrayLike,
    r_body: float = R_EARTH,
) -> Array:
    """Illumination fraction using the conical shadow model.

    Computes the fraction of the Sun's disk visible to the spacecraft,
    accounting for partial eclipses (penumbra).

    Args:
        r_object: Position of the object relative to the occulting body [m].
        r_sun: Position of the Sun relative to the occulting body [m].
        r_body: Radius of the occulting body [m].

    Returns:
        Illumination fraction (scalar). 0.0 = full shadow,
            1.0 = full illumination.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.constants import R_EARTH, AU
        from odjax.orbit_dynamics import eclipse_conical
        nu = eclipse_conical(jnp.array([-R_EARTH - 100e3, 0.0, 0.0]), jnp.array([AU, 0.0, 0.0]))
        ```
    """
    _float = get_dtype()
    r = jnp.asarray(r_object, dtype=_float)[:3]
    r_s = jnp.asarray(r_sun, dtype=_float)

    r_norm = jnp.linalg.norm(r)
    d = r_s - r
    d_norm = jnp.linalg.norm(d)

    # Apparent angular radii of the Sun and the occulting body
    a = jnp.arcsin(R_SUN / d_norm)
    b = jnp.arcsin(r_body / r_norm)

    # Angular separation between Sun and anti-nadir
    c = jnp.arccos(jnp.clip(-jnp.dot(r, d) / (r_norm * d_norm), -1.0, 1.0))

    # Partial eclipse (penumbra) geometry
    x = (c**2 + a**2 - b**2) / (2.0 * c)
    y = jnp.sqrt(jnp.maximum(a**2 - x**2, 0.0))
    area_overlap = (
        a**2 * jnp.arccos(jnp.clip(x / a, -1.0, 1.0))
        + b**2 * jnp.arccos(jnp.clip((c - x) / b, -1.0, 1.0))
        - c * y
    )
    nu_partial = 1.0 - area_overlap / (jnp.pi * a**2)

    is_partial = (jnp.abs(a - b) < c) & (c < (a + b))
    is_full_illumination = (a + b) <= c

    return jnp.where(
        is_full_illumination,
        _float(1.0),
        jnp.where(is_partial, nu_partial, _float(0.0)),
    )


def eclipse_cylindrical(
    r_object: ArrayLike,
    r_sun: ArrayLike,
    r_body: float = R_EARTH,
) -> Array:
    """Illumination fraction using the cylindrical shadow model.

    Treats the shadow as a cylinder of the occulting body's radius aligned
    with the Sun direction. Returns 0.0 (shadow) or 1.0 (illuminated).

    Args:
        r_object: Position of the object relative to the occulting body [m].
        r_sun: Position of the Sun relative to the occulting body [m].
        r_body: Radius of the occulting body [m].

    Returns:
        Illumination fraction (scalar), 0.0 or 1.0.
    """
    _float = get_dtype()
    r = jnp.asarray(r_object, dtype=_float)[:3]
    r_s = jnp.asarray(r_sun, dtype=_float)

    e_sun = r_s / jnp.linalg.norm(r_s)
    r_proj = jnp.dot(r, e_sun)
    r_perp = jnp.linalg.norm(r - r_proj * e_sun)

    is_illuminated = (r_proj >= 0.0) | (r_perp > r_body)
    return jnp.where(is_illuminated, _float(1.0), _float(0.0))
