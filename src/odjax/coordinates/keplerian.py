"""Keplerian orbital element <-> inertial Cartesian state vector conversions.

Converts between osculating Keplerian orbital elements
``[a, e, i, RAAN, AOP, TA]`` and inertial Cartesian state vectors
``[x, y, z, vx, vy, vz]`` about a central body of gravitational
parameter ``gm``.

| Index | Element                          | Units         |
|-------|----------------------------------|---------------|
| 0     | *a* -- semi-major axis           | m             |
| 1     | *e* -- eccentricity              | dimensionless |
| 2     | *i* -- inclination               | rad           |
| 3     | *RAAN* -- right ascension of node| rad           |
| 4     | *AOP* -- argument of periapsis   | rad           |
| 5     | *TA* -- true anomaly             | rad           |

Elliptic (``e < 1``, ``a > 0``) and hyperbolic (``e > 1``, ``a < 0``) orbits
are supported. Parabolic and rectilinear orbits have no finite semi-major
axis or semi-latus rectum and are rejected.

Degenerate geometry
-------------------
When the orbit is circular (``e < 1e-8``) or equatorial (``i < 1e-8`` or
``pi - i < 1e-8``) some angles are undefined. The conversion never fails on
these inputs; it reports the angles against a fallback reference and emits
:class:`~odjax.errors.SingularElementConversion`:

- circular inclined: ``AOP = 0`` and ``TA`` is the argument of latitude
- elliptic equatorial: ``RAAN = 0`` and ``AOP`` is the longitude of periapsis
- circular equatorial: ``RAAN = AOP = 0`` and ``TA`` is the true longitude

:func:`keplerian_to_cartesian` applied to such a fallback set reproduces
the original Cartesian state.

All inputs and outputs use SI base units (metres, metres/second, radians).

References:
    1. D. Vallado, *Fundamentals of Astrodynamics and Applications
       (4th Ed.)*, 2010, Algorithms 9 and 10.
"""

from __future__ import annotations

import enum
import warnings

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import GM_EARTH
from odjax.errors import InvalidConfiguration, SingularElementConversion
from odjax.frames.rotations import Rx, Rz
from odjax.utils import from_radians, to_radians

ECC_SINGULARITY = 1e-8
"""Eccentricity below which an orbit is treated as circular."""

INC_SINGULARITY = 1e-8
"""Inclination distance [rad] from 0 or pi below which an orbit is treated as equatorial."""

_PARABOLIC_TOL = 1e-12


class Degeneracy(str, enum.Enum):
    """Which fallback angle convention an element set uses."""

    NONE = "none"
    CIRCULAR = "circular"
    EQUATORIAL = "equatorial"
    CIRCULAR_EQUATORIAL = "circular_equatorial"


def _check_gm(gm: float) -> None:
    if not gm > 0.0:
        raise InvalidConfiguration(f"gravitational parameter must be positive, got {gm}")


def _classify(e: float, i: float) -> Degeneracy:
    circular = e < ECC_SINGULARITY
    equatorial = i < INC_SINGULARITY or (jnp.pi - i) < INC_SINGULARITY
    if circular and equatorial:
        return Degeneracy.CIRCULAR_EQUATORIAL
    if circular:
        return Degeneracy.CIRCULAR
    if equatorial:
        return Degeneracy.EQUATORIAL
    return Degeneracy.NONE


def keplerian_degeneracy(elements: ArrayLike, use_degrees: bool = False) -> Degeneracy:
    """Report which fallback angle convention applies to an element set.

    Args:
        elements: ``[a, e, i, RAAN, AOP, TA]``.
        use_degrees: If ``True``, the inclination is in degrees.

    Returns:
        Degeneracy: ``NONE`` for a regular element set.
    """
    elements = jnp.asarray(elements, dtype=get_dtype())
    inc = float(to_radians(elements[2], use_degrees))
    return _classify(float(elements[1]), inc)


def _angle_about(axis: Array, start: Array, end: Array) -> Array:
    """Angle in ``[0, 2*pi)`` from *start* to *end*, counter-clockwise about unit *axis*."""
    return jnp.mod(
        jnp.arctan2(jnp.dot(jnp.cross(start, end), axis), jnp.dot(start, end)),
        2.0 * jnp.pi,
    )


def cartesian_to_keplerian(
    state: ArrayLike,
    gm: float = GM_EARTH,
    use_degrees: bool = False,
) -> Array:
    """Convert an inertial Cartesian state vector to Keplerian orbital elements.

    Derives the osculating elements from the angular momentum, node and
    eccentricity vectors. Angles are measured counter-clockwise about the
    angular momentum direction, which keeps retrograde and hyperbolic
    orbits consistent with :func:`keplerian_to_cartesian`.

    This conversion branches on the orbit geometry on the host and is not
    traceable under ``jax.jit``.

    Args:
        state: Cartesian state ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*
        use_degrees: If ``True``, return angular elements in degrees.

    Returns:
        Orbital elements ``[a, e, i, RAAN, AOP, TA]``. Semi-major axis in
        *m*, angles in ``[0, 2*pi)`` *rad* (or *deg*).

    Raises:
        InvalidConfiguration: If ``gm`` is not positive, or the orbit is
            parabolic or rectilinear.

    Warns:
        SingularElementConversion: If the orbit is circular and/or
            equatorial (see module documentation).

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.constants import R_EARTH, GM_EARTH
        from odjax.coordinates import cartesian_to_keplerian
        sma = R_EARTH + 500e3
        v = jnp.sqrt(GM_EARTH / sma)
        oe = cartesian_to_keplerian([sma, 0.0, 0.0, 0.0, v * 0.6, v * 0.8], GM_EARTH)
        ```
    """
    _check_gm(gm)
    state = jnp.asarray(state, dtype=get_dtype())

    r = state[:3]
    v = state[3:6]
    r_mag = jnp.linalg.norm(r)
    v_mag = jnp.linalg.norm(v)

    h = jnp.cross(r, v)
    h_mag = jnp.linalg.norm(h)
    p = h_mag * h_mag / gm
    if not float(p) > 0.0:
        raise InvalidConfiguration("rectilinear orbit: angular momentum is zero")
    w = h / h_mag

    e_vec = ((v_mag * v_mag - gm / r_mag) * r - jnp.dot(r, v) * v) / gm
    ecc = jnp.linalg.norm(e_vec)
    if abs(float(ecc) - 1.0) < _PARABOLIC_TOL:
        raise InvalidConfiguration("parabolic orbit (e == 1) has no semi-major axis")

    energy = 0.5 * v_mag * v_mag - gm / r_mag
    a = -gm / (2.0 * energy)

    inc = jnp.arctan2(jnp.hypot(h[0], h[1]), h[2])

    degeneracy = _classify(float(ecc), float(inc))

    x_hat = jnp.array([1.0, 0.0, 0.0], dtype=get_dtype())
    node = jnp.array([-h[1], h[0], 0.0], dtype=get_dtype())

    if degeneracy is Degeneracy.NONE:
        raan = jnp.mod(jnp.arctan2(node[1], node[0]), 2.0 * jnp.pi)
        aop = _angle_about(w, node, e_vec)
        ta = _angle_about(w, e_vec, r)
    elif degeneracy is Degeneracy.CIRCULAR:
        raan = jnp.mod(jnp.arctan2(node[1], node[0]), 2.0 * jnp.pi)
        aop = jnp.zeros((), dtype=get_dtype())
        ta = _angle_about(w, node, r)
    elif degeneracy is Degeneracy.EQUATORIAL:
        raan = jnp.zeros((), dtype=get_dtype())
        aop = _angle_about(w, x_hat, e_vec)
        ta = _angle_about(w, e_vec, r)
    else:
        raan = jnp.zeros((), dtype=get_dtype())
        aop = jnp.zeros((), dtype=get_dtype())
        ta = _angle_about(w, x_hat, r)

    if degeneracy is not Degeneracy.NONE:
        warnings.warn(
            f"{degeneracy.value} orbit (e={float(ecc):.3e}, i={float(inc):.3e} rad): "
            "element angles use the fallback convention",
            SingularElementConversion,
            stacklevel=2,
        )

    angles = from_radians(jnp.array([inc, raan, aop, ta]), use_degrees)
    return jnp.concatenate([jnp.array([a, ecc], dtype=get_dtype()), angles])


def keplerian_to_cartesian(
    elements: ArrayLike,
    gm: float = GM_EARTH,
    use_degrees: bool = False,
) -> Array:
    """Convert Keplerian orbital elements to an inertial Cartesian state vector.

    Builds position and velocity in the perifocal frame from the semi-latus
    rectum and true anomaly, then rotates them into the inertial frame with
    ``Rz(-RAAN) @ Rx(-i) @ Rz(-AOP)``. Fallback (degenerate) element sets
    convert without special handling.

    Args:
        elements: ``[a, e, i, RAAN, AOP, TA]``. Semi-major axis in *m*,
            angles in *rad* (or *deg* if ``use_degrees=True``).
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*
        use_degrees: If ``True``, interpret angular elements as degrees.

    Returns:
        Cartesian state ``[x, y, z, vx, vy, vz]`` in *m* and *m/s*.

    Raises:
        InvalidConfiguration: If ``gm`` is not positive, ``e == 1``, the
            semi-latus rectum is not positive, or the true anomaly lies
            beyond the asymptote of a hyperbolic orbit.

    Examples:
        ```python
        from odjax.constants import R_EARTH, GM_EARTH
        from odjax.coordinates import keplerian_to_cartesian
        x = keplerian_to_cartesian([R_EARTH + 500e3, 0.01, 97.5, 15.0, 30.0, 45.0],
                                   GM_EARTH, use_degrees=True)
        ```
    """
    _check_gm(gm)
    elements = jnp.asarray(elements, dtype=get_dtype())

    a = elements[0]
    e = elements[1]
    i, raan, aop, ta = to_radians(elements[2:6], use_degrees)

    if abs(float(e) - 1.0) < _PARABOLIC_TOL:
        raise InvalidConfiguration("parabolic orbit (e == 1) has no semi-major axis")

    p = a * (1.0 - e * e)
    if not float(p) > 0.0:
        raise InvalidConfiguration(
            f"semi-latus rectum must be positive (a={float(a)}, e={float(e)})"
        )

    denom = 1.0 + e * jnp.cos(ta)
    if not float(denom) > 0.0:
        raise InvalidConfiguration("true anomaly lies beyond the hyperbolic asymptote")

    r_pf = (p / denom) * jnp.array([jnp.cos(ta), jnp.sin(ta), 0.0])
    v_pf = jnp.sqrt(gm / p) * jnp.array([-jnp.sin(ta), e + jnp.cos(ta), 0.0])

    Q = Rz(-raan) @ Rx(-i) @ Rz(-aop)

    return jnp.concatenate([Q @ r_pf, Q @ v_pf])
