"""Keplerian orbital mechanics functions about an arbitrary central body.

This module provides functions for computing orbital quantities from
Keplerian elements (period, mean motion, energy, angular momentum, apsis
distances) and conversions between mean, eccentric and true anomaly.
Every function that depends on the central body takes its gravitational
parameter ``gm`` explicitly (default: Earth).

All functions use JAX operations and are compatible with ``jax.jit``,
``jax.vmap``, and ``jax.grad``. Inputs are coerced to the configured
float dtype (see :func:`odjax.config.set_dtype`).

The Kepler equation solver is a Newton-Raphson iteration implemented with
``jax.lax.fori_loop`` for JAX traceability. Anomaly conversions are valid
for elliptic orbits (``0 <= e < 1``).
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import GM_EARTH
from odjax.utils import from_radians, to_radians

# ──────────────────────────────────────────────
# Orbital period and semi-major axis
# ──────────────────────────────────────────────


def orbital_period(a: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Compute the orbital period of an elliptic orbit.

    Args:
        a: Semi-major axis. Units: *m*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        Orbital period. Units: *s*

    Examples:
        ```python
        from odjax.constants import R_EARTH
        from odjax.orbits import orbital_period
        T = orbital_period(R_EARTH + 500e3)
        ```
    """
    a = jnp.asarray(a, dtype=get_dtype())
    return 2.0 * jnp.pi * jnp.sqrt(a**3 / gm)


def orbital_period_from_state(state: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Compute orbital period from an inertial state vector using the vis-viva equation.

    Args:
        state: Cartesian state ``[x, y, z, vx, vy, vz]``. Units: *m* and *m/s*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        Orbital period. Units: *s*
    """
    state = jnp.asarray(state, dtype=get_dtype())
    r = jnp.linalg.norm(state[:3])
    v_sq = jnp.sum(state[3:6] ** 2)
    a = 1.0 / (2.0 / r - v_sq / gm)
    return orbital_period(a, gm)


def semimajor_axis_from_orbital_period(period: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Compute semi-major axis from orbital period.

    Args:
        period: Orbital period. Units: *s*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*

    Returns:
        Semi-major axis. Units: *m*
    """
    period = jnp.asarray(period, dtype=get_dtype())
    return (period**2 * gm / (4.0 * jnp.pi**2)) ** (1.0 / 3.0)


def semimajor_axis(n: ArrayLike, gm: float = GM_EARTH, use_degrees: bool = False) -> Array:
    """Compute semi-major axis from mean motion.

    Args:
        n: Mean motion. Units: *rad/s* or *deg/s*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*
        use_degrees: If ``True``, interpret ``n`` as degrees per second.

    Returns:
        Semi-major axis. Units: *m*
    """
    n = jnp.asarray(n, dtype=get_dtype())
    n_rad = to_radians(n, use_degrees)
    return (gm / n_rad**2) ** (1.0 / 3.0)


# ──────────────────────────────────────────────
# Mean motion, energy and angular momentum
# ──────────────────────────────────────────────


def mean_motion(a: ArrayLike, gm: float = GM_EARTH, use_degrees: bool = False) -> Array:
    """Compute the mean motion of an orbit.

    Args:
        a: Semi-major axis. Units: *m*
        gm: Gravitational parameter of the central body. Units: *m^3/s^2*
        use_degrees: If ``True``, return mean motion in degrees per second.

    Returns:
        Mean motion. Units: *rad/s* or *deg/s*

    Examples:
        ```python
        from odjax.constants import R_EARTH
        from odjax.orbits import mean_motion
        n = mean_motion(R_EARTH + 500e3)
        ```
    """
    a = jnp.asarray(a, dtype=get_dtype())
    n = jnp.sqrt(gm / jnp.abs(a) ** 3)
    return from_radians(n, use_degrees)


def specific_energy(a: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Specific orbital energy ``-gm / (2a)``. Units: *m^2/s^2*"""
    a = jnp.asarray(a, dtype=get_dtype())
    return -gm / (2.0 * a)


def angular_momentum(a: ArrayLike, e: ArrayLike, gm: float = GM_EARTH) -> Array:
    """Specific angular momentum magnitude ``sqrt(gm * a * (1 - e^2))``. Units: *m^2/s*"""
    a = jnp.asarray(a, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())
    return jnp.sqrt(gm * a * (1.0 - e * e))


# ──────────────────────────────────────────────
# Distances
# ──────────────────────────────────────────────


def periapsis_distance(a: ArrayLike, e: ArrayLike) -> Array:
    """Compute the distance from the central body's centre at periapsis.

    Args:
        a: Semi-major axis. Units: *m*
        e: Eccentricity. Dimensionless.

    Returns:
        Periapsis distance. Units: *m*
    """
    a = jnp.asarray(a, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())
    return a * (1.0 - e)


def apoapsis_distance(a: ArrayLike, e: ArrayLike) -> Array:
    """Compute the distance from the central body's centre at apoapsis.

    Unbounded (hyperbolic) orbits have no apoapsis; the returned value is
    then negative and carries no physical meaning.

    Args:
        a: Semi-major axis. Units: *m*
        e: Eccentricity. Dimensionless.

    Returns:
        Apoapsis distance. Units: *m*
    """
    a = jnp.asarray(a, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())
    return a * (1.0 + e)


# ──────────────────────────────────────────────
# Anomaly conversions
# ──────────────────────────────────────────────


def anomaly_eccentric_to_mean(anm_ecc: ArrayLike, e: ArrayLike, use_degrees: bool = False) -> Array:
    """Convert eccentric anomaly to mean anomaly.

    Applies Kepler's equation: ``M = E - e * sin(E)``.

    Args:
        anm_ecc: Eccentric anomaly. Units: *rad* or *deg*
        e: Eccentricity. Dimensionless.
        use_degrees: If ``True``, input and output are in degrees.

    Returns:
        Mean anomaly. Units: *rad* or *deg*

    References:
        O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
        Applications*, 2012. Eq. 2.65.
    """
    anm_ecc = jnp.asarray(anm_ecc, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())

    E = to_radians(anm_ecc, use_degrees)
    M = E - e * jnp.sin(E)
    return from_radians(M, use_degrees)


def anomaly_mean_to_eccentric(anm_mean: ArrayLike, e: ArrayLike, use_degrees: bool = False) -> Array:
    """Convert mean anomaly to eccentric anomaly.

    Solves Kepler's equation ``M = E - e * sin(E)`` for ``E`` using
    Newton-Raphson iteration implemented with ``jax.lax.fori_loop``.

    Args:
        anm_mean: Mean anomaly. Units: *rad* or *deg*
        e: Eccentricity. Dimensionless.
        use_degrees: If ``True``, input and output are in degrees.

    Returns:
        Eccentric anomaly in ``[0, 2*pi)``. Units: *rad* or *deg*

    Examples:
        ```python
        from odjax.orbits import anomaly_mean_to_eccentric
        E = anomaly_mean_to_eccentric(84.27, 0.1, use_degrees=True)
        ```
    """
    anm_mean = jnp.asarray(anm_mean, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())

    M = to_radians(anm_mean, use_degrees)
    M = M % (2.0 * jnp.pi)

    # Initial guess: M for low eccentricity, pi for high eccentricity
    E0 = jnp.where(e < 0.8, M, jnp.pi)

    def newton_step(_, E):
        f = E - e * jnp.sin(E) - M
        E = E - f / (1.0 - e * jnp.cos(E))
        return E

    E = jax.lax.fori_loop(0, 15, newton_step, E0)
    return from_radians(E, use_degrees)


def anomaly_true_to_eccentric(anm_true: ArrayLike, e: ArrayLike, use_degrees: bool = False) -> Array:
    """Convert true anomaly to eccentric anomaly.

    Args:
        anm_true: True anomaly. Units: *rad* or *deg*
        e: Eccentricity. Dimensionless.
        use_degrees: If ``True``, input and output are in degrees.

    Returns:
        Eccentric anomaly. Units: *rad* or *deg*

    References:
        D. Vallado, *Fundamentals of Astrodynamics and Applications
        (4th Ed.)*, pp. 47, eq. 2-9, 2010.
    """
    anm_true = jnp.asarray(anm_true, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())

    nu = to_radians(anm_true, use_degrees)
    E = jnp.arctan2(jnp.sin(nu) * jnp.sqrt(1.0 - e**2), jnp.cos(nu) + e)
    return from_radians(E, use_degrees)


def anomaly_eccentric_to_true(anm_ecc: ArrayLike, e: ArrayLike, use_degrees: bool = False) -> Array:
    """Convert eccentric anomaly to true anomaly.

    Args:
        anm_ecc: Eccentric anomaly. Units: *rad* or *deg*
        e: Eccentricity. Dimensionless.
        use_degrees: If ``True``, input and output are in degrees.

    Returns:
        True anomaly. Units: *rad* or *deg*
    """
    anm_ecc = jnp.asarray(anm_ecc, dtype=get_dtype())
    e = jnp.asarray(e, dtype=get_dtype())

    E = to_radians(anm_ecc, use_degrees)
    nu = jnp.arctan2(jnp.sin(E) * jnp.sqrt(1.0 - e**2), jnp.cos(E) - e)
    return from_radians(nu, use_degrees)


def anomaly_true_to_mean(anm_true: ArrayLike, e: ArrayLike, use_degrees: bool = False) -> Array:
    """Convert true anomaly to mean anomaly (true -> eccentric -> mean)."""
    return anomaly_eccentric_to_mean(
        anomaly_true_to_eccentric(anm_true, e, use_degrees),
        e,
        use_degrees,
    )


def anomaly_mean_to_true(anm_mean: ArrayLike, e: ArrayLike, use_degrees: bool = False) -> Array:
    """Convert mean anomaly to true anomaly (mean -> eccentric -> true)."""
    return anomaly_eccentric_to_true(
        anomaly_mean_to_eccentric(anm_mean, e, use_degrees),
        e,
        use_degrees,
    )
