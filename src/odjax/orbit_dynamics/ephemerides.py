"""Low-precision analytical ephemerides for the Sun and Moon.

Provides geocentric position vectors in the EME2000 inertial frame using
the analytical models from Montenbruck & Gill, suitable for perturbation
force modelling where ~0.1 deg accuracy is acceptable. Time arguments are
Julian centuries of Terrestrial Time since J2000.

All positions are in SI base units (metres).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, Sec. 3.3.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array

from odjax.config import get_dtype
from odjax.constants import AS2RAD, DEG2RAD
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames.rotations import Rx
from odjax.time import TimeSystem

# Obliquity of the J2000 ecliptic [rad]
_EPSILON = 23.43929111 * DEG2RAD

EPHEMERIS_BODIES = frozenset({"Earth", "Moon", "Sun"})
"""Bodies whose positions :func:`body_position` can compute."""


def _frac(x):
    """Fractional part of x: ``x - floor(x)``."""
    return x - jnp.floor(x)


def sun_position(epc: Epoch) -> Array:
    """Geocentric position of the Sun in the EME2000 frame.

    Args:
        epc: Epoch at which to compute the Sun's position.

    Returns:
        3-element Sun position vector in metres.

    Examples:
        ```python
        from odjax import Epoch
        from odjax.orbit_dynamics import sun_position
        r_sun = sun_position(Epoch(2024, 2, 25))  # ~1 AU from Earth
        ```
    """
    _float = get_dtype()
    pi2 = 2.0 * jnp.pi

    T = epc.julian_centuries(TimeSystem.TT)

    # Mean anomaly [rad]
    M = pi2 * _frac(0.9931267 + 99.9973583 * T)

    # Ecliptic longitude [rad]
    L = pi2 * _frac(
        0.7859444
        + M / pi2
        + (6892.0 * jnp.sin(M) + 72.0 * jnp.sin(2.0 * M)) / 1296.0e3
    )

    # Distance [m]
    r = 149.619e9 - 2.499e9 * jnp.cos(M) - 0.021e9 * jnp.cos(2.0 * M)

    r_ecliptic = jnp.array([r * jnp.cos(L), r * jnp.sin(L), _float(0.0)])

    # Ecliptic to equatorial
    return Rx(-_EPSILON) @ r_ecliptic


def moon_position(epc: Epoch) -> Array:
    """Geocentric position of the Moon in the EME2000 frame.

    Args:
        epc: Epoch at which to compute the Moon's position.

    Returns:
        3-element Moon position vector in metres.
    """
    pi2 = 2.0 * jnp.pi

    T = epc.julian_centuries(TimeSystem.TT)

    # Mean elements of the lunar orbit
    L_0 = _frac(0.606433 + 1336.851344 * T)          # Mean longitude [rev]
    l_m = pi2 * _frac(0.374897 + 1325.552410 * T)    # Moon mean anomaly [rad]
    lp = pi2 * _frac(0.993133 + 99.997361 * T)       # Sun mean anomaly [rad]
    D = pi2 * _frac(0.827361 + 1236.853086 * T)      # Diff longitude Moon-Sun [rad]
    F = pi2 * _frac(0.259086 + 1342.227825 * T)      # Argument of latitude [rad]

    # Ecliptic longitude perturbation [arcsec]
    dL = (
        22640.0 * jnp.sin(l_m)
        - 4586.0 * jnp.sin(l_m - 2.0 * D)
        + 2370.0 * jnp.sin(2.0 * D)
        + 769.0 * jnp.sin(2.0 * l_m)
        - 668.0 * jnp.sin(lp)
        - 412.0 * jnp.sin(2.0 * F)
        - 212.0 * jnp.sin(2.0 * l_m - 2.0 * D)
        - 206.0 * jnp.sin(l_m + lp - 2.0 * D)
        + 192.0 * jnp.sin(l_m + 2.0 * D)
        - 165.0 * jnp.sin(lp - 2.0 * D)
        - 125.0 * jnp.sin(D)
        - 110.0 * jnp.sin(l_m + lp)
        + 148.0 * jnp.sin(l_m - lp)
        - 55.0 * jnp.sin(2.0 * F - 2.0 * D)
    )

    L = pi2 * _frac(L_0 + dL / 1296.0e3)

    # Ecliptic latitude [rad]
    S = F + (dL + 412.0 * jnp.sin(2.0 * F) + 541.0 * jnp.sin(lp)) * AS2RAD
    h = F - 2.0 * D
    N = (
        -526.0 * jnp.sin(h)
        + 44.0 * jnp.sin(l_m + h)
        - 31.0 * jnp.sin(-l_m + h)
        - 23.0 * jnp.sin(lp + h)
        + 11.0 * jnp.sin(-lp + h)
        - 25.0 * jnp.sin(-2.0 * l_m + F)
        + 21.0 * jnp.sin(-l_m + F)
    )
    B = (18520.0 * jnp.sin(S) + N) * AS2RAD

    # Distance [m]
    r = (
        385000e3
        - 20905e3 * jnp.cos(l_m)
        - 3699e3 * jnp.cos(2.0 * D - l_m)
        - 2956e3 * jnp.cos(2.0 * D)
        - 570e3 * jnp.cos(2.0 * l_m)
        + 246e3 * jnp.cos(2.0 * l_m - 2.0 * D)
        - 205e3 * jnp.cos(lp - 2.0 * D)
        - 171e3 * jnp.cos(l_m + 2.0 * D)
        - 152e3 * jnp.cos(l_m + lp - 2.0 * D)
    )

    r_ecliptic = jnp.array([
        r * jnp.cos(L) * jnp.cos(B),
        r * jnp.sin(L) * jnp.cos(B),
        r * jnp.sin(B),
    ])

    return Rx(-_EPSILON) @ r_ecliptic


def _geocentric(name: str, epc: Epoch) -> Array:
    if name == "Earth":
        return jnp.zeros(3, dtype=get_dtype())
    if name == "Sun":
        return sun_position(epc)
    if name == "Moon":
        return moon_position(epc)
    raise InvalidConfiguration(f"no ephemeris available for body '{name}'")


def body_position(name: str, center: str, epc: Epoch) -> Array:
    """Position of body *name* relative to body *center* in EME2000 axes.

    Args:
        name: One of :data:`EPHEMERIS_BODIES`.
        center: One of :data:`EPHEMERIS_BODIES`.
        epc: Evaluation epoch.

    Returns:
        3-element position vector in metres.

    Raises:
        InvalidConfiguration: If either body has no ephemeris.
    """
    return _geocentric(name, epc) - _geocentric(center, epc)
