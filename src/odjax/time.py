"""Time systems and calendar conversions.

An :class:`~odjax.epoch.Epoch` stores its instant on the TAI scale.  This
module provides the offsets between TAI and the other supported time
systems, and the calendar / Julian Date conversions the Epoch builds on.

Supported systems:

- ``TAI`` -- International Atomic Time (storage scale)
- ``TT``  -- Terrestrial Time, ``TAI + 32.184 s``
- ``GPS`` -- GPS time, ``TAI - 19 s``
- ``UTC`` -- Coordinated Universal Time, ``TAI - (TAI-UTC)`` leap seconds
- ``TDB`` -- Barycentric Dynamical Time, ``TT`` plus the dominant periodic
  terms (Fairhead & Bretagnon truncation, ~30 us accuracy)
"""

from __future__ import annotations

import enum

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from .config import get_dtype
from .constants import DEG2RAD, JD_MJD_OFFSET, MJD2000, SECONDS_PER_DAY, TAI_GPS, TT_TAI


class TimeSystem(str, enum.Enum):
    """Time scales an Epoch can be expressed in."""

    TAI = "TAI"
    TT = "TT"
    UTC = "UTC"
    GPS = "GPS"
    TDB = "TDB"

    @classmethod
    def parse(cls, value: str | TimeSystem) -> TimeSystem:
        """Coerce a string or ``TimeSystem`` into a ``TimeSystem``.

        Raises:
            ValueError: If *value* names no supported time system.
        """
        if isinstance(value, TimeSystem):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(
                f"Unknown time system '{value}'. Must be one of: "
                f"{', '.join(s.value for s in cls)}"
            ) from None


# Leap second table: (MJD of introduction, TAI-UTC in seconds)
# Source: IERS Bulletin C / USNO leap second table (1972-01-01 through 2017-01-01).
_LEAP_SECOND_TABLE: tuple[tuple[float, float], ...] = (
    (41317.0, 10.0),  # 1972-01-01
    (41499.0, 11.0),  # 1972-07-01
    (41683.0, 12.0),  # 1973-01-01
    (42048.0, 13.0),  # 1974-01-01
    (42413.0, 14.0),  # 1975-01-01
    (42778.0, 15.0),  # 1976-01-01
    (43144.0, 16.0),  # 1977-01-01
    (43509.0, 17.0),  # 1978-01-01
    (43874.0, 18.0),  # 1979-01-01
    (44239.0, 19.0),  # 1980-01-01
    (44786.0, 20.0),  # 1981-07-01
    (45151.0, 21.0),  # 1982-01-01
    (45516.0, 22.0),  # 1983-07-01
    (46247.0, 23.0),  # 1985-07-01
    (47161.0, 24.0),  # 1988-01-01
    (47892.0, 25.0),  # 1990-01-01
    (48257.0, 26.0),  # 1991-01-01
    (48804.0, 27.0),  # 1992-07-01
    (49169.0, 28.0),  # 1993-07-01
    (49534.0, 29.0),  # 1994-07-01
    (50083.0, 30.0),  # 1996-01-01
    (50630.0, 31.0),  # 1997-07-01
    (51179.0, 32.0),  # 1999-01-01
    (53736.0, 33.0),  # 2006-01-01
    (54832.0, 34.0),  # 2009-01-01
    (56109.0, 35.0),  # 2012-07-01
    (57204.0, 36.0),  # 2015-07-01
    (57754.0, 37.0),  # 2017-01-01
)


def leap_seconds_tai_utc(mjd: ArrayLike) -> jax.Array:
    """Return TAI-UTC (cumulative leap seconds) for a given UTC MJD.

    Uses a hardcoded step-function lookup table covering 1972-01-01 through
    2017-01-01. For dates before 1972, returns 10.0; for dates after the last
    entry, returns the most recent value (37.0).

    JIT-compatible: uses ``jnp.searchsorted`` for O(log n) lookup.

    Args:
        mjd: Modified Julian Date (UTC), scalar or array.

    Returns:
        TAI-UTC in seconds.
    """
    mjd = jnp.asarray(mjd, dtype=get_dtype())
    mjd_breaks = jnp.array([m for m, _ in _LEAP_SECOND_TABLE], dtype=get_dtype())
    tai_utc_vals = jnp.array([v for _, v in _LEAP_SECOND_TABLE], dtype=get_dtype())

    # idx-1 is the last entry <= mjd
    idx = jnp.searchsorted(mjd_breaks, mjd, side="right")

    return jnp.where(idx == 0, get_dtype()(10.0), tai_utc_vals[idx - 1])


def _tdb_periodic(mjd_tt: ArrayLike) -> jax.Array:
    """TDB - TT periodic terms [s] evaluated at a TT (or TDB) MJD."""
    g = (357.53 + 0.98560028 * (mjd_tt - MJD2000)) * DEG2RAD
    return 0.001657 * jnp.sin(g) + 0.000014 * jnp.sin(2.0 * g)


def offset_from_tai(system: str | TimeSystem, mjd_tai: ArrayLike) -> jax.Array:
    """Seconds to add to a TAI instant to express it in *system*.

    Args:
        system: Target time system.
        mjd_tai: The instant as a TAI Modified Julian Date.

    Returns:
        Offset in seconds (``t_system = t_tai + offset``).
    """
    system = TimeSystem.parse(system)
    mjd_tai = jnp.asarray(mjd_tai, dtype=get_dtype())

    if system is TimeSystem.TAI:
        return jnp.zeros_like(mjd_tai)
    if system is TimeSystem.TT:
        return jnp.full_like(mjd_tai, TT_TAI)
    if system is TimeSystem.GPS:
        return jnp.full_like(mjd_tai, -TAI_GPS)
    if system is TimeSystem.TDB:
        mjd_tt = mjd_tai + TT_TAI / SECONDS_PER_DAY
        return TT_TAI + _tdb_periodic(mjd_tt)

    # UTC: look up with a first UTC guess so instants just after a leap
    # second insertion pick the correct table entry.
    guess = mjd_tai - leap_seconds_tai_utc(mjd_tai) / SECONDS_PER_DAY
    return -leap_seconds_tai_utc(guess)


def offset_to_tai(system: str | TimeSystem, mjd: ArrayLike) -> jax.Array:
    """Seconds to add to an instant in *system* to express it in TAI.

    Inverse of :func:`offset_from_tai`.

    Args:
        system: Source time system.
        mjd: The instant as a Modified Julian Date in *system*.

    Returns:
        Offset in seconds (``t_tai = t_system + offset``).
    """
    system = TimeSystem.parse(system)
    mjd = jnp.asarray(mjd, dtype=get_dtype())

    if system is TimeSystem.TAI:
        return jnp.zeros_like(mjd)
    if system is TimeSystem.TT:
        return jnp.full_like(mjd, -TT_TAI)
    if system is TimeSystem.GPS:
        return jnp.full_like(mjd, TAI_GPS)
    if system is TimeSystem.TDB:
        return -(TT_TAI + _tdb_periodic(mjd))
    return leap_seconds_tai_utc(mjd)


def caldate_to_mjd(
    year: ArrayLike,
    month: ArrayLike,
    day: ArrayLike,
    hour: ArrayLike = 0,
    minute: ArrayLike = 0,
    second: ArrayLike = 0.0,
) -> jax.Array:
    """Convert a calendar date to Modified Julian Date. Algorithm is only valid from year 1583 onward.

    Args:
        year (ArrayLike): Year of the calendar date.
        month (ArrayLike): Month of the calendar date.
        day (ArrayLike): Day of the calendar date.
        hour (ArrayLike): Hour of the calendar date. Default: ``0``
        minute (ArrayLike): Minute of the calendar date. Default: ``0``
        second (ArrayLike): Second of the calendar date. Default: ``0.0``

    Returns:
        Modified Julian Date.

    References:

        1. Montenbruck, O., & Gill, E. (2012). *Satellite Orbits: Models, Methods and Applications*. Springer Science & Business Media.
    """
    is_jan_or_feb = month <= 2
    year = jnp.where(is_jan_or_feb, year - 1, year)
    month = jnp.where(is_jan_or_feb, month + 12, month)

    B = jnp.floor(year / 400) - jnp.floor(year / 100) + jnp.floor(year / 4)

    mjd = 365 * year - 679004 + B + jnp.floor(30.6001 * (month + 1)) + day

    frac_day = (hour + (minute + second / 60.0) / 60.0) / 24.0

    return get_dtype()(jnp.floor(mjd)) + frac_day


def caldate_to_jd(
    year: ArrayLike,
    month: ArrayLike,
    day: ArrayLike,
    hour: ArrayLike = 0,
    minute: ArrayLike = 0,
    second: ArrayLike = 0.0,
) -> jax.Array:
    """Convert a calendar date to Julian Date.

    Args:
        year (ArrayLike): Year of the calendar date.
        month (ArrayLike): Month of the calendar date.
        day (ArrayLike): Day of the calendar date.
        hour (ArrayLike): Hour of the calendar date. Default: ``0``
        minute (ArrayLike): Minute of the calendar date. Default: ``0``
        second (ArrayLike): Second of the calendar date. Default: ``0.0``

    Returns:
        Julian Date.
    """
    return caldate_to_mjd(year, month, day, hour, minute, second) + JD_MJD_OFFSET


def jd_to_mjd(jd: ArrayLike) -> jax.Array:
    """Convert Julian Date to Modified Julian Date."""
    return jd - JD_MJD_OFFSET


def mjd_to_jd(mjd: ArrayLike) -> jax.Array:
    """Convert Modified Julian Date to Julian Date."""
    return mjd + JD_MJD_OFFSET


def jd_to_caldate(
    jd: ArrayLike,
) -> tuple[jax.Array, jax.Array, jax.Array, jax.Array, jax.Array, jax.Array]:
    """Convert Julian Date to calendar date.

    Uses the algorithm from Montenbruck & Gill for Gregorian calendar dates.

    Args:
        jd (ArrayLike): Julian Date.

    Returns:
        tuple[jax.Array, ...]: (year, month, day, hour, minute, second) where
            year/month/day/hour/minute are integers and second is a float
            resolved to the millisecond.

    References:

        1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
           Applications*, 2012, p. 322.
    """
    jd_shifted = jd + 0.5
    z = jnp.floor(jd_shifted).astype(jnp.int64)
    f = jd_shifted - z

    # Julian/Gregorian calendar switchover at JD 2299161, evaluated with
    # scaled integer arithmetic.
    alpha = (100 * z - 186721625) // 3652425
    a_gregorian = z + 1 + alpha - alpha // 4
    a = jnp.where(z < 2299161, z, a_gregorian)

    b = a + 1524
    c = (100 * b - 12210) // 36525
    d = (36525 * c) // 100
    e = ((b - d) * 10000) // 306001

    day_with_frac = b - d - (306001 * e) // 10000 + f
    day = jnp.floor(day_with_frac).astype(jnp.int64)
    frac_of_day = day_with_frac - day

    month = jnp.where(e < 14, e - 1, e - 13)
    year = jnp.where(month > 2, c - 4716, c - 4715)

    total_ms = jnp.round(frac_of_day * 86400000.0).astype(jnp.int64)
    hour = total_ms // 3600000
    total_ms = total_ms - hour * 3600000
    minute = total_ms // 60000
    total_ms = total_ms - minute * 60000
    second = get_dtype()(total_ms) / 1000.0

    return year, month, day, hour, minute, second


def mjd_to_caldate(
    mjd: ArrayLike,
) -> tuple[jax.Array, jax.Array, jax.Array, jax.Array, jax.Array, jax.Array]:
    """Convert Modified Julian Date to calendar date.

    Args:
        mjd (ArrayLike): Modified Julian Date.

    Returns:
        tuple[jax.Array, ...]: (year, month, day, hour, minute, second).
    """
    return jd_to_caldate(mjd + JD_MJD_OFFSET)
