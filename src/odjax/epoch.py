"""The epoch module provides the ``Epoch`` class for representing instants in time.

The Epoch class stores an instant on the TAI scale using an integer Julian
Day number, seconds within the day, and a Kahan summation compensator for
maintaining precision during arithmetic operations.  Each Epoch also carries
a *default time system* tag (UTC, TAI, TT, GPS or TDB) that is used when
the epoch is constructed, printed, or queried without an explicit system.
Two epochs with different tags but the same TAI instant compare equal.

The Kahan compensator tracks floating-point rounding errors that accumulate
during repeated additions (e.g., time stepping in numerical integration),
preventing error growth from O(N) to O(1) machine epsilon.

The Epoch class is registered as a JAX pytree (the time-system tag is static
auxiliary data), making it compatible with ``jax.jit``, ``jax.vmap``, and
``jax.lax.scan``. Arithmetic, comparison, and Julian-date accessors use JAX
operations and are traceable; construction from calendar components or
strings and ``caldate()`` are host-side.
"""

from __future__ import annotations

import math
import re

import jax
import jax.numpy as jnp

from .config import get_dtype, get_epoch_eq_tolerance
from .constants import JD_MJD_OFFSET, SECONDS_PER_DAY
from .time import TimeSystem, caldate_to_jd, jd_to_caldate, offset_from_tai, offset_to_tai

# J2000.0 epoch Julian Date (integer part, day boundary at noon)
_JD_J2000 = 2451545

# ISO 8601 date, optional time with optional fraction, optional ``Z``, and an
# optional trailing time-system name (``2018-02-27T00:00:00 TAI``).
_EPOCH_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})"
    r"(?:[T ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?)?"
    r"(Z)?"
    r"(?:\s+([A-Za-z]+))?$"
)


class Epoch:
    """Represents a single instant in time with high-precision arithmetic.

    The internal representation uses three private components, all on the
    TAI scale: ``_jd`` (int32), ``_seconds`` (float), ``_kahan_c`` (float).
    Use ``jd()`` and ``mjd()`` to access the absolute time as Julian Date
    or Modified Julian Date in any supported time system.

    This class is registered as a JAX pytree and is compatible with
    ``jax.jit``, ``jax.vmap``, and ``jax.lax.scan``.

    Constructors:
        Epoch(2018, 1, 1)
        Epoch(2018, 1, 1, 12, 0, 0.0, time_system="TAI")
        Epoch("2018-01-01T12:00:00Z")
        Epoch("2018-01-01T12:00:00 TDB")
        Epoch(other_epoch)
        Epoch.from_mjd(58000.0, "TT")

    Examples:
        ```python
        from odjax import Epoch
        epc = Epoch(2018, 2, 27, time_system="UTC")
        epc.mjd("TAI") - epc.mjd("UTC")   # 37 leap seconds, in days
        ```
    """

    __slots__ = ("_jd", "_seconds", "_kahan_c", "_time_system")

    def __init__(
        self,
        *args: int | float | str | Epoch,
        time_system: str | TimeSystem | None = None,
    ) -> None:
        """Initialize Epoch. Supports multiple constructor forms.

        Args:
            *args: Either (year, month, day[, hour, minute, second]),
                a string in ISO 8601 format, or another Epoch instance.
            time_system: Time system the components are expressed in and
                the default system of the new epoch. Default: ``UTC`` for
                calendar components, the string's suffix (or ``UTC``) for
                strings, and the source's tag for copies.
        """
        dtype = get_dtype()
        self._jd = jnp.int32(0)
        self._seconds = dtype(0.0)
        self._kahan_c = dtype(0.0)
        self._time_system = TimeSystem.UTC

        if len(args) == 1:
            if isinstance(args[0], str):
                self._init_string(args[0], time_system)
            elif isinstance(args[0], Epoch):
                self._init_epoch(args[0], time_system)
            else:
                raise ValueError(f"Cannot construct Epoch from {type(args[0])}")
        elif 3 <= len(args) <= 6:
            self._init_date(*args, time_system=time_system)
        else:
            raise ValueError(
                "Epoch requires date components (3-6 args), a string, or an Epoch"
            )

    @classmethod
    def _from_internal(cls, jd, seconds, kahan_c, time_system=TimeSystem.UTC):
        """Create an Epoch from raw TAI components without Python-side processing.

        Used by pytree unflatten and arithmetic operators. No normalization
        is performed; the caller must ensure values are already normalized.
        """
        obj = object.__new__(cls)
        obj._jd = jd
        obj._seconds = seconds
        obj._kahan_c = kahan_c
        obj._time_system = time_system
        return obj

    @classmethod
    def from_mjd(cls, mjd: float, time_system: str | TimeSystem = TimeSystem.UTC) -> Epoch:
        """Create an Epoch from a Modified Julian Date.

        Args:
            mjd: Modified Julian Date in *time_system*.
            time_system: Time system of *mjd*. Default: ``UTC``.

        Returns:
            Epoch: New epoch tagged with *time_system*.
        """
        system = TimeSystem.parse(time_system)
        mjd = float(mjd)
        mjd_int = math.floor(mjd)
        # MJD day boundaries are at midnight, JD day boundaries at noon
        seconds = (mjd - mjd_int + 0.5) * SECONDS_PER_DAY
        epc = cls._local(mjd_int + 2400000, seconds, system)
        return epc

    @classmethod
    def from_jd(cls, jd: float, time_system: str | TimeSystem = TimeSystem.UTC) -> Epoch:
        """Create an Epoch from a Julian Date.

        Args:
            jd: Julian Date in *time_system*.
            time_system: Time system of *jd*. Default: ``UTC``.

        Returns:
            Epoch: New epoch tagged with *time_system*.
        """
        system = TimeSystem.parse(time_system)
        jd = float(jd)
        jd_int = math.floor(jd)
        return cls._local(jd_int, (jd - jd_int) * SECONDS_PER_DAY, system)

    @classmethod
    def j2000(cls) -> Epoch:
        """Return the J2000.0 reference epoch, 2000-01-01 12:00:00 TT."""
        return cls(2000, 1, 1, 12, 0, 0.0, time_system=TimeSystem.TT)

    @classmethod
    def _local(cls, jd_int: int, seconds: float, system: TimeSystem) -> Epoch:
        """Build an epoch from a day/seconds split expressed in *system*."""
        dtype = get_dtype()
        day_offset = math.floor(seconds / SECONDS_PER_DAY)
        jd_int += day_offset
        seconds -= day_offset * SECONDS_PER_DAY
        local = cls._from_internal(jnp.int32(jd_int), dtype(seconds), dtype(0.0), system)

        mjd_local = jd_int - JD_MJD_OFFSET + seconds / SECONDS_PER_DAY
        shift = float(offset_to_tai(system, mjd_local))
        return local + shift

    def _init_date(self, year, month, day, hour=0, minute=0, second=0.0, *, time_system=None):
        """Initialize from calendar date components expressed in *time_system*."""
        system = TimeSystem.parse(time_system or TimeSystem.UTC)

        # JD for the date only; the time of day is carried in seconds
        jd_full = float(caldate_to_jd(year, month, day))
        jd_int = int(math.floor(jd_full))
        frac_day = jd_full - jd_int

        seconds = frac_day * SECONDS_PER_DAY + hour * 3600.0 + minute * 60.0 + second
        self._init_epoch(Epoch._local(jd_int, seconds, system), system)

    def _init_string(self, string, time_system=None):
        """Initialize from an ISO 8601 string.

        Supported formats:
            - ``YYYY-MM-DD``
            - ``YYYY-MM-DDTHH:MM:SS[.fff][Z]``
            - any of the above followed by whitespace and a time-system
              name, e.g. ``2018-02-27T00:00:00 TAI``

        A trailing ``Z`` denotes UTC. An explicit *time_system* argument
        must agree with a suffix when both are given.
        """
        m = _EPOCH_PATTERN.match(string.strip())
        if m is None:
            raise ValueError(f'Invalid Epoch string: "{string}" is not ISO 8601 compliant')

        year, month, day, hour, minute, sec, frac, zulu, suffix = m.groups()

        system = None
        if suffix is not None:
            system = TimeSystem.parse(suffix)
        elif zulu is not None:
            system = TimeSystem.UTC
        if time_system is not None:
            requested = TimeSystem.parse(time_system)
            if system is not None and system is not requested:
                raise ValueError(
                    f'Epoch string "{string}" is in {system.value}, '
                    f"but time_system={requested.value} was requested"
                )
            system = requested

        second = float(sec) if sec is not None else 0.0
        if frac is not None:
            second += float(f"0.{frac}")

        self._init_date(
            int(year), int(month), int(day),
            int(hour or 0), int(minute or 0), second,
            time_system=system,
        )

    def _init_epoch(self, other, time_system=None):
        """Initialize as a copy of another Epoch, optionally re-tagged."""
        self._jd = other._jd
        self._seconds = other._seconds
        self._kahan_c = other._kahan_c
        self._time_system = (
            TimeSystem.parse(time_system) if time_system is not None else other._time_system
        )

    def _compensated_seconds(self):
        """Return the TAI seconds within the day with Kahan compensation applied."""
        return self._seconds - self._kahan_c

    @property
    def time_system(self) -> TimeSystem:
        """Default time system of this epoch."""
        return self._time_system

    def in_time_system(self, time_system: str | TimeSystem) -> Epoch:
        """Return the same instant tagged with a different default time system."""
        return Epoch._from_internal(
            self._jd, self._seconds, self._kahan_c, TimeSystem.parse(time_system)
        )

    # Arithmetic operators

    def __iadd__(self, delta: float) -> Epoch:
        """Add seconds to this epoch using Kahan compensated summation.

        Returns a new Epoch instance (Python rebinds the name on ``+=``).
        JAX pytree leaves are immutable during tracing, so the epoch is
        never mutated in place.

        Args:
            delta (float): Seconds to add.

        Returns:
            Epoch: New Epoch with delta seconds added.
        """
        dtype = get_dtype()
        delta = jnp.asarray(delta, dtype=dtype)
        y = delta - self._kahan_c
        t = self._seconds + y
        new_kahan_c = (t - self._seconds) - y
        new_seconds = t

        # Single floor-division handles any magnitude of overflow
        day_offset = jnp.floor(new_seconds / SECONDS_PER_DAY)
        new_seconds = new_seconds - day_offset * dtype(SECONDS_PER_DAY)
        new_jd = self._jd + day_offset.astype(jnp.int32)

        return Epoch._from_internal(new_jd, new_seconds, new_kahan_c, self._time_system)

    def __isub__(self, delta: float) -> Epoch:
        """Subtract seconds from this epoch."""
        return self.__iadd__(-jnp.asarray(delta, dtype=get_dtype()))

    def __add__(self, delta: float) -> Epoch:
        """Return a new Epoch advanced by *delta* seconds."""
        return self.__iadd__(delta)

    def __sub__(self, other: Epoch | float) -> Epoch | jax.Array:
        """Subtract seconds or compute difference between Epochs.

        Args:
            other: If Epoch, returns the time difference in seconds.
                If numeric, returns a new Epoch with seconds subtracted.

        Returns:
            float or Epoch: Time difference in seconds, or new Epoch.
        """
        if isinstance(other, Epoch):
            return ((self._jd - other._jd) * SECONDS_PER_DAY
                    + (self._compensated_seconds()
                       - other._compensated_seconds()))
        return self.__isub__(other)

    # Comparison operators

    def __eq__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return jnp.abs(self - other) < get_epoch_eq_tolerance()

    def __ne__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return ~self.__eq__(other)

    def __lt__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return (self - other) < -get_epoch_eq_tolerance()

    def __le__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return (self - other) < get_epoch_eq_tolerance()

    def __gt__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return (self - other) > get_epoch_eq_tolerance()

    def __ge__(self, other):
        if not isinstance(other, Epoch):
            return NotImplemented
        return (self - other) > -get_epoch_eq_tolerance()

    # Time properties

    def _split(self, time_system):
        """Return (jd_int, seconds) of this instant expressed in *time_system*."""
        system = self._time_system if time_system is None else TimeSystem.parse(time_system)
        seconds = self._compensated_seconds()
        mjd_tai = (self._jd - JD_MJD_OFFSET) + seconds / SECONDS_PER_DAY
        return self._jd, seconds + offset_from_tai(system, mjd_tai)

    def jd(self, time_system: str | TimeSystem | None = None) -> jax.Array:
        """Return the Julian Date in *time_system* (default: the epoch's own)."""
        jd_int, seconds = self._split(time_system)
        return jd_int + seconds / SECONDS_PER_DAY

    def mjd(self, time_system: str | TimeSystem | None = None) -> jax.Array:
        """Return the Modified Julian Date in *time_system* (default: the epoch's own).

        The integer and fractional parts are combined after the
        Julian-to-modified offset is removed, so the fraction keeps
        ~1 microsecond resolution.
        """
        jd_int, seconds = self._split(time_system)
        return (jd_int - JD_MJD_OFFSET) + seconds / SECONDS_PER_DAY

    def days_since_j2000(self, time_system: str | TimeSystem | None = None) -> jax.Array:
        """Return days elapsed since JD 2451545.0 in *time_system*."""
        jd_int, seconds = self._split(time_system)
        return (jd_int - _JD_J2000) + seconds / SECONDS_PER_DAY

    def julian_centuries(self, time_system: str | TimeSystem | None = None) -> jax.Array:
        """Return Julian centuries elapsed since J2000.0 in *time_system*."""
        return self.days_since_j2000(time_system) / 36525.0

    def caldate(self, time_system: str | TimeSystem | None = None) -> tuple[int, int, int, int, int, float]:
        """Return the calendar date components in *time_system*.

        This method extracts concrete Python values from JAX arrays and
        is not traceable under ``jax.jit``.

        Returns:
            tuple: (year, month, day, hour, minute, second) where second
                includes fractional part.
        """
        jd_int, seconds = self._split(time_system)
        seconds = float(seconds)
        jd_int = int(jd_int)

        day_offset = math.floor(seconds / SECONDS_PER_DAY)
        jd_int += day_offset
        seconds -= day_offset * SECONDS_PER_DAY

        year, month, day, _, _, _ = jd_to_caldate(jd_int + seconds / SECONDS_PER_DAY)

        # JD day starts at noon; shift by 43200s to get civil time of day.
        civil_time = (seconds + 43200.0) % SECONDS_PER_DAY

        hour = int(civil_time // 3600)
        civil_time -= hour * 3600
        minute = int(civil_time // 60)
        second = civil_time - minute * 60

        return int(year), int(month), int(day), hour, minute, second

    def isoformat(self, time_system: str | TimeSystem | None = None) -> str:
        """Return ``YYYY-MM-DDTHH:MM:SS.sss SYS`` in *time_system*."""
        system = self._time_system if time_system is None else TimeSystem.parse(time_system)
        year, month, day, hour, minute, second = self.caldate(system)
        return (f"{year:04d}-{month:02d}-{day:02d}T"
                f"{hour:02d}:{minute:02d}:{second:06.3f} {system.value}")

    # Sidereal time

    def gmst(self, use_degrees: bool = False) -> jax.Array:
        """Compute Greenwich Mean Sidereal Time using the IAU 1982 model.

        Uses the Vallado GMST82 polynomial approximation with UT1
        approximated by UTC (at most ~1 second of error).

        Args:
            use_degrees (bool): If True, return in degrees. Default: False
                (radians).

        Returns:
            Greenwich Mean Sidereal Time. Units: rad (or deg if
                use_degrees=True)

        References:

            1. D. Vallado, *Fundamentals of Astrodynamics and Applications
               (4th Ed.)*, 2010.
        """
        t_ut1 = self.julian_centuries(TimeSystem.UTC)

        # GMST in seconds of time (polynomial in Julian centuries from J2000)
        gmst_sec = (67310.54841
                    + (876600.0 * 3600.0 + 8640184.812866) * t_ut1
                    + 0.093104 * t_ut1 * t_ut1
                    - 6.2e-6 * t_ut1 * t_ut1 * t_ut1)

        # 1 second of time = 1/240 degree
        gmst_rad = jnp.mod(gmst_sec / 240.0 * jnp.pi / 180.0, 2.0 * jnp.pi)

        return jnp.where(use_degrees, gmst_rad * 180.0 / jnp.pi, gmst_rad)

    # String representations

    def __str__(self):
        return self.isoformat()

    def __repr__(self):
        return f"Epoch({self.isoformat()!r})"

    def __hash__(self):
        return hash((int(self._jd), round(float(self._compensated_seconds()), 6)))


# Register Epoch as a JAX pytree so it can be used with jit, vmap, scan, etc.
jax.tree_util.register_pytree_node(
    Epoch,
    lambda e: ((e._jd, e._seconds, e._kahan_c), e._time_system),
    lambda system, children: Epoch._from_internal(*children, system),
)
