"""Frame- and epoch-tagged orbital state vectors.

A :class:`State` pairs six numbers with the :class:`~odjax.epoch.Epoch` and
:class:`~odjax.frames.Frame` that give them meaning. The six numbers are
either a Cartesian position/velocity or a set of Keplerian elements
``[a, e, i, RAAN, AOP, TA]``; :attr:`State.representation` says which.
Conversions go through :mod:`odjax.coordinates.keplerian` using the
gravitational parameter of the frame's central body.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype, get_epoch_eq_tolerance
from odjax.coordinates.keplerian import cartesian_to_keplerian, keplerian_to_cartesian
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames import EME2000, Frame, transform_state
from odjax.orbits import anomaly_true_to_eccentric, anomaly_true_to_mean
from odjax.utils import from_radians, to_radians


class Representation(str, enum.Enum):
    """How the six components of a :class:`State` are to be read."""

    CARTESIAN = "cartesian"
    KEPLERIAN = "keplerian"


_ELEMENT_INDEX = {"sma": 0, "ecc": 1, "inc": 2, "raan": 3, "aop": 4, "ta": 5}
_CARTESIAN_INDEX = {"x": 0, "y": 1, "z": 2, "vx": 3, "vy": 4, "vz": 5}
_DERIVED = ("rmag", "vmag", "hmag", "energy", "period", "periapsis", "apoapsis")
_ANGULAR_ELEMENTS = frozenset({"inc", "raan", "aop", "ta", "ea", "ma"})

ELEMENT_NAMES = frozenset({*_ELEMENT_INDEX, *_CARTESIAN_INDEX, *_DERIVED, "ea", "ma"})
"""Quantity names accepted by :meth:`State.element`."""


@dataclass(frozen=True, eq=False)
class State:
    """Immutable orbital state tagged with its epoch and frame.

    Attributes:
        vector: Six components, Cartesian ``[x, y, z, vx, vy, vz]`` in
            *m* and *m/s*, or Keplerian ``[a, e, i, RAAN, AOP, TA]`` in *m*
            and *rad*.
        epoch: Instant the state refers to.
        frame: Frame the components are expressed in.
        representation: Interpretation of ``vector``.

    Examples:
        ```python
        from odjax import Epoch, State
        from odjax.frames import EME2000
        epc = Epoch(2018, 2, 27)
        s = State.from_keplerian(7000e3, 0.001, 30.0, 0.0, 0.0, 0.0, epc,
                                 EME2000, use_degrees=True)
        s.to_cartesian().rmag
        ```
    """

    vector: Array
    epoch: Epoch
    frame: Frame = EME2000
    representation: Representation = Representation.CARTESIAN

    def __post_init__(self):
        vector = jnp.asarray(self.vector, dtype=get_dtype())
        if vector.shape != (6,):
            raise InvalidConfiguration(f"state vector must have shape (6,), got {vector.shape}")
        object.__setattr__(self, "vector", vector)
        object.__setattr__(self, "representation", Representation(self.representation))
        if self.representation is Representation.KEPLERIAN and not self.frame.inertial:
            raise InvalidConfiguration(f"Keplerian elements require an inertial frame, got {self.frame}")

    # ──────────────────────────────────────────────
    # Construction and conversion
    # ──────────────────────────────────────────────

    @classmethod
    def from_cartesian(
        cls,
        position: ArrayLike,
        velocity: ArrayLike,
        epoch: Epoch,
        frame: Frame = EME2000,
    ) -> State:
        """Build a Cartesian state from position [m] and velocity [m/s]."""
        vector = jnp.concatenate([
            jnp.asarray(position, dtype=get_dtype()),
            jnp.asarray(velocity, dtype=get_dtype()),
        ])
        return cls(vector, epoch, frame, Representation.CARTESIAN)

    @classmethod
    def from_keplerian(
        cls,
        sma: float,
        ecc: float,
        inc: float,
        raan: float,
        aop: float,
        ta: float,
        epoch: Epoch,
        frame: Frame = EME2000,
        use_degrees: bool = False,
    ) -> State:
        """Build a Keplerian state. Angles are stored in radians.

        The element set is validated by converting it once, so an invalid
        orbit is rejected here rather than at first use.

        Raises:
            InvalidConfiguration: For a parabolic orbit, a non-positive
                semi-latus rectum, or a non-inertial frame.
        """
        angles = to_radians(jnp.array([inc, raan, aop, ta], dtype=get_dtype()), use_degrees)
        vector = jnp.concatenate([jnp.array([sma, ecc], dtype=get_dtype()), angles])
        state = cls(vector, epoch, frame, Representation.KEPLERIAN)
        keplerian_to_cartesian(vector, frame.gm)
        return state

    def to_cartesian(self) -> State:
        """Return this state with Cartesian components."""
        if self.representation is Representation.CARTESIAN:
            return self
        return State(
            keplerian_to_cartesian(self.vector, self.frame.gm),
            self.epoch,
            self.frame,
            Representation.CARTESIAN,
        )

    def to_keplerian(self) -> State:
        """Return this state as Keplerian elements.

        Warns:
            SingularElementConversion: For circular or equatorial orbits.
        """
        if self.representation is Representation.KEPLERIAN:
            return self
        if not self.frame.inertial:
            return self.in_frame(_inertial_counterpart(self.frame)).to_keplerian()
        return State(
            cartesian_to_keplerian(self.vector, self.frame.gm),
            self.epoch,
            self.frame,
            Representation.KEPLERIAN,
        )

    def in_frame(self, frame: Frame) -> State:
        """Return the Cartesian state expressed in *frame*.

        Raises:
            InvalidConfiguration: If no transformation to *frame* exists.
        """
        cart = self.to_cartesian()
        if frame == self.frame:
            return cart
        return State(
            transform_state(self.epoch, cart.vector, self.frame, frame),
            self.epoch,
            frame,
            Representation.CARTESIAN,
        )

    def with_vector(self, vector: ArrayLike, epoch: Epoch | None = None) -> State:
        """Return a state in the same frame and representation with new components."""
        return State(vector, self.epoch if epoch is None else epoch, self.frame, self.representation)

    # ──────────────────────────────────────────────
    # Cartesian quantities
    # ──────────────────────────────────────────────

    @property
    def cartesian(self) -> Array:
        """Cartesian 6-vector ``[x, y, z, vx, vy, vz]``."""
        return self.to_cartesian().vector

    @property
    def position(self) -> Array:
        """Position [m]."""
        return self.cartesian[:3]

    @property
    def velocity(self) -> Array:
        """Velocity [m/s]."""
        return self.cartesian[3:6]

    @property
    def rmag(self) -> Array:
        """Distance from the frame origin [m]."""
        return jnp.linalg.norm(self.position)

    @property
    def vmag(self) -> Array:
        """Speed [m/s]."""
        return jnp.linalg.norm(self.velocity)

    @property
    def hvec(self) -> Array:
        """Specific angular momentum vector [m^2/s]."""
        return jnp.cross(self.position, self.velocity)

    @property
    def hmag(self) -> Array:
        """Specific angular momentum magnitude [m^2/s]."""
        return jnp.linalg.norm(self.hvec)

    @property
    def energy(self) -> Array:
        """Specific orbital energy [m^2/s^2]."""
        return 0.5 * self.vmag**2 - self.frame.gm / self.rmag

    # ──────────────────────────────────────────────
    # Keplerian quantities
    # ──────────────────────────────────────────────

    @property
    def sma(self) -> Array:
        """Semi-major axis [m]."""
        if self.representation is Representation.KEPLERIAN:
            return self.vector[0]
        return -self.frame.gm / (2.0 * self.energy)

    @property
    def ecc(self) -> Array:
        """Eccentricity."""
        if self.representation is Representation.KEPLERIAN:
            return self.vector[1]
        r, v, gm = self.position, self.velocity, self.frame.gm
        e_vec = ((jnp.dot(v, v) - gm / jnp.linalg.norm(r)) * r - jnp.dot(r, v) * v) / gm
        return jnp.linalg.norm(e_vec)

    @property
    def inc(self) -> Array:
        """Inclination [rad]."""
        return self._keplerian()[2]

    @property
    def raan(self) -> Array:
        """Right ascension of the ascending node [rad]."""
        return self._keplerian()[3]

    @property
    def aop(self) -> Array:
        """Argument of periapsis [rad]."""
        return self._keplerian()[4]

    @property
    def ta(self) -> Array:
        """True anomaly [rad]."""
        return self._keplerian()[5]

    @property
    def period(self) -> Array:
        """Orbital period [s] (``nan`` for unbound orbits)."""
        a = self.sma
        return jnp.where(a > 0.0, 2.0 * jnp.pi * jnp.sqrt(jnp.abs(a) ** 3 / self.frame.gm), jnp.nan)

    @property
    def periapsis(self) -> Array:
        """Periapsis distance [m]."""
        return self.sma * (1.0 - self.ecc)

    @property
    def apoapsis(self) -> Array:
        """Apoapsis distance [m]."""
        return self.sma * (1.0 + self.ecc)

    def _keplerian(self) -> Array:
        return self.to_keplerian().vector

    def element(self, name: str, use_degrees: bool = False):
        """Look up a named orbital quantity.

        Supported names: ``sma``, ``ecc``, ``inc``, ``raan``, ``aop``,
        ``ta``, ``ea`` (eccentric anomaly), ``ma`` (mean anomaly),
        ``rmag``, ``vmag``, ``hmag``, ``energy``, ``period``,
        ``periapsis``, ``apoapsis``, ``x``, ``y``, ``z``, ``vx``, ``vy``,
        ``vz``.

        Args:
            name: Quantity name.
            use_degrees: Return angular quantities in degrees.

        Raises:
            KeyError: For an unknown name.
        """
        if name in _CARTESIAN_INDEX:
            return self.cartesian[_CARTESIAN_INDEX[name]]
        if name in ("sma", "ecc"):
            return getattr(self, name)
        if name in _ELEMENT_INDEX:
            value = self._keplerian()[_ELEMENT_INDEX[name]]
        elif name == "ea":
            oe = self._keplerian()
            value = jnp.mod(anomaly_true_to_eccentric(oe[5], oe[1]), 2.0 * jnp.pi)
        elif name == "ma":
            oe = self._keplerian()
            value = jnp.mod(anomaly_true_to_mean(oe[5], oe[1]), 2.0 * jnp.pi)
        elif name in _DERIVED:
            return getattr(self, name)
        else:
            raise KeyError(f"unknown orbital element '{name}'")
        if name in _ANGULAR_ELEMENTS:
            value = from_radians(value, use_degrees)
        return value

    # ──────────────────────────────────────────────
    # Comparison between states
    # ──────────────────────────────────────────────

    def relative_to(self, other: State) -> Array:
        """Cartesian difference ``self - other`` (6-vector).

        Raises:
            InvalidConfiguration: If the states differ in frame or epoch.
        """
        if self.frame != other.frame:
            raise InvalidConfiguration(f"cannot compare states in {self.frame} and {other.frame}")
        if abs(float(self.epoch - other.epoch)) > get_epoch_eq_tolerance():
            raise InvalidConfiguration(
                f"cannot compare states at {self.epoch} and {other.epoch}"
            )
        return self.cartesian - other.cartesian

    def distance_to(self, other: State) -> Array:
        """Position distance [m] to another state at the same epoch and frame."""
        return jnp.linalg.norm(self.relative_to(other)[:3])

    def __repr__(self) -> str:
        values = ", ".join(f"{float(v):.6g}" for v in self.vector)
        return f"State({self.representation.value} [{values}] @ {self.epoch} in {self.frame})"


def _inertial_counterpart(frame: Frame) -> Frame:
    return Frame("EME2000", frame.center, inertial=True)
