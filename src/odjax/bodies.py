"""Celestial body constants and the registry that force models and frames draw on.

A :class:`BodyRegistry` is an immutable name -> :class:`CelestialBody`
mapping.  It is passed explicitly to :class:`~odjax.orbit_dynamics.ForceModel`
and the frame helpers rather than looked up from global state, so a run can
substitute its own constants without affecting any other run.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .constants import GM_EARTH, GM_MOON, GM_SUN, OMEGA_EARTH, R_EARTH, R_MOON, R_SUN, WGS84_f
from .errors import InvalidConfiguration


@dataclass(frozen=True)
class CelestialBody:
    """Physical constants of a gravitating body.

    Attributes:
        name: Registry key, e.g. ``"Earth"``.
        gm: Gravitational parameter [m^3/s^2]. Must be positive.
        radius: Equatorial radius [m].
        rotation_rate: Sidereal rotation rate [rad/s].
        flattening: Ellipsoidal flattening.
    """

    name: str
    gm: float
    radius: float
    rotation_rate: float = 0.0
    flattening: float = 0.0

    def __post_init__(self):
        if not self.gm > 0.0:
            raise InvalidConfiguration(
                f"gravitational parameter of {self.name} must be positive, got {self.gm}"
            )
        if self.radius < 0.0:
            raise InvalidConfiguration(
                f"radius of {self.name} must be non-negative, got {self.radius}"
            )


class BodyRegistry(Mapping):
    """Immutable mapping of body name to :class:`CelestialBody`.

    Args:
        bodies: Bodies to register. Names must be unique.

    Examples:
        ```python
        from odjax.bodies import DEFAULT_BODIES
        DEFAULT_BODIES["Earth"].gm
        ```
    """

    def __init__(self, bodies):
        table = {}
        for body in bodies:
            if body.name in table:
                raise InvalidConfiguration(f"duplicate body '{body.name}' in registry")
            table[body.name] = body
        self._bodies = MappingProxyType(table)

    def __getitem__(self, name: str) -> CelestialBody:
        return self._bodies[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bodies)

    def __len__(self) -> int:
        return len(self._bodies)

    def __repr__(self) -> str:
        return f"BodyRegistry({list(self._bodies)})"

    def resolve(self, body: str | CelestialBody) -> CelestialBody:
        """Return the registered body for a name or body instance.

        Raises:
            InvalidConfiguration: If the body is not registered.
        """
        name = body.name if isinstance(body, CelestialBody) else body
        try:
            return self._bodies[name]
        except KeyError:
            raise InvalidConfiguration(
                f"unknown body '{name}'; registered bodies: {', '.join(self._bodies)}"
            ) from None

    def with_body(self, body: CelestialBody) -> BodyRegistry:
        """Return a new registry with *body* added or replaced."""
        table = dict(self._bodies)
        table[body.name] = body
        return BodyRegistry(table.values())


EARTH = CelestialBody("Earth", GM_EARTH, R_EARTH, OMEGA_EARTH, WGS84_f)
MOON = CelestialBody("Moon", GM_MOON, R_MOON)
SUN = CelestialBody("Sun", GM_SUN, R_SUN)

DEFAULT_BODIES = BodyRegistry((EARTH, MOON, SUN))
