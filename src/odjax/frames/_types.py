"""Reference frame descriptors."""

from __future__ import annotations

from dataclasses import dataclass

from odjax.bodies import DEFAULT_BODIES, BodyRegistry, CelestialBody


@dataclass(frozen=True)
class Frame:
    """A reference frame: a name, a central body, and whether it is inertial.

    Frames compare by value, so two frames built from the same registry
    entry are interchangeable.

    Attributes:
        name: Frame identifier, e.g. ``"EME2000"``.
        center: Body at the frame origin. Its ``gm`` is the default
            gravitational parameter for element conversions in this frame.
        inertial: ``True`` for non-rotating frames.
    """

    name: str
    center: CelestialBody
    inertial: bool = True

    @property
    def gm(self) -> float:
        """Gravitational parameter of the central body [m^3/s^2]."""
        return self.center.gm

    def __str__(self) -> str:
        return f"{self.center.name} {self.name}"


def eme2000(bodies: BodyRegistry = DEFAULT_BODIES, center: str = "Earth") -> Frame:
    """Mean equator and equinox of J2000 centred on *center*."""
    return Frame("EME2000", bodies.resolve(center), inertial=True)


def itrf(bodies: BodyRegistry = DEFAULT_BODIES) -> Frame:
    """Earth-fixed rotating frame (GMST rotation model)."""
    return Frame("ECEF", bodies.resolve("Earth"), inertial=False)


EME2000 = eme2000()
ECEF = itrf()
