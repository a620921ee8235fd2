"""Coordinate transformations.

- **Keplerian**: orbital elements ``[a, e, i, RAAN, AOP, TA]`` <-> inertial
  Cartesian, with explicit handling of circular and equatorial orbits
- **Geodetic**: WGS84 ellipsoid ``[lon, lat, alt]`` <-> ECEF
- **Topocentric (ENZ)**: East-North-Zenith local frame for ground
  observers
"""

from .geodetic import (
    position_ecef_to_geodetic,
    position_geodetic_to_ecef,
)
from .keplerian import (
    Degeneracy,
    cartesian_to_keplerian,
    keplerian_degeneracy,
    keplerian_to_cartesian,
)
from .topocentric import (
    position_enz_to_azel,
    rotation_ellipsoid_to_enz,
)

__all__ = [
    "Degeneracy",
    "cartesian_to_keplerian",
    "keplerian_to_cartesian",
    "keplerian_degeneracy",
    "position_geodetic_to_ecef",
    "position_ecef_to_geodetic",
    "rotation_ellipsoid_to_enz",
    "position_enz_to_azel",
]
