"""Orbit dynamics: force terms and their composition.

Provides the acceleration models and the :class:`ForceModel` that composes
them into an integrable dynamics function:

- **Gravity**: Point-mass gravity of the central body and of third bodies
- **Ephemerides**: Low-precision Sun and Moon positions (Montenbruck & Gill)
- **Density**: Harris-Priester and exponential atmosphere models
- **Drag**: Atmospheric drag with a co-rotating atmosphere
- **SRP**: Solar radiation pressure and eclipse shadow models
- **Relativity**: Schwarzschild correction
- **Contributors**: The closed set of force terms a model can hold
- **ForceModel / Dynamics**: Composition, Jacobians and the variational equations
"""

from .contributors import (
    Contributor,
    Drag,
    ForceContext,
    PointMass,
    RelativisticCorrection,
    SolarRadiationPressure,
)
from .density import density_exponential, density_harris_priester, geodetic_height
from .drag import accel_drag
from .ephemerides import EPHEMERIS_BODIES, body_position, moon_position, sun_position
from .force_model import Dynamics, ForceModel
from .gravity import accel_point_mass, jacobian_point_mass
from .relativity import accel_relativity
from .srp import accel_srp, eclipse_conical, eclipse_cylindrical

__all__ = [
    # Ephemerides
    "sun_position",
    "moon_position",
    "body_position",
    "EPHEMERIS_BODIES",
    # Gravity
    "accel_point_mass",
    "jacobian_point_mass",
    # Density
    "density_harris_priester",
    "density_exponential",
    "geodetic_height",
    # Drag
    "accel_drag",
    # SRP
    "accel_srp",
    "eclipse_conical",
    "eclipse_cylindrical",
    # Relativity
    "accel_relativity",
    # Contributors
    "Contributor",
    "ForceContext",
    "PointMass",
    "Drag",
    "SolarRadiationPressure",
    "RelativisticCorrection",
    # Composition
    "ForceModel",
    "Dynamics",
]
