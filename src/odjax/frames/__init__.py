"""Reference frames and frame transformations.

- **Frame descriptors**: :class:`Frame` with the predefined ``EME2000``
  (Earth-centred inertial) and ``ECEF`` (Earth-fixed) frames.
- **Elementary rotations**: ``Rx``, ``Ry``, ``Rz``.
- **ECI-ECEF**: GMST-only Earth rotation model.
"""

from ._types import ECEF, EME2000, Frame, eme2000, itrf
from .eci_ecef import (
    earth_rotation,
    rotation_ecef_to_eci,
    rotation_eci_to_ecef,
    state_ecef_to_eci,
    state_eci_to_ecef,
    transform_state,
)
from .rotations import Rx, Ry, Rz

__all__ = [
    "Frame",
    "EME2000",
    "ECEF",
    "eme2000",
    "itrf",
    "Rx",
    "Ry",
    "Rz",
    "earth_rotation",
    "rotation_eci_to_ecef",
    "rotation_ecef_to_eci",
    "state_eci_to_ecef",
    "state_ecef_to_eci",
    "transform_state",
]
