"""
odjax is a spacecraft trajectory propagation and orbit determination library implemented in JAX.
"""

from .constants import (
    DEG2RAD,
    RAD2DEG,
    AS2RAD,
    JD_MJD_OFFSET,
    MJD2000,
    SECONDS_PER_DAY,
    C_LIGHT,
    AU,
    R_EARTH,
    WGS84_a,
    WGS84_f,
    GM_EARTH,
    OMEGA_EARTH,
    GM_SUN,
    R_SUN,
    P_SUN,
    GM_MOON,
    R_MOON,
)

from .config import (
    set_dtype,
    get_dtype,
    set_unvalidated,
    unvalidated_enabled,
)

from .errors import (
    OdjaxError,
    InvalidConfiguration,
    PropagationError,
    AccuracyViolation,
    MeasurementSequencingError,
    SingularElementConversion,
    MeasurementOutlier,
)

from .time import TimeSystem
from .epoch import Epoch
from .bodies import CelestialBody, BodyRegistry, DEFAULT_BODIES, EARTH, MOON, SUN

from .frames import (
    Frame,
    EME2000,
    ECEF,
    state_eci_to_ecef,
    state_ecef_to_eci,
)

from .coordinates import (
    cartesian_to_keplerian,
    keplerian_to_cartesian,
    position_geodetic_to_ecef,
    position_ecef_to_geodetic,
)

from .state import State, Representation
from .spacecraft import Spacecraft, SpacecraftParams

from .orbit_dynamics import (
    ForceModel,
    Dynamics,
    PointMass,
    Drag,
    SolarRadiationPressure,
    RelativisticCorrection,
)

from .integrators import (
    Integrator,
    IntegratorConfig,
    StepResult,
    StepState,
)

from .events import Event, EventCrossing

from .propagation import (
    Propagator,
    PropagationResult,
    SynchronizedPropagator,
    Trajectory,
    TrajectorySample,
    propagate_independent,
)

from .orbit_measurements import (
    Measurement,
    GroundStation,
    dss65_madrid,
    dss34_canberra,
    dss13_goldstone,
)

from .estimation import (
    KalmanConfig,
    KalmanFilter,
    Estimate,
)

__all__ = [
    # Constants
    "DEG2RAD",
    "RAD2DEG",
    "AS2RAD",
    "JD_MJD_OFFSET",
    "MJD2000",
    "SECONDS_PER_DAY",
    "C_LIGHT",
    "AU",
    "R_EARTH",
    "WGS84_a",
    "WGS84_f",
    "GM_EARTH",
    "OMEGA_EARTH",
    "GM_SUN",
    "R_SUN",
    "P_SUN",
    "GM_MOON",
    "R_MOON",
    # Config
    "set_dtype",
    "get_dtype",
    "set_unvalidated",
    "unvalidated_enabled",
    # Errors
    "OdjaxError",
    "InvalidConfiguration",
    "PropagationError",
    "AccuracyViolation",
    "MeasurementSequencingError",
    "SingularElementConversion",
    "MeasurementOutlier",
    # Time
    "TimeSystem",
    "Epoch",
    # Bodies
    "CelestialBody",
    "BodyRegistry",
    "DEFAULT_BODIES",
    "EARTH",
    "MOON",
    "SUN",
    # Frames
    "Frame",
    "EME2000",
    "ECEF",
    "state_eci_to_ecef",
    "state_ecef_to_eci",
    # Coordinates
    "cartesian_to_keplerian",
    "keplerian_to_cartesian",
    "position_geodetic_to_ecef",
    "position_ecef_to_geodetic",
    # State
    "State",
    "Representation",
    "Spacecraft",
    "SpacecraftParams",
    # Orbit Dynamics
    "ForceModel",
    "Dynamics",
    "PointMass",
    "Drag",
    "SolarRadiationPressure",
    "RelativisticCorrection",
    # Integrators
    "Integrator",
    "IntegratorConfig",
    "StepResult",
    "StepState",
    # Events
    "Event",
    "EventCrossing",
    # Propagation
    "Propagator",
    "PropagationResult",
    "SynchronizedPropagator",
    "Trajectory",
    "TrajectorySample",
    "propagate_independent",
    # Measurements
    "Measurement",
    "GroundStation",
    "dss65_madrid",
    "dss34_canberra",
    "dss13_goldstone",
    # Estimation
    "KalmanConfig",
    "KalmanFilter",
    "Estimate",
]
