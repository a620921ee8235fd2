"""Orbit measurement models for state estimation.

Each sensor type is implemented in its own sub-module and produces
:class:`Measurement` objects for :class:`~odjax.estimation.KalmanFilter`.

Available sensor models:

- :class:`GroundStation` -- two-way range and range-rate, with the
  :func:`dss65_madrid`, :func:`dss34_canberra` and :func:`dss13_goldstone`
  presets
- :func:`gnss_position_measurement` -- GNSS position-only measurement
- :func:`gnss_measurement_noise` -- GNSS position-only noise covariance
- :func:`gnss_position_velocity_measurement` -- GNSS position-velocity measurement
- :func:`gnss_position_velocity_noise` -- GNSS position-velocity noise covariance
- :func:`gnss_position_fix`, :func:`gnss_position_velocity_fix`,
  :func:`gnss_measurement` -- GNSS fixes wrapped as measurements

The bare measurement functions are also compatible with ``ekf_update``
from :mod:`odjax.estimation`.
"""

from odjax.orbit_measurements._types import Measurement
from odjax.orbit_measurements.gnss import (
    gnss_measurement,
    gnss_measurement_noise,
    gnss_position_fix,
    gnss_position_measurement,
    gnss_position_velocity_fix,
    gnss_position_velocity_measurement,
    gnss_position_velocity_noise,
)
from odjax.orbit_measurements.ground_station import (
    GroundStation,
    dss13_goldstone,
    dss34_canberra,
    dss65_madrid,
)

__all__ = [
    "Measurement",
    "GroundStation",
    "dss65_madrid",
    "dss34_canberra",
    "dss13_goldstone",
    "gnss_position_measurement",
    "gnss_measurement_noise",
    "gnss_position_velocity_measurement",
    "gnss_position_velocity_noise",
    "gnss_position_fix",
    "gnss_position_velocity_fix",
    "gnss_measurement",
]
