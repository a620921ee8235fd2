"""Orbital quantities and anomaly conversions.

All functions take the central body's gravitational parameter explicitly
and are JAX-traceable.
"""

from .keplerian import (
    anomaly_eccentric_to_mean,
    anomaly_eccentric_to_true,
    anomaly_mean_to_eccentric,
    anomaly_mean_to_true,
    anomaly_true_to_eccentric,
    anomaly_true_to_mean,
    angular_momentum,
    apoapsis_distance,
    mean_motion,
    orbital_period,
    orbital_period_from_state,
    periapsis_distance,
    semimajor_axis,
    semimajor_axis_from_orbital_period,
    specific_energy,
)

__all__ = [
    "orbital_period",
    "orbital_period_from_state",
    "semimajor_axis",
    "semimajor_axis_from_orbital_period",
    "mean_motion",
    "specific_energy",
    "angular_momentum",
    "periapsis_distance",
    "apoapsis_distance",
    "anomaly_eccentric_to_mean",
    "anomaly_mean_to_eccentric",
    "anomaly_true_to_eccentric",
    "anomaly_eccentric_to_true",
    "anomaly_true_to_mean",
    "anomaly_mean_to_true",
]
