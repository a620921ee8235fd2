"""Two-way range and range-rate from a ground station.

A :class:`GroundStation` sits at a fixed geodetic location on the WGS84
ellipsoid. It observes a spacecraft when the spacecraft's elevation above
the local horizon is at or above the station's elevation mask. Range and
range-rate are computed in the Earth-fixed frame, where the station is at
rest:

.. math::

    \\rho = \\lVert \\mathbf{r} - \\mathbf{r}_{stn} \\rVert, \\qquad
    \\dot\\rho = \\frac{(\\mathbf{r} - \\mathbf{r}_{stn}) \\cdot \\mathbf{v}}{\\rho}

with :math:`\\mathbf{r}, \\mathbf{v}` the Earth-fixed spacecraft position and
velocity. Both observables are undefined (NaN range-rate and sensitivity)
for a spacecraft located exactly at the station.
"""

from __future__ import annotations

from dataclasses import dataclass

import jax
import jax.numpy as jnp
from jax import Array

from odjax.config import get_dtype
from odjax.coordinates import position_enz_to_azel, position_geodetic_to_ecef, rotation_ellipsoid_to_enz
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames import ECEF, EME2000, state_eci_to_ecef
from odjax.orbit_measurements._types import Measurement
from odjax.state import State


@dataclass(frozen=True)
class GroundStation:
    """A ranging station on the Earth's surface.

    Attributes:
        name: Station identifier.
        latitude: Geodetic latitude [deg].
        longitude: Geodetic longitude [deg].
        height: Height above the WGS84 ellipsoid [m].
        elevation_mask: Minimum elevation for visibility [deg].
        range_noise: Range standard deviation [m].
        range_rate_noise: Range-rate standard deviation [m/s].

    Examples:
        ```python
        from odjax.orbit_measurements import GroundStation
        station = GroundStation("kiruna", 67.857, 20.964, 402.0,
                                elevation_mask=5.0, range_noise=1.0,
                                range_rate_noise=1e-3)
        station.is_visible(state)
        ```
    """

    name: str
    latitude: float
    longitude: float
    height: float
    elevation_mask: float = 0.0
    range_noise: float = 0.0
    range_rate_noise: float = 0.0

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidConfiguration(f"{self.name}: latitude must be in [-90, 90] deg, got {self.latitude}")
        if self.range_noise < 0.0 or self.range_rate_noise < 0.0:
            raise InvalidConfiguration(f"{self.name}: noise standard deviations must be non-negative")

    @property
    def geodetic(self) -> Array:
        """``[lon, lat, height]`` in deg, deg, m."""
        return jnp.array([self.longitude, self.latitude, self.height], dtype=get_dtype())

    @property
    def position_ecef(self) -> Array:
        """Earth-fixed station position [m]."""
        return position_geodetic_to_ecef(self.geodetic, use_degrees=True)

    @property
    def noise(self) -> Array:
        """Range / range-rate noise covariance."""
        return jnp.diag(jnp.array([self.range_noise**2, self.range_rate_noise**2], dtype=get_dtype()))

    def _to_ecef(self, epc: Epoch, x_eci: Array) -> Array:
        return state_eci_to_ecef(epc, x_eci)

    def _ecef_state(self, state: State) -> Array:
        if state.frame == ECEF:
            return state.to_cartesian().vector
        return self._to_ecef(state.epoch, state.in_frame(EME2000).vector)

    def azel(self, state: State) -> Array:
        """Azimuth [deg], elevation [deg] and range [m] of *state*."""
        rho = self._ecef_state(state)[:3] - self.position_ecef
        enz = rotation_ellipsoid_to_enz(self.geodetic, use_degrees=True) @ rho
        return position_enz_to_azel(enz, use_degrees=True)

    def elevation(self, state: State) -> float:
        """Elevation of *state* above the local horizon [deg]."""
        return float(self.azel(state)[1])

    def is_visible(self, state: State) -> bool:
        """``True`` if *state* is at or above the elevation mask."""
        return self.elevation(state) >= self.elevation_mask

    def observables_ecef(self, x_ecef: Array) -> Array:
        """``[range, range_rate]`` [m, m/s] of an Earth-fixed Cartesian state."""
        rho = x_ecef[:3] - self.position_ecef
        rng = jnp.linalg.norm(rho)
        return jnp.array([rng, jnp.dot(rho, x_ecef[3:6]) / rng])

    def range_model(self, epc: Epoch):
        """Range / range-rate model ``h(x_eci)`` at *epc*."""

        def h(x_eci):
            return self.observables_ecef(self._to_ecef(epc, x_eci))

        return h

    def expected_range_range_rate(self, state: State) -> Array:
        """Noise-free ``[range, range_rate]`` of *state* [m, m/s]."""
        return self.observables_ecef(self._ecef_state(state))

    def measure(self, state: State, key: Array | None = None) -> Measurement:
        """Observe *state*.

        Args:
            state: True spacecraft state.
            key: ``jax.random`` key. With a key, zero-mean Gaussian noise of
                the station's standard deviations is added.

        Returns:
            Measurement: Range / range-rate observation, flagged not
            visible when the spacecraft is below the elevation mask.
        """
        z = self.expected_range_range_rate(state)
        if key is not None:
            sigma = jnp.array([self.range_noise, self.range_rate_noise], dtype=z.dtype)
            z = z + sigma * jax.random.normal(key, (2,), dtype=z.dtype)
        return Measurement(
            epoch=state.epoch,
            observer=self.name,
            observation=z,
            noise=self.noise,
            model=self.range_model(state.epoch),
            visible=self.is_visible(state),
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.latitude:.4f} deg, {self.longitude:.4f} deg, {self.height:.1f} m)"


def dss65_madrid(
    elevation_mask: float = 0.0,
    range_noise: float = 0.0,
    range_rate_noise: float = 0.0,
) -> GroundStation:
    """Deep Space Station 65, Madrid."""
    return GroundStation(
        "Madrid", 40.427_222, 4.250_556, 834.939, elevation_mask, range_noise, range_rate_noise
    )


def dss34_canberra(
    elevation_mask: float = 0.0,
    range_noise: float = 0.0,
    range_rate_noise: float = 0.0,
) -> GroundStation:
    """Deep Space Station 34, Canberra."""
    return GroundStation(
        "Canberra", -35.398_333, 148.981_944, 691.750, elevation_mask, range_noise, range_rate_noise
    )


def dss13_goldstone(
    elevation_mask: float = 0.0,
    range_noise: float = 0.0,
    range_rate_noise: float = 0.0,
) -> GroundStation:
    """Deep Space Station 13, Goldstone."""
    return GroundStation(
        "Goldstone", 35.247_164, 243.205, 1071.149, elevation_mask, range_noise, range_rate_noise
    )
