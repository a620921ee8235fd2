"""Tests for odjax.orbit_measurements.

Tests cover:
- Ground station validation, presets and geometry
- Range / range-rate observables, visibility and simulated noise
- GNSS fixes and their noise models
- The measurement container: shape checks, expected values and sensitivity
"""

import math

import jax
import jax.numpy as jnp
import pytest

from odjax.constants import R_EARTH
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames import ECEF, EME2000
from odjax.orbit_measurements import (
    GroundStation,
    Measurement,
    dss13_goldstone,
    dss34_canberra,
    dss65_madrid,
    gnss_measurement,
    gnss_measurement_noise,
    gnss_position_fix,
    gnss_position_velocity_fix,
    gnss_position_velocity_noise,
)
from odjax.state import State

_RANGE_TOL = 1e-6    # metres
_RATE_TOL = 1e-6     # m/s

_EPC = Epoch(2018, 2, 27)
_LAT, _LON = 40.0, -3.0


def _station(**kwargs):
    props = dict(elevation_mask=10.0, range_noise=1.0, range_rate_noise=1e-3)
    props.update(kwargs)
    return GroundStation("test", _LAT, _LON, 650.0, **props)


def _up():
    lat, lon = math.radians(_LAT), math.radians(_LON)
    return jnp.array([math.cos(lat) * math.cos(lon), math.cos(lat) * math.sin(lon), math.sin(lat)])


def _overhead(height=500e3, climb=0.0):
    """Earth-fixed state *height* above the station, moving along the local vertical."""
    station = _station()
    r = station.position_ecef + height * _up()
    v = climb * _up()
    return State(jnp.concatenate([r, v]), _EPC, ECEF)


def _leo():
    return State.from_keplerian(7000e3, 0.001, 51.6, 20.0, 30.0, 40.0, _EPC, use_degrees=True)


# ──────────────────────────────────────────────
# Ground stations
# ──────────────────────────────────────────────


class TestGroundStation:
    def test_invalid_latitude(self):
        with pytest.raises(InvalidConfiguration, match="latitude"):
            GroundStation("bad", 91.0, 0.0, 0.0)

    def test_negative_noise(self):
        with pytest.raises(InvalidConfiguration, match="non-negative"):
            GroundStation("bad", 0.0, 0.0, 0.0, range_noise=-1.0)

    def test_noise_covariance(self):
        assert jnp.allclose(_station().noise, jnp.diag(jnp.array([1.0, 1e-6])))

    @pytest.mark.parametrize("preset", [dss65_madrid, dss34_canberra, dss13_goldstone])
    def test_presets_on_surface(self, preset):
        station = preset(elevation_mask=5.0)
        assert station.elevation_mask == 5.0
        radius = float(jnp.linalg.norm(station.position_ecef))
        assert abs(radius - R_EARTH) < 30e3

    def test_preset_names(self):
        assert dss65_madrid().name == "Madrid"
        assert dss34_canberra().latitude < 0.0

    def test_height_in_metres(self):
        low = _station()
        high = GroundStation("high", _LAT, _LON, 1650.0)
        d = jnp.linalg.norm(high.position_ecef - low.position_ecef)
        assert float(d) == pytest.approx(1000.0, abs=1e-6)


class TestStationGeometry:
    def test_overhead_elevation(self):
        assert _station().elevation(_overhead()) == pytest.approx(90.0, abs=1e-6)

    def test_overhead_range(self):
        z = _station().expected_range_range_rate(_overhead(500e3))
        assert float(z[0]) == pytest.approx(500e3, abs=_RANGE_TOL)
        assert float(z[1]) == pytest.approx(0.0, abs=_RATE_TOL)

    def test_range_rate_sign(self):
        z = _station().expected_range_range_rate(_overhead(500e3, climb=100.0))
        assert float(z[1]) == pytest.approx(100.0, abs=_RATE_TOL)
        z = _station().expected_range_range_rate(_overhead(500e3, climb=-100.0))
        assert float(z[1]) == pytest.approx(-100.0, abs=_RATE_TOL)

    def test_inertial_and_fixed_states_agree(self):
        station = _station()
        state = _overhead(800e3, climb=10.0)
        azel_ecef = station.azel(state)
        azel_eci = station.azel(state.in_frame(EME2000))
        assert float(azel_eci[2]) == pytest.approx(float(azel_ecef[2]), abs=_RANGE_TOL)

    def test_below_horizon_not_visible(self):
        station = _station()
        antipode = State(
            jnp.concatenate([-2.0 * station.position_ecef, jnp.zeros(3)]), _EPC, ECEF
        )
        assert station.elevation(antipode) < 0.0
        assert not station.is_visible(antipode)

    def test_elevation_mask(self):
        lat, lon = math.radians(_LAT), math.radians(_LON)
        north = jnp.array([-math.sin(lat) * math.cos(lon), -math.sin(lat) * math.sin(lon), math.cos(lat)])
        r = _station().position_ecef + 1000e3 * north + 100e3 * _up()
        state = State(jnp.concatenate([r, jnp.zeros(3)]), _EPC, ECEF)
        assert _station().elevation(state) == pytest.approx(math.degrees(math.atan(0.1)), abs=1e-6)
        assert not _station(elevation_mask=10.0).is_visible(state)
        assert _station(elevation_mask=0.0).is_visible(state)


class TestStationMeasurement:
    def test_noise_free(self):
        station = _station()
        state = _overhead(600e3, climb=25.0)
        meas = station.measure(state)
        assert meas.visible
        assert meas.observer == "test"
        assert meas.epoch == _EPC
        assert jnp.allclose(meas.observation, station.expected_range_range_rate(state))

    def test_noisy(self):
        station = _station()
        state = _overhead(600e3, climb=25.0)
        exact = station.measure(state).observation
        noisy = station.measure(state, key=jax.random.PRNGKey(7)).observation
        diff = noisy - exact
        assert not jnp.array_equal(noisy, exact)
        assert abs(float(diff[0])) < 6.0 * station.range_noise
        assert abs(float(diff[1])) < 6.0 * station.range_rate_noise

    def test_same_key_same_noise(self):
        station = _station()
        state = _overhead()
        a = station.measure(state, key=jax.random.PRNGKey(3)).observation
        b = station.measure(state, key=jax.random.PRNGKey(3)).observation
        assert jnp.array_equal(a, b)

    def test_invisible_flagged(self):
        station = _station()
        state = State(jnp.concatenate([-2.0 * station.position_ecef, jnp.zeros(3)]), _EPC, ECEF)
        assert not station.measure(state).visible

    def test_model_reproduces_observation(self):
        station = _station()
        state = _overhead(700e3, climb=-3.0)
        meas = station.measure(state)
        assert jnp.allclose(meas.expected(state), meas.observation, atol=_RANGE_TOL)

    def test_spacecraft_at_station(self):
        station = _station()
        state = _overhead(0.0, climb=10.0)
        z = station.expected_range_range_rate(state)
        assert float(z[0]) == 0.0
        assert bool(jnp.isnan(z[1]))
        H = jax.jacfwd(station.observables_ecef)(state.vector)
        assert bool(jnp.all(jnp.isnan(H[0, :3])))

    def test_range_sensitivity_is_unit_vector(self):
        state = _overhead(700e3, climb=-3.0)
        H = _station().measure(state).sensitivity(state)
        assert H.shape == (2, 6)
        assert float(jnp.linalg.norm(H[0, :3])) == pytest.approx(1.0, abs=1e-9)
        assert jnp.allclose(H[0, 3:], 0.0)


# ──────────────────────────────────────────────
# GNSS
# ──────────────────────────────────────────────


class TestGnss:
    def test_noise_models(self):
        assert jnp.allclose(gnss_measurement_noise(5.0), 25.0 * jnp.eye(3))
        noise = gnss_position_velocity_noise(5.0, 0.1)
        assert jnp.allclose(jnp.diag(noise), jnp.array([25.0] * 3 + [0.01] * 3))

    def test_position_fix(self):
        state = _leo()
        meas = gnss_position_fix(state, 5.0)
        assert meas.size == 3
        assert meas.observer == "gnss"
        assert jnp.allclose(meas.observation, state.to_cartesian().vector[:3])

    def test_position_fix_from_fixed_frame(self):
        state = _leo()
        meas = gnss_position_fix(state.in_frame(ECEF), 5.0)
        assert jnp.allclose(meas.observation, state.to_cartesian().vector[:3], atol=1e-6)

    def test_position_velocity_fix(self):
        state = _leo()
        meas = gnss_position_velocity_fix(state, 5.0, 0.05, receiver="rx")
        assert meas.size == 6
        assert meas.observer == "rx"
        assert jnp.allclose(meas.observation, state.to_cartesian().vector)

    def test_noisy_fix(self):
        state = _leo()
        meas = gnss_position_fix(state, 5.0, key=jax.random.PRNGKey(0))
        diff = meas.observation - state.to_cartesian().vector[:3]
        assert float(jnp.max(jnp.abs(diff))) < 30.0
        assert float(jnp.max(jnp.abs(diff))) > 0.0

    def test_position_sensitivity(self):
        state = _leo()
        H = gnss_position_fix(state, 5.0).sensitivity(state)
        assert jnp.array_equal(H, jnp.eye(3, 6))

    def test_recorded_fix(self):
        meas = gnss_measurement(_EPC, [7000e3, 0.0, 0.0], 3.0)
        assert meas.size == 3
        assert jnp.allclose(meas.noise, 9.0 * jnp.eye(3))

    def test_recorded_fix_requires_velocity_sigma(self):
        with pytest.raises(InvalidConfiguration, match="sigma_vel"):
            gnss_measurement(_EPC, [7000e3, 0.0, 0.0, 0.0, 7500.0, 0.0], 3.0)

    def test_recorded_position_velocity_fix(self):
        meas = gnss_measurement(_EPC, [7000e3, 0.0, 0.0, 0.0, 7500.0, 0.0], 3.0, 0.01)
        assert meas.size == 6


# ──────────────────────────────────────────────
# Measurement container
# ──────────────────────────────────────────────


class TestMeasurement:
    def test_noise_shape_checked(self):
        with pytest.raises(InvalidConfiguration, match="noise covariance"):
            Measurement(_EPC, "x", jnp.array([1.0, 2.0]), jnp.eye(3), lambda x: x[:2])

    def test_scalar_observation(self):
        meas = Measurement(_EPC, "x", 1.0, 4.0, lambda x: x[:1])
        assert meas.size == 1
        assert meas.noise.shape == (1, 1)

    def test_sensitivity_matches_autodiff(self):
        def model(x):
            return jnp.array([jnp.dot(x[:3], x[3:]), x[0] ** 2])

        state = _leo()
        meas = Measurement(_EPC, "x", jnp.zeros(2), jnp.eye(2), model)
        x = state.to_cartesian().vector
        assert jnp.allclose(meas.sensitivity(state), jax.jacfwd(model)(x))

    def test_visible_by_default(self):
        meas = Measurement(_EPC, "x", [0.0], [[1.0]], lambda x: x[:1])
        assert meas.visible
        assert "x" in repr(meas)
