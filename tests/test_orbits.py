"""Tests for odjax.orbits."""

import math

import jax
import jax.numpy as jnp
import pytest

from odjax.constants import GM_EARTH, R_EARTH
from odjax.orbits import (
    angular_momentum,
    anomaly_eccentric_to_mean,
    anomaly_eccentric_to_true,
    anomaly_mean_to_eccentric,
    anomaly_mean_to_true,
    anomaly_true_to_eccentric,
    anomaly_true_to_mean,
    apoapsis_distance,
    mean_motion,
    orbital_period,
    orbital_period_from_state,
    periapsis_distance,
    semimajor_axis,
    semimajor_axis_from_orbital_period,
    specific_energy,
)

_PERIOD_TOL = 1e-6       # seconds
_ANOMALY_TOL = 1e-10     # radians

_SMA_500 = R_EARTH + 500e3


def _wrapped(a, b):
    return abs(math.remainder(float(a) - float(b), 2.0 * math.pi))


# ──────────────────────────────────────────────
# Orbit size and energy
# ──────────────────────────────────────────────


class TestOrbitalPeriod:
    def test_orbital_period_500km(self):
        T = orbital_period(_SMA_500)
        expected = 2.0 * math.pi * math.sqrt(_SMA_500**3 / GM_EARTH)
        assert float(T) == pytest.approx(expected, abs=_PERIOD_TOL)

    def test_from_circular_state(self):
        v = math.sqrt(GM_EARTH / _SMA_500)
        state = jnp.array([_SMA_500, 0.0, 0.0, 0.0, v, 0.0])
        assert float(orbital_period_from_state(state)) == pytest.approx(
            float(orbital_period(_SMA_500)), rel=1e-12
        )

    def test_period_roundtrip(self):
        a = semimajor_axis_from_orbital_period(orbital_period(_SMA_500))
        assert float(a) == pytest.approx(_SMA_500, rel=1e-12)

    def test_mean_motion_roundtrip(self):
        n = mean_motion(_SMA_500, use_degrees=True)
        assert float(semimajor_axis(n, use_degrees=True)) == pytest.approx(_SMA_500, rel=1e-12)

    def test_specific_energy(self):
        assert float(specific_energy(_SMA_500)) == pytest.approx(-GM_EARTH / (2.0 * _SMA_500))

    def test_angular_momentum_circular(self):
        h = angular_momentum(_SMA_500, 0.0)
        assert float(h) == pytest.approx(math.sqrt(GM_EARTH * _SMA_500))

    def test_apsides(self):
        assert float(periapsis_distance(_SMA_500, 0.1)) == pytest.approx(0.9 * _SMA_500)
        assert float(apoapsis_distance(_SMA_500, 0.1)) == pytest.approx(1.1 * _SMA_500)


# ──────────────────────────────────────────────
# Anomalies
# ──────────────────────────────────────────────


class TestAnomalies:
    def test_kepler_equation(self):
        E = anomaly_mean_to_eccentric(1.0, 0.3)
        assert float(E - 0.3 * jnp.sin(E)) == pytest.approx(1.0, abs=_ANOMALY_TOL)

    def test_high_eccentricity(self):
        E = anomaly_mean_to_eccentric(0.2, 0.95)
        assert float(anomaly_eccentric_to_mean(E, 0.95)) == pytest.approx(0.2, abs=_ANOMALY_TOL)

    def test_circular_identity(self):
        assert float(anomaly_true_to_mean(90.0, 0.0, use_degrees=True)) == pytest.approx(90.0)

    def test_degrees(self):
        rad = anomaly_mean_to_true(1.0, 0.2)
        deg = anomaly_mean_to_true(math.degrees(1.0), 0.2, use_degrees=True)
        assert float(deg) == pytest.approx(math.degrees(float(rad)))

    @pytest.mark.parametrize("e", [0.0, 0.1, 0.7])
    @pytest.mark.parametrize("theta", [0.5, 2.0, 4.0])
    def test_true_mean_roundtrip(self, e, theta):
        back = anomaly_mean_to_true(anomaly_true_to_mean(theta, e), e)
        assert _wrapped(back, theta) < _ANOMALY_TOL

    @pytest.mark.parametrize("e", [0.1, 0.7])
    def test_true_eccentric_roundtrip(self, e):
        back = anomaly_eccentric_to_true(anomaly_true_to_eccentric(2.5, e), e)
        assert _wrapped(back, 2.5) < _ANOMALY_TOL


class TestJAXCompatibility:
    def test_jit(self):
        assert float(jax.jit(orbital_period)(_SMA_500)) == pytest.approx(float(orbital_period(_SMA_500)))

    def test_vmap(self):
        M = jnp.array([0.1, 1.0, 3.0])
        E = jax.vmap(lambda m: anomaly_mean_to_eccentric(m, 0.2))(M)
        assert E.shape == (3,)

    def test_grad_kepler(self):
        # dE/dM = 1 / (1 - e cos E)
        e = 0.2
        dE = jax.grad(lambda m: anomaly_mean_to_eccentric(m, e))(1.0)
        E = anomaly_mean_to_eccentric(1.0, e)
        assert float(dE) == pytest.approx(float(1.0 / (1.0 - e * jnp.cos(E))), rel=1e-8)
