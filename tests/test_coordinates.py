"""Tests for odjax.coordinates.

Tests cover:
- Keplerian <-> Cartesian conversions, including retrograde and hyperbolic orbits
- Fallback conventions and warnings for circular and equatorial orbits
- Rejection of invalid element sets and gravitational parameters
- Geodetic <-> ECEF and topocentric (ENZ / az-el) conversions
"""

import warnings

import jax.numpy as jnp
import pytest

from odjax.constants import GM_EARTH, GM_SUN, R_EARTH, WGS84_a
from odjax.coordinates import (
    Degeneracy,
    cartesian_to_keplerian,
    keplerian_degeneracy,
    keplerian_to_cartesian,
    position_ecef_to_geodetic,
    position_enz_to_azel,
    position_geodetic_to_ecef,
    rotation_ellipsoid_to_enz,
)
from odjax.errors import InvalidConfiguration, SingularElementConversion

_POS_TOL = 1e-4        # metres
_VEL_TOL = 1e-7        # m/s
_ANGLE_TOL = 1e-9      # radians
_DEG_TOL = 1e-7        # degrees
_ALT_TOL = 1e-6        # metres
_ROUND_TRIP_RTOL = 1e-9

_SMA_LEO = R_EARTH + 500e3


def _circular_equatorial(sma=_SMA_LEO):
    v = jnp.sqrt(GM_EARTH / sma)
    return jnp.array([sma, 0.0, 0.0, 0.0, v, 0.0])


# ──────────────────────────────────────────────
# Keplerian -> Cartesian
# ──────────────────────────────────────────────


class TestKeplerianToCartesian:
    def test_circular_equatorial_position(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.0, 0.0, 0.0, 0.0, 0.0])
        assert jnp.allclose(x, _circular_equatorial(), atol=_POS_TOL)

    def test_periapsis_radius(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.1, 0.5, 1.0, 2.0, 0.0])
        assert float(jnp.linalg.norm(x[:3])) == pytest.approx(_SMA_LEO * 0.9, abs=_POS_TOL)

    def test_degrees_match_radians(self):
        deg = keplerian_to_cartesian([_SMA_LEO, 0.01, 97.5, 15.0, 30.0, 45.0], use_degrees=True)
        rad = keplerian_to_cartesian(
            [_SMA_LEO, 0.01, *jnp.deg2rad(jnp.array([97.5, 15.0, 30.0, 45.0]))]
        )
        assert jnp.allclose(deg, rad, atol=_POS_TOL)

    def test_vis_viva(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.2, 0.3, 0.4, 0.5, 1.2])
        r = jnp.linalg.norm(x[:3])
        v = jnp.linalg.norm(x[3:])
        assert float(v**2) == pytest.approx(float(GM_EARTH * (2.0 / r - 1.0 / _SMA_LEO)), rel=1e-12)

    def test_other_central_body(self):
        x = keplerian_to_cartesian([1.5e11, 0.0, 0.0, 0.0, 0.0, 0.0], GM_SUN)
        assert float(x[4]) == pytest.approx(float(jnp.sqrt(GM_SUN / 1.5e11)), rel=1e-12)

    def test_parabolic_rejected(self):
        with pytest.raises(InvalidConfiguration, match="parabolic"):
            keplerian_to_cartesian([_SMA_LEO, 1.0, 0.0, 0.0, 0.0, 0.0])

    def test_inconsistent_hyperbola_rejected(self):
        with pytest.raises(InvalidConfiguration, match="semi-latus"):
            keplerian_to_cartesian([_SMA_LEO, 1.5, 0.0, 0.0, 0.0, 0.0])

    def test_beyond_asymptote_rejected(self):
        with pytest.raises(InvalidConfiguration, match="asymptote"):
            keplerian_to_cartesian([-_SMA_LEO, 1.5, 0.0, 0.0, 0.0, jnp.pi])

    @pytest.mark.parametrize("gm", [0.0, -1.0])
    def test_non_positive_gm_rejected(self, gm):
        with pytest.raises(InvalidConfiguration, match="gravitational parameter"):
            keplerian_to_cartesian([_SMA_LEO, 0.0, 0.0, 0.0, 0.0, 0.0], gm)


# ──────────────────────────────────────────────
# Cartesian -> Keplerian
# ──────────────────────────────────────────────


class TestCartesianToKeplerian:
    @pytest.mark.parametrize(
        "elements",
        [
            [_SMA_LEO, 0.01, 0.9, 0.3, 1.1, 2.0],
            [_SMA_LEO, 0.3, 2.5, 4.0, 5.0, 0.2],        # retrograde
            [26560e3, 0.7, 1.1, 6.0, 4.7, 3.0],        # Molniya-like
            [-20000e3, 1.8, 0.7, 1.0, 2.0, 0.5],       # hyperbolic
        ],
    )
    def test_recovers_elements(self, elements):
        x = keplerian_to_cartesian(elements)
        with warnings.catch_warnings():
            warnings.simplefilter("error", SingularElementConversion)
            oe = cartesian_to_keplerian(x)
        assert float(oe[0]) == pytest.approx(elements[0], rel=1e-10)
        assert float(oe[1]) == pytest.approx(elements[1], abs=1e-12)
        assert jnp.allclose(oe[2:], jnp.array(elements[2:]), atol=_ANGLE_TOL)

    @pytest.mark.parametrize("ecc", [1e-6, 1e-3, 0.5, 0.9])
    @pytest.mark.parametrize("inc", [1e-6, 0.5, jnp.pi / 2.0, jnp.pi - 1e-6])
    def test_round_trip_relative_precision(self, ecc, inc):
        elements = jnp.array([7000e3, ecc, inc, 1.2, 2.3, 0.7])
        oe = cartesian_to_keplerian(keplerian_to_cartesian(elements))
        assert jnp.allclose(oe, elements, rtol=_ROUND_TRIP_RTOL, atol=0.0)

    def test_degrees_output(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.01, 45.0, 10.0, 20.0, 30.0], use_degrees=True)
        oe = cartesian_to_keplerian(x, use_degrees=True)
        assert jnp.allclose(oe[2:], jnp.array([45.0, 10.0, 20.0, 30.0]), atol=_DEG_TOL)

    def test_angles_in_range(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.05, 1.0, 6.2, 6.0, 5.9])
        oe = cartesian_to_keplerian(x)
        assert bool(jnp.all((oe[2:] >= 0.0) & (oe[2:] < 2.0 * jnp.pi)))

    def test_rectilinear_rejected(self):
        with pytest.raises(InvalidConfiguration, match="rectilinear"):
            cartesian_to_keplerian([_SMA_LEO, 0.0, 0.0, 1000.0, 0.0, 0.0])

    def test_non_positive_gm_rejected(self):
        with pytest.raises(InvalidConfiguration):
            cartesian_to_keplerian(_circular_equatorial(), gm=0.0)


# ──────────────────────────────────────────────
# Degenerate geometry
# ──────────────────────────────────────────────


class TestDegenerateOrbits:
    def test_circular_equatorial_warns(self):
        with pytest.warns(SingularElementConversion, match="circular_equatorial"):
            oe = cartesian_to_keplerian(_circular_equatorial())
        assert float(oe[3]) == 0.0
        assert float(oe[4]) == 0.0

    def test_circular_equatorial_true_longitude(self):
        sma = _SMA_LEO
        v = jnp.sqrt(GM_EARTH / sma)
        x = jnp.array([0.0, sma, 0.0, -v, 0.0, 0.0])
        with pytest.warns(SingularElementConversion):
            oe = cartesian_to_keplerian(x)
        assert float(oe[5]) == pytest.approx(jnp.pi / 2.0, abs=_ANGLE_TOL)

    def test_circular_inclined_uses_argument_of_latitude(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.0, 0.7, 1.0, 0.0, 0.9])
        with pytest.warns(SingularElementConversion, match="circular"):
            oe = cartesian_to_keplerian(x)
        assert float(oe[4]) == 0.0
        assert float(oe[5]) == pytest.approx(0.9, abs=1e-8)
        assert float(oe[3]) == pytest.approx(1.0, abs=1e-8)

    def test_elliptic_equatorial_uses_longitude_of_periapsis(self):
        x = keplerian_to_cartesian([_SMA_LEO, 0.1, 0.0, 0.0, 1.3, 0.4])
        with pytest.warns(SingularElementConversion, match="equatorial"):
            oe = cartesian_to_keplerian(x)
        assert float(oe[3]) == 0.0
        assert float(oe[4]) == pytest.approx(1.3, abs=1e-8)

    @pytest.mark.parametrize(
        "x",
        [
            _circular_equatorial(),
            keplerian_to_cartesian([_SMA_LEO, 0.0, 0.7, 1.0, 0.0, 0.9]),
            keplerian_to_cartesian([_SMA_LEO, 0.1, jnp.pi, 0.0, 1.3, 0.4]),
        ],
    )
    def test_fallback_reproduces_state(self, x):
        with pytest.warns(SingularElementConversion):
            oe = cartesian_to_keplerian(x)
        back = keplerian_to_cartesian(oe)
        assert jnp.allclose(back[:3], x[:3], atol=_POS_TOL)
        assert jnp.allclose(back[3:], x[3:], atol=_VEL_TOL)

    def test_degeneracy_classification(self):
        assert keplerian_degeneracy([_SMA_LEO, 0.0, 0.0, 0, 0, 0]) is Degeneracy.CIRCULAR_EQUATORIAL
        assert keplerian_degeneracy([_SMA_LEO, 0.0, 30.0, 0, 0, 0], True) is Degeneracy.CIRCULAR
        assert keplerian_degeneracy([_SMA_LEO, 0.1, 180.0, 0, 0, 0], True) is Degeneracy.EQUATORIAL
        assert keplerian_degeneracy([_SMA_LEO, 0.1, 30.0, 0, 0, 0], True) is Degeneracy.NONE


# ──────────────────────────────────────────────
# Geodetic and topocentric
# ──────────────────────────────────────────────


class TestGeodetic:
    def test_equator_prime_meridian(self):
        x = position_geodetic_to_ecef(jnp.array([0.0, 0.0, 0.0]))
        assert float(x[0]) == pytest.approx(WGS84_a, abs=_ALT_TOL)
        assert float(x[1]) == pytest.approx(0.0, abs=_ALT_TOL)

    def test_roundtrip(self):
        geod = jnp.array([-3.75, 40.43, 834.9])
        x = position_geodetic_to_ecef(geod, use_degrees=True)
        back = position_ecef_to_geodetic(x, use_degrees=True)
        assert jnp.allclose(back[:2], geod[:2], atol=1e-9)
        assert float(back[2]) == pytest.approx(834.9, abs=1e-5)


class TestTopocentric:
    def test_rotation_is_orthonormal(self):
        rot = rotation_ellipsoid_to_enz(jnp.array([30.0, 60.0, 0.0]), use_degrees=True)
        assert jnp.allclose(rot @ rot.T, jnp.eye(3), atol=1e-14)

    def test_zenith(self):
        azel = position_enz_to_azel(jnp.array([0.0, 0.0, 1000.0]), use_degrees=True)
        assert float(azel[0]) == 0.0
        assert float(azel[1]) == pytest.approx(90.0, abs=_DEG_TOL)
        assert float(azel[2]) == pytest.approx(1000.0)

    def test_east_horizon(self):
        azel = position_enz_to_azel(jnp.array([100.0, 0.0, 0.0]), use_degrees=True)
        assert float(azel[0]) == pytest.approx(90.0, abs=_DEG_TOL)
        assert float(azel[1]) == pytest.approx(0.0, abs=_DEG_TOL)
