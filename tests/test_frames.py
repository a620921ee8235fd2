"""Tests for odjax.frames."""

import math

import jax.numpy as jnp
import pytest

from odjax.constants import OMEGA_EARTH
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames import (
    ECEF,
    EME2000,
    Rx,
    Ry,
    Rz,
    eme2000,
    rotation_ecef_to_eci,
    rotation_eci_to_ecef,
    state_eci_to_ecef,
    transform_state,
)

_EPC = Epoch(2018, 2, 27)


class TestRotations:
    @pytest.mark.parametrize("R", [Rx, Ry, Rz])
    def test_orthonormal(self, R):
        m = R(0.7)
        assert jnp.allclose(m @ m.T, jnp.eye(3), atol=1e-15)
        assert float(jnp.linalg.det(m)) == pytest.approx(1.0)

    def test_passive_convention(self):
        v = Rz(90.0, use_degrees=True) @ jnp.array([1.0, 0.0, 0.0])
        assert jnp.allclose(v, jnp.array([0.0, -1.0, 0.0]), atol=1e-15)

    def test_degrees(self):
        assert jnp.allclose(Rx(30.0, use_degrees=True), Rx(math.radians(30.0)))


class TestEarthFixed:
    def test_rotation_transpose(self):
        assert jnp.allclose(rotation_ecef_to_eci(_EPC), rotation_eci_to_ecef(_EPC).T)

    def test_rotation_about_pole(self):
        x = jnp.array([0.0, 0.0, 7000e3, 0.0, 0.0, 0.0])
        assert jnp.allclose(state_eci_to_ecef(_EPC, x), x)

    def test_inertial_point_moves_in_fixed_frame(self):
        x = jnp.array([7000e3, 0.0, 0.0, 0.0, 0.0, 0.0])
        v = state_eci_to_ecef(_EPC, x)[3:]
        assert float(jnp.linalg.norm(v)) == pytest.approx(OMEGA_EARTH * 7000e3)

    def test_identity_transform(self):
        x = jnp.arange(6.0)
        assert jnp.array_equal(transform_state(_EPC, x, EME2000, EME2000), x)

    def test_unsupported_pair(self):
        with pytest.raises(InvalidConfiguration):
            transform_state(_EPC, jnp.zeros(6), ECEF, eme2000(center="Moon"))
