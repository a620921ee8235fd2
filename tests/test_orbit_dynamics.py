"""Tests for odjax.orbit_dynamics.

Tests cover:
- Force model composition: central term, de-duplication, conflicts, presets
- Binding validation against spacecraft attributes and frames
- Individual acceleration terms against reference magnitudes
- Analytic Jacobians against forward-mode AD and the variational equations
- The unvalidated-capability gate
"""

import jax
import jax.numpy as jnp
import pytest

from odjax.config import set_unvalidated
from odjax.constants import AU, GM_EARTH, R_EARTH
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames import ECEF, eme2000
from odjax.orbit_dynamics import (
    Drag,
    ForceModel,
    PointMass,
    RelativisticCorrection,
    SolarRadiationPressure,
    accel_point_mass,
    density_exponential,
    density_harris_priester,
    eclipse_conical,
    eclipse_cylindrical,
    moon_position,
    sun_position,
)
from odjax.spacecraft import Spacecraft
from odjax.state import State

_ACCEL_TOL = 1e-12   # m/s^2
_JAC_TOL = 1e-10

_EPC = Epoch(2018, 2, 27)
_SMA = R_EARTH + 500e3


def _leo_state(epc=_EPC):
    return State.from_keplerian(_SMA, 0.001, 51.6, 20.0, 30.0, 40.0, epc, use_degrees=True)


def _spacecraft(**kwargs):
    props = dict(dry_mass=100.0, cd=2.2, cr=1.3, drag_area=1.0, srp_area=1.0)
    props.update(kwargs)
    return Spacecraft("sat", _leo_state(), **props)


# ──────────────────────────────────────────────
# Composition
# ──────────────────────────────────────────────


class TestForceModelComposition:
    def test_central_term_prepended(self):
        model = ForceModel("Earth", [Drag()])
        assert model.contributors[0] == PointMass("Earth")
        assert model.contributors[1] == Drag()

    def test_identical_duplicates_collapse(self):
        model = ForceModel("Earth", [PointMass("Moon"), PointMass("Moon")])
        assert model.contributors == (PointMass("Earth"), PointMass("Moon"))

    def test_conflicting_duplicates_rejected(self):
        with pytest.raises(InvalidConfiguration, match="conflicting drag"):
            ForceModel("Earth", [Drag("harris_priester"), Drag("exponential")])

    def test_order_is_preserved(self):
        model = ForceModel("Earth", [PointMass("Earth"), PointMass("Sun"), PointMass("Moon")])
        assert [c.body for c in model.contributors] == ["Earth", "Sun", "Moon"]

    def test_unknown_body(self):
        with pytest.raises(InvalidConfiguration, match="unknown body"):
            ForceModel("Earth", [PointMass("Jupiter")])

    def test_unsupported_contributor(self):
        with pytest.raises(InvalidConfiguration, match="unsupported"):
            ForceModel("Earth", ["drag"])

    def test_unknown_density_model(self):
        with pytest.raises(InvalidConfiguration, match="density model"):
            Drag("jacchia")

    def test_drag_requires_earth(self):
        with pytest.raises(InvalidConfiguration, match="Earth-centred"):
            ForceModel("Moon", [Drag()])

    def test_presets(self):
        assert ForceModel.two_body().contributors == (PointMass("Earth"),)
        leo = ForceModel.leo_default()
        assert [c.kind for c in leo.contributors] == [
            "point_mass", "point_mass", "point_mass", "drag", "srp",
        ]
        assert leo.velocity_dependent
        assert not ForceModel.two_body().velocity_dependent

    def test_with_contributor_and_without(self):
        model = ForceModel.two_body().with_contributor(Drag("exponential"))
        assert model.contributors[-1] == Drag("exponential")
        assert model.without("drag") == ForceModel.two_body()

    def test_without_keeps_central_term(self):
        model = ForceModel.leo_default().without("point_mass")
        assert model.contributors[0] == PointMass("Earth")
        assert all(c.kind != "point_mass" for c in model.contributors[1:])

    def test_disabled_term_excluded(self):
        model = ForceModel("Earth", [Drag(enabled=False)])
        assert model.enabled_contributors == (PointMass("Earth"),)
        assert not model.velocity_dependent


class TestUnvalidatedGate:
    def test_relativity_rejected_by_default(self):
        with pytest.raises(InvalidConfiguration, match="unvalidated"):
            ForceModel("Earth", [RelativisticCorrection()])

    def test_relativity_accepted_when_enabled(self):
        set_unvalidated(True)
        model = ForceModel("Earth", [RelativisticCorrection()])
        assert model.velocity_dependent

    def test_disabled_relativity_allowed(self):
        model = ForceModel("Earth", [RelativisticCorrection(enabled=False)])
        assert len(model.enabled_contributors) == 1


# ──────────────────────────────────────────────
# Binding
# ──────────────────────────────────────────────


class TestBind:
    def test_missing_drag_attributes(self):
        sc = Spacecraft("sat", _leo_state(), dry_mass=100.0)
        with pytest.raises(InvalidConfiguration, match="cd, drag_area"):
            ForceModel("Earth", [Drag()]).bind(sc)

    def test_missing_srp_attributes(self):
        sc = Spacecraft("sat", _leo_state(), dry_mass=100.0, cr=1.3)
        with pytest.raises(InvalidConfiguration, match="srp_area"):
            ForceModel("Earth", [SolarRadiationPressure()]).bind(sc)

    def test_rotating_frame_rejected(self):
        sc = Spacecraft("sat", _leo_state().in_frame(ECEF), dry_mass=100.0)
        with pytest.raises(InvalidConfiguration, match="inertial"):
            ForceModel.two_body().bind(sc)

    def test_wrong_centre_rejected(self):
        moon_state = State.from_cartesian([2e6, 0, 0], [0, 1500.0, 0], _EPC, eme2000(center="Moon"))
        sc = Spacecraft("lunar", moon_state, dry_mass=100.0)
        with pytest.raises(InvalidConfiguration, match="centred on Earth"):
            ForceModel.two_body().bind(sc)

    def test_bind_snapshot(self):
        dyn = ForceModel.leo_default().bind(_spacecraft().snapshot())
        assert dyn.epoch_0 == _EPC
        assert dyn.epoch(60.0) == _EPC + 60.0

    def test_bindings_share_structure(self):
        model = ForceModel.leo_default()
        now = model.bind(_spacecraft())
        later = model.bind(_spacecraft(), _EPC + 3600.0)
        heavier = model.bind(_spacecraft(dry_mass=200.0))
        assert jax.tree_util.tree_structure(now) == jax.tree_util.tree_structure(later)
        assert jax.tree_util.tree_structure(now) != jax.tree_util.tree_structure(heavier)

    def test_reference_epoch_is_traced(self):
        sc = _spacecraft()
        x = sc.state.cartesian
        model = ForceModel.leo_default()
        derivative = jax.jit(lambda dyn, t, x: dyn(t, x))
        later = model.bind(sc, _EPC + 600.0)
        assert jnp.allclose(derivative(later, 0.0, x), later(0.0, x), atol=_ACCEL_TOL)
        assert jnp.allclose(derivative(model.bind(sc), 600.0, x), later(0.0, x), atol=_ACCEL_TOL)

    def test_two_body_derivative(self):
        sc = _spacecraft()
        dyn = ForceModel.two_body().bind(sc)
        x = sc.state.cartesian
        dx = dyn(0.0, x)
        assert jnp.allclose(dx[:3], x[3:])
        assert jnp.allclose(dx[3:], accel_point_mass(x, GM_EARTH), atol=_ACCEL_TOL)


# ──────────────────────────────────────────────
# Acceleration terms
# ──────────────────────────────────────────────


class TestAccelerations:
    def test_point_mass_magnitude(self):
        a = accel_point_mass(jnp.array([_SMA, 0.0, 0.0, 0.0, 0.0, 0.0]), GM_EARTH)
        assert float(jnp.linalg.norm(a)) == pytest.approx(GM_EARTH / _SMA**2, rel=1e-12)
        assert float(a[0]) < 0.0

    def test_sun_distance(self):
        assert float(jnp.linalg.norm(sun_position(_EPC))) == pytest.approx(AU, rel=0.02)

    def test_moon_distance(self):
        d = float(jnp.linalg.norm(moon_position(_EPC)))
        assert 3.5e8 < d < 4.1e8

    def test_density_decreases_with_height(self):
        low = density_exponential(jnp.array([R_EARTH + 300e3, 0.0, 0.0]))
        high = density_exponential(jnp.array([R_EARTH + 600e3, 0.0, 0.0]))
        assert float(low) > float(high) > 0.0

    def test_harris_priester_positive(self):
        rho = density_harris_priester(jnp.array([R_EARTH + 400e3, 0.0, 0.0]), sun_position(_EPC))
        assert float(rho) > 0.0

    def test_eclipse_full_shadow(self):
        r_sun = jnp.array([AU, 0.0, 0.0])
        r = jnp.array([-_SMA, 0.0, 0.0])
        assert float(eclipse_conical(r, r_sun, R_EARTH)) == pytest.approx(0.0)
        assert float(eclipse_cylindrical(r, r_sun, R_EARTH)) == pytest.approx(0.0)

    def test_eclipse_sunlit(self):
        r_sun = jnp.array([AU, 0.0, 0.0])
        r = jnp.array([_SMA, 0.0, 0.0])
        assert float(eclipse_conical(r, r_sun, R_EARTH)) == pytest.approx(1.0)

    def test_drag_opposes_velocity(self):
        sc = _spacecraft()
        dyn = ForceModel("Earth", [Drag("exponential")]).bind(sc)
        two_body = ForceModel.two_body().bind(sc)
        x = sc.state.cartesian
        a_drag = dyn.acceleration(0.0, x) - two_body.acceleration(0.0, x)
        assert float(jnp.dot(a_drag, x[3:])) < 0.0

    def test_relativity_magnitude(self):
        set_unvalidated(True)
        sc = _spacecraft()
        dyn = ForceModel("Earth", [RelativisticCorrection()]).bind(sc)
        two_body = ForceModel.two_body().bind(sc)
        x = sc.state.cartesian
        a_rel = dyn.acceleration(0.0, x) - two_body.acceleration(0.0, x)
        assert 1e-9 < float(jnp.linalg.norm(a_rel)) < 1e-7


# ──────────────────────────────────────────────
# Jacobians and variational equations
# ──────────────────────────────────────────────


class TestJacobians:
    @pytest.mark.parametrize(
        "model",
        [
            ForceModel.two_body(),
            ForceModel("Earth", [PointMass("Sun"), PointMass("Moon")]),
            ForceModel.leo_default(),
        ],
    )
    def test_jacobian_matches_autodiff(self, model):
        dyn = model.bind(_spacecraft())
        x = _leo_state().cartesian
        analytic = dyn.jacobian(10.0, x)
        numeric = jax.jacfwd(lambda s: dyn(10.0, s))(x)
        assert jnp.allclose(analytic, numeric, atol=_JAC_TOL, rtol=1e-8)

    def test_jacobian_structure(self):
        dyn = ForceModel.two_body().bind(_spacecraft())
        A = dyn.jacobian(0.0, _leo_state().cartesian)
        assert A.shape == (6, 6)
        assert jnp.array_equal(A[:3, 3:], jnp.eye(3))
        assert jnp.array_equal(A[:3, :3], jnp.zeros((3, 3)))
        assert jnp.allclose(A[3:, 3:], 0.0)

    def test_variational_shape_and_identity(self):
        dyn = ForceModel.two_body().bind(_spacecraft())
        x = _leo_state().cartesian
        y = jnp.concatenate([x, jnp.eye(6).reshape(36)])
        dy = dyn.variational(0.0, y)
        assert dy.shape == (42,)
        assert jnp.allclose(dy[:6], dyn(0.0, x))
        assert jnp.allclose(dy[6:].reshape(6, 6), dyn.jacobian(0.0, x))

    def test_dynamics_jittable(self):
        dyn = ForceModel.leo_default().bind(_spacecraft())
        x = _leo_state().cartesian
        assert jnp.allclose(jax.jit(dyn)(5.0, x), dyn(5.0, x), atol=_ACCEL_TOL)
