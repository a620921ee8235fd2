"""Tests for odjax.estimation.

Tests cover:
- Filter building blocks: linear Kalman update, EKF predict and update
- JIT and jax.lax.scan compatibility of the building blocks
- KalmanConfig validation
- The sequential KalmanFilter: requirements, time updates, convergence on
  GNSS fixes, outlier rejection, ordering, visibility and the EKF switch
"""

import jax
import jax.numpy as jnp
import pytest

from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration, MeasurementOutlier, MeasurementSequencingError
from odjax.estimation import (
    FilterResult,
    FilterState,
    KalmanConfig,
    KalmanFilter,
    ekf_predict,
    ekf_update,
    kalman_update,
)
from odjax.events import Event
from odjax.frames import ECEF
from odjax.orbit_dynamics import ForceModel
from odjax.orbit_measurements import Measurement, gnss_measurement, gnss_position_fix
from odjax.propagation import Propagator, Trajectory
from odjax.spacecraft import Spacecraft
from odjax.state import State

_POS_TOL = 1.0       # metres, converged estimate
_VEL_TOL = 1e-2      # m/s

_EPC = Epoch(2018, 2, 27)
_DX0 = jnp.array([100.0, -50.0, 30.0, 0.1, -0.05, 0.02])
_P0 = jnp.diag(jnp.array([1e4, 1e4, 1e4, 1.0, 1.0, 1.0]))


# ──────────────────────────────────────────────
# Helper functions
# ──────────────────────────────────────────────


def _linear_propagate(x):
    """Linear propagation: x_next = A @ x with A = [[1, dt], [0, 1]]."""
    dt = 0.1
    A = jnp.array([[1.0, dt], [0.0, 1.0]])
    return A @ x


def _linear_measurement(x):
    """Linear measurement: z = H @ x with H = [[1, 0]]."""
    return x[:1]


def _truth_state():
    return State.from_keplerian(7000e3, 0.001, 51.6, 20.0, 30.0, 40.0, _EPC, use_degrees=True)


def _estimator_spacecraft(dx=_DX0, covariance=_P0):
    truth = _truth_state().to_cartesian()
    return Spacecraft("sat", truth.with_vector(truth.vector + dx), dry_mass=100.0,
                      covariance=covariance)


def _od_propagator():
    return Propagator(ForceModel.two_body(), with_stm=True)


@pytest.fixture(scope="module")
def truth():
    """Truth trajectory sampled every minute for twenty minutes."""
    traj = Trajectory()
    truth_sc = Spacecraft("truth", _truth_state(), dry_mass=100.0)
    Propagator(ForceModel.two_body()).run(
        truth_sc.snapshot(), [Event.elapsed_time(1200.0)], sink=traj, output_step=60.0
    )
    return traj


@pytest.fixture(scope="module")
def fixes(truth):
    """Exact position fixes of the truth trajectory, 1 m noise model."""
    return [gnss_position_fix(sample.state, 1.0) for sample in truth[1:]]


# ──────────────────────────────────────────────
# Building blocks
# ──────────────────────────────────────────────


class TestKalmanUpdate:
    def test_scalar_example(self):
        fs = FilterState(x=jnp.zeros(2), P=jnp.eye(2))
        H = jnp.array([[1.0, 0.0]])
        result = kalman_update(fs, jnp.array([0.5]), H, jnp.array([[1.0]]))
        assert isinstance(result, FilterResult)
        assert jnp.allclose(result.state.x, jnp.array([0.25, 0.0]))
        assert jnp.allclose(result.state.P, jnp.diag(jnp.array([0.5, 1.0])))

    def test_reduces_trace(self):
        fs = FilterState(x=jnp.zeros(3), P=jnp.diag(jnp.array([4.0, 2.0, 1.0])))
        H = jnp.array([[1.0, 1.0, 0.0]])
        result = kalman_update(fs, jnp.array([1.0]), H, jnp.array([[0.5]]))
        assert float(jnp.trace(result.state.P)) < float(jnp.trace(fs.P))

    def test_shapes(self):
        fs = FilterState(x=jnp.zeros(6), P=jnp.eye(6))
        H = jnp.eye(3, 6)
        result = kalman_update(fs, jnp.ones(3), H, jnp.eye(3))
        assert result.kalman_gain.shape == (6, 3)
        assert result.innovation_covariance.shape == (3, 3)

    def test_joseph_form_symmetry(self):
        P = jnp.array([[2.0, 0.3, 0.1], [0.3, 1.5, 0.2], [0.1, 0.2, 1.0]])
        fs = FilterState(x=jnp.zeros(3), P=P)
        result = kalman_update(fs, jnp.array([0.4, -0.2]), jnp.eye(2, 3), 0.1 * jnp.eye(2))
        assert jnp.allclose(result.state.P, result.state.P.T, atol=1e-14)


class TestEKF:
    def test_linear_propagation(self):
        fs = FilterState(x=jnp.array([1.0, 2.0]), P=jnp.eye(2))
        Q = 0.01 * jnp.eye(2)
        pred = ekf_predict(fs, _linear_propagate, Q)
        A = jnp.array([[1.0, 0.1], [0.0, 1.0]])
        assert jnp.allclose(pred.x, A @ fs.x)
        assert jnp.allclose(pred.P, A @ fs.P @ A.T + Q)

    def test_state_moves_toward_measurement(self):
        fs = FilterState(x=jnp.array([0.0, 0.0]), P=jnp.eye(2))
        result = ekf_update(fs, jnp.array([1.0]), _linear_measurement, jnp.array([[1.0]]))
        assert 0.0 < float(result.state.x[0]) < 1.0
        assert jnp.allclose(result.innovation, jnp.array([1.0]))

    def test_matches_linear_update(self):
        fs = FilterState(x=jnp.array([0.5, -0.5]), P=jnp.eye(2))
        R = jnp.array([[0.2]])
        a = ekf_update(fs, jnp.array([1.0]), _linear_measurement, R)
        b = kalman_update(fs, jnp.array([0.5]), jnp.array([[1.0, 0.0]]), R)
        assert jnp.allclose(a.state.x, b.state.x)
        assert jnp.allclose(a.state.P, b.state.P)


class TestJAXCompatibility:
    def test_jit_kalman_update(self):
        @jax.jit
        def update(fs, nu):
            return kalman_update(fs, nu, jnp.array([[1.0, 0.0]]), jnp.array([[1.0]]))

        result = update(FilterState(x=jnp.zeros(2), P=jnp.eye(2)), jnp.array([0.5]))
        assert jnp.allclose(result.state.x, jnp.array([0.25, 0.0]))

    def test_lax_scan(self):
        R = jnp.array([[0.1]])
        Q = 1e-4 * jnp.eye(2)

        def filter_step(fs, z):
            fs = ekf_predict(fs, _linear_propagate, Q)
            result = ekf_update(fs, z, _linear_measurement, R)
            return result.state, result.innovation

        measurements = jnp.ones((20, 1))
        final, innovations = jax.lax.scan(
            filter_step, FilterState(x=jnp.zeros(2), P=jnp.eye(2)), measurements
        )
        assert innovations.shape == (20, 1)
        assert abs(float(final.x[0]) - 1.0) < 0.1


# ──────────────────────────────────────────────
# Configuration
# ──────────────────────────────────────────────


class TestKalmanConfig:
    def test_defaults(self):
        cfg = KalmanConfig()
        assert cfg.outlier_sigma == 3.0
        assert cfg.process_noise is None
        assert cfg.ekf_trigger is None

    def test_invalid_sigma(self):
        with pytest.raises(InvalidConfiguration, match="outlier_sigma"):
            KalmanConfig(outlier_sigma=0.0)

    def test_invalid_trigger(self):
        with pytest.raises(InvalidConfiguration, match="ekf_trigger"):
            KalmanConfig(ekf_trigger=-1)

    def test_process_noise_shape(self):
        with pytest.raises(InvalidConfiguration, match="process_noise"):
            KalmanConfig(process_noise=jnp.eye(3))


# ──────────────────────────────────────────────
# Sequential filter
# ──────────────────────────────────────────────


class TestKalmanFilterSetup:
    def test_requires_stm(self):
        with pytest.raises(InvalidConfiguration, match="with_stm"):
            KalmanFilter(Propagator(ForceModel.two_body()), _estimator_spacecraft())

    def test_requires_covariance(self):
        sc = Spacecraft("sat", _truth_state(), dry_mass=100.0)
        with pytest.raises(InvalidConfiguration, match="covariance"):
            KalmanFilter(_od_propagator(), sc)

    def test_requires_inertial_state(self):
        sc = Spacecraft("sat", _truth_state().in_frame(ECEF), dry_mass=100.0, covariance=_P0)
        with pytest.raises(InvalidConfiguration, match="inertial"):
            KalmanFilter(_od_propagator(), sc)

    def test_initial_mode(self):
        assert not KalmanFilter(_od_propagator(), _estimator_spacecraft()).extended
        kf = KalmanFilter(_od_propagator(), _estimator_spacecraft(), KalmanConfig(ekf_trigger=0))
        assert kf.extended


class TestTimeUpdate:
    def test_covariance_grows(self):
        kf = KalmanFilter(_od_propagator(), _estimator_spacecraft())
        est = kf.time_update(_EPC + 600.0)
        assert est.predicted
        assert est.epoch == _EPC + 600.0
        assert float(jnp.trace(est.covariance)) > float(jnp.trace(_P0))
        assert not jnp.allclose(est.stm, jnp.eye(6))

    def test_same_epoch_is_no_op(self):
        kf = KalmanFilter(_od_propagator(), _estimator_spacecraft())
        est = kf.time_update(_EPC)
        assert jnp.array_equal(est.covariance, _P0)
        assert jnp.array_equal(est.stm, jnp.eye(6))

    def test_process_noise_added(self):
        q = 1e-6 * jnp.eye(6)
        plain = KalmanFilter(_od_propagator(), _estimator_spacecraft()).time_update(_EPC + 600.0)
        noisy = KalmanFilter(
            _od_propagator(), _estimator_spacecraft(), KalmanConfig(process_noise=q)
        ).time_update(_EPC + 600.0)
        assert jnp.allclose(noisy.covariance - plain.covariance, 600.0 * q, atol=1e-9)

    def test_time_update_does_not_commit(self):
        sc = _estimator_spacecraft()
        before = sc.snapshot()
        KalmanFilter(_od_propagator(), sc).time_update(_EPC + 600.0)
        assert sc.snapshot() is before

    def test_backwards_rejected(self):
        kf = KalmanFilter(_od_propagator(), _estimator_spacecraft())
        with pytest.raises(MeasurementSequencingError):
            kf.time_update(_EPC - 60.0)


class TestOrbitDetermination:
    def test_converges_on_exact_fixes(self, truth, fixes):
        sc = _estimator_spacecraft()
        kf = KalmanFilter(_od_propagator(), sc, KalmanConfig(outlier_sigma=10.0))
        estimates = kf.process(fixes)

        assert len(estimates) == len(fixes)
        assert not any(e.outlier for e in estimates)
        assert kf.accepted == len(fixes)

        error = estimates[-1].state.vector - truth.last.state.vector
        assert float(jnp.linalg.norm(error[:3])) < _POS_TOL
        assert float(jnp.linalg.norm(error[3:])) < _VEL_TOL

    def test_covariance_shrinks(self, fixes):
        sc = _estimator_spacecraft()
        estimates = KalmanFilter(_od_propagator(), sc, KalmanConfig(outlier_sigma=10.0)).process(fixes)
        assert float(jnp.trace(estimates[-1].covariance[:3, :3])) < float(jnp.trace(_P0[:3, :3]))

    def test_commits_last_estimate(self, fixes):
        sc = _estimator_spacecraft()
        estimates = KalmanFilter(_od_propagator(), sc, KalmanConfig(outlier_sigma=10.0)).process(fixes)
        assert sc.epoch == fixes[-1].epoch
        assert jnp.array_equal(sc.state.vector, estimates[-1].state.vector)
        assert jnp.array_equal(sc.covariance, estimates[-1].covariance)

    def test_residuals(self, fixes):
        sc = _estimator_spacecraft()
        est = KalmanFilter(_od_propagator(), sc, KalmanConfig(outlier_sigma=10.0)).measurement_update(fixes[0])
        assert not est.predicted
        assert est.normalized_innovation >= 0.0
        assert float(jnp.linalg.norm(est.postfit_residual)) < float(jnp.linalg.norm(est.prefit_residual))

    def test_switches_to_extended(self, truth, fixes):
        sc = _estimator_spacecraft()
        kf = KalmanFilter(_od_propagator(), sc, KalmanConfig(outlier_sigma=10.0, ekf_trigger=5))
        kf.process(fixes[:4])
        assert not kf.extended
        kf.process(fixes[4:5])
        assert kf.accepted == 5
        assert kf.extended
        estimates = kf.process(fixes[5:])
        error = estimates[-1].state.vector - truth.last.state.vector
        assert float(jnp.linalg.norm(error[:3])) < _POS_TOL


class TestMeasurementHandling:
    def test_outlier_rejected(self, fixes):
        sc = _estimator_spacecraft()
        kf = KalmanFilter(_od_propagator(), sc)
        before = sc.snapshot()
        bad = gnss_measurement(fixes[0].epoch, fixes[0].observation + 1e4, 1.0)
        with pytest.warns(MeasurementOutlier):
            est = kf.measurement_update(bad)
        assert est.outlier
        assert est.postfit_residual is None
        assert kf.accepted == 0
        assert sc.snapshot() is before

    def test_outlier_leaves_prediction(self, fixes):
        sc = _estimator_spacecraft()
        kf = KalmanFilter(_od_propagator(), sc)
        predicted = KalmanFilter(_od_propagator(), _estimator_spacecraft()).time_update(fixes[0].epoch)
        bad = gnss_measurement(fixes[0].epoch, fixes[0].observation + 1e4, 1.0)
        with pytest.warns(MeasurementOutlier):
            est = kf.measurement_update(bad)
        assert jnp.array_equal(est.state.vector, predicted.state.vector)
        assert jnp.array_equal(est.covariance, predicted.covariance)

    def test_out_of_order(self, fixes):
        sc = _estimator_spacecraft()
        kf = KalmanFilter(_od_propagator(), sc, KalmanConfig(outlier_sigma=10.0))
        with pytest.raises(MeasurementSequencingError):
            kf.process([fixes[0], fixes[3], fixes[1]])
        assert kf.accepted == 2
        assert sc.epoch == fixes[3].epoch

    def test_invisible_skipped(self, fixes):
        sc = _estimator_spacecraft()
        kf = KalmanFilter(_od_propagator(), sc)
        hidden = Measurement(
            fixes[0].epoch, "gnss", fixes[0].observation, fixes[0].noise, fixes[0].model, visible=False
        )
        assert kf.measurement_update(hidden) is None
        assert kf.epoch == _EPC
        assert kf.accepted == 0

    def test_invisible_still_ordered(self, fixes):
        kf = KalmanFilter(_od_propagator(), _estimator_spacecraft(), KalmanConfig(outlier_sigma=10.0))
        kf.measurement_update(fixes[2])
        early = Measurement(
            fixes[0].epoch, "gnss", fixes[0].observation, fixes[0].noise, fixes[0].model, visible=False
        )
        with pytest.raises(MeasurementSequencingError):
            kf.measurement_update(early)
