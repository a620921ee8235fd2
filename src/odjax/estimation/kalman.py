"""Sequential orbit determination.

:class:`KalmanFilter` processes a stream of measurements of one spacecraft,
one measurement at a time:

1. **Time update.** The reference trajectory and its state transition
   matrix ``Phi`` are propagated to the measurement epoch with the
   variational equations. The deviation and covariance follow linearly:
   ``dx = Phi dx``, ``P = Phi P Phi^T + Q``.
2. **Measurement update.** The innovation ``z - h(x_ref) - H dx`` is
   checked against ``outlier_sigma`` standard deviations of
   ``S = H P H^T + R``; an outlier is reported and skipped. Otherwise
   :func:`~odjax.estimation.kalman_update` corrects the deviation and
   covariance, and the STM is reset to identity.

In classical (CKF) mode the reference trajectory is never changed and the
filter estimates the deviation from it. After ``ekf_trigger`` accepted
measurements the filter switches to extended (EKF) mode: every update is
folded into the reference, which then follows the estimate.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterable
from dataclasses import replace

import jax.numpy as jnp

from odjax.config import get_dtype, get_epoch_eq_tolerance
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration, MeasurementOutlier, MeasurementSequencingError
from odjax.estimation._types import Estimate, FilterState, KalmanConfig
from odjax.estimation.ekf import kalman_update
from odjax.events import Event
from odjax.frames import EME2000
from odjax.orbit_measurements import Measurement
from odjax.propagation import Propagator
from odjax.spacecraft import Spacecraft
from odjax.state import State

logger = logging.getLogger(__name__)


class KalmanFilter:
    """Sequential classical / extended Kalman filter for one spacecraft.

    The filter starts from the spacecraft's current state and covariance.
    After every accepted measurement it commits the new estimate to the
    spacecraft; nothing else touches the spacecraft.

    Args:
        propagator: Propagator integrating the STM (``with_stm=True``).
        spacecraft: Spacecraft to estimate. Must carry a covariance.
        config: Filter settings. Defaults to ``KalmanConfig()``.

    Raises:
        InvalidConfiguration: If the propagator does not integrate the STM
            or the spacecraft has no covariance.

    Examples:
        ```python
        from odjax.estimation import KalmanConfig, KalmanFilter
        from odjax.orbit_dynamics import ForceModel
        from odjax.propagation import Propagator
        kf = KalmanFilter(Propagator(ForceModel.two_body(), with_stm=True), sc,
                          KalmanConfig(ekf_trigger=15))
        estimates = kf.process(measurements)
        ```
    """

    def __init__(
        self,
        propagator: Propagator,
        spacecraft: Spacecraft,
        config: KalmanConfig | None = None,
    ):
        if not propagator.with_stm:
            raise InvalidConfiguration("orbit determination requires a propagator with with_stm=True")
        params = spacecraft.snapshot()
        if params.covariance is None:
            raise InvalidConfiguration(f"{params.name}: an initial covariance is required")
        if params.state.frame != EME2000:
            raise InvalidConfiguration(
                f"{params.name}: orbit determination requires an Earth-centred inertial state, "
                f"got {params.state.frame}"
            )

        self.propagator = propagator
        self.spacecraft = spacecraft
        self.config = KalmanConfig() if config is None else config

        dtype = get_dtype()
        self._params = params
        self._reference = params.state.to_cartesian()
        self._filter = FilterState(x=jnp.zeros(6, dtype=dtype), P=params.covariance)
        self._stm = jnp.eye(6, dtype=dtype)
        self._accepted = 0
        self._ekf = self.config.ekf_trigger == 0

    @property
    def epoch(self) -> Epoch:
        """Epoch of the current estimate."""
        return self._reference.epoch

    @property
    def extended(self) -> bool:
        """``True`` once the filter runs in EKF mode."""
        return self._ekf

    @property
    def accepted(self) -> int:
        """Number of measurements used in an update so far."""
        return self._accepted

    def _check_order(self, epoch: Epoch) -> float:
        dt = float(epoch - self.epoch)
        if dt < -get_epoch_eq_tolerance():
            raise MeasurementSequencingError(
                f"{self._params.name}: epoch {epoch} precedes the current estimate at {self.epoch}"
            )
        return dt

    def _estimated_state(self) -> State:
        return self._reference.with_vector(self._reference.vector + self._filter.x)

    def _estimate(self, **fields) -> Estimate:
        defaults = dict(
            prefit_residual=None,
            postfit_residual=None,
            normalized_innovation=None,
            outlier=False,
            predicted=True,
        )
        defaults.update(fields)
        return Estimate(
            epoch=self.epoch,
            state=self._estimated_state(),
            covariance=self._filter.P,
            stm=self._stm,
            **defaults,
        )

    # ──────────────────────────────────────────────
    # Updates
    # ──────────────────────────────────────────────

    def time_update(self, epoch: Epoch) -> Estimate:
        """Propagate the estimate to *epoch*.

        Raises:
            MeasurementSequencingError: If *epoch* precedes the current
                estimate.
            AccuracyViolation: If the propagation fails under strict
                policy. The filter is unchanged in that case.
        """
        dt = self._check_order(epoch)
        if dt <= get_epoch_eq_tolerance():
            return self._estimate()

        params = replace(self._params, state=self._reference)
        result = self.propagator.run(params, [Event.elapsed_time(dt)])
        phi = result.final.stm

        P = phi @ self._filter.P @ phi.T
        if self.config.process_noise is not None:
            P = P + abs(dt) * self.config.process_noise

        self._reference = result.final.state
        self._filter = FilterState(x=phi @ self._filter.x, P=P)
        self._stm = phi @ self._stm
        return self._estimate()

    def measurement_update(self, measurement: Measurement) -> Estimate | None:
        """Time-update to the measurement epoch, then process it.

        Returns:
            Estimate: The updated estimate, flagged ``outlier`` if the
            measurement was rejected, or ``None`` for a measurement that
            is not visible.

        Raises:
            MeasurementSequencingError: If the measurement precedes the
                current estimate.

        Warns:
            MeasurementOutlier: If the measurement was rejected.
        """
        self._check_order(measurement.epoch)
        if not measurement.visible:
            logger.debug("%s: skipping measurement from %s at %s, not visible",
                         self._params.name, measurement.observer, measurement.epoch)
            return None

        self.time_update(measurement.epoch)

        x_ref = self._reference.vector
        dx, P = self._filter
        prefit = measurement.observation - measurement.expected(x_ref)
        H = measurement.sensitivity(x_ref)
        innovation = prefit - H @ dx
        S = H @ P @ H.T + measurement.noise

        bound = self.config.outlier_sigma * jnp.sqrt(jnp.diag(S))
        if bool(jnp.any(jnp.abs(innovation) > bound)):
            logger.warning(
                "%s: measurement from %s at %s rejected, innovation beyond %g sigma",
                self._params.name, measurement.observer, measurement.epoch, self.config.outlier_sigma,
            )
            message = (
                f"{self._params.name}: measurement from {measurement.observer} at "
                f"{measurement.epoch} rejected, residual {innovation} exceeds "
                f"{self.config.outlier_sigma:g} sigma"
            )
            warnings.warn(message, MeasurementOutlier, stacklevel=2)
            return self._estimate(prefit_residual=prefit, outlier=True, predicted=False)

        result = kalman_update(self._filter, innovation, H, measurement.noise)
        nis = float(innovation @ jnp.linalg.solve(result.innovation_covariance, innovation))
        stm = self._stm

        if self._ekf:
            self._reference = self._reference.with_vector(x_ref + result.state.x)
            self._filter = FilterState(x=jnp.zeros_like(dx), P=result.state.P)
        else:
            self._filter = result.state
        self._stm = jnp.eye(6, dtype=get_dtype())
        self._accepted += 1

        state = self._estimated_state()
        postfit = measurement.observation - measurement.expected(state.vector)
        self.spacecraft.commit_estimate(state, self._filter.P)

        estimate = Estimate(
            epoch=self.epoch,
            state=state,
            covariance=self._filter.P,
            prefit_residual=prefit,
            postfit_residual=postfit,
            normalized_innovation=nis,
            outlier=False,
            predicted=False,
            stm=stm,
        )

        trigger = self.config.ekf_trigger
        if not self._ekf and trigger is not None and self._accepted >= trigger:
            self._switch_to_ekf()
        return estimate

    def _switch_to_ekf(self):
        self._reference = self._estimated_state()
        self._filter = FilterState(x=jnp.zeros(6, dtype=get_dtype()), P=self._filter.P)
        self._ekf = True
        logger.info("%s: switched to extended filter after %d measurements",
                    self._params.name, self._accepted)

    def process(self, measurements: Iterable[Measurement]) -> list[Estimate]:
        """Process measurements in epoch order.

        Returns:
            list[Estimate]: One estimate per visible measurement, outliers
            included.

        Raises:
            MeasurementSequencingError: On the first measurement that
                precedes its predecessor. Estimates committed before it
                are kept.
        """
        estimates = []
        for measurement in measurements:
            estimate = self.measurement_update(measurement)
            if estimate is not None:
                estimates.append(estimate)
        logger.info(
            "%s: processed %d measurements, %d accepted, %s mode",
            self._params.name, len(estimates), self._accepted, "EKF" if self._ekf else "CKF",
        )
        return estimates
