"""Adaptive step-size controller.

:class:`Integrator` drives one embedded Runge-Kutta pair through the step
control state machine::

    PROBING --error <= tol--> ACCEPTED
       |
       +--error > tol--> REJECTED --shrink h, retry--> PROBING
                            |
                            +--attempts exhausted or h at min_step--> FAILED

The trial step itself (all stage evaluations of one attempt) is compiled
with ``jax.jit`` once per dynamics function and integration method. Dynamics
registered as JAX pytrees are passed to the compiled step as arguments, so
bindings that differ only in their leaves reuse one compilation. The
accept/reject decisions run on the host in a bounded loop, so the number of
trials is always observable in the returned :class:`StepResult`.
"""

from __future__ import annotations

import functools
import logging
import math
import threading
import weakref

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.errors import AccuracyViolation
from odjax.integrators._adaptive import ERROR_NORMS, compute_next_step_size
from odjax.integrators._tableau import explicit_rk_attempt
from odjax.integrators._types import IntegratorConfig, StepResult, StepState
from odjax.integrators.ck45 import CK45
from odjax.integrators.dp54 import DP54
from odjax.integrators.rk4 import RK4
from odjax.integrators.rkf45 import RKF45
from odjax.integrators.rkn1210 import ORDER as RKN1210_ORDER
from odjax.integrators.rkn1210 import rkn1210_attempt

logger = logging.getLogger(__name__)

_TABLEAUS = {"rk4": RK4, "rkf45": RKF45, "ck45": CK45, "dp54": DP54}


def _resolve(owner_ref, func):
    owner = owner_ref()
    return owner if func is None else func.__get__(owner)


class Integrator:
    """Single-step driver for an :class:`IntegratorConfig`.

    Instances hold no per-propagation state besides a cache of compiled
    trial steps, so one integrator may serve several propagations, also
    from different threads.

    Args:
        config: Integrator settings. Defaults to ``IntegratorConfig()``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.integrators import Integrator, IntegratorConfig
        def harmonic(t, x):
            return jnp.array([x[1], -x[0]])
        integ = Integrator(IntegratorConfig(method="rkf45", tolerance=1e-10,
                                            error_estimator="rss_step"))
        result = integ.step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.1)
        result.status, result.dt_next
        ```
    """

    def __init__(self, config: IntegratorConfig | None = None):
        self.config = IntegratorConfig() if config is None else config
        self._norm = ERROR_NORMS[self.config.error_estimator]
        if self.config.method == "rkn1210":
            self._order = RKN1210_ORDER
        else:
            self._order = _TABLEAUS[self.config.method].order
        self._compiled = weakref.WeakKeyDictionary()
        self._traced = {}
        self._lock = threading.Lock()

    @property
    def order(self) -> float:
        """Order of the error estimate used for step scaling."""
        return self._order

    def _make_attempt(self, owner_ref, func):
        method = self.config.method

        def attempt(t, x, h):
            f = _resolve(owner_ref, func)
            if method == "rkn1210":
                return rkn1210_attempt(f, t, x, h)
            return explicit_rk_attempt(_TABLEAUS[method], f, t, x, h)

        return attempt

    def _make_traced(self, func, kind):
        method = self.config.method

        def attempt(owner, t, x, h):
            f = func.__get__(owner)
            if method == "rkn1210":
                return rkn1210_attempt(f, t, x, h)
            return explicit_rk_attempt(_TABLEAUS[method], f, t, x, h)

        def derivative(owner, t, x):
            return func(owner, t, x)

        return attempt if kind == "trial" else derivative

    @staticmethod
    def _make_derivative(owner_ref, func):
        def derivative(t, x):
            return _resolve(owner_ref, func)(t, x)

        return derivative

    def _compiled_for(self, dynamics, kind):
        owner = getattr(dynamics, "__self__", dynamics)
        func = getattr(dynamics, "__func__", None)
        if not jax.tree_util.all_leaves([owner]):
            # Pytree owners are passed as traced arguments, so instances that
            # differ only in their leaves share one compiled step.
            func = type(owner).__call__ if func is None else func
            with self._lock:
                fn = self._traced.get((func, kind))
                if fn is None:
                    fn = jax.jit(self._make_traced(func, kind))
                    self._traced[(func, kind)] = fn
            return functools.partial(fn, owner)

        # Bound methods are created afresh on each attribute access, so cache
        # on the owning object and the underlying function.
        with self._lock:
            per_owner = self._compiled.setdefault(owner, {})
            fn = per_owner.get((func, kind))
            if fn is None:
                make = self._make_attempt if kind == "trial" else self._make_derivative
                fn = jax.jit(make(weakref.ref(owner), func))
                per_owner[(func, kind)] = fn
        return fn

    def _trial(self, dynamics):
        return self._compiled_for(dynamics, "trial")

    def derivative(self, dynamics):
        """Compiled ``dynamics(t, x)``, cached like the trial step."""
        return self._compiled_for(dynamics, "derivative")

    def _advance(self, trial, t, state, h_try, direction, n):
        """Probe from *h_try* until one trial is accepted or the controller fails."""
        cfg = self.config
        status = StepState.PROBING
        attempts = 0
        rejections = 0
        error = 0.0
        while status is StepState.PROBING:
            attempts += 1
            x_new, err_vec = trial(t, state, direction * h_try)
            if cfg.fixed_step:
                status = StepState.ACCEPTED
                break

            error = float(self._norm(err_vec[:n], x_new[:n], state[:n]))
            if error <= cfg.tolerance:
                status = StepState.ACCEPTED
                break

            status = StepState.REJECTED
            rejections += 1
            logger.debug(
                "step rejected at t=%.6f s: h=%.6e s, error=%.3e (attempt %d)",
                t, h_try, error, attempts,
            )
            if attempts >= cfg.max_step_attempts or h_try <= cfg.min_step:
                status = StepState.FAILED
                break

            if math.isfinite(error):
                shrunk = compute_next_step_size(
                    error, h_try, self._order, cfg.tolerance, cfg.safety_factor,
                    cfg.min_scale_factor, 1.0, cfg.min_step, cfg.max_step,
                )
            else:
                shrunk = max(h_try * cfg.min_scale_factor, cfg.min_step)
            h_try = min(shrunk, h_try)
            status = StepState.PROBING

        if status is StepState.FAILED:
            if cfg.strict:
                raise AccuracyViolation(t, direction * h_try, error, cfg.tolerance, attempts)
            floor = min(cfg.min_step, h_try)
            if h_try != floor:
                h_try = floor
                attempts += 1
                x_new, err_vec = trial(t, state, direction * h_try)
                error = float(self._norm(err_vec[:n], x_new[:n], state[:n]))
            logger.warning(
                "accuracy not met at t=%.6f s after %d attempts: error=%.3e > %.3e, "
                "accepting step of %.6e s",
                t, attempts, error, cfg.tolerance, h_try,
            )
        return x_new, h_try, error, status, attempts, rejections

    def _grow(self, error, h):
        cfg = self.config
        return compute_next_step_size(
            error, h, self._order, cfg.tolerance, cfg.safety_factor,
            cfg.min_scale_factor, cfg.max_scale_factor, cfg.min_step, cfg.max_step,
        )

    def step(
        self,
        dynamics,
        t: float,
        state: ArrayLike,
        h: float,
        h_limit: float | None = None,
        controlled: int | None = None,
    ) -> StepResult:
        """Advance *state* by one accepted (or capped) step.

        Args:
            dynamics: ODE right-hand side ``f(t, x) -> dx/dt``.
            t: Time at the start of the step.
            state: State at ``t``.
            h: Proposed signed step, usually the previous ``dt_next``.
                Its magnitude is clamped to ``[min_step, max_step]``.
            h_limit: Signed distance to a time the step must not pass
                (output epoch, stop time). When reachable in one step the
                step lands exactly on it, even if shorter than ``min_step``.
                If the controller rejects the landing trial, the shorter
                accepted sub-steps are chained until the target is reached
                and reported as one step.
            controlled: Number of leading state components included in the
                error norm. Defaults to all.

        Returns:
            StepResult: The accepted step.

        Raises:
            AccuracyViolation: If the step fails under strict policy.
        """
        cfg = self.config
        trial = self._trial(dynamics)
        state = jnp.asarray(state, dtype=get_dtype())
        t = float(t)

        direction = -1.0 if h < 0.0 else 1.0
        if cfg.fixed_step:
            requested = cfg.initial_step
        else:
            requested = min(max(abs(float(h)), cfg.min_step), cfg.max_step)

        h_try = requested
        target = None
        if h_limit is not None and abs(float(h_limit)) <= h_try:
            target = abs(float(h_limit))
            h_try = target
            direction = -1.0 if h_limit < 0.0 else 1.0

        n = state.shape[0] if controlled is None else controlled

        x_new, h_used, error, status, attempts, rejections = self._advance(
            trial, t, state, h_try, direction, n
        )
        last = status
        suggested = cfg.min_step if last is StepState.FAILED else self._grow(error, h_used)
        covered = h_used
        worst = error
        while target is not None and covered < target:
            remaining = target - covered
            h_try = min(suggested, remaining)
            x_new, h_used, error, last, sub_attempts, sub_rejections = self._advance(
                trial, t + direction * covered, x_new, h_try, direction, n
            )
            if last is StepState.FAILED:
                status = StepState.FAILED
                suggested = cfg.min_step
            elif h_used < remaining:
                suggested = self._grow(error, h_used)
            covered = target if h_used == remaining else covered + h_used
            worst = max(worst, error)
            attempts += sub_attempts
            rejections += sub_rejections

        if last is StepState.FAILED:
            dt_next = cfg.min_step
        elif cfg.fixed_step:
            dt_next = cfg.initial_step
        elif target is not None and rejections == 0:
            dt_next = requested
        else:
            dt_next = suggested

        return StepResult(
            state=x_new,
            t=t + direction * covered,
            dt_used=direction * covered,
            error_estimate=worst,
            dt_next=direction * dt_next,
            status=status,
            attempts=attempts,
            rejections=rejections,
        )
