"""Numerical ODE integration with adaptive step-size control.

Embedded Runge-Kutta pairs evaluated with JAX and driven by a host-side
step-control state machine:

- ``rk4`` -- Classic 4th-order Runge-Kutta (fixed step only)
- ``rkf45`` -- Runge-Kutta-Fehlberg 4(5)
- ``ck45`` -- Cash-Karp 4(5)
- ``dp54`` -- Dormand-Prince 5(4)
- ``rkn1210`` -- Runge-Kutta-Nyström 12(10), velocity-independent dynamics

Usage::

    integ = Integrator(IntegratorConfig(method="dp54"))
    result = integ.step(dynamics, t, state, h)

where ``dynamics(t, x) -> dx`` defines the ODE right-hand side and the
result is a :class:`StepResult` named tuple.
"""

from odjax.integrators._adaptive import (
    ERROR_NORMS,
    compute_next_step_size,
    largest_error,
    rss_state,
    rss_step,
    rss_step_pos_vel,
)
from odjax.integrators._tableau import ButcherTableau, explicit_rk_attempt
from odjax.integrators._types import (
    ERROR_ESTIMATORS,
    METHODS,
    IntegratorConfig,
    StepResult,
    StepState,
)
from odjax.integrators.hermite import hermite_interpolate
from odjax.integrators.rkn1210 import rkn1210_attempt
from odjax.integrators.stepper import Integrator

__all__ = [
    "METHODS",
    "ERROR_ESTIMATORS",
    "ERROR_NORMS",
    "IntegratorConfig",
    "Integrator",
    "StepResult",
    "StepState",
    "ButcherTableau",
    "explicit_rk_attempt",
    "rkn1210_attempt",
    "largest_error",
    "rss_state",
    "rss_step",
    "rss_step_pos_vel",
    "compute_next_step_size",
    "hermite_interpolate",
]
