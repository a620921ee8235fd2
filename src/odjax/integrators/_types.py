"""Type definitions for the adaptive integrator.

- :class:`StepState`: States of the step-size control state machine.
- :class:`StepResult`: Output of :meth:`Integrator.step`.
- :class:`IntegratorConfig`: Immutable, validated integrator settings.

:class:`StepResult` is a :class:`~typing.NamedTuple`; :class:`IntegratorConfig`
is a frozen dataclass so one configuration can safely drive many
propagations, including concurrent ones.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple

from jax import Array

from odjax.errors import InvalidConfiguration

METHODS = ("rk4", "rkf45", "ck45", "dp54", "rkn1210")
"""Integration methods, by name."""

ERROR_ESTIMATORS = ("largest_error", "rss_state", "rss_step", "rss_step_pos_vel")
"""Local error norms, by name."""


class StepState(str, enum.Enum):
    """State of the step-size controller.

    ``PROBING`` while a trial step is being evaluated, ``ACCEPTED`` once
    its error meets the tolerance, ``REJECTED`` when it must be retried with
    a smaller step, and ``FAILED`` when the attempt limit or the minimum step
    is exhausted.
    """

    PROBING = "probing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


class StepResult(NamedTuple):
    """Result of a single :meth:`Integrator.step`.

    Attributes:
        state: State vector at ``t + dt_used``.
        t: Integration time at the end of the step.
        dt_used: Signed step actually taken.
        error_estimate: Local error of the accepted trial (0.0 for fixed steps).
        dt_next: Suggested signed step for the next call.
        status: ``ACCEPTED``, or ``FAILED`` when a non-strict controller
            accepted a step that missed the tolerance.
        attempts: Number of trial steps evaluated.
        rejections: Number of rejected trials before acceptance.
    """

    state: Array
    t: float
    dt_used: float
    error_estimate: float
    dt_next: float
    status: StepState
    attempts: int
    rejections: int


@dataclass(frozen=True)
class IntegratorConfig:
    """Settings for :class:`~odjax.integrators.Integrator`.

    Attributes:
        method: One of ``rk4`` (fixed step only), ``rkf45``, ``ck45``,
            ``dp54`` or ``rkn1210``.
        initial_step: First step size to try [s].
        min_step: Smallest step the controller may shrink to [s].
        max_step: Largest step the controller may grow to [s].
        tolerance: Largest accepted local error, as measured by
            *error_estimator*.
        max_step_attempts: Consecutive rejected trials before the step fails.
        strict: On failure, raise :class:`~odjax.errors.AccuracyViolation`
            (``True``) or accept the step at *min_step* (``False``).
        error_estimator: Name of the local error norm, see
            :data:`ERROR_ESTIMATORS`.
        safety_factor: Multiplier applied to predicted step sizes.
        min_scale_factor: Smallest allowed ratio of successive steps.
        max_scale_factor: Largest allowed ratio of successive steps.
        fixed_step: Take every step at *initial_step* without error control.

    Raises:
        InvalidConfiguration: If any bound is non-positive or inconsistent.

    Examples:
        ```python
        from odjax.integrators import IntegratorConfig
        cfg = IntegratorConfig(method="rkf45", tolerance=1e-10)
        fixed = IntegratorConfig.fixed(10.0)
        ```
    """

    method: str = "dp54"
    initial_step: float = 60.0
    min_step: float = 1e-3
    max_step: float = 2700.0
    tolerance: float = 1e-12
    max_step_attempts: int = 50
    strict: bool = False
    error_estimator: str = "rss_step_pos_vel"
    safety_factor: float = 0.9
    min_scale_factor: float = 0.2
    max_scale_factor: float = 10.0
    fixed_step: bool = False

    def __post_init__(self):
        if self.method not in METHODS:
            raise InvalidConfiguration(
                f"unknown integration method '{self.method}'; expected one of {', '.join(METHODS)}"
            )
        if self.error_estimator not in ERROR_ESTIMATORS:
            raise InvalidConfiguration(
                f"unknown error estimator '{self.error_estimator}'; "
                f"expected one of {', '.join(ERROR_ESTIMATORS)}"
            )
        if self.method == "rk4" and not self.fixed_step:
            raise InvalidConfiguration("rk4 has no embedded error estimate; use fixed_step=True")
        for name in ("initial_step", "min_step", "max_step", "tolerance"):
            if not getattr(self, name) > 0.0:
                raise InvalidConfiguration(f"{name} must be positive, got {getattr(self, name)}")
        if self.min_step > self.max_step:
            raise InvalidConfiguration(
                f"min_step ({self.min_step}) exceeds max_step ({self.max_step})"
            )
        if not self.fixed_step and not self.min_step <= self.initial_step <= self.max_step:
            raise InvalidConfiguration(
                f"initial_step ({self.initial_step}) outside [{self.min_step}, {self.max_step}]"
            )
        if self.max_step_attempts < 1:
            raise InvalidConfiguration(
                f"max_step_attempts must be at least 1, got {self.max_step_attempts}"
            )
        if not 0.0 < self.safety_factor <= 1.0:
            raise InvalidConfiguration(f"safety_factor must be in (0, 1], got {self.safety_factor}")
        if not 0.0 < self.min_scale_factor <= 1.0 <= self.max_scale_factor:
            raise InvalidConfiguration(
                "scale factors must satisfy 0 < min_scale_factor <= 1 <= max_scale_factor"
            )

    @classmethod
    def fixed(cls, step: float, method: str = "rk4") -> IntegratorConfig:
        """Fixed-step configuration taking every step at *step* seconds."""
        return cls(
            method=method,
            initial_step=step,
            min_step=step,
            max_step=step,
            fixed_step=True,
        )
