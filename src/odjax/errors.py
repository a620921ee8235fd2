"""Exception and warning types raised by odjax.

Configuration problems subclass :class:`ValueError` and runtime numerical
failures subclass :class:`RuntimeError`, so callers that only care about
the builtin categories keep working.  Conditions that are recovered
locally (degenerate element conversions, rejected measurements) are
reported through :mod:`warnings` instead of being raised.
"""

from __future__ import annotations


class OdjaxError(Exception):
    """Base class for all odjax errors."""


class InvalidConfiguration(OdjaxError, ValueError):
    """A model, spacecraft, or integrator was configured inconsistently.

    Always raised before any integration step is taken.
    """


class PropagationError(OdjaxError, RuntimeError):
    """A propagation could not be completed."""


class AccuracyViolation(PropagationError):
    """The integrator exhausted its step attempts under strict policy.

    Attributes:
        t: Integration time at the start of the failed step [s].
        step: Last attempted step size [s].
        error: Estimated local error of the last attempt.
        tolerance: Configured tolerance.
        attempts: Number of consecutive rejected attempts.
    """

    def __init__(self, t: float, step: float, error: float, tolerance: float, attempts: int):
        self.t = t
        self.step = step
        self.error = error
        self.tolerance = tolerance
        self.attempts = attempts
        super().__init__(
            f"step at t={t:.6f} s failed after {attempts} attempts: "
            f"error {error:.3e} > tolerance {tolerance:.3e} (last step {step:.3e} s)"
        )


class MeasurementSequencingError(OdjaxError, ValueError):
    """A measurement epoch precedes the filter's current epoch."""


class SingularElementConversion(UserWarning):
    """Keplerian elements were computed at an eccentricity or inclination singularity.

    The returned angles follow a fallback convention (see
    :func:`odjax.coordinates.keplerian_degeneracy`).
    """


class MeasurementOutlier(UserWarning):
    """A measurement residual exceeded the filter's outlier threshold and was not applied."""
