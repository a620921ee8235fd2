"""Explicit Runge-Kutta tableaus and the shared trial-step evaluation.

A :class:`ButcherTableau` holds the coefficients of an explicit (optionally
embedded) Runge-Kutta pair as Python tuples, cast at call time.  The
stage loop in :func:`explicit_rk_attempt` is a plain Python loop that XLA
unrolls when the trial step is compiled; terms are always summed in stage
order.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import NamedTuple

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike


class ButcherTableau(NamedTuple):
    """Coefficients of an explicit Runge-Kutta method.

    Attributes:
        c: Nodes, one per stage.
        a: Lower-triangular coupling rows; ``a[i]`` has ``i`` entries.
        b_high: Weights of the propagated solution.
        b_low: Weights of the embedded error-estimate solution, or ``None``
            for a method without one.
        order: Order of the error estimate, used for step-size scaling.
    """

    c: tuple
    a: tuple
    b_high: tuple
    b_low: tuple | None
    order: float


def explicit_rk_attempt(
    tableau: ButcherTableau,
    f: Callable[[ArrayLike, ArrayLike], Array],
    t: ArrayLike,
    state: Array,
    h: ArrayLike,
) -> tuple[Array, Array]:
    """Evaluate one trial step of an explicit Runge-Kutta method.

    Args:
        tableau: Method coefficients.
        f: ODE right-hand side ``f(t, x) -> dx/dt``.
        t: Time at the start of the step.
        state: State at the start of the step.
        h: Signed step size.

    Returns:
        ``(state_high, error_vec)`` where ``error_vec`` is the difference
        between the high- and low-order solutions (zeros when the method
        has no embedded estimate).
    """
    k = []
    for i, c_i in enumerate(tableau.c):
        incr = jnp.zeros_like(state)
        for j, a_ij in enumerate(tableau.a[i]):
            if a_ij != 0.0:
                incr = incr + a_ij * k[j]
        k.append(f(t + c_i * h, state + h * incr))

    high = jnp.zeros_like(state)
    for b_i, k_i in zip(tableau.b_high, k):
        if b_i != 0.0:
            high = high + b_i * k_i
    state_high = state + h * high

    if tableau.b_low is None:
        return state_high, jnp.zeros_like(state)

    diff = jnp.zeros_like(state)
    for b_hi, b_lo, k_i in zip(tableau.b_high, tableau.b_low, k):
        if b_hi != b_lo:
            diff = diff + (b_hi - b_lo) * k_i
    return state_high, h * diff
