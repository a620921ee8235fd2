"""Classic 4th-order Runge-Kutta integrator (RK4).

The standard four-stage, 4th-order explicit Runge-Kutta method.  It has no
embedded error estimate and is only available with
``IntegratorConfig(fixed_step=True)``.

The Butcher tableau for RK4 is:

.. math::

    \\begin{array}{c|cccc}
    0   &     &     &     &   \\\\
    1/2 & 1/2 &     &     &   \\\\
    1/2 &  0  & 1/2 &     &   \\\\
    1   &  0  &  0  &  1  &   \\\\
    \\hline
        & 1/6 & 1/3 & 1/3 & 1/6
    \\end{array}

The local truncation error is :math:`O(h^5)` and the global error
:math:`O(h^4)`.
"""

from __future__ import annotations

from odjax.integrators._tableau import ButcherTableau

RK4 = ButcherTableau(
    c=(0.0, 0.5, 0.5, 1.0),
    a=(
        (),
        (0.5,),
        (0.0, 0.5),
        (0.0, 0.0, 1.0),
    ),
    b_high=(1.0 / 6.0, 1.0 / 3.0, 1.0 / 3.0, 1.0 / 6.0),
    b_low=None,
    order=4.0,
)
