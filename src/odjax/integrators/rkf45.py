"""Runge-Kutta-Fehlberg 4(5) embedded pair (RKF45).

Six stages per step, a 5th-order solution for propagation and a 4th-order
solution for error estimation.  Coefficients from the standard Fehlberg
formulation:

- Nodes (c): [0, 1/4, 3/8, 12/13, 1, 1/2]
- 5th-order weights (b_high): [16/135, 0, 6656/12825, 28561/56430, -9/50, 2/55]
- 4th-order weights (b_low): [25/216, 0, 1408/2565, 2197/4104, -1/5, 0]
"""

from __future__ import annotations

from odjax.integrators._tableau import ButcherTableau

RKF45 = ButcherTableau(
    c=(0.0, 1.0 / 4.0, 3.0 / 8.0, 12.0 / 13.0, 1.0, 1.0 / 2.0),
    a=(
        (),
        (1.0 / 4.0,),
        (3.0 / 32.0, 9.0 / 32.0),
        (1932.0 / 2197.0, -7200.0 / 2197.0, 7296.0 / 2197.0),
        (439.0 / 216.0, -8.0, 3680.0 / 513.0, -845.0 / 4104.0),
        (-8.0 / 27.0, 2.0, -3544.0 / 2565.0, 1859.0 / 4104.0, -11.0 / 40.0),
    ),
    b_high=(16.0 / 135.0, 0.0, 6656.0 / 12825.0, 28561.0 / 56430.0, -9.0 / 50.0, 2.0 / 55.0),
    b_low=(25.0 / 216.0, 0.0, 1408.0 / 2565.0, 2197.0 / 4104.0, -1.0 / 5.0, 0.0),
    order=4.0,
)
