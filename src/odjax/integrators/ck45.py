"""Cash-Karp 4(5) embedded pair (CK45).

Six stages per step with a 5th-order propagated solution and a 4th-order
error estimate, like RKF45, but with coefficients chosen to give a better
balanced error estimate.

References:
    1. J. R. Cash and A. H. Karp, "A variable order Runge-Kutta method for
       initial value problems with rapidly varying right-hand sides",
       *ACM Trans. Math. Softw.* 16(3), 1990.
"""

from __future__ import annotations

from odjax.integrators._tableau import ButcherTableau

CK45 = ButcherTableau(
    c=(0.0, 1.0 / 5.0, 3.0 / 10.0, 3.0 / 5.0, 1.0, 7.0 / 8.0),
    a=(
        (),
        (1.0 / 5.0,),
        (3.0 / 40.0, 9.0 / 40.0),
        (3.0 / 10.0, -9.0 / 10.0, 6.0 / 5.0),
        (-11.0 / 54.0, 5.0 / 2.0, -70.0 / 27.0, 35.0 / 27.0),
        (
            1631.0 / 55296.0,
            175.0 / 512.0,
            575.0 / 13824.0,
            44275.0 / 110592.0,
            253.0 / 4096.0,
        ),
    ),
    b_high=(37.0 / 378.0, 0.0, 250.0 / 621.0, 125.0 / 594.0, 0.0, 512.0 / 1771.0),
    b_low=(
        2825.0 / 27648.0,
        0.0,
        18575.0 / 48384.0,
        13525.0 / 55296.0,
        277.0 / 14336.0,
        1.0 / 4.0,
    ),
    order=4.0,
)
