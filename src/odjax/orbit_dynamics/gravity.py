"""Point-mass gravity and its state Jacobian.

Provides the gravitational acceleration of a point mass, both for the
central body (origin of the frame) and for a perturbing third body in
the indirect form, together with the analytic partial derivatives of
each acceleration with respect to the spacecraft position.

All inputs and outputs use SI base units (metres, metres/second squared).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, p. 56-69, 248.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype


def accel_point_mass(
    r_object: ArrayLike,
    gm: float,
    r_body: ArrayLike | None = None,
) -> Array:
    """Acceleration due to point-mass gravity.

    When *r_body* is ``None`` the attracting body sits at the frame origin
    and the two-body expression ``-gm * r / |r|^3`` is used. Otherwise the
    indirect (third-body) form is applied, which removes the acceleration
    the body imparts on the frame origin:

    .. math::

        \\mathbf{a} = -GM \\left(\\frac{\\mathbf{d}}{|\\mathbf{d}|^3}
            + \\frac{\\mathbf{s}}{|\\mathbf{s}|^3}\\right),
        \\quad \\mathbf{d} = \\mathbf{r} - \\mathbf{s}

    Args:
        r_object: Position of the object [m]. Shape ``(3,)`` or ``(6,)``
            (only first 3 elements used).
        gm: Gravitational parameter of the attracting body [m^3/s^2].
        r_body: Position of the attracting body relative to the frame
            origin [m], or ``None`` for the central body.

    Returns:
        Acceleration vector [m/s^2], shape ``(3,)``.

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.constants import R_EARTH, GM_EARTH
        from odjax.orbit_dynamics import accel_point_mass
        a = accel_point_mass(jnp.array([R_EARTH, 0.0, 0.0]), GM_EARTH)
        ```
    """
    _float = get_dtype()
    r = jnp.asarray(r_object, dtype=_float)[:3]

    if r_body is None:
        return -gm * r / jnp.linalg.norm(r) ** 3

    s = jnp.asarray(r_body, dtype=_float)
    d = r - s
    return -gm * (d / jnp.linalg.norm(d) ** 3 + s / jnp.linalg.norm(s) ** 3)


def jacobian_point_mass(
    r_object: ArrayLike,
    gm: float,
    r_body: ArrayLike | None = None,
) -> Array:
    """Partial derivative of :func:`accel_point_mass` with respect to position.

    .. math::

        \\frac{\\partial \\mathbf{a}}{\\partial \\mathbf{r}} =
            -\\frac{GM}{d^3}\\left(I - 3\\,\\hat{\\mathbf{d}}\\hat{\\mathbf{d}}^T\\right)

    The indirect term does not depend on the object position.

    Args:
        r_object: Position of the object [m].
        gm: Gravitational parameter of the attracting body [m^3/s^2].
        r_body: Position of the attracting body [m], or ``None``.

    Returns:
        3x3 matrix [1/s^2].
    """
    _float = get_dtype()
    r = jnp.asarray(r_object, dtype=_float)[:3]
    d = r if r_body is None else r - jnp.asarray(r_body, dtype=_float)

    d_norm = jnp.linalg.norm(d)
    d_hat = d / d_norm
    return -gm / d_norm**3 * (jnp.eye(3, dtype=_float) - 3.0 * jnp.outer(d_hat, d_hat))
