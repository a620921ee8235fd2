"""ECI to ECEF frame transformations using Earth rotation.

Provides rotation matrices and state-vector transformations between the
Earth-centred inertial frame (EME2000) and the Earth-centred Earth-fixed
frame (ECEF).

The transformation model uses only the Earth rotation component, a single
:math:`R_z(\\theta_{\\text{GMST}})` rotation with UT1 approximated by UTC.
Precession, nutation and polar motion are not modelled.

All inputs and outputs use SI base units (metres, metres/second).

References:
    1. D. Vallado, *Fundamentals of Astrodynamics and Applications*,
       4th ed., Microcosm Press, 2013, Sec. 3.7.
    2. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, Springer, 2012, Sec. 5.2.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.constants import OMEGA_EARTH
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.frames._types import Frame
from odjax.frames.rotations import Rz


def earth_rotation(epc: Epoch) -> Array:
    """Compute the Earth rotation matrix at the given epoch.

    Returns the 3x3 rotation matrix :math:`R_z(\\theta_{\\text{GMST}})` that
    rotates vectors from the ECI frame into the ECEF frame.

    Args:
        epc: Epoch at which to evaluate the rotation.

    Returns:
        jax.Array: 3x3 Earth rotation matrix.

    Example:
        >>> from odjax import Epoch
        >>> from odjax.frames import earth_rotation
        >>> R = earth_rotation(Epoch(2024, 1, 1))
        >>> R.shape
        (3, 3)
    """
    return Rz(epc.gmst())


def rotation_eci_to_ecef(epc: Epoch) -> Array:
    """Compute the 3x3 rotation matrix from the ECI frame to the ECEF frame.

    Equivalent to :func:`earth_rotation`.
    """
    return earth_rotation(epc)


def rotation_ecef_to_eci(epc: Epoch) -> Array:
    """Compute the 3x3 rotation matrix from the ECEF frame to the ECI frame.

    This is the transpose of :func:`rotation_eci_to_ecef`.
    """
    return earth_rotation(epc).T


def state_eci_to_ecef(epc: Epoch, x_eci: ArrayLike, omega: float = OMEGA_EARTH) -> Array:
    """Transform a 6-element state vector from ECI to ECEF.

    Rotates position and velocity, and subtracts the velocity contribution
    from Earth's rotation:

    .. math::

        \\mathbf{r}_{\\text{ECEF}} &= R \\, \\mathbf{r}_{\\text{ECI}} \\\\
        \\mathbf{v}_{\\text{ECEF}} &= R \\, \\mathbf{v}_{\\text{ECI}}
            - \\boldsymbol{\\omega} \\times \\mathbf{r}_{\\text{ECEF}}

    Args:
        epc: Epoch at which to evaluate the transformation.
        x_eci: 6-element ECI state ``[x, y, z, vx, vy, vz]``. Units: m, m/s.
        omega: Rotation rate of the Earth-fixed frame [rad/s].

    Returns:
        jax.Array: 6-element ECEF state. Units: m, m/s.
    """
    x_eci = jnp.asarray(x_eci, dtype=get_dtype())

    R = earth_rotation(epc)
    w = jnp.array([0.0, 0.0, omega], dtype=get_dtype())

    r_ecef = R @ x_eci[:3]
    v_ecef = R @ x_eci[3:6] - jnp.cross(w, r_ecef)

    return jnp.concatenate([r_ecef, v_ecef])


def state_ecef_to_eci(epc: Epoch, x_ecef: ArrayLike, omega: float = OMEGA_EARTH) -> Array:
    """Transform a 6-element state vector from ECEF to ECI.

    Applies the inverse of :func:`state_eci_to_ecef`.

    Args:
        epc: Epoch at which to evaluate the transformation.
        x_ecef: 6-element ECEF state ``[x, y, z, vx, vy, vz]``. Units: m, m/s.
        omega: Rotation rate of the Earth-fixed frame [rad/s].

    Returns:
        jax.Array: 6-element ECI state. Units: m, m/s.
    """
    x_ecef = jnp.asarray(x_ecef, dtype=get_dtype())

    R = earth_rotation(epc)
    w = jnp.array([0.0, 0.0, omega], dtype=get_dtype())

    r_ecef = x_ecef[:3]
    v_ecef = x_ecef[3:6]

    r_eci = R.T @ r_ecef
    v_eci = R.T @ (v_ecef + jnp.cross(w, r_ecef))

    return jnp.concatenate([r_eci, v_eci])


def transform_state(epc: Epoch, x: ArrayLike, source: Frame, target: Frame) -> Array:
    """Express a Cartesian state given in *source* in *target*.

    Supported pairs are identical frames and Earth-centred inertial <->
    Earth-fixed.

    Raises:
        InvalidConfiguration: If no transformation between the frames is known.
    """
    if source == target:
        return jnp.asarray(x, dtype=get_dtype())
    if source.center != target.center or source.center.name != "Earth":
        raise InvalidConfiguration(f"no transformation from {source} to {target}")
    omega = source.center.rotation_rate
    if source.inertial and not target.inertial:
        return state_eci_to_ecef(epc, x, omega)
    if target.inertial and not source.inertial:
        return state_ecef_to_eci(epc, x, omega)
    raise InvalidConfiguration(f"no transformation from {source} to {target}")
