"""Elementary axis rotation matrices.

The matrices rotate the *frame* (passive convention): ``Rz(a) @ v`` gives the
components of a fixed vector ``v`` in a frame rotated by ``a`` about ``z``.
"""

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.utils import to_radians


def Rx(angle: ArrayLike, use_degrees: bool = False) -> Array:
    """Rotation matrix, for a rotation about the x-axis.

    Args:
        angle (ArrayLike): Counter-clockwise angle of rotation as viewed
            looking back along the positive direction of the rotation axis.
        use_degrees (bool): Handle input in degrees. Default: ``False``

    Returns:
        jax.Array: 3x3 rotation matrix.

    References:

        1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and Applications*, 2012, p.27.
    """
    angle = to_radians(angle, use_degrees)

    c = jnp.cos(angle)
    s = jnp.sin(angle)

    return jnp.array([[1.0,  0.0,  0.0],
                      [0.0,   +c,   +s],
                      [0.0,   -s,   +c]])


def Ry(angle: ArrayLike, use_degrees: bool = False) -> Array:
    """Rotation matrix, for a rotation about the y-axis.

    Args:
        angle (ArrayLike): Counter-clockwise angle of rotation as viewed
            looking back along the positive direction of the rotation axis.
        use_degrees (bool): Handle input in degrees. Default: ``False``

    Returns:
        jax.Array: 3x3 rotation matrix.
    """
    angle = to_radians(angle, use_degrees)

    c = jnp.cos(angle)
    s = jnp.sin(angle)

    return jnp.array([[ +c,  0.0,   -s],
                      [0.0, +1.0,  0.0],
                      [ +s,  0.0,   +c]])


def Rz(angle: ArrayLike, use_degrees: bool = False) -> Array:
    """Rotation matrix, for a rotation about the z-axis.

    Args:
        angle (ArrayLike): Counter-clockwise angle of rotation as viewed
            looking back along the positive direction of the rotation axis.
        use_degrees (bool): Handle input in degrees. Default: ``False``

    Returns:
        jax.Array: 3x3 rotation matrix.
    """
    angle = to_radians(angle, use_degrees)

    c = jnp.cos(angle)
    s = jnp.sin(angle)

    return jnp.array([[ +c,   +s,  0.0],
                      [ -s,   +c,  0.0],
                      [0.0,  0.0,  1.0]])
