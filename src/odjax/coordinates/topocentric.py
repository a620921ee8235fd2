"""East-North-Zenith (ENZ) topocentric coordinate transformations.

Converts Earth-fixed vectors into the local topocentric frame of an
observer on the WGS84 ellipsoid, and ENZ vectors into azimuth, elevation
and range.

The ENZ frame is a right-handed coordinate system:

- **East** (E): tangent to the surface, pointing geographic east
- **North** (N): tangent to the surface, pointing geographic north
- **Zenith** (Z): normal to the ellipsoid, pointing outward
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype


def rotation_ellipsoid_to_enz(
    x_ellipsoid: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Compute the rotation matrix from ECEF to East-North-Zenith (ENZ).

    Args:
        x_ellipsoid: Observer coordinates ``[lon, lat, alt]``.
            Longitude and latitude in *rad* (or *deg* if ``use_degrees=True``),
            altitude in *m*.
        use_degrees: If ``True``, interpret longitude and latitude as degrees.

    Returns:
        3x3 rotation matrix (ECEF -> ENZ).

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.coordinates import rotation_ellipsoid_to_enz
        rot = rotation_ellipsoid_to_enz(jnp.array([30.0, 60.0, 0.0]), use_degrees=True)
        ```
    """
    x_ellipsoid = jnp.asarray(x_ellipsoid, dtype=get_dtype())

    lon = x_ellipsoid[0]
    lat = x_ellipsoid[1]

    if use_degrees:
        lon = jnp.deg2rad(lon)
        lat = jnp.deg2rad(lat)

    sin_lon = jnp.sin(lon)
    cos_lon = jnp.cos(lon)
    sin_lat = jnp.sin(lat)
    cos_lat = jnp.cos(lat)

    # Rows are E, N, Z basis vectors expressed in ECEF
    return jnp.array([
        [-sin_lon, cos_lon, 0.0],                             # East
        [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat],    # North
        [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat],      # Zenith
    ])


def position_enz_to_azel(
    x_enz: ArrayLike,
    use_degrees: bool = False,
) -> Array:
    """Convert ENZ position to azimuth, elevation, and range.

    Azimuth is measured clockwise from North (0 = North, 90 deg = East).
    At the zenith singularity azimuth is defined as 0.

    Args:
        x_enz: ENZ position ``[east, north, zenith]`` in *m*.
        use_degrees: If ``True``, return azimuth and elevation in degrees.

    Returns:
        ``[azimuth, elevation, range]``. Azimuth in ``[0, 2pi)`` rad,
            elevation in ``[-pi/2, pi/2]`` rad, range in *m*.
    """
    x_enz = jnp.asarray(x_enz, dtype=get_dtype())

    e = x_enz[0]
    n = x_enz[1]
    z = x_enz[2]

    rho = jnp.sqrt(e * e + n * n + z * z)

    horiz = jnp.sqrt(e * e + n * n)
    el = jnp.arctan2(z, horiz)

    az_raw = jnp.arctan2(e, n)
    az_wrapped = jnp.where(az_raw >= 0.0, az_raw, az_raw + 2.0 * jnp.pi)
    az = jnp.where(horiz == 0.0, 0.0, az_wrapped)

    if use_degrees:
        az = jnp.rad2deg(az)
        el = jnp.rad2deg(el)

    return jnp.array([az, el, rho])
