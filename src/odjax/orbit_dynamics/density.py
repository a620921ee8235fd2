"""Atmospheric density models.

- :func:`density_harris_priester`: modified Harris-Priester model with the
  diurnal bulge, valid between 100 km and 1000 km.
- :func:`density_exponential`: piecewise exponential model (Vallado Table
  8-4), valid from sea level to beyond 1000 km.

Both return zero density outside their valid range and take positions in
the Earth-centred EME2000 frame. Geodetic height depends only on the
distance from the rotation axis and on ``z``, so no Earth-fixed rotation
is needed to evaluate it.

All inputs and outputs use SI base units (metres, kg/m^3).

References:
    1. O. Montenbruck and E. Gill, *Satellite Orbits: Models, Methods
       and Applications*, 2012, Sec. 3.5.
    2. D. Vallado, *Fundamentals of Astrodynamics and Applications
       (4th Ed.)*, 2010, Table 8-4.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.coordinates.geodetic import position_ecef_to_geodetic

# Harris-Priester model constants
_HP_UPPER_LIMIT = 1000.0   # Upper height limit [km]
_HP_LOWER_LIMIT = 100.0    # Lower height limit [km]
_HP_RA_LAG = 0.523599      # Right ascension lag [rad] (~30 deg)
_HP_N_PRM = 3.0            # Harris-Priester exponent (low inclination)

# Height table [km]
_HP_H = jnp.array([
    100.0, 120.0, 130.0, 140.0, 150.0, 160.0, 170.0, 180.0, 190.0, 200.0,
    210.0, 220.0, 230.0, 240.0, 250.0, 260.0, 270.0, 280.0, 290.0, 300.0,
    320.0, 340.0, 360.0, 380.0, 400.0, 420.0, 440.0, 460.0, 480.0, 500.0,
    520.0, 540.0, 560.0, 580.0, 600.0, 620.0, 640.0, 660.0, 680.0, 700.0,
    720.0, 740.0, 760.0, 780.0, 800.0, 840.0, 880.0, 920.0, 960.0, 1000.0,
])

# Minimum density [g/km^3]
_HP_C_MIN = jnp.array([
    4.974e+05, 2.490e+04, 8.377e+03, 3.899e+03, 2.122e+03, 1.263e+03,
    8.008e+02, 5.283e+02, 3.617e+02, 2.557e+02, 1.839e+02, 1.341e+02,
    9.949e+01, 7.488e+01, 5.709e+01, 4.403e+01, 3.430e+01, 2.697e+01,
    2.139e+01, 1.708e+01, 1.099e+01, 7.214e+00, 4.824e+00, 3.274e+00,
    2.249e+00, 1.558e+00, 1.091e+00, 7.701e-01, 5.474e-01, 3.916e-01,
    2.819e-01, 2.042e-01, 1.488e-01, 1.092e-01, 8.070e-02, 6.012e-02,
    4.519e-02, 3.430e-02, 2.632e-02, 2.043e-02, 1.607e-02, 1.281e-02,
    1.036e-02, 8.496e-03, 7.069e-03, 4.680e-03, 3.200e-03, 2.210e-03,
    1.560e-03, 1.150e-03,
])

# Maximum density [g/km^3]
_HP_C_MAX = jnp.array([
    4.974e+05, 2.490e+04, 8.710e+03, 4.059e+03, 2.215e+03, 1.344e+03,
    8.758e+02, 6.010e+02, 4.297e+02, 3.162e+02, 2.396e+02, 1.853e+02,
    1.455e+02, 1.157e+02, 9.308e+01, 7.555e+01, 6.182e+01, 5.095e+01,
    4.226e+01, 3.526e+01, 2.511e+01, 1.819e+01, 1.337e+01, 9.955e+00,
    7.492e+00, 5.684e+00, 4.355e+00, 3.362e+00, 2.612e+00, 2.042e+00,
    1.605e+00, 1.267e+00, 1.005e+00, 7.997e-01, 6.390e-01, 5.123e-01,
    4.121e-01, 3.325e-01, 2.691e-01, 2.185e-01, 1.779e-01, 1.452e-01,
    1.190e-01, 9.776e-02, 8.059e-02, 5.741e-02, 4.210e-02, 3.130e-02,
    2.360e-02, 1.810e-02,
])

# Exponential model: base height [km], nominal density [kg/m^3], scale height [km]
_EXP_H0 = jnp.array([
    0.0, 25.0, 30.0, 40.0, 50.0, 60.0, 70.0, 80.0, 90.0, 100.0,
    110.0, 120.0, 130.0, 140.0, 150.0, 180.0, 200.0, 250.0, 300.0, 350.0,
    400.0, 450.0, 500.0, 600.0, 700.0, 800.0, 900.0, 1000.0,
])
_EXP_RHO0 = jnp.array([
    1.225, 3.899e-2, 1.774e-2, 3.972e-3, 1.057e-3, 3.206e-4, 8.770e-5,
    1.905e-5, 3.396e-6, 5.297e-7, 9.661e-8, 2.438e-8, 8.484e-9, 3.845e-9,
    2.070e-9, 5.464e-10, 2.789e-10, 7.248e-11, 2.418e-11, 9.518e-12,
    3.725e-12, 1.585e-12, 6.967e-13, 1.454e-13, 3.614e-14, 1.170e-14,
    5.245e-15, 3.019e-15,
])
_EXP_H = jnp.array([
    7.249, 6.349, 6.682, 7.554, 8.382, 7.714, 6.549, 5.799, 5.382, 5.877,
    7.263, 9.473, 12.636, 16.149, 22.523, 29.740, 37.105, 45.546, 53.628,
    53.298, 58.515, 60.828, 63.822, 71.835, 88.667, 124.64, 181.05, 268.00,
])


def geodetic_height(r: ArrayLike) -> Array:
    """Height above the WGS84 ellipsoid [m] of an Earth-centred position."""
    return position_ecef_to_geodetic(r)[2]


def density_harris_priester(
    r: ArrayLike,
    r_sun: ArrayLike,
) -> Array:
    """Atmospheric density using the Harris-Priester model.

    Computes density accounting for the diurnal bulge caused by solar
    heating. Returns zero outside the valid 100-1000 km altitude range.

    Args:
        r: Satellite position, Earth-centred EME2000 [m]. Shape ``(3,)``.
        r_sun: Sun position in the same frame [m]. Shape ``(3,)``.

    Returns:
        Atmospheric density [kg/m^3] (scalar).

    Examples:
        ```python
        import jax.numpy as jnp
        from odjax.orbit_dynamics import density_harris_priester
        r = jnp.array([0.0, 0.0, -6466752.314])
        r_sun = jnp.array([24622331959.58, -133060326832.922, -57688711921.833])
        rho = density_harris_priester(r, r_sun)
        ```
    """
    _float = get_dtype()
    r = jnp.asarray(r, dtype=_float)[:3]
    r_sun = jnp.asarray(r_sun, dtype=_float)

    height = geodetic_height(r) / 1.0e3  # [km]

    # Sun right ascension and declination
    ra_sun = jnp.arctan2(r_sun[1], r_sun[0])
    dec_sun = jnp.arctan2(r_sun[2], jnp.sqrt(r_sun[0] ** 2 + r_sun[1] ** 2))

    # Unit vector towards diurnal bulge apex
    c_dec = jnp.cos(dec_sun)
    u = jnp.array([
        c_dec * jnp.cos(ra_sun + _HP_RA_LAG),
        c_dec * jnp.sin(ra_sun + _HP_RA_LAG),
        jnp.sin(dec_sun),
    ])

    # Cosine of half angle between satellite and apex
    c_psi2 = 0.5 + 0.5 * jnp.dot(r, u) / jnp.linalg.norm(r)

    # Left bracket index, clamped to [0, N-2]
    ih = jnp.searchsorted(_HP_H, height, side="right") - 1
    ih = jnp.clip(ih, 0, 48)

    h_min = (_HP_H[ih] - _HP_H[ih + 1]) / jnp.log(_HP_C_MIN[ih + 1] / _HP_C_MIN[ih])
    h_max = (_HP_H[ih] - _HP_H[ih + 1]) / jnp.log(_HP_C_MAX[ih + 1] / _HP_C_MAX[ih])

    d_min = _HP_C_MIN[ih] * jnp.exp((_HP_H[ih] - height) / h_min)
    d_max = _HP_C_MAX[ih] * jnp.exp((_HP_H[ih] - height) / h_max)

    # [g/km^3] -> [kg/m^3]
    density = (d_min + (d_max - d_min) * c_psi2**_HP_N_PRM) * 1.0e-12

    in_range = (height > _HP_LOWER_LIMIT) & (height < _HP_UPPER_LIMIT)
    return jnp.where(in_range, density, _float(0.0))


def density_exponential(r: ArrayLike) -> Array:
    """Atmospheric density using the piecewise exponential model.

    .. math::

        \\rho = \\rho_0 \\exp\\left(-\\frac{h - h_0}{H}\\right)

    with the base height ``h0``, nominal density and scale height ``H``
    taken from the table band containing ``h``. Returns zero below the
    ellipsoid.

    Args:
        r: Satellite position, Earth-centred [m]. Shape ``(3,)``.

    Returns:
        Atmospheric density [kg/m^3] (scalar).
    """
    _float = get_dtype()
    r = jnp.asarray(r, dtype=_float)[:3]
    height = geodetic_height(r) / 1.0e3  # [km]

    i = jnp.clip(jnp.searchsorted(_EXP_H0, height, side="right") - 1, 0, _EXP_H0.shape[0] - 1)
    density = _EXP_RHO0[i] * jnp.exp(-(height - _EXP_H0[i]) / _EXP_H[i])
    return jnp.where(height >= 0.0, density, _float(0.0))
