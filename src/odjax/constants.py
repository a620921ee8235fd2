"""
The `constants` module defines the mathematical and physical constants used by the
propagation and estimation core. Body-specific values are also collected into the
default :class:`~odjax.bodies.BodyRegistry`, which is what force models consume.
"""

from jax.numpy import pi as PI

# Mathematical Constants
"""
Constant to convert degrees to radians. Equal to 2pi/360. Units: *rad/deg*
"""
DEG2RAD = 2.0 * PI / 360.0

"""
Constant to convert radians to degrees. Equal to 360/2pi. Units: *deg/rad*
"""
RAD2DEG = 360.0 / (PI * 2.0)

"""
Constant to convert arcseconds to radians. Equal to 2pi/(360*3600). Units: *rad/as*
"""
AS2RAD = 2.0 * PI / 360.0 / 3600.0

# Time Constants

"""
Offset between Julian Date and Modified Julian Date. Units: *days*
"""
JD_MJD_OFFSET = 2400000.5

"""
Modified Julian Date of the J2000.0 epoch (2000-01-01 12:00:00 TT). Units: *days*
"""
MJD2000 = 51544.5

"""
Number of SI seconds in a day. Units: *s*
"""
SECONDS_PER_DAY = 86400.0

"""
Offset TT - TAI, constant by definition. Units: *s*
"""
TT_TAI = 32.184

"""
Offset TAI - GPS, constant by definition. Units: *s*
"""
TAI_GPS = 19.0

# Physical Constants
"""
Speed of light in vacuum. Units: *m/s*

References:

1. D. Vallado, *Fundamentals of Astrodynamics and Applications (4th Ed.)*, 2010
"""
C_LIGHT = 299792458.0

"""
Astronomical Unit. TDB-compatible value. Units: *m*

References:

1. P. Gerard and B. Luzum, *IERS Technical Note 36*, 2010
"""
AU = 1.49597870700e11

# Earth Constants
"""
Earth's equatorial radius. [m]

References:

1. GGM05s Gravity Model
"""
R_EARTH = 6.378136300e6

"""
Earth's semi-major axis as defined by the WGS84 geodetic system. [m]

References:

1. NIMA Technical Report TR8350.2
"""
WGS84_a = 6378137.0

"""
Earth's ellipsoidal flattening.  WGS84 Value.

References:

1. NIMA Technical Report TR8350.2
"""
WGS84_f = 1.0 / 298.257223563

"""
Earth's Gravitational constant [m^3/s^2]

References:

1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
Applications*, 2012.
"""
GM_EARTH = 3.986004415e14

"""
Earth axial rotation rate. [rad/s]

References:

1. D. Vallado, *Fundamentals of Astrodynamics and Applications (4th Ed.)*, p. 222, 2010
"""
OMEGA_EARTH = 7.292115146706979e-5

# Sun Constants
"""
Gravitational constant of the Sun. [m^3/s^2]

References:

1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
Applications*, 2012.
"""
GM_SUN = 132712440041.939400 * 1e9

"""
Nominal solar photospheric radius. [m]
"""
R_SUN = 6.957 * 1e8

"""
Nominal solar radiation pressure at 1 AU. [N/m^2]

References:

1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
Applications*, 2012.
"""
P_SUN = 4.560e-6

# Moon Constants
"""
Gravitational constant of the Moon. [m^3/s^2]

References:

1. JPL DE430 Ephemerides.
"""
GM_MOON = 4902.800066 * 1e9

"""
Mean radius of the Moon. [m]
"""
R_MOON = 1.7374e6
