"""Acceleration contributors.

Every term in a :class:`~odjax.orbit_dynamics.ForceModel` is one of a closed
set of frozen dataclasses:

- :class:`PointMass` -- point-mass gravity of a named body (central or third body)
- :class:`Drag` -- atmospheric drag on an Earth-centred orbit
- :class:`SolarRadiationPressure` -- cannonball radiation pressure with eclipses
- :class:`RelativisticCorrection` -- Schwarzschild term of the central body

Each exposes the same two operations, evaluated at an epoch and a
6-element inertial state relative to the central body:

- ``acceleration(ctx, epc, x) -> (3,)``
- ``jacobian(ctx, epc, x) -> (3, 6)`` partial derivatives of the
  acceleration with respect to ``[r, v]``

``ctx`` is the :class:`ForceContext` a force model builds when it is bound
to a spacecraft. All evaluation code is JAX-traceable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

import jax
import jax.numpy as jnp
from jax import Array

from odjax.bodies import BodyRegistry, CelestialBody
from odjax.config import get_dtype
from odjax.constants import P_SUN
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.orbit_dynamics.density import density_exponential, density_harris_priester
from odjax.orbit_dynamics.drag import accel_drag
from odjax.orbit_dynamics.ephemerides import EPHEMERIS_BODIES, body_position
from odjax.orbit_dynamics.gravity import accel_point_mass, jacobian_point_mass
from odjax.orbit_dynamics.relativity import accel_relativity
from odjax.orbit_dynamics.srp import accel_srp, eclipse_conical, eclipse_cylindrical

DENSITY_MODELS = ("harris_priester", "exponential")
ECLIPSE_MODELS = ("conical", "cylindrical", "none")


@dataclass(frozen=True, eq=False)
class ForceContext:
    """Everything a contributor needs besides the epoch and state.

    Built by :meth:`ForceModel.bind` from the model's bodies and the
    spacecraft's physical properties.

    Contexts compare by value, with the body registry compared by identity.
    """

    central: CelestialBody
    bodies: BodyRegistry
    mass: float
    cd: float | None = None
    cr: float | None = None
    drag_area: float | None = None
    srp_area: float | None = None

    def _key(self) -> tuple:
        props = (self.mass, self.cd, self.cr, self.drag_area, self.srp_area)
        return (self.central, id(self.bodies), *(None if p is None else float(p) for p in props))

    def __eq__(self, other) -> bool:
        if not isinstance(other, ForceContext):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


class _ContributorBase:
    """Shared defaults. Subclasses are limited to the four below."""

    kind: ClassVar[str]
    velocity_dependent: ClassVar[bool] = False
    validated: ClassVar[bool] = True

    @property
    def key(self) -> tuple:
        """Identity used to de-duplicate contributors in a force model."""
        return (self.kind,)

    def validate(self, central: CelestialBody, bodies: BodyRegistry) -> None:
        """Check the contributor against the model's central body and registry."""

    def check_spacecraft(self, ctx: ForceContext) -> None:
        """Check that the bound spacecraft has the attributes this term needs."""

    def jacobian(self, ctx: ForceContext, epc: Epoch, x: Array) -> Array:
        """Partials of :meth:`acceleration` with respect to ``[r, v]``, by forward-mode AD."""
        return jax.jacfwd(lambda s: self.acceleration(ctx, epc, s))(x)


@dataclass(frozen=True)
class PointMass(_ContributorBase):
    """Point-mass gravity of *body*.

    When *body* is the model's central body the two-body term is used;
    otherwise the third-body (indirect) form with the body's analytical
    ephemeris.

    Args:
        body: Registry name of the attracting body.
        enabled: Include the term in the summed acceleration.
    """

    body: str = "Earth"
    enabled: bool = True

    kind: ClassVar[str] = "point_mass"

    @property
    def key(self) -> tuple:
        return (self.kind, self.body)

    def validate(self, central, bodies):
        bodies.resolve(self.body)
        if self.body != central.name:
            missing = {self.body, central.name} - EPHEMERIS_BODIES
            if missing:
                raise InvalidConfiguration(
                    f"third-body gravity of {self.body} about {central.name} needs an "
                    f"ephemeris for {', '.join(sorted(missing))}"
                )

    def _body_position(self, ctx, epc):
        if self.body == ctx.central.name:
            return None
        return body_position(self.body, ctx.central.name, epc)

    def acceleration(self, ctx: ForceContext, epc: Epoch, x: Array) -> Array:
        gm = ctx.bodies[self.body].gm
        return accel_point_mass(x, gm, self._body_position(ctx, epc))

    def jacobian(self, ctx: ForceContext, epc: Epoch, x: Array) -> Array:
        gm = ctx.bodies[self.body].gm
        da_dr = jacobian_point_mass(x, gm, self._body_position(ctx, epc))
        return jnp.concatenate([da_dr, jnp.zeros((3, 3), dtype=get_dtype())], axis=1)


@dataclass(frozen=True)
class Drag(_ContributorBase):
    """Atmospheric drag with a co-rotating atmosphere.

    Requires an Earth-centred model and a spacecraft with ``cd`` and
    ``drag_area``.

    Args:
        density_model: ``"harris_priester"`` or ``"exponential"``.
        enabled: Include the term in the summed acceleration.
    """

    density_model: str = "harris_priester"
    enabled: bool = True

    kind: ClassVar[str] = "drag"
    velocity_dependent: ClassVar[bool] = True

    def __post_init__(self):
        if self.density_model not in DENSITY_MODELS:
            raise InvalidConfiguration(
                f"unknown density model '{self.density_model}'; "
                f"expected one of {', '.join(DENSITY_MODELS)}"
            )

    def validate(self, central, bodies):
        if central.name != "Earth":
            raise InvalidConfiguration(f"drag requires an Earth-centred model, not {central.name}")

    def check_spacecraft(self, ctx):
        missing = [name for name in ("cd", "drag_area") if getattr(ctx, name) is None]
        if missing:
            raise InvalidConfiguration(f"drag requires spacecraft attributes: {', '.join(missing)}")

    def acceleration(self, ctx: ForceContext, epc: Epoch, x: Array) -> Array:
        r = x[:3]
        if self.density_model == "harris_priester":
            rho = density_harris_priester(r, body_position("Sun", "Earth", epc))
        else:
            rho = density_exponential(r)
        return accel_drag(x, rho, ctx.mass, ctx.drag_area, ctx.cd, ctx.central.rotation_rate)


@dataclass(frozen=True)
class SolarRadiationPressure(_ContributorBase):
    """Cannonball solar radiation pressure, shadowed by the central body.

    Requires a spacecraft with ``cr`` and ``srp_area``.

    Args:
        eclipse_model: ``"conical"``, ``"cylindrical"`` or ``"none"``.
        enabled: Include the term in the summed acceleration.
    """

    eclipse_model: str = "conical"
    enabled: bool = True

    kind: ClassVar[str] = "srp"

    def __post_init__(self):
        if self.eclipse_model not in ECLIPSE_MODELS:
            raise InvalidConfiguration(
                f"unknown eclipse model '{self.eclipse_model}'; "
                f"expected one of {', '.join(ECLIPSE_MODELS)}"
            )

    def validate(self, central, bodies):
        if central.name not in EPHEMERIS_BODIES:
            raise InvalidConfiguration(
                f"radiation pressure needs the Sun's position relative to {central.name}"
            )

    def check_spacecraft(self, ctx):
        missing = [name for name in ("cr", "srp_area") if getattr(ctx, name) is None]
        if missing:
            raise InvalidConfiguration(
                f"radiation pressure requires spacecraft attributes: {', '.join(missing)}"
            )

    def acceleration(self, ctx: ForceContext, epc: Epoch, x: Array) -> Array:
        r = x[:3]
        r_sun = body_position("Sun", ctx.central.name, epc)

        if ctx.central.name == "Sun" or self.eclipse_model == "none":
            nu = 1.0
        elif self.eclipse_model == "conical":
            nu = eclipse_conical(r, r_sun, ctx.central.radius)
        else:
            nu = eclipse_cylindrical(r, r_sun, ctx.central.radius)

        return nu * accel_srp(r, r_sun, ctx.mass, ctx.cr, ctx.srp_area, P_SUN)


@dataclass(frozen=True)
class RelativisticCorrection(_ContributorBase):
    """Schwarzschild correction of the central body's gravity.

    Not yet cross-checked against an independent reference: a model that
    enables it is only accepted while
    :func:`odjax.config.set_unvalidated` is on.

    Args:
        enabled: Include the term in the summed acceleration.
    """

    enabled: bool = True

    kind: ClassVar[str] = "relativity"
    velocity_dependent: ClassVar[bool] = True
    validated: ClassVar[bool] = False

    def acceleration(self, ctx: ForceContext, epc: Epoch, x: Array) -> Array:
        return accel_relativity(x, ctx.central.gm)


Contributor = Union[PointMass, Drag, SolarRadiationPressure, RelativisticCorrection]

CONTRIBUTOR_TYPES = (PointMass, Drag, SolarRadiationPressure, RelativisticCorrection)
