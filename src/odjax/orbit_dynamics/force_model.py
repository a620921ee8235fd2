"""Force model composition and the bound dynamics it produces.

A :class:`ForceModel` is an ordered, de-duplicated tuple of contributors
about one central body.  It holds no spacecraft data: :meth:`ForceModel.bind`
combines it with a spacecraft's physical properties and a reference epoch
into a :class:`Dynamics` object whose ``__call__`` is the
``dynamics(t, state) -> derivative`` closure every odjax integrator expects.

Contributions are summed in the model's order, so results are reproducible
bit-for-bit for a given model.
"""

from __future__ import annotations

import logging

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.bodies import DEFAULT_BODIES, BodyRegistry, CelestialBody
from odjax.config import get_dtype, unvalidated_enabled
from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.orbit_dynamics.contributors import (
    CONTRIBUTOR_TYPES,
    Contributor,
    Drag,
    ForceContext,
    PointMass,
    SolarRadiationPressure,
)

logger = logging.getLogger(__name__)


class ForceModel:
    """Composed set of acceleration contributors about a central body.

    A point-mass term for the central body is always present; it is
    prepended when *contributors* does not name one.  Repeating an
    identical contributor is harmless, but two different contributors of
    a single-instance kind (e.g. two drag terms with different density
    models) are a configuration error.

    Args:
        central_body: Name (or registered body) at the origin of the dynamics.
        contributors: Acceleration terms, in summation order.
        bodies: Registry the body names resolve against.

    Raises:
        InvalidConfiguration: For an unknown body, conflicting duplicates,
            a contributor that does not apply to the central body, or an
            unvalidated contributor while the gate is closed.

    Examples:
        ```python
        from odjax.orbit_dynamics import ForceModel, PointMass, Drag
        model = ForceModel("Earth", [PointMass("Moon"), Drag("exponential")])
        [c.kind for c in model.contributors]
        ```
    """

    def __init__(
        self,
        central_body: str | CelestialBody = "Earth",
        contributors=(),
        bodies: BodyRegistry = DEFAULT_BODIES,
    ):
        self._bodies = bodies
        self._central = bodies.resolve(central_body)

        ordered: dict[tuple, Contributor] = {}
        for contributor in contributors:
            if not isinstance(contributor, CONTRIBUTOR_TYPES):
                raise InvalidConfiguration(
                    f"unsupported force contributor {contributor!r}; expected one of "
                    f"{', '.join(t.__name__ for t in CONTRIBUTOR_TYPES)}"
                )
            key = contributor.key
            if key in ordered:
                if ordered[key] != contributor:
                    raise InvalidConfiguration(
                        f"conflicting {contributor.kind} contributors: "
                        f"{ordered[key]!r} and {contributor!r}"
                    )
                continue
            ordered[key] = contributor

        central_key = PointMass(self._central.name).key
        if central_key not in ordered:
            ordered = {central_key: PointMass(self._central.name), **ordered}

        for contributor in ordered.values():
            contributor.validate(self._central, bodies)
            if contributor.enabled and not contributor.validated and not unvalidated_enabled():
                raise InvalidConfiguration(
                    f"{type(contributor).__name__} is an unvalidated capability; "
                    "enable it with odjax.config.set_unvalidated(True)"
                )

        self._contributors = tuple(ordered.values())

    # ──────────────────────────────────────────────
    # Presets
    # ──────────────────────────────────────────────

    @classmethod
    def two_body(cls, body: str = "Earth", bodies: BodyRegistry = DEFAULT_BODIES) -> ForceModel:
        """Point-mass gravity of *body* only."""
        return cls(body, (PointMass(body),), bodies)

    @classmethod
    def leo_default(cls, bodies: BodyRegistry = DEFAULT_BODIES) -> ForceModel:
        """Earth gravity with Sun and Moon third-body terms, drag, and SRP.

        The bound spacecraft needs ``cd``, ``drag_area``, ``cr`` and
        ``srp_area``.
        """
        return cls(
            "Earth",
            (
                PointMass("Earth"),
                PointMass("Sun"),
                PointMass("Moon"),
                Drag("harris_priester"),
                SolarRadiationPressure("conical"),
            ),
            bodies,
        )

    # ──────────────────────────────────────────────
    # Accessors and derived models
    # ──────────────────────────────────────────────

    @property
    def central_body(self) -> CelestialBody:
        return self._central

    @property
    def bodies(self) -> BodyRegistry:
        return self._bodies

    @property
    def contributors(self) -> tuple:
        """All contributors, enabled or not, in summation order."""
        return self._contributors

    @property
    def enabled_contributors(self) -> tuple:
        """Contributors that take part in the summed acceleration."""
        return tuple(c for c in self._contributors if c.enabled)

    @property
    def velocity_dependent(self) -> bool:
        """``True`` if any enabled contributor depends on velocity."""
        return any(c.velocity_dependent for c in self.enabled_contributors)

    def with_contributor(self, contributor: Contributor) -> ForceModel:
        """Return a new model with *contributor* appended (or replacing its key)."""
        kept = [c for c in self._contributors if c.key != contributor.key]
        return ForceModel(self._central, (*kept, contributor), self._bodies)

    def without(self, kind: str) -> ForceModel:
        """Return a new model with every contributor of *kind* removed.

        The central body's point-mass term cannot be removed; disable it
        explicitly with ``PointMass(body, enabled=False)`` if needed.
        """
        kept = [
            c
            for c in self._contributors
            if c.kind != kind or c == PointMass(self._central.name)
        ]
        return ForceModel(self._central, kept, self._bodies)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ForceModel):
            return NotImplemented
        return (
            self._central == other._central
            and self._contributors == other._contributors
            and self._bodies is other._bodies
        )

    def __hash__(self) -> int:
        return hash((self._central, self._contributors))

    def __repr__(self) -> str:
        terms = ", ".join(repr(c) for c in self._contributors)
        return f"ForceModel({self._central.name!r}, [{terms}])"

    # ──────────────────────────────────────────────
    # Binding
    # ──────────────────────────────────────────────

    def bind(self, spacecraft, epoch_0: Epoch | None = None) -> Dynamics:
        """Bind the model to a spacecraft's physical properties.

        Args:
            spacecraft: A :class:`~odjax.spacecraft.Spacecraft` or its
                :class:`~odjax.spacecraft.SpacecraftParams` snapshot.
            epoch_0: Reference epoch for the integration time ``t``.
                Defaults to the spacecraft's epoch.

        Returns:
            Dynamics: The bound derivative function.

        Raises:
            InvalidConfiguration: If the spacecraft's state is not in an
                inertial frame centred on the central body, or lacks the
                attributes an enabled contributor needs.
        """
        params = spacecraft.snapshot() if hasattr(spacecraft, "snapshot") else spacecraft
        frame = params.state.frame
        if not frame.inertial or frame.center.name != self._central.name:
            raise InvalidConfiguration(
                f"{params.name}: state frame {frame} is not an inertial frame "
                f"centred on {self._central.name}"
            )

        ctx = ForceContext(
            central=self._central,
            bodies=self._bodies,
            mass=params.dry_mass,
            cd=params.cd,
            cr=params.cr,
            drag_area=params.drag_area,
            srp_area=params.srp_area,
        )
        for contributor in self.enabled_contributors:
            contributor.check_spacecraft(ctx)

        epoch_0 = params.state.epoch if epoch_0 is None else epoch_0
        return Dynamics(self, ctx, epoch_0)


class Dynamics:
    """A force model bound to a spacecraft and reference epoch.

    The integration time ``t`` is seconds since :attr:`epoch_0`; states are
    ``[x, y, z, vx, vy, vz]`` relative to the central body in its inertial
    frame [m, m/s].

    Registered as a JAX pytree whose only leaf is :attr:`epoch_0`, so a
    compiled step built for one binding is reused by every binding of the
    same model and spacecraft properties.

    Args:
        model: The source force model.
        ctx: Bodies and spacecraft properties for the contributors.
        epoch_0: Reference epoch.
    """

    def __init__(self, model: ForceModel, ctx: ForceContext, epoch_0: Epoch):
        self.model = model
        self.ctx = ctx
        self.epoch_0 = epoch_0
        self._contributors = model.enabled_contributors

    @property
    def velocity_dependent(self) -> bool:
        return self.model.velocity_dependent

    def epoch(self, t: ArrayLike) -> Epoch:
        """Epoch at integration time *t*."""
        return self.epoch_0 + t

    def acceleration(self, t: ArrayLike, x: ArrayLike) -> Array:
        """Summed acceleration of the enabled contributors [m/s^2]."""
        epc = self.epoch_0 + t
        a = jnp.zeros(3, dtype=get_dtype())
        for contributor in self._contributors:
            a = a + contributor.acceleration(self.ctx, epc, x)
        return a

    def __call__(self, t: ArrayLike, x: ArrayLike) -> Array:
        """State derivative ``[vx, vy, vz, ax, ay, az]``."""
        return jnp.concatenate([x[3:6], self.acceleration(t, x)])

    def jacobian(self, t: ArrayLike, x: ArrayLike) -> Array:
        """6x6 partial derivative matrix ``A = d(dx/dt)/dx``.

        The lower block is the sum of the contributor Jacobians in model
        order; the upper block is ``[0 I]``.
        """
        epc = self.epoch_0 + t
        da = jnp.zeros((3, 6), dtype=get_dtype())
        for contributor in self._contributors:
            da = da + contributor.jacobian(self.ctx, epc, x)
        top = jnp.concatenate(
            [jnp.zeros((3, 3), dtype=get_dtype()), jnp.eye(3, dtype=get_dtype())], axis=1
        )
        return jnp.concatenate([top, da], axis=0)

    def variational(self, t: ArrayLike, y: ArrayLike) -> Array:
        """Derivative of the augmented state ``[x, vec(Phi)]`` (42 elements).

        ``Phi`` is the 6x6 state transition matrix stored row-major; it
        obeys ``dPhi/dt = A(t, x) Phi``.
        """
        x = y[:6]
        phi = jnp.reshape(y[6:], (6, 6))
        dphi = self.jacobian(t, x) @ phi
        return jnp.concatenate([self(t, x), jnp.reshape(dphi, (36,))])

    def __repr__(self) -> str:
        return f"Dynamics({self.model!r}, epoch_0={self.epoch_0})"


jax.tree_util.register_pytree_node(
    Dynamics,
    lambda d: ((d.epoch_0,), (d.model, d.ctx)),
    lambda aux, children: Dynamics(aux[0], aux[1], children[0]),
)
