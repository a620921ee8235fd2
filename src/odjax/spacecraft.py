"""Spacecraft: the owner of a propagated and estimated state.

A :class:`Spacecraft` holds an immutable snapshot (:class:`SpacecraftParams`)
of its state, physical properties and covariance. Only two operations
replace that snapshot: :meth:`Spacecraft.commit_state`, called by the
propagator once a propagation has completed, and
:meth:`Spacecraft.commit_estimate`, called by the estimator after a
measurement update. Each replacement is a single reference swap, so an
observer never sees a half-updated spacecraft.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from odjax.config import get_dtype
from odjax.errors import InvalidConfiguration
from odjax.state import State

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SpacecraftParams:
    """Immutable snapshot of a spacecraft.

    Attributes:
        name: Identifier used in logs and results.
        state: Current orbital state.
        dry_mass: Mass [kg].
        cd: Drag coefficient, ``None`` when not modelled.
        cr: Reflectivity coefficient, ``None`` when not modelled.
        drag_area: Drag reference area [m^2].
        srp_area: Radiation pressure reference area [m^2].
        covariance: 6x6 Cartesian state covariance [m, m/s].
        cd_variance: Variance of ``cd``.
        cr_variance: Variance of ``cr``.
    """

    name: str
    state: State
    dry_mass: float
    cd: float | None = None
    cr: float | None = None
    drag_area: float | None = None
    srp_area: float | None = None
    covariance: Array | None = None
    cd_variance: float = 0.0
    cr_variance: float = 0.0

    def __post_init__(self):
        if not self.dry_mass > 0.0:
            raise InvalidConfiguration(f"{self.name}: dry_mass must be positive, got {self.dry_mass}")
        for attr in ("cd", "cr", "drag_area", "srp_area"):
            value = getattr(self, attr)
            if value is not None and value < 0.0:
                raise InvalidConfiguration(f"{self.name}: {attr} must be non-negative, got {value}")
        if self.cd_variance < 0.0 or self.cr_variance < 0.0:
            raise InvalidConfiguration(f"{self.name}: coefficient variances must be non-negative")
        if self.covariance is not None:
            cov = jnp.asarray(self.covariance, dtype=get_dtype())
            if cov.shape != (6, 6):
                raise InvalidConfiguration(
                    f"{self.name}: covariance must have shape (6, 6), got {cov.shape}"
                )
            object.__setattr__(self, "covariance", cov)


class Spacecraft:
    """A spacecraft with a single owner of its mutable state.

    Args:
        name: Identifier.
        state: Initial state (Cartesian or Keplerian).
        dry_mass: Mass [kg].
        cd: Drag coefficient. Required when the force model includes drag.
        cr: Reflectivity coefficient. Required for radiation pressure.
        drag_area: Drag reference area [m^2].
        srp_area: Radiation pressure reference area [m^2].
        covariance: Initial 6x6 state covariance.
        cd_variance: Variance of ``cd``.
        cr_variance: Variance of ``cr``.

    Raises:
        InvalidConfiguration: If a physical property is out of range.

    Examples:
        ```python
        from odjax import Epoch, Spacecraft, State
        epc = Epoch(2018, 2, 27)
        state = State.from_keplerian(7000e3, 0.001, 0.5, 0.0, 0.0, 0.0, epc)
        sc = Spacecraft("sat", state, dry_mass=100.0, cd=2.2, drag_area=1.0)
        ```
    """

    def __init__(
        self,
        name: str,
        state: State,
        dry_mass: float,
        cd: float | None = None,
        cr: float | None = None,
        drag_area: float | None = None,
        srp_area: float | None = None,
        covariance: ArrayLike | None = None,
        cd_variance: float = 0.0,
        cr_variance: float = 0.0,
    ):
        self._params = SpacecraftParams(
            name=name,
            state=state,
            dry_mass=dry_mass,
            cd=cd,
            cr=cr,
            drag_area=drag_area,
            srp_area=srp_area,
            covariance=covariance,
            cd_variance=cd_variance,
            cr_variance=cr_variance,
        )
        self._lock = threading.Lock()

    @classmethod
    def from_params(cls, params: SpacecraftParams) -> Spacecraft:
        """Create a spacecraft that starts from an existing snapshot."""
        obj = cls.__new__(cls)
        obj._params = params
        obj._lock = threading.Lock()
        return obj

    def snapshot(self) -> SpacecraftParams:
        """Return the current immutable snapshot."""
        return self._params

    @property
    def name(self) -> str:
        return self._params.name

    @property
    def state(self) -> State:
        return self._params.state

    @property
    def epoch(self):
        return self._params.state.epoch

    @property
    def dry_mass(self) -> float:
        return self._params.dry_mass

    @property
    def cd(self) -> float | None:
        return self._params.cd

    @property
    def cr(self) -> float | None:
        return self._params.cr

    @property
    def drag_area(self) -> float | None:
        return self._params.drag_area

    @property
    def srp_area(self) -> float | None:
        return self._params.srp_area

    @property
    def covariance(self) -> Array | None:
        return self._params.covariance

    @property
    def cd_variance(self) -> float:
        return self._params.cd_variance

    @property
    def cr_variance(self) -> float:
        return self._params.cr_variance

    def commit_state(self, state: State) -> None:
        """Replace the orbital state after a completed propagation."""
        params = replace(self._params, state=state)
        with self._lock:
            self._params = params
        logger.debug("%s: committed state at %s", self.name, state.epoch)

    def commit_estimate(self, state: State, covariance: ArrayLike) -> None:
        """Replace state and covariance together after a measurement update."""
        params = replace(self._params, state=state, covariance=covariance)
        with self._lock:
            self._params = params
        logger.debug("%s: committed estimate at %s", self.name, state.epoch)

    def __repr__(self) -> str:
        return f"Spacecraft({self.name!r}, {self.state!r})"
