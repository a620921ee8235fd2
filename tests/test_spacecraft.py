"""Tests for odjax.spacecraft."""

import threading

import jax.numpy as jnp
import pytest

from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.spacecraft import Spacecraft, SpacecraftParams
from odjax.state import State

_EPC = Epoch(2018, 2, 27)


def _state(epc=_EPC):
    return State.from_keplerian(7000e3, 0.001, 51.6, 20.0, 30.0, 40.0, epc, use_degrees=True)


class TestValidation:
    def test_dry_mass_positive(self):
        with pytest.raises(InvalidConfiguration, match="dry_mass"):
            Spacecraft("sat", _state(), dry_mass=0.0)

    @pytest.mark.parametrize("attr", ["cd", "cr", "drag_area", "srp_area"])
    def test_non_negative_properties(self, attr):
        with pytest.raises(InvalidConfiguration, match=attr):
            Spacecraft("sat", _state(), dry_mass=10.0, **{attr: -1.0})

    def test_variances(self):
        with pytest.raises(InvalidConfiguration, match="variances"):
            Spacecraft("sat", _state(), dry_mass=10.0, cd_variance=-0.1)

    def test_covariance_shape(self):
        with pytest.raises(InvalidConfiguration, match="covariance"):
            Spacecraft("sat", _state(), dry_mass=10.0, covariance=jnp.eye(3))

    def test_unset_properties(self):
        sc = Spacecraft("sat", _state(), dry_mass=10.0)
        assert sc.cd is None
        assert sc.covariance is None
        assert sc.cd_variance == 0.0


class TestSnapshots:
    def test_snapshot_is_immutable(self):
        sc = Spacecraft("sat", _state(), dry_mass=10.0)
        params = sc.snapshot()
        assert isinstance(params, SpacecraftParams)
        with pytest.raises(AttributeError):
            params.dry_mass = 20.0

    def test_from_params(self):
        sc = Spacecraft("sat", _state(), dry_mass=10.0, cd=2.2)
        copy = Spacecraft.from_params(sc.snapshot())
        assert copy.snapshot() is sc.snapshot()
        assert copy.cd == 2.2

    def test_commit_state(self):
        sc = Spacecraft("sat", _state(), dry_mass=10.0, cd=2.2)
        before = sc.snapshot()
        later = _state().to_cartesian().with_vector(_state().to_cartesian().vector, _EPC + 60.0)
        sc.commit_state(later)
        assert sc.state is later
        assert sc.epoch == _EPC + 60.0
        assert sc.cd == 2.2
        assert before.state.epoch == _EPC

    def test_commit_estimate(self):
        sc = Spacecraft("sat", _state(), dry_mass=10.0, covariance=jnp.eye(6))
        sc.commit_estimate(_state(_EPC + 10.0), 2.0 * jnp.eye(6))
        assert jnp.array_equal(sc.covariance, 2.0 * jnp.eye(6))
        assert sc.epoch == _EPC + 10.0

    def test_concurrent_commits_keep_whole_snapshots(self):
        sc = Spacecraft("sat", _state(), dry_mass=10.0, covariance=jnp.eye(6))
        pairs = [(_state(_EPC + float(k)), float(k + 1) * jnp.eye(6)) for k in range(8)]

        threads = [threading.Thread(target=sc.commit_estimate, args=pair) for pair in pairs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        params = sc.snapshot()
        k = round(float(params.state.epoch - _EPC))
        assert float(params.covariance[0, 0]) == k + 1.0

    def test_repr(self):
        assert "sat" in repr(Spacecraft("sat", _state(), dry_mass=10.0))
