import jax.numpy as jnp
import pytest

from odjax.config import set_dtype, set_unvalidated


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    With pytest-xdist, each worker process starts with the default module
    state. This fixture ensures all tests get float64 and a closed
    unvalidated-capability gate unless they explicitly override them.
    """
    set_dtype(jnp.float64)
    set_unvalidated(False)
    yield
    set_unvalidated(False)
    set_dtype(jnp.float64)
