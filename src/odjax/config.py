"""Module-wide numerical and capability configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
throughout odjax.  The default is ``jnp.float64``: orbit propagation and
estimation tolerances (1e-9 relative and below) are far beneath float32
resolution, so JAX's 64-bit mode (``jax_enable_x64``) is switched on when
this module is imported.

Call ``set_dtype`` **before** any JIT compilation, just like JAX's own
``jax.config.update("jax_enable_x64", True)``.  Under JIT, ``get_dtype()``
runs during tracing and its result is baked into the compiled program.

The module also holds the *unvalidated* capability gate.  Features that
have not been cross-checked against an independent reference are refused
at configuration time unless the gate is opened with
``set_unvalidated(True)``.  The gate never changes the numerical behaviour
of validated features.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64)

jax.config.update("jax_enable_x64", True)

_dtype = jnp.float64

_unvalidated = False


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for odjax.

    Must be called **before** any ``jax.jit`` compilation.  In eager mode
    the change takes effect immediately.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is (re-)enabled via
    ``jax.config.update("jax_enable_x64", True)``.

    Args:
        dtype: One of ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32``,
            or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float64``).
    """
    return _dtype


def get_epoch_eq_tolerance() -> float:
    """Return the dtype-adaptive tolerance for Epoch equality comparisons.

    - ``float16``:  0.1 s
    - ``bfloat16``: 0.1 s
    - ``float32``:  1e-3 s
    - ``float64``:  1e-9 s

    Returns:
        float: Tolerance in seconds.
    """
    if _dtype == jnp.float64:
        return 1e-9
    if _dtype == jnp.float32:
        return 1e-3
    return 0.1


def set_unvalidated(enabled: bool) -> None:
    """Open or close the gate on unvalidated capabilities.

    Capabilities behind the gate (see :func:`unvalidated_enabled`) raise
    :class:`~odjax.errors.InvalidConfiguration` when configured while the
    gate is closed.

    Args:
        enabled: ``True`` to allow unvalidated capabilities.
    """
    global _unvalidated
    _unvalidated = bool(enabled)


def unvalidated_enabled() -> bool:
    """Return whether unvalidated capabilities may be configured.

    Currently gated:

    - :class:`~odjax.orbit_dynamics.RelativisticCorrection`

    Returns:
        bool: ``True`` if the gate is open (default ``False``).
    """
    return _unvalidated
