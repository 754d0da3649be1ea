from __future__ import annotations

import math
from typing import Any

import jax
import jax.numpy as jnp
import jax.scipy.linalg as jsp_linalg

from rbfsweep.errors import ConfigurationError, InvalidModeError, SingularSystemError

Array = Any

__all__ = [
    "SOLVE_METHODS",
    "require_x64",
    "distance_matrix",
    "difference_matrix",
    "solve_dense",
    "relative_residual",
    "growth_factor",
    "condition_number",
]

SOLVE_METHODS = ("solve", "lu", "lstsq")


def require_x64() -> None:
    if not jax.config.jax_enable_x64:
        raise ConfigurationError(
            "rbfsweep requires JAX 64-bit mode for numerical stability. "
            "Set `JAX_ENABLE_X64=1` in your environment (recommended) or call "
            "`jax.config.update('jax_enable_x64', True)` before importing `rbfsweep`."
        )


@jax.jit
def distance_matrix(X: Array, C: Array) -> Array:
    """Pairwise Euclidean distances ``|x_i - c_j|`` as an (N, M) matrix."""
    diff = X[:, None, :] - C[None, :, :]
    return jnp.sqrt(jnp.sum(diff * diff, axis=-1))


@jax.jit
def difference_matrix(x: Array, c: Array) -> Array:
    """Component differences ``x_i - c_j`` for one coordinate column."""
    return x[:, None] - c[None, :]


def solve_dense(A: Array, b: Array, *, method: str = "solve") -> tuple[Array, int]:
    """Dense direct solve of ``A x = b``.

    Returns ``(x, rank)``. ``rank`` is only computed by ``lstsq``; the square
    solvers report the full column count.
    """
    A = jnp.asarray(A)
    b = jnp.asarray(b)
    n_rows, n_cols = A.shape
    if method == "lstsq":
        x, _res, rank, _sv = jnp.linalg.lstsq(A, b)
        return x, int(rank)
    if method not in SOLVE_METHODS:
        raise InvalidModeError(f"Unknown solver {method!r}; expected one of {SOLVE_METHODS}.")
    if n_rows != n_cols:
        raise SingularSystemError(
            f"Solver {method!r} needs a square system, got {n_rows}x{n_cols}; use 'lstsq'."
        )
    if method == "lu":
        lu, piv = jsp_linalg.lu_factor(A)
        return jsp_linalg.lu_solve((lu, piv), b), n_cols
    return jnp.linalg.solve(A, b), n_cols


def relative_residual(A: Array, x: Array, b: Array) -> float:
    r = jnp.asarray(A) @ jnp.asarray(x) - jnp.asarray(b)
    denom = jnp.maximum(jnp.linalg.norm(b), jnp.linalg.norm(A, ord="fro") * jnp.linalg.norm(x))
    return float(jnp.linalg.norm(r) / jnp.maximum(denom, 1e-300))


def growth_factor(A: Array, x: Array, b: Array) -> float:
    """``||A||_F ||x|| / ||b||``, a cheap lower bound on ``sqrt(n) cond(A)``.

    Near-singular systems solved by a backward-stable method still show a
    small residual, but their coefficients blow up and this ratio with them.
    """
    nb = float(jnp.linalg.norm(b))
    nx = float(jnp.linalg.norm(x))
    if nb == 0.0:
        return 0.0 if nx == 0.0 else math.inf
    return float(jnp.linalg.norm(A, ord="fro")) * nx / nb


def condition_number(A: Array) -> float:
    """2-norm condition number from the singular values (O(n^3))."""
    s = jnp.linalg.svd(jnp.asarray(A), compute_uv=False)
    return float(s[0] / jnp.maximum(s[-1], 1e-300))
