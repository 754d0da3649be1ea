from __future__ import annotations

import math
from typing import Any

import jax.numpy as jnp
import numpy as np

from rbfsweep.config import PhysicalParameters
from rbfsweep.errors import SingularSystemError
from rbfsweep.linalg import condition_number, growth_factor, relative_residual, require_x64, solve_dense
from rbfsweep.rbf.blocks import CollocationBlocks, LinearSystem, assemble_system, reference_center
from rbfsweep.rbf.field import CollocationField
from rbfsweep.rbf.geometry import BallGeometry
from rbfsweep.rbf.kernels import RBFKernel, pick_rbf

Array = Any

__all__ = ["solve_system", "solve_collocation", "field_from_system"]


def solve_system(
    system: LinearSystem,
    *,
    method: str = "solve",
    residual_tol: float = 1e-8,
    max_condition: float | None = None,
    max_growth: float = 1e15,
    verbose: bool = False,
) -> Array:
    """Dense direct solve of a collocation system for its coefficients.

    Non-square systems (MFS with fewer sources than collocation points) are
    always solved in the least-squares sense. Raises
    :class:`SingularSystemError` instead of returning untrustworthy
    coefficients.
    """
    require_x64()
    A, b = system.matrix, system.rhs
    n_rows, n_cols = A.shape
    if not system.is_square and method != "lstsq":
        method = "lstsq"

    cond = None
    if max_condition is not None:
        cond = condition_number(A)
        if not (math.isfinite(cond) and cond <= max_condition):
            raise SingularSystemError(
                f"Collocation matrix {n_rows}x{n_cols} is ill-conditioned: cond≈{cond:.3e} > {max_condition:.3e}",
                condition=cond,
            )

    coefs, rank = solve_dense(A, b, method=method)
    if not bool(jnp.all(jnp.isfinite(coefs))):
        raise SingularSystemError(f"Collocation matrix {n_rows}x{n_cols} is singular (non-finite coefficients).")

    res = relative_residual(A, coefs, b)
    if method == "lstsq":
        if rank < n_cols:
            raise SingularSystemError(
                f"Least-squares system {n_rows}x{n_cols} is rank deficient (rank={rank}).", residual=res
            )
    elif not res <= residual_tol:
        raise SingularSystemError(
            f"Solve residual {res:.3e} exceeds tolerance {residual_tol:.1e} for {n_rows}x{n_cols} system.",
            residual=res,
            condition=cond,
        )

    growth = growth_factor(A, coefs, b)
    if not growth <= max_growth:
        raise SingularSystemError(
            f"Collocation matrix {n_rows}x{n_cols} is numerically singular: "
            f"||A|| ||x|| / ||b|| = {growth:.3e} > {max_growth:.1e}",
            residual=res,
            condition=cond,
        )

    if verbose:
        cond_txt = "" if cond is None else f", cond≈{cond:.3e}"
        print(
            f"[SOLVE] method={method}, system={n_rows}x{n_cols} "
            f"(int={system.n_interior}, bdy={system.n_boundary}, dir={system.n_dirichlet}), "
            f"residual={res:.3e}{cond_txt}"
        )
    return coefs


def field_from_system(
    system: LinearSystem,
    coefs: Array,
    kernel: RBFKernel,
    ep: float,
    physics: PhysicalParameters,
    **metadata: Any,
) -> CollocationField:
    meta = {
        "kernel": kernel.name,
        "ep": float(ep),
        "n_centers": int(system.matrix.shape[1]),
        "n_rows": int(system.matrix.shape[0]),
        "n_dirichlet": int(system.n_dirichlet),
    }
    meta.update(metadata)
    return CollocationField(
        centers=system.centers,
        coefs=coefs,
        kernel=kernel,
        ep=float(ep),
        physics=physics,
        metadata=meta,
    )


def solve_collocation(
    geometry: BallGeometry,
    physics: PhysicalParameters,
    *,
    kernel: RBFKernel | str = "imq",
    ep: float = 1.0,
    reference: Array | None = None,
    blocks: CollocationBlocks | None = None,
    method: str = "solve",
    residual_tol: float = 1e-8,
    max_condition: float | None = None,
    max_growth: float = 1e15,
    verbose: bool = False,
) -> CollocationField:
    """Solve Laplace + Neumann (+ one Dirichlet at ``reference``) on the ball.

    Passing prebuilt ``blocks`` reuses the Laplace/Neumann blocks of the base
    centers; the assembled system is the same either way.
    """
    require_x64()
    if isinstance(kernel, str):
        kernel = pick_rbf(kernel)
    ref = None if reference is None else jnp.asarray(reference, dtype=jnp.float64).reshape(3)
    extra = None if ref is None else reference_center(geometry, ref)

    if blocks is not None:
        system = blocks.system(ref, extra)
    else:
        system = assemble_system(
            kernel,
            ep,
            physics,
            geometry.interior,
            geometry.boundary,
            geometry.normals,
            geometry.centers,
            reference=ref,
            extra_center=extra,
        )
    coefs = solve_system(
        system,
        method=method,
        residual_tol=residual_tol,
        max_condition=max_condition,
        max_growth=max_growth,
        verbose=verbose,
    )
    return field_from_system(
        system,
        coefs,
        kernel,
        ep,
        physics,
        method=method if system.is_square else "lstsq",
        reference=None if ref is None else [float(v) for v in np.asarray(ref)],
    )
