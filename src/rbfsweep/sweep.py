"""Reference-point sweep over the sphere surface.

For every evaluation point ``i`` the computed and the analytic potentials are
both referenced to ``i`` and compared, giving one error per candidate
reference point:

- mode A (``bc_choice=1``): Neumann only. One solve; the reference is imposed
  afterwards by subtracting ``phi[i]`` from both fields.
- mode B (``bc_choice=2``): Neumann plus one Dirichlet row fixing the total
  potential to zero at ``i``; one solve per evaluation point.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from rbfsweep.analytic import bounded_sphere_potential, unbounded_potential
from rbfsweep.config import ErrorOptions, PhysicalParameters, SweepConfig
from rbfsweep.errors import SingularSystemError
from rbfsweep.linalg import require_x64
from rbfsweep.rbf.blocks import CollocationBlocks
from rbfsweep.rbf.geometry import BallGeometry, ball_geometry, sphere_spiral_points
from rbfsweep.rbf.kernels import RBFKernel, pick_rbf
from rbfsweep.rbf.solver import solve_collocation
from rbfsweep.validation import error_compute, shift_to_reference

__all__ = ["SweepResult", "reference_point_sweep", "run_mode_a", "run_mode_b", "evaluation_points"]


@dataclass(frozen=True)
class SweepResult:
    errors: np.ndarray  # (N_eval,), nan where the solve failed
    eval_points: np.ndarray  # (N_eval,3)
    phi_analytic: np.ndarray  # (N_eval,)
    mode: int
    failed: tuple[int, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def valid(self) -> np.ndarray:
        return np.isfinite(self.errors)


def evaluation_points(n_eval: int, radius: float) -> np.ndarray:
    """Evaluation (and candidate reference) points: a golden spiral on the sphere."""
    return sphere_spiral_points(n_eval, radius)


def run_mode_a(
    geometry: BallGeometry,
    physics: PhysicalParameters,
    kernel: RBFKernel,
    ep: float,
    eval_points: np.ndarray,
    phi_analytic: np.ndarray,
    *,
    error: ErrorOptions | None = None,
    blocks: CollocationBlocks | None = None,
    method: str = "solve",
    residual_tol: float = 1e-8,
    max_condition: float | None = None,
    max_growth: float = 1e15,
    verbose: bool = False,
) -> tuple[np.ndarray, dict[str, Any]]:
    """Neumann-only solve, then one shifted comparison per evaluation point."""
    fld = solve_collocation(
        geometry,
        physics,
        kernel=kernel,
        ep=ep,
        blocks=blocks,
        method=method,
        residual_tol=residual_tol,
        max_condition=max_condition,
        max_growth=max_growth,
        verbose=verbose,
    )
    phi = np.asarray(fld.phi(eval_points))
    phi_an = np.asarray(phi_analytic, dtype=float)

    n_eval = len(eval_points)
    errors = np.zeros(n_eval)
    for i in range(n_eval):
        errors[i] = error_compute(shift_to_reference(phi, i), shift_to_reference(phi_an, i), error)
    return errors, {"phi": phi}


def run_mode_b(
    geometry: BallGeometry,
    physics: PhysicalParameters,
    kernel: RBFKernel,
    ep: float,
    eval_points: np.ndarray,
    phi_analytic: np.ndarray,
    *,
    error: ErrorOptions | None = None,
    blocks: CollocationBlocks | None = None,
    method: str = "solve",
    residual_tol: float = 1e-8,
    max_condition: float | None = None,
    max_growth: float = 1e15,
    workers: int = 1,
    verbose: bool = False,
) -> tuple[np.ndarray, dict[str, Any]]:
    """One Neumann + Dirichlet solve per evaluation point.

    A :class:`SingularSystemError` in one iteration leaves ``nan`` at that
    index and the sweep continues.
    """
    eval_points = np.asarray(eval_points, dtype=float)
    phi_an = np.asarray(phi_analytic, dtype=float)
    phi_F = np.asarray(
        unbounded_potential(eval_points, physics.dipole_location, physics.dipole_moment, physics.conductivity)
    )
    n_eval = len(eval_points)
    errors = np.full(n_eval, np.nan)
    anchor = np.full(n_eval, np.nan)
    failed: list[int] = []

    def one(i: int) -> tuple[float, float]:
        fld = solve_collocation(
            geometry,
            physics,
            kernel=kernel,
            ep=ep,
            reference=eval_points[i],
            blocks=blocks,
            method=method,
            residual_tol=residual_tol,
            max_condition=max_condition,
            max_growth=max_growth,
        )
        phi_comp = np.asarray(fld.phi0(eval_points)) + phi_F
        # zero at i up to solve round-off; re-anchor so the residue is not counted as error
        return error_compute(shift_to_reference(phi_comp, i), shift_to_reference(phi_an, i), error), float(phi_comp[i])

    def record(i: int, fut_or_call) -> None:
        try:
            errors[i], anchor[i] = fut_or_call()
        except SingularSystemError as exc:
            failed.append(i)
            if verbose:
                print(f"[WARN] reference point {i}: {exc}")

    if workers <= 1:
        for i in range(n_eval):
            if verbose:
                print(f"[SWEEP] iter {i + 1} of {n_eval}")
            record(i, lambda i=i: one(i))
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(one, i): i for i in range(n_eval)}
            for done, future in enumerate(as_completed(futures), start=1):
                record(futures[future], future.result)
                if verbose:
                    print(f"[SWEEP] iter {done} of {n_eval}")

    failed.sort()
    finite = anchor[np.isfinite(anchor)]
    return errors, {
        "failed": tuple(failed),
        "anchor_values": anchor,
        "max_anchor_residual": float(np.max(np.abs(finite))) if finite.size else float("nan"),
    }


def reference_point_sweep(config: SweepConfig, *, geometry: BallGeometry | None = None) -> SweepResult:
    """Run the full experiment described by ``config``.

    Configuration errors, invalid modes, geometry errors and a failed mode-A
    solve abort the run; mode-B solve failures are reported per point.
    """
    config.validate()
    require_x64()
    physics = config.physics
    R = physics.radius

    eval_pts = evaluation_points(config.n_eval, R)
    phi_an = np.asarray(
        bounded_sphere_potential(R, physics.conductivity, physics.dipole_location, physics.dipole_moment, eval_pts)
    )

    if geometry is None:
        geometry = ball_geometry(
            R,
            config.n_points,
            config.sol_type,
            config.int_point_dist,
            config.bdy_point_dist,
            physics.dipole_location,
            config.dip_cushion,
            enforce_cushion=config.enforce_cushion,
            boundary_fraction=config.boundary_fraction,
            mfs_frac=config.mfs_frac,
            mfs_sphere=config.mfs_sphere,
            seed=config.seed,
            verbose=config.verbose,
        )
    kernel = pick_rbf(config.kernel_name)
    blocks = CollocationBlocks.from_geometry(geometry, kernel, config.ep, physics)

    common = dict(
        error=config.error,
        blocks=blocks,
        method=config.solver,
        residual_tol=config.residual_tol,
        max_condition=config.max_condition,
        max_growth=config.max_growth,
        verbose=config.verbose,
    )
    if config.bc_choice == 1:
        errors, extra = run_mode_a(geometry, physics, kernel, config.ep, eval_pts, phi_an, **common)
        failed: tuple[int, ...] = ()
    else:
        errors, extra = run_mode_b(
            geometry, physics, kernel, config.ep, eval_pts, phi_an, workers=config.workers, **common
        )
        failed = extra["failed"]

    metadata = {
        "sol_type": config.sol_type,
        "kernel": kernel.name,
        "ep": float(config.ep),
        "bc_choice": int(config.bc_choice),
        "n_eval": int(config.n_eval),
        "n_failed": len(failed),
        "geometry": dict(geometry.metadata),
    }
    if "max_anchor_residual" in extra:
        metadata["max_anchor_residual"] = extra["max_anchor_residual"]
    if config.verbose:
        ok = errors[np.isfinite(errors)]
        if ok.size:
            print(
                f"[SWEEP] mode={'A' if config.bc_choice == 1 else 'B'}: error min={ok.min():.3e}, "
                f"median={np.median(ok):.3e}, max={ok.max():.3e}, failed={len(failed)}"
            )
    return SweepResult(
        errors=errors,
        eval_points=eval_pts,
        phi_analytic=phi_an,
        mode=int(config.bc_choice),
        failed=tuple(failed),
        metadata=metadata,
    )
