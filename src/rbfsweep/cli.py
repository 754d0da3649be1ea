from __future__ import annotations

import argparse
import math
import sys
from dataclasses import replace

from rbfsweep.config import (
    BOUNDARY_DISTRIBUTIONS,
    INTERIOR_DISTRIBUTIONS,
    ErrorOptions,
    SweepConfig,
    load_config,
)
from rbfsweep.errors import RBFSweepError
from rbfsweep.pipeline import run_sweep_and_write
from rbfsweep.rbf.kernels import KERNEL_NAMES


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="rbfsweep: error of an RBF sphere potential vs. the choice of reference point."
    )
    p.add_argument("--config", default=None, help="TOML run file; explicit flags override its values.")
    p.add_argument("--radius", type=float, default=None, help="Sphere radius [dm].")
    p.add_argument("--conductivity", type=float, default=None, help="Conductivity [S/dm].")
    p.add_argument("--dipole-moment", type=float, nargs=3, default=None, metavar=("PX", "PY", "PZ"))
    p.add_argument("--dipole-location", type=float, nargs=3, default=None, metavar=("X", "Y", "Z"))
    p.add_argument("--sol-type", choices=["kansa", "mfs"], default=None)
    p.add_argument("--rbf", choices=[k for k in KERNEL_NAMES if k != "fundamental_3d"], default=None)
    p.add_argument("--ep", type=float, default=None, help="RBF shape parameter.")
    p.add_argument("--int-point-dist", choices=INTERIOR_DISTRIBUTIONS, default=None)
    p.add_argument("--bdy-point-dist", choices=BOUNDARY_DISTRIBUTIONS, default=None)
    p.add_argument("--mfs-frac", type=float, default=None)
    p.add_argument("--mfs-sphere", type=float, default=None)
    p.add_argument("--bc-choice", type=int, choices=[1, 2], default=None,
                   help="1: Neumann only; 2: Neumann + one Dirichlet at the reference point.")
    p.add_argument("--n-points", type=int, default=None)
    p.add_argument("--n-eval", type=int, default=None)
    p.add_argument("--dip-cushion", type=float, default=None)
    p.add_argument("--enforce-cushion", action="store_true", default=None)
    p.add_argument("--boundary-fraction", type=float, default=None)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--solver", choices=["solve", "lu", "lstsq"], default=None)
    p.add_argument("--residual-tol", type=float, default=None)
    p.add_argument("--max-condition", type=float, default=None, help="Reject systems above this SVD condition number.")
    p.add_argument("--max-growth", type=float, default=None, help="Reject solves with ||A|| ||x|| / ||b|| above this.")
    p.add_argument("--workers", type=int, default=None)
    p.add_argument("--error-style", choices=["absolute", "relative"], default=None)
    p.add_argument("--norm", choices=["1", "2", "inf"], default=None)
    p.add_argument("--verbose", action="store_true", default=None)
    p.add_argument("--plot", action="store_true", help="Also write errors.png (needs matplotlib).")
    p.add_argument("--outdir", default=None)
    return p


def config_from_args(args: argparse.Namespace) -> tuple[SweepConfig, str, bool]:
    if args.config:
        config, output_cfg = load_config(args.config)
    else:
        config, output_cfg = SweepConfig(), {}

    phys = {
        "radius": args.radius,
        "conductivity": args.conductivity,
        "dipole_moment": tuple(args.dipole_moment) if args.dipole_moment else None,
        "dipole_location": tuple(args.dipole_location) if args.dipole_location else None,
    }
    phys = {k: v for k, v in phys.items() if v is not None}
    physics = replace(config.physics, **phys)

    error = config.error
    if args.error_style is not None or args.norm is not None:
        norm_ord = error.norm_ord if args.norm is None else (math.inf if args.norm == "inf" else int(args.norm))
        error = ErrorOptions(style=args.error_style or error.style, norm_ord=norm_ord)

    keys = (
        "sol_type", "rbf", "ep", "int_point_dist", "bdy_point_dist", "mfs_frac", "mfs_sphere",
        "bc_choice", "n_points", "n_eval", "dip_cushion", "enforce_cushion", "boundary_fraction",
        "seed", "solver", "residual_tol", "max_condition", "max_growth", "workers", "verbose",
    )
    updates = {k: getattr(args, k) for k in keys if getattr(args, k) is not None}
    config = config.with_updates(physics=physics, error=error, **updates)

    outdir = args.outdir or output_cfg.get("dir", "outputs/cli")
    plot = bool(args.plot or output_cfg.get("plot", False))
    return config, outdir, plot


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config, outdir, plot = config_from_args(args)
        result = run_sweep_and_write(config, outdir, plot=plot)
    except RBFSweepError as exc:
        print(f"[ERROR] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 2
    stats = result.stats
    print(
        f"[OK] Sweep complete: mode={'A' if config.bc_choice == 1 else 'B'}, n_eval={config.n_eval}, "
        f"median error={stats.get('median', float('nan')):.3e}, failed={stats['n_failed']}, outdir={outdir}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
