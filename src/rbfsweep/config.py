from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Literal, Mapping

import numpy as np

from rbfsweep.errors import ConfigurationError, InvalidModeError

__all__ = [
    "PhysicalParameters",
    "ErrorOptions",
    "SweepConfig",
    "load_config",
    "SOL_TYPES",
    "INTERIOR_DISTRIBUTIONS",
    "BOUNDARY_DISTRIBUTIONS",
    "BC_CHOICES",
]

SOL_TYPES = ("kansa", "mfs")
INTERIOR_DISTRIBUTIONS = ("halton", "even", "random", "cheb")
BOUNDARY_DISTRIBUTIONS = ("spiral", "halton")
BC_CHOICES = (1, 2)
ERROR_STYLES = ("absolute", "relative")


def _vec3(value: Any, name: str) -> tuple[float, float, float]:
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ConfigurationError(f"{name} must be a 3-vector, got {value!r}")
    if not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


@dataclass(frozen=True)
class PhysicalParameters:
    """Sphere and dipole of the forward problem (dm, S/dm, 1e-12 A m)."""

    radius: float = 1.0
    conductivity: float = 0.02
    dipole_moment: tuple[float, float, float] = (2.7, 0.0, 0.0)
    dipole_location: tuple[float, float, float] = (0.0, 0.0, 0.6)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dipole_moment", _vec3(self.dipole_moment, "dipole_moment"))
        object.__setattr__(self, "dipole_location", _vec3(self.dipole_location, "dipole_location"))

    def validate(self) -> "PhysicalParameters":
        if not (math.isfinite(self.radius) and self.radius > 0.0):
            raise ConfigurationError(f"radius must be positive, got {self.radius!r}")
        if not (math.isfinite(self.conductivity) and self.conductivity > 0.0):
            raise ConfigurationError(f"conductivity must be positive, got {self.conductivity!r}")
        if np.linalg.norm(self.dipole_location) >= self.radius:
            raise ConfigurationError(
                f"dipole_location {self.dipole_location} must lie strictly inside the sphere of radius {self.radius}"
            )
        return self


@dataclass(frozen=True)
class ErrorOptions:
    """How a computed field is compared with the analytic one."""

    style: Literal["absolute", "relative"] = "relative"
    norm_ord: float = 2

    def validate(self) -> "ErrorOptions":
        if self.style not in ERROR_STYLES:
            raise ConfigurationError(f"error style must be one of {ERROR_STYLES}, got {self.style!r}")
        if self.norm_ord not in (1, 2, math.inf):
            raise ConfigurationError(f"norm_ord must be 1, 2 or inf, got {self.norm_ord!r}")
        return self


@dataclass(frozen=True)
class SweepConfig:
    physics: PhysicalParameters = field(default_factory=PhysicalParameters)
    sol_type: Literal["kansa", "mfs"] = "kansa"
    rbf: str = "imq"
    ep: float = 1.0
    int_point_dist: str = "halton"
    bdy_point_dist: str = "spiral"
    mfs_frac: float = 1.0
    mfs_sphere: float = 1.3
    bc_choice: int = 1
    n_points: int = 1500
    n_eval: int = 1001
    dip_cushion: float = 0.005
    enforce_cushion: bool = False
    boundary_fraction: float | None = None
    seed: int = 0
    solver: Literal["solve", "lu", "lstsq"] = "solve"
    residual_tol: float = 1e-8
    max_condition: float | None = None
    max_growth: float = 1e15
    workers: int = 1
    verbose: bool = False
    error: ErrorOptions = field(default_factory=ErrorOptions)

    @property
    def kernel_name(self) -> str:
        return "fundamental_3d" if self.sol_type == "mfs" else self.rbf

    def validate(self) -> "SweepConfig":
        """Raise before any geometry or solve work if the run cannot proceed."""
        from rbfsweep.rbf.kernels import pick_rbf

        self.physics.validate()
        self.error.validate()
        if self.sol_type not in SOL_TYPES:
            raise InvalidModeError(f"sol_type must be one of {SOL_TYPES}, got {self.sol_type!r}")
        if self.int_point_dist not in INTERIOR_DISTRIBUTIONS:
            raise InvalidModeError(
                f"int_point_dist must be one of {INTERIOR_DISTRIBUTIONS}, got {self.int_point_dist!r}"
            )
        if self.bdy_point_dist not in BOUNDARY_DISTRIBUTIONS:
            raise InvalidModeError(
                f"bdy_point_dist must be one of {BOUNDARY_DISTRIBUTIONS}, got {self.bdy_point_dist!r}"
            )
        if self.bc_choice not in BC_CHOICES:
            raise InvalidModeError(f"bc_choice must be 1 (Neumann) or 2 (Neumann + Dirichlet), got {self.bc_choice!r}")
        if self.solver not in ("solve", "lu", "lstsq"):
            raise InvalidModeError(f"solver must be 'solve', 'lu' or 'lstsq', got {self.solver!r}")
        pick_rbf(self.kernel_name)

        if not (math.isfinite(self.ep) and self.ep > 0.0):
            raise ConfigurationError(f"ep must be positive, got {self.ep!r}")
        if int(self.n_points) < 2:
            raise ConfigurationError(f"n_points must be at least 2, got {self.n_points!r}")
        if int(self.n_eval) < 1:
            raise ConfigurationError(f"n_eval must be at least 1, got {self.n_eval!r}")
        if not (0.0 < self.mfs_frac <= 1.0):
            raise ConfigurationError(f"mfs_frac must be in (0, 1], got {self.mfs_frac!r}")
        if not self.mfs_sphere > 1.0:
            raise ConfigurationError(f"mfs_sphere must be > 1, got {self.mfs_sphere!r}")
        if self.dip_cushion < 0.0:
            raise ConfigurationError(f"dip_cushion must be non-negative, got {self.dip_cushion!r}")
        if self.boundary_fraction is not None and not (0.0 < self.boundary_fraction < 1.0):
            raise ConfigurationError(f"boundary_fraction must be in (0, 1), got {self.boundary_fraction!r}")
        if not self.residual_tol > 0.0:
            raise ConfigurationError(f"residual_tol must be positive, got {self.residual_tol!r}")
        if self.max_condition is not None and not self.max_condition > 1.0:
            raise ConfigurationError(f"max_condition must be > 1, got {self.max_condition!r}")
        if not self.max_growth > 1.0:
            raise ConfigurationError(f"max_growth must be > 1, got {self.max_growth!r}")
        if int(self.workers) < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers!r}")
        return self

    def with_updates(self, **changes: Any) -> "SweepConfig":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "SweepConfig":
        """Build a config from the tables of a TOML run file.

        Recognised tables are ``[physics]``, ``[solve]``, ``[geometry]``,
        ``[sweep]`` and ``[error]``; unknown keys are rejected.
        """
        physics_cfg = dict(cfg.get("physics", {}))
        error_cfg = dict(cfg.get("error", {}))
        flat: dict[str, Any] = {}
        for table in ("solve", "geometry", "sweep"):
            entries = dict(cfg.get(table, {}))
            dup = set(entries) & set(flat)
            if dup:
                raise ConfigurationError(f"Keys set in more than one table (last one: [{table}]): {sorted(dup)}")
            flat.update(entries)

        known = {f for f in cls.__dataclass_fields__ if f not in ("physics", "error")}
        unknown = set(flat) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        phys_known = set(PhysicalParameters.__dataclass_fields__)
        if set(physics_cfg) - phys_known:
            raise ConfigurationError(f"Unknown [physics] keys: {sorted(set(physics_cfg) - phys_known)}")
        if set(error_cfg) - {"style", "norm_ord"}:
            raise ConfigurationError(f"Unknown [error] keys: {sorted(set(error_cfg) - {'style', 'norm_ord'})}")

        norm_ord = error_cfg.get("norm_ord", 2)
        if isinstance(norm_ord, str) and norm_ord.lower() in ("inf", "infinity"):
            norm_ord = math.inf
        error = ErrorOptions(style=str(error_cfg.get("style", "relative")), norm_ord=norm_ord)
        physics = PhysicalParameters(**physics_cfg)
        return cls(physics=physics, error=error, **flat)


def load_config(path: str | Path) -> tuple[SweepConfig, dict[str, Any]]:
    """Read a TOML run file; returns the sweep config and the ``[output]`` table."""
    try:
        import tomllib
    except Exception as exc:  # pragma: no cover
        raise ImportError("Python 3.11+ is required for TOML configs.") from exc
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
    try:
        config = SweepConfig.from_mapping(raw)
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc
    return config, dict(raw.get("output", {}))
