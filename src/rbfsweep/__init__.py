"""rbfsweep: reference-point sensitivity of RBF collocation on a sphere.

An EEG-style dipole in an insulated homogeneous sphere is solved with a
Neumann-only RBF (Kansa or MFS) collocation; the sweep in :mod:`rbfsweep.sweep`
measures how the error depends on the point chosen as zero potential.
"""

from __future__ import annotations

from ._version import __version__
from .analytic import bounded_sphere_potential, unbounded_gradient, unbounded_potential
from .config import ErrorOptions, PhysicalParameters, SweepConfig, load_config
from .errors import (
    ConfigurationError,
    GeometryError,
    InvalidModeError,
    RBFSweepError,
    SingularSystemError,
)
from .rbf import (
    BallGeometry,
    CollocationBlocks,
    CollocationField,
    LinearSystem,
    assemble_system,
    ball_geometry,
    pick_rbf,
    solve_collocation,
    solve_system,
)
from .sweep import SweepResult, reference_point_sweep
from .validation import error_compute
from .pipeline import PipelineResult, run_pipeline

__all__ = [
    "__version__",
    "PhysicalParameters",
    "ErrorOptions",
    "SweepConfig",
    "load_config",
    "RBFSweepError",
    "ConfigurationError",
    "InvalidModeError",
    "GeometryError",
    "SingularSystemError",
    "unbounded_potential",
    "unbounded_gradient",
    "bounded_sphere_potential",
    "BallGeometry",
    "ball_geometry",
    "pick_rbf",
    "LinearSystem",
    "CollocationBlocks",
    "CollocationField",
    "assemble_system",
    "solve_system",
    "solve_collocation",
    "error_compute",
    "SweepResult",
    "reference_point_sweep",
    "run_pipeline",
    "PipelineResult",
]
