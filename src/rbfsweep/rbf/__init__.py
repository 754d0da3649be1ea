from __future__ import annotations

from .blocks import CollocationBlocks, LinearSystem, assemble_system, reference_center
from .field import CollocationField
from .geometry import (
    BallGeometry,
    ball_geometry,
    interior_points,
    spacing_stats,
    sphere_halton_points,
    sphere_spiral_points,
    split_point_count,
)
from .kernels import KERNEL_NAMES, RBFKernel, pick_rbf
from .solver import field_from_system, solve_collocation, solve_system

__all__ = [
    "BallGeometry",
    "ball_geometry",
    "interior_points",
    "spacing_stats",
    "sphere_halton_points",
    "sphere_spiral_points",
    "split_point_count",
    "KERNEL_NAMES",
    "RBFKernel",
    "pick_rbf",
    "CollocationBlocks",
    "LinearSystem",
    "assemble_system",
    "reference_center",
    "CollocationField",
    "field_from_system",
    "solve_collocation",
    "solve_system",
]
