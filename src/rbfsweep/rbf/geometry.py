from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from scipy.spatial import cKDTree
from scipy.stats import qmc

from rbfsweep.errors import GeometryError, InvalidModeError

__all__ = [
    "BallGeometry",
    "ball_geometry",
    "split_point_count",
    "sphere_spiral_points",
    "sphere_halton_points",
    "interior_points",
    "spacing_stats",
]

_GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


@dataclass(frozen=True)
class BallGeometry:
    """Collocation point sets for a ball of radius ``radius``.

    ``interior`` carries the Laplace rows, ``boundary`` (with outward unit
    ``normals``) the Neumann rows. ``sources`` holds the MFS source points
    outside the ball; it is ``None`` for Kansa collocation, where the
    collocation points double as centers.
    """

    radius: float
    interior: np.ndarray  # (N_int,3)
    boundary: np.ndarray  # (N_bdy,3)
    normals: np.ndarray  # (N_bdy,3)
    sources: np.ndarray | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def centers(self) -> np.ndarray:
        if self.sources is not None:
            return self.sources
        return np.concatenate([self.interior, self.boundary], axis=0)


# --------------------------- Surface points ---------------------- #
def sphere_spiral_points(n: int, radius: float = 1.0) -> np.ndarray:
    """Golden-spiral points, nearly evenly spread over the sphere."""
    n = int(n)
    if n < 1:
        return np.zeros((0, 3))
    k = np.arange(n, dtype=float)
    z = 1.0 - (2.0 * k + 1.0) / n
    rho = np.sqrt(np.maximum(0.0, 1.0 - z * z))
    ang = k * _GOLDEN_ANGLE
    return radius * np.stack([rho * np.cos(ang), rho * np.sin(ang), z], axis=1)


def sphere_halton_points(n: int, radius: float = 1.0) -> np.ndarray:
    """Quasi-random surface points from a 2D Halton sequence (area preserving map)."""
    n = int(n)
    if n < 1:
        return np.zeros((0, 3))
    uv = qmc.Halton(d=2, scramble=False).random(n + 1)[1:]  # skip the origin
    z = 2.0 * uv[:, 0] - 1.0
    ang = 2.0 * math.pi * uv[:, 1]
    rho = np.sqrt(np.maximum(0.0, 1.0 - z * z))
    return radius * np.stack([rho * np.cos(ang), rho * np.sin(ang), z], axis=1)


def _surface_points(kind: str, n: int, radius: float) -> np.ndarray:
    if kind == "spiral":
        return sphere_spiral_points(n, radius)
    if kind == "halton":
        return sphere_halton_points(n, radius)
    raise InvalidModeError(f"Unknown boundary distribution {kind!r}; expected 'spiral' or 'halton'.")


# -------------------------- Interior points ---------------------- #
def _inside(P: np.ndarray, radius: float, shrink: float) -> np.ndarray:
    return np.linalg.norm(P, axis=1) < radius * shrink


def _halton_ball(n: int, radius: float, shrink: float, reject) -> np.ndarray:
    sampler = qmc.Halton(d=3, scramble=False)
    kept: list[np.ndarray] = []
    count = 0
    batch = max(64, 2 * n)
    for _ in range(64):
        P = radius * (2.0 * sampler.random(batch) - 1.0)
        P = P[_inside(P, radius, shrink) & ~reject(P)]
        kept.append(P)
        count += len(P)
        if count >= n:
            return np.concatenate(kept, axis=0)[:n]
    return np.concatenate(kept, axis=0)


def _random_ball(n: int, radius: float, shrink: float, reject, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    kept: list[np.ndarray] = []
    count = 0
    for _ in range(64):
        m = max(64, 2 * (n - count))
        dirs = rng.normal(size=(m, 3))
        dirs /= np.maximum(1e-30, np.linalg.norm(dirs, axis=1, keepdims=True))
        rad = radius * shrink * rng.random(m) ** (1.0 / 3.0)
        P = dirs * rad[:, None]
        P = P[_inside(P, radius, shrink) & ~reject(P)]
        kept.append(P)
        count += len(P)
        if count >= n:
            return np.concatenate(kept, axis=0)[:n]
    return np.concatenate(kept, axis=0)


def _even_ball(n: int, radius: float, shrink: float, reject) -> np.ndarray:
    # grow the grid until enough nodes fall inside, then thin evenly
    m = max(2, int(math.ceil((6.0 * n / math.pi) ** (1.0 / 3.0))))
    for _ in range(64):
        g = np.linspace(-radius, radius, m + 2)[1:-1]
        X, Y, Z = np.meshgrid(g, g, g, indexing="ij")
        P = np.stack([X, Y, Z], axis=-1).reshape(-1, 3)
        P = P[_inside(P, radius, shrink) & ~reject(P)]
        if len(P) >= n:
            idx = np.unique(np.linspace(0, len(P) - 1, n).round().astype(int))
            return P[idx]
        m += 1
    return P


def _cheb_ball(n: int, radius: float, shrink: float, reject) -> np.ndarray:
    # Chebyshev radii on (0, R), clustered towards the surface; shell counts ~ r^2
    n_shells = max(1, int(round(n ** (1.0 / 3.0))))
    m = n
    for _ in range(8):
        k = np.arange(1, n_shells + 1)
        radii = radius * shrink * np.cos(math.pi * (2 * k - 1) / (4 * n_shells))
        w = radii**2 / np.sum(radii**2)
        counts = np.maximum(1, np.floor(w * m).astype(int))
        counts[np.argmax(counts)] += m - int(np.sum(counts))
        shells = [sphere_spiral_points(c, r) for c, r in zip(counts, radii) if c > 0]
        P = np.concatenate(shells, axis=0)
        P = P[~reject(P)]
        if len(P) >= n:
            return P[:n]
        m += n - len(P)
    return P


def interior_points(
    kind: str,
    n: int,
    radius: float,
    *,
    dipole_location: Any = None,
    cushion: float = 0.0,
    seed: int = 0,
    shrink: float = 1.0 - 1e-9,
) -> np.ndarray:
    """Draw ``n`` points strictly inside the ball.

    Points closer than ``cushion`` to ``dipole_location`` are rejected and
    replaced; a :class:`GeometryError` is raised when ``n`` points cannot be
    placed.
    """
    n = int(n)
    if n <= 0:
        return np.zeros((0, 3))
    if dipole_location is not None and cushion > 0.0:
        x0 = np.asarray(dipole_location, dtype=float)

        def reject(P):
            return np.linalg.norm(P - x0[None, :], axis=1) < cushion

    else:

        def reject(P):
            return np.zeros(len(P), dtype=bool)

    if kind == "halton":
        P = _halton_ball(n, radius, shrink, reject)
    elif kind == "random":
        P = _random_ball(n, radius, shrink, reject, seed)
    elif kind == "even":
        P = _even_ball(n, radius, shrink, reject)
    elif kind == "cheb":
        P = _cheb_ball(n, radius, shrink, reject)
    else:
        raise InvalidModeError(f"Unknown interior distribution {kind!r}; expected halton, even, random or cheb.")
    if len(P) < n:
        raise GeometryError(
            f"Could only place {len(P)} of {n} interior points with distribution {kind!r} "
            f"and dipole cushion {cushion:g}."
        )
    return P


def split_point_count(n_points: int, radius: float = 1.0, boundary_fraction: float | None = None) -> tuple[int, int]:
    """Split ``n_points`` into (interior, boundary) counts.

    By default the split matches the interior spacing ``(V/N_int)^(1/3)`` to
    the surface spacing ``(A/N_bdy)^(1/2)``.
    """
    n_points = int(n_points)
    if n_points < 2:
        raise GeometryError(f"Need at least 2 collocation points, got {n_points}")
    if boundary_fraction is not None:
        n_bdy = int(round(boundary_fraction * n_points))
    else:
        V = 4.0 / 3.0 * math.pi * radius**3
        A = 4.0 * math.pi * radius**2
        n_bdy = min(
            range(1, n_points),
            key=lambda b: abs(b - A * ((n_points - b) / V) ** (2.0 / 3.0)),
        )
    n_bdy = min(max(n_bdy, 1), n_points - 1)
    return n_points - n_bdy, n_bdy


def spacing_stats(P: np.ndarray) -> dict[str, float]:
    """Nearest-neighbour separation statistics of a point set."""
    P = np.asarray(P, dtype=float)
    if len(P) < 2:
        return {"min": math.nan, "median": math.nan, "max": math.nan}
    dists, _ = cKDTree(P).query(P, k=2)
    h = dists[:, 1]
    return {"min": float(h.min()), "median": float(np.median(h)), "max": float(h.max())}


# ----------------------------- Ball ------------------------------ #
def ball_geometry(
    radius: float,
    n_points: int,
    sol_type: str = "kansa",
    int_point_dist: str = "halton",
    bdy_point_dist: str = "spiral",
    dipole_location: Any = (0.0, 0.0, 0.0),
    dip_cushion: float = 0.0,
    *,
    enforce_cushion: bool = False,
    boundary_fraction: float | None = None,
    mfs_frac: float = 1.0,
    mfs_sphere: float = 1.3,
    seed: int = 0,
    verbose: bool = False,
) -> BallGeometry:
    """Interior/boundary collocation points (and MFS sources) for the ball."""
    x0 = np.asarray(dipole_location, dtype=float)
    if enforce_cushion and radius - np.linalg.norm(x0) < dip_cushion:
        raise GeometryError(
            f"Dipole at distance {radius - np.linalg.norm(x0):.3g} from the boundary violates the cushion {dip_cushion:g}."
        )

    if sol_type == "kansa":
        n_int, n_bdy = split_point_count(n_points, radius, boundary_fraction)
        interior = interior_points(
            int_point_dist,
            n_int,
            radius,
            dipole_location=x0 if enforce_cushion else None,
            cushion=dip_cushion if enforce_cushion else 0.0,
            seed=seed,
        )
        boundary = _surface_points(bdy_point_dist, n_bdy, radius)
        sources = None
    elif sol_type == "mfs":
        interior = np.zeros((0, 3))
        boundary = _surface_points(bdy_point_dist, int(n_points), radius)
        n_src = max(1, int(round(mfs_frac * len(boundary))))
        sources = sphere_spiral_points(n_src, mfs_sphere * radius)
    else:
        raise InvalidModeError(f"Unknown sol_type {sol_type!r}; expected 'kansa' or 'mfs'.")

    normals = boundary / np.maximum(1e-30, np.linalg.norm(boundary, axis=1, keepdims=True))

    centers = sources if sources is not None else np.concatenate([interior, boundary], axis=0)
    clearance = float(np.min(np.linalg.norm(centers - x0[None, :], axis=1)))
    metadata = {
        "sol_type": sol_type,
        "int_point_dist": int_point_dist,
        "bdy_point_dist": bdy_point_dist,
        "n_interior": int(len(interior)),
        "n_boundary": int(len(boundary)),
        "n_sources": None if sources is None else int(len(sources)),
        "dipole_clearance": clearance,
        "cushion_enforced": bool(enforce_cushion),
    }
    if verbose:
        h = spacing_stats(centers)
        print(
            f"[GEOM] sol_type={sol_type}, N_int={len(interior)}, N_bdy={len(boundary)}, "
            f"centers={len(centers)}"
        )
        print(f"[GEOM] center spacing: min={h['min']:.3g}, median={h['median']:.3g}, max={h['max']:.3g}")
        print(f"[GEOM] closest center to dipole: {clearance:.3g} (cushion {dip_cushion:g})")
    return BallGeometry(
        radius=float(radius),
        interior=interior,
        boundary=boundary,
        normals=normals,
        sources=sources,
        metadata=metadata,
    )
