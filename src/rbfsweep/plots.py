from __future__ import annotations

import numpy as np
from scipy.spatial import ConvexHull


def _require_matplotlib():
    try:
        import matplotlib.pyplot as plt  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise ImportError("matplotlib is required for plotting.") from exc
    return plt


def surface_faces(points: np.ndarray) -> np.ndarray:
    """Triangles of the convex hull, i.e. the surface of a point set on a sphere."""
    return ConvexHull(np.asarray(points, dtype=float)).simplices


def plot_surface_errors(
    points: np.ndarray,
    values: np.ndarray | None = None,
    *,
    ax=None,
    colorbar_label: str | None = None,
    title: str | None = "Relative error on the solution vs. reference point",
):
    """Colour the sphere surface by one value per point.

    Without ``values`` only the triangulated surface is drawn, which is handy
    to inspect a point distribution.
    """
    plt = _require_matplotlib()
    pts = np.asarray(points, dtype=float)
    faces = surface_faces(pts)
    if ax is None:
        fig = plt.figure(figsize=(7, 6))
        ax = fig.add_subplot(111, projection="3d")

    if values is None:
        ax.plot_trisurf(pts[:, 0], pts[:, 1], pts[:, 2], triangles=faces, color=(1.0, 1.0, 0.0), linewidth=0.2)
    else:
        vals = np.asarray(values, dtype=float)
        # NaN (failed reference points) would poison the face colours
        fill = np.nanmedian(vals) if np.any(np.isfinite(vals)) else 0.0
        vals = np.where(np.isfinite(vals), vals, fill)
        surf = ax.plot_trisurf(pts[:, 0], pts[:, 1], pts[:, 2], triangles=faces, cmap="viridis", linewidth=0.0)
        surf.set_array(vals[faces].mean(axis=1))
        cb = ax.figure.colorbar(surf, ax=ax, shrink=0.7)
        if colorbar_label:
            cb.set_label(colorbar_label)

    ax.set_box_aspect((1, 1, 1))
    ax.view_init(elev=20, azim=-30)
    ax.set_xlabel("[dm]")
    ax.set_ylabel("[dm]")
    ax.set_zlabel("[dm]")
    if title:
        ax.set_title(title, fontweight="bold")
    return ax
