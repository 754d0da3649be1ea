from __future__ import annotations

import math
from typing import Any, Callable

import numpy as np

from rbfsweep.config import ErrorOptions

__all__ = [
    "error_compute",
    "shift_to_reference",
    "summary_stats",
    "neumann_residual",
    "smoothness_ratio",
]


def error_compute(computed: Any, reference: Any, options: ErrorOptions | None = None) -> float:
    """Distance between a computed and a reference field on the same points.

    ``relative``: ``||c - r|| / ||r||``; 0 when the fields coincide with
    ``||r|| = 0`` and ``inf`` when only ``||r||`` vanishes.
    ``absolute``: ``||c - r||``. No shift is applied here; callers reference
    both fields to the same point first.
    """
    options = options or ErrorOptions()
    c = np.asarray(computed, dtype=float).ravel()
    r = np.asarray(reference, dtype=float).ravel()
    if c.shape != r.shape:
        raise ValueError(f"Field shapes differ: {c.shape} vs {r.shape}")
    diff = float(np.linalg.norm(c - r, ord=options.norm_ord))
    if options.style == "absolute":
        return diff
    denom = float(np.linalg.norm(r, ord=options.norm_ord))
    if denom == 0.0:
        return 0.0 if diff == 0.0 else math.inf
    return diff / denom


def shift_to_reference(values: Any, index: int) -> np.ndarray:
    """Potential relative to point ``index`` (``v - v[index]``)."""
    v = np.asarray(values, dtype=float)
    return v - v[index]


def summary_stats(values: np.ndarray) -> dict[str, float]:
    """Compute summary statistics for a scalar field."""
    vals = np.asarray(values).ravel()
    return {
        "min": float(np.min(vals)),
        "median": float(np.median(vals)),
        "mean": float(np.mean(vals)),
        "p95": float(np.percentile(vals, 95.0)),
        "max": float(np.max(vals)),
        "rms": float(np.sqrt(np.mean(vals**2))),
    }


def neumann_residual(
    grad: Callable[[Any], Any],
    P: np.ndarray,
    N: np.ndarray,
    *,
    normalize: bool = True,
) -> np.ndarray:
    """Normal current ``|n·grad phi|`` of a total field at boundary points.

    With ``normalize`` the values are divided by the median ``|grad phi|``.
    """
    P = np.asarray(P, dtype=float)
    N = np.asarray(N, dtype=float)
    G = np.asarray(grad(P))
    if G.shape == (3,):
        G = G[None, :]
    ndot = np.abs(np.sum(N * G, axis=1))
    if not normalize:
        return ndot
    scale = np.median(np.linalg.norm(G, axis=1))
    return ndot / max(float(scale), 1e-30)


def smoothness_ratio(errors: np.ndarray) -> float:
    """``max / median`` of the finite entries of a positive error field."""
    e = np.asarray(errors, dtype=float).ravel()
    e = e[np.isfinite(e)]
    if e.size == 0:
        return math.nan
    med = float(np.median(e))
    if med == 0.0:
        return 1.0 if float(np.max(e)) == 0.0 else math.inf
    return float(np.max(e)) / med
