"""Closed-form potentials of a current dipole.

Units follow the EEG convention of the experiment: radius in dm, conductivity
in S/dm, dipole moment in 1e-12 A m.
"""

from __future__ import annotations

from typing import Any

import jax.numpy as jnp

Array = Any

__all__ = ["unbounded_potential", "unbounded_gradient", "bounded_sphere_potential"]


def _as_points(X: Array) -> Array:
    X = jnp.asarray(X, dtype=jnp.float64)
    if X.ndim == 1:
        X = X[None, :]
    return X


def unbounded_potential(X: Array, dipole_location: Array, dipole_moment: Array, conductivity: float) -> Array:
    """Potential of a dipole in an unbounded homogeneous medium.

    ``phi_F(x) = p·(x - x0) / (4 pi sigma |x - x0|^3)``
    """
    X = _as_points(X)
    x0 = jnp.asarray(dipole_location, dtype=jnp.float64)
    p = jnp.asarray(dipole_moment, dtype=jnp.float64)
    d = X - x0[None, :]
    r = jnp.maximum(1e-30, jnp.linalg.norm(d, axis=1))
    return jnp.sum(d * p[None, :], axis=1) / (4.0 * jnp.pi * conductivity * r**3)


def unbounded_gradient(X: Array, dipole_location: Array, dipole_moment: Array, conductivity: float) -> Array:
    """Gradient of :func:`unbounded_potential`, shape (N, 3)."""
    X = _as_points(X)
    x0 = jnp.asarray(dipole_location, dtype=jnp.float64)
    p = jnp.asarray(dipole_moment, dtype=jnp.float64)
    d = X - x0[None, :]
    r = jnp.maximum(1e-30, jnp.linalg.norm(d, axis=1, keepdims=True))
    pd = jnp.sum(d * p[None, :], axis=1, keepdims=True)
    return (p[None, :] / r**3 - 3.0 * pd * d / r**5) / (4.0 * jnp.pi * conductivity)


def bounded_sphere_potential(
    radius: float,
    conductivity: float,
    dipole_location: Array,
    dipole_moment: Array,
    X: Array,
) -> Array:
    """Surface potential of a dipole inside an insulated homogeneous sphere.

    Valid for points ``X`` on the sphere of the given ``radius``:

        V = p·[ 2 d/|d|^3 + (d/|d| + x/R) / (R|d| + R^2 - x·x0) ] / (4 pi sigma)

    with ``d = x - x0``. For a dipole at the centre this reduces to
    ``3 p·x / (4 pi sigma R^3)``.
    """
    X = _as_points(X)
    x0 = jnp.asarray(dipole_location, dtype=jnp.float64)
    p = jnp.asarray(dipole_moment, dtype=jnp.float64)
    R = float(radius)
    d = X - x0[None, :]
    dn = jnp.maximum(1e-30, jnp.linalg.norm(d, axis=1, keepdims=True))
    F = R * dn + R**2 - jnp.sum(X * x0[None, :], axis=1, keepdims=True)
    kern = 2.0 * d / dn**3 + (d / dn + X / R) / F
    return jnp.sum(kern * p[None, :], axis=1) / (4.0 * jnp.pi * conductivity)
