from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import jax.numpy as jnp

from rbfsweep.analytic import unbounded_gradient, unbounded_potential
from rbfsweep.config import PhysicalParameters
from rbfsweep.linalg import difference_matrix, distance_matrix
from rbfsweep.rbf.kernels import RBFKernel

Array = Any

__all__ = ["CollocationField"]


@dataclass(frozen=True)
class CollocationField:
    """Solved potential: dipole term plus the RBF expansion over ``centers``.

    Parameters
    ----------
    centers:
        RBF centers ``(M,3)``, one per coefficient.
    coefs:
        Solved expansion coefficients ``(M,)``.
    kernel, ep:
        Kernel family and shape parameter used in the solve.
    physics:
        Sphere and dipole parameters providing the singular term.
    metadata:
        Lightweight, JSON-serializable metadata about the solve.
    """

    centers: Array
    coefs: Array
    kernel: RBFKernel
    ep: float
    physics: PhysicalParameters
    metadata: Mapping[str, Any]

    def __call__(self, X: Array) -> Array:
        """Alias for ``phi(X)``."""
        return self.phi(X)

    def phi0(self, X: Array) -> Array:
        """Source-free part ``EM @ coefs``."""
        X = jnp.asarray(X, dtype=jnp.float64).reshape(-1, 3)
        EM = self.kernel.value(self.ep, distance_matrix(X, self.centers))
        return EM @ self.coefs

    def phi(self, X: Array) -> Array:
        """Total potential (superposition with the unbounded dipole potential)."""
        p = self.physics
        return self.phi0(X) + unbounded_potential(X, p.dipole_location, p.dipole_moment, p.conductivity)

    def grad(self, X: Array) -> Array:
        """Gradient of the total potential, shape (N,3)."""
        X = jnp.asarray(X, dtype=jnp.float64).reshape(-1, 3)
        DM = distance_matrix(X, self.centers)
        cols = [
            self.kernel.derivative(k)(self.ep, DM, difference_matrix(X[:, k], self.centers[:, k])) @ self.coefs
            for k in range(3)
        ]
        p = self.physics
        return jnp.stack(cols, axis=1) + unbounded_gradient(X, p.dipole_location, p.dipole_moment, p.conductivity)
