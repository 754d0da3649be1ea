from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jax.numpy as jnp
import numpy as np

from rbfsweep.analytic import unbounded_gradient, unbounded_potential
from rbfsweep.config import PhysicalParameters
from rbfsweep.linalg import difference_matrix, distance_matrix
from rbfsweep.rbf.geometry import BallGeometry
from rbfsweep.rbf.kernels import RBFKernel

Array = Any

__all__ = [
    "LinearSystem",
    "CollocationBlocks",
    "assemble_system",
    "reference_center",
    "laplace_block",
    "neumann_block",
    "dirichlet_row",
]


@dataclass(frozen=True)
class LinearSystem:
    """Stacked collocation system ``[Laplace; Neumann; (Dirichlet)] c = rhs``."""

    matrix: Array  # (N_rows, N_centers)
    rhs: Array  # (N_rows,)
    centers: Array  # (N_centers, 3)
    n_interior: int
    n_boundary: int
    n_dirichlet: int

    @property
    def shape(self) -> tuple[int, int]:
        return tuple(self.matrix.shape)

    @property
    def is_square(self) -> bool:
        return self.matrix.shape[0] == self.matrix.shape[1]


# ------------------------------ Blocks --------------------------- #
def laplace_block(kernel: RBFKernel, ep: float, interior: Array, centers: Array) -> Array:
    """Laplacian of every center's kernel at every interior point."""
    return kernel.laplacian(ep, distance_matrix(interior, centers))


def neumann_block(kernel: RBFKernel, ep: float, boundary: Array, normals: Array, centers: Array) -> Array:
    """Normal derivative ``n·grad K`` of every center's kernel at every boundary point."""
    DM = distance_matrix(boundary, centers)
    block = jnp.zeros(DM.shape, dtype=DM.dtype)
    for k in range(3):
        dk = difference_matrix(boundary[:, k], centers[:, k])
        block = block + normals[:, k : k + 1] * kernel.derivative(k)(ep, DM, dk)
    return block


def dirichlet_row(kernel: RBFKernel, ep: float, reference: Array, centers: Array) -> Array:
    return kernel.value(ep, distance_matrix(reference[None, :], centers))


def neumann_rhs(physics: PhysicalParameters, boundary: Array, normals: Array) -> Array:
    """``-n·grad phi_F``: the RBF part cancels the dipole's normal current."""
    grad_F = unbounded_gradient(boundary, physics.dipole_location, physics.dipole_moment, physics.conductivity)
    return -jnp.sum(normals * grad_F, axis=1)


def dirichlet_rhs(physics: PhysicalParameters, reference: Array) -> Array:
    """``-phi_F(ref)`` so that the total potential vanishes at the reference point."""
    return -unbounded_potential(reference[None, :], physics.dipole_location, physics.dipole_moment, physics.conductivity)


def reference_center(geometry: BallGeometry, reference: Array) -> Array:
    """Center carrying the Dirichlet unknown for a reference point.

    Kansa uses the reference point itself. For MFS the point is pushed
    radially onto the source sphere, since a fundamental solution centred on
    the reference point is singular there.
    """
    ref = jnp.asarray(reference, dtype=jnp.float64)
    if geometry.sources is None:
        return ref
    r_src = float(np.max(np.linalg.norm(geometry.sources, axis=1)))
    return ref * (r_src / jnp.maximum(1e-30, jnp.linalg.norm(ref)))


def assemble_system(
    kernel: RBFKernel,
    ep: float,
    physics: PhysicalParameters,
    interior: Array,
    boundary: Array,
    normals: Array,
    centers: Array,
    *,
    reference: Array | None = None,
    extra_center: Array | None = None,
) -> LinearSystem:
    """Assemble the mixed boundary-condition system from scratch.

    With ``reference`` given, ``extra_center`` (default: the reference point)
    is appended to ``centers`` and one Dirichlet row at ``reference`` is
    stacked below the Neumann rows.
    """
    interior = jnp.asarray(interior, dtype=jnp.float64).reshape(-1, 3)
    boundary = jnp.asarray(boundary, dtype=jnp.float64).reshape(-1, 3)
    normals = jnp.asarray(normals, dtype=jnp.float64).reshape(-1, 3)
    ctrs = jnp.asarray(centers, dtype=jnp.float64).reshape(-1, 3)

    if reference is not None:
        ref = jnp.asarray(reference, dtype=jnp.float64).reshape(3)
        extra = ref if extra_center is None else jnp.asarray(extra_center, dtype=jnp.float64).reshape(3)
        ctrs = jnp.concatenate([ctrs, extra[None, :]], axis=0)

    rows = [laplace_block(kernel, ep, interior, ctrs), neumann_block(kernel, ep, boundary, normals, ctrs)]
    rhs = [jnp.zeros((interior.shape[0],), dtype=jnp.float64), neumann_rhs(physics, boundary, normals)]
    if reference is not None:
        rows.append(dirichlet_row(kernel, ep, ref, ctrs))
        rhs.append(dirichlet_rhs(physics, ref))

    return LinearSystem(
        matrix=jnp.concatenate(rows, axis=0),
        rhs=jnp.concatenate(rhs, axis=0),
        centers=ctrs,
        n_interior=int(interior.shape[0]),
        n_boundary=int(boundary.shape[0]),
        n_dirichlet=0 if reference is None else 1,
    )


# ------------------------- Cached base blocks -------------------- #
@dataclass(frozen=True)
class CollocationBlocks:
    """Laplace and Neumann blocks over the fixed base centers.

    A reference point only adds one column (its center) and one Dirichlet
    row, so repeated mode-B systems are bordered copies of these blocks.
    """

    kernel: RBFKernel
    ep: float
    physics: PhysicalParameters
    interior: Array
    boundary: Array
    normals: Array
    centers: Array
    L: Array  # (N_int, M)
    B: Array  # (N_bdy, M)
    rhs_bdy: Array  # (N_bdy,)

    @classmethod
    def from_geometry(
        cls, geometry: BallGeometry, kernel: RBFKernel, ep: float, physics: PhysicalParameters
    ) -> "CollocationBlocks":
        interior = jnp.asarray(geometry.interior, dtype=jnp.float64).reshape(-1, 3)
        boundary = jnp.asarray(geometry.boundary, dtype=jnp.float64).reshape(-1, 3)
        normals = jnp.asarray(geometry.normals, dtype=jnp.float64).reshape(-1, 3)
        centers = jnp.asarray(geometry.centers, dtype=jnp.float64).reshape(-1, 3)
        return cls(
            kernel=kernel,
            ep=float(ep),
            physics=physics,
            interior=interior,
            boundary=boundary,
            normals=normals,
            centers=centers,
            L=laplace_block(kernel, ep, interior, centers),
            B=neumann_block(kernel, ep, boundary, normals, centers),
            rhs_bdy=neumann_rhs(physics, boundary, normals),
        )

    def system(self, reference: Array | None = None, extra_center: Array | None = None) -> LinearSystem:
        rhs_int = jnp.zeros((self.interior.shape[0],), dtype=jnp.float64)
        if reference is None:
            return LinearSystem(
                matrix=jnp.concatenate([self.L, self.B], axis=0),
                rhs=jnp.concatenate([rhs_int, self.rhs_bdy], axis=0),
                centers=self.centers,
                n_interior=int(self.interior.shape[0]),
                n_boundary=int(self.boundary.shape[0]),
                n_dirichlet=0,
            )

        ref = jnp.asarray(reference, dtype=jnp.float64).reshape(3)
        extra = ref if extra_center is None else jnp.asarray(extra_center, dtype=jnp.float64).reshape(3)
        ctrs = jnp.concatenate([self.centers, extra[None, :]], axis=0)
        col_L = laplace_block(self.kernel, self.ep, self.interior, extra[None, :])
        col_B = neumann_block(self.kernel, self.ep, self.boundary, self.normals, extra[None, :])
        matrix = jnp.concatenate(
            [
                jnp.concatenate([self.L, col_L], axis=1),
                jnp.concatenate([self.B, col_B], axis=1),
                dirichlet_row(self.kernel, self.ep, ref, ctrs),
            ],
            axis=0,
        )
        rhs = jnp.concatenate([rhs_int, self.rhs_bdy, dirichlet_rhs(self.physics, ref)], axis=0)
        return LinearSystem(
            matrix=matrix,
            rhs=rhs,
            centers=ctrs,
            n_interior=int(self.interior.shape[0]),
            n_boundary=int(self.boundary.shape[0]),
            n_dirichlet=1,
        )
