from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import jax.numpy as jnp
from jax import jit

from rbfsweep.errors import InvalidModeError

Array = Any

__all__ = ["RBFKernel", "KERNEL_NAMES", "pick_rbf"]


@dataclass(frozen=True)
class RBFKernel:
    """Radial kernel with its first partials and its 3D Laplacian.

    ``value(ep, r)`` and ``laplacian(ep, r)`` act on a distance matrix ``r``;
    ``dx/dy/dz(ep, r, d)`` also take the matching component difference
    matrix ``d = x_i - c_j`` for that axis.
    """

    name: str
    value: Callable[[float, Array], Array]
    dx: Callable[[float, Array, Array], Array]
    dy: Callable[[float, Array, Array], Array]
    dz: Callable[[float, Array, Array], Array]
    laplacian: Callable[[float, Array], Array]

    def derivative(self, axis: int) -> Callable[[float, Array, Array], Array]:
        return (self.dx, self.dy, self.dz)[axis]


# ----------------------------- Gaussian -------------------------- #
@jit
def _ga(ep, r):
    return jnp.exp(-((ep * r) ** 2))

@jit
def _ga_d(ep, r, d):
    return -2.0 * ep**2 * d * jnp.exp(-((ep * r) ** 2))

@jit
def _ga_lap(ep, r):
    e2r2 = (ep * r) ** 2
    return (4.0 * ep**2 * e2r2 - 6.0 * ep**2) * jnp.exp(-e2r2)


# ---------------------- Inverse multiquadric --------------------- #
@jit
def _imq(ep, r):
    return 1.0 / jnp.sqrt(1.0 + (ep * r) ** 2)

@jit
def _imq_d(ep, r, d):
    return -(ep**2) * d / (1.0 + (ep * r) ** 2) ** 1.5

@jit
def _imq_lap(ep, r):
    return -3.0 * ep**2 / (1.0 + (ep * r) ** 2) ** 2.5


# --------------------------- Multiquadric ------------------------ #
@jit
def _mq(ep, r):
    return jnp.sqrt(1.0 + (ep * r) ** 2)

@jit
def _mq_d(ep, r, d):
    return ep**2 * d / jnp.sqrt(1.0 + (ep * r) ** 2)

@jit
def _mq_lap(ep, r):
    e2r2 = (ep * r) ** 2
    return ep**2 * (3.0 + 2.0 * e2r2) / (1.0 + e2r2) ** 1.5


# ------------------------ Inverse quadratic ---------------------- #
@jit
def _iq(ep, r):
    return 1.0 / (1.0 + (ep * r) ** 2)

@jit
def _iq_d(ep, r, d):
    return -2.0 * ep**2 * d / (1.0 + (ep * r) ** 2) ** 2

@jit
def _iq_lap(ep, r):
    e2r2 = (ep * r) ** 2
    return ep**2 * (2.0 * e2r2 - 6.0) / (1.0 + e2r2) ** 3


# ------------------ Fundamental solution (MFS) ------------------- #
# ep is accepted for a uniform signature and ignored.
@jit
def _fs(ep, r):
    return 1.0 / (4.0 * jnp.pi * jnp.maximum(1e-30, r))

@jit
def _fs_d(ep, r, d):
    r3 = jnp.maximum(1e-30, r**3)
    return -d / (4.0 * jnp.pi * r3)

@jit
def _fs_lap(ep, r):
    return jnp.zeros_like(r)


def _family(name, value, deriv, lap) -> RBFKernel:
    return RBFKernel(name=name, value=value, dx=deriv, dy=deriv, dz=deriv, laplacian=lap)


_KERNELS = {
    "gaussian": _family("gaussian", _ga, _ga_d, _ga_lap),
    "imq": _family("imq", _imq, _imq_d, _imq_lap),
    "mq": _family("mq", _mq, _mq_d, _mq_lap),
    "iq": _family("iq", _iq, _iq_d, _iq_lap),
    "fundamental_3d": _family("fundamental_3d", _fs, _fs_d, _fs_lap),
}
_ALIASES = {"ga": "gaussian", "gauss": "gaussian", "fundamental": "fundamental_3d"}

KERNEL_NAMES = tuple(sorted(_KERNELS))


def pick_rbf(name: str) -> RBFKernel:
    """Return the kernel family registered under ``name`` (case-insensitive)."""
    key = str(name).strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return _KERNELS[key]
    except KeyError:
        raise InvalidModeError(f"Unknown RBF {name!r}; expected one of {', '.join(KERNEL_NAMES)}.") from None
