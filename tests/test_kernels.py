import os

os.environ.setdefault("JAX_ENABLE_X64", "1")

import numpy as np
import pytest

from rbfsweep.errors import InvalidModeError
from rbfsweep.rbf.kernels import KERNEL_NAMES, pick_rbf


def _require_x64() -> None:
    import jax

    try:
        jax.config.update("jax_enable_x64", True)
    except Exception:
        pass
    if not jax.config.jax_enable_x64:
        pytest.skip("JAX 64-bit mode is required for rbfsweep kernel tests.")


X = np.array([0.3, -0.2, 0.5])
C = np.array([0.1, 0.4, -0.3])


@pytest.mark.parametrize("name", ["gaussian", "imq", "mq", "iq", "fundamental_3d"])
def test_kernel_derivatives_match_autodiff(name: str) -> None:
    _require_x64()
    import jax
    import jax.numpy as jnp

    kern = pick_rbf(name)
    ep = 1.3
    c = jnp.asarray(C)

    def f(x):
        return kern.value(ep, jnp.linalg.norm(x - c))

    x = jnp.asarray(X)
    r = float(np.linalg.norm(X - C))
    g = np.asarray(jax.grad(f)(x))
    for k in range(3):
        dk = float(X[k] - C[k])
        assert float(kern.derivative(k)(ep, r, dk)) == pytest.approx(g[k], rel=1e-10, abs=1e-12)

    lap = float(np.trace(np.asarray(jax.hessian(f)(x))))
    assert float(kern.laplacian(ep, r)) == pytest.approx(lap, rel=1e-9, abs=1e-10)


def test_kernel_shapes_on_matrices() -> None:
    _require_x64()
    from rbfsweep.linalg import difference_matrix, distance_matrix

    rng = np.random.default_rng(0)
    P = rng.normal(size=(7, 3))
    Q = rng.normal(size=(5, 3))
    DM = distance_matrix(P, Q)
    assert DM.shape == (7, 5)
    kern = pick_rbf("imq")
    assert kern.value(1.0, DM).shape == (7, 5)
    assert kern.dx(1.0, DM, difference_matrix(P[:, 0], Q[:, 0])).shape == (7, 5)
    assert np.allclose(np.asarray(DM), np.linalg.norm(P[:, None, :] - Q[None, :, :], axis=-1))


def test_pick_rbf_aliases_and_unknown() -> None:
    assert pick_rbf("IMQ").name == "imq"
    assert pick_rbf("ga").name == "gaussian"
    assert pick_rbf("fundamental").name == "fundamental_3d"
    assert set(KERNEL_NAMES) == {"gaussian", "imq", "mq", "iq", "fundamental_3d"}
    with pytest.raises(InvalidModeError):
        pick_rbf("thin_plate")
