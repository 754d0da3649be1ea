import os

os.environ.setdefault("JAX_ENABLE_X64", "1")

import numpy as np
import pytest

from rbfsweep import sweep as sweep_mod
from rbfsweep.config import SweepConfig
from rbfsweep.errors import InvalidModeError, SingularSystemError
from rbfsweep.sweep import evaluation_points, reference_point_sweep
from rbfsweep.validation import error_compute, shift_to_reference, smoothness_ratio


def _require_x64() -> None:
    import jax

    try:
        jax.config.update("jax_enable_x64", True)
    except Exception:
        pass
    if not jax.config.jax_enable_x64:
        pytest.skip("JAX 64-bit mode is required for rbfsweep sweep tests.")


def _small(**changes) -> SweepConfig:
    return SweepConfig(n_points=240, n_eval=24).with_updates(**changes)


def test_mode_a_errors_follow_shift_identity() -> None:
    _require_x64()
    res = reference_point_sweep(_small(bc_choice=1))
    assert res.mode == 1
    assert res.errors.shape == (24,)
    assert res.eval_points.shape == (24, 3)
    assert np.all(np.isfinite(res.errors))
    assert np.all(res.errors >= 0.0)
    assert res.failed == ()

    # recompute one entry from a single Neumann-only field
    from rbfsweep.rbf import ball_geometry, solve_collocation

    cfg = _small(bc_choice=1)
    g = ball_geometry(1.0, cfg.n_points, "kansa", "halton", "spiral", cfg.physics.dipole_location, cfg.dip_cushion)
    fld = solve_collocation(g, cfg.physics, kernel="imq", ep=1.0)
    phi = np.asarray(fld.phi(res.eval_points))
    i = 7
    e = error_compute(shift_to_reference(phi, i), shift_to_reference(res.phi_analytic, i))
    assert e == pytest.approx(res.errors[i], rel=1e-6, abs=1e-12)


def test_mode_a_converges_with_collocation_density() -> None:
    _require_x64()
    medians = [
        float(np.median(reference_point_sweep(SweepConfig(n_points=n, n_eval=201)).errors)) for n in (200, 400, 800)
    ]
    assert medians[0] > medians[1] > medians[2]
    assert medians[1] < 0.15
    assert medians[2] < 0.06


def test_default_scenario_error_field_is_smooth() -> None:
    _require_x64()
    res = reference_point_sweep(SweepConfig())
    assert res.errors.shape == (1001,)
    assert np.all(np.isfinite(res.errors))
    assert np.median(res.errors) < 0.02
    assert smoothness_ratio(res.errors) <= 10.0


def test_mode_b_zero_at_reference_and_threads_agree() -> None:
    _require_x64()
    serial = reference_point_sweep(_small(bc_choice=2, n_eval=8))
    assert serial.mode == 2
    assert np.all(np.isfinite(serial.errors))
    assert serial.failed == ()
    phi_scale = float(np.max(np.abs(serial.phi_analytic)))
    assert serial.metadata["max_anchor_residual"] <= 1e-6 * phi_scale

    threaded = reference_point_sweep(_small(bc_choice=2, n_eval=8, workers=3))
    assert np.allclose(serial.errors, threaded.errors, rtol=1e-10, atol=1e-14)


@pytest.mark.parametrize("bc_choice", [1, 2])
def test_single_evaluation_point_gives_zero_error(bc_choice: int) -> None:
    _require_x64()
    res = reference_point_sweep(_small(bc_choice=bc_choice, n_eval=1))
    assert res.errors.shape == (1,)
    assert res.errors[0] == 0.0


def test_sweep_is_deterministic() -> None:
    _require_x64()
    cfg = _small(int_point_dist="random", seed=11)
    a = reference_point_sweep(cfg)
    b = reference_point_sweep(cfg)
    assert np.array_equal(a.errors, b.errors)


def test_mode_b_failure_is_recorded_as_nan(monkeypatch) -> None:
    _require_x64()
    cfg = _small(bc_choice=2, n_eval=6)
    bad = evaluation_points(cfg.n_eval, cfg.physics.radius)[3]
    real = sweep_mod.solve_collocation

    def flaky(geometry, physics, **kwargs):
        ref = kwargs.get("reference")
        if ref is not None and np.allclose(ref, bad):
            raise SingularSystemError("forced failure")
        return real(geometry, physics, **kwargs)

    monkeypatch.setattr(sweep_mod, "solve_collocation", flaky)
    res = reference_point_sweep(cfg)
    assert res.failed == (3,)
    assert np.isnan(res.errors[3])
    assert np.all(np.isfinite(np.delete(res.errors, 3)))
    assert res.metadata["n_failed"] == 1
    assert res.valid.sum() == 5


def test_mode_a_failure_aborts(monkeypatch) -> None:
    _require_x64()

    def broken(geometry, physics, **kwargs):
        raise SingularSystemError("forced failure")

    monkeypatch.setattr(sweep_mod, "solve_collocation", broken)
    with pytest.raises(SingularSystemError):
        reference_point_sweep(_small(bc_choice=1))


def test_invalid_mode_is_rejected_before_work() -> None:
    with pytest.raises(InvalidModeError):
        reference_point_sweep(_small(bc_choice=3))
    with pytest.raises(InvalidModeError):
        reference_point_sweep(_small(sol_type="bem"))


def test_mfs_sweep_runs() -> None:
    _require_x64()
    res = reference_point_sweep(_small(sol_type="mfs", n_points=150, mfs_frac=0.8, n_eval=10))
    assert res.metadata["kernel"] == "fundamental_3d"
    assert res.metadata["geometry"]["n_sources"] == 120
    assert np.all(np.isfinite(res.errors))
