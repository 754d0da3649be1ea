import numpy as np
import pytest

from rbfsweep.errors import GeometryError, InvalidModeError
from rbfsweep.rbf.geometry import (
    ball_geometry,
    interior_points,
    spacing_stats,
    sphere_halton_points,
    sphere_spiral_points,
    split_point_count,
)


def test_spiral_points_on_sphere() -> None:
    P = sphere_spiral_points(101, 2.0)
    assert P.shape == (101, 3)
    assert np.allclose(np.linalg.norm(P, axis=1), 2.0)
    # z runs from the north to the south pole
    assert np.all(np.diff(P[:, 2]) < 0.0)
    assert sphere_spiral_points(0).shape == (0, 3)


def test_halton_surface_points_on_sphere() -> None:
    P = sphere_halton_points(64, 1.5)
    assert P.shape == (64, 3)
    assert np.allclose(np.linalg.norm(P, axis=1), 1.5)
    assert len(np.unique(P.round(12), axis=0)) == 64


@pytest.mark.parametrize("kind", ["halton", "even", "random", "cheb"])
def test_interior_points_inside_ball(kind: str) -> None:
    P = interior_points(kind, 200, 1.0, seed=3)
    assert P.shape == (200, 3)
    assert np.all(np.linalg.norm(P, axis=1) < 1.0)


def test_interior_points_unknown_kind() -> None:
    with pytest.raises(InvalidModeError):
        interior_points("sobol", 10, 1.0)


def test_interior_cushion_rejects_points_near_dipole() -> None:
    x0 = np.array([0.0, 0.0, 0.6])
    P = interior_points("halton", 300, 1.0, dipole_location=x0, cushion=0.2)
    assert len(P) == 300
    assert np.min(np.linalg.norm(P - x0, axis=1)) >= 0.2


def test_interior_cushion_too_large_raises() -> None:
    with pytest.raises(GeometryError):
        interior_points("halton", 50, 1.0, dipole_location=(0.0, 0.0, 0.0), cushion=5.0)


def test_split_point_count_matches_spacing() -> None:
    n_int, n_bdy = split_point_count(1500, 1.0)
    assert n_int + n_bdy == 1500
    h_int = (4.0 / 3.0 * np.pi / n_int) ** (1.0 / 3.0)
    h_bdy = (4.0 * np.pi / n_bdy) ** 0.5
    assert h_int == pytest.approx(h_bdy, rel=0.02)

    assert split_point_count(100, 1.0, boundary_fraction=0.25) == (75, 25)
    with pytest.raises(GeometryError):
        split_point_count(1)


def test_kansa_ball_geometry() -> None:
    g = ball_geometry(1.0, 300, "kansa", "halton", "spiral", (0.0, 0.0, 0.6), 0.005)
    n_int, n_bdy = len(g.interior), len(g.boundary)
    assert n_int + n_bdy == 300
    assert g.sources is None
    assert g.centers.shape == (300, 3)
    assert np.all(np.linalg.norm(g.interior, axis=1) < 1.0)
    assert np.allclose(np.linalg.norm(g.boundary, axis=1), 1.0)
    assert np.allclose(np.linalg.norm(g.normals, axis=1), 1.0)
    assert np.all(np.sum(g.normals * g.boundary, axis=1) > 0.0)
    assert g.metadata["n_interior"] == n_int
    assert g.metadata["n_boundary"] == n_bdy
    assert g.metadata["dipole_clearance"] > 0.0


def test_mfs_ball_geometry() -> None:
    g = ball_geometry(1.0, 120, "mfs", bdy_point_dist="halton", mfs_frac=0.5, mfs_sphere=1.3)
    assert g.interior.shape == (0, 3)
    assert g.boundary.shape == (120, 3)
    assert g.sources.shape == (60, 3)
    assert np.allclose(np.linalg.norm(g.sources, axis=1), 1.3)
    assert g.centers is g.sources


def test_ball_geometry_is_deterministic() -> None:
    a = ball_geometry(1.0, 200, "kansa", "random", "halton", seed=7)
    b = ball_geometry(1.0, 200, "kansa", "random", "halton", seed=7)
    assert np.array_equal(a.interior, b.interior)
    assert np.array_equal(a.boundary, b.boundary)


def test_enforced_cushion_near_boundary_raises() -> None:
    with pytest.raises(GeometryError):
        ball_geometry(1.0, 200, dipole_location=(0.0, 0.0, 0.999), dip_cushion=0.005, enforce_cushion=True)
    # not enforced: only recorded
    g = ball_geometry(1.0, 200, dipole_location=(0.0, 0.0, 0.999), dip_cushion=0.005)
    assert g.metadata["cushion_enforced"] is False


def test_unknown_sol_type() -> None:
    with pytest.raises(InvalidModeError):
        ball_geometry(1.0, 50, "galerkin")


def test_spacing_stats() -> None:
    P = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [3.0, 0.0, 0.0]])
    s = spacing_stats(P)
    assert s["min"] == pytest.approx(1.0)
    assert s["max"] == pytest.approx(2.0)
    assert np.isnan(spacing_stats(P[:1])["median"])
