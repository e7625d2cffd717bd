"""Unit tests for the virtual point solver."""

import numpy as np
import pytest

from polylaplace import virtual_points as vp_module
from polylaplace.virtual_points import (
    VirtualPoint,
    compute_virtual_points,
    find_polygon_weights,
)


def _squared_fan_area(poly, p):
    """Sum of squared areas of the triangles (v_i, v_{i+1}, p)."""
    total = 0.0
    n = poly.shape[0]
    for i in range(n):
        a = 0.5 * np.cross(poly[(i + 1) % n] - poly[i], p - poly[i])
        total += float(np.dot(a, a))
    return total


def test_triangle_weights_are_barycentric_thirds():
    poly = np.array([[0.0, 0.0, 0.0], [2.0, 0.1, 0.3], [0.4, 1.5, -0.2]])
    w = find_polygon_weights(poly)

    np.testing.assert_allclose(w, [1.0 / 3.0] * 3, atol=1e-8)
    np.testing.assert_allclose(poly.T @ w, poly.mean(axis=0), atol=1e-8)


def test_unit_square_virtual_point_is_center(unit_square_mesh):
    (vp,) = compute_virtual_points(unit_square_mesh)

    assert isinstance(vp, VirtualPoint)
    np.testing.assert_allclose(vp.weights, [0.25] * 4, atol=1e-8)
    np.testing.assert_allclose(vp.point, [0.5, 0.5, 0.0], atol=1e-8)


def test_regular_hexagon_virtual_point_is_center():
    angles = 2.0 * np.pi * np.arange(6) / 6
    poly = np.stack([np.cos(angles) + 3.0, np.sin(angles) - 1.0, np.ones(6)], axis=1)
    w = find_polygon_weights(poly)

    assert w.shape == (6,)
    assert np.sum(w) == pytest.approx(1.0, abs=1e-8)
    np.testing.assert_allclose(poly.T @ w, [3.0, -1.0, 1.0], atol=1e-8)


def test_skew_quad_point_minimizes_squared_area():
    poly = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.2], [1.1, 1.0, -0.1], [0.0, 1.0, 0.3]]
    )
    w = find_polygon_weights(poly)
    p = poly.T @ w

    assert np.sum(w) == pytest.approx(1.0, abs=1e-8)
    best = _squared_fan_area(poly, p)
    rng = np.random.default_rng(11)
    for delta in rng.normal(scale=1e-2, size=(20, 3)):
        assert best <= _squared_fan_area(poly, p + delta) + 1e-14


def test_compute_virtual_points_invariants(skew_mesh, mixed_mesh):
    for mesh in (skew_mesh, mixed_mesh):
        vps = compute_virtual_points(mesh)
        assert len(vps) == mesh.n_faces
        for f, vp in enumerate(vps):
            poly = mesh.face_positions(f)
            assert vp.weights.shape == (mesh.valence(f),)
            assert np.sum(vp.weights) == pytest.approx(1.0, abs=1e-6)
            np.testing.assert_allclose(vp.point, poly.T @ vp.weights, atol=1e-6)


def test_non_finite_polygon_falls_back_to_uniform():
    poly = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [np.nan, 1.0, 0.0], [0.0, 1.0, 0.0]]
    )
    w = find_polygon_weights(poly)
    np.testing.assert_allclose(w, [0.25] * 4)


def test_failed_solve_falls_back_to_uniform(monkeypatch):
    def failing_lstsq(*args, **kwargs):
        raise np.linalg.LinAlgError("SVD did not converge")

    monkeypatch.setattr(vp_module.scipy.linalg, "lstsq", failing_lstsq)
    poly = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0], [-0.5, 0.5, 0.0]]
    )
    w = find_polygon_weights(poly)
    np.testing.assert_allclose(w, [0.2] * 5)


def test_weight_sum_violation_falls_back_to_uniform(monkeypatch):
    def drifting_lstsq(M, rhs, *args, **kwargs):
        n = M.shape[1]
        return np.full(n, 0.5), None, n, None

    monkeypatch.setattr(vp_module.scipy.linalg, "lstsq", drifting_lstsq)
    poly = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    w = find_polygon_weights(poly)
    np.testing.assert_allclose(w, [1.0 / 3.0] * 3)


@pytest.mark.parametrize("offset", [1e4, 1e5])
def test_weights_do_not_depend_on_face_position(offset, caplog):
    poly = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.2], [1.1, 1.0, -0.1], [0.0, 1.0, 0.3]]
    )
    w_origin = find_polygon_weights(poly)

    with caplog.at_level("WARNING", logger="polylaplace.virtual_points"):
        w_far = find_polygon_weights(poly + offset)

    assert "using uniform weights" not in caplog.text
    np.testing.assert_allclose(w_far, w_origin, atol=1e-8)
    # Not the uniform fallback
    assert np.abs(w_origin - 0.25).max() > 1e-3
    np.testing.assert_allclose(
        (poly + offset).T @ w_far, poly.T @ w_origin + offset, atol=1e-6
    )
