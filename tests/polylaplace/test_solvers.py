"""Tests for the Laplace and heat-method geodesic solvers."""

import numpy as np
import pytest

from polylaplace.assembly import setup_stiffness_matrix
from polylaplace.solvers import compute_geodesic, solve_laplace


def test_solve_laplace_reproduces_affine_field(quad_grid):
    """
    Affine Dirichlet data on the boundary of a planar quad grid must give the
    same affine function at the interior vertices.
    """
    mesh = quad_grid(4)
    exact = 1.5 * mesh.verts[:, 0] - 0.5 * mesh.verts[:, 1] + 3.0

    boundary = mesh.boundary_vertices()
    u = solve_laplace(mesh, boundary, exact[boundary])

    assert u.shape == (mesh.n_vertices,)
    np.testing.assert_allclose(u, exact, atol=1e-8)


def test_solve_laplace_with_preassembled_stiffness(quad_grid):
    mesh = quad_grid(3)
    S = setup_stiffness_matrix(mesh)
    boundary = mesh.boundary_vertices()
    values = np.sin(np.arange(len(boundary), dtype=float))

    u_given = solve_laplace(mesh, boundary, values, stiffness=S)
    u_default = solve_laplace(mesh, boundary, values)

    np.testing.assert_allclose(u_given, u_default)
    np.testing.assert_allclose(u_given[boundary], values)
    # Maximum principle
    assert u_given.max() <= values.max() + 1e-10
    assert u_given.min() >= values.min() - 1e-10


def test_solve_laplace_all_nodes_fixed(unit_square_mesh):
    u = solve_laplace(unit_square_mesh, [0, 1, 2, 3], [1.0, 2.0, 3.0, 4.0])
    np.testing.assert_allclose(u, [1.0, 2.0, 3.0, 4.0])


def test_solve_laplace_input_validation(unit_square_mesh):
    with pytest.raises(ValueError):
        solve_laplace(unit_square_mesh, [0, 1], [1.0])
    with pytest.raises(ValueError):
        solve_laplace(unit_square_mesh, [0, 7], [1.0, 2.0])
    with pytest.raises(ValueError):
        solve_laplace(unit_square_mesh, [], [])


def test_compute_geodesic_on_quad_grid(quad_grid):
    n = 6
    mesh = quad_grid(n)
    source = 0  # corner (0, 0)

    dist, directions = compute_geodesic(mesh, [source])

    assert dist.shape == (mesh.n_vertices,)
    assert directions.shape == (mesh.n_halfedges, 3)
    assert np.all(np.isfinite(dist))
    assert dist[source] == 0.0

    # Distances grow along the diagonal and along the bottom edge
    diagonal = [k * (n + 1) + k for k in range(n + 1)]
    bottom = list(range(n + 1))
    assert np.all(np.diff(dist[diagonal]) > 0.0)
    assert np.all(np.diff(dist[bottom]) > 0.0)

    far_corner = diagonal[-1]
    assert dist[far_corner] == pytest.approx(n * np.sqrt(2.0), rel=0.3)

    norms = np.linalg.norm(directions, axis=1)
    nonzero = norms > 0.0
    np.testing.assert_allclose(norms[nonzero], 1.0, atol=1e-12)


def test_compute_geodesic_input_validation(quad_grid):
    mesh = quad_grid(2)
    with pytest.raises(ValueError):
        compute_geodesic(mesh, [])
    with pytest.raises(ValueError):
        compute_geodesic(mesh, [100])
    with pytest.raises(ValueError):
        compute_geodesic(mesh, [0], dt=-1.0)
