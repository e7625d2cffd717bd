from __future__ import annotations
import pytest

import numpy as np
from polylaplace.mesh import PolygonMesh


def _quad_grid(n: int, h: float = 1.0) -> PolygonMesh:
    """Planar n×n grid of square quads with spacing `h` in the z=0 plane.

    Vertex (i, j) sits at (i·h, j·h, 0) and has index ``j·(n+1) + i``.
    """
    verts = np.array(
        [[i * h, j * h, 0.0] for j in range(n + 1) for i in range(n + 1)],
        dtype=float,
    )
    faces = []
    for j in range(n):
        for i in range(n):
            v0 = j * (n + 1) + i
            faces.append([v0, v0 + 1, v0 + n + 2, v0 + n + 1])
    return PolygonMesh(verts=verts, faces=faces)


@pytest.fixture
def quad_grid():
    """Factory fixture building planar quad grids."""
    return _quad_grid


@pytest.fixture
def simple_triangle_mesh():
    """
    Provides a PolygonMesh with a single triangle:
        v0 = [0, 0, 0]
        v1 = [1, 0, 0]
        v2 = [0, 1, 0]
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],  # v0
            [1.0, 0.0, 0.0],  # v1
            [0.0, 1.0, 0.0],  # v2
        ]
    )
    return PolygonMesh(verts=verts, faces=[[0, 1, 2]])


@pytest.fixture
def unit_square_mesh():
    """Single unit square quad in the z=0 plane."""
    verts = np.array(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
            [0.0, 1.0, 0.0],
        ]
    )
    return PolygonMesh(verts=verts, faces=[[0, 1, 2, 3]])


@pytest.fixture
def mixed_mesh():
    """
    Planar mesh mixing a pentagon, a quad and a triangle:

        v3 (1,2)
         /      \\
      v4 (0,1)   v2 (2,1)
        |          |  \\
        |  pent    | tri  v5 (3,0.5)
        |          |  /
      v0 (0,0) -- v1 (2,0)
        |   quad   |
      v6 (0,-1) -- v7 (2,-1)
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],  # v0
            [2.0, 0.0, 0.0],  # v1
            [2.0, 1.0, 0.0],  # v2
            [1.0, 2.0, 0.0],  # v3
            [0.0, 1.0, 0.0],  # v4
            [3.0, 0.5, 0.0],  # v5
            [0.0, -1.0, 0.0],  # v6
            [2.0, -1.0, 0.0],  # v7
        ]
    )
    faces = [[0, 1, 2, 3, 4], [1, 5, 2], [0, 6, 7, 1]]
    return PolygonMesh(verts=verts, faces=faces)


@pytest.fixture
def cube_mesh():
    """Closed unit cube surface made of six quads (vertex index = x + 2y + 4z)."""
    verts = np.array(
        [[x, y, z] for z in (0.0, 1.0) for y in (0.0, 1.0) for x in (0.0, 1.0)],
        dtype=float,
    )
    faces = [
        [0, 2, 3, 1],  # z = 0
        [4, 5, 7, 6],  # z = 1
        [0, 1, 5, 4],  # y = 0
        [2, 6, 7, 3],  # y = 1
        [0, 4, 6, 2],  # x = 0
        [1, 3, 7, 5],  # x = 1
    ]
    return PolygonMesh(verts=verts, faces=faces)


@pytest.fixture
def skew_mesh():
    """Two non-planar quads and a hexagon sharing edges, lifted off z=0."""
    verts = np.array(
        [
            [0.0, 0.0, 0.0],  # 0
            [1.0, 0.0, 0.2],  # 1
            [1.1, 1.0, -0.1],  # 2
            [0.0, 1.0, 0.3],  # 3
            [2.0, 0.1, 0.0],  # 4
            [2.1, 1.1, 0.4],  # 5
            [1.5, 2.0, 0.1],  # 6
            [0.6, 2.2, -0.2],  # 7
            [-0.4, 1.8, 0.2],  # 8
        ]
    )
    faces = [[0, 1, 2, 3], [1, 4, 5, 2], [3, 2, 5, 6, 7, 8]]
    return PolygonMesh(verts=verts, faces=faces)
