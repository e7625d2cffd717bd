"""Geometry utilities for polygonal meshes.

Pure functions for triangle and polygon areas, mesh centroids, and the
gradient of a piecewise-linear hat function on a triangle.
"""
from __future__ import annotations

import logging
from typing import Any
from numpy.typing import NDArray

import numpy as np

from .mesh import PolygonMesh

_LOGGER = logging.getLogger(__name__)


def triangle_area(a: NDArray[Any], b: NDArray[Any], c: NDArray[Any]) -> float:
    """Return the area of the triangle (a, b, c)."""
    return 0.5 * float(np.linalg.norm(np.cross(b - a, c - a)))


def face_area(mesh: PolygonMesh, face: int) -> float:
    """Area of a face, triangulated as a fan around its vertex average.

    Args:
        mesh (PolygonMesh): The mesh.
        face (int): Face index.

    Returns:
        float: Sum of the fan triangle areas.
    """
    c = mesh.centroids[face]
    area = 0.0
    for v0, v1 in mesh.halfedges(face):
        area += triangle_area(c, mesh.verts[v0], mesh.verts[v1])
    return area


def polygon_surface_area(mesh: PolygonMesh) -> float:
    """Total surface area of the mesh (sum of `face_area` over all faces)."""
    area = 0.0
    for f in range(mesh.n_faces):
        area += face_area(mesh, f)
    _LOGGER.debug("polygon_surface_area: faces=%d area=%.6e", mesh.n_faces, area)
    return area


def area_weighted_centroid(mesh: PolygonMesh) -> NDArray[Any]:
    """Centroid of the surface, weighting each face's vertex average by its area.

    Args:
        mesh (PolygonMesh): The mesh.

    Returns:
        NDArray[Any]: 3-vector ``Σ area_f·c_f / Σ area_f``.

    Raises:
        ValueError: If the total surface area is zero.
    """
    center = np.zeros(3, dtype=float)
    total = 0.0
    for f in range(mesh.n_faces):
        a = face_area(mesh, f)
        total += a
        center += a * mesh.centroids[f]

    if total <= 0.0 or not np.isfinite(total):
        _LOGGER.error("area_weighted_centroid: total area is %r.", total)
        raise ValueError("area_weighted_centroid: mesh has zero surface area.")

    return center / total


def gradient_hat_function(
    i: NDArray[Any],
    j: NDArray[Any],
    k: NDArray[Any],
    tolerance: float = 1e-10,
) -> NDArray[Any]:
    """Gradient of the linear hat function centered at `i` on triangle (i, j, k).

    The gradient is perpendicular to the opposite edge ``k - j`` inside the
    triangle plane, points towards `i`, and has magnitude ``|k - j| / (2·area)``
    (one over the height of `i`).

    Args:
        i (NDArray[Any]): Vertex where the hat function equals one.
        j (NDArray[Any]): Second triangle vertex.
        k (NDArray[Any]): Third triangle vertex.
        tolerance (float): Triangles with area below this get a zero gradient.

    Returns:
        NDArray[Any]: 3-vector gradient.
    """
    area = triangle_area(i, j, k)
    if area < tolerance:
        return np.zeros(3, dtype=float)

    site = i - j
    base = k - j
    base_len = float(np.linalg.norm(base))
    grad = site - (np.dot(site, base) / base_len) * base / base_len
    grad = base_len * grad / np.linalg.norm(grad)
    return grad / (2.0 * area)
