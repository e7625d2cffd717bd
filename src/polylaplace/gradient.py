"""Gradient, divergence and prolongation operators on polygonal meshes.

Every face is treated as the fan of triangles (p, v0, v1) over its halfedges
(v0 → v1), p being the face's virtual point. Gradients are piecewise constant
per fan triangle; the virtual point values are expressed through the
prolongation matrix, so all operators act on vertex values only.

Fan triangles are numbered face by face following the halfedge order, and
fan triangle k owns rows ``3k, 3k+1, 3k+2`` (x, y, z) of the gradient.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
import scipy.sparse as sp

from .assembly import TripletList
from .config import OperatorConfig, resolve_config
from .geometry import gradient_hat_function, triangle_area
from .mesh import PolygonMesh
from .virtual_points import VirtualPoint, compute_virtual_points

_LOGGER = logging.getLogger(__name__)


def _check_nonempty(mesh: PolygonMesh) -> None:
    if mesh.n_vertices == 0 or mesh.n_faces == 0:
        _LOGGER.error("gradient: empty mesh (no vertices or no faces).")
        raise ValueError("gradient: empty mesh.")


def _resolve_virtual_points(
    mesh: PolygonMesh,
    virtual_points: Optional[Sequence[VirtualPoint]],
    cfg: OperatorConfig,
) -> Sequence[VirtualPoint]:
    _check_nonempty(mesh)
    if virtual_points is None:
        return compute_virtual_points(mesh, cfg)
    if len(virtual_points) != mesh.n_faces:
        raise ValueError(
            f"{len(virtual_points)} virtual points for {mesh.n_faces} faces."
        )
    return virtual_points


def setup_prolongation_matrix(
    mesh: PolygonMesh, virtual_points: Sequence[VirtualPoint]
) -> sp.csr_matrix:
    """Build the prolongation A from vertex values to vertex + virtual point values.

    Args:
        mesh (PolygonMesh): The mesh.
        virtual_points (Sequence[VirtualPoint]): Per-face virtual points.

    Returns:
        sp.csr_matrix: ((nV + nF), nV) matrix; identity on the first nV rows,
        face weights on row ``nV + f``.
    """
    _check_nonempty(mesh)
    nv = mesh.n_vertices
    nf = mesh.n_faces

    triplets = TripletList()
    for v in range(nv):
        triplets.append(v, v, 1.0)
    for f in range(nf):
        w = virtual_points[f].weights
        for i, v in enumerate(mesh.face_vertices(f)):
            triplets.append(nv + f, v, w[i])

    return triplets.tocsr((nv + nf, nv))


def setup_Gradient_Matrix(
    mesh: PolygonMesh,
    virtual_points: Optional[Sequence[VirtualPoint]] = None,
    config: Optional[OperatorConfig] = None,
) -> sp.csr_matrix:
    """Assemble the gradient operator G over all fan triangles.

    Args:
        mesh (PolygonMesh): The mesh.
        virtual_points (Optional[Sequence[VirtualPoint]]): Per-face virtual
            points; computed when omitted.
        config (Optional[OperatorConfig]): ``gradient_tolerance`` sets the
            area below which a fan triangle has zero gradient.

    Returns:
        sp.csr_matrix: (3T, nV) matrix, T the number of halfedges.
    """
    cfg = resolve_config(config)
    vps = _resolve_virtual_points(mesh, virtual_points, cfg)
    A = setup_prolongation_matrix(mesh, vps)

    nv = mesh.n_vertices
    nf = mesh.n_faces
    tol = cfg.gradient_tolerance

    triplets = TripletList()
    k = 0
    degenerate = 0
    for f in range(nf):
        p = vps[f].point
        for v0, v1 in mesh.halfedges(f):
            p0 = mesh.verts[v0]
            p1 = mesh.verts[v1]

            grad_p = gradient_hat_function(p, p0, p1, tol)
            grad_p0 = gradient_hat_function(p0, p1, p, tol)
            grad_p1 = gradient_hat_function(p1, p, p0, tol)
            if not grad_p.any():
                degenerate += 1

            for j in range(3):
                triplets.append(3 * k + j, nv + f, grad_p[j])
                triplets.append(3 * k + j, v0, grad_p0[j])
                triplets.append(3 * k + j, v1, grad_p1[j])
            k += 1

    if degenerate:
        _LOGGER.warning(
            "setup_Gradient_Matrix: %d degenerate fan triangle(s) with zero gradient.",
            degenerate,
        )

    G = (triplets.tocsr((3 * k, nv + nf)) @ A).tocsr()

    _LOGGER.debug(
        "setup_Gradient_Matrix: fan triangles=%d shape=%s nnz=%d",
        k,
        G.shape,
        G.nnz,
    )
    return G


def setup_Gradient_Mass_Matrix(
    mesh: PolygonMesh,
    virtual_points: Optional[Sequence[VirtualPoint]] = None,
    config: Optional[OperatorConfig] = None,
) -> sp.csr_matrix:
    """Diagonal inner-product weights of the gradient space.

    Returns:
        sp.csr_matrix: (3T, 3T) diagonal matrix holding each fan triangle's
        area three times.
    """
    vps = _resolve_virtual_points(mesh, virtual_points, resolve_config(config))

    areas = [
        triangle_area(mesh.verts[v0], mesh.verts[v1], vps[f].point)
        for f in range(mesh.n_faces)
        for v0, v1 in mesh.halfedges(f)
    ]
    diag = np.repeat(np.asarray(areas, dtype=float), 3)
    return sp.diags(diag, format="csr")


def setup_Divergence_Matrix(
    mesh: PolygonMesh,
    virtual_points: Optional[Sequence[VirtualPoint]] = None,
    config: Optional[OperatorConfig] = None,
) -> sp.csr_matrix:
    """Assemble the divergence operator ``Div = -Gᵀ · GradMass``.

    With this definition ``Div @ G`` equals the stiffness matrix of
    `setup_stiffness_matrix` on meshes without degenerate kites.

    Returns:
        sp.csr_matrix: (nV, 3T) matrix.
    """
    cfg = resolve_config(config)
    vps = _resolve_virtual_points(mesh, virtual_points, cfg)

    G = setup_Gradient_Matrix(mesh, vps, cfg)
    M = setup_Gradient_Mass_Matrix(mesh, vps, cfg)
    D = (-G.T @ M).tocsr()

    _LOGGER.debug("setup_Divergence_Matrix: shape=%s nnz=%d", D.shape, D.nnz)
    return D
