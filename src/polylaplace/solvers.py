"""Solvers built on the polygon operators.

This module provides:
  - Dirichlet Laplace solves with the polygon stiffness matrix.
  - Geodesic distances with the heat method (heat flow, normalized gradient,
    Poisson recovery) using the polygon gradient and divergence.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple
from numpy.typing import NDArray

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import spsolve

from .assembly import setup_mass_matrix, setup_stiffness_matrix
from .config import OperatorConfig, resolve_config
from .gradient import setup_Divergence_Matrix, setup_Gradient_Matrix
from .mesh import PolygonMesh
from .virtual_points import compute_virtual_points

_LOGGER = logging.getLogger(__name__)


def _dirichlet_solve(
    K: sp.spmatrix,
    rhs: NDArray[Any],
    bc_nodes: List[int],
    bc_vals: NDArray[Any],
) -> NDArray[Any]:
    """Solve ``K u = rhs`` with ``u[bc_nodes] = bc_vals`` prescribed."""
    n_nodes = K.shape[0]
    bc_set = set(bc_nodes)
    active_nodes: List[int] = [i for i in range(n_nodes) if i not in bc_set]

    result = np.zeros(n_nodes, dtype=float)
    result[bc_nodes] = bc_vals
    if not active_nodes:
        return result

    K = K.tocsr()
    Kaa = K[active_nodes, :][:, active_nodes]
    Kab = K[active_nodes, :][:, bc_nodes]
    rhs_a = rhs[active_nodes] - Kab.dot(bc_vals)

    try:
        result[active_nodes] = spsolve(Kaa.tocsc(), rhs_a)
    except Exception:
        _LOGGER.exception("Dirichlet solve failed.")
        raise
    return result


def _normalize_bc(
    nodes: Sequence[int],
    values: Sequence[float] | NDArray[Any],
    n_nodes: int,
    caller: str,
) -> Tuple[List[int], NDArray[Any]]:
    bc_nodes: List[int] = [int(i) for i in nodes]
    bc_vals: NDArray[Any] = np.asarray(values, dtype=float).reshape(-1)
    if len(bc_nodes) != bc_vals.shape[0]:
        raise ValueError(
            f"{caller}: nodes (len={len(bc_nodes)}) and values (len={bc_vals.shape[0]}) mismatch."
        )
    if any(i < 0 or i >= n_nodes for i in bc_nodes):
        _LOGGER.error("%s: Dirichlet node index out of range.", caller)
        raise ValueError(f"{caller}: Dirichlet node index out of range.")
    return bc_nodes, bc_vals


def solve_laplace(
    mesh: PolygonMesh,
    nodes: Sequence[int],
    values: Sequence[float] | NDArray[Any],
    stiffness: Optional[sp.spmatrix] = None,
    config: Optional[OperatorConfig] = None,
) -> NDArray[Any]:
    """Solve Laplace's equation with Dirichlet boundary conditions.

    Args:
        mesh (PolygonMesh): The mesh.
        nodes (Sequence[int]): Dirichlet vertex indices.
        values (Sequence[float] | NDArray[Any]): Boundary values.
        stiffness (Optional[sp.spmatrix]): Preassembled stiffness matrix.
        config (Optional[OperatorConfig]): Used when assembling the stiffness.

    Returns:
        NDArray[Any]: Harmonic field of length n_vertices.
    """
    n_nodes = mesh.n_vertices
    if n_nodes == 0:
        raise ValueError("solve_laplace: empty mesh (no vertices).")

    bc_nodes, bc_vals = _normalize_bc(nodes, values, n_nodes, "solve_laplace")
    if not bc_nodes:
        raise ValueError("solve_laplace: at least one Dirichlet node is required.")

    S = setup_stiffness_matrix(mesh, config=config) if stiffness is None else stiffness

    u = _dirichlet_solve(S, np.zeros(n_nodes, dtype=float), bc_nodes, bc_vals)
    _LOGGER.debug(
        "solve_laplace: solved (active=%d, fixed=%d).",
        n_nodes - len(set(bc_nodes)),
        len(set(bc_nodes)),
    )
    return u


def compute_geodesic(
    mesh: PolygonMesh,
    sources: Sequence[int],
    dt: Optional[float] = None,
    lumped: bool = True,
    config: Optional[OperatorConfig] = None,
) -> Tuple[NDArray[Any], NDArray[Any]]:
    """Compute geodesic distances from `sources` using the heat method.

    Steps: solve ``(M - dt·S) u = δ`` for a short heat flow, normalize the
    negated gradient per fan triangle into ``X``, and recover the distance
    from ``S φ = Div X`` with ``φ = 0`` at the sources.

    Args:
        mesh (PolygonMesh): The mesh.
        sources (Sequence[int]): Vertex indices with zero distance.
        dt (Optional[float]): Heat time step; defaults to the squared mean
            edge length.
        lumped (bool): Use the lumped mass matrix for the heat step.
        config (Optional[OperatorConfig]): Tolerances.

    Returns:
        Tuple[NDArray[Any], NDArray[Any]]:
            - distances: Per-vertex geodesic distance.
            - directions: Unit gradient directions per fan triangle, (T, 3).
    """
    cfg = resolve_config(config)
    n_nodes = mesh.n_vertices
    if n_nodes == 0 or mesh.n_faces == 0:
        raise ValueError("compute_geodesic: empty mesh (no vertices or no faces).")

    src, _ = _normalize_bc(
        sources, np.zeros(len(sources)), n_nodes, "compute_geodesic"
    )
    if not src:
        raise ValueError("compute_geodesic: at least one source vertex is required.")

    if dt is None:
        dt = mesh.mean_edge_length() ** 2
    if dt <= 0.0 or not np.isfinite(dt):
        raise ValueError(f"compute_geodesic: dt must be positive and finite; got {dt}")

    vps = compute_virtual_points(mesh, cfg)
    S = setup_stiffness_matrix(mesh, vps, cfg)
    M = setup_mass_matrix(mesh, lumped=lumped, virtual_points=vps, config=cfg)
    G = setup_Gradient_Matrix(mesh, vps, cfg)
    D = setup_Divergence_Matrix(mesh, vps, cfg)

    _LOGGER.debug(
        "compute_geodesic: n_nodes=%d fan triangles=%d #sources=%d dt=%.6g",
        n_nodes,
        G.shape[0] // 3,
        len(src),
        dt,
    )

    # Heat flow from the sources
    u0 = np.zeros(n_nodes, dtype=float)
    u0[src] = 1.0
    try:
        u = spsolve((M - dt * S).tocsc(), u0)
    except Exception:
        _LOGGER.exception("compute_geodesic: heat solve failed.")
        raise

    # Normalized direction of steepest distance increase per fan triangle
    grad = (G @ u).reshape(-1, 3)
    norms = np.linalg.norm(grad, axis=1)
    X = np.zeros_like(grad)
    valid = norms > 0.0
    X[valid] = -grad[valid] / norms[valid, None]

    # Poisson recovery with zero distance at the sources
    div = D @ X.ravel()
    phi = _dirichlet_solve(S, div, src, np.zeros(len(src), dtype=float))

    _LOGGER.debug(
        "compute_geodesic: completed (min=%.6g, max=%.6g).",
        float(phi.min()),
        float(phi.max()),
    )
    return phi, X
