"""Virtual point solver for polygonal faces.

Each face is replaced by a fan of triangles connecting a "virtual point" to
its boundary edges. The virtual point is an affine combination of the face
vertices, ``p = Σ w_i v_i`` with ``Σ w_i = 1``, chosen to minimize the sum of
squared fan triangle areas.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, List, Optional
from numpy.typing import NDArray

import numpy as np
import scipy.linalg

from .config import OperatorConfig, resolve_config
from .mesh import PolygonMesh

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class VirtualPoint:
    """Virtual point of one face.

    Attributes:
        point (NDArray[Any]): Position of the virtual point, shape (3,).
        weights (NDArray[Any]): Affine weights over the face vertices in face
            traversal order, shape (n,). May contain negative entries.
    """

    point: NDArray[Any]
    weights: NDArray[Any]


def find_polygon_weights(
    poly: NDArray[Any], config: Optional[OperatorConfig] = None
) -> NDArray[Any]:
    """Compute the affine weights of the squared-area minimizing point.

    With edge directions ``d_j = p_j - p_{j+1}``, the area vector of fan
    triangle j is proportional to ``d_j × p - d_j × p_j``. Setting the
    derivative of the squared areas with respect to the weights to zero gives
    ``J w = b`` with

        J(i, k) = ½ Σ_j (d_j × p_i)·(d_j × p_k)
        b(i)    = ½ Σ_j (d_j × p_j)·(d_j × p_i)

    which is solved together with the affine constraint as the least-squares
    system ``[4J; 1ᵀ] w = [4b; 1]``. J is rank deficient for planar polygons,
    so the minimum-norm solution is taken. Positions are taken relative to
    the vertex average; the affine weights do not depend on that shift.

    Args:
        poly (NDArray[Any]): Face vertex positions, shape (n, 3).
        config (Optional[OperatorConfig]): Tolerances.

    Returns:
        NDArray[Any]: Weights of length n summing to one. Uniform weights are
        returned when the solve fails or violates the affine constraint.
    """
    cfg = resolve_config(config)
    poly = np.asarray(poly, dtype=float)
    n = poly.shape[0]

    # Weights are invariant under translation of the face
    local = poly - poly.mean(axis=0)
    d = local - np.roll(local, -1, axis=0)  # (n, 3) edge directions
    # X[i, j] = d_j × p_i
    X = np.cross(d[None, :, :], local[:, None, :])
    C = np.cross(d, local)  # d_j × p_j

    J = 0.5 * np.einsum("ije,kje->ik", X, X)
    b = 0.5 * np.einsum("je,ije->i", C, X)

    M = np.vstack([4.0 * J, np.ones((1, n))])
    rhs = np.concatenate([4.0 * b, [1.0]])

    try:
        weights, _res, rank, _sv = scipy.linalg.lstsq(M, rhs)
    except (np.linalg.LinAlgError, ValueError) as exc:
        _LOGGER.warning(
            "find_polygon_weights: solve failed for valence %d (%r); using uniform weights.",
            n,
            exc,
        )
        return np.full(n, 1.0 / n)

    total = float(np.sum(weights))
    if not np.all(np.isfinite(weights)) or abs(total - 1.0) > cfg.weight_sum_tolerance:
        _LOGGER.warning(
            "find_polygon_weights: weights sum to %r for valence %d; using uniform weights.",
            total,
            n,
        )
        return np.full(n, 1.0 / n)

    _LOGGER.debug(
        "find_polygon_weights: valence=%d rank=%d weights=%s",
        n,
        int(rank),
        np.array2string(weights, precision=6, suppress_small=True),
    )
    return weights


def compute_virtual_points(
    mesh: PolygonMesh, config: Optional[OperatorConfig] = None
) -> List[VirtualPoint]:
    """Compute the virtual point and weights of every face.

    Args:
        mesh (PolygonMesh): The mesh.
        config (Optional[OperatorConfig]): Tolerances.

    Returns:
        List[VirtualPoint]: One entry per face, indexed by face index.
    """
    cfg = resolve_config(config)
    virtual_points: List[VirtualPoint] = []
    for f in range(mesh.n_faces):
        poly = mesh.face_positions(f)
        w = find_polygon_weights(poly, cfg)
        virtual_points.append(VirtualPoint(point=poly.T @ w, weights=w))

    _LOGGER.debug("compute_virtual_points: faces=%d", mesh.n_faces)
    return virtual_points
