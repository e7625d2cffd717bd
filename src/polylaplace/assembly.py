"""Assembly of global sparse stiffness and mass matrices.

Local face matrices are scattered into an append-only triplet list; building
the sparse matrix sums duplicate (row, col) entries. Buffers filled
independently (e.g. per worker) can be merged with `TripletList.extend`
before the single `tocsr` call.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple
from numpy.typing import NDArray

import numpy as np
import scipy.sparse as sp

from .config import OperatorConfig, resolve_config
from .local_operators import local_mass_matrix, local_stiffness_matrix
from .mesh import PolygonMesh
from .virtual_points import VirtualPoint, compute_virtual_points

_LOGGER = logging.getLogger(__name__)

LocalBuilder = Callable[..., NDArray[Any]]


class TripletList:
    """Append-only (row, col, value) buffer for sparse assembly.

    Attributes:
        rows (List[int]): Row indices.
        cols (List[int]): Column indices.
        data (List[float]): Values.
    """

    def __init__(self) -> None:
        self.rows: List[int] = []
        self.cols: List[int] = []
        self.data: List[float] = []

    def __len__(self) -> int:
        return len(self.data)

    def append(self, row: int, col: int, value: float) -> None:
        """Append a single entry."""
        self.rows.append(int(row))
        self.cols.append(int(col))
        self.data.append(float(value))

    def add_block(self, indices: Sequence[int], local: NDArray[Any]) -> None:
        """Scatter a dense local matrix at the given global indices.

        Entry ``local[k, j]`` is appended at ``(indices[k], indices[j])``.

        Args:
            indices (Sequence[int]): Global index of each local row/column.
            local (NDArray[Any]): Square local matrix.
        """
        idx = np.asarray(indices, dtype=int)
        n = idx.shape[0]
        if local.shape != (n, n):
            raise ValueError(
                f"add_block: local matrix shape {local.shape} does not match {n} indices."
            )
        # rows: [i0,i0,.., i1,i1,..], cols: [i0,i1,.., i0,i1,..]
        self.rows.extend(np.repeat(idx, n).tolist())
        self.cols.extend(np.tile(idx, n).tolist())
        self.data.extend(local.ravel(order="C").tolist())

    def extend(self, other: TripletList) -> None:
        """Merge the entries of another buffer into this one."""
        self.rows.extend(other.rows)
        self.cols.extend(other.cols)
        self.data.extend(other.data)

    def tocsr(self, shape: Tuple[int, int]) -> sp.csr_matrix:
        """Build a CSR matrix, summing duplicate entries."""
        return sp.coo_matrix(
            (self.data, (self.rows, self.cols)), shape=shape, dtype=float
        ).tocsr()


def lump_matrix(D: sp.spmatrix) -> sp.csr_matrix:
    """Replace a matrix by the diagonal matrix of its row sums.

    Args:
        D (sp.spmatrix): Square sparse matrix.

    Returns:
        sp.csr_matrix: Diagonal matrix with ``diag(i) = Σ_j D(i, j)``.
    """
    row_sums = np.asarray(D.sum(axis=1)).ravel()
    return sp.diags(row_sums, format="csr")


def _assemble(
    mesh: PolygonMesh,
    builder: LocalBuilder,
    virtual_points: Optional[Sequence[VirtualPoint]],
    cfg: OperatorConfig,
) -> sp.csr_matrix:
    """Scatter-add `builder` output of every face into an (nV, nV) matrix."""
    n_verts = mesh.n_vertices
    if n_verts == 0 or mesh.n_faces == 0:
        raise ValueError("assembly: empty mesh.")

    if virtual_points is None:
        virtual_points = compute_virtual_points(mesh, cfg)
    elif len(virtual_points) != mesh.n_faces:
        raise ValueError(
            f"assembly: {len(virtual_points)} virtual points for {mesh.n_faces} faces."
        )

    triplets = TripletList()
    for f in range(mesh.n_faces):
        vp = virtual_points[f]
        local = builder(mesh.face_positions(f), vp.point, vp.weights, cfg)
        triplets.add_block(mesh.face_vertices(f), local)

    return triplets.tocsr((n_verts, n_verts))


def setup_stiffness_matrix(
    mesh: PolygonMesh,
    virtual_points: Optional[Sequence[VirtualPoint]] = None,
    config: Optional[OperatorConfig] = None,
) -> sp.csr_matrix:
    """Assemble the global stiffness matrix S (negative semi-definite Laplacian).

    Args:
        mesh (PolygonMesh): The mesh.
        virtual_points (Optional[Sequence[VirtualPoint]]): Per-face virtual
            points; computed when omitted.
        config (Optional[OperatorConfig]): Tolerances and clamping toggle.

    Returns:
        sp.csr_matrix: Symmetric (nV, nV) matrix with zero row sums.
    """
    cfg = resolve_config(config)
    S = -_assemble(mesh, local_stiffness_matrix, virtual_points, cfg)

    _LOGGER.debug(
        "setup_stiffness_matrix: vertices=%d faces=%d nnz=%d clamp=%s",
        mesh.n_vertices,
        mesh.n_faces,
        S.nnz,
        cfg.clamp_degenerate_cotangents,
    )
    return S


def setup_mass_matrix(
    mesh: PolygonMesh,
    lumped: bool = False,
    virtual_points: Optional[Sequence[VirtualPoint]] = None,
    config: Optional[OperatorConfig] = None,
) -> sp.csr_matrix:
    """Assemble the global mass matrix M.

    Args:
        mesh (PolygonMesh): The mesh.
        lumped (bool): Return the diagonal row-sum lumped matrix.
        virtual_points (Optional[Sequence[VirtualPoint]]): Per-face virtual
            points; computed when omitted.
        config (Optional[OperatorConfig]): Tolerances.

    Returns:
        sp.csr_matrix: Symmetric (nV, nV) matrix.
    """
    cfg = resolve_config(config)
    M = _assemble(mesh, local_mass_matrix, virtual_points, cfg)
    if lumped:
        M = lump_matrix(M)

    _LOGGER.debug(
        "setup_mass_matrix: vertices=%d faces=%d nnz=%d lumped=%s",
        mesh.n_vertices,
        mesh.n_faces,
        M.nnz,
        lumped,
    )
    return M
