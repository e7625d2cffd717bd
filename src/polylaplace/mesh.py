"""Module defining the PolygonMesh class for 3D polygonal surface meshes.

This module provides:
  - Construction from OBJ files or direct arrays (faces of any valence >= 3).
  - Face traversal helpers (vertices, positions, halfedges).
  - Vertex-to-face connectivity and boundary detection.
  - VTU export of the mesh with point/face data.

The operator builders only read from a PolygonMesh; they never mutate it.
"""
from __future__ import annotations

import collections
import logging
from typing import Any, DefaultDict, Dict, Iterator, List, Optional, Sequence, Tuple
from numpy.typing import NDArray

import numpy as np
import meshio

_LOGGER = logging.getLogger(__name__)

# meshio cell type names by valence; larger faces are written as "polygon".
_CELL_TYPES = {3: "triangle", 4: "quad"}


class PolygonMesh:
    """Handle 3D polygonal surface meshes.

    Faces are stored as a ragged list of vertex index arrays in cyclic order.
    The halfedges of a face follow that order: face ``[a, b, c, d]`` has the
    halfedges ``(a, b), (b, c), (c, d), (d, a)``.

    Args:
        filename (Optional[str]): Path to OBJ file to load mesh from.
        verts (Optional[NDArray[Any]]): Vertex coordinates (n_vertices×3).
        faces (Optional[Sequence[Sequence[int]]]): Vertex indices per face.

    Attributes:
        verts (NDArray[Any]): Vertex array, shape (n_vertices, 3).
        faces (List[NDArray[Any]]): Vertex indices per face.
        centroids (NDArray[Any]): Vertex average of each face, shape (n_faces, 3).
        node_to_face (DefaultDict[int, List[int]]): Vertex→[face indices].
        boundary_edges (Optional[List[Tuple[int, int]]]): Edges used by one face.
    """

    verts: NDArray[Any]
    faces: List[NDArray[Any]]
    centroids: NDArray[Any]
    node_to_face: DefaultDict[int, List[int]]
    boundary_edges: Optional[List[Tuple[int, int]]]

    def __init__(
        self,
        filename: Optional[str] = None,
        verts: Optional[NDArray[Any]] = None,
        faces: Optional[Sequence[Sequence[int]]] = None,
    ) -> None:
        """Initialize mesh from OBJ or provided arrays.

        Raises:
            ValueError: If neither `filename` nor both arrays are provided, or
                if a face has fewer than 3 vertices or out-of-range indices.
        """
        if filename is not None:
            verts, faces = self.loadOBJ(filename)

        if verts is None or faces is None:
            _LOGGER.error("PolygonMesh __init__: missing verts or faces.")
            raise ValueError("Provide either `filename` or both `verts` and `faces`.")

        self.verts = np.asarray(verts, dtype=float)
        if self.verts.ndim != 2 or self.verts.shape[1] != 3:
            raise ValueError(f"verts must be (n_vertices, 3); got {self.verts.shape}")

        n_verts = self.verts.shape[0]
        self.faces = []
        for f_idx, face in enumerate(faces):
            face_arr = np.asarray(face, dtype=int).reshape(-1)
            if face_arr.shape[0] < 3:
                _LOGGER.error(
                    "PolygonMesh __init__: face %d has valence %d.",
                    f_idx,
                    face_arr.shape[0],
                )
                raise ValueError(f"Face {f_idx} has fewer than 3 vertices.")
            if (face_arr < 0).any() or (face_arr >= n_verts).any():
                _LOGGER.error(
                    "PolygonMesh __init__: face %d has out-of-range indices.", f_idx
                )
                raise ValueError(
                    f"Face {f_idx} contains out-of-range vertex indices."
                )
            self.faces.append(face_arr)

        # Vertex average per face (not the area centroid)
        self.centroids = np.array(
            [self.verts[face].mean(axis=0) for face in self.faces], dtype=float
        ).reshape(-1, 3)

        self.node_to_face = collections.defaultdict(list)
        for f_idx, face in enumerate(self.faces):
            for v in face:
                self.node_to_face[int(v)].append(f_idx)

        self.boundary_edges = None

        _LOGGER.info(
            "PolygonMesh initialized with %d vertices and %d faces (%d halfedges)",
            self.n_vertices,
            self.n_faces,
            self.n_halfedges,
        )

    @property
    def n_vertices(self) -> int:
        """Number of vertices."""
        return int(self.verts.shape[0])

    @property
    def n_faces(self) -> int:
        """Number of faces."""
        return len(self.faces)

    @property
    def n_halfedges(self) -> int:
        """Number of face halfedges, i.e. the sum of all face valences."""
        return int(sum(face.shape[0] for face in self.faces))

    def valence(self, face: int) -> int:
        """Return the number of boundary vertices of `face`."""
        return int(self.faces[face].shape[0])

    def face_vertices(self, face: int) -> NDArray[Any]:
        """Return the vertex indices of `face` in traversal order."""
        return self.faces[face]

    def face_positions(self, face: int) -> NDArray[Any]:
        """Return the vertex positions of `face` as an (n, 3) array."""
        return self.verts[self.faces[face]]

    def halfedges(self, face: int) -> Iterator[Tuple[int, int]]:
        """Yield the (from, to) vertex pairs of `face` in traversal order."""
        face_arr = self.faces[face]
        n = face_arr.shape[0]
        for i in range(n):
            yield int(face_arr[i]), int(face_arr[(i + 1) % n])

    def mean_edge_length(self) -> float:
        """Return the mean length over all face halfedges."""
        lengths = [
            np.linalg.norm(self.verts[b] - self.verts[a])
            for f in range(self.n_faces)
            for a, b in self.halfedges(f)
        ]
        if not lengths:
            raise ValueError("mean_edge_length: mesh has no edges.")
        return float(np.mean(lengths))

    def loadOBJ(self, filename: str) -> Tuple[NDArray[Any], List[List[int]]]:
        """Read a Wavefront .obj mesh file and return (verts, faces).

        Args:
            filename (str): Path to the .obj file.

        Returns:
            Tuple[NDArray[Any], List[List[int]]]:
                - verts: Array of shape (n_vertices, 3)
                - faces: Vertex indices per face (0-based)
        """
        verts: list[list[float]] = []
        faces: list[list[int]] = []

        with open(filename, "r") as fh:
            for line in fh:
                vals = line.split()
                if not vals:
                    continue
                if vals[0] == "v":
                    verts.append(list(map(float, vals[1:4])))
                elif vals[0] == "f":
                    # OBJ files are 1-indexed; "v/vt/vn" keeps only v
                    faces.append([int(w.split("/")[0]) - 1 for w in vals[1:]])

        _LOGGER.info(
            "Loaded OBJ from %s with %d vertices and %d faces",
            filename,
            len(verts),
            len(faces),
        )
        return np.array(verts, dtype=float).reshape(-1, 3), faces

    def detect_boundary(self) -> None:
        """Identify boundary edges (edges used by exactly one face)."""
        edge_count: dict[tuple[int, int], int] = {}
        for f_idx in range(self.n_faces):
            for u, v in self.halfedges(f_idx):
                key = (u, v) if u < v else (v, u)
                edge_count[key] = edge_count.get(key, 0) + 1

        self.boundary_edges = [e for e, k in edge_count.items() if k == 1]
        nonmanifold = [e for e, k in edge_count.items() if k > 2]
        if nonmanifold:
            _LOGGER.warning(
                "detect_boundary: %d non-manifold edge(s) detected (used by >2 faces).",
                len(nonmanifold),
            )

        _LOGGER.debug(
            "detect_boundary: faces=%d -> boundary_edges=%d (unique undirected edges=%d).",
            self.n_faces,
            len(self.boundary_edges),
            len(edge_count),
        )

    def boundary_vertices(self) -> List[int]:
        """Return the sorted vertex indices lying on a boundary edge."""
        if self.boundary_edges is None:
            self.detect_boundary()
        assert self.boundary_edges is not None
        return sorted({v for edge in self.boundary_edges for v in edge})

    def _cell_blocks(self) -> List[Tuple[str, List[int]]]:
        """Group face indices into meshio cell blocks by valence."""
        groups: Dict[int, List[int]] = {}
        for f_idx, face in enumerate(self.faces):
            groups.setdefault(int(face.shape[0]), []).append(f_idx)
        return [
            (_CELL_TYPES.get(valence, "polygon"), groups[valence])
            for valence in sorted(groups)
        ]

    def writeVTU(
        self,
        filename: str,
        point_data: Optional[Dict[str, NDArray[Any]]] = None,
        cell_data: Optional[Dict[str, NDArray[Any]]] = None,
    ) -> None:
        """Export this mesh (and optional point/face data) in VTU format.

        Faces are written as one meshio cell block per valence, so `cell_data`
        arrays (one entry per face, in face order) are split accordingly.

        Args:
            filename: Output path (e.g., ``"mesh.vtu"``).
            point_data: Optional dict of per-vertex arrays.
            cell_data: Optional dict of per-face arrays.

        Raises:
            ValueError: If provided data have incompatible lengths.
        """
        blocks = self._cell_blocks()
        cells = [
            (cell_type, np.array([self.faces[f] for f in f_ids], dtype=int))
            for cell_type, f_ids in blocks
        ]
        m = meshio.Mesh(points=self.verts, cells=cells)

        if point_data:
            for name, arr in point_data.items():
                arr_np = np.asarray(arr)
                if arr_np.shape[0] != self.n_vertices:
                    msg = (
                        f"point_data['{name}'] length {arr_np.shape[0]} "
                        f"!= n_vertices {self.n_vertices}"
                    )
                    _LOGGER.error("writeVTU: %s", msg)
                    raise ValueError(msg)
                m.point_data[name] = arr_np

        if cell_data:
            normalized: Dict[str, List[NDArray[Any]]] = {}
            for name, arr in cell_data.items():
                arr_np = np.asarray(arr)
                if arr_np.shape[0] != self.n_faces:
                    msg = (
                        f"cell_data['{name}'] length {arr_np.shape[0]} "
                        f"!= n_faces {self.n_faces}"
                    )
                    _LOGGER.error("writeVTU: %s", msg)
                    raise ValueError(msg)
                normalized[name] = [arr_np[f_ids] for _, f_ids in blocks]
            m.cell_data = normalized

        try:
            m.write(filename)
        except Exception:
            _LOGGER.exception("writeVTU failed for '%s'.", filename)
            raise

        _LOGGER.info(
            "VTU written to '%s' (vertices=%d, faces=%d, point_data=%d, cell_data=%d)",
            filename,
            self.n_vertices,
            self.n_faces,
            0 if not point_data else len(point_data),
            0 if not cell_data else len(cell_data),
        )
