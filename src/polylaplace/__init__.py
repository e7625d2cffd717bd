"""The polylaplace package provides differential operators on polygon meshes.

This package offers:
  - Virtual points that turn each polygon into a minimal-area triangle fan.
  - Sparse stiffness (Laplacian) and mass matrices for arbitrary polygons.
  - Gradient, divergence and prolongation operators over the triangle fans.
  - Laplace and heat-method geodesic solvers built on these operators.

Submodules:
  - config: Logging level and the OperatorConfig value object.
  - mesh: PolygonMesh with traversal, boundary detection and VTU export.
  - geometry: Areas, centroids and hat-function gradients.
  - virtual_points: Per-face virtual point solver.
  - local_operators: Local stiffness and mass matrices of one face.
  - assembly: Global stiffness and mass assembly, mass lumping.
  - gradient: Prolongation, gradient, gradient mass and divergence.
  - solvers: Dirichlet Laplace and heat-method geodesics.
"""

from .config import OperatorConfig, set_log_level

from polylaplace.mesh import PolygonMesh
from polylaplace.geometry import (
    area_weighted_centroid,
    face_area,
    gradient_hat_function,
    polygon_surface_area,
    triangle_area,
)
from polylaplace.virtual_points import (
    VirtualPoint,
    compute_virtual_points,
    find_polygon_weights,
)
from polylaplace.local_operators import local_mass_matrix, local_stiffness_matrix
from polylaplace.assembly import (
    TripletList,
    lump_matrix,
    setup_mass_matrix,
    setup_stiffness_matrix,
)
from polylaplace.gradient import (
    setup_Divergence_Matrix,
    setup_Gradient_Mass_Matrix,
    setup_Gradient_Matrix,
    setup_prolongation_matrix,
)
from polylaplace.solvers import compute_geodesic, solve_laplace

__version__ = "0.1.0"

__all__ = [
    # Mesh
    "PolygonMesh",
    # Geometry
    "triangle_area",
    "face_area",
    "polygon_surface_area",
    "area_weighted_centroid",
    "gradient_hat_function",
    # Virtual points
    "VirtualPoint",
    "find_polygon_weights",
    "compute_virtual_points",
    # Operators
    "local_stiffness_matrix",
    "local_mass_matrix",
    "TripletList",
    "lump_matrix",
    "setup_stiffness_matrix",
    "setup_mass_matrix",
    "setup_prolongation_matrix",
    "setup_Gradient_Matrix",
    "setup_Gradient_Mass_Matrix",
    "setup_Divergence_Matrix",
    # Solvers
    "solve_laplace",
    "compute_geodesic",
    # Configuration
    "OperatorConfig",
    "set_log_level",
]
