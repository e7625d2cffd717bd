"""Local stiffness and mass matrices of a single polygonal face.

The face is split into kites, kite i being the triangle formed by the edge
(v_i, v_{i+1}) and the face's virtual point p. Each kite contributes a
standard linear-triangle stencil to an (n+1)-dimensional system over the
polygon vertices and p. The virtual point is then eliminated by substituting
``p = Σ w_i v_i`` ("sandwiching"), which yields an n×n matrix.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Tuple
from numpy.typing import NDArray

import numpy as np

from .config import OperatorConfig, resolve_config

_LOGGER = logging.getLogger(__name__)


def _kite_lengths(
    poly: NDArray[Any], point: NDArray[Any], i: int, i1: int
) -> Tuple[NDArray[Any], float]:
    """Squared edge lengths of kite (v_i, v_i1, p) and its Heron product.

    Returns:
        Tuple[NDArray[Any], float]:
            - l2: ``[|v_i1 - p|², |v_i - p|², |v_i - v_i1|²]``
            - arg: Heron product, equal to 16·area² (clamped at zero).
    """
    l2 = np.array(
        [
            np.sum((poly[i1] - point) ** 2),
            np.sum((poly[i] - point) ** 2),
            np.sum((poly[i] - poly[i1]) ** 2),
        ]
    )
    lens = np.sqrt(l2)
    arg = (
        (lens[0] + (lens[1] + lens[2]))
        * (lens[2] - (lens[0] - lens[1]))
        * (lens[2] + (lens[0] - lens[1]))
        * (lens[0] + (lens[1] - lens[2]))
    )
    return l2, max(float(arg), 0.0)


def _sandwich(L: NDArray[Any], ln: NDArray[Any], weights: NDArray[Any]) -> None:
    """Eliminate the virtual point from `L` in place.

    Adds ``w_i ln_j + w_j ln_i + w_i w_j ln_n`` to every entry L(i, j), where
    ``ln`` holds the couplings to the virtual point (last entry: its diagonal).
    """
    n = L.shape[0]
    coupling = ln[:n]
    L += (
        np.outer(weights, coupling)
        + np.outer(coupling, weights)
        + ln[n] * np.outer(weights, weights)
    )


def local_stiffness_matrix(
    poly: NDArray[Any],
    point: NDArray[Any],
    weights: NDArray[Any],
    config: Optional[OperatorConfig] = None,
) -> NDArray[Any]:
    """Compute the n×n local stiffness matrix of a polygonal face.

    Each kite with area above ``config.area_tolerance`` contributes the
    cotangent stencil with coefficients ``coef[k] = ¼ (l2 sum of the two other
    edges - own l2) / area``, where area is half the square root of the Heron
    product. The returned matrix is positive semi-definite; the global
    assembler negates it.

    Args:
        poly (NDArray[Any]): Face vertex positions, shape (n, 3).
        point (NDArray[Any]): Virtual point of the face, shape (3,).
        weights (NDArray[Any]): Virtual point weights, shape (n,).
        config (Optional[OperatorConfig]): Tolerances and clamping toggle.

    Returns:
        NDArray[Any]: Symmetric (n, n) matrix with zero row sums.
    """
    cfg = resolve_config(config)
    poly = np.asarray(poly, dtype=float)
    point = np.asarray(point, dtype=float)
    w = np.asarray(weights, dtype=float)
    n = poly.shape[0]

    L = np.zeros((n, n), dtype=float)
    ln = np.zeros(n + 1, dtype=float)
    skipped = 0

    for i in range(n):
        i1 = (i + 1) % n
        l2, arg = _kite_lengths(poly, point, i, i1)
        area = 0.5 * np.sqrt(arg)
        if area <= cfg.area_tolerance:
            skipped += 1
            continue

        coef = np.array(
            [
                0.25 * (l2[1] + l2[2] - l2[0]) / area,
                0.25 * (l2[2] + l2[0] - l2[1]) / area,
                0.25 * (l2[0] + l2[1] - l2[2]) / area,
            ]
        )
        if cfg.clamp_degenerate_cotangents:
            # coef holds half cotangents
            bound = 0.5 * cfg.cotangent_bound
            coef = np.clip(coef, -bound, bound)

        L[i1, i1] += coef[0] + coef[2]
        L[i, i] += coef[1] + coef[2]
        L[i1, i] -= coef[2]
        L[i, i1] -= coef[2]

        ln[i1] -= coef[0]
        ln[i] -= coef[1]
        ln[n] += coef[0] + coef[1]

    if skipped:
        _LOGGER.debug(
            "local_stiffness_matrix: skipped %d degenerate kite(s) of %d.", skipped, n
        )

    _sandwich(L, ln, w)
    return L


def local_mass_matrix(
    poly: NDArray[Any],
    point: NDArray[Any],
    weights: NDArray[Any],
    config: Optional[OperatorConfig] = None,
) -> NDArray[Any]:
    """Compute the n×n consistent local mass matrix of a polygonal face.

    Each kite contributes area/6 on its diagonal terms and area/12 off the
    diagonal, with area a quarter of the square root of the Heron product.
    Kites at or below ``config.area_tolerance`` are skipped.

    Args:
        poly (NDArray[Any]): Face vertex positions, shape (n, 3).
        point (NDArray[Any]): Virtual point of the face, shape (3,).
        weights (NDArray[Any]): Virtual point weights, shape (n,).
        config (Optional[OperatorConfig]): Tolerances.

    Returns:
        NDArray[Any]: Symmetric (n, n) matrix whose entries sum to the
        face's fan area.
    """
    cfg = resolve_config(config)
    poly = np.asarray(poly, dtype=float)
    point = np.asarray(point, dtype=float)
    w = np.asarray(weights, dtype=float)
    n = poly.shape[0]

    M = np.zeros((n, n), dtype=float)
    ln = np.zeros(n + 1, dtype=float)
    skipped = 0

    for i in range(n):
        i1 = (i + 1) % n
        _l2, arg = _kite_lengths(poly, point, i, i1)
        area = 0.25 * np.sqrt(arg)
        if area <= cfg.area_tolerance:
            skipped += 1
            continue

        diag = area / 6.0
        off = area / 12.0

        M[i1, i1] += diag
        M[i, i] += diag
        M[i1, i] += off
        M[i, i1] += off

        ln[i1] += off
        ln[i] += off
        ln[n] += diag

    if skipped:
        _LOGGER.debug(
            "local_mass_matrix: skipped %d degenerate kite(s) of %d.", skipped, n
        )

    _sandwich(M, ln, w)
    return M
