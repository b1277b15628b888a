"""Gaussian kernel density estimation in the reliability parameter space."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray


def _as_points(data: ArrayLike, dim: int | None = None) -> NDArray[np.float64]:
    """Return the data as a two-dimensional array of shape (points, dim)."""
    points = np.asarray(data, dtype=float)
    if dim is not None:
        if points.size % dim:
            raise ValueError(
                f"Number of values ({points.size}) is not a multiple of the "
                f"dimensionality ({dim})."
            )
        return points.reshape(-1, dim)
    if points.ndim == 1:
        return points.reshape(-1, 1)
    if points.ndim != 2:
        raise ValueError("Data must be a sequence of points of equal dimension.")
    return points


def _inverse_matrix(covar_inv: ArrayLike) -> NDArray[np.float64]:
    matrix = np.atleast_2d(np.asarray(covar_inv, dtype=float))
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError("Inverse covariance matrix must be square.")
    return matrix


def covariance(data: ArrayLike) -> NDArray[np.float64]:
    """Return the covariance matrix of a set of points.

    ``data`` holds one point per row. The covariance is normalised by the
    number of points, not by the number of points minus one.
    """
    points = _as_points(data)
    if points.shape[0] == 0:
        raise ValueError("Cannot compute covariance of an empty data set.")
    centred = points - points.mean(axis=0)
    return centred.T @ centred / points.shape[0]


def prob_density(covar_inv: ArrayLike, vector: Sequence[float] | ArrayLike, scale: float = 1.0) -> float:
    """Return ``scale * exp(-v^T C^-1 v / 2)`` for the relative position ``v``."""
    matrix = _inverse_matrix(covar_inv)
    v = np.asarray(vector, dtype=float).reshape(-1)
    if v.shape[0] != matrix.shape[0]:
        raise ValueError(
            f"Vector of length {v.shape[0]} does not match matrix of size "
            f"{matrix.shape[0]}."
        )
    return float(scale * np.exp(-0.5 * (v @ matrix @ v)))


def _kernel_sum(
    covar_inv: NDArray[np.float64],
    points: NDArray[np.float64],
    centre: NDArray[np.float64],
    scale: float,
) -> float:
    """Sum the Gaussian kernel of all points evaluated at ``centre``."""
    if points.shape[0] == 0:
        return 0.0
    diff = points - centre
    quad = np.einsum("ij,jk,ik->i", diff, covar_inv, diff)
    return float(scale * np.exp(-0.5 * quad).sum())


def calculate_skellam(
    covar_inv: ArrayLike, pos: ArrayLike, neg: ArrayLike, scale: float = 1.0
) -> NDArray[np.float64]:
    """Return the normalised Skellam value at every negative detection.

    For each negative detection the kernel density sums P (positive
    detections) and N (negative detections) are evaluated at its position,
    giving ``(P - N) / sqrt(P + N)``. ``pos`` and ``neg`` hold one point per
    row, or a flat sequence whose length is a multiple of the dimensionality.
    """
    matrix = _inverse_matrix(covar_inv)
    dim = matrix.shape[0]
    pos_points = _as_points(pos, dim)
    neg_points = _as_points(neg, dim)

    result = np.empty(neg_points.shape[0], dtype=float)
    for i, centre in enumerate(neg_points):
        pdf_neg = _kernel_sum(matrix, neg_points, centre, scale)
        pdf_pos = _kernel_sum(matrix, pos_points, centre, scale)
        with np.errstate(divide="ignore", invalid="ignore"):
            result[i] = (pdf_pos - pdf_neg) / np.sqrt(pdf_pos + pdf_neg)
    return result