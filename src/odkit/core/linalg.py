"""Dense linear-algebra helpers for weighted least-squares covariance analysis."""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


def inverse_of_updated_covariance(
    information_matrix: NDArray,
    weights_diagonal: NDArray,
    inverse_apriori_covariance: NDArray,
) -> NDArray[np.float64]:
    """Compute the inverse covariance from the normal equations.

    Evaluates ``H^T W H + P0^-1`` with W the diagonal weight matrix.

    Args:
        information_matrix: Partials of observations w.r.t. parameters, shape (m, p).
        weights_diagonal: Diagonal of the weight matrix, shape (m,).
        inverse_apriori_covariance: Inverse a priori covariance, shape (p, p).

    Returns:
        Inverse of the updated covariance, shape (p, p).
    """
    weighted = information_matrix * weights_diagonal[:, np.newaxis]
    return information_matrix.T @ weighted + inverse_apriori_covariance


def unnormalize_covariance(
    normalized_inverse_covariance: NDArray,
    normalization_factors: NDArray,
) -> NDArray[np.float64]:
    """Invert a normalized inverse covariance and scale it back to parameter units.

    Returns ``D @ inv(Lambda) @ D`` with ``D = diag(normalization_factors)``,
    for partials that were normalized by multiplying them with the factors.

    Raises:
        numpy.linalg.LinAlgError: If the inverse covariance is singular.
    """
    unnormalization = np.diag(normalization_factors)
    return unnormalization @ np.linalg.inv(normalized_inverse_covariance) @ unnormalization


def is_symmetric(matrix: NDArray, rtol: float = 1e-10, atol: float = 0.0) -> bool:
    return bool(np.allclose(matrix, matrix.T, rtol=rtol, atol=atol))


def is_positive_semidefinite(matrix: NDArray, tolerance: float = 1e-12) -> bool:
    """Check positive semi-definiteness of the symmetric part of a matrix.

    Eigenvalues are allowed to be negative by at most ``tolerance`` times the
    largest eigenvalue magnitude.
    """
    symmetric_part = 0.5 * (matrix + matrix.T)
    eigenvalues = np.linalg.eigvalsh(symmetric_part)
    scale = max(float(np.max(np.abs(eigenvalues))), 1.0) if eigenvalues.size else 1.0
    return bool(np.all(eigenvalues >= -tolerance * scale))
