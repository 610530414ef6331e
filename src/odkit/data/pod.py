"""Input and output containers of a parameter estimation run.

``PodInput`` carries the observations and a priori information handed to the
estimator; ``PodOutput`` carries the normalized normal-equation data it
produced. Both are plain value containers consumed by post-processing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from odkit.core.errors import ConfigurationError
from odkit.core.observations import MeasurementCollection

logger = logging.getLogger(__name__)


@dataclass
class PodInput:
    """Observations and a priori information for an estimation run.

    Attributes:
        measurements: Observations by observable type and link ends.
        number_of_parameters: Number of estimated parameters.
        inverse_apriori: Normalized inverse a priori covariance, shape (p, p).
            None means no a priori information (a zero matrix).
    """

    measurements: MeasurementCollection
    number_of_parameters: int
    inverse_apriori: NDArray[np.float64] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.number_of_parameters <= 0:
            logger.error("Number of estimated parameters must be positive, got %d", self.number_of_parameters)
            raise ConfigurationError(
                f"Number of estimated parameters must be positive, got {self.number_of_parameters}"
            )
        if self.inverse_apriori is not None:
            self.inverse_apriori = np.asarray(self.inverse_apriori, dtype=np.float64)
            if self.inverse_apriori.shape != (self.number_of_parameters, self.number_of_parameters):
                logger.error(
                    "Inverse a priori covariance of shape %s for %d parameters",
                    self.inverse_apriori.shape, self.number_of_parameters,
                )
                raise ConfigurationError(
                    f"Inverse a priori covariance of shape {self.inverse_apriori.shape} is inconsistent "
                    f"with {self.number_of_parameters} parameters"
                )

    def inverse_apriori_covariance(self) -> NDArray[np.float64]:
        """Return the inverse a priori covariance, zero when none was given."""
        if self.inverse_apriori is None:
            return np.zeros((self.number_of_parameters, self.number_of_parameters))
        return self.inverse_apriori


@dataclass
class PodOutput:
    """Normal-equation data produced by an estimation run.

    Attributes:
        normalized_information_matrix: Partials normalized per parameter, rows
            in the canonical order of the input measurements, shape (m, p).
        normalization_factors: Per-parameter factors, shape (p,); a normalized
            partial is the partial multiplied by the factor of its parameter.
        weights_diagonal: Diagonal of the observation weight matrix, shape (m,).
        parameter_estimate: Final parameter estimate, if available.
    """

    normalized_information_matrix: NDArray[np.float64]
    normalization_factors: NDArray[np.float64]
    weights_diagonal: NDArray[np.float64]
    parameter_estimate: NDArray[np.float64] | None = None

    def __post_init__(self) -> None:
        self.normalized_information_matrix = np.asarray(self.normalized_information_matrix, dtype=np.float64)
        self.normalization_factors = np.asarray(self.normalization_factors, dtype=np.float64)
        self.weights_diagonal = np.asarray(self.weights_diagonal, dtype=np.float64)

    @property
    def unnormalized_information_matrix(self) -> NDArray[np.float64]:
        """Information matrix with the normalization removed."""
        return self.normalized_information_matrix / self.normalization_factors[np.newaxis, :]
