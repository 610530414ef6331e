"""Post-processing of orbit-determination results.

Orders the information matrix by observation time and computes the
estimation covariance as a function of time, by inverting the normal
equations for all observations up to each output epoch.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

import numpy as np
from numpy.typing import ArrayLike, NDArray

from odkit.core.errors import ConfigurationError, InternalConsistencyError
from odkit.core.linalg import inverse_of_updated_covariance, unnormalize_covariance
from odkit.core.lookup import BinarySearchLookup
from odkit.core.observations import MeasurementCollection, concatenated_time_vector
from odkit.utils.constants import DEFAULT_COVARIANCE_OUTPUT_STEP_S

if TYPE_CHECKING:
    from odkit.data.pod import PodInput, PodOutput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeOrderedInformation:
    """Information matrix with rows sorted by observation time.

    Attributes:
        information_matrix: Row-permuted information matrix, shape (m, p).
        times: Ascending observation times, shape (m,).
        time_order: Original row index of each sorted row, shape (m,).
    """

    information_matrix: NDArray[np.float64]
    times: NDArray[np.float64]
    time_order: NDArray[np.intp]


@dataclass(eq=False)
class CovarianceHistory(Mapping):
    """Covariance matrices as a function of observation epoch.

    Behaves as a read-only mapping from epoch to covariance, iterating in
    ascending epoch order.

    Attributes:
        epochs: Observation epochs at which a covariance was recorded.
        covariances: Covariance matrix per epoch, each (p, p).
        observation_counts: Number of time-ordered observation rows included
            in each covariance.
    """

    epochs: list[float] = field(default_factory=list)
    covariances: list[NDArray[np.float64]] = field(default_factory=list)
    observation_counts: list[int] = field(default_factory=list)

    def record(self, epoch: float, covariance: NDArray[np.float64], observation_count: int) -> None:
        """Store a covariance, replacing any earlier entry for the same epoch."""
        if self.epochs and self.epochs[-1] == epoch:
            self.covariances[-1] = covariance
            self.observation_counts[-1] = observation_count
            return
        self.epochs.append(epoch)
        self.covariances.append(covariance)
        self.observation_counts.append(observation_count)

    def __getitem__(self, epoch: float) -> NDArray[np.float64]:
        index = int(np.searchsorted(self.epochs, epoch))
        if index < len(self.epochs) and self.epochs[index] == epoch:
            return self.covariances[index]
        raise KeyError(epoch)

    def __iter__(self) -> Iterator[float]:
        return iter(self.epochs)

    def __len__(self) -> int:
        return len(self.epochs)

    def sigmas(self) -> NDArray[np.float64]:
        """1σ parameter uncertainties over time, shape (n_epochs, p)."""
        return np.array([np.sqrt(np.diag(covariance)) for covariance in self.covariances])

    def as_dict(self) -> dict[float, NDArray[np.float64]]:
        return dict(zip(self.epochs, self.covariances))


def sort_order_and_sorted_vector(values: ArrayLike) -> tuple[NDArray[np.intp], NDArray[np.float64]]:
    """Stable ascending sort.

    Returns:
        Tuple of (sort order, sorted values); equal values keep their
        original relative order.
    """
    array = np.asarray(values, dtype=np.float64)
    order = np.argsort(array, kind="stable")
    return order, array[order]


def time_ordered_information_matrix(
    times: ArrayLike,
    information_matrix: ArrayLike,
) -> TimeOrderedInformation:
    """Sort the information matrix by the time of the associated observations.

    Row ``i`` of the returned matrix is row ``time_order[i]`` of the input, so
    the lowest time is the first row and the highest time is the last row.

    Args:
        times: Observation time of each information-matrix row, in the same
            (observable type, link ends) order as the matrix.
        information_matrix: Information matrix in observable type / link ends
            order, shape (m, p).

    Returns:
        TimeOrderedInformation with the permuted matrix, sorted times and order.

    Raises:
        ConfigurationError: If the number of times differs from the number of rows.
    """
    matrix = np.asarray(information_matrix, dtype=np.float64)
    time_order, sorted_times = sort_order_and_sorted_vector(times)

    if matrix.ndim != 2 or time_order.size != matrix.shape[0]:
        logger.error(
            "Cannot sort information matrix of shape %s by %d times", matrix.shape, time_order.size
        )
        raise ConfigurationError(
            "Error when sorting information matrix by time, sizes incompatible: "
            f"{time_order.size} times for matrix of shape {matrix.shape}"
        )

    return TimeOrderedInformation(
        information_matrix=matrix[time_order, :],
        times=sorted_times,
        time_order=time_order,
    )


def _check_covariance_inputs(
    information_matrix: NDArray,
    normalization_factors: NDArray,
    output_time_step: float,
    weights_diagonal: NDArray,
    inverse_apriori_covariance: NDArray,
) -> None:
    if inverse_apriori_covariance.ndim != 2 or (
        inverse_apriori_covariance.shape[0] != inverse_apriori_covariance.shape[1]
    ):
        logger.error("A priori covariance of shape %s is not square", inverse_apriori_covariance.shape)
        raise ConfigurationError(
            "Error when calculating covariance as function of time, a priori covariance is not square"
        )

    number_of_parameters = inverse_apriori_covariance.shape[1]
    if information_matrix.ndim != 2 or information_matrix.shape[1] != number_of_parameters:
        logger.error(
            "Information matrix of shape %s inconsistent with %d parameters",
            information_matrix.shape, number_of_parameters,
        )
        raise ConfigurationError(
            "Error when calculating covariance as function of time, "
            "number of parameters is inconsistent with information matrix"
        )

    if normalization_factors.ndim != 1 or normalization_factors.size != number_of_parameters:
        logger.error(
            "%d normalization factors inconsistent with %d parameters",
            normalization_factors.size, number_of_parameters,
        )
        raise ConfigurationError(
            "Error when calculating covariance as function of time, "
            "number of parameters is inconsistent with normalization factors"
        )

    if weights_diagonal.ndim != 1 or information_matrix.shape[0] != weights_diagonal.size:
        logger.error(
            "%d weights inconsistent with %d information matrix rows",
            weights_diagonal.size, information_matrix.shape[0],
        )
        raise ConfigurationError(
            "Error when calculating covariance as function of time, weights are inconsistent with partials"
        )

    if not output_time_step > 0.0:
        logger.error("Output time step must be positive, got %r", output_time_step)
        raise ConfigurationError(f"Output time step must be positive, got {output_time_step!r}")

    if information_matrix.shape[0] == 0:
        logger.error("No observations available for covariance computation")
        raise ConfigurationError("Error when calculating covariance as function of time, no observations")


def _check_output_time_step_resolution(times: NDArray[np.float64], output_time_step: float) -> None:
    # Epochs of largest magnitude have the coarsest float spacing.
    for epoch in (times[0], times[-1]):
        if epoch + output_time_step == epoch:
            logger.error("Output time step %r is below the resolution of epoch %r", output_time_step, epoch)
            raise ConfigurationError(
                f"Output time step {output_time_step!r} is too small to advance from epoch {epoch!r}"
            )


def covariance_history_from_ordered_data(
    ordered_times: ArrayLike,
    ordered_information_matrix: ArrayLike,
    ordered_weights_diagonal: ArrayLike,
    normalization_factors: ArrayLike,
    inverse_apriori_covariance: ArrayLike,
    output_time_step: float,
) -> CovarianceHistory:
    """Compute the covariance history from time-ordered normal-equation data.

    Starting at the first observation time, the time is advanced by
    ``output_time_step`` until it reaches the last observation time; no
    covariance is computed for the first time itself. At each step all
    observations up to and including the current time are used. When the
    step lands on an epoch shared by several rows (a multi-component
    observation), all rows with that epoch are included. Entries are keyed by
    the epoch of the last included observation, not by the nominal step time.

    Args:
        ordered_times: Ascending observation times, shape (m,).
        ordered_information_matrix: Normalized information matrix in time
            order, shape (m, p).
        ordered_weights_diagonal: Observation weights in time order, shape (m,).
        normalization_factors: Per-parameter normalization factors, shape (p,).
        inverse_apriori_covariance: Normalized inverse a priori covariance,
            shape (p, p).
        output_time_step: Step between covariance evaluations (> 0).

    Returns:
        CovarianceHistory with un-normalized covariances.

    Raises:
        ConfigurationError: If input dimensions are inconsistent, or the output
            step is too small to advance the time at the observation epochs.
        InternalConsistencyError: If the time lookup yields an invalid row.
    """
    times = np.asarray(ordered_times, dtype=np.float64)
    information_matrix = np.asarray(ordered_information_matrix, dtype=np.float64)
    weights = np.asarray(ordered_weights_diagonal, dtype=np.float64)
    factors = np.asarray(normalization_factors, dtype=np.float64)
    inverse_apriori = np.asarray(inverse_apriori_covariance, dtype=np.float64)

    _check_covariance_inputs(information_matrix, factors, output_time_step, weights, inverse_apriori)
    if times.size != information_matrix.shape[0]:
        logger.error("%d times inconsistent with %d information matrix rows", times.size, information_matrix.shape[0])
        raise ConfigurationError(
            "Error when calculating covariance as function of time, times are inconsistent with partials"
        )

    return _covariance_history(times, information_matrix, weights, factors, inverse_apriori, output_time_step)


def _covariance_history(
    times: NDArray[np.float64],
    information_matrix: NDArray[np.float64],
    weights: NDArray[np.float64],
    factors: NDArray[np.float64],
    inverse_apriori: NDArray[np.float64],
    output_time_step: float,
) -> CovarianceHistory:
    # Inputs are validated by the public entry points.
    _check_output_time_step_resolution(times, output_time_step)

    time_lookup = BinarySearchLookup(times)
    last_index = times.size - 1
    history = CovarianceHistory()

    current_time = times[0]
    while current_time < times[last_index]:
        current_time += output_time_step

        current_index = time_lookup.find_nearest_lower_neighbour(current_time)

        # Include every component of a multi-component observation.
        while current_index < last_index and times[current_index] == times[current_index + 1]:
            current_index += 1

        if current_index >= times.size:
            logger.error("Output time %s mapped to row %d of %d", current_time, current_index, times.size)
            raise InternalConsistencyError(
                "Error when getting covariance as a function of time, output time not found"
            )

        number_of_rows = current_index + 1
        inverse_covariance = inverse_of_updated_covariance(
            information_matrix[:number_of_rows, :],
            weights[:number_of_rows],
            inverse_apriori,
        )
        history.record(
            float(times[current_index]),
            unnormalize_covariance(inverse_covariance, factors),
            number_of_rows,
        )

    logger.debug(
        "Computed %d covariance epochs from %d observations (step %g)",
        len(history), times.size, output_time_step,
    )
    return history


def covariance_matrix_as_function_of_time(
    measurements: MeasurementCollection,
    information_matrix: ArrayLike,
    normalization_factors: ArrayLike,
    output_time_step: float,
    weights_diagonal: ArrayLike,
    inverse_apriori_covariance: ArrayLike,
) -> CovarianceHistory:
    """Create the estimation covariance as a function of time.

    Args:
        measurements: Observations, first by observable type, then by link ends.
        information_matrix: Information matrix normalized by the normalization
            factors (each partial multiplied by the factor of its parameter),
            with rows in the canonical order of ``measurements``.
        normalization_factors: Per-parameter factors the partials were
            multiplied by; the covariance is scaled back as ``D inv(L) D`` with
            ``D = diag(normalization_factors)``. Factors that partials were
            divided by must be inverted before being passed in.
        output_time_step: Step with which the covariance is computed.
        weights_diagonal: Diagonal of the weight matrix, in the same row order
            as the information matrix.
        inverse_apriori_covariance: Inverse a priori covariance, with
            parameters normalized by the normalization factors.

    Returns:
        CovarianceHistory mapping observation epoch to covariance.

    Raises:
        ConfigurationError: If input dimensions are inconsistent, or the output
            step is too small to advance the time at the observation epochs.
    """
    matrix = np.asarray(information_matrix, dtype=np.float64)
    factors = np.asarray(normalization_factors, dtype=np.float64)
    weights = np.asarray(weights_diagonal, dtype=np.float64)
    inverse_apriori = np.asarray(inverse_apriori_covariance, dtype=np.float64)

    _check_covariance_inputs(matrix, factors, output_time_step, weights, inverse_apriori)

    ordered = time_ordered_information_matrix(concatenated_time_vector(measurements), matrix)
    ordered_weights = weights[ordered.time_order]

    return _covariance_history(
        ordered.times,
        ordered.information_matrix,
        ordered_weights,
        factors,
        inverse_apriori,
        output_time_step,
    )


def covariance_history_from_pod(
    pod_input: PodInput,
    pod_output: PodOutput,
    output_time_step: float = DEFAULT_COVARIANCE_OUTPUT_STEP_S,
) -> CovarianceHistory:
    """Create the covariance as a function of time from estimation input and output.

    Uses an hourly output step unless one is given.
    """
    return covariance_matrix_as_function_of_time(
        pod_input.measurements,
        pod_output.normalized_information_matrix,
        pod_output.normalization_factors,
        output_time_step,
        pod_output.weights_diagonal,
        pod_input.inverse_apriori_covariance(),
    )
