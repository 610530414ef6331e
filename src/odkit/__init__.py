"""
odkit: Orbit-determination post-processing and astrodynamics utilities.

Covariance of a batch estimate as a function of observation time, element
set conversions including the Unified State Model, Runge-Kutta coefficient
tables and escape/capture trajectory legs.
"""

from __future__ import annotations

__version__ = "0.1.0"

from odkit.core.errors import ConfigurationError, InternalConsistencyError
from odkit.core.lookup import BinarySearchLookup
from odkit.core.observations import (
    LinkEnds,
    LinkEndType,
    MeasurementCollection,
    ObservableType,
    ObservationBatch,
    concatenate_observations,
    concatenated_time_vector,
    get_observable_size,
)
from odkit.core.pod_processing import (
    CovarianceHistory,
    covariance_history_from_pod,
    covariance_matrix_as_function_of_time,
    time_ordered_information_matrix,
)
from odkit.core.runge_kutta import CoefficientSet, get_coefficients, validate_coefficients
from odkit.core.elements import (
    convert_cartesian_to_keplerian,
    convert_keplerian_to_cartesian,
    convert_keplerian_to_usm7,
    convert_usm7_to_keplerian,
)
from odkit.core.trajectory import CaptureLeg, compute_escape_or_capture_delta_v
from odkit.data.pod import PodInput, PodOutput

__all__ = [
    "__version__",
    "ConfigurationError",
    "InternalConsistencyError",
    "BinarySearchLookup",
    "LinkEnds",
    "LinkEndType",
    "MeasurementCollection",
    "ObservableType",
    "ObservationBatch",
    "concatenate_observations",
    "concatenated_time_vector",
    "get_observable_size",
    "CovarianceHistory",
    "covariance_history_from_pod",
    "covariance_matrix_as_function_of_time",
    "time_ordered_information_matrix",
    "CoefficientSet",
    "get_coefficients",
    "validate_coefficients",
    "convert_cartesian_to_keplerian",
    "convert_keplerian_to_cartesian",
    "convert_keplerian_to_usm7",
    "convert_usm7_to_keplerian",
    "CaptureLeg",
    "compute_escape_or_capture_delta_v",
    "PodInput",
    "PodOutput",
]
