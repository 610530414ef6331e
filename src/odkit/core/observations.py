"""Observation data containers and their concatenation into flat sequences.

Observations are grouped first by observable type, then by link ends. The
traversal order of that grouping is kept explicitly by ``MeasurementCollection``
so that the rows of an externally produced information matrix can be aligned
with the concatenated times and values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Union

import numpy as np
from numpy.typing import NDArray

from odkit.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ObservableType(Enum):
    """Observable types, each with a fixed number of components."""

    ONE_WAY_RANGE = "one_way_range"
    N_WAY_RANGE = "n_way_range"
    ONE_WAY_DOPPLER = "one_way_doppler"
    TWO_WAY_DOPPLER = "two_way_doppler"
    ONE_WAY_DIFFERENCED_RANGE = "one_way_differenced_range"
    ANGULAR_POSITION = "angular_position"
    POSITION_OBSERVABLE = "position_observable"
    VELOCITY_OBSERVABLE = "velocity_observable"
    EULER_ANGLES_313 = "euler_angles_313"

    @property
    def size(self) -> int:
        """Number of components of a single observation."""
        return _OBSERVABLE_SIZES[self]


_OBSERVABLE_SIZES = {
    ObservableType.ONE_WAY_RANGE: 1,
    ObservableType.N_WAY_RANGE: 1,
    ObservableType.ONE_WAY_DOPPLER: 1,
    ObservableType.TWO_WAY_DOPPLER: 1,
    ObservableType.ONE_WAY_DIFFERENCED_RANGE: 1,
    ObservableType.ANGULAR_POSITION: 2,
    ObservableType.POSITION_OBSERVABLE: 3,
    ObservableType.VELOCITY_OBSERVABLE: 3,
    ObservableType.EULER_ANGLES_313: 3,
}


def get_observable_size(observable_type: ObservableType) -> int:
    """Return the number of components of an observable type."""
    return observable_type.size


class LinkEndType(Enum):
    """Role of a participant in an observation link."""

    TRANSMITTER = 0
    REFLECTOR1 = 1
    REFLECTOR2 = 2
    REFLECTOR3 = 3
    REFLECTOR4 = 4
    RECEIVER = 5
    OBSERVED_BODY = 6


LinkEndId = tuple[str, str]
"""(body, station) pair; an empty station name denotes the body itself."""


@dataclass(frozen=True)
class LinkEnds:
    """Immutable, hashable set of link ends, sorted by link end role.

    Attributes:
        ends: (role, (body, station)) pairs, sorted by role.
    """

    ends: tuple[tuple[LinkEndType, LinkEndId], ...]

    @classmethod
    def from_mapping(cls, mapping: Mapping[LinkEndType, Union[LinkEndId, str]]) -> LinkEnds:
        """Build link ends from a role -> id mapping.

        A plain string id is taken as a body name with no station.
        """
        ends = []
        for role, link_end_id in mapping.items():
            if isinstance(link_end_id, str):
                link_end_id = (link_end_id, "")
            ends.append((role, (link_end_id[0], link_end_id[1])))
        ends.sort(key=lambda item: item[0].value)
        return cls(ends=tuple(ends))

    def __getitem__(self, role: LinkEndType) -> LinkEndId:
        for end_role, link_end_id in self.ends:
            if end_role == role:
                return link_end_id
        raise KeyError(role)

    def __contains__(self, role: object) -> bool:
        return any(end_role == role for end_role, _ in self.ends)

    def __str__(self) -> str:
        parts = []
        for role, (body, station) in self.ends:
            name = f"{body}/{station}" if station else body
            parts.append(f"{role.name.lower()}={name}")
        return ", ".join(parts)


@dataclass
class ObservationBatch:
    """Observations of one observable type over one set of link ends.

    Attributes:
        values: Observation values, shape (n_times * N,) for an N-component
            observable; the N components of one observation are consecutive.
        times: Observation epochs in seconds, one per observation.
        reference_link_end: Link end to which the epochs refer.
    """

    values: NDArray[np.float64]
    times: NDArray[np.float64]
    reference_link_end: LinkEndType = LinkEndType.RECEIVER

    def __post_init__(self) -> None:
        self.values = np.asarray(self.values, dtype=np.float64).reshape(-1)
        self.times = np.asarray(self.times, dtype=np.float64).reshape(-1)

    def __len__(self) -> int:
        return self.values.size


ObservationKey = tuple[ObservableType, LinkEnds]


@dataclass(frozen=True)
class ConcatenatedObservations:
    """Flat representation of a measurement collection.

    Attributes:
        times: One epoch per observation value, shape (n,).
        values: Observation values, shape (n,).
        keys: (observable type, link ends) pairs in traversal order.
        row_ranges: For each key, the (start, stop) slice of its rows.
    """

    times: NDArray[np.float64]
    values: NDArray[np.float64]
    keys: tuple[ObservationKey, ...]
    row_ranges: dict[ObservationKey, tuple[int, int]] = field(default_factory=dict)


class MeasurementCollection:
    """Observation batches keyed by observable type, then by link ends.

    The canonical traversal order is: observable types in order of first
    insertion, and within each type, link ends in insertion order. Every
    traversal (``keys``, ``items``, concatenation) follows this order, which is
    the order in which information-matrix rows are expected.
    """

    def __init__(self) -> None:
        self._batches: dict[ObservableType, dict[LinkEnds, ObservationBatch]] = {}

    def add(
        self,
        observable_type: ObservableType,
        link_ends: LinkEnds,
        batch: ObservationBatch,
    ) -> None:
        """Add a batch of observations.

        Args:
            observable_type: Observable type of the batch.
            link_ends: Link ends of the batch.
            batch: The observations.

        Raises:
            ConfigurationError: If the value count is not the number of epochs
                times the observable size, or the key is already present.
        """
        size = get_observable_size(observable_type)
        if batch.times.size * size != batch.values.size:
            logger.error(
                "Batch for %s (%s) has %d values for %d epochs of size %d",
                observable_type.value, link_ends, batch.values.size, batch.times.size, size,
            )
            raise ConfigurationError(
                f"Batch for {observable_type.value} ({link_ends}) has {batch.values.size} values, "
                f"expected {batch.times.size * size} ({batch.times.size} epochs of size {size})"
            )

        per_link_ends = self._batches.setdefault(observable_type, {})
        if link_ends in per_link_ends:
            logger.error("Duplicate batch for %s (%s)", observable_type.value, link_ends)
            raise ConfigurationError(f"Duplicate batch for {observable_type.value} ({link_ends})")
        per_link_ends[link_ends] = batch

    def keys(self) -> list[ObservationKey]:
        """Return the (observable type, link ends) keys in canonical order."""
        return [
            (observable_type, link_ends)
            for observable_type, per_link_ends in self._batches.items()
            for link_ends in per_link_ends
        ]

    def items(self) -> Iterator[tuple[ObservationKey, ObservationBatch]]:
        for observable_type, per_link_ends in self._batches.items():
            for link_ends, batch in per_link_ends.items():
                yield (observable_type, link_ends), batch

    def __getitem__(self, key: ObservationKey) -> ObservationBatch:
        observable_type, link_ends = key
        return self._batches[observable_type][link_ends]

    def __len__(self) -> int:
        return sum(len(per_link_ends) for per_link_ends in self._batches.values())

    def __iter__(self) -> Iterator[ObservationKey]:
        return iter(self.keys())

    @property
    def observable_types(self) -> list[ObservableType]:
        return list(self._batches)

    def number_of_observations_per_observable(self) -> tuple[dict[ObservableType, int], int]:
        """Count observation values per observable type.

        Returns:
            Tuple of (value count per observable type, total value count).
        """
        counts = {
            observable_type: sum(batch.values.size for batch in per_link_ends.values())
            for observable_type, per_link_ends in self._batches.items()
        }
        return counts, sum(counts.values())

    @classmethod
    def from_dict(
        cls,
        data: Mapping[ObservableType, Mapping[LinkEnds, ObservationBatch]],
    ) -> MeasurementCollection:
        """Build a collection from nested mappings, keeping their iteration order."""
        collection = cls()
        for observable_type, per_link_ends in data.items():
            for link_ends, batch in per_link_ends.items():
                collection.add(observable_type, link_ends, batch)
        return collection


def _expanded_times(times: NDArray[np.float64], observable_size: int) -> NDArray[np.float64]:
    # Each epoch is repeated once per observable component.
    if observable_size == 1:
        return times.copy()
    return np.repeat(times, observable_size)


def concatenated_time_vector(measurements: MeasurementCollection) -> NDArray[np.float64]:
    """Concatenate the epochs of all observations into a single vector.

    Batches are visited in canonical order (observable type, then link ends).
    For an N-component observable each epoch appears N consecutive times, so
    the result has one entry per observation value.

    Args:
        measurements: Observations by observable type and link ends.

    Returns:
        Concatenated epochs, shape (total value count,).
    """
    pieces = [
        _expanded_times(batch.times, get_observable_size(observable_type))
        for (observable_type, _), batch in measurements.items()
    ]
    if not pieces:
        return np.empty(0, dtype=np.float64)
    return np.concatenate(pieces)


def concatenated_measurement_vector(measurements: MeasurementCollection) -> NDArray[np.float64]:
    """Concatenate all observation values, in canonical order, into one vector."""
    _, total = measurements.number_of_observations_per_observable()
    concatenated = np.zeros(total, dtype=np.float64)

    current_index = 0
    for _, batch in measurements.items():
        concatenated[current_index:current_index + batch.values.size] = batch.values
        current_index += batch.values.size

    return concatenated


def concatenate_observations(measurements: MeasurementCollection) -> ConcatenatedObservations:
    """Concatenate epochs and values, and record which rows belong to which key.

    Args:
        measurements: Observations by observable type and link ends.

    Returns:
        ConcatenatedObservations whose ``keys`` give the row order to use for
        the information matrix.
    """
    row_ranges: dict[ObservationKey, tuple[int, int]] = {}
    start = 0
    for key, batch in measurements.items():
        row_ranges[key] = (start, start + batch.values.size)
        start += batch.values.size

    times = concatenated_time_vector(measurements)
    values = concatenated_measurement_vector(measurements)

    logger.debug("Concatenated %d observation values from %d batches", values.size, len(row_ranges))
    return ConcatenatedObservations(
        times=times,
        values=values,
        keys=tuple(row_ranges),
        row_ranges=row_ranges,
    )

