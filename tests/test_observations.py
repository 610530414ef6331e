"""Tests for observation containers and concatenation."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from odkit.core.errors import ConfigurationError
from odkit.core.observations import (
    LinkEnds,
    LinkEndType,
    MeasurementCollection,
    ObservableType,
    ObservationBatch,
    concatenate_observations,
    concatenated_measurement_vector,
    concatenated_time_vector,
    get_observable_size,
)


def _link_ends(station: str) -> LinkEnds:
    return LinkEnds.from_mapping({
        LinkEndType.TRANSMITTER: ("Earth", station),
        LinkEndType.RECEIVER: "Spacecraft",
    })


class TestObservableSize:
    """Test observable component counts."""

    def test_sizes(self):
        """Test component counts of representative observables."""
        assert get_observable_size(ObservableType.ONE_WAY_RANGE) == 1
        assert get_observable_size(ObservableType.ANGULAR_POSITION) == 2
        assert get_observable_size(ObservableType.POSITION_OBSERVABLE) == 3
        assert ObservableType.EULER_ANGLES_313.size == 3

    def test_every_type_has_a_size(self):
        """Test every observable type defines a size."""
        for observable_type in ObservableType:
            assert observable_type.size >= 1


class TestLinkEnds:
    """Test link end construction."""

    def test_sorted_by_role(self):
        """Test link ends are ordered by role."""
        link_ends = LinkEnds.from_mapping({
            LinkEndType.RECEIVER: ("Earth", "Goldstone"),
            LinkEndType.TRANSMITTER: ("Earth", "Madrid"),
        })

        assert [role for role, _ in link_ends.ends] == [LinkEndType.TRANSMITTER, LinkEndType.RECEIVER]
        assert link_ends[LinkEndType.RECEIVER] == ("Earth", "Goldstone")

    def test_string_id_is_body(self):
        """Test a plain string id names a body without station."""
        link_ends = _link_ends("Madrid")

        assert link_ends[LinkEndType.RECEIVER] == ("Spacecraft", "")
        assert LinkEndType.REFLECTOR1 not in link_ends
        assert "receiver=Spacecraft" in str(link_ends)

    def test_hashable_and_equal(self):
        """Test equal link ends hash alike."""
        assert _link_ends("Madrid") == _link_ends("Madrid")
        assert len({_link_ends("Madrid"), _link_ends("Madrid"), _link_ends("Canberra")}) == 2

    def test_missing_role(self):
        """Test lookup of an absent role raises KeyError."""
        with pytest.raises(KeyError):
            _link_ends("Madrid")[LinkEndType.OBSERVED_BODY]


class TestMeasurementCollection:
    """Test adding and traversing observation batches."""

    def test_canonical_order(self):
        """Types in first-insertion order, link ends in insertion order per type."""
        collection = MeasurementCollection()
        collection.add(ObservableType.ONE_WAY_DOPPLER, _link_ends("B"), ObservationBatch([1.0], [0.0]))
        collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("A"), ObservationBatch([2.0], [0.0]))
        collection.add(ObservableType.ONE_WAY_DOPPLER, _link_ends("A"), ObservationBatch([3.0], [0.0]))

        assert collection.keys() == [
            (ObservableType.ONE_WAY_DOPPLER, _link_ends("B")),
            (ObservableType.ONE_WAY_DOPPLER, _link_ends("A")),
            (ObservableType.ONE_WAY_RANGE, _link_ends("A")),
        ]
        assert list(collection) == collection.keys()
        assert collection.observable_types == [ObservableType.ONE_WAY_DOPPLER, ObservableType.ONE_WAY_RANGE]
        assert len(collection) == 3

    def test_value_count_mismatch(self):
        """Test rejection of a batch with too few values."""
        collection = MeasurementCollection()
        batch = ObservationBatch(values=[1.0, 2.0, 3.0, 4.0], times=[0.0, 1.0])

        with pytest.raises(ConfigurationError, match="expected 6"):
            collection.add(ObservableType.POSITION_OBSERVABLE, _link_ends("A"), batch)

    def test_duplicate_key(self, caplog):
        """Test rejection of a second batch for the same key."""
        collection = MeasurementCollection()
        collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("A"), ObservationBatch([1.0], [0.0]))

        with caplog.at_level(logging.ERROR, logger="odkit.core.observations"):
            with pytest.raises(ConfigurationError, match="Duplicate"):
                collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("A"), ObservationBatch([2.0], [1.0]))

        assert "Duplicate batch" in caplog.text

    def test_observation_counts(self):
        """Test value counts per observable type and in total."""
        collection = MeasurementCollection.from_dict({
            ObservableType.ANGULAR_POSITION: {
                _link_ends("A"): ObservationBatch(np.zeros(4), [0.0, 1.0]),
            },
            ObservableType.ONE_WAY_RANGE: {
                _link_ends("A"): ObservationBatch(np.zeros(3), [0.0, 1.0, 2.0]),
                _link_ends("B"): ObservationBatch(np.zeros(1), [5.0]),
            },
        })

        counts, total = collection.number_of_observations_per_observable()
        assert counts == {ObservableType.ANGULAR_POSITION: 4, ObservableType.ONE_WAY_RANGE: 4}
        assert total == 8

    def test_getitem(self):
        """Test batch access by (observable type, link ends)."""
        batch = ObservationBatch([1.0, 2.0], [0.0, 1.0])
        collection = MeasurementCollection()
        collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("A"), batch)

        assert collection[ObservableType.ONE_WAY_RANGE, _link_ends("A")] is batch
        assert len(batch) == 2


class TestConcatenation:
    """Test flattening of observations into vectors."""

    def test_multi_component_epochs_repeated(self):
        """Test each epoch is repeated once per component."""
        collection = MeasurementCollection()
        collection.add(
            ObservableType.POSITION_OBSERVABLE,
            _link_ends("A"),
            ObservationBatch(values=np.arange(6.0), times=[10.0, 20.0]),
        )

        times = concatenated_time_vector(collection)

        np.testing.assert_array_equal(times, [10.0, 10.0, 10.0, 20.0, 20.0, 20.0])

    def test_scalar_observables_keep_length_and_order(self):
        """Test scalar observables keep one epoch per value, in key order."""
        collection = MeasurementCollection()
        collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("A"), ObservationBatch([1.0, 2.0], [5.0, 1.0]))
        collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("B"), ObservationBatch([3.0], [3.0]))

        np.testing.assert_array_equal(concatenated_time_vector(collection), [5.0, 1.0, 3.0])
        np.testing.assert_array_equal(concatenated_measurement_vector(collection), [1.0, 2.0, 3.0])

    def test_times_and_values_aligned(self):
        """Test concatenated times, values and row ranges line up."""
        collection = MeasurementCollection()
        collection.add(ObservableType.ANGULAR_POSITION, _link_ends("A"), ObservationBatch([1.0, 2.0], [4.0]))
        collection.add(ObservableType.ONE_WAY_RANGE, _link_ends("A"), ObservationBatch([3.0, 4.0], [0.0, 8.0]))

        concatenated = concatenate_observations(collection)

        assert concatenated.times.size == concatenated.values.size == 4
        np.testing.assert_array_equal(concatenated.times, [4.0, 4.0, 0.0, 8.0])
        np.testing.assert_array_equal(concatenated.values, [1.0, 2.0, 3.0, 4.0])
        assert concatenated.keys == tuple(collection.keys())
        assert concatenated.row_ranges[ObservableType.ONE_WAY_RANGE, _link_ends("A")] == (2, 4)

    def test_empty_collection(self):
        """Test an empty collection gives empty vectors."""
        collection = MeasurementCollection()

        assert concatenated_time_vector(collection).size == 0
        assert concatenated_measurement_vector(collection).size == 0
