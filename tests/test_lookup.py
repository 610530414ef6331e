"""Tests for the binary-search time lookup."""

from __future__ import annotations

import numpy as np
import pytest

from odkit.core.lookup import BinarySearchLookup


class TestNearestLowerNeighbour:
    """Test nearest-lower-neighbour queries."""

    def test_exact_and_between_values(self):
        """Test queries on and between table values."""
        lookup = BinarySearchLookup([0.0, 10.0, 20.0, 30.0])

        assert lookup.find_nearest_lower_neighbour(0.0) == 0
        assert lookup.find_nearest_lower_neighbour(10.0) == 1
        assert lookup.find_nearest_lower_neighbour(15.0) == 1
        assert lookup.find_nearest_lower_neighbour(29.999) == 2
        assert lookup.find_nearest_lower_neighbour(30.0) == 3

    def test_duplicates_resolve_to_last(self):
        """A query equal to a repeated value lands on its last occurrence."""
        lookup = BinarySearchLookup([1.0, 3.0, 3.0, 3.0, 7.0])

        assert lookup.find_nearest_lower_neighbour(3.0) == 3
        assert lookup.find_nearest_lower_neighbour(5.0) == 3

    def test_out_of_range_is_clamped(self):
        """Test queries outside the table map to its ends."""
        lookup = BinarySearchLookup([1.0, 3.0, 3.0, 3.0, 7.0])

        assert lookup.find_nearest_lower_neighbour(0.0) == 0
        assert lookup.find_nearest_lower_neighbour(10.0) == 4

    def test_single_value(self):
        """Test a table with a single value."""
        lookup = BinarySearchLookup([5.0])

        assert len(lookup) == 1
        assert lookup.find_nearest_lower_neighbour(-1.0) == 0
        assert lookup.find_nearest_lower_neighbour(6.0) == 0


class TestLookupValidation:
    """Test rejection of invalid lookup tables."""

    def test_empty_rejected(self):
        """Test rejection of an empty table."""
        with pytest.raises(ValueError, match="non-empty"):
            BinarySearchLookup([])

    def test_unsorted_rejected(self):
        """Test rejection of an unsorted table."""
        with pytest.raises(ValueError, match="not sorted"):
            BinarySearchLookup([1.0, 0.5, 2.0])

    def test_values_are_read_only_copy(self):
        """Test the table is copied and cannot be modified."""
        source = np.array([1.0, 2.0, 3.0])
        lookup = BinarySearchLookup(source)
        source[0] = 100.0

        assert lookup.values[0] == 1.0
        with pytest.raises(ValueError):
            lookup.values[0] = 0.0
