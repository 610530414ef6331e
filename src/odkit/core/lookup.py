"""Binary-search lookup of nearest lower neighbours in sorted time series."""
from __future__ import annotations

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


class BinarySearchLookup:
    """Nearest-lower-neighbour lookup over an ascending sequence of values.

    Duplicate values are allowed; a query equal to a duplicated value resolves
    to one of the duplicates (the last one), from which callers may walk forward.

    Attributes:
        values: The ascending values being searched (read-only copy).
    """

    def __init__(self, values: ArrayLike) -> None:
        """Create the lookup scheme.

        Args:
            values: Ascending (non-decreasing) sequence of values.

        Raises:
            ValueError: If the sequence is empty or not sorted.
        """
        array = np.array(values, dtype=np.float64)
        if array.ndim != 1 or array.size == 0:
            logger.error("Lookup values must be a non-empty 1-D sequence, got shape %s", array.shape)
            raise ValueError(f"Lookup values must be a non-empty 1-D sequence, got shape {array.shape}")
        if np.any(np.diff(array) < 0.0):
            logger.error("Lookup values are not sorted in ascending order")
            raise ValueError("Lookup values are not sorted in ascending order")

        array.flags.writeable = False
        self.values: NDArray[np.float64] = array

    def __len__(self) -> int:
        return self.values.size

    def find_nearest_lower_neighbour(self, value: float) -> int:
        """Find the index of the largest value that is <= the target.

        Args:
            value: Value to look up.

        Returns:
            Index of the nearest lower neighbour; 0 if the target lies below the
            range, the last index if it lies above.
        """
        index = int(np.searchsorted(self.values, value, side="right")) - 1
        return min(max(index, 0), self.values.size - 1)
