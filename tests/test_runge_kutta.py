"""Tests for the Runge-Kutta coefficient tables."""

from __future__ import annotations

import dataclasses
import logging

import numpy as np
import pytest

from odkit.core.runge_kutta import (
    CoefficientSet,
    OrderToIntegrate,
    get_coefficients,
    validate_coefficients,
)


class TestCoefficientTables:
    """Test the structure of each coefficient set."""

    @pytest.mark.parametrize("coefficient_set", list(CoefficientSet))
    def test_tables_are_consistent(self, coefficient_set):
        """Test each table passes the consistency checks."""
        coefficients = get_coefficients(coefficient_set)

        assert validate_coefficients(coefficients) == []

    @pytest.mark.parametrize("coefficient_set", list(CoefficientSet))
    def test_shapes(self, coefficient_set):
        """Test table shapes and explicit structure."""
        coefficients = get_coefficients(coefficient_set)
        stages = coefficients.number_of_stages

        assert coefficients.a.shape == (stages, stages)
        assert coefficients.b.shape == (2, stages)
        # Explicit methods: coupling matrix is strictly lower triangular
        np.testing.assert_array_equal(np.triu(coefficients.a), 0.0)

    @pytest.mark.parametrize(
        "coefficient_set, stages, lower, higher, order_to_integrate",
        [
            (CoefficientSet.RKF45, 6, 4, 5, OrderToIntegrate.LOWER),
            (CoefficientSet.RKF56, 8, 5, 6, OrderToIntegrate.LOWER),
            (CoefficientSet.RKF78, 13, 7, 8, OrderToIntegrate.LOWER),
            (CoefficientSet.RK87_DORMAND_PRINCE, 13, 7, 8, OrderToIntegrate.HIGHER),
        ],
    )
    def test_orders(self, coefficient_set, stages, lower, higher, order_to_integrate):
        """Test stage counts and orders of each set."""
        coefficients = get_coefficients(coefficient_set)

        assert coefficients.name is coefficient_set
        assert coefficients.number_of_stages == stages
        assert (coefficients.lower_order, coefficients.higher_order) == (lower, higher)
        assert coefficients.order_to_integrate is order_to_integrate

    def test_tables_are_immutable(self):
        """Test table arrays cannot be modified."""
        coefficients = get_coefficients(CoefficientSet.RKF45)

        with pytest.raises(ValueError):
            coefficients.b[0, 0] = 1.0

    def test_same_instance_returned(self):
        """Test tables are built once."""
        assert get_coefficients(CoefficientSet.RKF78) is get_coefficients(CoefficientSet.RKF78)

    def test_unknown_set(self, caplog):
        """Test rejection of an unknown coefficient set."""
        with caplog.at_level(logging.ERROR, logger="odkit.core.runge_kutta"):
            with pytest.raises(ValueError, match="Unknown"):
                get_coefficients("RK4")

        assert "Unknown Runge-Kutta" in caplog.text


class TestValidation:
    """Test detection of corrupted tables."""

    def test_weight_sum_violation(self):
        """Test detection of weights not summing to one."""
        coefficients = get_coefficients(CoefficientSet.RKF45)
        b = coefficients.b.copy()
        b[1, 0] += 1e-6

        violations = validate_coefficients(dataclasses.replace(coefficients, b=b))

        assert len(violations) == 1
        assert "row 1" in violations[0]

    def test_node_violation(self):
        """Test detection of a node fraction off its row sum."""
        coefficients = get_coefficients(CoefficientSet.RKF56)
        c = coefficients.c.copy()
        c[3] *= 1.001

        violations = validate_coefficients(dataclasses.replace(coefficients, c=c))

        assert len(violations) == 1
        assert "stage 3" in violations[0]

    def test_nonzero_first_node(self):
        """Test detection of a nonzero first node fraction."""
        coefficients = get_coefficients(CoefficientSet.RKF78)
        c = coefficients.c.copy()
        c[0] = 0.1

        violations = validate_coefficients(dataclasses.replace(coefficients, c=c))

        assert any("first node" in violation for violation in violations)

    def test_zero_node_with_nonzero_row(self):
        """RKF78 stage 11 has a zero node; its row must sum to zero."""
        coefficients = get_coefficients(CoefficientSet.RKF78)
        a = coefficients.a.copy()
        assert coefficients.c[11] == 0.0
        a[11, 0] += 1e-3

        violations = validate_coefficients(dataclasses.replace(coefficients, a=a))

        assert len(violations) == 1
        assert "stage 11" in violations[0]
