"""Tests for escape/capture delta-V and the capture leg."""

from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from odkit.core.trajectory import CaptureLeg, compute_escape_or_capture_delta_v, propagate_two_body
from odkit.utils.constants import MARS_GRAVITATIONAL_PARAMETER, SUN_GRAVITATIONAL_PARAMETER

MARS_ORBIT_RADIUS = 2.2794e11
DAY = 86400.0


def _mars_state():
    speed = math.sqrt(SUN_GRAVITATIONAL_PARAMETER / MARS_ORBIT_RADIUS)
    return np.array([MARS_ORBIT_RADIUS, 0.0, 0.0]), np.array([0.0, speed, 0.0])


def _capture_leg(time_of_flight=10.0 * DAY, excess_velocity=2500.0):
    position, velocity = _mars_state()
    return CaptureLeg(
        departure_body_position=position,
        departure_body_velocity=velocity,
        time_of_flight=time_of_flight,
        velocity_before_departure_body=velocity + np.array([excess_velocity, 0.0, 0.0]),
        central_body_gravitational_parameter=SUN_GRAVITATIONAL_PARAMETER,
        capture_body_gravitational_parameter=MARS_GRAVITATIONAL_PARAMETER,
        semi_major_axis=1.0e7,
        eccentricity=0.3,
    )


class TestEscapeOrCaptureDeltaV:
    """Test the periapsis maneuver delta-V."""

    def test_parabolic_limit_from_circular_orbit(self):
        """Zero excess velocity from a circular orbit: escape speed minus circular speed."""
        mu, radius = MARS_GRAVITATIONAL_PARAMETER, 4.0e6
        delta_v = compute_escape_or_capture_delta_v(mu, radius, 0.0, 0.0)

        assert delta_v == pytest.approx((math.sqrt(2.0) - 1.0) * math.sqrt(mu / radius), rel=1e-14)

    def test_elliptical_orbit(self):
        """Test the closed form for an elliptical parking orbit."""
        mu, a, e, v_inf = MARS_GRAVITATIONAL_PARAMETER, 1.0e7, 0.3, 2500.0
        pericenter_radius = a * (1.0 - e)
        expected = math.sqrt(v_inf ** 2 + 2.0 * mu / pericenter_radius) - math.sqrt(
            mu / a * (1.0 + e) / (1.0 - e)
        )

        assert compute_escape_or_capture_delta_v(mu, a, e, v_inf) == pytest.approx(expected, rel=1e-14)

    def test_grows_with_excess_velocity(self):
        """Test delta-V increases with excess velocity."""
        slow = compute_escape_or_capture_delta_v(MARS_GRAVITATIONAL_PARAMETER, 1.0e7, 0.3, 1000.0)
        fast = compute_escape_or_capture_delta_v(MARS_GRAVITATIONAL_PARAMETER, 1.0e7, 0.3, 3000.0)

        assert fast > slow > 0.0

    @pytest.mark.parametrize("a, e", [(1.0e7, 1.0), (1.0e7, -0.1), (-1.0e7, 0.5)])
    def test_non_elliptical_rejected(self, a, e):
        """Test rejection of non-elliptical parking orbits."""
        with pytest.raises(ValueError, match="elliptical"):
            compute_escape_or_capture_delta_v(MARS_GRAVITATIONAL_PARAMETER, a, e, 1000.0)


class TestCaptureLeg:
    """Test the capture leg."""

    def test_calculate_leg(self):
        """Test calculating the leg stores its solution."""
        leg = _capture_leg()
        assert not leg.is_calculated

        velocity, delta_v = leg.calculate_leg()

        assert velocity is None
        assert leg.is_calculated
        assert delta_v == pytest.approx(
            compute_escape_or_capture_delta_v(MARS_GRAVITATIONAL_PARAMETER, 1.0e7, 0.3, 2500.0)
        )

    def test_maneuvers_compute_leg_lazily(self):
        """Test maneuvers trigger the leg calculation."""
        leg = _capture_leg()

        maneuvers = leg.maneuvers(starting_time=100.0)

        assert leg.is_calculated
        assert len(maneuvers) == 1
        assert maneuvers[0].time == 100.0
        np.testing.assert_array_equal(maneuvers[0].position, leg.departure_body_position)
        assert maneuvers[0].delta_v == leg.solution.delta_v

    def test_intermediate_points_follow_body(self):
        """Test intermediate points stay on the body orbit."""
        leg = _capture_leg(time_of_flight=10.0 * DAY)

        positions, times = leg.intermediate_points(maximum_time_step=DAY, starting_time=5.0)

        assert len(positions) == len(times) == 11
        assert times[0] == 5.0
        assert times[-1] == pytest.approx(5.0 + 10.0 * DAY)
        np.testing.assert_allclose(positions[0], leg.departure_body_position)
        radii = [np.linalg.norm(position) for position in positions]
        np.testing.assert_allclose(radii, MARS_ORBIT_RADIUS, rtol=1e-9)

    def test_uneven_step_count_rounded_up(self):
        """Test the number of steps is rounded up."""
        leg = _capture_leg(time_of_flight=10.0 * DAY)

        _, times = leg.intermediate_points(maximum_time_step=3.0 * DAY)

        assert len(times) == 5
        assert np.all(np.diff(times) <= 3.0 * DAY)

    def test_update_time_of_flight_keeps_solution(self):
        """Test a new time of flight keeps the computed delta-V."""
        leg = _capture_leg(time_of_flight=10.0 * DAY)
        _, delta_v = leg.calculate_leg()

        leg.update_defining_variables([4.0 * DAY])

        assert leg.time_of_flight == 4.0 * DAY
        assert leg.is_calculated
        assert leg.solution.delta_v == delta_v
        _, times = leg.intermediate_points(maximum_time_step=DAY)
        assert len(times) == 5

    def test_update_requires_a_variable(self, caplog):
        """Test rejection of empty defining variables."""
        with caplog.at_level(logging.ERROR, logger="odkit.core.trajectory"):
            with pytest.raises(ValueError, match="time of flight"):
                _capture_leg().update_defining_variables([])

        assert "No defining variables" in caplog.text


class TestPropagateTwoBody:
    """Test sampled two-body propagation."""

    def test_zero_time_of_flight(self):
        """Test zero time of flight returns the initial position."""
        positions, times = propagate_two_body(np.array([1.0e7, 0, 0, 0, 6.0e3, 0]), 3.986e14, 0.0, 60.0)

        assert times == [0.0]
        np.testing.assert_array_equal(positions[0], [1.0e7, 0.0, 0.0])

    def test_invalid_step(self):
        """Test rejection of a non-positive time step."""
        with pytest.raises(ValueError, match="time step"):
            propagate_two_body(np.array([1.0e7, 0, 0, 0, 6.0e3, 0]), 3.986e14, 100.0, 0.0)
