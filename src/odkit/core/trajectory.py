"""Trajectory legs for interplanetary transfer design.

A leg is computed lazily: the first call that needs the leg solution
(intermediate points, maneuvers) triggers ``calculate_leg`` if it has not run
yet. The computed state is held explicitly in a ``LegSolution``.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import cast

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.integrate import solve_ivp

from odkit.utils.constants import DEFAULT_TRAJECTORY_ATOL, DEFAULT_TRAJECTORY_RTOL

logger = logging.getLogger(__name__)


def compute_escape_or_capture_delta_v(
    gravitational_parameter: float,
    semi_major_axis: float,
    eccentricity: float,
    excess_velocity: float,
) -> float:
    """Delta-V to escape from, or be captured into, an elliptical parking orbit.

    The maneuver is performed at periapsis, between the parking orbit and the
    hyperbola with the given excess velocity.

    Args:
        gravitational_parameter: GM of the body being escaped or captured at [m³/s²].
        semi_major_axis: Parking orbit semi-major axis [m].
        eccentricity: Parking orbit eccentricity, in [0, 1).
        excess_velocity: Hyperbolic excess velocity [m/s].

    Returns:
        Delta-V magnitude [m/s].

    Raises:
        ValueError: If the parking orbit is not elliptical.
    """
    if semi_major_axis <= 0.0 or not 0.0 <= eccentricity < 1.0:
        logger.error("Invalid parking orbit: a=%r, e=%r", semi_major_axis, eccentricity)
        raise ValueError(
            f"Parking orbit must be elliptical, got a={semi_major_axis!r}, e={eccentricity!r}"
        )

    pericenter_radius = semi_major_axis * (1.0 - eccentricity)
    pericenter_velocity = math.sqrt(
        gravitational_parameter * (1.0 + eccentricity) / pericenter_radius
    )
    hyperbolic_velocity = math.sqrt(
        excess_velocity ** 2 + 2.0 * gravitational_parameter / pericenter_radius
    )
    return abs(hyperbolic_velocity - pericenter_velocity)


def propagate_two_body(
    initial_state: ArrayLike,
    gravitational_parameter: float,
    time_of_flight: float,
    maximum_time_step: float,
    starting_time: float = 0.0,
) -> tuple[list[NDArray[np.float64]], list[float]]:
    """Propagate a Keplerian trajectory and sample it at regular intervals.

    The interval [0, time_of_flight] is divided into the smallest number of
    equal steps that do not exceed ``maximum_time_step``; both ends are included.

    Args:
        initial_state: Cartesian state [m, m/s], shape (6,).
        gravitational_parameter: Central body GM [m³/s²].
        time_of_flight: Propagation duration [s].
        maximum_time_step: Largest allowed spacing of the samples [s].
        starting_time: Offset added to the returned times [s].

    Returns:
        Tuple of (positions, times).

    Raises:
        ValueError: If the time step is not positive or the time of flight negative.
    """
    if maximum_time_step <= 0.0:
        logger.error("Maximum time step must be positive, got %r", maximum_time_step)
        raise ValueError(f"Maximum time step must be positive, got {maximum_time_step!r}")
    if time_of_flight < 0.0:
        logger.error("Time of flight must be non-negative, got %r", time_of_flight)
        raise ValueError(f"Time of flight must be non-negative, got {time_of_flight!r}")

    state = np.asarray(initial_state, dtype=np.float64)
    number_of_steps = max(int(math.ceil(time_of_flight / maximum_time_step)), 1)
    sample_times = np.linspace(0.0, time_of_flight, number_of_steps + 1)

    if time_of_flight == 0.0:
        return [state[:3].copy()], [starting_time]

    def two_body(_t, y):
        r = y[:3]
        acceleration = -gravitational_parameter * r / np.linalg.norm(r) ** 3
        return np.concatenate([y[3:], acceleration])

    solution = solve_ivp(
        two_body,
        (0.0, time_of_flight),
        state,
        method="DOP853",
        t_eval=sample_times,
        rtol=DEFAULT_TRAJECTORY_RTOL,
        atol=DEFAULT_TRAJECTORY_ATOL,
    )
    if not solution.success:
        logger.error("Two-body propagation failed: %s", solution.message)
        raise RuntimeError(f"Two-body propagation failed: {solution.message}")

    positions = [solution.y[:3, i].copy() for i in range(solution.y.shape[1])]
    times = [float(t) + starting_time for t in solution.t]
    logger.debug("Propagated trajectory over %.1f s in %d steps", time_of_flight, number_of_steps)
    return positions, times


@dataclass(frozen=True)
class LegSolution:
    """Computed state of a trajectory leg.

    Attributes:
        velocity_after_departure: Spacecraft velocity after leaving the departure body [m/s].
        delta_v: Delta-V required on the leg [m/s].
    """

    velocity_after_departure: NDArray[np.float64]
    delta_v: float


@dataclass(frozen=True)
class Maneuver:
    """An impulsive maneuver along a leg."""

    position: NDArray[np.float64]
    time: float
    delta_v: float


class MissionLeg(ABC):
    """Common interface of trajectory legs."""

    def __init__(self) -> None:
        self._solution: LegSolution | None = None

    @property
    def is_calculated(self) -> bool:
        return self._solution is not None

    @property
    def solution(self) -> LegSolution:
        """Leg solution, computing the leg first if needed."""
        if self._solution is None:
            self.calculate_leg()
        return cast(LegSolution, self._solution)

    @abstractmethod
    def calculate_leg(self) -> tuple[NDArray[np.float64] | None, float]:
        """Calculate the leg.

        Returns:
            Tuple of (velocity before arrival at the next body, leg delta-V);
            the velocity is None for legs that do not arrive at a body.
        """

    @abstractmethod
    def intermediate_points(
        self, maximum_time_step: float, starting_time: float = 0.0
    ) -> tuple[list[NDArray[np.float64]], list[float]]:
        """Positions along the leg and their times."""

    @abstractmethod
    def maneuvers(self, starting_time: float = 0.0) -> list[Maneuver]:
        """Maneuvers performed along the leg."""

    @abstractmethod
    def update_defining_variables(self, variables: ArrayLike) -> None:
        """Update the variables that define the leg."""


class CaptureLeg(MissionLeg):
    """Final leg: capture into a parking orbit around the departure body.

    After capture the spacecraft moves with the body, so the leg trajectory is
    that of the body around the central body during the time of flight.

    Args:
        departure_body_position: Body position at the start of the leg [m].
        departure_body_velocity: Body velocity at the start of the leg [m/s].
        time_of_flight: Duration of the leg [s].
        velocity_before_departure_body: Spacecraft velocity on arrival [m/s].
        central_body_gravitational_parameter: GM of the central body [m³/s²].
        capture_body_gravitational_parameter: GM of the capturing body [m³/s²].
        semi_major_axis: Parking orbit semi-major axis [m].
        eccentricity: Parking orbit eccentricity.
    """

    def __init__(
        self,
        departure_body_position: ArrayLike,
        departure_body_velocity: ArrayLike,
        time_of_flight: float,
        velocity_before_departure_body: ArrayLike,
        central_body_gravitational_parameter: float,
        capture_body_gravitational_parameter: float,
        semi_major_axis: float,
        eccentricity: float,
    ) -> None:
        super().__init__()
        self.departure_body_position = np.asarray(departure_body_position, dtype=np.float64)
        self.departure_body_velocity = np.asarray(departure_body_velocity, dtype=np.float64)
        self.time_of_flight = float(time_of_flight)
        self.velocity_before_departure_body = np.asarray(velocity_before_departure_body, dtype=np.float64)
        self.central_body_gravitational_parameter = central_body_gravitational_parameter
        self.capture_body_gravitational_parameter = capture_body_gravitational_parameter
        self.semi_major_axis = semi_major_axis
        self.eccentricity = eccentricity

    def calculate_leg(self) -> tuple[None, float]:
        excess_velocity = float(
            np.linalg.norm(self.velocity_before_departure_body - self.departure_body_velocity)
        )
        delta_v = compute_escape_or_capture_delta_v(
            self.capture_body_gravitational_parameter,
            self.semi_major_axis,
            self.eccentricity,
            excess_velocity,
        )
        self._solution = LegSolution(
            velocity_after_departure=self.departure_body_velocity.copy(),
            delta_v=delta_v,
        )
        logger.debug("Capture leg: v_inf=%.3f m/s, delta-V=%.3f m/s", excess_velocity, delta_v)
        return None, delta_v

    def intermediate_points(
        self, maximum_time_step: float, starting_time: float = 0.0
    ) -> tuple[list[NDArray[np.float64]], list[float]]:
        initial_state = np.concatenate([self.departure_body_position, self.solution.velocity_after_departure])
        return propagate_two_body(
            initial_state,
            self.central_body_gravitational_parameter,
            self.time_of_flight,
            maximum_time_step,
            starting_time,
        )

    def maneuvers(self, starting_time: float = 0.0) -> list[Maneuver]:
        return [
            Maneuver(
                position=self.departure_body_position.copy(),
                time=starting_time,
                delta_v=self.solution.delta_v,
            )
        ]

    def update_defining_variables(self, variables: ArrayLike) -> None:
        """Set the time of flight from the first variable.

        The capture delta-V does not depend on the time of flight, so a
        computed solution stays valid.
        """
        values = np.asarray(variables, dtype=np.float64).reshape(-1)
        if values.size == 0:
            logger.error("No defining variables given for capture leg")
            raise ValueError("Capture leg needs the time of flight as defining variable")
        self.time_of_flight = float(values[0])
