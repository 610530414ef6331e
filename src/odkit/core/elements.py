"""Orbital element conversions.

Converts between Keplerian elements, Cartesian state vectors and Unified
State Model elements with quaternions (USM7). All functions take a ``dtype``
argument selecting the numpy floating type used for the computation.

Element layouts (indices are exported as module constants):

    Keplerian:  a [m], e [-], i [rad, 0..pi], ω [rad], Ω [rad], ν [rad]
    Cartesian:  x, y, z [m], vx, vy, vz [m/s]
    USM7:       C, Rf1, Rf2 [m/s], ε1, ε2, ε3, η [-]

For parabolic orbits the semi-latus rectum is stored in place of the
semi-major axis.

Reference:
    Vittaldev, V. The Unified State Model: Derivation and Applications in
    Astrodynamics and Navigation. M.Sc. thesis, TU Delft, 2010.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import ArrayLike, DTypeLike, NDArray

from odkit.utils.constants import ELEMENT_SINGULARITY_TOLERANCE, PARABOLIC_ECCENTRICITY_TOLERANCE

logger = logging.getLogger(__name__)

# Keplerian element indices
SEMI_MAJOR_AXIS_INDEX = 0
ECCENTRICITY_INDEX = 1
INCLINATION_INDEX = 2
ARGUMENT_OF_PERIAPSIS_INDEX = 3
LONGITUDE_OF_ASCENDING_NODE_INDEX = 4
TRUE_ANOMALY_INDEX = 5

# USM7 element indices
C_HODOGRAPH_INDEX = 0
RF1_HODOGRAPH_INDEX = 1
RF2_HODOGRAPH_INDEX = 2
EPSILON1_QUATERNION_INDEX = 3
EPSILON2_QUATERNION_INDEX = 4
EPSILON3_QUATERNION_INDEX = 5
ETA_QUATERNION_INDEX = 6

_TWO_PI = 2.0 * np.pi


def _as_elements(elements: ArrayLike, size: int, name: str, dtype: DTypeLike) -> NDArray:
    array = np.asarray(elements, dtype=dtype).reshape(-1)
    if array.size != size:
        logger.error("%s elements must have %d entries, got %d", name, size, array.size)
        raise ValueError(f"{name} elements must have {size} entries, got {array.size}")
    return array


def _wrap_angle(angle):
    return np.mod(angle, _TWO_PI)


def _semi_latus_rectum(semi_major_axis, eccentricity):
    if abs(eccentricity - 1.0) < PARABOLIC_ECCENTRICITY_TOLERANCE:
        return semi_major_axis
    return semi_major_axis * (1.0 - eccentricity * eccentricity)


def convert_keplerian_to_cartesian(
    keplerian_elements: ArrayLike,
    gravitational_parameter: float,
    dtype: DTypeLike = np.float64,
) -> NDArray:
    """Convert Keplerian elements to a Cartesian state.

    Args:
        keplerian_elements: a, e, i, ω, Ω, ν.
        gravitational_parameter: Central body GM [m³/s²].
        dtype: Floating type of the computation.

    Returns:
        Cartesian state x, y, z, vx, vy, vz.
    """
    kepler = _as_elements(keplerian_elements, 6, "Keplerian", dtype)
    mu = np.asarray(gravitational_parameter, dtype=dtype)
    e = kepler[ECCENTRICITY_INDEX]
    inclination = kepler[INCLINATION_INDEX]
    argument_of_periapsis = kepler[ARGUMENT_OF_PERIAPSIS_INDEX]
    raan = kepler[LONGITUDE_OF_ASCENDING_NODE_INDEX]
    true_anomaly = kepler[TRUE_ANOMALY_INDEX]

    p = _semi_latus_rectum(kepler[SEMI_MAJOR_AXIS_INDEX], e)
    cos_nu, sin_nu = np.cos(true_anomaly), np.sin(true_anomaly)
    radius = p / (1.0 + e * cos_nu)

    # Perifocal frame
    position_pqw = np.array([radius * cos_nu, radius * sin_nu, 0.0], dtype=dtype)
    velocity_pqw = np.sqrt(mu / p) * np.array([-sin_nu, e + cos_nu, 0.0], dtype=dtype)

    cos_raan, sin_raan = np.cos(raan), np.sin(raan)
    cos_argp, sin_argp = np.cos(argument_of_periapsis), np.sin(argument_of_periapsis)
    cos_i, sin_i = np.cos(inclination), np.sin(inclination)

    rotation = np.array([
        [cos_raan * cos_argp - sin_raan * sin_argp * cos_i,
         -cos_raan * sin_argp - sin_raan * cos_argp * cos_i,
         sin_raan * sin_i],
        [sin_raan * cos_argp + cos_raan * sin_argp * cos_i,
         -sin_raan * sin_argp + cos_raan * cos_argp * cos_i,
         -cos_raan * sin_i],
        [sin_argp * sin_i,
         cos_argp * sin_i,
         cos_i],
    ], dtype=dtype)

    return np.concatenate([rotation @ position_pqw, rotation @ velocity_pqw])


def convert_cartesian_to_keplerian(
    cartesian_elements: ArrayLike,
    gravitational_parameter: float,
    dtype: DTypeLike = np.float64,
) -> NDArray:
    """Convert a Cartesian state to Keplerian elements.

    Undefined angles are set to zero: the longitude of the ascending node for
    equatorial orbits and the argument of periapsis for circular orbits, the
    true anomaly then being measured from the node (or the x-axis).

    Args:
        cartesian_elements: x, y, z, vx, vy, vz.
        gravitational_parameter: Central body GM [m³/s²].
        dtype: Floating type of the computation.

    Returns:
        Keplerian elements a, e, i, ω, Ω, ν.
    """
    state = _as_elements(cartesian_elements, 6, "Cartesian", dtype)
    mu = np.asarray(gravitational_parameter, dtype=dtype)
    position = state[:3]
    velocity = state[3:]
    radius = np.linalg.norm(position)
    speed = np.linalg.norm(velocity)

    angular_momentum = np.cross(position, velocity)
    angular_momentum_norm = np.linalg.norm(angular_momentum)
    node_vector = np.array([-angular_momentum[1], angular_momentum[0], 0.0], dtype=dtype)
    node_norm = np.linalg.norm(node_vector)

    eccentricity_vector = (
        (speed * speed - mu / radius) * position - np.dot(position, velocity) * velocity
    ) / mu
    e = np.linalg.norm(eccentricity_vector)

    p = angular_momentum_norm * angular_momentum_norm / mu
    if abs(e - 1.0) < PARABOLIC_ECCENTRICITY_TOLERANCE:
        semi_major_axis = p
    else:
        semi_major_axis = p / (1.0 - e * e)

    inclination = np.arccos(np.clip(angular_momentum[2] / angular_momentum_norm, -1.0, 1.0))

    equatorial = node_norm < ELEMENT_SINGULARITY_TOLERANCE * angular_momentum_norm
    circular = e < ELEMENT_SINGULARITY_TOLERANCE

    if equatorial:
        raan = 0.0
        reference = np.array([1.0, 0.0, 0.0], dtype=dtype)
    else:
        raan = np.arctan2(node_vector[1], node_vector[0])
        reference = node_vector / node_norm

    orbit_normal = angular_momentum / angular_momentum_norm
    in_plane_normal = np.cross(orbit_normal, reference)

    if circular:
        argument_of_periapsis = 0.0
        periapsis_direction = reference
        periapsis_normal = in_plane_normal
    else:
        periapsis_direction = eccentricity_vector / e
        argument_of_periapsis = np.arctan2(
            np.dot(periapsis_direction, in_plane_normal), np.dot(periapsis_direction, reference)
        )
        periapsis_normal = np.cross(orbit_normal, periapsis_direction)

    true_anomaly = np.arctan2(np.dot(position, periapsis_normal), np.dot(position, periapsis_direction))

    return np.array([
        semi_major_axis,
        e,
        inclination,
        _wrap_angle(argument_of_periapsis),
        _wrap_angle(raan),
        _wrap_angle(true_anomaly),
    ], dtype=dtype)


def convert_keplerian_to_usm7(
    keplerian_elements: ArrayLike,
    gravitational_parameter: float,
    dtype: DTypeLike = np.float64,
) -> NDArray:
    """Convert Keplerian elements to Unified State Model elements with quaternions.

    Args:
        keplerian_elements: a, e, i (in [0, π]), ω, Ω, ν.
        gravitational_parameter: Central body GM [m³/s²].
        dtype: Floating type of the computation.

    Returns:
        USM7 elements C, Rf1, Rf2, ε1, ε2, ε3, η.

    Raises:
        ValueError: If the inclination is outside [0, π] or the eccentricity
            is negative.
    """
    kepler = _as_elements(keplerian_elements, 6, "Keplerian", dtype)
    mu = np.asarray(gravitational_parameter, dtype=dtype)
    e = kepler[ECCENTRICITY_INDEX]
    inclination = kepler[INCLINATION_INDEX]

    if inclination < 0.0 or inclination > np.pi:
        logger.error("Inclination %r outside [0, pi]", inclination)
        raise ValueError(f"Inclination must be in [0, pi], got {inclination!r}")
    if e < 0.0:
        logger.error("Negative eccentricity %r", e)
        raise ValueError(f"Eccentricity must be non-negative, got {e!r}")

    p = _semi_latus_rectum(kepler[SEMI_MAJOR_AXIS_INDEX], e)
    c_hodograph = np.sqrt(mu / p)
    r_hodograph = c_hodograph * e

    raan = kepler[LONGITUDE_OF_ASCENDING_NODE_INDEX]
    longitude_of_periapsis = raan + kepler[ARGUMENT_OF_PERIAPSIS_INDEX]
    argument_of_latitude = kepler[ARGUMENT_OF_PERIAPSIS_INDEX] + kepler[TRUE_ANOMALY_INDEX]

    half_inclination = 0.5 * inclination
    half_sum = 0.5 * (raan + argument_of_latitude)
    half_difference = 0.5 * (raan - argument_of_latitude)

    return np.array([
        c_hodograph,
        -r_hodograph * np.sin(longitude_of_periapsis),
        r_hodograph * np.cos(longitude_of_periapsis),
        np.sin(half_inclination) * np.cos(half_difference),
        np.sin(half_inclination) * np.sin(half_difference),
        np.cos(half_inclination) * np.sin(half_sum),
        np.cos(half_inclination) * np.cos(half_sum),
    ], dtype=dtype)


def convert_usm7_to_keplerian(
    usm7_elements: ArrayLike,
    gravitational_parameter: float,
    dtype: DTypeLike = np.float64,
) -> NDArray:
    """Convert Unified State Model elements with quaternions to Keplerian elements.

    The quaternion need not be exactly normalized. Undefined angles are set to
    zero as in :func:`convert_cartesian_to_keplerian`. Retrograde equatorial
    orbits (i = π) are a singularity of USM7: the node and the argument of
    periapsis cannot be separated there.

    Args:
        usm7_elements: C, Rf1, Rf2, ε1, ε2, ε3, η.
        gravitational_parameter: Central body GM [m³/s²].
        dtype: Floating type of the computation.

    Returns:
        Keplerian elements a, e, i, ω, Ω, ν with angles in [0, 2π).
    """
    usm = _as_elements(usm7_elements, 7, "USM7", dtype)
    mu = np.asarray(gravitational_parameter, dtype=dtype)
    c_hodograph = usm[C_HODOGRAPH_INDEX]
    rf1 = usm[RF1_HODOGRAPH_INDEX]
    rf2 = usm[RF2_HODOGRAPH_INDEX]

    quaternion = usm[EPSILON1_QUATERNION_INDEX:]
    quaternion = quaternion / np.linalg.norm(quaternion)
    epsilon1, epsilon2, epsilon3, eta = quaternion

    r_hodograph = np.hypot(rf1, rf2)
    e = r_hodograph / c_hodograph

    p = mu / (c_hodograph * c_hodograph)
    if abs(e - 1.0) < PARABOLIC_ECCENTRICITY_TOLERANCE:
        semi_major_axis = p
    else:
        semi_major_axis = p / (1.0 - e * e)

    # cos(i/2) = |(ε3, η)|, sin(i/2) = |(ε1, ε2)|
    in_plane_norm = np.hypot(epsilon3, eta)
    out_of_plane_norm = np.hypot(epsilon1, epsilon2)
    inclination = 2.0 * np.arctan2(out_of_plane_norm, in_plane_norm)

    # Ω + u from (ε3, η), Ω - u from (ε1, ε2)
    half_sum = np.arctan2(epsilon3, eta)
    if out_of_plane_norm < ELEMENT_SINGULARITY_TOLERANCE:
        raan = 0.0
        argument_of_latitude = 2.0 * half_sum
    elif in_plane_norm < ELEMENT_SINGULARITY_TOLERANCE:
        raan = 0.0
        argument_of_latitude = -2.0 * np.arctan2(epsilon2, epsilon1)
    else:
        half_difference = np.arctan2(epsilon2, epsilon1)
        raan = half_sum + half_difference
        argument_of_latitude = half_sum - half_difference

    if e < ELEMENT_SINGULARITY_TOLERANCE:
        argument_of_periapsis = 0.0
    else:
        longitude_of_periapsis = np.arctan2(-rf1, rf2)
        argument_of_periapsis = longitude_of_periapsis - raan

    true_anomaly = argument_of_latitude - argument_of_periapsis

    return np.array([
        semi_major_axis,
        e,
        inclination,
        _wrap_angle(argument_of_periapsis),
        _wrap_angle(raan),
        _wrap_angle(true_anomaly),
    ], dtype=dtype)


def convert_cartesian_to_usm7(
    cartesian_elements: ArrayLike,
    gravitational_parameter: float,
    dtype: DTypeLike = np.float64,
) -> NDArray:
    """Convert a Cartesian state to USM7 elements (via Keplerian elements)."""
    keplerian = convert_cartesian_to_keplerian(cartesian_elements, gravitational_parameter, dtype=dtype)
    return convert_keplerian_to_usm7(keplerian, gravitational_parameter, dtype=dtype)


def convert_usm7_to_cartesian(
    usm7_elements: ArrayLike,
    gravitational_parameter: float,
    dtype: DTypeLike = np.float64,
) -> NDArray:
    """Convert USM7 elements to a Cartesian state (via Keplerian elements)."""
    keplerian = convert_usm7_to_keplerian(usm7_elements, gravitational_parameter, dtype=dtype)
    return convert_keplerian_to_cartesian(keplerian, gravitational_parameter, dtype=dtype)
