"""odkit quickstart: convert an orbit between element sets."""

import numpy as np

from odkit import convert_keplerian_to_cartesian, convert_keplerian_to_usm7, convert_usm7_to_keplerian
from odkit.utils.constants import EARTH_GRAVITATIONAL_PARAMETER

# Molniya-like orbit: a [m], e, i, argument of perigee, RAAN, true anomaly [rad]
keplerian = np.array([26_600e3, 0.74, np.radians(63.4), np.radians(270.0), np.radians(45.0), np.radians(10.0)])

cartesian = convert_keplerian_to_cartesian(keplerian, EARTH_GRAVITATIONAL_PARAMETER)
usm7 = convert_keplerian_to_usm7(keplerian, EARTH_GRAVITATIONAL_PARAMETER)
recovered = convert_usm7_to_keplerian(usm7, EARTH_GRAVITATIONAL_PARAMETER)

print(f"Position:  {cartesian[:3] / 1e3} km")
print(f"Velocity:  {cartesian[3:] / 1e3} km/s")
print(f"USM C:     {usm7[0]:.3f} m/s")
print(f"USM Rf:    {usm7[1]:.3f}, {usm7[2]:.3f} m/s")
print(f"Quaternion {usm7[3:]}")
print(f"Round-trip inclination: {np.degrees(recovered[2]):.6f}°")
