from __future__ import annotations

"""Physical constants and default numerical settings.

All values in SI units unless otherwise noted.
"""

# --- Gravitational parameters ---
SUN_GRAVITATIONAL_PARAMETER: float = 1.32712440018e20
"""Sun gravitational parameter (GM) in m³/s²."""

EARTH_GRAVITATIONAL_PARAMETER: float = 3.986004418e14
"""Earth gravitational parameter (GM) in m³/s²."""

MARS_GRAVITATIONAL_PARAMETER: float = 4.282837e13
"""Mars gravitational parameter (GM) in m³/s²."""

# --- Numerical tolerances ---
RUNGE_KUTTA_COEFFICIENT_TOLERANCE: float = 1e-14
"""Tolerance used when checking Runge-Kutta coefficient consistency."""

ELEMENT_SINGULARITY_TOLERANCE: float = 1e-15
"""Threshold below which eccentricity or inclination terms are treated as zero."""

PARABOLIC_ECCENTRICITY_TOLERANCE: float = 1e-15
"""Distance from e = 1 within which an orbit is treated as parabolic."""

# --- Default processing settings ---
DEFAULT_COVARIANCE_OUTPUT_STEP_S: float = 3600.0
"""Default output step for covariance time histories in seconds."""

DEFAULT_TRAJECTORY_RTOL: float = 1e-12
"""Relative tolerance for two-body trajectory propagation (DOP853)."""

DEFAULT_TRAJECTORY_ATOL: float = 1e-6
"""Absolute tolerance for two-body trajectory propagation (DOP853), in m and m/s."""
