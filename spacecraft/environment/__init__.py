"""Environment models for spacecraft simulation.

Provides point-mass gravity and circular-orbit helpers.
"""

from spacecraft.environment.gravity import (
    G,
    MIN_DISTANCE,
    PointMass,
    circular_orbital_speed,
    escape_speed,
    gravitational_acceleration,
    gravity_vector,
    orbital_period,
    orbital_tangent,
)

__all__ = [
    "G",
    "MIN_DISTANCE",
    "PointMass",
    "circular_orbital_speed",
    "escape_speed",
    "gravitational_acceleration",
    "gravity_vector",
    "orbital_period",
    "orbital_tangent",
]
