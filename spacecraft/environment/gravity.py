"""Point-mass gravitational and orbital helpers.

The flight core itself flies in a driftless, zero-gravity regime. These
helpers exist for callers that place a body near a massive object and need
local gravity or a circular-orbit velocity to seed it with.

Core functions are numba-compiled for performance.

Formulas:
- Circular orbital speed: v = sqrt(G*M / r)
- Gravitational acceleration: a = G*M / r^2, with r floored at a minimum
  distance so a body passing through the center never sees infinite pull
- Orbit tangent: normalize(radial x up), falling back to radial x right
  when radial is parallel to up

Example:
    >>> from spacecraft.environment import PointMass
    >>>
    >>> planet = PointMass(mass=5.972e24, center=np.zeros(3))
    >>> planet.circular_speed(np.array([7.0e6, 0.0, 0.0]))
    7546.0...
"""

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

from spacecraft.dynamics.state import DIRECTION_EPSILON, normalize_vector

# =============================================================================
# Constants
# =============================================================================

G: float = 6.674e-11  # Gravitational constant [m^3/(kg*s^2)]

# Distances below this are treated as this distance [m]
MIN_DISTANCE: float = 1.0

WORLD_UP: NDArray[np.float64] = np.array([0.0, 1.0, 0.0])
WORLD_RIGHT: NDArray[np.float64] = np.array([1.0, 0.0, 0.0])


# =============================================================================
# Numba-Optimized Core Functions
# =============================================================================


@njit(cache=True, fastmath=True)
def _acceleration_magnitude(mu: float, r: float, r_min: float) -> float:
    """Numba-optimized point-mass gravity magnitude.

    a = mu / r^2
    """
    if r < r_min:  # Avoid singularity near center
        r = r_min
    return mu / (r * r)


@njit(cache=True, fastmath=True)
def _circular_speed(mu: float, r: float, r_min: float) -> float:
    """Numba-optimized circular orbital speed."""
    if r < r_min:
        r = r_min
    return np.sqrt(mu / r)


# =============================================================================
# Scalar Helpers
# =============================================================================


@beartype
def circular_orbital_speed(mu: float, radius: float, min_distance: float = MIN_DISTANCE) -> float:
    """Speed of a circular orbit at ``radius`` around a point mass.

    Args:
        mu: Gravitational parameter G*M [m^3/s^2]
        radius: Orbital radius [m]
        min_distance: Radius floor [m]

    Returns:
        Circular orbital speed [m/s]
    """
    return float(_circular_speed(mu, radius, min_distance))


@beartype
def gravitational_acceleration(mu: float, distance: float, min_distance: float = MIN_DISTANCE) -> float:
    """Magnitude of point-mass gravity at ``distance``.

    Args:
        mu: Gravitational parameter G*M [m^3/s^2]
        distance: Distance from the center of mass [m]
        min_distance: Distance floor [m]

    Returns:
        Acceleration magnitude [m/s^2]
    """
    return float(_acceleration_magnitude(mu, distance, min_distance))


@beartype
def escape_speed(mu: float, radius: float) -> float:
    """Escape speed at ``radius`` [m/s]."""
    return float(np.sqrt(2.0 * mu / max(radius, MIN_DISTANCE)))


@beartype
def orbital_period(mu: float, radius: float) -> float:
    """Period of a circular orbit at ``radius`` [s]."""
    return float(2.0 * np.pi * np.sqrt(radius ** 3 / mu))


# =============================================================================
# Vector Helpers
# =============================================================================


@beartype
def gravity_vector(
    mu: float,
    position: NDArray[np.float64],
    center: NDArray[np.float64],
    min_distance: float = MIN_DISTANCE,
) -> NDArray[np.float64]:
    """Point-mass gravitational acceleration at ``position``, toward ``center`` [m/s^2]."""
    offset = center - position
    distance = float(np.linalg.norm(offset))
    return normalize_vector(offset) * gravitational_acceleration(mu, distance, min_distance)


@beartype
def orbital_tangent(
    radial: NDArray[np.float64],
    up: NDArray[np.float64] = WORLD_UP,
) -> NDArray[np.float64]:
    """Direction of circular orbital velocity for a body at ``radial``.

    The orbit plane is the one perpendicular to ``up``. When ``radial`` is
    parallel to ``up`` the cross product vanishes and ``radial x right``
    (world right) is used instead.

    Args:
        radial: Vector from the attracting center to the body
        up: Orbit normal

    Returns:
        Unit tangent vector
    """
    tangent = np.cross(radial, up)
    if np.linalg.norm(tangent) < DIRECTION_EPSILON:
        tangent = np.cross(radial, WORLD_RIGHT)
    return normalize_vector(tangent)


@beartype
class PointMass:
    """Point-mass gravity source.

    Example:
        >>> sun = PointMass(mass=1.989e30, center=np.zeros(3))
        >>> a = sun.acceleration(np.array([1.496e11, 0.0, 0.0]))
    """

    def __init__(
        self,
        mass: float,
        center: NDArray[np.float64] | None = None,
        min_distance: float = MIN_DISTANCE,
    ) -> None:
        """Initialize gravity source.

        Args:
            mass: Mass of the attracting body [kg]
            center: World position of the center of mass [m]
            min_distance: Distance floor for singularity avoidance [m]
        """
        if mass <= 0.0:
            raise ValueError(f"Mass must be positive, got {mass}")
        if min_distance <= 0.0:
            raise ValueError(f"min_distance must be positive, got {min_distance}")
        self.mass = mass
        self.center = np.zeros(3) if center is None else np.asarray(center, dtype=np.float64)
        self.min_distance = min_distance

    @property
    def mu(self) -> float:
        """Gravitational parameter G*M [m^3/s^2]."""
        return G * self.mass

    @beartype
    def acceleration(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Gravitational acceleration vector at ``position`` [m/s^2]."""
        return gravity_vector(self.mu, position, self.center, self.min_distance)

    @beartype
    def circular_speed(self, position: NDArray[np.float64]) -> float:
        """Circular orbital speed at ``position`` [m/s]."""
        distance = float(np.linalg.norm(position - self.center))
        return circular_orbital_speed(self.mu, distance, self.min_distance)

    @beartype
    def orbital_velocity(
        self,
        position: NDArray[np.float64],
        up: NDArray[np.float64] = WORLD_UP,
    ) -> NDArray[np.float64]:
        """Circular orbit velocity vector for a body at ``position`` [m/s]."""
        tangent = orbital_tangent(position - self.center, up)
        return tangent * self.circular_speed(position)
