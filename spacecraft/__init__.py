"""Spacecraft - Newtonian rigid body simulation for piloted spacecraft.

This package provides the "plant" for the flight software in flight/:
a free-floating rigid body with no drag and no gravity, point-mass gravity
helpers for callers that want them, and a fixed-timestep simulator.

Example:
    >>> from spacecraft import RigidBody, State, Simulator
    >>>
    >>> sim = Simulator.at_rest(mass_kg=5000.0)
    >>> sim.body.queue_impulse(np.array([0.0, 0.0, -5000.0]))
    >>> sim.step()
    >>> sim.body.speed
    1.0
"""

__version__ = "0.1.0"

from spacecraft.dynamics import (
    BodyConfig,
    RigidBody,
    State,
)
from spacecraft.environment import (
    PointMass,
    circular_orbital_speed,
    gravitational_acceleration,
    orbital_tangent,
)
from spacecraft.simulation import (
    SimConfig,
    SimulationResult,
    Simulator,
)

__all__ = [
    "__version__",
    # Dynamics
    "BodyConfig",
    "RigidBody",
    "State",
    # Environment
    "PointMass",
    "circular_orbital_speed",
    "gravitational_acceleration",
    "orbital_tangent",
    # Simulation
    "SimConfig",
    "SimulationResult",
    "Simulator",
]
