"""Dynamics module for free-floating rigid body simulation.

This module provides the state representation, quaternion utilities and
the rigid body that flight controllers act on.

Example:
    >>> from spacecraft.dynamics import RigidBody, State
    >>> import numpy as np
    >>>
    >>> body = RigidBody(State.at_rest(mass_kg=5000.0))
    >>> body.apply_local_force(np.array([0.0, 0.0, -50000.0]))
    >>> body.integrate(0.01)
"""

from spacecraft.dynamics.rigid_body import (
    G0,
    VELOCITY_EPSILON,
    BodyConfig,
    RigidBody,
)
from spacecraft.dynamics.state import (
    BODY_FORWARD,
    BODY_RIGHT,
    BODY_UP,
    IDENTITY_QUATERNION,
    State,
    angle_between,
    normalize_quaternion,
    normalize_vector,
    quaternion_angle,
    quaternion_conjugate,
    quaternion_from_axis_angle,
    quaternion_multiply,
    quaternion_slerp,
    quaternion_to_dcm,
)

__all__ = [
    # State
    "State",
    "BODY_FORWARD",
    "BODY_RIGHT",
    "BODY_UP",
    "IDENTITY_QUATERNION",
    # Vector and quaternion utilities
    "normalize_vector",
    "angle_between",
    "quaternion_to_dcm",
    "quaternion_multiply",
    "quaternion_conjugate",
    "quaternion_from_axis_angle",
    "quaternion_angle",
    "quaternion_slerp",
    "normalize_quaternion",
    # Rigid body
    "RigidBody",
    "BodyConfig",
    "G0",
    "VELOCITY_EPSILON",
]
