"""Rigid body state representation for free-floating spacecraft.

The state vector contains:
- Position (3): [x, y, z] in the world frame
- Velocity (3): [vx, vy, vz] in the world frame
- Quaternion (4): [q0, q1, q2, q3] attitude (scalar-first convention)
- Angular velocity (3): [wx, wy, wz] in the world frame
- Mass (1): vehicle mass

Total: 14 state variables

Coordinate frames:
- World: inertial frame, no gravity and no drag unless a caller adds them
- Body: vehicle frame (X right, Y up, Z backward, so forward is -Z)

Quaternion convention:
- Scalar-first: q = [q0, q1, q2, q3] where q0 is the scalar part
- Represents rotation from body to world frame: v_world = R(q) @ v_body
"""

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# Body-frame unit axes
BODY_FORWARD: NDArray[np.float64] = np.array([0.0, 0.0, -1.0])
BODY_RIGHT: NDArray[np.float64] = np.array([1.0, 0.0, 0.0])
BODY_UP: NDArray[np.float64] = np.array([0.0, 1.0, 0.0])

IDENTITY_QUATERNION: NDArray[np.float64] = np.array([1.0, 0.0, 0.0, 0.0])

# Below this length a vector is treated as having no direction
DIRECTION_EPSILON: float = 1e-9

_VECTOR_SHAPES = (
    ("position", 3),
    ("velocity", 3),
    ("quaternion", 4),
    ("angular_velocity", 3),
)

# =============================================================================
# Vector Utilities
# =============================================================================


@beartype
def normalize_vector(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Normalize a vector, returning zeros for a zero-length input."""
    norm = np.linalg.norm(v)
    if norm < DIRECTION_EPSILON:
        return np.zeros_like(v)
    return v / norm


@beartype
def angle_between(a: NDArray[np.float64], b: NDArray[np.float64]) -> float:
    """Unsigned angle between two vectors [rad].

    Uses atan2 of the cross and dot products, which stays accurate near
    0 and pi where arccos of the dot product loses precision.
    """
    cross = np.linalg.norm(np.cross(a, b))
    dot = float(np.dot(a, b))
    return float(np.arctan2(cross, dot))


# =============================================================================
# Quaternion Utilities
# =============================================================================


@beartype
def normalize_quaternion(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale ``q`` to unit length (identity for a zero quaternion)."""
    length = np.linalg.norm(q)
    if length < 1e-10:
        return IDENTITY_QUATERNION.copy()
    return q / length


@beartype
def quaternion_multiply(q1: NDArray[np.float64], q2: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hamilton product ``q1 * q2``: rotate by q2 first, then by q1.

    Written with scalar/vector parts:
    (s1, v1)(s2, v2) = (s1*s2 - v1.v2, s1*v2 + s2*v1 + v1 x v2)
    """
    s1, v1 = q1[0], q1[1:]
    s2, v2 = q2[0], q2[1:]
    scalar = s1 * s2 - np.dot(v1, v2)
    vector = s1 * v2 + s2 * v1 + np.cross(v1, v2)
    return np.concatenate([[scalar], vector])


@beartype
def quaternion_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Conjugate of ``q``; the inverse rotation for unit quaternions."""
    return q * np.array([1.0, -1.0, -1.0, -1.0])


@beartype
def quaternion_from_axis_angle(axis: NDArray[np.float64], angle: float) -> NDArray[np.float64]:
    """Build the quaternion rotating by ``angle`` [rad] about ``axis``.

    A zero-length axis yields the identity rotation.
    """
    unit = normalize_vector(axis)
    if not unit.any():
        return IDENTITY_QUATERNION.copy()
    half = 0.5 * angle
    return np.concatenate([[np.cos(half)], np.sin(half) * unit])


@beartype
def quaternion_to_dcm(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Rotation matrix taking body-frame vectors to the world frame.

    Columns are the body X (right), Y (up) and Z (back) axes in world
    coordinates. Uses R = (s^2 - v.v) I + 2 v v^T + 2 s [v]x.
    """
    unit = normalize_quaternion(q)
    s, v = unit[0], unit[1:]
    skew = np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ])
    return (s * s - np.dot(v, v)) * np.eye(3) + 2.0 * np.outer(v, v) + 2.0 * s * skew


@beartype
def quaternion_angle(q1: NDArray[np.float64], q2: NDArray[np.float64]) -> float:
    """Smallest rotation angle taking attitude q1 to attitude q2 [rad].

    q and -q describe the same attitude, so the absolute dot product is used.
    """
    dot = abs(float(np.dot(normalize_quaternion(q1), normalize_quaternion(q2))))
    return 2.0 * float(np.arccos(min(1.0, dot)))


@beartype
def quaternion_slerp(
    q1: NDArray[np.float64],
    q2: NDArray[np.float64],
    t: float,
) -> NDArray[np.float64]:
    """Spherical linear interpolation from q1 (t=0) to q2 (t=1).

    Always takes the short path between the two attitudes.
    """
    q1 = normalize_quaternion(q1)
    q2 = normalize_quaternion(q2)

    dot = float(np.dot(q1, q2))
    if dot < 0.0:
        q2 = -q2
        dot = -dot

    # Nearly identical attitudes: linear blend avoids dividing by sin(~0)
    if dot > 0.9995:
        return normalize_quaternion(q1 + t * (q2 - q1))

    theta = np.arccos(dot)
    sin_theta = np.sin(theta)
    w1 = np.sin((1.0 - t) * theta) / sin_theta
    w2 = np.sin(t * theta) / sin_theta

    return normalize_quaternion(w1 * q1 + w2 * q2)


# =============================================================================
# State Classes
# =============================================================================


@beartype
@dataclass
class State:
    """Rigid body state of a free-floating vehicle.

    Attributes:
        position: [x, y, z] position in world frame [m]
        velocity: [vx, vy, vz] velocity in world frame [m/s]
        quaternion: [q0, q1, q2, q3] attitude quaternion (scalar-first)
        angular_velocity: [wx, wy, wz] angular rates in world frame [rad/s]
        mass: vehicle mass [kg]
        time: simulation time [s]
    """
    position: NDArray[np.float64]
    velocity: NDArray[np.float64]
    quaternion: NDArray[np.float64]
    angular_velocity: NDArray[np.float64]
    mass: float
    time: float = 0.0

    def __post_init__(self) -> None:
        """Coerce vectors to float arrays, normalize the attitude, check shapes."""
        for name, size in _VECTOR_SHAPES:
            value = np.asarray(getattr(self, name), dtype=np.float64)
            if value.shape != (size,):
                label = name.replace("_", " ").capitalize()
                raise ValueError(f"{label} must be shape ({size},), got {value.shape}")
            setattr(self, name, value)
        self.quaternion = normalize_quaternion(self.quaternion)

        if not self.mass > 0.0:
            raise ValueError(f"Mass must be positive, got {self.mass}")

    @classmethod
    def at_rest(
        cls,
        mass_kg: float,
        position: NDArray[np.float64] | None = None,
        quaternion: NDArray[np.float64] | None = None,
    ) -> "State":
        """Create a motionless state.

        Args:
            mass_kg: Vehicle mass [kg]
            position: Initial world position [m] (default origin)
            quaternion: Initial attitude (default identity, facing -Z)
        """
        return cls(
            position=np.zeros(3) if position is None else position,
            velocity=np.zeros(3),
            quaternion=IDENTITY_QUATERNION.copy() if quaternion is None else quaternion,
            angular_velocity=np.zeros(3),
            mass=mass_kg,
        )

    def copy(self) -> "State":
        """Deep copy; the arrays are not shared."""
        arrays = {name: getattr(self, name).copy() for name, _ in _VECTOR_SHAPES}
        return State(**arrays, mass=self.mass, time=self.time)

    @property
    def dcm_body_to_world(self) -> NDArray[np.float64]:
        """Get DCM that transforms vectors from body to world frame."""
        return quaternion_to_dcm(self.quaternion)

    @property
    def dcm_world_to_body(self) -> NDArray[np.float64]:
        """Get DCM that transforms vectors from world to body frame."""
        return quaternion_to_dcm(self.quaternion).T

    @property
    def forward(self) -> NDArray[np.float64]:
        """Body forward axis in world frame."""
        return self.dcm_body_to_world @ BODY_FORWARD

    @property
    def right(self) -> NDArray[np.float64]:
        """Body right axis in world frame."""
        return self.dcm_body_to_world @ BODY_RIGHT

    @property
    def up(self) -> NDArray[np.float64]:
        """Body up axis in world frame."""
        return self.dcm_body_to_world @ BODY_UP

    @property
    def speed(self) -> float:
        """Get speed magnitude [m/s]."""
        return float(np.linalg.norm(self.velocity))

    def velocity_body(self) -> NDArray[np.float64]:
        """Get velocity in body frame [m/s]."""
        return self.dcm_world_to_body @ self.velocity
