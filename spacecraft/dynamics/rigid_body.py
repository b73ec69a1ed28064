"""Rigid body equations of motion for a driftless free-floating vehicle.

Implements the physical entity the flight controllers act on: forces,
impulses and torques (in body or world frame), a deferred impulse queue,
velocity clamping and the quantities derived from the state.

The equations use:
- Newton's second law for translational motion: F = m * a
- Rigid body rotation: tau = I * alpha (world-frame inertia I = R I_body R^T)
- Exact axis-angle propagation of the attitude quaternion

There is no drag and no gravity; a body that is left alone keeps its
linear and angular velocity forever.

Kinematic override contract:
    Controllers may drive the body directly through ``set_linear_velocity``,
    ``set_orientation`` and ``set_angular_velocity``. Values written this way
    are authoritative: ``integrate`` only adds accumulated forces/torques on
    top of them, and a body with ``kinematic=True`` ignores forces and
    torques altogether while still advancing position from velocity. Only one
    controller may own a body at a time (see ``claim``).

Example:
    >>> from spacecraft.dynamics import RigidBody, State
    >>> import numpy as np
    >>>
    >>> body = RigidBody(State.at_rest(mass_kg=5000.0))
    >>> body.apply_local_force(np.array([0.0, 0.0, -50000.0]))  # forward
    >>> body.integrate(0.01)
    >>> body.speed
    0.1
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacecraft.dynamics.state import (
    State,
    normalize_quaternion,
    quaternion_from_axis_angle,
    quaternion_multiply,
    quaternion_to_dcm,
)

logger = logging.getLogger(__name__)

# Velocity changes smaller than this do not fire velocity-changed events [m/s]
VELOCITY_EPSILON: float = 1e-3

# Standard gravity, used to express acceleration in g [m/s^2]
G0: float = 9.80665

VelocityListener = Callable[[NDArray[np.float64]], None]

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class BodyConfig:
    """Physical parameters of a rigid body.

    Attributes:
        inertia: 3x3 inertia tensor in body frame [kg*m^2]
        max_speed: Optional speed limit enforced after each integration [m/s]
        kinematic: If True, forces and torques are ignored; velocity and
            orientation are driven by a controller through the override API
    """
    inertia: NDArray[np.float64] = field(default_factory=lambda: np.diag([2.0e4, 2.0e4, 2.0e4]))
    max_speed: float | None = None
    kinematic: bool = False

    def __post_init__(self) -> None:
        self.inertia = np.asarray(self.inertia, dtype=np.float64)
        if self.inertia.shape != (3, 3):
            raise ValueError(f"Inertia must be shape (3, 3), got {self.inertia.shape}")
        if np.any(np.linalg.eigvalsh(0.5 * (self.inertia + self.inertia.T)) <= 0.0):
            raise ValueError("Inertia tensor must be positive definite")
        if self.max_speed is not None and self.max_speed <= 0.0:
            raise ValueError(f"max_speed must be positive, got {self.max_speed}")


# =============================================================================
# Rigid Body
# =============================================================================


@beartype
class RigidBody:
    """Free-floating rigid body with force, impulse and torque application.

    Forces and torques accumulate until the next ``integrate`` call.
    Impulses change momentum immediately; queued impulses are summed and
    applied once, when ``flush_impulses`` runs at the start of a tick.

    Example:
        >>> body = RigidBody(State.at_rest(mass_kg=1000.0))
        >>> body.queue_impulse(np.array([100.0, 0.0, 0.0]))
        >>> body.flush_impulses()
        >>> body.velocity
        array([0.1, 0. , 0. ])
    """

    def __init__(
        self,
        state: State,
        config: BodyConfig | None = None,
    ) -> None:
        """Initialize rigid body.

        Args:
            state: Initial state (mass must be positive)
            config: Physical parameters
        """
        self.state = state
        self.config = config or BodyConfig()
        self.inertia = self.config.inertia
        self.kinematic = self.config.kinematic

        self._force = np.zeros(3)
        self._torque = np.zeros(3)
        self._queued_impulse = np.zeros(3)
        self._previous_velocity = state.velocity.copy()
        self._last_dt = 0.0
        self._tick_open = False
        self._owner: object | None = None
        self.velocity_listeners: list[VelocityListener] = []

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------

    def claim(self, owner: object) -> None:
        """Register ``owner`` as the single controller driving this body."""
        if self._owner is not None and self._owner is not owner:
            raise RuntimeError(
                f"Body already controlled by {type(self._owner).__name__}; "
                f"detach it before attaching {type(owner).__name__}"
            )
        self._owner = owner
        logger.debug("Body claimed by %s", type(owner).__name__)

    def release(self, owner: object) -> None:
        """Release ownership held by ``owner`` (no-op for anyone else)."""
        if self._owner is owner:
            self._owner = None
            logger.debug("Body released by %s", type(owner).__name__)

    @property
    def owner(self) -> object | None:
        return self._owner

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        return self.state.mass

    @property
    def position(self) -> NDArray[np.float64]:
        return self.state.position

    @property
    def velocity(self) -> NDArray[np.float64]:
        return self.state.velocity

    @property
    def orientation(self) -> NDArray[np.float64]:
        return self.state.quaternion

    @property
    def angular_velocity(self) -> NDArray[np.float64]:
        return self.state.angular_velocity

    @property
    def forward(self) -> NDArray[np.float64]:
        return self.state.forward

    @property
    def right(self) -> NDArray[np.float64]:
        return self.state.right

    @property
    def up(self) -> NDArray[np.float64]:
        return self.state.up

    # -------------------------------------------------------------------------
    # Kinematic override
    # -------------------------------------------------------------------------

    def set_linear_velocity(self, velocity: NDArray[np.float64]) -> None:
        """Directly assign world-frame linear velocity [m/s]."""
        self.state.velocity = np.array(velocity, dtype=np.float64)

    def set_angular_velocity(self, angular_velocity: NDArray[np.float64]) -> None:
        """Directly assign world-frame angular velocity [rad/s]."""
        self.state.angular_velocity = np.array(angular_velocity, dtype=np.float64)

    def set_orientation(self, quaternion: NDArray[np.float64]) -> None:
        """Directly assign attitude; the quaternion is re-normalized."""
        self.state.quaternion = normalize_quaternion(np.asarray(quaternion, dtype=np.float64))

    # -------------------------------------------------------------------------
    # Force / impulse / torque application
    # -------------------------------------------------------------------------

    def to_world(self, v_local: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform a body-frame vector to the world frame."""
        return quaternion_to_dcm(self.state.quaternion) @ v_local

    def to_local(self, v_world: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform a world-frame vector to the body frame."""
        return quaternion_to_dcm(self.state.quaternion).T @ v_world

    def apply_force(self, force: NDArray[np.float64]) -> None:
        """Accumulate a world-frame force [N] until the next integration."""
        self._force = self._force + force

    def apply_local_force(self, force: NDArray[np.float64]) -> None:
        """Accumulate a body-frame force [N]."""
        self.apply_force(self.to_world(force))

    def apply_torque(self, torque: NDArray[np.float64]) -> None:
        """Accumulate a world-frame torque [N*m] until the next integration."""
        self._torque = self._torque + torque

    def apply_local_torque(self, torque: NDArray[np.float64]) -> None:
        """Accumulate a body-frame torque [N*m]."""
        self.apply_torque(self.to_world(torque))

    def apply_impulse(self, impulse: NDArray[np.float64]) -> None:
        """Apply a world-frame linear impulse [N*s] immediately."""
        self.state.velocity = self.state.velocity + impulse / self.state.mass

    def apply_local_impulse(self, impulse: NDArray[np.float64]) -> None:
        """Apply a body-frame linear impulse [N*s] immediately."""
        self.apply_impulse(self.to_world(impulse))

    def apply_angular_impulse(self, angular_impulse: NDArray[np.float64]) -> None:
        """Apply a world-frame angular impulse [N*m*s] immediately."""
        self.state.angular_velocity = (
            self.state.angular_velocity + self.inverse_inertia_world @ angular_impulse
        )

    def queue_impulse(self, impulse: NDArray[np.float64], local: bool = False) -> None:
        """Defer a linear impulse [N*s] to the next ``flush_impulses`` call.

        Callers outside the tick loop use this so the impulse lands on a
        tick boundary instead of mid-update.
        """
        if local:
            impulse = self.to_world(impulse)
        self._queued_impulse = self._queued_impulse + impulse

    @property
    def queued_impulse(self) -> NDArray[np.float64]:
        return self._queued_impulse.copy()

    def flush_impulses(self) -> None:
        """Apply and clear the accumulated queued impulse."""
        if self._queued_impulse.any():
            self.apply_impulse(self._queued_impulse)
            self._queued_impulse = np.zeros(3)

    def clear_forces(self) -> None:
        self._force = np.zeros(3)
        self._torque = np.zeros(3)

    # -------------------------------------------------------------------------
    # Velocity clamping
    # -------------------------------------------------------------------------

    def clamp_velocity(self, max_speed: float) -> bool:
        """Rescale velocity down to ``max_speed`` if it is exceeded.

        Velocity listeners fire only when the clamped velocity differs from
        the previous one by more than ``VELOCITY_EPSILON``.

        Returns:
            True if the velocity was rescaled
        """
        speed = self.speed
        if speed <= max_speed:
            return False

        previous = self.state.velocity.copy()
        self.state.velocity = previous * (max_speed / speed)

        if np.linalg.norm(self.state.velocity - previous) > VELOCITY_EPSILON:
            self._notify_velocity_changed()
        return True

    def _notify_velocity_changed(self) -> None:
        velocity = self.state.velocity.copy()
        for listener in self.velocity_listeners:
            listener(velocity)

    # -------------------------------------------------------------------------
    # Integration
    # -------------------------------------------------------------------------

    @property
    def inverse_inertia_world(self) -> NDArray[np.float64]:
        """Inverse inertia tensor expressed in the world frame."""
        dcm = quaternion_to_dcm(self.state.quaternion)
        return dcm @ np.linalg.inv(self.inertia) @ dcm.T

    def integrate(self, dt: float) -> None:
        """Advance the body by one time step using semi-implicit Euler.

        Forces update velocity before velocity updates position. Accumulated
        forces and torques are cleared afterwards.

        Args:
            dt: Time step [s]
        """
        if not self._tick_open:
            self._previous_velocity = self.state.velocity.copy()
            self._last_dt = dt
        self._tick_open = False

        if not self.kinematic:
            self.state.velocity = self.state.velocity + (self._force / self.state.mass) * dt
            self.state.angular_velocity = (
                self.state.angular_velocity + (self.inverse_inertia_world @ self._torque) * dt
            )
        self.clear_forces()

        if self.config.max_speed is not None:
            self.clamp_velocity(self.config.max_speed)

        self.state.position = self.state.position + self.state.velocity * dt

        omega = self.state.angular_velocity
        rate = float(np.linalg.norm(omega))
        if rate > 0.0:
            dq = quaternion_from_axis_angle(omega, rate * dt)
            self.state.quaternion = normalize_quaternion(quaternion_multiply(dq, self.state.quaternion))

        self.state.time = self.state.time + dt

    def begin_tick(self, dt: float) -> None:
        """Open a physics tick: record the acceleration baseline, flush impulses.

        The baseline is taken before any controller runs, so the acceleration
        estimate also covers velocity written through the kinematic override.
        """
        self._previous_velocity = self.state.velocity.copy()
        self._last_dt = dt
        self._tick_open = True
        self.flush_impulses()

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def speed(self) -> float:
        """Speed magnitude [m/s]."""
        return self.state.speed

    @property
    def local_velocity(self) -> NDArray[np.float64]:
        """Velocity in the body frame [m/s]."""
        return self.state.velocity_body()

    @property
    def acceleration(self) -> NDArray[np.float64]:
        """Finite-difference acceleration over the last tick [m/s^2]."""
        if self._last_dt <= 0.0:
            return np.zeros(3)
        return (self.state.velocity - self._previous_velocity) / self._last_dt

    @property
    def g_force(self) -> float:
        """Magnitude of the acceleration estimate in standard g."""
        return float(np.linalg.norm(self.acceleration)) / G0

    @property
    def momentum(self) -> NDArray[np.float64]:
        """Linear momentum m * v [kg*m/s]."""
        return self.state.mass * self.state.velocity

    @property
    def kinetic_energy(self) -> float:
        """Translational kinetic energy 0.5 * m * |v|^2 [J]."""
        return 0.5 * self.state.mass * float(np.dot(self.state.velocity, self.state.velocity))

    @property
    def rotational_energy(self) -> float:
        """Rotational kinetic energy 0.5 * w^T I w [J]."""
        dcm = quaternion_to_dcm(self.state.quaternion)
        inertia_world = dcm @ self.inertia @ dcm.T
        omega = self.state.angular_velocity
        return 0.5 * float(omega @ inertia_world @ omega)
