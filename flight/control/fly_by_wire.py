"""Fly-by-wire controller decoupling pilot view from body orientation.

The pilot steers a point of view (POV) and sets a target speed; the
controller works out the Newtonian maneuvers needed to get there. Velocity
is split into two independently converged components:

- Thrust velocity: forward component, target ``pov_forward * target_speed``.
  Corrected at ``maneuver_acceleration`` along the body's forward axis, so
  the body turns toward the error direction before burning.
- RCS velocity: strafe component, target from the strafe input along the
  POV right/up axes, corrected at ``rcs_thrust / mass`` without turning.

Every tick the body velocity is *assigned* ``thrust_velocity +
rcs_velocity`` through the rigid body's kinematic override. Nothing is
integrated separately, so the two components never drift from the actual
velocity.

Tick order:
    RCS update -> thrust update (may rotate) -> orientation mode ->
    composite velocity write

Frame convention: forward is body -Z, right is +X, up is +Y.

Example:
    >>> fbw = FlyByWire(FlyByWireConfig(maneuver_acceleration=20.0))
    >>> fbw.attach(body)
    >>> fbw.set_target_speed(100.0)
    >>> for _ in range(600):
    ...     fbw.update(1.0 / 120.0)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacecraft.dynamics.rigid_body import RigidBody
from spacecraft.dynamics.state import (
    BODY_FORWARD,
    BODY_RIGHT,
    BODY_UP,
    IDENTITY_QUATERNION,
    angle_between,
    normalize_quaternion,
    quaternion_angle,
    quaternion_from_axis_angle,
    quaternion_multiply,
    quaternion_slerp,
    quaternion_to_dcm,
)

logger = logging.getLogger(__name__)

# Cross products shorter than this mean forward and target are (anti-)parallel
PARALLEL_AXIS_EPSILON: float = 1e-2

# Minimum forward/target alignment for partial thrust while turning
MIN_THRUST_ALIGNMENT: float = 0.5

ManeuverListener = Callable[[bool], None]
PovListener = Callable[[NDArray[np.float64]], None]

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class FlyByWireConfig:
    """Fly-by-wire response parameters.

    Attributes:
        maneuver_acceleration: Thrust velocity correction rate [m/s^2]
        rotation_rate: Maximum body rotation rate [deg/s]
        velocity_match_threshold: Thrust error treated as matched [m/s]
        orientation_match_threshold: Angle treated as aligned [deg]
        rcs_thrust: Lateral thrust available to RCS [N]
        max_strafe_speed: Strafe speed at full strafe input [m/s]
    """
    maneuver_acceleration: float = 20.0
    rotation_rate: float = 180.0
    velocity_match_threshold: float = 0.5
    orientation_match_threshold: float = 2.0
    rcs_thrust: float = 30000.0
    max_strafe_speed: float = 30.0

    def __post_init__(self) -> None:
        for name in (
            "maneuver_acceleration",
            "rotation_rate",
            "velocity_match_threshold",
            "orientation_match_threshold",
            "rcs_thrust",
            "max_strafe_speed",
        ):
            value = getattr(self, name)
            if not value > 0.0:
                raise ValueError(f"{name} must be positive, got {value}")

    @property
    def rotation_rate_rad(self) -> float:
        """Maximum body rotation rate [rad/s]."""
        return float(np.radians(self.rotation_rate))

    @property
    def orientation_match_threshold_rad(self) -> float:
        """Alignment threshold [rad]."""
        return float(np.radians(self.orientation_match_threshold))


# =============================================================================
# Fly-By-Wire Controller
# =============================================================================


@beartype
class FlyByWire:
    """Decoupled POV / body flight controller.

    While the thrust velocity is off target (maneuvering) the body rotates
    toward the thrust error at ``rotation_rate`` and burns with an
    efficiency equal to its alignment. Once matched, the body eases back
    to the POV orientation with a rate-clamped slerp.

    Listeners:
        maneuver_listeners: called with the new flag when maneuvering starts
            or stops (edge-triggered)
        pov_listeners: called with the new POV quaternion after every POV
            rotation
    """

    def __init__(self, config: FlyByWireConfig | None = None) -> None:
        """Initialize controller.

        Args:
            config: Response parameters
        """
        self.config = config or FlyByWireConfig()

        self.body: RigidBody | None = None
        self.pov = IDENTITY_QUATERNION.copy()
        self.target_speed = 0.0
        self.strafe_input = np.zeros(2)
        self.thrust_velocity = np.zeros(3)
        self.rcs_velocity = np.zeros(3)

        self._maneuvering = False
        self._was_kinematic = False
        self.maneuver_listeners: list[ManeuverListener] = []
        self.pov_listeners: list[PovListener] = []

    # -------------------------------------------------------------------------
    # Attachment
    # -------------------------------------------------------------------------

    def attach(self, body: RigidBody) -> None:
        """Take control of ``body``.

        The POV starts at the body orientation. The forward component of the
        current velocity (never negative) seeds the thrust velocity and the
        target speed; whatever is left over becomes RCS velocity.
        """
        body.claim(self)
        self.body = body
        self._was_kinematic = body.kinematic
        body.kinematic = True

        self.pov = body.orientation.copy()
        velocity = body.velocity.copy()
        forward = self.pov_forward
        forward_speed = max(0.0, float(np.dot(velocity, forward)))

        self.thrust_velocity = forward * forward_speed
        self.rcs_velocity = velocity - self.thrust_velocity
        self.target_speed = forward_speed
        self._maneuvering = False
        body.set_angular_velocity(np.zeros(3))

        logger.info("Fly-by-wire engaged at %.1f m/s", forward_speed)

    def detach(self) -> None:
        """Hand the body back; it keeps its current velocity."""
        if self.body is None:
            return
        self.body.kinematic = self._was_kinematic
        self.body.release(self)
        self.body = None
        logger.info("Fly-by-wire disengaged")

    def require_body(self) -> RigidBody:
        if self.body is None:
            raise RuntimeError("FlyByWire is not attached to a body")
        return self.body

    # -------------------------------------------------------------------------
    # Pilot commands
    # -------------------------------------------------------------------------

    def rotate_pov(self, pitch: float, yaw: float, roll: float) -> None:
        """Rotate the POV by pilot deltas [rad].

        Each rotation uses the axis left by the previous one: pitch about
        local right, yaw about the new local up, roll about the new local
        forward. Positive pitch raises the nose, positive yaw turns right,
        positive roll banks right.
        """
        if pitch == 0.0 and yaw == 0.0 and roll == 0.0:
            return

        pov = self.pov
        if pitch != 0.0:
            pov = _rotate_about_local(pov, BODY_RIGHT, pitch)
        if yaw != 0.0:
            pov = _rotate_about_local(pov, BODY_UP, -yaw)
        if roll != 0.0:
            pov = _rotate_about_local(pov, BODY_FORWARD, roll)

        self.pov = normalize_quaternion(pov)

        snapshot = self.pov.copy()
        for listener in self.pov_listeners:
            listener(snapshot)

    def set_pov(self, quaternion: NDArray[np.float64]) -> None:
        """Point the POV at an absolute attitude."""
        self.pov = normalize_quaternion(quaternion)
        snapshot = self.pov.copy()
        for listener in self.pov_listeners:
            listener(snapshot)

    def set_target_speed(self, speed: float) -> None:
        self.target_speed = max(0.0, float(speed))

    def adjust_speed(self, delta_speed: float) -> None:
        self.target_speed = max(0.0, self.target_speed + float(delta_speed))

    def set_strafe_input(self, strafe: NDArray[np.float64]) -> None:
        """Set strafe input [right, up], each clamped to [-1, 1]."""
        self.strafe_input = np.clip(np.asarray(strafe, dtype=np.float64)[:2], -1.0, 1.0)

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def pov_forward(self) -> NDArray[np.float64]:
        return quaternion_to_dcm(self.pov) @ BODY_FORWARD

    @property
    def pov_right(self) -> NDArray[np.float64]:
        return quaternion_to_dcm(self.pov) @ BODY_RIGHT

    @property
    def pov_up(self) -> NDArray[np.float64]:
        return quaternion_to_dcm(self.pov) @ BODY_UP

    @property
    def target_velocity(self) -> NDArray[np.float64]:
        """Commanded thrust velocity; strafe is tracked separately by RCS."""
        return self.pov_forward * self.target_speed

    @property
    def target_rcs_velocity(self) -> NDArray[np.float64]:
        speed = self.config.max_strafe_speed
        return (
            self.pov_right * self.strafe_input[0] * speed
            + self.pov_up * self.strafe_input[1] * speed
        )

    @property
    def is_maneuvering(self) -> bool:
        return self._maneuvering

    # -------------------------------------------------------------------------
    # Control loop
    # -------------------------------------------------------------------------

    def update(self, dt: float) -> None:
        """Run one control tick.

        Args:
            dt: Time step [s]
        """
        if self.body is None:
            return

        self._update_rcs_velocity(dt)
        self._update_thrust_velocity(dt)

        error = float(np.linalg.norm(self.target_velocity - self.thrust_velocity))
        maneuvering = error > self.config.velocity_match_threshold
        if maneuvering != self._maneuvering:
            self._maneuvering = maneuvering
            logger.debug("Maneuvering %s (thrust error %.2f m/s)", "started" if maneuvering else "ended", error)
            for listener in self.maneuver_listeners:
                listener(maneuvering)

        if not maneuvering:
            self.align_to_pov(dt)

        self.body.set_linear_velocity(self.thrust_velocity + self.rcs_velocity)

    def _update_rcs_velocity(self, dt: float) -> None:
        body = self.require_body()
        target = self.target_rcs_velocity
        max_change = (self.config.rcs_thrust / body.mass) * dt

        error = target - self.rcs_velocity
        error_norm = float(np.linalg.norm(error))
        if error_norm <= max_change:
            self.rcs_velocity = target
        else:
            self.rcs_velocity = self.rcs_velocity + error / error_norm * max_change

    def _update_thrust_velocity(self, dt: float) -> None:
        body = self.require_body()
        target = self.target_velocity

        error = target - self.thrust_velocity
        error_norm = float(np.linalg.norm(error))
        max_change = min(error_norm, self.config.maneuver_acceleration * dt)

        # Matched: close the residual in place, no turning, same rate bound
        if error_norm < self.config.velocity_match_threshold:
            if error_norm <= max_change:
                self.thrust_velocity = target
            else:
                self.thrust_velocity = self.thrust_velocity + error / error_norm * max_change
            return

        direction = error / error_norm
        forward = body.forward

        if angle_between(forward, direction) > self.config.orientation_match_threshold_rad:
            self.rotate_toward(direction, dt)

            # Burn along the pre-rotation forward axis, scaled by alignment
            alignment = float(np.dot(forward, direction))
            if alignment > MIN_THRUST_ALIGNMENT:
                self.thrust_velocity = self.thrust_velocity + forward * max_change * alignment
        else:
            self.thrust_velocity = self.thrust_velocity + direction * max_change

    def rotate_toward(self, direction: NDArray[np.float64], dt: float) -> float:
        """Rotate the body forward axis toward ``direction`` at the rate limit.

        For an exactly opposite direction the cross product gives no axis,
        so the turn is made about the body's right axis.

        Returns:
            Angle rotated this tick [rad]
        """
        body = self.require_body()
        forward = body.forward

        axis = np.cross(forward, direction)
        if np.linalg.norm(axis) < PARALLEL_AXIS_EPSILON:
            if float(np.dot(forward, direction)) < 0.0:
                axis = body.right
            else:
                return 0.0

        angle = min(angle_between(forward, direction), self.config.rotation_rate_rad * dt)
        rotation = quaternion_from_axis_angle(axis, angle)
        body.set_orientation(quaternion_multiply(rotation, body.orientation))
        body.set_angular_velocity(np.zeros(3))
        return angle

    def align_to_pov(self, dt: float) -> float:
        """Ease the body orientation toward the POV at the rate limit.

        The slerp fraction is recomputed every tick so the body never turns
        faster than ``rotation_rate``. Once the remaining angle is inside the
        match threshold and within one tick's turn, the body snaps to the POV.

        Returns:
            Angle rotated this tick [rad]
        """
        body = self.require_body()
        current = body.orientation
        angle = quaternion_angle(current, self.pov)
        max_step = self.config.rotation_rate_rad * dt

        if angle <= self.config.orientation_match_threshold_rad and angle <= max_step:
            body.set_orientation(self.pov)
            rotated = angle
        else:
            t = min(1.0, max_step / angle)
            body.set_orientation(quaternion_slerp(current, self.pov, t))
            rotated = t * angle

        body.set_angular_velocity(np.zeros(3))
        return rotated


def _rotate_about_local(
    q: NDArray[np.float64],
    local_axis: NDArray[np.float64],
    angle: float,
) -> NDArray[np.float64]:
    """Rotate attitude ``q`` about one of its own axes."""
    world_axis = quaternion_to_dcm(q) @ local_axis
    return quaternion_multiply(quaternion_from_axis_angle(world_axis, angle), q)
