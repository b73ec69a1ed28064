"""Graduated flight assist layered over raw Newtonian control.

Four levels, strictly ordered and cyclic (OFF -> LOW -> MEDIUM -> HIGH ->
OFF). ``advance`` is the only way to change level.

| Level  | Correction                                                      |
|--------|-----------------------------------------------------------------|
| OFF    | none, raw thrust and rotation only                              |
| LOW    | angular damping torque -w * max_torque * damping_strength,      |
|        | weakened while the pilot is rotating                            |
| MEDIUM | LOW, plus heading capture while thrusting forward               |
| HIGH   | LOW, plus velocity matching: space brake with no thrust input,  |
|        | otherwise steer velocity toward the body's forward axis         |

Thrust and rotation inputs are normalized body-frame commands, clamped to
[-1, 1] per component before any correction reads them. Thrust +z is
backward, so forward thrust is a negative z component.

Example:
    >>> assist = FlightAssist(AssistConfig(default_level=AssistLevel.HIGH))
    >>> assist.attach(body)
    >>> assist.update(thrust=np.zeros(3), rotation=np.zeros(3), dt=1.0 / 120.0)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacecraft.dynamics.rigid_body import RigidBody

logger = logging.getLogger(__name__)

# Inputs with no component above this magnitude count as released
INPUT_EPSILON: float = 1e-3

# Below this speed the body is considered stopped [m/s]
STOPPED_SPEED: float = 1e-3

# =============================================================================
# Assist Level
# =============================================================================


class AssistLevel(Enum):
    """Flight assist levels in cycling order."""

    OFF = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    def next(self) -> "AssistLevel":
        """Level reached by one advance (HIGH wraps to OFF)."""
        return AssistLevel((self.value + 1) % len(AssistLevel))


LevelListener = Callable[[AssistLevel], None]


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class AssistConfig:
    """Flight assist gains and limits.

    Attributes:
        max_thrust: Force per body axis at full thrust input [N]
        max_torque: Torque per body axis at full rotation input [N*m]
        damping_strength: Angular damping gain [1/s per unit torque ratio]
        active_rotation_damping: Damping multiplier while the pilot rotates
        velocity_damping: Space brake gain (HIGH)
        assist_strength: Velocity direction matching gain (HIGH)
        stop_speed: Below this speed the brake interpolates instead [m/s]
        stop_rate: Interpolation rate toward rest below stop_speed [1/s]
        heading_capture_speed: Minimum speed for heading capture [m/s]
        default_level: Level after construction
    """
    max_thrust: float = 100000.0
    max_torque: float = 50000.0
    damping_strength: float = 0.5
    active_rotation_damping: float = 0.3
    velocity_damping: float = 60.0
    assist_strength: float = 0.5
    stop_speed: float = 0.5
    stop_rate: float = 5.0
    heading_capture_speed: float = 1.0
    default_level: AssistLevel = AssistLevel.MEDIUM

    def __post_init__(self) -> None:
        for name in ("max_thrust", "max_torque", "stop_speed", "stop_rate"):
            value = getattr(self, name)
            if not value > 0.0:
                raise ValueError(f"{name} must be positive, got {value}")
        for name in ("damping_strength", "velocity_damping", "assist_strength", "heading_capture_speed"):
            value = getattr(self, name)
            if value < 0.0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if not 0.0 <= self.active_rotation_damping <= 1.0:
            raise ValueError(
                f"active_rotation_damping must be in [0, 1], got {self.active_rotation_damping}"
            )


# =============================================================================
# Flight Assist Controller
# =============================================================================


@beartype
@dataclass
class FlightAssist:
    """Four-level flight assist state machine.

    Attributes:
        config: Gains and limits
        level: Current assist level
        target_heading: Forward direction captured at MEDIUM (recorded only)
        level_listeners: Called with the new level after each advance
    """
    config: AssistConfig = field(default_factory=AssistConfig)

    level: AssistLevel = field(init=False)
    body: RigidBody | None = field(default=None, init=False, repr=False)
    thrust_input: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3), init=False)
    rotation_input: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3), init=False)
    target_heading: NDArray[np.float64] | None = field(default=None, init=False)
    level_listeners: list[LevelListener] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.level = self.config.default_level

    # -------------------------------------------------------------------------
    # Attachment
    # -------------------------------------------------------------------------

    def attach(self, body: RigidBody) -> None:
        """Take control of ``body``."""
        body.claim(self)
        self.body = body
        logger.info("Flight assist engaged at level %s", self.level.name)

    def detach(self) -> None:
        if self.body is None:
            return
        self.body.release(self)
        self.body = None
        logger.info("Flight assist disengaged")

    def require_body(self) -> RigidBody:
        if self.body is None:
            raise RuntimeError("FlightAssist is not attached to a body")
        return self.body

    # -------------------------------------------------------------------------
    # Level state machine
    # -------------------------------------------------------------------------

    def advance(self) -> AssistLevel:
        """Step to the next level in the cycle and notify listeners."""
        self.level = self.level.next()
        logger.info("Flight assist level %s", self.level.name)
        for listener in self.level_listeners:
            listener(self.level)
        return self.level

    # -------------------------------------------------------------------------
    # Control loop
    # -------------------------------------------------------------------------

    @property
    def is_rotating(self) -> bool:
        return bool(np.max(np.abs(self.rotation_input)) > INPUT_EPSILON)

    @property
    def is_thrusting(self) -> bool:
        return bool(np.max(np.abs(self.thrust_input)) > INPUT_EPSILON)

    def update(
        self,
        thrust: NDArray[np.float64],
        rotation: NDArray[np.float64],
        dt: float,
    ) -> None:
        """Apply raw input and the current level's corrections.

        Args:
            thrust: Body-frame thrust command, components in [-1, 1]
            rotation: Rotation command (pitch up, yaw right, roll right)
            dt: Time step [s]
        """
        if self.body is None:
            return
        body = self.body

        self.thrust_input = np.clip(thrust, -1.0, 1.0)
        self.rotation_input = np.clip(rotation, -1.0, 1.0)

        body.apply_local_force(self.thrust_input * self.config.max_thrust)
        pitch, yaw, roll = self.rotation_input
        body.apply_local_torque(np.array([pitch, -yaw, -roll]) * self.config.max_torque)

        if self.level is AssistLevel.OFF:
            return

        self._damp_rotation()

        if self.level is AssistLevel.MEDIUM:
            self._capture_heading()
        elif self.level is AssistLevel.HIGH:
            self._match_velocity(dt)

    def _damp_rotation(self) -> None:
        body = self.require_body()
        strength = self.config.damping_strength
        if self.is_rotating:
            strength *= self.config.active_rotation_damping
        body.apply_torque(-body.angular_velocity * self.config.max_torque * strength)

    def _capture_heading(self) -> None:
        body = self.require_body()
        speed_sq = float(np.dot(body.velocity, body.velocity))
        forward_thrust = self.thrust_input[2] < -INPUT_EPSILON

        if speed_sq > self.config.heading_capture_speed ** 2 and not self.is_rotating and forward_thrust:
            self.target_heading = body.forward

    def _match_velocity(self, dt: float) -> None:
        body = self.require_body()
        speed = body.speed

        if not self.is_thrusting:
            if speed > self.config.stop_speed:
                # Space brake; one tick removes at most the current velocity
                gain = min(self.config.velocity_damping * dt, 1.0 / dt)
                body.apply_force(-body.velocity * body.mass * gain)
            elif speed > STOPPED_SPEED:
                # Forces jitter near rest; ease the velocity down directly
                fraction = min(1.0, self.config.stop_rate * dt)
                body.set_linear_velocity(body.velocity * (1.0 - fraction))
            else:
                body.set_linear_velocity(np.zeros(3))
            return

        if speed <= STOPPED_SPEED:
            return

        correction = body.forward - body.velocity / speed
        body.apply_impulse(correction * speed * body.mass * self.config.assist_strength * dt)
