"""Typed telemetry published once per physics tick.

Consumers (HUD, camera rig, debug overlays, recorders) receive a frozen
``Telemetry`` record rather than a loosely keyed map, so a misspelled
field is an AttributeError at the producer instead of a silent miss at
the consumer. ``as_dict`` flattens the record for consumers that want
key/value pairs.

Example:
    >>> recorder = TelemetryRecorder(maxlen=600)
    >>> computer = FlightComputer(sim, FlyByWire(), sinks=[recorder])
    >>> computer.tick(PilotInput(throttle=1.0))
    >>> recorder.latest.target_speed
    0.1666...
"""

from collections import deque
from dataclasses import dataclass, fields
from typing import Any, Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from flight.control.assist import AssistLevel, FlightAssist
from flight.control.fly_by_wire import FlyByWire
from spacecraft.dynamics.rigid_body import RigidBody
from spacecraft.dynamics.state import BODY_FORWARD, BODY_RIGHT, BODY_UP, quaternion_to_dcm

# =============================================================================
# Telemetry Record
# =============================================================================


@beartype
@dataclass(frozen=True)
class Telemetry:
    """Snapshot of flight state after one tick.

    Attributes:
        time: Simulation time [s]
        speed: Current speed [m/s]
        target_speed: Commanded speed [m/s] (0 without fly-by-wire)
        velocity: Composite world velocity [m/s]
        local_velocity: Velocity in the body frame [m/s]
        thrust_velocity: Forward component owned by main thrust [m/s]
        rcs_velocity: Lateral component owned by RCS [m/s]
        is_maneuvering: Fly-by-wire thrust error above threshold
        pov_forward: Pilot view forward axis (world)
        pov_right: Pilot view right axis (world)
        pov_up: Pilot view up axis (world)
        pov_orientation: Pilot view attitude quaternion
        body_forward: Body forward axis (world)
        body_orientation: Body attitude quaternion
        g_force: Acceleration over the last tick [g]
        assist_level: Flight assist level, or None under fly-by-wire
    """
    time: float
    speed: float
    target_speed: float
    velocity: NDArray[np.float64]
    local_velocity: NDArray[np.float64]
    thrust_velocity: NDArray[np.float64]
    rcs_velocity: NDArray[np.float64]
    is_maneuvering: bool
    pov_forward: NDArray[np.float64]
    pov_right: NDArray[np.float64]
    pov_up: NDArray[np.float64]
    pov_orientation: NDArray[np.float64]
    body_forward: NDArray[np.float64]
    body_orientation: NDArray[np.float64]
    g_force: float
    assist_level: AssistLevel | None = None

    def as_dict(self) -> dict[str, Any]:
        """Flatten into a key -> value snapshot."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_fly_by_wire(cls, fbw: FlyByWire) -> "Telemetry":
        """Build a snapshot from an attached fly-by-wire controller."""
        body = fbw.require_body()
        return cls(
            time=body.state.time,
            speed=body.speed,
            target_speed=fbw.target_speed,
            velocity=body.velocity.copy(),
            local_velocity=body.local_velocity,
            thrust_velocity=fbw.thrust_velocity.copy(),
            rcs_velocity=fbw.rcs_velocity.copy(),
            is_maneuvering=fbw.is_maneuvering,
            pov_forward=fbw.pov_forward,
            pov_right=fbw.pov_right,
            pov_up=fbw.pov_up,
            pov_orientation=fbw.pov.copy(),
            body_forward=body.forward,
            body_orientation=body.orientation.copy(),
            g_force=body.g_force,
        )

    @classmethod
    def from_assist(cls, assist: FlightAssist) -> "Telemetry":
        """Build a snapshot from an attached flight assist controller.

        Without fly-by-wire the pilot looks where the body points, and all
        velocity is attributed to thrust.
        """
        body = assist.require_body()
        return _body_snapshot(body, assist_level=assist.level)


def _body_snapshot(body: RigidBody, assist_level: AssistLevel | None = None) -> Telemetry:
    dcm = quaternion_to_dcm(body.orientation)
    return Telemetry(
        time=body.state.time,
        speed=body.speed,
        target_speed=0.0,
        velocity=body.velocity.copy(),
        local_velocity=body.local_velocity,
        thrust_velocity=body.velocity.copy(),
        rcs_velocity=np.zeros(3),
        is_maneuvering=False,
        pov_forward=dcm @ BODY_FORWARD,
        pov_right=dcm @ BODY_RIGHT,
        pov_up=dcm @ BODY_UP,
        pov_orientation=body.orientation.copy(),
        body_forward=dcm @ BODY_FORWARD,
        body_orientation=body.orientation.copy(),
        g_force=body.g_force,
        assist_level=assist_level,
    )


# =============================================================================
# Sinks
# =============================================================================


@runtime_checkable
class TelemetrySink(Protocol):
    """Protocol for telemetry consumers."""

    def publish(self, telemetry: Telemetry) -> None:
        """Receive one tick's telemetry."""
        ...


@beartype
class TelemetryRecorder:
    """Telemetry sink keeping a bounded history.

    Example:
        >>> recorder = TelemetryRecorder(maxlen=120)
        >>> speeds = recorder.series("speed")
    """

    def __init__(self, maxlen: int | None = None) -> None:
        """Initialize recorder.

        Args:
            maxlen: Number of snapshots kept (None for unbounded)
        """
        if maxlen is not None and maxlen < 1:
            raise ValueError(f"maxlen must be at least 1, got {maxlen}")
        self._records: deque[Telemetry] = deque(maxlen=maxlen)

    def publish(self, telemetry: Telemetry) -> None:
        self._records.append(telemetry)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def latest(self) -> Telemetry | None:
        return self._records[-1] if self._records else None

    def history(self) -> list[Telemetry]:
        return list(self._records)

    def series(self, name: str) -> NDArray[Any]:
        """Stack one telemetry field across the recorded history."""
        return np.array([getattr(record, name) for record in self._records])

    def clear(self) -> None:
        self._records.clear()
