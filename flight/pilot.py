"""Pilot input boundary and per-tick flight computer.

``PilotInput`` carries one tick of normalized controls. Nothing is ever
rejected: non-finite values become zero and everything is clamped to its
range when the input crosses into the flight computer.

``FlightComputer`` owns the loop for one piloted body. Each tick it routes
the input into whichever controller is attached (fly-by-wire or flight
assist), lets the simulator integrate, and publishes a ``Telemetry``
snapshot to every sink.

Example:
    >>> sim = Simulator.at_rest(mass_kg=5000.0)
    >>> computer = FlightComputer(sim, FlyByWire())
    >>> telemetry = computer.tick(PilotInput(throttle=1.0, strafe=np.array([1.0, 0.0])))
    >>> telemetry.target_speed
    0.1666...
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from flight.control.assist import FlightAssist
from flight.control.fly_by_wire import FlyByWire
from flight.telemetry import Telemetry, TelemetrySink
from spacecraft.dynamics.rigid_body import RigidBody
from spacecraft.dynamics.state import State
from spacecraft.simulation.simulator import Simulator

logger = logging.getLogger(__name__)

Controller = FlyByWire | FlightAssist

# =============================================================================
# Input
# =============================================================================


VectorInput = np.ndarray | Sequence[float | int]


def _clamp(values: VectorInput | float | int, size: int, limit: float) -> NDArray[np.float64]:
    vector = np.resize(np.asarray(values, dtype=np.float64), size)
    return np.clip(np.nan_to_num(vector, nan=0.0, posinf=0.0, neginf=0.0), -limit, limit)


@beartype
@dataclass(frozen=True)
class PilotInput:
    """One tick of pilot controls.

    Attributes:
        thrust: Body-frame thrust command [-1, 1] (flight assist)
        rotation: Pitch, yaw, roll deltas [rad] (POV under fly-by-wire,
            read as normalized rate demand under flight assist)
        throttle: Target speed change demand [-1, 1] (fly-by-wire)
        strafe: Right, up strafe command [-1, 1]
        boost: Boost held
        advance_assist: Step the flight assist level once this tick
    """
    thrust: VectorInput = field(default_factory=lambda: np.zeros(3))
    rotation: VectorInput = field(default_factory=lambda: np.zeros(3))
    throttle: float | int = 0.0
    strafe: VectorInput = field(default_factory=lambda: np.zeros(2))
    boost: bool = False
    advance_assist: bool = False

    def clamped(self) -> "PilotInput":
        """Copy with every value forced into range."""
        return replace(
            self,
            thrust=_clamp(self.thrust, 3, 1.0),
            rotation=_clamp(self.rotation, 3, np.pi),
            throttle=float(_clamp(self.throttle, 1, 1.0)[0]),
            strafe=_clamp(self.strafe, 2, 1.0),
        )


# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class PilotConfig:
    """Pilot-facing speed control.

    Attributes:
        throttle_rate: Target speed change at full throttle [m/s^2]
        max_speed: Target speed ceiling [m/s]
        boost_multiplier: Target speed and ceiling scale while boosting
    """
    throttle_rate: float = 20.0
    max_speed: float = 200.0
    boost_multiplier: float = 1.5

    def __post_init__(self) -> None:
        if self.throttle_rate <= 0.0:
            raise ValueError(f"throttle_rate must be positive, got {self.throttle_rate}")
        if self.max_speed <= 0.0:
            raise ValueError(f"max_speed must be positive, got {self.max_speed}")
        if self.boost_multiplier < 1.0:
            raise ValueError(f"boost_multiplier must be at least 1, got {self.boost_multiplier}")


# =============================================================================
# Flight Computer
# =============================================================================


@beartype
class FlightComputer:
    """Routes pilot input into the attached controller once per tick.

    Exactly one controller drives the body at a time; ``switch_controller``
    detaches the old one before attaching the new one.

    Example:
        >>> recorder = TelemetryRecorder()
        >>> computer = FlightComputer(sim, FlightAssist(), sinks=[recorder])
        >>> computer.tick(PilotInput(advance_assist=True))
    """

    def __init__(
        self,
        simulator: Simulator,
        controller: Controller,
        config: PilotConfig | None = None,
        sinks: list[TelemetrySink] | None = None,
    ) -> None:
        """Initialize flight computer and attach ``controller``.

        Args:
            simulator: Simulator owning the piloted body
            controller: Fly-by-wire or flight assist controller
            config: Speed control settings
            sinks: Telemetry consumers
        """
        self.simulator = simulator
        self.config = config or PilotConfig()
        self.sinks: list[TelemetrySink] = list(sinks or [])

        self.controller = controller
        controller.attach(simulator.body)

        self._boosting = False
        self._command = PilotInput()
        # Held until a tick consumes it; a frame may run no ticks
        self._advance_pending = False

    @property
    def body(self) -> RigidBody:
        return self.simulator.body

    def add_sink(self, sink: TelemetrySink) -> None:
        self.sinks.append(sink)

    def switch_controller(self, controller: Controller) -> None:
        """Hand the body over to ``controller``."""
        self.controller.detach()
        self.controller = controller
        controller.attach(self.simulator.body)
        self._boosting = False
        self._advance_pending = False
        logger.info("Switched to %s", type(controller).__name__)

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def tick(self, pilot_input: PilotInput | None = None) -> Telemetry:
        """Run one fixed physics tick with ``pilot_input``.

        Returns:
            Telemetry published for this tick
        """
        command = (pilot_input or PilotInput()).clamped()
        self._command = replace(command, advance_assist=self._advance_pending or command.advance_assist)
        self._advance_pending = False
        self.simulator.step(self.control)
        return self._publish()

    def fly(self, frame_time: float, pilot_input: PilotInput | None = None) -> list[Telemetry]:
        """Run as many fixed ticks as ``frame_time`` covers.

        The same input is held for every tick of the frame, except the
        assist advance trigger, which fires once on the first tick that
        runs. A frame too short for any tick carries the trigger over to
        the next frame.

        Returns:
            Telemetry of every tick run
        """
        command = (pilot_input or PilotInput()).clamped()
        self._advance_pending = self._advance_pending or command.advance_assist
        published: list[Telemetry] = []

        def control(body: RigidBody, dt: float) -> None:
            self.control(body, dt)
            self._advance_pending = False
            self._command = replace(self._command, advance_assist=False)

        def after_step(state: State) -> None:
            published.append(self._publish())

        self._command = replace(command, advance_assist=self._advance_pending)
        self.simulator.advance(frame_time, control, after_step)
        return published

    def control(self, body: RigidBody, dt: float) -> None:
        """Control law handed to the simulator for the current command."""
        command = self._command

        if isinstance(self.controller, FlyByWire):
            self._fly_by_wire(self.controller, command, dt)
        else:
            if command.advance_assist:
                self.controller.advance()
            self.controller.update(command.thrust, command.rotation, dt)

    def _fly_by_wire(self, fbw: FlyByWire, command: PilotInput, dt: float) -> None:
        if command.advance_assist:
            logger.debug("Assist advance ignored under fly-by-wire")

        pitch, yaw, roll = command.rotation
        fbw.rotate_pov(float(pitch), float(yaw), float(roll))

        ceiling = self.config.max_speed
        if command.boost:
            ceiling *= self.config.boost_multiplier
            if not self._boosting:
                fbw.set_target_speed(min(fbw.target_speed * self.config.boost_multiplier, ceiling))
        elif self._boosting:
            fbw.set_target_speed(min(fbw.target_speed, ceiling))
        self._boosting = command.boost

        if command.throttle != 0.0:
            speed = fbw.target_speed + command.throttle * self.config.throttle_rate * dt
            fbw.set_target_speed(min(max(speed, 0.0), ceiling))

        fbw.set_strafe_input(command.strafe)
        fbw.update(dt)

    def _publish(self) -> Telemetry:
        if isinstance(self.controller, FlyByWire):
            telemetry = Telemetry.from_fly_by_wire(self.controller)
        else:
            telemetry = Telemetry.from_assist(self.controller)
        for sink in self.sinks:
            sink.publish(telemetry)
        return telemetry
