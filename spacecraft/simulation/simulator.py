"""Fixed-timestep simulation for free-floating spacecraft.

Provides a step-driven simulation interface where flight software supplies
the control law for each tick. The simulator maintains the "truth" body and
propagates physics at a fixed rate, independent of the caller's frame rate.

Tick structure:
    1. body.begin_tick(dt)     -- acceleration baseline, queued impulses
    2. control(body, dt)       -- flight software mutates the body
    3. optional gravity force
    4. body.integrate(dt)      -- forces -> velocity -> position

Example:
    >>> from spacecraft.simulation import Simulator, SimConfig
    >>>
    >>> sim = Simulator.at_rest(mass_kg=5000.0)
    >>>
    >>> def control(body, dt):
    ...     body.apply_local_force(np.array([0.0, 0.0, -1.0e4]))
    >>>
    >>> for _ in range(120):
    ...     sim.step(control)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from spacecraft.dynamics.rigid_body import BodyConfig, RigidBody
from spacecraft.dynamics.state import State
from spacecraft.environment.gravity import PointMass

logger = logging.getLogger(__name__)

ControlLaw = Callable[[RigidBody, float], None]
StepHook = Callable[[State], None]

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class SimConfig:
    """Simulation configuration.

    Attributes:
        dt: Fixed physics time step [s] (default 120 Hz)
        max_substeps: Upper bound on ticks run for one ``advance`` call, so a
            long frame hitch cannot stall the caller
        record_history: Keep a copy of the state after every tick
    """
    dt: float = 1.0 / 120.0
    max_substeps: int = 8
    record_history: bool = False

    def __post_init__(self) -> None:
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.max_substeps < 1:
            raise ValueError(f"max_substeps must be at least 1, got {self.max_substeps}")


# =============================================================================
# Simulator
# =============================================================================


@beartype
@dataclass
class Simulator:
    """Step-driven spacecraft simulator.

    Maintains the truth body and propagates physics in response to the
    control law called once per tick.

    Example:
        >>> sim = Simulator.at_rest(mass_kg=5000.0)
        >>> ticks = sim.advance(1.0 / 60.0, control)  # two 120 Hz ticks
    """
    body: RigidBody
    config: SimConfig = field(default_factory=SimConfig)
    gravity: PointMass | None = None

    # Internal
    _accumulator: float = field(default=0.0, init=False, repr=False)
    _ticks: int = field(default=0, init=False, repr=False)
    _history: list[State] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.config.record_history:
            self._history = [self.body.state.copy()]

    @classmethod
    def at_rest(
        cls,
        mass_kg: float = 5000.0,
        position: NDArray[np.float64] | None = None,
        quaternion: NDArray[np.float64] | None = None,
        body_config: BodyConfig | None = None,
        config: SimConfig | None = None,
    ) -> "Simulator":
        """Create simulator with a motionless body.

        Args:
            mass_kg: Vehicle mass [kg]
            position: Initial world position [m]
            quaternion: Initial attitude
            body_config: Physical parameters of the body
            config: Simulation configuration
        """
        state = State.at_rest(mass_kg=mass_kg, position=position, quaternion=quaternion)
        return cls(
            body=RigidBody(state, body_config),
            config=config or SimConfig(),
        )

    def get_state(self) -> State:
        """Get current truth state.

        Returns a copy to prevent external modification.
        """
        return self.body.state.copy()

    def gravity_at(self, position: NDArray[np.float64]) -> NDArray[np.float64]:
        """Gravitational acceleration at ``position`` (zero without a source)."""
        if self.gravity is None:
            return np.zeros(3)
        return self.gravity.acceleration(position)

    def step(self, control: ControlLaw | None = None) -> State:
        """Propagate physics by exactly one fixed time step.

        Args:
            control: Flight software callback run after queued impulses are
                flushed and before integration

        Returns:
            The body's state after integration
        """
        dt = self.config.dt
        body = self.body

        body.begin_tick(dt)
        if control is not None:
            control(body, dt)

        if self.gravity is not None and not body.kinematic:
            body.apply_force(body.mass * self.gravity.acceleration(body.position))

        body.integrate(dt)
        self._ticks += 1

        if self.config.record_history:
            self._history.append(body.state.copy())

        return body.state

    def advance(
        self,
        frame_time: float,
        control: ControlLaw | None = None,
        after_step: StepHook | None = None,
    ) -> int:
        """Run as many fixed ticks as ``frame_time`` covers.

        Leftover time carries over to the next call. At most
        ``max_substeps`` ticks run; any excess time is dropped.

        Args:
            frame_time: Elapsed wall/frame time [s]
            control: Control law passed to every tick
            after_step: Called with the state after every tick

        Returns:
            Number of ticks run
        """
        dt = self.config.dt
        self._accumulator += max(0.0, frame_time)

        ticks = 0
        while self._accumulator >= dt and ticks < self.config.max_substeps:
            state = self.step(control)
            if after_step is not None:
                after_step(state)
            self._accumulator -= dt
            ticks += 1

        if self._accumulator >= dt:
            logger.warning(
                "Simulation fell behind by %.3f s; dropping time after %d ticks",
                self._accumulator, ticks,
            )
            self._accumulator = 0.0

        return ticks

    def get_history(self) -> list[State]:
        """Get recorded state history."""
        return self._history.copy()

    def clear_history(self) -> None:
        """Clear recorded state history."""
        self._history = [self.body.state.copy()]

    def result(self) -> "SimulationResult":
        """Wrap the recorded history for analysis."""
        return SimulationResult(states=self.get_history())

    @property
    def time(self) -> float:
        """Current simulation time [s]."""
        return self.body.state.time

    @property
    def ticks(self) -> int:
        """Number of ticks run so far."""
        return self._ticks


# =============================================================================
# Results and Analysis
# =============================================================================


@beartype
@dataclass
class SimulationResult:
    """Recorded state history with convenient array access."""
    states: list[State]

    @property
    def time(self) -> NDArray[np.float64]:
        """Time array [s]."""
        return np.array([s.time for s in self.states])

    @property
    def position(self) -> NDArray[np.float64]:
        """Position history [m], shape (N, 3)."""
        return np.array([s.position for s in self.states])

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Velocity history [m/s], shape (N, 3)."""
        return np.array([s.velocity for s in self.states])

    @property
    def speed(self) -> NDArray[np.float64]:
        """Speed history [m/s]."""
        return np.linalg.norm(self.velocity, axis=1)

    @property
    def quaternion(self) -> NDArray[np.float64]:
        """Attitude history, shape (N, 4)."""
        return np.array([s.quaternion for s in self.states])
