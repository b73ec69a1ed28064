"""Simulation module for spacecraft flight simulation.

Provides the fixed-timestep simulation interface where flight software
supplies the control law and the simulator maintains truth state.

Example:
    >>> from spacecraft.simulation import Simulator, SimConfig
    >>>
    >>> sim = Simulator.at_rest(mass_kg=5000.0, config=SimConfig(dt=1.0 / 120.0))
    >>> sim.advance(frame_time=1.0 / 60.0, control=flight_computer.control)
"""

from spacecraft.simulation.simulator import (
    ControlLaw,
    StepHook,
    SimConfig,
    SimulationResult,
    Simulator,
)

__all__ = [
    "ControlLaw",
    "StepHook",
    "SimConfig",
    "SimulationResult",
    "Simulator",
]
