"""Flight software package - pilot-facing control for Newtonian spacecraft.

This package contains the control laws that would run on the flight
computer. They are developed and tested against the simulation
infrastructure in spacecraft/.

Architecture:
    The simulation (spacecraft/) provides the "plant" - a free-floating
    rigid body with no drag. Flight software (flight/) turns pilot input
    into forces, impulses or velocity writes on that body.

    Simulation loop:
        cmd = PilotInput(...)            # Sampled once per tick
        telemetry = computer.tick(cmd)   # Controller acts, sim integrates

Subpackages:
    control: Fly-by-wire and flight assist controllers

Example:
    >>> from flight import FlightComputer, FlyByWire, PilotInput
    >>> from spacecraft.simulation import Simulator
    >>>
    >>> sim = Simulator.at_rest(mass_kg=5000.0)
    >>> computer = FlightComputer(sim, FlyByWire())
    >>>
    >>> for _ in range(600):
    ...     telemetry = computer.tick(PilotInput(throttle=1.0))
"""

from flight.control import (
    AssistConfig,
    AssistLevel,
    FlightAssist,
    FlyByWire,
    FlyByWireConfig,
)
from flight.pilot import FlightComputer, PilotConfig, PilotInput
from flight.telemetry import Telemetry, TelemetryRecorder, TelemetrySink

__all__ = [
    # Controllers
    "AssistConfig",
    "AssistLevel",
    "FlightAssist",
    "FlyByWire",
    "FlyByWireConfig",
    # Pilot
    "FlightComputer",
    "PilotConfig",
    "PilotInput",
    # Telemetry
    "Telemetry",
    "TelemetryRecorder",
    "TelemetrySink",
]
