"""Flight controllers for piloted spacecraft.

Controllers take ownership of a rigid body and decide how pilot commands
become forces, impulses or direct velocity writes.

Available controllers:
    FlyByWire: Decoupled pilot view with automatic Newtonian maneuvering
    FlightAssist: Four-level graduated assist over raw thrust and torque
"""

from flight.control.assist import (
    AssistConfig,
    AssistLevel,
    FlightAssist,
)
from flight.control.fly_by_wire import (
    FlyByWire,
    FlyByWireConfig,
)

__all__ = [
    "AssistConfig",
    "AssistLevel",
    "FlightAssist",
    "FlyByWire",
    "FlyByWireConfig",
]
