"""
Core module for the home network simulation.

Includes the simulation engine, the event model, the event sink and the
protocol layer base.
"""

from core.simulator import SimulationEngine, SimulationEntity, Task, Timer
from core.event import Category, Endpoint, Event, session_key, serialized_length
from core.EventSink import EventSink
from core.ProtocolStack import ProtocolLayer
from core.config import SimConfig, NetworkConfig

__all__ = [
    "SimulationEngine",
    "SimulationEntity",
    "Task",
    "Timer",
    "Category",
    "Endpoint",
    "Event",
    "session_key",
    "serialized_length",
    "EventSink",
    "ProtocolLayer",
    "SimConfig",
    "NetworkConfig",
]
