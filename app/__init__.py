"""
upper layers, full-stack composer, room controllers and the home automation system
"""

from app.SessionLayer import SessionLayer
from app.PresentationLayer import PresentationLayer
from app.ApplicationLayer import ApplicationLayer
from app.FullStack import FullStackComposer
from app.room import RoomController, ControllerChannel, room_climate
from app.home import HomeAutomationSystem

__all__ = [
    "SessionLayer",
    "PresentationLayer",
    "ApplicationLayer",
    "FullStackComposer",
    "RoomController",
    "ControllerChannel",
    "room_climate",
    "HomeAutomationSystem",
]
