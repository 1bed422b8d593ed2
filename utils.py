"""
utils.py

helpers shared by the tests and the demos
"""

from typing import Iterable, Optional

from core import Category, Event


def format_bytes(nbytes: float) -> str:
    """human readable byte count: B / KB / MB"""
    if nbytes < 1024:
        return f"{int(nbytes)} B"
    if nbytes < 1024 * 1024:
        return f"{nbytes / 1024:.2f} KB"
    return f"{nbytes / (1024 * 1024):.2f} MB"


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def message_types(events: Iterable[Event], protocol: Optional[str] = None) -> list[str]:
    """message types in log order, optionally restricted to one protocol"""
    return [e.message_type for e in events if protocol is None or e.protocol == protocol]


def chronological(sink, category) -> list[Event]:
    """oldest first view of one category log"""
    return list(reversed(sink.recent_events(Category(category))))


def describe(event: Event) -> str:
    """one line summary used by the demos"""
    route = ""
    if event.src is not None or event.dst is not None:
        route = f" {event.src} -> {event.dst}"
    return f"[{event.timestamp:>8g}] {event.category.value:<12} {event.protocol:<8} {event.message_type}{route}"
