"""
bounded per-category event log + running counters

every category has its own ring buffer (newest first); a full buffer evicts
the oldest event of that category only
"""

import itertools
from collections import deque
from typing import Optional, Union

import numpy as np

from core.simulator import SimulationEntity
from core.event import Category, Event, TcpSegment, TcpTransportView, CAPACITIES

TRAFFIC_HISTORY_SIZE = 1000

# view -> categories it shows
VIEWS = {
    "packets": tuple(c for c in Category if c not in (Category.CONTROLLER, Category.DEVICE)),
    "controller-msgs": (Category.CONTROLLER,),
    "device-msgs": (Category.DEVICE,),
}
ALL = "all"


class EventSink(SimulationEntity):
    def __init__(self, capacities: Optional[dict] = None, name: str = "event_sink"):
        super().__init__(name=name)
        self.capacities: dict[Category, int] = dict(CAPACITIES)
        if capacities:
            for key, value in capacities.items():
                self.capacities[Category(key) if not isinstance(key, Category) else key] = value
        self.logs: dict[Category, deque] = {
            c: deque(maxlen=self.capacities[c]) for c in Category
        }
        self.order = itertools.count()
        self.total_events = 0
        self.byte_volume = 0
        self.active_connections: set[str] = set()
        self.traffic_history: deque = deque(maxlen=TRAFFIC_HISTORY_SIZE)
        self.filters: dict[str, str] = {view: ALL for view in VIEWS}

    def record(self, event: Event):
        """
        append event at the head of its category log
        """
        category = event.category
        # deque(maxlen) drops the tail (oldest of this category)
        self.logs[category].appendleft((next(self.order), event))
        self.total_events += 1
        self.byte_volume += event.serialized_size()

        if category == Category.TCP:
            self.record(self._transport_view(event))

    def _transport_view(self, event: Event) -> Event:
        segment: TcpSegment = event.payload
        source_ip, _, source_port = segment.src.partition(":")
        destination_ip, _, destination_port = segment.dst.partition(":")
        view = TcpTransportView(
            source_ip=source_ip,
            destination_ip=destination_ip,
            source_port=source_port or "0",
            destination_port=destination_port or "0",
            seq=segment.seq,
            ack=segment.ack,
            flags=segment.flags,
            payload=segment.data,
        )
        return Event(
            category=Category.TRANSPORT,
            layer="Transport",
            protocol="TCP",
            message_type=event.message_type,
            payload=view,
            timestamp=event.timestamp,
            src=event.src,
            dst=event.dst,
        )

    # ------------------------------------------------------------------
    # connections / traffic
    # ------------------------------------------------------------------

    def open_connection(self, key: str):
        self.active_connections.add(key)
        self.debug_log(f"connection established {key}")

    def close_connection(self, key: str):
        self.active_connections.discard(key)
        self.debug_log(f"connection closed {key}")

    def record_traffic(self, nbytes: int, timestamp: float):
        self.traffic_history.append((timestamp, nbytes))

    def traffic_rate(self, window: float, now: float) -> int:
        """bytes recorded in (now - window, now]"""
        if not self.traffic_history:
            return 0
        history = np.array(self.traffic_history, dtype=float)
        mask = history[:, 0] > now - window
        return int(history[mask, 1].sum())

    # ------------------------------------------------------------------
    # read interface
    # ------------------------------------------------------------------

    def recent_events(self, category: Union[Category, str]) -> list[Event]:
        """newest first"""
        return [event for _, event in self.logs[Category(category)]]

    def capacity(self, category: Union[Category, str]) -> int:
        """retention bound of one category log, overrides included"""
        return self.capacities[Category(category)]

    def count(self, category: Union[Category, str]) -> int:
        return len(self.logs[Category(category)])

    def stats(self) -> dict:
        return {
            "total_events": self.total_events,
            "active_connections": len(self.active_connections),
            "byte_volume": self.byte_volume,
        }

    def set_filter(self, view: str, category: Union[Category, str]):
        """display-only: never touches retention"""
        if isinstance(category, Category):
            category = category.value
        if category != ALL:
            Category(category)
        self.filters[view] = category

    def visible_events(self, view: str = "packets") -> list[Event]:
        """events a view shows under its current filter, newest first"""
        selected = self.filters.get(view, ALL)
        categories = VIEWS.get(view, tuple(Category))
        if selected != ALL:
            categories = [c for c in categories if c.value == selected]
        merged = [item for c in categories for item in self.logs[c]]
        merged.sort(key=lambda item: item[0], reverse=True)
        return [event for _, event in merged]

    def clear(self):
        for log in self.logs.values():
            log.clear()
        self.order = itertools.count()
        self.total_events = 0
        self.byte_volume = 0
        self.active_connections.clear()
        self.traffic_history.clear()
        self.filters = {view: ALL for view in VIEWS}

    def reset(self):
        super().reset()
        self.clear()
