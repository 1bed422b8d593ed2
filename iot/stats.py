"""
per-protocol counters
"""

from dataclasses import MISSING, dataclass, field, fields, asdict


class ProtocolStats:
    """snapshot / reset shared by the counter records below"""

    def snapshot(self) -> dict:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, set):
                data[key] = sorted(value)
        return data

    def reset(self):
        for f in fields(self):
            if f.default_factory is not MISSING:
                setattr(self, f.name, f.default_factory())
            else:
                setattr(self, f.name, f.default)


@dataclass
class MqttStats(ProtocolStats):
    messages: int = 0
    errors: int = 0
    topics: dict = field(default_factory=dict)
    subscriptions: set = field(default_factory=set)


@dataclass
class CoapStats(ProtocolStats):
    requests: int = 0
    responses: int = 0
    observes: int = 0
    errors: int = 0


@dataclass
class ZigbeeStats(ProtocolStats):
    devices: int = 0
    messages: int = 0
    routes: int = 0
    errors: int = 0


@dataclass
class ZwaveStats(ProtocolStats):
    devices: int = 0
    messages: int = 0
    hops: int = 0
    errors: int = 0
