from typing import Optional

from core import ProtocolLayer, SimulationEngine, EventSink, Category, Event
from core.config import NetworkConfig, SimConfig
from core.event import IotMessage
from iot.stats import ProtocolStats

EPHEMERAL_PORT_BASE = 49152
EPHEMERAL_PORT_SPAN = 1000


class IotSimulator(ProtocolLayer):
    """
    base of the four IoT protocol simulators

    subclasses set `protocol` and `stats_type`; every message they produce
    is an iot-category Event with an IotMessage payload
    """

    category = Category.IOT
    layer_name = "Application"
    protocol: str = ""
    stats_type: type = ProtocolStats

    def __init__(
        self,
        simulator: SimulationEngine,
        sink: EventSink,
        network: Optional[NetworkConfig] = None,
        config: Optional[SimConfig] = None,
        name: str = "iot",
    ):
        super().__init__(lower_layer=None, simulator=simulator, sink=sink, name=name)
        self.network = network or NetworkConfig()
        self.config = config or SimConfig()
        self.stats = self.stats_type()

    def send(self, src, dst, message_type: str, data) -> Event:
        return self.emit(protocol=self.protocol, message_type=message_type,
                         payload=IotMessage(data=data), src=src, dst=dst)

    def client_port(self) -> int:
        return EPHEMERAL_PORT_BASE + int(self.rng.integers(0, EPHEMERAL_PORT_SPAN))

    def reset(self):
        super().reset()
        self.stats.reset()
