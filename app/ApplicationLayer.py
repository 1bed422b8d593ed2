from core import ProtocolLayer, SimulationEngine, EventSink, Category
from core.event import DhcpMessage


class ApplicationLayer(ProtocolLayer):
    """application-layer records that do not ride on the TCP simulator (DHCP)"""

    category = Category.APP
    layer_name = "Application"

    def __init__(self, lower_layer: ProtocolLayer, simulator: SimulationEngine,
                 sink: EventSink, name: str = "zero"):
        super().__init__(lower_layer=lower_layer, name=name, simulator=simulator, sink=sink)

    def generate_dhcp(self, message_type: str, **fields):
        return self.emit(
            protocol="DHCP",
            message_type=message_type,
            payload=DhcpMessage(message_type=message_type, fields=fields),
        )
