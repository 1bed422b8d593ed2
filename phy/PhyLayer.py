from core import ProtocolLayer, SimulationEngine, EventSink, Category
from core.event import PhysicalSignal

VOLTAGE_TRANSMIT = "+2.5V to -2.5V"
VOLTAGE_IDLE = "0V"


class PhyLayer(ProtocolLayer):
    category = Category.PHYSICAL
    layer_name = "Physical"

    def __init__(
        self,
        lower_layer: ProtocolLayer,
        simulator: SimulationEngine,
        sink: EventSink,
        name: str = "zero",
    ):
        super().__init__(lower_layer=lower_layer, name=name, simulator=simulator, sink=sink)

    def generate(self, status: str = "transmit"):
        """
        line signal event; only 'transmit' drives the line
        """
        payload = PhysicalSignal(
            status=status,
            voltage=VOLTAGE_TRANSMIT if status == "transmit" else VOLTAGE_IDLE,
        )
        return self.emit(protocol="Ethernet", message_type=status, payload=payload)
