from core import ProtocolLayer, SimulationEngine, EventSink, Category
from core.event import EthernetFrame
from mac.checksum import generate_checksum


class MacLayer(ProtocolLayer):
    category = Category.DATA_LINK
    layer_name = "Data Link"

    def __init__(
        self,
        lower_layer,
        simulator: SimulationEngine,
        sink: EventSink,
        name: str = 'zero'
    ):
        super().__init__(lower_layer=lower_layer, name=name, simulator=simulator, sink=sink)

    def generate(self, src_mac: str, dst_mac: str, frame_type: str):
        """
        frame_type: 'data' | 'broadcast' | 'unicast'
        """
        frame = EthernetFrame(
            frame_type=frame_type,
            source_mac=src_mac,
            destination_mac=dst_mac,
            checksum=generate_checksum(self.rng),
        )
        return self.emit(
            protocol="Ethernet",
            message_type=frame_type,
            payload=frame,
            src=src_mac,
            dst=dst_mac,
        )
