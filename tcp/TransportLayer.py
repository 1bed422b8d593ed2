from typing import Optional
from core import ProtocolLayer, SimulationEngine, EventSink, Category, Event
from core.event import UdpDatagram
from mac.checksum import generate_checksum

UDP_HEADER_SIZE = 8
MAX_UDP_PAYLOAD = 500


class TransportLayer(ProtocolLayer):
    """
    UDP datagram generator

    TCP segments are produced by the TCP session state machine; the sink
    mirrors them into this layer's log
    """

    category = Category.TRANSPORT
    layer_name = "Transport"

    def __init__(
        self,
        lower_layer: ProtocolLayer,
        simulator: SimulationEngine,
        sink: EventSink,
        name: str = "transport_layer",
    ):
        super().__init__(lower_layer=lower_layer, simulator=simulator, sink=sink, name=name)

    def generate(self, protocol: str, src_port: int, dst_port: int) -> Optional[Event]:
        if protocol == "UDP":
            return self.generate_udp(src_port, dst_port)
        # TCP: handled by TcpSimulator
        self.debug_log(f"ignoring {protocol} request {src_port}->{dst_port}")
        return None

    def generate_udp(self, src_port: int, dst_port: int) -> Event:
        datagram = UdpDatagram(
            source_port=src_port,
            destination_port=dst_port,
            length=int(self.rng.integers(0, MAX_UDP_PAYLOAD)) + UDP_HEADER_SIZE,
            checksum=generate_checksum(self.rng),
        )
        return self.emit(protocol="UDP", message_type="datagram", payload=datagram,
                         src=src_port, dst=dst_port)
