from core import ProtocolLayer, SimulationEngine, EventSink, Category
from core.event import IpPacket, IcmpMessage, ArpMessage
from core.config import mac_for_ip, ZERO_MAC
from mac.checksum import generate_checksum

ECHO_REQUEST = "echo request"
ECHO_REPLY = "echo reply"


class NetworkLayer(ProtocolLayer):
    """IPv4 / ICMP / ARP generator"""

    category = Category.NETWORK
    layer_name = "Network"

    def __init__(
        self,
        lower_layer: ProtocolLayer,
        simulator: SimulationEngine,
        sink: EventSink,
        name: str = "zero",
    ):
        super().__init__(lower_layer=lower_layer, name=name, simulator=simulator, sink=sink)

    def generate(self, src_ip: str, dst_ip: str, protocol: str = "IPv4"):
        packet = IpPacket(
            source_ip=src_ip,
            destination_ip=dst_ip,
            version=4 if protocol == "IPv4" else 6,
            checksum=generate_checksum(self.rng),
        )
        return self.emit(protocol=protocol, message_type="packet", payload=packet,
                         src=src_ip, dst=dst_ip)

    def generate_icmp(self, src_ip: str, dst_ip: str, type: str):
        message = IcmpMessage(
            type=type,
            source_ip=src_ip,
            destination_ip=dst_ip,
            sequence=int(self.rng.integers(0, 100)),
            identifier=int(self.rng.integers(0, 1000)),
            data="ping test data" if type == ECHO_REQUEST else "pong response",
        )
        return self.emit(protocol="ICMP", message_type=type, payload=message,
                         src=src_ip, dst=dst_ip)

    def generate_arp(self, sender_ip: str, target_ip: str, operation: str):
        """
        operation: 'request' (target MAC unknown) | 'reply'
        """
        message = ArpMessage(
            operation=operation,
            sender_mac=mac_for_ip(sender_ip),
            sender_ip=sender_ip,
            target_mac=ZERO_MAC if operation == "request" else mac_for_ip(target_ip),
            target_ip=target_ip,
        )
        return self.emit(protocol="ARP", message_type=operation, payload=message,
                         src=sender_ip, dst=target_ip)
