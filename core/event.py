"""
event model shared by every generator

Event = (category, protocol, message_type, payload, timestamp, layer, src, dst)

payload is one of the variants below; which variants a category accepts is
fixed in PAYLOAD_TYPES and checked when the Event is built.
"""

import json
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Optional, Union


class Category(Enum):
    TCP = "tcp"
    APP = "app"
    IOT = "iot"
    CONTROLLER = "controller"
    DEVICE = "device"
    PHYSICAL = "physical"
    DATA_LINK = "dataLink"
    NETWORK = "network"
    TRANSPORT = "transport"
    SESSION = "session"
    PRESENTATION = "presentation"


CAPACITIES = {
    Category.TCP: 100,
    Category.APP: 50,
    Category.IOT: 100,
    Category.CONTROLLER: 50,
    Category.DEVICE: 50,
    Category.PHYSICAL: 30,
    Category.DATA_LINK: 30,
    Category.NETWORK: 30,
    Category.TRANSPORT: 30,
    Category.SESSION: 30,
    Category.PRESENTATION: 30,
}


@dataclass(frozen=True)
class Endpoint:
    address: str
    port: int

    def __str__(self):
        return f"{self.address}:{self.port}"


def session_key(src: Endpoint, dst: Endpoint) -> str:
    return f"{src}-{dst}"


def serialized_length(obj: Any) -> int:
    """character length of the compact JSON text of obj"""
    return len(json.dumps(obj, separators=(",", ":"), ensure_ascii=False))


# ============================================================================
# payload variants
# ============================================================================

@dataclass(frozen=True)
class TcpSegment:
    src: str
    dst: str
    seq: int
    ack: int
    flags: tuple
    state: str
    data: Any = None
    window: int = 65535


@dataclass(frozen=True)
class TcpTransportView:
    source_ip: str
    destination_ip: str
    source_port: str
    destination_port: str
    seq: int
    ack: int
    flags: tuple
    payload: Any = None


@dataclass(frozen=True)
class UdpDatagram:
    source_port: int
    destination_port: int
    length: int
    checksum: str


@dataclass(frozen=True)
class PhysicalSignal:
    status: str
    voltage: str
    signal: str = "Electrical/Optical Signal"
    medium: str = "CAT6 Cable"
    bitrate: str = "1000 Mbps"


@dataclass(frozen=True)
class EthernetFrame:
    frame_type: str
    source_mac: str
    destination_mac: str
    checksum: str
    frame_size: str = "1518 bytes"
    vlan: str = "none"


@dataclass(frozen=True)
class IpPacket:
    source_ip: str
    destination_ip: str
    version: int
    checksum: str
    header_length: int = 20
    ttl: int = 64
    fragment_offset: int = 0


@dataclass(frozen=True)
class IcmpMessage:
    type: str
    source_ip: str
    destination_ip: str
    sequence: int
    identifier: int
    data: str
    code: int = 0


@dataclass(frozen=True)
class ArpMessage:
    operation: str
    sender_mac: str
    sender_ip: str
    target_mac: str
    target_ip: str
    hardware_type: str = "Ethernet"
    protocol_type: str = "IPv4"


@dataclass(frozen=True)
class SessionMessage:
    session_id: str
    action: str
    state: str
    keep_alive: bool


@dataclass(frozen=True)
class PresentationMessage:
    data_type: str
    encrypted: bool
    certificate: Optional[str]
    encoding: str = "UTF-8"
    compression: str = "gzip"


@dataclass(frozen=True)
class HttpRequest:
    method: str
    uri: str
    headers: dict
    body: Any


@dataclass(frozen=True)
class HttpResponse:
    status: str
    headers: dict
    body: Any


@dataclass(frozen=True)
class DhcpMessage:
    message_type: str
    fields: dict


@dataclass(frozen=True)
class IotMessage:
    data: Any


@dataclass(frozen=True)
class ControllerMessage:
    sender: str
    receiver: str
    type: str
    action: str
    data: Any


@dataclass(frozen=True)
class DeviceMessage:
    device_id: str
    device_type: str
    event: str
    data: Any


Payload = Union[
    TcpSegment, TcpTransportView, UdpDatagram, PhysicalSignal, EthernetFrame,
    IpPacket, IcmpMessage, ArpMessage, SessionMessage, PresentationMessage,
    HttpRequest, HttpResponse, DhcpMessage, IotMessage, ControllerMessage,
    DeviceMessage,
]

PAYLOAD_TYPES = {
    Category.TCP: (TcpSegment,),
    Category.APP: (HttpRequest, HttpResponse, DhcpMessage),
    Category.IOT: (IotMessage,),
    Category.CONTROLLER: (ControllerMessage,),
    Category.DEVICE: (DeviceMessage,),
    Category.PHYSICAL: (PhysicalSignal,),
    Category.DATA_LINK: (EthernetFrame,),
    Category.NETWORK: (IpPacket, IcmpMessage, ArpMessage),
    Category.TRANSPORT: (TcpTransportView, UdpDatagram),
    Category.SESSION: (SessionMessage,),
    Category.PRESENTATION: (PresentationMessage,),
}

# categories whose events must name both parties
ADDRESSED = (Category.TCP, Category.IOT)


@dataclass(frozen=True)
class Event:
    category: Category
    protocol: str
    message_type: str
    payload: Payload
    timestamp: float = 0
    layer: Optional[str] = None
    src: Optional[Union[Endpoint, str, int]] = None
    dst: Optional[Union[Endpoint, str, int]] = None

    def __post_init__(self):
        if not isinstance(self.category, Category):
            raise ValueError(f"unknown event category {self.category!r}")
        if not self.protocol:
            raise ValueError("event protocol must not be empty")
        if not self.message_type:
            raise ValueError("event message_type must not be empty")
        allowed = PAYLOAD_TYPES[self.category]
        if not isinstance(self.payload, allowed):
            raise ValueError(
                f"{type(self.payload).__name__} payload is not valid for "
                f"category {self.category.value}"
            )
        if self.category in ADDRESSED and (self.src is None or self.dst is None):
            raise ValueError(f"{self.category.value} events need both src and dst")

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "layer": self.layer,
            "protocol": self.protocol,
            "src": _party(self.src),
            "dst": _party(self.dst),
            "messageType": self.message_type,
            "payload": asdict(self.payload),
            "timestamp": self.timestamp,
        }

    def serialized_size(self) -> int:
        return serialized_length(self.to_dict())


def _party(party):
    if isinstance(party, Endpoint):
        return str(party)
    return party
