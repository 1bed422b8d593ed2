"""
static network / room lookup data and simulation timing parameters

time unit: 1 simulated unit == 1 ms
"""

from dataclasses import dataclass, field, fields
from typing import Optional

# 服务器与设备地址
SERVER_IP = "192.168.1.1"
SERVER_PORT = 8080
ROOM_PORT = 5000
QUICK_MESSAGE_PORT = 1234

MQTT_PORT = 1883
COAP_PORT = 5683
DHCP_SERVER_PORT = 67
DHCP_CLIENT_PORT = 68

TCP_WINDOW = 65535

BROADCAST_MAC = "FF:FF:FF:FF:FF:FF"
ZERO_MAC = "00:00:00:00:00:00"
DEFAULT_MAC = BROADCAST_MAC
DEFAULT_ROOM_IP = "0.0.0.0"

IP_TO_MAC = {
    "192.168.1.1": "00:1B:44:11:3A:B7",
    "192.168.1.101": "00:1B:44:11:3A:B8",
    "192.168.1.102": "00:1B:44:11:3A:B9",
    "192.168.1.103": "00:1B:44:11:3A:BA",
    "192.168.1.104": "00:1B:44:11:3A:BB",
}

ZIGBEE_ADDRESSES = {
    "living-room": "0x7865",
    "kitchen": "0x7866",
    "bedroom": "0x7867",
    "bathroom": "0x7868",
}
DEFAULT_ZIGBEE_ADDRESS = "0x7869"
ZIGBEE_COORDINATOR = "0x0000"

ZWAVE_NODE_IDS = {
    "living-room": 2,
    "kitchen": 3,
    "bedroom": 4,
    "bathroom": 5,
}
DEFAULT_ZWAVE_NODE_ID = 6
ZWAVE_CONTROLLER_NODE_ID = 1

ZIGBEE_CLUSTERS = {
    "temperature": "0x0402",
    "occupancy": "0x0406",
    "light": "0x0006",
    "power": "0x0702",
}
DEFAULT_ZIGBEE_CLUSTER = "0x0000"

MQTT_TOPICS = {
    "sensors": "/home/sensors",
    "actuators": "/home/actuators",
    "status": "/home/status",
    "telemetry": "/home/telemetry",
}
DEFAULT_MQTT_TOPIC = "/home/status"

# hour -> rooms occupied from that hour on
PEOPLE_MOVEMENTS = {
    6: ("bedroom", "bathroom"),
    7: ("kitchen",),
    8: ("living-room",),
    12: ("kitchen",),
    18: ("kitchen", "living-room"),
    22: ("bedroom",),
}


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    ip: str
    temp: float = 22

    @property
    def mac(self) -> str:
        return mac_for_ip(self.ip)


ROOMS: dict[str, Room] = {
    "living-room": Room("living-room", "Living Room", "192.168.1.101"),
    "kitchen": Room("kitchen", "Kitchen", "192.168.1.102"),
    "bedroom": Room("bedroom", "Bedroom", "192.168.1.103"),
    "bathroom": Room("bathroom", "Bathroom", "192.168.1.104"),
}


def mac_for_ip(ip: str) -> str:
    return IP_TO_MAC.get(ip, DEFAULT_MAC)


def zigbee_address(room_id: str) -> str:
    return ZIGBEE_ADDRESSES.get(room_id, DEFAULT_ZIGBEE_ADDRESS)


def zwave_node_id(room_id: str) -> int:
    return ZWAVE_NODE_IDS.get(room_id, DEFAULT_ZWAVE_NODE_ID)


def zigbee_cluster(message_type: str) -> str:
    return ZIGBEE_CLUSTERS.get(message_type, DEFAULT_ZIGBEE_CLUSTER)


@dataclass
class SimConfig:
    """
    timing parameters of every multi-step exchange (all in ms)
    """
    # tcp: offsets from connection start
    handshake_start: float = 500
    data_transfer_start: float = 2000
    teardown_start: float = 3500
    step_delay: float = 500          # SYN->SYN+ACK->ACK, FIN->FIN->ACK, request->response
    # iot
    mqtt_connack_delay: float = 500
    mqtt_qos_ack_delay: float = 200
    coap_response_delay: float = 300
    zwave_ack_delay: float = 100
    telemetry_interval: float = 30_000
    observe_interval: float = 60_000
    # osi composer
    arp_reply_delay: float = 100
    ip_delay: float = 200
    session_delay: float = 300
    presentation_delay: float = 400
    ping_reply_delay: float = 100
    dhcp_step: float = 500
    # home
    ping_after_init: float = 2000
    auto_advance_interval: float = 5000
    capacities: Optional[dict] = field(default=None)

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (int, float)) and value < 0:
                raise ValueError(f"SimConfig.{f.name} must be >= 0, got {value}")
        if self.handshake_start + 2 * self.step_delay > self.data_transfer_start:
            raise ValueError("handshake must complete before data transfer starts")
        if self.data_transfer_start + self.step_delay > self.teardown_start:
            raise ValueError("data transfer must complete before teardown starts")
        if self.capacities is not None:
            for key, value in self.capacities.items():
                if value <= 0:
                    raise ValueError(f"capacity for {key} must be positive, got {value}")


class NetworkConfig:
    """room/address tables handed to the simulators"""

    def __init__(self, rooms: Optional[dict[str, Room]] = None):
        self.rooms: dict[str, Room] = dict(ROOMS if rooms is None else rooms)
        self.server_ip = SERVER_IP
        self.server_port = SERVER_PORT

    def room(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            return Room(room_id=room_id, name=room_id, ip=DEFAULT_ROOM_IP)
        return room

    def room_ids(self) -> list[str]:
        return list(self.rooms.keys())
