from core import Event
from core.config import zigbee_address, zigbee_cluster, ZIGBEE_COORDINATOR
from iot.base import IotSimulator
from iot.stats import ZigbeeStats

HOME_AUTOMATION_PROFILE = "0x0104"
CAPABILITIES = ("Router", "Mains-powered")


class ZigbeeSimulator(IotSimulator):
    """single-shot ZigBee frames; `join` announces the device first"""

    protocol = "ZigBee"
    stats_type = ZigbeeStats

    def simulate(self, room_id: str, message_type: str, data=None) -> Event:
        address = zigbee_address(room_id)

        if message_type == "join":
            self.send(address, "broadcast", "Device Announce", {
                "shortAddress": address,
                "macAddress": self.network.room(room_id).mac,
                "capabilities": list(CAPABILITIES),
            })
            self.stats.devices += 1

        event = self.send(address, ZIGBEE_COORDINATOR, message_type, {
            "clusterId": zigbee_cluster(message_type),
            "profileId": HOME_AUTOMATION_PROFILE,
            "payload": data,
        })
        self.stats.messages += 1
        return event
