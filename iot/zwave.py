from core import Task
from core.config import zwave_node_id, ZWAVE_CONTROLLER_NODE_ID
from iot.base import IotSimulator
from iot.stats import ZwaveStats

HOME_ID = "0x3E8"
SECURITY = "S2"
RSSI_FLOOR = -65
RSSI_SPAN = 20


class ZwaveSimulator(IotSimulator):
    """controller (node 1) -> room node command, acknowledged after a short delay"""

    protocol = "Z-Wave"
    stats_type = ZwaveStats

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.known_nodes: set[int] = set()

    def simulate(self, room_id: str, command_class: str, command: str, data=None) -> Task:
        node = zwave_node_id(room_id)
        controller = ZWAVE_CONTROLLER_NODE_ID
        task = self.simulator.task(f"zwave:{room_id}:{command_class}")

        self.send(controller, node, "Command", {
            "commandClass": command_class,
            "command": command,
            "payload": data,
            "homeId": HOME_ID,
            "security": SECURITY,
        })
        if node not in self.known_nodes:
            self.known_nodes.add(node)
            self.stats.devices += 1
        # direct route, no repeaters
        self.stats.hops += 1

        task.schedule(self.config.zwave_ack_delay, lambda: self._ack(node, controller))
        return task

    def _ack(self, node: int, controller: int):
        self.send(node, controller, "ACK", {
            "status": "success",
            "rssi": float(RSSI_FLOOR + self.rng.random() * RSSI_SPAN),
        })
        self.stats.messages += 1

    def reset(self):
        super().reset()
        self.known_nodes.clear()
