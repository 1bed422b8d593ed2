"""
CoAP: confirmable request, ACK piggy-backed response
"""

import logging

from core import Endpoint, Task
from core.config import COAP_PORT
from iot.base import IotSimulator
from iot.stats import CoapStats

logger = logging.getLogger(__name__)

METHODS = ("GET", "POST", "PUT", "DELETE", "OBSERVE")
OPTIONS = (
    {"number": 11, "value": "device"},   # Uri-Path
    {"number": 12, "value": "60"},       # Content-Format
)
MAX_MESSAGE_ID = 65535
MAX_TOKEN = 16777215


class CoapSimulator(IotSimulator):
    protocol = "CoAP"
    stats_type = CoapStats

    def simulate(self, room_id: str, method: str, resource: str, payload=None) -> Task:
        room = self.network.room(room_id)
        client = Endpoint(room.ip, self.client_port())
        server = Endpoint(self.network.server_ip, COAP_PORT)
        message_id = int(self.rng.integers(0, MAX_MESSAGE_ID))
        token = int(self.rng.integers(0, MAX_TOKEN))
        task = self.simulator.task(f"coap:{room_id}:{method} {resource}")

        if method not in METHODS:
            logger.warning(f"unknown CoAP method {method!r} sent to {resource}")
            self.stats.errors += 1
        if method == "OBSERVE":
            self.stats.observes += 1

        self.send(client, server, "CON", {
            "method": method,
            "path": resource,
            "messageId": message_id,
            "token": token,
            "payload": payload,
            "options": [dict(o) for o in OPTIONS],
        })
        self.stats.requests += 1

        task.schedule(self.config.coap_response_delay,
                      lambda: self._respond(server, client, method, message_id, token))
        return task

    def _respond(self, server: Endpoint, client: Endpoint, method: str, message_id: int, token: int):
        if method == "GET":
            code, body = "2.05", {"value": float(self.rng.random() * 100)}
        else:
            code, body = "2.01", None
        self.send(server, client, "ACK", {
            "code": code,
            "messageId": message_id,
            "token": token,
            "payload": body,
        })
        self.stats.responses += 1
