"""
MQTT: CONNECT -> CONNACK -> PUBLISH [-> PUBACK | PUBREC]
"""

import logging

from core import Endpoint, Task
from core.config import MQTT_PORT, MQTT_TOPICS, DEFAULT_MQTT_TOPIC
from iot.base import IotSimulator
from iot.stats import MqttStats

logger = logging.getLogger(__name__)

QOS_LEVELS = 3
MAX_MESSAGE_ID = 65535


class MqttSimulator(IotSimulator):
    protocol = "MQTT"
    stats_type = MqttStats

    def broker(self) -> Endpoint:
        return Endpoint(self.network.server_ip, MQTT_PORT)

    def simulate(self, room_id: str, topic_kind: str, data=None) -> Task:
        """
        connect to the broker and publish `data` under the topic of
        `topic_kind` (sensors / actuators / status / telemetry)
        """
        room = self.network.room(room_id)
        client = Endpoint(room.ip, self.client_port())
        broker = self.broker()
        task = self.simulator.task(f"mqtt:{room_id}:{topic_kind}")

        self.send(client, broker, "CONNECT", {
            "clientId": f"{room.name}_client",
            "cleanSession": True,
        })
        task.schedule(self.config.mqtt_connack_delay,
                      lambda: self._publish(task, client, broker, topic_kind, data))
        return task

    def _publish(self, task: Task, client: Endpoint, broker: Endpoint, topic_kind: str, data):
        self.send(broker, client, "CONNACK", {"returnCode": 0, "sessionPresent": False})

        topic = MQTT_TOPICS.get(topic_kind)
        if topic is None:
            logger.warning(f"unknown MQTT topic kind {topic_kind!r}, using {DEFAULT_MQTT_TOPIC}")
            self.stats.errors += 1
            topic = DEFAULT_MQTT_TOPIC

        qos = int(self.rng.integers(0, QOS_LEVELS))
        self.send(client, broker, "PUBLISH", {
            "topic": topic,
            "qos": qos,
            "retain": False,
            "payload": data,
        })
        self.stats.messages += 1
        self.stats.topics[topic] = self.stats.topics.get(topic, 0) + 1

        if topic_kind == "status" and isinstance(data, dict) and data.get("event") == "subscribe":
            self.stats.subscriptions.add(data.get("topic", topic))

        if qos > 0:
            message_type = "PUBACK" if qos == 1 else "PUBREC"
            task.schedule(self.config.mqtt_qos_ack_delay,
                          lambda: self.send(broker, client, message_type, {
                              "messageId": int(self.rng.integers(0, MAX_MESSAGE_ID)),
                          }))
