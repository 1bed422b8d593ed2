"""
IoT protocol bundle

one simulator per protocol sharing the engine, the sink and the room table,
plus the periodic telemetry / observe task
"""

from typing import Callable, Optional

from core import SimulationEngine, SimulationEntity, EventSink, Task
from core.config import NetworkConfig, SimConfig
from iot.mqtt import MqttSimulator
from iot.coap import CoapSimulator
from iot.zigbee import ZigbeeSimulator
from iot.zwave import ZwaveSimulator

HUMIDITY_FLOOR = 40
HUMIDITY_SPAN = 20


class IoTProtocols(SimulationEntity):
    def __init__(
        self,
        simulator: SimulationEngine,
        sink: EventSink,
        network: Optional[NetworkConfig] = None,
        config: Optional[SimConfig] = None,
        temperature_of: Optional[Callable[[str], float]] = None,
        name: str = "iot",
    ):
        """
        Args:
            temperature_of: room_id -> current temperature reported in
                            telemetry; defaults to the room's nominal temp
        """
        super().__init__(name=name)
        self.simulator = simulator
        self.sink = sink
        self.network = network or NetworkConfig()
        self.config = config or SimConfig()
        self.temperature_of = temperature_of or (lambda room_id: self.network.room(room_id).temp)

        kwargs = dict(simulator=simulator, sink=sink, network=self.network, config=self.config)
        self.mqtt = MqttSimulator(name=f"{name}.mqtt", **kwargs)
        self.coap = CoapSimulator(name=f"{name}.coap", **kwargs)
        self.zigbee = ZigbeeSimulator(name=f"{name}.zigbee", **kwargs)
        self.zwave = ZwaveSimulator(name=f"{name}.zwave", **kwargs)
        self.periodic: Optional[Task] = None
        simulator.register_entity(self)

    @property
    def simulators(self):
        return (self.mqtt, self.coap, self.zigbee, self.zwave)

    def setmode(self, mode: str):
        super().setmode(mode)
        for sim in self.simulators:
            sim.setmode(mode)

    # trigger calls

    def simulate_mqtt(self, room_id: str, topic_kind: str, data=None) -> Task:
        return self.mqtt.simulate(room_id, topic_kind, data)

    def simulate_coap(self, room_id: str, method: str, resource: str, payload=None) -> Task:
        return self.coap.simulate(room_id, method, resource, payload)

    def simulate_zigbee(self, room_id: str, message_type: str, data=None):
        return self.zigbee.simulate(room_id, message_type, data)

    def simulate_zwave(self, room_id: str, command_class: str, command: str, data=None) -> Task:
        return self.zwave.simulate(room_id, command_class, command, data)

    def stats(self) -> dict:
        return {
            "mqtt": self.mqtt.stats.snapshot(),
            "coap": self.coap.stats.snapshot(),
            "zigbee": self.zigbee.stats.snapshot(),
            "zwave": self.zwave.stats.snapshot(),
        }

    # periodic operation

    def start_periodic_updates(self) -> Task:
        """telemetry every telemetry_interval, observe every observe_interval; restarts if running"""
        self.stop_periodic_updates()
        task = self.simulator.task("iot-periodic")
        task.every(self.config.telemetry_interval, self._publish_telemetry)
        task.every(self.config.observe_interval, self._observe_rooms)
        self.periodic = task
        self.debug_log("periodic updates started")
        return task

    def stop_periodic_updates(self):
        if self.periodic is not None:
            self.periodic.cancel()
            self.periodic = None
            self.debug_log("periodic updates stopped")

    @property
    def periodic_running(self) -> bool:
        return self.periodic is not None and not self.periodic.cancelled

    def _publish_telemetry(self):
        for room_id in self.network.room_ids():
            self.periodic.adopt(self.mqtt.simulate(room_id, "telemetry", {
                "temperature": self.temperature_of(room_id),
                "humidity": float(HUMIDITY_FLOOR + self.simulator.rng.random() * HUMIDITY_SPAN),
                "timestamp": self.simulator.timestamp(),
            }))

    def _observe_rooms(self):
        for room_id in self.network.room_ids():
            self.periodic.adopt(self.coap.simulate(room_id, "OBSERVE", f"/rooms/{room_id}/status"))

    def reset(self):
        super().reset()
        self.stop_periodic_updates()
