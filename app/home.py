"""
home automation system

wires the engine, the event sink, the OSI stack, the TCP simulator, the IoT
protocols and one controller per room, and exposes the trigger calls a
front-end drives
"""

import logging
from functools import partial
from typing import Callable, Optional

import numpy as np

from core import SimulationEngine, SimulationEntity, EventSink, Task
from core.config import SimConfig, NetworkConfig, PEOPLE_MOVEMENTS
from tcp import TcpSimulator
from iot import IoTProtocols
from app.FullStack import FullStackComposer
from app.room import RoomController, ControllerChannel, room_climate

logger = logging.getLogger(__name__)

START_HOUR = 12
MAX_PEOPLE_PER_ROOM = 3


class HomeAutomationSystem(SimulationEntity):
    def __init__(
        self,
        config: Optional[SimConfig] = None,
        network: Optional[NetworkConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        command_policy: Optional[Callable[[str, int], list]] = None,
        command_consumer: Optional[Callable[[str, list], None]] = None,
        name: str = "home",
    ):
        """
        Args:
            command_policy: (room_id, occupancy) -> commands the server answers with
            command_consumer: (room_id, commands) receiver; defaults to the
                              room's RoomController
        """
        super().__init__(name=name)
        self.config = config or SimConfig()
        self.network = network or NetworkConfig()
        self.simulator = SimulationEngine(seed=seed, rng=rng)
        self.sink = EventSink(capacities=self.config.capacities)
        self.simulator.register_entity(self.sink)

        self.stack = FullStackComposer(self.simulator, self.sink, self.config)
        self.server = ControllerChannel(self.simulator, self.sink, name="server")
        self.iot = IoTProtocols(self.simulator, self.sink, network=self.network,
                                config=self.config, temperature_of=self.room_temperature)
        self.controllers: dict[str, RoomController] = {
            room_id: RoomController(self.network.room(room_id), self.simulator, self.sink, self.iot)
            for room_id in self.network.room_ids()
        }
        self.tcp = TcpSimulator(
            lower_layer=None,
            simulator=self.simulator,
            sink=self.sink,
            network=self.network,
            config=self.config,
            composer=self.stack,
            command_policy=command_policy,
            command_consumer=command_consumer or self.deliver_commands,
        )

        self.hour = START_HOUR
        self.occupancy = {room_id: 0 for room_id in self.network.room_ids()}
        self.previous_occupancy = dict(self.occupancy)
        self.auto_advance: Optional[Task] = None
        self._resetting = False
        self.simulator.register_entity(self)

    def setmode(self, mode: str):
        super().setmode(mode)
        for entity in self.simulator.entities:
            if entity is not self:
                entity.setmode(mode)

    # ------------------------------------------------------------------
    # clock
    # ------------------------------------------------------------------

    @property
    def now(self) -> float:
        return self.simulator.now

    def run(self, duration: float):
        self.simulator.run(duration)

    def run_until_idle(self, limit: Optional[float] = None):
        self.simulator.run_until_idle(limit)

    # ------------------------------------------------------------------
    # trigger calls
    # ------------------------------------------------------------------

    def simulate_full_connection(self, room_id: str, occupancy: int):
        return self.tcp.simulate_full_connection(room_id, occupancy)

    def simulate_termination(self, room_id: str) -> bool:
        return self.tcp.simulate_termination(room_id)

    def send_quick_message(self, frm: str, to: str, command):
        return self.tcp.send_quick_message(frm, to, command)

    def simulate_mqtt(self, room_id: str, topic_kind: str, data=None) -> Task:
        return self.iot.simulate_mqtt(room_id, topic_kind, data)

    def simulate_coap(self, room_id: str, method: str, resource: str, payload=None) -> Task:
        return self.iot.simulate_coap(room_id, method, resource, payload)

    def simulate_zigbee(self, room_id: str, message_type: str, data=None):
        return self.iot.simulate_zigbee(room_id, message_type, data)

    def simulate_zwave(self, room_id: str, command_class: str, command: str, data=None) -> Task:
        return self.iot.simulate_zwave(room_id, command_class, command, data)

    def simulate_full_stack_communication(self, src_ip: str, dst_ip: str, data=None) -> Task:
        return self.stack.simulate_full_stack_communication(src_ip, dst_ip, data)

    def simulate_ping(self, src_ip: str, dst_ip: str) -> Task:
        return self.stack.simulate_ping(src_ip, dst_ip)

    def simulate_dhcp(self, client_ip: str) -> Task:
        return self.stack.simulate_dhcp(client_ip)

    def start_periodic_updates(self) -> Task:
        return self.iot.start_periodic_updates()

    def stop_periodic_updates(self):
        self.iot.stop_periodic_updates()

    def protocol_stats(self) -> dict:
        return self.iot.stats()

    def deliver_commands(self, room_id: str, commands: list):
        controller = self.controllers.get(room_id)
        if controller is None:
            logger.warning(f"no controller for room {room_id!r}, {len(commands)} commands dropped")
            return
        controller.process_server_commands(commands)

    def room_temperature(self, room_id: str) -> float:
        controller = self.controllers.get(room_id)
        if controller is None:
            return self.network.room(room_id).temp
        return controller.temperature

    # ------------------------------------------------------------------
    # start-up
    # ------------------------------------------------------------------

    def initialize(self):
        """server LISTEN, device registration, ZigBee join, MQTT subscribe, DHCP, ping, periodic updates"""
        self.tcp.announce_listen()
        self.server.message("Server", "All Controllers", "status", "SYSTEM_INITIALIZATION", {
            "status": "ready",
            "timestamp": self.simulator.timestamp(),
        })

        pings = self.simulator.task("initial-ping")
        for room_id, controller in self.controllers.items():
            room = controller.room
            controller.register_devices()
            self.iot.simulate_zigbee(room_id, "join", {"capabilities": ["Router", "Mains-powered"]})
            self.iot.simulate_mqtt(room_id, "status", {
                "event": "subscribe",
                "topic": f"/home/{room_id}/control",
            })
            self.stack.simulate_dhcp(room.ip)
            pings.schedule(self.config.ping_after_init,
                           partial(self.stack.simulate_ping, self.network.server_ip, room.ip))

        self.iot.start_periodic_updates()
        self.debug_log("system initialized")

    # ------------------------------------------------------------------
    # occupancy
    # ------------------------------------------------------------------

    def set_occupancy(self, room_id: str, count: int):
        self.occupancy[room_id] = max(0, int(count))

    def add_person(self, room_id: str):
        """cycles 0 -> 1 -> 2 -> 3 -> 0"""
        self.occupancy[room_id] = (self.occupancy.get(room_id, 0) + 1) % (MAX_PEOPLE_PER_ROOM + 1)

    def update_rooms(self) -> list[str]:
        """
        push the current occupancy to the network; a room whose count changed
        since the last update gets a TCP connection and an IoT burst

        Returns:
            ids of the rooms that changed
        """
        changed = []
        for room_id, people in self.occupancy.items():
            controller = self.controllers.get(room_id)
            if controller is not None:
                controller.update_motion_sensor(people)
            if people != self.previous_occupancy.get(room_id, 0):
                self.tcp.simulate_full_connection(room_id, people)
                self._iot_burst(room_id, people)
                changed.append(room_id)
            self.previous_occupancy[room_id] = people
        return changed

    def _iot_burst(self, room_id: str, people: int):
        light_on, temp = room_climate(people, self.hour)
        self.iot.simulate_mqtt(room_id, "sensors", {
            "occupancy": people,
            "light": 1 if light_on else 0,
            "temperature": temp,
        })
        self.iot.simulate_coap(room_id, "POST", f"/rooms/{room_id}/status", {
            "occupancy": people,
            "light": light_on,
            "temp": temp,
        })
        self.iot.simulate_zigbee(room_id, "occupancy", {"count": people, "detected": people > 0})
        self.iot.simulate_zwave(room_id, "BASIC", "SET", {"value": 255 if light_on else 0})

    # ------------------------------------------------------------------
    # auto advance
    # ------------------------------------------------------------------

    def start_auto_advance(self, interval: Optional[float] = None) -> Task:
        """advance the simulated hour every `interval` units; restarts if running"""
        self.stop_auto_advance()
        self.auto_advance = self.simulator.task("auto-advance")
        self.auto_advance.every(interval or self.config.auto_advance_interval, self.advance_hour)
        return self.auto_advance

    def stop_auto_advance(self):
        if self.auto_advance is not None:
            self.auto_advance.cancel()
            self.auto_advance = None

    def advance_hour(self) -> bool:
        """
        move the clock one hour and apply the movement schedule

        Returns:
            True when people moved at the new hour
        """
        self.hour = (self.hour + 1) % 24
        moved = self.simulate_movement(self.hour)
        self.update_rooms()
        return moved

    def simulate_movement(self, hour: int) -> bool:
        rooms = PEOPLE_MOVEMENTS.get(hour)
        if rooms is None:
            return False
        for room_id in self.occupancy:
            self.occupancy[room_id] = 0
        for room_id in rooms:
            self.occupancy[room_id] = int(self.simulator.rng.integers(1, MAX_PEOPLE_PER_ROOM + 1))
        self.debug_log(f"hour {hour}: people moved to {', '.join(rooms)}")
        return True

    # ------------------------------------------------------------------
    # reset
    # ------------------------------------------------------------------

    def reset(self):
        """
        cancel every pending exchange and periodic task, clear logs, counters,
        sessions, protocol stats, occupancy and device state

        Called directly it resets the whole system through the engine.
        """
        if self._resetting:
            self._reset_own_state()
            return
        self._resetting = True
        try:
            self.simulator.reset()
        finally:
            self._resetting = False

    def _reset_own_state(self):
        super().reset()
        self.auto_advance = None
        self.hour = START_HOUR
        self.occupancy = {room_id: 0 for room_id in self.network.room_ids()}
        self.previous_occupancy = dict(self.occupancy)
