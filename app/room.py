"""
room controllers

a RoomController receives the server's commands at the end of a TCP data
exchange and drives the room's devices over the IoT protocols
"""

from functools import partial
from typing import Optional

from core import ProtocolLayer, SimulationEngine, EventSink, Category, Endpoint, Event, Task
from core.config import Room, ROOM_PORT
from core.event import ControllerMessage, DeviceMessage, IotMessage
from iot.IoTProtocols import IoTProtocols

THERMOSTAT_STEP = 0.1
THERMOSTAT_TICK = 1000
DEFAULT_TEMPERATURE = 22

DAY_START = 7
DAY_END = 19


def room_climate(people: int, hour: int) -> tuple[bool, int]:
    """
    (light on, target temperature) for a room with `people` inside at `hour`

    lights only at night; occupied rooms are warmer in the morning and the
    evening and cooler at night, empty rooms drop to 18
    """
    daytime = DAY_START <= hour < DAY_END
    light_on = people > 0 and not daytime
    if people <= 0:
        return light_on, 18
    if 6 <= hour <= 9:
        return light_on, 23
    if 17 <= hour <= 22:
        return light_on, 24
    if hour >= 22 or hour <= 6:
        return light_on, 20
    return light_on, DEFAULT_TEMPERATURE


def initial_device_states() -> dict:
    return {
        "light": {"state": "OFF", "brightness": 0},
        "thermostat": {"temperature": DEFAULT_TEMPERATURE, "target_temp": DEFAULT_TEMPERATURE, "mode": "AUTO"},
        "motion_sensor": {"detecting": False},
    }


class ControllerChannel(ProtocolLayer):
    """controller-to-controller message log"""

    category = Category.CONTROLLER

    def __init__(self, simulator: SimulationEngine, sink: EventSink, name: str = "server"):
        super().__init__(lower_layer=None, simulator=simulator, sink=sink, name=name)

    def message(self, sender: str, receiver: str, type: str, action: str, data=None) -> Event:
        return self.emit(
            protocol="Controller",
            message_type=action,
            payload=ControllerMessage(sender=sender, receiver=receiver, type=type,
                                      action=action, data=data),
        )


class RoomController(ControllerChannel):
    def __init__(self, room: Room, simulator: SimulationEngine, sink: EventSink,
                 iot: IoTProtocols, name: Optional[str] = None):
        super().__init__(simulator=simulator, sink=sink, name=name or f"controller.{room.room_id}")
        self.room = room
        self.iot = iot
        self.device_states = initial_device_states()
        self.climate_task: Optional[Task] = None
        self.handlers = {
            "SET_LIGHT": self.set_light,
            "SET_TEMP": self.set_temperature,
            "SET_MODE": self.set_thermostat_mode,
        }

    @property
    def room_id(self) -> str:
        return self.room.room_id

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.room.ip, ROOM_PORT)

    def device_id(self, kind: str) -> str:
        return f"{self.room_id}-{kind}"

    # ------------------------------------------------------------------
    # devices
    # ------------------------------------------------------------------

    def register_devices(self) -> list[Event]:
        devices = [
            ("light", "light", "Light", ["ON_OFF", "BRIGHTNESS"]),
            ("thermostat", "thermostat", "Thermostat", ["TEMPERATURE", "MODE"]),
            ("motion", "sensor", "Motion Sensor", ["MOTION_DETECTION"]),
        ]
        return [
            self.device_event(self.device_id(kind), device_type, "DEVICE_REGISTERED", {
                "name": f"{self.room_id} {label}",
                "capabilities": capabilities,
            })
            for kind, device_type, label, capabilities in devices
        ]

    def device_event(self, device_id: str, device_type: str, event: str, data=None) -> Event:
        return self.emit(
            protocol="Device",
            message_type=event,
            category=Category.DEVICE,
            payload=DeviceMessage(device_id=device_id, device_type=device_type, event=event, data=data),
        )

    def _iot_event(self, protocol: str, message_type: str, src, dst, data) -> Event:
        return self.emit(protocol=protocol, message_type=message_type, category=Category.IOT,
                         payload=IotMessage(data=data), src=src, dst=dst)

    # ------------------------------------------------------------------
    # server commands
    # ------------------------------------------------------------------

    def process_server_commands(self, commands) -> int:
        """
        apply every known command in order; unknown types are ignored

        Returns:
            number of commands applied
        """
        commands = [_as_dict(c) for c in commands]
        self.message("Server", f"{self.room.name} Controller", "command", "PROCESS_COMMANDS",
                     {"commands": commands})
        applied = 0
        for command in commands:
            handler = self.handlers.get(command.get("type"))
            if handler is None:
                self.debug_log(f"ignoring command {command}")
                continue
            handler(command.get("value"))
            applied += 1
        return applied

    def set_light(self, state: str):
        self.iot.simulate_zigbee(self.room_id, "light", {
            "command": "ON_OFF",
            "value": 1 if state == "ON" else 0,
        })
        self.iot.simulate_mqtt(self.room_id, "actuators", {
            "deviceId": self.device_id("light"),
            "command": "SET_LIGHT",
            "value": state,
        })
        self.device_states["light"]["state"] = state
        self._iot_event("ZigBee", "COMMAND", self.endpoint, self.device_id("light"), {
            "command": "SET_LIGHT",
            "value": state,
            "timestamp": self.simulator.timestamp(),
        })

    def set_temperature(self, temp):
        self.iot.simulate_zwave(self.room_id, "THERMOSTAT_SETPOINT", "SET", {
            "value": temp,
            "scale": "Celsius",
        })
        self.iot.simulate_coap(self.room_id, "PUT", f"/thermostat/{self.room_id}", {"targetTemp": temp})
        self.device_states["thermostat"]["target_temp"] = temp
        self._start_climate()
        self._iot_event("Z-Wave", "COMMAND", self.endpoint, self.device_id("thermostat"), {
            "command": "SET_TEMP",
            "value": temp,
            "timestamp": self.simulator.timestamp(),
        })

    def set_thermostat_mode(self, mode: str):
        self.iot.simulate_zwave(self.room_id, "THERMOSTAT_MODE", "SET", {"mode": mode})
        self.device_states["thermostat"]["mode"] = mode

    # ------------------------------------------------------------------
    # thermostat drift: 0.1 degree per second towards the target
    # ------------------------------------------------------------------

    def _start_climate(self):
        if self.climate_task is not None and not self.climate_task.cancelled:
            return
        self.climate_task = self.simulator.task(f"climate:{self.room_id}")
        self.climate_task.every(THERMOSTAT_TICK, partial(self._climate_tick, self.climate_task))

    def _climate_tick(self, task: Task):
        thermostat = self.device_states["thermostat"]
        diff = thermostat["target_temp"] - thermostat["temperature"]
        if abs(diff) <= THERMOSTAT_STEP:
            task.cancel()
            return
        step = THERMOSTAT_STEP if diff > 0 else -THERMOSTAT_STEP
        thermostat["temperature"] = round(thermostat["temperature"] + step, 1)

    @property
    def temperature(self) -> float:
        return self.device_states["thermostat"]["temperature"]

    # ------------------------------------------------------------------
    # motion sensor
    # ------------------------------------------------------------------

    def update_motion_sensor(self, people: int) -> bool:
        """report only when detection toggles; returns the detection state"""
        detecting = people > 0
        if detecting == self.device_states["motion_sensor"]["detecting"]:
            return detecting

        self.iot.simulate_zigbee(self.room_id, "occupancy", {"count": people, "detected": detecting})
        self.iot.simulate_mqtt(self.room_id, "sensors", {
            "deviceId": self.device_id("motion"),
            "event": "MOTION_DETECTED",
            "value": detecting,
            "peopleCount": people,
        })
        self.device_states["motion_sensor"]["detecting"] = detecting
        self._iot_event("ZigBee", "EVENT", self.device_id("motion"), self.endpoint, {
            "event": "MOTION_DETECTED",
            "detecting": detecting,
            "timestamp": self.simulator.timestamp(),
        })
        return detecting

    def status(self) -> dict:
        return {
            "roomId": self.room_id,
            "devices": {
                "light": dict(self.device_states["light"]),
                "thermostat": dict(self.device_states["thermostat"]),
                "motionSensor": dict(self.device_states["motion_sensor"]),
            },
            "timestamp": self.simulator.timestamp(),
        }

    def reset(self):
        super().reset()
        self.device_states = initial_device_states()
        self.climate_task = None


def _as_dict(command) -> dict:
    if isinstance(command, dict):
        return dict(command)
    return {"type": command.type, "value": command.value}
