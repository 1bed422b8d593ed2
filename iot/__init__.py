"""
IoT protocol simulators: MQTT, CoAP, ZigBee, Z-Wave
"""

from iot.stats import MqttStats, CoapStats, ZigbeeStats, ZwaveStats
from iot.mqtt import MqttSimulator
from iot.coap import CoapSimulator
from iot.zigbee import ZigbeeSimulator
from iot.zwave import ZwaveSimulator
from iot.IoTProtocols import IoTProtocols

__all__ = [
    "MqttStats",
    "CoapStats",
    "ZigbeeStats",
    "ZwaveStats",
    "MqttSimulator",
    "CoapSimulator",
    "ZigbeeSimulator",
    "ZwaveSimulator",
    "IoTProtocols",
]
