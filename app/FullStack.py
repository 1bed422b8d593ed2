"""
full-stack composer

builds the layer chain physical -> data link -> network -> transport ->
session -> presentation -> application and plays short multi-layer
exchanges on it: a full-stack prelude, ICMP ping and DHCP
"""

import string
from typing import Optional

from core import SimulationEngine, SimulationEntity, EventSink, Task
from core.config import (
    SimConfig, SERVER_IP, BROADCAST_MAC, ZERO_MAC, mac_for_ip,
    DHCP_SERVER_PORT, DHCP_CLIENT_PORT,
)
from phy import PhyLayer
from mac import MacLayer
from net import NetworkLayer, ECHO_REQUEST, ECHO_REPLY
from tcp.TransportLayer import TransportLayer
from app.SessionLayer import SessionLayer
from app.PresentationLayer import PresentationLayer
from app.ApplicationLayer import ApplicationLayer

BASE36 = string.digits + string.ascii_lowercase

DHCP_SUBNET = "255.255.255.0"
DHCP_DNS = "8.8.8.8"
DHCP_LEASE = "86400 seconds"


class FullStackComposer(SimulationEntity):
    def __init__(self, simulator: SimulationEngine, sink: EventSink,
                 config: Optional[SimConfig] = None, name: str = "stack"):
        super().__init__(name=name)
        self.simulator = simulator
        self.sink = sink
        self.config = config or SimConfig()

        # 协议栈
        self.phy_layer = PhyLayer(lower_layer=None, simulator=simulator, sink=sink, name=name)
        self.mac_layer = MacLayer(lower_layer=self.phy_layer, simulator=simulator, sink=sink, name=name)
        self.network_layer = NetworkLayer(lower_layer=self.mac_layer, simulator=simulator, sink=sink, name=name)
        self.transport_layer = TransportLayer(lower_layer=self.network_layer, simulator=simulator, sink=sink, name=name)
        self.session_layer = SessionLayer(lower_layer=self.transport_layer, simulator=simulator, sink=sink, name=name)
        self.presentation_layer = PresentationLayer(lower_layer=self.session_layer, simulator=simulator, sink=sink, name=name)
        self.application_layer = ApplicationLayer(lower_layer=self.presentation_layer, simulator=simulator, sink=sink, name=name)
        simulator.register_entity(self)

    def setmode(self, mode: str):
        super().setmode(mode)
        for layer in self.phy_layer.stack():
            layer.setmode(mode)

    def new_session_id(self) -> str:
        return "".join(BASE36[i] for i in self.simulator.rng.integers(0, len(BASE36), size=9))

    def simulate_full_stack_communication(self, src_ip: str, dst_ip: str, data=None) -> Task:
        """
        layer walk that precedes a TCP connection; carries no TCP semantics
        """
        cfg = self.config
        src_mac = mac_for_ip(src_ip)
        dst_mac = mac_for_ip(dst_ip)
        session_id = self.new_session_id()
        task = self.simulator.task(f"full-stack:{src_ip}->{dst_ip}")
        self.debug_log(f"full stack {src_ip} -> {dst_ip} data={data}")

        self.phy_layer.generate("transmit")
        self.mac_layer.generate(src_mac, dst_mac, "data")

        # ARP first to resolve the peer MAC
        self.network_layer.generate_arp(src_ip, dst_ip, "request")
        task.schedule(cfg.arp_reply_delay,
                      lambda: self.network_layer.generate_arp(dst_ip, src_ip, "reply"))
        task.schedule(cfg.ip_delay,
                      lambda: self.network_layer.generate(src_ip, dst_ip))
        task.schedule(cfg.session_delay,
                      lambda: self.session_layer.generate(session_id, "establish"))
        task.schedule(cfg.presentation_delay,
                      lambda: self.presentation_layer.generate("application/json", encrypted=True))
        return task

    def simulate_ping(self, src_ip: str, dst_ip: str) -> Task:
        task = self.simulator.task(f"ping:{src_ip}->{dst_ip}")
        self.network_layer.generate_icmp(src_ip, dst_ip, ECHO_REQUEST)
        task.schedule(self.config.ping_reply_delay,
                      lambda: self.network_layer.generate_icmp(dst_ip, src_ip, ECHO_REPLY))
        return task

    def simulate_dhcp(self, client_ip: str) -> Task:
        """
        DISCOVER -> OFFER -> REQUEST -> ACK, one step every dhcp_step units
        """
        step = self.config.dhcp_step
        task = self.simulator.task(f"dhcp:{client_ip}")

        self._dhcp_discover()
        task.schedule(step, lambda: self._dhcp_offer(client_ip))
        task.schedule(2 * step, lambda: self._dhcp_request(client_ip))
        task.schedule(3 * step, lambda: self._dhcp_ack(client_ip))
        return task

    def _dhcp_discover(self):
        self.mac_layer.generate(ZERO_MAC, BROADCAST_MAC, "broadcast")
        self.transport_layer.generate_udp(DHCP_CLIENT_PORT, DHCP_SERVER_PORT)
        self.application_layer.generate_dhcp(
            "DISCOVER", client_mac=ZERO_MAC, requested_ip="0.0.0.0")

    def _dhcp_offer(self, client_ip: str):
        self.mac_layer.generate(mac_for_ip(SERVER_IP), BROADCAST_MAC, "unicast")
        self.transport_layer.generate_udp(DHCP_SERVER_PORT, DHCP_CLIENT_PORT)
        self.application_layer.generate_dhcp(
            "OFFER", offered_ip=client_ip, subnet=DHCP_SUBNET, gateway=SERVER_IP,
            dns=DHCP_DNS, lease_time=DHCP_LEASE)

    def _dhcp_request(self, client_ip: str):
        self.mac_layer.generate(ZERO_MAC, BROADCAST_MAC, "broadcast")
        self.transport_layer.generate_udp(DHCP_CLIENT_PORT, DHCP_SERVER_PORT)
        self.application_layer.generate_dhcp("REQUEST", requested_ip=client_ip)

    def _dhcp_ack(self, client_ip: str):
        self.mac_layer.generate(mac_for_ip(SERVER_IP), mac_for_ip(client_ip), "unicast")
        self.transport_layer.generate_udp(DHCP_SERVER_PORT, DHCP_CLIENT_PORT)
        self.application_layer.generate_dhcp(
            "ACK", assigned_ip=client_ip, subnet=DHCP_SUBNET, gateway=SERVER_IP,
            dns=DHCP_DNS, lease_time=DHCP_LEASE)
