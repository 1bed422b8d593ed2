# test/test_osi.py
import re
import sys
sys.path.append("..")

from core import SimulationEngine, EventSink, Category
from core.event import UdpDatagram
from mac import generate_checksum
from app import FullStackComposer
from utils import chronological, message_types


def build(seed: int = 9):
    engine = SimulationEngine(seed=seed)
    sink = EventSink()
    stack = FullStackComposer(simulator=engine, sink=sink)
    return engine, sink, stack


def test_checksum_is_eight_hex_chars():
    engine = SimulationEngine(seed=1)
    for _ in range(20):
        assert re.fullmatch(r"[0-9a-f]{8}", generate_checksum(engine.rng))


def test_layer_chain():
    engine, sink, stack = build()
    names = [layer.layer_name for layer in stack.phy_layer.stack()]
    assert names == ["Physical", "Data Link", "Network", "Transport", "Session", "Presentation", "Application"]


def test_full_stack_timeline():
    engine, sink, stack = build()
    stack.simulate_full_stack_communication("192.168.1.102", "192.168.1.1", {"type": "tcp_connection"})
    engine.run_until_idle()

    (phy,) = chronological(sink, "physical")
    assert (phy.timestamp, phy.payload.status, phy.payload.voltage) == (0, "transmit", "+2.5V to -2.5V")

    (frame,) = chronological(sink, "dataLink")
    assert frame.payload.frame_type == "data"
    assert frame.payload.source_mac == "00:1B:44:11:3A:B9"
    assert frame.payload.destination_mac == "00:1B:44:11:3A:B7"

    arp_request, arp_reply, ip = chronological(sink, "network")
    assert (arp_request.message_type, arp_request.timestamp) == ("request", 0)
    assert arp_request.payload.target_mac == "00:00:00:00:00:00"
    assert (arp_reply.message_type, arp_reply.timestamp) == ("reply", 100)
    assert arp_reply.payload.sender_ip == "192.168.1.1"
    assert arp_reply.payload.target_mac == "00:1B:44:11:3A:B9"
    assert (ip.protocol, ip.timestamp) == ("IPv4", 200)
    assert (ip.payload.ttl, ip.payload.header_length, ip.payload.version) == (64, 20, 4)

    (session,) = chronological(sink, "session")
    assert session.timestamp == 300
    assert session.payload.state == "connecting"
    assert re.fullmatch(r"[0-9a-z]{9}", session.payload.session_id)

    (presentation,) = chronological(sink, "presentation")
    assert presentation.timestamp == 400
    assert presentation.protocol == "SSL/TLS"
    assert presentation.payload.encrypted is True
    assert presentation.payload.data_type == "application/json"


def test_ping():
    engine, sink, stack = build()
    stack.simulate_ping("192.168.1.1", "192.168.1.103")
    engine.run_until_idle()

    request, reply = chronological(sink, "network")
    assert (request.message_type, request.timestamp) == ("echo request", 0)
    assert (reply.message_type, reply.timestamp) == ("echo reply", 100)
    assert (reply.payload.source_ip, reply.payload.destination_ip) == ("192.168.1.103", "192.168.1.1")
    assert 0 <= request.payload.sequence < 100
    assert 0 <= request.payload.identifier < 1000
    assert request.payload.data == "ping test data"
    assert reply.payload.data == "pong response"


def test_dhcp_sequence():
    engine, sink, stack = build()
    stack.simulate_dhcp("192.168.1.104")
    engine.run_until_idle()

    apps = chronological(sink, "app")
    assert message_types(apps) == ["DISCOVER", "OFFER", "REQUEST", "ACK"]
    assert [e.timestamp for e in apps] == [0, 500, 1000, 1500]

    discover, offer, request, ack = (e.payload.fields for e in apps)
    assert discover == {"client_mac": "00:00:00:00:00:00", "requested_ip": "0.0.0.0"}
    assert offer["offered_ip"] == "192.168.1.104"
    assert offer["subnet"] == "255.255.255.0"
    assert offer["gateway"] == "192.168.1.1"
    assert offer["dns"] == "8.8.8.8"
    assert request["requested_ip"] == "192.168.1.104"
    assert ack["assigned_ip"] == "192.168.1.104"
    assert ack["lease_time"] == "86400 seconds"

    ports = [(e.payload.source_port, e.payload.destination_port) for e in chronological(sink, "transport")]
    assert ports == [(68, 67), (67, 68), (68, 67), (67, 68)]

    frames = chronological(sink, "dataLink")
    assert [f.payload.frame_type for f in frames] == ["broadcast", "unicast", "broadcast", "unicast"]
    assert frames[0].payload.destination_mac == "FF:FF:FF:FF:FF:FF"
    assert frames[3].payload.destination_mac == "00:1B:44:11:3A:BB"


def test_udp_generator():
    engine, sink, stack = build()
    for _ in range(20):
        event = stack.transport_layer.generate("UDP", 5000, 53)
        assert isinstance(event.payload, UdpDatagram)
        assert 8 <= event.payload.length <= 507
    assert stack.transport_layer.generate("TCP", 5000, 8080) is None
    assert sink.count(Category.TRANSPORT) == 20


def test_session_and_presentation_generators():
    engine, sink, stack = build()
    assert stack.session_layer.generate("abc", "maintain").payload.keep_alive is True
    assert stack.session_layer.generate("abc", "terminate").payload.state == "closing"

    plain = stack.presentation_layer.generate("text/plain")
    assert (plain.protocol, plain.message_type, plain.payload.certificate) == ("MIME", "encode", None)


def test_cancelled_exchange_emits_nothing_more():
    engine, sink, stack = build()
    task = stack.simulate_dhcp("192.168.1.101")
    engine.run(600)
    task.cancel()
    engine.run_until_idle()
    assert message_types(chronological(sink, "app")) == ["DISCOVER", "OFFER"]
