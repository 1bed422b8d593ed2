# test/test_tcp.py
import sys
sys.path.append("..")
import pytest

from core import SimulationEngine, EventSink, Category, serialized_length
from tcp import TcpSimulator, Session, TcpState, Command, default_command_policy
from utils import chronological, message_types

HANDSHAKE_TYPES = ["SYN", "SYN+ACK", "ACK"]
FULL_TYPES = HANDSHAKE_TYPES + ["PSH+ACK", "PSH+ACK", "FIN+ACK", "FIN+ACK", "ACK"]
FULL_STATES = ["SYN_SENT", "SYN_RECEIVED", "ESTABLISHED", "ESTABLISHED", "ESTABLISHED",
               "FIN_WAIT_1", "LAST_ACK", "CLOSED"]


def build(seed: int = 7, **kwargs):
    engine = SimulationEngine(seed=seed)
    sink = EventSink()
    tcp = TcpSimulator(lower_layer=None, simulator=engine, sink=sink, **kwargs)
    return engine, sink, tcp


# ============================================================
#                      session state machine
# ============================================================

def test_session_transitions_in_order():
    s = Session("k", seq=100)
    assert s.send_syn() and s.state == TcpState.SYN_SENT and s.seq == 101
    assert s.receive_syn_ack(500) and s.state == TcpState.SYN_RECEIVED and s.ack == 501
    assert s.send_ack() and s.state == TcpState.ESTABLISHED
    assert s.send_data(40) and s.seq == 141
    assert s.receive_data(10) and s.ack == 511
    assert s.send_fin() and s.state == TcpState.FIN_WAIT_1 and s.seq == 142
    assert s.receive_fin() and s.state == TcpState.LAST_ACK and s.ack == 512
    assert s.send_final_ack() and s.state == TcpState.CLOSED


def test_invalid_transitions_leave_session_untouched():
    s = Session("k", seq=5)
    for op in (s.send_ack, s.send_fin, s.receive_fin, s.send_final_ack):
        assert op() is False
    assert s.receive_syn_ack(10) is False
    assert s.send_data(10) is False
    assert (s.state, s.seq, s.ack) == (TcpState.CLOSED, 5, 0)


def test_syn_ack_never_moves_ack_backwards():
    s = Session("k", seq=0, ack=900)
    s.send_syn()
    s.receive_syn_ack(3)
    assert s.ack == 901


# ============================================================
#                      full connection
# ============================================================

def test_full_connection_sequence():
    engine, sink, tcp = build()
    conn = tcp.simulate_full_connection("kitchen", 2)
    assert conn is not None
    engine.run_until_idle()

    events = chronological(sink, "tcp")
    assert message_types(events) == FULL_TYPES
    assert [e.payload.state for e in events] == FULL_STATES
    assert [e.timestamp for e in events] == [500, 1000, 1500, 2000, 2500, 3500, 4000, 4500]
    assert str(events[0].src) == "192.168.1.102:5000"
    assert str(events[0].dst) == "192.168.1.1:8080"
    assert events[3].payload.flags == ("ACK", "PSH")


def test_active_connection_window():
    engine, sink, tcp = build()
    tcp.simulate_full_connection("bedroom", 1)

    engine.run(1499)
    assert sink.stats()["active_connections"] == 0
    engine.run(1)
    assert sink.stats()["active_connections"] == 1
    engine.run(2999)
    assert sink.stats()["active_connections"] == 1
    engine.run(1)
    assert sink.stats()["active_connections"] == 0
    assert tcp.sessions == {}


def test_data_transfer_arithmetic():
    engine, sink, tcp = build(seed=3)
    conn = tcp.simulate_full_connection("living-room", 3)
    seq0 = conn.session.seq
    engine.run_until_idle()

    syn, syn_ack, ack, request, response, fin, server_fin, final_ack = chronological(sink, "tcp")
    assert syn.payload.seq == seq0
    assert ack.payload.seq == seq0 + 1
    assert request.payload.seq == seq0 + 1

    request_len = serialized_length(request.payload.data)
    assert fin.payload.seq == seq0 + 1 + request_len
    assert response.payload.ack == seq0 + 1 + request_len

    server_isn = ack.payload.ack
    assert response.payload.seq == server_isn
    response_len = serialized_length(response.payload.data)
    assert server_fin.payload.seq == server_isn + response_len
    assert final_ack.payload.ack == server_isn + response_len + 1

    detection = request.payload.data
    assert detection["command"] == "PERSON_DETECTED"
    assert detection["room"] == "Living Room"
    assert detection["count"] == 3


def test_client_seq_is_monotonic():
    engine, sink, tcp = build(seed=11)
    tcp.simulate_full_connection("bathroom", 1)
    engine.run_until_idle()

    client = "192.168.1.104:5000"
    seqs = [e.payload.seq for e in chronological(sink, "tcp") if e.payload.src == client]
    assert seqs == sorted(seqs)


def test_http_mirror_events():
    engine, sink, tcp = build()
    tcp.simulate_full_connection("kitchen", 0)
    engine.run_until_idle()

    request, response = chronological(sink, "app")
    assert request.payload.method == "POST"
    assert request.payload.uri == "/api/sensors/kitchen/motion"
    assert request.payload.headers["X-Device-ID"] == "192.168.1.102"
    assert request.payload.headers["Authorization"].startswith("Bearer ")
    assert response.payload.status == "200 OK"
    assert response.payload.body == {"commands": [
        {"type": "SET_LIGHT", "value": "OFF"},
        {"type": "SET_TEMP", "value": 18},
    ]}


def test_commands_are_delivered():
    received = []
    engine, sink, tcp = build(command_consumer=lambda room, cmds: received.append((room, cmds)))
    tcp.simulate_full_connection("kitchen", 2)
    engine.run(2499)
    assert received == []
    engine.run(1)
    assert received == [("kitchen", [Command("SET_LIGHT", "ON"), Command("SET_TEMP", 22)])]


def test_custom_command_policy():
    received = []
    engine, sink, tcp = build(
        command_policy=lambda room, n: [Command("SET_MODE", "ECO")],
        command_consumer=lambda room, cmds: received.append(cmds),
    )
    tcp.simulate_full_connection("bedroom", 1)
    engine.run_until_idle()
    assert received == [[Command("SET_MODE", "ECO")]]


def test_default_policy():
    assert default_command_policy("x", 1) == [Command("SET_LIGHT", "ON"), Command("SET_TEMP", 22)]
    assert default_command_policy("x", 0) == [Command("SET_LIGHT", "OFF"), Command("SET_TEMP", 18)]


def test_busy_session_skips_second_connection():
    engine, sink, tcp = build()
    assert tcp.simulate_full_connection("kitchen", 1) is not None
    engine.run(600)
    assert tcp.simulate_full_connection("kitchen", 2) is None
    engine.run_until_idle()
    assert message_types(chronological(sink, "tcp")) == FULL_TYPES


def test_scheduled_connection_blocks_second_before_syn():
    received = []
    engine, sink, tcp = build(command_consumer=lambda room, cmds: received.append((engine.now, cmds)))
    assert tcp.simulate_full_connection("kitchen", 1) is not None
    engine.run(100)
    assert tcp.simulate_full_connection("kitchen", 2) is None, "SYN not sent yet, chain already scheduled"
    engine.run_until_idle()

    events = chronological(sink, "tcp")
    assert message_types(events) == FULL_TYPES
    assert len(chronological(sink, "app")) == 2
    assert [t for t, _ in received] == [2500]
    assert tcp.in_flight == {}

    # key is free again once the final ACK went out
    assert tcp.simulate_full_connection("kitchen", 2) is not None


def test_termination_cancels_remaining_steps():
    engine, sink, tcp = build()
    tcp.simulate_full_connection("kitchen", 1)
    engine.run(1500)
    assert tcp.simulate_termination("kitchen") is True
    engine.run_until_idle()
    assert engine.pending == 0
    assert tcp.simulate_full_connection("kitchen", 1) is not None


def test_sequential_connections_start_fresh():
    engine, sink, tcp = build()
    tcp.simulate_full_connection("kitchen", 1)
    engine.run_until_idle()
    assert tcp.simulate_full_connection("kitchen", 0) is not None
    engine.run_until_idle()
    assert message_types(chronological(sink, "tcp")) == FULL_TYPES * 2


def test_termination_only_when_established():
    engine, sink, tcp = build()
    assert tcp.simulate_termination("kitchen") is False

    tcp.simulate_full_connection("kitchen", 1)
    engine.run(1000)
    assert tcp.simulate_termination("kitchen") is False

    engine.run(500)
    assert tcp.simulate_termination("kitchen") is True
    engine.run_until_idle()

    events = chronological(sink, "tcp")
    assert message_types(events) == HANDSHAKE_TYPES + ["FIN+ACK", "FIN+ACK", "ACK"]
    assert events[-1].payload.state == "CLOSED"
    assert sink.stats()["active_connections"] == 0


def test_unknown_room_falls_back_to_default_ip():
    engine, sink, tcp = build()
    tcp.simulate_full_connection("attic", 1)
    engine.run(500)
    assert chronological(sink, "tcp")[0].payload.src == "0.0.0.0:5000"


# ============================================================
#                      quick message
# ============================================================

def test_quick_message_advances_seq_only():
    engine, sink, tcp = build()
    command = {"type": "SET_LIGHT", "value": "ON"}
    first = tcp.send_quick_message("server", "kitchen", command)
    second = tcp.send_quick_message("server", "kitchen", command)

    assert first.message_type == "PSH+ACK"
    assert str(first.dst) == "192.168.1.102:1234"
    assert str(first.src) == "192.168.1.1:8080"
    assert second.payload.seq == first.payload.seq + serialized_length(command)
    assert first.payload.state == "CLOSED"
    assert sink.stats()["active_connections"] == 0
    assert sink.traffic_rate(1000, now=engine.now) == 2 * serialized_length(command)


def test_listen_announcement():
    engine, sink, tcp = build()
    event = tcp.announce_listen()
    assert event.payload.flags == ("LISTEN",)
    assert event.payload.data == "Home Automation Server initialized"
    assert sink.count(Category.TCP) == 1


def test_seed_reproducibility():
    def run(seed):
        engine, sink, tcp = build(seed=seed)
        tcp.simulate_full_connection("kitchen", 2)
        engine.run_until_idle()
        return [(e.payload.seq, e.payload.ack) for e in chronological(sink, "tcp")]

    assert run(5) == run(5)


@pytest.mark.parametrize("room", ["living-room", "kitchen", "bedroom", "bathroom"])
def test_every_room_completes(room):
    engine, sink, tcp = build()
    tcp.simulate_full_connection(room, 1)
    engine.run_until_idle()
    assert chronological(sink, "tcp")[-1].payload.state == "CLOSED"
