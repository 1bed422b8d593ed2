# test/test_event_sink.py
import sys
sys.path.append("..")
import pytest

from core import EventSink, Category, Endpoint, Event, serialized_length
from core.event import (
    IpPacket, TcpSegment, TcpTransportView, IotMessage, DeviceMessage, UdpDatagram,
    DhcpMessage, ControllerMessage, PhysicalSignal, EthernetFrame, SessionMessage,
    PresentationMessage,
)


def ip_event(i: int, timestamp: float = 0) -> Event:
    packet = IpPacket(source_ip="192.168.1.1", destination_ip=f"192.168.1.{i % 250}",
                      version=4, checksum="deadbeef")
    return Event(category=Category.NETWORK, protocol="IPv4", message_type="packet",
                 payload=packet, timestamp=timestamp, layer="Network")


def tcp_event() -> Event:
    src = Endpoint("192.168.1.102", 5000)
    dst = Endpoint("192.168.1.1", 8080)
    segment = TcpSegment(src=str(src), dst=str(dst), seq=10, ack=0, flags=("SYN",), state="SYN_SENT")
    return Event(category=Category.TCP, protocol="TCP", message_type="SYN",
                 payload=segment, src=src, dst=dst, layer="Transport")


def test_event_rejects_wrong_payload():
    with pytest.raises(ValueError):
        Event(category=Category.NETWORK, protocol="UDP", message_type="datagram",
              payload=UdpDatagram(source_port=68, destination_port=67, length=10, checksum="00"))


def test_event_requires_parties_for_tcp_and_iot():
    with pytest.raises(ValueError):
        Event(category=Category.IOT, protocol="MQTT", message_type="CONNECT",
              payload=IotMessage(data={}), src="192.168.1.101:49152")


def test_event_requires_message_type():
    with pytest.raises(ValueError):
        Event(category=Category.DEVICE, protocol="Device", message_type="",
              payload=DeviceMessage(device_id="x", device_type="light", event="", data=None))


def test_ring_log_is_bounded_and_newest_first():
    sink = EventSink()
    for i in range(45):
        sink.record(ip_event(i, timestamp=i))

    events = sink.recent_events(Category.NETWORK)
    assert len(events) == sink.capacity(Category.NETWORK) == 30
    assert events[0].timestamp == 44
    assert events[-1].timestamp == 15
    assert sink.stats()["total_events"] == 45


def test_eviction_is_per_category():
    sink = EventSink()
    sink.record(tcp_event())
    for i in range(40):
        sink.record(ip_event(i))

    assert sink.count(Category.TCP) == 1
    assert sink.count(Category.NETWORK) == 30


SAMPLE_PAYLOADS = {
    Category.TCP: TcpSegment(src="192.168.1.102:5000", dst="192.168.1.1:8080", seq=1, ack=0,
                             flags=("SYN",), state="SYN_SENT"),
    Category.APP: DhcpMessage(message_type="DISCOVER", fields={}),
    Category.IOT: IotMessage(data={"n": 1}),
    Category.CONTROLLER: ControllerMessage(sender="server", receiver="kitchen", type="COMMAND",
                                           action="SET_LIGHT", data=None),
    Category.DEVICE: DeviceMessage(device_id="kitchen_light", device_type="light",
                                   event="DEVICE_REGISTERED", data=None),
    Category.PHYSICAL: PhysicalSignal(status="transmit", voltage="2.5V"),
    Category.DATA_LINK: EthernetFrame(frame_type="data", source_mac="00:00:00:00:00:01",
                                      destination_mac="00:00:00:00:00:02", checksum="00"),
    Category.NETWORK: IpPacket(source_ip="192.168.1.1", destination_ip="192.168.1.2",
                               version=4, checksum="00"),
    Category.TRANSPORT: UdpDatagram(source_port=68, destination_port=67, length=10, checksum="00"),
    Category.SESSION: SessionMessage(session_id="abc", action="establish", state="ACTIVE",
                                     keep_alive=True),
    Category.PRESENTATION: PresentationMessage(data_type="application/json", encrypted=True,
                                               certificate=None),
}


def category_event(category: Category, timestamp: float) -> Event:
    return Event(category=category, protocol="test", message_type="sample",
                 payload=SAMPLE_PAYLOADS[category], timestamp=timestamp,
                 src=Endpoint("192.168.1.102", 5000), dst=Endpoint("192.168.1.1", 8080))


@pytest.mark.parametrize("category", list(Category), ids=lambda c: c.value)
def test_every_category_is_bounded(category):
    sink = EventSink()
    capacity = sink.capacity(category)
    extra = 7
    for i in range(capacity + extra):
        sink.record(category_event(category, timestamp=i))

    events = sink.recent_events(category)
    assert len(events) == capacity, f"{category.value}: {len(events)} retained, bound {capacity}"
    assert events[0].timestamp == capacity + extra - 1
    assert events[-1].timestamp == extra

    if category == Category.TCP:
        mirrored = sink.recent_events(Category.TRANSPORT)
        assert len(mirrored) == sink.capacity(Category.TRANSPORT)
        assert mirrored[0].timestamp == capacity + extra - 1


def test_transport_log_evicts_mixed_tcp_and_udp():
    sink = EventSink()
    bound = sink.capacity(Category.TRANSPORT)
    for i in range(bound + 10):
        category = Category.TCP if i % 2 == 0 else Category.TRANSPORT
        sink.record(category_event(category, timestamp=i))

    events = sink.recent_events(Category.TRANSPORT)
    assert len(events) == bound
    assert [e.timestamp for e in events] == list(range(bound + 9, 9, -1))
    assert isinstance(events[0].payload, UdpDatagram)
    assert isinstance(events[1].payload, TcpTransportView)
    assert sink.count(Category.TCP) == (bound + 10) // 2


def test_custom_capacities():
    sink = EventSink(capacities={"network": 5})
    assert sink.capacity(Category.NETWORK) == 5
    assert sink.capacity("tcp") == 100
    for i in range(8):
        sink.record(ip_event(i))
    assert sink.count("network") == 5


def test_tcp_events_are_mirrored_into_transport():
    sink = EventSink()
    event = tcp_event()
    sink.record(event)

    mirrored = sink.recent_events(Category.TRANSPORT)
    assert len(mirrored) == 1
    view = mirrored[0].payload
    assert isinstance(view, TcpTransportView)
    assert (view.source_ip, view.source_port) == ("192.168.1.102", "5000")
    assert (view.destination_ip, view.destination_port) == ("192.168.1.1", "8080")
    assert view.seq == 10 and view.flags == ("SYN",)
    assert mirrored[0].protocol == "TCP"

    stats = sink.stats()
    assert stats["total_events"] == 2
    assert stats["byte_volume"] == event.serialized_size() + mirrored[0].serialized_size()


def test_serialized_length_is_compact_json():
    assert serialized_length({"a": 1, "b": [1, 2]}) == len('{"a":1,"b":[1,2]}')


def test_serialized_length_counts_characters_not_escapes():
    assert serialized_length({"room": "Salón"}) == len('{"room":"Salón"}')


def test_connections():
    sink = EventSink()
    sink.open_connection("a-b")
    sink.open_connection("a-b")
    sink.open_connection("c-d")
    assert sink.stats()["active_connections"] == 2
    sink.close_connection("a-b")
    sink.close_connection("missing")
    assert sink.stats()["active_connections"] == 1


def test_traffic_rate_window():
    sink = EventSink()
    assert sink.traffic_rate(1000, now=0) == 0
    sink.record_traffic(100, timestamp=0)
    sink.record_traffic(50, timestamp=900)
    sink.record_traffic(25, timestamp=1500)

    assert sink.traffic_rate(1000, now=1500) == 75
    assert sink.traffic_rate(10_000, now=1500) == 175


def test_filters_are_display_only():
    sink = EventSink()
    sink.record(tcp_event())
    sink.record(ip_event(1))

    assert [e.category for e in sink.visible_events("packets")] == [
        Category.NETWORK, Category.TRANSPORT, Category.TCP,
    ]

    sink.set_filter("packets", "network")
    assert [e.category for e in sink.visible_events("packets")] == [Category.NETWORK]
    assert sink.count(Category.TCP) == 1

    sink.set_filter("packets", Category.TCP)
    assert [e.category for e in sink.visible_events("packets")] == [Category.TCP]

    with pytest.raises(ValueError):
        sink.set_filter("packets", "smoke-signals")


def test_clear():
    sink = EventSink()
    sink.record(tcp_event())
    sink.open_connection("x")
    sink.record_traffic(10, timestamp=0)
    sink.set_filter("packets", "tcp")

    sink.clear()
    assert sink.stats() == {"total_events": 0, "active_connections": 0, "byte_volume": 0}
    assert all(sink.count(c) == 0 for c in Category)
    assert sink.filters["packets"] == "all"
    assert sink.traffic_rate(1000, now=0) == 0


def test_to_dict_shape():
    event = tcp_event()
    data = event.to_dict()
    assert data["category"] == "tcp"
    assert data["src"] == "192.168.1.102:5000"
    assert data["messageType"] == "SYN"
    assert data["payload"]["seq"] == 10
