"""
TCP connection simulator

one full connection = handshake -> request/response -> teardown, laid out
as fixed offsets from the connection start inside a single Task:

    t=0      full-stack prelude (ARP, IP, session, presentation)
    t=500    SYN            CLOSED -> SYN_SENT
    t=1000   SYN+ACK        SYN_SENT -> SYN_RECEIVED
    t=1500   ACK            SYN_RECEIVED -> ESTABLISHED
    t=2000   PSH+ACK (client request) + HTTP POST
    t=2500   PSH+ACK (server commands) + HTTP 200, commands delivered
    t=3500   FIN+ACK        ESTABLISHED -> FIN_WAIT_1
    t=4000   FIN+ACK        FIN_WAIT_1 -> LAST_ACK
    t=4500   ACK            LAST_ACK -> CLOSED
"""

import base64
import json
import string
from dataclasses import dataclass, asdict
from functools import partial
from typing import Callable, Optional

from core import ProtocolLayer, SimulationEngine, EventSink, Category, Endpoint, Event, Task
from core.config import (
    NetworkConfig, SimConfig, Room, ROOM_PORT, QUICK_MESSAGE_PORT, TCP_WINDOW,
)
from core.event import TcpSegment, HttpRequest, HttpResponse, session_key, serialized_length
from tcp.session import Session, TcpState

# flag order on the wire display
FLAG_ORDER = ("SYN", "ACK", "FIN", "RST", "PSH")

SYN = ("SYN",)
SYN_ACK = ("SYN", "ACK")
ACK = ("ACK",)
PSH_ACK = ("ACK", "PSH")
FIN_ACK = ("ACK", "FIN")

SERVER_ID = "home-automation-001"
BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class Command:
    type: str      # SET_LIGHT | SET_TEMP | SET_MODE
    value: object


def default_command_policy(room_id: str, occupancy: int) -> list[Command]:
    """light follows occupancy, 22C occupied / 18C empty"""
    occupied = occupancy > 0
    return [
        Command("SET_LIGHT", "ON" if occupied else "OFF"),
        Command("SET_TEMP", 22 if occupied else 18),
    ]


def flag_name(flags: tuple) -> str:
    if flags == PSH_ACK:
        return "PSH+ACK"
    if flags == FIN_ACK:
        return "FIN+ACK"
    return "+".join(flags)


@dataclass
class TcpConnection:
    """state object of one simulate_full_connection call"""
    room: Room
    client: Endpoint
    server: Endpoint
    session: Session
    occupancy: int
    task: Task
    commands: Optional[list] = None


class TcpSimulator(ProtocolLayer):
    category = Category.TCP
    layer_name = "Transport"

    def __init__(
        self,
        lower_layer: Optional[ProtocolLayer],
        simulator: SimulationEngine,
        sink: EventSink,
        network: Optional[NetworkConfig] = None,
        config: Optional[SimConfig] = None,
        composer=None,
        command_policy: Optional[Callable[[str, int], list]] = None,
        command_consumer: Optional[Callable[[str, list], None]] = None,
        name: str = "tcp",
    ):
        super().__init__(lower_layer=lower_layer, simulator=simulator, sink=sink, name=name)
        self.network = network or NetworkConfig()
        self.config = config or SimConfig()
        self.composer = composer
        self.command_policy = command_policy or default_command_policy
        self.command_consumer = command_consumer
        self.sessions: dict[str, Session] = {}
        self.in_flight: dict[str, Task] = {}

    # ------------------------------------------------------------------
    # sessions
    # ------------------------------------------------------------------

    @property
    def server(self) -> Endpoint:
        return Endpoint(self.network.server_ip, self.network.server_port)

    def endpoints(self, room_id: str) -> tuple[Endpoint, Endpoint]:
        room = self.network.room(room_id)
        return Endpoint(room.ip, ROOM_PORT), self.server

    def get_session(self, key: str) -> Session:
        if key not in self.sessions:
            self.sessions[key] = Session(key, seq=int(self.rng.integers(0, 1000)), ack=0)
            self.debug_log(f"NEW SESSION {self.sessions[key]}")
        return self.sessions[key]

    def _in_flight(self, key: str) -> bool:
        """a scheduled connection for key still has steps to run"""
        task = self.in_flight.get(key)
        if task is None:
            return False
        if task.cancelled or not task.pending:
            del self.in_flight[key]
            return False
        return True

    def _drop_session(self, session: Session):
        if self.sessions.get(session.key) is session:
            del self.sessions[session.key]

    # ------------------------------------------------------------------
    # segment helpers
    # ------------------------------------------------------------------

    def _segment(self, src: Endpoint, dst: Endpoint, seq: int, ack: int,
                 flags: tuple, state: str, data=None) -> Event:
        segment = TcpSegment(
            src=str(src),
            dst=str(dst),
            seq=seq,
            ack=ack,
            flags=tuple(f for f in FLAG_ORDER if f in flags),
            state=state,
            data=data,
            window=TCP_WINDOW,
        )
        return self.emit(protocol="TCP", message_type=flag_name(flags), payload=segment,
                         src=src, dst=dst)

    def mock_token(self) -> str:
        """JWT-shaped bearer token (not signed)"""
        header = _b64({"alg": "HS256", "typ": "JWT"})
        suffix = "".join(BASE36[i] for i in self.rng.integers(0, len(BASE36), size=9))
        payload = _b64({"sub": f"device_{suffix}", "exp": self.simulator.now + 3_600_000})
        return f"{header}.{payload}.mock_signature"

    # ------------------------------------------------------------------
    # full connection
    # ------------------------------------------------------------------

    def simulate_full_connection(self, room_id: str, occupancy: int) -> Optional[TcpConnection]:
        """
        schedule handshake, data transfer and teardown for one room

        Returns:
            the connection state object, or None when the room's session is
            still in the middle of a previous connection
        """
        client, server = self.endpoints(room_id)
        key = session_key(client, server)
        session = self.get_session(key)
        if session.busy or self._in_flight(key):
            self.debug_log(f"connection {key} already in progress ({session.state.value}), skipped")
            return None

        conn = TcpConnection(
            room=self.network.room(room_id),
            client=client,
            server=server,
            session=session,
            occupancy=occupancy,
            task=self.simulator.task(f"tcp:{key}"),
        )
        self.in_flight[key] = conn.task

        if self.composer is not None:
            self.composer.simulate_full_stack_communication(client.address, server.address, {
                "type": "tcp_connection",
                "source": str(client),
                "destination": str(server),
            })

        cfg = self.config
        plan = [
            (cfg.handshake_start, self._send_syn),
            (cfg.handshake_start + cfg.step_delay, self._send_syn_ack),
            (cfg.handshake_start + 2 * cfg.step_delay, self._send_ack),
            (cfg.data_transfer_start, self._send_request),
            (cfg.data_transfer_start + cfg.step_delay, self._send_response),
            (cfg.teardown_start, self._send_fin),
            (cfg.teardown_start + cfg.step_delay, self._send_server_fin),
            (cfg.teardown_start + 2 * cfg.step_delay, self._send_final_ack),
        ]
        for delay, step in plan:
            conn.task.schedule(delay, partial(step, conn))
        return conn

    # --- handshake ---

    def _send_syn(self, conn: TcpConnection):
        s = conn.session
        seq = s.seq
        if not s.send_syn():
            return
        self._segment(conn.client, conn.server, seq, 0, SYN, s.state.value)

    def _send_syn_ack(self, conn: TcpConnection):
        s = conn.session
        ack_base = int(self.rng.integers(0, 1000))
        if not s.receive_syn_ack(ack_base):
            return
        self._segment(conn.server, conn.client, s.ack - 1, s.seq, SYN_ACK, s.state.value)

    def _send_ack(self, conn: TcpConnection):
        s = conn.session
        if not s.send_ack():
            return
        self._segment(conn.client, conn.server, s.seq, s.ack, ACK, s.state.value)
        self.sink.open_connection(s.key)

    # --- data ---

    def _send_request(self, conn: TcpConnection):
        s = conn.session
        if s.state != TcpState.ESTABLISHED:
            return
        room = conn.room
        detection = {
            "command": "PERSON_DETECTED",
            "room": room.name,
            "count": conn.occupancy,
            "timestamp": self.simulator.timestamp(),
        }
        self._segment(conn.client, conn.server, s.seq, s.ack, PSH_ACK, s.state.value, detection)
        self.emit(
            protocol="HTTP",
            message_type="REQUEST",
            category=Category.APP,
            payload=HttpRequest(
                method="POST",
                uri=f"/api/sensors/{room.room_id}/motion",
                headers={
                    "Content-Type": "application/json",
                    "X-Device-ID": room.ip,
                    "Authorization": "Bearer " + self.mock_token(),
                },
                body=detection,
            ),
            src=conn.client,
            dst=conn.server,
        )
        s.send_data(serialized_length(detection))

    def _send_response(self, conn: TcpConnection):
        s = conn.session
        if s.state != TcpState.ESTABLISHED:
            return
        commands = list(self.command_policy(conn.room.room_id, conn.occupancy))
        body = {"commands": [asdict(c) if isinstance(c, Command) else dict(c) for c in commands]}
        self._segment(conn.server, conn.client, s.ack, s.seq, PSH_ACK, s.state.value, body)
        self.emit(
            protocol="HTTP",
            message_type="RESPONSE",
            category=Category.APP,
            payload=HttpResponse(
                status="200 OK",
                headers={"Content-Type": "application/json", "X-Server-ID": SERVER_ID},
                body=body,
            ),
            src=conn.server,
            dst=conn.client,
        )
        s.receive_data(serialized_length(body))
        conn.commands = commands
        if self.command_consumer is not None:
            self.command_consumer(conn.room.room_id, commands)

    # --- teardown ---

    def _send_fin(self, conn: TcpConnection):
        s = conn.session
        seq = s.seq
        if not s.send_fin():
            return
        self._segment(conn.client, conn.server, seq, s.ack, FIN_ACK, s.state.value)

    def _send_server_fin(self, conn: TcpConnection):
        s = conn.session
        ack = s.ack
        if not s.receive_fin():
            return
        self._segment(conn.server, conn.client, ack, s.seq, FIN_ACK, s.state.value)

    def _send_final_ack(self, conn: TcpConnection):
        s = conn.session
        if not s.send_final_ack():
            return
        self._segment(conn.client, conn.server, s.seq, s.ack, ACK, s.state.value)
        self.sink.close_connection(s.key)
        self._drop_session(s)
        self.in_flight.pop(s.key, None)

    def simulate_termination(self, room_id: str) -> bool:
        """
        tear down the room's connection now; only an ESTABLISHED session can
        be closed, anything else is a no-op
        """
        client, server = self.endpoints(room_id)
        key = session_key(client, server)
        session = self.sessions.get(key)
        if session is None or session.state != TcpState.ESTABLISHED:
            self.debug_log(f"termination of {key} ignored")
            return False
        pending = self.in_flight.pop(key, None)
        if pending is not None:
            pending.cancel()
        conn = TcpConnection(
            room=self.network.room(room_id),
            client=client,
            server=server,
            session=session,
            occupancy=0,
            task=self.simulator.task(f"tcp-close:{key}"),
        )
        step = self.config.step_delay
        self._send_fin(conn)
        conn.task.schedule(step, partial(self._send_server_fin, conn))
        conn.task.schedule(2 * step, partial(self._send_final_ack, conn))
        return True

    # ------------------------------------------------------------------
    # quick message
    # ------------------------------------------------------------------

    def _quick_endpoint(self, who: str) -> Endpoint:
        if who == "server":
            return self.server
        return Endpoint(self.network.room(who).ip, QUICK_MESSAGE_PORT)

    def send_quick_message(self, frm: str, to: str, command) -> Event:
        """single PSH+ACK segment; advances seq only"""
        src = self._quick_endpoint(frm)
        dst = self._quick_endpoint(to)
        session = self.get_session(session_key(src, dst))
        event = self._segment(src, dst, session.seq, session.ack, PSH_ACK,
                              session.state.value, command)
        nbytes = serialized_length(command)
        session.advance(nbytes)
        self.sink.record_traffic(nbytes, self.simulator.now)
        return event

    def announce_listen(self) -> Event:
        """server socket opening, logged once at start-up"""
        segment = TcpSegment(
            src=str(self.server),
            dst="0.0.0.0:0",
            seq=0,
            ack=0,
            flags=("LISTEN",),
            state="LISTEN",
            data="Home Automation Server initialized",
            window=TCP_WINDOW,
        )
        return self.emit(protocol="TCP", message_type="LISTEN", payload=segment,
                         src=self.server, dst=Endpoint("0.0.0.0", 0))

    def reset(self):
        super().reset()
        self.sessions.clear()
        self.in_flight.clear()


def _b64(obj) -> str:
    return base64.b64encode(json.dumps(obj, separators=(",", ":")).encode()).decode()
