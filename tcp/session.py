"""
TCP session state machine

CLOSED -> SYN_SENT -> SYN_RECEIVED -> ESTABLISHED -> FIN_WAIT_1 -> LAST_ACK -> CLOSED

every transition checks the current state first; a transition that does not
apply returns False and leaves the session untouched
"""

from enum import Enum


class TcpState(Enum):
    CLOSED = "CLOSED"
    SYN_SENT = "SYN_SENT"
    SYN_RECEIVED = "SYN_RECEIVED"
    ESTABLISHED = "ESTABLISHED"
    FIN_WAIT_1 = "FIN_WAIT_1"
    LAST_ACK = "LAST_ACK"


class Session:
    """维护单个连接的状态与序列号"""

    def __init__(self, key: str, seq: int, ack: int = 0):
        self.key = key
        self.state = TcpState.CLOSED
        self.seq = seq
        self.ack = ack

    def _move(self, expected: TcpState, new: TcpState) -> bool:
        if self.state != expected:
            return False
        self.state = new
        return True

    # --- handshake ---

    def send_syn(self) -> bool:
        if not self._move(TcpState.CLOSED, TcpState.SYN_SENT):
            return False
        self.seq += 1
        return True

    def receive_syn_ack(self, ack_base: int) -> bool:
        """server picks its own initial number; ack never moves backwards"""
        if not self._move(TcpState.SYN_SENT, TcpState.SYN_RECEIVED):
            return False
        self.ack = max(self.ack, ack_base) + 1
        return True

    def send_ack(self) -> bool:
        return self._move(TcpState.SYN_RECEIVED, TcpState.ESTABLISHED)

    # --- data ---

    def send_data(self, nbytes: int) -> bool:
        if self.state != TcpState.ESTABLISHED:
            return False
        self.seq += nbytes
        return True

    def receive_data(self, nbytes: int) -> bool:
        if self.state != TcpState.ESTABLISHED:
            return False
        self.ack += nbytes
        return True

    def advance(self, nbytes: int):
        """quick message: no state involved"""
        self.seq += nbytes

    # --- teardown ---

    def send_fin(self) -> bool:
        if not self._move(TcpState.ESTABLISHED, TcpState.FIN_WAIT_1):
            return False
        self.seq += 1
        return True

    def receive_fin(self) -> bool:
        if not self._move(TcpState.FIN_WAIT_1, TcpState.LAST_ACK):
            return False
        self.ack += 1
        return True

    def send_final_ack(self) -> bool:
        return self._move(TcpState.LAST_ACK, TcpState.CLOSED)

    @property
    def busy(self) -> bool:
        return self.state != TcpState.CLOSED

    def __str__(self):
        return f"[session:{self.key} {self.state.value} seq={self.seq} ack={self.ack}]"
