"""
module realize the TCP session state machine and the transport layer generator
"""

from tcp.session import Session, TcpState
from tcp.TransportLayer import TransportLayer
from tcp.TcpSimulator import TcpSimulator, TcpConnection, Command, default_command_policy

__all__ = [
    "Session",
    "TcpState",
    "TransportLayer",
    "TcpSimulator",
    "TcpConnection",
    "Command",
    "default_command_policy",
]
