"""
Network Layer Module
"""

from net.NetworkLayer import NetworkLayer, ECHO_REQUEST, ECHO_REPLY

__all__ = ["NetworkLayer", "ECHO_REQUEST", "ECHO_REPLY"]
