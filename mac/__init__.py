"""
Mac Layer Module
"""

from mac.MacLayer import MacLayer
from mac.checksum import generate_checksum

__all__ = [
    "MacLayer",
    "generate_checksum",
]
