"""
Physical Layer Module
"""

from phy.PhyLayer import PhyLayer


__all__ = [
    "PhyLayer",
]
