"""
mock frame / packet checksum shared by the data-link, network and transport
generators

format: 4 bytes, hex encoded -> 8 lowercase hex chars
"""

import numpy as np

CHECKSUM_BYTES = 4


def generate_checksum(rng: np.random.Generator) -> str:
    """
    生成随机校验和

    Args:
        rng: generator of the running simulation

    Returns:
        checksum text, e.g. '0a9f3c11'
    """
    raw = rng.integers(0, 256, size=CHECKSUM_BYTES, dtype=np.uint8)
    return bytes(raw).hex()
