"""
xbridge Crypto Hashing Module

Keccak-256 is the only digest of the bridge protocol: it derives transfer
hashes, native token words and EVM event topics.
"""

from typing import Union

from eth_utils import keccak


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes, or a text string hashed as its UTF-8 encoding

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        return keccak(text=data)
    return keccak(primitive=bytes(data))


def keccak256_hex(data: Union[bytes, str]) -> str:
    """
    Compute Keccak-256 hash and return as hex string.

    Returns:
        Lowercase hex string with 0x prefix
    """
    return '0x' + keccak256(data).hex()


def event_topic(signature: str) -> str:
    """Topic-0 of an EVM event, e.g. ``event_topic("Deposit(bytes4,...)")``."""
    return keccak256_hex(signature)
