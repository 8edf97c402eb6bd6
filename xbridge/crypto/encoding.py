"""
xbridge Text Encoding Module

Canonical text forms exchanged with ledgers and configuration:

- Transfer hash: ``0x`` + 64 lowercase hex characters. An unprefixed
  64-character string is accepted and normalized by prefixing.
- Chain identifier: ``0x`` + 8 lowercase hex characters (4 bytes).
- CosmWasm ``Binary`` fields: standard base64.
"""

import base64
import binascii
from typing import Union

from ..constants import (
    CHAIN_ID_PATTERN,
    CHAIN_ID_SIZE,
    HASH_PATTERN,
    MAX_CHAIN_ID,
    UNPREFIXED_HASH_PATTERN,
    WORD_SIZE,
)
from ..exceptions import InvalidChainIdError, InvalidHashError, InvalidInputError


# ══════════════════════════════════════════════════════════════════════
#  CHAIN IDENTIFIER
# ══════════════════════════════════════════════════════════════════════

class ChainIdentifier(int):
    """
    A 4-byte bridge-internal ledger identifier.

    This is the identifier assigned in the bridge's chain registry, NOT the
    ledger's native chain ID (e.g. BSC is ``0x00000038`` here regardless of
    its EIP-155 id).

    Accepts an int, a 4-byte ``bytes``, a 32-byte left-aligned word, or the
    ``0x``-prefixed hex text form.
    """

    def __new__(cls, value: Union[int, bytes, str]):
        if isinstance(value, ChainIdentifier):
            return value
        if isinstance(value, bool):
            raise InvalidChainIdError(f"Chain ID must be an integer, got {value!r}")
        if isinstance(value, (bytes, bytearray)):
            value = _chain_id_from_bytes(bytes(value))
        elif isinstance(value, str):
            value = _chain_id_from_text(value)
        elif not isinstance(value, int):
            raise InvalidChainIdError(f"Unsupported chain ID type: {type(value).__name__}")
        if value < 0 or value > MAX_CHAIN_ID:
            raise InvalidChainIdError(f"Chain ID {value} out of bytes4 range")
        return super().__new__(cls, value)

    def to_bytes4(self) -> bytes:
        return int(self).to_bytes(CHAIN_ID_SIZE, 'big')

    @property
    def hex(self) -> str:
        return '0x' + self.to_bytes4().hex()

    def __repr__(self) -> str:
        return f"ChainIdentifier({self.hex})"

    def __str__(self) -> str:
        return self.hex


def _chain_id_from_bytes(raw: bytes) -> int:
    if len(raw) == CHAIN_ID_SIZE:
        return int.from_bytes(raw, 'big')
    if len(raw) == WORD_SIZE:
        if any(raw[CHAIN_ID_SIZE:]):
            raise InvalidChainIdError("Chain ID word has non-zero trailing bytes")
        return int.from_bytes(raw[:CHAIN_ID_SIZE], 'big')
    raise InvalidChainIdError(
        f"Chain ID must be {CHAIN_ID_SIZE} or {WORD_SIZE} bytes, got {len(raw)}"
    )


def _chain_id_from_text(text: str) -> int:
    text = text.strip()
    if not CHAIN_ID_PATTERN.match(text):
        raise InvalidChainIdError(f"Invalid chain ID text: {text!r}")
    return int(text, 16)


def chain_id_to_hex(chain_id: Union[int, bytes, str]) -> str:
    """Render any accepted chain-id form as ``0x`` + 8 lowercase hex."""
    return ChainIdentifier(chain_id).hex


# ══════════════════════════════════════════════════════════════════════
#  TRANSFER HASH TEXT
# ══════════════════════════════════════════════════════════════════════

def normalize_hash(value: Union[str, bytes]) -> str:
    """
    Normalize a transfer hash to ``0x`` + 64 lowercase hex characters.

    Raises:
        InvalidHashError: if the value is not exactly 32 bytes
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != WORD_SIZE:
            raise InvalidHashError(f"Transfer hash must be {WORD_SIZE} bytes, got {len(value)}")
        return '0x' + bytes(value).hex()
    if not isinstance(value, str):
        raise InvalidHashError(f"Unsupported hash type: {type(value).__name__}")
    trimmed = value.strip().lower()
    if HASH_PATTERN.match(trimmed):
        return trimmed
    if UNPREFIXED_HASH_PATTERN.match(trimmed):
        return '0x' + trimmed
    raise InvalidHashError("Invalid transfer hash format (expected 64 hex chars)")


def hash_to_bytes(value: Union[str, bytes]) -> bytes:
    """Decode a transfer hash in any accepted form to its 32 raw bytes."""
    return bytes.fromhex(normalize_hash(value)[2:])


def is_valid_hash(value) -> bool:
    try:
        normalize_hash(value)
        return True
    except InvalidHashError:
        return False


# ══════════════════════════════════════════════════════════════════════
#  HEX / BASE64
# ══════════════════════════════════════════════════════════════════════

def bytes_to_hex(data: bytes) -> str:
    return '0x' + bytes(data).hex()


def hex_to_bytes(value: str) -> bytes:
    """
    Decode ``0x``-prefixed or bare hex text.

    Raises:
        InvalidInputError: on odd length or non-hex characters
    """
    clean = value[2:] if value[:2] in ('0x', '0X') else value
    if len(clean) % 2 != 0:
        raise InvalidInputError("Hex string must have even length")
    try:
        return bytes.fromhex(clean)
    except ValueError as e:
        raise InvalidInputError(f"Invalid hex string: {e}") from e


def base64_to_bytes(b64: str) -> bytes:
    """Decode a CosmWasm ``Binary`` field."""
    try:
        return base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Invalid base64: {e}") from e


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode('ascii')


def base64_to_hex(b64: str) -> str:
    return bytes_to_hex(base64_to_bytes(b64))


def hex_to_base64(value: str) -> str:
    return bytes_to_base64(hex_to_bytes(value))
