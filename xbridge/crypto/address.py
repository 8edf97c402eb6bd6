"""
xbridge Crypto Address Module

Bridges the two account formats of the participating ledger families onto the
32-byte canonical account word used by the transfer hash:

- EVM: ``0x`` + 40 hex, rendered with the EIP-55 checksum
- Cosmos: bech32 text (human-readable prefix + ``1`` + data + 6-symbol checksum)

Decoding bech32 does NOT verify the checksum; it is strict about the data
length instead (exactly 20 bytes, no witness-version byte). Encoding always
regenerates a valid checksum. Decode uses non-padded 5->8 bit conversion while
encode uses padded 8->5 conversion.
"""

from enum import Enum
from typing import List, Optional, Tuple

from eth_utils import is_hex_address, to_checksum_address

from .hashing import keccak256
from .transfer_hash import account_to_word, denom_to_word, word_to_account
from ..constants import (
    ACCOUNT_PADDING,
    ADDRESS_SIZE,
    BECH32_CHARSET,
    BECH32_CHECKSUM_LENGTH,
    BECH32_GENERATORS,
    BECH32_SEPARATOR,
    DEFAULT_COSMOS_HRP,
    EVM_ADDRESS_PATTERN,
    WORD_SIZE,
)
from ..exceptions import InvalidAddressError


class AddressType(Enum):
    """Address type enumeration."""
    EVM = "evm"          # 0x-prefixed hex, EIP-55 checksum
    BECH32 = "bech32"    # hrp1... Cosmos account


# ══════════════════════════════════════════════════════════════════════
#  BECH32 PRIMITIVES
# ══════════════════════════════════════════════════════════════════════

def convert_bits(data: List[int], from_bits: int, to_bits: int, pad: bool) -> List[int]:
    """
    Regroup a sequence of ``from_bits``-wide values into ``to_bits``-wide values.

    With ``pad=False`` leftover bits must be fewer than ``from_bits`` and all
    zero, otherwise the input is rejected.
    """
    acc = 0
    bits = 0
    result = []
    max_v = (1 << to_bits) - 1
    for value in data:
        if value < 0 or value >> from_bits:
            raise InvalidAddressError("Invalid value for bit conversion")
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            result.append((acc >> bits) & max_v)
    if pad:
        if bits > 0:
            result.append((acc << (to_bits - bits)) & max_v)
    elif bits >= from_bits or ((acc << (to_bits - bits)) & max_v):
        raise InvalidAddressError("Invalid padding in bit conversion")
    return result


def bech32_polymod(values: List[int]) -> int:
    chk = 1
    for v in values:
        top = chk >> 25
        chk = ((chk & 0x1ffffff) << 5) ^ v
        for i in range(5):
            if (top >> i) & 1:
                chk ^= BECH32_GENERATORS[i]
    return chk


def bech32_hrp_expand(hrp: str) -> List[int]:
    return [ord(ch) >> 5 for ch in hrp] + [0] + [ord(ch) & 31 for ch in hrp]


def bech32_create_checksum(hrp: str, data5: List[int]) -> List[int]:
    values = bech32_hrp_expand(hrp) + list(data5) + [0] * BECH32_CHECKSUM_LENGTH
    polymod = bech32_polymod(values) ^ 1
    return [(polymod >> (5 * (5 - i))) & 31 for i in range(BECH32_CHECKSUM_LENGTH)]


def bech32_split(address: str) -> Tuple[str, List[int]]:
    """
    Split a bech32 string into its prefix and the 5-bit data values.

    The returned data still carries the trailing checksum symbols.
    """
    lower = address.strip().lower()
    sep = lower.rfind(BECH32_SEPARATOR)
    if sep < 1:
        raise InvalidAddressError("Invalid bech32: no separator")
    hrp = lower[:sep]
    values = []
    for ch in lower[sep + 1:]:
        idx = BECH32_CHARSET.find(ch)
        if idx == -1:
            raise InvalidAddressError(f"Invalid bech32 character: {ch!r}")
        values.append(idx)
    if len(values) < BECH32_CHECKSUM_LENGTH:
        raise InvalidAddressError("Invalid bech32: data shorter than checksum")
    return hrp, values


def verify_bech32_checksum(address: str) -> bool:
    """Check the checksum of a bech32 string. Never raises."""
    try:
        hrp, values = bech32_split(address)
    except InvalidAddressError:
        return False
    return bech32_polymod(bech32_hrp_expand(hrp) + values) == 1


# ══════════════════════════════════════════════════════════════════════
#  COSMOS (BECH32) ACCOUNTS
# ══════════════════════════════════════════════════════════════════════

def decode_bech32_account(address: str) -> Tuple[str, bytes]:
    """
    Decode a Cosmos bech32 address to ``(hrp, 20-byte account)``.

    The 6 checksum symbols are dropped unverified and the remaining 5-bit
    groups are packed to bytes without a witness-version byte.

    Raises:
        InvalidAddressError: if the payload is not exactly 20 bytes
    """
    hrp, values = bech32_split(address)
    raw = convert_bits(values[:-BECH32_CHECKSUM_LENGTH], 5, 8, False)
    if len(raw) != ADDRESS_SIZE:
        raise InvalidAddressError(f"Expected {ADDRESS_SIZE}-byte account hash, got {len(raw)} bytes")
    return hrp, bytes(raw)


def cosmos_address_to_word(address: str, hrp: Optional[str] = None) -> bytes:
    """
    Convert a bech32 address to its canonical 32-byte account word.

    Args:
        address: bech32 text, e.g. ``terra1...``
        hrp: Expected human-readable prefix; not checked when None
    """
    actual_hrp, raw = decode_bech32_account(address)
    if hrp is not None and actual_hrp != hrp.lower():
        raise InvalidAddressError(f"Expected prefix {hrp!r}, got {actual_hrp!r}")
    return account_to_word(raw)


def encode_bech32_account(account: bytes, hrp: str = DEFAULT_COSMOS_HRP) -> str:
    """Encode a 20-byte account as bech32 text with a fresh checksum."""
    account = bytes(account)
    if len(account) != ADDRESS_SIZE:
        raise InvalidAddressError(f"Account must be {ADDRESS_SIZE} bytes, got {len(account)}")
    hrp = hrp.lower()
    data5 = convert_bits(list(account), 8, 5, True)
    checksum = bech32_create_checksum(hrp, data5)
    return hrp + BECH32_SEPARATOR + ''.join(BECH32_CHARSET[v] for v in data5 + checksum)


def word_to_cosmos_address(word: bytes, hrp: str = DEFAULT_COSMOS_HRP) -> str:
    """
    Convert a canonical account word back to bech32 text.

    Raises:
        InvalidAddressError: if the word is not 32 bytes or its 12 high bytes
            are not all zero ("non-zero padding")
    """
    word = bytes(word)
    if len(word) != WORD_SIZE:
        raise InvalidAddressError(f"Expected {WORD_SIZE}-byte word, got {len(word)}")
    if any(word[:ACCOUNT_PADDING]):
        raise InvalidAddressError("Invalid word for Cosmos address: non-zero padding in first 12 bytes")
    return encode_bech32_account(word[ACCOUNT_PADDING:], hrp)


# ══════════════════════════════════════════════════════════════════════
#  EVM ACCOUNTS
# ══════════════════════════════════════════════════════════════════════

def evm_address_to_word(address) -> bytes:
    """
    Convert an EVM address (hex text or 20 raw bytes) to its account word.

    Raises:
        InvalidAddressError: if the address is not exactly 20 bytes
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != ADDRESS_SIZE:
            raise InvalidAddressError(f"EVM address must be {ADDRESS_SIZE} bytes, got {len(address)}")
        return account_to_word(bytes(address))
    if not isinstance(address, str) or not EVM_ADDRESS_PATTERN.match(address.strip()):
        raise InvalidAddressError(f"Invalid EVM address: {address!r}")
    return account_to_word(bytes.fromhex(address.strip()[2:]))


def word_to_evm_address(word: bytes) -> str:
    """Render an account word as an EIP-55 checksummed EVM address."""
    return to_checksum_address(word_to_account(word))


# ══════════════════════════════════════════════════════════════════════
#  DISPATCH HELPERS
# ══════════════════════════════════════════════════════════════════════

def get_address_type(address: str) -> AddressType:
    if isinstance(address, str):
        if is_hex_address(address.strip()):
            return AddressType.EVM
        if BECH32_SEPARATOR in address:
            return AddressType.BECH32
    raise InvalidAddressError(f"Unknown address format: {address!r}")


def parse_account(address: str, hrp: Optional[str] = None) -> bytes:
    """Convert an EVM or bech32 address text to its canonical account word."""
    if get_address_type(address) == AddressType.EVM:
        return evm_address_to_word(address)
    return cosmos_address_to_word(address, hrp)


def format_account(word: bytes, hrp: Optional[str] = None) -> str:
    """Render an account word in the native text form of a ledger family."""
    if hrp:
        return word_to_cosmos_address(word, hrp)
    return word_to_evm_address(word)


def token_text_to_word(token: str, hrp: str = DEFAULT_COSMOS_HRP) -> bytes:
    """
    Token word of a token as reported by a Cosmos bridge.

    A CW20 contract address (bech32 with the ledger's prefix) decodes to an
    account word; anything else is a native denomination and hashes to
    ``keccak256(denom)``. A CW20-looking string that fails to decode falls
    back to the denomination rule.
    """
    prefix = hrp.lower() + BECH32_SEPARATOR
    if token.lower().startswith(prefix) and len(token) >= len(prefix) + 38:
        try:
            return cosmos_address_to_word(token, hrp)
        except InvalidAddressError:
            pass
    return denom_to_word(token)


def match_denom(token_word: bytes, denoms: List[str]) -> Optional[str]:
    """Return the denomination whose keccak word equals ``token_word``."""
    for denom in denoms:
        if keccak256(denom) == bytes(token_word):
            return denom
    return None
