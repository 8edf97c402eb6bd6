"""
Canonical Transfer Hash Codec

The transfer hash identifies one transfer on every ledger of the bridge. It is
computed independently by the bridge contracts on each ledger family, so the
layout below is a frozen wire format:

    keccak256(
        srcChain    bytes32   bytes4 chain id, left-aligned, zero-filled
        destChain   bytes32   bytes4 chain id, left-aligned, zero-filled
        srcAccount  bytes32   20-byte account, right-aligned, zero-padded
        destAccount bytes32   20-byte account, right-aligned, zero-padded
        token       bytes32   account-style word or keccak256(denom)
        amount      uint256   big-endian, destination decimals
        nonce       uint256   big-endian
    )

i.e. the Solidity ``abi.encode`` of the seven fields, 224 bytes in total.
"""

from typing import Union

from .encoding import ChainIdentifier
from .hashing import keccak256
from ..constants import (
    ACCOUNT_PADDING,
    ADDRESS_SIZE,
    CHAIN_ID_SIZE,
    MAX_UINT256,
    TRANSFER_HASH_PREIMAGE_SIZE,
    WORD_SIZE,
)
from ..exceptions import InvalidAddressError, InvalidAmountError

ChainLike = Union[ChainIdentifier, int, bytes, str]


# ══════════════════════════════════════════════════════════════════════
#  WORD ENCODERS
# ══════════════════════════════════════════════════════════════════════

def chain_id_to_word(chain_id: ChainLike) -> bytes:
    """
    Encode a chain identifier as ``bytes32(bytes4(id))``.

    The 4 bytes are LEFT-aligned and the remaining 28 bytes are zero.

    Raises:
        InvalidChainIdError: if the id does not fit in 4 bytes
    """
    return ChainIdentifier(chain_id).to_bytes4() + bytes(WORD_SIZE - CHAIN_ID_SIZE)


def word_to_chain_id(word: bytes) -> ChainIdentifier:
    """Inverse of :func:`chain_id_to_word`."""
    return ChainIdentifier(bytes(word))


def account_to_word(account: bytes) -> bytes:
    """
    Encode an account as a 32-byte canonical word.

    A 20-byte account (EVM address or Cosmos account hash) is left-padded with
    12 zero bytes. A 32-byte value is accepted only if it is already canonical,
    i.e. its 12 leading bytes are zero.

    Raises:
        InvalidAddressError: on any other length or non-zero padding
    """
    account = bytes(account)
    if len(account) == ADDRESS_SIZE:
        return bytes(ACCOUNT_PADDING) + account
    if len(account) == WORD_SIZE:
        if any(account[:ACCOUNT_PADDING]):
            raise InvalidAddressError("Account word has non-zero padding in first 12 bytes")
        return account
    raise InvalidAddressError(
        f"Account must be {ADDRESS_SIZE} or {WORD_SIZE} bytes, got {len(account)}"
    )


def word_to_account(word: bytes) -> bytes:
    """Extract the 20-byte account from a canonical account word."""
    return account_to_word(word)[ACCOUNT_PADDING:]


def token_to_word(token: bytes) -> bytes:
    """
    Encode a token identifier as a 32-byte word.

    Contract tokens (ERC-20 / CW20) are given as their 20-byte address and
    encoded like accounts. A 32-byte value is taken as an already-encoded
    token word: native-denom words are keccak digests and carry no padding.

    Raises:
        InvalidAddressError: on any other length
    """
    token = bytes(token)
    if len(token) == ADDRESS_SIZE:
        return bytes(ACCOUNT_PADDING) + token
    if len(token) == WORD_SIZE:
        return token
    raise InvalidAddressError(
        f"Token must be {ADDRESS_SIZE} or {WORD_SIZE} bytes, got {len(token)}"
    )


def denom_to_word(denom: str) -> bytes:
    """Token word of a native asset: ``keccak256(denom)``, e.g. ``"uluna"``."""
    if not denom:
        raise InvalidAddressError("Native denomination must be non-empty")
    return keccak256(denom)


def uint256_to_word(value: int, field: str = "value") -> bytes:
    """Big-endian 32-byte encoding of an unsigned 256-bit integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(f"{field} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise InvalidAmountError(f"{field} {value} outside uint256 range")
    return value.to_bytes(WORD_SIZE, 'big')


# ══════════════════════════════════════════════════════════════════════
#  TRANSFER HASH
# ══════════════════════════════════════════════════════════════════════

def transfer_hash_preimage(
    src_chain: ChainLike,
    dest_chain: ChainLike,
    src_account: bytes,
    dest_account: bytes,
    token: bytes,
    amount: int,
    nonce: int,
) -> bytes:
    """Build the 224-byte buffer hashed by :func:`compute_transfer_hash`."""
    buffer = b''.join((
        chain_id_to_word(src_chain),
        chain_id_to_word(dest_chain),
        account_to_word(src_account),
        account_to_word(dest_account),
        token_to_word(token),
        uint256_to_word(amount, "amount"),
        uint256_to_word(nonce, "nonce"),
    ))
    assert len(buffer) == TRANSFER_HASH_PREIMAGE_SIZE
    return buffer


def compute_transfer_hash(
    src_chain: ChainLike,
    dest_chain: ChainLike,
    src_account: bytes,
    dest_account: bytes,
    token: bytes,
    amount: int,
    nonce: int,
) -> bytes:
    """
    Compute the canonical transfer hash.

    Args:
        src_chain: Source chain identifier (id, bytes4 or chain word)
        dest_chain: Destination chain identifier
        src_account: Source account (20 bytes or canonical word)
        dest_account: Destination account (20 bytes or canonical word)
        token: Token (20-byte address or 32-byte token word)
        amount: Amount in the destination ledger's decimals
        nonce: Deposit nonce on the source ledger

    Returns:
        32-byte Keccak-256 digest
    """
    return keccak256(transfer_hash_preimage(
        src_chain, dest_chain, src_account, dest_account, token, amount, nonce,
    ))


def compute_transfer_hash_from_deposit(
    this_chain: ChainLike,
    dest_chain: ChainLike,
    src_account: bytes,
    dest_account: bytes,
    token: bytes,
    amount: int,
    nonce: int,
) -> bytes:
    """Hash as seen by the source ledger, which only knows its own id."""
    return compute_transfer_hash(
        this_chain, dest_chain, src_account, dest_account, token, amount, nonce,
    )


def compute_transfer_hash_from_withdraw(
    src_chain: ChainLike,
    this_chain: ChainLike,
    src_account: bytes,
    dest_account: bytes,
    token: bytes,
    amount: int,
    nonce: int,
) -> bytes:
    """Hash as seen by the destination ledger, which only knows its own id."""
    return compute_transfer_hash(
        src_chain, this_chain, src_account, dest_account, token, amount, nonce,
    )
