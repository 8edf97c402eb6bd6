"""
xbridge Crypto Module

This module provides the encoding primitives shared by every ledger family:
- Keccak-256 hashing
- Canonical transfer hash word layout
- EVM and bech32 account conversion
- Transfer hash / chain identifier text formats
"""

from .hashing import keccak256, keccak256_hex, event_topic
from .encoding import (
    ChainIdentifier,
    chain_id_to_hex,
    normalize_hash,
    hash_to_bytes,
    is_valid_hash,
    bytes_to_hex,
    hex_to_bytes,
    base64_to_bytes,
    bytes_to_base64,
    base64_to_hex,
    hex_to_base64,
)
from .transfer_hash import (
    chain_id_to_word,
    word_to_chain_id,
    account_to_word,
    word_to_account,
    token_to_word,
    denom_to_word,
    uint256_to_word,
    transfer_hash_preimage,
    compute_transfer_hash,
    compute_transfer_hash_from_deposit,
    compute_transfer_hash_from_withdraw,
)
from .address import (
    AddressType,
    convert_bits,
    verify_bech32_checksum,
    decode_bech32_account,
    encode_bech32_account,
    cosmos_address_to_word,
    word_to_cosmos_address,
    evm_address_to_word,
    word_to_evm_address,
    get_address_type,
    parse_account,
    format_account,
    token_text_to_word,
    match_denom,
)

__all__ = [
    # Hashing
    "keccak256",
    "keccak256_hex",
    "event_topic",
    # Text formats
    "ChainIdentifier",
    "chain_id_to_hex",
    "normalize_hash",
    "hash_to_bytes",
    "is_valid_hash",
    "bytes_to_hex",
    "hex_to_bytes",
    "base64_to_bytes",
    "bytes_to_base64",
    "base64_to_hex",
    "hex_to_base64",
    # Transfer hash
    "chain_id_to_word",
    "word_to_chain_id",
    "account_to_word",
    "word_to_account",
    "token_to_word",
    "denom_to_word",
    "uint256_to_word",
    "transfer_hash_preimage",
    "compute_transfer_hash",
    "compute_transfer_hash_from_deposit",
    "compute_transfer_hash_from_withdraw",
    # Addresses
    "AddressType",
    "convert_bits",
    "verify_bech32_checksum",
    "decode_bech32_account",
    "encode_bech32_account",
    "cosmos_address_to_word",
    "word_to_cosmos_address",
    "evm_address_to_word",
    "word_to_evm_address",
    "get_address_type",
    "parse_account",
    "format_account",
    "token_text_to_word",
    "match_denom",
]
