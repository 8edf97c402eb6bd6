"""
xbridge Encoding Test Suite

Tests for chain identifier and transfer hash text formats and the
hex / base64 helpers used on the LCD wire.

Run with:
    pytest tests/test_encoding.py -v
"""

import pytest

from xbridge.crypto.encoding import (
    ChainIdentifier,
    base64_to_bytes,
    base64_to_hex,
    bytes_to_base64,
    chain_id_to_hex,
    hash_to_bytes,
    hex_to_base64,
    hex_to_bytes,
    is_valid_hash,
    normalize_hash,
)
from xbridge.exceptions import InvalidChainIdError, InvalidHashError, InvalidInputError

HASH = "0x" + "ab" * 32


class TestChainIdentifier:

    def test_from_int(self):
        assert ChainIdentifier(56).hex == "0x00000038"

    def test_from_text(self):
        assert ChainIdentifier("0x00000038") == 56
        assert ChainIdentifier("0x38") == 56

    def test_from_bytes4_and_word(self):
        assert ChainIdentifier(bytes.fromhex("00000002")) == 2
        assert ChainIdentifier(bytes.fromhex("00000002") + bytes(28)) == 2

    def test_is_idempotent(self):
        chain = ChainIdentifier(7)
        assert ChainIdentifier(chain) is chain

    def test_str_is_text_form(self):
        assert str(ChainIdentifier(1)) == "0x00000001"
        assert chain_id_to_hex(b"\x00\x00\x00\x01") == "0x00000001"

    def test_to_bytes4(self):
        assert ChainIdentifier(0xdeadbeef).to_bytes4() == bytes.fromhex("deadbeef")

    @pytest.mark.parametrize("bad", [-1, 0x1_0000_0000, "0x123456789", "38", b"\x01\x02", True, 1.0])
    def test_rejects_invalid(self, bad):
        with pytest.raises(InvalidChainIdError):
            ChainIdentifier(bad)

    def test_usable_as_int_key(self):
        assert {ChainIdentifier(1): "a"}[1] == "a"


class TestNormalizeHash:

    def test_prefixed_lowercase(self):
        assert normalize_hash(HASH) == HASH

    def test_unprefixed_gets_prefix(self):
        assert normalize_hash("ab" * 32) == HASH

    def test_uppercase_is_lowered(self):
        assert normalize_hash("0x" + "AB" * 32) == HASH

    def test_whitespace_trimmed(self):
        assert normalize_hash(f"  {HASH}\n") == HASH

    def test_raw_bytes(self):
        assert normalize_hash(bytes.fromhex("ab" * 32)) == HASH
        assert hash_to_bytes(HASH) == bytes.fromhex("ab" * 32)

    @pytest.mark.parametrize("bad", ["0x1234", "0x" + "ab" * 31, "0x" + "gg" * 32, "", bytes(31), 42])
    def test_rejects_malformed(self, bad):
        with pytest.raises(InvalidHashError):
            normalize_hash(bad)
        assert not is_valid_hash(bad)

    def test_invalid_hash_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_hash("nope")


class TestHexBase64:

    def test_hex_round_trip(self):
        assert hex_to_bytes("0x0102") == b"\x01\x02"
        assert hex_to_bytes("0102") == b"\x01\x02"

    def test_hex_rejects_odd_length(self):
        with pytest.raises(InvalidInputError):
            hex_to_bytes("0x123")

    def test_base64_binary_fields(self):
        assert bytes_to_base64(b"\x00\x00\x00\x02") == "AAAAAg=="
        assert base64_to_bytes("AAAAAg==") == b"\x00\x00\x00\x02"

    def test_base64_hex_conversion(self):
        assert base64_to_hex(hex_to_base64(HASH)) == HASH

    def test_base64_rejects_garbage(self):
        with pytest.raises(InvalidInputError):
            base64_to_bytes("not*base64")
