"""
xbridge Constants

This module consolidates the protocol constants of the cross-chain transfer
verification engine and the environment-driven logging defaults. Constants are
organized by category for easy reference and maintenance.
"""
import re
from dotenv import dotenv_values

# =============================================================================
# .env SETTINGS
# =============================================================================
# Read once; absent keys fall back to LOGGER_DEFAULTS
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL': 'INFO',
    'LOG_FORMAT': '%(asctime)s %(levelname)-7s %(name)s: %(message)s',
    'LOG_DATE_FORMAT': '%Y-%m-%d %H:%M:%S',
    'LOG_FILE': '',
    'LOG_CONSOLE_HIGHLIGHTING': 'on',
    'LOG_INCLUDE_REQUEST_CONTENT': 'off',
    'LOG_INCLUDE_RESPONSE_CONTENT': 'off',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # rotate at 10 MiB
LOG_BACKUP_COUNT = 5
LOG_MAX_PATH_LENGTH = 320  # longer URLs are truncated in log lines


# WARNING: THE WORD LAYOUT VALUES BELOW ARE A FROZEN WIRE FORMAT SHARED WITH THE
# ON-LEDGER BRIDGE CONTRACTS. CHANGING ANY OF THEM PRODUCES HASHES THAT NO
# DEPLOYED BRIDGE WILL RECOGNIZE.

# ==================================================================================
# CANONICAL HASH WORD LAYOUT
# ==================================================================================
WORD_SIZE = 32                 # Every hash input is a 32-byte word
CHAIN_ID_SIZE = 4              # Bridge-internal chain identifier (bytes4)
ADDRESS_SIZE = 20              # EVM address / Cosmos account hash
ACCOUNT_PADDING = WORD_SIZE - ADDRESS_SIZE
TRANSFER_HASH_FIELDS = 7
TRANSFER_HASH_PREIMAGE_SIZE = WORD_SIZE * TRANSFER_HASH_FIELDS  # 224 bytes

MAX_CHAIN_ID = 0xFFFFFFFF
MAX_UINT256 = (1 << 256) - 1

ZERO_WORD = bytes(WORD_SIZE)


# ==================================================================================
# ADDRESS FORMATS
# ==================================================================================
BECH32_CHARSET = 'qpzry9x8gf2tvdw0s3jn54khce6mua7l'
BECH32_SEPARATOR = '1'
BECH32_CHECKSUM_LENGTH = 6
BECH32_GENERATORS = (0x3b6a57b2, 0x26508e6d, 0x1ea119fa, 0x3d4233dd, 0x2a1462b3)
DEFAULT_COSMOS_HRP = 'terra'

# Canonical text formats exchanged with ledgers and configuration
HASH_PATTERN = re.compile(r'^0x[0-9a-f]{64}$')
UNPREFIXED_HASH_PATTERN = re.compile(r'^[0-9a-f]{64}$')
CHAIN_ID_PATTERN = re.compile(r'^0x[0-9a-fA-F]{1,8}$')
EVM_ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')


# ==================================================================================
# LEDGER QUERY DEFAULTS
# ==================================================================================
# Per-attempt timeout for a single endpoint (seconds)
REQUEST_TIMEOUT = 10.0

# EVM event scanning
EVM_BLOCK_WINDOW = 10_000      # Most-recent-N blocks scanned per monitor run
EVM_LOG_CHUNK = 5_000          # Max blocks per eth_getLogs request

# Cosmos listing / scanning
COSMOS_PAGE_SIZE = 50          # pending_withdrawals page size
COSMOS_MAX_PAGES = 20          # Hard cap on pages fetched per run
COSMOS_DEPOSIT_MAX_NONCE = 200 # Cap on deposit_by_nonce iteration
COSMOS_NONCE_BATCH = 10        # Concurrent deposit_by_nonce queries per batch

# CosmWasm smart query path
COSMOS_SMART_QUERY_PATH = '/cosmwasm/wasm/v1/contract/{contract}/smart/{query}'

# CosmWasm Timestamp serializes as nanoseconds
NANOS_PER_SECOND = 1_000_000_000


# ==================================================================================
# .env SETTING TYPES
# ==================================================================================
_ON_WORDS = frozenset({'1', 'true', 'yes', 'on'})
_OFF_WORDS = frozenset({'0', 'false', 'no', 'off'})


class EnvText(str):
    """A textual `.env` setting that remembers its built-in default."""

    def __new__(cls, value, fallback):
        text = super().__new__(cls, value)
        text._fallback = fallback
        return text

    def default(self):
        return self._fallback


class EnvFlag(int):
    """An on/off `.env` setting. Truthiness is the setting; `default()` the built-in."""

    def __new__(cls, value, fallback):
        flag = super().__new__(cls, 1 if value else 0)
        flag._fallback = fallback
        return flag

    def default(self):
        return self._fallback

    def __repr__(self):
        return 'True' if self else 'False'

    __str__ = __repr__


def _env_text(key):
    fallback = LOGGER_DEFAULTS[key]
    raw = _config.get(key)
    return EnvText(fallback if raw is None else raw, fallback)


def _env_flag(key):
    fallback = LOGGER_DEFAULTS[key].lower() in _ON_WORDS
    raw = (_config.get(key) or '').strip().lower()
    if raw in _ON_WORDS:
        return EnvFlag(True, fallback)
    if raw in _OFF_WORDS:
        return EnvFlag(False, fallback)
    return EnvFlag(fallback, fallback)


LOG_LEVEL = _env_text('LOG_LEVEL')
LOG_FORMAT = _env_text('LOG_FORMAT')
LOG_DATE_FORMAT = _env_text('LOG_DATE_FORMAT')
LOG_FILE = _env_text('LOG_FILE')
LOG_CONSOLE_HIGHLIGHTING = _env_flag('LOG_CONSOLE_HIGHLIGHTING')
LOG_INCLUDE_REQUEST_CONTENT = _env_flag('LOG_INCLUDE_REQUEST_CONTENT')
LOG_INCLUDE_RESPONSE_CONTENT = _env_flag('LOG_INCLUDE_RESPONSE_CONTENT')
