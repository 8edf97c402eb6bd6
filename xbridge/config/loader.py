"""
xbridge TOML Configuration Loader

Loads the engine, monitor and ledger sections of xbridge.toml with
environment variable overrides. Each section is a dataclass with
``from_dict`` / ``apply_env``; the embedding application may also build a
``BridgeConfig`` directly from a dict.

Environment variable mapping:
    [engine]  request_timeout          → XBRIDGE_REQUEST_TIMEOUT
    [engine]  log_level                → XBRIDGE_LOG_LEVEL
    [monitor] evm_block_window         → XBRIDGE_EVM_BLOCK_WINDOW
    [monitor] cosmos_deposit_max_nonce → XBRIDGE_COSMOS_MAX_NONCE

Example:

    [engine]
    request_timeout = 10.0

    [[ledgers]]
    key = "bsc"
    name = "BNB Smart Chain"
    family = "evm"
    chain_id = "0x00000038"
    bridge_address = "0x..."
    endpoints = ["https://bsc-dataseed1.binance.org", "https://bsc-rpc.publicnode.com"]

    [[ledgers]]
    key = "terra"
    family = "cosmos"
    bridge_address = "terra1..."
    endpoints = ["https://terra-classic-lcd.publicnode.com"]
    native_denoms = ["uluna", "uusd"]
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    CHAIN_ID_PATTERN,
    COSMOS_DEPOSIT_MAX_NONCE,
    COSMOS_MAX_PAGES,
    COSMOS_NONCE_BATCH,
    COSMOS_PAGE_SIZE,
    DEFAULT_COSMOS_HRP,
    EVM_BLOCK_WINDOW,
    EVM_LOG_CHUNK,
    REQUEST_TIMEOUT,
)
from ..exceptions import ConfigurationError
from ..logger import set_log_level

logger = logging.getLogger(__name__)

LEDGER_FAMILIES = ("evm", "cosmos")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """[engine] section."""
    request_timeout: float = REQUEST_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        return cls(
            request_timeout=float(data.get("request_timeout", REQUEST_TIMEOUT)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("XBRIDGE_REQUEST_TIMEOUT"):
            self.request_timeout = float(v)
        if v := os.environ.get("XBRIDGE_LOG_LEVEL"):
            self.log_level = v.upper()


@dataclass
class MonitorConfig:
    """[monitor] section: per-ledger enumeration bounds."""
    evm_block_window: int = EVM_BLOCK_WINDOW
    evm_log_chunk: int = EVM_LOG_CHUNK
    cosmos_deposit_max_nonce: int = COSMOS_DEPOSIT_MAX_NONCE
    cosmos_nonce_batch: int = COSMOS_NONCE_BATCH
    cosmos_page_size: int = COSMOS_PAGE_SIZE
    cosmos_max_pages: int = COSMOS_MAX_PAGES

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        return cls(
            evm_block_window=int(data.get("evm_block_window", EVM_BLOCK_WINDOW)),
            evm_log_chunk=int(data.get("evm_log_chunk", EVM_LOG_CHUNK)),
            cosmos_deposit_max_nonce=int(data.get("cosmos_deposit_max_nonce", COSMOS_DEPOSIT_MAX_NONCE)),
            cosmos_nonce_batch=int(data.get("cosmos_nonce_batch", COSMOS_NONCE_BATCH)),
            cosmos_page_size=int(data.get("cosmos_page_size", COSMOS_PAGE_SIZE)),
            cosmos_max_pages=int(data.get("cosmos_max_pages", COSMOS_MAX_PAGES)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("XBRIDGE_EVM_BLOCK_WINDOW"):
            self.evm_block_window = int(v)
        if v := os.environ.get("XBRIDGE_COSMOS_MAX_NONCE"):
            self.cosmos_deposit_max_nonce = int(v)

    def validate(self) -> None:
        for name in (
            "evm_block_window", "evm_log_chunk", "cosmos_deposit_max_nonce",
            "cosmos_nonce_batch", "cosmos_page_size", "cosmos_max_pages",
        ):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"monitor.{name} must be >= 1")


@dataclass
class LedgerConfig:
    """
    One [[ledgers]] entry.

    ``chain_id`` is the bridge-internal identifier text (``0x`` + up to 8 hex);
    when empty it is discovered from the ledger's bridge contract.
    """
    key: str
    family: str
    name: str = ""
    chain_id: str = ""
    bridge_address: str = ""
    endpoints: List[str] = field(default_factory=list)
    hrp: str = DEFAULT_COSMOS_HRP
    native_denoms: List[str] = field(default_factory=list)
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        endpoints = data.get("endpoints", [])
        if isinstance(endpoints, str):
            endpoints = [e.strip() for e in endpoints.split(",") if e.strip()]
        return cls(
            key=str(data.get("key", "")),
            family=str(data.get("family", "")).lower(),
            name=str(data.get("name", "") or data.get("key", "")),
            chain_id=str(data.get("chain_id", "")),
            bridge_address=str(data.get("bridge_address", "")),
            endpoints=list(endpoints),
            hrp=str(data.get("hrp", DEFAULT_COSMOS_HRP)),
            native_denoms=list(data.get("native_denoms", [])),
            enabled=bool(data.get("enabled", True)),
        )

    def validate(self) -> None:
        if not self.key:
            raise ConfigurationError("ledger entry without key")
        if self.family not in LEDGER_FAMILIES:
            raise ConfigurationError(
                f"ledger {self.key!r}: family must be one of {LEDGER_FAMILIES}, got {self.family!r}"
            )
        if self.chain_id and not CHAIN_ID_PATTERN.match(self.chain_id):
            raise ConfigurationError(f"ledger {self.key!r}: invalid chain_id {self.chain_id!r}")
        if self.family == "cosmos" and not self.hrp:
            raise ConfigurationError(f"ledger {self.key!r}: cosmos ledger requires hrp")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "family": self.family,
            "chain_id": self.chain_id,
            "bridge_address": self.bridge_address,
            "endpoints": list(self.endpoints),
            "hrp": self.hrp,
            "native_denoms": list(self.native_denoms),
            "enabled": self.enabled,
        }


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class BridgeConfig:
    """
    Unified engine configuration.

    Ledger order is significant: it is the tie-break order used when two
    ledgers report the same hash, and the merge order of the monitor.
    """
    engine: EngineConfig = field(default_factory=EngineConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    ledgers: List[LedgerConfig] = field(default_factory=list)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Create BridgeConfig from a parsed TOML dict."""
        return cls(
            engine=EngineConfig.from_dict(data.get("engine", {})),
            monitor=MonitorConfig.from_dict(data.get("monitor", {})),
            ledgers=[LedgerConfig.from_dict(d) for d in data.get("ledgers", [])],
        )

    @classmethod
    def from_file(cls, config_path: str) -> "BridgeConfig":
        """
        Load configuration from a TOML file.

        Args:
            config_path: Path to xbridge.toml

        Returns:
            BridgeConfig instance (defaults when the file does not exist)

        Raises:
            ConfigurationError: if the file is not valid TOML
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.engine.apply_env()
        self.monitor.apply_env()

    # --- queries ----------------------------------------------------------

    @property
    def enabled_ledgers(self) -> List[LedgerConfig]:
        return [ledger for ledger in self.ledgers if ledger.enabled]

    def get_ledger(self, key: str) -> Optional[LedgerConfig]:
        for ledger in self.ledgers:
            if ledger.key == key:
                return ledger
        return None

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all valid

        Raises:
            ConfigurationError: on invalid config
        """
        if self.engine.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be > 0")
        if self.engine.log_level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.engine.log_level}")
        self.monitor.validate()
        seen = set()
        for ledger in self.ledgers:
            ledger.validate()
            if ledger.key in seen:
                raise ConfigurationError(f"Duplicate ledger key: {ledger.key}")
            seen.add(ledger.key)
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "engine": {
                "request_timeout": self.engine.request_timeout,
                "log_level": self.engine.log_level,
            },
            "monitor": {
                "evm_block_window": self.monitor.evm_block_window,
                "evm_log_chunk": self.monitor.evm_log_chunk,
                "cosmos_deposit_max_nonce": self.monitor.cosmos_deposit_max_nonce,
                "cosmos_nonce_batch": self.monitor.cosmos_nonce_batch,
                "cosmos_page_size": self.monitor.cosmos_page_size,
                "cosmos_max_pages": self.monitor.cosmos_max_pages,
            },
            "ledgers": [ledger.to_dict() for ledger in self.ledgers],
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> BridgeConfig:
    """
    Load engine configuration.

    Resolution order:
        1. Explicit *path* argument
        2. XBRIDGE_CONFIG env var
        3. ./xbridge.toml in current directory
        4. Defaults (with env overrides)

    The resulting `engine.log_level` is applied to the process logger.
    """
    if path is None:
        path = os.environ.get("XBRIDGE_CONFIG", "xbridge.toml")

    cfg = BridgeConfig.from_file(path)
    set_log_level(cfg.engine.log_level)
    return cfg
