"""
xbridge Configuration

Loads xbridge.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    BridgeConfig,
    EngineConfig,
    MonitorConfig,
    LedgerConfig,
    load_config,
)

__all__ = [
    "BridgeConfig",
    "EngineConfig",
    "MonitorConfig",
    "LedgerConfig",
    "load_config",
]
