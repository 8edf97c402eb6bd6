"""
xbridge Cross-Chain Transfer Verification Package

Core imports are lazily loaded so the codecs stay usable without the
network stack. For direct module access, import from submodules:

    from xbridge.crypto import compute_transfer_hash, cosmos_address_to_word
    from xbridge.bridge import TransferResolver, HashMonitor
    from xbridge.config import load_config
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'compute_transfer_hash':
        from .crypto.transfer_hash import compute_transfer_hash
        return compute_transfer_hash
    elif name == 'load_config':
        from .config.loader import load_config
        return load_config
    elif name in ('TransferResolver', 'BrokenTransferPlanner', 'HashMonitor', 'LedgerSet', 'ClientRegistry'):
        from . import bridge
        return getattr(bridge, name)
    raise AttributeError(f"module 'xbridge' has no attribute {name!r}")

__all__ = [
    'compute_transfer_hash',
    'load_config',
    'ClientRegistry',
    'LedgerSet',
    'TransferResolver',
    'BrokenTransferPlanner',
    'HashMonitor',
]
