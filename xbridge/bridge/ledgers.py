"""
xbridge Ledger Set

Ordered collection of ledger adapters built from configuration. The order is
the configuration order; resolvers and the monitor rely on it for
deterministic tie-breaks.
"""

import asyncio
from typing import Dict, Iterator, List, Optional, Type

from .adapters import BaseLedgerAdapter, CosmosLedgerAdapter, EvmLedgerAdapter
from .clients import ClientRegistry
from .types import LedgerFamily
from ..config.loader import BridgeConfig, LedgerConfig, MonitorConfig
from ..crypto.encoding import ChainIdentifier
from ..exceptions import ConfigurationError
from ..logger import get_logger

logger = get_logger(__name__)


ADAPTER_CLASSES: Dict[LedgerFamily, Type[BaseLedgerAdapter]] = {
    LedgerFamily.EVM: EvmLedgerAdapter,
    LedgerFamily.COSMOS: CosmosLedgerAdapter,
}


def create_adapter(
    config: LedgerConfig,
    registry: ClientRegistry,
    monitor: Optional[MonitorConfig] = None,
    timeout: Optional[float] = None,
) -> BaseLedgerAdapter:
    """
    Instantiate the adapter variant named by ``config.family``.

    Raises:
        ConfigurationError: on an unknown ledger family
    """
    try:
        family = LedgerFamily(config.family)
    except ValueError as e:
        raise ConfigurationError(f"ledger {config.key!r}: unknown family {config.family!r}") from e
    return ADAPTER_CLASSES[family](config, registry, monitor, timeout)


class LedgerSet:
    """
    The configured ledgers, in configuration order.

    Example:
        >>> async with ClientRegistry() as registry:
        ...     ledgers = LedgerSet.from_config(load_config(), registry)
        ...     await ledgers.discover_chain_ids()
    """

    def __init__(self, adapters: List[BaseLedgerAdapter]):
        keys = [adapter.key for adapter in adapters]
        if len(set(keys)) != len(keys):
            raise ConfigurationError(f"duplicate ledger keys: {keys}")
        self._adapters = list(adapters)

    @classmethod
    def from_config(cls, config: BridgeConfig, registry: ClientRegistry) -> "LedgerSet":
        """Build adapters for every enabled ledger of ``config``."""
        config.validate()
        return cls([
            create_adapter(ledger, registry, config.monitor, config.engine.request_timeout)
            for ledger in config.enabled_ledgers
        ])

    def __iter__(self) -> Iterator[BaseLedgerAdapter]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)

    @property
    def keys(self) -> List[str]:
        return [adapter.key for adapter in self._adapters]

    def get(self, key: str) -> Optional[BaseLedgerAdapter]:
        for adapter in self._adapters:
            if adapter.key == key:
                return adapter
        return None

    def by_chain_id(self, chain_id) -> Optional[BaseLedgerAdapter]:
        """
        The ledger registered under ``chain_id``, or None.

        Only configured or already discovered identifiers are considered;
        call :meth:`discover_chain_ids` first to fill the rest.
        """
        target = ChainIdentifier(chain_id)
        for adapter in self._adapters:
            if adapter.chain_id is not None and adapter.chain_id == target:
                return adapter
        return None

    def by_family(self, family: LedgerFamily) -> List[BaseLedgerAdapter]:
        return [adapter for adapter in self._adapters if adapter.family == family]

    async def discover_chain_ids(self) -> Dict[str, ChainIdentifier]:
        """
        Fill missing chain identifiers by asking each bridge contract.

        Ledgers are queried concurrently; a ledger that cannot be reached
        keeps an unknown identifier.

        Returns:
            Mapping of ledger key to chain identifier for every known ledger
        """
        pending = [adapter for adapter in self._adapters if adapter.chain_id is None]
        if pending:
            await asyncio.gather(*(adapter.resolve_chain_id() for adapter in pending))
            unresolved = [adapter.key for adapter in pending if adapter.chain_id is None]
            if unresolved:
                logger.warning(f"Chain id discovery failed for: {', '.join(unresolved)}")

        known: Dict[str, ChainIdentifier] = {}
        owners: Dict[int, str] = {}
        for adapter in self._adapters:
            if adapter.chain_id is None:
                continue
            if int(adapter.chain_id) in owners:
                logger.warning(
                    f"Ledgers {owners[int(adapter.chain_id)]} and {adapter.key} share chain id {adapter.chain_id.hex}"
                )
            else:
                owners[int(adapter.chain_id)] = adapter.key
            known[adapter.key] = adapter.chain_id
        return known

    async def discover_registered_chains(self) -> Optional[List[ChainIdentifier]]:
        """
        Chain ids registered on-chain, read through the first queryable EVM
        ledger's chain registry. None when no seed ledger answers.
        """
        for adapter in self.by_family(LedgerFamily.EVM):
            if not adapter.is_queryable:
                continue
            result = await adapter.get_registered_chains()
            if result.value is not None:
                return result.value
            logger.warning(f"[{adapter.key}] chain registry unavailable")
            return None
        return None
