from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union
from loguru import logger

from explorer_indexer.contracts import ContractResolver, load_abis
from explorer_indexer.data_manager import BaseDataManager, get_data_manager
from explorer_indexer.data_types import ChainType
from explorer_indexer.indexer import NodeClient
from explorer_indexer.services.locks import AddressLocks
from explorer_indexer.services.native_contracts import NativeContracts


@dataclass
class IndexerContext:
    """Capabilities handed to every Address, Addresses, Tx, TxTrace and Block at construction"""
    node: NodeClient
    resolver: ContractResolver
    data_manager: BaseDataManager
    native_contracts: NativeContracts
    locks: AddressLocks = field(default_factory=AddressLocks)
    chain: str = ChainType.ETHEREUM.value
    trace: bool = True
    log: Any = logger


def build_context(config, config_dir: Union[str, Path, None] = None) -> IndexerContext:
    """Wire node client, contract resolver, storage and native contracts from a loaded config"""
    chain_type = ChainType(config.chain.name)
    node = NodeClient(list(config.chain.rpc_urls), chain_type)
    abis = load_abis(dict(config.contracts.abis), base_dir=config_dir)
    storage_config = dict(config.storage)
    data_manager = get_data_manager(
        storage_type=storage_config.get('type', 'memory'),
        chain_name=chain_type.value,
        config=storage_config,
    )
    return IndexerContext(
        node=node,
        resolver=ContractResolver(node, abis=abis, log=logger.bind(component="contracts")),
        data_manager=data_manager,
        native_contracts=NativeContracts.for_chain(chain_type, dict(config.native_contracts)),
        chain=chain_type.value,
        trace=bool(config.chain.trace),
        log=logger.bind(chain=chain_type.value),
    )
