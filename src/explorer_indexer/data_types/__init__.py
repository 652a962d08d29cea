from enum import Enum
from typing import Dict
from .base import DocumentModel
from .blocks import BlockSummary
from .traces import InternalTransaction
from .logs import Log, Event
from .addresses import (
    AddressDocument,
    AddressType,
    DESTROYED_BY,
    LAST_BLOCK_MINED,
)
from .transactions import (
    Receipt,
    TokenAddress,
    Transaction,
    TxType,
)

# Add new chains here. Applicable for all chains!
class ChainType(Enum):
    ETHEREUM = "ethereum"
    RSK = "rsk"
    RSK_TESTNET = "rsk_testnet"

# Storage collections and their key fields
COLLECTIONS: Dict[str, str] = {
    "addresses": "address",
    "txs": "hash",
    "blocks": "hash",
}

_RSK_NATIVE_CONTRACTS = {
    "bridge": "0x0000000000000000000000000000000001000006",
    "remasc": "0x0000000000000000000000000000000001000008",
}

# Mapping of ChainType to its native (precompiled) contracts, name -> address
# Add new chains here. Values from the chain config extend or override these.
NATIVE_CONTRACTS_MAPPING: Dict[ChainType, Dict[str, str]] = {
    ChainType.ETHEREUM: {},
    ChainType.RSK: _RSK_NATIVE_CONTRACTS,
    ChainType.RSK_TESTNET: _RSK_NATIVE_CONTRACTS,
}
