from typing import Dict, Optional
from explorer_indexer.data_types import ChainType, NATIVE_CONTRACTS_MAPPING


class NativeContracts:
    """Pre-configured native contracts, name -> address"""

    def __init__(self, contracts: Optional[Dict[str, str]] = None):
        self.contracts = {name: address.lower() for name, address in (contracts or {}).items()}
        self.names = {address: name for name, address in self.contracts.items()}

    @classmethod
    def for_chain(cls, chain_type: ChainType, overrides: Optional[Dict[str, str]] = None) -> 'NativeContracts':
        contracts = dict(NATIVE_CONTRACTS_MAPPING.get(chain_type, {}))
        contracts.update(overrides or {})
        return cls(contracts)

    def is_native_contract(self, address: Optional[str]) -> Optional[str]:
        """Name of the native contract at address, None for ordinary addresses"""
        if not address:
            return None
        return self.names.get(address.lower())

    def get_native_address(self, name: str) -> Optional[str]:
        return self.contracts.get(name)
