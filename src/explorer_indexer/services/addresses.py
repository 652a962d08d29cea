from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING

from .address import Address

if TYPE_CHECKING:
    from explorer_indexer.context import IndexerContext


class Addresses:
    """Registry of the Address objects of one scope (one Tx.fetch() or one block).

    add() never builds two instances for the same hash; create_address() builds
    a transient Address that stays outside the registry and its save().
    """

    def __init__(self, context: 'IndexerContext', **defaults: Any):
        self.context = context
        self.defaults = defaults
        self.addresses: Dict[str, Address] = {}

    def create_address(self, address: str, **options: Any) -> Address:
        return Address(address, self.context, **{**self.defaults, **options})

    def add(self, address: str, **options: Any) -> Address:
        key = address.lower()
        existing = self.addresses.get(key)
        if existing is not None:
            deployment = options.get('deployment')
            if deployment and not existing.deployment:
                existing.deployment = deployment
            return existing
        created = self.create_address(address, **options)
        self.addresses[key] = created
        return created

    def get(self, address: str) -> Optional[Address]:
        return self.addresses.get(address.lower())

    def list(self) -> List[Address]:
        return list(self.addresses.values())

    async def fetch(self) -> List[Dict[str, Any]]:
        """Fetch every registered address not fetched yet, in registration order"""
        documents = []
        for address in self.list():
            if not address.fetched:
                await address.fetch()
            documents.append(address.get_data())
        return documents

    async def save(self) -> int:
        saved = 0
        for address in self.list():
            if await address.save():
                saved += 1
        return saved

    def __contains__(self, address: str) -> bool:
        return address.lower() in self.addresses

    def __len__(self) -> int:
        return len(self.addresses)

    def __iter__(self) -> Iterator[Address]:
        return iter(self.list())
