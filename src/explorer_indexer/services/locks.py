import asyncio
from typing import Dict


class AddressLocks:
    """One asyncio.Lock per address hash.

    Address objects from different scopes that represent the same hash merge
    into the same stored document; their read-merge-write must not interleave.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, address: str) -> asyncio.Lock:
        return self._locks.setdefault(address.lower(), asyncio.Lock())

    def __len__(self) -> int:
        return len(self._locks)
