import copy
from typing import Any, Dict, List, Optional
from loguru import logger

from .base import BaseDataManager, matches
from explorer_indexer.data_types import COLLECTIONS


class MemoryDataManager(BaseDataManager):
    """
    In-process document store, used for development runs and tests
    """

    def __init__(self, chain_name: str, collections: List[str] | None = None, **kwargs):
        self.chain_name = chain_name
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for collection in collections or list(COLLECTIONS):
            self.create_collection(collection)

    def create_collection(self, collection: str) -> None:
        self.collections.setdefault(collection, {})

    def find_one(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        document = self.collections.get(collection, {}).get(key)
        return copy.deepcopy(document) if document is not None else None

    def find(self, collection: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(document)
            for document in self.collections.get(collection, {}).values()
            if matches(document, query)
        ]

    def upsert(self, collection: str, key: str, document: Dict[str, Any]) -> bool:
        self.create_collection(collection)
        if self.collections[collection].get(key) == document:
            return False
        self.collections[collection][key] = copy.deepcopy(document)
        logger.debug(f"Saved {collection}/{key}")
        return True

    def get_last_processed_block(self) -> int:
        numbers = [document.get('number', 0) for document in self.collections.get('blocks', {}).values()]
        return max(numbers, default=0)
