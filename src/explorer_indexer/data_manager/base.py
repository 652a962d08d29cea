from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


def get_path(document: Dict[str, Any], path: str) -> Any:
    """Value at a dotted path ('receipt.contractAddress'), None when missing"""
    value: Any = document
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value

def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(get_path(document, path) == expected for path, expected in query.items())


class BaseDataManager(ABC):
    """Abstract base class for all document stores"""

    @abstractmethod
    def __init__(self, chain_name: str, collections: List[str] | None = None, **kwargs):
        """
        Initialize data manager

        Args:
            chain_name (str): Name of the chain to work with
            collections (List[str] | None): Collections to manage
            **kwargs: Implementation-specific configuration parameters
        """
        pass

    @abstractmethod
    def create_collection(self, collection: str) -> None:
        pass

    @abstractmethod
    def find_one(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Document stored under key, or None"""
        pass

    @abstractmethod
    def find(self, collection: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Documents matching every dotted-path equality in query

        Args:
            collection (str): Name of the collection
            query (dict): e.g. {'receipt.contractAddress': '0x...'}
        """
        pass

    @abstractmethod
    def upsert(self, collection: str, key: str, document: Dict[str, Any]) -> bool:
        """
        Insert or replace the document stored under key

        Returns:
            bool: False when the stored document was already identical
        """
        pass

    @abstractmethod
    def get_last_processed_block(self) -> int:
        pass
