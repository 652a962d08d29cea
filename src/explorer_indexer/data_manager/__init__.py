from enum import Enum
from typing import List
from .base import BaseDataManager
from .memory import MemoryDataManager
from .parquet import ParquetDataManager

class StorageType(Enum):
    MEMORY = "memory"
    PARQUET = "parquet"

class DataManagerFactory:
    _managers = {
        StorageType.MEMORY: MemoryDataManager,
        StorageType.PARQUET: ParquetDataManager,
    }

    @classmethod
    def get_manager(cls, storage_type: str, chain_name: str, config: dict | None = None, collections: List[str] | None = None) -> BaseDataManager:
        """
        Factory method to get the appropriate data manager instance

        Args:
            storage_type (str): Type of storage from config
            chain_name (str): Name of the chain
            config (dict): Storage-specific configuration
            collections (List[str]): Collections to manage
        Returns:
            BaseDataManager: Instance of the appropriate data manager
        """
        try:
            storage_enum = StorageType(storage_type.lower())
        except ValueError:
            raise ValueError(f"Invalid storage type: {storage_type}. Supported types: {[t.value for t in StorageType]}")

        manager_class = cls._managers[storage_enum]
        options = {key: value for key, value in dict(config or {}).items() if key != 'type'}
        return manager_class(
            chain_name=chain_name,
            collections=collections,
            **options
        )

def get_data_manager(storage_type: str, chain_name: str, config: dict | None = None, collections: List[str] | None = None) -> BaseDataManager:
    return DataManagerFactory.get_manager(storage_type, chain_name, config, collections)
