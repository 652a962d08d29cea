import json
import os
import pandas as pd
from typing import Any, Dict, List, Optional
from loguru import logger

from .base import BaseDataManager, matches
from explorer_indexer.data_types import COLLECTIONS

COLUMN_TYPES = {'key': 'string', 'block_number': 'Int64', 'document': 'string'}


class ParquetDataManager(BaseDataManager):
    """
    A class to manage Parquet file storage for indexed documents.

    Each collection is one parquet file with the document key, its block number
    and the JSON document. Files are rewritten on every upsert.
    """

    def __init__(self, chain_name: str, collections: List[str] | None = None, **kwargs):
        """
        Initialize Parquet storage manager

        Args:
            chain_name (str): Name of the chain to work with
            collections (List[str]): Collections to manage
            **kwargs: Configuration parameters
                - data_dir (str): Base directory for storing parquet files (default: "data")
        """
        self.chain_name = chain_name
        self.collections = collections or list(COLLECTIONS)
        self._frames: Dict[str, pd.DataFrame] = {}

        # Get data directory from kwargs with default
        data_dir = kwargs.get('data_dir', 'data')

        # Create base directory path
        self.base_path = os.path.join(data_dir, chain_name)
        os.makedirs(self.base_path, exist_ok=True)

        for collection in self.collections:
            self.create_collection(collection)

    def create_collection(self, collection: str) -> None:
        """Creates a directory for the collection if it doesn't exist"""
        collection_path = os.path.join(self.base_path, collection)
        os.makedirs(collection_path, exist_ok=True)
        logger.info(f"Ensured collection directory exists: {collection_path}")

    def _file_path(self, collection: str) -> str:
        return os.path.join(self.base_path, collection, f"{collection}.parquet")

    def _load(self, collection: str) -> pd.DataFrame:
        if collection not in self._frames:
            file_path = self._file_path(collection)
            if os.path.exists(file_path):
                df = pd.read_parquet(file_path)
            else:
                df = pd.DataFrame({column: pd.Series(dtype=dtype) for column, dtype in COLUMN_TYPES.items()})
            self._frames[collection] = df.astype(COLUMN_TYPES)
        return self._frames[collection]

    def find_one(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        df = self._load(collection)
        rows = df[df['key'] == key]
        if rows.empty:
            return None
        return json.loads(rows['document'].iloc[-1])

    def find(self, collection: str, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Scan the collection and return documents matching the query.
        Note: full scan, fine for the sizes this backend is meant for.
        """
        df = self._load(collection)
        documents = (json.loads(document) for document in df['document'])
        return [document for document in documents if matches(document, query)]

    def upsert(self, collection: str, key: str, document: Dict[str, Any]) -> bool:
        if self.find_one(collection, key) == document:
            return False

        df = self._load(collection)
        block_number = document.get('blockNumber', document.get('number'))
        row = pd.DataFrame([{
            'key': key,
            'block_number': block_number,
            'document': json.dumps(document, sort_keys=True),
        }]).astype(COLUMN_TYPES)
        df = pd.concat([df[df['key'] != key], row], ignore_index=True)

        self.create_collection(collection)
        file_path = self._file_path(collection)
        df.to_parquet(file_path, index=False)
        self._frames[collection] = df
        logger.debug(f"Saved {collection}/{key} to {file_path}")
        return True

    def get_last_processed_block(self) -> int:
        """
        Get the highest block number stored in the blocks collection

        Returns:
            int: The highest stored block number, 0 when nothing is stored
        """
        df = self._load('blocks')
        if df.empty:
            return 0
        max_block = df['block_number'].max()
        return 0 if pd.isna(max_block) else int(max_block)
