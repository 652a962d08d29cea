from typing import List, Optional
from .base import DocumentModel


class BlockSummary(DocumentModel):
    number: int
    hash: str
    miner: Optional[str] = None
    timestamp: Optional[int] = None
    parent_hash: Optional[str] = None
    transactions: List[str] = []
