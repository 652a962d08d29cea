from typing import Any, Dict, List, Optional
from .base import DocumentModel


class InternalTransaction(DocumentModel):
    internal_tx_id: str
    transaction_hash: str
    block_number: int
    block_hash: Optional[str] = None
    transaction_position: Optional[int] = None
    trace_address: List[int] = []
    subtraces: int = 0
    type: str
    action: Dict[str, Any] = {}
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: Optional[int] = None
    index: int = 0
