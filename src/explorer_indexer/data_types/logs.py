from typing import Any, Dict, List, Optional
from pydantic import Field
from .base import DocumentModel


class Log(DocumentModel):
    address: str
    block_hash: Optional[str] = None
    block_number: Optional[int] = None
    data: str = '0x'
    log_index: Optional[int] = None
    removed: bool = False
    topics: List[str] = []
    transaction_hash: Optional[str] = None
    transaction_index: Optional[int] = None

class Event(Log):
    # Decoded fields are empty when the log had no decoder (raw fallback)
    event_id: str
    timestamp: Optional[int] = None
    tx_status: Optional[int] = None
    event: Optional[str] = None
    signature: Optional[str] = None
    args: Optional[Dict[str, Any]] = None
    abi: Optional[Dict[str, Any]] = None
    addresses: List[str] = Field(default=[], alias='_addresses')

    @property
    def decoded(self) -> bool:
        return self.event is not None
