from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import Field
from .base import DocumentModel
from .traces import InternalTransaction
from .logs import Event


class TxType(Enum):
    NORMAL = "normal"
    CALL = "call"
    CONTRACT = "contract"
    CREATE = "create"
    # Native contract variants, selected by the native contract name
    BRIDGE = "bridge"
    REMASC = "remasc"

class Receipt(DocumentModel):
    status: Optional[int] = None
    cumulative_gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    gas_used: Optional[int] = None
    logs_bloom: Optional[str] = None
    contract_address: Optional[str] = None
    transaction_index: Optional[int] = None
    # Raw logs until decoding replaces them with events
    logs: List[Dict[str, Any]] = []

class TokenAddress(DocumentModel):
    address: str
    contract: str
    balance: Optional[str] = None
    block_number: Optional[int] = None

class Transaction(DocumentModel):
    # Fields from get_transaction
    hash: str
    block_hash: str
    block_number: int
    transaction_index: Optional[int] = None
    from_address: str = Field(alias='from')
    to_address: Optional[str] = Field(default=None, alias='to')
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    input: str = '0x'
    nonce: Optional[int] = None
    type: Optional[int] = None
    value: str = '0'
    timestamp: int

    receipt: Receipt

    # Derived fields
    tx_id: Optional[str] = None
    tx_type: Optional[str] = None
    events: List[Event] = []
    internal_transactions: List[InternalTransaction] = []
    suicides: List[InternalTransaction] = []
    token_addresses: List[TokenAddress] = []
