from enum import Enum
from typing import Optional
from .base import DocumentModel
from .blocks import BlockSummary
from .traces import InternalTransaction

# Stored keys consumed by the query layer
LAST_BLOCK_MINED = 'lastBlockMined'
DESTROYED_BY = 'destroyedBy'


class AddressType(Enum):
    ACCOUNT = "account"
    CONTRACT = "contract"

class AddressDocument(DocumentModel):
    address: str
    type: AddressType = AddressType.ACCOUNT
    code: Optional[str] = None
    balance: Optional[str] = None
    is_native: bool = False
    name: Optional[str] = None
    last_block_mined: Optional[BlockSummary] = None
    destroyed_by: Optional[InternalTransaction] = None
    last_balance_block: Optional[int] = None
    created_by_tx: Optional[str] = None
    created_by_internal_tx: Optional[str] = None
