from typing import Any, Dict, List, Optional, TYPE_CHECKING

from explorer_indexer.data_types import InternalTransaction
from explorer_indexer.errors import ValidationError
from explorer_indexer.parsers import TraceParser
from explorer_indexer.utils import hex_to_str, is_tx_or_block_hash

if TYPE_CHECKING:
    from explorer_indexer.context import IndexerContext

SUICIDE = 'suicide'
CREATE = 'create'
# Block rewards belong to the block, not to a transaction
SKIPPED_TYPES = ('reward',)


def get_trace_data_from_block(transaction_hash: str, block_trace: Optional[List[dict]]) -> Optional[List[dict]]:
    """Trace entries of one transaction out of a whole block trace"""
    if block_trace is None:
        return None
    transaction_hash = transaction_hash.lower()
    return [
        entry for entry in block_trace
        if hex_to_str(entry.get('transactionHash')) == transaction_hash
    ]


class TxTrace:
    """Internal transactions and self-destructs recorded in the trace of one transaction"""

    def __init__(
        self,
        transaction_hash: str,
        context: 'IndexerContext',
        *,
        trace_data: Optional[List[dict]] = None,
        timestamp: Optional[int] = None,
    ):
        if not is_tx_or_block_hash(transaction_hash):
            raise ValidationError(f"Invalid transaction hash: {transaction_hash}", hash=transaction_hash)
        self.hash = transaction_hash.lower()
        self.context = context
        self.trace_data = trace_data
        self.timestamp = timestamp

    async def fetch(self) -> List[dict]:
        if self.trace_data is None:
            trace = await self.context.node.trace_transaction(self.hash)
            self.trace_data = get_trace_data_from_block(self.hash, trace) or []
        return self.trace_data

    def get_internal_transactions_data(self) -> Dict[str, Any]:
        """
        Split the trace into internal transactions and suicides

        Returns:
            dict: internal_transactions and suicides (InternalTransaction lists),
                addresses referenced by any entry, and deployments mapping each
                address created by the trace to its create entry document
        """
        internal_transactions: List[InternalTransaction] = []
        suicides: List[InternalTransaction] = []
        addresses: List[str] = []
        deployments: Dict[str, Dict[str, Any]] = {}

        for index, raw_trace in enumerate(self.trace_data or []):
            if raw_trace.get('type') in SKIPPED_TYPES:
                continue
            parsed = TraceParser.parse_raw(raw_trace, index, self.timestamp)
            internal_tx = InternalTransaction.model_validate(parsed)
            if internal_tx.type == SUICIDE:
                suicides.append(internal_tx)
            else:
                internal_transactions.append(internal_tx)

            for address in TraceParser.referenced_addresses(parsed):
                if address not in addresses:
                    addresses.append(address)

            created = (internal_tx.result or {}).get('address')
            if internal_tx.type == CREATE and created:
                deployments[created] = internal_tx.to_document()

        return {
            'internal_transactions': internal_transactions,
            'suicides': suicides,
            'addresses': addresses,
            'deployments': deployments,
        }
