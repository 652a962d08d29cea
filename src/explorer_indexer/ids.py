"""Sortable ids for transactions, events and internal transactions.

Ids are fixed width hex strings so that lexicographic order matches chain order:
block number, then transaction index, then log index or trace position.
"""
from typing import Iterable, Optional


def _pad(value: int, width: int) -> str:
    return format(int(value), 'x').zfill(width)

def get_tx_or_event_id(block_number: int, transaction_index: int, log_index: Optional[int] = None) -> str:
    tx_id = _pad(block_number, 9) + _pad(transaction_index, 5)
    if log_index is not None:
        tx_id += _pad(log_index, 5)
    return tx_id

def get_internal_tx_id(block_number: int, transaction_position: int, index: int, trace_address: Iterable[int] = ()) -> str:
    path = ''.join(_pad(step, 3) for step in trace_address)
    return get_tx_or_event_id(block_number, transaction_position) + _pad(index, 5) + path
