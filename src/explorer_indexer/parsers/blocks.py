from collections.abc import Mapping
from explorer_indexer.utils import hex_to_str, normalize_address, to_int


class BlockParser:
    @staticmethod
    def parse_raw(raw_block: dict) -> dict:
        """Block summary used as address context (mining history, balance height)"""
        transactions = raw_block.get('transactions', []) or []
        return {
            'number': to_int(raw_block['number']),
            'hash': hex_to_str(raw_block['hash']),
            'miner': normalize_address(raw_block.get('miner')),
            'timestamp': to_int(raw_block.get('timestamp')),
            'parent_hash': hex_to_str(raw_block.get('parentHash')),
            # full_transactions=True returns objects, otherwise hashes
            'transactions': [
                hex_to_str(tx['hash'] if isinstance(tx, Mapping) else tx)
                for tx in transactions
            ],
        }
