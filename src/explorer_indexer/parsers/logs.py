from explorer_indexer.utils import hex_to_str, normalize_address, to_int


class LogParser:
    @staticmethod
    def parse_raw(raw_log: dict) -> dict:
        return {
            'address': normalize_address(raw_log['address']),
            'block_hash': hex_to_str(raw_log.get('blockHash')),
            'block_number': to_int(raw_log.get('blockNumber')),
            'data': hex_to_str(raw_log.get('data')) or '0x',
            'log_index': to_int(raw_log.get('logIndex')),
            'removed': bool(raw_log.get('removed', False)),
            'topics': [hex_to_str(topic) for topic in raw_log.get('topics', [])],
            'transaction_hash': hex_to_str(raw_log.get('transactionHash')),
            'transaction_index': to_int(raw_log.get('transactionIndex')),
        }
