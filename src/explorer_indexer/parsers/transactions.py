from explorer_indexer.utils import hex_to_str, normalize_address, to_int, to_int_string
from .logs import LogParser


class ReceiptParser:
    @staticmethod
    def parse_raw(receipt: dict) -> dict:
        return {
            'status': to_int(receipt.get('status')),
            'cumulative_gas_used': to_int(receipt.get('cumulativeGasUsed')),
            'effective_gas_price': to_int(receipt.get('effectiveGasPrice')),
            'gas_used': to_int(receipt.get('gasUsed')),
            'logs_bloom': hex_to_str(receipt.get('logsBloom')),
            'contract_address': normalize_address(receipt.get('contractAddress')),
            'transaction_index': to_int(receipt.get('transactionIndex')),
            'logs': [LogParser.parse_raw(log) for log in receipt.get('logs', [])],
        }

class TransactionParser:
    @staticmethod
    def parse_raw(raw_tx: dict, block_timestamp: int, receipt: dict) -> dict:
        """Parse transaction data from both transaction and receipt"""
        parsed_receipt = ReceiptParser.parse_raw(receipt)
        transaction_index = to_int(raw_tx.get('transactionIndex'))
        if transaction_index is None:
            transaction_index = parsed_receipt['transaction_index']
        return {
            # Fields from transaction
            'hash': hex_to_str(raw_tx['hash']),
            'block_hash': hex_to_str(raw_tx['blockHash']),
            'block_number': to_int(raw_tx['blockNumber']),
            'transaction_index': transaction_index,
            'from_address': normalize_address(raw_tx['from']),
            'to_address': normalize_address(raw_tx.get('to')),
            'gas': to_int(raw_tx.get('gas')),
            'gas_price': to_int(raw_tx.get('gasPrice')),
            'input': hex_to_str(raw_tx.get('input')) or '0x',
            'nonce': to_int(raw_tx.get('nonce')),
            'type': to_int(raw_tx.get('type')),
            'value': to_int_string(raw_tx.get('value')) or '0',
            'timestamp': block_timestamp,

            # Fields from receipt
            'receipt': parsed_receipt,
        }
