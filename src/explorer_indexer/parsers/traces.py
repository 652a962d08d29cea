from typing import Optional
from explorer_indexer.ids import get_internal_tx_id
from explorer_indexer.utils import hex_to_str, is_address, normalize_address, to_int, to_int_string

# Trace action/result fields holding addresses, quantities and byte strings
ADDRESS_FIELDS = ('from', 'to', 'address', 'refundAddress', 'author')
QUANTITY_FIELDS = ('value', 'balance')
GAS_FIELDS = ('gas', 'gasUsed')


def _parse_section(section: Optional[dict]) -> Optional[dict]:
    if section is None:
        return None
    parsed = {}
    for key, value in dict(section).items():
        if key in ADDRESS_FIELDS and value is not None:
            parsed[key] = normalize_address(value)
        elif key in QUANTITY_FIELDS:
            parsed[key] = to_int_string(value)
        elif key in GAS_FIELDS:
            parsed[key] = to_int(value)
        elif isinstance(value, (bytes, bytearray)):
            parsed[key] = hex_to_str(value)
        else:
            parsed[key] = value
    return parsed

class TraceParser:
    @staticmethod
    def parse_raw(raw_trace: dict, index: int, block_timestamp: Optional[int] = None) -> dict:
        block_number = to_int(raw_trace.get('blockNumber'))
        position = to_int(raw_trace.get('transactionPosition'))
        trace_address = [to_int(step) for step in raw_trace.get('traceAddress', [])]
        return {
            'internal_tx_id': get_internal_tx_id(block_number or 0, position or 0, index, trace_address),
            'transaction_hash': hex_to_str(raw_trace.get('transactionHash')),
            'block_number': block_number,
            'block_hash': hex_to_str(raw_trace.get('blockHash')),
            'transaction_position': position,
            'trace_address': trace_address,
            'subtraces': to_int(raw_trace.get('subtraces')) or 0,
            'type': raw_trace.get('type'),
            'action': _parse_section(raw_trace.get('action')) or {},
            'result': _parse_section(raw_trace.get('result')),
            'error': raw_trace.get('error'),
            'timestamp': block_timestamp,
            'index': index,
        }

    @staticmethod
    def referenced_addresses(parsed_trace: dict) -> list:
        """Addresses named in a parsed trace entry, in field order"""
        addresses = []
        for section in (parsed_trace.get('action'), parsed_trace.get('result')):
            for key in ADDRESS_FIELDS:
                value = (section or {}).get(key)
                if is_address(value) and value not in addresses:
                    addresses.append(value)
        return addresses
