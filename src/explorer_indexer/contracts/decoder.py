from typing import Any, Dict, List, Optional, TYPE_CHECKING
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak
from eth_utils.abi import collapse_if_tuple
from loguru import logger

from explorer_indexer.data_types import TokenAddress
from explorer_indexer.utils import hex_to_str, is_address, to_int_string

if TYPE_CHECKING:
    from explorer_indexer.indexer import NodeClient


def event_signature(event_abi: dict) -> str:
    types = ','.join(collapse_if_tuple(i) for i in event_abi.get('inputs', []))
    return f"{event_abi['name']}({types})"

def event_topic(event_abi: dict) -> str:
    return '0x' + keccak(text=event_signature(event_abi)).hex()

def is_dynamic_type(abi_type: str) -> bool:
    return abi_type in ('string', 'bytes') or abi_type.endswith(']') or abi_type.startswith('tuple')

def format_value(abi_type: str, value: Any) -> Any:
    """JSON friendly values: lowercase addresses, decimal strings for integers, hex for bytes"""
    if abi_type.endswith(']'):
        inner_type = abi_type[:abi_type.rindex('[')]
        return [format_value(inner_type, item) for item in value]
    if isinstance(value, tuple):
        return [format_value('', item) for item in value]
    if abi_type == 'address' or (isinstance(value, str) and is_address(value)):
        return value.lower()
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return hex_to_str(value)
    return value

def collect_addresses(abi_type: str, value: Any) -> List[str]:
    if abi_type == 'address' and is_address(value):
        return [value]
    if abi_type.startswith('address[') and isinstance(value, list):
        return [item for item in value if is_address(item)]
    return []


class ContractDecoder:
    """Decodes receipt logs of one contract at one block using its ABI.

    Addresses referenced by decoded events are kept as token holders; for token
    ABIs (those exposing balanceOf) their balances are fetched at the same block.
    """

    def __init__(
        self,
        address: str,
        abi: List[dict],
        *,
        node: Optional['NodeClient'] = None,
        block_number: Optional[int] = None,
    ):
        self.address = address
        self.abi = abi
        self.node = node
        self.block_number = block_number
        self.events: Dict[str, List[dict]] = {}
        for entry in abi:
            if entry.get('type') == 'event' and not entry.get('anonymous'):
                self.events.setdefault(event_topic(entry), []).append(entry)
        self.is_token = any(
            entry.get('type') == 'function' and entry.get('name') == 'balanceOf' for entry in abi
        )
        self.holders: List[str] = []

    def _match(self, topics: List[str]) -> Optional[dict]:
        if not topics:
            return None
        for event_abi in self.events.get(topics[0], []):
            indexed = [i for i in event_abi['inputs'] if i.get('indexed')]
            if len(indexed) == len(topics) - 1:
                return event_abi
        return None

    def parse_log(self, log: dict) -> dict:
        event_abi = self._match(log.get('topics', []))
        if event_abi is None:
            # Contract known, event not in its ABI
            return dict(log, addresses=[])

        inputs = event_abi['inputs']
        indexed = [(index, i) for index, i in enumerate(inputs) if i.get('indexed')]
        non_indexed = [(index, i) for index, i in enumerate(inputs) if not i.get('indexed')]

        raw_values: Dict[int, Any] = {}
        try:
            for (index, abi_input), topic in zip(indexed, log['topics'][1:]):
                if is_dynamic_type(abi_input['type']):
                    # Indexed dynamic values are stored as their hash
                    raw_values[index] = topic
                else:
                    raw_values[index] = decode([collapse_if_tuple(abi_input)], bytes.fromhex(topic[2:]))[0]
            if non_indexed:
                data = bytes.fromhex(log.get('data', '0x')[2:])
                decoded = decode([collapse_if_tuple(i) for _, i in non_indexed], data)
                for (index, _), value in zip(non_indexed, decoded):
                    raw_values[index] = value
        except (DecodingError, ValueError) as e:
            # Signature matched but the payload does not fit the ABI
            logger.warning(f"Unable to decode {event_abi['name']} log {log.get('log_index')} of {self.address}: {e}")
            return dict(log, addresses=[])

        args = {}
        addresses: List[str] = []
        for index, abi_input in enumerate(inputs):
            name = abi_input.get('name') or f'arg{index}'
            value = format_value(abi_input['type'], raw_values[index])
            args[name] = value
            for address in collect_addresses(abi_input['type'], value):
                if address not in addresses:
                    addresses.append(address)

        return dict(
            log,
            event=event_abi['name'],
            signature=event_signature(event_abi),
            args=args,
            abi=event_abi,
            addresses=addresses,
        )

    def parse_logs(self, logs: List[dict]) -> List[dict]:
        return [self.parse_log(log) for log in logs]

    def extract_addresses(self, event: dict) -> List[str]:
        return list(event.get('addresses', []))

    def add_address(self, address: str) -> None:
        if address not in self.holders:
            self.holders.append(address)

    async def fetch_token_holder_addresses(self) -> List[TokenAddress]:
        if not self.is_token or self.node is None:
            return []
        selector = keccak(text='balanceOf(address)')[:4]
        token_addresses = []
        for holder in self.holders:
            data = hex_to_str(selector + encode(['address'], [holder]))
            result = await self.node.call(self.address, data, self.block_number)
            balance = None
            if result and len(result) > 2:
                balance = to_int_string(decode(['uint256'], bytes.fromhex(result[2:]))[0])
            else:
                logger.warning(f"balanceOf({holder}) failed on {self.address} at block {self.block_number}")
            token_addresses.append(TokenAddress(
                address=holder,
                contract=self.address,
                balance=balance,
                block_number=self.block_number,
            ))
        return token_addresses
