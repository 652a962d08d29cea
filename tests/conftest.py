"""
Pytest configuration for the explorer indexer.

Provides an in-memory fake node, a context wired with the real contract
resolver and a MemoryDataManager, and builders for raw chain payloads shaped
like the ones web3 returns.
"""

from collections import Counter
from typing import Dict, List, Optional

import pytest
from eth_abi import encode
from loguru import logger

from explorer_indexer.contracts import ContractResolver, ERC20_ABI, event_topic
from explorer_indexer.context import IndexerContext
from explorer_indexer.data_manager import MemoryDataManager
from explorer_indexer.data_types import ChainType
from explorer_indexer.services import NativeContracts

TRANSFER_TOPIC = event_topic(ERC20_ABI[0])
NATIVE_TEST_CONTRACT = '0x0000000000000000000000000000000001aaaaaa'
BRIDGE = '0x0000000000000000000000000000000001000006'
CONTRACT_CODE = '0x6080604052'
TIMESTAMP = 1700000000


def make_address(seed: int) -> str:
    return '0x' + format(seed, '040x')

def make_hash(seed: int) -> str:
    return '0x' + format(seed, '064x')

def address_topic(address: str) -> str:
    return '0x' + address[2:].rjust(64, '0')

def uint_data(value: int) -> str:
    return '0x' + encode(['uint256'], [value]).hex()

def make_block(number: int, miner: str, transactions: Optional[List[dict]] = None, block_hash: Optional[str] = None) -> dict:
    return {
        'number': number,
        'hash': block_hash or make_hash(10_000 + number),
        'parentHash': make_hash(10_000 + number - 1),
        'miner': miner,
        'timestamp': TIMESTAMP + number,
        'transactions': transactions or [],
    }

def make_tx(tx_hash: str, block: dict, sender: str, to: Optional[str], index: int = 0, value: int = 0) -> dict:
    return {
        'hash': tx_hash,
        'blockHash': block['hash'],
        'blockNumber': block['number'],
        'transactionIndex': index,
        'from': sender,
        'to': to,
        'gas': 21000,
        'gasPrice': 60000000,
        'input': '0x',
        'nonce': 1,
        'value': value,
    }

def make_log(address: str, tx: dict, log_index: int, topics: List[str], data: str = '0x') -> dict:
    return {
        'address': address,
        'blockHash': tx['blockHash'],
        'blockNumber': tx['blockNumber'],
        'data': data,
        'logIndex': log_index,
        'removed': False,
        'topics': topics,
        'transactionHash': tx['hash'],
        'transactionIndex': tx['transactionIndex'],
    }

def transfer_log(token: str, tx: dict, log_index: int, sender: str, receiver: str, value: int) -> dict:
    return make_log(token, tx, log_index, [TRANSFER_TOPIC, address_topic(sender), address_topic(receiver)], uint_data(value))

def make_receipt(tx: dict, logs: Optional[List[dict]] = None, contract_address: Optional[str] = None, status: int = 1) -> dict:
    return {
        'transactionHash': tx['hash'],
        'transactionIndex': tx['transactionIndex'],
        'blockHash': tx['blockHash'],
        'blockNumber': tx['blockNumber'],
        'status': status,
        'cumulativeGasUsed': 21000,
        'gasUsed': 21000,
        'contractAddress': contract_address,
        'logs': logs or [],
    }


class FakeNode:
    """NodeClient stand-in backed by dicts, counting every call per method"""

    def __init__(self):
        self.calls: Counter = Counter()
        # address -> code, or address -> {block number: code}
        self.codes: Dict[str, object] = {}
        # address -> balance, or address -> {block number: balance}
        self.balances: Dict[str, object] = {}
        self.token_balances: Dict[tuple, int] = {}
        self.blocks: Dict[str, dict] = {}
        self.transactions: Dict[str, dict] = {}
        self.receipts: Dict[str, dict] = {}
        self.traces: Dict[str, List[dict]] = {}
        self.block_traces: Dict[int, List[dict]] = {}
        self.tip = 0

    def add_block(self, block: dict, receipts: Optional[List[dict]] = None) -> dict:
        self.blocks[block['hash']] = block
        for tx in block['transactions']:
            self.transactions[tx['hash']] = tx
        for receipt in receipts or []:
            self.receipts[receipt['transactionHash']] = receipt
        self.tip = max(self.tip, block['number'])
        return block

    @staticmethod
    def _at(values: Dict[str, object], address: str, block, default):
        value = values.get(address, default)
        if isinstance(value, dict):
            return value.get(block, default)
        return value

    async def get_block_number(self) -> int:
        self.calls['get_block_number'] += 1
        return self.tip

    def _block(self, block: dict, full_transactions: bool) -> dict:
        if full_transactions:
            return dict(block)
        return dict(block, transactions=[tx['hash'] for tx in block['transactions']])

    async def get_block_by_number(self, block_number: int, full_transactions: bool = True):
        self.calls['get_block_by_number'] += 1
        for block in self.blocks.values():
            if block['number'] == block_number:
                return self._block(block, full_transactions)
        return None

    async def get_block_by_hash(self, block_hash: str, full_transactions: bool = False):
        self.calls['get_block_by_hash'] += 1
        block = self.blocks.get(block_hash)
        return self._block(block, full_transactions) if block else None

    async def get_transaction_by_hash(self, transaction_hash: str):
        self.calls['get_transaction_by_hash'] += 1
        return self.transactions.get(transaction_hash)

    async def get_transaction_receipt(self, transaction_hash: str):
        self.calls['get_transaction_receipt'] += 1
        return self.receipts.get(transaction_hash)

    async def get_code(self, address: str, block=None) -> str:
        self.calls['get_code'] += 1
        return self._at(self.codes, address, block, '0x')

    async def get_balance(self, address: str, block=None) -> int:
        self.calls['get_balance'] += 1
        return self._at(self.balances, address, block, 0)

    async def call(self, to: str, data: str, block=None) -> str:
        self.calls['call'] += 1
        holder = '0x' + data[-40:]
        return '0x' + encode(['uint256'], [self.token_balances.get((to, holder), 0)]).hex()

    async def trace_transaction(self, transaction_hash: str) -> list:
        self.calls['trace_transaction'] += 1
        return self.traces.get(transaction_hash, [])

    async def trace_block(self, block_number: int) -> list:
        self.calls['trace_block'] += 1
        return self.block_traces.get(block_number, [])


@pytest.fixture
def node():
    return FakeNode()

@pytest.fixture
def data_manager():
    return MemoryDataManager(chain_name=ChainType.RSK.value)

@pytest.fixture
def context(node, data_manager):
    return IndexerContext(
        node=node,
        resolver=ContractResolver(node),
        data_manager=data_manager,
        native_contracts=NativeContracts.for_chain(ChainType.RSK, {'nativeTestContract': NATIVE_TEST_CONTRACT}),
        chain=ChainType.RSK.value,
        log=logger,
    )
