from loguru import logger
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type, Union
from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import BlockNotFound, ContractLogicError, TransactionNotFound, Web3Exception
from web3.types import RPCEndpoint
import time

from explorer_indexer.data_types import ChainType
from explorer_indexer.utils import async_retry, hex_to_str
from explorer_indexer.metrics import RPC_REQUESTS, RPC_ERRORS, RPC_LATENCY

BlockRef = Union[int, str]

RPC_METHODS = [
    'get_block_number',
    'get_block',
    'get_transaction',
    'get_transaction_receipt',
    'get_code',
    'get_balance',
    'call',
    'trace_transaction',
    'trace_block',
]


class NodeClient:
    """Async access to the node: transactions, receipts, blocks, code, balances and traces.

    Lookups of missing items (unknown hash, pending transaction) return None,
    every other failure is logged, retried on the next RPC URL and re-raised.
    """

    def __init__(self, rpc_urls: List[str], chain_type: ChainType) -> None:
        logger.info(f"Available RPC URLs: {rpc_urls}")
        logger.info(f"Initializing NodeClient for chain {chain_type.value} with RPC URL: {rpc_urls[0]}")
        self.rpc_urls = rpc_urls
        self.current_rpc_index = 0
        self.w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_urls[0]))
        self.chain_type = chain_type

        # Initialize RPC metrics
        for method in RPC_METHODS:
            RPC_REQUESTS.labels(chain=self.chain_type.value, method=method).inc(0)
            RPC_ERRORS.labels(chain=self.chain_type.value, method=method).inc(0)

    def _rotate_rpc(self) -> bool:
        """Rotate to the next RPC URL in the list
        Returns:
            bool: True if there is another RPC to rotate to, False if we've tried all RPCs
        """
        if len(self.rpc_urls) <= 1:
            return False

        self.current_rpc_index = (self.current_rpc_index + 1) % len(self.rpc_urls)
        new_url = self.rpc_urls[self.current_rpc_index]
        logger.info(f"Switching to RPC URL: {new_url}")
        self.w3 = AsyncWeb3(AsyncHTTPProvider(new_url))
        return True

    async def _request(
        self,
        method: str,
        request: Callable[[], Awaitable[Any]],
        description: str,
        not_found: Tuple[Type[Exception], ...] = (),
    ) -> Any:
        chain = self.chain_type.value
        # One attempt per configured URL, async_retry owns the backoff between rounds
        for attempt in range(len(self.rpc_urls)):
            start_time = time.time()
            try:
                result = await request()
                RPC_REQUESTS.labels(chain=chain, method=method).inc()
                RPC_LATENCY.labels(chain=chain, method=method).observe(time.time() - start_time)
                return result
            except not_found:
                RPC_REQUESTS.labels(chain=chain, method=method).inc()
                logger.warning(f"{description} not found")
                return None
            except Web3Exception as e:
                RPC_ERRORS.labels(chain=chain, method=method).inc()
                logger.error(f"Failed to get {description}: {str(e)}")
                if attempt == len(self.rpc_urls) - 1 or not self._rotate_rpc():
                    raise
            except Exception as e:
                RPC_ERRORS.labels(chain=chain, method=method).inc()
                logger.error(f"Failed to get {description}: {type(e).__name__}: {str(e)}")
                if attempt == len(self.rpc_urls) - 1 or not self._rotate_rpc():
                    raise

    async def _raw_request(self, endpoint: str, params: list) -> Any:
        response = await self.w3.provider.make_request(RPCEndpoint(endpoint), params)
        if response.get('error'):
            raise Web3Exception(f"{endpoint}: {response['error']}")
        return response.get('result')

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_block_number(self) -> int:
        return await self._request(
            'get_block_number',
            lambda: self.w3.eth.get_block_number(),
            'block number',
        )

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_block_by_number(self, block_number: int, full_transactions: bool = True) -> dict | None:
        logger.info(f"Fetching block with number: {block_number}")
        return await self._request(
            'get_block',
            lambda: self.w3.eth.get_block(block_number, full_transactions=full_transactions),
            f"block {block_number}",
            not_found=(BlockNotFound,),
        )

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_block_by_hash(self, block_hash: str, full_transactions: bool = False) -> dict | None:
        return await self._request(
            'get_block',
            lambda: self.w3.eth.get_block(block_hash, full_transactions=full_transactions),
            f"block {block_hash}",
            not_found=(BlockNotFound,),
        )

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_transaction_by_hash(self, transaction_hash: str) -> dict | None:
        return await self._request(
            'get_transaction',
            lambda: self.w3.eth.get_transaction(transaction_hash),
            f"transaction {transaction_hash}",
            not_found=(TransactionNotFound,),
        )

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_transaction_receipt(self, transaction_hash: str) -> dict | None:
        return await self._request(
            'get_transaction_receipt',
            lambda: self.w3.eth.get_transaction_receipt(transaction_hash),
            f"receipt for transaction {transaction_hash}",
            not_found=(TransactionNotFound,),
        )

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_code(self, address: str, block: Optional[BlockRef] = None) -> str:
        checksum_address = AsyncWeb3.to_checksum_address(address)
        code = await self._request(
            'get_code',
            lambda: self.w3.eth.get_code(checksum_address, block_identifier=block if block is not None else 'latest'),
            f"code of {address} at {block}",
        )
        return hex_to_str(code) or '0x'

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def get_balance(self, address: str, block: Optional[BlockRef] = None) -> int:
        checksum_address = AsyncWeb3.to_checksum_address(address)
        return await self._request(
            'get_balance',
            lambda: self.w3.eth.get_balance(checksum_address, block_identifier=block if block is not None else 'latest'),
            f"balance of {address} at {block}",
        )

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def call(self, to: str, data: str, block: Optional[BlockRef] = None) -> str | None:
        """eth_call, None when the contract reverts"""
        transaction = {'to': AsyncWeb3.to_checksum_address(to), 'data': data}
        result = await self._request(
            'call',
            lambda: self.w3.eth.call(transaction, block_identifier=block if block is not None else 'latest'),
            f"call to {to}",
            not_found=(ContractLogicError,),
        )
        return hex_to_str(result)

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def trace_transaction(self, transaction_hash: str) -> list:
        result = await self._request(
            'trace_transaction',
            lambda: self._raw_request('trace_transaction', [transaction_hash]),
            f"trace of transaction {transaction_hash}",
        )
        return result or []

    @async_retry(retries=5, base_delay=2, exponential_backoff=True, jitter=True)
    async def trace_block(self, block_number: int) -> list:
        result = await self._request(
            'trace_block',
            lambda: self._raw_request('trace_block', [hex(block_number)]),
            f"trace of block {block_number}",
        )
        return result or []
