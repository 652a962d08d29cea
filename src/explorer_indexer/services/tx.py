from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

from explorer_indexer.contracts import ContractDecoder
from explorer_indexer.data_types import BlockSummary, Event, Transaction, TxType
from explorer_indexer.errors import (
    DecodeFallback,
    FetchResult,
    IndexerError,
    IntegrityError,
    NotFoundError,
    ValidationError,
)
from explorer_indexer.ids import get_tx_or_event_id
from explorer_indexer.metrics import DECODE_FALLBACKS, EVENTS_DECODED, TXS_PROCESSED, TX_FETCH_ERRORS
from explorer_indexer.parsers import BlockParser, TransactionParser
from explorer_indexer.utils import hex_to_str, is_address, is_tx_or_block_hash
from .address import Address
from .addresses import Addresses
from .tx_trace import TxTrace, get_trace_data_from_block

if TYPE_CHECKING:
    from explorer_indexer.context import IndexerContext

NATIVE_TX_TYPES = {tx_type.value: tx_type for tx_type in (TxType.BRIDGE, TxType.REMASC)}


def is_tx_data(data: Any) -> bool:
    """Raw transaction objects carry at least hash, blockHash and input"""
    if not data or not hasattr(data, 'get'):
        return False
    return bool(data.get('hash') and data.get('blockHash')) and data.get('input') is not None


class Tx:
    """Resolves one transaction into its canonical document.

    Every address the transaction references is registered in one Addresses
    scope, owned by this Tx unless the caller passes its own. Receipt logs are
    decoded one by one in receipt order; the trace, when enabled, adds internal
    transactions and marks self-destructed addresses.
    """

    def __init__(
        self,
        transaction_hash: str,
        context: 'IndexerContext',
        *,
        timestamp: Optional[int] = None,
        addresses: Optional[Addresses] = None,
        tx_data: Optional[dict] = None,
        receipt: Optional[dict] = None,
        block_data: Union[BlockSummary, Dict[str, Any], None] = None,
        block_trace: Optional[List[dict]] = None,
        trace_data: Optional[List[dict]] = None,
        not_trace: bool = False,
    ):
        if not is_tx_or_block_hash(transaction_hash):
            raise ValidationError(f"{transaction_hash} is not a tx hash", hash=transaction_hash)
        self.hash = transaction_hash.lower()
        self.context = context
        self.log = context.log.bind(tx=self.hash)
        self.timestamp = timestamp
        self.tx_data = tx_data
        self.receipt = receipt
        if isinstance(block_data, dict):
            block_data = BlockSummary.model_validate(block_data)
        self.block_data: Optional[BlockSummary] = block_data
        if block_trace is not None:
            trace_data = get_trace_data_from_block(self.hash, block_trace)
        self.addresses = addresses if addresses is not None else Addresses(context)
        self.trace: Optional[TxTrace] = None
        if not not_trace and context.trace:
            self.trace = TxTrace(self.hash, context, trace_data=trace_data, timestamp=timestamp)

        self.to_address: Optional[Address] = None
        self._to_resolved = False
        self.contracts: Dict[str, ContractDecoder] = {}
        self.warnings: List[DecodeFallback] = []
        self.data: Optional[Transaction] = None
        self.fetched = False

    def get_data(self) -> Optional[Dict[str, Any]]:
        return self.data.to_document() if self.data is not None else None

    def address_options(self) -> Dict[str, Any]:
        return {'block': self.block_data}

    async def fetch(self, force: bool = False) -> Dict[str, Any]:
        """
        Resolve the transaction, raising IndexerError subclasses on fatal conditions

        Args:
            force (bool): Re-derive the document even if it was already resolved
        Returns:
            dict: The transaction document
        """
        if self.fetched and not force:
            return self.get_data()
        self._to_resolved = False
        self.contracts = {}
        self.warnings = []

        tx = await self.get_tx()
        await self.set_block_data(tx['block_hash'])
        options = self.address_options()
        await self.set_to_address(tx)

        self.addresses.add(tx['from_address'], **options)
        receipt = tx['receipt']
        contract_address = receipt['contract_address']
        if contract_address:
            deployment = {
                'hash': tx['hash'],
                'input': tx['input'],
                'receipt': {'contractAddress': contract_address},
            }
            self.addresses.add(contract_address, deployment=deployment, **options)

        self.tx_format(tx)

        events = await self.decode_logs_and_addresses(tx)
        if len(events) != len(receipt['logs']):
            raise IntegrityError(
                f"Error decoding events of {self.hash}: {len(events)} events for {len(receipt['logs'])} logs",
                hash=self.hash,
            )
        # Logs are replaced by their events
        receipt['logs'] = [event.to_document() for event in events]
        tx['events'] = events

        token_addresses = []
        for contract in self.contracts.values():
            token_addresses.extend(await contract.fetch_token_holder_addresses())
        tx['token_addresses'] = token_addresses

        if self.trace is not None:
            await self.trace.fetch()
            trace = self.trace.get_internal_transactions_data()
            for address in trace['addresses']:
                self.addresses.add(address, deployment=trace['deployments'].get(address), **options)
            for internal_tx in trace['suicides']:
                destroyed = internal_tx.action.get('address')
                if is_address(destroyed):
                    self.addresses.add(destroyed, **options).suicide(internal_tx)
            tx['internal_transactions'] = trace['internal_transactions']
            tx['suicides'] = trace['suicides']

        self.data = Transaction.model_validate(tx)
        self.fetched = True
        TXS_PROCESSED.labels(chain=self.context.chain).inc()
        return self.get_data()

    async def resolve(self, force: bool = False) -> FetchResult:
        """fetch() with the outcome returned as a FetchResult instead of raised"""
        try:
            data = await self.fetch(force)
        except IndexerError as e:
            TX_FETCH_ERRORS.labels(chain=self.context.chain, kind=e.kind.value).inc()
            self.log.warning(f"Failed to resolve tx {self.hash} ({e.kind.value}): {e}")
            return FetchResult(error=e, warnings=list(self.warnings))
        return FetchResult(data=data, warnings=list(self.warnings))

    async def save(self) -> bool:
        if not self.fetched:
            raise ValueError(f"Tx {self.hash} is not resolved, refusing to save it")
        return self.context.data_manager.upsert('txs', self.hash, self.get_data())

    async def get_tx(self) -> Dict[str, Any]:
        node = self.context.node
        try:
            tx_data = self.tx_data
            if not is_tx_data(tx_data):
                tx_data = await node.get_transaction_by_hash(self.hash)
                if tx_data is None:
                    raise NotFoundError(f"Transaction {self.hash} not found", hash=self.hash)
            received = hex_to_str(tx_data['hash'])
            if received != self.hash:
                raise NotFoundError(f"Error getting tx {self.hash}, hash received: {received}", hash=self.hash)
            self.tx_data = tx_data

            receipt = self.receipt
            if not receipt:
                receipt = await node.get_transaction_receipt(self.hash)
                if not receipt:
                    raise NotFoundError(f"Receipt of {self.hash} not found", hash=self.hash)
            self.receipt = receipt

            timestamp = self.timestamp
            if timestamp is None:
                block = await self.set_block_data(hex_to_str(tx_data['blockHash']))
                timestamp = block.timestamp
                self.timestamp = timestamp
        except IndexerError:
            raise
        except Exception as e:
            raise NotFoundError(f"Unable to get tx {self.hash}: {e}", hash=self.hash) from e

        return TransactionParser.parse_raw(tx_data, timestamp, receipt)

    async def set_block_data(self, block_hash: Optional[str]) -> BlockSummary:
        """Block summary of the transaction, the cached one is reused only if its hash matches"""
        if self.block_data is None or self.block_data.hash != block_hash:
            try:
                raw_block = await self.context.node.get_block_by_hash(block_hash)
            except Exception as e:
                raise NotFoundError(f"Unable to get block {block_hash}: {e}", hash=block_hash) from e
            if raw_block is None:
                raise NotFoundError(f"Block {block_hash} not found", hash=block_hash)
            self.block_data = BlockSummary.model_validate(BlockParser.parse_raw(raw_block))
        return self.block_data

    async def set_to_address(self, tx: Dict[str, Any]) -> Optional[Address]:
        if self._to_resolved:
            return self.to_address
        to = tx['to_address']
        if to is not None:
            if not is_address(to):
                raise ValidationError(f"Invalid address {to}", address=to)
            self.to_address = self.addresses.add(to, **self.address_options())
            await self.to_address.fetch()
        else:
            # Contract creation
            self.to_address = None
        self._to_resolved = True
        return self.to_address

    def tx_format(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        tx_type = TxType.NORMAL
        if self.to_address is not None and self.to_address.is_contract():
            tx_type = TxType.CALL
        native = self.context.native_contracts.is_native_contract(tx['to_address'])
        if native in NATIVE_TX_TYPES:
            tx_type = NATIVE_TX_TYPES[native]
        if is_address(tx['receipt']['contract_address']):
            tx_type = TxType.CONTRACT
        tx['tx_type'] = tx_type.value
        tx['tx_id'] = get_tx_or_event_id(tx['block_number'], tx['transaction_index'] or 0)
        return tx

    def format_event(self, event: Dict[str, Any], tx: Dict[str, Any]) -> Event:
        event_id = get_tx_or_event_id(tx['block_number'], tx['transaction_index'] or 0, event.get('log_index') or 0)
        return Event.model_validate(dict(
            event,
            event_id=event_id,
            timestamp=tx['timestamp'],
            tx_status=tx['receipt']['status'],
            addresses=event.get('addresses', []),
        ))

    async def _historical_contract(self, address: str) -> Optional[ContractDecoder]:
        # A contract that self-destructs in the block it logs in has no code at
        # that block; its decoder is looked up one block earlier
        if self.block_data is None or self.block_data.number < 1:
            return None
        historical = self.addresses.create_address(address, block=self.block_data.number - 1)
        return await historical.get_contract()

    async def decode_logs_and_addresses(self, tx: Dict[str, Any]) -> List[Event]:
        """One event per receipt log, in receipt order"""
        options = self.address_options()
        events: List[Event] = []
        for log in tx['receipt']['logs']:
            address = log['address']
            contract = await self.addresses.add(address, **options).get_contract()
            if contract is None:
                contract = await self._historical_contract(address)

            if contract is None:
                self.log.warning(f"Missing contract for {address}, storing log {log['log_index']} raw")
                self.warnings.append(DecodeFallback(address, log['log_index'], log['block_number']))
                DECODE_FALLBACKS.labels(chain=self.context.chain).inc()
                events.append(self.format_event(dict(log), tx))
                continue

            contract = self.contracts.setdefault(address, contract)
            parsed = contract.parse_logs([log])
            if len(parsed) != 1:
                raise IntegrityError(
                    f"Error decoding log {log['log_index']} of {self.hash}: {len(parsed)} events for 1 log",
                    hash=self.hash,
                    address=address,
                )
            event = parsed[0]
            for referenced in contract.extract_addresses(event):
                contract.add_address(referenced)
                self.addresses.add(referenced, **options)
            if event.get('event'):
                EVENTS_DECODED.labels(chain=self.context.chain).inc()
            events.append(self.format_event(event, tx))
        return events
