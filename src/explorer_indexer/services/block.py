import asyncio
from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

from explorer_indexer.data_types import BlockSummary
from explorer_indexer.errors import NotFoundError, ValidationError
from explorer_indexer.parsers import BlockParser
from explorer_indexer.utils import hex_to_str, is_tx_or_block_hash
from .addresses import Addresses
from .channel import MessageChannel
from .tx import Tx

if TYPE_CHECKING:
    from explorer_indexer.context import IndexerContext

NEW_BLOCK = 'newBlock'
NEW_TX = 'newTx'


class Block:
    """Processes one block: every transaction resolved in its own scope, then persisted.

    Transactions are resolved concurrently, each with its own Addresses registry.
    Addresses shared between scopes are merged into storage under the per-hash
    lock of the context. Nothing is persisted unless every transaction resolved.
    """

    def __init__(
        self,
        block_ref: Union[int, str],
        context: 'IndexerContext',
        *,
        channel: Optional[MessageChannel] = None,
    ):
        if isinstance(block_ref, bool) or not (
            (isinstance(block_ref, int) and block_ref >= 0) or is_tx_or_block_hash(block_ref)
        ):
            raise ValidationError(f"Invalid block reference: {block_ref}", block=block_ref)
        self.block_ref = block_ref
        self.context = context
        self.log = context.log.bind(block=block_ref)
        self.channel = channel if channel is not None else MessageChannel()
        self.summary: Optional[BlockSummary] = None
        self.txs: List[Tx] = []
        self.addresses: Optional[Addresses] = None
        self.fetched = False

    async def _get_raw_block(self) -> dict:
        node = self.context.node
        if isinstance(self.block_ref, int):
            raw_block = await node.get_block_by_number(self.block_ref, full_transactions=True)
        else:
            raw_block = await node.get_block_by_hash(self.block_ref, full_transactions=True)
        if raw_block is None:
            raise NotFoundError(f"Block {self.block_ref} not found", block=self.block_ref)
        return raw_block

    async def fetch(self) -> Dict[str, Any]:
        raw_block = await self._get_raw_block()
        summary = BlockSummary.model_validate(BlockParser.parse_raw(raw_block))
        self.summary = summary

        block_trace = await self.context.node.trace_block(summary.number) if self.context.trace else None

        self.txs = [
            Tx(
                hex_to_str(raw_tx['hash']),
                self.context,
                timestamp=summary.timestamp,
                tx_data=raw_tx,
                block_data=summary,
                block_trace=block_trace,
            )
            for raw_tx in raw_block.get('transactions', [])
        ]
        results = await asyncio.gather(*(tx.resolve() for tx in self.txs), return_exceptions=True)
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            self.log.error(f"{len(errors)} of {len(results)} transactions of block {summary.number} raised")
            raise errors[0]
        failed = [result for result in results if not result.ok]
        if failed:
            self.log.error(f"{len(failed)} of {len(results)} transactions of block {summary.number} failed")
            raise failed[0].error

        # Miner scope
        self.addresses = Addresses(self.context, block=summary)
        if summary.miner:
            self.addresses.add(summary.miner).set_block(summary)

        self.fetched = True
        warnings = sum(len(result.warnings) for result in results)
        self.log.info(f"Resolved block {summary.number}: {len(self.txs)} txs, {warnings} raw events")
        return self.get_data()

    def get_data(self) -> Optional[Dict[str, Any]]:
        return self.summary.to_document() if self.summary is not None else None

    async def _save_scope(self, addresses: Addresses) -> int:
        await addresses.fetch()
        return await addresses.save()

    async def save(self) -> Dict[str, int]:
        """Persist addresses, transactions and the block summary, publishing each new document"""
        if not self.fetched:
            raise ValueError(f"Block {self.block_ref} is not resolved, refusing to save it")
        scopes = [tx.addresses for tx in self.txs] + [self.addresses]
        saved_addresses = await asyncio.gather(*(self._save_scope(scope) for scope in scopes))

        saved_txs = 0
        for tx in self.txs:
            if await tx.save():
                saved_txs += 1
            await self.channel.publish(NEW_TX, tx.get_data())

        data = self.get_data()
        self.context.data_manager.upsert('blocks', self.summary.hash, data)
        await self.channel.publish(NEW_BLOCK, data)
        return {'addresses': sum(saved_addresses), 'txs': saved_txs}
