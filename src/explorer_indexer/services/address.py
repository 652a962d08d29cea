from typing import Any, Dict, Optional, Tuple, Union, TYPE_CHECKING

from explorer_indexer.contracts import ContractDecoder
from explorer_indexer.data_types import AddressDocument, AddressType, BlockSummary, InternalTransaction
from explorer_indexer.errors import IndexerError, NotFoundError, ValidationError
from explorer_indexer.utils import hex_to_str, is_address, is_null_data, to_int_string

if TYPE_CHECKING:
    from explorer_indexer.context import IndexerContext

BlockContext = Union[BlockSummary, Dict[str, Any], int, None]


def _as_block(block: BlockContext) -> Tuple[Optional[BlockSummary], Optional[int]]:
    if block is None:
        return None, None
    if isinstance(block, int):
        return None, block
    if not isinstance(block, BlockSummary):
        block = BlockSummary.model_validate(block)
    return block, block.number


class Address:
    """Derived state of one address, merged across repeated observations.

    The instance starts from what the current scope observed (block context,
    code, mined blocks, destruction) and merges it with the stored document on
    fetch() and save(). Merges are monotonic: a lower mined block, a second
    destruction or an older balance never replace newer state.

    Args:
        address (str): Address hash, validated before any I/O
        context (IndexerContext): Node, resolver, storage, native contracts, locks, logger
        block: Block the address is observed at (summary, dict or number)
        deployment (dict): Deploying transaction ({hash, input, receipt.contractAddress})
            or trace create entry ({type: 'create', result.address, internalTxId})
    """

    def __init__(
        self,
        address: str,
        context: 'IndexerContext',
        *,
        block: BlockContext = None,
        deployment: Optional[Dict[str, Any]] = None,
    ):
        if not is_address(address):
            raise ValidationError(f"Invalid address: {address}", address=address)
        self.address = address.lower()
        self.context = context
        self.log = context.log.bind(address=self.address)
        self.block, self._block_number = _as_block(block)
        self.deployment = deployment
        self.data = AddressDocument(address=self.address)
        self.fetched = False
        self._deployed = False
        self._contract: Optional[ContractDecoder] = None
        self._contract_resolved = False
        self._set_native()
        self._classify()

    @property
    def block_number(self) -> Optional[int]:
        return self._block_number

    def get_data(self) -> Dict[str, Any]:
        return self.data.to_document()

    def is_contract(self) -> bool:
        return self.data.type == AddressType.CONTRACT

    def _set_native(self) -> None:
        name = self.context.native_contracts.is_native_contract(self.address)
        if name:
            self.data.is_native = True
            self.data.name = name

    def _classify(self) -> None:
        data = self.data
        if data.destroyed_by is not None:
            # Destroyed contracts never become contracts again
            data.type = AddressType.ACCOUNT
        elif data.is_native:
            data.type = AddressType.CONTRACT
        elif not is_null_data(data.code) or self._is_deployed():
            data.type = AddressType.CONTRACT
        else:
            data.type = AddressType.ACCOUNT

    def _is_deployed(self) -> bool:
        return self._deployed or bool(self.data.created_by_tx or self.data.created_by_internal_tx)

    def _merge(self, stored: AddressDocument) -> None:
        data = self.data

        mined = [block for block in (data.last_block_mined, stored.last_block_mined) if block is not None]
        mined = [block for block in mined if (block.miner or '').lower() == self.address]
        data.last_block_mined = max(mined, key=lambda block: block.number) if mined else None

        if stored.destroyed_by is not None:
            data.destroyed_by = stored.destroyed_by

        if not self._local_balance_wins(stored):
            data.balance = stored.balance
            data.last_balance_block = stored.last_balance_block
            data.code = stored.code if stored.code is not None else data.code
        elif data.code is None:
            data.code = stored.code

        data.created_by_tx = data.created_by_tx or stored.created_by_tx
        data.created_by_internal_tx = data.created_by_internal_tx or stored.created_by_internal_tx

        self._set_native()
        self._classify()

    def _local_balance_wins(self, stored: AddressDocument) -> bool:
        local = self.data
        if local.balance is None:
            return False
        if stored.balance is None:
            return True
        if local.last_balance_block is None:
            return stored.last_balance_block is None
        return stored.last_balance_block is None or local.last_balance_block >= stored.last_balance_block

    def _load_stored(self) -> None:
        stored = self.context.data_manager.find_one('addresses', self.address)
        if stored:
            self._merge(AddressDocument.model_validate(stored))

    async def fetch(self) -> Dict[str, Any]:
        """Load the stored document, refresh code and balance, classify.

        Code and balance are read from the node only when the observing block is
        not older than the block of the last balance refresh. An equal height
        refreshes as well.
        """
        try:
            self._load_stored()
            block_number = self.block_number
            last_balance_block = self.data.last_balance_block
            if block_number is not None and last_balance_block is not None and block_number < last_balance_block:
                self.log.debug(f"Block {block_number} is older than last balance block {last_balance_block}, reusing stored balance")
            else:
                code = await self.context.node.get_code(self.address, block_number)
                balance = await self.context.node.get_balance(self.address, block_number)
                self.set_code(code)
                self.data.balance = to_int_string(balance)
                if block_number is not None:
                    self.data.last_balance_block = block_number
        except IndexerError:
            raise
        except Exception as e:
            raise NotFoundError(f"Unable to fetch address {self.address}: {e}", address=self.address) from e

        if self.deployment:
            self._apply_deployment(self.deployment)
        elif not is_null_data(self.data.code) and not self._is_deployed():
            await self.search_deployment_data()

        self._set_native()
        self._classify()
        self.fetched = True
        return self.get_data()

    async def save(self) -> bool:
        """Merge into the stored document and write it back

        Returns:
            bool: False when the stored document was already identical
        """
        async with self.context.locks.get(self.address):
            self._load_stored()
            changed = self.context.data_manager.upsert('addresses', self.address, self.get_data())
        if changed:
            self.log.debug(f"Saved address {self.address}")
        return changed

    def set_code(self, code: Optional[str]) -> None:
        code = hex_to_str(code)
        self.data.code = None if is_null_data(code) else code
        self._classify()

    def set_block(self, block: BlockContext) -> bool:
        """Observe the address at a block and record it as mined when this address is its miner.

        The observation block only moves to an equal or higher block. The last
        mined block is replaced only by a higher one; the return value tells
        whether it was.
        """
        block, number = _as_block(block)
        if number is not None and (self._block_number is None or number >= self._block_number):
            if number != self._block_number:
                # Decoder is bound to the block it was resolved at
                self._contract = None
                self._contract_resolved = False
            self._block_number = number
            self.block = block
        if block is None or (block.miner or '').lower() != self.address:
            return False
        current = self.data.last_block_mined
        if current is not None and number <= current.number:
            return False
        self.data.last_block_mined = block
        return True

    def suicide(self, record: Union[InternalTransaction, Dict[str, Any]]) -> bool:
        """Mark the address destroyed, the first record is kept"""
        if self.data.destroyed_by is not None:
            return False
        if not isinstance(record, InternalTransaction):
            record = InternalTransaction.model_validate(record)
        self.data.destroyed_by = record
        self._classify()
        return True

    def _deployment_creators(self, deployment: Dict[str, Any]) -> Optional[Tuple[Optional[str], Optional[str]]]:
        if deployment.get('type') == 'create':
            result = deployment.get('result') or {}
            if (result.get('address') or '').lower() == self.address:
                return deployment.get('transactionHash'), deployment.get('internalTxId')
            return None
        receipt = deployment.get('receipt') or {}
        if (receipt.get('contractAddress') or '').lower() == self.address:
            return deployment.get('hash'), None
        return None

    def _apply_deployment(self, deployment: Dict[str, Any]) -> bool:
        creators = self._deployment_creators(deployment)
        if creators is None:
            self.log.warning(f"Deployment data does not create {self.address}")
            return False
        created_by_tx, created_by_internal_tx = creators
        self.data.created_by_tx = self.data.created_by_tx or created_by_tx
        self.data.created_by_internal_tx = self.data.created_by_internal_tx or created_by_internal_tx
        self._deployed = True
        self._classify()
        return True

    async def search_deployment_data(self) -> Optional[Dict[str, Any]]:
        """Find the transaction or trace entry that created this address.

        Uses the deployment passed at construction, otherwise looks for a stored
        transaction whose receipt created the address. A match classifies the
        address as a contract even when its code can not be read at this block.
        """
        deployments = [self.deployment] if self.deployment else \
            self.context.data_manager.find('txs', {'receipt.contractAddress': self.address})
        for deployment in deployments:
            if self._deployment_creators(deployment) is not None:
                self._apply_deployment(deployment)
                return deployment
        if self.deployment:
            self.log.warning(f"Deployment data does not create {self.address}")
        return None

    async def get_contract(self) -> Optional[ContractDecoder]:
        """Log decoder for this address at the bound block, None without code"""
        if not self._contract_resolved:
            self._contract = await self.context.resolver.resolve(self.address, self.block_number)
            self._contract_resolved = True
        return self._contract

    async def get_parser(self) -> Optional[ContractDecoder]:
        return await self.get_contract()

    def __repr__(self) -> str:
        return f"Address({self.address}, block={self.block_number}, type={self.data.type.value})"
