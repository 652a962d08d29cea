from typing import Dict, List, Optional, TYPE_CHECKING
from loguru import logger

from explorer_indexer.utils import is_null_data
from .abi import DEFAULT_ABI
from .decoder import ContractDecoder

if TYPE_CHECKING:
    from explorer_indexer.indexer import NodeClient


class ContractResolver:
    """Finds a log decoder for an address at a block.

    Addresses with a configured ABI always resolve. Any other address resolves
    to the standard token ABIs when it has code at the block, and to None when
    it has none (never deployed yet, or self-destructed).
    """

    def __init__(
        self,
        node: 'NodeClient',
        abis: Optional[Dict[str, List[dict]]] = None,
        default_abi: Optional[List[dict]] = None,
        log=logger,
    ):
        self.node = node
        self.abis = {address.lower(): abi for address, abi in (abis or {}).items()}
        self.default_abi = default_abi if default_abi is not None else DEFAULT_ABI
        self.log = log

    async def resolve(self, address: str, block: Optional[int] = None) -> Optional[ContractDecoder]:
        abi = self.abis.get(address)
        if abi is None:
            code = await self.node.get_code(address, block)
            if is_null_data(code):
                self.log.debug(f"No code for {address} at block {block}")
                return None
            abi = self.default_abi
        return ContractDecoder(address, abi, node=self.node, block_number=block)
