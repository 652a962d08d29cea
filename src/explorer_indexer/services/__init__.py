from .address import Address
from .addresses import Addresses
from .block import Block, NEW_BLOCK, NEW_TX
from .channel import Message, MessageChannel
from .locks import AddressLocks
from .native_contracts import NativeContracts
from .tx import Tx
from .tx_trace import TxTrace, get_trace_data_from_block
