from .blocks import BlockParser
from .logs import LogParser
from .transactions import ReceiptParser, TransactionParser
from .traces import TraceParser
