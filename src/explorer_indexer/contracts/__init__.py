from .abi import DEFAULT_ABI, ERC20_ABI, ERC721_ABI, load_abis
from .decoder import ContractDecoder, event_signature, event_topic
from .resolver import ContractResolver
