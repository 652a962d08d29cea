"""Standard ABIs used when no per-address ABI is configured."""
import json
from pathlib import Path
from typing import Dict, List, Union

def _event(name: str, *inputs: tuple) -> dict:
    return {
        'type': 'event',
        'name': name,
        'anonymous': False,
        'inputs': [
            {'name': input_name, 'type': input_type, 'indexed': indexed}
            for input_name, input_type, indexed in inputs
        ],
    }

def _view(name: str, inputs: List[str], outputs: List[str]) -> dict:
    return {
        'type': 'function',
        'name': name,
        'stateMutability': 'view',
        'inputs': [{'name': f'arg{i}', 'type': t} for i, t in enumerate(inputs)],
        'outputs': [{'name': '', 'type': t} for t in outputs],
    }

ERC20_ABI = [
    _event('Transfer', ('from', 'address', True), ('to', 'address', True), ('value', 'uint256', False)),
    _event('Approval', ('owner', 'address', True), ('spender', 'address', True), ('value', 'uint256', False)),
    _view('balanceOf', ['address'], ['uint256']),
    _view('totalSupply', [], ['uint256']),
]

# ERC721 Transfer shares the ERC20 topic, the indexed tokenId tells them apart
ERC721_ABI = [
    _event('Transfer', ('from', 'address', True), ('to', 'address', True), ('tokenId', 'uint256', True)),
    _event('Approval', ('owner', 'address', True), ('approved', 'address', True), ('tokenId', 'uint256', True)),
    _event('ApprovalForAll', ('owner', 'address', True), ('operator', 'address', True), ('approved', 'bool', False)),
    _view('balanceOf', ['address'], ['uint256']),
]

DEFAULT_ABI = ERC20_ABI + [entry for entry in ERC721_ABI if entry['type'] == 'event']


def load_abis(abis: Dict[str, Union[str, list]], base_dir: Union[str, Path, None] = None) -> Dict[str, list]:
    """Per-address ABIs from config: address -> ABI list or path to a JSON file"""
    loaded = {}
    for address, abi in (abis or {}).items():
        if isinstance(abi, (str, Path)):
            path = Path(base_dir or '.') / abi
            with path.open('r') as f:
                abi = json.load(f)
        loaded[address.lower()] = list(abi)
    return loaded
