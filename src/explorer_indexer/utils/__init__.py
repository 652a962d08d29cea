import asyncio
import re
from dynaconf import Dynaconf, Validator
from functools import wraps
from hexbytes import HexBytes
from loguru import logger
from pathlib import Path
import random
from typing import Any, Optional, Tuple, Type, Union

from .state_tracker import MissingBlockTracker

ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')
HASH_RE = re.compile(r'^0x[0-9a-fA-F]{64}$')


def hex_to_str(hex_value: Union[HexBytes, bytes, str, None]) -> Optional[str]:
    # Nodes return HexBytes through web3, plain hex strings through raw requests
    if hex_value is None:
        return None
    if isinstance(hex_value, str):
        value = hex_value.lower()
        return value if value.startswith('0x') else '0x' + value
    if not isinstance(hex_value, (bytes, bytearray)):
        raise TypeError(f"Expected HexBytes, bytes or str, got {type(hex_value)}")

    # Convert to hex string, maintaining '0x' prefix
    return '0x' + bytes(hex_value).hex()

def to_int(value: Union[int, str, None]) -> Optional[int]:
    """Convert an int or a hex/decimal quantity string to int"""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, 'big')
    value = value.strip()
    if value.startswith(('0x', '0X')):
        return int(value, 16) if len(value) > 2 else 0
    return int(value)

def to_int_string(value: Union[int, str, None]) -> Optional[str]:
    """Canonical decimal string for arbitrary precision quantities (balances, values)"""
    number = to_int(value)
    return None if number is None else str(number)

def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value))

def is_tx_or_block_hash(value: Any) -> bool:
    return isinstance(value, str) and bool(HASH_RE.match(value))

def normalize_address(value: Union[str, bytes, None]) -> Optional[str]:
    if value is None:
        return None
    return hex_to_str(value).lower()

def is_null_data(data: Optional[str]) -> bool:
    """True for missing bytecode: None, '0x', or only zero bytes"""
    if not data:
        return True
    return data.lower().replace('0x', '', 1).strip('0') == ''

def load_config(file_name: str, config_dir: Union[str, Path, None] = None) -> Dynaconf:
    """Load and validate indexer configuration from chain config file

    Ensures that only one chain configuration is active.

    Params:
        file_name (str): Name of the chain config file to load
        config_dir (str | Path | None): Directory holding the file, defaults to <project root>/chains

    Returns:
        Dynaconf: Validated configuration object
    """
    if config_dir is None:
        project_root = Path(__file__).resolve().parents[3]
        config_dir = project_root / "chains"
    config_path = Path(config_dir) / file_name

    # Validate that only one 'chain' section is active
    active_chain_count = 0
    with config_path.open('r') as f:
        for line in f:
            stripped_line = line.strip()
            # Check if the line starts with 'chain:' and is not commented out
            if stripped_line.startswith('chain:') and not line.lstrip().startswith('#'):
                active_chain_count += 1
                if active_chain_count > 1:
                    raise ValueError(f"Configuration Error: Multiple active 'chain' sections found in {file_name}. Please ensure only one 'chain' configuration is active.")

    settings = Dynaconf(
        settings_files=[config_path],
        envvar_prefix="INDEXER",
        validators=[
            # Validate structure and types
            Validator('chain.name', must_exist=True,
                     is_type_of=str,
                     condition=lambda x: x.islower() and x == x.strip(),
                     messages={"condition": "Chain name must be lowercase with no leading/trailing spaces"}
            ),
            Validator('chain.rpc_urls', must_exist=True, is_type_of=list),
            Validator('chain.trace', default=True, is_type_of=bool),
            Validator('native_contracts', default={}, is_type_of=dict),
            Validator('contracts.abis', default={}, is_type_of=dict),
            Validator('storage.type', default='memory', is_in=['memory', 'parquet']),
            Validator('metrics.port', default=8000, is_type_of=int),
        ]
    )
    # Validate all settings at once
    settings.validators.validate()

    return settings

# Decorator for implementing retry logic with exponential backoff for async functions
def async_retry(
    retries: int = 3,
    base_delay: int = 1,
    exponential_backoff: bool = True,
    jitter: bool = True,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
):
    """
    Decorator for implementing retry logic with exponential backoff for async functions.

    :param retries: int, number of retry attempts
    :param base_delay: int, base delay between retries in seconds
    :param exponential_backoff: bool, whether to use exponential backoff
    :param jitter: bool, whether to add random jitter to the delay
    :param retry_on: exception types that trigger a retry, anything else is raised at once
    :return: function, decorated function
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt == retries:
                        logger.error(
                            f"All retry attempts failed for {func.__name__}: {str(e)}"
                        )
                        raise

                    delay = (
                        base_delay * (2 ** (attempt - 1))
                        if exponential_backoff
                        else base_delay
                    )
                    if jitter:
                        delay *= random.uniform(1.0, 1.5)

                    logger.warning(
                        f"Attempt {attempt} failed for {func.__name__}. Retrying in {delay:.2f} seconds. Error: {str(e)}"
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
