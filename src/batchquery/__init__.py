"""
Blockchain batch query utilities.

This package aggregates many read-only contract queries into few eth_call
round-trips: bulk balance lookups through a balance checker contract and
arbitrary contract reads through Multicall2.
"""

from .abi import BALANCE_CHECKER_ABI, ERC20_ABI, MULTICALL2_ABI, ContractABI, load_abi
from .balance_batcher import NATIVE_TOKEN_ADDRESS, BalanceBatcher, fetch_eth_balances
from .base import BaseBatcher, BatchConfig, BatchResult
from .config import BatchQueryConfig, ConfigError, get_config, reload_config
from .errors import (
    BatchError,
    DecodingError,
    DispatchError,
    EncodingError,
    ErrorHandler,
    IntegrityError,
)
from .multicaller import Call, CallOutput, CallResponse, MultiCaller
from .transport import ContractCaller, Web3ContractCaller

__all__ = [
    'BALANCE_CHECKER_ABI',
    'ERC20_ABI',
    'MULTICALL2_ABI',
    'ContractABI',
    'load_abi',
    'NATIVE_TOKEN_ADDRESS',
    'BalanceBatcher',
    'fetch_eth_balances',
    'BaseBatcher',
    'BatchConfig',
    'BatchResult',
    'BatchQueryConfig',
    'ConfigError',
    'get_config',
    'reload_config',
    'BatchError',
    'DecodingError',
    'DispatchError',
    'EncodingError',
    'ErrorHandler',
    'IntegrityError',
    'Call',
    'CallOutput',
    'CallResponse',
    'MultiCaller',
    'ContractCaller',
    'Web3ContractCaller',
]
