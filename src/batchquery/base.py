"""
Base classes for blockchain batch querying.

This module provides the shared plumbing for aggregating many contract reads
into few eth_call round-trips: batch configuration, result containers and a
base batcher that validates addresses, splits them into chunks and issues
guarded contract calls.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from web3 import Web3

from .config import ConfigError
from .errors import BatchError, DispatchError, EncodingError, ErrorHandler
from .transport import BlockIdentifier, ContractCaller

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Result from a batch operation."""

    success: bool
    data: Dict[str, Any]
    block_number: Optional[int] = None
    timestamp: Optional[datetime] = None
    error: Optional[str] = None


@dataclass
class BatchConfig:
    """Configuration for batch operations."""

    # Addresses per aggregated call
    batch_size: int = 100
    # Aggregated calls in flight at once
    concurrency_limit: int = 4

    def __post_init__(self):
        if self.batch_size <= 0:
            raise ConfigError(f"batch_size must be positive, got: {self.batch_size}")
        if self.concurrency_limit <= 0:
            raise ConfigError(
                f"concurrency_limit must be positive, got: {self.concurrency_limit}"
            )


class BaseBatcher:
    """
    Base class for aggregated contract reads.

    Provides common functionality for batching RPC calls to reduce
    network overhead: address normalisation, chunking and a single
    guarded entry point to the transport.
    """

    def __init__(self, caller: ContractCaller, config: Optional[BatchConfig] = None):
        self.caller = caller
        self.config = config or BatchConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.error_handler = ErrorHandler(self.logger)

    def _chunk_addresses(self, addresses: List[str]) -> List[List[str]]:
        """Split addresses into chunks based on batch_size."""
        chunk_size = self.config.batch_size
        return [
            addresses[i : i + chunk_size] for i in range(0, len(addresses), chunk_size)
        ]

    def _validate_addresses(self, addresses: List[str]) -> List[str]:
        """
        Normalize Ethereum addresses to checksum form.

        Raises:
            EncodingError: On the first address that is not a valid address
        """
        validated = []
        for addr in addresses:
            try:
                validated.append(Web3.to_checksum_address(addr))
            except Exception as e:
                raise EncodingError(f"Invalid address {addr}: {e}", target=str(addr)) from e
        return validated

    async def _call_contract(
        self,
        target: str,
        call_data: bytes,
        block_identifier: Optional[BlockIdentifier] = None,
    ) -> bytes:
        """
        Make one eth_call through the configured transport.

        Args:
            target: Contract address to call
            call_data: Packed calldata
            block_identifier: Block to call at (None for the node default)

        Returns:
            Raw bytes response from the call

        Raises:
            DispatchError: If the transport fails for any reason
        """
        try:
            return await self.caller.call_contract(target, call_data, block_identifier)
        except BatchError:
            raise
        except Exception as e:
            self.error_handler.log_error(
                e,
                {
                    "target": target,
                    "block_identifier": block_identifier,
                    "calldata_size": len(call_data),
                },
            )
            raise DispatchError(f"Call to {target} failed: {e}", target=target) from e
