"""
Balance Batch Fetcher.

This module provides efficient batch fetching of native-currency and ERC-20
balances for many accounts using a deployed balance checker contract
(https://github.com/wbobeirne/eth-balance-checker) via eth.call().
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Union

from web3 import AsyncWeb3, Web3

from .abi import BALANCE_CHECKER_ABI, load_abi
from .base import BaseBatcher, BatchConfig, BatchResult
from .errors import BatchError, IntegrityError
from .transport import BlockIdentifier, ContractCaller, Web3ContractCaller

# The balance checker treats the zero address as the chain's native currency
NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"


class BalanceBatcher(BaseBatcher):
    """
    Batch fetcher for account balances.

    Splits large address lists into chunks of config.batch_size and queries
    each chunk with a single balances() call, running at most
    config.concurrency_limit chunk calls at the same time.
    """

    def __init__(
        self,
        caller: ContractCaller,
        contract_address: str,
        config: Optional[BatchConfig] = None
    ):
        """
        Initialize the balance batcher.

        Args:
            caller: Transport used for eth_call
            contract_address: Address of the deployed balance checker
            config: Batch configuration
        """
        super().__init__(caller, config)
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.abi = load_abi(BALANCE_CHECKER_ABI)

    async def get_eth_balances(
        self,
        addresses: List[str],
        block_identifier: Optional[BlockIdentifier] = None
    ) -> List[int]:
        """
        Fetch the native-currency balance of every address.

        Args:
            addresses: Account addresses, in the order results are wanted
            block_identifier: Block to call at

        Returns:
            Balances in wei; result[i] belongs to addresses[i]

        Raises:
            BatchError: The first error hit by any chunk
        """
        return await self.get_token_balances(addresses, NATIVE_TOKEN_ADDRESS, block_identifier)

    async def get_token_balances(
        self,
        addresses: List[str],
        token: str,
        block_identifier: Optional[BlockIdentifier] = None
    ) -> List[int]:
        """
        Fetch the balance of token held by every address.

        Args:
            addresses: Account addresses, in the order results are wanted
            token: ERC-20 token address, or NATIVE_TOKEN_ADDRESS
            block_identifier: Block to call at

        Returns:
            Balances in the token's base unit; result[i] belongs to addresses[i]

        Raises:
            BatchError: The first error hit by any chunk
        """
        validated_addresses = self._validate_addresses(addresses)
        token = self._validate_addresses([token])[0]
        if not validated_addresses:
            return []

        chunks = self._chunk_addresses(validated_addresses)
        self.logger.info(
            f"Fetching balances for {len(validated_addresses)} addresses in {len(chunks)} chunks "
            f"(concurrency {self.config.concurrency_limit})"
        )

        balances: List[Optional[int]] = [None] * len(validated_addresses)
        errors: List[BatchError] = []
        semaphore = asyncio.Semaphore(self.config.concurrency_limit)

        async def _run_chunk(index: int, chunk: List[str]):
            offset = index * self.config.batch_size
            async with semaphore:
                self.logger.debug(
                    f"Processing chunk {index + 1}/{len(chunks)} with {len(chunk)} addresses"
                )
                try:
                    chunk_balances = await self._fetch_chunk(chunk, token, block_identifier)
                except BatchError as e:
                    if not errors:
                        errors.append(e)
                    self.logger.warning(f"Chunk {index + 1} failed: {e}")
                    return
            balances[offset : offset + len(chunk)] = chunk_balances

        # Every chunk runs to completion even after a failure; only the first
        # error is kept and no call outlives this one.
        await asyncio.gather(*(_run_chunk(i, chunk) for i, chunk in enumerate(chunks)))

        if errors:
            raise errors[0]

        return balances

    async def _fetch_chunk(
        self,
        addresses: List[str],
        token: str,
        block_identifier: Optional[BlockIdentifier] = None
    ) -> List[int]:
        """Query one chunk and check the response against the request."""
        call_data = self.abi.pack("balances", addresses, [token])
        raw_response = await self._call_contract(self.contract_address, call_data, block_identifier)
        chunk_balances = self.abi.unpack("balances", raw_response)

        if len(chunk_balances) != len(addresses):
            raise IntegrityError(
                f"Received {len(chunk_balances)} balances which mismatches "
                f"query batch size {len(addresses)}"
            )
        for address, balance in zip(addresses, chunk_balances):
            if balance is None:
                raise IntegrityError(f"Received no balance for address {address}", address=address)

        return list(chunk_balances)

    async def batch_call(
        self,
        addresses: List[str],
        block_identifier: Optional[BlockIdentifier] = None
    ) -> BatchResult:
        """
        Fetch native balances without raising.

        Args:
            addresses: Account addresses
            block_identifier: Block to call at

        Returns:
            BatchResult mapping checksum addresses to balances, or carrying the error
        """
        try:
            balances = await self.get_eth_balances(addresses, block_identifier)
            validated_addresses = self._validate_addresses(addresses)
            return BatchResult(
                success=True,
                data=dict(zip(validated_addresses, balances)),
                block_number=block_identifier if isinstance(block_identifier, int) else None,
                timestamp=datetime.now(timezone.utc)
            )

        except BatchError as e:
            self.logger.error(f"Batch call failed: {e}")
            return BatchResult(
                success=False,
                data={},
                error=str(e)
            )


# Convenience function for easy usage
async def fetch_eth_balances(
    web3: Union[Web3, AsyncWeb3],
    contract_address: str,
    addresses: List[str],
    block_identifier: Optional[BlockIdentifier] = None,
    batch_size: int = 100,
    concurrency_limit: int = 4
) -> List[int]:
    """
    Convenience function to fetch native balances.

    Args:
        web3: Web3 or AsyncWeb3 instance
        contract_address: Address of the deployed balance checker
        addresses: Account addresses
        block_identifier: Block to call at
        batch_size: Number of addresses per call
        concurrency_limit: Number of calls in flight at once

    Returns:
        Balances in wei, in the order of addresses
    """
    config = BatchConfig(batch_size=batch_size, concurrency_limit=concurrency_limit)
    batcher = BalanceBatcher(Web3ContractCaller(web3), contract_address, config)
    return await batcher.get_eth_balances(addresses, block_identifier)
