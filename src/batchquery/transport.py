"""
Contract call transport.

The batchers never talk to a node directly; they go through a ContractCaller,
which performs a single read-only eth_call against a target contract.
"""

import asyncio
import functools
from typing import Optional, Protocol, Union

from web3 import AsyncWeb3, Web3

BlockIdentifier = Union[int, str]


class ContractCaller(Protocol):
    """Anything that can run an eth_call and return the raw result bytes."""

    async def call_contract(
        self,
        target: str,
        data: bytes,
        block_identifier: Optional[BlockIdentifier] = None,
    ) -> bytes:
        ...


class Web3ContractCaller:
    """
    ContractCaller backed by a web3 instance.

    AsyncWeb3 calls are awaited directly. Calls on a blocking Web3 instance
    run in the event loop's default executor so concurrent callers overlap.
    Request timeouts are whatever the web3 provider is configured with.
    """

    def __init__(self, web3: Union[Web3, AsyncWeb3]):
        self.web3 = web3

    async def call_contract(
        self,
        target: str,
        data: bytes,
        block_identifier: Optional[BlockIdentifier] = None,
    ) -> bytes:
        transaction = {"to": target, "data": data}

        if isinstance(self.web3, AsyncWeb3):
            result = await self.web3.eth.call(transaction, block_identifier=block_identifier)
        else:
            loop = asyncio.get_event_loop()
            result = await loop.run_in_executor(
                None,
                functools.partial(
                    self.web3.eth.call, transaction, block_identifier=block_identifier
                ),
            )

        return bytes(result)
