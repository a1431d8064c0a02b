"""
Multicall Batcher.

Queues arbitrary read-only contract calls and executes them together in a
single eth_call to MakerDAO's Multicall2 contract
(https://github.com/makerdao/multicall) using tryAggregate().

Usage:
    multicaller = MultiCaller(caller, MULTICALL_ADDRESS)
    erc20 = load_abi(ERC20_ABI)

    symbol = multicaller.add_call(token, erc20, "symbol")
    balance = multicaller.add_call(token, erc20, "balanceOf", holder)

    flags = await multicaller.execute(require_success=False)
    if flags[1]:
        print(balance.value)

A MultiCaller is not safe for concurrent use: queue calls and execute them
from one task at a time, or guard the instance with a lock.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from web3 import Web3

from .abi import MULTICALL2_ABI, ContractABI, load_abi
from .base import BaseBatcher
from .errors import BatchError, DecodingError, EncodingError, IntegrityError
from .transport import BlockIdentifier, ContractCaller


@dataclass
class Call:
    """A contract call waiting in the queue."""

    target: str
    # Only used in error messages
    method: str
    pack_func: Callable[[], bytes]
    unpack_func: Callable[[bytes], None]
    call_data: Optional[bytes] = None


@dataclass
class CallResponse:
    """Outcome of one call inside an aggregated call."""

    success: bool
    return_data: bytes


@dataclass
class CallOutput:
    """Holder that receives a decoded return value."""

    value: Any = None
    decoded: bool = False

    def set(self, value: Any):
        self.value = value
        self.decoded = True


class MultiCaller(BaseBatcher):
    """
    Batches arbitrary contract calls into one tryAggregate() call.

    Calls are queued with add_call()/add_raw_call() and run by execute(),
    which always empties the queue.
    """

    def __init__(self, caller: ContractCaller, multicall_address: str):
        """
        Initialize the multicaller.

        Args:
            caller: Transport used for eth_call
            multicall_address: Address of the deployed Multicall2 contract
        """
        super().__init__(caller)
        self.contract_address = Web3.to_checksum_address(multicall_address)
        self.abi = load_abi(MULTICALL2_ABI)
        self._calls: List[Call] = []

    def __len__(self) -> int:
        return len(self._calls)

    @property
    def pending(self) -> int:
        """Number of queued calls."""
        return len(self._calls)

    def add_call(
        self,
        target: str,
        abi: ContractABI,
        method: str,
        *args: Any,
        output: Optional[CallOutput] = None
    ) -> CallOutput:
        """
        Queue a call to method on target.

        Arguments are packed during execute(), not here.

        Args:
            target: Contract to call
            abi: ABI of the target contract
            method: Function name
            *args: Function arguments
            output: Holder for the decoded result (a new one if omitted)

        Returns:
            The holder, filled in by execute() if the call succeeds
        """
        target = self._validate_addresses([target])[0]
        if output is None:
            output = CallOutput()

        def pack_func() -> bytes:
            try:
                return abi.pack(method, *args)
            except EncodingError as e:
                raise EncodingError(
                    f"Error packing data for call [{method}] on contract {target}: {e}",
                    target=target,
                    method=method,
                ) from e

        def unpack_func(return_data: bytes):
            output.set(abi.unpack(method, return_data))

        self.add_raw_call(target, method, pack_func, unpack_func)
        return output

    def add_raw_call(
        self,
        target: str,
        method: str,
        pack_func: Callable[[], bytes],
        unpack_func: Callable[[bytes], None]
    ):
        """
        Queue a call with caller-supplied pack and unpack steps.

        Args:
            target: Contract to call
            method: Label used in error messages
            pack_func: Returns the calldata; run during execute()
            unpack_func: Receives the return data of a successful call
        """
        self._calls.append(
            Call(
                target=self._validate_addresses([target])[0],
                method=method,
                pack_func=pack_func,
                unpack_func=unpack_func,
            )
        )

    def add_eth_balance_call(
        self, address: str, output: Optional[CallOutput] = None
    ) -> CallOutput:
        """Queue Multicall2.getEthBalance(address)."""
        return self.add_call(
            self.contract_address,
            self.abi,
            "getEthBalance",
            self._validate_addresses([address])[0],
            output=output,
        )

    def clear(self):
        """Drop all queued calls without executing them."""
        self._calls = []

    async def execute(
        self,
        require_success: bool,
        block_identifier: Optional[BlockIdentifier] = None
    ) -> List[bool]:
        """
        Run every queued call in a single tryAggregate() call.

        With require_success the Multicall2 contract reverts the whole call
        if any inner call fails; otherwise calls fail independently. Results
        of successful calls are decoded into their outputs. The queue is
        empty afterwards whatever the outcome.

        Args:
            require_success: Passed through to tryAggregate()
            block_identifier: Block to call at

        Returns:
            One success flag per queued call, in queue order

        Raises:
            EncodingError: A call could not be packed (nothing was sent)
            DispatchError: The aggregated call failed
            DecodingError: The aggregated response, or a successful call's
                return data, could not be unpacked
            IntegrityError: The response holds the wrong number of results
        """
        calls, self._calls = self._calls, []
        if not calls:
            return []

        for call in calls:
            call.call_data = self._pack_call(call)

        aggregate_data = self.abi.pack(
            "tryAggregate",
            require_success,
            [(call.target, call.call_data) for call in calls],
        )

        self.logger.debug(
            f"Executing {len(calls)} calls via {self.contract_address} "
            f"(require_success={require_success})"
        )
        raw_response = await self._call_contract(
            self.contract_address, aggregate_data, block_identifier
        )

        results = self._unpack_results(raw_response, len(calls))
        return self._apply_results(calls, results)

    def _pack_call(self, call: Call) -> bytes:
        try:
            return bytes(call.pack_func())
        except BatchError:
            raise
        except Exception as e:
            raise EncodingError(
                f"Error packing data for call [{call.method}] on contract {call.target}: {e}",
                target=call.target,
                method=call.method,
            ) from e

    def _unpack_results(self, raw_response: bytes, expected: int) -> List[CallResponse]:
        """Split the tryAggregate() response into per-call results."""
        try:
            decoded = self.abi.unpack("tryAggregate", raw_response)
        except DecodingError as e:
            raise DecodingError(
                f"Error unpacking aggregated response data: {e}",
                target=self.contract_address,
                method="tryAggregate",
            ) from e

        if len(decoded) != expected:
            raise IntegrityError(
                f"Received {len(decoded)} results for {expected} calls"
            )

        return [
            CallResponse(success=bool(success), return_data=bytes(return_data))
            for success, return_data in decoded
        ]

    def _apply_results(self, calls: List[Call], results: List[CallResponse]) -> List[bool]:
        """Decode successful results into their outputs, in queue order."""
        flags = []
        for call, result in zip(calls, results):
            if result.success:
                try:
                    call.unpack_func(result.return_data)
                except Exception as e:
                    raise DecodingError(
                        f"Error unpacking response for contract {call.target}, "
                        f"method {call.method}: {e}",
                        target=call.target,
                        method=call.method,
                    ) from e
            flags.append(result.success)

        self.logger.debug(f"{sum(flags)}/{len(flags)} calls succeeded")
        return flags
