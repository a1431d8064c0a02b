"""Stub transports and helpers shared by the batchquery tests."""
import asyncio
from typing import Callable, Dict, List, Optional

from eth_abi import decode, encode
from web3 import Web3

from batchquery.abi import ERC20_ABI, load_abi

BALANCE_CHECKER_ADDRESS = "0xb1F8e55c7f64D203C1400B9D8555d050F94aDF39"
MULTICALL_ADDRESS = "0x5BA1e12693Dc8F9c48aAD8770482f4739bEeD696"

BALANCES_SELECTOR = bytes(Web3.keccak(text="balances(address[],address[])")[:4])
TRY_AGGREGATE_SELECTOR = bytes(Web3.keccak(text="tryAggregate(bool,(address,bytes)[])")[:4])


def make_address(i: int) -> str:
    return Web3.to_checksum_address(f"0x{i:040x}")


def balance_of(address: str, token: str = "0x0000000000000000000000000000000000000000") -> int:
    """Deterministic fake balance, different for every address and token."""
    return int(address, 16) * 10**9 + int(token, 16) % 1000


class StubBalanceChecker:
    """Answers balances() calls the way the deployed balance checker does."""

    def __init__(self, delay: float = 0.01):
        self.delay = delay
        self.calls: List[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_on = set()
        self.drop_last = False

    async def call_contract(self, target, data, block_identifier=None):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            assert data[:4] == BALANCES_SELECTOR
            users, tokens = decode(["address[]", "address[]"], data[4:])
            self.calls.append(
                {
                    "target": target,
                    "users": list(users),
                    "tokens": list(tokens),
                    "block_identifier": block_identifier,
                }
            )

            if any(user.lower() in self.fail_on for user in users):
                raise ConnectionError("connection refused")

            values = [balance_of(user, tokens[0]) for user in users]
            if self.drop_last:
                values = values[:-1]
            return encode(["uint256[]"], [values])
        finally:
            self.in_flight -= 1


class StubMulticall:
    """Answers tryAggregate() calls by routing inner calls to per-target handlers."""

    def __init__(self):
        self.handlers: Dict[str, Callable[[bytes], bytes]] = {}
        self.invocations: List[dict] = []
        self.response_override: Optional[bytes] = None
        self.error: Optional[Exception] = None

    def register(self, target: str, handler: Callable[[bytes], bytes]):
        self.handlers[target.lower()] = handler

    async def call_contract(self, target, data, block_identifier=None):
        assert data[:4] == TRY_AGGREGATE_SELECTOR
        require_success, calls = decode(["bool", "(address,bytes)[]"], data[4:])
        self.invocations.append(
            {
                "target": target,
                "require_success": require_success,
                "calls": list(calls),
                "block_identifier": block_identifier,
            }
        )

        if self.error is not None:
            raise self.error
        if self.response_override is not None:
            return self.response_override

        results = []
        for call_target, call_data in calls:
            handler = self.handlers.get(call_target.lower())
            try:
                if handler is None:
                    raise ValueError("execution reverted")
                results.append((True, handler(call_data)))
            except ValueError:
                if require_success:
                    raise ValueError("execution reverted: Multicall2 aggregate: call failed")
                results.append((False, b""))

        return encode(["(bool,bytes)[]"], [results])


def erc20_handler(symbol: str, balances: Dict[str, int]) -> Callable[[bytes], bytes]:
    """Inner-call handler behaving like a small ERC-20 token."""
    erc20 = load_abi(ERC20_ABI)
    normalized = {address.lower(): amount for address, amount in balances.items()}

    def handler(call_data: bytes) -> bytes:
        selector = call_data[:4]
        if selector == erc20.selector("symbol"):
            return encode(["string"], [symbol])
        if selector == erc20.selector("decimals"):
            return encode(["uint8"], [18])
        if selector == erc20.selector("balanceOf"):
            (account,) = decode(["address"], call_data[4:])
            return encode(["uint256"], [normalized.get(account.lower(), 0)])
        raise ValueError("execution reverted")

    return handler


def reverting_handler(call_data: bytes) -> bytes:
    raise ValueError("execution reverted")


def garbage_handler(call_data: bytes) -> bytes:
    """Returns data too short to decode as any static type."""
    return b"\x01"
