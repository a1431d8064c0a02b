"""
Contract ABI codec.

Packs method calls into calldata and unpacks return data using the JSON ABI
definitions shipped in the abis/ directory, built on eth_abi.
"""

import json
import logging
import os
from threading import Lock
from typing import Any, Dict, List, Optional

from eth_abi import decode, encode
from web3 import Web3

from .errors import BatchError, DecodingError, EncodingError

logger = logging.getLogger(__name__)

BALANCE_CHECKER_ABI = "BalanceChecker"
MULTICALL2_ABI = "Multicall2"
ERC20_ABI = "ERC20"

_abi_cache: Dict[str, "ContractABI"] = {}
_abi_lock = Lock()


def _param_type(param: Dict[str, Any]) -> str:
    """Canonical type string of an ABI parameter, expanding tuples."""
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        components = ",".join(_param_type(c) for c in param["components"])
        return f"({components}){abi_type[len('tuple'):]}"
    return abi_type


class ContractABI:
    """
    Encoder/decoder for the functions of one contract ABI.

    Overloaded functions are not supported; the first definition of a name wins.
    """

    def __init__(self, abi: List[Dict[str, Any]], name: Optional[str] = None):
        self.name = name or "contract"
        self._functions: Dict[str, Dict[str, Any]] = {}
        for entry in abi:
            if entry.get("type", "function") != "function":
                continue
            self._functions.setdefault(entry["name"], entry)

    @classmethod
    def from_json(cls, abi_json: str, name: Optional[str] = None) -> "ContractABI":
        """Build from a JSON ABI string."""
        return cls(json.loads(abi_json), name)

    @property
    def function_names(self) -> List[str]:
        return list(self._functions)

    def input_types(self, method: str) -> List[str]:
        return [_param_type(p) for p in self._function(method)["inputs"]]

    def output_types(self, method: str) -> List[str]:
        return [_param_type(p) for p in self._function(method).get("outputs", [])]

    def selector(self, method: str) -> bytes:
        """4-byte function selector."""
        signature = f"{method}({','.join(self.input_types(method))})"
        return bytes(Web3.keccak(text=signature)[:4])

    def pack(self, method: str, *args: Any) -> bytes:
        """
        Encode a call to method with the given arguments.

        Args:
            method: Function name
            *args: Function arguments, in ABI order

        Returns:
            Calldata (selector followed by the encoded arguments)

        Raises:
            EncodingError: If the method is unknown or the arguments do not fit
        """
        try:
            types = self.input_types(method)
            if len(args) != len(types):
                raise ValueError(f"expected {len(types)} arguments, got {len(args)}")
            return self.selector(method) + encode(types, list(args))
        except Exception as e:
            raise EncodingError(
                f"Failed to pack {self.name}.{method}: {e}", method=method
            ) from e

    def unpack(self, method: str, data: bytes) -> Any:
        """
        Decode the return data of method.

        Returns:
            None for functions without outputs, the single value for one
            output, otherwise a tuple of values

        Raises:
            DecodingError: If the method is unknown or the data does not fit
        """
        try:
            types = self.output_types(method)
            values = decode(types, bytes(data))
        except Exception as e:
            raise DecodingError(
                f"Failed to unpack {self.name}.{method}: {e}", method=method
            ) from e

        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return values

    def _function(self, method: str) -> Dict[str, Any]:
        try:
            return self._functions[method]
        except KeyError:
            raise BatchError(f"Method '{method}' not found in {self.name} ABI")


def load_abi(name: str) -> ContractABI:
    """
    Load one of the bundled ABIs.

    Each ABI is parsed once per process and the same instance is handed out
    afterwards; instances are only read after construction.

    Raises:
        BatchError: If the ABI file is missing or malformed
    """
    contract_abi = _abi_cache.get(name)
    if contract_abi is not None:
        return contract_abi

    with _abi_lock:
        contract_abi = _abi_cache.get(name)
        if contract_abi is None:
            contract_path = os.path.join(os.path.dirname(__file__), "abis", f"{name}.json")
            try:
                with open(contract_path, "r") as f:
                    contract_data = json.load(f)
                contract_abi = ContractABI(contract_data["abi"], name)
            except (FileNotFoundError, KeyError, json.JSONDecodeError) as e:
                raise BatchError(f"Failed to load {name} ABI: {e}")

            logger.debug(f"Loaded {name} ABI with {len(contract_abi.function_names)} functions")
            _abi_cache[name] = contract_abi

    return contract_abi
