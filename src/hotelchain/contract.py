"""
Contract handles.

``bind(address, abi, client)`` pairs a deployed address with its ABI.  It
does no network I/O itself; every method invoked through the handle makes
its own remote read or write, and nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .chain.abi import decode_result, encode_call, find_function, function_names, is_read_only
from .chain.rpc import RpcClient, is_address, to_checksum_address
from .chain.tx import DeployOptions, TransactionResult, send_contract_tx
from .errors import ArgumentError


@dataclass(frozen=True)
class ContractHandle:
    address: str
    abi: list = field(repr=False)
    client: RpcClient = field(repr=False, compare=False)

    def call(self, function_name: str, *args: Any) -> Any:
        """Read a value with ``eth_call`` (no transaction)."""
        calldata = encode_call(self.abi, function_name, list(args))
        result = self.client.eth_call({"to": self.address, "data": calldata})
        return decode_result(self.abi, function_name, result, arg_count=len(args))

    def transact(
        self,
        function_name: str,
        *args: Any,
        options: Optional[DeployOptions] = None,
    ) -> TransactionResult:
        """Send a state-changing call and wait for it to be mined."""
        return send_contract_tx(
            self.client, self.address, self.abi, function_name, args, options=options
        )

    @property
    def functions(self) -> "_Functions":
        return _Functions(self)

    def has_function(self, function_name: str) -> bool:
        return function_name in function_names(self.abi)


class _Functions:
    """``handle.functions.name(*args)``: reads for view/pure, writes otherwise."""

    def __init__(self, handle: ContractHandle) -> None:
        self._handle = handle

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)
        entry = find_function(self._handle.abi, name)

        if is_read_only(entry):
            return lambda *args: self._handle.call(name, *args)
        return lambda *args, options=None: self._handle.transact(name, *args, options=options)

    def __dir__(self) -> list[str]:
        return function_names(self._handle.abi)


def bind(address: str, abi: list, client: RpcClient) -> ContractHandle:
    """
    Bind a deployed address and ABI into a callable handle.

    Raises:
        ArgumentError: If the address is malformed or the ABI is not a list
    """
    if not is_address(address):
        raise ArgumentError(f"Invalid contract address: {address!r}")
    if not isinstance(abi, list):
        raise ArgumentError("ABI must be a list of entries")
    return ContractHandle(address=to_checksum_address(address), abi=abi, client=client)
