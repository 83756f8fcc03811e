"""
JSON-RPC client for a local Ethereum node.

Uses httpx for HTTP instead of the heavyweight web3.py.  One ``RpcClient``
holds one HTTP connection and is reused for every call of a deployment run.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Any, Optional

import httpx

from ..errors import DeploymentTimeout, NodeConnectionError, RpcError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keccak-256 helper (NOT the same as hashlib.sha3_256 / NIST SHA-3)
# ---------------------------------------------------------------------------

def keccak256(data: bytes) -> bytes:
    """Compute Keccak-256 hash via eth-hash."""
    from eth_hash.auto import keccak

    return keccak(data)


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format."""
    addr = address.lower().replace("0x", "")
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


def is_address(value: object) -> bool:
    """True for a 0x-prefixed, 20-byte hex string."""
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 42:
        return False
    try:
        int(value[2:], 16)
    except ValueError:
        return False
    return True


def _to_hex(value: int) -> str:
    return hex(value)


class RpcClient:
    """
    Reusable JSON-RPC connection to a node.

    No retries, no pooling, no authentication: transport failures surface
    immediately as NodeConnectionError.
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self._ids = itertools.count(1)
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def call(self, method: str, params: Optional[list] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_call")
            params: RPC parameters

        Returns:
            Result field from the RPC response

        Raises:
            NodeConnectionError: If the node is unreachable or answers non-2xx
            RpcError: If the node returns a JSON-RPC error
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        logger.debug("rpc -> %s %s", method, payload["params"])

        try:
            response = self._http.post(self.endpoint_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise NodeConnectionError(
                f"Node at {self.endpoint_url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NodeConnectionError(
                f"Cannot reach node at {self.endpoint_url}: {exc}"
            ) from exc
        except ValueError as exc:
            raise NodeConnectionError(
                f"Node at {self.endpoint_url} returned a non-JSON response"
            ) from exc

        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(
                    str(error.get("message", error)),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcError(str(error))

        return data.get("result")

    # ---- Read helpers ----

    def is_connected(self) -> bool:
        try:
            self.call("web3_clientVersion")
        except (NodeConnectionError, RpcError):
            return False
        return True

    def client_version(self) -> str:
        return self.call("web3_clientVersion")

    def accounts(self) -> list[str]:
        """Node-managed (unlocked) accounts."""
        return list(self.call("eth_accounts") or [])

    def chain_id(self) -> int:
        return int(self.call("eth_chainId"), 16)

    def block_number(self) -> int:
        return int(self.call("eth_blockNumber"), 16)

    def gas_price(self) -> int:
        return int(self.call("eth_gasPrice"), 16)

    def get_balance(self, address: str) -> int:
        return int(self.call("eth_getBalance", [address, "latest"]), 16)

    def get_nonce(self, address: str) -> int:
        return int(self.call("eth_getTransactionCount", [address, "latest"]), 16)

    def get_code(self, address: str) -> str:
        return self.call("eth_getCode", [address, "latest"])

    def eth_call(self, tx: dict) -> str:
        return self.call("eth_call", [tx, "latest"])

    # ---- Write helpers ----

    def send_transaction(self, tx: dict) -> str:
        """Submit a transaction signed by a node-managed account."""
        rpc_tx = {k: (_to_hex(v) if isinstance(v, int) else v) for k, v in tx.items()}
        return self.call("eth_sendTransaction", [rpc_tx])

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_tx])

    def get_receipt(self, tx_hash: str) -> Optional[dict]:
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
        poll_interval: float = 1.0,
        cancel: Optional[threading.Event] = None,
    ) -> dict:
        """
        Poll until a transaction is mined.

        Args:
            tx_hash: Transaction hash
            timeout: Maximum wait time in seconds
            poll_interval: Polling interval in seconds
            cancel: Optional event; setting it aborts the wait

        Returns:
            Transaction receipt dict

        Raises:
            DeploymentTimeout: If not mined within timeout, or cancelled
        """
        deadline = time.monotonic() + timeout
        while True:
            if cancel is not None and cancel.is_set():
                raise DeploymentTimeout(f"Wait for {tx_hash} cancelled", tx_hash=tx_hash)

            receipt = self.get_receipt(tx_hash)
            if receipt is not None:
                return receipt

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DeploymentTimeout(
                    f"Transaction {tx_hash} not mined within {timeout}s", tx_hash=tx_hash
                )
            logger.debug("waiting for %s (%.1fs left)", tx_hash, remaining)
            sleep_for = min(poll_interval, remaining)
            if cancel is not None:
                cancel.wait(sleep_for)
            else:
                time.sleep(sleep_for)
