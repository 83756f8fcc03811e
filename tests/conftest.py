"""
Shared fixtures: an in-memory JSON-RPC node served through httpx.MockTransport.

The fake node understands just enough of the Ethereum JSON-RPC surface to
compile (legacy ``eth_compileSolidity``), deploy, mine, and answer reads for
the Hotel contract, without any network access.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account
from eth_hash.auto import keccak

from hotelchain.chain.rpc import RpcClient


ENDPOINT = "http://fake-node:8545"
CHAIN_ID = 1337

HOTEL_BYTECODE = "0x608060405234801561001057600080fd5b50"

HOTEL_ABI: list[dict[str, Any]] = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_name", "type": "string"},
            {"name": "_description", "type": "string"},
            {"name": "_latitude", "type": "string"},
            {"name": "_longitude", "type": "string"},
            {"name": "_timezoneOffset", "type": "int256"},
        ],
    },
    {"type": "function", "name": "name", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"type": "function", "name": "description", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"type": "function", "name": "latitude", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"type": "function", "name": "longitude", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"type": "function", "name": "timezoneOffset", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "int256"}]},
    {"type": "function", "name": "owner", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "address"}]},
    {"type": "function", "name": "setDescription", "stateMutability": "nonpayable",
     "inputs": [{"name": "_description", "type": "string"}], "outputs": []},
]

HOTEL_SOURCE = (Path(__file__).resolve().parents[1] / "contracts" / "Hotel.sol").read_text(encoding="utf-8")

ETHEREUM_HOTEL = ("Ethereum Hotel", "Book rooms with ease", "12.9716", "77.5946", 19800)

NODE_ACCOUNTS = [
    "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1",
    "0xffcf8fdee72ac11b5c542428b35eef5769c409f0",
]


def _selector(entry: dict) -> str:
    sig = f"{entry['name']}({','.join(i['type'] for i in entry.get('inputs', []))})"
    return keccak(sig.encode("utf-8"))[:4].hex()


class FakeNode:
    """Minimal dev-chain: instant (or withheld) mining, one known contract type."""

    def __init__(self) -> None:
        self.artifacts: list[tuple[str, list]] = [(HOTEL_BYTECODE, HOTEL_ABI)]
        self.contracts: dict[str, dict[str, Any]] = {}
        self.receipts: dict[str, dict] = {}
        self.nonces: dict[str, int] = {}
        self.requests: list[dict] = []
        self.raw_transactions: list[dict] = []
        self.block = 0
        self.mining = True
        self.revert_next = False
        self.compile_error: Optional[str] = None
        self.compiler_available = True
        self.transport = httpx.MockTransport(self.handle)

    # ---- helpers ----

    def methods(self) -> list[str]:
        return [r["method"] for r in self.requests]

    def _next_nonce(self, sender: str) -> int:
        nonce = self.nonces.get(sender, 0)
        self.nonces[sender] = nonce + 1
        return nonce

    def _mine(self, sender: str, nonce: int, status: int, contract_address: Optional[str]) -> str:
        self.block += 1
        tx_hash = "0x" + keccak(f"{sender}:{nonce}:{self.block}".encode()).hex()
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block),
            "gasUsed": hex(21000 + 1000 * self.block),
            "status": hex(status),
            "contractAddress": contract_address,
            "from": sender,
            "logs": [],
        }
        return tx_hash

    def _create(self, sender: str, data: str) -> tuple[int, Optional[str]]:
        nonce = self._next_nonce(sender)
        if self.revert_next:
            self.revert_next = False
            return nonce, None
        address = "0x" + keccak(bytes.fromhex(sender[2:]) + nonce.to_bytes(8, "big"))[-20:].hex()
        values: dict[str, Any] = {"owner": sender}
        abi: list = []
        for bytecode, known_abi in self.artifacts:
            if data.startswith(bytecode):
                abi = known_abi
                ctor = next(e for e in known_abi if e["type"] == "constructor")
                types = [i["type"] for i in ctor["inputs"]]
                args = decode(types, bytes.fromhex(data[len(bytecode):]))
                for param, value in zip(ctor["inputs"], args):
                    values[param["name"].lstrip("_")] = value
                break
        self.contracts[address] = {"abi": abi, "values": values}
        return nonce, address

    def _eth_call(self, tx: dict) -> str:
        contract = self.contracts.get(tx["to"].lower())
        if contract is None:
            return "0x"
        selector = tx["data"][2:10]
        for entry in contract["abi"]:
            if entry.get("type") == "function" and _selector(entry) == selector and entry["outputs"]:
                value = contract["values"][entry["name"]]
                return "0x" + encode([entry["outputs"][0]["type"]], [value]).hex()
        return "0x"

    def _apply_call(self, sender: str, tx: dict) -> int:
        """Run a setter; returns the receipt status.  Only the owner may write."""
        contract = self.contracts.get(tx["to"].lower())
        if contract is None:
            return 1
        if self.revert_next or contract["values"].get("owner") != sender:
            self.revert_next = False
            return 0
        selector = tx["data"][2:10]
        for entry in contract["abi"]:
            if entry.get("type") == "function" and _selector(entry) == selector:
                types = [i["type"] for i in entry["inputs"]]
                args = decode(types, bytes.fromhex(tx["data"][10:]))
                field = entry["name"][3].lower() + entry["name"][4:]
                contract["values"][field] = args[0]
        return 1

    def _execute(self, sender: str, tx: dict) -> str:
        if tx.get("to") is None:
            nonce, address = self._create(sender, tx["data"])
            status = 1 if address else 0
        else:
            nonce, address = self._next_nonce(sender), None
            status = self._apply_call(sender, tx)
        return self._mine(sender, nonce, status, address)

    def _send(self, tx: dict) -> dict:
        if int(tx.get("gas", "0x0"), 16) < 21000:
            return {"error": {"code": -32000, "message": "intrinsic gas too low"}}
        return {"result": self._execute(tx["from"].lower(), tx)}

    def _send_raw(self, raw: str) -> dict:
        """Decode a signed legacy (EIP-155) transaction and execute it."""
        sender = Account.recover_transaction(raw).lower()
        fields = rlp.decode(bytes.fromhex(raw[2:] if raw.startswith("0x") else raw))
        nonce, gas_price, gas, to, value, data, v = fields[:7]
        tx = {
            "from": sender,
            "nonce": int.from_bytes(nonce, "big"),
            "gasPrice": int.from_bytes(gas_price, "big"),
            "gas": int.from_bytes(gas, "big"),
            "to": "0x" + to.hex() if to else None,
            "value": int.from_bytes(value, "big"),
            "data": "0x" + data.hex(),
            "chainId": (int.from_bytes(v, "big") - 35) // 2,
        }
        self.raw_transactions.append(tx)
        if tx["nonce"] != self.nonces.get(sender, 0):
            return {"error": {"code": -32000, "message": f"invalid nonce {tx['nonce']}"}}
        return {"result": self._execute(sender, tx)}

    def _compile(self, source: str) -> dict:
        if not self.compiler_available:
            return {"error": {"code": -32601, "message": "the method eth_compileSolidity does not exist"}}
        if self.compile_error:
            return {"error": {"code": -32000, "message": self.compile_error}}
        return {"result": {"Hotel": {"code": HOTEL_BYTECODE, "info": {"abiDefinition": HOTEL_ABI}}}}

    # ---- transport ----

    def dispatch(self, method: str, params: list) -> dict:
        if method == "web3_clientVersion":
            return {"result": "FakeNode/v0.1.0"}
        if method == "eth_chainId":
            return {"result": hex(CHAIN_ID)}
        if method == "eth_accounts":
            return {"result": list(NODE_ACCOUNTS)}
        if method == "eth_blockNumber":
            return {"result": hex(self.block)}
        if method == "eth_gasPrice":
            return {"result": hex(1_000_000_000)}
        if method == "eth_getTransactionCount":
            return {"result": hex(self.nonces.get(params[0].lower(), 0))}
        if method == "eth_getBalance":
            return {"result": hex(10**21)}
        if method == "eth_getCode":
            return {"result": HOTEL_BYTECODE if params[0].lower() in self.contracts else "0x"}
        if method == "eth_call":
            return {"result": self._eth_call(params[0])}
        if method == "eth_sendTransaction":
            return self._send(params[0])
        if method == "eth_sendRawTransaction":
            return self._send_raw(params[0])
        if method == "eth_getTransactionReceipt":
            if not self.mining:
                return {"result": None}
            return {"result": copy.deepcopy(self.receipts.get(params[0]))}
        if method == "eth_compileSolidity":
            return self._compile(params[0])
        return {"error": {"code": -32601, "message": f"the method {method} does not exist"}}

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        body = {"jsonrpc": "2.0", "id": payload["id"]}
        body.update(self.dispatch(payload["method"], payload.get("params", [])))
        return httpx.Response(200, json=body)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run each test in a scratch directory with no hotelchain settings."""
    for name in list(os.environ):
        if name.startswith("HOTELCHAIN_") or name == "PRIVATE_KEY":
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def client(node: FakeNode) -> RpcClient:
    with RpcClient(ENDPOINT, transport=node.transport) as rpc:
        yield rpc


@pytest.fixture()
def hotel_source_file(tmp_path: Path) -> Path:
    contracts = tmp_path / "contracts"
    contracts.mkdir(exist_ok=True)
    path = contracts / "Hotel.sol"
    path.write_text(HOTEL_SOURCE, encoding="utf-8")
    return path
