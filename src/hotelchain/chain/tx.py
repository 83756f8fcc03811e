"""
Deployer - build, submit, and confirm contract transactions.

A transaction is either sent from a node-managed account
(``eth_sendTransaction``) or signed locally with eth-account and sent raw.
Either way the call blocks in an explicit polling loop until the
transaction is mined or the deadline passes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..config import DeployConfig
from ..errors import ArgumentError, DeploymentError, RpcError
from ..wallet import get_account, sign_transaction
from .abi import encode_call, encode_constructor_args
from .compiler import CompiledArtifact
from .rpc import RpcClient, is_address, to_checksum_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployOptions:
    """Per-transaction settings: who pays and how much gas is authorized."""

    sender: Optional[str] = None
    gas: int = 4_700_000
    gas_price: Optional[int] = None
    value: int = 0
    private_key: Optional[str] = None
    timeout: float = 120.0
    poll_interval: float = 1.0
    cancel: Optional[threading.Event] = None

    @classmethod
    def from_config(cls, config: DeployConfig, **overrides: Any) -> "DeployOptions":
        values: dict[str, Any] = {
            "sender": config.sender_account,
            "gas": config.gas_limit,
            "private_key": config.private_key,
            "timeout": config.receipt_timeout,
            "poll_interval": config.poll_interval,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class DeploymentReceipt:
    """Result of a mined contract-creation transaction."""

    contract_address: str
    tx_hash: str
    block_number: int
    gas_used: int
    sender: str


@dataclass(frozen=True)
class TransactionResult:
    tx_hash: str
    status: int
    receipt: dict


def _int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    return int(value, 16)


def resolve_sender(client: RpcClient, options: DeployOptions) -> str:
    """
    Work out the sending account.

    A private key wins; otherwise the configured sender; otherwise the
    node's first unlocked account.
    """
    if options.private_key:
        return get_account(options.private_key).address
    if options.sender:
        if not is_address(options.sender):
            raise ArgumentError(f"Invalid sender address: {options.sender}")
        return to_checksum_address(options.sender)
    accounts = client.accounts()
    if not accounts:
        raise DeploymentError("Node exposes no accounts; configure a sender or private key")
    return to_checksum_address(accounts[0])


def _submit(client: RpcClient, tx: dict, sender: str, options: DeployOptions) -> str:
    """Submit a transaction, returning its hash.  Node rejection -> DeploymentError."""
    try:
        if options.private_key:
            signed_tx = dict(tx)
            signed_tx["nonce"] = client.get_nonce(sender)
            signed_tx["gasPrice"] = options.gas_price or client.gas_price()
            signed_tx["chainId"] = client.chain_id()
            return client.send_raw_transaction(sign_transaction(signed_tx, options.private_key))

        node_tx = dict(tx)
        node_tx["from"] = sender
        if options.gas_price is not None:
            node_tx["gasPrice"] = options.gas_price
        return client.send_transaction(node_tx)
    except RpcError as exc:
        raise DeploymentError(f"Node rejected transaction: {exc}") from exc


def _check_gas(gas: int) -> None:
    if not isinstance(gas, int) or gas <= 0:
        raise DeploymentError(f"Gas limit must be a positive integer, got {gas!r}")


def deploy(
    client: RpcClient,
    artifact: CompiledArtifact,
    constructor_args: Sequence[Any] = (),
    options: Optional[DeployOptions] = None,
) -> DeploymentReceipt:
    """
    Deploy a compiled contract.

    Builds a creation transaction (no ``to``), submits it, and waits for it
    to be mined.

    Args:
        client: Connected RpcClient
        artifact: Compiled bytecode + ABI
        constructor_args: Positional constructor arguments
        options: Sender, gas budget, timeout

    Returns:
        DeploymentReceipt with the new contract's checksummed address

    Raises:
        ArgumentError: Constructor arguments do not match the ABI
        DeploymentError: Rejected, reverted, or no address assigned
        DeploymentTimeout: Not mined within ``options.timeout``
    """
    options = options or DeployOptions()
    _check_gas(options.gas)

    deploy_data = artifact.bytecode + encode_constructor_args(artifact.abi, list(constructor_args))
    if not deploy_data.startswith("0x"):
        deploy_data = "0x" + deploy_data

    sender = resolve_sender(client, options)
    tx: dict[str, Any] = {"data": deploy_data, "value": options.value, "gas": options.gas}

    logger.info("deploying %s from %s (gas %d)", artifact.contract_name, sender, options.gas)
    tx_hash = _submit(client, tx, sender, options)
    logger.debug("submitted %s", tx_hash)

    receipt = client.wait_for_receipt(
        tx_hash,
        timeout=options.timeout,
        poll_interval=options.poll_interval,
        cancel=options.cancel,
    )

    if _int(receipt.get("status"), default=1) != 1:
        raise DeploymentError(f"Deployment transaction {tx_hash} reverted", tx_hash=tx_hash)

    contract_address = receipt.get("contractAddress")
    if not contract_address or not is_address(contract_address):
        raise DeploymentError(
            f"No contract address in receipt for {tx_hash}", tx_hash=tx_hash
        )

    result = DeploymentReceipt(
        contract_address=to_checksum_address(contract_address),
        tx_hash=tx_hash,
        block_number=_int(receipt.get("blockNumber")),
        gas_used=_int(receipt.get("gasUsed")),
        sender=sender,
    )
    logger.info("%s deployed at %s", artifact.contract_name, result.contract_address)
    return result


def send_contract_tx(
    client: RpcClient,
    contract_address: str,
    abi: list,
    function_name: str,
    args: Sequence[Any] = (),
    options: Optional[DeployOptions] = None,
) -> TransactionResult:
    """
    Send a state-changing contract call and wait for its receipt.

    Raises:
        ArgumentError: Unknown function or bad arguments
        DeploymentError: Rejected by the node, or reverted on chain
        DeploymentTimeout: Not mined in time
    """
    options = options or DeployOptions()
    _check_gas(options.gas)

    calldata = encode_call(abi, function_name, list(args))
    sender = resolve_sender(client, options)
    tx: dict[str, Any] = {
        "to": to_checksum_address(contract_address),
        "data": calldata,
        "value": options.value,
        "gas": options.gas,
    }
    tx_hash = _submit(client, tx, sender, options)
    receipt = client.wait_for_receipt(
        tx_hash,
        timeout=options.timeout,
        poll_interval=options.poll_interval,
        cancel=options.cancel,
    )
    status = _int(receipt.get("status"), default=1)
    if status != 1:
        raise DeploymentError(f"Transaction {tx_hash} reverted (status {status})", tx_hash=tx_hash)
    return TransactionResult(tx_hash=tx_hash, status=status, receipt=receipt)
