"""
The deployment workflow: compile -> deploy -> bind -> verify.

A strict linear pipeline.  Each stage takes the previous stage's output as
an explicit argument; there is no module-level connection or contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from .chain.compiler import CompiledArtifact, compile_file
from .chain.rpc import RpcClient
from .chain.tx import DeploymentReceipt, DeployOptions, deploy
from .config import DeployConfig
from .contract import ContractHandle, bind
from .errors import HotelChainError, VerificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployedContract:
    artifact: CompiledArtifact
    receipt: DeploymentReceipt
    handle: ContractHandle

    @property
    def address(self) -> str:
        return self.receipt.contract_address


@dataclass(frozen=True)
class VerificationResult:
    getter: str
    expected: Any
    actual: Any

    @property
    def passed(self) -> bool:
        return self.actual == self.expected


def connect(config: DeployConfig) -> RpcClient:
    """
    Open a client to the configured node and check it answers.

    Raises:
        NodeConnectionError: If the node is unreachable
        RpcError: If the node rejects the version probe
    """
    client = RpcClient(config.endpoint_url)
    try:
        version = client.client_version()
    except HotelChainError:
        client.close()
        raise
    logger.info("connected to %s (%s)", config.endpoint_url, version)
    return client


def deploy_artifact(
    client: RpcClient,
    artifact: CompiledArtifact,
    constructor_args: Sequence[Any],
    config: DeployConfig,
    options: Optional[DeployOptions] = None,
) -> DeployedContract:
    options = options or DeployOptions.from_config(config)
    receipt = deploy(client, artifact, constructor_args, options)
    handle = bind(receipt.contract_address, artifact.abi, client)
    return DeployedContract(artifact=artifact, receipt=receipt, handle=handle)


def deploy_from_source(
    source_path: Path,
    constructor_args: Sequence[Any],
    config: DeployConfig,
    client: RpcClient,
    contract_name: Optional[str] = None,
    options: Optional[DeployOptions] = None,
) -> DeployedContract:
    """
    Compile a source file, deploy it, and bind a handle to the result.

    A compilation failure raises before any transaction is submitted.
    """
    artifact = compile_file(source_path, contract_name=contract_name, config=config, client=client)
    logger.info(
        "compiled %s: %d ABI entries, %d bytes",
        artifact.contract_name,
        len(artifact.abi),
        (len(artifact.bytecode) - 2) // 2,
    )
    return deploy_artifact(client, artifact, constructor_args, config, options)


def verify(handle: ContractHandle, getter: str, expected: Any, *args: Any) -> VerificationResult:
    """Call a read-only getter and compare its value to ``expected``."""
    actual = handle.call(getter, *args)
    return VerificationResult(getter=getter, expected=expected, actual=actual)


def assert_verified(handle: ContractHandle, getter: str, expected: Any, *args: Any) -> VerificationResult:
    """
    Like verify(), but raise on mismatch.

    Raises:
        VerificationError: If the getter's value differs from ``expected``
    """
    result = verify(handle, getter, expected, *args)
    if not result.passed:
        raise VerificationError(
            f"{getter}() returned {result.actual!r}, expected {result.expected!r}"
        )
    return result
