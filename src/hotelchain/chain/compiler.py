"""
Compiler - turn contract source text into bytecode + ABI.

Two backends:
- ``solc``: local solc through py-solc-x standard-JSON (installs the
  requested version on first use)
- ``node``: the node's legacy ``eth_compileSolidity`` endpoint

Nothing is cached; each call compiles afresh.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import solcx
from solcx.exceptions import SolcError, SolcNotInstalled

from ..config import DEFAULT_SOLC_VERSION, DeployConfig
from ..errors import CompilationError, RpcError
from .rpc import RpcClient

logger = logging.getLogger(__name__)

METHOD_NOT_FOUND = -32601


@dataclass(frozen=True)
class CompiledArtifact:
    """Output of a compilation: consumed by the deployer."""

    contract_name: str
    abi: list = field(repr=False)
    bytecode: str = field(repr=False)

    @property
    def function_names(self) -> list[str]:
        return [e["name"] for e in self.abi if e.get("type") == "function"]


def load_source(path: Path) -> str:
    """Read contract source text (UTF-8)."""
    return Path(path).read_text(encoding="utf-8")


def _normalize_bytecode(code: str) -> str:
    code = (code or "").strip()
    if code and not code.startswith("0x"):
        code = "0x" + code
    return code


def _check_artifact(name: str, abi: Any, bytecode: str) -> CompiledArtifact:
    if not isinstance(abi, list) or not abi:
        raise CompilationError(f"Compiler produced no ABI for {name}")
    if len(bytecode) <= 2:
        raise CompilationError(
            f"Compiler produced no bytecode for {name} (abstract contract or interface?)"
        )
    return CompiledArtifact(contract_name=name, abi=abi, bytecode=bytecode)


def _select(contracts: dict[str, Any], contract_name: Optional[str]) -> tuple[str, Any]:
    """Pick one contract out of a compiler's output mapping."""
    if contract_name is None:
        if len(contracts) == 1:
            return next(iter(contracts.items()))
        raise CompilationError(
            f"Source defines several contracts ({', '.join(sorted(contracts))}); "
            f"name the one to deploy"
        )
    if contract_name in contracts:
        return contract_name, contracts[contract_name]
    # geth style keys are "<stdin>:Name"
    for key, value in contracts.items():
        if key.rsplit(":", 1)[-1] == contract_name:
            return contract_name, value
    raise CompilationError(
        f"Contract {contract_name} not found in compiler output "
        f"(found: {', '.join(sorted(contracts)) or 'none'})"
    )


def compile_with_solc(
    source: str,
    contract_name: Optional[str] = None,
    solc_version: str = DEFAULT_SOLC_VERSION,
    source_name: str = "Contract.sol",
) -> CompiledArtifact:
    """
    Compile with a local solc via py-solc-x.

    Raises:
        CompilationError: With solc's diagnostics verbatim
    """
    standard_input = {
        "language": "Solidity",
        "sources": {source_name: {"content": source}},
        "settings": {
            "outputSelection": {"*": {"*": ["abi", "evm.bytecode.object"]}}
        },
    }

    try:
        compiled = solcx.compile_standard(standard_input, solc_version=solc_version)
    except SolcNotInstalled:
        logger.info("installing solc %s", solc_version)
        solcx.install_solc(solc_version)
        try:
            compiled = solcx.compile_standard(standard_input, solc_version=solc_version)
        except SolcError as exc:
            raise CompilationError(exc.message) from exc
    except SolcError as exc:
        raise CompilationError(exc.message) from exc

    contracts = compiled.get("contracts", {}).get(source_name, {})
    if not contracts:
        raise CompilationError("Source defines no contracts")

    name, data = _select(contracts, contract_name)
    bytecode = _normalize_bytecode(data.get("evm", {}).get("bytecode", {}).get("object", ""))
    return _check_artifact(name, data.get("abi"), bytecode)


def compile_with_node(
    source: str,
    client: RpcClient,
    contract_name: Optional[str] = None,
) -> CompiledArtifact:
    """
    Compile through the node's ``eth_compileSolidity`` endpoint.

    Accepts both the single-contract shape ``{"code", "info"}`` and the
    mapping shape ``{name: {"code", "info"}}``.

    Raises:
        CompilationError: With the node's diagnostics verbatim
        RpcError: If the node does not offer the endpoint
    """
    try:
        result = client.call("eth_compileSolidity", [source])
    except RpcError as exc:
        if exc.code == METHOD_NOT_FOUND:
            raise RpcError(
                f"{exc} (node has no compiler endpoint; use the solc compiler)",
                code=exc.code,
                data=exc.data,
            ) from exc
        raise CompilationError(str(exc)) from exc

    if not isinstance(result, dict) or not result:
        raise CompilationError("Node returned an empty compilation result")

    if "code" in result:
        name, data = contract_name or "Contract", result
    else:
        name, data = _select(result, contract_name)

    abi = data.get("info", {}).get("abiDefinition")
    return _check_artifact(name, abi, _normalize_bytecode(data.get("code", "")))


def compile_source(
    source: str,
    contract_name: Optional[str] = None,
    config: Optional[DeployConfig] = None,
    client: Optional[RpcClient] = None,
    source_name: str = "Contract.sol",
) -> CompiledArtifact:
    """
    Compile contract source with the configured backend.

    Args:
        source: Contract source text
        contract_name: Contract to select when the source defines several
        config: Picks the backend and solc version (default: solc)
        client: Required for the ``node`` backend
        source_name: File name reported in solc diagnostics

    Returns:
        CompiledArtifact with non-empty ABI and bytecode

    Raises:
        CompilationError: If the compiler rejects the source
    """
    config = config or DeployConfig()
    logger.debug("compiling %s with %s", contract_name or source_name, config.compiler)
    if config.compiler == "node":
        if client is None:
            raise ValueError("The node compiler needs an RpcClient")
        return compile_with_node(source, client, contract_name)
    return compile_with_solc(
        source,
        contract_name=contract_name,
        solc_version=config.solc_version,
        source_name=source_name,
    )


def compile_file(
    path: Path,
    contract_name: Optional[str] = None,
    config: Optional[DeployConfig] = None,
    client: Optional[RpcClient] = None,
) -> CompiledArtifact:
    """Compile a source file; the contract defaults to the file stem."""
    path = Path(path)
    return compile_source(
        load_source(path),
        contract_name=contract_name or path.stem,
        config=config,
        client=client,
        source_name=path.name,
    )
