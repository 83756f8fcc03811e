"""
hotelchain CLI

Compile, deploy, and check the Hotel contract against a local node.

Commands:
  compile   - Compile a contract source and print / save its artifact
  deploy    - Compile and deploy a contract with constructor arguments
  migrate   - Deploy the Hotel migration and record its address
  call      - Call a method on a deployed contract
  verify    - Check a getter on the recorded Hotel deployment
  accounts  - List the node's unlocked accounts
  info      - Show configuration and node status
"""

from __future__ import annotations

import functools
import logging
import sys
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

import click

from . import __version__
from .chain.abi import (
    coerce_args,
    coerce_value,
    find_constructor,
    find_function,
    input_types,
    load_artifact,
    output_types,
    save_artifact,
)
from .chain.compiler import compile_file
from .chain.rpc import RpcClient
from .chain.tx import DeployOptions
from .config import DeployConfig, load_config
from .contract import bind
from .errors import HotelChainError, VerificationError
from .migrations import HOTEL_ARGS, HOTEL_MIGRATION, DeploymentStore, run_migration
from .pipeline import connect, deploy_artifact, verify as verify_getter


def _fail(exc: HotelChainError) -> NoReturn:
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    sys.exit(exc.exit_code)


def parse_args(entry: Optional[dict], values: tuple[str, ...]) -> list[Any]:
    """Convert command-line strings using the input types of an ABI entry."""
    if entry is None:
        return list(values)
    return coerce_args(input_types(entry), values)


def _format(value: Any) -> str:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (list, tuple)):
        return "(" + ", ".join(_format(v) for v in value) + ")"
    return str(value)


def chain_options(func: Callable) -> Callable:
    """Options shared by every command that talks to a node."""

    @click.option("--rpc-url", default=None, help="Node RPC URL [env: HOTELCHAIN_RPC_URL]")
    @click.option("--sender", default=None, help="Sender account [env: HOTELCHAIN_SENDER]")
    @click.option("--gas", "gas_limit", type=int, default=None, help="Gas limit [env: HOTELCHAIN_GAS_LIMIT]")
    @click.option("--compiler", type=click.Choice(["solc", "node"]), default=None, help="Compiler backend")
    @click.option("--timeout", "receipt_timeout", type=float, default=None, help="Mining wait in seconds")
    @functools.wraps(func)
    def wrapper(
        rpc_url: Optional[str],
        sender: Optional[str],
        gas_limit: Optional[int],
        compiler: Optional[str],
        receipt_timeout: Optional[float],
        **kwargs: Any,
    ) -> Any:
        try:
            config = load_config(
                endpoint_url=rpc_url,
                sender_account=sender,
                gas_limit=gas_limit,
                compiler=compiler,
                receipt_timeout=receipt_timeout,
            )
        except HotelChainError as exc:
            _fail(exc)
        return func(config=config, **kwargs)

    return wrapper


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=__version__, prog_name="hotelchain")
@click.option("--verbose", "-v", is_flag=True, help="Log RPC traffic and pipeline steps")
def cli(verbose: bool) -> None:
    """hotelchain - deploy the Hotel contract to a local node."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command("compile")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--contract", "contract_name", default=None, help="Contract name (default: file stem)")
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write artifact JSON here")
@chain_options
def compile_cmd(config: DeployConfig, source: Path, contract_name: Optional[str], out: Optional[Path]) -> None:
    """Compile SOURCE and show its ABI."""
    client = None
    try:
        if config.compiler == "node":
            client = connect(config)
        artifact = compile_file(source, contract_name=contract_name, config=config, client=client)
    except HotelChainError as exc:
        _fail(exc)
    finally:
        if client is not None:
            client.close()

    click.secho(f"Compiled {artifact.contract_name}", fg="green")
    click.echo(f"  Bytecode: {(len(artifact.bytecode) - 2) // 2} bytes")
    click.echo(f"  Functions: {', '.join(artifact.function_names) or '(none)'}")
    if out:
        save_artifact(out, artifact.contract_name, artifact.abi, artifact.bytecode)
        click.echo(f"  Artifact: {out}")


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("args", nargs=-1)
@click.option("--contract", "contract_name", default=None, help="Contract name (default: file stem)")
@click.option("--record/--no-record", default=True, help="Record the deployment for later commands")
@chain_options
def deploy(
    config: DeployConfig,
    source: Path,
    args: tuple[str, ...],
    contract_name: Optional[str],
    record: bool,
) -> None:
    """Compile SOURCE and deploy it with constructor ARGS."""
    try:
        with connect(config) as client:
            artifact = compile_file(source, contract_name=contract_name, config=config, client=client)
            constructor_args = parse_args(find_constructor(artifact.abi), args)
            deployed = deploy_artifact(client, artifact, constructor_args, config)
            if record:
                DeploymentStore(config.deployments_path).record(client.chain_id(), deployed)
    except HotelChainError as exc:
        _fail(exc)

    click.secho(f"{deployed.artifact.contract_name} deployed!", fg="green", bold=True)
    click.echo(f"  Address: {deployed.address}")
    click.echo(f"  TX: {deployed.receipt.tx_hash}")
    click.echo(f"  Gas used: {deployed.receipt.gas_used}")


@cli.command()
@click.option("--contracts-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."),
              help="Project root containing contracts/")
@chain_options
def migrate(config: DeployConfig, contracts_dir: Path) -> None:
    """Deploy the Hotel contract with its migration arguments."""
    click.echo(f"Deploying {HOTEL_MIGRATION.contract_name} {HOTEL_MIGRATION.constructor_args}")
    try:
        with connect(config) as client:
            deployed = run_migration(HOTEL_MIGRATION, config, client, base_dir=contracts_dir)
    except HotelChainError as exc:
        _fail(exc)

    click.secho("Migration complete", fg="green", bold=True)
    click.echo(f"  Address: {deployed.address}")
    click.echo(f"  Record: {config.deployments_path}")


@cli.command()
@click.argument("address")
@click.argument("function_name")
@click.argument("args", nargs=-1)
@click.option("--artifact", "artifact_path", required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Artifact JSON with the ABI")
@click.option("--send", is_flag=True, help="Send a transaction instead of eth_call")
@chain_options
def call(
    config: DeployConfig,
    address: str,
    function_name: str,
    args: tuple[str, ...],
    artifact_path: Path,
    send: bool,
) -> None:
    """Call FUNCTION_NAME on the contract at ADDRESS."""
    try:
        artifact = load_artifact(artifact_path)
        call_args = parse_args(find_function(artifact["abi"], function_name, len(args)), args)
        with connect(config) as client:
            handle = bind(address, artifact["abi"], client)
            if send:
                result = handle.transact(function_name, *call_args, options=DeployOptions.from_config(config))
            else:
                value = handle.call(function_name, *call_args)
    except HotelChainError as exc:
        _fail(exc)

    if not send:
        click.echo(_format(value))
        return
    click.secho("SUCCESS: Transaction confirmed!", fg="green")
    click.echo(f"  TX: {result.tx_hash}")


@cli.command()
@click.option("--contract", "contract_name", default=HOTEL_MIGRATION.contract_name, help="Recorded contract")
@click.option("--getter", default="name", help="Read-only method to call")
@click.option("--expected", default=HOTEL_ARGS[0], help="Expected return value")
@chain_options
def verify(config: DeployConfig, contract_name: str, getter: str, expected: str) -> None:
    """Check that a getter on the deployed contract returns EXPECTED."""
    try:
        with connect(config) as client:
            handle = DeploymentStore(config.deployments_path).deployed(contract_name, client)
            types = output_types(find_function(handle.abi, getter, 0))
            if len(types) == 1:
                expected = coerce_value(types[0], expected)
            result = verify_getter(handle, getter, expected)
    except HotelChainError as exc:
        _fail(exc)

    if result.passed:
        click.secho(f"PASS: {getter}() == {expected!r}", fg="green")
        return
    click.secho(f"FAIL: {getter}() returned {result.actual!r}, expected {expected!r}", fg="red")
    sys.exit(VerificationError.exit_code)


@cli.command()
@chain_options
def accounts(config: DeployConfig) -> None:
    """List accounts the node can sign for."""
    try:
        with connect(config) as client:
            found = client.accounts()
    except HotelChainError as exc:
        _fail(exc)

    if not found:
        click.echo("Node exposes no accounts.")
        return
    for index, address in enumerate(found):
        click.echo(f"  [{index}] {address}")


@cli.command()
@chain_options
def info(config: DeployConfig) -> None:
    """Show configuration and node status."""
    click.echo(f"hotelchain v{__version__}")
    click.echo(f"  Endpoint:    {config.endpoint_url}")
    click.echo(f"  Sender:      {config.sender_account or '(first node account)'}")
    click.echo(f"  Gas limit:   {config.gas_limit}")
    click.echo(f"  Compiler:    {config.compiler} (solc {config.solc_version})")
    click.echo(f"  Deployments: {config.deployments_path}")

    with RpcClient(config.endpoint_url) as client:
        try:
            status = click.style(f"connected, chain {client.chain_id()}", fg="green")
        except HotelChainError as exc:
            status = click.style(f"unreachable ({exc})", fg="yellow")
        click.echo(click.style("  Node:        ", dim=True) + status)


# ============ Entry Points ============


def main() -> None:
    """hotelchain CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
