"""
Migrations and deployment records.

A migration deploys one contract with fixed constructor arguments and
records where it landed, keyed by chain id, so later steps (``verify``,
``call``) can find the deployed instance without redeploying.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .chain.rpc import RpcClient
from .config import DeployConfig
from .contract import ContractHandle, bind
from .errors import DeploymentError
from .pipeline import DeployedContract, deploy_from_source

logger = logging.getLogger(__name__)

CONTRACTS_DIR = Path("contracts")

# The migration's hotel, and the sample data of the standalone deploy script.
HOTEL_ARGS: tuple = ("Ethereum Hotel", "Book rooms with ease", "12.9716", "77.5946", 19800)
SAMPLE_HOTEL_ARGS: tuple = (
    "Blockchain Hotel",
    "Book your rooms with ease",
    "12.972442",
    "77.580643",
    19800,
)


@dataclass(frozen=True)
class Migration:
    contract_name: str
    source_path: Path
    constructor_args: tuple = ()


HOTEL_MIGRATION = Migration(
    contract_name="Hotel",
    source_path=CONTRACTS_DIR / "Hotel.sol",
    constructor_args=HOTEL_ARGS,
)


@dataclass
class DeploymentStore:
    """
    JSON file of deployed contracts.

    Layout: ``{"<chain_id>": {"<contract>": {address, abi, tx_hash, deployed_at}}}``
    """

    path: Path = field(default_factory=lambda: Path("build") / "deployments.json")

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise DeploymentError(f"Deployment record {self.path} is corrupted: {exc}") from exc
        return data if isinstance(data, dict) else {}

    def record(self, chain_id: int, deployed: DeployedContract) -> None:
        data = self._read()
        data.setdefault(str(chain_id), {})[deployed.artifact.contract_name] = {
            "address": deployed.address,
            "abi": deployed.artifact.abi,
            "tx_hash": deployed.receipt.tx_hash,
            "block_number": deployed.receipt.block_number,
            "deployed_at": int(time.time()),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def get(self, chain_id: int, contract_name: str) -> Optional[dict]:
        return self._read().get(str(chain_id), {}).get(contract_name)

    def list_deployed(self, chain_id: Optional[int] = None) -> list[dict]:
        results = []
        for chain, contracts in self._read().items():
            if chain_id is not None and chain != str(chain_id):
                continue
            for name, entry in contracts.items():
                results.append({
                    "chain_id": int(chain),
                    "contract": name,
                    "address": entry.get("address"),
                    "tx_hash": entry.get("tx_hash"),
                })
        return results

    def deployed(self, contract_name: str, client: RpcClient) -> ContractHandle:
        """
        Bind the recorded instance of ``contract_name`` on the client's chain.

        Raises:
            DeploymentError: If nothing was recorded, or no code lives there now
        """
        chain_id = client.chain_id()
        entry = self.get(chain_id, contract_name)
        if entry is None:
            raise DeploymentError(
                f"{contract_name} has not been deployed to chain {chain_id}. Run 'hotelchain migrate' first."
            )
        code = client.get_code(entry["address"])
        if not code or code == "0x":
            raise DeploymentError(
                f"No contract code at recorded address {entry['address']} on chain {chain_id}"
            )
        return bind(entry["address"], entry["abi"], client)


def run_migration(
    migration: Migration,
    config: DeployConfig,
    client: RpcClient,
    store: Optional[DeploymentStore] = None,
    base_dir: Optional[Path] = None,
) -> DeployedContract:
    """Deploy a migration's contract and record it."""
    store = store or DeploymentStore(config.deployments_path)
    source_path = migration.source_path
    if base_dir is not None and not source_path.is_absolute():
        source_path = base_dir / source_path

    deployed = deploy_from_source(
        source_path,
        migration.constructor_args,
        config,
        client,
        contract_name=migration.contract_name,
    )
    store.record(client.chain_id(), deployed)
    logger.info("recorded %s at %s in %s", migration.contract_name, deployed.address, store.path)
    return deployed
