__version__ = "0.1.0"

__all__ = [
    # Configuration
    "DeployConfig",
    "load_config",
    # Chain access
    "RpcClient",
    "CompiledArtifact",
    "compile_source",
    "compile_file",
    "DeployOptions",
    "DeploymentReceipt",
    "deploy",
    # Handles
    "ContractHandle",
    "bind",
    # Pipeline
    "DeployedContract",
    "VerificationResult",
    "deploy_from_source",
    "verify",
    "assert_verified",
    # Migrations
    "Migration",
    "HOTEL_MIGRATION",
    "DeploymentStore",
    "run_migration",
    # Errors
    "HotelChainError",
    "ConfigError",
    "NodeConnectionError",
    "RpcError",
    "CompilationError",
    "ArgumentError",
    "DeploymentError",
    "DeploymentTimeout",
    "VerificationError",
]

from .config import DeployConfig, load_config
from .errors import (
    ArgumentError,
    CompilationError,
    ConfigError,
    DeploymentError,
    DeploymentTimeout,
    HotelChainError,
    NodeConnectionError,
    RpcError,
    VerificationError,
)
from .chain.rpc import RpcClient
from .chain.compiler import CompiledArtifact, compile_file, compile_source
from .chain.tx import DeploymentReceipt, DeployOptions, deploy
from .contract import ContractHandle, bind
from .pipeline import DeployedContract, VerificationResult, assert_verified, deploy_from_source, verify
from .migrations import HOTEL_MIGRATION, DeploymentStore, Migration, run_migration
