"""
Error taxonomy for hotelchain.

Every failure the deployment workflow can hit has its own class so callers
can tell them apart.  Each carries an ``exit_code`` used by the CLI.
"""

from __future__ import annotations

from typing import Optional


class HotelChainError(RuntimeError):
    exit_code: int = 1


class ConfigError(HotelChainError):
    exit_code = 2


class NodeConnectionError(HotelChainError):
    """The node could not be reached or answered with a transport error."""

    exit_code = 3


class RpcError(HotelChainError):
    """The node answered with a JSON-RPC ``error`` member."""

    exit_code = 4

    def __init__(self, message: str, code: Optional[int] = None, data: object = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class CompilationError(HotelChainError):
    """Contract source rejected by the compiler.

    ``diagnostics`` holds the compiler's output verbatim.
    """

    exit_code = 5

    def __init__(self, diagnostics: str) -> None:
        super().__init__(diagnostics)
        self.diagnostics = diagnostics


class ArgumentError(HotelChainError):
    """Arguments do not match the ABI, or a method cannot be resolved."""

    exit_code = 6


class DeploymentError(HotelChainError):
    exit_code = 7

    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


class DeploymentTimeout(DeploymentError):
    """The transaction was not mined before the deadline (or was cancelled)."""

    exit_code = 8


class VerificationError(HotelChainError, AssertionError):
    exit_code = 9
