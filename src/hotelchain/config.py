"""
Deployment configuration.

Replaces the hard-coded endpoint / account / gas values with one explicit
structure passed at startup.  Values come from (lowest to highest priority):
built-in defaults, a ``.env`` file, the process environment, and explicit
overrides (e.g. CLI options).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .errors import ConfigError


DEFAULT_ENDPOINT_URL = "http://localhost:8545"
DEFAULT_GAS_LIMIT = 4_700_000
DEFAULT_SOLC_VERSION = "0.8.20"
DEFAULT_DEPLOYMENTS_PATH = Path("build") / "deployments.json"

COMPILERS = ("solc", "node")

# Environment variable -> DeployConfig field
_ENV_FIELDS: dict[str, str] = {
    "HOTELCHAIN_RPC_URL": "endpoint_url",
    "HOTELCHAIN_SENDER": "sender_account",
    "HOTELCHAIN_GAS_LIMIT": "gas_limit",
    "PRIVATE_KEY": "private_key",
    "HOTELCHAIN_COMPILER": "compiler",
    "HOTELCHAIN_SOLC_VERSION": "solc_version",
    "HOTELCHAIN_RECEIPT_TIMEOUT": "receipt_timeout",
    "HOTELCHAIN_POLL_INTERVAL": "poll_interval",
    "HOTELCHAIN_DEPLOYMENTS": "deployments_path",
}


@dataclass(frozen=True)
class DeployConfig:
    """Everything a deployment run needs to know about its environment."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    sender_account: Optional[str] = None
    gas_limit: int = DEFAULT_GAS_LIMIT
    private_key: Optional[str] = None
    compiler: str = "solc"
    solc_version: str = DEFAULT_SOLC_VERSION
    receipt_timeout: float = 120.0
    poll_interval: float = 1.0
    deployments_path: Path = DEFAULT_DEPLOYMENTS_PATH

    def __post_init__(self) -> None:
        if self.compiler not in COMPILERS:
            raise ConfigError(
                f"Unknown compiler '{self.compiler}'. Expected one of: {', '.join(COMPILERS)}"
            )
        if self.receipt_timeout <= 0:
            raise ConfigError("receipt_timeout must be positive")
        if self.poll_interval <= 0:
            raise ConfigError("poll_interval must be positive")

    def with_overrides(self, **overrides: Any) -> "DeployConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self


def _coerce(field_name: str, raw: str) -> Any:
    try:
        if field_name == "gas_limit":
            return int(raw, 0)
        if field_name in ("receipt_timeout", "poll_interval"):
            return float(raw)
    except ValueError:
        raise ConfigError(f"Invalid value for {field_name}: {raw!r}") from None
    if field_name == "deployments_path":
        return Path(raw).expanduser()
    if field_name == "private_key" and not raw.startswith("0x"):
        return "0x" + raw
    return raw


def load_config(env_path: Optional[Path] = None, **overrides: Any) -> DeployConfig:
    """
    Build a DeployConfig from ``.env``, the environment, and overrides.

    Args:
        env_path: Path to a .env file (default: ./.env if present)
        **overrides: Field values that take precedence (None is ignored)

    Returns:
        DeployConfig

    Raises:
        ConfigError: If a value cannot be parsed
    """
    env_path = env_path or Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)

    values: dict[str, Any] = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = os.environ.get(env_name)
        if raw:
            values[field_name] = _coerce(field_name, raw.strip())

    return DeployConfig(**values).with_overrides(**overrides)
