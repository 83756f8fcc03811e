"""
Local signing keys.

Most local test nodes (ganache, anvil, hardhat) expose unlocked accounts, so
deployments normally go through ``eth_sendTransaction``.  When a private key
is configured, transactions are signed here with eth-account instead and
submitted raw.
"""

from __future__ import annotations

import secrets

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import ConfigError


def generate_key() -> tuple[str, str]:
    """
    Generate a new secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, address)
    """
    private_key = "0x" + secrets.token_hex(32)
    return private_key, Account.from_key(private_key).address


def get_account(private_key: str) -> LocalAccount:
    """
    Get an eth-account LocalAccount from a private key.

    Raises:
        ConfigError: If the key is not a valid secp256k1 private key
    """
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    try:
        return Account.from_key(private_key)
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"Invalid private key: {exc}") from exc


def sign_transaction(tx: dict, private_key: str) -> str:
    """Sign a transaction dict and return 0x-prefixed raw bytes."""
    signed = get_account(private_key).sign_transaction(tx)
    raw = signed.raw_transaction.hex()
    return raw if raw.startswith("0x") else "0x" + raw
