"""
ABI helpers - look up entries, encode calls and constructor arguments,
decode return data, and read/write compiled artifact files.

Encoding uses eth-abi; the selector is the first 4 bytes of Keccak-256 of
the canonical signature.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from ..errors import ArgumentError
from .rpc import is_address, keccak256, to_checksum_address


def _canonical_type(param: dict) -> str:
    """Expand tuple components so the type string is what eth-abi expects."""
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def input_types(entry: dict) -> list[str]:
    return [_canonical_type(p) for p in entry.get("inputs", [])]


def output_types(entry: dict) -> list[str]:
    return [_canonical_type(p) for p in entry.get("outputs", [])]


def function_names(abi: list) -> list[str]:
    return [e["name"] for e in abi if e.get("type") == "function"]


def find_function(abi: list, function_name: str, arg_count: Optional[int] = None) -> dict:
    """
    Find a function entry by name.

    With ``arg_count`` the matching overload is selected.

    Raises:
        ArgumentError: If no function with that name (and arity) exists
    """
    candidates = [
        e for e in abi if e.get("type") == "function" and e.get("name") == function_name
    ]
    if not candidates:
        raise ArgumentError(f"Function {function_name} not found in ABI")
    if arg_count is None:
        return candidates[0]
    for entry in candidates:
        if len(entry.get("inputs", [])) == arg_count:
            return entry
    raise ArgumentError(
        f"{function_name} takes {len(candidates[0].get('inputs', []))} argument(s), "
        f"{arg_count} given"
    )


def find_constructor(abi: list) -> Optional[dict]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return entry
    return None


def is_read_only(entry: dict) -> bool:
    if entry.get("stateMutability") in ("view", "pure"):
        return True
    return bool(entry.get("constant"))


def function_selector(entry: dict) -> bytes:
    sig = f"{entry['name']}({','.join(input_types(entry))})"
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak256(sig.encode("utf-8"))[:4]


def _encode_args(types: list[str], args: list, what: str) -> bytes:
    if len(types) != len(args):
        raise ArgumentError(f"{what} expects {len(types)} argument(s), {len(args)} given")
    if not types:
        return b""
    try:
        return encode(types, list(args))
    except (EncodingError, TypeError, ValueError, OverflowError) as exc:
        raise ArgumentError(f"Cannot encode arguments for {what} {types}: {exc}") from exc


def encode_call(abi: list, function_name: str, args: list) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    func = find_function(abi, function_name, len(args))
    encoded_args = _encode_args(input_types(func), args, function_name)
    return "0x" + function_selector(func).hex() + encoded_args.hex()


def encode_constructor_args(abi: list, args: list) -> str:
    """
    ABI-encode constructor arguments (no 0x prefix, appended to bytecode).

    Raises:
        ArgumentError: On count or type mismatch
    """
    constructor = find_constructor(abi)
    if constructor is None:
        if args:
            raise ArgumentError("Constructor not found in ABI, but constructor_args were provided.")
        return ""
    return _encode_args(input_types(constructor), args, "constructor").hex()


def decode_result(abi: list, function_name: str, data: Optional[str], arg_count: Optional[int] = None) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        Decoded result (single value, tuple, or None for no outputs)

    Raises:
        ArgumentError: If the function declares outputs but no data came back
    """
    func = find_function(abi, function_name, arg_count)
    types = output_types(func)
    if not types:
        return None

    if not data or data == "0x":
        raise ArgumentError(
            f"{function_name} returned no data; the contract at this address "
            f"does not implement it"
        )

    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    try:
        decoded = decode(types, raw)
    except (DecodingError, ValueError) as exc:
        raise ArgumentError(f"Cannot decode result of {function_name}: {exc}") from exc

    if len(decoded) == 1:
        return decoded[0]
    return decoded


def coerce_value(abi_type: str, raw: Any) -> Any:
    """
    Convert a command-line string to the Python value eth-abi expects for ``abi_type``.

    Non-string values pass through unchanged.  Integer types accept decimal
    or ``0x`` hex; ``bool`` accepts true/false/1/0; ``bytes*`` takes hex.
    Strings, arrays and tuples are left as given.

    Raises:
        ArgumentError: If the string does not parse as ``abi_type``
    """
    if not isinstance(raw, str):
        return raw
    if abi_type.endswith("]") or abi_type.startswith("("):
        return raw
    if abi_type.startswith(("int", "uint")):
        try:
            return int(raw, 0)
        except ValueError:
            raise ArgumentError(f"Expected an integer for {abi_type}, got {raw!r}") from None
    if abi_type == "bool":
        lowered = raw.lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise ArgumentError(f"Expected true or false for bool, got {raw!r}")
    if abi_type.startswith("bytes"):
        try:
            return bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
        except ValueError:
            raise ArgumentError(f"Expected hex for {abi_type}, got {raw!r}") from None
    if abi_type == "address" and is_address(raw):
        return to_checksum_address(raw)
    return raw


def coerce_args(types: list[str], values: Sequence[Any]) -> list[Any]:
    """
    Coerce positional values against ABI input types.

    A count mismatch is left for the encoder to report, so values beyond
    ``types`` are returned unchanged.
    """
    coerced = [coerce_value(t, v) for t, v in zip(types, values)]
    return coerced + list(values[len(types):])


# ---------------------------------------------------------------------------
# Artifact files
# ---------------------------------------------------------------------------

def load_artifact(path: Path) -> dict[str, Any]:
    """
    Load ``{"contract_name", "abi", "bytecode"}`` from a compiled artifact.

    Accepts both Foundry/solc layout (``bytecode.object``) and a flat
    ``bytecode`` hex string.

    Raises:
        ArgumentError: If the file is missing, is not JSON, or has no ABI
    """
    path = Path(path)
    if not path.exists():
        raise ArgumentError(f"Artifact not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            artifact = json.load(f)
    except json.JSONDecodeError as exc:
        raise ArgumentError(f"Artifact {path} is not valid JSON: {exc}") from exc

    abi = artifact.get("abi") if isinstance(artifact, dict) else None
    if not isinstance(abi, list):
        raise ArgumentError(f"No ABI in artifact {path}")

    bytecode = artifact.get("bytecode", "")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    if bytecode and not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    return {
        "contract_name": artifact.get("contractName") or path.stem,
        "abi": abi,
        "bytecode": bytecode,
    }


def save_artifact(path: Path, contract_name: str, abi: list, bytecode: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"contractName": contract_name, "abi": abi, "bytecode": {"object": bytecode}}
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path
