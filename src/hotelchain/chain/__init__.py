"""
Chain - node access layer for hotelchain.

Provides the JSON-RPC client, compiler backends, ABI encoding, and the
contract deployer for a local development node.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
