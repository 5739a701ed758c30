# infrastructure/rpc.py
"""
Centralized RPC configuration for Apex Fleet.
One Web3 connection to Ethereum mainnet shared by adapters and the vault transport.
"""
from typing import Optional

from web3 import Web3

from .config import get_config


def get_rpc_url() -> str:
    """Get the configured RPC URL."""
    return get_config().blockchain.rpc_url


def get_web3(rpc_url: Optional[str] = None) -> Web3:
    """Get a Web3 instance connected to the configured chain."""
    url = rpc_url or get_rpc_url()
    return Web3(Web3.HTTPProvider(url))
