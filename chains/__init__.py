"""
chains/ - Blockchain interaction layer.

Modules:
- providers: RPC provider management with failover
"""

from chains.providers import (
    RPCProvider,
    RPCResponse,
    RPCStats,
)

__all__ = [
    "RPCProvider",
    "RPCResponse",
    "RPCStats",
]
