"""Wire codec and TCP channel for the storage RPC protocol."""

from .channel import RpcChannel

__all__: list[str] = ["RpcChannel"]
