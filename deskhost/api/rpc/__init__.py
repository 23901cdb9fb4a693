"""RPC method handlers returning (ok, payload, error) tuples."""

from deskhost.api.rpc.dispatch import dispatch_rpc, rpc_error

__all__ = ["dispatch_rpc", "rpc_error"]
