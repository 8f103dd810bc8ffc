"""Chain access: JSON-RPC transport and contract calls."""
