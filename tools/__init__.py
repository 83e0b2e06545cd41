"""MCP tool servers for FIPS validation."""

from .binary_validator import mcp as binary_mcp
from .tree_scanner import mcp as tree_mcp
from .openssl_validator import mcp as openssl_mcp

__all__ = [
    "binary_mcp",
    "tree_mcp",
    "openssl_mcp",
]
