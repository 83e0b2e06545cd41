"""
OpenSSL Validator MCP Server
────────────────────────────
Confirms a root filesystem ships a libcrypto that exports FIPS mode
indicator symbols.
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from fips_validator.openssl import find_crypto_libs, nm_timeout_from_env, scan_for_approved_crypto

mcp = FastMCP("openssl-validator")


def validate_openssl_impl(root: str) -> dict[str, Any]:
    """Check libcrypto presence and FIPS capability under *root* (plain callable)."""
    libs = find_crypto_libs(root)
    verdict = scan_for_approved_crypto(root, timeout=nm_timeout_from_env(), libs=libs)
    report = verdict.to_dict()
    report["libraries"] = libs
    return report


@mcp.tool()
def validate_openssl(root: str) -> dict[str, Any]:
    """Check that a root filesystem contains a FIPS-capable libcrypto.

    Returns JSON with ``ok``, the failure reasons and the libcrypto files
    that were examined.
    """
    return validate_openssl_impl(root)


if __name__ == "__main__":
    mcp.run()
