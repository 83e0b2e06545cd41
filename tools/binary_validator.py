"""
Binary Validator MCP Server
───────────────────────────
Checks a single ELF executable for FIPS capability:
  • dynamic linkage when crypto symbols are present
  • cgo + OpenSSL backend evidence for Go binaries
  • forbidden build tags / missing GOEXPERIMENT

Exposed as a FastMCP server so an agent can call it via the
Model-Context-Protocol.
"""

from __future__ import annotations

import os
from typing import Any

from fastmcp import FastMCP

from fips_validator.buildinfo import read_build_info
from fips_validator.errors import BuildInfoError
from fips_validator.utils import load_image
from fips_validator.validation import validate_binary

# ---------------------------------------------------------------------------
# MCP server instance
# ---------------------------------------------------------------------------

mcp = FastMCP("binary-validator")

# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


def validate_binary_impl(file_path: str) -> dict[str, Any]:
    """Validate one binary (plain callable)."""
    path = os.path.abspath(file_path)
    result = validate_binary("/", path)
    return result.to_dict()


def inspect_binary_impl(file_path: str) -> dict[str, Any]:
    """Return the raw facts the rule engine works from (plain callable)."""
    path = os.path.abspath(file_path)
    image = load_image(path)
    report: dict[str, Any] = {"image": image.to_dict(), "build_info": None, "errors": []}
    if image.recognized_format:
        try:
            metadata = read_build_info(path)
        except (BuildInfoError, OSError) as e:
            report["errors"].append(str(e))
        else:
            if metadata is not None:
                report["build_info"] = metadata.to_dict()
    return report


@mcp.tool()
def validate_fips_binary(file_path: str) -> dict[str, Any]:
    """Validate that an ELF executable is FIPS-capable.

    Returns JSON with the status (passed / failed / skipped / error), the
    list of failure reasons and, for skips and errors, a detail message.
    """
    return validate_binary_impl(file_path)


@mcp.tool()
def inspect_binary(file_path: str) -> dict[str, Any]:
    """Show how an ELF file was classified: executable kind, static or
    dynamic linkage, section names and any embedded Go build info.
    """
    return inspect_binary_impl(file_path)


# ---------------------------------------------------------------------------
# Standalone entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()
