"""
Tree Scanner MCP Server
───────────────────────
Validates every executable inside an unpacked package or mounted image
and reports the per-file outcomes plus an overall verdict.
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from fips_validator.models import Status, ValidationResult
from fips_validator.scanner import scan_tree

mcp = FastMCP("tree-scanner")


def scan_directory_impl(root: str, include_skipped: bool = False) -> dict[str, Any]:
    """Scan *root* and return the aggregated report (plain callable)."""
    results: list[ValidationResult] = []
    valid = scan_tree(root, on_result=results.append)

    counts = {status.value: 0 for status in Status}
    for r in results:
        counts[r.status.value] += 1

    shown = [r for r in results if include_skipped or r.status is not Status.SKIPPED]
    return {
        "root": root,
        "valid": valid,
        "counts": counts,
        "results": [r.to_dict() for r in shown],
        "summary": (
            f"Scanned {len(results)} executable{'s' if len(results) != 1 else ''}: "
            f"{counts['failed']} failed, {counts['error']} errors."
        ),
    }


@mcp.tool()
def scan_directory(root: str, include_skipped: bool = False) -> dict[str, Any]:
    """Validate all executables below a directory for FIPS capability.

    Returns JSON with the overall verdict, per-status counts and the
    individual results (skipped files only when requested).
    """
    return scan_directory_impl(root, include_skipped)


if __name__ == "__main__":
    mcp.run()
