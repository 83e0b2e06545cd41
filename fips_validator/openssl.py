"""
Library presence scanner
────────────────────────
Checks that a filesystem root ships a libcrypto that can run in FIPS mode:
every ``libcrypto*.so*`` in the conventional library directories must export
one of the FIPS mode indicator symbols (as listed by ``nm -D``).
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable

from .executor import CommandResult, execute
from .models import Verdict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LIBRARY_DIRS = ("/lib64", "/usr/lib64", "/lib", "/usr/lib")

CRYPTO_LIB_PATTERN = re.compile(r"^libcrypto.*\.so($|\..*)")

FIPS_INDICATORS = (
    b"FIPS_mode",
    b"fips_mode",
    b"EVP_default_properties_is_fips_enabled",
)

NM_TIMEOUT_ENV = "FIPS_VALIDATOR_NM_TIMEOUT"

Runner = Callable[..., CommandResult]

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def scan_for_approved_crypto(
    root: str,
    run: Runner = execute,
    timeout: float | None = None,
    libs: list[str] | None = None,
) -> Verdict:
    """Verify *root* contains at least one FIPS-capable libcrypto.

    *libs* is the list from ``find_crypto_libs``; it is looked up when not
    given. ``ExecutionError`` from *run* propagates; it says nothing about
    compliance.
    """
    verdict = Verdict()

    if libs is None:
        libs = find_crypto_libs(root)
    if not libs:
        verdict.extend(["libcrypto not found (missing package openssl-libs?)"])
        return verdict

    for lib in libs:
        result = run("nm", "-D", os.path.join(root, lib.lstrip("/")), timeout=timeout)
        if result.returncode != 0:
            verdict.extend([result.stderr.decode(errors="replace").strip()
                            or f"nm -D {lib} exited with code {result.returncode}"])
            continue
        if any(indicator in result.stdout for indicator in FIPS_INDICATORS):
            logger.debug("%s exports FIPS mode symbols", lib)
        else:
            verdict.extend([f"{lib} is not FIPS-capable"])

    return verdict


def nm_timeout_from_env() -> float | None:
    """Seconds each ``nm`` run may take, from the environment; None means no limit."""
    raw = os.getenv(NM_TIMEOUT_ENV, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{NM_TIMEOUT_ENV} must be a number of seconds, got {raw!r}") from None


def find_crypto_libs(root: str) -> list[str]:
    """Return root-relative paths of regular files named like libcrypto."""
    libs: list[str] = []
    for lib_dir in LIBRARY_DIRS:
        full_dir = os.path.join(root, lib_dir.lstrip("/"))
        if os.path.islink(full_dir) or not os.path.isdir(full_dir):
            continue
        try:
            entries = sorted(os.scandir(full_dir), key=lambda e: e.name)
        except OSError as e:
            logger.debug("cannot list %s: %s", full_dir, e)
            continue
        for entry in entries:
            if entry.is_file(follow_symlinks=False) and CRYPTO_LIB_PATTERN.match(entry.name):
                libs.append(f"{lib_dir}/{entry.name}")
    return libs
