"""
Compliance rule engine
──────────────────────
Decides whether an inspected binary is FIPS-capable:

  • binaries that never touch crypto are exempt
  • crypto users must be dynamically linked
  • Go binaries must be built with cgo and the OpenSSL backend, carry the
    version-specific bridge symbols, avoid denied build tags and keep the
    strict FIPS runtime experiment

Every check contributes its own reasons; nothing short-circuits after the
crypto gate, so one run lists every problem with a binary.
"""

from __future__ import annotations

import logging
from typing import Callable

import semver

from .buildinfo import normalize_go_version
from .models import BinaryImage, BuildMetadata, Verdict, VersionRequirement
from .utils import owning_section

logger = logging.getLogger(__name__)

DebugFunc = Callable[..., None]

# ---------------------------------------------------------------------------
# Policy tables
# ---------------------------------------------------------------------------

CRYPTO_SYMBOL_MARKER = "crypto"

ZERO_INIT_SECTIONS = (".bss",)

CGO_INIT_SYMBOLS = ("_cgo_init", "_cgo_topofstack")

DENIED_BUILD_TAGS = ("no_openssl",)

REQUIRED_EXPERIMENT = "strictfipsruntime"

# First match wins.
REQUIRED_SYMBOLS_FOR_GO_VERSIONS: tuple[VersionRequirement, ...] = (
    VersionRequirement(
        constraint=">=1.23.0",
        symbols=("vendor/github.com/golang-fips/openssl/v2.dlopen",),
    ),
)

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def evaluate(
    image: BinaryImage,
    metadata: BuildMetadata | None,
    debug: DebugFunc | None = None,
) -> Verdict:
    """Run every applicable check against *image* and its build metadata."""
    debug = debug or logger.debug
    verdict = Verdict()

    if not image.recognized_format:
        return verdict
    if not uses_crypto(image, debug):
        return verdict

    verdict.extend(check_not_statically_linked(image))

    if metadata is None:
        return verdict

    try:
        go_version = parse_go_version(metadata.go_version)
    except ValueError as e:
        verdict.extend([f'failed to parse Go version "{metadata.go_version}": {e}'])
    else:
        verdict.extend(check_cgo_enabled(metadata))
        verdict.extend(check_cgo_init(image))
        verdict.extend(check_go_symbols(image, go_version))
    verdict.extend(check_tags_and_experiment(metadata))
    return verdict


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def uses_crypto(image: BinaryImage, debug: DebugFunc | None = None) -> bool:
    """Heuristic: any non-.bss symbol whose name mentions crypto."""
    debug = debug or logger.debug
    for sym in image.symbols:
        section = owning_section(image, sym)
        if section is None:
            continue
        if CRYPTO_SYMBOL_MARKER in sym.name and section not in ZERO_INIT_SECTIONS:
            debug("found crypto symbol %r in section %r", sym.name, section)
            return True
    return False


def check_not_statically_linked(image: BinaryImage) -> list[str]:
    if image.is_static:
        return ["statically linked"]
    return []


def check_cgo_enabled(metadata: BuildMetadata) -> list[str]:
    if metadata.settings.get("CGO_ENABLED") == "1":
        return []
    return ["not compiled with CGO_ENABLED=1"]


def check_cgo_init(image: BinaryImage) -> list[str]:
    if any(has_symbol(image, name) for name in CGO_INIT_SYMBOLS):
        return []
    return ["missing cgo_init symbol"]


def check_go_symbols(image: BinaryImage, go_version: semver.Version) -> list[str]:
    requirement = find_requirement(go_version)
    if requirement is None:
        return [f"uses Go version {go_version}, which is not yet supported by this tool"]
    return [
        f'missing required symbol "{name}"'
        for name in requirement.symbols
        if not has_symbol(image, name)
    ]


def check_tags_and_experiment(metadata: BuildMetadata) -> list[str]:
    reasons = []

    build_tags = metadata.settings.get("-tags", "").split(",")
    for tag in DENIED_BUILD_TAGS:
        if tag in build_tags:
            reasons.append(f"uses forbidden build tag {tag}")

    # Only recorded when it differs from the toolchain default.
    experiment = metadata.settings.get("GOEXPERIMENT")
    if experiment is not None and REQUIRED_EXPERIMENT not in experiment:
        reasons.append(f"missing required GOEXPERIMENT value {REQUIRED_EXPERIMENT!r}")

    return reasons


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_go_version(raw: str) -> semver.Version:
    """Parse a Go toolchain version string; raises ``ValueError``."""
    return semver.Version.parse(normalize_go_version(raw), optional_minor_and_patch=True)


def find_requirement(
    go_version: semver.Version,
    table: tuple[VersionRequirement, ...] = REQUIRED_SYMBOLS_FOR_GO_VERSIONS,
) -> VersionRequirement | None:
    for requirement in table:
        if all(go_version.match(expr.strip()) for expr in requirement.constraint.split(",")):
            return requirement
    return None


def has_symbol(image: BinaryImage, name: str) -> bool:
    """True if *name* is defined outside the zero-initialised data section."""
    for sym in image.symbols:
        if sym.name != name:
            continue
        section = owning_section(image, sym)
        if section is not None and section not in ZERO_INIT_SECTIONS:
            return True
    return False
