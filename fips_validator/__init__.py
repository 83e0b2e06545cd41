"""FIPS-capability validation for ELF binaries and filesystem trees."""

from .models import (
    BinaryImage,
    BuildMetadata,
    ImageKind,
    Status,
    Symbol,
    ValidationResult,
    Verdict,
    VersionRequirement,
)
from .utils import load_image, detect_format
from .buildinfo import read_build_info
from .rules import evaluate
from .validation import validate_binary
from .openssl import scan_for_approved_crypto
from .scanner import scan_tree

__all__ = [
    "BinaryImage",
    "BuildMetadata",
    "ImageKind",
    "Status",
    "Symbol",
    "ValidationResult",
    "Verdict",
    "VersionRequirement",
    "load_image",
    "detect_format",
    "read_build_info",
    "evaluate",
    "validate_binary",
    "scan_for_approved_crypto",
    "scan_tree",
]
