"""Per-binary validation: inspector, build info reader and rule engine composed."""

from __future__ import annotations

import logging
import os

from .buildinfo import read_build_info
from .errors import BuildInfoError
from .models import FileFormat, ImageKind, Status, ValidationResult
from .rules import DebugFunc, evaluate, uses_crypto
from .utils import load_image

logger = logging.getLogger(__name__)


def validate_binary(root: str, path: str, debug: DebugFunc | None = None) -> ValidationResult:
    """Validate the file at *path* inside the filesystem rooted at *root*.

    *path* is what gets reported; the file read is ``root`` joined with it.
    """
    debug = debug or logger.debug
    full_path = os.path.join(root, path.lstrip("/"))

    image = load_image(full_path)
    if image.kind is ImageKind.UNREADABLE:
        return ValidationResult(path=path, status=Status.ERROR, detail=image.error)
    if image.kind is ImageKind.MALFORMED:
        return ValidationResult(path=path, status=Status.SKIPPED, detail=image.error)
    if image.kind is ImageKind.NOT_ELF:
        reason = "shell script" if image.file_format is FileFormat.SCRIPT else "not an ELF file"
        return ValidationResult(path=path, status=Status.SKIPPED, detail=reason)
    if image.kind is ImageKind.NOT_EXECUTABLE:
        return ValidationResult(path=path, status=Status.SKIPPED, detail="not an ELF executable")
    if not uses_crypto(image, debug):
        return ValidationResult(path=path, status=Status.SKIPPED, detail="no crypto")

    try:
        metadata = read_build_info(full_path)
    except (BuildInfoError, OSError) as e:
        return ValidationResult(path=path, status=Status.ERROR, detail=str(e))
    if metadata is None:
        debug("skipping further validation of %s (not a Go binary)", path)

    verdict = evaluate(image, metadata, debug)
    if not verdict.ok:
        return ValidationResult(path=path, status=Status.FAILED, reasons=verdict.reasons)
    return ValidationResult(path=path, status=Status.PASSED)
