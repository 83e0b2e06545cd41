"""Shared data models used by the inspector, the rule engine and the MCP tools."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FileFormat(str, Enum):
    ELF = "ELF"
    SCRIPT = "SCRIPT"
    UNKNOWN = "UNKNOWN"


class ImageKind(str, Enum):
    """How the inspector classified a file."""

    NOT_ELF = "not-elf"
    NOT_EXECUTABLE = "not-executable"
    EXECUTABLE = "executable"
    MALFORMED = "malformed"
    UNREADABLE = "unreadable"


class Status(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Inspector output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Symbol:
    """A symbol table entry and the index of the section it lives in."""

    name: str
    section_index: int


@dataclass
class BinaryImage:
    """Facts extracted from a single file on disk."""

    path: str
    kind: ImageKind
    file_format: FileFormat = FileFormat.UNKNOWN
    is_static: bool = False
    sections: list[str] = field(default_factory=list)
    symbols: list[Symbol] = field(default_factory=list)
    error: str = ""  # set when kind is MALFORMED or UNREADABLE

    @property
    def recognized_format(self) -> bool:
        return self.kind is ImageKind.EXECUTABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "format": self.file_format.value,
            "is_static": self.is_static,
            "sections": list(self.sections),
            "symbol_count": len(self.symbols),
            "error": self.error,
        }


@dataclass
class BuildMetadata:
    """Build provenance embedded in a Go binary."""

    go_version: str
    path: str = ""
    main_module: str = ""
    settings: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Rule engine
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VersionRequirement:
    """Symbols a binary must carry when its Go version matches *constraint*.

    *constraint* is a comma-separated list of semver match expressions,
    e.g. ``">=1.23.0"`` or ``">=1.21.0,<1.23.0"``.
    """

    constraint: str
    symbols: tuple[str, ...]


@dataclass
class Verdict:
    reasons: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.reasons

    def extend(self, reasons: list[str]) -> None:
        self.reasons.extend(reasons)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "reasons": list(self.reasons)}


@dataclass
class ValidationResult:
    """Outcome of validating one file: passed, failed, skipped or error."""

    path: str
    status: Status
    reasons: list[str] = field(default_factory=list)
    detail: str = ""  # skip reason or error message

    @property
    def ok(self) -> bool:
        return self.status in (Status.PASSED, Status.SKIPPED)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        d["ok"] = self.ok
        return d
