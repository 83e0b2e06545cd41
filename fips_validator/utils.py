"""Binary format inspection: format sniffing, ELF classification, section and
symbol tables."""

from __future__ import annotations

import logging

from elftools.common.exceptions import ELFError
from elftools.elf.dynamic import DynamicSection
from elftools.elf.elffile import ELFFile
from elftools.elf.sections import SymbolTableSection

from .models import BinaryImage, FileFormat, ImageKind, Symbol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ELF_MAGIC = b"\x7fELF"
SCRIPT_MAGIC = b"#!"

SHN_LORESERVE = 0xFF00

# pyelftools decodes these st_shndx values to names; map them back.
_SPECIAL_SECTION_INDICES = {
    "SHN_UNDEF": 0,
    "SHN_ABS": 0xFFF1,
    "SHN_COMMON": 0xFFF2,
    "SHN_XINDEX": 0xFFFF,
}

DF_1_PIE = 0x08000000

# Errors pyelftools surfaces for truncated or inconsistent headers.
_MALFORMED_ERRORS = (ELFError, ValueError, IndexError, KeyError)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_format(data: bytes) -> FileFormat:
    """Detect file format from magic bytes."""
    if data[:4] == ELF_MAGIC:
        return FileFormat.ELF
    if data[:2] == SCRIPT_MAGIC:
        return FileFormat.SCRIPT
    return FileFormat.UNKNOWN


def load_image(path: str) -> BinaryImage:
    """Inspect *path* and return a classified ``BinaryImage``.

    Never raises: read failures are reported as ``ImageKind.UNREADABLE``
    and headers pyelftools cannot parse as ``ImageKind.MALFORMED``, both
    with the error message attached.
    """
    try:
        with open(path, "rb") as f:
            fmt = detect_format(f.read(4))
            if fmt is not FileFormat.ELF:
                return BinaryImage(path=path, kind=ImageKind.NOT_ELF, file_format=fmt)
            f.seek(0)
            return _inspect_elf(path, ELFFile(f))
    except OSError as e:
        return BinaryImage(path=path, kind=ImageKind.UNREADABLE, error=str(e))
    except _MALFORMED_ERRORS as e:
        return BinaryImage(
            path=path,
            kind=ImageKind.MALFORMED,
            file_format=FileFormat.ELF,
            error=f"failed to read ELF info: {e}",
        )


def owning_section(image: BinaryImage, symbol: Symbol) -> str | None:
    """Return the name of the section *symbol* lives in.

    Reserved indices and indices past the end of the section table have no
    owning section.
    """
    idx = symbol.section_index
    if idx < 0 or idx >= SHN_LORESERVE or idx >= len(image.sections):
        return None
    return image.sections[idx]


# ---------------------------------------------------------------------------
# ELF helpers (private)
# ---------------------------------------------------------------------------


def _inspect_elf(path: str, elf: ELFFile) -> BinaryImage:
    image = BinaryImage(path=path, kind=ImageKind.NOT_EXECUTABLE, file_format=FileFormat.ELF)

    e_type = elf.header["e_type"]
    if e_type == "ET_DYN":
        # Either a PIE executable or a plain shared object.
        if not _is_pie(elf):
            return image
    elif e_type != "ET_EXEC":
        return image

    image.kind = ImageKind.EXECUTABLE
    image.is_static = _is_static(elf)
    image.sections = [sec.name for sec in elf.iter_sections()]
    image.symbols = _read_symbols(elf)
    return image


def _is_static(elf: ELFFile) -> bool:
    # Static binaries do not have a PT_INTERP program header.
    return not any(seg["p_type"] == "PT_INTERP" for seg in elf.iter_segments())


def _is_pie(elf: ELFFile) -> bool:
    for sec in elf.iter_sections():
        if not isinstance(sec, DynamicSection):
            continue
        for tag in sec.iter_tags():
            if tag["d_tag"] == "DT_FLAGS_1" and tag["d_val"] & DF_1_PIE:
                return True
    return False


def _read_symbols(elf: ELFFile) -> list[Symbol]:
    symbols: list[Symbol] = []
    for sec in elf.iter_sections():
        if not isinstance(sec, SymbolTableSection) or sec["sh_type"] != "SHT_SYMTAB":
            continue
        for i, sym in enumerate(sec.iter_symbols()):
            if i == 0:
                continue  # reserved null entry
            symbols.append(Symbol(name=sym.name, section_index=_section_index(sym["st_shndx"])))
    return symbols


def _section_index(shndx: int | str) -> int:
    if isinstance(shndx, str):
        return _SPECIAL_SECTION_INDICES.get(shndx, SHN_LORESERVE)
    return shndx
