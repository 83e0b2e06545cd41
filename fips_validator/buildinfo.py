"""
Go build information reader
───────────────────────────
Go binaries carry a ``.go.buildinfo`` blob holding the toolchain version and
the module/build-settings text that ``go version -m`` prints. This module
decodes it directly from the ELF file:

  • Go 1.18+ inline layout: two uvarint-prefixed strings after the header
  • older pointer layout: pointers to Go string headers, resolved through
    the loadable segments

Binaries that were not produced by Go simply yield ``None``.
"""

from __future__ import annotations

import json
import logging
import re

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from .errors import BuildInfoError
from .models import BuildMetadata, FileFormat
from .utils import detect_format

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BUILDINFO_MAGIC = b"\xff Go buildinf:"
BUILDINFO_ALIGN = 16
BUILDINFO_HEADER_SIZE = 32
MAX_DATA_SIZE = 64 * 1024

FLAG_BIG_ENDIAN = 0x1
FLAG_INLINE_STRINGS = 0x2

PF_X = 0x1
PF_W = 0x2

# Sentinels framing the module info string.
MODINFO_SENTINEL_SIZE = 16

_QUOTED_PREFIX = re.compile(r'"(?:[^"\\\n]|\\.)*"|`[^`]*`')

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def read_build_info(path: str) -> BuildMetadata | None:
    """Return the Go build metadata embedded in *path*, or ``None``.

    ``None`` is the normal answer for anything that is not a Go binary.
    Raises ``BuildInfoError`` when a build info header is present but its
    contents cannot be decoded, and ``OSError`` when the file can't be read.
    """
    with open(path, "rb") as f:
        if detect_format(f.read(4)) is not FileFormat.ELF:
            return None
        f.seek(0)
        try:
            elf = ELFFile(f)
            version, modinfo = _read_strings(elf)
        except (ELFError, ValueError, IndexError, KeyError) as e:
            raise BuildInfoError(f"{path}: failed to read build info: {e}") from e

    if not version:
        logger.debug("%s: no Go build info", path)
        return None

    mod_path, main_module, settings = parse_modinfo(modinfo)
    return BuildMetadata(
        go_version=version,
        path=mod_path,
        main_module=main_module,
        settings=settings,
    )


def normalize_go_version(raw: str) -> str:
    """Turn ``"go1.22.7 X:strictfipsruntime"`` into ``"1.22.7"``."""
    ver = raw[2:] if raw.startswith("go") else raw
    return ver.split(" ", 1)[0]


def parse_modinfo(text: str) -> tuple[str, str, dict[str, str]]:
    """Parse module info text into (path, main module, build settings)."""
    path = ""
    main_module = ""
    settings: dict[str, str] = {}
    for line in text.split("\n"):
        if not line:
            continue
        tag, _, rest = line.partition("\t")
        if tag == "path":
            path = rest
        elif tag == "mod":
            main_module = rest.split("\t", 1)[0]
        elif tag == "build":
            key, value = _parse_build_setting(rest)
            settings[key] = value
    return path, main_module, settings


# ---------------------------------------------------------------------------
# Locating and decoding the blob (private)
# ---------------------------------------------------------------------------


def _read_strings(elf: ELFFile) -> tuple[str, str]:
    header = _find_header(_data_start(elf))
    if header is None:
        return "", ""

    ptr_size = header[14]
    flags = header[15]
    if flags & FLAG_INLINE_STRINGS:
        version, rest = _decode_string(header[BUILDINFO_HEADER_SIZE:])
        modinfo, _ = _decode_string(rest)
    else:
        if ptr_size not in (4, 8):
            return "", ""
        byteorder = "big" if flags != 0 else "little"
        version_ptr = int.from_bytes(header[16:16 + ptr_size], byteorder)
        modinfo_ptr = int.from_bytes(header[16 + ptr_size:16 + 2 * ptr_size], byteorder)
        version = _read_go_string(elf, version_ptr, ptr_size, byteorder)
        modinfo = _read_go_string(elf, modinfo_ptr, ptr_size, byteorder)

    if len(modinfo) >= 2 * MODINFO_SENTINEL_SIZE + 1 and modinfo[-MODINFO_SENTINEL_SIZE - 1] == ord("\n"):
        modinfo = modinfo[MODINFO_SENTINEL_SIZE:-MODINFO_SENTINEL_SIZE]
    else:
        modinfo = b""

    return (
        version.decode("utf-8", errors="replace"),
        modinfo.decode("utf-8", errors="replace"),
    )


def _data_start(elf: ELFFile) -> bytes:
    sec = elf.get_section_by_name(".go.buildinfo")
    if sec is not None and sec["sh_type"] != "SHT_NOBITS":
        return sec.data()[:MAX_DATA_SIZE]
    for seg in elf.iter_segments():
        if seg["p_type"] == "PT_LOAD" and seg["p_flags"] & (PF_X | PF_W) == PF_W:
            return _read_at(elf, seg["p_vaddr"], MAX_DATA_SIZE)
    return b""


def _find_header(data: bytes) -> bytes | None:
    while True:
        i = data.find(BUILDINFO_MAGIC)
        if i < 0 or len(data) - i < BUILDINFO_HEADER_SIZE:
            return None
        if i % BUILDINFO_ALIGN == 0:
            return data[i:]
        data = data[(i + BUILDINFO_ALIGN - 1) & ~(BUILDINFO_ALIGN - 1):]


def _read_at(elf: ELFFile, addr: int, size: int) -> bytes:
    """Read up to *size* bytes at virtual address *addr* from a PT_LOAD segment."""
    for seg in elf.iter_segments():
        if seg["p_type"] != "PT_LOAD":
            continue
        start = seg["p_vaddr"]
        end = start + seg["p_filesz"]
        if start <= addr < end:
            elf.stream.seek(seg["p_offset"] + addr - start)
            return elf.stream.read(min(size, end - addr))
    return b""


def _read_go_string(elf: ELFFile, addr: int, ptr_size: int, byteorder: str) -> bytes:
    hdr = _read_at(elf, addr, 2 * ptr_size)
    if len(hdr) < 2 * ptr_size:
        return b""
    data_addr = int.from_bytes(hdr[:ptr_size], byteorder)
    data_len = int.from_bytes(hdr[ptr_size:], byteorder)
    data = _read_at(elf, data_addr, data_len)
    if len(data) < data_len:
        return b""
    return data


def _uvarint(data: bytes) -> tuple[int, int]:
    value = 0
    shift = 0
    for i, b in enumerate(data[:10]):
        value |= (b & 0x7F) << shift
        if b < 0x80:
            return value, i + 1
        shift += 7
    return 0, 0


def _decode_string(data: bytes) -> tuple[bytes, bytes]:
    length, n = _uvarint(data)
    if n <= 0 or length > len(data) - n:
        return b"", b""
    return data[n:n + length], data[n + length:]


# ---------------------------------------------------------------------------
# Build setting lines
# ---------------------------------------------------------------------------


def _parse_build_setting(kv: str) -> tuple[str, str]:
    if not kv:
        raise BuildInfoError("build line missing '='")
    if kv[0] == "=":
        raise BuildInfoError(f"build line with missing key: {kv!r}")

    if kv[0] in "\"`":
        m = _QUOTED_PREFIX.match(kv)
        if m is None:
            raise BuildInfoError(f"invalid quoted key in build line: {kv!r}")
        key = _unquote(m.group(0))
        kv = kv[m.end():]
        if not kv.startswith("="):
            raise BuildInfoError(f"build line missing '=' after quoted key: {kv!r}")
        raw_value = kv[1:]
    else:
        key, sep, raw_value = kv.partition("=")
        if not sep:
            raise BuildInfoError(f"build line missing '=': {kv!r}")

    if raw_value[:1] in ('"', "`"):
        return key, _unquote(raw_value)
    return key, raw_value


def _unquote(s: str) -> str:
    if s.startswith("`"):
        if len(s) < 2 or not s.endswith("`"):
            raise BuildInfoError(f"unterminated raw string {s!r}")
        return s[1:-1]
    try:
        value = json.loads(s)
    except ValueError as e:
        raise BuildInfoError(f"invalid quoted string {s!r}: {e}") from e
    if not isinstance(value, str):
        raise BuildInfoError(f"invalid quoted string {s!r}")
    return value
