"""Assemble tiny ELF64 images in memory so tests don't need a compiler."""

import struct

BASE_ADDR = 0x400000

ET_REL, ET_EXEC, ET_DYN = 1, 2, 3
PT_LOAD, PT_INTERP = 1, 3
PF_X, PF_W, PF_R = 1, 2, 4
SHT_PROGBITS, SHT_SYMTAB, SHT_STRTAB, SHT_DYNAMIC, SHT_NOBITS = 1, 2, 3, 6, 8
SHF_WRITE, SHF_ALLOC, SHF_EXECINSTR = 1, 2, 4
DT_NULL, DT_FLAGS_1 = 0, 0x6FFFFFFB
DF_1_NOW, DF_1_PIE = 0x1, 0x08000000
SHN_ABS, SHN_COMMON = 0xFFF1, 0xFFF2

INTERP = b"/lib64/ld-linux-x86-64.so.2\x00"

BUILDINFO_MAGIC = b"\xff Go buildinf:"
MODINFO_START = bytes.fromhex("3077af0c9274080241e1c107e6d618e6")
MODINFO_END = bytes.fromhex("f932433186182072008242104116d8f2")

EHDR = struct.Struct("<16sHHIQQQIHHHHHH")
PHDR = struct.Struct("<IIQQQQQQ")
SHDR = struct.Struct("<IIQQQQIIQQ")
SYM = struct.Struct("<IBBHQQ")
DYN = struct.Struct("<qQ")

STB_GLOBAL_STT_FUNC = 0x12


class _StringTable:
    def __init__(self):
        self.data = bytearray(b"\x00")
        self._offsets = {"": 0}

    def add(self, s):
        if s not in self._offsets:
            self._offsets[s] = len(self.data)
            self.data += s.encode() + b"\x00"
        return self._offsets[s]


def _align(n, alignment=8):
    return (n + alignment - 1) & ~(alignment - 1)


def build_elf(*, e_type=ET_EXEC, interp=True, dyn_flags_1=None, symbols=(), buildinfo=None):
    """Return the bytes of a little-endian x86-64 ELF file.

    symbols     -- (name, section) pairs; section is a section name or a raw st_shndx
    interp      -- add a PT_INTERP program header (dynamically linked)
    dyn_flags_1 -- when set, add a .dynamic section with this DT_FLAGS_1 value
    buildinfo   -- .go.buildinfo contents, or a callable given the blob's address
    """
    sections = [
        (".text", SHT_PROGBITS, SHF_ALLOC | SHF_EXECINSTR, b"\x90" * 16),
        (".bss", SHT_NOBITS, SHF_ALLOC | SHF_WRITE, 64),
    ]
    if dyn_flags_1 is not None:
        dynamic = DYN.pack(DT_FLAGS_1, dyn_flags_1) + DYN.pack(DT_NULL, 0)
        sections.append((".dynamic", SHT_DYNAMIC, SHF_ALLOC | SHF_WRITE, dynamic))
    if buildinfo is not None:
        sections.append((".go.buildinfo", SHT_PROGBITS, SHF_ALLOC | SHF_WRITE, buildinfo))

    names = [""] + [s[0] for s in sections] + [".symtab", ".strtab", ".shstrtab"]
    index_of = {name: i for i, name in enumerate(names)}
    strtab_idx = index_of[".strtab"]

    strtab = _StringTable()
    symtab = bytearray(SYM.size)
    for name, section in symbols:
        shndx = index_of[section] if isinstance(section, str) else section
        symtab += SYM.pack(strtab.add(name), STB_GLOBAL_STT_FUNC, 0, shndx, 0, 0)

    shstrtab = _StringTable()
    name_offsets = [shstrtab.add(n) for n in names]

    phnum = 2 if interp else 1
    chunks = []
    offset = EHDR.size + PHDR.size * phnum

    def place(data, alignment):
        nonlocal offset
        offset = _align(offset, alignment)
        start = offset
        chunks.append((start, bytes(data)))
        offset += len(data)
        return start

    interp_off = place(INTERP, 1) if interp else 0

    shdrs = [SHDR.pack(0, 0, 0, 0, 0, 0, 0, 0, 0, 0)]
    for i, (_, sh_type, flags, payload) in enumerate(sections, start=1):
        if sh_type == SHT_NOBITS:
            start, size = _align(offset, 16), payload
        else:
            if callable(payload):
                payload = payload(BASE_ADDR + _align(offset, 16))
            start, size = place(payload, 16), len(payload)
        link = strtab_idx if sh_type == SHT_DYNAMIC else 0
        entsize = DYN.size if sh_type == SHT_DYNAMIC else 0
        shdrs.append(SHDR.pack(name_offsets[i], sh_type, flags, BASE_ADDR + start, start,
                               size, link, 0, 16, entsize))

    start = place(symtab, 8)
    shdrs.append(SHDR.pack(name_offsets[index_of[".symtab"]], SHT_SYMTAB, 0, 0, start,
                           len(symtab), strtab_idx, 1, 8, SYM.size))
    start = place(strtab.data, 1)
    shdrs.append(SHDR.pack(name_offsets[strtab_idx], SHT_STRTAB, 0, 0, start,
                           len(strtab.data), 0, 0, 1, 0))
    start = place(shstrtab.data, 1)
    shdrs.append(SHDR.pack(name_offsets[index_of[".shstrtab"]], SHT_STRTAB, 0, 0, start,
                           len(shstrtab.data), 0, 0, 1, 0))

    shoff = _align(offset)
    total = shoff + SHDR.size * len(shdrs)
    out = bytearray(total)

    ident = b"\x7fELF" + bytes([2, 1, 1, 0]) + bytes(8)
    EHDR.pack_into(out, 0, ident, e_type, 62, 1, BASE_ADDR, EHDR.size, shoff, 0,
                   EHDR.size, PHDR.size, phnum, SHDR.size, len(shdrs), index_of[".shstrtab"])
    ph = EHDR.size
    if interp:
        PHDR.pack_into(out, ph, PT_INTERP, PF_R, interp_off, BASE_ADDR + interp_off,
                       BASE_ADDR + interp_off, len(INTERP), len(INTERP), 1)
        ph += PHDR.size
    PHDR.pack_into(out, ph, PT_LOAD, PF_R | PF_W, 0, BASE_ADDR, BASE_ADDR, total, total, 0x1000)

    for start, data in chunks:
        out[start:start + len(data)] = data
    for i, shdr in enumerate(shdrs):
        out[shoff + i * SHDR.size:shoff + (i + 1) * SHDR.size] = shdr
    return bytes(out)


# ---------------------------------------------------------------------------
# Go build info blobs
# ---------------------------------------------------------------------------


def _uvarint(n):
    out = bytearray()
    while n >= 0x80:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.append(n)
    return bytes(out)


def go_modinfo(settings, path="example.com/app"):
    lines = [f"path\t{path}", f"mod\t{path}\t(devel)\t"]
    lines += [f"build\t{key}={value}" for key, value in settings.items()]
    return MODINFO_START + ("\n".join(lines) + "\n").encode() + MODINFO_END


def go_buildinfo(version, settings, path="example.com/app"):
    """Go 1.18+ layout: varint-prefixed strings after a 32 byte header."""
    vers = version.encode()
    mod = go_modinfo(settings, path)
    return (BUILDINFO_MAGIC + bytes([8, 2]) + bytes(16)
            + _uvarint(len(vers)) + vers + _uvarint(len(mod)) + mod)


def go_buildinfo_legacy(version, settings, path="example.com/app"):
    """Pre-1.18 layout: the header points at Go string headers."""
    vers = version.encode()
    mod = go_modinfo(settings, path)

    def blob(vaddr):
        vers_hdr, mod_hdr = vaddr + 32, vaddr + 48
        vers_data = vaddr + 64
        mod_data = vers_data + len(vers)
        return (BUILDINFO_MAGIC + bytes([8, 0]) + struct.pack("<QQ", vers_hdr, mod_hdr)
                + struct.pack("<QQ", vers_data, len(vers))
                + struct.pack("<QQ", mod_data, len(mod))
                + vers + mod)

    return blob


# ---------------------------------------------------------------------------
# Ready-made binaries
# ---------------------------------------------------------------------------

OPENSSL_BRIDGE = "vendor/github.com/golang-fips/openssl/v2.dlopen"

FIPS_SETTINGS = {
    "-tags": "netgo,osusergo",
    "CGO_ENABLED": "1",
    "GOEXPERIMENT": "strictfipsruntime",
}

COMPLIANT_GO_SYMBOLS = [
    ("crypto/internal/backend.Enabled", ".text"),
    ("_cgo_init", ".text"),
    (OPENSSL_BRIDGE, ".text"),
]


def compliant_go_binary():
    return build_elf(symbols=COMPLIANT_GO_SYMBOLS, buildinfo=go_buildinfo("go1.23.4", FIPS_SETTINGS))


def static_crypto_binary():
    return build_elf(interp=False, symbols=[("crypto/sha256.block", ".text")])


def plain_binary():
    return build_elf(symbols=[("main", ".text")])
