"""Shared fixtures and synthetic binary builders for BinStrings tests."""
import struct

import pytest

from binstrings.config import state


class MockContext:
    """Minimal mock for MCP Context used by tool tests."""
    def __init__(self):
        self.warnings = []
        self.errors = []
        self.infos = []

    async def warning(self, msg):
        self.warnings.append(msg)

    async def error(self, msg):
        self.errors.append(msg)

    async def info(self, msg):
        self.infos.append(msg)


@pytest.fixture
def mock_ctx():
    """Provide a MockContext for async tool tests."""
    return MockContext()


@pytest.fixture
def clean_state():
    """Reset the shared server state before and after each test."""
    def _reset():
        state.filepath = None
        state.mode = "auto"
        state.raw_base = 0
        state.allowed_paths = None
        state.clear_reports()
    _reset()
    yield state
    _reset()


# ---------------------------------------------------------------------------
# Synthetic ELF64 / PE32 images
# ---------------------------------------------------------------------------

SHT_PROGBITS = 1
SHT_STRTAB = 3
SHT_NOBITS = 8


def build_elf64(sections):
    """
    Build a minimal little-endian ELF64 image with section headers only.

    *sections* is a list of (name, sh_addr, data, sh_type) tuples.
    """
    shstrtab = b"\x00"
    name_offsets = []
    for name, _, _, _ in sections:
        name_offsets.append(len(shstrtab))
        shstrtab += name.encode() + b"\x00"
    shstrtab_name = len(shstrtab)
    shstrtab += b".shstrtab\x00"

    body = b""
    data_offsets = []
    cursor = 64
    for _, _, data, sh_type in sections:
        data_offsets.append(cursor)
        if sh_type != SHT_NOBITS:
            body += data
            cursor += len(data)
    shstrtab_offset = cursor
    body += shstrtab
    cursor += len(shstrtab)
    pad = (-cursor) % 8
    body += b"\x00" * pad
    shoff = cursor + pad

    headers = struct.pack("<IIQQQQIIQQ", 0, 0, 0, 0, 0, 0, 0, 0, 0, 0)
    for (name, addr, data, sh_type), name_off, data_off in zip(sections, name_offsets, data_offsets):
        headers += struct.pack("<IIQQQQIIQQ", name_off, sh_type, 0x2, addr, data_off, len(data), 0, 0, 1, 0)
    headers += struct.pack("<IIQQQQIIQQ", shstrtab_name, SHT_STRTAB, 0, 0, shstrtab_offset, len(shstrtab), 0, 0, 1, 0)

    shnum = len(sections) + 2
    ident = b"\x7fELF" + bytes([2, 1, 1, 0]) + b"\x00" * 8
    ehdr = struct.pack("<16sHHIQQQIHHHHHH", ident, 2, 62, 1, 0, 0, shoff, 0, 64, 56, 0, 64, shnum, shnum - 1)
    return ehdr + body + headers


def build_pe32(sections, image_base=0x400000):
    """
    Build a minimal PE32 image.

    *sections* is a list of (name, data) tuples; section i is mapped at
    RVA 0x1000 * (i + 1) and stored at file offset 0x200-aligned.
    """
    file_align = 0x200
    sect_align = 0x1000
    nsec = len(sections)

    dos = b"MZ" + b"\x00" * 0x3A + struct.pack("<I", 0x40)
    file_header = struct.pack("<HHIIIHH", 0x14C, nsec, 0, 0, 0, 224, 0x0102)
    optional = struct.pack(
        "<HBB" + "I" * 9 + "H" * 6 + "I" * 4 + "HH" + "I" * 6,
        0x10B, 14, 0,
        0, 0, 0, 0x1000, 0x1000, 0, image_base, sect_align, file_align,
        6, 0, 0, 0, 6, 0,
        0, sect_align * (nsec + 1), file_align, 0,
        3, 0,
        0x100000, 0x1000, 0x100000, 0x1000, 0, 16,
    ) + b"\x00" * (16 * 8)

    headers = dos + b"PE\x00\x00" + file_header + optional
    raw = b""
    raw_offset = file_align
    for i, (name, data) in enumerate(sections):
        padded = data + b"\x00" * ((-len(data)) % file_align)
        headers += struct.pack(
            "<8sIIIIIIHHI", name.encode(), len(data), sect_align * (i + 1),
            len(padded), raw_offset, 0, 0, 0, 0, 0x40000040,
        )
        raw += padded
        raw_offset += len(padded)
    headers += b"\x00" * (file_align - len(headers))
    return headers + raw


@pytest.fixture
def elf_file(tmp_path):
    """An ELF with .text, .rodata and .data.rel.ro carrying known strings."""
    image = build_elf64([
        (".text", 0x401000, b"\x55\x48\x89\xe5Hello from text\x00\xc3", SHT_PROGBITS),
        (".rodata", 0x402000, b"\x00config file not found\x00\x00" + "Grüße aus Köln".encode("utf-8") + b"\x00", SHT_PROGBITS),
        (".data.rel.ro", 0x403000, b"\x00\x00relocated message here\x00", SHT_PROGBITS),
    ])
    path = tmp_path / "sample.elf"
    path.write_bytes(image)
    return path


@pytest.fixture
def pe_file(tmp_path):
    """A PE32 with .text and .rdata carrying known strings."""
    image = build_pe32([
        (".text", b"\x55\x8b\xec\x90Startup banner text\x00\xc3"),
        (".rdata", b"\x00\x00Cannot open registry\x00\x00"),
    ])
    path = tmp_path / "sample.exe"
    path.write_bytes(image)
    return path
