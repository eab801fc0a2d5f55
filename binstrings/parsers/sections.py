"""
Section access for ELF, PE and Mach-O executables.

Every provider maps the logical labels in ``SECTION_LABELS`` onto the
format's real section names and hands back ``(base_address, bytes)``.
Absent, empty or unreadable sections raise ``SectionUnavailable``; failure
to open or parse the file at all raises ``BinaryFormatError``.
"""
import os
import threading

from typing import Dict, Optional, Tuple

from binstrings.config import (
    logger, pefile, BinaryFormatError, SectionUnavailable,
    PYELFTOOLS_AVAILABLE, LIEF_AVAILABLE,
    SECTION_TEXT, SECTION_RODATA, SECTION_RELRO,
)

if PYELFTOOLS_AVAILABLE:
    from binstrings.config import ELFFile, ELFError

if LIEF_AVAILABLE:
    from binstrings.config import lief


# ── Magic-byte format detection ──────────────────────────────────────────

# Mach-O magic values (32/64 bit, big/little-endian, plus fat/universal)
_MACHO_MAGICS = (
    b'\xfe\xed\xfa\xce', b'\xfe\xed\xfa\xcf',
    b'\xce\xfa\xed\xfe', b'\xcf\xfa\xed\xfe',
)
_MACHO_FAT_MAGICS = (
    b'\xca\xfe\xba\xbe', b'\xbe\xba\xfe\xca',
)

PROVIDER_MODES = ("auto", "elf", "pe", "macho", "raw")


def detect_format_from_magic(magic: bytes) -> str:
    """Return a short format string from the first 4 bytes of a file.

    Returns one of: ``'pe'``, ``'elf'``, ``'macho'``, or ``'unknown'``.
    """
    if len(magic) < 2:
        return "unknown"
    if magic[:2] == b'MZ':
        return "pe"
    if magic[:4] == b'\x7fELF':
        return "elf"
    if magic[:4] in _MACHO_MAGICS or magic[:4] in _MACHO_FAT_MAGICS:
        return "macho"
    return "unknown"


# ── Providers ─────────────────────────────────────────────────────────────

class SectionProvider:
    """Base class: resolve a logical section label to (base_address, data)."""
    format_name = "unknown"

    # logical label -> candidate section names, first match wins
    SECTION_NAMES: Dict[str, Tuple[str, ...]] = {}

    def get_section(self, label: str) -> Tuple[int, bytes]:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _names_for(self, label: str) -> Tuple[str, ...]:
        names = self.SECTION_NAMES.get(label)
        if not names:
            raise SectionUnavailable(f"{self.format_name} binaries have no section for {label}")
        return names


class InMemoryProvider(SectionProvider):
    """Sections supplied directly as ``{label: (base_address, data)}``."""
    format_name = "memory"

    def __init__(self, sections: Dict[str, Tuple[int, bytes]]):
        self._sections = dict(sections)

    def get_section(self, label: str) -> Tuple[int, bytes]:
        if label not in self._sections:
            raise SectionUnavailable(f"Section {label} not present")
        base_address, data = self._sections[label]
        if not data:
            raise SectionUnavailable(f"Section {label} is empty")
        return base_address, bytes(data)


class ELFSectionProvider(SectionProvider):
    """ELF sections via pyelftools. Base address is the section's sh_addr."""
    format_name = "ELF"
    SECTION_NAMES = {
        SECTION_TEXT: (".text",),
        SECTION_RODATA: (".rodata",),
        SECTION_RELRO: (".data.rel.ro",),
    }

    def __init__(self, file_path: str):
        if not PYELFTOOLS_AVAILABLE:
            raise BinaryFormatError("The 'pyelftools' library is not installed. Install with: pip install pyelftools")
        self.file_path = file_path
        self._lock = threading.Lock()
        self._stream = open(file_path, 'rb')
        try:
            self._elf = ELFFile(self._stream)
        except ELFError as e:
            self._stream.close()
            raise BinaryFormatError(f"Failed to parse ELF file {file_path}: {e}") from e

    def get_section(self, label: str) -> Tuple[int, bytes]:
        for name in self._names_for(label):
            # pyelftools seeks and reads on the one shared stream
            with self._lock:
                try:
                    sec = self._elf.get_section_by_name(name)
                    if sec is None:
                        continue
                    if sec["sh_type"] == "SHT_NOBITS":
                        raise SectionUnavailable(f"{name} has no file contents (SHT_NOBITS)")
                    data = sec.data()
                except (ELFError, OSError, ValueError) as e:
                    raise SectionUnavailable(f"Failed to read {name}: {e}") from e
            if not data:
                raise SectionUnavailable(f"{name} is empty")
            return sec['sh_addr'], data
        raise SectionUnavailable(f"No {label} section in {self.file_path}")

    def close(self) -> None:
        if not self._stream.closed:
            self._stream.close()


class PESectionProvider(SectionProvider):
    """PE sections via pefile. Base address is ImageBase + VirtualAddress."""
    format_name = "PE"
    SECTION_NAMES = {
        SECTION_TEXT: (".text",),
        SECTION_RODATA: (".rdata",),
    }

    def __init__(self, file_path: str):
        self.file_path = file_path
        try:
            self._pe = pefile.PE(file_path, fast_load=True)
        except pefile.PEFormatError as e:
            raise BinaryFormatError(f"Failed to parse PE file {file_path}: {e}") from e

    def _find(self, name: str):
        for sec in self._pe.sections:
            if sec.Name.rstrip(b'\x00').decode('latin-1') == name:
                return sec
        return None

    def get_section(self, label: str) -> Tuple[int, bytes]:
        image_base = self._pe.OPTIONAL_HEADER.ImageBase
        for name in self._names_for(label):
            sec = self._find(name)
            if sec is None:
                continue
            data = sec.get_data()
            if not data:
                raise SectionUnavailable(f"{name} is empty")
            return image_base + sec.VirtualAddress, data
        raise SectionUnavailable(f"No {label} section in {self.file_path}")

    def close(self) -> None:
        self._pe.close()


class MachOSectionProvider(SectionProvider):
    """Mach-O sections via LIEF. Fat binaries use their first slice."""
    format_name = "Mach-O"
    # (segment, section) pairs; segment None matches any segment
    SECTION_NAMES = {
        SECTION_TEXT: ((None, "__text"),),
        SECTION_RODATA: ((None, "__rodata"), ("__TEXT", "__cstring"), ("__TEXT", "__const")),
        SECTION_RELRO: (("__DATA_CONST", "__const"),),
    }

    def __init__(self, file_path: str):
        if not LIEF_AVAILABLE:
            raise BinaryFormatError("The 'lief' library is not installed. Install with: pip install lief")
        self.file_path = file_path
        fat = lief.MachO.parse(file_path)
        if fat is None or fat.size == 0:
            raise BinaryFormatError(f"LIEF could not parse {file_path} as Mach-O")
        if fat.size > 1:
            logger.info(f"{file_path} is a universal binary with {fat.size} slices, using the first.")
        self._binary = fat.at(0)

    def get_section(self, label: str) -> Tuple[int, bytes]:
        for segment_name, section_name in self._names_for(label):
            for sec in self._binary.sections:
                if sec.name != section_name:
                    continue
                if segment_name is not None and sec.segment_name != segment_name:
                    continue
                data = bytes(sec.content)
                if not data:
                    raise SectionUnavailable(f"{sec.segment_name},{section_name} is empty")
                return sec.virtual_address, data
        raise SectionUnavailable(f"No {label} section in {self.file_path}")


# ── Factory ───────────────────────────────────────────────────────────────

def read_magic(file_path: str, size: int = 4) -> bytes:
    try:
        with open(file_path, 'rb') as f:
            return f.read(size)
    except OSError as e:
        raise BinaryFormatError(f"Cannot read {file_path}: {e}") from e


def open_section_provider(file_path: str, mode: str = "auto", raw_base: int = 0) -> SectionProvider:
    """
    Open *file_path* and return the provider for its format.

    Args:
        file_path: Path to the executable (or raw blob in 'raw' mode).
        mode: 'auto' to detect from magic bytes, or one of 'elf', 'pe',
            'macho', 'raw' to force a parser.
        raw_base: Load address used for the blob in 'raw' mode.

    Raises:
        BinaryFormatError: The file is unreadable, the format is unknown in
            'auto' mode, or the parser rejects it.
        ValueError: For an unknown mode.
    """
    if mode not in PROVIDER_MODES:
        raise ValueError(f"Unknown mode '{mode}'. Valid: {', '.join(PROVIDER_MODES)}")
    if not os.path.isfile(file_path):
        raise BinaryFormatError(f"File not found: {file_path}")

    fmt = mode
    if mode == "auto":
        fmt = detect_format_from_magic(read_magic(file_path))
        if fmt == "unknown":
            raise BinaryFormatError(
                f"Unrecognized executable format for {file_path}. "
                "Use mode 'raw' to scan the whole file as a code blob."
            )
        logger.debug(f"Detected format '{fmt}' for {file_path}")

    if fmt == "elf":
        return ELFSectionProvider(file_path)
    if fmt == "pe":
        return PESectionProvider(file_path)
    if fmt == "macho":
        return MachOSectionProvider(file_path)

    from binstrings.mock import RawBlobProvider
    try:
        with open(file_path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise BinaryFormatError(f"Cannot read {file_path}: {e}") from e
    return RawBlobProvider(data, base_address=raw_base)
