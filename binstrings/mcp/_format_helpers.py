"""Shared helpers for the MCP tools."""
import os
from typing import Optional
from binstrings.config import state
from binstrings.parsers.sections import detect_format_from_magic


def _get_filepath(file_path: Optional[str] = None) -> str:
    """Get the file path to analyze, defaulting to the pre-loaded file."""
    target = file_path or state.filepath
    if not target:
        raise RuntimeError(
            "No file specified and no file is pre-loaded. "
            "Pass 'file_path', or start the server with --input-file."
        )
    if file_path is not None:
        state.check_path_allowed(os.path.realpath(target))
    if not os.path.isfile(target):
        raise RuntimeError(f"File not found: {target}")
    return target


def get_magic_hint(file_path: str) -> str:
    """Read the first 4 bytes of *file_path* and return a human-readable format hint."""
    try:
        with open(file_path, 'rb') as f:
            magic = f.read(4)
    except OSError:
        return "Unreadable"

    fmt = detect_format_from_magic(magic)
    if fmt == "pe":
        return "PE"
    if fmt == "elf":
        return "ELF"
    if fmt == "macho":
        return "Mach-O"

    if magic[:2] == b'PK':
        return "ZIP/Archive"
    if magic[:3] == b'\x1f\x8b\x08':
        return "GZIP"
    if magic[:4] == b'%PDF':
        return "PDF"
    return "Unknown"
