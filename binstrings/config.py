"""
Central configuration, imports, availability flags, and constants.

All optional library imports and their availability flags are managed here.
Other modules import what they need from this module.
"""
import os
import sys
import logging

from typing import Any, Optional, List, Tuple

from binstrings.state import AnalyzerState
from binstrings.user_config import get_config_value, get_int_config_value

# --- Global State Instance ---
state = AnalyzerState()

# --- Ensure pefile is available (Critical Dependency) ---
try:
    import pefile
except ImportError:
    print("[!] CRITICAL ERROR: The 'pefile' library is not found.", file=sys.stderr)
    print("[!] This library is essential for the script to function.", file=sys.stderr)
    print("[!] Install it with: pip install pefile", file=sys.stderr)
    sys.exit(1)

# --- Logging Setup ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
logger = logging.getLogger("BinStrings")

# --- Errors ---
class BinStringsError(Exception):
    """Base class for errors raised by BinStrings."""

class BinaryFormatError(BinStringsError):
    """The input could not be opened or parsed as a supported executable format."""

class SectionUnavailable(BinStringsError):
    """A requested section does not exist, is empty, or could not be read."""

# --- Optional Library Imports & Availability Flags ---
PYELFTOOLS_AVAILABLE = False
PYELFTOOLS_IMPORT_ERROR = None
try:
    from elftools.elf.elffile import ELFFile
    from elftools.common.exceptions import ELFError
    PYELFTOOLS_AVAILABLE = True
except ImportError as e:
    PYELFTOOLS_IMPORT_ERROR = str(e)

LIEF_AVAILABLE = False
LIEF_IMPORT_ERROR = None
try:
    import lief
    LIEF_AVAILABLE = True
except ImportError as e:
    LIEF_IMPORT_ERROR = str(e)

MCP_SDK_AVAILABLE = False
try:
    from mcp.server.fastmcp import FastMCP, Context
    MCP_SDK_AVAILABLE = True
except ImportError:
    class MockSettings: host = "127.0.0.1"; port = 8082; log_level = "INFO"
    class MockMCP:
        def __init__(self, name, description=""): self.name = name; self.description = description; self.settings = MockSettings()
        def tool(self): decorator = lambda func: func; return decorator
        def run(self, transport: str = "stdio"): print(f"MockMCP '{self.name}' run method called with transport='{transport}'.")
    FastMCP = MockMCP  # type: ignore
    class Context:  # type: ignore
        async def info(self, msg): print(f"(mock ctx info): {msg}")
        async def error(self, msg): print(f"(mock ctx error): {msg}")
        async def warning(self, msg): print(f"(mock ctx warning): {msg}")

# --- Constants for MCP Response Size Limit ---
MAX_MCP_RESPONSE_SIZE_KB = 64
MAX_MCP_RESPONSE_SIZE_BYTES = MAX_MCP_RESPONSE_SIZE_KB * 1024

# --- Extraction Constants ---
MIN_LENGTH_FALLBACK = 4
DEFAULT_MIN_LENGTH = get_int_config_value("min_length", MIN_LENGTH_FALLBACK)
DEFAULT_WORKERS = get_int_config_value("workers", 1)

# Logical section labels, in the order they are scanned and merged.
SECTION_TEXT = ".text"
SECTION_RODATA = ".rodata"
SECTION_RELRO = ".data.rel.ro"
SECTION_LABELS: Tuple[str, ...] = (SECTION_TEXT, SECTION_RODATA, SECTION_RELRO)


def get_default_allowed_paths() -> Optional[List[str]]:
    """Allowed-path sandbox from env/config (os.pathsep separated), or None for no restriction."""
    raw = get_config_value("allowed_paths")
    if not raw:
        return None
    return [p for p in raw.split(os.pathsep) if p]


# --- Availability Logging ---
if PYELFTOOLS_AVAILABLE: logger.debug("pyelftools found. ELF section access enabled.")
else: logger.warning(f"pyelftools not found. ELF binaries cannot be opened. Import error: {PYELFTOOLS_IMPORT_ERROR}")
if LIEF_AVAILABLE: logger.debug("LIEF found. Mach-O section access enabled.")
else: logger.warning(f"LIEF not found. Mach-O binaries cannot be opened. Import error: {LIEF_IMPORT_ERROR}")
if not MCP_SDK_AVAILABLE: logger.debug("MCP SDK not found. MCP server mode will be unavailable.")
