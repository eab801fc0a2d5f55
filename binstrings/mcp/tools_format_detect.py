"""MCP tool for detecting a binary's format and which scan sections it provides.

Uses ``detect_format_from_magic()`` for the PE/ELF/Mach-O classification,
then opens the matching section provider to report base address and size
for every logical section label.
"""
import asyncio
from typing import Dict, Any, Optional
from binstrings.config import (
    logger, Context, BinaryFormatError, SectionUnavailable,
    PYELFTOOLS_AVAILABLE, LIEF_AVAILABLE, SECTION_LABELS,
)
from binstrings.mcp.server import tool_decorator, _check_mcp_response_size
from binstrings.mcp._format_helpers import _get_filepath, get_magic_hint
from binstrings.parsers.sections import detect_format_from_magic, open_section_provider, read_magic

# Go toolchain markers; Go binaries carry their strings in .rodata
_GO_MARKERS = (b'Go build', b'go.buildid', b'runtime.main', b'runtime.goexit')


def _describe_sections(target: str, fmt: str) -> Dict[str, Any]:
    sections: Dict[str, Any] = {}
    with open_section_provider(target, mode=fmt) as provider:
        for label in SECTION_LABELS:
            try:
                base, data = provider.get_section(label)
            except SectionUnavailable as e:
                sections[label] = {"available": False, "reason": str(e)}
                continue
            sections[label] = {"available": True, "base_address": hex(base), "size": len(data)}
    return sections


@tool_decorator
async def detect_binary_format(
    ctx: Context,
    file_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Detects the binary format from magic bytes (PE, ELF, Mach-O) and reports
    which string-bearing sections are available, with base address and size.

    Args:
        file_path: Optional path to a binary. If None, uses the pre-loaded file.
    """
    await ctx.info("Detecting binary format")
    target = _get_filepath(file_path)

    def _detect():
        fmt = detect_format_from_magic(read_magic(target))
        with open(target, 'rb') as f:
            scan_data = f.read(2 * 1024 * 1024)

        result: Dict[str, Any] = {
            "file": target,
            "format": fmt,
            "format_hint": get_magic_hint(target),
            "is_go": any(marker in scan_data for marker in _GO_MARKERS),
            "library_support": {
                "pefile": True,
                "pyelftools": PYELFTOOLS_AVAILABLE,
                "lief": LIEF_AVAILABLE,
            },
        }
        if fmt == "unknown":
            result["sections"] = {}
            result["suggestion"] = "Unrecognized format. Use mode='raw' to scan the whole file as code."
            return result
        try:
            result["sections"] = _describe_sections(target, fmt)
        except BinaryFormatError as e:
            logger.warning(f"MCP: Section listing failed for {target}: {e}")
            result["sections"] = {}
            result["error"] = str(e)
        return result

    result = await asyncio.to_thread(_detect)
    return await _check_mcp_response_size(ctx, result, "detect_binary_format")
