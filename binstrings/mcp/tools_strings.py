"""MCP tools for section string extraction, search, and lookup."""
import os
import asyncio

from typing import Dict, Any, Optional, List

from binstrings.config import (
    state, logger, Context, BinaryFormatError,
    DEFAULT_MIN_LENGTH, DEFAULT_WORKERS, SECTION_LABELS,
)
from binstrings.mcp.server import tool_decorator, _check_mcp_response_size
from binstrings.mcp._format_helpers import _get_filepath
from binstrings.parsers.extract import ExtractionReport, extract_strings
from binstrings.parsers.sections import open_section_provider, PROVIDER_MODES
from binstrings.utils import parse_address


def _validate_common(min_length: Optional[int], mode: Optional[str], sections: Optional[List[str]] = None) -> None:
    if min_length is not None and (not isinstance(min_length, int) or min_length < 1):
        raise ValueError("The 'min_length' parameter must be a positive integer.")
    if mode is not None and mode not in PROVIDER_MODES:
        raise ValueError(f"The 'mode' parameter must be one of: {', '.join(PROVIDER_MODES)}.")
    if sections:
        unknown = [s for s in sections if s not in SECTION_LABELS]
        if unknown:
            raise ValueError(f"Unknown section label(s) {unknown}. Valid: {', '.join(SECTION_LABELS)}.")


def _get_report(target: str, mode: Optional[str], min_length: Optional[int]) -> ExtractionReport:
    """Extract (or fetch from the state cache) the report for *target*. Runs in a worker thread."""
    resolved_mode = mode or (state.mode if target == state.filepath else "auto")
    resolved_min = min_length or DEFAULT_MIN_LENGTH
    raw_base = state.raw_base if resolved_mode == "raw" else 0
    key = (os.path.realpath(target), resolved_mode, raw_base, resolved_min)

    report = state.get_report(key)
    if report is not None:
        logger.debug(f"MCP: Using cached report for {target}")
        return report

    try:
        with open_section_provider(target, mode=resolved_mode, raw_base=raw_base) as provider:
            report = extract_strings(provider, resolved_min, workers=DEFAULT_WORKERS)
    except BinaryFormatError as e:
        raise RuntimeError(str(e)) from e
    state.set_report(key, report)
    return report


@tool_decorator
async def extract_binary_strings(
    ctx: Context,
    file_path: Optional[str] = None,
    min_length: Optional[int] = None,
    mode: Optional[str] = None,
    sections: Optional[List[str]] = None,
    limit: int = 200,
    offset: int = 0,
) -> Dict[str, Any]:
    """
    Extracts likely human-readable strings from the .text, .rodata and .data.rel.ro
    sections. Disassembly fragments and hex blobs are filtered out. Results are deduplicated
    per section and sorted by address.

    Args:
        ctx: The MCP Context object.
        file_path: (Optional[str]) Binary to scan. Defaults to the pre-loaded file.
        min_length: (Optional[int]) Minimum string length in characters. Defaults to the server setting.
        mode: (Optional[str]) 'auto', 'elf', 'pe', 'macho' or 'raw'. Defaults to 'auto'.
        sections: (Optional[List[str]]) Restrict to these section labels.
        limit: (int) Maximum strings to return. Defaults to 200.
        offset: (int) Index of the first string to return, for paging. Defaults to 0.

    Returns:
        A dictionary with the page of strings ({value, address, section}), the
        total count, and pagination information.

    Raises:
        RuntimeError: If the file cannot be opened as a supported format.
        ValueError: For invalid parameters.
    """
    await ctx.info(f"Request to extract strings. min_length: {min_length}, mode: {mode}, sections: {sections}, limit: {limit}, offset: {offset}")
    _validate_common(min_length, mode, sections)
    if not (isinstance(limit, int) and limit > 0):
        raise ValueError("The 'limit' parameter must be a positive integer.")
    if not (isinstance(offset, int) and offset >= 0):
        raise ValueError("The 'offset' parameter must be a non-negative integer.")

    target = _get_filepath(file_path)
    report = await asyncio.to_thread(_get_report, target, mode, min_length)
    if sections:
        report = report.filter(sections=sections)

    page = report.strings[offset:offset + limit]
    response = {
        "file": target,
        "strings": [s.to_dict() for s in page],
        "count": report.count,
        "pagination_info": {
            "offset": offset,
            "limit": limit,
            "returned": len(page),
            "has_more": offset + len(page) < report.count,
        },
    }
    return await _check_mcp_response_size(ctx, response, "extract_binary_strings", "the 'limit' parameter or 'sections'")


@tool_decorator
async def search_binary_strings(
    ctx: Context,
    regex_patterns: List[str],
    file_path: Optional[str] = None,
    min_length: Optional[int] = None,
    mode: Optional[str] = None,
    sections: Optional[List[str]] = None,
    limit: int = 100,
    case_sensitive: bool = False,
) -> Dict[str, Any]:
    """
    Performs a regex search over the extracted section strings.

    Args:
        ctx: The MCP Context object.
        regex_patterns: (List[str]) Patterns to search for; a string matching any of them is returned.
        file_path: (Optional[str]) Binary to scan. Defaults to the pre-loaded file.
        min_length: (Optional[int]) Minimum string length used for extraction.
        mode: (Optional[str]) 'auto', 'elf', 'pe', 'macho' or 'raw'.
        sections: (Optional[List[str]]) Restrict to these section labels.
        limit: (int) The maximum number of matches to return. Defaults to 100.
        case_sensitive: (bool) If True, the search is case-sensitive. Defaults to False.

    Returns:
        A dictionary containing the matched strings and match totals.

    Raises:
        ValueError: For an empty pattern list, unsafe or invalid regexes, or bad parameters.
    """
    await ctx.info(f"Request to search strings. Patterns: {len(regex_patterns) if regex_patterns else 0}, Limit: {limit}")
    if not regex_patterns or not isinstance(regex_patterns, list):
        raise ValueError("The 'regex_patterns' parameter must be a non-empty list of strings.")
    if not (isinstance(limit, int) and limit > 0):
        raise ValueError("The 'limit' parameter must be a positive integer.")
    _validate_common(min_length, mode, sections)

    combined = "|".join(f"(?:{p})" for p in regex_patterns)
    target = _get_filepath(file_path)
    report = await asyncio.to_thread(_get_report, target, mode, min_length)
    matches = report.filter(regex=combined, sections=sections, case_sensitive=case_sensitive)

    response = {
        "file": target,
        "matches": [s.to_dict() for s in matches.strings[:limit]],
        "total_matches_found": matches.count,
        "returned_matches": min(limit, matches.count),
    }
    return await _check_mcp_response_size(ctx, response, "search_binary_strings", "the 'limit' parameter or more specific 'regex_patterns'")


@tool_decorator
async def get_string_at_address(
    ctx: Context,
    address: str,
    file_path: Optional[str] = None,
    min_length: Optional[int] = None,
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Looks up the extracted string that starts at, or spans, a given address.

    Args:
        ctx: The MCP Context object.
        address: (str) Absolute address, decimal or hex (e.g. '0x4a1020').
        file_path: (Optional[str]) Binary to scan. Defaults to the pre-loaded file.
        min_length: (Optional[int]) Minimum string length used for extraction.
        mode: (Optional[str]) 'auto', 'elf', 'pe', 'macho' or 'raw'.

    Returns:
        {"found": True, "string": {...}, "offset_in_string": n} or {"found": False}.
    """
    try:
        addr = parse_address(address)
    except ValueError as e:
        raise ValueError(f"Invalid address '{address}': {e}") from e
    _validate_common(min_length, mode)
    await ctx.info(f"Looking up string at {hex(addr)}")

    target = _get_filepath(file_path)
    report = await asyncio.to_thread(_get_report, target, mode, min_length)
    for s in report.strings:
        if s.address > addr:
            break
        # Span is measured in encoded bytes, multi-byte runs are longer than len(value)
        if addr < s.address + len(s.value.encode('utf-8')):
            return {"found": True, "string": s.to_dict(), "offset_in_string": addr - s.address}
    return {"found": False, "address": hex(addr)}


@tool_decorator
async def get_string_section_summary(
    ctx: Context,
    file_path: Optional[str] = None,
    min_length: Optional[int] = None,
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Summarizes extracted strings per section: counts and address ranges.

    Args:
        ctx: The MCP Context object.
        file_path: (Optional[str]) Binary to scan. Defaults to the pre-loaded file.
        min_length: (Optional[int]) Minimum string length used for extraction.
        mode: (Optional[str]) 'auto', 'elf', 'pe', 'macho' or 'raw'.
    """
    await ctx.info("Summarizing extracted strings per section")
    _validate_common(min_length, mode)
    target = _get_filepath(file_path)
    report = await asyncio.to_thread(_get_report, target, mode, min_length)

    summary: Dict[str, Any] = {}
    for label in SECTION_LABELS:
        entries = [s for s in report.strings if s.section == label]
        summary[label] = {
            "count": len(entries),
            "first_address": hex(entries[0].address) if entries else None,
            "last_address": hex(entries[-1].address) if entries else None,
        }
    return {"file": target, "total": report.count, "sections": summary}
