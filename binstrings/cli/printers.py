"""CLI printing and output formatting functions."""
import json

from typing import Dict, Optional, List

from binstrings.config import SECTION_LABELS
from binstrings.parsers.extract import ExtractionReport, ExtractedString
from binstrings.utils import safe_print

# Values longer than this are shortened in text output unless verbose
MAX_VALUE_DISPLAY_LEN = 120


def _format_string_line(s: ExtractedString, addr_width: int = 8, verbose: bool = False) -> str:
    value = s.value
    if len(value) > MAX_VALUE_DISPLAY_LEN and not verbose:
        value = value[:MAX_VALUE_DISPLAY_LEN - 3] + "..."
    return f"  0x{s.address:0{addr_width}x}  {s.section:<13} {value}"


def _address_width(strings: List[ExtractedString]) -> int:
    highest = max((s.address for s in strings), default=0)
    return 16 if highest > 0xFFFFFFFF else 8


def _print_section_counts_cli(counts: Dict[str, int]):
    safe_print("\n--- Strings per Section ---")
    for label in SECTION_LABELS:
        safe_print(f"  {label:<13} {counts.get(label, 0)}")


def _print_report_cli(report: ExtractionReport, file_path: str, format_name: str,
                      min_length: int, limit: Optional[int] = None, verbose: bool = False,
                      warnings: Optional[List[str]] = None):
    safe_print(f"[*] File: {file_path}")
    safe_print(f"[*] Format: {format_name}   Min Length: {min_length}")
    for w in warnings or []:
        safe_print(f"[!] {w}")

    _print_section_counts_cli(report.by_section())

    shown = report.strings if limit is None else report.strings[:limit]
    safe_print(f"\n--- Strings ({report.count} total) ---")
    if not shown:
        safe_print("  No strings found.")
        return
    width = _address_width(shown)
    for s in shown:
        safe_print(_format_string_line(s, width, verbose))
    if len(shown) < report.count:
        safe_print(f"  ... {report.count - len(shown)} more (use --limit to show more)")


def _print_report_json(report: ExtractionReport, indent: Optional[int] = 2):
    safe_print(json.dumps(report.to_dict(), indent=indent, ensure_ascii=False))
