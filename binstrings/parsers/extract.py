"""Section aggregation, deduplication and ordering of extracted strings."""
import re
import collections
import concurrent.futures

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional, List, Iterable, Sequence, Tuple

from binstrings.config import (
    logger, SectionUnavailable, SECTION_LABELS,
)
from binstrings.parsers.strings import extract_printable_strings
from binstrings.utils import validate_regex_pattern


@dataclass(frozen=True)
class ExtractedString:
    value: str
    address: int
    section: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractionReport:
    """Deduplicated strings in ascending address order. ``count`` always equals ``len(strings)``."""
    strings: List[ExtractedString] = field(default_factory=list)
    count: int = 0

    def __post_init__(self):
        self.count = len(self.strings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strings": [s.to_dict() for s in self.strings],
            "count": self.count,
        }

    def by_section(self) -> Dict[str, int]:
        """Number of strings per section label, in first-seen order."""
        return dict(collections.Counter(s.section for s in self.strings))

    def filter(self, regex: Optional[str] = None, sections: Optional[Iterable[str]] = None,
               limit: Optional[int] = None, case_sensitive: bool = False) -> "ExtractionReport":
        """
        Return a new report restricted to matching entries.

        Args:
            regex: Pattern searched (not anchored) in each value. Validated
                against ReDoS-prone constructs before compiling.
            sections: Keep only these section labels.
            limit: Keep at most this many entries (after the other filters).
            case_sensitive: Whether *regex* is matched case-sensitively.

        Raises:
            ValueError: For an unsafe or invalid regex, or a non-positive limit.
        """
        if limit is not None and limit < 1:
            raise ValueError("The 'limit' parameter must be a positive integer.")
        pattern = None
        if regex:
            validate_regex_pattern(regex)
            pattern = re.compile(regex, 0 if case_sensitive else re.IGNORECASE)
        wanted = set(sections) if sections else None

        kept = []
        for s in self.strings:
            if wanted is not None and s.section not in wanted:
                continue
            if pattern is not None and not pattern.search(s.value):
                continue
            kept.append(s)
            if limit is not None and len(kept) >= limit:
                break
        return ExtractionReport(strings=kept)


def extract_section_strings(section: str, base_address: int, data: bytes, min_length: int) -> List[ExtractedString]:
    """Scan one section buffer and rebase every accepted run to an absolute address."""
    return [
        ExtractedString(value=run.text, address=base_address + run.offset, section=section)
        for run in extract_printable_strings(data, min_length)
    ]


def finalize(strings: Sequence[ExtractedString]) -> ExtractionReport:
    """
    Deduplicate by (section, value) and sort by ascending address.

    When the same text occurs more than once in a section, the first
    occurrence in *strings* is kept along with its address, even if a later
    occurrence has a lower address. The sort is stable, so address ties keep
    discovery order.
    """
    seen = set()
    unique = []
    for s in strings:
        key = (s.section, s.value)
        if key in seen:
            continue
        seen.add(key)
        unique.append(s)
    unique.sort(key=lambda s: s.address)
    return ExtractionReport(strings=unique)


def _scan_provider_section(provider, section: str, min_length: int) -> List[ExtractedString]:
    try:
        base_address, data = provider.get_section(section)
    except SectionUnavailable as e:
        logger.debug(f"Skipping section {section}: {e}")
        return []
    if not data:
        logger.debug(f"Skipping section {section}: empty")
        return []
    found = extract_section_strings(section, base_address, data, min_length)
    logger.debug(f"Section {section} @ {hex(base_address)} ({len(data)} bytes): {len(found)} strings")
    return found


def extract_strings(provider, min_length: int, workers: int = 1,
                    sections: Tuple[str, ...] = SECTION_LABELS) -> ExtractionReport:
    """
    Extract likely-text strings from every declared section of *provider*.

    Sections are merged in declared order before deduplication, so the
    result is the same whether they are scanned sequentially or on a thread
    pool (``workers > 1``). Missing or empty sections contribute nothing.

    Args:
        provider: Object with ``get_section(label) -> (base_address, bytes)``
            that raises SectionUnavailable for absent sections.
        min_length: Minimum run length in characters. Values below 1 are
            treated as 1.
        workers: Thread count for scanning sections concurrently.
        sections: Section labels to query, in merge order.

    Raises:
        ValueError: If workers is less than 1.
    """
    min_length = max(min_length, 1)
    if workers < 1:
        raise ValueError(f"workers must be >= 1 (got {workers})")

    if workers == 1 or len(sections) < 2:
        per_section = [_scan_provider_section(provider, s, min_length) for s in sections]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=min(workers, len(sections))) as pool:
            # map() yields in submission order, which keeps the merge deterministic
            per_section = list(pool.map(lambda s: _scan_provider_section(provider, s, min_length), sections))

    merged = [s for found in per_section for s in found]
    report = finalize(merged)
    logger.info(f"Extracted {report.count} unique strings from {len(sections)} sections ({len(merged)} before dedup).")
    return report
