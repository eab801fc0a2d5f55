"""Printable-run scanning (ASCII and UTF-8) and the likely-text classifier."""
import unicodedata

from typing import List, NamedTuple, Optional, Tuple


class CandidateRun(NamedTuple):
    """A printable run found in a buffer; offset is relative to the buffer start."""
    text: str
    offset: int


# Characters counted as "good" alongside letters, digits and the plain space.
COMMON_PUNCTUATION = frozenset(".,:;!?'\"()[]{}-_/\\+=*&|<>@#$%^~`")

ASM_MNEMONICS = ("mov", "jmp", "call", "ret", "lea", "add", "sub", "xor", "push", "pop", "cmp", "test")

HEX_CHARS = frozenset("0123456789abcdefx")

MIN_GOOD_CHAR_PERCENT = 70
MAX_HEX_CHAR_PERCENT = 80


def _as_bytes(data) -> bytes:
    # memoryview/mmap/bytearray all need to iterate as ints and slice as bytes
    if not isinstance(data, bytes):
        data = bytes(data)
    return data


def scan_ascii(data: bytes, min_length: int) -> List[CandidateRun]:
    """Return every maximal run of bytes in 0x20..0x7E that is at least *min_length* long."""
    data = _as_bytes(data)
    runs = []
    start = -1
    for i, byte_val in enumerate(data):
        if 0x20 <= byte_val <= 0x7E:
            if start == -1:
                start = i
        elif start != -1:
            if i - start >= min_length:
                runs.append(CandidateRun(data[start:i].decode("ascii"), start))
            start = -1
    if start != -1 and len(data) - start >= min_length:  # trailing run
        runs.append(CandidateRun(data[start:].decode("ascii"), start))
    return runs


def _decode_utf8_at(data: bytes, pos: int) -> Tuple[Optional[str], int]:
    """
    Decode a single code point at *pos*.

    Returns (char, size) on success or (None, 1) on a decode error, so the
    caller can resynchronize one byte at a time. Overlong encodings,
    surrogates and values past U+10FFFF are errors, as are truncated
    sequences.
    """
    lead = data[pos]
    if lead < 0x80:
        return chr(lead), 1
    if 0xC2 <= lead <= 0xDF:
        size = 2
    elif 0xE0 <= lead <= 0xEF:
        size = 3
    elif 0xF0 <= lead <= 0xF4:
        size = 4
    else:
        return None, 1
    if pos + size > len(data):
        return None, 1
    try:
        return data[pos:pos + size].decode("utf-8"), size
    except UnicodeDecodeError:
        return None, 1


def _is_run_delimiter(char: str) -> bool:
    # \n, \r and \t are all category Cc
    return unicodedata.category(char) == "Cc"


def scan_utf8(data: bytes, min_length: int) -> List[CandidateRun]:
    """
    Return maximal runs of valid, non-control code points containing at least
    one multi-byte character. Pure-ASCII runs are left to scan_ascii.

    *min_length* counts code points, not bytes.
    """
    data = _as_bytes(data)
    runs = []
    n = len(data)
    i = 0
    while i < n:
        char, size = _decode_utf8_at(data, i)
        if char is None:
            i += 1
            continue

        j = i
        count = 0
        multibyte = False
        while j < n:
            c, s = _decode_utf8_at(data, j)
            if c is None or _is_run_delimiter(c):
                break
            count += 1
            if s > 1:
                multibyte = True
            j += s

        if count >= min_length and multibyte:
            runs.append(CandidateRun(data[i:j].decode("utf-8"), i))

        if j == i:
            i += size
        else:
            # The byte that stopped the run is consumed too.
            i = j + 1
    return runs


def is_repeated_char(text: str) -> bool:
    """True for padding-like text: three or more copies of one character."""
    return len(text) >= 3 and text.count(text[0]) == len(text)


def _is_good_char(char: str) -> bool:
    if char == " " or char in COMMON_PUNCTUATION:
        return True
    category = unicodedata.category(char)
    return category.startswith("L") or category == "Nd"


def looks_like_assembly(text: str) -> bool:
    """
    Flag disassembly fragments and hex dumps.

    Either a known x86 mnemonic at the start (or followed by a space
    anywhere), or a text made of more than 80% hex digits / 'x'.
    """
    lower = text.lower()
    for mnemonic in ASM_MNEMONICS:
        if lower.startswith(mnemonic) or (mnemonic + " ") in lower:
            return True

    if not lower:
        return False
    hex_count = sum(1 for c in lower if c in HEX_CHARS)
    return hex_count * 100 // len(lower) > MAX_HEX_CHAR_PERCENT


def is_likely_string(text: str) -> bool:
    """
    Decide whether a candidate run reads like human text.

    The run is trimmed for the decision only. It must be non-empty, not a
    single repeated character, have at least 70% letters, digits, spaces or
    common punctuation, and not look like assembly or a hex dump.
    """
    trimmed = text.strip()
    if not trimmed or is_repeated_char(trimmed):
        return False

    good = sum(1 for c in trimmed if _is_good_char(c))
    if good * 100 // len(trimmed) < MIN_GOOD_CHAR_PERCENT:
        return False

    return not looks_like_assembly(trimmed)


def extract_printable_strings(data: bytes, min_length: int) -> List[CandidateRun]:
    """ASCII runs followed by multi-byte UTF-8 runs, keeping only those that pass is_likely_string."""
    data = _as_bytes(data)
    candidates = scan_ascii(data, min_length) + scan_utf8(data, min_length)
    return [run for run in candidates if is_likely_string(run.text)]
