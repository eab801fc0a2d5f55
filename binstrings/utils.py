"""Utility functions for output and user-supplied pattern validation."""
import re
import sys

# --- ReDoS Protection ---
_MAX_REGEX_PATTERN_LENGTH = 1000
# Detects nested quantifiers that can cause catastrophic backtracking.
# Matches patterns like (X+)+, (X*)+, (X+)*, (X{n,m})+ etc.
_NESTED_QUANTIFIER_RE = re.compile(
    r'\([^)]*[+*}\?][^)]*\)\s*[+*{]'
)


def validate_regex_pattern(pattern: str) -> None:
    """Validate a regex pattern for safety before compilation.

    Raises ValueError if the pattern is too long, contains constructs
    that are known to cause catastrophic backtracking (ReDoS), or is
    not a valid regular expression.
    """
    if len(pattern) > _MAX_REGEX_PATTERN_LENGTH:
        raise ValueError(
            f"Regex pattern is too long ({len(pattern)} chars). "
            f"Maximum allowed length is {_MAX_REGEX_PATTERN_LENGTH} characters."
        )
    if _NESTED_QUANTIFIER_RE.search(pattern):
        raise ValueError(
            f"Regex pattern contains nested quantifiers which can cause "
            f"catastrophic backtracking (ReDoS). Please simplify the pattern: "
            f"'{pattern[:80]}{'...' if len(pattern) > 80 else ''}'"
        )
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regex pattern: {e}") from e


def parse_address(value: str) -> int:
    """Parse a decimal or 0x-prefixed address, rejecting negatives."""
    address = int(value, 0)
    if address < 0:
        raise ValueError(f"Address must be non-negative (got {value})")
    return address


def safe_print(text_to_print, verbose_prefix=""):
    try:
        print(f"{verbose_prefix}{text_to_print}")
    except UnicodeEncodeError:
        try:
            output_encoding = sys.stdout.encoding if sys.stdout.encoding else 'utf-8'
            encoded_text = str(text_to_print).encode(output_encoding, errors='backslashreplace').decode(output_encoding, errors='ignore')
            print(f"{verbose_prefix}{encoded_text} (some characters replaced/escaped)")
        except Exception:
            print(f"{verbose_prefix}<Unencodable string: contains characters not supported by output encoding>")
