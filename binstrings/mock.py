"""Raw blob provider for shellcode / headerless binaries."""
from typing import Tuple

from binstrings.config import SectionUnavailable, SECTION_TEXT
from binstrings.parsers.sections import SectionProvider


class RawBlobProvider(SectionProvider):
    """
    A stand-in for a parsed executable when the input has no headers.

    The whole blob is exposed as the code section at *base_address*; every
    other section is reported unavailable.
    """
    format_name = "raw"

    def __init__(self, data, base_address: int = 0):
        if base_address < 0:
            raise ValueError(f"base_address must be non-negative (got {base_address})")
        self.__data__ = bytes(data)
        self.base_address = base_address

    def get_warnings(self):
        return ["Loaded in Raw Blob Mode (executable format parsing skipped)."]

    def get_section(self, label: str) -> Tuple[int, bytes]:
        if label != SECTION_TEXT:
            raise SectionUnavailable(f"Raw blobs only provide {SECTION_TEXT}")
        if not self.__data__:
            raise SectionUnavailable("Raw blob is empty")
        return self.base_address, self.__data__
