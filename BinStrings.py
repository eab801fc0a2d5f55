#!/usr/bin/env python3
# -*- coding: UTF-8 -*-
"""
BinStrings: low-noise string extraction from executable sections.

Scans the .text, .rodata and .data.rel.ro sections of ELF, PE and Mach-O
binaries for ASCII and UTF-8 text. Disassembly fragments and hex dumps are
dropped; each remaining string is reported with its section and address.

It can operate in two modes:
1. CLI Mode: Scans --input-file and prints a text or JSON report.
2. MCP Server Mode (--mcp-server): Exposes extraction, search and
   address lookup as Model-Context-Protocol tools.
"""
from binstrings.main import main

if __name__ == "__main__":
    main()
