"""Main entry point: argument parsing, CLI mode, and MCP server startup."""
import os
import sys
import logging
import argparse

from pathlib import Path

from binstrings.config import (
    state, logger, BinaryFormatError,
    MCP_SDK_AVAILABLE, DEFAULT_MIN_LENGTH, DEFAULT_WORKERS, SECTION_LABELS,
    get_default_allowed_paths,
)
from binstrings.parsers.extract import extract_strings
from binstrings.parsers.sections import open_section_provider, PROVIDER_MODES
from binstrings.cli.printers import _print_report_cli, _print_report_json
from binstrings.utils import parse_address
from binstrings.mcp.server import mcp_server

# Import all MCP tool modules to register them with the server
import binstrings.mcp.tools_strings
import binstrings.mcp.tools_format_detect


def _positive_int(value: str) -> int:
    ivalue = int(value)
    if ivalue < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1 (got {value})")
    return ivalue


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Low-noise string extraction from executable sections.", formatter_class=argparse.RawTextHelpFormatter)

    # --- Input & Mode ---
    parser.add_argument("--input-file", type=str, default=None, help="Path to the binary to scan. Required in CLI mode; optional pre-load in MCP mode.")
    parser.add_argument("--mode", choices=PROVIDER_MODES, default="auto", help="Binary format. 'auto' detects from magic bytes; 'raw' scans the whole file as code (default: auto).")
    parser.add_argument("--raw-base", type=parse_address, default=0, help="Load address for --mode raw (e.g., 0x400000). Default: 0.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging and untruncated output.")

    # --- Extraction Options ---
    parser.add_argument("-n", "--min-length", type=_positive_int, default=DEFAULT_MIN_LENGTH, help=f"Minimum string length in characters (default: {DEFAULT_MIN_LENGTH}).")
    parser.add_argument("--workers", type=_positive_int, default=DEFAULT_WORKERS, help=f"Threads used to scan sections concurrently (default: {DEFAULT_WORKERS}).")

    # --- CLI Options ---
    cli_group = parser.add_argument_group('CLI Mode Specific Options (ignored if --mcp-server is used)')
    cli_group.add_argument("--section", action="append", choices=SECTION_LABELS, help="Only show strings from this section (multiple allowed).")
    cli_group.add_argument("-r", "--regex", dest="regex_pattern", type=str, default=None, help="Only show strings matching this regex (case-insensitive).")
    cli_group.add_argument("--limit", type=_positive_int, default=None, help="Maximum number of strings to print.")
    cli_group.add_argument("--json", action="store_true", help="Print the report as JSON ({strings, count}).")

    # --- MCP Options ---
    mcp_group = parser.add_argument_group('MCP Server Mode Specific Options')
    mcp_group.add_argument("--mcp-server", action="store_true", help="Run in MCP server mode.")
    mcp_group.add_argument("--mcp-host", type=str, default="127.0.0.1", help="MCP server host (default: 127.0.0.1).")
    mcp_group.add_argument("--mcp-port", type=int, default=8082, help="MCP server port (default: 8082).")
    mcp_group.add_argument("--mcp-transport", type=str, default="stdio", choices=["stdio", "sse"], help="MCP transport protocol (default: stdio).")
    mcp_group.add_argument("--allowed-paths", nargs="+", default=None, help="Restrict MCP tools to files under these directories.")
    return parser


def _run_mcp_server(args, abs_input_file, log_level) -> int:
    if not MCP_SDK_AVAILABLE:
        logger.critical("MCP SDK not available. Cannot start MCP server. Please install it (e.g., 'pip install \"mcp[cli]\"') and re-run.")
        return 1

    state.mode = args.mode
    state.raw_base = args.raw_base
    state.allowed_paths = args.allowed_paths or get_default_allowed_paths()
    if abs_input_file:
        state.filepath = abs_input_file
        logger.info(f"MCP Server: Pre-loaded input file: {abs_input_file} (Mode: {args.mode})")
    if state.allowed_paths:
        logger.info(f"MCP Server: Restricting file access to: {', '.join(state.allowed_paths)}")

    if args.mcp_transport == "sse":
        mcp_server.settings.host = args.mcp_host
        mcp_server.settings.port = args.mcp_port
        mcp_server.settings.log_level = logging.getLevelName(log_level).lower()
        logger.info(f"Starting MCP server (SSE) on http://{mcp_server.settings.host}:{mcp_server.settings.port}")
    else:
        logger.info("Starting MCP server (stdio).")

    try:
        mcp_server.run(transport=args.mcp_transport)
    except KeyboardInterrupt:
        logger.info("MCP Server stopped by user (KeyboardInterrupt).")
    except Exception as e:
        logger.critical(f"MCP Server encountered an unhandled error: {str(e)}", exc_info=True)
        return 1
    return 0


def _run_cli(args, abs_input_file) -> int:
    try:
        with open_section_provider(abs_input_file, mode=args.mode, raw_base=args.raw_base) as provider:
            format_name = provider.format_name
            warnings = provider.get_warnings() if hasattr(provider, "get_warnings") else None
            report = extract_strings(provider, args.min_length, workers=args.workers)
    except BinaryFormatError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.section or args.regex_pattern:
            report = report.filter(regex=args.regex_pattern, sections=args.section)
    except ValueError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        if args.limit is not None:
            report = report.filter(limit=args.limit)
        _print_report_json(report)
    else:
        _print_report_cli(report, abs_input_file, format_name, args.min_length,
                          limit=args.limit, verbose=args.verbose, warnings=warnings)
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging level based on verbosity AFTER args are parsed
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logger.setLevel(log_level)
    logging.getLogger('mcp').setLevel(log_level)
    if args.json:
        # Keep stdout/stderr quiet so the JSON can be piped
        logger.setLevel(logging.DEBUG if args.verbose else logging.WARNING)

    abs_input_file = None
    if args.input_file:
        abs_input_file = str(Path(args.input_file).resolve())
        if not os.path.isfile(abs_input_file):
            logger.critical(f"Input file not found: {abs_input_file}")
            print(f"[!] Error: Input file not found: {abs_input_file}", file=sys.stderr)
            sys.exit(1)

    if args.mcp_server:
        sys.exit(_run_mcp_server(args, abs_input_file, log_level))

    if abs_input_file is None:
        parser.error("--input-file is required in CLI mode")

    try:
        sys.exit(_run_cli(args, abs_input_file))
    except KeyboardInterrupt:
        print("\n[*] CLI Analysis interrupted by user. Exiting.")
        sys.exit(1)


if __name__ == "__main__":
    main()
