"""
Command-line front end.

Usage:
    scent contract.hex                      # deployment bytecode
    scent runtime.hex --runtime             # runtime-only bytecode
    scent blob.hex --raw                    # no section heuristics
    scent contract.hex --selectors sigs.json --functions
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import Settings, load_settings
from .exceptions import ScentError
from .loader import Program, read_hex_file
from .selectors import SelectorResolver, load_selectors
from .view import View

logger = logging.getLogger(__name__)


def setup_logging(level: str = "WARNING") -> None:
    """Configure console logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scent",
        description="Disassemble EVM bytecode and recover function dispatch info",
    )
    parser.add_argument("path", metavar="PATH",
                        help="File containing hex bytecode (0x prefix optional)")
    parser.add_argument("--raw", action="store_true",
                        help="Raw bytecode input")
    parser.add_argument("--runtime", action="store_true",
                        help="Runtime bytecode input")
    parser.add_argument("--decorated", action="store_true", default=None,
                        help="Decorate push data and labels")
    parser.add_argument("--selectors", metavar="FILE", default=None,
                        help="Selectors list as JSON (implies --decorated)")
    parser.add_argument("--functions", action="store_true", default=None,
                        help="Print recovered functions after the listing")
    parser.add_argument("--remote", action="store_true", default=None,
                        help="Look up unknown selectors on 4byte.directory")
    parser.add_argument("--config", metavar="FILE", default=None,
                        help="Settings file (default: ./scent.yaml if present)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")
    return parser


def merge_settings(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply command-line overrides to ``settings``."""
    if args.decorated is not None:
        settings.decorated = args.decorated
    if args.selectors is not None:
        settings.selectors_path = args.selectors
    if args.functions is not None:
        settings.show_functions = args.functions
    if args.remote is not None:
        settings.use_remote = args.remote
    if args.verbose:
        settings.log_level = "DEBUG" if args.verbose > 1 else "INFO"
    if settings.selectors_path:
        settings.decorated = True
    return settings


def format_functions(program: Program, resolver: SelectorResolver) -> str:
    """Table of recovered functions for the runtime section."""
    lines = ["", "; selector    start  end    name"]
    for func in program.analysis.functions:
        name = resolver.resolve(func.selector) or ""
        lines.append(f"; 0x{func.selector.hex()}  {func.start:04x}   {func.end:04x}   {name}".rstrip())
    return "\n".join(lines) + "\n"


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = merge_settings(load_settings(args.config), args)
        setup_logging(settings.log_level)

        bytecode = read_hex_file(args.path)
        selectors = load_selectors(settings.selectors_path) if settings.selectors_path else {}
    except ScentError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    program = Program.load(bytecode, raw=args.raw, runtime=args.runtime)
    resolver = SelectorResolver(
        selectors,
        use_remote=settings.use_remote,
        timeout=settings.remote_timeout,
    )
    logger.info("Recovered %d entrypoints", len(program.entrypoints))

    view = View.from_program(program, settings.decorated, resolver)
    sys.stdout.write(view.render())
    if settings.show_functions:
        sys.stdout.write(format_functions(program, resolver))
    return 0


def main() -> None:
    sys.exit(run())
