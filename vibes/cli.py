"""
vibes.cli - VibeScript Command Line Interface

Subcommands:

- vibes lsp              Start the Language Server Protocol server on stdio
- vibes check <file>...  Compile scripts without running them
"""

import argparse
import sys
import traceback
from typing import Optional


def cmd_lsp(args: argparse.Namespace) -> int:
    """Start the Language Server Protocol server."""
    from vibes.lsp.server import ServerConfig, start_server

    config = ServerConfig(log_path=args.log, quiet=args.quiet)

    try:
        return start_server(config)
    except Exception as e:
        print(f"Error starting LSP server: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return 1


def cmd_check(args: argparse.Namespace) -> int:
    """Compile each file and report errors."""
    from vibes.compiler import CompileError, Engine

    engine = Engine()
    failed = False

    for path in args.files:
        try:
            engine.compile_file(path)
        except OSError as e:
            print(f"{path}: read script: {e}", file=sys.stderr)
            failed = True
        except CompileError as e:
            print(f"{path}: compile failed: {e}", file=sys.stderr)
            failed = True
        else:
            if not args.quiet:
                print(f"{path}: ok")

    return 1 if failed else 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="vibes",
        description="VibeScript language tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  vibes lsp                     Start the language server on stdio
  vibes lsp --log lsp.log       Start the server and log to a file
  vibes check script.vibe       Compile a script without running it
        """,
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    # lsp subcommand
    lsp_parser = subparsers.add_parser(
        "lsp", help="Start the Language Server Protocol server"
    )
    lsp_parser.add_argument(
        "--log",
        metavar="FILE",
        help="Log file for debugging LSP communication",
    )
    lsp_parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Do not echo log messages to stderr",
    )

    # check subcommand
    check_parser = subparsers.add_parser(
        "check", help="Compile scripts and report errors"
    )
    check_parser.add_argument("files", nargs="+", metavar="FILE", help="Script to check")
    check_parser.add_argument(
        "--quiet", "-q", action="store_true", help="Only report failures"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the VibeScript CLI. Calls sys.exit with return code."""
    sys.exit(_main(argv))


def _main(argv: Optional[list[str]] = None) -> int:
    """Internal main that returns exit code."""
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.subcommand == "lsp":
        return cmd_lsp(args)
    elif args.subcommand == "check":
        return cmd_check(args)

    parser.print_help(sys.stderr)
    return 2


if __name__ == "__main__":
    main()
