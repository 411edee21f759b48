#!/usr/bin/env python3
"""
CLI for the tram interpreter.

Usage:
    python -m tram run FILE
    python -m tram check FILE
    python -m tram ast FILE
    python -m tram [repl]

Examples:
    # Run a script; its final value is printed unless it is nil
    python -m tram run examples/factorial.tram

    # Check syntax without running
    python -m tram check examples/factorial.tram

    # Interactive session
    python -m tram
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .ast import format_ast
from .config import Settings
from .errors import DslError, attach_source, render_diagnostic, render_internal_error
from .parser import parse_source
from .runtime import Interpreter, NIL

EXIT_OK = 0
EXIT_SCRIPT_ERROR = 1
EXIT_INTERNAL_ERROR = 2

logger = logging.getLogger(__name__)


def read_source(path_str: str):
    """Read a source file, returning None (after reporting) if it cannot be read."""
    source_path = Path(path_str)
    if not source_path.is_file():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def report(error: DslError, settings: Settings) -> int:
    print(render_diagnostic(error.diagnostic, settings.color), file=sys.stderr)
    return EXIT_SCRIPT_ERROR


def cmd_run(args, settings: Settings) -> int:
    """Run a tram file."""
    source = read_source(args.file)
    if source is None:
        return EXIT_SCRIPT_ERROR

    interpreter = Interpreter(settings)
    try:
        value = interpreter.execute(source, args.file)
    except DslError as e:
        return report(e, settings)

    if value is not NIL:
        print(value)
    return EXIT_OK


def cmd_check(args, settings: Settings) -> int:
    """Check a tram file for syntax errors."""
    source = read_source(args.file)
    if source is None:
        return EXIT_SCRIPT_ERROR

    try:
        program = parse_source(source, args.file)
    except DslError as e:
        return report(attach_source(e, source), settings)

    count = len(program.statements) + (program.final_expression is not None)
    print(f"OK: {Path(args.file).name} - {count} statement(s), no errors")
    return EXIT_OK


def cmd_ast(args, settings: Settings) -> int:
    """Print the syntax tree of a tram file."""
    source = read_source(args.file)
    if source is None:
        return EXIT_SCRIPT_ERROR

    try:
        program = parse_source(source, args.file)
    except DslError as e:
        return report(attach_source(e, source), settings)

    print(format_ast(program))
    return EXIT_OK


def cmd_repl(args, settings: Settings) -> int:
    """Start the interactive shell."""
    from .repl import run_shell
    return run_shell(Interpreter(settings), color=settings.color)


COMMANDS = {
    'run': cmd_run,
    'check': cmd_check,
    'ast': cmd_ast,
    'repl': cmd_repl,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tram',
        description='tram interpreter',
    )
    parser.add_argument('--max-depth', type=int, metavar='N',
                        help='Maximum function call depth')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colored diagnostics')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log debug information to stderr')

    subparsers = parser.add_subparsers(dest='action')

    run_parser = subparsers.add_parser('run', help='Run a tram file')
    run_parser.add_argument('file', help='tram source file')

    check_parser = subparsers.add_parser('check', help='Check a tram file for syntax errors')
    check_parser.add_argument('file', help='tram source file')

    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree of a tram file')
    ast_parser.add_argument('file', help='tram source file')

    subparsers.add_parser('repl', help='Start an interactive session (default)')

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format='%(levelname)s %(name)s: %(message)s')

    try:
        settings = Settings.from_env()
        if args.max_depth is not None:
            settings = replace(settings, max_call_depth=args.max_depth)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR
    if args.no_color:
        settings.color = False

    action = COMMANDS[args.action or 'repl']
    try:
        return action(args, settings)
    except Exception as e:
        logger.debug("Internal error", exc_info=True)
        print(render_internal_error(e, settings.color), file=sys.stderr)
        return EXIT_INTERNAL_ERROR


if __name__ == '__main__':
    sys.exit(main())
