"""Interactive read-eval-print loop and command line entry point."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .context import Context
from .errors import MonkeyError, MonkeySyntaxError
from .values import NULL, inspect


PROMPT = ">> "

MONKEY_FACE = r"""            __,__
   .--.  .-"     "-.  .--.
  / .. \/  .-. .-.  \/ .. \
 | |  '|  /   Y   \  |'  | |
 | \   \  \ 0 | 0 /  /   / |
  \ '- ,\.-'''''''-./, -' /
   ''-' /_   ^ ^   _\ '-''
       |  \._   _./  |
       \   \ '~' /   /
        '._ '-=-' _.'
           '-----'
"""

CLEAR_SCREEN = "\033[2J\033[H"


def print_parser_error(out: TextIO, error: MonkeySyntaxError) -> None:
    out.write(MONKEY_FACE)
    out.write("Woops! We ran into some monkey business here!\n")
    out.write(" parser errors:\n")
    out.write(f"\t{error.message}\n")


def start(in_stream: TextIO, out_stream: TextIO, context: Optional[Context] = None) -> None:
    """Run the REPL until the input is exhausted.

    Globals persist from one input to the next.  A line ending in a backslash
    is continued on the next line; the line ``clear`` clears the screen.
    """
    logger = logging.getLogger("REPL")
    context = context if context is not None else Context()
    pending = ""

    while True:
        out_stream.write(PROMPT)
        out_stream.flush()

        line = in_stream.readline()
        if not line:
            return
        line = line.rstrip("\r\n")

        if line == "clear":
            out_stream.write(CLEAR_SCREEN)
            continue

        if line.endswith("\\"):
            pending += line[:-1] + "\n"
            continue

        source = pending + line
        pending = ""
        if not source.strip():
            continue

        try:
            result = context.eval_raw(source)
        except MonkeySyntaxError as e:
            print_parser_error(out_stream, e)
            continue
        except MonkeyError as e:
            logger.debug("Evaluation failed: %s", e)
            out_stream.write(f"error: {e.message}\n")
            continue

        if result is not None:
            out_stream.write(inspect(result) + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point."""
    parser = argparse.ArgumentParser(
        prog="micromonkey",
        description="Run Monkey programs on a bytecode virtual machine.",
    )
    parser.add_argument("file", nargs="?", help="Monkey source file; starts the REPL if omitted")
    parser.add_argument(
        "--disassemble", action="store_true",
        help="print the compiled bytecode of FILE instead of running it",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if args.file is None:
        if args.disassemble:
            parser.error("--disassemble needs a FILE")
        print("Hello! This is the Monkey programming language!")
        print("Feel free to type in commands")
        start(sys.stdin, sys.stdout)
        return 0

    source = Path(args.file).read_text(encoding="utf-8")
    context = Context()
    try:
        if args.disassemble:
            sys.stdout.write(context.disassemble(source))
            return 0
        result = context.eval_raw(source, filename=args.file)
    except MonkeyError as e:
        print(e, file=sys.stderr)
        return 1

    # A script ending in a statement or a null value prints nothing
    if result is not None and result is not NULL:
        print(inspect(result))
    return 0
