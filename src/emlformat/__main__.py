"""Command line entry point: parse, read or build EML files."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from emlformat.exceptions import EmlFormatError
from emlformat.formats.rfc5322 import build, parse, read

logger = logging.getLogger("emlformat")


def _load(path: Optional[str]) -> bytes:
    if not path or path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as f:
        return f.read()


def create_parser() -> argparse.ArgumentParser:
    """Define the command line arguments."""
    parser = argparse.ArgumentParser(
        prog="emlformat", description="Parse, read or build EML files"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log parser tracing to stderr"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_parser = subparsers.add_parser(
        "parse", help="Print the header/body tree of an EML file as JSON"
    )
    read_parser = subparsers.add_parser(
        "read", help="Print the decoded message of an EML file as JSON"
    )
    for sub in (parse_parser, read_parser):
        sub.add_argument("file", nargs="?", help="EML file, stdin when omitted")
        sub.add_argument(
            "--headers-only",
            action="store_true",
            help="Stop after the top-level headers",
        )

    build_parser = subparsers.add_parser(
        "build", help="Build EML from a JSON message (as printed by 'read') or EML"
    )
    build_parser.add_argument("file", nargs="?", help="Input file, stdin when omitted")
    build_parser.add_argument(
        "--encode",
        action="store_true",
        help="Keep the text/html part headers of the input",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface and return the exit status."""
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        content = _load(args.file)
        if args.command == "parse":
            tree = parse(content, headers_only=args.headers_only)
            sys.stdout.write(json.dumps(tree.to_dict(), indent=2) + "\n")
        elif args.command == "read":
            message = read(content, headers_only=args.headers_only)
            sys.stdout.write(json.dumps(message.to_dict(), indent=2) + "\n")
        else:
            if content.lstrip().startswith(b"{"):
                data = json.loads(content.decode("utf-8"))
            else:
                data = content
            sys.stdout.write(build(data, encode=args.encode))
    except (EmlFormatError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
