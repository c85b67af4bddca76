import argparse
import logging
import sys

from bencoding import MAX_DEPTH, decode, encode
from errors import BencodeError
from ui import ui
from utils import configure_logging, logger, read_file_bytes


def build_parser():
    parser = argparse.ArgumentParser(
        prog="fluxbencode",
        description="Inspect and verify Bencoded files (.torrent and friends).")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("show", "decode a file and print its value tree"),
                            ("check", "decode, re-encode and compare with the input")):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("path")
        command.add_argument("--offset", type=int, default=0, help="byte offset to start at")
        command.add_argument("--max-depth", type=int, default=MAX_DEPTH,
                             help="deepest list/dict nesting to accept")
    return parser


def show(data, args):
    atom, consumed = decode(data, args.offset, args.max_depth)
    ui.console.print(ui.header(args.path))
    ui.show_atom(atom)
    ui.print_log(f"Decoded {consumed} bytes starting at offset {args.offset}")
    return 0


def check(data, args):
    atom, consumed = decode(data, args.offset, args.max_depth)
    encoded = encode(atom)
    original = data[args.offset:args.offset + consumed]

    canonical = encoded == original
    length_ok = len(encoded) == atom.canonical_length()
    ui.show_check([
        ("type", atom.kind.value),
        ("bytes consumed", consumed),
        ("trailing bytes", len(data) - args.offset - consumed),
        ("canonical length", atom.canonical_length()),
        ("encoded length", len(encoded)),
        ("input is canonical", canonical),
    ])
    if not canonical:
        ui.print_log("Input is not canonical (unsorted or duplicate keys)", "WARNING")
    return 0 if length_ok else 1


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        data = read_file_bytes(args.path)
    except OSError as e:
        ui.print_log(f"Cannot read {args.path}: {e}", "ERROR")
        return 1
    logger.debug(f"Loaded {len(data)} bytes from {args.path}")

    handler = show if args.command == "show" else check
    try:
        return handler(data, args)
    except BencodeError as e:
        ui.print_log(str(e), "ERROR")
        return 1


if __name__ == "__main__":
    sys.exit(main())
