"""Command that turns the model messages of a proto file into SQL table files."""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from gmicro.protoparse import ProtoSyntaxError
from gmicro.sqlgen import proto_to_sql

USAGE = "Usage: proto2gorm path/to/file.proto"


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="proto2gorm", add_help=True)
    parser.add_argument("proto", nargs="?")
    parser.add_argument("--out", default="mysql", help="directory for the .sql files")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.proto is None:
        print(USAGE)
        return 0

    print("🚀 Parsing .proto file...")
    try:
        written = proto_to_sql(args.proto, args.out)
    except (OSError, ProtoSyntaxError) as exc:
        print(f"❌ Failed to parse proto: {exc}", file=sys.stderr)
        return 1
    for path in written:
        print(f"📄 {path}")
    print(f"✅ All done! SQL saved in ./{args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())