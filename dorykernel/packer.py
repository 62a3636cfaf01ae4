"""Append a kernel and its modules into one loadable image."""

from __future__ import annotations

import argparse
import os
import struct
import sys
from pathlib import Path
from typing import Iterable, Sequence

OUTPUT_FILE = "packedKernel.bin"
MAX_FILES = 128
VERSION = "ModulePacker v0.2"


class PackerError(Exception):
    """Raised when an input cannot be read or the image cannot be written."""


def check_files(paths: Iterable[str | os.PathLike[str]]) -> list[Path]:
    """Make sure every input is readable; return them as paths."""
    checked: list[Path] = []
    for path in paths:
        path = Path(path)
        if not (path.is_file() and os.access(path, os.R_OK)):
            raise PackerError(f"Can't open file: {path}")
        checked.append(path)
    return checked


def build_image(paths: Sequence[str | os.PathLike[str]], output: str | os.PathLike[str]) -> Path:
    """Write the kernel, the module count, then each module preceded by its size."""
    if not paths:
        raise ValueError("at least the kernel file is required")
    output = Path(output)
    try:
        target = output.open("wb")
    except OSError as exc:
        raise PackerError("Can't create target file") from exc
    with target:
        kernel, *modules = (Path(p) for p in paths)
        try:
            target.write(kernel.read_bytes())
            target.write(struct.pack("<i", len(modules)))
            for module in modules:
                data = module.read_bytes()
                target.write(struct.pack("<I", len(data)))
                target.write(data)
        except OSError as exc:
            raise PackerError(f"Can't open file: {exc.filename}") from exc
    return output


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modulepacker",
        description="ModulePacker is an appender of binary files to be loaded all together",
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        default=OUTPUT_FILE,
        help="Output to FILE instead of the default image name",
    )
    parser.add_argument("--version", action="version", version=VERSION)
    parser.add_argument("files", nargs="+", metavar="FILE", help="KernelFile Module1 Module2 ...")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point; returns the process exit status."""
    parser = _parser()
    args = parser.parse_args(argv)
    if len(args.files) > MAX_FILES:
        parser.error(f"at most {MAX_FILES} files can be packed")
    try:
        paths = check_files(args.files)
        build_image(paths, args.output)
    except PackerError as exc:
        print(exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())