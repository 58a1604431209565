"""List a directory as XML elements, one per entry."""

from __future__ import annotations

import os
import stat
import sys
import time
from collections.abc import Iterator

from .common import ExitStatus, NormalizationMode, normalize

_USAGE = (
    "Usage: xmlstar ls [<dir> | --help]\n"
    "Lists a directory as XML.\n"
)

_TYPES = (
    (stat.S_ISREG, "f"),
    (stat.S_ISDIR, "d"),
    (stat.S_ISCHR, "c"),
    (stat.S_ISBLK, "b"),
    (stat.S_ISLNK, "l"),
    (stat.S_ISFIFO, "p"),
    (stat.S_ISSOCK, "s"),
)

_PERM_BITS = (
    (stat.S_IRUSR, "r"), (stat.S_IWUSR, "w"), (stat.S_IXUSR, "x"),
    (stat.S_IRGRP, "r"), (stat.S_IWGRP, "w"), (stat.S_IXGRP, "x"),
    (stat.S_IROTH, "r"), (stat.S_IWOTH, "w"), (stat.S_IXOTH, "x"),
)

_SPECIAL_BITS = ((stat.S_ISUID, 2, "s"), (stat.S_ISGID, 5, "s"), (stat.S_ISVTX, 8, "t"))

_SIZE_WIDTH = 16


def file_type(mode: int) -> str:
    """One-letter type of a file mode; ``u`` when unknown."""
    return next((letter for test, letter in _TYPES if test(mode)), "u")


def file_perms(mode: int) -> str:
    """Nine-character permission string, with s/s/t for the special bits."""
    perms = [letter if mode & bit else "-" for bit, letter in _PERM_BITS]
    for bit, position, letter in _SPECIAL_BITS:
        if mode & bit:
            perms[position] = letter
    return "".join(perms)


def _iso(timestamp: float) -> str:
    return time.strftime("%Y%m%dT%H%M%SZ", time.gmtime(int(timestamp)))


def _padding(size: str) -> str:
    # A size wider than the column gets the full padding, as printf does
    # with a negative precision.
    width = _SIZE_WIDTH - len(size)
    return " " * (width if width >= 0 else _SIZE_WIDTH)


def list_directory(path) -> Iterator[str]:
    """Yield one XML element line per entry of ``path`` (OSError if unreadable)."""
    with os.scandir(path) as entries:
        for entry in entries:
            try:
                info = entry.stat(follow_symlinks=False)
            except OSError:
                print(f"couldn't stat: {entry.name}", file=sys.stderr)
                continue
            mode = info.st_mode
            size = str(info.st_size)
            yield (
                f'<{file_type(mode)} p="{file_perms(mode)}" '
                f'a="{_iso(info.st_atime)}" m="{_iso(info.st_mtime)}" '
                f's="{size}"{_padding(size)} '
                f'n="{normalize(entry.name, NormalizationMode.ATTR)}"/>'
            )


def main(argv=None) -> int:
    """Run the ``ls`` command; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) > 1:
        sys.stderr.write(_USAGE)
        return int(ExitStatus.BAD_ARGS)
    if args == ["--help"]:
        sys.stdout.write(_USAGE)
        return int(ExitStatus.SUCCESS)

    path = args[0] if args else "."
    status = ExitStatus.SUCCESS
    print("<dir>")
    try:
        for line in list_directory(path):
            print(line)
    except OSError:
        status = ExitStatus.FAILURE
    print("</dir>")
    return int(status)