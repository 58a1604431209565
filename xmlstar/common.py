"""Shared exit codes, errors, C14N escaping and document loading."""

from __future__ import annotations

import enum
import sys

from lxml import etree


class ExitStatus(enum.IntEnum):
    """Process exit codes shared by every command."""

    SUCCESS = 0
    FAILURE = 1
    BAD_ARGS = 2
    BAD_FILE = 3
    LIB_ERROR = 4
    INTERNAL_ERROR = 5


class NormalizationMode(enum.Enum):
    """Which canonical-XML escaping rules to apply."""

    ATTR = 0
    COMMENT = 1
    PI = 2
    TEXT = 3
    NOTHING = 4


class CommandError(Exception):
    """A command failed; ``status`` is the exit code to report."""

    def __init__(self, message: str = "", status: int = ExitStatus.FAILURE):
        super().__init__(message)
        self.status = ExitStatus(status)


class UsageError(CommandError):
    """Bad command line, or a request for help (status SUCCESS)."""

    def __init__(self, message: str = "", status: int = ExitStatus.BAD_ARGS):
        super().__init__(message, status)


_CR = {"\r": "&#xD;"}

_TABLES = {
    NormalizationMode.ATTR: str.maketrans(
        {
            "<": "&lt;",
            "&": "&amp;",
            '"': "&quot;",
            "\t": "&#x9;",
            "\n": "&#xA;",
            **_CR,
        }
    ),
    NormalizationMode.TEXT: str.maketrans(
        {"<": "&lt;", ">": "&gt;", "&": "&amp;", **_CR}
    ),
    NormalizationMode.COMMENT: str.maketrans(_CR),
    NormalizationMode.PI: str.maketrans(_CR),
    NormalizationMode.NOTHING: {},
}


def normalize(text: str, mode=NormalizationMode.ATTR) -> str:
    """Escape ``text`` as canonical XML does for the given kind of node."""
    return text.translate(_TABLES[NormalizationMode(mode)])


def _parse(filename: str, parser) -> etree._ElementTree:
    source = sys.stdin.buffer if filename == "-" else filename
    try:
        tree = etree.parse(source, parser)
    except (etree.XMLSyntaxError, OSError) as exc:
        raise CommandError(f"{filename}: {exc}", ExitStatus.BAD_FILE) from exc
    if tree.getroot() is None:
        raise CommandError(
            f"{filename}: no document element", ExitStatus.BAD_FILE
        )
    return tree


def read_xml(filename: str, **kwargs) -> etree._ElementTree:
    """Parse an XML file (``-`` for stdin); keyword arguments go to XMLParser."""
    return _parse(filename, etree.XMLParser(**kwargs))


def read_html(filename: str, **kwargs) -> etree._ElementTree:
    """Parse an HTML file (``-`` for stdin); keyword arguments go to HTMLParser."""
    return _parse(filename, etree.HTMLParser(**kwargs))