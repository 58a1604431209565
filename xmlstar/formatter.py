"""Reformat and re-indent an XML or HTML document."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass

from lxml import etree

from .common import CommandError, ExitStatus, UsageError, read_html, read_xml

_USAGE = (
    "Usage: xmlstar fo [<options>] <xml-file>\n"
    "  -n or --noindent            - do not indent\n"
    "  -t or --indent-tab          - indent output with tabulation\n"
    "  -s or --indent-spaces <num> - indent output with <num> spaces\n"
    "  -o or --omit-decl           - omit xml declaration\n"
    "  --net                       - allow network access\n"
    "  -R or --recover             - try to recover what is parsable\n"
    "  -D or --dropdtd             - remove the DOCTYPE of the input docs\n"
    "  -C or --nocdata             - replace cdata section with text nodes\n"
    "  -N or --nsclean             - remove redundant namespace declarations\n"
    "  -e or --encode <encoding>   - output in the given encoding\n"
    "  -H or --html                - input is HTML\n"
    "  -Q or --quiet               - suppress error output\n"
    "  -h or --help                - print help\n"
)

_SWITCHES = {
    "--noindent": ("indent", False),
    "-n": ("indent", False),
    "--indent-tab": ("indent_tab", True),
    "-t": ("indent_tab", True),
    "--omit-decl": ("omit_decl", True),
    "-o": ("omit_decl", True),
    "--dropdtd": ("dropdtd", True),
    "-D": ("dropdtd", True),
    "--recover": ("recovery", True),
    "-R": ("recovery", True),
    "--nocdata": ("nocdata", True),
    "-C": ("nocdata", True),
    "--nsclean": ("nsclean", True),
    "-N": ("nsclean", True),
    "--quiet": ("quiet", True),
    "-Q": ("quiet", True),
    "--html": ("html", True),
    "-H": ("html", True),
    "--net": ("net", True),
}

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


@dataclass
class FormatOptions:
    """Settings of the format command."""

    indent: bool = True
    indent_tab: bool = False
    indent_spaces: int = 2
    omit_decl: bool = False
    recovery: bool = False
    dropdtd: bool = False
    nocdata: bool = False
    nsclean: bool = False
    net: bool = False
    html: bool = False
    quiet: bool = False
    encoding: str | None = None
    filename: str = "-"

    @property
    def indent_string(self) -> str:
        if not self.indent:
            return ""
        return "\t" if self.indent_tab else " " * self.indent_spaces


def parse_format_options(argv) -> FormatOptions:
    """Build FormatOptions from the command's arguments; UsageError on bad input."""
    options = FormatOptions()
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1
        if arg in _SWITCHES:
            name, value = _SWITCHES[arg]
            setattr(options, name, value)
        elif arg in ("--encode", "-e"):
            if i >= len(args):
                raise UsageError(f"{arg} requires an encoding")
            options.encoding = args[i]
            i += 1
        elif arg in ("--indent-spaces", "-s"):
            if i >= len(args):
                raise UsageError(f"{arg} requires a number")
            match = _LEADING_INT.match(args[i])
            if match is None:
                raise UsageError(f"invalid number of spaces: {args[i]}")
            value = int(match.group())
            if value > 0:
                options.indent_spaces = value
            options.indent_tab = False
            i += 1
        elif arg in ("--help", "-h"):
            raise UsageError("", ExitStatus.SUCCESS)
        elif arg == "-":
            break
        elif arg.startswith("-"):
            raise UsageError(f"unrecognized option: {arg}")
        else:
            options.filename = arg
            break
    if i < len(args):
        raise UsageError("too many arguments")
    return options


def _load(options: FormatOptions, filename: str):
    try:
        if options.html:
            return read_html(filename, remove_blank_text=True)
        return read_xml(
            filename,
            remove_blank_text=True,
            resolve_entities=True,
            no_network=not options.net,
            recover=options.recovery,
            strip_cdata=options.nocdata,
            ns_clean=options.nsclean,
        )
    except CommandError as exc:
        # An unreadable document makes the format command exit with 2.
        raise CommandError(str(exc), ExitStatus.BAD_ARGS) from exc


def _top_level_nodes(tree):
    root = tree.getroot()
    return [*reversed(list(root.itersiblings(preceding=True))), root, *root.itersiblings()]


def format_document(options: FormatOptions, filename: str | None = None) -> bytes:
    """Parse the document and return it re-serialized as bytes."""
    tree = _load(options, filename or options.filename)
    method = "html" if options.html else "xml"
    encoding = options.encoding or tree.docinfo.encoding or "UTF-8"

    etree.indent(tree, space=options.indent_string)

    try:
        if options.dropdtd:
            body = b"".join(
                etree.tostring(
                    node, encoding=encoding, method=method,
                    pretty_print=True, with_tail=False, xml_declaration=False,
                ).rstrip(b"\n") + b"\n"
                for node in _top_level_nodes(tree)
            )
        else:
            body = etree.tostring(
                tree, encoding=encoding, method=method,
                pretty_print=True, xml_declaration=False,
            )
        declaration = b""
        if not options.html and not options.omit_decl:
            version = tree.docinfo.xml_version or "1.0"
            declaration = (
                f'<?xml version="{version}" encoding="{encoding}"?>\n'.encode("ascii")
            )
    except (LookupError, ValueError) as exc:
        raise CommandError(f"cannot write output: {exc}") from exc

    if not body.endswith(b"\n"):
        body += b"\n"
    return declaration + body


def _report_usage(error: UsageError) -> None:
    if error.status == ExitStatus.SUCCESS:
        sys.stdout.write(_USAGE)
        return
    if str(error):
        print(str(error), file=sys.stderr)
    sys.stderr.write(_USAGE)


def main(argv=None) -> int:
    """Run the format command; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options = parse_format_options(args)
    except UsageError as exc:
        _report_usage(exc)
        return int(exc.status)
    try:
        output = format_document(options)
    except CommandError as exc:
        if not options.quiet:
            print(str(exc), file=sys.stderr)
        return int(exc.status)
    sys.stdout.flush()
    sys.stdout.buffer.write(output)
    sys.stdout.buffer.flush()
    return int(ExitStatus.SUCCESS)