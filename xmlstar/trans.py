"""Apply an XSLT stylesheet to XML documents."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass

from lxml import etree

from .common import CommandError, ExitStatus, UsageError, read_html, read_xml

_USAGE = (
    "Usage: xmlstar tr [<options>] <xsl-file> {-p|-s <name>=<value>} [<xml-file>...]\n"
    "  --help or -h     - display help\n"
    "  --omit-decl      - omit xml declaration <?xml version=\"1.0\"?>\n"
    "  --embed or -E    - allow applying embedded stylesheet\n"
    "  --show-ext       - show list of extensions\n"
    "  --val            - allow validate against DTDs or schemas\n"
    "  --net            - allow fetch DTDs or entities over network\n"
    "  --xinclude       - do XInclude processing on document input\n"
    "  --maxdepth val   - increase the maximum depth\n"
    "  --html           - input document(s) is(are) in HTML format\n"
    "  -p name=value    - parameter value as an XPath expression\n"
    "  -s name=value    - parameter value as a string\n"
)

_FLAGS = {
    "--show-ext": ("show_extensions", True),
    "--val": ("noval", False),
    "--net": ("nonet", False),
    "-E": ("embed", True),
    "--embed": ("embed", True),
    "--omit-decl": ("omit_decl", True),
    "--xinclude": ("xinclude", True),
    "--html": ("html", True),
}

_EXTENSIONS = (
    "http://exslt.org/common",
    "http://exslt.org/math",
    "http://exslt.org/sets",
    "http://exslt.org/strings",
    "http://exslt.org/dates-and-times",
    "http://exslt.org/functions",
    "http://exslt.org/dynamic",
    "http://exslt.org/regular-expressions",
)

_LEADING_INT = re.compile(r"\s*[+-]?\d+")
_XML_DECL = re.compile(rb"\A<\?xml[^>]*\?>\r?\n?")


@dataclass
class TransOptions:
    """Settings of the transform command."""

    show_extensions: bool = False
    noval: bool = True
    nonet: bool = True
    embed: bool = False
    omit_decl: bool = False
    maxdepth: int | None = None  # accepted; the XSLT engine keeps its own limit
    xinclude: bool = False
    html: bool = False


def parse_trans_options(argv) -> tuple[TransOptions, int]:
    """Read leading options; returns them and the index of the stylesheet argument."""
    options = TransOptions()
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        if not arg.startswith("-"):
            break
        if arg in ("--help", "-h"):
            raise UsageError("", ExitStatus.SUCCESS)
        if arg in _FLAGS:
            name, value = _FLAGS[arg]
            setattr(options, name, value)
        elif arg == "--maxdepth":
            i += 1
            if i >= len(args):
                raise UsageError("--maxdepth requires a number")
            match = _LEADING_INT.match(args[i])
            if match is not None and int(match.group()) > 0:
                options.maxdepth = int(match.group())
        i += 1
    return options, i


def quote_string_param(value: str) -> str:
    """Turn a string into an XPath string literal."""
    if '"' in value:
        if "'" in value:
            raise CommandError(
                "string parameter contains both quote and double-quotes",
                ExitStatus.INTERNAL_ERROR,
            )
        return f"'{value}'"
    return f'"{value}"'


def parse_params(argv) -> tuple[dict[str, str], int]:
    """Read ``-p``/``-s`` parameters; returns XPath expressions by name and the count used."""
    params: dict[str, str] = {}
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        if not arg.startswith("-"):
            break
        if arg in ("-p", "-s"):
            i += 1
            if i >= len(args):
                raise UsageError(f"{arg} requires name=value")
            name, sep, value = args[i].partition("=")
            if not sep:
                raise UsageError(f"{arg} requires name=value, got {args[i]!r}")
            params[name] = value if arg == "-p" else quote_string_param(value)
        i += 1
    return params, i


def _load_stylesheet(options: TransOptions, stylesheet: str) -> etree.XSLT:
    doc = read_xml(stylesheet, no_network=options.nonet)
    try:
        if options.embed:
            for pi in doc.xpath("/processing-instruction('xml-stylesheet')"):
                doc = pi.parseXSL()
                break
        access = etree.XSLTAccessControl(
            read_network=not options.nonet, write_network=not options.nonet
        )
        return etree.XSLT(doc, access_control=access)
    except etree.LxmlError as exc:
        raise CommandError(f"{stylesheet}: {exc}", ExitStatus.LIB_ERROR) from exc


def _load_input(options: TransOptions, filename: str):
    if options.html:
        tree = read_html(filename)
    else:
        tree = read_xml(
            filename,
            no_network=options.nonet,
            dtd_validation=not options.noval,
        )
    if options.xinclude:
        try:
            tree.xinclude()
        except etree.XIncludeError as exc:
            raise CommandError(f"{filename}: {exc}", ExitStatus.LIB_ERROR) from exc
    return tree


def transform(options: TransOptions, stylesheet: str, params, files, out) -> int:
    """Transform each file (stdin when none) and write results to binary ``out``.

    Returns the exit status; a stylesheet that cannot be used raises CommandError.
    """
    if options.show_extensions:
        for namespace in _EXTENSIONS:
            print(f"extension namespace: {namespace}", file=sys.stderr)

    xslt = _load_stylesheet(options, stylesheet)
    status = ExitStatus.SUCCESS
    for filename in list(files) or ["-"]:
        try:
            doc = _load_input(options, filename)
        except CommandError as exc:
            print(str(exc), file=sys.stderr)
            status = exc.status
            continue
        try:
            result = xslt(doc, **dict(params))
        except etree.LxmlError as exc:
            print(f"{filename}: {exc}", file=sys.stderr)
            status = ExitStatus.LIB_ERROR
            continue
        output = bytes(result)
        if options.omit_decl:
            output = _XML_DECL.sub(b"", output, count=1)
        out.write(output)
    return int(status)


def _report_usage(error: UsageError) -> None:
    if error.status == ExitStatus.SUCCESS:
        sys.stdout.write(_USAGE)
        return
    if str(error):
        print(str(error), file=sys.stderr)
    sys.stderr.write(_USAGE)


def main(argv=None) -> int:
    """Run the ``tr`` command; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        if not args:
            raise UsageError("")
        options, index = parse_trans_options(args)
        if index >= len(args):
            raise UsageError("missing stylesheet")
        stylesheet = args[index]
        params, used = parse_params(args[index + 1:])
    except UsageError as exc:
        _report_usage(exc)
        return int(exc.status)
    except CommandError as exc:
        print(str(exc), file=sys.stderr)
        return int(exc.status)

    files = args[index + 1 + used:]
    sys.stdout.flush()
    try:
        status = transform(options, stylesheet, params, files, sys.stdout.buffer)
    except CommandError as exc:
        print(str(exc), file=sys.stderr)
        return int(exc.status)
    finally:
        sys.stdout.buffer.flush()
    return status