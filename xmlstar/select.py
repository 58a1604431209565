"""Query XML documents with XPath through a generated XSLT stylesheet."""

from __future__ import annotations

import re
import sys

from lxml import etree

from .common import CommandError, ExitStatus, UsageError, read_xml
from .select_template import SelectOptions, prepare_xslt

_USAGE = (
    "Usage: xmlstar sel <global-options> {<template>} [ <xml-file> ... ]\n"
    "where\n"
    "  <global-options> - is one of:\n"
    "    -C or --comp       - display generated XSLT\n"
    "    -R or --root       - print root element <xsl-select>\n"
    "    -T or --text       - output is text (default is XML)\n"
    "    -I or --indent     - indent output\n"
    "    -D or --xml-decl   - do not omit xml declaration line\n"
    "    -B or --noblanks   - remove insignificant spaces from XML tree\n"
    "    -E or --encode <encoding> - output in the given encoding\n"
    "    -N <name>=<value>  - predefine namespaces (name without 'xmlns:')\n"
    "    -Q or --quiet      - no output, exit status tells whether anything matched\n"
    "    --net              - allow fetch DTDs or entities over network\n"
    "    --help             - display help\n"
    "  <template> - is -t or --template followed by options such as\n"
    "    -c, -v, -o, -n, -f, -m, -i, --elif, --else, -e, -a, -b, -s, --var\n"
)

_ENCODE_MESSAGE = "-E option requires argument <encoding> ex: (utf-8, unicode...)"

_TEMPLATE_FLAGS = frozenset({"-t", "--template"})

_HELP_FLAGS = frozenset({"--help", "-h", "-?", "-Z"})

_FLAGS = {
    "-C": ("print_xslt", True),
    "-Q": ("quiet", True),
    "--quiet": ("quiet", True),
    "-B": ("noblanks", True),
    "--noblanks": ("noblanks", True),
    "-T": ("out_text", True),
    "--text": ("out_text", True),
    "-R": ("print_root", True),
    "--root": ("print_root", True),
    "-I": ("indent", True),
    "--indent": ("indent", True),
    "-D": ("no_omit_decl", True),
    "--xml-decl": ("no_omit_decl", True),
    "--net": ("nonet", False),
}

_XML_DECL = re.compile(rb"\A<\?xml[^>]*\?>\r?\n?")


def parse_select_options(argv):
    """Read the options before the first template.

    Returns the options, the ``(prefix, uri)`` namespace pairs given with
    ``-N``, and the index of the first ``-t``/``--template`` argument.
    Unrecognized arguments before the first template are ignored.
    """
    options = SelectOptions()
    namespaces: list[tuple[str, str]] = []
    args = list(argv)
    i = 0
    while i < len(args) and args[i] not in _TEMPLATE_FLAGS:
        arg = args[i]
        if arg in _FLAGS:
            name, value = _FLAGS[arg]
            setattr(options, name, value)
        elif arg in ("-E", "--encode"):
            if i + 1 >= len(args) or args[i + 1].startswith("-"):
                raise UsageError(_ENCODE_MESSAGE)
            options.encoding = args[i + 1]
            i += 1
        elif arg == "-N":
            if i + 1 >= len(args):
                raise UsageError("-N requires <prefix>=<uri>")
            prefix, sep, uri = args[i + 1].partition("=")
            if not sep:
                raise UsageError(f"-N requires <prefix>=<uri>, got {args[i + 1]!r}")
            namespaces.append((prefix, uri))
            i += 1
        elif arg in _HELP_FLAGS:
            raise UsageError("", ExitStatus.SUCCESS)
        i += 1
    return options, namespaces, i


def extract_ns_defs(root, stylesheet):
    """Copy the namespace declarations of ``root`` onto the stylesheet's root.

    A default namespace is also bound to the prefixes ``_`` and ``DEFAULT``.
    Prefixes the stylesheet already binds are kept.  Returns the stylesheet
    tree (a new one when anything was added).
    """
    if root is None:
        return stylesheet
    style_root = stylesheet.getroot()
    nsmap = dict(style_root.nsmap)
    declared = dict(root.nsmap)
    for prefix, uri in declared.items():
        nsmap.setdefault(prefix, uri)
    default = declared.get(None)
    if default:
        nsmap.setdefault("_", default)
        nsmap.setdefault("DEFAULT", default)
    if nsmap == style_root.nsmap:
        return stylesheet

    new_root = etree.Element(style_root.tag, attrib=dict(style_root.attrib), nsmap=nsmap)
    new_root.text = style_root.text
    new_root.extend(list(style_root))
    return etree.ElementTree(new_root)


def _has_content(data: bytes) -> bool:
    return _XML_DECL.sub(b"", data, count=1) != b""


def run_select(options, stylesheet, files, out) -> int:
    """Apply the stylesheet to each file (stdin when none), writing to binary ``out``.

    Returns SUCCESS when some result had content, FAILURE when none had,
    BAD_FILE when an input could not be read and LIB_ERROR when a
    transformation failed.  A stylesheet that does not compile raises
    CommandError.
    """
    status = ExitStatus.FAILURE
    access = etree.XSLTAccessControl(
        read_network=not options.nonet, write_network=not options.nonet
    )
    xslt = None

    for filename in list(files) or ["-"]:
        try:
            doc = read_xml(
                filename,
                resolve_entities=True,
                attribute_defaults=True,
                no_network=options.nonet,
                remove_blank_text=options.noblanks,
            )
        except CommandError as exc:
            if not options.quiet:
                print(str(exc), file=sys.stderr)
            status = ExitStatus.BAD_FILE
            continue

        if xslt is None:
            stylesheet = extract_ns_defs(doc.getroot(), stylesheet)
            try:
                xslt = etree.XSLT(stylesheet, access_control=access)
            except etree.LxmlError as exc:
                raise CommandError(
                    f"cannot compile stylesheet: {exc}", ExitStatus.LIB_ERROR
                ) from exc

        try:
            result = xslt(doc, inputFile=etree.XSLT.strparam(filename))
            data = bytes(result)
        except etree.LxmlError as exc:
            if not options.quiet:
                print(f"{filename}: {exc}", file=sys.stderr)
                status = ExitStatus.LIB_ERROR
            continue

        if options.quiet:
            if _has_content(data):
                return int(ExitStatus.SUCCESS)
            continue
        out.write(data)
        if status == ExitStatus.FAILURE and _has_content(data):
            status = ExitStatus.SUCCESS

    return int(status)


def _report_usage(error: UsageError) -> None:
    if error.status == ExitStatus.SUCCESS:
        sys.stdout.write(_USAGE)
        return
    if str(error):
        print(str(error), file=sys.stderr)
    sys.stderr.write(_USAGE)


def _print_stylesheet(options, stylesheet, first_file) -> None:
    if first_file is not None:
        try:
            doc = read_xml(first_file, no_network=options.nonet)
        except CommandError:
            pass
        else:
            stylesheet = extract_ns_defs(doc.getroot(), stylesheet)
    text = etree.tostring(
        stylesheet.getroot(), pretty_print=True, encoding="UTF-8", xml_declaration=False
    )
    sys.stdout.flush()
    sys.stdout.buffer.write(b'<?xml version="1.0"?>\n' + text)
    sys.stdout.buffer.flush()


def main(argv=None) -> int:
    """Run the ``sel`` command; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        if not args:
            raise UsageError("")
        options, namespaces, start = parse_select_options(args)
        stylesheet, index = prepare_xslt(options, namespaces, args, start)
    except UsageError as exc:
        _report_usage(exc)
        return int(exc.status)

    files = args[index:]
    if options.print_xslt:
        _print_stylesheet(options, stylesheet, files[0] if files else None)
        return int(ExitStatus.SUCCESS)

    sys.stdout.flush()
    try:
        status = run_select(options, stylesheet, files, sys.stdout.buffer)
    except CommandError as exc:
        print(str(exc), file=sys.stderr)
        return int(exc.status)
    finally:
        sys.stdout.buffer.flush()
    return status