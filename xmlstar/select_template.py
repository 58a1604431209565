"""Build the XSLT stylesheet that the select command runs."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple

from lxml import etree

from .common import UsageError

XSLT_NAMESPACE = "http://www.w3.org/1999/XSL/Transform"

# Prefixes longer than this are never looked up; the longest known one,
# "xalanredirect", has 13 characters.
_MAX_NS_PREFIX_LEN = 20

_TEMPLATE_FLAGS = frozenset({"-t", "--template"})


class _NsEntry(NamedTuple):
    href: str
    prefix: str


_NS_ENTRIES = (
    _NsEntry("http://exslt.org/common", "exslt"),
    _NsEntry("http://exslt.org/math", "math"),
    _NsEntry("http://exslt.org/dates-and-times", "date"),
    _NsEntry("http://exslt.org/functions", "func"),
    _NsEntry("http://exslt.org/sets", "set"),
    _NsEntry("http://exslt.org/strings", "str"),
    _NsEntry("http://exslt.org/dynamic", "dyn"),
    _NsEntry("http://icl.com/saxon", "saxon"),
    _NsEntry("org.apache.xalan.xslt.extensions.Redirect", "xalanredirect"),
    _NsEntry("http://www.jclark.com/xt", "xt"),
    _NsEntry("http://xmlsoft.org/XSLT/namespace", "libxslt"),
    _NsEntry("http://xmlsoft.org/XSLT/", "test"),
)


@dataclass
class SelectOptions:
    """Settings of the select command."""

    quiet: bool = False
    print_xslt: bool = False
    print_root: bool = False
    out_text: bool = False
    indent: bool = False
    noblanks: bool = False
    no_omit_decl: bool = False
    nonet: bool = True
    encoding: str | None = None


class _Arg(enum.IntEnum):
    NONE = 0
    SORT_OP = 1
    XPATH = 2
    ATTR_STRING = 3
    STRING = 4
    VAR = 5
    # Kinds from here on take nothing from the command line.
    NEWLINE = 6
    INP_NAME = 7
    STR_NAME_SELECT = 8


_NO_CMDLINE = _Arg.NEWLINE


@dataclass(frozen=True, eq=False)
class TemplateOption:
    """A template option: its spellings, the XSLT element it makes and how it nests."""

    shortopt: str
    longopt: str
    xslname: str | None = None
    arguments: tuple = ()
    nest: int = 0


_OPT_TEMPLATE = TemplateOption("t", "template")
_OPT_COPY_OF = TemplateOption("c", "copy-of", "copy-of", (("select", _Arg.XPATH),), 0)
_OPT_VALUE_OF = TemplateOption(
    "v", "value-of", "with-param",
    (("name", _Arg.STR_NAME_SELECT), ("select", _Arg.XPATH)), -1,
)
_OPT_OUTPUT = TemplateOption("o", "output", "text", ((None, _Arg.STRING),), 0)
_OPT_NL = TemplateOption("n", "nl", "value-of", ((None, _Arg.NEWLINE),), 0)
_OPT_INP_NAME = TemplateOption("f", "inp-name", "copy-of", ((None, _Arg.INP_NAME),), 0)
_OPT_MATCH = TemplateOption("m", "match", "for-each", (("select", _Arg.XPATH),), 1)
_OPT_IF = TemplateOption("i", "if", "when", (("test", _Arg.XPATH),), 1)
_OPT_ELIF = TemplateOption("", "elif", "when", (("test", _Arg.XPATH),), 1)
_OPT_ELSE = TemplateOption("", "else", "otherwise", (), 1)
_OPT_ELEM = TemplateOption("e", "elem", "element", (("name", _Arg.ATTR_STRING),), 1)
_OPT_ATTR = TemplateOption("a", "attr", "attribute", (("name", _Arg.ATTR_STRING),), 1)
_OPT_BREAK = TemplateOption("b", "break", None, (), -1)
_OPT_SORT = TemplateOption(
    "s", "sort", "sort", ((None, _Arg.SORT_OP), ("select", _Arg.XPATH)), 0
)
_OPT_VAR = TemplateOption("", "var", "variable", (("name", _Arg.VAR),), 1)

_TEMPLATE_OPTIONS = (
    _OPT_TEMPLATE,
    _OPT_COPY_OF,
    _OPT_VALUE_OF,
    _OPT_OUTPUT,
    _OPT_NL,
    _OPT_INP_NAME,
    _OPT_MATCH,
    _OPT_IF,
    _OPT_ELIF,
    _OPT_ELSE,
    _OPT_ELEM,
    _OPT_ATTR,
    _OPT_BREAK,
    _OPT_SORT,
    _OPT_VAR,
)


def _xsl(name: str) -> str:
    return f"{{{XSLT_NAMESPACE}}}{name}"


def _is_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def lookup_ns_entry(prefix: str):
    """Return the first known extension namespace whose prefix starts with ``prefix``."""
    return next((entry for entry in _NS_ENTRIES if entry.prefix.startswith(prefix)), None)


def find_ns_refs(xpath: str) -> list:
    """Known extension namespaces that ``xpath`` seems to use, without repeats.

    This is a scan for ``prefix:`` patterns, not an XPath parse, so it may
    report a namespace that is not really used.
    """
    found: dict[str, _NsEntry] = {}
    for pos, char in enumerate(xpath):
        if char != ":":
            continue
        run = 0
        while run < _MAX_NS_PREFIX_LEN and pos - run > 0 and _is_alnum(xpath[pos - run - 1]):
            run += 1
        if run >= _MAX_NS_PREFIX_LEN:
            continue
        entry = lookup_ns_entry(xpath[pos - run:pos])
        if entry is not None:
            found.setdefault(entry.prefix, entry)
    return list(found.values())


def _find_option(arg: str) -> TemplateOption:
    for option in _TEMPLATE_OPTIONS:
        if arg[1] == "-" and option.longopt == arg[2:]:
            return option
        if option.shortopt and option.shortopt == arg[1]:
            return option
    raise UsageError(f"unrecognized option: {arg}")


def _apply_sort_spec(node, spec: str) -> None:
    if len(spec) < 5 or spec[1] != ":" or spec[3] != ":":
        raise UsageError(f"invalid sort specification: {spec}")
    order, data_type, case_order = spec[0], spec[2], spec[4]
    if order in "AD":
        node.set("order", "ascending" if order == "A" else "descending")
    if data_type in "NT":
        node.set("data-type", "number" if data_type == "N" else "text")
    if case_order in "UL":
        node.set("case-order", "upper-first" if case_order == "U" else "lower-first")


class _TemplateBuilder:
    """Turns the template options of a command line into XSLT elements."""

    def __init__(self, args: list[str], nsmap: dict) -> None:
        self.args = args
        self.nsmap = nsmap
        self.use_inputfile = False
        self.use_value_of = False
        self._markers: dict = {}

    def add_ns_refs(self, xpath: str) -> None:
        for entry in find_ns_refs(xpath):
            self.nsmap.setdefault(entry.prefix, entry.href)

    def _climb(self, node):
        while True:
            parent = node.getparent()
            if parent is None:
                raise UsageError("--break without an open block")
            node = parent
            if node not in self._markers:
                return node

    def _fill_argument(self, newnode, attrname, kind, value):
        if kind is _Arg.VAR:
            name, sep, select = value.partition("=")
            if sep:
                newnode.set("select", select)
            newnode.set(attrname, name)
            return bool(sep)
        if kind is _Arg.XPATH:
            self.add_ns_refs(value)
            newnode.set(attrname, value)
        elif kind is _Arg.ATTR_STRING:
            newnode.set(attrname, value)
        elif kind is _Arg.STRING:
            newnode.text = (newnode.text or "") + value
        elif kind is _Arg.NEWLINE:
            newnode.set("select", "'\n'")
        elif kind is _Arg.STR_NAME_SELECT:
            newnode.set("name", "select")
        elif kind is _Arg.INP_NAME:
            self.use_inputfile = True
            newnode.set("select", "$inputFile")
        elif kind is _Arg.SORT_OP:
            _apply_sort_spec(newnode, value)
        return False

    def generate(self, template, start: int) -> tuple[int, bool]:
        """Fill ``template`` from the options after the ``-t`` at ``start``.

        Returns the index of the next ``-t`` and False, or the index of the
        first input file and True when this was the last template.
        """
        args = self.args
        count = len(args)
        node = template
        previous = None
        empty = True
        i = start + 1

        while i < count:
            arg = args[i]
            if not (arg.startswith("-") and len(arg) > 1):
                break
            option = _find_option(arg)

            if option is _OPT_SORT and previous not in (_OPT_MATCH, _OPT_SORT):
                raise UsageError("sort(s) must follow match")
            if option is _OPT_TEMPLATE:
                if empty:
                    break
                return i, False
            if option is _OPT_IF:
                node = etree.SubElement(node, _xsl("choose"))
                self._markers[node] = _OPT_IF
            elif option is _OPT_ELIF or option is _OPT_ELSE:
                parent = node.getparent()
                if parent is None or self._markers.get(parent) is not _OPT_IF:
                    raise UsageError("else without if")
                node = parent
            elif option is _OPT_VALUE_OF:
                node = etree.SubElement(node, _xsl("call-template"))
                node.set("name", "value-of-template")
                self._markers[node] = _OPT_VALUE_OF
                self.use_value_of = True
                self.add_ns_refs("exslt:node-set")

            i += 1
            empty = False
            nesting = option.nest
            newnode = (
                etree.SubElement(node, _xsl(option.xslname)) if option.xslname else None
            )

            for attrname, kind in option.arguments:
                takes_value = kind < _NO_CMDLINE
                if takes_value and i >= count:
                    raise UsageError(f"{arg} requires an argument")
                value = args[i] if takes_value else ""
                if self._fill_argument(newnode, attrname, kind, value):
                    nesting = 0
                if takes_value:
                    i += 1

            if nesting == -1:
                node = self._climb(node)
            elif nesting == 1:
                node = newnode
            previous = option

        if empty:
            raise UsageError(
                "error in arguments: -t or --template option must be followed by"
                " --match or other options"
            )
        return i, True


def _add_value_of_template(root) -> None:
    template = etree.SubElement(root, _xsl("template"))
    template.set("name", "value-of-template")
    etree.SubElement(template, _xsl("param")).set("name", "select")
    etree.SubElement(template, _xsl("value-of")).set("select", "$select")
    for_each = etree.SubElement(template, _xsl("for-each"))
    for_each.set("select", "exslt:node-set($select)[position()>1]")
    etree.SubElement(for_each, _xsl("value-of")).set("select", "'\n'")
    etree.SubElement(for_each, _xsl("value-of")).set("select", ".")


def prepare_xslt(options: SelectOptions, namespaces, argv, start: int):
    """Build the stylesheet for the templates in ``argv`` starting at index ``start``.

    ``namespaces`` holds ``(prefix, uri)`` pairs; an empty prefix is the
    default namespace.  Returns the stylesheet tree and the index of the
    first input file argument.
    """
    args = list(argv)
    nsmap: dict = {"xsl": XSLT_NAMESPACE}
    for prefix, uri in namespaces:
        nsmap.setdefault(prefix or None, uri)

    root = etree.Element(_xsl("stylesheet"), nsmap={"xsl": XSLT_NAMESPACE})
    output = etree.SubElement(root, _xsl("output"))
    output.set("omit-xml-declaration", "no" if options.no_omit_decl else "yes")
    output.set("indent", "yes" if options.indent else "no")
    if options.encoding:
        output.set("encoding", options.encoding)
    if options.out_text:
        output.set("method", "text")

    total = sum(1 for arg in args[start:] if arg in _TEMPLATE_FLAGS)
    if total == 0:
        raise UsageError("error in arguments: no -t or --template options found")

    dispatcher = etree.SubElement(root, _xsl("template")) if total > 1 else None
    root_template = dispatcher
    builder = _TemplateBuilder(args, nsmap)
    number = 0
    i = start
    while i < len(args):
        if args[i] not in _TEMPLATE_FLAGS:
            raise UsageError(f"expected -t or --template, got {args[i]}")
        number += 1
        template = etree.SubElement(root, _xsl("template"))
        if dispatcher is not None:
            name = f"t{number}"
            etree.SubElement(dispatcher, _xsl("call-template")).set("name", name)
            template.set("name", name)
        else:
            root_template = template
        i, last = builder.generate(template, i)
        if last:
            break

    if options.print_root and not options.out_text:
        result_root = root_template
        result_root.tag = "xsl-select"
        root.remove(result_root)
        root_template = etree.SubElement(root, _xsl("template"))
        root_template.append(result_root)

    root_template.set("match", "/")

    if builder.use_inputfile:
        param = etree.SubElement(root, _xsl("param"))
        param.text = "-"
        param.set("name", "inputFile")

    if builder.use_value_of:
        _add_value_of_template(root)

    stylesheet = etree.Element(_xsl("stylesheet"), nsmap=nsmap)
    stylesheet.set("version", "1.0")
    prefixes = [entry.prefix for entry in _NS_ENTRIES if entry.prefix in nsmap]
    if prefixes:
        stylesheet.set("extension-element-prefixes", " ".join(prefixes))
    stylesheet.extend(list(root))
    return etree.ElementTree(stylesheet), i