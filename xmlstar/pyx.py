"""Convert XML documents to the line-oriented PYX notation."""

from __future__ import annotations

import os
import sys
import xml.sax
from contextlib import nullcontext
from xml.sax.handler import (
    ContentHandler,
    DTDHandler,
    feature_external_ges,
    feature_namespaces,
    property_lexical_handler,
)

from .common import CommandError, ExitStatus

_USAGE = (
    "Usage: xmlstar pyx {<xml-file>}\n"
    "Converts XML documents to the line-oriented PYX notation.\n"
    "With no files, the document is read from standard input.\n"
)

_HELP_FLAGS = frozenset({"-h", "-H", "-Z", "-?", "--help"})

_CHUNK = 64 * 1024

_ESCAPES = str.maketrans({"\n": "\\n", "\r": None, "\t": "\\t", "\\": "\\\\"})


def sanitize(data: str) -> str:
    """Escape newlines, tabs and backslashes and drop carriage returns."""
    return data.translate(_ESCAPES)


def _local_name(qname: str) -> str:
    return qname.rpartition(":")[2]


class _PyxHandler(ContentHandler, DTDHandler):
    """Collects PYX records from SAX events."""

    def __init__(self) -> None:
        super().__init__()
        self._lines: list[str] = []
        self._text: list[str] = []
        self._in_cdata = False
        self._doctype: str | None = None

    def drain(self) -> list[str]:
        lines, self._lines = self._lines, []
        return lines

    def _flush_text(self) -> None:
        if self._text:
            self._lines.append("-" + sanitize("".join(self._text)))
            self._text.clear()

    def startElement(self, name, attrs):
        self._flush_text()
        self._lines.append("(" + name)
        namespaces = []
        attributes = []
        for attr_name, value in attrs.items():
            if attr_name == "xmlns" or attr_name.startswith("xmlns:"):
                namespaces.append((attr_name, value))
            else:
                attributes.append((attr_name, value))
        for attr_name, value in namespaces:
            self._lines.append(f"A{attr_name} {sanitize(value)}")
        for attr_name, value in sorted(attributes, key=lambda item: _local_name(item[0])):
            self._lines.append(f"A{attr_name} {sanitize(value)}")

    def endElement(self, name):
        self._flush_text()
        self._lines.append(")" + name)

    def characters(self, content):
        self._text.append(content)

    def ignorableWhitespace(self, whitespace):
        self._text.append(whitespace)

    def processingInstruction(self, target, data):
        self._flush_text()
        self._lines.append(f"?{target} {sanitize(data or '')}")

    def skippedEntity(self, name):
        self._flush_text()
        self._lines.append("&" + name.split(" ", 1)[0])

    def endDocument(self):
        self._flush_text()

    def notationDecl(self, name, publicId, systemId):
        public = "" if publicId is None else " " + publicId
        self._lines.append(f"N{name} {systemId or ''}{public}")

    def unparsedEntityDecl(self, name, publicId, systemId, ndata):
        public = "" if publicId is None else " " + publicId
        self._lines.append(f"U{name} {ndata} {systemId or ''}{public}")

    # Lexical events.

    def comment(self, content):
        self._flush_text()
        self._lines.append("C" + sanitize(content))

    def startCDATA(self):
        self._flush_text()
        self._in_cdata = True

    def endCDATA(self):
        self._lines.append("[" + sanitize("".join(self._text)))
        self._text.clear()
        self._in_cdata = False

    def startDTD(self, name, public_id, system_id):
        line = f"D {name} PUBLIC"
        line += " " if public_id is None else f' "{public_id}"'
        if system_id is not None:
            line += f' "{system_id}"'
        self._doctype = line

    def endDTD(self):
        if self._doctype is not None:
            self._lines.append(self._doctype)
            self._doctype = None


def _open(source):
    if hasattr(source, "read"):
        return nullcontext(source), getattr(source, "name", "<stream>")
    name = os.fspath(source)
    if name == "-":
        return nullcontext(sys.stdin.buffer), name
    try:
        return open(name, "rb"), name
    except OSError as exc:
        raise CommandError(f"{name}: {exc}", ExitStatus.BAD_FILE) from exc


def pyx_lines(source):
    """Yield the PYX records of a document, without line terminators.

    ``source`` is a path (``-`` for stdin) or a readable file object.  A
    parse error raises CommandError after the records before it are yielded.
    """
    handler = _PyxHandler()
    parser = xml.sax.make_parser()
    parser.setFeature(feature_namespaces, False)
    parser.setFeature(feature_external_ges, False)
    parser.setContentHandler(handler)
    parser.setDTDHandler(handler)
    parser.setProperty(property_lexical_handler, handler)

    context, name = _open(source)
    with context as stream:
        try:
            while chunk := stream.read(_CHUNK):
                parser.feed(chunk)
                yield from handler.drain()
            parser.close()
        except xml.sax.SAXParseException as exc:
            yield from handler.drain()
            raise CommandError(f"{name}: {exc}", ExitStatus.LIB_ERROR) from exc
        except OSError as exc:
            raise CommandError(f"{name}: {exc}", ExitStatus.BAD_FILE) from exc
    yield from handler.drain()


def convert_file(filename, out) -> int:
    """Write the PYX form of ``filename`` to ``out``; returns the exit status."""
    try:
        for line in pyx_lines(filename):
            out.write(line + "\n")
    except CommandError as exc:
        print(str(exc), file=sys.stderr)
        return int(exc.status)
    return int(ExitStatus.SUCCESS)


def main(argv=None) -> int:
    """Run the ``pyx`` command; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if args and args[0] in _HELP_FLAGS:
        sys.stdout.write(_USAGE)
        return int(ExitStatus.SUCCESS)

    status = int(ExitStatus.SUCCESS)
    for filename in args or ["-"]:
        result = convert_file(filename, sys.stdout)
        if result:
            status = result
    return status