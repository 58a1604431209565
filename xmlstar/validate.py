"""Check XML documents for well-formedness or against a DTD, XSD or RELAX NG schema."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass

from lxml import etree

from .common import CommandError, ExitStatus, UsageError, read_xml

_USAGE = (
    "Usage: xmlstar val <options> [ <xml-file-or-uri> ... ]\n"
    "where <options>\n"
    "  -w or --well-formed        - validate well-formedness only (default)\n"
    "  -d or --dtd <dtd-file>     - validate against DTD\n"
    "  -s or --xsd <xsd-file>     - validate against XSD schema\n"
    "  -E or --embed              - validate using embedded DTD\n"
    "  -r or --relaxng <rng-file> - validate against Relax-NG schema\n"
    "  -e or --err                - print verbose error messages on stderr\n"
    "  -S or --stop               - stop on first error\n"
    "  -b or --list-bad           - list only files which do not validate\n"
    "  -g or --list-good          - list only files which validate\n"
    "  -q or --quiet              - do not list files (return result code only)\n"
    "  --net                      - allow network access\n"
    "  -h or --help               - print help\n"
)

# Exit status when the schema itself cannot be loaded.
_SCHEMA_ERROR = 2
# Results of checking one document against an external DTD.
_DTD_UNUSABLE = 2
_DTD_MISMATCH = 3


class Listing(enum.Enum):
    """What the command writes for each checked file."""

    RESULTS = "results"  # "<file> - valid" or "<file> - invalid"
    GOOD = "good"  # names of valid files only
    BAD = "bad"  # names of invalid files only
    QUIET = "quiet"  # nothing; the exit status tells


@dataclass
class ValidateOptions:
    """Settings of the validate command."""

    dtd: str | None = None
    schema: str | None = None
    relaxng: str | None = None
    err: bool = False
    stop: bool = False
    embed: bool = False
    well_formed: bool = True
    listing: Listing = Listing.RESULTS
    nonet: bool = True


_SWITCHES = {
    "--well-formed": ("well_formed", True),
    "-w": ("well_formed", True),
    "--err": ("err", True),
    "-e": ("err", True),
    "--stop": ("stop", True),
    "-S": ("stop", True),
    "--embed": ("embed", True),
    "-E": ("embed", True),
    "--list-good": ("listing", Listing.GOOD),
    "-g": ("listing", Listing.GOOD),
    "--list-bad": ("listing", Listing.BAD),
    "-b": ("listing", Listing.BAD),
    "--quiet": ("listing", Listing.QUIET),
    "-q": ("listing", Listing.QUIET),
    "--net": ("nonet", False),
}

_VALUED = {
    "--dtd": "dtd",
    "-d": "dtd",
    "--xsd": "schema",
    "-s": "schema",
    "--relaxng": "relaxng",
    "-r": "relaxng",
}


def parse_validate_options(argv) -> tuple[ValidateOptions, int]:
    """Read leading options; returns them and the index of the first file argument."""
    options = ValidateOptions()
    args = list(argv)
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in _SWITCHES:
            name, value = _SWITCHES[arg]
            setattr(options, name, value)
        elif arg in _VALUED:
            i += 1
            if i >= len(args):
                raise UsageError(f"{arg} requires a file name")
            setattr(options, _VALUED[arg], args[i])
        elif arg in ("--help", "-h"):
            raise UsageError("", ExitStatus.SUCCESS)
        elif arg == "-":
            break
        elif arg.startswith("-"):
            raise UsageError(f"unrecognized option: {arg}")
        else:
            break
        i += 1
    return options, i


def _print_log(log, stop: bool) -> None:
    entries = list(log)
    if stop:
        entries = entries[:1]
    for entry in entries:
        print(str(entry), file=sys.stderr)


def _write_result(options: ValidateOptions, out, filename: str, failed: bool) -> None:
    if options.listing is Listing.RESULTS:
        out.write(f"{filename} - {'invalid' if failed else 'valid'}\n")
    elif options.listing is Listing.GOOD and not failed:
        out.write(f"{filename}\n")
    elif options.listing is Listing.BAD and failed:
        out.write(f"{filename}\n")


def _check_dtd(options: ValidateOptions, tree, filename: str, out) -> int:
    try:
        dtd = etree.DTD(options.dtd)
    except (etree.LxmlError, OSError):
        print(f"Could not parse DTD {options.dtd}", file=sys.stderr)
        return _DTD_UNUSABLE
    if dtd.validate(tree):
        if options.listing is Listing.GOOD:
            out.write(f"{filename}\n")
        return 0
    if options.err:
        _print_log(dtd.error_log, options.stop)
    if options.listing is Listing.BAD:
        out.write(f"{filename}\n")
    elif options.listing is Listing.QUIET:
        print(f"{filename}: does not match {options.dtd}", file=sys.stderr)
    return _DTD_MISMATCH


def _validate_with_dtd(options: ValidateOptions, files, out) -> int:
    status = ExitStatus.SUCCESS
    for filename in files:
        try:
            tree = read_xml(
                filename,
                load_dtd=True,
                attribute_defaults=True,
                no_network=options.nonet,
            )
        except CommandError as exc:
            if options.err:
                print(str(exc), file=sys.stderr)
            failed = True
            if options.listing is Listing.BAD:
                out.write(f"{filename}\n")
        else:
            failed = _check_dtd(options, tree, filename, out) != 0
        if failed:
            status = ExitStatus.FAILURE
        if options.listing is Listing.RESULTS:
            out.write(f"{filename} - {'invalid' if failed else 'valid'}\n")
    return int(status)


def _load_validator(options: ValidateOptions):
    if options.schema:
        path, kind = options.schema, etree.XMLSchema
    elif options.relaxng:
        path, kind = options.relaxng, etree.RelaxNG
    else:
        return None
    parser = etree.XMLParser(no_network=options.nonet)
    try:
        return kind(etree.parse(path, parser))
    except (etree.LxmlError, OSError) as exc:
        raise CommandError(f"{path}: {exc}", _SCHEMA_ERROR) from exc


def _validate_documents(options: ValidateOptions, files, out) -> int:
    try:
        validator = _load_validator(options)
    except CommandError as exc:
        print(str(exc), file=sys.stderr)
        return _SCHEMA_ERROR

    status = ExitStatus.SUCCESS
    for filename in files:
        try:
            tree = read_xml(
                filename,
                load_dtd=True,
                attribute_defaults=True,
                no_network=options.nonet,
                dtd_validation=options.embed,
            )
        except CommandError as exc:
            if options.err:
                print(str(exc), file=sys.stderr)
            failed = True
        else:
            failed = validator is not None and not validator.validate(tree)
            if failed and options.err:
                _print_log(validator.error_log, options.stop)
        if failed:
            status = ExitStatus.FAILURE
        _write_result(options, out, filename, failed)
    return int(status)


def validate_files(options: ValidateOptions, files, out) -> int:
    """Check each file and write the report to text stream ``out``.

    Returns 0 when every file passed, 1 when any failed, and 2 when the
    XSD or RELAX NG schema could not be loaded.
    """
    if options.dtd:
        return _validate_with_dtd(options, list(files), out)
    return _validate_documents(options, list(files), out)


def _report_usage(error: UsageError) -> None:
    if error.status == ExitStatus.SUCCESS:
        sys.stdout.write(_USAGE)
        return
    if str(error):
        print(str(error), file=sys.stderr)
    sys.stderr.write(_USAGE)


def main(argv=None) -> int:
    """Run the ``val`` command; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        if not args:
            raise UsageError("")
        options, index = parse_validate_options(args)
    except UsageError as exc:
        _report_usage(exc)
        return int(exc.status)
    return validate_files(options, args[index:], sys.stdout)