# xmlstar

Small command line tools for working with XML documents: listing a
directory as XML, re-indenting documents, converting them to the
line-oriented PYX notation, running XSLT stylesheets, querying with
XPath, and validating against a DTD, an XML Schema or RELAX NG.

XML parsing, XPath and XSLT come from `lxml`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

Each command is its own program. Where a command reads a document and
no file is given (or the file is `-`), it reads standard input.

### `xmlstar-ls [DIR | --help]`

Lists a directory (the current one by default) as XML. Each entry is an
element named after its type: `f` regular file, `d` directory, `c`
character device, `b` block device, `l` symbolic link, `p` fifo, `s`
socket, `u` unknown. Attributes give the permissions (with `s`/`s`/`t`
for the set-user-id, set-group-id and sticky bits), access and
modification times in UTC as `YYYYMMDDTHHMMSSZ`, the size (padded to a
column) and the name, escaped as for an attribute value. Symbolic links
are not followed.

```
<dir>
<f p="rw-r--r--" a="20240101T120000Z" m="20240101T120000Z" s="42"               n="notes.xml"/>
</dir>
```

Exits with 1 if the directory cannot be read, 2 if given more than one
argument.

### `xmlstar-format [OPTIONS] [FILE]`

Re-indents a document and writes it to standard output.

| Option | Meaning |
| --- | --- |
| `-n`, `--noindent` | do not indent |
| `-t`, `--indent-tab` | indent with a tab |
| `-s N`, `--indent-spaces N` | indent with N spaces (default 2) |
| `-o`, `--omit-decl` | leave out the XML declaration |
| `-e ENC`, `--encode ENC` | output encoding (default: the input's, else UTF-8) |
| `-D`, `--dropdtd` | remove the DOCTYPE |
| `-R`, `--recover` | try to recover what can be parsed |
| `-C`, `--nocdata` | turn CDATA sections into text |
| `-N`, `--nsclean` | remove redundant namespace declarations |
| `-H`, `--html` | input is HTML (output is HTML, no declaration) |
| `-Q`, `--quiet` | do not print the error when the input cannot be read |
| `--net` | allow fetching DTDs and entities over the network |
| `-h`, `--help` | print help |

A document that cannot be read or parsed makes the command exit with 2.

### `xmlstar-pyx [FILE ...]`

Converts documents to PYX, one record per line:

| Prefix | Record |
| --- | --- |
| `(` | start tag |
| `)` | end tag |
| `A` | attribute: namespace declarations first, then attributes sorted by local name |
| `-` | character data |
| `[` | CDATA section |
| `?` | processing instruction |
| `C` | comment |
| `D` | document type declaration |
| `N` | notation declaration |
| `U` | unparsed entity declaration |
| `&` | entity reference that was not expanded |

Newlines, tabs and backslashes in data are written as `\n`, `\t` and
`\\`; carriage returns are dropped. `-h`, `-H`, `-Z`, `-?` or `--help`
as the first argument prints help. A file that cannot be opened gives
exit status 3, a parse error 4; the remaining files are still converted.

### `xmlstar-tr [OPTIONS] STYLESHEET [-p NAME=XPATH | -s NAME=STRING ...] [FILE ...]`

Applies an XSLT stylesheet to each file and writes the results to
standard output. `-p` passes a parameter as an XPath expression, `-s` as
a string (a string holding both `'` and `"` is refused with status 5).

| Option | Meaning |
| --- | --- |
| `--omit-decl` | remove the XML declaration from the results |
| `-E`, `--embed` | use the stylesheet named by the `xml-stylesheet` processing instruction of STYLESHEET |
| `--xinclude` | process XIncludes in the input |
| `--html` | input documents are HTML |
| `--val` | validate input documents against their DTD |
| `--net` | allow network access |
| `--show-ext` | list the extension namespaces on standard error |
| `--maxdepth N` | accepted; the XSLT engine keeps its own depth limit |
| `-h`, `--help` | print help |

### `xmlstar-sel [OPTIONS] -t TEMPLATE-OPTIONS ... [FILE ...]`

Builds an XSLT stylesheet from command line options and runs it over
each file. Several `-t` groups make several templates that run in turn.

Global options:

| Option | Meaning |
| --- | --- |
| `-T`, `--text` | output is text |
| `-R`, `--root` | wrap the output in an `<xsl-select>` element |
| `-I`, `--indent` | indent the output |
| `-D`, `--xml-decl` | keep the XML declaration |
| `-B`, `--noblanks` | remove insignificant whitespace from the input |
| `-E ENC`, `--encode ENC` | output encoding |
| `-N PREFIX=URI` | declare a namespace for use in expressions |
| `-Q`, `--quiet` | print nothing; exit 0 as soon as a result has content |
| `-C` | print the generated stylesheet instead of running it |
| `--net` | allow network access |
| `-h`, `--help` | print help |

Namespaces declared on the root element of the first input are also
available; its default namespace is bound to the prefixes `_` and
`DEFAULT`. Known extension prefixes (`exslt`, `math`, `date`, `func`,
`set`, `str`, `dyn`, `saxon`, `xalanredirect`, `xt`, `libxslt`, `test`)
are declared when an expression uses them.

Template options:

| Option | Meaning |
| --- | --- |
| `-m XPATH`, `--match XPATH` | iterate over matching nodes |
| `-s O:T:C XPATH`, `--sort O:T:C XPATH` | sort the enclosing match; order `A`/`D`, type `N`/`T`, case `U`/`L`, any other letter leaves it unset |
| `-v XPATH`, `--value-of XPATH` | print values, one per line |
| `-c XPATH`, `--copy-of XPATH` | copy nodes |
| `-o STRING`, `--output STRING` | print a literal string |
| `-n`, `--nl` | print a newline |
| `-f`, `--inp-name` | print the input file name |
| `-i XPATH`, `--if XPATH`, `--elif XPATH`, `--else` | conditionals |
| `-e NAME`, `--elem NAME` | create an element |
| `-a NAME`, `--attr NAME` | create an attribute |
| `--var NAME[=XPATH]` | declare a variable |
| `-b`, `--break` | close the current nesting level |

Example:

```
xmlstar-sel -t -m //book -s A:T:- title -v title -n catalogue.xml
```

Exit status: 0 if some result had content, 1 if none had, 3 if an input
could not be read, 4 if a transformation failed.

### `xmlstar-val [OPTIONS] FILE ...`

Checks documents for well-formedness (the default, `-w`), or validates
them against a DTD (`-d FILE`), an XML Schema (`-s FILE`), a RELAX NG
schema (`-r FILE`) or their own DOCTYPE (`-E`).

By default each file is reported as `FILE - valid` or `FILE - invalid`;
`-g`/`--list-good` lists only valid files, `-b`/`--list-bad` only
invalid ones, `-q`/`--quiet` prints nothing. `-e`/`--err` prints error
details on standard error, and with `-S`/`--stop` only the first error
of each file. `--net` allows network access.

Exit status: 0 if every file passed, 1 if any failed, 2 if the XML
Schema or RELAX NG schema could not be loaded (or on bad arguments).

## Exit status

| Code | Meaning |
| --- | --- |
| 0 | success |
| 1 | failure (nothing selected, invalid document, unreadable directory) |
| 2 | bad arguments; for `xmlstar-format` also an unreadable input; for `xmlstar-val` an unusable schema |
| 3 | a file could not be read or parsed |
| 4 | library error (parse or transformation failure) |
| 5 | internal error |

## Library use

Each command's `main` (in `xmlstar.ls`, `xmlstar.formatter`,
`xmlstar.pyx`, `xmlstar.trans`, `xmlstar.select`, `xmlstar.validate`)
takes an argument list and returns the exit status. Smaller pieces work
on their own:

```python
import io
import stat

from xmlstar.common import NormalizationMode, normalize
from xmlstar.ls import file_perms, file_type
from xmlstar.pyx import pyx_lines, sanitize
from xmlstar.trans import quote_string_param

file_perms(0o755)                                # 'rwxr-xr-x'
file_type(stat.S_IFDIR)                          # 'd'
sanitize("a\tb\n")                               # 'a\\tb\\n'
normalize('a<b"', NormalizationMode.ATTR)        # 'a&lt;b&quot;'
quote_string_param("it's")                       # '"it\'s"'
list(pyx_lines(io.BytesIO(b"<a x='1'>hi</a>")))  # ['(a', 'Ax 1', '-hi', ')a']
```

Failures are raised as `xmlstar.common.CommandError` (with a `status`
attribute); bad command lines as its subclass `UsageError`.

## What is not included

There is no single front-end command that dispatches to subcommands,
and no tools for editing documents, escaping or unescaping text,
canonicalizing documents or listing element structure. Only the six
commands above are provided.