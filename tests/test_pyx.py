import io

import pytest

from xmlstar.common import CommandError, ExitStatus
from xmlstar.pyx import convert_file, main, pyx_lines, sanitize


def lines_of(text):
    return list(pyx_lines(io.BytesIO(text.encode("utf-8"))))


def test_sanitize_escapes_control_characters():
    assert sanitize("a\tb\nc\rd\\e") == "a\\tb\\ncd\\\\e"


def test_sanitize_leaves_plain_text():
    assert sanitize("plain text") == "plain text"


def test_elements_text_and_sorted_attributes():
    assert lines_of('<r b="2" a="1">x</r>') == ["(r", "Aa 1", "Ab 2", "-x", ")r"]


def test_namespace_declarations_come_first():
    doc = '<p:r xmlns:p="urn:x" xmlns="urn:d" p:z="1" a="2"/>'
    assert lines_of(doc) == [
        "(p:r",
        "Axmlns:p urn:x",
        "Axmlns urn:d",
        "Aa 2",
        "Ap:z 1",
        ")p:r",
    ]


def test_whitespace_text_is_escaped():
    lines = lines_of("<r>\n\t<a/>\n</r>")
    assert lines[1] == "-" + sanitize("\n\t")
    assert lines[0] == "(r" and lines[-1] == ")r"


def test_attribute_value_with_newline_reference():
    assert lines_of('<r a="x&#10;y"/>')[1] == "Aa x\\ny"


def test_comment_pi_and_cdata():
    doc = "<r><!--hi--><?tgt some data?><![CDATA[a<b]]></r>"
    assert lines_of(doc) == ["(r", "Chi", "?tgt some data", "[a<b", ")r"]


def test_doctype_with_system_id():
    lines = lines_of('<!DOCTYPE r SYSTEM "r.dtd"><r/>')
    assert lines[0] == 'D r PUBLIC  "r.dtd"'
    assert lines[1:] == ["(r", ")r"]


def test_notation_and_unparsed_entity_before_doctype_line():
    doc = (
        "<!DOCTYPE r [\n"
        '<!NOTATION gif SYSTEM "image/gif">\n'
        '<!ENTITY pic SYSTEM "p.gif" NDATA gif>\n'
        "]><r/>"
    )
    assert lines_of(doc) == [
        "Ngif image/gif",
        "Upic gif p.gif",
        "D r PUBLIC ",
        "(r",
        ")r",
    ]


def test_malformed_document_raises_lib_error():
    with pytest.raises(CommandError) as info:
        lines_of("<r><a></r>")
    assert info.value.status == ExitStatus.LIB_ERROR


def test_records_before_error_are_yielded():
    produced = []
    with pytest.raises(CommandError):
        for line in pyx_lines(io.BytesIO(b"<r><a/><b></r>")):
            produced.append(line)
    assert produced[:3] == ["(r", "(a", ")a"]


def test_missing_file_is_bad_file(tmp_path):
    with pytest.raises(CommandError) as info:
        list(pyx_lines(tmp_path / "missing.xml"))
    assert info.value.status == ExitStatus.BAD_FILE


def test_convert_file_writes_lines(tmp_path):
    path = tmp_path / "doc.xml"
    path.write_text("<r>hi</r>")
    out = io.StringIO()
    assert convert_file(str(path), out) == 0
    assert out.getvalue() == "(r\n-hi\n)r\n"


def test_convert_file_reports_status(tmp_path):
    out = io.StringIO()
    assert convert_file(str(tmp_path / "nope.xml"), out) == ExitStatus.BAD_FILE
    assert out.getvalue() == ""


def test_main_processes_files_and_keeps_error_status(tmp_path, capsys):
    good = tmp_path / "good.xml"
    good.write_text("<a/>")
    bad = tmp_path / "bad.xml"
    bad.write_text("<a>")
    status = main([str(bad), str(good)])
    assert status == ExitStatus.LIB_ERROR
    assert capsys.readouterr().out.endswith("(a\n)a\n")


def test_main_help(capsys):
    assert main(["--help"]) == 0
    assert "pyx" in capsys.readouterr().out