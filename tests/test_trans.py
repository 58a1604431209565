import io

import pytest

from xmlstar.common import CommandError, ExitStatus, UsageError
from xmlstar.trans import (
    TransOptions,
    main,
    parse_params,
    parse_trans_options,
    quote_string_param,
    transform,
)

TEXT_XSL = """<xsl:stylesheet version="1.0"
    xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:output method="text"/>
  <xsl:param name="greeting" select="'none'"/>
  <xsl:template match="/">
    <xsl:value-of select="$greeting"/>:<xsl:value-of select="/doc/item"/>
  </xsl:template>
</xsl:stylesheet>
"""

COPY_XSL = """<xsl:stylesheet version="1.0"
    xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="/"><out><xsl:value-of select="/doc/item"/></out></xsl:template>
</xsl:stylesheet>
"""


@pytest.fixture
def files(tmp_path):
    text_xsl = tmp_path / "text.xsl"
    text_xsl.write_text(TEXT_XSL)
    copy_xsl = tmp_path / "copy.xsl"
    copy_xsl.write_text(COPY_XSL)
    doc = tmp_path / "doc.xml"
    doc.write_text("<doc><item>apple</item></doc>")
    return {"text": str(text_xsl), "copy": str(copy_xsl), "doc": str(doc), "dir": tmp_path}


def test_parse_options_flags_and_index():
    options, index = parse_trans_options(["--net", "--omit-decl", "-E", "s.xsl", "a.xml"])
    assert index == 3
    assert options.nonet is False
    assert options.omit_decl is True
    assert options.embed is True
    assert options.noval is True


def test_parse_options_maxdepth():
    options, index = parse_trans_options(["--maxdepth", "5", "s.xsl"])
    assert options.maxdepth == 5 and index == 2
    options, _ = parse_trans_options(["--maxdepth", "0", "s.xsl"])
    assert options.maxdepth is None


def test_parse_options_maxdepth_missing_value():
    with pytest.raises(UsageError) as info:
        parse_trans_options(["--maxdepth"])
    assert info.value.status == ExitStatus.BAD_ARGS


def test_parse_options_help():
    with pytest.raises(UsageError) as info:
        parse_trans_options(["--help"])
    assert info.value.status == ExitStatus.SUCCESS


def test_parse_params():
    params, used = parse_params(["-p", "n=1+1", "-s", "s=hi", "f.xml"])
    assert params == {"n": "1+1", "s": '"hi"'}
    assert used == 4


def test_parse_params_requires_equals():
    with pytest.raises(UsageError):
        parse_params(["-p", "novalue"])


def test_parse_params_requires_argument():
    with pytest.raises(UsageError):
        parse_params(["-s"])


def test_quote_string_param():
    assert quote_string_param("say \"x\"") == "'say \"x\"'"
    assert quote_string_param("it's") == '"it\'s"'


def test_quote_string_param_with_both_quotes():
    with pytest.raises(CommandError) as info:
        quote_string_param("'\"")
    assert info.value.status == ExitStatus.INTERNAL_ERROR


def test_transform_with_string_param(files):
    out = io.BytesIO()
    params = {"greeting": quote_string_param("hello")}
    status = transform(TransOptions(), files["text"], params, [files["doc"]], out)
    assert status == 0
    assert out.getvalue().strip() == b"hello:apple"


def test_transform_with_xpath_param(files):
    out = io.BytesIO()
    status = transform(TransOptions(), files["text"], {"greeting": "2+3"}, [files["doc"]], out)
    assert status == 0
    assert out.getvalue().strip() == b"5:apple"


def test_transform_omit_declaration(files):
    with_decl = io.BytesIO()
    transform(TransOptions(), files["copy"], {}, [files["doc"]], with_decl)
    assert with_decl.getvalue().startswith(b"<?xml")
    without = io.BytesIO()
    transform(TransOptions(omit_decl=True), files["copy"], {}, [files["doc"]], without)
    assert without.getvalue().strip() == b"<out>apple</out>"


def test_transform_missing_input_reports_bad_file(files):
    out = io.BytesIO()
    missing = str(files["dir"] / "missing.xml")
    status = transform(TransOptions(), files["copy"], {}, [missing, files["doc"]], out)
    assert status == ExitStatus.BAD_FILE
    assert b"<out>apple</out>" in out.getvalue()


def test_transform_bad_stylesheet(files):
    bad = files["dir"] / "bad.xsl"
    bad.write_text("<notxsl/>")
    with pytest.raises(CommandError) as info:
        transform(TransOptions(), str(bad), {}, [files["doc"]], io.BytesIO())
    assert info.value.status == ExitStatus.LIB_ERROR


def test_transform_embedded_stylesheet(files):
    doc = files["dir"] / "embedded.xml"
    doc.write_text(
        '<?xml-stylesheet type="text/xsl" href="copy.xsl"?>'
        "<doc><item>pear</item></doc>"
    )
    out = io.BytesIO()
    options = TransOptions(embed=True, omit_decl=True)
    assert transform(options, str(doc), {}, [str(doc)], out) == 0
    assert out.getvalue().strip() == b"<out>pear</out>"


def test_main_end_to_end(files, capsysbinary):
    status = main([files["text"], "-s", "greeting=hi", files["doc"]])
    assert status == 0
    assert capsysbinary.readouterr().out.strip() == b"hi:apple"


def test_main_without_arguments():
    assert main([]) == ExitStatus.BAD_ARGS


def test_main_without_stylesheet():
    assert main(["--net"]) == ExitStatus.BAD_ARGS