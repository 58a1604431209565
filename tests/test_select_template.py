import pytest
from lxml import etree

from xmlstar.common import ExitStatus, UsageError
from xmlstar.select_template import (
    SelectOptions,
    TemplateOption,
    find_ns_refs,
    lookup_ns_entry,
    prepare_xslt,
)

XSL = "http://www.w3.org/1999/XSL/Transform"
NS = {"xsl": XSL}


def build(args, start=0, namespaces=(), **opts):
    return prepare_xslt(SelectOptions(**opts), list(namespaces), args, start)


def test_lookup_ns_entry_known_prefix():
    entry = lookup_ns_entry("math")
    assert entry.href == "http://exslt.org/math"
    assert entry.prefix == "math"


def test_lookup_ns_entry_unknown_prefix():
    assert lookup_ns_entry("nosuch") is None


def test_lookup_ns_entry_matches_leading_part():
    assert lookup_ns_entry("xalan").prefix == "xalanredirect"


def test_find_ns_refs_in_order_without_repeats():
    refs = find_ns_refs("str:tokenize(math:max(str:split(.)))")
    assert [entry.prefix for entry in refs] == ["str", "math"]


def test_find_ns_refs_ignores_unknown_and_long_prefixes():
    assert find_ns_refs("foo:bar") == []
    assert find_ns_refs("y" * 17 + "str:x") == []


def test_template_option_fields():
    option = TemplateOption("m", "match", "for-each", (), 1)
    assert option.longopt == "match"
    assert option.nest == 1


def test_match_value_of_newline():
    tree, index = build(["-t", "-m", "//a", "-v", "@x", "-n", "file.xml"])
    assert index == 6
    root = tree.getroot()
    assert root.get("version") == "1.0"
    assert root.get("extension-element-prefixes") == "exslt"
    assert root.nsmap["exslt"] == "http://exslt.org/common"
    for_each = root.xpath("xsl:template[@match='/']/xsl:for-each", namespaces=NS)
    assert [e.get("select") for e in for_each] == ["//a"]
    call = for_each[0].xpath("xsl:call-template", namespaces=NS)[0]
    assert call.get("name") == "value-of-template"
    param = call.xpath("xsl:with-param", namespaces=NS)[0]
    assert param.get("name") == "select"
    assert param.get("select") == "@x"
    newline = for_each[0].xpath("xsl:value-of", namespaces=NS)[0]
    assert newline.get("select") == "'\n'"
    helper = root.xpath("xsl:template[@name='value-of-template']", namespaces=NS)
    assert len(helper) == 1


def test_generated_stylesheet_runs():
    tree, _ = build(["-t", "-m", "//a", "-v", "@x", "-n"], out_text=True)
    doc = etree.fromstring(b'<r><a x="1"/><a x="2"/></r>')
    result = etree.XSLT(tree)(doc)
    assert str(result) == "1\n2\n"


def test_several_templates_get_dispatcher():
    tree, index = build(["-t", "-v", "1", "-t", "-v", "2"])
    assert index == 6
    root = tree.getroot()
    dispatcher = root.xpath("xsl:template[@match='/']", namespaces=NS)[0]
    calls = dispatcher.xpath("xsl:call-template/@name", namespaces=NS)
    assert calls == ["t1", "t2"]
    names = root.xpath("xsl:template/@name", namespaces=NS)
    assert "t1" in names and "t2" in names


def test_start_offset_and_file_index():
    tree, index = build(["-T", "-t", "-c", ".", "in.xml", "more.xml"], start=1)
    assert index == 4
    copy = tree.getroot().xpath("//xsl:copy-of", namespaces=NS)[0]
    assert copy.get("select") == "."


def test_if_elif_else_structure():
    tree, _ = build(
        ["-t", "-i", "a", "-o", "yes", "--elif", "b", "-o", "maybe",
         "--else", "-o", "no", "-b", "-o", "end"]
    )
    template = tree.getroot().xpath("xsl:template[@match='/']", namespaces=NS)[0]
    choose = template.xpath("xsl:choose", namespaces=NS)[0]
    assert choose.xpath("xsl:when/@test", namespaces=NS) == ["a", "b"]
    assert choose.xpath("xsl:when/xsl:text/text()", namespaces=NS) == ["yes", "maybe"]
    assert choose.xpath("xsl:otherwise/xsl:text/text()", namespaces=NS) == ["no"]
    assert template.xpath("xsl:text/text()", namespaces=NS) == ["end"]


def test_else_without_if():
    with pytest.raises(UsageError) as info:
        build(["-t", "--else", "-o", "x"])
    assert info.value.status == ExitStatus.BAD_ARGS


def test_sort_after_match():
    tree, _ = build(["-t", "-m", "//a", "-s", "D:N:L", "@x", "-v", "."])
    sort = tree.getroot().xpath("//xsl:for-each/xsl:sort", namespaces=NS)[0]
    assert sort.get("order") == "descending"
    assert sort.get("data-type") == "number"
    assert sort.get("case-order") == "lower-first"
    assert sort.get("select") == "@x"


def test_sort_skips_unknown_letters():
    tree, _ = build(["-t", "-m", "//a", "-s", "A:-:U", "."])
    sort = tree.getroot().xpath("//xsl:sort", namespaces=NS)[0]
    assert sort.get("order") == "ascending"
    assert sort.get("data-type") is None
    assert sort.get("case-order") == "upper-first"


def test_sort_must_follow_match():
    with pytest.raises(UsageError):
        build(["-t", "-s", "A:T:U", "."])


def test_bad_sort_spec():
    with pytest.raises(UsageError):
        build(["-t", "-m", "//a", "-s", "AT", "."])


def test_var_with_and_without_value():
    tree, _ = build(["-t", "--var", "n=count(//a)", "--var", "m", "-v", "1", "-b"])
    variables = tree.getroot().xpath("//xsl:variable", namespaces=NS)
    assert variables[0].get("name") == "n"
    assert variables[0].get("select") == "count(//a)"
    assert variables[1].get("name") == "m"
    assert variables[1].get("select") is None
    assert variables[1].xpath("xsl:call-template", namespaces=NS)


def test_input_name_param():
    tree, _ = build(["-t", "-f"])
    root = tree.getroot()
    param = root.xpath("xsl:param[@name='inputFile']", namespaces=NS)[0]
    assert param.text == "-"
    copy = root.xpath("//xsl:copy-of", namespaces=NS)[0]
    assert copy.get("select") == "$inputFile"


def test_output_settings():
    tree, _ = build(
        ["-t", "-c", "."], out_text=True, indent=True, no_omit_decl=True, encoding="utf-8"
    )
    output = tree.getroot().xpath("xsl:output", namespaces=NS)[0]
    assert output.get("method") == "text"
    assert output.get("indent") == "yes"
    assert output.get("omit-xml-declaration") == "no"
    assert output.get("encoding") == "utf-8"


def test_print_root_wraps_result():
    tree, _ = build(["-t", "-c", "."], print_root=True)
    template = tree.getroot().xpath("xsl:template[@match='/']", namespaces=NS)[0]
    wrapper = template[0]
    assert wrapper.tag == "xsl-select"
    assert wrapper.xpath("xsl:copy-of/@select", namespaces=NS) == ["."]


def test_user_namespaces_and_extension_prefixes():
    tree, _ = build(
        ["-t", "-v", "math:max(//x:a)"],
        namespaces=[("x", "http://example.com/x"), ("", "http://example.com/d")],
    )
    root = tree.getroot()
    assert root.nsmap["x"] == "http://example.com/x"
    assert root.nsmap[None] == "http://example.com/d"
    assert root.get("extension-element-prefixes").split() == ["exslt", "math"]


def test_missing_template_option():
    with pytest.raises(UsageError):
        build(["-T", "file.xml"], start=0)


def test_empty_template():
    with pytest.raises(UsageError):
        build(["-t"])


def test_unrecognized_option():
    with pytest.raises(UsageError) as info:
        build(["-t", "-x", "y"])
    assert "-x" in str(info.value)


def test_missing_argument():
    with pytest.raises(UsageError):
        build(["-t", "-m"])