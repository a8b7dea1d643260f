import json
from pathlib import Path

from madcap_toolkit.core.models import (
    Comment,
    Element,
    ExtractedVariable,
    NormalizedDocument,
    OutputFormat,
    ProcessingContext,
    Text,
    VariableSet,
    node_to_dict,
    serialize,
)


class TestElement:
    """Attribute and traversal helpers of the node tree."""

    def test_attribute_lookup_is_case_insensitive(self):
        el = Element("P", {"Class": "Note  Wide"})
        assert el.name == "p"
        assert el.get("class") == "Note  Wide"
        assert el.has("CLASS")
        assert el.classes() == ["Note", "Wide"]
        assert el.has_class("note")

    def test_set_keeps_existing_spelling(self):
        el = Element("p", {"Class": "a"})
        el.set("class", "b")
        assert el.attributes == {"Class": "b"}
        el.set("id", "x")
        assert el.attributes == {"Class": "b", "id": "x"}

    def test_remove(self):
        el = Element("p", {"ID": "x"})
        assert el.remove("id") == "x"
        assert el.remove("id") is None
        assert el.attributes == {}

    def test_iter_includes_self_and_find_does_not(self):
        inner = Element("div", children=[Text("x")])
        outer = Element("div", children=[inner])
        assert list(outer.iter("div")) == [outer, inner]
        assert outer.find("div") is inner
        assert inner.find("div") is None

    def test_text_content_skips_comments(self):
        el = Element("p", children=[Text("a"), Comment("hidden"), Element("b", children=[Text("c")])])
        assert el.text_content() == "ac"

    def test_element_children(self):
        b = Element("b")
        el = Element("p", children=[Text("a"), b, Comment("c")])
        assert el.element_children() == [b]


class TestSerialize:
    def test_escaping_and_void_elements(self):
        el = Element("p", {"title": 'say "hi"'}, [Text("x < y & z"), Element("br")])
        assert serialize(el) == '<p title="say &quot;hi&quot;">x &lt; y &amp; z<br /></p>'

    def test_comment(self):
        assert serialize(Comment(" note ")) == "<!-- note -->"

    def test_source_tag_spelling_is_kept(self):
        el = Element("MadCap:variable", {"name": "General.ProductName"})
        assert serialize(el) == '<MadCap:variable name="General.ProductName"></MadCap:variable>'

    def test_script_text_is_raw(self):
        assert serialize(Element("script", children=[Text("a < b")])) == "<script>a < b</script>"


class TestNormalizedDocument:
    def _document(self):
        body = Element("body", children=[Element("p", children=[Text("Hello")])])
        return NormalizedDocument(
            root=Element("html", children=[body]),
            warnings=["w"],
            extracted_variables=[ExtractedVariable("product-name", "Acme")],
            input_path=Path("/docs/Content/a.htm"),
        )

    def test_body_and_html(self):
        doc = self._document()
        assert doc.body.name == "body"
        assert doc.to_html() == "<html><body><p>Hello</p></body></html>"
        assert doc.body_html() == "<p>Hello</p>"

    def test_json_form(self):
        data = json.loads(self._document().to_json())
        assert data["warnings"] == ["w"]
        assert data["extracted_variables"] == [{"name": "product-name", "value": "Acme"}]
        assert data["root"]["tag"] == "html"
        assert data["root"]["children"][0]["children"][0]["children"] == [
            {"type": "text", "content": "Hello"}
        ]

    def test_node_to_dict_comment(self):
        assert node_to_dict(Comment("x")) == {"type": "comment", "content": "x"}


class TestOptions:
    def test_defaults(self):
        options = ProcessingContext()
        assert not options.extract_variables
        assert not options.preserve_variables
        assert options.output_format is None
        assert options.input_path is None

    def test_output_format_values(self):
        assert OutputFormat("asciidoc") is OutputFormat.ASCIIDOC
        assert OutputFormat.WRITERSIDE_MARKDOWN.value == "writerside-markdown"

    def test_variable_set_namespace(self):
        assert VariableSet(Path("/p/General.flvar")).namespace == "General"
