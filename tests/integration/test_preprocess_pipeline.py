"""End-to-end tests for the preprocessing pipeline.

These run complete Flare topics through :class:`PreprocessingService` and
check the observable guarantees of the normalised tree:
- documented conversion scenarios
- idempotence on its own output
- termination on circular snippets
- structural invariants on messy input
"""

import json

import pytest

from madcap_toolkit import preprocess, should_skip_document
from madcap_toolkit.core.converter.finalizer import check_invariants
from madcap_toolkit.core.exceptions import DocumentParseError, PipelineInvariantError
from madcap_toolkit.core.models import Comment, ExtractedVariable, ProcessingContext, serialize

INSTALL_BODY = (
    "\n<h1>Install</h1>\n"
    '<p>Welcome to <MadCap:variable name="General.ProductName" />.</p>\n'
    '<p class="mc-note">Keep the installer open.</p>\n'
    "<ol>\n"
    "  <li>Open the installer.</li>\n"
    "  <li>Choose the components:</li>\n"
    '  <ol style="list-style-type: lower-alpha;"><li>Core</li><li>Extras</li></ol>\n'
    "</ol>\n"
    "<h2>Finish</h2>\n"
    '<p>Click <img class="IconInline" src="go.png" /> then <img src="../Images/Screens/done.png" /></p>\n'
    "<MadCap:dropDown><MadCap:dropDownHead><MadCap:dropDownHotspot>Details</MadCap:dropDownHotspot>"
    "</MadCap:dropDownHead><MadCap:dropDownBody><p>More text.</p></MadCap:dropDownBody></MadCap:dropDown>\n"
    "<table><tr><td>A</td></tr></table>\n"
)


@pytest.fixture
def install_topic(flare_project):
    flare_project.add_variable_set("General", {"ProductName": "Acme Corp"})
    return flare_project.add_topic("Topics/Install.htm", INSTALL_BODY)


def _read(path):
    return path.read_text(encoding="utf-8")


@pytest.mark.integration
class TestScenarios:
    """The documented input/output pairs."""

    def test_sibling_sub_list_moves_into_item(self, service):
        doc = service.preprocess(
            '<ol><li>Step 1</li><li>Step 2</li>'
            '<ol style="list-style-type: lower-alpha;"><li>a</li><li>b</li></ol></ol>'
        )
        outer = doc.body.find("ol")
        items = outer.element_children()
        assert [li.name for li in items] == ["li", "li"]
        assert items[1].find("ol").get("style") == "list-style-type: lower-alpha;"
        assert doc.body.text_content() == "Step 1Step 2ab"

    def test_variable_resolves_to_text(self, service, pipeline_context):
        pipeline_context.variable_store.register("General.ProductName", "Acme")
        doc = service.preprocess('<p><MadCap:variable name="General.ProductName"/></p>')
        assert doc.body_html() == "<p>Acme</p>"

    def test_preserved_variable_keeps_its_paragraph(self, service):
        doc = service.preprocess(
            '<p><MadCap:variable name="General.ProductName"/></p><p>After</p>',
            options=ProcessingContext(preserve_variables=True),
        )
        assert [c.name for c in doc.body.element_children()] == ["p", "p"]
        variable = doc.body.find("p").find("madcap:variable")
        assert variable.get("name") == "General.ProductName"
        assert doc.body.text_content() == "After"

    def test_excluded_content_becomes_comment(self, service):
        doc = service.preprocess('<div data-mc-conditions="Deprecated">X</div>')
        assert len(doc.body.children) == 1
        comment = doc.body.children[0]
        assert isinstance(comment, Comment)
        assert "Deprecated" in comment.content
        assert "X" not in doc.body.text_content()

    def test_block_image_is_split_from_text(self, service):
        doc = service.preprocess(
            '<p>Click <img class="IconInline" src="go.png"/> then '
            '<img src="screenshot.png" width="800" height="600"/></p>'
        )
        first, second = doc.body.element_children()
        assert first.find("img").get("src") == "go.png"
        assert first.text_content().strip() == "Click  then"
        assert [c.name for c in second.children] == ["img"]
        assert second.find("img").get("src") == "screenshot.png"


@pytest.mark.integration
class TestFullTopic:
    def test_topic_is_normalised(self, service, install_topic):
        doc = service.preprocess(_read(install_topic), install_topic)
        assert doc.warnings == []
        assert doc.body_html() == (
            "<h1>Install</h1>"
            "<p>Welcome to Acme Corp.</p>"
            '<blockquote class="note">Keep the installer open.</blockquote>'
            '<ol data-list-normalized="true"><li>Open the installer.</li>'
            "<li>Choose the components:"
            '<ol style="list-style-type: lower-alpha;" data-list-normalized="true">'
            "<li>Core</li><li>Extras</li></ol></li></ol>"
            "<h2>Finish</h2>"
            '<p>Click <img class="IconInline" src="go.png" alt="" /> then </p>'
            '<p><img src="../Images/Screens/done.png" alt="" /></p>'
            '<div class="madcap-dropdown collapsible-block" data-title="Details"><p>More text.</p></div>'
            "<table><tbody><tr><td>A</td></tr></tbody></table>"
        )

    def test_tree_is_idempotent(self, service, install_topic):
        doc = service.preprocess(_read(install_topic), install_topic)
        first = doc.to_html()
        again = service.normalize_tree(doc.root, install_topic)
        assert again.to_html() == first

    def test_reparsed_output_is_idempotent(self, service, install_topic):
        first = service.preprocess(_read(install_topic), install_topic).to_html()
        second = service.preprocess(first, install_topic).to_html()
        assert second == first

    def test_extracted_variables(self, service, install_topic):
        doc = service.preprocess(
            _read(install_topic),
            options=ProcessingContext(extract_variables=True, input_path=install_topic),
        )
        assert "<p>Welcome to {general-product-name}.</p>" in doc.body_html()
        expected = [ExtractedVariable("general-product-name", "Acme Corp")]
        assert doc.extracted_variables == expected
        assert service.get_extracted_variables() == expected

    def test_json_form(self, service, install_topic):
        data = json.loads(service.preprocess(_read(install_topic), install_topic).to_json())
        assert data["warnings"] == []
        assert data["root"]["tag"] == "html"
        assert data["root"]["children"][0]["tag"] == "body"


@pytest.mark.integration
class TestSnippets:
    def test_circular_snippets_terminate(self, service, flare_project):
        flare_project.add_snippet("A.flsnp", '<p>A</p><MadCap:snippetBlock src="B.flsnp" />')
        flare_project.add_snippet("B.flsnp", '<p>B</p><MadCap:snippetBlock src="A.flsnp" />')
        path = flare_project.add_topic("Page.htm", '<MadCap:snippetBlock src="Resources/Snippets/A.flsnp" />')
        doc = service.preprocess(_read(path), path)
        assert any("Circular" in w for w in doc.warnings)
        assert "Snippet from A.flsnp" in doc.body.text_content()
        assert check_invariants(doc.root) == []

    def test_topic_reached_through_its_own_snippet(self, service, flare_project):
        flare_project.add_snippet("B.flsnp", '<p>B</p><MadCap:snippetBlock src="../../Page.htm" />')
        path = flare_project.add_topic(
            "Page.htm", '<p>A</p><MadCap:snippetBlock src="Resources/Snippets/B.flsnp" />'
        )
        doc = service.preprocess(_read(path), path)
        html = doc.body_html()
        assert html.count("<p>A</p>") == 1
        assert html.count("<p>B</p>") == 1
        assert "Snippet from ../../Page.htm" in doc.body.text_content()
        assert any("Circular" in w for w in doc.warnings)

    def test_snippet_cache_is_shared_across_documents(self, service, pipeline_context, flare_project):
        flare_project.add_variable_set("General", {"ProductName": "Acme Corp"})
        flare_project.add_snippet("Intro.flsnp", '<p>About <MadCap:variable name="General.ProductName" /></p>')
        block = '<MadCap:snippetBlock src="../Resources/Snippets/Intro.flsnp" />'
        first = flare_project.add_topic("Topics/One.htm", block)
        second = flare_project.add_topic("Topics/Two.htm", f"<h1>Two</h1>{block}")
        options = ProcessingContext(extract_variables=True)

        doc_one = service.preprocess(_read(first), first, options)
        assert len(pipeline_context.snippet_cache) == 1
        doc_two = service.preprocess(_read(second), second, options)

        assert len(pipeline_context.snippet_cache) == 1
        assert doc_one.body_html() == "<p>About {general-product-name}</p>"
        assert doc_two.body_html() == "<h1>Two</h1><p>About {general-product-name}</p>"
        assert doc_two.extracted_variables == [ExtractedVariable("general-product-name", "Acme Corp")]


@pytest.mark.integration
class TestRobustness:
    def test_skip_check_does_not_lose_content(self, service, flare_project):
        path = flare_project.add_topic(
            "Mixed.htm", '<p>Current</p><p madcap:conditions="Default.Deprecated">Old</p>'
        )
        raw = _read(path)
        assert should_skip_document(raw)
        doc = service.preprocess(raw, path)
        assert doc.body.text_content() == "Current"
        assert isinstance(doc.body.children[-1], Comment)

    def test_messy_lists_satisfy_invariants(self, service):
        doc = service.preprocess(
            "<ul>stray text<li>a</li><p>para</p><ol><li>x</li></ol></ul>"
            "<li>orphan</li><dl><p>Term</p><p>Definition</p></dl>"
        )
        assert check_invariants(doc.root) == []
        ul = doc.body.find("ul")
        assert [li.text_content() for li in ul.element_children()] == ["stray text", "aparax", "orphan"]
        assert [c.name for c in doc.body.find("dl").element_children()] == ["dt", "dd"]

    def test_invariant_violation_raises(self, service, monkeypatch):
        monkeypatch.setattr(
            "madcap_toolkit.core.services.preprocessing_service.check_invariants",
            lambda root: ["<ul> has <p> child"],
        )
        with pytest.raises(PipelineInvariantError) as excinfo:
            service.preprocess("<p>x</p>", "topic.htm")
        assert excinfo.value.violations == ["<ul> has <p> child"]
        assert excinfo.value.input_path.name == "topic.htm"

    def test_missing_content_raises(self, service):
        with pytest.raises(DocumentParseError):
            service.preprocess(None)

    def test_module_level_helpers(self):
        doc = preprocess("<p>x</p>")
        assert doc.body_html() == "<p>x</p>"
        assert not should_skip_document("<p>x</p>")

    def test_serialised_tree_has_single_body(self, service):
        doc = service.preprocess("text only")
        assert serialize(doc.root) == "<html><body><p>text only</p></body></html>"
