import pytest

from madcap_toolkit.core.converter.content_splitter import ContentSplitter
from madcap_toolkit.core.models import Element
from madcap_toolkit.core.parser.html_parser import body_of, parse_html

MARKER = "data-list-normalized"


def body(markup):
    return body_of(parse_html(f"<html><body>{markup}</body></html>"))


@pytest.fixture
def splitter(rules):
    return ContentSplitter(rules.images, MARKER)


class TestImageClassification:
    @pytest.mark.parametrize("attributes,inline", [
        ({"src": "../Images/Screens/dialog.png", "class": "IconInline"}, True),
        ({"src": "../Images/Screens/dialog.png"}, False),
        ({"src": "../Images/CreateActivity_step1.png"}, False),
        ({"src": "../Images/GUI/save.png"}, True),
        ({"src": "../Images/logo.png", "width": "16", "height": "16px"}, True),
        ({"src": "../Images/logo.png", "width": "640", "height": "480"}, False),
        ({"src": "../Images/logo.png"}, False),
    ])
    def test_is_inline_image(self, splitter, attributes, inline):
        assert splitter.is_inline_image(Element("img", attributes)) is inline


class TestSplitting:
    def test_screenshot_in_sentence_is_separated(self, splitter):
        root = body(
            '<p>Click <img class="IconInline" src="../Images/GUI/save.png" /> to save. '
            '<img src="../Images/Screens/dialog.png" /> Then close the dialog.</p>'
        )
        splitter.apply(root)
        paragraphs = root.element_children()
        assert [p.name for p in paragraphs] == ["p", "p", "p"]
        first, image, last = paragraphs
        assert first.find("img").get("class") == "IconInline"
        assert first.text_content().strip() == "Click  to save."
        assert [c.name for c in image.element_children()] == ["img"]
        assert image.text_content() == ""
        assert last.text_content().strip() == "Then close the dialog."
        assert splitter.split_count == 1

    def test_bullet_fragment_becomes_marked_list(self, splitter):
        root = body(
            '<p>Choose one: <img src="../Images/Screens/options.png" />* First option</p>'
        )
        splitter.apply(root)
        assert [c.name for c in root.element_children()] == ["p", "p", "ul"]
        bullet_list = root.element_children()[-1]
        assert bullet_list.get(MARKER) == "true"
        assert bullet_list.find("li").text_content() == "First option"

    def test_fragments_keep_id_and_class(self, splitter):
        root = body(
            '<p id="save-step" class="Step">Click Save. '
            '<img src="../Images/Screens/dialog.png" /> Then close it.</p>'
        )
        splitter.apply(root)
        first, image, last = root.element_children()
        assert first.get("id") == "save-step"
        assert first.get("class") == "Step"
        assert image.get("id") is None
        assert image.get("class") is None
        assert last.get("id") is None
        assert last.get("class") == "Step"

    def test_inline_images_only(self, splitter):
        root = body('<p>Press <img src="../Images/GUI/ok.png" /> now.</p>')
        splitter.apply(root)
        assert [c.name for c in root.element_children()] == ["p"]
        assert splitter.split_count == 0

    def test_image_without_direct_text(self, splitter):
        root = body('<p><span>Caption</span><img src="../Images/Screens/a.png" /></p>')
        splitter.apply(root)
        assert [c.name for c in root.element_children()] == ["p"]

    def test_nested_paragraphs_are_processed(self, splitter):
        root = body('<div><p>See <img src="../Images/Screens/a.png" /> here.</p></div>')
        splitter.apply(root)
        assert [c.name for c in root.find("div").element_children()] == ["p", "p", "p"]
