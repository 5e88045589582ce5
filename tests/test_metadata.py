from __future__ import annotations

from dom_inspector.dom import load_document
from dom_inspector.metadata import categorize, element_text, get_attributes, summarize


def _find(root, xpath: str):  # noqa: ANN001
    return root.xpath(xpath)[0]


def test_element_text_skips_script_style_and_noscript() -> None:
    root = load_document(
        "<html><body><div id='d'>  Hello <script>var x = 1;</script><b>big</b>"
        "<style>.a{}</style>  world <noscript>enable js</noscript>!</div></body></html>"
    )
    node = _find(root, "//div")
    assert element_text(node) == "Hello big world !"


def test_element_text_collapses_whitespace() -> None:
    root = load_document("<html><body><p>\n  one\n\n  two\t three </p></body></html>")
    assert element_text(_find(root, "//p")) == "one two three"


def test_attributes_keep_dom_order() -> None:
    root = load_document('<html><body><input type="text" name="q" placeholder="Search" id="s"></body></html>')
    attrs = get_attributes(_find(root, "//input"))
    assert list(attrs) == ["type", "name", "placeholder", "id"]
    assert attrs["placeholder"] == "Search"


def test_summary_includes_name_only_when_present() -> None:
    root = load_document('<html><body><input name="email" class="a b"><div class="c">Hi</div></body></html>')

    with_name = summarize(_find(root, "//input")).to_dict()
    assert with_name == {"tagName": "input", "id": "", "className": "a b", "text": "", "name": "email"}

    without_name = summarize(_find(root, "//div")).to_dict()
    assert "name" not in without_name
    assert without_name["text"] == "Hi"


def test_categorize_groups_sections_and_drops_empty_ones() -> None:
    sections = categorize(
        {
            "id": "go",
            "data-testid": "submit-btn",
            "aria-label": "Submit form",
            "aria-pressed": "false",
            "aria-hidden": "",
            "type": "submit",
            "class": "btn",
        },
        text="Submit",
    )
    by_key = {section.key: section for section in sections}
    assert [section.key for section in sections] == ["testing", "accessibility", "content"]
    assert by_key["testing"].entries == [("id", "go"), ("data-testid", "submit-btn")]
    assert by_key["accessibility"].entries == [("aria-label", "Submit form"), ("aria-pressed", "false")]
    assert by_key["content"].entries == [("text", "Submit"), ("type", "submit")]

    assert categorize({"class": "only"}) == []
