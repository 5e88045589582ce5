from __future__ import annotations

import pytest

from dom_inspector.dom import load_document
from dom_inspector.errors import EvaluationError, SynthesisError
from dom_inspector.synthesizer import (
    build_absolute_xpath,
    build_css,
    build_xpath,
    css_escape,
    evaluate_xpath,
    is_unique_xpath,
    query_css,
    synthesize,
    xpath_literal,
)

LIST_PAGE = """
<html><body>
  <main>
    <ul>
      <li>one</li>
      <li>two</li>
      <li>three</li>
    </ul>
    <section>
      <p>intro</p>
      <span>a</span>
      <span>b</span>
    </section>
  </main>
</body></html>
"""


def _one(root, xpath: str):  # noqa: ANN001
    matches = root.xpath(xpath)
    assert len(matches) == 1
    return matches[0]


def test_id_shortcut_for_css_and_xpath() -> None:
    root = load_document('<html><body><div><div id="x">hi</div></div></body></html>')
    node = _one(root, "//*[@id='x']")
    assert build_css(node) == "#x"
    assert build_xpath(node) == '//*[@id="x"]'


def test_css_chain_uses_nth_child_among_all_element_siblings() -> None:
    root = load_document(LIST_PAGE)
    node = _one(root, "//section/span[2]")

    css = build_css(node)

    # p and the first span come before it: position 3 among element siblings.
    assert css == "main:nth-child(1) > section:nth-child(2) > span:nth-child(3)"
    assert query_css(root, css) == [node]


def test_css_chain_matches_only_the_node_for_same_tag_siblings() -> None:
    root = load_document(LIST_PAGE)
    for index in (1, 2, 3):
        node = _one(root, f"//ul/li[{index}]")
        css = build_css(node)
        assert css.endswith(f"li:nth-child({index})")
        assert query_css(root, css) == [node]


def test_css_chain_ignores_comments_when_counting_siblings() -> None:
    root = load_document("<html><body><div><!-- note --><b>x</b><b>y</b></div></body></html>")
    node = _one(root, "//b[2]")
    css = build_css(node)
    assert css == "div:nth-child(1) > b:nth-child(2)"
    assert query_css(root, css) == [node]


def test_css_chain_stops_at_ancestor_with_id_and_escapes_classes() -> None:
    root = load_document('<html><body><div id="app"><p class="note 2col">x</p></div></body></html>')
    node = _one(root, "//p")
    css = build_css(node)
    assert css == "#app > p.note.\\32 col:nth-child(1)"
    assert query_css(root, css) == [node]


def test_unique_text_xpath_for_button() -> None:
    root = load_document("<html><body><button>Cancel</button><button>Submit</button></body></html>")
    node = _one(root, "//button[2]")
    assert build_xpath(node) == '//button[text()="Submit"]'


def test_duplicate_text_falls_back_to_attribute_then_chain() -> None:
    root = load_document(
        "<html><body>"
        '<a href="/a">More</a>'
        '<a href="/b" title="Next page">More</a>'
        "<div><a>More</a></div>"
        "</body></html>"
    )
    titled = _one(root, "//a[@title]")
    assert build_xpath(titled) == '//a[@title="Next page"]'

    nested = _one(root, "//div/a")
    xpath = build_xpath(nested)
    assert xpath == "/html/body/div[1]/a[1]"
    assert evaluate_xpath(root, xpath) == [nested]


def test_attribute_preference_order() -> None:
    root = load_document(
        "<html><body>"
        '<input name="q" placeholder="Search">'
        '<input name="q" placeholder="Filter">'
        "</body></html>"
    )
    second = _one(root, "//input[2]")
    # name is shared, so the next preferred attribute decides.
    assert build_xpath(second) == '//input[@placeholder="Filter"]'


def test_xpath_literals_with_quotes() -> None:
    assert xpath_literal("plain") == '"plain"'
    assert xpath_literal('say "hi"') == "'say \"hi\"'"
    mixed = xpath_literal("""it's "quoted" """)
    assert mixed.startswith("concat(")

    root = load_document("""<html><body><button>it's "quoted" </button></body></html>""")
    node = _one(root, "//button")
    assert evaluate_xpath(root, f"//button[text()={mixed}]") == [node]


def test_absolute_xpath_is_total_and_resolves() -> None:
    root = load_document(LIST_PAGE)
    for node in root.iter():
        if not isinstance(node.tag, str):
            continue
        full = build_absolute_xpath(node)
        assert full.startswith("/html[1]")
        assert evaluate_xpath(root, full) == [node]
        assert build_absolute_xpath(node) == full


def test_absolute_xpath_uses_same_tag_index() -> None:
    root = load_document(LIST_PAGE)
    node = _one(root, "//section/span[2]")
    assert build_absolute_xpath(node) == "/html[1]/body[1]/main[1]/section[1]/span[2]"


def test_invalid_candidates_are_rejected_not_raised() -> None:
    root = load_document("<html><body><p>x</p></body></html>")
    assert is_unique_xpath(root, "//p[") is False
    with pytest.raises(EvaluationError):
        evaluate_xpath(root, "count(//p)")
    with pytest.raises(EvaluationError):
        query_css(root, "p[")


def test_css_escape() -> None:
    assert css_escape("btn-primary") == "btn-primary"
    assert css_escape("1a") == "\\31 a"
    assert css_escape("-") == "\\-"
    assert css_escape("a:b") == "a\\:b"


def test_synthesize_bundle_payload() -> None:
    root = load_document('<html><body><button id="go" class="btn" data-testid="go-btn">Go</button></body></html>')
    node = _one(root, "//button")

    payload = synthesize(node).to_dict()

    assert payload["css"] == "#go"
    assert payload["xpath"] == '//*[@id="go"]'
    assert payload["fullXPath"] == "/html[1]/body[1]/button[1]"
    assert payload["attributes"] == {"id": "go", "class": "btn", "data-testid": "go-btn"}
    assert payload["elementInfo"] == {"tagName": "button", "id": "go", "className": "btn", "text": "Go"}


def test_synthesize_rejects_non_elements() -> None:
    root = load_document("<html><body><!-- c --><p>x</p></body></html>")
    comment = root.xpath("//comment()")[0]
    with pytest.raises(SynthesisError):
        synthesize(comment)
    with pytest.raises(SynthesisError):
        build_css("not a node")


def test_css_chain_is_anchored_at_body_when_the_shape_repeats_deeper() -> None:
    root = load_document(
        "<html><body><div><p>a</p></div><section><div><p>b</p></div></section></body></html>"
    )
    shallow = _one(root, "/html/body/div/p")
    deep = _one(root, "//section/div/p")

    css = build_css(shallow)

    assert css == "body > div:nth-child(1) > p:nth-child(1)"
    assert query_css(root, css) == [shallow]
    assert query_css(root, build_css(deep)) == [deep]


def test_text_xpath_tolerates_formatting_whitespace() -> None:
    root = load_document("<html><body><button>\n    Submit\n  </button><button>Cancel</button></body></html>")
    node = _one(root, "//button[1]")

    xpath = build_xpath(node)

    assert xpath == '//button[normalize-space(text())="Submit"]'
    assert evaluate_xpath(root, xpath) == [node]
