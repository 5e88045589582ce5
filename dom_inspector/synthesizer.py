"""Selector synthesis for a single inspected element.

Three independent strategies are produced for every element:

- CSS: `#id`, otherwise a `tag.class:nth-child(n)` chain up to <body>
- XPath: `//*[@id=...]`, a unique text or attribute predicate, or a parent chain
- Absolute XPath: `/html[1]/body[1]/.../tag[n]`, always resolvable

Candidates that claim uniqueness are verified by evaluating them against the
whole document; an evaluation error simply rejects the candidate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import chain
from typing import Any

from cssselect import HTMLTranslator, SelectorError
from lxml import etree

from .dom import class_list, element_children, element_siblings, is_element, iter_ancestors, root_of, tag_name
from .errors import EvaluationError, SynthesisError
from .metadata import ElementSummary, element_text, get_attributes, summarize

logger = logging.getLogger("dom_inspector.synthesizer")

TEXT_XPATH_TAGS = frozenset({"a", "button", "h1", "h2", "h3", "h4", "h5", "h6", "label"})
XPATH_ATTRIBUTE_PREFERENCE = ("name", "placeholder", "title", "aria-label", "data-testid")

_css_translator = HTMLTranslator()


@dataclass(frozen=True, slots=True)
class SelectorBundle:
    css: str
    xpath: str
    full_xpath: str
    attributes: dict[str, str] = field(default_factory=dict)
    element_info: ElementSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "css": self.css,
            "xpath": self.xpath,
            "fullXPath": self.full_xpath,
            "attributes": dict(self.attributes),
            "elementInfo": self.element_info.to_dict() if self.element_info else {},
        }


# Literals / escaping
def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath 1.0 predicate."""
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{part}"' for part in parts) + ")"


def css_escape(ident: str) -> str:
    """CSSOM `CSS.escape` for identifiers (class names)."""
    out: list[str] = []
    for i, ch in enumerate(ident):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif ch.isdigit() and ch.isascii() and (i == 0 or (i == 1 and ident[0] == "-")):
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(ident) == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


# Evaluation
def evaluate_xpath(root: Any, expression: str) -> list[Any]:
    try:
        result = root.getroottree().xpath(expression)
    except etree.XPathError as exc:
        raise EvaluationError(action="xpath", reason=str(exc), details={"xpath": expression}) from exc
    if not isinstance(result, list):
        raise EvaluationError(action="xpath", reason="expression does not select nodes", details={"xpath": expression})
    return result


def query_css(root: Any, selector: str) -> list[Any]:
    try:
        expression = _css_translator.css_to_xpath(selector)
    except SelectorError as exc:
        raise EvaluationError(action="css", reason=str(exc), details={"css": selector}) from exc
    try:
        return root.xpath(expression)
    except etree.XPathError as exc:
        raise EvaluationError(action="css", reason=str(exc), details={"css": selector}) from exc


def _only_match(matches: list[Any], node: Any | None) -> bool:
    if len(matches) != 1:
        return False
    return node is None or matches[0] is node


def is_unique_xpath(root: Any, expression: str, node: Any | None = None) -> bool:
    """True when `expression` selects exactly one element (and it is `node`, if given)."""
    try:
        return _only_match(evaluate_xpath(root, expression), node)
    except EvaluationError as exc:
        logger.debug("xpath candidate rejected: %s (%s)", expression, exc.reason)
        return False


def is_unique_css(root: Any, selector: str, node: Any | None = None) -> bool:
    try:
        return _only_match(query_css(root, selector), node)
    except EvaluationError as exc:
        logger.debug("css candidate rejected: %s (%s)", selector, exc.reason)
        return False


# Builders
def _require_element(node: Any, action: str) -> None:
    if not is_element(node):
        raise SynthesisError(
            action=action,
            reason=f"target is not an element node ({type(node).__name__})",
            suggestion="Pass an element from the inspected document",
        )


def _position(node: Any, nodes: list[Any]) -> int:
    for index, candidate in enumerate(nodes, start=1):
        if candidate is node:
            return index
    return 1


def _same_tag_index(node: Any) -> int:
    tag = tag_name(node)
    index = 1
    for sibling in element_siblings(node):
        if sibling is node:
            break
        if tag_name(sibling) == tag:
            index += 1
    return index


def build_css(node: Any) -> str:
    _require_element(node, "css")
    parts: list[str] = []
    seen: set[int] = set()
    current = node
    anchored_at_body = False
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        node_id = current.get("id")
        if node_id:
            parts.append(f"#{node_id}")
            break
        selector = tag_name(current) + "".join("." + css_escape(name) for name in class_list(current))
        parent = current.getparent()
        if parent is None:
            parts.append(selector)
            break
        parts.append(f"{selector}:nth-child({_position(current, element_children(parent))})")
        if tag_name(parent) == "body":
            anchored_at_body = True
            break
        current = parent
    css = " > ".join(reversed(parts))
    # A chain rooted below <body> can repeat deeper in the page.
    if anchored_at_body and not is_unique_css(root_of(node), css, node):
        css = "body > " + css
    return css


def _parent_chain_xpath(node: Any) -> str:
    segments: list[str] = []
    for current in chain([node], iter_ancestors(node)):
        tag = tag_name(current)
        parent = current.getparent()
        if tag == "html" and parent is None:
            return "/".join(["/html", *reversed(segments)])
        if tag == "body" and parent is not None and tag_name(parent) == "html" and parent.getparent() is None:
            return "/".join(["/html/body", *reversed(segments)])
        segments.append(f"{tag}[{_same_tag_index(current)}]")
    return "/" + "/".join(reversed(segments))


def build_xpath(node: Any) -> str:
    _require_element(node, "xpath")
    node_id = node.get("id")
    if node_id:
        return f"//*[@id={xpath_literal(node_id)}]"

    root = root_of(node)
    tag = tag_name(node)
    if tag in TEXT_XPATH_TAGS:
        text = element_text(node)
        if text:
            literal = xpath_literal(text)
            for candidate in (f"//{tag}[text()={literal}]", f"//{tag}[normalize-space(text())={literal}]"):
                if is_unique_xpath(root, candidate, node):
                    return candidate

    for attr in XPATH_ATTRIBUTE_PREFERENCE:
        value = node.get(attr)
        if not value:
            continue
        candidate = f"//{tag}[@{attr}={xpath_literal(value)}]"
        if is_unique_xpath(root, candidate, node):
            return candidate

    return _parent_chain_xpath(node)


def build_absolute_xpath(node: Any) -> str:
    _require_element(node, "full_xpath")
    segments = [f"{tag_name(current)}[{_same_tag_index(current)}]" for current in chain([node], iter_ancestors(node))]
    return "/" + "/".join(reversed(segments))


def synthesize(node: Any) -> SelectorBundle:
    """Build the full selector bundle for one element."""
    _require_element(node, "synthesize")
    return SelectorBundle(
        css=build_css(node),
        xpath=build_xpath(node),
        full_xpath=build_absolute_xpath(node),
        attributes=get_attributes(node),
        element_info=summarize(node),
    )
