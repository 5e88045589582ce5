"""Element metadata: attributes, visible text, tooltip sections."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .dom import is_element, tag_name

TEXT_EXCLUDED_PARENTS = frozenset({"script", "style", "noscript"})

TESTING_ATTRS = ("id", "name", "data-testid", "data-test", "data-cy", "data-automation-id")
ACCESSIBILITY_ATTRS = ("role", "aria-label", "aria-labelledby", "aria-describedby", "aria-controls")
CONTENT_ATTRS = ("href", "src", "alt", "title", "placeholder", "value", "type")


@dataclass(frozen=True, slots=True)
class ElementSummary:
    tag_name: str
    id: str = ""
    class_name: str = ""
    text: str = ""
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "tagName": self.tag_name,
            "id": self.id,
            "className": self.class_name,
            "text": self.text,
        }
        if self.name is not None:
            out["name"] = self.name
        return out


@dataclass(frozen=True, slots=True)
class AttributeSection:
    key: str
    title: str
    entries: list[tuple[str, str]] = field(default_factory=list)


def get_attributes(node: Any) -> dict[str, str]:
    """Snapshot attributes in DOM order."""
    if not is_element(node):
        return {}
    return {str(name): str(value) for name, value in node.items()}


def _iter_text_parts(node: Any) -> Iterator[str]:
    # Iterative DFS: text belongs to `el`, a child's tail belongs to `el` too.
    stack: list[Any] = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            yield item
            continue
        accept = tag_name(item) not in TEXT_EXCLUDED_PARENTS
        if accept and item.text:
            yield item.text
        pending: list[Any] = []
        for child in item:
            if is_element(child):
                pending.append(child)
            if accept and child.tail:
                pending.append(child.tail)
        stack.extend(reversed(pending))


def element_text(node: Any) -> str:
    if not is_element(node):
        return ""
    return " ".join(" ".join(_iter_text_parts(node)).split())


def summarize(node: Any) -> ElementSummary:
    return ElementSummary(
        tag_name=tag_name(node),
        id=node.get("id") or "",
        class_name=node.get("class") or "",
        text=element_text(node),
        name=node.get("name"),
    )


def categorize(attributes: dict[str, str], text: str = "") -> list[AttributeSection]:
    """Group attributes into tooltip sections; empty sections are dropped."""
    testing = [(name, attributes[name]) for name in TESTING_ATTRS if attributes.get(name)]

    accessibility = [(name, attributes[name]) for name in ACCESSIBILITY_ATTRS if attributes.get(name)]
    accessibility += [
        (name, value)
        for name, value in attributes.items()
        if value and name.startswith("aria-") and name not in ACCESSIBILITY_ATTRS
    ]

    content: list[tuple[str, str]] = [("text", text)] if text else []
    content += [(name, attributes[name]) for name in CONTENT_ATTRS if attributes.get(name)]

    sections = [
        AttributeSection("testing", "Testing Identifiers", testing),
        AttributeSection("accessibility", "Accessibility", accessibility),
        AttributeSection("content", "Content & Behavior", content),
    ]
    return [section for section in sections if section.entries]
