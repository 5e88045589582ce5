"""Thin helpers over lxml.html trees.

lxml exposes comments and processing instructions as children, so anything that
reasons about "element siblings" has to filter them out first.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import lxml.html
from lxml import etree


def load_document(markup: str | bytes) -> Any:
    """Parse a full document (or fragment) and return its root <html> element."""
    return lxml.html.document_fromstring(markup)


def is_element(node: Any) -> bool:
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def tag_name(node: Any) -> str:
    tag = node.tag if is_element(node) else ""
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.lower()


def element_children(node: Any) -> list[Any]:
    return [child for child in node if is_element(child)]


def element_siblings(node: Any) -> list[Any]:
    parent = node.getparent()
    if parent is None:
        return [node]
    return element_children(parent)


def iter_ancestors(node: Any) -> Iterator[Any]:
    """Yield parents up to the root, stopping if the chain ever loops."""
    seen = {id(node)}
    parent = node.getparent()
    while parent is not None and id(parent) not in seen:
        seen.add(id(parent))
        yield parent
        parent = parent.getparent()


def contains(container: Any, node: Any) -> bool:
    """DOM `Node.contains`: true for the node itself and any descendant."""
    if container is None or node is None:
        return False
    if node is container:
        return True
    return any(ancestor is container for ancestor in iter_ancestors(node))


def root_of(node: Any) -> Any:
    top = node
    for top in iter_ancestors(node):
        pass
    return top


def is_attached(node: Any, root: Any) -> bool:
    return node is not None and root_of(node) is root


def body_of(root: Any) -> Any | None:
    for child in element_children(root):
        if tag_name(child) == "body":
            return child
    return None


def class_list(node: Any) -> list[str]:
    return (node.get("class") or "").split()
