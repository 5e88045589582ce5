"""Highlight box and metadata tooltip drawn over the inspected page."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import InspectorConfig
from .dom import contains, is_attached
from .layout import OverlayGeometry, Rect
from .metadata import ElementSummary, categorize, get_attributes, summarize

if TYPE_CHECKING:
    from .page import Page

OVERLAY_ID = "dom-inspector-overlay"
TOOLTIP_ID = "dom-inspector-tooltip"
OVERLAY_MARKER = "data-dom-inspector"

HIGHLIGHT_STYLE = {
    "position": "fixed",
    "pointer-events": "none",
    "z-index": "2147483647",
    "border": "2px solid #ff6b6b",
    "background": "rgba(255, 107, 107, 0.1)",
    "box-shadow": "0 0 10px rgba(255, 107, 107, 0.5)",
    "transition": "all 0.1s ease",
    "border-radius": "3px",
    "display": "none",
}

TOOLTIP_STYLE = {
    "position": "fixed",
    "z-index": "2147483647",
    "background": "linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
    "color": "white",
    "padding": "12px 16px",
    "border-radius": "8px",
    "font-family": "'Segoe UI', -apple-system, BlinkMacSystemFont, sans-serif",
    "font-size": "13px",
    "line-height": "1.4",
    "box-shadow": "0 8px 32px rgba(0, 0, 0, 0.3)",
    "max-width": "400px",
    "white-space": "pre-line",
    "word-wrap": "break-word",
    "display": "none",
    "pointer-events": "none",
}


def _css_text(styles: dict[str, str]) -> str:
    return " ".join(f"{name}: {value} !important;" for name, value in styles.items())


def _px(value: float) -> str:
    return f"{value:g}px"


def position_tooltip(
    target: Rect,
    size: tuple[float, float],
    viewport: tuple[float, float],
    *,
    margin: float = 10,
) -> tuple[float, float]:
    """Place the tooltip below the target, clamped horizontally, flipped above if it overflows.

    Horizontal resolution happens first; the vertical flip only looks at the height.
    """
    width, height = size
    viewport_width, viewport_height = viewport

    left = target.left
    top = target.bottom + margin

    if left + width > viewport_width:
        left = viewport_width - width - margin
    if left < margin:
        left = margin

    if top + height > viewport_height:
        top = target.top - height - margin
    if top < margin:
        top = target.bottom + margin

    return left, top


def format_tooltip(summary: ElementSummary, attributes: dict[str, str], *, preview_chars: int = 50) -> str:
    header = summary.tag_name
    if summary.id:
        header += f"#{summary.id}"
    classes = summary.class_name.split()[:2]
    if classes:
        header += "." + ".".join(classes)

    preview = summary.text[:preview_chars]
    if len(summary.text) > preview_chars:
        preview += "..."

    sections = categorize(attributes, preview)
    if not sections:
        return header

    lines = [header, "Element Attributes:"]
    for section in sections:
        lines.append(f"{section.title}:")
        lines.extend(f"  {name}: {value}" for name, value in section.entries)
    return "\n".join(lines)


class OverlayRenderer:
    """Owns the two overlay nodes for one page."""

    def __init__(self, page: Page, config: InspectorConfig | None = None) -> None:
        self.page = page
        self.config = config or InspectorConfig()
        self.highlight: Any | None = None
        self.tooltip: Any | None = None
        self.highlight_geometry: OverlayGeometry | None = None
        self.tooltip_geometry: OverlayGeometry | None = None
        self._styles: dict[str, dict[str, str]] = {}

    @property
    def attached(self) -> bool:
        return self.highlight is not None and is_attached(self.highlight, self.page.root)

    @property
    def visible(self) -> bool:
        return self._styles.get(OVERLAY_ID, {}).get("display") == "block"

    @property
    def tooltip_text(self) -> str:
        return (self.tooltip.text or "") if self.tooltip is not None else ""

    def nodes(self) -> list[Any]:
        return [node for node in (self.highlight, self.tooltip) if node is not None]

    def owns(self, node: Any) -> bool:
        return any(contains(own, node) for own in self.nodes())

    def create(self) -> None:
        self.remove()
        root = self.page.root
        self.highlight = self._make(root, OVERLAY_ID, HIGHLIGHT_STYLE)
        self.tooltip = self._make(root, TOOLTIP_ID, TOOLTIP_STYLE)

    def remove(self) -> None:
        for element_id in (OVERLAY_ID, TOOLTIP_ID):
            for existing in self.page.root.iter("div"):
                if existing.get("id") == element_id and existing.get(OVERLAY_MARKER) is not None:
                    existing.getparent().remove(existing)
                    break
        self.highlight = None
        self.tooltip = None
        self.highlight_geometry = None
        self.tooltip_geometry = None
        self._styles.clear()

    def show_for(self, node: Any) -> None:
        if self.highlight is None:
            return
        self.update_position(node)
        if self.tooltip is not None:
            summary = summarize(node)
            self.tooltip.text = format_tooltip(
                summary,
                get_attributes(node),
                preview_chars=self.config.text_preview_chars,
            )
            self._set_style(self.tooltip, display="block")
            self.update_tooltip_position(node)

    def refresh(self, node: Any) -> None:
        self.update_position(node)
        self.update_tooltip_position(node)

    def update_position(self, node: Any) -> None:
        if self.highlight is None:
            return
        rect = self.page.layout.bounding_rect(node)
        self.highlight_geometry = OverlayGeometry.from_rect(rect)
        self._set_style(
            self.highlight,
            left=_px(rect.left),
            top=_px(rect.top),
            width=_px(rect.width),
            height=_px(rect.height),
            display="block",
        )

    def update_tooltip_position(self, node: Any) -> None:
        if self.tooltip is None:
            return
        layout = self.page.layout
        target = layout.bounding_rect(node)
        measured = layout.bounding_rect(self.tooltip)
        left, top = position_tooltip(
            target,
            (measured.width, measured.height),
            layout.viewport(),
            margin=self.config.tooltip_margin,
        )
        self.tooltip_geometry = OverlayGeometry(left, top, measured.width, measured.height)
        self._set_style(self.tooltip, left=_px(left), top=_px(top))

    def hide(self) -> None:
        for node in self.nodes():
            self._set_style(node, display="none")

    def mirror_specs(self) -> list[dict[str, str]]:
        """Id, style and text of each overlay node, for copying into another document."""
        return [
            {"id": node.get("id") or "", "style": node.get("style") or "", "text": node.text or ""}
            for node in self.nodes()
        ]

    def _make(self, root: Any, element_id: str, styles: dict[str, str]) -> Any:
        node = root.makeelement("div", {"id": element_id, OVERLAY_MARKER: ""})
        root.append(node)
        self._styles[element_id] = dict(styles)
        node.set("style", _css_text(self._styles[element_id]))
        return node

    def _set_style(self, node: Any, **changes: str) -> None:
        element_id = node.get("id") or ""
        styles = self._styles.setdefault(element_id, {})
        for name, value in changes.items():
            styles[name] = value
        node.set("style", _css_text(styles))
