"""
Interactive element inspector: activation lifecycle and event routing.

One inspector exists per page. While active it listens (capture phase) for
pointer, keyboard and scroll events on the document and for resize on the
window, keeps the overlay on the hovered element and, on click, synthesizes a
selector bundle and shuts itself down.

Events sent through the transport:
- element-selectors      {payload: SelectorBundle}
- inspector-deactivated  {reason: inspected|escape|contextmenu}
- inspector-error        {message}
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from typing import Any

from .config import InspectorConfig
from .dom import contains, is_attached, is_element
from .errors import ActivationError, InspectorError
from .overlay import OverlayRenderer
from .page import DOCUMENT, WINDOW, DomEvent, Page, TimerHandle
from .synthesizer import synthesize
from .transport import Transport

logger = logging.getLogger("dom_inspector.inspector")

LOADED_FLAG = "domInspectorLoaded"
INSTANCE_KEY = "domInspector"

ACTIVATE = "activate-inspector"
DEACTIVATE = "deactivate-inspector"
STATUS = "status"

ELEMENT_SELECTORS = "element-selectors"
INSPECTOR_DEACTIVATED = "inspector-deactivated"
INSPECTOR_ERROR = "inspector-error"

# (target, event type, capture)
LISTENER_BINDINGS: tuple[tuple[str, str, bool], ...] = (
    (DOCUMENT, "mouseover", True),
    (DOCUMENT, "mouseout", True),
    (DOCUMENT, "click", True),
    (DOCUMENT, "contextmenu", True),
    (DOCUMENT, "keydown", True),
    (DOCUMENT, "scroll", True),
    (WINDOW, "resize", False),
)


class InspectorState(enum.Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


def _describe(exc: Exception) -> str:
    if isinstance(exc, InspectorError):
        return exc.reason
    return str(exc) or type(exc).__name__


class DomInspector:
    def __init__(self, page: Page, transport: Transport, config: InspectorConfig | None = None) -> None:
        self.page = page
        self.transport = transport
        self.config = config or InspectorConfig()
        self.state = InspectorState.INACTIVE
        self.overlay = OverlayRenderer(page, self.config)
        self.last_hovered: Any | None = None
        self._recompute_handle: TimerHandle | None = None

        # Built once: the same callables are used for add and remove.
        self._handlers: dict[str, Callable[[DomEvent], None]] = {
            "mouseover": self._on_mouseover,
            "mouseout": self._on_mouseout,
            "click": self._on_click,
            "contextmenu": self._on_contextmenu,
            "keydown": self._on_keydown,
            "scroll": self._on_viewport_change,
            "resize": self._on_viewport_change,
        }
        self._commands: dict[str, Callable[[], dict[str, Any]]] = {
            ACTIVATE: self._command_activate,
            DEACTIVATE: self._command_deactivate,
            STATUS: self._command_status,
        }

    @property
    def is_active(self) -> bool:
        return self.state is InspectorState.ACTIVE

    # Lifecycle
    def activate(self) -> None:
        if self.is_active:
            return
        registered: list[tuple[str, str, bool]] = []
        try:
            self.overlay.create()
            for target, event_type, capture in LISTENER_BINDINGS:
                self.page.add_event_listener(event_type, self._handlers[event_type], capture, target=target)
                registered.append((target, event_type, capture))
        except Exception as exc:
            for target, event_type, capture in registered:
                self.page.remove_event_listener(event_type, self._handlers[event_type], capture, target=target)
            self.overlay.remove()
            logger.error("inspector activation failed: %s", exc)
            raise ActivationError(
                action="activate",
                reason=_describe(exc),
                suggestion="Reload the page and try again",
            ) from exc
        self.state = InspectorState.ACTIVE
        logger.info("inspector activated url=%s", self.page.url or "-")

    def deactivate(self, reason: str | None = None) -> None:
        """Tear down listeners and overlay. `reason` is set for self-initiated shutdowns."""
        if not self.is_active:
            return
        self.state = InspectorState.INACTIVE
        self.last_hovered = None
        if self._recompute_handle is not None:
            self._recompute_handle.cancel()
            self._recompute_handle = None
        try:
            for target, event_type, capture in LISTENER_BINDINGS:
                self.page.remove_event_listener(event_type, self._handlers[event_type], capture, target=target)
        finally:
            self.overlay.remove()
        logger.info("inspector deactivated reason=%s", reason or "command")
        if reason:
            self._emit({"action": INSPECTOR_DEACTIVATED, "reason": reason})

    def document_replaced(self) -> None:
        """Rebind to `page.root` after the host swapped the document."""
        self.last_hovered = None
        if self.is_active:
            self.overlay.create()

    # Commands
    def handle_command(self, message: dict[str, Any]) -> dict[str, Any]:
        action = (message.get("action") or message.get("name")) if isinstance(message, dict) else None
        handler = self._commands.get(str(action or ""))
        if handler is None:
            return {"success": False, "error": f"Unknown action: {action}"}
        return handler()

    def _command_activate(self) -> dict[str, Any]:
        try:
            self.activate()
        except ActivationError as exc:
            self._emit({"action": INSPECTOR_ERROR, "message": f"Could not activate inspector: {exc.reason}"})
            return {"success": False, "error": exc.reason}
        return {"success": True}

    def _command_deactivate(self) -> dict[str, Any]:
        self.deactivate()
        return {"success": True}

    def _command_status(self) -> dict[str, Any]:
        return {"success": True, "active": self.is_active}

    # Event routing
    def _on_mouseover(self, event: DomEvent) -> None:
        if not self.is_active:
            return
        node = event.target
        if not is_element(node) or node is self.page.root or node is self.page.body:
            return
        if self.overlay.owns(node):
            return
        self.last_hovered = node
        self.overlay.show_for(node)

    def _on_mouseout(self, event: DomEvent) -> None:
        if not self.is_active:
            return
        # Moving into a descendant keeps the highlight.
        if event.related_target is not None and contains(event.target, event.related_target):
            return
        self.overlay.hide()
        self.last_hovered = None

    def _on_click(self, event: DomEvent) -> None:
        if not self.is_active:
            return
        event.prevent_default()
        event.stop_propagation()

        node = event.target
        try:
            bundle = synthesize(node)
            if self.config.mark_attribute:
                node.set(self.config.mark_attribute, "1")
        except Exception as exc:
            logger.exception("element inspection failed")
            self._emit({"action": INSPECTOR_ERROR, "message": f"Error inspecting element: {_describe(exc)}"})
            self.deactivate(reason="inspected")
            return

        self.deactivate(reason="inspected")
        logger.info("element inspected css=%s xpath=%s", bundle.css, bundle.xpath)
        self._emit({"action": ELEMENT_SELECTORS, "payload": bundle.to_dict()})

    def _on_contextmenu(self, event: DomEvent) -> None:
        if not self.is_active:
            return
        event.prevent_default()
        self.deactivate(reason="contextmenu")

    def _on_keydown(self, event: DomEvent) -> None:
        if not self.is_active or event.key != "Escape":
            return
        event.prevent_default()
        self.deactivate(reason="escape")

    def _on_viewport_change(self, event: DomEvent) -> None:  # noqa: ARG002
        if not self.is_active or self.last_hovered is None:
            return
        self._recompute_geometry()
        # Second pass after layout settles (momentum scrolling, reflow).
        if self._recompute_handle is not None:
            self._recompute_handle.cancel()
        self._recompute_handle = self.page.scheduler.call_later(self.config.recompute_delay, self._on_recompute_timer)

    def _on_recompute_timer(self) -> None:
        self._recompute_handle = None
        self._recompute_geometry()

    def _recompute_geometry(self) -> None:
        node = self.last_hovered
        if not self.is_active or node is None:
            return
        if not is_attached(node, self.page.root):
            self.overlay.hide()
            self.last_hovered = None
            return
        self.overlay.refresh(node)

    def _emit(self, message: dict[str, Any]) -> None:
        try:
            self.transport.send(message)
        except Exception:
            logger.warning("transport send failed action=%s", message.get("action"), exc_info=True)


def install(page: Page, transport: Transport, config: InspectorConfig | None = None) -> DomInspector:
    """Create the page's inspector, or return the one already installed."""
    existing = page.globals.get(INSTANCE_KEY)
    if page.globals.get(LOADED_FLAG) and isinstance(existing, DomInspector):
        logger.info("inspector already loaded for this page")
        return existing
    inspector = DomInspector(page, transport, config)
    page.globals[LOADED_FLAG] = True
    page.globals[INSTANCE_KEY] = inspector
    logger.info("inspector loaded url=%s", page.url or "-")
    return inspector
