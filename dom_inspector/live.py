"""Drive the inspector against a real Chrome tab over CDP.

The page's DOM is snapshotted into lxml; the inspector works on the snapshot.
A small forwarder script in the real page reports DOM events through a
`Runtime.addBinding` binding (targets identified by absolute XPath), geometry is
measured in the real page, and the overlay nodes are mirrored back into it.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from .config import InspectorConfig
from .dom import is_element, load_document
from .errors import CdpError, EvaluationError
from .inspector import DomInspector, install
from .layout import Rect
from .overlay import OVERLAY_ID, OVERLAY_MARKER, TOOLTIP_ID
from .page import DOCUMENT, WINDOW, DomEvent, Page
from .synthesizer import build_absolute_xpath, evaluate_xpath
from .transport import Transport

logger = logging.getLogger("dom_inspector.live")

BINDING_NAME = "__domInspectorEvent"
WINDOW_EVENTS = frozenset({"resize"})
TARGETED_EVENTS = frozenset({"mouseover", "mouseout", "click"})

FORWARDER_JS = r"""
(() => {
  const binding = %(binding)s;
  const marker = %(marker)s;
  if (window.__domInspectorBridge) return { ok: true, reused: true };

  const absXPath = (el) => {
    if (!el || el.nodeType !== 1) return null;
    const parts = [];
    for (let n = el; n && n.nodeType === 1; n = n.parentElement) {
      let i = 1;
      for (let s = n.previousElementSibling; s; s = s.previousElementSibling) {
        if (s.localName === n.localName) i++;
      }
      parts.unshift(n.localName + '[' + i + ']');
    }
    return '/' + parts.join('/');
  };

  const state = { armed: false };
  const forward = (ev) => {
    if (!state.armed) return;
    const stop = ev.type === 'click' || ev.type === 'contextmenu' || (ev.type === 'keydown' && ev.key === 'Escape');
    if (stop) { ev.preventDefault(); ev.stopPropagation(); }
    const target = ev.target && ev.target.nodeType === 1 ? ev.target : document.documentElement;
    const payload = { type: ev.type, target: absXPath(target), related: absXPath(ev.relatedTarget), key: ev.key || '' };
    try { window[binding](JSON.stringify(payload)); } catch (e) {}
  };
  for (const t of ['mouseover', 'mouseout', 'click', 'contextmenu', 'keydown', 'scroll']) {
    document.addEventListener(t, forward, true);
  }
  window.addEventListener('resize', forward, false);

  const sync = (items, ids, armed) => {
    state.armed = !!armed;
    const keep = new Set(items.map((it) => it.id));
    for (const id of ids) {
      const el = document.getElementById(id);
      if (el && !keep.has(id)) el.remove();
    }
    for (const it of items) {
      let el = document.getElementById(it.id);
      if (!el) {
        el = document.createElement('div');
        el.id = it.id;
        el.setAttribute(marker, '');
        document.documentElement.appendChild(el);
      }
      el.setAttribute('style', it.style || '');
      el.textContent = it.text || '';
    }
    return true;
  };

  const measure = (item) => {
    if (item) sync([item], [], state.armed);
    const el = item ? document.getElementById(item.id) : null;
    if (!el) return null;
    const r = el.getBoundingClientRect();
    return { left: r.left, top: r.top, width: r.width, height: r.height };
  };

  window.__domInspectorBridge = { state, absXPath, sync, measure };
  return { ok: true, reused: false };
})()
"""

RECT_BY_XPATH_JS = r"""
(() => {
  const node = document.evaluate(%(xpath)s, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue;
  if (!node || !node.getBoundingClientRect) return null;
  const r = node.getBoundingClientRect();
  return { left: r.left, top: r.top, width: r.width, height: r.height };
})()
"""


def _rect_from(value: Any) -> Rect:
    if not isinstance(value, dict):
        return Rect()
    try:
        return Rect(
            float(value.get("left") or 0.0),
            float(value.get("top") or 0.0),
            float(value.get("width") or 0.0),
            float(value.get("height") or 0.0),
        )
    except (TypeError, ValueError):
        return Rect()


class CdpLayout:
    """Layout measured in the real page."""

    def __init__(self, conn: Any) -> None:
        self.conn = conn

    def bounding_rect(self, node: Any) -> Rect:
        if not is_element(node):
            return Rect()
        if node.get(OVERLAY_MARKER) is not None:
            item = {"id": node.get("id") or "", "style": node.get("style") or "", "text": node.text or ""}
            expression = (
                "window.__domInspectorBridge ? window.__domInspectorBridge.measure("
                + json.dumps(item)
                + ") : null"
            )
            return _rect_from(self.conn.evaluate(expression))
        xpath = build_absolute_xpath(node)
        return _rect_from(self.conn.evaluate(RECT_BY_XPATH_JS % {"xpath": json.dumps(xpath)}))

    def viewport(self) -> tuple[float, float]:
        value = self.conn.evaluate("[window.innerWidth, window.innerHeight]")
        if isinstance(value, list) and len(value) == 2:
            try:
                return float(value[0]), float(value[1])
            except (TypeError, ValueError):
                pass
        return 0.0, 0.0


class LiveBridge:
    def __init__(self, conn: Any, config: InspectorConfig | None = None) -> None:
        self.conn = conn
        self.config = config or InspectorConfig()
        self.layout = CdpLayout(conn)
        self.page: Page | None = None
        self.inspector: DomInspector | None = None
        self._last_mirror: Any = None

    def _load_root(self) -> tuple[Any, str]:
        markup = self.conn.evaluate("document.documentElement.outerHTML")
        if not isinstance(markup, str) or not markup:
            raise CdpError(action="snapshot", reason="page returned no markup", suggestion="Wait for the page to load")
        url = self.conn.evaluate("location.href")
        return load_document(markup), url if isinstance(url, str) else ""

    def snapshot(self) -> Page:
        root, url = self._load_root()
        if self.page is None:
            self.page = Page(root, self.layout, url=url)
        else:
            self.page.replace_document(root)
            self.page.url = url
            if self.inspector is not None:
                self.inspector.document_replaced()
        return self.page

    def start(self, transport: Transport) -> DomInspector:
        page = self.snapshot()
        self.conn.send("Runtime.enable")
        self.conn.send("Runtime.addBinding", {"name": BINDING_NAME})
        self.conn.evaluate(FORWARDER_JS % {"binding": json.dumps(BINDING_NAME), "marker": json.dumps(OVERLAY_MARKER)})
        self.inspector = install(page, transport, self.config)
        return self.inspector

    def command(self, message: dict[str, Any]) -> dict[str, Any]:
        if self.inspector is None:
            return {"success": False, "error": "bridge not started"}
        reply = self.inspector.handle_command(message)
        self.sync()
        return reply

    def poll(self, timeout: float | None = None) -> int:
        """Process forwarded events for up to `timeout` seconds; returns how many were handled."""
        if self.page is None:
            return 0
        wait = self.config.poll_interval if timeout is None else max(0.0, timeout)
        deadline = time.time() + wait
        handled = 0
        while True:
            remaining = deadline - time.time()
            params = self.conn.wait_for_event("Runtime.bindingCalled", timeout=max(0.0, remaining))
            if params is not None and params.get("name") == BINDING_NAME and self.handle_payload(params.get("payload")):
                handled += 1
            self.page.scheduler.run_due()
            self.sync()
            if params is None or time.time() >= deadline:
                return handled

    def handle_payload(self, raw: Any) -> bool:
        """Dispatch one forwarded event on the snapshot; False when it was dropped."""
        if self.page is None:
            return False
        try:
            data = json.loads(raw) if isinstance(raw, str) else None
        except json.JSONDecodeError:
            data = None
        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            logger.debug("ignoring malformed bridge payload: %r", raw)
            return False

        event_type = data["type"]
        target = self._resolve(data.get("target"))
        if target is None and event_type in TARGETED_EVENTS:
            # The page changed since the last snapshot.
            self.snapshot()
            target = self._resolve(data.get("target"))
            if target is None:
                logger.debug("event target not found in snapshot: %s", data.get("target"))
                return False
        event = DomEvent(
            type=event_type,
            target=target,
            related_target=self._resolve(data.get("related")),
            key=str(data.get("key") or ""),
        )
        self.page.dispatch(event, target=WINDOW if event_type in WINDOW_EVENTS else DOCUMENT)
        return True

    def _resolve(self, path: Any) -> Any | None:
        if self.page is None or not isinstance(path, str) or not path:
            return None
        try:
            matches = evaluate_xpath(self.page.root, path)
        except EvaluationError:
            return None
        if len(matches) == 1 and is_element(matches[0]):
            return matches[0]
        return None

    def sync(self) -> None:
        """Mirror the overlay and the armed flag into the real page when they changed."""
        if self.inspector is None:
            return
        items = self.inspector.overlay.mirror_specs()
        armed = self.inspector.is_active
        state = (json.dumps(items, sort_keys=True), armed)
        if state == self._last_mirror:
            return
        expression = (
            "window.__domInspectorBridge && window.__domInspectorBridge.sync("
            f"{json.dumps(items)}, {json.dumps([OVERLAY_ID, TOOLTIP_ID])}, {json.dumps(armed)})"
        )
        self.conn.evaluate(expression)
        self._last_mirror = state

    def close(self) -> None:
        if self.inspector is not None:
            self.inspector.deactivate()
        try:
            self.sync()
        except CdpError as exc:
            logger.debug("final overlay sync failed: %s", exc.reason)
