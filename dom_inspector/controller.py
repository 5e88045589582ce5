"""Privileged-side counterpart of the inspector.

The controller decides whether a page may be inspected, sends the
activate/deactivate commands, and turns the inspector's events back into state
and user-facing status text.
"""

from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Callable
from typing import Any

from .errors import InjectionError
from .inspector import ACTIVATE, DEACTIVATE, ELEMENT_SELECTORS, INSPECTOR_DEACTIVATED, INSPECTOR_ERROR

logger = logging.getLogger("dom_inspector.controller")

MESSAGES = {
    "activated": (
        "Inspector mode activated! Switch to the webpage tab, hover over elements to highlight them. "
        "Right-click or press Escape to exit inspector mode."
    ),
    "deactivated": "Inspector mode deactivated.",
    "no_target": "No active tab found. Please open a webpage and try again.",
    "activation_error": "Could not activate inspector. Make sure you have a webpage open and refresh the page if needed.",
    "injection_error": "Could not inject inspector into the page. Please refresh the page and try again.",
    "element_failure": "Failed to generate selectors for the selected element.",
    "element_selected": "Selectors generated for <{tag}>: {css}",
}

BLOCKED_SCHEMES = frozenset({"chrome", "chrome-extension", "devtools", "edge", "about", "view-source"})

CommandSender = Callable[[dict[str, Any]], "dict[str, Any] | None"]


def validate_target_url(url: str | None) -> None:
    """Refuse browser-internal pages: content scripts cannot run there."""
    if not url or not url.strip():
        raise InjectionError(action="inject", reason="no target page", suggestion=MESSAGES["no_target"])
    scheme = urllib.parse.urlparse(url.strip()).scheme.lower()
    if scheme in BLOCKED_SCHEMES:
        raise InjectionError(
            action="inject",
            reason=f"cannot inject into {scheme}:// pages",
            suggestion="Open a regular web page and try again",
            details={"url": url},
        )


class InspectorController:
    def __init__(self, send_command: CommandSender, notify: Callable[[str], Any] | None = None) -> None:
        self._send_command = send_command
        self._notify = notify
        self.active = False
        self.last_bundle: dict[str, Any] | None = None
        self.last_error: str | None = None

    def activate(self, url: str | None) -> bool:
        try:
            validate_target_url(url)
        except InjectionError as exc:
            logger.info("inspector injection refused: %s", exc.reason)
            self.last_error = exc.reason
            self._say(MESSAGES["no_target"] if exc.reason == "no target page" else MESSAGES["injection_error"])
            return False

        try:
            reply = self._send_command({"action": ACTIVATE})
        except Exception as exc:  # noqa: BLE001
            logger.error("error activating inspector: %s", exc)
            self.last_error = str(exc)
            self._say(MESSAGES["activation_error"])
            return False

        if not isinstance(reply, dict) or reply.get("success") is not True:
            error = reply.get("error") if isinstance(reply, dict) else "no reply"
            logger.error("inspector refused activation: %s", error)
            self.last_error = str(error)
            self._say(MESSAGES["activation_error"])
            return False

        self.active = True
        self.last_error = None
        self._say(MESSAGES["activated"])
        return True

    def deactivate(self) -> None:
        try:
            self._send_command({"action": DEACTIVATE})
        except Exception as exc:  # noqa: BLE001
            logger.error("error deactivating inspector: %s", exc)
        self.active = False
        self._say(MESSAGES["deactivated"])

    def toggle(self, url: str | None) -> bool:
        if self.active:
            self.deactivate()
            return False
        return self.activate(url)

    def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        action = message.get("action") if isinstance(message, dict) else None
        if action == INSPECTOR_DEACTIVATED:
            if self.active:
                self.active = False
                self._say(MESSAGES["deactivated"])
        elif action == INSPECTOR_ERROR:
            text = str(message.get("message") or MESSAGES["element_failure"])
            logger.error("inspector error: %s", text)
            self.active = False
            self.last_error = text
            self._say(text)
        elif action == ELEMENT_SELECTORS:
            payload = message.get("payload")
            self.active = False
            if isinstance(payload, dict):
                self.last_bundle = payload
                info = payload.get("elementInfo") or {}
                self._say(MESSAGES["element_selected"].format(tag=info.get("tagName", "?"), css=payload.get("css", "")))
            else:
                self._say(MESSAGES["element_failure"])
        return {"success": True}

    def _say(self, text: str) -> None:
        if self._notify is not None:
            self._notify(text)
