"""Minimal Chrome DevTools Protocol client (websocket-client) and target discovery."""

from __future__ import annotations

import json
import socket
import time
from contextlib import suppress
from typing import Any
from urllib.error import URLError
from urllib.request import urlopen

import websocket

from .config import InspectorConfig
from .errors import CdpError


def _http_get_json(url: str, timeout: float = 2.0) -> Any:
    try:
        with urlopen(url, timeout=timeout) as resp:
            return json.loads(resp.read().decode())
    except (URLError, OSError, ValueError) as exc:
        raise CdpError(
            action="discover",
            reason=str(exc),
            suggestion="Start Chrome with --remote-debugging-port and check INSPECTOR_CDP_PORT",
        ) from exc


def list_page_targets(config: InspectorConfig) -> list[dict[str, Any]]:
    targets = _http_get_json(f"http://127.0.0.1:{config.cdp_port}/json/list")
    if not isinstance(targets, list):
        return []
    return [
        t
        for t in targets
        if isinstance(t, dict) and t.get("type") == "page" and isinstance(t.get("webSocketDebuggerUrl"), str)
    ]


def pick_target(config: InspectorConfig, url_contains: str | None = None) -> dict[str, Any]:
    """First page target, optionally the first whose URL contains `url_contains`."""
    targets = list_page_targets(config)
    if url_contains:
        targets = [t for t in targets if url_contains in str(t.get("url") or "")]
    if not targets:
        raise CdpError(
            action="discover",
            reason="no matching page target",
            suggestion="Open the page to inspect in Chrome first",
            details={"port": config.cdp_port, "urlContains": url_contains},
        )
    return targets[0]


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws_url: str, timeout: float = 5.0):
        try:
            self.ws = websocket.create_connection(ws_url, timeout=timeout)
        except (websocket.WebSocketException, OSError) as exc:
            raise CdpError(action="connect", reason=str(exc), details={"wsUrl": ws_url}) from exc
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        # Events that arrive while waiting for a response must not be dropped.
        self._event_queue: list[dict[str, Any]] = []
        self._max_event_queue = 2000

    def _push_event(self, event: dict[str, Any]) -> None:
        self._event_queue.append(event)
        if len(self._event_queue) > self._max_event_queue:
            del self._event_queue[: len(self._event_queue) - self._max_event_queue]

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        for i, ev in enumerate(self._event_queue):
            if ev.get("method") == event_name:
                self._event_queue.pop(i)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def _recv(self, timeout: float) -> dict[str, Any] | None:
        """One message, or None on timeout / undecodable frame."""
        try:
            self.ws.settimeout(max(0.0, timeout))
            raw = self.ws.recv()
        except (websocket.WebSocketTimeoutException, socket.timeout, TimeoutError):
            return None
        except (websocket.WebSocketException, OSError) as exc:
            raise CdpError(action="recv", reason=str(exc)) from exc
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params
        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(msg))
        except (websocket.WebSocketException, OSError) as exc:
            raise CdpError(action=method, reason=str(exc)) from exc
        return self._recv_until(msg_id, method)

    def _recv_until(self, expected_id: int, method: str) -> dict[str, Any]:
        deadline = time.time() + self.timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise CdpError(action=method, reason="CDP response timed out")
            data = self._recv(min(0.5, remaining))
            if data is None:
                continue
            if isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                continue
            if data.get("id") == expected_id:
                if "error" in data:
                    raise CdpError(action=method, reason=str(data["error"]))
                result = data.get("result")
                return result if isinstance(result, dict) else {}

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        """Wait for specific CDP event."""
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued

        deadline = time.time() + timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                return None
            data = self._recv(min(0.5, remaining))
            if data is None or not isinstance(data.get("method"), str) or "id" in data:
                continue
            if data.get("method") == event_name:
                params = data.get("params")
                return params if isinstance(params, dict) else {}
            self._push_event(data)

    def evaluate(self, expression: str) -> Any:
        """Runtime.evaluate with returnByValue; undefined and null become None."""
        result = self.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            text = (details.get("exception") or {}).get("description") or details.get("text") or "evaluation failed"
            raise CdpError(action="Runtime.evaluate", reason=str(text))
        value = result.get("result")
        if not isinstance(value, dict):
            return None
        if value.get("type") == "undefined":
            return None
        if value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value")

    def close(self) -> None:
        with suppress(Exception):
            self.ws.close()
