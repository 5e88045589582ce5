"""
Command-line entry point: one inspection cycle against a running Chrome tab.

Usage: dom-inspector [URL_SUBSTRING]

Attaches to the first page target (optionally the first whose URL contains
URL_SUBSTRING), arms the inspector and waits until the user picks an element,
presses Escape or right-clicks. Inspector events are written to stdout as JSON
lines; logs go to stderr.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any

from .cdp import CdpConnection, pick_target
from .config import InspectorConfig
from .controller import InspectorController
from .errors import InspectorError
from .live import LiveBridge
from .transport import CallbackTransport

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("dom_inspector")


def _write_message(payload: dict[str, Any]) -> None:
    """Write one event as a JSON line to stdout."""
    data = json.dumps(payload, ensure_ascii=False)
    sys.stdout.buffer.write((data + "\n").encode())
    sys.stdout.buffer.flush()


def run(config: InspectorConfig, url_contains: str | None = None) -> int:
    target = pick_target(config, url_contains)
    conn = CdpConnection(str(target["webSocketDebuggerUrl"]), timeout=config.cdp_timeout)
    bridge = LiveBridge(conn, config)
    controller = InspectorController(bridge.command, notify=lambda text: logger.info("%s", text))

    def deliver(message: dict[str, Any]) -> None:
        _write_message(message)
        controller.handle_message(message)

    try:
        bridge.start(CallbackTransport(deliver))
        if not controller.activate(str(target.get("url") or "")):
            return 1
        deadline = time.time() + config.session_timeout
        while controller.active and time.time() < deadline:
            bridge.poll()
        if controller.active:
            logger.info("no element picked within %.0fs", config.session_timeout)
            controller.deactivate()
        return 0 if controller.last_bundle is not None else 1
    finally:
        bridge.close()
        conn.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the inspector CLI."""
    args = sys.argv[1:] if argv is None else argv
    url_contains = args[0] if args else None
    config = InspectorConfig.from_env()
    try:
        code = run(config, url_contains)
    except InspectorError as exc:
        logger.error("%s", exc)
        _write_message({"action": "inspector-error", "message": exc.reason, "error": exc.to_dict()})
        code = 2
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
