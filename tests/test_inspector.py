from __future__ import annotations

import pytest

from dom_inspector.config import InspectorConfig
from dom_inspector.inspector import (
    ACTIVATE,
    DEACTIVATE,
    ELEMENT_SELECTORS,
    INSPECTOR_DEACTIVATED,
    INSPECTOR_ERROR,
    LOADED_FLAG,
    DomInspector,
    InspectorState,
    install,
)
from dom_inspector.layout import Rect, StaticLayout
from dom_inspector.overlay import OVERLAY_ID
from dom_inspector.page import DOCUMENT, WINDOW, DomEvent, Page, Scheduler
from dom_inspector.transport import MemoryTransport, Transport

PAGE = """
<html><body>
  <div id="card" class="card">
    <span class="label">Title</span>
  </div>
  <p class="note">sibling</p>
  <button>Submit</button>
</body></html>
"""


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _setup(config: InspectorConfig | None = None) -> tuple[Page, StaticLayout, MemoryTransport, DomInspector]:
    layout = StaticLayout(viewport=(800.0, 600.0))
    page = Page.from_html(PAGE, layout, scheduler=Scheduler(clock=FakeClock()), url="https://example.com/")
    layout.set_rect(page.find("//div"), Rect(10, 10, 300, 100))
    layout.set_rect(page.find("//span"), Rect(20, 20, 80, 20))
    layout.set_rect(page.find("//p"), Rect(10, 120, 300, 30))
    layout.set_rect(page.find("//button"), Rect(10, 160, 90, 30))
    transport = MemoryTransport()
    inspector = install(page, transport, config)
    return page, layout, transport, inspector


def _hover(page: Page, node) -> None:  # noqa: ANN001
    page.dispatch(DomEvent("mouseover", target=node))


def test_activate_registers_listeners_and_overlay() -> None:
    page, _layout, _transport, inspector = _setup()

    assert inspector.handle_command({"action": ACTIVATE}) == {"success": True}

    assert inspector.state is InspectorState.ACTIVE
    assert page.listener_count(target=DOCUMENT) == 6
    assert page.listener_count("resize", target=WINDOW) == 1
    assert page.find(f"//div[@id='{OVERLAY_ID}']") is not None


def test_activate_twice_is_a_no_op() -> None:
    page, _layout, _transport, inspector = _setup()
    inspector.activate()
    inspector.activate()
    assert page.listener_count() == 7
    assert len(page.xpath(f"//div[@id='{OVERLAY_ID}']")) == 1


def test_hover_child_keeps_highlight_and_sibling_hides_it() -> None:
    page, _layout, _transport, inspector = _setup()
    inspector.activate()
    card = page.find("//div[@id='card']")
    span = page.find("//span")
    para = page.find("//p")

    _hover(page, card)
    assert inspector.overlay.visible
    assert inspector.overlay.highlight_geometry.left == 10

    page.dispatch(DomEvent("mouseout", target=card, related_target=span))
    assert inspector.overlay.visible
    assert inspector.last_hovered is card

    _hover(page, span)
    assert inspector.overlay.highlight_geometry.width == 80

    page.dispatch(DomEvent("mouseout", target=span, related_target=para))
    assert not inspector.overlay.visible
    assert inspector.last_hovered is None


def test_hover_ignores_body_and_overlay_nodes() -> None:
    page, _layout, _transport, inspector = _setup()
    inspector.activate()

    _hover(page, page.body)
    assert not inspector.overlay.visible

    _hover(page, inspector.overlay.highlight)
    assert inspector.last_hovered is None


def test_click_emits_bundle_and_deactivates() -> None:
    page, _layout, transport, inspector = _setup()
    inspector.activate()
    button = page.find("//button")
    _hover(page, button)

    event = page.dispatch(DomEvent("click", target=button))

    assert event.default_prevented
    assert event.propagation_stopped
    assert inspector.state is InspectorState.INACTIVE
    assert page.listener_count() == 0
    assert page.find(f"//div[@id='{OVERLAY_ID}']") is None

    [selectors] = transport.events(ELEMENT_SELECTORS)
    payload = selectors["payload"]
    assert payload["xpath"] == '//button[text()="Submit"]'
    assert payload["css"] == "button:nth-child(3)"
    assert payload["fullXPath"] == "/html[1]/body[1]/button[1]"
    assert payload["elementInfo"]["tagName"] == "button"
    assert transport.events(INSPECTOR_DEACTIVATED) == [{"action": INSPECTOR_DEACTIVATED, "reason": "inspected"}]


def test_click_can_mark_the_inspected_element() -> None:
    page, _layout, _transport, inspector = _setup(InspectorConfig(mark_attribute="data-inspected"))
    inspector.activate()
    para = page.find("//p")

    page.dispatch(DomEvent("click", target=para))

    assert para.get("data-inspected") == "1"


def test_escape_deactivates_without_selectors() -> None:
    page, _layout, transport, inspector = _setup()
    inspector.activate()

    page.dispatch(DomEvent("keydown", key="a"))
    assert inspector.is_active

    event = page.dispatch(DomEvent("keydown", key="Escape"))

    assert event.default_prevented
    assert not inspector.is_active
    assert transport.events(ELEMENT_SELECTORS) == []
    assert transport.events(INSPECTOR_DEACTIVATED) == [{"action": INSPECTOR_DEACTIVATED, "reason": "escape"}]

    page.dispatch(DomEvent("keydown", key="Escape"))
    assert len(transport.events(INSPECTOR_DEACTIVATED)) == 1


def test_contextmenu_deactivates() -> None:
    page, _layout, transport, inspector = _setup()
    inspector.activate()

    event = page.dispatch(DomEvent("contextmenu", target=page.find("//p")))

    assert event.default_prevented
    assert not inspector.is_active
    assert transport.messages == [{"action": INSPECTOR_DEACTIVATED, "reason": "contextmenu"}]


def test_deactivate_command_is_silent() -> None:
    page, _layout, transport, inspector = _setup()
    inspector.activate()

    assert inspector.handle_command({"action": DEACTIVATE}) == {"success": True}
    assert not inspector.is_active
    assert transport.messages == []
    assert page.listener_count() == 0


def test_status_and_unknown_commands() -> None:
    _page, _layout, _transport, inspector = _setup()
    assert inspector.handle_command({"action": "status"}) == {"success": True, "active": False}
    assert inspector.handle_command({"action": "bogus"}) == {"success": False, "error": "Unknown action: bogus"}


def test_scroll_recomputes_now_and_after_delay() -> None:
    page, layout, _transport, inspector = _setup()
    inspector.activate()
    para = page.find("//p")
    _hover(page, para)
    assert inspector.overlay.highlight_geometry.top == 120

    layout.scroll_by(0, 50)
    page.dispatch(DomEvent("scroll", target=para))
    assert inspector.overlay.highlight_geometry.top == 70
    assert page.scheduler.pending == 1

    # Layout settles further before the delayed pass.
    layout.scroll_by(0, 10)
    assert page.scheduler.advance(0.005) == 0
    assert page.scheduler.advance(0.005) == 1
    assert inspector.overlay.highlight_geometry.top == 60


def test_repeated_scroll_keeps_a_single_pending_recompute() -> None:
    page, _layout, _transport, inspector = _setup()
    inspector.activate()
    _hover(page, page.find("//p"))

    for _ in range(5):
        page.dispatch(DomEvent("scroll"))

    assert page.scheduler.pending == 1


def test_resize_repositions_tooltip() -> None:
    page, layout, _transport, inspector = _setup()
    layout.set_size("dom-inspector-tooltip", 200, 50)
    inspector.activate()
    _hover(page, page.find("//p"))
    assert inspector.overlay.tooltip_geometry.left == 10

    layout.resize(150, 600)
    page.dispatch(DomEvent("resize"), target=WINDOW)

    # 10 + 200 > 150 clamps to 150 - 200 - 10, then the left margin wins.
    assert inspector.overlay.tooltip_geometry.left == 10
    assert inspector.overlay.tooltip_geometry.top == 160


def test_detached_hovered_node_hides_overlay_on_recompute() -> None:
    page, _layout, _transport, inspector = _setup()
    inspector.activate()
    para = page.find("//p")
    _hover(page, para)

    para.getparent().remove(para)
    page.dispatch(DomEvent("scroll"))

    assert not inspector.overlay.visible
    assert inspector.last_hovered is None


def test_deactivate_cancels_pending_recompute() -> None:
    page, _layout, _transport, inspector = _setup()
    inspector.activate()
    _hover(page, page.find("//p"))
    page.dispatch(DomEvent("scroll"))

    inspector.deactivate()

    assert page.scheduler.pending == 0
    assert inspector.last_hovered is None


def test_install_is_idempotent() -> None:
    page, _layout, transport, inspector = _setup()

    again = install(page, transport)

    assert again is inspector
    assert page.globals[LOADED_FLAG] is True


def test_activation_failure_rolls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    page, _layout, transport, inspector = _setup()
    real_add = page.add_event_listener
    calls = {"n": 0}

    def flaky(*args, **kwargs):  # noqa: ANN002, ANN003
        calls["n"] += 1
        if calls["n"] == 3:
            raise RuntimeError("listener refused")
        return real_add(*args, **kwargs)

    monkeypatch.setattr(page, "add_event_listener", flaky)

    reply = inspector.handle_command({"action": ACTIVATE})

    assert reply == {"success": False, "error": "listener refused"}
    assert inspector.state is InspectorState.INACTIVE
    assert page.listener_count() == 0
    assert page.find(f"//div[@id='{OVERLAY_ID}']") is None
    assert transport.events(INSPECTOR_ERROR)


def test_synthesis_failure_reports_error_and_deactivates() -> None:
    page, _layout, transport, inspector = _setup()
    inspector.activate()

    page.dispatch(DomEvent("click", target="not-a-node"))

    assert not inspector.is_active
    [error] = transport.events(INSPECTOR_ERROR)
    assert error["message"].startswith("Error inspecting element:")
    assert transport.events(ELEMENT_SELECTORS) == []


def test_failing_transport_does_not_break_the_page() -> None:
    class BrokenTransport(Transport):
        def send(self, message):  # noqa: ANN001, ANN201
            raise OSError("pipe closed")

    page = Page.from_html(PAGE)
    inspector = install(page, BrokenTransport())
    inspector.activate()

    page.dispatch(DomEvent("click", target=page.find("//button")))

    assert not inspector.is_active
    assert page.listener_count() == 0
