"""
DOM element inspector and selector synthesis.

Modules:
- dom: lxml document helpers (element filtering, containment, attachment)
- metadata: element summary, attributes and visible text
- synthesizer: CSS / XPath / absolute XPath candidates verified by evaluation
- layout: rectangles and the layout provider interface
- overlay: highlight box and tooltip
- page: page host (events, listeners, timers)
- inspector: activation lifecycle and event routing
- transport: outbound channels for inspector events
- controller: privileged-side activation and result handling
- cdp, live: Chrome DevTools Protocol attachment
"""

from .config import InspectorConfig
from .controller import InspectorController, validate_target_url
from .errors import (
    ActivationError,
    CdpError,
    EvaluationError,
    InjectionError,
    InspectorError,
    SynthesisError,
)
from .inspector import DomInspector, InspectorState, install
from .layout import Rect, StaticLayout
from .metadata import ElementSummary, categorize, element_text, get_attributes, summarize
from .overlay import OverlayRenderer, format_tooltip, position_tooltip
from .page import DOCUMENT, WINDOW, DomEvent, Page, Scheduler
from .synthesizer import SelectorBundle, build_absolute_xpath, build_css, build_xpath, synthesize
from .transport import CallbackTransport, JsonLinesTransport, MemoryTransport, Transport

__all__ = [
    "DOCUMENT",
    "WINDOW",
    "ActivationError",
    "CallbackTransport",
    "CdpError",
    "DomEvent",
    "DomInspector",
    "ElementSummary",
    "EvaluationError",
    "InjectionError",
    "InspectorConfig",
    "InspectorController",
    "InspectorError",
    "InspectorState",
    "JsonLinesTransport",
    "MemoryTransport",
    "OverlayRenderer",
    "Page",
    "Rect",
    "Scheduler",
    "SelectorBundle",
    "StaticLayout",
    "SynthesisError",
    "Transport",
    "build_absolute_xpath",
    "build_css",
    "build_xpath",
    "categorize",
    "element_text",
    "format_tooltip",
    "get_attributes",
    "install",
    "position_tooltip",
    "summarize",
    "synthesize",
    "validate_target_url",
]
