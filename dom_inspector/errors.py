"""
Error types for the inspector.

- InspectorError: structured base with action/reason/suggestion
- ActivationError: overlay or listeners could not be set up
- SynthesisError: selector building failed for the clicked node
- EvaluationError: a candidate selector could not be evaluated
- InjectionError: the controller refused the target page
- CdpError: DevTools transport failure
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class InspectorError(Exception):
    """Structured error carrying enough context to render a reply."""

    action: str
    reason: str
    suggestion: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        msg = f"{self.action} failed: {self.reason}"
        if self.suggestion:
            msg += f". Suggestion: {self.suggestion}"
        return msg

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "action": self.action,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


class ActivationError(InspectorError):
    pass


class SynthesisError(InspectorError):
    pass


class EvaluationError(InspectorError):
    pass


class InjectionError(InspectorError):
    pass


class CdpError(InspectorError):
    pass
