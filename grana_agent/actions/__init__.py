from .base import ActionOutcomeV1, ActionResult, HandlerContext
from .dispatcher import ACTION_LABELS, HANDLERS, DispatchOutcome, dispatch_actions
from .payloads import build_payload

__all__ = [
    "ACTION_LABELS",
    "ActionOutcomeV1",
    "ActionResult",
    "DispatchOutcome",
    "HANDLERS",
    "HandlerContext",
    "build_payload",
    "dispatch_actions",
]
