from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from .actions.base import ActionOutcomeV1


class CommandResultV1(BaseModel):
    """What one conversational turn returns to the caller."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = "command_result_v1"
    success: bool
    message: str
    actions: list[ActionOutcomeV1] = Field(default_factory=list)
    confidence: float = 0.0
    reasoning: str = ""
    needs_clarification: bool = False
    clarification_question: str | None = None
    error_kind: str | None = None
    data: Dict[str, Any] = Field(default_factory=dict)
    suggestions: list[str] = Field(default_factory=list)
    trace_id: str = ""
