from __future__ import annotations

from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

IntentName = Literal[
    "transaction",
    "category",
    "goal",
    "bill",
    "advice",
    "report",
    "investment",
    "clarification",
    "general",
]
ActionType = Literal[
    "create_transaction",
    "create_category",
    "create_goal",
    "update_goal",
    "create_bill",
    "update_bill",
    "delete_bill",
    "pay_bill",
    "list_bills",
    "financial_advice",
]
ActionPriority = Literal["high", "medium", "low"]
RouterMode = Literal["rules_first", "model_first"]

INTENT_VALUES: list[str] = list(IntentName.__args__)  # type: ignore[attr-defined]
ACTION_TYPES: list[str] = list(ActionType.__args__)  # type: ignore[attr-defined]


class ProposedActionV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: ActionType
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: ActionPriority = "medium"
    executed: bool = False


class IntentAnalysisV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: str = "intent_analysis_v1"
    intent: IntentName
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    needs_clarification: bool = False
    clarification_question: str | None = None
    extracted_data: Dict[str, Any] = Field(default_factory=dict)
    proposed_actions: list[ProposedActionV1] = Field(default_factory=list)
    response_message: str = ""
    suggestions: list[str] = Field(default_factory=list)
    reason_codes: list[str] = Field(default_factory=list)

    def action_data(self, action: ProposedActionV1) -> Dict[str, Any]:
        """Slot values for one action: shared extracted data overlaid by the action's own data."""
        return {**self.extracted_data, **action.data}

    def with_clarification(self, question: str, reason_code: str) -> "IntentAnalysisV1":
        return self.model_copy(
            update={
                "intent": "clarification",
                "needs_clarification": True,
                "clarification_question": question,
                "proposed_actions": [],
                "reason_codes": [*self.reason_codes, reason_code],
            }
        )


class ClarifyingQuestionV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    question_id: str
    question_text: str
    options: list[str] = Field(default_factory=list)

    def render(self) -> str:
        if not self.options:
            return self.question_text
        lines = [self.question_text, ""]
        lines.extend(f"• {option}" for option in self.options)
        return "\n".join(lines)
