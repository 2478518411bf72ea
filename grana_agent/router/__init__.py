from .analyze import Analyzer, analyze_command, bedrock_analyzer
from .clarify import bill_amount_question, category_type_question, goal_mutation_question
from .contracts import (
    ActionType,
    ClarifyingQuestionV1,
    IntentAnalysisV1,
    IntentName,
    ProposedActionV1,
)
from .extractor_bedrock import analyze_intent_with_bedrock, build_analysis_prompt
from .policy import apply_routing_policy
from .rules import (
    classify_category_name,
    explicit_category_type,
    is_bare_bill_inquiry,
    match_bill_inquiry,
    precheck_message,
)

__all__ = [
    "ActionType",
    "Analyzer",
    "ClarifyingQuestionV1",
    "IntentAnalysisV1",
    "IntentName",
    "ProposedActionV1",
    "analyze_command",
    "analyze_intent_with_bedrock",
    "apply_routing_policy",
    "bedrock_analyzer",
    "bill_amount_question",
    "build_analysis_prompt",
    "category_type_question",
    "classify_category_name",
    "explicit_category_type",
    "goal_mutation_question",
    "is_bare_bill_inquiry",
    "match_bill_inquiry",
    "precheck_message",
]
