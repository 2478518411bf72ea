from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from ..config import ROUTER_MODE, ROUTER_POLICY_VERSION
from ..context import UserContext
from ..history import ConversationHistory
from .contracts import IntentAnalysisV1, RouterMode
from .extractor_bedrock import analyze_intent_with_bedrock
from .policy import apply_routing_policy
from .rules import precheck_message

logger = logging.getLogger(__name__)

Analyzer = Callable[[str, UserContext, ConversationHistory], IntentAnalysisV1]


def bedrock_analyzer(today: date | None = None) -> Analyzer:
    def _analyze(message: str, context: UserContext, history: ConversationHistory) -> IntentAnalysisV1:
        analysis, meta = analyze_intent_with_bedrock(message, context, history, today=today)
        logger.info(
            "bedrock_analysis prompt_version=%s model=%s raw_chars=%d",
            meta["prompt_version"],
            meta["model_id"],
            len(meta.get("raw_text") or ""),
        )
        return analysis

    return _analyze


def last_exchange(history: ConversationHistory) -> tuple[str, str] | None:
    """The most recent user message and the agent reply that followed it."""
    turns = history.turns
    if len(turns) < 2 or turns[-2].speaker != "user" or turns[-1].speaker != "agent":
        return None
    return turns[-2].text, turns[-1].text


def analyze_command(
    message: str,
    context: UserContext,
    history: ConversationHistory,
    *,
    analyzer: Analyzer | None = None,
    mode: RouterMode | None = None,
    today: date | None = None,
) -> IntentAnalysisV1:
    """Turn one user message into a policy-checked analysis.

    In ``rules_first`` mode messages the rule table fully covers skip the
    model call. Model output always passes through ``apply_routing_policy``.
    """
    resolved_mode = mode or ROUTER_MODE
    if resolved_mode == "rules_first":
        prechecked = precheck_message(message)
        if prechecked is not None:
            logger.info(
                "intent_prechecked mode=%s policy=%s reasons=%s",
                resolved_mode,
                ROUTER_POLICY_VERSION,
                prechecked.reason_codes,
            )
            return prechecked

    analyze = analyzer or bedrock_analyzer(today)
    analysis = analyze(message, context, history)
    settled = apply_routing_policy(message, analysis, previous_exchange=last_exchange(history))
    logger.info(
        "intent_routed mode=%s policy=%s intent=%s actions=%s clarify=%s reasons=%s",
        resolved_mode,
        ROUTER_POLICY_VERSION,
        settled.intent,
        [action.type for action in settled.proposed_actions],
        settled.needs_clarification,
        settled.reason_codes,
    )
    return settled
