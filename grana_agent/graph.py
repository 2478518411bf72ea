from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from .actions import DispatchOutcome, HandlerContext, dispatch_actions
from .context import UserContext, load_user_context
from .contracts import CommandResultV1
from .errors import AgentError, AgentTimeoutError, AuthenticationError, InterpretationError
from .router import Analyzer, IntentAnalysisV1, analyze_command
from .session import AgentSession
from .store import get_finance_store

logger = logging.getLogger(__name__)

INTERPRETATION_FAILED_MESSAGE = "❌ Não consegui interpretar sua mensagem agora. Tente reformular o pedido."
TIMEOUT_MESSAGE = "⏱️ O serviço demorou demais para responder e nada foi repetido automaticamente. Tente novamente."
INTERNAL_ERROR_MESSAGE = "❌ Ocorreu um erro ao processar sua mensagem. Tente novamente."

FINANCIAL_PATTERNS_PROMPT = "Analise meus padrões de gastos e me dê dicas para economizar"
SMART_GOALS_PROMPT = "Sugira metas financeiras inteligentes baseadas no meu perfil"


class TurnState(TypedDict):
    trace_id: str
    message: str
    session: AgentSession
    store: Any
    analyzer: Analyzer | None
    today: date
    context: UserContext | None
    analysis: IntentAnalysisV1 | None
    outcome: DispatchOutcome | None
    result: CommandResultV1 | None


def load_context(state: TurnState) -> TurnState:
    state["context"] = load_user_context(state["store"], state["session"].user_id, today=state["today"])
    return state


def analyze_intent(state: TurnState) -> TurnState:
    state["analysis"] = analyze_command(
        state["message"],
        state["context"],
        state["session"].history,
        analyzer=state["analyzer"],
        today=state["today"],
    )
    return state


def clarification_gate(state: TurnState) -> TurnState:
    analysis = state["analysis"]
    question = analysis.clarification_question or ""
    logger.info("clarification_requested trace=%s reasons=%s", state["trace_id"], analysis.reason_codes)
    state["result"] = CommandResultV1(
        success=True,
        message=question,
        confidence=analysis.confidence,
        reasoning=analysis.reasoning,
        needs_clarification=True,
        clarification_question=question,
        suggestions=analysis.suggestions,
        trace_id=state["trace_id"],
    )
    return state


def execute_actions(state: TurnState) -> TurnState:
    analysis = state["analysis"]
    ctx = HandlerContext(store=state["store"], user_context=state["context"], today=state["today"])
    outcome = dispatch_actions(analysis, ctx)
    state["outcome"] = outcome
    failed_kinds = [action.error_kind for action in outcome.actions if action.error_kind]
    state["result"] = CommandResultV1(
        success=outcome.success,
        message=outcome.message,
        actions=outcome.actions,
        confidence=analysis.confidence,
        reasoning=analysis.reasoning,
        error_kind=failed_kinds[0] if failed_kinds and not outcome.success else None,
        data={"intent": analysis.intent, "reason_codes": analysis.reason_codes},
        suggestions=analysis.suggestions,
        trace_id=state["trace_id"],
    )
    return state


def _route_after_analysis(state: TurnState) -> str:
    return "clarification_gate" if state["analysis"].needs_clarification else "execute_actions"


def build_graph() -> Any:
    graph = StateGraph(TurnState)
    graph.add_node("load_context", load_context)
    graph.add_node("analyze_intent", analyze_intent)
    graph.add_node("clarification_gate", clarification_gate)
    graph.add_node("execute_actions", execute_actions)

    graph.set_entry_point("load_context")
    graph.add_edge("load_context", "analyze_intent")
    graph.add_conditional_edges(
        "analyze_intent",
        _route_after_analysis,
        {"clarification_gate": "clarification_gate", "execute_actions": "execute_actions"},
    )
    graph.add_edge("clarification_gate", END)
    graph.add_edge("execute_actions", END)
    return graph.compile()


_compiled_graph: Any = None


def _get_graph() -> Any:
    global _compiled_graph
    if _compiled_graph is None:
        _compiled_graph = build_graph()
    return _compiled_graph


def _failure_result(exc: AgentError, trace_id: str) -> CommandResultV1:
    if isinstance(exc, AuthenticationError):
        message = exc.user_message
    elif isinstance(exc, InterpretationError):
        message = INTERPRETATION_FAILED_MESSAGE
    elif isinstance(exc, AgentTimeoutError):
        message = TIMEOUT_MESSAGE
    else:
        message = INTERNAL_ERROR_MESSAGE
    return CommandResultV1(success=False, message=message, error_kind=exc.kind, trace_id=trace_id)


def process_command(
    session: AgentSession,
    message: str,
    *,
    store: Any = None,
    analyzer: Analyzer | None = None,
    today: date | None = None,
) -> CommandResultV1:
    """Run one conversational turn for ``session``.

    Every turn, failed ones included, leaves exactly two new history
    entries: the user's message and the agent's reply.
    """
    trace_id = f"trc_{uuid.uuid4().hex[:8]}"
    logger.info("turn_started trace=%s user=%s", trace_id, session.user_id)
    try:
        state = _get_graph().invoke(
            {
                "trace_id": trace_id,
                "message": message,
                "session": session,
                "store": store if store is not None else get_finance_store(),
                "analyzer": analyzer,
                "today": today or date.today(),
                "context": None,
                "analysis": None,
                "outcome": None,
                "result": None,
            }
        )
        result = state["result"]
    except AgentError as exc:
        log = logger.warning if isinstance(exc, AuthenticationError) else logger.error
        log("turn_failed trace=%s user=%s kind=%s error=%s", trace_id, session.user_id, exc.kind, exc)
        result = _failure_result(exc, trace_id)

    session.history.add_user_message(message)
    session.history.add_agent_message(result.message)
    logger.info(
        "turn_finished trace=%s user=%s success=%s clarify=%s error_kind=%s",
        trace_id,
        session.user_id,
        result.success,
        result.needs_clarification,
        result.error_kind,
    )
    return result


def analyze_financial_patterns(session: AgentSession, **kwargs: Any) -> CommandResultV1:
    return process_command(session, FINANCIAL_PATTERNS_PROMPT, **kwargs)


def suggest_smart_goals(session: AgentSession, **kwargs: Any) -> CommandResultV1:
    return process_command(session, SMART_GOALS_PROMPT, **kwargs)
