from .contracts import CommandResultV1
from .graph import analyze_financial_patterns, process_command, suggest_smart_goals
from .session import AgentSession, SessionRegistry

__all__ = [
    "AgentSession",
    "CommandResultV1",
    "SessionRegistry",
    "analyze_financial_patterns",
    "process_command",
    "suggest_smart_goals",
]
