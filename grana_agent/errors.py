from __future__ import annotations


class AgentError(RuntimeError):
    """Base error for the command pipeline.

    ``kind`` is the stable identifier reported to callers in
    ``CommandResultV1.error_kind`` and in per-action outcomes.
    """

    kind = "internal"

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or message


# Turn-fatal errors


class AuthenticationError(AgentError):
    kind = "unauthenticated"


class InterpretationError(AgentError):
    kind = "interpretation"

    def __init__(self, message: str, *, details: list[str] | None = None, raw_text: str = "") -> None:
        super().__init__(message)
        self.details = list(details or [])
        self.raw_text = raw_text


class AgentTimeoutError(AgentError):
    kind = "timeout"


# Action-local errors


class ActionError(AgentError):
    kind = "action"


class ActionValidationError(ActionError):
    kind = "validation"


class EntityNotFoundError(ActionError):
    kind = "not_found"

    def __init__(self, entity: str, query: str | None, message: str) -> None:
        super().__init__(message)
        self.entity = entity
        self.query = query


class AmbiguousMatchError(ActionError):
    kind = "ambiguous"

    def __init__(self, entity: str, query: str, candidates: list[str], message: str) -> None:
        super().__init__(message)
        self.entity = entity
        self.query = query
        self.candidates = candidates


class PersistenceError(ActionError):
    kind = "persistence"


class PartialApplyError(ActionError):
    kind = "partially_applied"


class StoreError(PersistenceError):
    pass
