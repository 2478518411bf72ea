from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError
from pydantic import ValidationError

from ..config import (
    AWS_REGION,
    BEDROCK_CONNECT_TIMEOUT,
    BEDROCK_MAX_TOKENS,
    BEDROCK_MODEL_ID,
    BEDROCK_READ_TIMEOUT,
    BEDROCK_TEMPERATURE,
)
from ..context import UserContext, render_context_summary
from ..errors import AgentTimeoutError, InterpretationError
from ..history import ConversationHistory
from .contracts import IntentAnalysisV1
from .schemas import validate_intent_analysis_payload

logger = logging.getLogger(__name__)
PROMPT_VERSION = "intent_analysis_v1"

SYSTEM_PROMPT = (
    "Você é um assistente financeiro pessoal brasileiro. Interprete a mensagem do usuário e "
    "responda SOMENTE com um objeto JSON válido, sem markdown, comentários ou texto extra."
)

_KEY_ALIASES = {
    "needsClarification": "needs_clarification",
    "clarificationQuestion": "clarification_question",
    "actions": "proposed_actions",
}


def build_analysis_prompt(
    message: str,
    context: UserContext,
    history: ConversationHistory,
    *,
    today: date,
) -> str:
    return (
        f"DATA DE HOJE: {today.isoformat()}\n\n"
        "CONTEXTO FINANCEIRO DO USUÁRIO:\n"
        f"{render_context_summary(context)}\n\n"
        "HISTÓRICO RECENTE DA CONVERSA:\n"
        f"{history.render()}\n\n"
        f"MENSAGEM ATUAL: {message}\n\n"
        "REGRAS:\n"
        "1. Use o histórico para completar informações que faltam na mensagem atual "
        "(ex.: o usuário responde só o valor ou só o tipo de uma pergunta anterior).\n"
        "2. Valores em reais viram números (\"R$ 1.500,00\" -> 1500). Datas no formato AAAA-MM-DD.\n"
        "3. Se faltar informação essencial e o histórico não ajudar, use needsClarification=true, "
        "escreva clarificationQuestion e deixe actions vazio. Nunca invente valores.\n"
        "4. Para categorias, só informe type quando o usuário disser se é despesa ou receita.\n"
        "5. Para metas, diferencie aporte (dinheiro guardado) de target_amount (novo objetivo).\n"
        "6. Para pagar contas, use o id da conta do contexto quando for claro qual é.\n\n"
        "AÇÕES DISPONÍVEIS (campo type) E SEUS DADOS:\n"
        "- create_transaction: amount, description, category, type (income|expense), payment_method, transaction_date\n"
        "- create_category: name, type (income|expense), budget, icon, color\n"
        "- create_goal: title, target_amount, target_date, description\n"
        "- update_goal: goal_id ou title, aporte, target_amount, current_amount, new_title, target_date\n"
        "- create_bill: title, amount, due_date ou due_day, bill_type (payable|receivable), "
        "is_recurring, recurring_interval (daily|weekly|monthly|yearly), category, description\n"
        "- update_bill: bill_id ou old_name, new_name, amount, due_date ou due_day\n"
        "- delete_bill: bill_id ou title\n"
        "- pay_bill: bill_id ou title, ou pay_all=true\n"
        "- list_bills: sem dados\n"
        "- financial_advice: topic\n\n"
        "FORMATO DA RESPOSTA:\n"
        "{\n"
        '  "intent": "transaction|category|goal|bill|advice|report|investment|clarification|general",\n'
        '  "confidence": 0.0,\n'
        '  "reasoning": "explicação curta",\n'
        '  "needsClarification": false,\n'
        '  "clarificationQuestion": null,\n'
        '  "extracted_data": {},\n'
        '  "actions": [{"type": "create_transaction", "data": {}, "priority": "high|medium|low"}],\n'
        '  "suggestions": [],\n'
        '  "response_message": "resposta amigável em português"\n'
        "}"
    )


def _extract_text_from_converse_payload(payload: Dict[str, Any]) -> str:
    output = payload.get("output") or {}
    message = output.get("message") or {}
    content = message.get("content") or []
    texts: list[str] = []
    if isinstance(content, list):
        for item in content:
            if isinstance(item, dict) and isinstance(item.get("text"), str):
                texts.append(item["text"])
    return "\n".join(texts).strip()


def _bedrock_client() -> Any:
    config = Config(
        connect_timeout=BEDROCK_CONNECT_TIMEOUT,
        read_timeout=BEDROCK_READ_TIMEOUT,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )
    return boto3.client("bedrock-runtime", region_name=AWS_REGION, config=config)


def _invoke_bedrock_converse(prompt: str, *, model_id: str, client: Any = None) -> str:
    client = client or _bedrock_client()
    response = client.converse(
        modelId=model_id,
        system=[{"text": SYSTEM_PROMPT}],
        messages=[{"role": "user", "content": [{"text": prompt}]}],
        inferenceConfig={"temperature": BEDROCK_TEMPERATURE, "maxTokens": BEDROCK_MAX_TOKENS},
    )
    return _extract_text_from_converse_payload(response)


def _sanitize_analysis_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {_KEY_ALIASES.get(key, key): value for key, value in payload.items()}
    if normalized.get("response_message") is None:
        normalized["response_message"] = ""
    if normalized.get("suggestions") is None:
        normalized["suggestions"] = []
    return normalized


def analyze_intent_with_bedrock(
    message: str,
    context: UserContext,
    history: ConversationHistory,
    *,
    today: date | None = None,
    model_id: str | None = None,
    client: Any = None,
) -> tuple[IntentAnalysisV1, Dict[str, Any]]:
    """Ask the model for a structured analysis of ``message``.

    Called once per turn. Output that is not exactly one JSON object matching
    the analysis schema raises ``InterpretationError``; nothing is repaired.
    """
    resolved_model = (model_id or BEDROCK_MODEL_ID or "").strip()
    if not resolved_model:
        raise InterpretationError("language model not configured", details=["model_not_configured"])

    today = today or date.today()
    runtime_meta: Dict[str, Any] = {"prompt_version": PROMPT_VERSION, "model_id": resolved_model}
    prompt_text = build_analysis_prompt(message, context, history, today=today)

    try:
        raw_text = _invoke_bedrock_converse(prompt_text, model_id=resolved_model, client=client)
    except (ReadTimeoutError, ConnectTimeoutError) as exc:
        logger.warning("intent_analysis_timeout model=%s error=%s", resolved_model, exc)
        raise AgentTimeoutError(f"language service timed out: {exc}") from exc
    except (BotoCoreError, ClientError) as exc:
        logger.warning("intent_analysis_invoke_failed model=%s error=%s", resolved_model, exc)
        raise InterpretationError(
            "language service call failed", details=[f"bedrock_invoke_error:{type(exc).__name__}"]
        ) from exc
    runtime_meta["raw_text"] = raw_text

    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        logger.warning("intent_analysis_invalid_json model=%s raw=%r", resolved_model, raw_text[:500])
        raise InterpretationError("response is not valid JSON", details=["invalid_json"], raw_text=raw_text) from exc
    if not isinstance(payload, dict):
        raise InterpretationError("response is not a JSON object", details=["invalid_json"], raw_text=raw_text)

    schema_errors = validate_intent_analysis_payload(payload)
    if schema_errors:
        logger.warning("intent_analysis_invalid_schema model=%s errors=%s", resolved_model, schema_errors[:3])
        raise InterpretationError(
            "response does not match the analysis schema",
            details=["invalid_schema", *[f"schema:{msg}" for msg in schema_errors[:3]]],
            raw_text=raw_text,
        )

    try:
        analysis = IntentAnalysisV1.model_validate(_sanitize_analysis_payload(payload))
    except ValidationError as exc:
        raise InterpretationError(
            "response does not match the analysis contract", details=["invalid_contract", str(exc)], raw_text=raw_text
        ) from exc

    logger.info(
        "intent_analyzed model=%s intent=%s confidence=%.2f actions=%d clarify=%s",
        resolved_model,
        analysis.intent,
        analysis.confidence,
        len(analysis.proposed_actions),
        analysis.needs_clarification,
    )
    return analysis, runtime_meta
