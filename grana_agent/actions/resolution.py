from __future__ import annotations

from typing import Any, Dict, Sequence

from ..errors import AmbiguousMatchError, EntityNotFoundError
from ..formatting import normalize_text

ENTITY_LABELS = {"bill": "Conta", "goal": "Meta", "category": "Categoria"}


def _label(row: Dict[str, Any], label_key: str) -> str:
    return str(row.get(label_key) or "")


def find_by_id(rows: Sequence[Dict[str, Any]], row_id: str) -> Dict[str, Any] | None:
    for row in rows:
        if str(row.get("id")) == str(row_id):
            return row
    return None


def match_by_name(rows: Sequence[Dict[str, Any]], query: str, *, label_key: str) -> list[Dict[str, Any]]:
    """Case- and accent-insensitive match: exact names first, then substring in either direction."""
    needle = normalize_text(query)
    if not needle:
        return []
    exact = [row for row in rows if normalize_text(_label(row, label_key)) == needle]
    if exact:
        return exact
    partial: list[Dict[str, Any]] = []
    for row in rows:
        label = normalize_text(_label(row, label_key))
        if label and (needle in label or label in needle):
            partial.append(row)
    return partial


def resolve_entity(
    rows: Sequence[Dict[str, Any]],
    *,
    entity: str,
    row_id: str | None = None,
    query: str | None = None,
    label_key: str = "title",
) -> Dict[str, Any] | None:
    """Pick exactly one row by id, then by name.

    Returns None when neither an id nor a name was given. More than one
    name match raises ``AmbiguousMatchError``; nothing is picked silently.
    """
    label = ENTITY_LABELS.get(entity, entity.capitalize())
    if row_id:
        row = find_by_id(rows, row_id)
        if row is None:
            raise EntityNotFoundError(entity, row_id, f"❌ {label} não encontrada (id {row_id}).")
        return row
    if not query:
        return None

    matches = match_by_name(rows, query, label_key=label_key)
    if not matches:
        raise EntityNotFoundError(entity, query, f'❌ {label} "{query}" não encontrada.')
    if len(matches) > 1:
        candidates = [_label(row, label_key) for row in matches]
        listed = ", ".join(f'"{name}"' for name in candidates)
        raise AmbiguousMatchError(
            entity,
            query,
            candidates,
            f'🤔 Encontrei mais de uma {label.lower()} para "{query}": {listed}. Qual delas?',
        )
    return matches[0]
