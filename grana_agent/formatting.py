from __future__ import annotations

import hashlib
import re
import unicodedata
from datetime import date, datetime
from typing import Any

CATEGORY_COLORS = ["#3B82F6", "#EF4444", "#10B981", "#F59E0B", "#8B5CF6", "#EC4899"]
DEFAULT_CATEGORY_ICON = "📂"

# Ordered: first keyword contained in the name wins.
CATEGORY_ICONS: list[tuple[str, str]] = [
    ("supermercado", "🛒"),
    ("alimentação", "🍽️"),
    ("comida", "🍽️"),
    ("mercado", "🛒"),
    ("transporte", "🚗"),
    ("uber", "🚗"),
    ("táxi", "🚖"),
    ("ônibus", "🚌"),
    ("saúde", "🏥"),
    ("médico", "👨‍⚕️"),
    ("farmácia", "💊"),
    ("educação", "📚"),
    ("curso", "🎓"),
    ("livro", "📖"),
    ("lazer", "🎮"),
    ("jogo", "🎮"),
    ("gaming", "🎮"),
    ("entretenimento", "🎬"),
    ("cinema", "🎬"),
    ("netflix", "📺"),
    ("casa", "🏠"),
    ("moradia", "🏠"),
    ("aluguel", "🏠"),
    ("cachorro", "🐕"),
    ("gato", "🐱"),
    ("pet", "🐕"),
    ("animal", "🐾"),
    ("investimento", "📈"),
    ("investir", "💰"),
    ("salário", "💼"),
    ("trabalho", "💼"),
    ("freelance", "💻"),
    ("roupa", "👕"),
    ("vestuário", "👔"),
    ("beleza", "💄"),
    ("cabeleireiro", "✂️"),
    ("esporte", "⚽"),
    ("academia", "🏋️"),
    ("gym", "💪"),
    ("viagem", "✈️"),
    ("hotel", "🏨"),
    ("combustível", "⛽"),
    ("gasolina", "⛽"),
    ("telefone", "📱"),
    ("internet", "📶"),
]

RECURRING_INTERVAL_TEXT = {
    "daily": "diário",
    "weekly": "semanal",
    "monthly": "mensal",
    "yearly": "anual",
}

_THOUSANDS_ONLY = re.compile(r"^\d{1,3}(\.\d{3})+$")
_MULTIPLIER_SUFFIX = re.compile(r"^(?P<number>[\d.,]+)\s*(?P<suffix>mil|k)$")


def normalize_text(text: str) -> str:
    """Lowercase and strip accents so "Salário" and "salario" compare equal."""
    stripped = "".join(
        ch for ch in unicodedata.normalize("NFD", str(text or "")) if unicodedata.category(ch) != "Mn"
    )
    return " ".join(stripped.lower().split())


def format_money(value: float) -> str:
    """Format as Brazilian currency, e.g. ``R$ 1.234,50``."""
    sign = "-" if value < 0 else ""
    formatted = f"{abs(float(value)):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {formatted}"


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def parse_amount(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower().replace("r$", "").replace("reais", "").replace("real", "").strip()
    if not text:
        return None
    multiplier = 1.0
    suffix_match = _MULTIPLIER_SUFFIX.match(text)
    if suffix_match:
        text = suffix_match.group("number")
        multiplier = 1000.0
    text = text.replace(" ", "")
    if "," in text and "." in text:
        text = text.replace(".", "").replace(",", ".")
    elif "," in text:
        text = text.replace(",", ".")
    elif _THOUSANDS_ONLY.match(text):
        text = text.replace(".", "")
    try:
        return float(text) * multiplier
    except ValueError as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d/%m/%y"):
        try:
            return datetime.strptime(text[:10] if fmt == "%Y-%m-%d" else text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValueError(f"invalid date: {value!r}") from exc


def category_icon(name: str) -> str:
    lowered = str(name or "").lower()
    for keyword, icon in CATEGORY_ICONS:
        if keyword in lowered:
            return icon
    return DEFAULT_CATEGORY_ICON


def category_color(name: str) -> str:
    digest = hashlib.sha256(normalize_text(name).encode("utf-8")).hexdigest()
    return CATEGORY_COLORS[int(digest[:8], 16) % len(CATEGORY_COLORS)]


def recurring_interval_text(interval: str | None) -> str:
    return RECURRING_INTERVAL_TEXT.get(str(interval or ""), "recorrente")
