"""Helpers for turning tool payloads into chat text"""

from typing import Any, Callable, Dict, List, Sequence

LIST_LIMIT = 10


def dig(obj: Any, *path, default=None):
    """
    Walk nested dicts/lists without raising

    Example:
        dig(order, "purchase_units", 0, "amount", "value")
    """
    current = obj
    for key in path:
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return default
        if current is None:
            return default
    return current


def items_of(payload: Dict[str, Any], *keys: str) -> List[Dict[str, Any]]:
    """First list found under one of `keys` (PayPal list endpoints disagree on the name)"""
    for key in keys + ("items",):
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return []


def money(amount: Any) -> str:
    """'12.00 USD' from a PayPal money object, or 'N/A'"""
    if isinstance(amount, dict) and amount.get("value") is not None:
        return f"{amount['value']} {amount.get('currency_code', '')}".strip()
    return "N/A"


def render_list(
    title: str,
    items: Sequence[Dict[str, Any]],
    line: Callable[[Dict[str, Any]], str],
    empty_text: str,
    limit: int = LIST_LIMIT,
) -> str:
    if not items:
        return f"{title}\n{empty_text}"

    lines = [title]
    for item in items[:limit]:
        lines.append(f"- {line(item)}")
    if len(items) > limit:
        lines.append(f"...and {len(items) - limit} more")
    return "\n".join(lines)
