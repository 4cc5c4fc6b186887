"""
Response normalizer for PayPal tool results.

Tool results arrive in inconsistent shapes: the resource ID may be a direct
field, buried in an href, or only present in the HATEOAS links list, and some
tools hand back a JSON string that itself contains JSON. Everything here is
pure and never raises on missing data; absent information becomes "Unknown"
or None.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

UNKNOWN_ID = "Unknown"

INVOICE_PAYMENT_PATH_HINTS = ("/invoice/p/", "invoice/pay", "invoices/pay")
PAYMENT_LINK_RELS = ("payer-view", "paypal_invoice_payment")


@dataclass(frozen=True)
class Link:
    rel: str
    href: str


@dataclass(frozen=True)
class ResourceKind:
    """How to find the ID and default status of one resource type"""
    name: str
    href_pattern: str
    default_status: str
    id_fields: Tuple[str, ...] = ("id",)
    nested_href_fields: Tuple[str, ...] = ()
    match_any_link: bool = False

    def id_from_href(self, href: Optional[str]) -> Optional[str]:
        if not href or not isinstance(href, str):
            return None
        match = re.search(self.href_pattern, href, re.I)
        return match.group(1) if match else None


ORDER = ResourceKind("order", r"/orders/([A-Z0-9-]+)", "CREATED")
INVOICE = ResourceKind(
    "invoice",
    r"/invoices/(INV[A-Z0-9-]+)",
    "DRAFT",
    nested_href_fields=("createResult",),
    match_any_link=True,
)
PRODUCT = ResourceKind("product", r"/products/([A-Z0-9-]+)", "ACTIVE")
PLAN = ResourceKind("plan", r"/plans/(P-[A-Z0-9]+)", "ACTIVE")
SUBSCRIPTION = ResourceKind("subscription", r"/subscriptions/(I-[A-Z0-9]+)", "APPROVAL_PENDING")
DISPUTE = ResourceKind("dispute", r"/disputes/(PP-D-[A-Z0-9]+)", "UNKNOWN", id_fields=("dispute_id", "id"))
SHIPMENT = ResourceKind("shipment", r"/trackers/([A-Z0-9-]+)", "IN_TRANSIT", id_fields=("tracking_number", "id"))
GENERIC = ResourceKind("resource", r"/([A-Z0-9-]{10,})(?:[/?#]|$)", "UNKNOWN")


@dataclass(frozen=True)
class NormalizedResult:
    id: str
    status: str
    amount: Optional[str] = None
    currency: Optional[str] = None
    links: List[Link] = field(default_factory=list)
    href: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_id(self) -> bool:
        return self.id != UNKNOWN_ID


def decode_payload(raw: Any) -> Any:
    """
    Undo one level of JSON string encoding

    A string is parsed once; the result is never re-parsed, so a doubly
    nested string stays a string. Non-JSON strings are wrapped as a message.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"⚠️ Tool returned a non-JSON string: {raw[:100]}")
            return {"message": raw}
    return raw


def as_dict(raw: Any) -> Dict[str, Any]:
    """Decode and coerce to a dict; lists are exposed under 'items'"""
    payload = decode_payload(raw)
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, list):
        return {"items": payload}
    if payload is None:
        return {}
    return {"message": payload}


def error_message(raw: Any) -> Optional[str]:
    """Return the error text of an {error: ...} payload, else None"""
    payload = decode_payload(raw)
    if not isinstance(payload, dict) or not payload.get("error"):
        return None
    error = payload["error"]
    if isinstance(error, dict):
        return str(error.get("message") or error.get("name") or json.dumps(error))
    return str(error)


def parse_links(payload: Dict[str, Any]) -> List[Link]:
    links = payload.get("links")
    if not isinstance(links, list):
        return []
    parsed = []
    for link in links:
        if isinstance(link, dict) and isinstance(link.get("href"), str):
            parsed.append(Link(rel=str(link.get("rel", "")), href=link["href"]))
    return parsed


def _resolve_id(payload: Dict[str, Any], links: List[Link], kind: ResourceKind) -> str:
    for id_field in kind.id_fields:
        value = payload.get(id_field)
        if value:
            return str(value)

    for nested in kind.nested_href_fields:
        nested_value = payload.get(nested)
        if isinstance(nested_value, dict):
            extracted = kind.id_from_href(nested_value.get("href"))
            if extracted:
                return extracted

    extracted = kind.id_from_href(payload.get("href"))
    if extracted:
        return extracted

    for link in links:
        if link.rel == "self" or kind.match_any_link:
            extracted = kind.id_from_href(link.href)
            if extracted:
                return extracted

    logger.debug(f"❌ Could not resolve {kind.name} ID from keys {list(payload.keys())}")
    return UNKNOWN_ID


def _resolve_amount(payload: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    candidates = [payload.get("amount")]
    purchase_units = payload.get("purchase_units")
    if isinstance(purchase_units, list) and purchase_units and isinstance(purchase_units[0], dict):
        candidates.append(purchase_units[0].get("amount"))
    for amount in candidates:
        if isinstance(amount, dict) and amount.get("value") is not None:
            return str(amount["value"]), amount.get("currency_code")
    return None, None


def normalize(raw: Any, kind: ResourceKind = GENERIC) -> NormalizedResult:
    """
    Turn a raw tool result into a NormalizedResult

    Args:
        raw: Tool result (dict, list, or JSON string)
        kind: Resource kind controlling ID patterns and default status

    Returns:
        NormalizedResult with id "Unknown" when nothing matched
    """
    payload = as_dict(raw)
    links = parse_links(payload)
    amount, currency = _resolve_amount(payload)
    href = payload.get("href") if isinstance(payload.get("href"), str) else None

    return NormalizedResult(
        id=_resolve_id(payload, links, kind),
        status=str(payload.get("status") or kind.default_status),
        amount=amount,
        currency=currency,
        links=links,
        href=href,
        raw=payload,
    )


def find_link(result: NormalizedResult, *rels: str) -> Optional[str]:
    for link in result.links:
        if link.rel in rels:
            return link.href
    return None


def find_approval_link(result: NormalizedResult) -> Optional[str]:
    """Buyer approval URL of an order (rel 'approve')"""
    return find_link(result, "approve")


def find_payment_link(result: NormalizedResult) -> Optional[str]:
    """
    Payer-facing URL of an invoice

    Looks for a payer-view style relation or a payment path in any link;
    a SENT/UNPAID invoice without one falls back to its top-level href.
    """
    for link in result.links:
        if link.rel in PAYMENT_LINK_RELS or any(hint in link.href for hint in INVOICE_PAYMENT_PATH_HINTS):
            return link.href

    if result.href and any(hint in result.href for hint in INVOICE_PAYMENT_PATH_HINTS):
        return result.href

    if result.status.upper() in ("SENT", "UNPAID") and result.href:
        return result.href
    return None
