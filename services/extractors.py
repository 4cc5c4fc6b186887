"""
Parameter extractors for chat messages.

Every extractor is total: when the text does not contain what it looks for,
a documented default is returned. Identifiers are the exception: an operation
that needs an existing resource cannot guess one, so `require_identifier`
raises MissingIdentifierError carrying the usage hint for that resource.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from config.settings import DEFAULT_CURRENCY
from utils.error_handler import MissingIdentifierError

# Digits glued to letters or hyphens belong to IDs and emails, not amounts
AMOUNT_PATTERN = re.compile(r"(?<![\w-])[£$€]?(\d{1,3}(?:,\d{3})+(?:\.\d{2})?|\d+(?:\.\d{2})?)(?!\w)")
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
QUOTED_PATTERN = re.compile(r"'([^']*)'|\"([^\"]*)\"")
FOR_SPLIT_PATTERN = re.compile(r"\bfor\b", re.I)
TRACKING_PATTERN = re.compile(r"\b([A-Z0-9]{10,})\b")

CENTS = Decimal("0.01")

DEFAULT_ORDER_AMOUNT = Decimal("50")
DEFAULT_INVOICE_AMOUNT = Decimal("100")
DEFAULT_PRODUCT_PRICE = Decimal("29.99")
DEFAULT_PLAN_PRICE = Decimal("9.99")

DEFAULT_CUSTOMER_EMAIL = "customer@example.com"
DEFAULT_SUBSCRIBER_EMAIL = "subscriber@example.com"
DEFAULT_DESCRIPTION = "Service Invoice"
DEFAULT_TRACKING_NUMBER = "1Z999AA1234567890"

CARRIERS = ("UPS", "FEDEX", "USPS", "DHL")


@dataclass(frozen=True)
class IdentifierShape:
    """What an identifier of one resource type looks like in free text"""
    resource: str
    patterns: Tuple[str, ...]
    usage: str

    def search(self, text: str) -> Optional[str]:
        for pattern in self.patterns:
            match = re.search(pattern, text)
            if match:
                return match.group(0)
        return None


ORDER_ID = IdentifierShape(
    resource="order",
    # Standalone token only: "1AB23456CD789012E-X9" or ".../1AB23456CD789012E" is not an order ID
    patterns=(r"(?<![^\s'\"(])[A-Z0-9]{17}(?=$|[\s'\")?!,;:]|\.(?:\s|$))",),
    usage="❌ Please provide a valid 17-character order ID (e.g., 'Get details for order 1AB23456CD789012E')",
)

INVOICE_ID = IdentifierShape(
    resource="invoice",
    patterns=(r"\bINV2?-[A-Z0-9]+(?:-[A-Z0-9]+)*",),
    usage="❌ Please provide a valid invoice ID (e.g., 'Get details for invoice INV2-XXXX-XXXX-XXXX-XXXX' or 'Check invoice INV-1234567890')",
)

# Payment-link and send requests also accept bare PayPal-style IDs
INVOICE_OR_GENERIC_ID = IdentifierShape(
    resource="invoice",
    patterns=INVOICE_ID.patterns + (r"\b[A-Z0-9]{17,}\b",),
    usage="❌ Please provide a valid invoice ID (e.g., 'Get payment link for invoice INV2-XXXX-XXXX-XXXX-XXXX' or 'Send invoice INV-1234567890')",
)

PRODUCT_ID = IdentifierShape(
    resource="product",
    patterns=(r"\bPROD-[A-Z0-9]+", r"\b[A-Z0-9]{17,}\b"),
    usage="❌ Please provide a valid product ID (e.g., 'Get product PROD-XXXXXXXXXXXXXXXX')",
)

PLAN_ID = IdentifierShape(
    resource="plan",
    patterns=(r"\bP-[A-Z0-9]+", r"\b[A-Z0-9]{17,}\b"),
    usage="❌ Please provide a valid plan ID (e.g., 'Get subscription plan P-XXXXXXXXXXXXXXXX')",
)

SUBSCRIPTION_PLAN_ID = IdentifierShape(
    resource="plan",
    patterns=(r"\bP-[A-Z0-9]+",),
    usage="❌ Please provide a plan ID (e.g., 'Create subscription for P-XXXXXXXXXXXXXXXX for user@example.com')",
)

SUBSCRIPTION_ID = IdentifierShape(
    resource="subscription",
    patterns=(r"\bI-[A-Z0-9]+", r"\b[A-Z0-9]{17,}\b"),
    usage="❌ Please provide a valid subscription ID (e.g., 'Get subscription I-XXXXXXXXXXXXXXXX')",
)

DISPUTE_ID = IdentifierShape(
    resource="dispute",
    patterns=(r"\bPP-D-[A-Z0-9]+", r"\b[A-Z0-9]{10,}\b"),
    usage="❌ Please provide a valid dispute ID (e.g., 'Get dispute PP-D-XXXXXXXXXX')",
)


@dataclass(frozen=True)
class ParamSet:
    """Values pulled out of one message; unset fields stay None"""
    amount: Optional[Decimal] = None
    currency: str = DEFAULT_CURRENCY
    email: Optional[str] = None
    description: Optional[str] = None
    name: Optional[str] = None
    identifier: Optional[str] = None


def to_money(value) -> Decimal:
    """Quantize any numeric value to cents"""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(amount) -> str:
    """Render an amount with exactly two decimals (29.9 -> '29.90')"""
    return f"{to_money(amount):.2f}"


def extract_amount(text: str, default=DEFAULT_ORDER_AMOUNT) -> Decimal:
    """
    Extract the first money-looking number from the text

    Args:
        text: Raw message
        default: Amount to use when the message has no number

    Returns:
        Amount quantized to two decimal places
    """
    match = AMOUNT_PATTERN.search(text or "")
    if match:
        return to_money(match.group(1).replace(",", ""))
    return to_money(default)


def extract_currency(text: str) -> str:
    """Currency is fixed system-wide; symbols in the text are ignored"""
    return DEFAULT_CURRENCY


def extract_email(text: str, default: str = DEFAULT_CUSTOMER_EMAIL) -> str:
    match = EMAIL_PATTERN.search(text or "")
    return match.group(1) if match else default


def _quoted(text: str) -> Optional[str]:
    match = QUOTED_PATTERN.search(text)
    if match:
        quoted = (match.group(1) or match.group(2) or "").strip()
        return quoted or None
    return None


def _is_amount_or_email(clause: str) -> bool:
    clause = clause.strip()
    return bool(
        re.fullmatch(r"[£$€]?\d[\d,]*(?:\.\d{2})?(?:\s*[A-Za-z]{3})?", clause)
        or EMAIL_PATTERN.fullmatch(clause)
    )


def extract_description(text: str, default: str = DEFAULT_DESCRIPTION) -> str:
    """
    Extract a free-text description

    A quoted substring always wins. Otherwise the message is split on the
    word "for": the first clause names the recipient ("invoice for Acme"),
    later clauses that are only an amount or an email are skipped, and the
    first remaining clause is the description.

    Args:
        text: Raw message
        default: Sentinel when nothing qualifies

    Returns:
        Description text
    """
    text = text or ""
    quoted = _quoted(text)
    if quoted:
        return quoted

    clauses = FOR_SPLIT_PATTERN.split(text)[1:]
    for clause in clauses[1:]:
        clause = clause.strip().rstrip(".!?,;")
        if clause and not _is_amount_or_email(clause):
            return clause
    return default


def extract_name(text: str, keyword: str, default: str) -> str:
    """Quoted name, else the word following `keyword` (e.g. 'create product Mug')"""
    text = text or ""
    quoted = _quoted(text)
    if quoted:
        return quoted
    match = re.search(rf"\b{re.escape(keyword)}\s+(\S+)", text, re.I)
    if match:
        word = match.group(1).strip(".,;!?")
        # "plan for $9.99" has no name, only a price
        if word and word.lower() != "for" and not AMOUNT_PATTERN.fullmatch(word):
            return word
    return default


def extract_identifier(text: str, shape: IdentifierShape) -> Optional[str]:
    return shape.search(text or "")


def require_identifier(text: str, shape: IdentifierShape, usage: Optional[str] = None) -> str:
    """
    Extract an identifier or stop the operation with a usage hint

    Args:
        text: Raw message
        shape: Identifier shape to look for
        usage: Operation-specific hint replacing the shape's default one

    Raises:
        MissingIdentifierError: when no identifier of this shape is present
    """
    identifier = extract_identifier(text, shape)
    if not identifier:
        raise MissingIdentifierError(usage or shape.usage, details={"resource": shape.resource})
    return identifier


def extract_tracking_number(text: str) -> str:
    match = TRACKING_PATTERN.search(text or "")
    return match.group(1) if match else DEFAULT_TRACKING_NUMBER


def extract_carrier(text: str) -> str:
    upper = (text or "").upper()
    for carrier in CARRIERS:
        if re.search(rf"\b{carrier}\b", upper):
            return carrier
    return "OTHER"
