"""
Rule-based intent router for the PayPal chat assistant.

Messages are lower-cased and matched against an ordered table of keyword
predicates; the first match wins. Order matters because keyword sets overlap:
invoice creation is tested before order creation, the payment-link lookup
before invoice details, and "subscription plan" rules before bare
"subscription" rules.
"""

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from services import catalog_operations as catalog
from services import dispute_operations as disputes
from services import invoice_operations as invoices
from services import order_operations as orders
from services.shipment_tracking import shipment_tracking_service
from services.tool_registry import ToolRegistry
from utils.error_handler import MissingIdentifierError, ToolReportedError, ToolUnavailableError

logger = logging.getLogger(__name__)

Handler = Callable[[ToolRegistry, str], Awaitable[str]]

# Words that mean "do something with an existing invoice"
INVOICE_VERBS = ("list", "get", "show", "check", "details", "status", "send", "remind", "cancel", "qr", "pay", "link", "url")


def has(text: str, word: str) -> bool:
    return word in text


def has_any(text: str, *words: str) -> bool:
    return any(word in text for word in words)


def has_all(text: str, *words: str) -> bool:
    return all(word in text for word in words)


def has_word(text: str, word: str) -> bool:
    """Whole-word test, so 'for' does not match 'information'"""
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


@dataclass(frozen=True)
class OperationSpec:
    intent: str
    matches: Callable[[str], bool]
    handler: Handler
    label: str
    action: str


def _creates_invoice(t: str) -> bool:
    if not has(t, "invoice"):
        return False
    return has(t, "create") or (has_word(t, "for") and not has_any(t, *INVOICE_VERBS))


def _wants_payment_link(t: str) -> bool:
    return has_all(t, "payment", "link") or has_all(t, "pay", "invoice") or has_all(t, "payment", "url")


def _wants_invoice_details(t: str) -> bool:
    return (
        has_all(t, "get", "details", "invoice")
        or has_all(t, "check", "invoice")
        or has_all(t, "invoice", "status")
        or (has_all(t, "get", "invoice") and not has(t, "payment"))
    )


OPERATIONS = (
    OperationSpec(
        "create_invoice", _creates_invoice,
        invoices.create_invoice, "Create invoice", "creating invoice",
    ),
    OperationSpec(
        "create_order",
        lambda t: has_any(t, "create", "make") and has_any(t, "order", "payment") and not has(t, "invoice"),
        orders.create_order, "Create order", "creating order",
    ),
    OperationSpec(
        "get_order",
        lambda t: has_any(t, "get", "details", "check") and has(t, "order"),
        orders.get_order, "Get order", "getting order",
    ),
    OperationSpec(
        "capture_order",
        lambda t: has_any(t, "capture", "pay") and has(t, "order"),
        orders.capture_order, "Capture order", "capturing order",
    ),
    OperationSpec(
        "list_transactions",
        lambda t: has_all(t, "list", "transaction"),
        orders.list_transactions, "List transactions", "listing transactions",
    ),
    OperationSpec(
        "list_invoices",
        lambda t: has_all(t, "list", "invoice"),
        invoices.list_invoices, "List invoices", "listing invoices",
    ),
    OperationSpec(
        "get_invoice_payment_link", _wants_payment_link,
        invoices.get_invoice_payment_link, "Get invoice", "getting invoice payment link",
    ),
    OperationSpec(
        "get_invoice_details", _wants_invoice_details,
        invoices.get_invoice_details, "Get invoice", "getting invoice details",
    ),
    OperationSpec(
        "send_invoice",
        lambda t: has_all(t, "send", "invoice") and not has(t, "remind"),
        invoices.send_invoice, "Send invoice", "sending invoice",
    ),
    OperationSpec(
        "track_shipment",
        lambda t: has_any(t, "track", "shipment"),
        shipment_tracking_service.track_shipment, "Shipment tracking", "tracking shipment",
    ),
    OperationSpec(
        "create_product",
        lambda t: has_all(t, "create", "product"),
        catalog.create_product, "Create product", "creating product",
    ),
    OperationSpec(
        "list_products",
        lambda t: has_all(t, "list", "product"),
        catalog.list_products, "List products", "listing products",
    ),
    OperationSpec(
        "get_product",
        lambda t: has_any(t, "get", "show") and has(t, "product"),
        catalog.get_product, "Get product", "getting product",
    ),
    OperationSpec(
        "create_subscription_plan",
        lambda t: has_all(t, "create", "subscription", "plan"),
        catalog.create_subscription_plan, "Create subscription plan", "creating subscription plan",
    ),
    OperationSpec(
        "list_subscription_plans",
        lambda t: has_all(t, "list", "subscription", "plan"),
        catalog.list_subscription_plans, "List subscription plans", "listing subscription plans",
    ),
    OperationSpec(
        "get_subscription_plan",
        lambda t: has_any(t, "get", "show") and has_all(t, "subscription", "plan"),
        catalog.get_subscription_plan, "Get subscription plan", "getting subscription plan",
    ),
    OperationSpec(
        "create_subscription",
        lambda t: has_all(t, "create", "subscription") and not has(t, "plan"),
        catalog.create_subscription, "Create subscription", "creating subscription",
    ),
    OperationSpec(
        "get_subscription",
        lambda t: has_any(t, "get", "show") and has(t, "subscription") and not has(t, "plan"),
        catalog.get_subscription, "Get subscription", "getting subscription",
    ),
    OperationSpec(
        "update_subscription",
        lambda t: has_all(t, "update", "subscription"),
        catalog.update_subscription, "Update subscription", "updating subscription",
    ),
    OperationSpec(
        "cancel_subscription",
        lambda t: has_all(t, "cancel", "subscription"),
        catalog.cancel_subscription, "Cancel subscription", "cancelling subscription",
    ),
    OperationSpec(
        "list_disputes",
        lambda t: has_all(t, "list", "dispute"),
        disputes.list_disputes, "List disputes", "listing disputes",
    ),
    OperationSpec(
        "get_dispute",
        lambda t: has_any(t, "get", "show") and has(t, "dispute"),
        disputes.get_dispute, "Get dispute", "getting dispute",
    ),
    OperationSpec(
        "accept_dispute",
        lambda t: has_all(t, "accept", "dispute"),
        disputes.accept_dispute, "Accept dispute", "accepting dispute",
    ),
    OperationSpec(
        "send_invoice_reminder",
        lambda t: has_all(t, "remind", "invoice"),
        invoices.send_invoice_reminder, "Send invoice reminder", "sending reminder",
    ),
    OperationSpec(
        "cancel_invoice",
        lambda t: has_all(t, "cancel", "invoice"),
        invoices.cancel_invoice, "Cancel invoice", "cancelling invoice",
    ),
    OperationSpec(
        "generate_invoice_qr",
        lambda t: has_all(t, "qr", "invoice"),
        invoices.generate_invoice_qr, "Generate QR code", "generating QR code",
    ),
)


def route(message: str) -> Optional[OperationSpec]:
    """
    Pick the operation for a chat message

    Args:
        message: Raw chat message

    Returns:
        The first matching OperationSpec, or None when nothing matches
    """
    text = (message or "").strip().lower()
    if not text:
        return None

    for spec in OPERATIONS:
        if spec.matches(text):
            logger.info(f"🔍 Routed to {spec.intent}")
            return spec

    logger.info("🔍 No operation matched")
    return None


def classify_intent(message: str) -> Optional[str]:
    spec = route(message)
    return spec.intent if spec else None


async def run_operation(spec: OperationSpec, tools: ToolRegistry, message: str) -> str:
    """
    Run a handler and turn every failure into chat text

    Missing identifiers give the usage hint, unknown capabilities give a
    "tool not available" line, tool error payloads give "Error <action>", and
    anything else (network failures) gives a generic error line.
    """
    try:
        return await spec.handler(tools, message)
    except MissingIdentifierError as e:
        logger.info(f"⚠️ {spec.intent}: no usable identifier in message")
        return e.message
    except ToolUnavailableError as e:
        logger.warning(f"❌ {spec.intent}: {e.message}")
        return f"❌ {spec.label} tool not available"
    except ToolReportedError as e:
        return f"❌ Error {spec.action}: {e.message}"
    except Exception as e:
        logger.error(f"❌ Error in {spec.intent}: {e}", exc_info=True)
        return f"❌ Error: {e}"
