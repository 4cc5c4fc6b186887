"""
Narration: the conversational sentence shown above an operation result.

The language model writes it when it is reachable; otherwise
`fallback_narration` picks a static sentence using the same lower-cased
keyword tests the router uses.
"""

from typing import Sequence

from services.intent_router import has, has_any

HELP_TEXT = (
    "I can help you with comprehensive PayPal operations including: orders, invoices, products, "
    "subscriptions, disputes, transactions, refunds, and shipment tracking. "
    "Please specify what you'd like to do!"
)

CLOSING_TEXT = (
    "I'm a comprehensive PayPal assistant that can help you with payments, invoices, tracking, refunds, "
    "subscriptions, products, and dispute management. What would you like to do?"
)

NARRATION_PROMPT = """You are a comprehensive PayPal commerce assistant. You help users with complete PayPal operations including:

PAYMENT OPERATIONS:
- Creating orders/payments and capturing them
- Checking payment status and listing transactions

INVOICE MANAGEMENT:
- Creating, sending, and managing invoices
- Generating payment links and QR codes
- Sending reminders and cancelling invoices

PRODUCT CATALOG:
- Creating products, listing products and viewing details

SUBSCRIPTION MANAGEMENT:
- Creating and managing subscription plans
- Creating, updating, and cancelling subscriptions

DISPUTE MANAGEMENT:
- Listing and viewing disputes, accepting dispute claims

SHIPMENT TRACKING:
- Adding tracking information to shipments

Based on the user's request, determine what PayPal operation they want and provide a helpful response
in two or three sentences. Do not invent IDs, amounts or links.

User request: {message}
"""


def build_narration_prompt(message: str) -> str:
    return NARRATION_PROMPT.format(message=message.strip())


def describe_tools(tool_names: Sequence[str]) -> str:
    if not tool_names:
        return "I have access to 0 PayPal tools: none registered right now."
    return f"I have access to {len(tool_names)} PayPal tools: {', '.join(tool_names)}."


def fallback_narration(message: str, tool_names: Sequence[str] = ()) -> str:
    """
    Static narration used when the language model is unavailable

    Args:
        message: Raw chat message
        tool_names: Names of the registered capabilities (may be empty)

    Returns:
        One or two sentences describing what the assistant will do
    """
    text = (message or "").lower()

    if has_any(text, "tool", "available", "can you do"):
        return (
            f"{describe_tools(tool_names)} I can help you with orders, invoices, transactions, refunds, "
            "shipment tracking, subscriptions, products, and disputes."
        )

    if has_any(text, "create", "make") and has_any(text, "order", "payment") and not has(text, "invoice"):
        return "I'll help you create a PayPal order. Let me extract the amount and currency from your request."

    if has(text, "check") and has(text, "status"):
        return "I'll check the payment status for you. Let me look up the payment details."

    if has(text, "invoice"):
        if has(text, "remind"):
            return "I'll send a payment reminder for the specified invoice."
        if has(text, "qr"):
            return "I'll generate a QR code for the specified invoice."
        if has_any(text, "list", "show", "get"):
            return "I'll list your invoices for you."
        return "I'll create an invoice for you. Let me extract the recipient email and amount from your request."

    if has_any(text, "track", "shipment"):
        return "I'll track the shipment for you. Let me look up the tracking information."

    if has(text, "refund"):
        return "Refunds are handled from the PayPal dashboard; I can show you the related order or transaction details."

    if has_any(text, "transaction", "history"):
        return "I'll list your recent transactions."

    if has(text, "product"):
        if has(text, "create"):
            return "I'll help you create a new product in your PayPal catalog."
        if has(text, "list"):
            return "I'll list all products in your PayPal catalog."
        return "I can help you manage products - create, list, or get details."

    if has(text, "subscription"):
        if has(text, "plan"):
            return "I'll help you manage subscription plans - create, list, or get details."
        if has(text, "create"):
            return "I'll help you create a new subscription for a customer."
        if has(text, "cancel"):
            return "I'll help you cancel an existing subscription."
        return "I can help you with subscription management - plans, subscriptions, updates, and cancellations."

    if has(text, "dispute"):
        if has(text, "list"):
            return "I'll list all open disputes in your account."
        if has(text, "accept"):
            return "I'll help you accept a dispute claim."
        return "I can help you manage disputes - list, view details, or accept claims."

    return CLOSING_TEXT
