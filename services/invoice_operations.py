"""
Invoice operations.

Invoice creation is a small state machine. The draft is created, then sent
(unless auto-send is off), and a sent invoice gets a best-effort payment link
lookup:

    CREATED -> SENT | SEND_FAILED
    SENT    -> LINK_FOUND | LINK_UNAVAILABLE

Nothing is retried; the first failure decides which template is rendered.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

import httpx

from config.settings import AUTO_SEND_INVOICES, MERCHANT_EMAIL
from services.extractors import (
    DEFAULT_CUSTOMER_EMAIL,
    DEFAULT_INVOICE_AMOUNT,
    INVOICE_ID,
    INVOICE_OR_GENERIC_ID,
    ParamSet,
    extract_amount,
    extract_currency,
    extract_description,
    extract_email,
    format_amount,
    require_identifier,
)
from services.normalizer import INVOICE, find_payment_link, normalize
from services.rendering import dig, items_of, money, render_list
from services.tool_registry import Capability, ToolRegistry, invoke_tool
from utils.error_handler import ToolReportedError, ToolUnavailableError

logger = logging.getLogger(__name__)

SEND_NOTE = "Thank you for choosing us. If there are any issues, feel free to contact us."
REMINDER_NOTE = "Friendly payment reminder sent via PayPal Agent"
CANCEL_NOTE = "Invoice cancelled via PayPal Agent"
QR_SIZE = 200

DASHBOARD_URL = "https://developer.paypal.com/developer/accounts/"

# Failures of a chained step are rendered inline instead of ending the request
CHAINED_STEP_ERRORS = (ToolReportedError, ToolUnavailableError, httpx.HTTPError)

STATUS_DISPLAY = {
    "DRAFT": ("📝", "Invoice is in draft - not yet sent"),
    "SENT": ("📧", "Invoice sent - awaiting payment"),
    "UNPAID": ("📧", "Invoice sent - awaiting payment"),
    "PAID": ("💰", "Invoice has been paid!"),
    "MARKED_AS_PAID": ("💰", "Invoice has been paid!"),
    "COMPLETED": ("💰", "Invoice has been paid!"),
    "PARTIALLY_PAID": ("💵", "Invoice partially paid"),
    "CANCELLED": ("❌", "Invoice has been cancelled"),
}

PAYMENT_DETAILS_USAGE = "❌ Please provide a valid invoice ID (e.g., 'Get payment link for invoice INV-1234567890' or 'Get payment link for invoice INV2-XXXX-XXXX-XXXX-XXXX')"
SEND_USAGE = "❌ Please provide a valid invoice ID (e.g., 'Send invoice INV-1234567890' or 'Send invoice INV2-XXXX-XXXX-XXXX-XXXX')"
REMINDER_USAGE = "❌ Please provide a valid invoice ID (e.g., 'Send reminder for invoice INV2-XXXX-XXXX-XXXX-XXXX')"
CANCEL_USAGE = "❌ Please provide a valid invoice ID (e.g., 'Cancel invoice INV2-XXXX-XXXX-XXXX-XXXX')"
QR_USAGE = "❌ Please provide a valid invoice ID (e.g., 'Generate QR code for invoice INV2-XXXX-XXXX-XXXX-XXXX')"


class SendState(Enum):
    CREATED = "CREATED"
    SENT = "SENT"
    SEND_FAILED = "SEND_FAILED"


class LinkState(Enum):
    LINK_FOUND = "LINK_FOUND"
    LINK_UNAVAILABLE = "LINK_UNAVAILABLE"


@dataclass(frozen=True)
class InvoiceOutcome:
    """Where the create -> send -> link chain stopped"""
    invoice_id: str
    send_state: SendState
    link_state: LinkState = LinkState.LINK_UNAVAILABLE
    payment_link: Optional[str] = None
    note: Optional[str] = None


def invoice_params(message: str) -> ParamSet:
    return ParamSet(
        amount=extract_amount(message, DEFAULT_INVOICE_AMOUNT),
        currency=extract_currency(message),
        email=extract_email(message, DEFAULT_CUSTOMER_EMAIL),
        description=extract_description(message),
    )


def build_invoice_request(params: ParamSet) -> dict:
    """Invoice body in the shape the invoicing API expects"""
    value = format_amount(params.amount)
    description = params.description.strip()

    return {
        "detail": {
            "invoice_number": f"INV-{int(time.time() * 1000)}",
            "currency_code": params.currency,
            "note": description,
            "invoice_date": date.today().isoformat(),
            "payment_term": {"term_type": "NET_30"},
        },
        "invoicer": {
            "name": {"given_name": "PayPal", "surname": "Merchant"},
            "email_address": MERCHANT_EMAIL,
        },
        "primary_recipients": [
            {
                "billing_info": {
                    "name": {"given_name": "Customer", "surname": "Name"},
                    "email_address": params.email,
                }
            }
        ],
        "items": [
            {
                "name": description,
                "description": description,
                "quantity": "1",
                "unit_amount": {"currency_code": params.currency, "value": value},
                "unit_of_measure": "QUANTITY",
            }
        ],
        "configuration": {
            "partial_payment": {"allow_partial_payment": False},
            "allow_tip": False,
            "tax_calculated_after_discount": True,
            "tax_inclusive": False,
        },
        "amount": {
            "breakdown": {
                "item_total": {"currency_code": params.currency, "value": value},
            }
        },
    }


async def fetch_payment_link(tools: ToolRegistry, invoice_id: str) -> Optional[str]:
    raw = await invoke_tool(tools, Capability.GET_INVOICE, {"invoice_id": invoice_id})
    result = normalize(raw, INVOICE)
    link = find_payment_link(result)
    if not link:
        logger.info(f"🔍 Invoice {invoice_id} has no payment link yet (status {result.status})")
    return link


async def _try_payment_link(tools: ToolRegistry, invoice_id: str) -> Optional[str]:
    try:
        return await fetch_payment_link(tools, invoice_id)
    except CHAINED_STEP_ERRORS as e:
        logger.warning(f"⚠️ Payment link lookup failed for {invoice_id}: {e}")
        return None


async def _send(tools: ToolRegistry, invoice_id: str) -> dict:
    return await invoke_tool(tools, Capability.SEND_INVOICE, {
        "invoice_id": invoice_id,
        "note": SEND_NOTE,
        "send_to_recipient": True,
    })


async def run_invoice_workflow(tools: ToolRegistry, params: ParamSet) -> InvoiceOutcome:
    """
    Create an invoice and push it as far along the chain as possible

    Only the creation step can fail the request; send and link failures are
    recorded on the outcome.
    """
    raw = await invoke_tool(tools, Capability.CREATE_INVOICE, build_invoice_request(params))
    result = normalize(raw, INVOICE)
    logger.info(f"✅ Invoice {result.id} created ({result.status})")

    send_href = dig(result.raw, "sendResult", "href")
    if result.has_id and send_href:
        logger.info(f"🔗 Found payment link in sendResult: {send_href}")
        return InvoiceOutcome(result.id, SendState.SENT, LinkState.LINK_FOUND, send_href)

    if not result.has_id:
        return InvoiceOutcome(
            result.id, SendState.CREATED,
            note="⚠️ Invoice ID could not be read from the PayPal response",
        )
    if not AUTO_SEND_INVOICES:
        return InvoiceOutcome(result.id, SendState.CREATED, note="ℹ️ Auto-send is disabled")

    logger.info(f"🚀 Attempting to send invoice {result.id} automatically...")
    try:
        await _send(tools, result.id)
    except CHAINED_STEP_ERRORS as e:
        logger.error(f"❌ Error sending invoice {result.id}: {e}")
        return InvoiceOutcome(result.id, SendState.SEND_FAILED, note=f"⚠️ Auto-send failed: {e}")

    link = await _try_payment_link(tools, result.id)
    if link:
        return InvoiceOutcome(result.id, SendState.SENT, LinkState.LINK_FOUND, link)
    return InvoiceOutcome(result.id, SendState.SENT, LinkState.LINK_UNAVAILABLE)


def render_invoice_outcome(params: ParamSet, outcome: InvoiceOutcome) -> str:
    invoice_id = outcome.invoice_id
    sent = outcome.send_state is SendState.SENT
    title = "📄 **Invoice Created and Sent Successfully!**" if sent else "📄 **Invoice Created Successfully!**"

    lines = [
        title,
        f"- Invoice ID: {invoice_id}",
        f"- Amount: {format_amount(params.amount)} {params.currency}",
        f"- Recipient: {params.email}",
        f"- Description: {params.description}",
        f"- Status: {'SENT' if sent else 'DRAFT'}",
    ]

    if sent:
        if outcome.link_state is LinkState.LINK_FOUND:
            lines += [
                "",
                "💳 **Payment Link Ready!**",
                outcome.payment_link,
                "",
                "📧 Share this link with your customer to collect payment!",
                "✅ Customers can pay without a PayPal account!",
            ]
        else:
            lines += [
                "- 📧 ✅ Invoice sent successfully to recipient",
                "",
                f"⚠️ Payment link extraction pending - try: \"Get payment link for invoice {invoice_id}\"",
            ]
        return "\n".join(lines)

    if outcome.note:
        lines.append(f"- {outcome.note}")
    lines += [
        "",
        "💡 **Next Steps to Get Payment Link:**",
        "1. 🌐 **Manual Sending:**",
        f"   - Visit: {DASHBOARD_URL}",
        "   - Log into your business sandbox account",
        f"   - Go to: Business Account → Invoicing and send invoice {invoice_id}",
        "2. 🤖 **Send From Chat:**",
        f"   - Try: \"Send invoice {invoice_id}\"",
        "3. 🔗 **Get Payment Link:**",
        f"   - After sending: \"Get payment link for invoice {invoice_id}\"",
        "",
        "📧 Once sent, customers can pay without a PayPal account!",
    ]
    return "\n".join(lines)


async def create_invoice(tools: ToolRegistry, message: str) -> str:
    """
    Create an invoice, auto-send it and fetch its payment link

    Args:
        tools: Capability registry
        message: e.g. "Create an invoice for bob@example.com for $100 for 'Web design'"

    Returns:
        One of the CREATED / SENT / SEND_FAILED templates
    """
    params = invoice_params(message)
    outcome = await run_invoice_workflow(tools, params)
    logger.info(f"📄 Invoice workflow finished: {outcome.send_state.value} / {outcome.link_state.value}")
    return render_invoice_outcome(params, outcome)


def _invoice_line(invoice: dict) -> str:
    recipient = dig(invoice, "primary_recipients", 0, "billing_info", "email_address", default="Unknown")
    return (
        f"{invoice.get('id', 'Unknown')}: {invoice.get('status', 'UNKNOWN')}, "
        f"{money(invoice.get('amount'))}, {recipient}"
    )


async def list_invoices(tools: ToolRegistry, message: str) -> str:
    raw = await invoke_tool(tools, Capability.LIST_INVOICES, {})
    invoices = items_of(normalize(raw).raw, "invoices")
    return render_list("📄 **Your Invoices:**", invoices, _invoice_line, "No invoices found.")


async def get_invoice_payment_link(tools: ToolRegistry, message: str) -> str:
    invoice_id = require_identifier(message, INVOICE_OR_GENERIC_ID, usage=PAYMENT_DETAILS_USAGE)
    link = await fetch_payment_link(tools, invoice_id)

    if link:
        return "\n".join([
            "💳 **Invoice Payment Link Ready!**",
            f"- Invoice ID: {invoice_id}",
            f"- Payment URL: {link}",
            "",
            "📧 **Share this link with your customer:**",
            link,
            "",
            "✅ Customers can pay directly without a PayPal account!",
        ])

    return "\n".join([
        "❌ **Payment Link Not Available**",
        f"- Invoice ID: {invoice_id}",
        "",
        "🔍 **Possible reasons:**",
        "- Invoice is still in DRAFT status (not sent yet)",
        "- Invoice needs to be sent before PayPal publishes a payer link",
        "",
        "💡 **To get the payment link:**",
        f"1. Send it: \"Send invoice {invoice_id}\"",
        "2. Once sent, try this command again",
        f"3. Or ask: \"Get details for invoice {invoice_id}\" to check status",
    ])


async def get_invoice_details(tools: ToolRegistry, message: str) -> str:
    """Status, recipient, amount, dates and payment link of one invoice"""
    invoice_id = require_identifier(message, INVOICE_ID)
    raw = await invoke_tool(tools, Capability.GET_INVOICE, {"invoice_id": invoice_id})
    result = normalize(raw, INVOICE)
    invoice = result.raw

    status = str(invoice.get("status") or "UNKNOWN")
    emoji, status_message = STATUS_DISPLAY.get(status.upper(), ("❓", f"Invoice status: {status}"))
    recipient = dig(invoice, "primary_recipients", 0, "billing_info", "email_address", default="Unknown")
    amount = money(invoice.get("amount")) if invoice.get("amount") else "Unknown"
    created = dig(invoice, "detail", "metadata", "create_time", default="Unknown")
    due_date = dig(invoice, "detail", "payment_term", "due_date") or dig(invoice, "detail", "due_date", default="Not set")
    payment_link = find_payment_link(result)

    lines = [
        "📄 **Invoice Details**",
        f"{emoji} **Status:** {status_message}",
        f"- Invoice ID: {invoice_id}",
        f"📧 **Recipient:** {recipient}",
        f"💰 **Amount:** {amount}",
        f"📅 **Created:** {created}",
        f"📅 **Due Date:** {due_date}",
        "",
    ]
    if payment_link:
        lines += [
            "🔗 **Payment Link:**",
            payment_link,
            "",
            "📧 Share this link with your customer to collect payment!",
        ]
    else:
        lines.append("⚠️ Payment link not available - invoice may need to be sent first")
    return "\n".join(lines)


async def send_invoice(tools: ToolRegistry, message: str) -> str:
    invoice_id = require_identifier(message, INVOICE_OR_GENERIC_ID, usage=SEND_USAGE)
    await _send(tools, invoice_id)
    logger.info(f"✅ Invoice {invoice_id} sent")

    link = await _try_payment_link(tools, invoice_id)
    lines = [
        "📧 **Invoice Sending Result**",
        f"- Invoice ID: {invoice_id}",
        "- ✅ Invoice sent successfully to recipient",
        "",
    ]
    if link:
        lines += [
            "💳 **Payment Link Ready!**",
            link,
            "",
            "📧 Share this link with your customer to collect payment!",
        ]
    else:
        lines.append("⚠️ Payment link not available - check invoice status")
    return "\n".join(lines)


async def send_invoice_reminder(tools: ToolRegistry, message: str) -> str:
    invoice_id = require_identifier(message, INVOICE_ID, usage=REMINDER_USAGE)
    raw = await invoke_tool(tools, Capability.SEND_INVOICE_REMINDER, {
        "invoice_id": invoice_id,
        "note": REMINDER_NOTE,
    })
    status = normalize(raw, INVOICE).raw.get("status") or "SENT"
    return "\n".join([
        "📧 **Invoice Reminder Sent Successfully!**",
        f"- Invoice ID: {invoice_id}",
        "- Reminder sent to customer",
        f"- Status: {status}",
    ])


async def cancel_invoice(tools: ToolRegistry, message: str) -> str:
    invoice_id = require_identifier(message, INVOICE_ID, usage=CANCEL_USAGE)
    await invoke_tool(tools, Capability.CANCEL_INVOICE, {
        "invoice_id": invoice_id,
        "note": CANCEL_NOTE,
        "send_to_recipient": True,
    })
    return "\n".join([
        "❌ **Invoice Cancelled Successfully!**",
        f"- Invoice ID: {invoice_id}",
        "- Status: CANCELLED",
        "- The invoice has been cancelled and is no longer payable.",
    ])


async def generate_invoice_qr(tools: ToolRegistry, message: str) -> str:
    invoice_id = require_identifier(message, INVOICE_ID, usage=QR_USAGE)
    raw = await invoke_tool(tools, Capability.GENERATE_INVOICE_QR, {
        "invoice_id": invoice_id,
        "width": QR_SIZE,
        "height": QR_SIZE,
    })
    payload = normalize(raw, INVOICE).raw

    if payload.get("href"):
        qr_line = f"- QR Code URL: {payload['href']}"
    elif payload.get("qr_code"):
        qr_line = f"- QR Code: base64 PNG ({len(payload['qr_code'])} characters)"
    else:
        qr_line = "- QR Code: Generated"

    return "\n".join([
        "📱 **Invoice QR Code Generated Successfully!**",
        f"- Invoice ID: {invoice_id}",
        qr_line,
        "- Customers can scan this QR code to pay the invoice directly",
    ])
