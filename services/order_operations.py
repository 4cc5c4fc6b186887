"""
Order and transaction operations.

Each handler takes the tool registry and the raw chat message and returns the
text shown to the user. Tool errors propagate as exceptions and are rendered
by the intent router.
"""

import logging

from config.settings import DEFAULT_CURRENCY
from services.extractors import (
    DEFAULT_ORDER_AMOUNT,
    ORDER_ID,
    ParamSet,
    extract_amount,
    extract_currency,
    format_amount,
    require_identifier,
)
from services.normalizer import ORDER, find_approval_link, normalize
from services.rendering import dig, items_of, money, render_list
from services.tool_registry import Capability, ToolRegistry, invoke_tool

logger = logging.getLogger(__name__)

ORDER_ITEM_NAME = "Payment via PayPal Agent"
CAPTURE_USAGE = "❌ Please provide a valid 17-character order ID (e.g., 'Capture payment for order 1AB23456CD789012E')"


def order_params(message: str) -> ParamSet:
    return ParamSet(
        amount=extract_amount(message, DEFAULT_ORDER_AMOUNT),
        currency=extract_currency(message),
    )


def build_order_request(params: ParamSet) -> dict:
    value = format_amount(params.amount)
    return {
        "currencyCode": params.currency,
        "items": [
            {
                "name": ORDER_ITEM_NAME,
                "description": ORDER_ITEM_NAME,
                "quantity": 1,
                "itemCost": value,
                "itemTotal": value,
            }
        ],
    }


async def create_order(tools: ToolRegistry, message: str) -> str:
    """
    Create a checkout order for the amount in the message

    Args:
        tools: Capability registry
        message: e.g. "Create an order for $29.99"

    Returns:
        Order summary including the buyer approval URL when PayPal sent one
    """
    params = order_params(message)
    raw = await invoke_tool(tools, Capability.CREATE_ORDER, build_order_request(params))
    result = normalize(raw, ORDER)
    approval_url = find_approval_link(result)

    logger.info(f"✅ Order {result.id} created ({result.status})")

    lines = [
        "💳 **Order Created Successfully!**",
        f"- Order ID: {result.id}",
        f"- Amount: {format_amount(params.amount)} {params.currency}",
        f"- Status: {result.status}",
    ]
    if approval_url:
        lines.append(f"- Approval URL: {approval_url}")
    return "\n".join(lines)


async def get_order(tools: ToolRegistry, message: str) -> str:
    order_id = require_identifier(message, ORDER_ID)
    raw = await invoke_tool(tools, Capability.GET_ORDER, {"id": order_id})
    result = normalize(raw, ORDER)
    approval_url = find_approval_link(result)

    lines = [
        "📄 **Order Details**",
        f"- Order ID: {order_id}",
        f"- Status: {result.raw.get('status') or 'UNKNOWN'}",
        f"- Amount: {result.amount or 'N/A'} {result.currency or DEFAULT_CURRENCY}",
        f"- Created: {result.raw.get('create_time') or 'N/A'}",
    ]
    if approval_url:
        lines.append(f"- Approval URL: {approval_url}")
    return "\n".join(lines)


async def capture_order(tools: ToolRegistry, message: str) -> str:
    """Capture the payment of a buyer-approved order"""
    order_id = require_identifier(message, ORDER_ID, usage=CAPTURE_USAGE)
    raw = await invoke_tool(tools, Capability.CAPTURE_ORDER, {"id": order_id})
    result = normalize(raw, ORDER)
    capture = dig(result.raw, "purchase_units", 0, "payments", "captures", 0, default={})

    logger.info(f"💰 Order {order_id} captured ({result.raw.get('status')})")

    lines = [
        "💰 **Order Capture Successful**",
        f"- Order ID: {order_id}",
        f"- Status: {result.raw.get('status') or 'UNKNOWN'}",
        f"- Capture ID: {capture.get('id') or 'N/A'}",
    ]
    if capture.get("amount"):
        lines.append(f"- Amount: {money(capture['amount'])}")
    return "\n".join(lines)


def _transaction_line(entry: dict) -> str:
    info = entry.get("transaction_info", entry)
    return (
        f"{info.get('transaction_id', 'Unknown')}: "
        f"{money(info.get('transaction_amount'))} "
        f"({info.get('transaction_status', 'UNKNOWN')}, {info.get('transaction_initiation_date', 'N/A')})"
    )


async def list_transactions(tools: ToolRegistry, message: str) -> str:
    raw = await invoke_tool(tools, Capability.LIST_TRANSACTIONS, {})
    transactions = items_of(normalize(raw).raw, "transaction_details", "transactions")
    return render_list(
        "📊 **Recent Transactions:**",
        transactions,
        _transaction_line,
        "No transactions found in the selected period.",
    )
