"""Dispute listing, lookup and acceptance"""

import logging

from services.extractors import DISPUTE_ID, require_identifier
from services.normalizer import DISPUTE, normalize
from services.rendering import dig, items_of, money, render_list
from services.tool_registry import Capability, ToolRegistry, invoke_tool

logger = logging.getLogger(__name__)

ACCEPT_NOTE = "Accepted via PayPal Agent"
ACCEPT_USAGE = "❌ Please provide a valid dispute ID (e.g., 'Accept dispute PP-D-XXXXXXXXXX')"


def _dispute_line(dispute: dict) -> str:
    return (
        f"{dispute.get('dispute_id', 'Unknown')}: {dispute.get('status', 'UNKNOWN')}, "
        f"{dispute.get('reason', 'Unknown reason')}, {money(dispute.get('dispute_amount'))}"
    )


async def list_disputes(tools: ToolRegistry, message: str) -> str:
    raw = await invoke_tool(tools, Capability.LIST_DISPUTES, {})
    disputes = items_of(normalize(raw, DISPUTE).raw, "disputes")
    return render_list("⚖️ **Your Disputes:**", disputes, _dispute_line, "No disputes found. 🎉")


async def get_dispute(tools: ToolRegistry, message: str) -> str:
    dispute_id = require_identifier(message, DISPUTE_ID)
    raw = await invoke_tool(tools, Capability.GET_DISPUTE, {"dispute_id": dispute_id})
    result = normalize(raw, DISPUTE)
    dispute = result.raw

    return "\n".join([
        "⚖️ **Dispute Details:**",
        f"- Dispute ID: {result.id if result.has_id else dispute_id}",
        f"- Status: {dispute.get('status') or 'Unknown'}",
        f"- Reason: {dispute.get('reason') or 'Unknown'}",
        f"- Amount: {money(dispute.get('dispute_amount'))}",
        f"- Transaction: {dig(dispute, 'disputed_transactions', 0, 'seller_transaction_id', default='Unknown')}",
    ])


async def accept_dispute(tools: ToolRegistry, message: str) -> str:
    """Accept liability for a dispute claim"""
    dispute_id = require_identifier(message, DISPUTE_ID, usage=ACCEPT_USAGE)
    await invoke_tool(tools, Capability.ACCEPT_DISPUTE, {
        "dispute_id": dispute_id,
        "note": ACCEPT_NOTE,
    })
    logger.info(f"✅ Dispute {dispute_id} accepted")

    return "\n".join([
        "✅ **Dispute Accepted Successfully!**",
        f"- Dispute ID: {dispute_id}",
        "- Status: ACCEPTED",
        "- The dispute claim has been accepted and will be processed accordingly.",
    ])
