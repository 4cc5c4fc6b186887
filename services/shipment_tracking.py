"""
Shipment tracking service
Registers carrier tracking numbers with PayPal and reports their status
"""

import logging
import re
from typing import Dict, Optional

from services.extractors import DEFAULT_TRACKING_NUMBER, extract_carrier, extract_tracking_number
from services.normalizer import SHIPMENT, normalize
from services.rendering import dig
from services.tool_registry import Capability, ToolRegistry, invoke_tool

logger = logging.getLogger(__name__)

TRANSACTION_ID_PATTERN = re.compile(r"\b[A-Z0-9]{17}\b")


class ShipmentTrackingService:
    """Service for tracking PayPal shipments"""

    def build_request(self, message: str) -> Dict:
        """
        Build a tracker request from a chat message

        Args:
            message: e.g. "Track shipment 1Z999AA1234567890 via UPS"

        Returns:
            Tracker request for the create-shipment-tracking capability
        """
        tracking_number = extract_tracking_number(message)
        if tracking_number == DEFAULT_TRACKING_NUMBER:
            logger.info(f"📦 No tracking number in message, using sample {DEFAULT_TRACKING_NUMBER}")

        request = {
            "tracking_number": tracking_number,
            "carrier": extract_carrier(message),
            "status": "SHIPPED",
        }

        transaction_id = self._extract_transaction_id(message, tracking_number)
        if transaction_id:
            request["transaction_id"] = transaction_id
        return request

    def _extract_transaction_id(self, message: str, tracking_number: str) -> Optional[str]:
        for match in TRANSACTION_ID_PATTERN.finditer(message or ""):
            if match.group(0) != tracking_number:
                return match.group(0)
        return None

    async def track_shipment(self, tools: ToolRegistry, message: str) -> str:
        request = self.build_request(message)
        logger.info(f"Tracking shipment {request['tracking_number']} ({request['carrier']})")

        raw = await invoke_tool(tools, Capability.CREATE_SHIPMENT_TRACKING, request)
        return self.format_tracking_response(request, raw)

    def format_tracking_response(self, request: Dict, raw) -> str:
        """
        Format a tracker result into a chat message

        Args:
            request: The tracker request that was sent
            raw: Tool result

        Returns:
            Formatted message string
        """
        result = normalize(raw, SHIPMENT)
        tracker = dig(result.raw, "tracker_identifiers", 0, default={})

        status = result.raw.get("status") or tracker.get("status") or SHIPMENT.default_status
        carrier = result.raw.get("carrier") or request["carrier"]
        last_update = result.raw.get("last_updated_time") or "N/A"
        status_emoji = self._get_status_emoji(status)

        lines = [
            "📦 **Shipment Tracking:**",
            f"- Tracking Number: {tracker.get('tracking_number') or request['tracking_number']}",
            f"- {status_emoji} Status: {status}",
            f"- Last Update: {last_update}",
            f"- Carrier: {carrier}",
        ]
        if tracker.get("transaction_id"):
            lines.append(f"- Transaction ID: {tracker['transaction_id']}")
        return "\n".join(lines)

    def _get_status_emoji(self, status: str) -> str:
        """Get emoji for status"""
        status_lower = status.lower()

        if 'delivered' in status_lower:
            return '✅'
        elif 'transit' in status_lower or 'shipped' in status_lower:
            return '🚚'
        elif 'hold' in status_lower:
            return '⏸️'
        elif 'cancel' in status_lower:
            return '❌'
        elif 'pickup' in status_lower:
            return '🏬'
        else:
            return '📦'


# Global instance
shipment_tracking_service = ShipmentTrackingService()
