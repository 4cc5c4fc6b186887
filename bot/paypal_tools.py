"""
PayPal capability provider.

Registers every named capability the chat operations use as a FunctionTool
backed by the PayPal REST API. PayPal error responses are returned as
{"error": {...}} payloads; network failures propagate.
"""

import functools
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List

from bot.paypal_api import PayPalAPI
from services.tool_registry import Capability, FunctionTool, ToolRegistry
from utils.error_handler import PayPalAPIError

logger = logging.getLogger(__name__)

TRANSACTION_WINDOW_DAYS = 30
DEFAULT_PAGE_SIZE = 10


def reports_errors(name: str):
    """Turn PayPalAPIError into an {error: ...} tool payload"""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, request: Dict):
            try:
                return await func(self, request)
            except PayPalAPIError as e:
                logger.error(f"❌ Tool {name} failed: {e.message}")
                return {
                    "error": {
                        "name": e.details.get("name", "PAYPAL_API_ERROR"),
                        "message": e.message,
                        "details": e.details.get("details", e.details),
                    }
                }
        wrapper.capability = name
        return wrapper
    return decorator


def _paypal_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + "Z"


def build_order_body(request: Dict) -> Dict:
    """Convert a {currencyCode, items} request into a v2 checkout order body"""
    currency = request.get("currencyCode", "USD")
    items = request.get("items", [])

    total = sum((Decimal(str(item.get("itemTotal", item.get("itemCost", 0)))) for item in items), Decimal("0"))
    paypal_items = [
        {
            "name": item.get("name", "Item"),
            "description": item.get("description", ""),
            "quantity": str(item.get("quantity", 1)),
            "unit_amount": {"currency_code": currency, "value": f"{Decimal(str(item.get('itemCost', 0))):.2f}"},
        }
        for item in items
    ]

    return {
        "intent": "CAPTURE",
        "purchase_units": [
            {
                "amount": {
                    "currency_code": currency,
                    "value": f"{total:.2f}",
                    "breakdown": {"item_total": {"currency_code": currency, "value": f"{total:.2f}"}},
                },
                "items": paypal_items,
            }
        ],
    }


class PayPalToolkit:
    """One coroutine per capability"""

    def __init__(self, api: PayPalAPI):
        self.api = api

    # Orders

    @reports_errors(Capability.CREATE_ORDER)
    async def create_order(self, request: Dict):
        return await self.api.request("POST", "/v2/checkout/orders", json=build_order_body(request))

    @reports_errors(Capability.GET_ORDER)
    async def get_order(self, request: Dict):
        return await self.api.request("GET", f"/v2/checkout/orders/{request['id']}")

    @reports_errors(Capability.CAPTURE_ORDER)
    async def capture_order(self, request: Dict):
        return await self.api.request("POST", f"/v2/checkout/orders/{request['id']}/capture", json={})

    @reports_errors(Capability.LIST_TRANSACTIONS)
    async def list_transactions(self, request: Dict):
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=TRANSACTION_WINDOW_DAYS)
        params = {
            "start_date": request.get("start_date") or _paypal_timestamp(start),
            "end_date": request.get("end_date") or _paypal_timestamp(end),
            "fields": "all",
            "page_size": request.get("page_size", DEFAULT_PAGE_SIZE),
        }
        return await self.api.request("GET", "/v1/reporting/transactions", params=params)

    # Invoices

    @reports_errors(Capability.CREATE_INVOICE)
    async def create_invoice(self, request: Dict):
        return await self.api.request("POST", "/v2/invoicing/invoices", json=request)

    @reports_errors(Capability.GET_INVOICE)
    async def get_invoice(self, request: Dict):
        return await self.api.request("GET", f"/v2/invoicing/invoices/{request['invoice_id']}")

    @reports_errors(Capability.LIST_INVOICES)
    async def list_invoices(self, request: Dict):
        params = {"page": request.get("page", 1), "page_size": request.get("page_size", DEFAULT_PAGE_SIZE), "total_required": "true"}
        return await self.api.request("GET", "/v2/invoicing/invoices", params=params)

    @reports_errors(Capability.SEND_INVOICE)
    async def send_invoice(self, request: Dict):
        body = {"send_to_recipient": request.get("send_to_recipient", True), "note": request.get("note", "")}
        return await self.api.request("POST", f"/v2/invoicing/invoices/{request['invoice_id']}/send", json=body)

    @reports_errors(Capability.SEND_INVOICE_REMINDER)
    async def send_invoice_reminder(self, request: Dict):
        body = {"note": request.get("note", ""), "subject": request.get("subject", "Payment reminder")}
        return await self.api.request("POST", f"/v2/invoicing/invoices/{request['invoice_id']}/remind", json=body)

    @reports_errors(Capability.CANCEL_INVOICE)
    async def cancel_invoice(self, request: Dict):
        body = {"note": request.get("note", ""), "send_to_recipient": request.get("send_to_recipient", True)}
        return await self.api.request("POST", f"/v2/invoicing/invoices/{request['invoice_id']}/cancel", json=body)

    @reports_errors(Capability.GENERATE_INVOICE_QR)
    async def generate_invoice_qr(self, request: Dict):
        body = {"width": request.get("width", 200), "height": request.get("height", 200)}
        result = await self.api.request("POST", f"/v2/invoicing/invoices/{request['invoice_id']}/generate-qr-code", json=body)
        if "content" in result:
            return {"qr_code": result["content"].strip()}
        return result

    # Catalog

    @reports_errors(Capability.CREATE_PRODUCT)
    async def create_product(self, request: Dict):
        return await self.api.request("POST", "/v1/catalogs/products", json=request)

    @reports_errors(Capability.LIST_PRODUCTS)
    async def list_products(self, request: Dict):
        params = {"page_size": request.get("page_size", DEFAULT_PAGE_SIZE), "page": request.get("page", 1)}
        return await self.api.request("GET", "/v1/catalogs/products", params=params)

    @reports_errors(Capability.GET_PRODUCT)
    async def get_product(self, request: Dict):
        return await self.api.request("GET", f"/v1/catalogs/products/{request['product_id']}")

    # Billing plans and subscriptions

    @reports_errors(Capability.CREATE_SUBSCRIPTION_PLAN)
    async def create_subscription_plan(self, request: Dict):
        return await self.api.request("POST", "/v1/billing/plans", json=request)

    @reports_errors(Capability.LIST_SUBSCRIPTION_PLANS)
    async def list_subscription_plans(self, request: Dict):
        params = {"page_size": request.get("page_size", DEFAULT_PAGE_SIZE), "page": request.get("page", 1)}
        return await self.api.request("GET", "/v1/billing/plans", params=params)

    @reports_errors(Capability.GET_SUBSCRIPTION_PLAN)
    async def get_subscription_plan(self, request: Dict):
        return await self.api.request("GET", f"/v1/billing/plans/{request['plan_id']}")

    @reports_errors(Capability.CREATE_SUBSCRIPTION)
    async def create_subscription(self, request: Dict):
        return await self.api.request("POST", "/v1/billing/subscriptions", json=request)

    @reports_errors(Capability.GET_SUBSCRIPTION)
    async def get_subscription(self, request: Dict):
        return await self.api.request("GET", f"/v1/billing/subscriptions/{request['subscription_id']}")

    @reports_errors(Capability.UPDATE_SUBSCRIPTION)
    async def update_subscription(self, request: Dict):
        subscription_id = request["subscription_id"]
        patch: List[Dict] = request.get("patch") or []
        if not patch:
            # PayPal rejects empty patch documents
            return {"id": subscription_id, "status": "UNCHANGED"}
        return await self.api.request("PATCH", f"/v1/billing/subscriptions/{subscription_id}", json=patch)

    @reports_errors(Capability.CANCEL_SUBSCRIPTION)
    async def cancel_subscription(self, request: Dict):
        body = {"reason": request.get("reason", "Cancelled by merchant")}
        return await self.api.request("POST", f"/v1/billing/subscriptions/{request['subscription_id']}/cancel", json=body)

    # Disputes

    @reports_errors(Capability.LIST_DISPUTES)
    async def list_disputes(self, request: Dict):
        params = {"page_size": request.get("page_size", DEFAULT_PAGE_SIZE)}
        return await self.api.request("GET", "/v1/customer/disputes", params=params)

    @reports_errors(Capability.GET_DISPUTE)
    async def get_dispute(self, request: Dict):
        return await self.api.request("GET", f"/v1/customer/disputes/{request['dispute_id']}")

    @reports_errors(Capability.ACCEPT_DISPUTE)
    async def accept_dispute(self, request: Dict):
        body = {"note": request.get("note", "")}
        return await self.api.request("POST", f"/v1/customer/disputes/{request['dispute_id']}/accept-claim", json=body)

    # Shipping

    @reports_errors(Capability.CREATE_SHIPMENT_TRACKING)
    async def create_shipment_tracking(self, request: Dict):
        tracker = {
            "tracking_number": request["tracking_number"],
            "status": request.get("status", "SHIPPED"),
            "carrier": request.get("carrier", "OTHER"),
        }
        if request.get("transaction_id"):
            tracker["transaction_id"] = request["transaction_id"]
        return await self.api.request("POST", "/v1/shipping/trackers-batch", json={"trackers": [tracker]})

    def capabilities(self) -> Dict[str, Callable]:
        found = {}
        for attr in dir(type(self)):
            method = getattr(self, attr)
            name = getattr(method, "capability", None)
            if name:
                found[name] = method
        return found


def build_paypal_tools(api: PayPalAPI = None) -> ToolRegistry:
    """
    Build the registry of PayPal capabilities

    Args:
        api: PayPal client; a default client from settings is created when omitted

    Returns:
        Immutable ToolRegistry with one FunctionTool per capability
    """
    toolkit = PayPalToolkit(api or PayPalAPI())
    capabilities = toolkit.capabilities()
    tools = [
        FunctionTool(name, capabilities[name], description=f"PayPal {name} tool")
        for name in sorted(capabilities)
    ]
    logger.info(f"✅ Successfully initialized {len(tools)} PayPal tools")
    return ToolRegistry(tools)
