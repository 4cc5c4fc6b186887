"""Test operation handlers against in-memory tool doubles"""

import asyncio
import json

import httpx
import pytest

from services import invoice_operations
from services.intent_router import route, run_operation
from services.tool_registry import FunctionTool, ToolRegistry

INVOICE_ID = "INV2-AAAA-BBBB-CCCC-DDDD"
PAYER_LINK = f"https://www.sandbox.paypal.com/invoice/p/#{INVOICE_ID.replace('-', '')}"


def make_tools(responses):
    """Registry whose tools answer from `responses` and record every call"""
    calls = []

    def make(name, response):
        def func(request):
            calls.append((name, request))
            if isinstance(response, Exception):
                raise response
            return response(request) if callable(response) else response
        return FunctionTool(name, func)

    return ToolRegistry([make(name, response) for name, response in responses.items()]), calls


def chat(message, responses):
    tools, calls = make_tools(responses)
    spec = route(message)
    assert spec is not None, f"no route for {message!r}"
    return asyncio.run(run_operation(spec, tools, message)), calls


@pytest.fixture(autouse=True)
def auto_send_enabled(monkeypatch):
    monkeypatch.setattr(invoice_operations, "AUTO_SEND_INVOICES", True)


# Orders

def test_create_order_renders_id_amount_status_and_approval_url():
    text, calls = chat("Create an order for $29.99", {
        "create-order": {
            "id": "O1",
            "status": "CREATED",
            "links": [{"rel": "approve", "href": "https://x/checkoutnow?token=O1"}],
        },
    })

    assert "Order ID: O1" in text
    assert "Amount: 29.99 USD" in text
    assert "Status: CREATED" in text
    assert "https://x/checkoutnow?token=O1" in text

    name, request = calls[0]
    assert name == "create-order"
    assert request["currencyCode"] == "USD"
    assert request["items"][0]["itemTotal"] == "29.99"


def test_create_order_default_amount():
    text, calls = chat("Create an order", {"create-order": {"id": "O2"}})
    assert "Amount: 50.00 USD" in text
    assert "Status: CREATED" in text
    assert calls[0][1]["items"][0]["itemCost"] == "50.00"


def test_short_order_id_returns_usage_without_tool_call():
    text, calls = chat("Get details for order NOTLONGENOUGH", {"get-order": {"id": "X"}})
    assert text.startswith("❌ Please provide a valid 17-character order ID")
    assert calls == []


def test_get_order_details():
    text, calls = chat("Get details for order 1AB23456CD789012E", {
        "get-order": {
            "id": "1AB23456CD789012E",
            "status": "APPROVED",
            "create_time": "2024-05-01T10:00:00Z",
            "purchase_units": [{"amount": {"currency_code": "USD", "value": "12.00"}}],
        },
    })
    assert calls == [("get-order", {"id": "1AB23456CD789012E"})]
    assert "- Order ID: 1AB23456CD789012E" in text
    assert "Status: APPROVED" in text
    assert "Amount: 12.00 USD" in text
    assert "Created: 2024-05-01T10:00:00Z" in text


def test_capture_order():
    text, _ = chat("Capture payment for order 1AB23456CD789012E", {
        "capture-order": {
            "id": "1AB23456CD789012E",
            "status": "COMPLETED",
            "purchase_units": [{"payments": {"captures": [{"id": "3C679366HH908993F", "amount": {"value": "12.00", "currency_code": "USD"}}]}}],
        },
    })
    assert "Capture ID: 3C679366HH908993F" in text
    assert "Status: COMPLETED" in text


def test_missing_tool_is_rendered():
    text, _ = chat("Create an order for $10", {})
    assert text == "❌ Create order tool not available"


def test_tool_error_payload_is_rendered():
    text, _ = chat("Create an order for $10", {"create-order": {"error": {"message": "Bad amount"}}})
    assert text == "❌ Error creating order: Bad amount"


def test_transport_failure_is_rendered():
    text, _ = chat("Create an order for $10", {"create-order": httpx.ConnectError("connection refused")})
    assert text == "❌ Error: connection refused"


def test_list_transactions_summary():
    text, _ = chat("List transactions", {
        "list-transactions": {"transaction_details": [
            {"transaction_info": {
                "transaction_id": "9GS80322P28628837",
                "transaction_amount": {"currency_code": "USD", "value": "25.00"},
                "transaction_status": "S",
                "transaction_initiation_date": "2024-05-01T10:00:00+0000",
            }},
        ]},
    })
    assert "📊 **Recent Transactions:**" in text
    assert "9GS80322P28628837: 25.00 USD" in text


# Invoice creation workflow

def test_double_encoded_invoice_result():
    """The create result is a JSON string; sending is not available"""
    text, calls = chat("Create an invoice for Acme", {
        "create-invoice": "{\"id\":\"INV-1\",\"status\":\"DRAFT\"}",
    })
    assert "Invoice ID: INV-1" in text
    assert "Status: DRAFT" in text
    assert "Unknown" not in text
    assert "Amount: 100.00 USD" in text
    assert "Description: Service Invoice" in text
    assert [name for name, _ in calls] == ["create-invoice"]


def test_invoice_created_sent_and_link_found():
    text, calls = chat("Create an invoice for bob@example.com for $250 for 'Logo design'", {
        "create-invoice": {"href": f"https://api-m.sandbox.paypal.com/v2/invoicing/invoices/{INVOICE_ID}"},
        "send-invoice": {},
        "get-invoice": {"id": INVOICE_ID, "status": "SENT", "links": [{"rel": "payer-view", "href": PAYER_LINK}]},
    })

    assert [name for name, _ in calls] == ["create-invoice", "send-invoice", "get-invoice"]
    assert f"Invoice ID: {INVOICE_ID}" in text
    assert "Invoice Created and Sent Successfully!" in text
    assert "Amount: 250.00 USD" in text
    assert "Recipient: bob@example.com" in text
    assert "Description: Logo design" in text
    assert f"\n{PAYER_LINK}\n" in text

    invoice_request = calls[0][1]
    assert invoice_request["primary_recipients"][0]["billing_info"]["email_address"] == "bob@example.com"
    assert invoice_request["items"][0]["unit_amount"] == {"currency_code": "USD", "value": "250.00"}
    assert calls[1][1]["invoice_id"] == INVOICE_ID


def test_invoice_send_result_href_skips_further_calls():
    text, calls = chat("Create an invoice for $40", {
        "create-invoice": {"id": INVOICE_ID, "sendResult": {"href": PAYER_LINK}},
        "send-invoice": {},
        "get-invoice": {},
    })
    assert [name for name, _ in calls] == ["create-invoice"]
    assert "Status: SENT" in text
    assert PAYER_LINK in text


def test_invoice_sent_but_link_unavailable():
    text, calls = chat("Create an invoice for $40", {
        "create-invoice": {"id": INVOICE_ID},
        "send-invoice": {},
        "get-invoice": {"id": INVOICE_ID, "status": "DRAFT", "links": []},
    })
    assert "Status: SENT" in text
    assert f"Payment link extraction pending - try: \"Get payment link for invoice {INVOICE_ID}\"" in text


def test_invoice_send_failure_is_terminal():
    text, calls = chat("Create an invoice for $40", {
        "create-invoice": {"id": INVOICE_ID},
        "send-invoice": {"error": "Invoice recipient is missing"},
        "get-invoice": {},
    })
    assert [name for name, _ in calls] == ["create-invoice", "send-invoice"]
    assert "Status: DRAFT" in text
    assert "⚠️ Auto-send failed: Invoice recipient is missing" in text
    assert f"Send invoice {INVOICE_ID}" in text


def test_invoice_without_resolvable_id_is_not_sent():
    text, calls = chat("Create an invoice for $40", {
        "create-invoice": {"status": "DRAFT"},
        "send-invoice": {},
    })
    assert [name for name, _ in calls] == ["create-invoice"]
    assert "Invoice ID: Unknown" in text


def test_invoice_auto_send_disabled(monkeypatch):
    monkeypatch.setattr(invoice_operations, "AUTO_SEND_INVOICES", False)
    text, calls = chat("Create an invoice for $40", {
        "create-invoice": {"id": INVOICE_ID},
        "send-invoice": {},
    })
    assert [name for name, _ in calls] == ["create-invoice"]
    assert "Auto-send is disabled" in text


def test_invoice_creation_error_stops_chain():
    text, calls = chat("Create an invoice for $40", {
        "create-invoice": json.dumps({"error": {"name": "VALIDATION_ERROR", "message": "Invalid email"}}),
        "send-invoice": {},
    })
    assert text == "❌ Error creating invoice: Invalid email"
    assert len(calls) == 1


# Other invoice operations

def test_payment_link_found_and_missing():
    found, _ = chat(f"Get payment link for invoice {INVOICE_ID}", {
        "get-invoice": {"id": INVOICE_ID, "links": [{"rel": "payer-view", "href": PAYER_LINK}]},
    })
    assert f"Payment URL: {PAYER_LINK}" in found

    missing, _ = chat(f"Get payment link for invoice {INVOICE_ID}", {
        "get-invoice": {"id": INVOICE_ID, "status": "DRAFT"},
    })
    assert missing.startswith("❌ **Payment Link Not Available**")


def test_invoice_details():
    text, _ = chat(f"Get details for invoice {INVOICE_ID}", {
        "get-invoice": {
            "id": INVOICE_ID,
            "status": "PAID",
            "amount": {"currency_code": "USD", "value": "250.00"},
            "primary_recipients": [{"billing_info": {"email_address": "bob@example.com"}}],
            "detail": {"metadata": {"create_time": "2024-05-01T10:00:00Z"}},
        },
    })
    assert "💰 **Status:** Invoice has been paid!" in text
    assert f"Invoice ID: {INVOICE_ID}" in text
    assert "bob@example.com" in text
    assert "250.00 USD" in text
    assert "Payment link not available" in text


def test_send_invoice_link_lookup_is_best_effort():
    text, calls = chat(f"Send invoice {INVOICE_ID}", {
        "send-invoice": {},
        "get-invoice": {"error": "temporarily unavailable"},
    })
    assert "Invoice sent successfully" in text
    assert "Payment link not available" in text
    assert [name for name, _ in calls] == ["send-invoice", "get-invoice"]


def test_list_invoices_empty_and_populated():
    empty, _ = chat("List invoices", {"list-invoices": {"items": []}})
    assert "No invoices found." in empty

    listed, _ = chat("List invoices", {"list-invoices": {"items": [
        {"id": INVOICE_ID, "status": "SENT", "amount": {"currency_code": "USD", "value": "40.00"}},
    ]}})
    assert f"- {INVOICE_ID}: SENT, 40.00 USD" in listed


def test_reminder_cancel_and_qr():
    reminder, calls = chat(f"Send reminder for invoice {INVOICE_ID}", {"send-invoice-reminder": {}})
    assert "Invoice Reminder Sent Successfully!" in reminder
    assert calls[0][1]["invoice_id"] == INVOICE_ID

    cancelled, _ = chat(f"Cancel invoice {INVOICE_ID}", {"cancel-invoice": {}})
    assert "Status: CANCELLED" in cancelled

    qr, calls = chat(f"Generate QR code for invoice {INVOICE_ID}", {"generate-invoice-qr": {"qr_code": "iVBORw0KGgo="}})
    assert "QR Code: base64 PNG" in qr
    assert calls[0][1] == {"invoice_id": INVOICE_ID, "width": 200, "height": 200}


# Shipments, catalog, subscriptions and disputes

def test_track_shipment():
    text, calls = chat("Track shipment 1Z999AA1234567890 via UPS", {
        "create-shipment-tracking": {"tracker_identifiers": [{"tracking_number": "1Z999AA1234567890"}]},
    })
    assert calls[0][1]["carrier"] == "UPS"
    assert "Tracking Number: 1Z999AA1234567890" in text
    assert "🚚 Status: IN_TRANSIT" in text


def test_create_product_and_plan():
    product, calls = chat("Create product 'Coffee Mug'", {"create-product": {"id": "PROD-5FJ0"}})
    assert "Product ID: PROD-5FJ0" in product
    assert calls[0][1]["name"] == "Coffee Mug"

    plan, calls = chat("Create subscription plan 'Gold' for $19.99 using PROD-5FJ0", {
        "create-subscription-plan": {"id": "P-1AB", "status": "ACTIVE"},
    })
    assert "Plan ID: P-1AB" in plan
    assert "Price: 19.99 USD/month" in plan
    request = calls[0][1]
    assert request["product_id"] == "PROD-5FJ0"
    assert request["billing_cycles"][0]["pricing_scheme"]["fixed_price"]["value"] == "19.99"


def test_create_subscription_requires_plan_id():
    text, calls = chat("Create subscription for user@example.com", {"create-subscription": {}})
    assert "Please provide a plan ID" in text
    assert calls == []


def test_create_subscription():
    text, calls = chat("Create subscription for P-5ML4271244454362W for user@example.com", {
        "create-subscription": {"id": "I-BW452GLLEP1G", "status": "APPROVAL_PENDING"},
    })
    assert "Subscription ID: I-BW452GLLEP1G" in text
    assert "Subscriber: user@example.com" in text
    assert calls[0][1]["plan_id"] == "P-5ML4271244454362W"


def test_update_subscription_patches_outstanding_balance():
    text, calls = chat("Update subscription I-BW452GLLEP1G outstanding balance $10", {"update-subscription": {}})
    patch = calls[0][1]["patch"]
    assert patch == [{
        "op": "replace",
        "path": "/billing_info/outstanding_balance",
        "value": {"currency_code": "USD", "value": "10.00"},
    }]
    assert "Outstanding Balance: 10.00 USD" in text


def test_get_dispute():
    text, calls = chat("Get dispute PP-D-12345", {
        "get-dispute": {"dispute_id": "PP-D-12345", "status": "OPEN", "reason": "MERCHANDISE_OR_SERVICE_NOT_RECEIVED"},
    })
    assert calls[0][1] == {"dispute_id": "PP-D-12345"}
    assert "Dispute ID: PP-D-12345" in text
    assert "Status: OPEN" in text


def test_order_id_touching_symbols_returns_usage_without_tool_call():
    text, calls = chat("Get details for order 1AB23456CD789012E-X9", {"get-order": {"id": "X"}})
    assert text.startswith("❌ Please provide a valid 17-character order ID")
    assert calls == []


def test_doubly_stringified_result_is_decoded_once():
    """A JSON string inside a JSON string is not unwrapped twice"""
    text, _ = chat("Create an order for $5", {
        "create-order": json.dumps(json.dumps({"id": "O1", "status": "CREATED"})),
    })
    assert "- Order ID: Unknown" in text
    assert "- Order ID: O1" not in text


# Catalog lookups

def test_list_products():
    text, calls = chat("List products", {"list-products": {"products": [
        {"id": "PROD-1AB", "name": "Coffee Mug"},
        {"id": "PROD-2CD", "name": "Tea Pot"},
    ]}})
    assert calls == [("list-products", {})]
    assert "- PROD-1AB: Coffee Mug" in text
    assert "- PROD-2CD: Tea Pot" in text

    empty, _ = chat("List products", {"list-products": {"products": []}})
    assert "No products found in your catalog." in empty


def test_get_product():
    text, calls = chat("Show product PROD-XYZ123", {"get-product": {
        "id": "PROD-XYZ123", "name": "Coffee Mug", "type": "PHYSICAL", "category": "SOFTWARE",
    }})
    assert calls == [("get-product", {"product_id": "PROD-XYZ123"})]
    assert "- Name: Coffee Mug" in text
    assert "- Description: No description" in text


def test_get_product_requires_id():
    text, calls = chat("Show product mug", {"get-product": {}})
    assert "valid product ID" in text
    assert calls == []


def test_list_subscription_plans():
    text, _ = chat("List subscription plans", {"list-subscription-plans": {"plans": [
        {"id": "P-1AB", "name": "Gold", "status": "ACTIVE"},
    ]}})
    assert "- P-1AB: Gold (ACTIVE)" in text

    empty, _ = chat("List subscription plans", {"list-subscription-plans": {}})
    assert "No subscription plans found." in empty


def test_get_subscription_plan():
    text, calls = chat("Get subscription plan P-5ML4271244454362W", {"get-subscription-plan": {
        "id": "P-5ML4271244454362W",
        "name": "Gold",
        "status": "ACTIVE",
        "product_id": "PROD-5FJ0",
        "billing_cycles": [{"pricing_scheme": {"fixed_price": {"value": "19.99", "currency_code": "USD"}}}],
    }})
    assert calls == [("get-subscription-plan", {"plan_id": "P-5ML4271244454362W"})]
    assert "- Product ID: PROD-5FJ0" in text
    assert "- Price: 19.99 USD" in text


def test_get_subscription():
    text, calls = chat("Get subscription I-BW452GLLEP1G", {"get-subscription": {
        "id": "I-BW452GLLEP1G",
        "status": "ACTIVE",
        "plan_id": "P-5ML4271244454362W",
        "subscriber": {"email_address": "user@example.com"},
        "billing_info": {"next_billing_time": "2024-06-01T10:00:00Z"},
    }})
    assert calls == [("get-subscription", {"subscription_id": "I-BW452GLLEP1G"})]
    assert "- Subscriber: user@example.com" in text
    assert "- Next Billing: 2024-06-01T10:00:00Z" in text


def test_update_subscription_without_amount_sends_empty_patch():
    text, calls = chat("Update subscription I-BW452GLLEP1G", {"update-subscription": {}})
    assert calls == [("update-subscription", {"subscription_id": "I-BW452GLLEP1G", "patch": []})]
    assert "No changes detected" in text


def test_cancel_subscription():
    text, calls = chat("Cancel subscription I-BW452GLLEP1G", {"cancel-subscription": {}})
    assert calls[0][1]["subscription_id"] == "I-BW452GLLEP1G"
    assert calls[0][1]["reason"]
    assert "- Status: CANCELLED" in text

    usage, calls = chat("Cancel subscription now", {"cancel-subscription": {}})
    assert usage.startswith("❌ Please provide a valid subscription ID (e.g., 'Cancel subscription")
    assert calls == []


# Disputes

def test_list_disputes():
    text, _ = chat("List disputes", {"list-disputes": {"items": [{
        "dispute_id": "PP-D-12345",
        "status": "OPEN",
        "reason": "MERCHANDISE_OR_SERVICE_NOT_RECEIVED",
        "dispute_amount": {"currency_code": "USD", "value": "5.00"},
    }]}})
    assert "- PP-D-12345: OPEN, MERCHANDISE_OR_SERVICE_NOT_RECEIVED, 5.00 USD" in text

    empty, _ = chat("List disputes", {"list-disputes": {"items": []}})
    assert "No disputes found." in empty


def test_accept_dispute():
    text, calls = chat("Accept dispute PP-D-12345", {"accept-dispute": {}})
    assert calls[0][0] == "accept-dispute"
    assert calls[0][1]["dispute_id"] == "PP-D-12345"
    assert "- Status: ACCEPTED" in text

    usage, calls = chat("Accept dispute please", {"accept-dispute": {}})
    assert usage.startswith("❌ Please provide a valid dispute ID (e.g., 'Accept dispute")
    assert calls == []
