"""Test the PayPal REST client and capability provider against a mock transport"""

import asyncio
import json

import httpx
import pytest

from bot.paypal_api import PayPalAPI
from bot.paypal_tools import build_order_body, build_paypal_tools
from services.tool_registry import ALL_CAPABILITIES
from utils.error_handler import PayPalAPIError


class FakePayPal:
    """Routes mock requests and records them"""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "A21AA-token", "expires_in": 32400})
        return self.routes[(request.method, request.url.path)](request)


def make_api(routes, client_id="client", client_secret="secret"):
    fake = FakePayPal(routes)
    api = PayPalAPI(client_id, client_secret, "https://api-m.sandbox.paypal.com", transport=httpx.MockTransport(fake))
    return api, fake


def test_token_is_cached_between_requests():
    api, fake = make_api({
        ("GET", "/v2/checkout/orders/O1"): lambda request: httpx.Response(200, json={"id": "O1"}),
    })

    async def run():
        first = await api.request("GET", "/v2/checkout/orders/O1")
        second = await api.request("GET", "/v2/checkout/orders/O1")
        await api.close()
        return first, second

    first, second = asyncio.run(run())

    assert first == second == {"id": "O1"}
    token_calls = [r for r in fake.requests if r.url.path == "/v1/oauth2/token"]
    assert len(token_calls) == 1
    assert fake.requests[-1].headers["Authorization"] == "Bearer A21AA-token"


def test_no_content_response_is_empty_dict():
    api, _ = make_api({
        ("POST", "/v2/invoicing/invoices/INV2-1/send"): lambda request: httpx.Response(204),
    })
    assert asyncio.run(api.request("POST", "/v2/invoicing/invoices/INV2-1/send", json={})) == {}


def test_error_status_raises_paypal_api_error():
    api, _ = make_api({
        ("GET", "/v2/checkout/orders/MISSING"): lambda request: httpx.Response(
            404, json={"name": "RESOURCE_NOT_FOUND", "message": "The specified resource does not exist."}
        ),
    })

    with pytest.raises(PayPalAPIError) as exc_info:
        asyncio.run(api.request("GET", "/v2/checkout/orders/MISSING"))

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "The specified resource does not exist."
    assert exc_info.value.details["name"] == "RESOURCE_NOT_FOUND"


def test_missing_credentials():
    api, fake = make_api({}, client_id=None, client_secret=None)

    with pytest.raises(PayPalAPIError) as exc_info:
        asyncio.run(api.get_access_token())

    assert exc_info.value.status_code == 401
    assert fake.requests == []


def test_registry_covers_every_capability():
    api, _ = make_api({})
    assert sorted(build_paypal_tools(api).names) == sorted(ALL_CAPABILITIES)


def test_tool_turns_api_errors_into_error_payload():
    api, _ = make_api({
        ("POST", "/v2/checkout/orders"): lambda request: httpx.Response(
            422, json={"name": "UNPROCESSABLE_ENTITY", "message": "The requested action could not be performed."}
        ),
    })
    tool = build_paypal_tools(api).get_tool("create-order")

    result = asyncio.run(tool.invoke({"currencyCode": "USD", "items": []}))

    assert result["error"]["name"] == "UNPROCESSABLE_ENTITY"
    assert result["error"]["message"] == "The requested action could not be performed."


def test_create_order_tool_posts_checkout_body():
    captured = {}

    def create(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "5O190127TN364715T", "status": "CREATED"})

    api, _ = make_api({("POST", "/v2/checkout/orders"): create})
    tool = build_paypal_tools(api).get_tool("create-order")

    result = asyncio.run(tool.invoke({
        "currencyCode": "USD",
        "items": [{"name": "Mug", "quantity": 1, "itemCost": "29.99", "itemTotal": "29.99"}],
    }))

    assert result["id"] == "5O190127TN364715T"
    unit = captured["body"]["purchase_units"][0]
    assert captured["body"]["intent"] == "CAPTURE"
    assert unit["amount"]["value"] == "29.99"
    assert unit["items"][0]["unit_amount"] == {"currency_code": "USD", "value": "29.99"}


def test_build_order_body_sums_items():
    body = build_order_body({"currencyCode": "USD", "items": [
        {"itemCost": "10.00", "itemTotal": "20.00", "quantity": 2},
        {"itemCost": "5.5", "quantity": 1},
    ]})
    assert body["purchase_units"][0]["amount"]["value"] == "25.50"


def test_empty_subscription_patch_makes_no_request():
    api, fake = make_api({})
    tool = build_paypal_tools(api).get_tool("update-subscription")

    result = asyncio.run(tool.invoke({"subscription_id": "I-BW452GLLEP1G", "patch": []}))

    assert result == {"id": "I-BW452GLLEP1G", "status": "UNCHANGED"}
    assert fake.requests == []
