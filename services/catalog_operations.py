"""Catalog products, billing plans and subscriptions"""

import logging

from services.extractors import (
    DEFAULT_PLAN_PRICE,
    DEFAULT_PRODUCT_PRICE,
    DEFAULT_SUBSCRIBER_EMAIL,
    PLAN_ID,
    PRODUCT_ID,
    SUBSCRIPTION_ID,
    SUBSCRIPTION_PLAN_ID,
    ParamSet,
    extract_amount,
    extract_currency,
    extract_email,
    extract_identifier,
    extract_name,
    format_amount,
    require_identifier,
)
from services.normalizer import PLAN, PRODUCT, SUBSCRIPTION, find_approval_link, normalize
from services.rendering import dig, items_of, render_list
from services.tool_registry import Capability, ToolRegistry, invoke_tool

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_NAME = "New Product"
DEFAULT_PLAN_NAME = "Monthly Subscription"
PLACEHOLDER_PRODUCT_ID = "PROD-XXXXXXXXXXXX"

BRAND_NAME = "PayPal Agent"
RETURN_URL = "https://example.com/success"
CANCEL_URL = "https://example.com/cancel"
CANCEL_REASON = "User requested cancellation via PayPal Agent"

UPDATE_USAGE = "❌ Please provide a valid subscription ID (e.g., 'Update subscription I-XXXXXXXXXXXXXXXX')"
CANCEL_USAGE = "❌ Please provide a valid subscription ID (e.g., 'Cancel subscription I-XXXXXXXXXXXXXXXX')"


# Products

def product_params(message: str) -> ParamSet:
    return ParamSet(
        name=extract_name(message, "product", DEFAULT_PRODUCT_NAME),
        amount=extract_amount(message, DEFAULT_PRODUCT_PRICE),
        currency=extract_currency(message),
    )


async def create_product(tools: ToolRegistry, message: str) -> str:
    params = product_params(message)
    raw = await invoke_tool(tools, Capability.CREATE_PRODUCT, {
        "name": params.name,
        "description": f"{params.name} - Created via PayPal Agent",
        "type": "PHYSICAL",
        "category": "SOFTWARE",
        "home_url": "https://example.com",
    })
    result = normalize(raw, PRODUCT)
    logger.info(f"✅ Product {result.id} created")

    return "\n".join([
        "📦 **Product Created Successfully!**",
        f"- Product ID: {result.id}",
        f"- Name: {params.name}",
        f"- Type: {result.raw.get('type') or 'PHYSICAL'}",
        f"- Status: {result.status}",
    ])


async def list_products(tools: ToolRegistry, message: str) -> str:
    raw = await invoke_tool(tools, Capability.LIST_PRODUCTS, {})
    products = items_of(normalize(raw).raw, "products")
    return render_list(
        "📦 **Your Products:**",
        products,
        lambda product: f"{product.get('id', 'Unknown')}: {product.get('name', 'Unnamed')}",
        "No products found in your catalog.",
    )


async def get_product(tools: ToolRegistry, message: str) -> str:
    product_id = require_identifier(message, PRODUCT_ID)
    raw = await invoke_tool(tools, Capability.GET_PRODUCT, {"product_id": product_id})
    product = normalize(raw, PRODUCT).raw

    return "\n".join([
        "📦 **Product Details:**",
        f"- Product ID: {product.get('id') or product_id}",
        f"- Name: {product.get('name') or 'Unknown'}",
        f"- Description: {product.get('description') or 'No description'}",
        f"- Type: {product.get('type') or 'Unknown'}",
        f"- Category: {product.get('category') or 'Unknown'}",
    ])


# Subscription plans

def plan_params(message: str) -> ParamSet:
    return ParamSet(
        name=extract_name(message, "plan", DEFAULT_PLAN_NAME),
        amount=extract_amount(message, DEFAULT_PLAN_PRICE),
        currency=extract_currency(message),
        identifier=extract_identifier(message, PRODUCT_ID),
    )


def build_plan_request(params: ParamSet) -> dict:
    """Monthly, open-ended plan with a single fixed-price billing cycle"""
    return {
        "product_id": params.identifier or PLACEHOLDER_PRODUCT_ID,
        "name": params.name,
        "description": f"{params.name} - Created via PayPal Agent",
        "billing_cycles": [
            {
                "frequency": {"interval_unit": "MONTH", "interval_count": 1},
                "tenure_type": "REGULAR",
                "sequence": 1,
                "total_cycles": 0,
                "pricing_scheme": {
                    "fixed_price": {"value": format_amount(params.amount), "currency_code": params.currency},
                },
            }
        ],
        "payment_preferences": {
            "auto_bill_outstanding": True,
            "setup_fee_failure_action": "CONTINUE",
            "payment_failure_threshold": 3,
        },
    }


async def create_subscription_plan(tools: ToolRegistry, message: str) -> str:
    """
    Create a monthly billing plan

    Args:
        tools: Capability registry
        message: e.g. "Create subscription plan 'Gold' for $19.99 for product PROD-123"

    Returns:
        Plan summary with the monthly price
    """
    params = plan_params(message)
    if not params.identifier:
        logger.warning(f"⚠️ No product ID in message, using placeholder {PLACEHOLDER_PRODUCT_ID}")

    raw = await invoke_tool(tools, Capability.CREATE_SUBSCRIPTION_PLAN, build_plan_request(params))
    result = normalize(raw, PLAN)

    return "\n".join([
        "📋 **Subscription Plan Created Successfully!**",
        f"- Plan ID: {result.id}",
        f"- Name: {params.name}",
        f"- Price: {format_amount(params.amount)} {params.currency}/month",
        f"- Status: {result.status}",
    ])


async def list_subscription_plans(tools: ToolRegistry, message: str) -> str:
    raw = await invoke_tool(tools, Capability.LIST_SUBSCRIPTION_PLANS, {})
    plans = items_of(normalize(raw).raw, "plans")
    return render_list(
        "📋 **Your Subscription Plans:**",
        plans,
        lambda plan: f"{plan.get('id', 'Unknown')}: {plan.get('name', 'Unnamed')} ({plan.get('status', 'UNKNOWN')})",
        "No subscription plans found.",
    )


async def get_subscription_plan(tools: ToolRegistry, message: str) -> str:
    plan_id = require_identifier(message, PLAN_ID)
    raw = await invoke_tool(tools, Capability.GET_SUBSCRIPTION_PLAN, {"plan_id": plan_id})
    plan = normalize(raw, PLAN).raw
    price = dig(plan, "billing_cycles", 0, "pricing_scheme", "fixed_price", default={})

    lines = [
        "📋 **Subscription Plan Details:**",
        f"- Plan ID: {plan.get('id') or plan_id}",
        f"- Name: {plan.get('name') or 'Unknown'}",
        f"- Status: {plan.get('status') or 'Unknown'}",
        f"- Product ID: {plan.get('product_id') or 'Unknown'}",
    ]
    if price.get("value"):
        lines.append(f"- Price: {price['value']} {price.get('currency_code', '')}".rstrip())
    return "\n".join(lines)


# Subscriptions

def subscription_params(message: str) -> ParamSet:
    return ParamSet(
        identifier=require_identifier(message, SUBSCRIPTION_PLAN_ID),
        email=extract_email(message, DEFAULT_SUBSCRIBER_EMAIL),
    )


async def create_subscription(tools: ToolRegistry, message: str) -> str:
    params = subscription_params(message)
    raw = await invoke_tool(tools, Capability.CREATE_SUBSCRIPTION, {
        "plan_id": params.identifier,
        "subscriber": {
            "email_address": params.email,
            "name": {"given_name": "John", "surname": "Doe"},
        },
        "application_context": {
            "brand_name": BRAND_NAME,
            "locale": "en-US",
            "shipping_preference": "NO_SHIPPING",
            "user_action": "SUBSCRIBE_NOW",
            "payment_method": {
                "payer_selected": "PAYPAL",
                "payee_preferred": "IMMEDIATE_PAYMENT_REQUIRED",
            },
            "return_url": RETURN_URL,
            "cancel_url": CANCEL_URL,
        },
    })
    result = normalize(raw, SUBSCRIPTION)
    approval_url = find_approval_link(result)

    lines = [
        "🔄 **Subscription Created Successfully!**",
        f"- Subscription ID: {result.id}",
        f"- Plan ID: {params.identifier}",
        f"- Subscriber: {params.email}",
        f"- Status: {result.status}",
    ]
    if approval_url:
        lines.append(f"- Approval URL: {approval_url}")
    return "\n".join(lines)


async def get_subscription(tools: ToolRegistry, message: str) -> str:
    subscription_id = require_identifier(message, SUBSCRIPTION_ID)
    raw = await invoke_tool(tools, Capability.GET_SUBSCRIPTION, {"subscription_id": subscription_id})
    subscription = normalize(raw, SUBSCRIPTION).raw

    return "\n".join([
        "🔄 **Subscription Details:**",
        f"- Subscription ID: {subscription.get('id') or subscription_id}",
        f"- Status: {subscription.get('status') or 'Unknown'}",
        f"- Plan ID: {subscription.get('plan_id') or 'Unknown'}",
        f"- Subscriber: {dig(subscription, 'subscriber', 'email_address', default='Unknown')}",
        f"- Next Billing: {dig(subscription, 'billing_info', 'next_billing_time', default='N/A')}",
    ])


def build_subscription_patch(message: str) -> list:
    """JSON Patch operations inferred from the message; only the outstanding balance is supported"""
    amount_given = extract_amount(message, default=0)
    if not amount_given:
        return []
    return [{
        "op": "replace",
        "path": "/billing_info/outstanding_balance",
        "value": {"currency_code": extract_currency(message), "value": format_amount(amount_given)},
    }]


async def update_subscription(tools: ToolRegistry, message: str) -> str:
    subscription_id = require_identifier(message, SUBSCRIPTION_ID, usage=UPDATE_USAGE)
    patch = build_subscription_patch(message)
    await invoke_tool(tools, Capability.UPDATE_SUBSCRIPTION, {
        "subscription_id": subscription_id,
        "patch": patch,
    })

    lines = [
        "🔄 **Subscription Updated Successfully!**",
        f"- Subscription ID: {subscription_id}",
    ]
    if patch:
        lines.append(f"- Outstanding Balance: {patch[0]['value']['value']} {patch[0]['value']['currency_code']}")
    else:
        lines.append("- No changes detected in your message (try: 'Update subscription I-XXXX outstanding balance $10')")
    return "\n".join(lines)


async def cancel_subscription(tools: ToolRegistry, message: str) -> str:
    subscription_id = require_identifier(message, SUBSCRIPTION_ID, usage=CANCEL_USAGE)
    await invoke_tool(tools, Capability.CANCEL_SUBSCRIPTION, {
        "subscription_id": subscription_id,
        "reason": CANCEL_REASON,
    })
    return "\n".join([
        "❌ **Subscription Cancelled Successfully!**",
        f"- Subscription ID: {subscription_id}",
        "- Status: CANCELLED",
    ])
