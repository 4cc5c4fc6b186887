"""
Named capability registry for commerce tools.

The registry is built once at startup and never mutated afterwards; the agent
receives it as a constructor argument so tests can hand in doubles.
"""

import inspect
import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Union

from services.normalizer import error_message
from utils.error_handler import ToolReportedError, ToolUnavailableError

logger = logging.getLogger(__name__)


class Capability:
    """Stable capability names"""
    CREATE_ORDER = "create-order"
    GET_ORDER = "get-order"
    CAPTURE_ORDER = "capture-order"
    LIST_TRANSACTIONS = "list-transactions"

    CREATE_INVOICE = "create-invoice"
    GET_INVOICE = "get-invoice"
    LIST_INVOICES = "list-invoices"
    SEND_INVOICE = "send-invoice"
    SEND_INVOICE_REMINDER = "send-invoice-reminder"
    CANCEL_INVOICE = "cancel-invoice"
    GENERATE_INVOICE_QR = "generate-invoice-qr"

    CREATE_PRODUCT = "create-product"
    LIST_PRODUCTS = "list-products"
    GET_PRODUCT = "get-product"

    CREATE_SUBSCRIPTION_PLAN = "create-subscription-plan"
    LIST_SUBSCRIPTION_PLANS = "list-subscription-plans"
    GET_SUBSCRIPTION_PLAN = "get-subscription-plan"
    CREATE_SUBSCRIPTION = "create-subscription"
    GET_SUBSCRIPTION = "get-subscription"
    UPDATE_SUBSCRIPTION = "update-subscription"
    CANCEL_SUBSCRIPTION = "cancel-subscription"

    LIST_DISPUTES = "list-disputes"
    GET_DISPUTE = "get-dispute"
    ACCEPT_DISPUTE = "accept-dispute"

    CREATE_SHIPMENT_TRACKING = "create-shipment-tracking"


ALL_CAPABILITIES = tuple(
    value for key, value in vars(Capability).items() if not key.startswith("_")
)


class Tool(Protocol):
    name: str
    description: str

    async def invoke(self, request: Dict[str, Any]) -> Any:
        ...


class FunctionTool:
    """Adapt a plain (sync or async) callable to the Tool interface"""

    def __init__(self, name: str, func: Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]], description: str = ""):
        self.name = name
        self.func = func
        self.description = description or f"PayPal {name} tool"

    async def invoke(self, request: Dict[str, Any]) -> Any:
        result = self.func(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self):
        return f"FunctionTool({self.name!r})"


class ToolRegistry(Mapping):
    """Read-only name -> Tool mapping"""

    def __init__(self, tools: Iterable[Tool] = ()):
        entries = {}
        for tool in tools:
            if tool.name in entries:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            entries[tool.name] = tool
        self._tools = MappingProxyType(entries)

    def __getitem__(self, name: str) -> Tool:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def get_tool(self, name: str) -> Tool:
        """
        Look up a capability by name

        Raises:
            ToolUnavailableError: when the name is not registered
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolUnavailableError(name, details={"registered": self.names})
        return tool


async def invoke_tool(tools: ToolRegistry, name: str, request: Optional[Dict[str, Any]] = None) -> Any:
    """
    Invoke a capability and surface {error: ...} payloads as exceptions

    Args:
        tools: Registry to look the capability up in
        name: Capability name
        request: JSON-serializable request body

    Returns:
        The tool result as returned; `normalize` decodes string results once

    Raises:
        ToolUnavailableError: capability not registered
        ToolReportedError: the tool answered with an error payload
    """
    tool = tools.get_tool(name)
    logger.info(f"🚀 Executing PayPal tool: {name}")
    logger.debug(f"📥 Input: {request}")

    result = await tool.invoke(request or {})

    message = error_message(result)
    if message:
        logger.warning(f"❌ Tool {name} reported an error: {message}")
        raise ToolReportedError(message, details={"tool": name, "payload": result})

    logger.debug(f"✅ Tool result: {result}")
    return result
