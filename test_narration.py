"""Test narration fallback and the agent's use of it"""

import asyncio

import pytest
from langchain_core.messages import AIMessage

from bot.agent import ChatReply, CommerceAgent
from bot.llm_handler import NarrationLLM
from services.narration import CLOSING_TEXT, HELP_TEXT, build_narration_prompt, fallback_narration
from services.tool_registry import FunctionTool, ToolRegistry
from utils.error_handler import LLMError


class FakeChatModel:
    """Stands in for ChatOpenAI"""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.prompts = []

    async def ainvoke(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return AIMessage(content=self.content)


def test_tools_question_lists_registered_tools():
    text = fallback_narration("What PayPal tools are available?", ["create-order", "get-order"])
    assert text.startswith("I have access to 2 PayPal tools: create-order, get-order.")


def test_tools_question_with_empty_registry():
    text = fallback_narration("What tools do you have?", [])
    assert "0 PayPal tools" in text


@pytest.mark.parametrize("message, expected", [
    ("make a payment please", "create a PayPal order"),
    ("can you check the status of my payment", "check the payment status"),
    ("remind them about the invoice", "payment reminder"),
    ("invoice qr please", "QR code"),
    ("show me an invoice", "list your invoices"),
    ("I need an invoice", "create an invoice"),
    ("where is my shipment", "track the shipment"),
    ("I want a refund", "PayPal dashboard"),
    ("transaction history", "recent transactions"),
    ("products?", "manage products"),
    ("subscription plan ideas", "subscription plans"),
    ("dispute help", "manage disputes"),
])
def test_fallback_sentences(message, expected):
    assert expected in fallback_narration(message)


def test_unmatched_message_gets_closing_text():
    assert fallback_narration("hello") == CLOSING_TEXT


def test_llm_output_strips_reasoning_block():
    model = FakeChatModel(content="<think>the user wants help</think>\nSure, here is what I can do.")
    llm = NarrationLLM(provider="ollama", llm=model)

    assert asyncio.run(llm.narrate("hello")) == "Sure, here is what I can do."
    assert model.prompts == [build_narration_prompt("hello")]


def test_llm_failures_raise_llm_error():
    with pytest.raises(LLMError):
        asyncio.run(NarrationLLM(provider="none").narrate("hello"))

    failing = NarrationLLM(provider="ollama", llm=FakeChatModel(error=ConnectionError("refused")))
    with pytest.raises(LLMError):
        asyncio.run(failing.narrate("hello"))

    empty = NarrationLLM(provider="ollama", llm=FakeChatModel(content="<think>...</think>"))
    with pytest.raises(LLMError):
        asyncio.run(empty.narrate("hello"))


def test_agent_falls_back_when_llm_is_unreachable():
    tools = ToolRegistry([FunctionTool("create-order", lambda request: {"id": "O1"})])
    llm = NarrationLLM(provider="ollama", llm=FakeChatModel(error=ConnectionError("refused")))
    agent = CommerceAgent(tools, llm)

    reply = asyncio.run(agent.process_message("What PayPal tools are available?"))

    assert reply.intent is None
    assert reply.narration.startswith("I have access to 1 PayPal tools: create-order.")
    assert reply.operation_result == HELP_TEXT
    assert reply.text == f"{reply.narration}\n\n{HELP_TEXT}"


def test_agent_uses_llm_narration_when_available():
    agent = CommerceAgent(ToolRegistry(), NarrationLLM(provider="ollama", llm=FakeChatModel(content="Happy to help!")))
    reply = asyncio.run(agent.process_message("hello"))
    assert reply.narration == "Happy to help!"
    assert reply.operation_result == HELP_TEXT


def test_routed_message_skips_narration():
    model = FakeChatModel(content="unused")
    tools = ToolRegistry([FunctionTool("create-order", lambda request: {"id": "O1", "status": "CREATED"})])
    agent = CommerceAgent(tools, NarrationLLM(provider="ollama", llm=model))

    reply = asyncio.run(agent.process_message("Create an order for $5"))

    assert reply.intent == "create_order"
    assert reply.narration is None
    assert "Order ID: O1" in reply.text
    assert model.prompts == []


def test_chat_reply_text_skips_empty_parts():
    assert ChatReply(narration="Hi").text == "Hi"
    assert ChatReply(narration="Hi", operation_result="Done").text == "Hi\n\nDone"
