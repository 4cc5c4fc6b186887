from dataclasses import dataclass
from typing import Optional
from bot.llm_handler import NarrationLLM
from services.intent_router import route, run_operation
from services.narration import HELP_TEXT, fallback_narration
from services.tool_registry import ToolRegistry
from utils.error_handler import LLMError
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatReply:
    """Narration and operation result kept apart until the HTTP layer joins them"""
    narration: Optional[str] = None
    operation_result: Optional[str] = None
    intent: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n\n".join(part for part in (self.narration, self.operation_result) if part)


class CommerceAgent:
    """Routes chat messages to PayPal operations"""

    def __init__(self, tools: ToolRegistry, llm: NarrationLLM = None):
        self.tools = tools
        self.llm = llm if llm is not None else NarrationLLM(provider="none")
        logger.info(f"🔧 Agent initialized with {len(self.tools)} PayPal tools: {self.tools.names}")

    @property
    def tool_names(self):
        return self.tools.names

    async def process_message(self, message: str) -> ChatReply:
        """
        Handle one chat message

        Args:
            message: Free-text request from the user

        Returns:
            ChatReply; narration is only filled in when no operation ran
        """
        logger.info(f"🔍 Processing message: \"{message}\"")

        spec = route(message)
        if spec is not None:
            result = await run_operation(spec, self.tools, message)
            return ChatReply(operation_result=result, intent=spec.intent)

        narration = await self.narrate(message)
        return ChatReply(narration=narration, operation_result=HELP_TEXT)

    async def narrate(self, message: str) -> str:
        """LLM narration, or the static fallback when the model is unavailable"""
        try:
            return await self.llm.narrate(message)
        except LLMError as e:
            logger.info(f"🔄 LLM unavailable, using rule-based approach ({e.message})")
            return fallback_narration(message, self.tool_names)
