from langchain_openai import ChatOpenAI
from config.settings import (
    LLM_PROVIDER,
    LLM_TEMPERATURE,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    OPENAI_API_KEY,
    OPENAI_MODEL,
)
from services.narration import build_narration_prompt
from utils.error_handler import LLMError
import logging
import re

logger = logging.getLogger(__name__)

THINK_BLOCK = re.compile(r"(?is)\s*<think>.*?</think>\s*")


class NarrationLLM:
    """Chat model that writes the conversational preamble of a reply"""

    def __init__(self, provider: str = LLM_PROVIDER, llm=None):
        self.provider = provider
        self.llm = llm
        if self.llm is None and provider != "none":
            self.llm = self._build_llm(provider)

    def _build_llm(self, provider: str):
        try:
            if provider == "openai":
                return ChatOpenAI(
                    model=OPENAI_MODEL,
                    temperature=LLM_TEMPERATURE,
                    openai_api_key=OPENAI_API_KEY,
                    request_timeout=30,
                    max_retries=0
                )
            # Ollama serves an OpenAI-compatible API under /v1; the key is ignored
            return ChatOpenAI(
                model=OLLAMA_MODEL,
                temperature=LLM_TEMPERATURE,
                openai_api_key="ollama",
                base_url=f"{OLLAMA_BASE_URL.rstrip('/')}/v1",
                request_timeout=30,
                max_retries=0
            )
        except Exception as e:
            logger.warning(f"⚠️ Narration LLM disabled ({provider}): {e}")
            return None

    @property
    def available(self) -> bool:
        return self.llm is not None

    async def complete(self, prompt: str) -> str:
        """
        Run a single completion

        Args:
            prompt: Full prompt text

        Returns:
            Model output with reasoning blocks stripped

        Raises:
            LLMError: when the model is disabled, unreachable, or returns nothing
        """
        if not self.available:
            raise LLMError("LLM not available", details={"provider": self.provider})

        try:
            response = await self.llm.ainvoke(prompt)
        except Exception as e:
            logger.warning(f"🔄 LLM call failed: {e}")
            raise LLMError(f"Failed to reach {self.provider} model: {e}", details={"provider": self.provider})

        text = response.content if hasattr(response, 'content') else str(response)
        text = THINK_BLOCK.sub("", text or "").strip()
        if not text:
            raise LLMError("LLM returned an empty response", details={"provider": self.provider})
        return text

    async def narrate(self, message: str) -> str:
        """Narration sentence for a chat message"""
        return await self.complete(build_narration_prompt(message))
