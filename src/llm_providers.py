from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Optional

import google.generativeai as genai
from google.generativeai.types import HarmCategory, HarmBlockThreshold # For safety settings
from openai import AsyncOpenAI

import config
from errors import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    name = "LLM provider"

    @abstractmethod
    async def generate_content(self, messages: list[dict]) -> str:
        """
        Generate a completion for an ordered list of role-tagged messages.
        Args:
            messages: [{"role": "system" | "user" | "assistant", "content": str}, ...]
        Returns:
            Generated text ("" when the model produced nothing)
        """

    async def complete(self, messages: list[dict], timeout: Optional[float] = None) -> str:
        """generate_content bounded by a timeout (config.LLM_TIMEOUT_SECONDS by default)."""
        timeout = config.LLM_TIMEOUT_SECONDS if timeout is None else timeout
        try:
            return await asyncio.wait_for(self.generate_content(messages), timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(self.name, timeout) from e


class GeminiProvider(LLMProvider):
    name = "Gemini"

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None) -> None:
        self.model_name = model_name or config.GEMINI_MODEL
        if not self.model_name:
            logger.error("GEMINI_MODEL environment variable not set.")
            raise ValueError("GEMINI_MODEL environment variable not set.")

        api_key = api_key or config.GEMINI_API_KEY
        if not api_key:
            logger.error("GEMINI_API_KEY environment variable not set.")
            raise ValueError("GEMINI_API_KEY environment variable not set.")

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(self.model_name)

        # Less restrictive safety settings avoid empty responses on borderline
        # but harmless transcripts.
        self.safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
        }

    @staticmethod
    def _flatten(messages: list[dict]) -> str:
        # System instructions and user content are combined into one prompt.
        return "\n\n".join(m.get("content", "") for m in messages if m.get("content"))

    async def generate_content(self, messages: list[dict]) -> str:
        try:
            response = await self.model.generate_content_async(
                self._flatten(messages),
                generation_config={"temperature": config.LLM_TEMPERATURE},
                safety_settings=self.safety_settings,
            )
        except Exception as e:
            logger.error(f"Gemini error: {e}")
            raise UpstreamError(f"Gemini request failed: {e}") from e

        feedback = getattr(response, "prompt_feedback", None)
        if feedback and feedback.block_reason:
            raise UpstreamError(
                f"Content generation blocked. Reason: {feedback.block_reason.name}"
            )
        try:
            return response.text
        except ValueError:
            # .text raises when the candidate has no parts (e.g. safety stop)
            logger.warning("Gemini returned a response without text parts")
            return ""


class OpenAIProvider(LLMProvider):
    name = "OpenAI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_name: Optional[str] = None,
    ):
        self.api_key = api_key or config.OPENAI_API_KEY
        self.base_url = base_url or config.OPENAI_BASE_URL
        self.model_name = model_name or config.OPENAI_MODEL

        if not self.api_key:
            logger.error("OPENAI_API_KEY environment variable not set.")
            raise ValueError("OPENAI_API_KEY environment variable not set.")

        self.async_llm = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)

    async def generate_content(self, messages: list[dict]) -> str:
        try:
            response = await self.async_llm.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=config.LLM_TEMPERATURE,
            )
        except Exception as e:
            logger.error(f"OpenAI error: {e}")
            raise UpstreamError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def get_llm_provider(provider_name: Optional[str] = None) -> LLMProvider:
    provider_name = (provider_name or config.LLM_PROVIDER).lower()
    logger.info(f"Initializing LLM provider: {provider_name}")
    if provider_name == "gemini":
        return GeminiProvider()
    elif provider_name == "openai":
        return OpenAIProvider()
    else:
        logger.error(f"Unsupported LLM provider: {provider_name}")
        raise ValueError(f"Unsupported LLM provider: {provider_name}")
