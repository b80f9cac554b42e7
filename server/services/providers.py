"""
Hosted text-generation providers.

Both providers answer a single prompt with a single block of text; no
streaming and no multi-turn conversation.
"""

import logging
from typing import Protocol

from google import genai
from groq import AsyncGroq

from config import Settings

logger = logging.getLogger(__name__)


class TextProvider(Protocol):
    name: str

    async def generate_text(self, prompt: str) -> str:
        ...


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        self.model = model
        self.client = genai.Client(api_key=api_key)

    async def generate_text(self, prompt: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )
        return response.text or ""


class GroqProvider:
    name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str = "llama-3.3-70b-versatile",
        temperature: float = 0.3,
        max_tokens: int = 4096,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncGroq(api_key=api_key)

    async def generate_text(self, prompt: str) -> str:
        completion = await self.client.chat.completions.create(
            messages=[{"role": "user", "content": prompt}],
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""


def build_provider(settings: Settings) -> TextProvider | None:
    """Instantiate the provider selected by settings, or None if there is none."""
    provider_name = settings.ai_provider
    if provider_name == "gemini":
        provider = GeminiProvider(settings.gemini_api_key, model=settings.gemini_model)
    elif provider_name == "groq":
        provider = GroqProvider(settings.groq_api_key, model=settings.groq_model)
    else:
        logger.warning("No AI provider configured, analyses will use the fallback result")
        return None

    logger.info(f"Using AI provider '{provider.name}' with model {provider.model}")
    return provider
