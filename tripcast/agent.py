# ABOUTME: Pydantic AI agent used as the text-generation capability for travel suggestions.
# ABOUTME: Builds OpenRouter models lazily per model name so primary and fallback share one agent.

import logging
import os
from collections.abc import Callable
from typing import Any, Protocol

from openai import AsyncOpenAI
from pydantic_ai import Agent, capture_run_messages
from pydantic_ai.exceptions import UnexpectedModelBehavior
from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart
from pydantic_ai.models import Model
from pydantic_ai.models.openrouter import OpenRouterModel
from pydantic_ai.providers.openrouter import OpenRouterProvider

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# One model call per attempt: retries and fallback are owned by the suggestion pipeline.
suggestion_agent = Agent(
    output_type=str,
    output_retries=0,
    system_prompt=(
        "You are an expert travel planner and local guide. You turn a week of weather data into "
        "short, practical, easy-to-skim travel advice.\n\n"
        "Rules:\n"
        "1. Follow the section labels requested in the prompt exactly, each as a bold label.\n"
        "2. Use short markdown bullets, never headings or long paragraphs.\n"
        "3. Base weather-dependent advice only on the forecast you are given.\n"
    ),
)


class TextGenerator(Protocol):
    """Text-generation capability: returns a provider-shaped response for a prompt."""

    async def generate_text(self, model: str, prompt: str) -> Any: ...


def _is_blank_reply(message: ModelResponse) -> bool:
    for part in message.parts:
        if isinstance(part, ToolCallPart):
            return False
        if isinstance(part, TextPart) and part.content.strip():
            return False
    return True


class AgentTextGenerator:
    """TextGenerator backed by the suggestion agent and OpenRouter models."""

    def __init__(self, api_key: str | None = None, model_factory: Callable[[str], Model] | None = None):
        self._api_key = api_key
        self._model_factory = model_factory or self._openrouter_model
        self._provider: OpenRouterProvider | None = None

    def _openrouter_model(self, model_name: str) -> Model:
        if self._provider is None:
            # Retries belong to the suggestion pipeline, so the SDK makes exactly one request per call.
            client = AsyncOpenAI(
                base_url=OPENROUTER_BASE_URL,
                api_key=self._api_key or os.getenv("OPENROUTER_API_KEY"),
                max_retries=0,
            )
            self._provider = OpenRouterProvider(openai_client=client)
        return OpenRouterModel(model_name, provider=self._provider)

    async def generate_text(self, model: str, prompt: str) -> Any:
        """Run the agent once; a blank model reply comes back as empty text instead of an error."""
        with capture_run_messages() as messages:
            try:
                return await suggestion_agent.run(prompt, model=self._model_factory(model))
            except UnexpectedModelBehavior:
                replies = [m for m in messages if isinstance(m, ModelResponse)]
                if replies and _is_blank_reply(replies[-1]):
                    logger.warning("Model %s returned an empty reply", model)
                    return ""
                raise
