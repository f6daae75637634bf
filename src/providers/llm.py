"""
Language-model provider adapters using Pydantic AI

Supports OpenAI, Anthropic, DeepSeek and Perplexity. DeepSeek and
Perplexity speak the OpenAI chat-completions protocol, so they reuse the
OpenAI chat model with their own base URL.

Adapters return raw text; callers extract JSON themselves.
"""
from typing import Optional

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.openai import OpenAIProvider

from src.core.results import ErrorKind, ProviderResult
from src.providers.base import ProviderAdapter
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 8000


class LLMAdapter(ProviderAdapter):
    """Contract: complete(system_prompt, user_prompt) -> ProviderResult[str]"""

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str,
        model: Optional[Model] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS
    ):
        super().__init__(None)
        self.api_key = api_key
        self.model_name = model_name
        self.max_tokens = max_tokens
        self._model = model

    @property
    def is_configured(self) -> bool:
        return bool(self._model is not None or self.api_key)

    @property
    def model(self) -> Model:
        """Get or create the Pydantic AI model"""
        if self._model is None:
            logger.info(f"Initializing {self.name} model: {self.model_name}")
            self._model = self._create_model()
        return self._model

    def _create_model(self) -> Model:
        raise NotImplementedError

    async def complete(self, system_prompt: str, user_prompt: str) -> ProviderResult[str]:
        if not self.is_configured:
            return self.unavailable()
        try:
            agent = Agent(self.model, output_type=str, system_prompt=system_prompt)
            result = await agent.run(user_prompt, model_settings={"max_tokens": self.max_tokens})
            text = result.output
        except Exception as e:
            return self.failed(e)

        if not text or not text.strip():
            logger.warning(f"{self.name} returned an empty completion")
            return ProviderResult.failure(self.name, ErrorKind.MALFORMED, "empty completion")

        logger.info(f"{self.name} completion received ({len(text)} chars)")
        return ProviderResult.success(self.name, text)


class OpenAIAdapter(LLMAdapter):
    name = "openai"

    def _create_model(self) -> Model:
        return OpenAIChatModel(self.model_name, provider=OpenAIProvider(api_key=self.api_key))


class AnthropicAdapter(LLMAdapter):
    name = "anthropic"

    def _create_model(self) -> Model:
        return AnthropicModel(self.model_name, provider=AnthropicProvider(api_key=self.api_key))


class OpenAICompatibleAdapter(LLMAdapter):
    """Chat-completions provider reached through an OpenAI-compatible base URL"""

    def __init__(self, api_key: Optional[str], model_name: str, base_url: str,
                 model: Optional[Model] = None, max_tokens: int = DEFAULT_MAX_TOKENS):
        super().__init__(api_key, model_name, model=model, max_tokens=max_tokens)
        self.base_url = base_url

    def _create_model(self) -> Model:
        return OpenAIChatModel(
            self.model_name,
            provider=OpenAIProvider(base_url=self.base_url, api_key=self.api_key),
        )


class DeepSeekAdapter(OpenAICompatibleAdapter):
    name = "deepseek"


class PerplexityAdapter(OpenAICompatibleAdapter):
    name = "perplexity"
