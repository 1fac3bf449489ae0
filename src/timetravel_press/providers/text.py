"""Text generation over the configured provider chain, using Agno agents.

Providers are tried in priority order (Gemini first by default). The raw model
text is returned; turning it into an ArticleBundle is the caller's job.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable

from .config import ProviderConfig, TextProviderConfig, load_provider_config

_logger = logging.getLogger("ai_calls")

AIEventCallback = Callable[[dict[str, Any]], Awaitable[None]] | None

# Rough USD per 1k tokens, for the run summary only
_COST_PER_1K_TOKENS = {
    "gemini": 0.0001, "openai": 0.01, "anthropic": 0.015,
    "groq": 0.0001, "ollama": 0.0, "lmstudio": 0.0,
}
_DEFAULT_COST_PER_1K = 0.001


def _gemini(config: TextProviderConfig, temperature: float, max_tokens: int) -> Any:
    from agno.models.google import Gemini
    return Gemini(
        id=config.model_id,
        api_key=config.get_api_key(),
        temperature=temperature,
        top_p=0.95,
        max_output_tokens=max_tokens,
    )


def _openai(config: TextProviderConfig, temperature: float, max_tokens: int) -> Any:
    from agno.models.openai import OpenAIChat
    return OpenAIChat(
        id=config.model_id,
        api_key=config.get_api_key(),
        temperature=temperature,
        max_tokens=max_tokens,
    )


def _anthropic(config: TextProviderConfig, temperature: float, max_tokens: int) -> Any:
    from agno.models.anthropic import Claude
    return Claude(
        id=config.model_id,
        api_key=config.get_api_key(),
        temperature=temperature,
        max_tokens=max_tokens,
    )


def _groq(config: TextProviderConfig, temperature: float, max_tokens: int) -> Any:
    from agno.models.groq import Groq
    return Groq(
        id=config.model_id,
        api_key=config.get_api_key(),
        temperature=temperature,
        max_tokens=max_tokens,
    )


def _ollama(config: TextProviderConfig, temperature: float, max_tokens: int) -> Any:
    from agno.models.ollama import Ollama
    return Ollama(
        id=config.model_id,
        host=config.get_base_url() or "http://localhost:11434",
        options={"temperature": temperature, "num_predict": max_tokens},
    )


def _openai_like(config: TextProviderConfig, temperature: float, max_tokens: int) -> Any:
    # LM Studio and other local servers speaking the OpenAI protocol
    from agno.models.openai.like import OpenAILike
    return OpenAILike(
        id=config.model_id,
        api_key=config.get_api_key() or "not-needed",
        base_url=config.get_base_url(),
        temperature=temperature,
        max_tokens=max_tokens,
    )


_MODEL_BUILDERS: dict[str, Callable[[TextProviderConfig, float, int], Any]] = {
    "gemini": _gemini,
    "openai": _openai,
    "anthropic": _anthropic,
    "groq": _groq,
    "ollama": _ollama,
}


def _create_agno_model(
    provider_name: str,
    provider_config: TextProviderConfig,
    temperature: float,
    max_tokens: int,
) -> Any:
    """Build the Agno model for a chain entry; unknown names go through OpenAILike."""
    builder = _MODEL_BUILDERS.get(provider_name, _openai_like)
    return builder(provider_config, temperature, max_tokens)


class TextProvider:
    """Text completions with provider fallback.

    Usage:
        provider = TextProvider()
        response = await provider.generate("Write the front page for 1964-10-10")
    """

    def __init__(
        self,
        config: ProviderConfig | None = None,
        event_callback: AIEventCallback = None,
    ):
        self.config = config or load_provider_config()
        self._event_callback = event_callback
        self.current_provider: str | None = None
        self.total_calls = 0
        self.total_cost = 0.0

    async def _emit_event(self, event: dict[str, Any]) -> None:
        if self._event_callback:
            await self._event_callback(event)

    def _get_providers(self) -> list[tuple[str, TextProviderConfig]]:
        return self.config.get_enabled_text_providers()

    @staticmethod
    def _estimate_cost(provider: str, total_chars: int) -> float:
        tokens = total_chars / 4
        return tokens / 1000 * _COST_PER_1K_TOKENS.get(provider, _DEFAULT_COST_PER_1K)

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        task: str | None = None,
        temperature: float = 0.8,
        max_tokens: int = 8192,
    ) -> str:
        """Return the first successful completion from the chain.

        Raises:
            RuntimeError: If no providers are enabled.
            Exception: The provider error itself when fallback is disabled,
                otherwise the last one after every provider failed.
        """
        from agno.agent import Agent

        last_error: Exception | None = None
        failed: list[str] = []

        for name, provider_config in self._get_providers():
            try:
                model = _create_agno_model(name, provider_config, temperature, max_tokens)
                model_id = getattr(model, "id", None) or provider_config.model_id
                self.current_provider = name

                await self._emit_event({
                    "type": "text_call",
                    "provider": name,
                    "model": model_id,
                    "prompt_preview": prompt[:200],
                    "task": task,
                    "failed_providers": list(failed),
                })
                _logger.info(
                    f"AI_REQUEST | provider:{name} | model:{model_id} | task:{task}\n"
                    f"--- SYSTEM ---\n{system or '(none)'}\n"
                    f"--- PROMPT ---\n{prompt}\n"
                    f"--- END REQUEST ---"
                )

                started = time.time()
                agent = Agent(model=model, instructions=system, markdown=False)
                response = await agent.arun(prompt)
                text = response.content if isinstance(response.content, str) else str(response.content or "")
                duration = time.time() - started

                cost = self._estimate_cost(name, len(prompt) + len(text))
                self.total_calls += 1
                self.total_cost += cost

                _logger.info(
                    f"AI_RESPONSE | provider:{name} | model:{model_id} | task:{task} | "
                    f"duration:{duration:.2f}s | cost:${cost:.4f} | chars:{len(text)}\n"
                    f"--- RESPONSE ---\n{text}\n"
                    f"--- END RESPONSE ---"
                )
                await self._emit_event({
                    "type": "text_response",
                    "provider": name,
                    "model": model_id,
                    "response_preview": text[:200],
                    "duration_seconds": duration,
                    "cost_usd": cost,
                    "total_calls": self.total_calls,
                    "failed_providers": list(failed),
                })
                return text

            except Exception as e:
                last_error = e
                failed.append(name)
                _logger.warning(f"AI_ERROR | provider:{name} | task:{task} | error:{e}")
                await self._emit_event({
                    "type": "text_error",
                    "provider": name,
                    "error": str(e)[:100],
                    "failed_providers": list(failed),
                })
                if not self.config.provider_settings.fallback_on_error:
                    raise

        if last_error:
            raise last_error
        raise RuntimeError("No text providers are enabled")
