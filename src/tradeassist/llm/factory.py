"""Factory function for creating generation backends from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tradeassist.llm.openai_compat import OpenAICompatibleBackend

if TYPE_CHECKING:
    from tradeassist.config.schema import TradeAssistConfig


def create_backend(config: TradeAssistConfig) -> OpenAICompatibleBackend:
    """Create a generation backend based on configuration.

    Every supported server speaks the OpenAI chat completions protocol, so
    the backend setting only decides how the base URL and API key are
    derived.

    Args:
        config: TradeAssist configuration.

    Returns:
        A streaming generation backend.

    Raises:
        ValueError: If the backend is not recognised.
    """
    inference = config.inference
    base_url = inference.base_url.rstrip("/")

    if inference.backend in ("ollama", "vllm"):
        base_url += "/v1"
        api_key = inference.api_key
    elif inference.backend == "openai":
        if not base_url.endswith("/v1"):
            base_url += "/v1"
        api_key = inference.api_key
        if not api_key:
            raise ValueError("inference.api_key is required for the openai backend")
    else:
        raise ValueError(f"Unknown inference backend: {inference.backend}")

    return OpenAICompatibleBackend(
        model=config.model.name,
        base_url=base_url,
        api_key=api_key,
        timeout=inference.timeout,
        temperature=config.model.temperature,
        max_tokens=config.model.max_tokens,
    )
