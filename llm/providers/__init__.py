"""
LLM Provider implementations.
"""

import logging
from typing import Any, Optional

from config.credentials import StaticCredentials
from config.settings import Settings

from .bedrock import BedrockProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


def create_llm_provider(settings: Settings) -> Optional[Any]:
    """
    Build the configured generative provider.

    Returns None when generation is disabled or not configured; callers then
    use their rule-based fallbacks.
    """
    if settings.is_openai:
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set, generative scoring disabled")
            return None
        return OpenAIProvider(
            credentials=StaticCredentials(settings.openai_api_key),
            model_id=settings.openai_llm_model,
            max_tokens=settings.max_tokens,
        )

    if settings.is_bedrock:
        return BedrockProvider(
            model_id=settings.bedrock_llm_model_id,
            region=settings.aws_region,
            max_tokens=settings.max_tokens,
        )

    logger.warning(f"LLM provider '{settings.llm_provider}' disabled, using rule-based fallbacks")
    return None


__all__ = ["BedrockProvider", "OpenAIProvider", "create_llm_provider"]
