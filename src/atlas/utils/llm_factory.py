"""
LLM Factory for LangChain Models
================================

Creates the LangChain chat model used by the Tier 3 reasoning orchestrator.
The provider is switched with an environment variable so deployments can move
between OpenAI and Anthropic without code changes.

Usage:
    from atlas.utils.llm_factory import get_orchestrator_llm

    llm = get_orchestrator_llm()
    message = await llm.ainvoke([...])

Environment Variables:
    LLM_PROVIDER: "openai" (default) or "anthropic"
    ANTHROPIC_API_KEY: Required if using Anthropic
    OPENAI_API_KEY: Required if using OpenAI
    ATLAS_LLM_MODEL: Optional model name override

Model Mappings:
    - Anthropic: claude-sonnet-4-20250514
    - OpenAI: gpt-4o
"""

import logging
import os
from typing import Literal, Optional

logger = logging.getLogger(__name__)

LLMProvider = Literal["anthropic", "openai"]
MODEL_MAPPINGS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
}


def get_llm_provider() -> LLMProvider:
    """
    Get the configured LLM provider from environment.

    Returns:
        LLMProvider: "anthropic" or "openai"
    """
    provider = os.environ.get("LLM_PROVIDER", "openai").lower()
    if provider not in ("anthropic", "openai"):
        logger.warning(f"Unknown LLM_PROVIDER '{provider}', defaulting to 'openai'")
        return "openai"
    return provider  # type: ignore


def get_chat_llm(
    max_tokens: int = 2048,
    temperature: float = 0.3,
    timeout: Optional[int] = None,
    provider: Optional[LLMProvider] = None,
):
    """
    Get a LangChain chat LLM instance.

    Args:
        max_tokens: Maximum tokens in response
        temperature: Sampling temperature (0.0 to 1.0)
        timeout: Request timeout in seconds; None keeps the client default
        provider: Override the default provider from environment

    Returns:
        ChatAnthropic or ChatOpenAI instance

    Raises:
        ImportError: If required package is not installed
        ValueError: If API key is not configured
    """
    if provider is None:
        provider = get_llm_provider()

    model_name = os.environ.get("ATLAS_LLM_MODEL") or MODEL_MAPPINGS[provider]
    logger.debug(f"Creating {provider} LLM: {model_name}")

    if provider == "openai":
        return _create_openai_llm(model_name, max_tokens, temperature, timeout)
    return _create_anthropic_llm(model_name, max_tokens, temperature, timeout)


def _create_anthropic_llm(
    model: str,
    max_tokens: int,
    temperature: float,
    timeout: Optional[int],
):
    """Create a ChatAnthropic instance."""
    try:
        from langchain_anthropic import ChatAnthropic
    except ImportError as e:
        raise ImportError(
            "langchain-anthropic is required for Anthropic LLMs. "
            "Install with: pip install langchain-anthropic"
        ) from e

    if not os.environ.get("ANTHROPIC_API_KEY"):
        raise ValueError("ANTHROPIC_API_KEY environment variable is not set")

    kwargs = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        # Retries belong to the caller, not the engine
        "max_retries": 0,
    }
    if timeout is not None:
        kwargs["timeout"] = timeout

    return ChatAnthropic(**kwargs)


def _create_openai_llm(
    model: str,
    max_tokens: int,
    temperature: float,
    timeout: Optional[int],
):
    """Create a ChatOpenAI instance."""
    try:
        from langchain_openai import ChatOpenAI
    except ImportError as e:
        raise ImportError(
            "langchain-openai is required for OpenAI LLMs. "
            "Install with: pip install langchain-openai"
        ) from e

    if not os.environ.get("OPENAI_API_KEY"):
        raise ValueError("OPENAI_API_KEY environment variable is not set")

    kwargs = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "max_retries": 0,
    }
    if timeout is not None:
        kwargs["request_timeout"] = timeout

    return ChatOpenAI(**kwargs)


def get_orchestrator_llm(
    max_tokens: int = 2048,
    temperature: float = 0.3,
    provider: Optional[LLMProvider] = None,
):
    """
    Get the LLM used for Tier 3 agent selection.

    No timeout is set here; the provider client's default applies.

    Args:
        max_tokens: Maximum tokens in response (default: 2048)
        temperature: Sampling temperature (default: 0.3)
        provider: Override provider from environment

    Returns:
        ChatAnthropic or ChatOpenAI instance
    """
    return get_chat_llm(
        max_tokens=max_tokens,
        temperature=temperature,
        provider=provider,
    )
