"""LLM client wrapper for OpenAI and local OpenAI-compatible endpoints."""

from typing import Dict, List, Optional
from openai import APITimeoutError, OpenAI
from schemair.agents.tools.retry import retry_with_backoff
from schemair.config.settings import get_settings
from schemair.config.logging import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[OpenAI] = None


def _resolve_endpoint():
    """
    Pick the configured endpoint.

    Returns:
        (base_url or None, api_key, model); OpenAI first, then local
    """
    settings = get_settings()
    if settings.openai_api_key and settings.model_name:
        return None, settings.openai_api_key, settings.model_name
    if settings.uses_local_llm:
        base_url = settings.llm_url.rstrip("/")
        if not base_url.endswith("/v1"):
            base_url = f"{base_url}/v1"
        # Local APIs often don't require a real key
        return base_url, "not-needed", settings.model
    raise ValueError(
        "No LLM API configured. Set either SCHEMAIR_OPENAI_API_KEY/SCHEMAIR_MODEL_NAME "
        "or SCHEMAIR_LLM_URL/SCHEMAIR_MODEL in .env"
    )


def get_client() -> OpenAI:
    """Get or create the global OpenAI client."""
    global _client
    if _client is None:
        settings = get_settings()
        base_url, api_key, _ = _resolve_endpoint()
        _client = OpenAI(base_url=base_url, api_key=api_key, timeout=settings.llm_timeout)
        logger.debug(
            f"Initialized OpenAI client (base_url={base_url or 'default'}, "
            f"timeout={settings.llm_timeout}s)"
        )
    return _client


def chat(messages: List[Dict[str, str]]) -> str:
    """
    Send messages to the configured LLM.

    Args:
        messages: List of message dicts with 'role' and 'content' keys

    Returns:
        Content of the assistant's response

    Raises:
        ValueError: If no endpoint is configured or the reply has no content
    """
    settings = get_settings()
    _, _, model = _resolve_endpoint()
    client = get_client()

    logger.debug(
        f"Sending chat request to {model} "
        f"(temperature={settings.temperature}, timeout={settings.llm_timeout}s)"
    )

    def _make_request() -> str:
        response = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=settings.temperature,
            response_format={"type": "json_object"},
        )
        if not response.choices:
            raise ValueError(f"No choices in response from {model}")
        content = response.choices[0].message.content
        if content is None:
            raise ValueError(f"No content in message from {model}")
        logger.debug(f"Received response ({len(content)} chars)")
        return content

    return retry_with_backoff(
        func=_make_request,
        max_retries=settings.llm_max_retries,
        base_delay=settings.llm_retry_delay,
        timeout_errors=(APITimeoutError, TimeoutError),
        operation_name=f"LLM call to {model}",
    )
