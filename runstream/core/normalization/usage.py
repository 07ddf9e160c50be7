"""
Usage normalization module.

This module converts provider-shaped usage payloads into the
``UsageMetadata`` shape used throughout runstream. Chat models call
:func:`normalize_usage` before emitting a model-end event so that usage
collectors never see provider-specific field names.
"""

from typing import Any, Dict, Optional

from ...models.messages import UsageMetadata

_INPUT_FIELDS = ("input_tokens", "prompt_tokens", "prompt_token_count")
_OUTPUT_FIELDS = ("output_tokens", "completion_tokens", "generated_tokens", "candidates_token_count")


def _first(usage_data: Dict[str, Any], fields) -> int:
    for name in fields:
        value = usage_data.get(name)
        if value is not None:
            return int(value)
    return 0


def normalize_usage(
    usage_data: Optional[Dict[str, Any]],
    provider: Optional[str] = None,
    input_tokens: Optional[int] = None,
    output_tokens: Optional[int] = None,
) -> UsageMetadata:
    """
    Normalize usage data into UsageMetadata.

    Args:
        usage_data: Raw usage data from the provider (optional)
        provider: Provider name for provider-specific cache fields
        input_tokens: Override for input tokens
        output_tokens: Override for output tokens

    Returns:
        UsageMetadata with integer counts and a consistent total
    """
    usage_data = usage_data or {}

    normalized_input = _first(usage_data, _INPUT_FIELDS)
    normalized_output = _first(usage_data, _OUTPUT_FIELDS)
    if input_tokens is not None:
        normalized_input = int(input_tokens)
    if output_tokens is not None:
        normalized_output = int(output_tokens)

    total = int(usage_data.get("total_tokens") or 0)
    if total == 0 or input_tokens is not None or output_tokens is not None:
        total = normalized_input + normalized_output

    return UsageMetadata(
        input_tokens=normalized_input,
        output_tokens=normalized_output,
        total_tokens=total,
        input_token_details=extract_cache_info(usage_data, provider),
    )


def extract_cache_info(usage_data: Dict[str, Any], provider: Optional[str]) -> Dict[str, Any]:
    """
    Extract cache information from provider usage data.

    Args:
        usage_data: Raw usage data from provider
        provider: Provider name

    Returns:
        Dict with ``cache_read`` / ``cache_creation`` counts, or empty dict
    """
    cache_info: Dict[str, Any] = {}

    if provider in ("openai", "azure"):
        details = usage_data.get("prompt_tokens_details")
        if isinstance(details, dict) and details.get("cached_tokens"):
            cache_info["cache_read"] = int(details["cached_tokens"])
        elif usage_data.get("cached_tokens"):
            cache_info["cache_read"] = int(usage_data["cached_tokens"])

    elif provider == "anthropic":
        if usage_data.get("cache_read_input_tokens"):
            cache_info["cache_read"] = int(usage_data["cache_read_input_tokens"])
        if usage_data.get("cache_creation_input_tokens"):
            cache_info["cache_creation"] = int(usage_data["cache_creation_input_tokens"])

    return cache_info


def add_usage(left: UsageMetadata, right: UsageMetadata) -> UsageMetadata:
    """Sum two usage records."""
    return UsageMetadata(
        input_tokens=left.input_tokens + right.input_tokens,
        output_tokens=left.output_tokens + right.output_tokens,
        total_tokens=left.total_tokens + right.total_tokens,
    )
