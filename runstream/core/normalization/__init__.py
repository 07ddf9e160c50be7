"""Normalization helpers for provider payloads."""

from .usage import add_usage, extract_cache_info, normalize_usage

__all__ = ["normalize_usage", "extract_cache_info", "add_usage"]
