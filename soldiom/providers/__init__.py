"""Soldiom provider layer.

All chat model calls go through LiteLLMProvider via the ChatTransport
interface.
"""

from soldiom.providers.base import ChatTransport
from soldiom.providers.litellm_provider import LiteLLMProvider
from soldiom.providers.registry import (
    load_chat_config,
    load_inference_config,
    load_models,
    load_roles,
    resolve_model,
)

__all__ = [
    "ChatTransport",
    "LiteLLMProvider",
    "load_chat_config",
    "load_inference_config",
    "load_models",
    "load_roles",
    "resolve_model",
]
