"""Configuration schemas for chat models, roles, and the inference backend.

Loaded from the TOML files under soldiom/config/ by
soldiom.providers.registry and overridden by CLI flags.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ModelConfig(BaseModel):
    """Configuration for a single chat model in the registry.

    Loaded from models.toml. Each entry provides the LiteLLM routing
    information and capability flags.
    """

    provider: str = Field(description="Provider identifier (e.g. 'google', 'openai')")
    model: str = Field(description="LiteLLM model identifier (e.g. 'gemini/gemini-2.5-flash')")
    display_name: str = Field(description="Human-friendly model name for CLI output")
    api_key_env: str = Field(description="Environment variable name holding the API key")
    api_base: str = Field(default="", description="Custom API base URL (empty = provider default)")
    supports_thinking: bool = Field(
        default=False, description="Whether the model supports extended thinking"
    )
    supports_search: bool = Field(
        default=False, description="Whether the model supports web search grounding"
    )


class ChatConfig(BaseModel):
    """Defaults for conversational turns."""

    default_model: str = Field(default="gemini-flash", description="Registry key of the chat model")
    default_role: str = Field(default="general", description="Registry key of the starting role")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    thinking_budget: int = Field(
        default=1024, gt=0, description="Token budget when extended thinking is on"
    )
    timeout: int = Field(default=120, gt=0, description="Per-request timeout in seconds")
    web_search: bool = Field(
        default=True, description="Enable search grounding on models that support it"
    )


class InferenceConfig(BaseModel):
    """Endpoint and per-tool model ids for the single-shot inference backend."""

    base_url: str = Field(default="https://api-inference.huggingface.co")
    token_env: str = Field(default="HF_TOKEN", description="Environment variable holding the token")
    timeout: float = Field(default=120.0, gt=0.0)
    image_model: str = Field(default="black-forest-labs/FLUX.1-schnell")
    transcription_model: str = Field(default="openai/whisper-large-v3")
    speech_model: str = Field(default="facebook/mms-tts-eng")
    translation_model: str = Field(default="facebook/nllb-200-distilled-600M")
    code_model: str = Field(default="bigcode/starcoder2-15b")
    summarization_model: str = Field(default="facebook/bart-large-cnn")


class RoleConfig(BaseModel):
    """A conversation role: the persona the assistant adopts for a chat."""

    key: str = Field(description="Registry key (e.g. 'doctor')")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="One-line summary for menus")
    system_instruction: str = Field(description="System prompt sent with every turn")
