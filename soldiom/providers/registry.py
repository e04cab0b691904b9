"""Model registry and TOML configuration loader.

Loads chat model definitions from models.toml, chat and inference
defaults from defaults.toml, and conversation roles from roles.toml.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from soldiom.schemas.config import (
    ChatConfig,
    InferenceConfig,
    ModelConfig,
    RoleConfig,
)

# Default config directory inside the soldiom package
_CONFIG_DIR = Path(__file__).parent.parent / "config"


def _load_toml(path: Path, label: str) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"{label} not found: {path}")
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_models(config_path: Path | None = None) -> dict[str, ModelConfig]:
    """Load the chat model registry from a TOML file.

    Args:
        config_path: Path to models.toml. Defaults to soldiom/config/models.toml.

    Returns:
        Dictionary mapping model keys to ModelConfig instances.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML has no [models] section.
    """
    path = config_path or _CONFIG_DIR / "models.toml"
    raw = _load_toml(path, "Model registry")

    models_section = raw.get("models")
    if not models_section or not isinstance(models_section, dict):
        raise ValueError(f"No [models] section found in {path}")

    return {
        key: ModelConfig(**entry)
        for key, entry in models_section.items()
        if isinstance(entry, dict)
    }


def load_chat_config(config_path: Path | None = None) -> ChatConfig:
    """Load the [chat] defaults; missing keys fall back to ChatConfig defaults."""
    path = config_path or _CONFIG_DIR / "defaults.toml"
    raw = _load_toml(path, "Defaults config")
    return ChatConfig(**raw.get("chat", {}))


def load_inference_config(config_path: Path | None = None) -> InferenceConfig:
    """Load the [inference] defaults for the single-shot tools backend."""
    path = config_path or _CONFIG_DIR / "defaults.toml"
    raw = _load_toml(path, "Defaults config")
    return InferenceConfig(**raw.get("inference", {}))


def load_roles(config_path: Path | None = None) -> dict[str, RoleConfig]:
    """Load conversation roles from a TOML file.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML has no [roles] section.
    """
    path = config_path or _CONFIG_DIR / "roles.toml"
    raw = _load_toml(path, "Role config")

    roles_section = raw.get("roles")
    if not roles_section or not isinstance(roles_section, dict):
        raise ValueError(f"No [roles] section found in {path}")

    roles: dict[str, RoleConfig] = {}
    for key, entry in roles_section.items():
        if not isinstance(entry, dict):
            continue
        data = {**entry, "key": key}
        data["system_instruction"] = data.get("system_instruction", "").strip()
        roles[key] = RoleConfig(**data)
    return roles


def resolve_model(
    registry: dict[str, ModelConfig], key: str
) -> ModelConfig:
    """Look up a model by registry key or LiteLLM model id.

    Raises:
        KeyError: If no registry entry matches.
    """
    if key in registry:
        return registry[key]
    for cfg in registry.values():
        if cfg.model == key:
            return cfg
    raise KeyError(f"Unknown model '{key}'. Available: {', '.join(sorted(registry))}")
