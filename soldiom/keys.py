"""API key management for Soldiom.

Keys are loaded with this priority:
  1. Environment variables (highest, already set in the shell)
  2. ~/.soldiom/keys.env (user-level keys)
  3. .env in current directory (project-level)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Directory for user-level Soldiom configuration
SOLDIOM_HOME = Path.home() / ".soldiom"
KEYS_FILE = SOLDIOM_HOME / "keys.env"

# Provider definitions: (env_var, display_name, used_for)
PROVIDERS = [
    ("GEMINI_API_KEY", "Google (Gemini)", "chat with web search"),
    ("OPENAI_API_KEY", "OpenAI", "chat"),
    ("ANTHROPIC_API_KEY", "Anthropic (Claude)", "chat"),
    ("HF_TOKEN", "Hugging Face", "image, code, translation, summary, voice tools"),
]


def load_keys_env() -> None:
    """Load API keys from ~/.soldiom/keys.env and .env into os.environ.

    Existing environment variables are never overwritten, and earlier
    files win over later ones.
    """
    for env_file in (KEYS_FILE, Path.cwd() / ".env"):
        if env_file.is_file():
            _load_env_file(env_file)


def _load_env_file(path: Path) -> None:
    """Parse a simple KEY=VALUE .env file and set vars that aren't already set."""
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            if key and not os.environ.get(key):
                os.environ[key] = value
                logger.debug("Loaded %s from %s", key, path)
    except OSError:
        logger.debug("Could not read %s", path)


def get_configured_keys() -> dict[str, bool]:
    """Return env_var -> whether it is set, for every known provider."""
    load_keys_env()
    return {env_var: bool(os.environ.get(env_var)) for env_var, _, _ in PROVIDERS}
