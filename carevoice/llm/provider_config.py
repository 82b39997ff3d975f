"""Provider/runtime configuration for the LLM layer.

Architectural role:
    Centralizes model/provider selection, timeouts and credential lookup for
    `carevoice.llm.service` and `carevoice.llm.client`.

Model call flow integration:
    - `service.generate_answer` consumes `MODEL_NAME`, `SYSTEM_MESSAGE` and
      sampling defaults.
    - `client.send_request` consumes the provider endpoint map, key resolution
      and `REQUEST_TIMEOUT_SECONDS`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are
    resolved at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None` and reported by `client` as a
    `config` error.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Primary model routing controls.
PROVIDER = os.getenv("PROVIDER", "openai")
MODEL_NAME = os.getenv("MODEL_NAME", "gpt-4o")

# Every upstream call is bounded; a stuck provider must not block a turn.
REQUEST_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# Network-level failures (connection refused/reset, timeout) are retried once.
MAX_NETWORK_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "1"))
RETRY_BACKOFF_SECONDS = 0.5

# Human-readable service names used in user-facing fallback messages.
SERVICE_NAMES = {
    "openai": "OpenAI ChatGPT",
    "anthropic": "Anthropic Claude",
    "gemini": "Google Gemini",
}

# OpenAI-compatible and provider-specific endpoint map.
PROVIDERS = {

    "local": {
        "url": "http://127.0.0.1:8080/v1/chat/completions",
        "key_file": None
    },

    "openai": {
        "url": "https://api.openai.com/v1/chat/completions",
        "key_file": "config/openai.key"
    },

    "groq": {
        "url": "https://api.groq.com/openai/v1/chat/completions",
        "key_file": "config/groq.key"
    },

    "openrouter": {
        "url": "https://openrouter.ai/api/v1/chat/completions",
        "key_file": "config/openrouter.key"
    },

    "anthropic": {
        "url": "https://api.anthropic.com/v1/messages",
        "key_file": "config/anthropic.key"
    },

    "gemini": {
        "url": "https://generativelanguage.googleapis.com/v1beta/models",
        "key_file": "config/gemini.key"
    },

}


ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"

GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:generateContent"
)


# Shared system instruction prepended to every request in `service.generate_answer`.
SYSTEM_MESSAGE = (
    "You are a friendly voice assistant for senior citizens.\n"
    "Speak plainly, warmly and briefly. Use short sentences.\n"
    "Never give a medical diagnosis; suggest professional help when health is involved.\n"
)


def service_name(provider: str | None = None) -> str:
    """Return the display name of a provider for fallback messages."""
    provider = provider or PROVIDER
    return SERVICE_NAMES.get(provider, f"{provider.upper()} AI Service")


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/openai.key` -> `OPENAI_API_KEY`).
        2. Raw file contents at `path`.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
        - Placeholder values copied from `.env.example` count as missing.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name, "").strip()
    if env_value and not env_value.startswith("your-"):
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None
