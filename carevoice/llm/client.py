"""Provider-specific transport client for LLM requests.

Architectural role:
    Executes one non-streaming HTTP request against the configured model provider
    and returns the generated text.

Model invocation flow:
    `service.generate_answer` -> `send_request(payload)` -> provider branch
    (OpenAI-compatible / Anthropic / Gemini) -> parsed text.

Retry behavior:
    None here. `service.generate_answer` retries network-level failures.
    Each HTTP call is bounded by `REQUEST_TIMEOUT_SECONDS`.

Determinism:
    Provider routing and payload transformation are deterministic for fixed config and
    payload. Output text remains non-deterministic due to remote model inference.

Failure handling model:
    Every failure is raised as `LLMServiceError` carrying a sanitized message, the
    human-readable service name and an `error_type`:
    `config`, `quota`, `rate_limit`, `timeout`, `http` or `runtime`.
"""

import requests

from carevoice.llm.provider_config import (
    PROVIDER,
    MODEL_NAME,
    PROVIDERS,
    ANTHROPIC_URL,
    GEMINI_URL_TEMPLATE,
    REQUEST_TIMEOUT_SECONDS,
    load_key,
    service_name,
)


class LLMServiceError(Exception):
    """Sanitized failure of an upstream LLM call."""

    def __init__(self, message: str, service: str, error_type: str, retryable: bool = False):
        super().__init__(message)
        self.service = service
        self.error_type = error_type
        self.retryable = retryable

    @property
    def is_quota(self) -> bool:
        return self.error_type in ("quota", "rate_limit")


def classify_http_error(err: requests.exceptions.RequestException) -> str:
    """Map a request exception onto an `error_type`.

    HTTP 429 and bodies mentioning quota/rate limits count as quota errors;
    `insufficient_quota` or `quota` wins over `rate_limit`.
    """
    if isinstance(err, requests.exceptions.Timeout):
        return "timeout"

    response = getattr(err, "response", None)
    if response is None:
        return "http"

    body = (getattr(response, "text", "") or "").lower()

    if "quota" in body:
        return "quota"
    if response.status_code == 429 or "rate_limit" in body:
        return "rate_limit"
    return "http"


def _build_sanitized_http_error(provider_name: str, err: requests.exceptions.RequestException) -> str:
    """Build provider-labeled HTTP error text without exposing raw internals."""
    status_code = None
    if getattr(err, "response", None) is not None:
        status_code = getattr(err.response, "status_code", None)

    label = str(provider_name or "provider").upper()
    if status_code:
        return f"{label} HTTP ERROR ({status_code})"
    return f"{label} HTTP ERROR"


def _missing_key(provider_name: str) -> LLMServiceError:
    return LLMServiceError(
        f"{provider_name.upper()} KEY FILE NOT FOUND",
        service_name(provider_name),
        "config",
    )


def _post(url: str, headers: dict, body: dict) -> dict:
    response = requests.post(
        url,
        headers=headers,
        json=body,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    return response.json()


# ============================================================
# PROVIDER BRANCHES
# ============================================================

def _send_openai_compatible(payload: dict) -> str:
    config = PROVIDERS[PROVIDER]
    headers = {"Content-Type": "application/json"}

    if config["key_file"]:
        api_key = load_key(config["key_file"])
        if not api_key:
            raise _missing_key(PROVIDER)
        headers["Authorization"] = f"Bearer {api_key}"

    data = _post(config["url"], headers, payload)
    return data["choices"][0]["message"]["content"].strip()


def _send_anthropic(payload: dict) -> str:
    api_key = load_key(PROVIDERS["anthropic"]["key_file"])
    if not api_key:
        raise _missing_key("anthropic")

    headers = {
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }

    system_prompt = None
    messages = []
    for msg in payload.get("messages", []):
        role = msg.get("role")
        content = msg.get("content", "")
        if role == "system":
            if isinstance(content, str) and content.strip():
                system_prompt = content.strip()
        elif role in ("user", "assistant"):
            messages.append({"role": role, "content": content})

    body = {
        "model": payload.get("model", MODEL_NAME),
        "max_tokens": payload.get("max_tokens", 1024),
        "messages": messages,
    }
    if system_prompt:
        body["system"] = system_prompt
    if "temperature" in payload:
        body["temperature"] = payload["temperature"]

    data = _post(ANTHROPIC_URL, headers, body)
    return data["content"][0]["text"].strip()


def _send_gemini(payload: dict) -> str:
    api_key = load_key(PROVIDERS["gemini"]["key_file"])
    if not api_key:
        raise _missing_key("gemini")

    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }

    contents = []
    for msg in payload.get("messages", []):
        content = msg.get("content", "")
        if not content:
            continue
        role = "model" if msg.get("role") == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": str(content)}]})

    body = {"contents": contents}
    generation_config = {}
    if "temperature" in payload:
        generation_config["temperature"] = payload["temperature"]
    if "max_tokens" in payload:
        generation_config["maxOutputTokens"] = payload["max_tokens"]
    if generation_config:
        body["generationConfig"] = generation_config

    url = GEMINI_URL_TEMPLATE.format(model=payload.get("model", MODEL_NAME))
    data = _post(url, headers, body)
    return data["candidates"][0]["content"]["parts"][0]["text"].strip()


def send_request(payload: dict) -> str:
    """Send one request to the configured provider and return the reply text.

    Raises:
        LLMServiceError: for missing keys, unknown providers, HTTP failures,
            timeouts and malformed provider responses.
    """
    service = service_name(PROVIDER)

    if PROVIDER == "anthropic":
        sender = _send_anthropic
    elif PROVIDER == "gemini":
        sender = _send_gemini
    elif PROVIDER in PROVIDERS:
        sender = _send_openai_compatible
    else:
        raise LLMServiceError("INVALID PROVIDER", service, "config")

    try:
        return sender(payload)

    except LLMServiceError:
        raise

    except requests.exceptions.RequestException as err:
        raise LLMServiceError(
            _build_sanitized_http_error(PROVIDER, err),
            service,
            classify_http_error(err),
            retryable=isinstance(
                err,
                (requests.exceptions.ConnectionError, requests.exceptions.Timeout),
            ),
        ) from err

    except (KeyError, IndexError, TypeError, ValueError) as err:
        raise LLMServiceError(
            f"{PROVIDER.upper()} REQUEST FAILED",
            service,
            "runtime",
        ) from err
