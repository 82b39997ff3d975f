"""Prompt-to-payload adapter for LLM invocation.

Architectural role:
    Provides the canonical text-generation entrypoint used by the reminder parser
    and the assistant query. Bridges prompt construction (`carevoice.prompting`)
    to transport (`carevoice.llm.client`).

Model call flow:
    prompt -> payload construction -> `client.send_request(...)`.

Retry behavior:
    Connection and timeout failures are retried `MAX_NETWORK_RETRIES` times with a
    fixed backoff. HTTP status failures (quota, rate limit, 5xx) are not retried.

Determinism:
    Payload construction is deterministic for fixed inputs and configuration.
    Generated output remains non-deterministic because inference runs remotely.
"""

import logging
import time

from carevoice.llm.provider_config import (
    SYSTEM_MESSAGE,
    MODEL_NAME,
    MAX_NETWORK_RETRIES,
    RETRY_BACKOFF_SECONDS,
)
from carevoice.llm.client import LLMServiceError, send_request


logger = logging.getLogger(__name__)


def build_payload(prompt: str, temperature: float = 0.7, max_tokens: int = 500) -> dict:
    return {
        "model": MODEL_NAME,
        "messages": [
            {"role": "system", "content": SYSTEM_MESSAGE},
            {"role": "user", "content": prompt}
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }


def generate_answer(
    prompt: str,
    temperature: float = 0.7,
    max_tokens: int = 500,
    retries: int = MAX_NETWORK_RETRIES,
) -> str:
    """Invoke the configured model and return the reply text.

    Args:
        prompt: Fully constructed user prompt from the prompting layer.
        temperature: Sampling temperature. Extraction prompts use a low value.
        max_tokens: Upper bound on the reply length.
        retries: Extra attempts for connection/timeout failures.

    Raises:
        LLMServiceError: after the final failed attempt.

    Only connection and timeout failures are retried.
    """
    payload = build_payload(prompt, temperature=temperature, max_tokens=max_tokens)

    attempt = 0
    while True:
        try:
            return send_request(payload)
        except LLMServiceError as err:
            if not err.retryable or attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                "LLM request failed (%s), retrying attempt=%d",
                err,
                attempt,
            )
            time.sleep(RETRY_BACKOFF_SECONDS * attempt)
