"""LLM access package.

Module split:
    - `provider_config`: environment-driven provider and model configuration.
    - `service`: canonical prompt-to-payload adapter with network retries.
    - `client`: provider-specific HTTP transport and `LLMServiceError`.
"""
