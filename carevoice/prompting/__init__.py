"""Prompting package.

Deterministic prompt-construction helpers for the LLM-backed collaborators.
It does not perform routing, memory access or model invocation.
"""
