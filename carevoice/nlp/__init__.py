"""NLP utilities for voice-command routing.

Module scope:
- Keyword tables and the ordered intent router (`keywords`, `intent_router`).
- Screen-local routing (`volunteer_router`, `info_responder`).
- LLM-backed collaborators (`reminder_parser`, `assistant_query`).
- Reminder time normalization (`time_format`).

Determinism profile:
- Rule logic is deterministic; the LLM-backed collaborators are not.
"""
