"""Local answers produced by the general-info screen before any AI call.

Control flow (first match wins):
1. Fall -> emergency prompt offering a 911 call.
2. Medical condition -> binary choice between health services and a volunteer.
3. Vague discomfort (asked once per query streak) -> clarifying question.
4. Otherwise `None`; the caller forwards the query to the AI Query collaborator.

Determinism:
    Fully deterministic; no I/O.
"""

from dataclasses import dataclass, field

from carevoice.core.routing_types import Screen
from carevoice.nlp.keywords import (
    DISCOMFORT_PHRASES,
    FALL_PHRASES,
    MEDICAL_CONDITIONS,
    contains_any,
)


EMERGENCY_PROMPT = (
    "I understand you just fell down. "
    "Do you need to call 911 for emergency assistance?"
)

MEDICAL_OPTIONS_PROMPT = (
    "I understand you're experiencing a medical condition. "
    "I can help you find hospital services or match you with a volunteer who can assist. "
    "Which would you prefer?"
)

CLARIFYING_PROMPT = (
    "I understand you're feeling uncomfortable. "
    "Can you tell me more about what's making you feel this way? "
    "For example, are you experiencing physical discomfort, emotional distress, or something else?"
)

EMERGENCY_NUMBER = "911"


@dataclass
class InfoReply:
    """Answer rendered on the info screen.

    Attributes:
        text: Message shown and spoken to the user.
        kind: `emergency`, `medical_options`, `clarify`, `assistant` or `fallback`.
        options: Screens offered as one-tap follow-ups.
        emergency_number: Number offered for a call, if any.
    """

    text: str
    kind: str
    options: list[Screen] = field(default_factory=list)
    emergency_number: str | None = None

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "kind": self.kind,
            "options": [screen.value for screen in self.options],
            "emergency_number": self.emergency_number,
        }


def is_fall(text: str) -> bool:
    return contains_any(text, FALL_PHRASES)


def has_medical_condition(text: str) -> bool:
    return contains_any(text, MEDICAL_CONDITIONS)


def is_vague_discomfort(text: str) -> bool:
    return contains_any(text, DISCOMFORT_PHRASES)


def respond_locally(query: str, asked_for_details: bool = False) -> InfoReply | None:
    """Return a canned info-screen reply, or `None` when the AI should answer.

    Args:
        query: Utterance that brought the user to the info screen.
        asked_for_details: Whether the clarifying question was already asked
            for the current discomfort streak.
    """
    if not query or not query.strip():
        return None

    lower = query.lower()

    if is_fall(lower):
        return InfoReply(
            text=EMERGENCY_PROMPT,
            kind="emergency",
            emergency_number=EMERGENCY_NUMBER,
        )

    if has_medical_condition(lower):
        return InfoReply(
            text=MEDICAL_OPTIONS_PROMPT,
            kind="medical_options",
            options=[Screen.HEALTH, Screen.VOLUNTEER],
        )

    if is_vague_discomfort(lower) and not asked_for_details:
        return InfoReply(text=CLARIFYING_PROMPT, kind="clarify")

    return None


def fallback_reply(query: str) -> InfoReply:
    """Acknowledgment used when the AI Query collaborator fails."""
    return InfoReply(
        text=f'I heard you say: "{query}". How can I help you find what you\'re looking for?',
        kind="fallback",
    )


def quota_reply(query: str, service: str, error_type: str) -> InfoReply:
    """Acknowledgment used when the AI provider reports quota/rate limiting."""
    label = "rate limit" if error_type == "rate_limit" else "quota exceeded"
    return InfoReply(
        text=(
            f"{service} encountered {label}. Please try again later.\n\n"
            f'I heard you say: "{query}".'
        ),
        kind="fallback",
    )
