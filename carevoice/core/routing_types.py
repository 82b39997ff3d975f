"""Routing decision data contracts for `carevoice.core.engine`.

Architectural role:
    Defines the screen enumeration and the decision schema returned by the intent
    router and consumed by the session orchestrator when applying a turn.

Control-flow interaction:
    `engine.CareSession.handle_utterance` inspects `kind` to pick a side-effect
    path (navigate, save a reminder, pre-fill the medication form, or show a
    prompt on the info screen). Memory effects are carried as flags and applied
    by `ConversationMemory.apply`.

Determinism:
    The data classes are purely structural and state-free.
"""

from dataclasses import dataclass, field
from enum import Enum


class Screen(str, Enum):
    """Top-level application views."""

    HOME = "home"
    INFO = "info"
    VOLUNTEER = "volunteer"
    EVENTS = "events"
    HEALTH = "health"
    MEDICATION = "medication"

    @classmethod
    def parse(cls, value) -> "Screen | None":
        """Return the matching screen for a string/enum value, or `None`."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


# Screens an upstream AI reply may suggest.
SUGGESTABLE_SCREENS = (Screen.EVENTS, Screen.VOLUNTEER, Screen.HEALTH)


class DecisionKind(str, Enum):
    NAVIGATE = "navigate"
    CREATE_MEDICATION_REMINDER = "create_medication_reminder"
    PROMPT_MEDICATION_COMPLETION = "prompt_medication_completion"
    ASK_CLARIFYING_QUESTION = "ask_clarifying_question"
    SHOW_EMERGENCY_PROMPT = "show_emergency_prompt"
    NO_CHANGE = "no_change"


DEFAULT_DOSAGE = "As prescribed"
DEFAULT_FREQUENCY = "Daily"


@dataclass
class RoutingDecision:
    """Normalized routing result produced by the intent router.

    Attributes:
        kind: Which variant this decision represents.
        screen: Target screen for navigation-style variants. Prompt variants
            target `info`, reminder-completion targets `medication`.
        carry_context: Whether the target screen should receive the pending
            conversation context.
        auto_start_matching: Volunteer screen skips need selection.
        name / dosage / frequency / times: Medication reminder payload.
        prompt_text: Text shown/spoken for prompt variants.

    Memory effects (applied by the caller, in this order):
        clear_suggestions: Empty `last_suggested_routes`.
        clear_volunteer_context: Reset `volunteer_context_query`.
        volunteer_context_query: New context query to store, if any.
    """

    kind: DecisionKind = DecisionKind.NO_CHANGE
    screen: Screen | None = None
    carry_context: bool = False
    auto_start_matching: bool = False

    name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    times: list[str] = field(default_factory=list)

    prompt_text: str | None = None

    clear_suggestions: bool = False
    clear_volunteer_context: bool = False
    volunteer_context_query: str | None = None

    def to_dict(self) -> dict:
        """Serialize for the HTTP/CLI adapters."""
        return {
            "kind": self.kind.value,
            "screen": self.screen.value if self.screen else None,
            "carry_context": self.carry_context,
            "auto_start_matching": self.auto_start_matching,
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "times": list(self.times),
            "prompt_text": self.prompt_text,
        }


def navigate(screen: Screen, carry_context: bool = False, **extra) -> RoutingDecision:
    return RoutingDecision(
        kind=DecisionKind.NAVIGATE,
        screen=screen,
        carry_context=carry_context,
        **extra,
    )


def no_change() -> RoutingDecision:
    return RoutingDecision(kind=DecisionKind.NO_CHANGE)


@dataclass
class ParsedReminder:
    """Reminder Parser output.

    `reminder_times` only ever holds normalized `HH:MM` strings (at most three).
    """

    success: bool = False
    name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    reminder_times: list[str] = field(default_factory=list)
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "reminderTimes": list(self.reminder_times),
            "message": self.message,
        }
