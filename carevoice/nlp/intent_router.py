"""Intent router producing `RoutingDecision` for the session orchestrator.

Intent classification logic (ordered, first match wins):
1. In-page suppression on the volunteer screen (`NoChange`).
2. Pending AI route suggestions on the info screen: affirmatives open the first
   suggestion, anything else clears the suggestions and is classified fresh.
3. Medication-reminder detection, delegating extraction to the Reminder Parser.
4. Pharmacy pickup -> info screen.
5. Fall -> emergency prompt.
6. Medical-condition keyword -> info screen.
7. Vague discomfort -> clarifying question.
8. Explicit volunteer need plus help signal -> volunteer matching with context.
9. Generic keyword routing with an info-screen fallback.

Interaction with memory:
- Reads `last_suggested_routes` and `volunteer_context_query` from the memory
  object passed in. Never mutates it; required mutations are returned as flags
  on the decision and applied by `ConversationMemory.apply`.

Determinism:
- Deterministic for identical input, memory and Reminder Parser output.

Failure handling:
- Blank or non-string input falls back to the info screen.
- Reminder Parser exceptions are logged and the rule is skipped.
"""

import logging
from typing import Callable

from carevoice.core.routing_types import (
    DEFAULT_DOSAGE,
    DEFAULT_FREQUENCY,
    DecisionKind,
    ParsedReminder,
    RoutingDecision,
    Screen,
    navigate,
    no_change,
)
from carevoice.nlp.info_responder import (
    CLARIFYING_PROMPT,
    EMERGENCY_PROMPT,
    has_medical_condition,
    is_fall,
    is_vague_discomfort,
)
from carevoice.nlp.keywords import (
    AFFIRMATIVE_PHRASES,
    EVENT_KEYWORDS,
    HEALTH_KEYWORDS,
    HELP_SIGNALS,
    MEDICATION_SCREEN_KEYWORDS,
    MEDICATION_WORDS,
    PHARMACY_PICKUP_PHRASES,
    REMINDER_PHRASES,
    VOLUNTEER_KEYWORDS,
    VolunteerNeed,
    contains_any,
)
from carevoice.nlp.time_format import normalize_reminder_times


logger = logging.getLogger(__name__)

ReminderParser = Callable[[str], ParsedReminder]


# =========================================================
# PREDICATES
# =========================================================

def _normalize(utterance) -> str:
    if not isinstance(utterance, str):
        return ""
    return utterance.lower().strip()


def is_affirmative(utterance) -> bool:
    """Exact or substring match against the affirmative phrase list."""
    lower = _normalize(utterance)
    if not lower:
        return False
    return any(lower == phrase or phrase in lower for phrase in AFFIRMATIVE_PHRASES)


def is_pharmacy_pickup(utterance) -> bool:
    return contains_any(_normalize(utterance), PHARMACY_PICKUP_PHRASES)


def looks_like_reminder(utterance) -> bool:
    return contains_any(_normalize(utterance), REMINDER_PHRASES)


def has_medication_context(utterance) -> bool:
    """Possessive/action medication patterns, never true for a pharmacy pickup."""
    lower = _normalize(utterance)
    mentions_medication = contains_any(lower, MEDICATION_WORDS)

    matched = (
        ("take my" in lower and mentions_medication)
        or ("remind" in lower and mentions_medication)
        or ("add" in lower and "medication" in lower)
        or ("set" in lower and "reminder" in lower)
    )
    return matched and not is_pharmacy_pickup(lower)


def detect_volunteer_need(utterance) -> VolunteerNeed | None:
    """Return the first need category (declaration order) whose keywords match."""
    lower = _normalize(utterance)
    for need in VolunteerNeed:
        if contains_any(lower, need.keywords):
            return need
    return None


def has_help_signal(utterance) -> bool:
    return contains_any(_normalize(utterance), HELP_SIGNALS)


# =========================================================
# MEDICATION RULE
# =========================================================

def _has_usable_name(name) -> bool:
    if not isinstance(name, str):
        return False
    stripped = name.strip()
    return bool(stripped) and stripped.lower() != "null"


def _medication_decision(
    utterance: str,
    reminder_parser: ReminderParser | None,
) -> RoutingDecision | None:
    """Run the Reminder Parser and map its output to a decision, or `None`."""
    if reminder_parser is None:
        return None

    try:
        parsed = reminder_parser(utterance)
    except Exception:
        logger.exception("Reminder parsing failed for utterance=%r", utterance)
        return None

    if parsed is None or not _has_usable_name(parsed.name):
        return None

    name = parsed.name.strip()
    times = normalize_reminder_times(parsed.reminder_times)

    if times:
        return RoutingDecision(
            kind=DecisionKind.CREATE_MEDICATION_REMINDER,
            screen=Screen.MEDICATION,
            name=name,
            dosage=parsed.dosage or DEFAULT_DOSAGE,
            frequency=parsed.frequency or DEFAULT_FREQUENCY,
            times=times,
        )

    return RoutingDecision(
        kind=DecisionKind.PROMPT_MEDICATION_COMPLETION,
        screen=Screen.MEDICATION,
        name=name,
        dosage=parsed.dosage,
        frequency=parsed.frequency,
    )


# =========================================================
# KEYWORD RULES
# =========================================================

def route_by_keywords(utterance: str) -> RoutingDecision:
    """Rules 4-9: everything after medication-reminder detection.

    Also used by the orchestrator when saving a parsed reminder fails.
    """
    lower = _normalize(utterance)

    if is_pharmacy_pickup(lower):
        return navigate(Screen.INFO)

    if is_fall(lower):
        return RoutingDecision(
            kind=DecisionKind.SHOW_EMERGENCY_PROMPT,
            screen=Screen.INFO,
            prompt_text=EMERGENCY_PROMPT,
        )

    if has_medical_condition(lower):
        return navigate(Screen.INFO)

    if is_vague_discomfort(lower):
        return RoutingDecision(
            kind=DecisionKind.ASK_CLARIFYING_QUESTION,
            screen=Screen.INFO,
            prompt_text=CLARIFYING_PROMPT,
        )

    need = detect_volunteer_need(lower)
    if need is not None and has_help_signal(lower):
        return navigate(
            Screen.VOLUNTEER,
            carry_context=True,
            auto_start_matching=True,
            volunteer_context_query=utterance,
        )

    # -----------------------------------------------------
    # GENERIC ROUTING
    # -----------------------------------------------------

    if contains_any(lower, HEALTH_KEYWORDS):
        return navigate(Screen.HEALTH)

    if contains_any(lower, VOLUNTEER_KEYWORDS):
        return navigate(Screen.VOLUNTEER, clear_volunteer_context=True)

    if contains_any(lower, EVENT_KEYWORDS):
        return navigate(Screen.EVENTS)

    if contains_any(lower, MEDICATION_SCREEN_KEYWORDS):
        return navigate(Screen.MEDICATION)

    return navigate(Screen.INFO)


# =========================================================
# MAIN CLASSIFIER
# =========================================================

def classify(
    utterance,
    current_screen: Screen,
    memory,
    reminder_parser: ReminderParser | None = None,
) -> RoutingDecision:
    """
    Classify one utterance into a routing decision.

    Args:
        utterance: Raw transcribed or typed text.
        current_screen: Screen active when the utterance arrived.
        memory: Object exposing `last_suggested_routes` and
            `volunteer_context_query` (normally a `ConversationMemory` snapshot).
        reminder_parser: Callable used by the medication rule. When omitted
            the medication rule is skipped.

    Edge cases:
    - Non-string input is treated as blank and routed to the info screen.
    - A stale suggestion list is always cleared once a non-affirmative
      utterance arrives on the info screen, whatever the final decision.
    """
    text = utterance if isinstance(utterance, str) else ""
    lower = _normalize(text)
    screen = Screen.parse(current_screen) or Screen.HOME

    # -----------------------------------------------------
    # VOLUNTEER SCREEN OWNS ITS FOLLOW-UPS
    # -----------------------------------------------------

    if screen == Screen.VOLUNTEER:
        return no_change()

    # -----------------------------------------------------
    # PENDING SUGGESTION RESOLUTION
    # -----------------------------------------------------

    pending_routes = list(getattr(memory, "last_suggested_routes", None) or [])
    superseded_suggestion = False

    if screen == Screen.INFO and pending_routes:
        target = Screen.parse(pending_routes[0])

        if target is not None and is_affirmative(lower):
            has_context = bool(getattr(memory, "volunteer_context_query", None))
            decision = navigate(
                target,
                carry_context=True,
                auto_start_matching=target == Screen.VOLUNTEER and has_context,
                clear_suggestions=True,
                clear_volunteer_context=target != Screen.VOLUNTEER,
            )
            _log_decision(lower, screen, decision, rule="suggestion")
            return decision

        superseded_suggestion = True

    decision = _classify_fresh(text, lower, screen, reminder_parser)

    if superseded_suggestion:
        decision.clear_suggestions = True
        decision.clear_volunteer_context = True

    _log_decision(lower, screen, decision, rule="fresh")
    return decision


def _classify_fresh(
    text: str,
    lower: str,
    screen: Screen,
    reminder_parser: ReminderParser | None,
) -> RoutingDecision:
    """Rules 3-9 for an utterance with no pending suggestion to resolve."""
    if not lower:
        return navigate(Screen.INFO)

    if screen != Screen.MEDICATION and not is_pharmacy_pickup(lower):
        if looks_like_reminder(lower) or has_medication_context(lower):
            decision = _medication_decision(text, reminder_parser)
            if decision is not None:
                return decision

    return route_by_keywords(text)


def _log_decision(lower: str, screen: Screen, decision: RoutingDecision, rule: str) -> None:
    logger.debug(
        "route_decision rule=%s screen=%s utterance=%r kind=%s target=%s",
        rule,
        screen.value,
        lower,
        decision.kind.value,
        decision.screen.value if decision.screen else None,
    )
