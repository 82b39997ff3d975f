"""Local sub-router for utterances spoken on the volunteer matching screen.

While the volunteer screen is active the main intent router returns `NoChange`
and hands the utterance to `route_on_volunteer_screen`, which resolves it to a
need category (or a free-text custom need) to match volunteers against.

Parsing rules:
1. A confirmation word with a pending context query (and no earlier auto-match)
   resolves the need from the *context query*, not the confirmation.
2. Otherwise the utterance is matched against need labels, slugs and hints.
3. Unmatched text becomes a custom need.

Determinism:
    Fully deterministic; hint tables are checked in declaration order.
"""

from dataclasses import dataclass

from carevoice.nlp.keywords import VolunteerNeed, contains_any


CONFIRMATION_WORDS = ("yes", "match", "find", "sure", "ok", "okay")

# Hints used to recover a need from the query that triggered a suggestion.
CONTEXT_NEED_HINTS = (
    (VolunteerNeed.HOME_REPAIR, ("chair", "broken", "repair", "fix", "maintenance")),
    (VolunteerNeed.MOBILITY, ("mobility", "wheelchair", "walking", "assistance")),
    (
        VolunteerNeed.GROCERY,
        (
            "grocery", "shopping", "errand", "pick up", "pickup", "medicine from",
            "prescription from", "pharmacy", "from cvs", "from walgreens",
        ),
    ),
    (VolunteerNeed.COMPANIONSHIP, ("companion", "friend", "visit", "lonely")),
    (VolunteerNeed.TECH, ("tech", "computer", "phone", "internet")),
    (VolunteerNeed.MEDICAL_TRANSPORT, ("medical", "transport", "doctor", "hospital")),
)

# Hints used for utterances spoken directly on the volunteer screen.
COMMAND_NEED_HINTS = (
    (VolunteerNeed.HOME_REPAIR, ("repair", "fix", "maintenance")),
    (VolunteerNeed.MOBILITY, ("mobility", "wheelchair", "walking")),
    (
        VolunteerNeed.GROCERY,
        (
            "grocery", "shopping", "errand", "pick up", "pickup", "medicine from",
            "prescription from", "pharmacy",
        ),
    ),
    (VolunteerNeed.COMPANIONSHIP, ("companion", "friend", "visit")),
    (VolunteerNeed.TECH, ("tech", "computer", "phone", "internet")),
    (VolunteerNeed.MEDICAL_TRANSPORT, ("medical", "transport", "doctor", "hospital")),
)


@dataclass
class VolunteerRequest:
    """Resolved need on the volunteer screen.

    Exactly one of `need` / `custom_need` is set.
    `from_context` marks a request resolved from the stored context query.
    """

    need: VolunteerNeed | None = None
    custom_need: str | None = None
    from_context: bool = False

    @property
    def label(self) -> str:
        if self.need is not None:
            return self.need.label
        return self.custom_need or ""


def need_from_context(text: str) -> VolunteerNeed | None:
    """Resolve a need category from a free-form context query."""
    lower = (text or "").lower()
    for need, hints in CONTEXT_NEED_HINTS:
        if contains_any(lower, hints):
            return need
    return None


def need_from_command(text: str) -> VolunteerNeed | None:
    """Resolve a need category from an utterance spoken on the volunteer screen."""
    lower = (text or "").lower()
    for need, hints in COMMAND_NEED_HINTS:
        if need.label.lower() in lower or need.slug in lower or contains_any(lower, hints):
            return need
    return None


def is_confirmation(text: str) -> bool:
    return contains_any((text or "").lower(), CONFIRMATION_WORDS)


def request_from_context(context_query: str) -> VolunteerRequest:
    need = need_from_context(context_query)
    if need is not None:
        return VolunteerRequest(need=need, from_context=True)
    return VolunteerRequest(custom_need=context_query, from_context=True)


def route_on_volunteer_screen(
    utterance: str,
    context_query: str | None = None,
    has_auto_matched: bool = False,
) -> VolunteerRequest | None:
    """Resolve an utterance spoken while the volunteer screen is active.

    Returns `None` for blank input.
    """
    if not utterance or not utterance.strip():
        return None

    if context_query and not has_auto_matched and is_confirmation(utterance):
        return request_from_context(context_query)

    need = need_from_command(utterance)
    if need is not None:
        return VolunteerRequest(need=need)

    return VolunteerRequest(custom_need=utterance.strip())
