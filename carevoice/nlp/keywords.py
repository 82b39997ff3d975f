"""Keyword tables for the voice-command intent router.

All phrase lists are immutable tuples so the rule table can be audited and
tested in isolation. Matching is substring-based on lower-cased text; entries
are therefore lower-case and may carry significant whitespace (`"i "`).

Volunteer needs are modelled as an enum whose declaration order is the
tie-break when an utterance matches more than one category.
"""

from enum import Enum


# =========================================================
# AFFIRMATIVE PHRASES
# =========================================================
# Treated as "yes" to a pending AI route suggestion.

AFFIRMATIVE_PHRASES = (
    "yes", "yeah", "yep", "yup", "sure", "ok", "okay", "alright",
    "open it", "open that", "go there", "go to it", "take me there",
    "show me", "let's go", "lets go", "sounds good", "that works",
    "yes please", "yes open it", "yes open that", "yes go there",
    "open it for me", "open that for me", "go there for me",
    "yes open it for me", "yes open that for me", "yes go there for me",
    "sure open it", "sure open that", "ok open it", "ok open that",
    "go ahead", "proceed", "do it", "yes do it",
    "match me", "match me volunteer", "yes match me", "yes match me volunteer",
    "match me with volunteer", "match me with a volunteer", "find me a volunteer",
    "yes find me", "yes find me volunteer", "yes find me a volunteer",
)


# =========================================================
# MEDICATION
# =========================================================

# Physically retrieving medicine from a vendor. Never a reminder request.
PHARMACY_PICKUP_PHRASES = (
    "from cvs", "from pharmacy", "from walgreens", "from rite aid", "from target",
    "pick up", "pickup", "get from", "go to", "buy from", "get medicine", "buy medicine",
    "want some medicine", "need some medicine", "some medicine from", "medicine from",
    "prescription from", "prescription pickup", "get prescription", "pick up prescription",
)

# Explicit reminder language; narrower than mentions of medicine/pill.
REMINDER_PHRASES = (
    "remind me to take", "reminder to take", "remind me take",
    "add medication reminder", "add reminder", "set reminder",
    "medication reminder", "pill reminder", "remind me", "reminder for",
    "schedule reminder", "create reminder",
)

MEDICATION_WORDS = ("medicine", "medication", "pill")


# =========================================================
# EMERGENCY / MEDICAL
# =========================================================

FALL_PHRASES = (
    "fell down",
    "just fell down",
    "i fell down",
    "i just fell",
)

MEDICAL_CONDITIONS = (
    "headache", "head ache", "migraine",
    "stomach ache", "stomachache", "nausea",
    "chest pain", "back pain", "joint pain",
    "dizziness", "fever", "cough",
    "sore throat", "rash", "injury",
)

DISCOMFORT_PHRASES = (
    "feeling uncomfortable",
    "i am feeling uncomfortable",
    "i'm feeling uncomfortable",
)


# =========================================================
# VOLUNTEER NEEDS
# =========================================================

class VolunteerNeed(Enum):
    """Volunteer need categories with their label and trigger keywords.

    Member order is the explicit match priority.
    """

    HOME_REPAIR = (
        "home-repair",
        "Home Repair",
        (
            "repair", "fix", "broken", "maintenance", "chair broken", "broken chair",
            "need someone to fix", "help me fix", "someone to repair", "fix my", "repair my",
            "broken item", "something broken", "need fixing",
        ),
    )
    MOBILITY = (
        "mobility",
        "Mobility Assistance",
        (
            "mobility", "wheelchair", "walking assistance", "walking help",
            "mobility assistance", "help me walk", "escort", "walking support",
            "mobility support", "walking escort", "need to walk", "help walking",
        ),
    )
    GROCERY = (
        "grocery",
        "Grocery / Errands",
        (
            "grocery", "shopping", "errand", "errands", "go shopping", "buy groceries",
            "need groceries", "someone to shop", "help with shopping", "grocery help",
            "shopping help", "need shopping", "errand help", "pick up", "pickup",
            "get from", "go to", "buy from",
        ),
    )
    COMPANIONSHIP = (
        "companionship",
        "Companionship",
        (
            "companion", "friendship", "visit", "visitor", "someone to talk",
            "someone to visit", "friend", "companionship", "someone to chat",
            "lonely", "feel alone", "want company", "want someone to visit",
            "need someone to talk", "want to talk to someone",
        ),
    )
    TECH = (
        "tech",
        "Tech Help",
        (
            "tech", "computer", "phone", "internet", "technology", "device",
            "help with computer", "computer help", "phone help", "tech support",
            "help with phone", "internet help", "wifi", "wi-fi", "computer broken",
            "phone broken", "device help",
        ),
    )
    MEDICAL_TRANSPORT = (
        "medical-transport",
        "Medical Transportation",
        (
            "medical transport", "transport to doctor", "ride to hospital", "medical ride",
            "need a ride to doctor", "need a ride to hospital", "need transport to",
            "ride to appointment", "transport to appointment", "medical appointment ride",
            "need a ride for", "need transport for",
        ),
    )

    def __init__(self, slug, label, keywords):
        self.slug = slug
        self.label = label
        self.keywords = keywords

    @classmethod
    def from_slug(cls, slug: str) -> "VolunteerNeed | None":
        for need in cls:
            if need.slug == slug:
                return need
        return None


# Signals that the user is seeking help rather than just mentioning a keyword.
HELP_SIGNALS = (
    "volunteer", "help", "need", "want", "find", "someone",
    "looking for", "i ", "my ", "someone to",
)


# =========================================================
# GENERIC SCREEN ROUTING
# =========================================================

HEALTH_KEYWORDS = (
    "health", "hospital", "doctor", "see a doctor", "want to see a doctor",
    "need to see a doctor", "see doctor", "clinic", "medical care", "healthcare",
)

VOLUNTEER_KEYWORDS = ("volunteer", "help")

EVENT_KEYWORDS = ("event", "activity")

MEDICATION_SCREEN_KEYWORDS = ("medication", "medicine", "pill", "symptom", "reminder")


# Upstream route labels -> screen values.
ROUTE_ALIASES = {
    "events": "events",
    "event": "events",
    "volunteers": "volunteer",
    "volunteer": "volunteer",
    "health": "health",
    "healthservices": "health",
}


def contains_any(text: str, phrases) -> bool:
    """Return `True` when any phrase occurs as a substring of `text`."""
    return any(phrase in text for phrase in phrases)
