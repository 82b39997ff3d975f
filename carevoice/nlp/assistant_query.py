"""General assistant replies with suggested navigation targets.

Architectural role:
    Implements the AI Query collaborator called by the info screen. The reply
    text is spoken to the user; the suggested routes feed
    `ConversationMemory.set_suggested_routes`.

Route extraction:
    1. Explicit `[ROUTE:x]` markers are collected in order and stripped.
    2. The cleaned reply is scanned for section mentions (events, volunteers,
       health); any section mentioned but not yet collected is appended.
    3. Labels are mapped through the alias table and de-duplicated.

Failure handling:
    `LLMServiceError` propagates to the caller, which picks the fallback text.
"""

import logging
import re
from dataclasses import dataclass, field

from carevoice.llm.service import generate_answer
from carevoice.nlp.keywords import ROUTE_ALIASES, contains_any
from carevoice.prompting.prompt_builder import build_assistant_prompt


logger = logging.getLogger(__name__)

ROUTE_MARKER = re.compile(r"\[ROUTE:(\w+)\]")

REPLY_EVENT_MENTIONS = (
    "events", "event", "activities", "activity", "activities section", "events section",
    "walking group", "walking groups", "community lunch", "community lunches",
    "workshop", "workshops", "book club", "book clubs",
    "social connection", "social connections", "things to do", "something to do",
    "explore events", "check out events", "try events", "visit events",
    "loneliness", "lonely", "social activities", "community activities",
)

REPLY_VOLUNTEER_MENTIONS = (
    "volunteer", "volunteers", "volunteer matching", "volunteer support",
    "volunteer section", "volunteers section", "volunteer matching section",
    "help", "companionship", "escort", "someone to talk", "connect with",
    "explore volunteers", "check out volunteers", "try volunteers", "visit volunteers",
    "volunteer opportunities", "find a volunteer", "match with a volunteer",
)

REPLY_HEALTH_MENTIONS = (
    "health services", "health service", "health services section",
    "hospital", "hospitals", "clinic", "clinics", "urgent care",
    "medical care", "doctor", "doctors", "medical services",
    "explore health", "check out health", "try health services", "visit health",
    "find a hospital", "find a clinic", "medical help",
)

# Scanned in this order, so mention-derived routes follow this order.
REPLY_MENTIONS = (
    ("events", REPLY_EVENT_MENTIONS),
    ("volunteers", REPLY_VOLUNTEER_MENTIONS),
    ("health", REPLY_HEALTH_MENTIONS),
)


@dataclass
class AssistantReply:
    response: str
    suggested_routes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"response": self.response}
        if self.suggested_routes:
            data["suggestedRoutes"] = list(self.suggested_routes)
        return data


def extract_routes(raw_reply: str) -> tuple[str, list[str]]:
    """Split a model reply into cleaned text and suggested screen values."""
    raw_reply = raw_reply or ""
    labels = [label.lower() for label in ROUTE_MARKER.findall(raw_reply)]
    cleaned = ROUTE_MARKER.sub("", raw_reply).strip()

    lower = cleaned.lower()
    for label, mentions in REPLY_MENTIONS:
        if label not in labels and contains_any(lower, mentions):
            labels.append(label)

    routes: list[str] = []
    for label in labels:
        screen = ROUTE_ALIASES.get(label)
        if screen and screen not in routes:
            routes.append(screen)
    return cleaned, routes


def query_assistant(text: str) -> AssistantReply:
    """Ask the assistant about `text`.

    Raises:
        LLMServiceError: when the provider call fails.
    """
    raw = generate_answer(build_assistant_prompt(text), temperature=0.7, max_tokens=500)
    cleaned, routes = extract_routes(raw)

    logger.info("Assistant reply routes=%s", routes)
    return AssistantReply(response=cleaned, suggested_routes=routes)
