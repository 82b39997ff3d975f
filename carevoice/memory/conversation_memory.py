"""Short-term conversation memory for one active session.

Purpose of this abstraction:
    Track the navigation targets most recently suggested by the AI Query
    collaborator and the utterance that caused a volunteer suggestion, so that a
    later "yes" can be resolved against the original need ("my chair is broken")
    rather than the affirmation itself.

Ownership:
    One instance per `CareSession`. The intent router only reads it (through
    `snapshot()`); all writes go through the operations below.

Persistence:
    None. State is lost when the session ends or the user returns home.
"""

from dataclasses import dataclass

from carevoice.core.routing_types import SUGGESTABLE_SCREENS, RoutingDecision, Screen
from carevoice.nlp.intent_router import is_affirmative
from carevoice.nlp.keywords import ROUTE_ALIASES


@dataclass(frozen=True)
class MemorySnapshot:
    """Read-only view handed to the intent router."""

    last_suggested_routes: tuple[Screen, ...] = ()
    volunteer_context_query: str | None = None


def normalize_routes(routes) -> list[Screen]:
    """Map upstream route labels to suggestable screens.

    Unknown labels are dropped, aliases (`volunteers`, `healthservices`) are
    resolved and duplicates removed while preserving order.
    """
    normalized: list[Screen] = []
    for route in routes or []:
        if isinstance(route, Screen):
            screen = route
        elif isinstance(route, str):
            screen = Screen.parse(ROUTE_ALIASES.get(route.strip().lower(), ""))
        else:
            screen = None

        if screen in SUGGESTABLE_SCREENS and screen not in normalized:
            normalized.append(screen)
    return normalized


class ConversationMemory:
    """Session-scoped suggestion and volunteer-context state."""

    def __init__(self):
        self.last_suggested_routes: list[Screen] = []
        self.volunteer_context_query: str | None = None

    def set_suggested_routes(self, routes, query: str | None = None) -> None:
        """Replace pending suggestions after an AI reply.

        Side effects:
        - `volunteer` suggested and `query` is a real (non-affirmative) query:
          the query becomes the volunteer context.
        - `volunteer` not suggested: the volunteer context is cleared.
        - `volunteer` suggested for an affirmative query: context is kept.
        """
        self.last_suggested_routes = normalize_routes(routes)

        if Screen.VOLUNTEER in self.last_suggested_routes:
            if query and query.strip() and not is_affirmative(query):
                self.volunteer_context_query = query
        else:
            self.volunteer_context_query = None

    def set_volunteer_context(self, query: str | None) -> None:
        self.volunteer_context_query = query or None

    def clear_suggestions(self) -> None:
        self.last_suggested_routes = []

    def clear_volunteer_context(self) -> None:
        self.volunteer_context_query = None

    def clear_on_navigate_home(self) -> None:
        self.last_suggested_routes = []
        self.volunteer_context_query = None

    def apply(self, decision: RoutingDecision) -> None:
        """Apply the memory effects carried by a routing decision."""
        if decision.clear_suggestions:
            self.clear_suggestions()
        if decision.clear_volunteer_context:
            self.clear_volunteer_context()
        if decision.volunteer_context_query:
            self.volunteer_context_query = decision.volunteer_context_query

    def snapshot(self) -> MemorySnapshot:
        return MemorySnapshot(
            last_suggested_routes=tuple(self.last_suggested_routes),
            volunteer_context_query=self.volunteer_context_query,
        )

    def is_empty(self) -> bool:
        return not self.last_suggested_routes and self.volunteer_context_query is None

    def to_dict(self) -> dict:
        return {
            "last_suggested_routes": [screen.value for screen in self.last_suggested_routes],
            "volunteer_context_query": self.volunteer_context_query,
        }
