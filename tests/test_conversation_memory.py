# tests/test_conversation_memory.py
# Suggestion/context lifecycle of ConversationMemory.

from carevoice.core.routing_types import RoutingDecision, Screen
from carevoice.memory.conversation_memory import ConversationMemory, normalize_routes
from carevoice.nlp.intent_router import classify


def test_volunteer_suggestion_stores_query():
    memory = ConversationMemory()
    memory.set_suggested_routes(["volunteers"], "my sink leaks")

    assert memory.last_suggested_routes == [Screen.VOLUNTEER]
    assert memory.volunteer_context_query == "my sink leaks"


def test_affirmative_query_keeps_existing_context():
    memory = ConversationMemory()
    memory.set_suggested_routes(["volunteer"], "my sink leaks")
    memory.set_suggested_routes(["volunteer", "events"], "yes")

    assert memory.volunteer_context_query == "my sink leaks"
    assert memory.last_suggested_routes == [Screen.VOLUNTEER, Screen.EVENTS]


def test_suggestions_without_volunteer_clear_context():
    memory = ConversationMemory()
    memory.set_suggested_routes(["volunteer"], "my sink leaks")
    memory.set_suggested_routes(["events"], "anything fun today")

    assert memory.volunteer_context_query is None


def test_normalize_routes_drops_unknown_and_duplicates():
    routes = normalize_routes(["healthservices", "health", "home", "bogus", "volunteers", 7])
    assert routes == [Screen.HEALTH, Screen.VOLUNTEER]


def test_clear_on_navigate_home_is_idempotent():
    memory = ConversationMemory()
    memory.set_suggested_routes(["volunteer"], "my chair is broken")

    memory.clear_on_navigate_home()
    memory.clear_on_navigate_home()

    assert memory.is_empty()


def test_apply_runs_clears_before_set():
    memory = ConversationMemory()
    memory.set_suggested_routes(["volunteer"], "old query")

    memory.apply(RoutingDecision(
        clear_suggestions=True,
        clear_volunteer_context=True,
        volunteer_context_query="new query",
    ))

    assert memory.last_suggested_routes == []
    assert memory.volunteer_context_query == "new query"


def test_affirmative_round_trip_through_classifier():
    memory = ConversationMemory()
    memory.set_suggested_routes(["volunteers"], "my sink leaks")

    decision = classify("yes", Screen.INFO, memory.snapshot())
    memory.apply(decision)

    assert decision.screen == Screen.VOLUNTEER
    assert decision.auto_start_matching is True
    assert memory.last_suggested_routes == []
    assert memory.volunteer_context_query == "my sink leaks"


def test_snapshot_is_detached():
    memory = ConversationMemory()
    memory.set_suggested_routes(["events"])
    snapshot = memory.snapshot()

    memory.clear_suggestions()

    assert snapshot.last_suggested_routes == (Screen.EVENTS,)
