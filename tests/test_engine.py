# tests/test_engine.py
# CareSession turn orchestration with in-process fakes for every collaborator.

import asyncio
import threading

import pytest

from carevoice.core.engine import CareSession
from carevoice.core.routing_types import DecisionKind, ParsedReminder, Screen
from carevoice.llm.client import LLMServiceError
from carevoice.nlp.keywords import VolunteerNeed

from conftest import RecordingAssistant, RecordingParser


def run(coro):
    return asyncio.run(coro)


def make_session(store, scheduler, parser=None, assistant=None):
    return CareSession(
        store=store,
        scheduler=scheduler,
        reminder_parser=parser or RecordingParser(),
        assistant=assistant or RecordingAssistant(),
    )


class BrokenStore:
    def save(self, *args, **kwargs):
        raise OSError("disk full")


# ---------------------------------------------------------
# Reminders
# ---------------------------------------------------------

def test_reminder_is_saved_and_scheduled(store, scheduler, aspirin_parser):
    session = make_session(store, scheduler, parser=aspirin_parser)

    result = run(session.handle_utterance("remind me to take aspirin at 8am"))

    assert result.decision.kind == DecisionKind.CREATE_MEDICATION_REMINDER
    assert result.screen == Screen.MEDICATION
    assert result.medication.name == "Aspirin"
    assert "8:00 AM" in result.message
    assert [m.name for m in store.list()] == ["Aspirin"]
    assert [e.time for e in scheduler.list()] == ["08:00"]


def test_save_failure_still_lands_on_a_screen(scheduler, aspirin_parser):
    assistant = RecordingAssistant(response="Happy to help.")
    session = make_session(BrokenStore(), scheduler, parser=aspirin_parser, assistant=assistant)

    result = run(session.handle_utterance("remind me to take aspirin at 8am"))

    assert result.medication is None
    assert result.decision.kind == DecisionKind.NAVIGATE
    assert result.screen == Screen.INFO
    assert scheduler.list() == []


def test_name_only_opens_medication_form(store, scheduler):
    parser = RecordingParser(ParsedReminder(success=True, name="Metformin"))
    session = make_session(store, scheduler, parser=parser)

    result = run(session.handle_utterance("add medication metformin"))

    assert result.screen == Screen.MEDICATION
    assert session.medication_draft["name"] == "Metformin"
    assert store.list() == []


# ---------------------------------------------------------
# Info screen and suggestions
# ---------------------------------------------------------

def test_assistant_suggestion_then_yes_auto_matches(store, scheduler):
    assistant = RecordingAssistant(response="A volunteer can help with that.", routes=["volunteer"])
    session = make_session(store, scheduler, assistant=assistant)

    first = run(session.handle_utterance("my sink is leaking"))
    assert first.screen == Screen.INFO
    assert first.message == "A volunteer can help with that."
    assert first.suggested_routes == [Screen.VOLUNTEER]
    assert session.memory.volunteer_context_query == "my sink is leaking"

    second = run(session.handle_utterance("yes"))
    assert second.screen == Screen.VOLUNTEER
    assert session.auto_start_matching is True
    assert session.memory.last_suggested_routes == []
    assert session.memory.volunteer_context_query == "my sink is leaking"
    assert len(second.volunteer_matches) == 3
    assert assistant.calls == ["my sink is leaking"]


def test_leaving_info_drops_pending_suggestions(store, scheduler):
    assistant = RecordingAssistant(response="Try the Events section.", routes=["events"])
    session = make_session(store, scheduler, assistant=assistant)

    run(session.handle_utterance("I'm bored"))
    assert session.memory.last_suggested_routes == [Screen.EVENTS]

    run(session.navigate_to("health"))
    assert session.memory.last_suggested_routes == []

    run(session.navigate_to("info"))
    result = run(session.handle_utterance("ok"))

    assert result.screen == Screen.INFO
    assert assistant.calls == ["I'm bored", "ok"]


def test_routeless_reply_clears_volunteer_context(store, scheduler, assistant):
    session = make_session(store, scheduler, assistant=assistant)

    run(session.handle_utterance("my chair is broken, I need help"))
    run(session.navigate_to("info"))
    assert session.memory.volunteer_context_query == "my chair is broken, I need help"

    run(session.handle_utterance("tell me a joke"))
    assert session.memory.volunteer_context_query is None

    state = run(session.navigate_to("volunteer"))
    assert state["auto_start_matching"] is False
    assert state["volunteer_matches"] == []


def test_quota_failure_reports_service(store, scheduler):
    error = LLMServiceError("OPENAI HTTP ERROR (429)", "OpenAI ChatGPT", "rate_limit")
    session = make_session(store, scheduler, assistant=RecordingAssistant(error=error))

    result = run(session.handle_utterance("tell me a joke"))

    assert result.screen == Screen.INFO
    assert "OpenAI ChatGPT encountered rate limit" in result.message
    assert 'I heard you say: "tell me a joke"' in result.message
    assert session.memory.last_suggested_routes == []


def test_generic_failure_uses_fallback(store, scheduler):
    session = make_session(store, scheduler, assistant=RecordingAssistant(error=RuntimeError("boom")))

    result = run(session.handle_utterance("tell me a joke"))

    assert result.message.startswith('I heard you say: "tell me a joke"')


def test_fall_answers_locally(store, scheduler, assistant):
    session = make_session(store, scheduler, assistant=assistant)

    result = run(session.handle_utterance("I just fell down"))

    assert result.decision.kind == DecisionKind.SHOW_EMERGENCY_PROMPT
    assert result.reply.emergency_number == "911"
    assert assistant.calls == []


def test_discomfort_asks_once_then_queries_assistant(store, scheduler, assistant):
    session = make_session(store, scheduler, assistant=assistant)

    first = run(session.handle_utterance("I am feeling uncomfortable"))
    assert first.reply.kind == "clarify"
    assert assistant.calls == []

    run(session.handle_utterance("I'm feeling uncomfortable"))
    assert assistant.calls == ["I'm feeling uncomfortable"]


# ---------------------------------------------------------
# Volunteer screen
# ---------------------------------------------------------

def test_volunteer_need_auto_matches_from_context(store, scheduler):
    session = make_session(store, scheduler)

    result = run(session.handle_utterance("my chair is broken, I need help"))

    assert result.screen == Screen.VOLUNTEER
    assert result.volunteer_request.need == VolunteerNeed.HOME_REPAIR
    assert result.volunteer_matches[0].name == "Sarah Johnson"
    assert session.memory.volunteer_context_query == "my chair is broken, I need help"


def test_utterance_on_volunteer_screen_matches_need(store, scheduler):
    session = make_session(store, scheduler)
    run(session.navigate_to("volunteer"))

    result = run(session.handle_utterance("I need help with grocery shopping"))

    assert result.decision.kind == DecisionKind.NO_CHANGE
    assert result.screen == Screen.VOLUNTEER
    assert result.volunteer_request.need == VolunteerNeed.GROCERY
    assert result.volunteer_matches[0].name == "Emma Williams"


# ---------------------------------------------------------
# Explicit navigation
# ---------------------------------------------------------

def test_volunteer_from_health_matches_medical_transport(store, scheduler):
    session = make_session(store, scheduler)
    run(session.navigate_to("health"))

    state = run(session.navigate_to(Screen.VOLUNTEER))

    assert state["auto_start_matching"] is True
    assert state["volunteer_need"] == VolunteerNeed.MEDICAL_TRANSPORT.label
    assert state["volunteer_matches"][0]["name"] == "David Brown"


def test_spoken_volunteer_request_from_health_does_not_auto_start(store, scheduler):
    session = make_session(store, scheduler)
    run(session.navigate_to("health"))

    result = run(session.handle_utterance("show me volunteers"))

    assert result.screen == Screen.VOLUNTEER
    assert result.decision.auto_start_matching is False
    assert session.auto_start_matching is False
    assert result.volunteer_request is None
    assert result.volunteer_matches == []


def test_volunteer_from_home_clears_context(store, scheduler):
    session = make_session(store, scheduler)
    session.memory.set_volunteer_context("my chair is broken")

    state = run(session.navigate_to("volunteer"))

    assert state["auto_start_matching"] is False
    assert session.memory.volunteer_context_query is None
    assert state["volunteer_matches"] == []


def test_go_home_resets_memory(store, scheduler):
    session = make_session(store, scheduler)
    session.memory.set_suggested_routes(["volunteer", "events"], "my chair is broken")

    state = run(session.go_home())

    assert state["screen"] == "home"
    assert session.memory.is_empty()


def test_unknown_screen_is_rejected(store, scheduler):
    session = make_session(store, scheduler)

    with pytest.raises(ValueError, match="kitchen"):
        run(session.navigate_to("kitchen"))


# ---------------------------------------------------------
# Superseded turns
# ---------------------------------------------------------

def test_superseded_turn_applies_nothing(store, scheduler):
    gate = threading.Event()

    def slow_parser(text):
        gate.wait(5)
        return ParsedReminder(success=True, name="Aspirin", reminder_times=["08:00"])

    session = make_session(store, scheduler, parser=slow_parser)

    async def scenario():
        first = asyncio.create_task(session.handle_utterance("remind me to take aspirin"))
        await asyncio.sleep(0.05)
        second = await session.handle_utterance("what events are happening")
        gate.set()
        return await first, second

    first, second = run(scenario())

    assert first.stale is True
    assert second.stale is False
    assert session.screen == Screen.EVENTS
    assert store.list() == []
    assert scheduler.list() == []
