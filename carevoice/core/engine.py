"""Turn orchestration for one voice session.

Architectural role:
    Owns the state of a single session (active screen, conversation memory,
    volunteer matching state, turn counter) and turns one utterance into a
    `TurnResult`. API and CLI adapters call into `CareSession`; nothing below
    this layer knows about sessions.

Control-flow model (`handle_utterance`):
    1. Allocate a turn id from a monotonic counter.
    2. On the volunteer screen, resolve the utterance with the local sub-router
       and compute matches. Otherwise classify it; the classifier (and the
       Reminder Parser it calls) runs in a worker thread.
    3. Drop the result as `stale` when a newer turn or navigation started
       meanwhile.
    4. Apply memory effects, then the decision's side effects:
       - reminder creation saves and schedules; a save failure falls back to
         keyword routing so the user still lands on a screen,
       - arriving on `info` runs the local responder or the AI Query,
       - arriving on `volunteer` with auto-start computes matches.

Interaction surface:
    - Routing: `nlp.intent_router.classify`, `nlp.volunteer_router`.
    - Memory: `memory.conversation_memory.ConversationMemory`.
    - Collaborators (injectable): Reminder Parser, AI Query, `MedicationStore`,
      `NotificationScheduler`.

Error handling strategy:
    Collaborator failures are logged and degrade to fallback replies. Nothing
    raised by a collaborator escapes `handle_utterance`.

Determinism:
    Local routing is deterministic for fixed input and state. LLM-backed
    collaborators are not.
"""

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Callable

from carevoice.core.routing_types import (
    DecisionKind,
    ParsedReminder,
    RoutingDecision,
    Screen,
    no_change,
)
from carevoice.core.volunteer_matching import Volunteer, match_volunteers
from carevoice.llm.client import LLMServiceError
from carevoice.memory.conversation_memory import ConversationMemory
from carevoice.memory.medication_store import Medication, MedicationStore
from carevoice.memory.reminder_schedule import NotificationScheduler
from carevoice.nlp.assistant_query import AssistantReply, query_assistant
from carevoice.nlp.info_responder import (
    InfoReply,
    fallback_reply,
    is_vague_discomfort,
    quota_reply,
    respond_locally,
)
from carevoice.nlp.intent_router import classify, route_by_keywords
from carevoice.nlp.keywords import VolunteerNeed
from carevoice.nlp.reminder_parser import parse_medication_reminder
from carevoice.nlp.time_format import format_time_12h
from carevoice.nlp.volunteer_router import (
    VolunteerRequest,
    request_from_context,
    route_on_volunteer_screen,
)


logger = logging.getLogger(__name__)

DEBUG_ROUTING = os.getenv("DEBUG_ROUTING", "false").lower() == "true"

SCREEN_TITLES = {
    Screen.HOME: "Home",
    Screen.INFO: "General Info",
    Screen.VOLUNTEER: "Volunteer Matching",
    Screen.EVENTS: "Events & Activities",
    Screen.HEALTH: "Health Services",
    Screen.MEDICATION: "Medication Guide",
}

ReminderParser = Callable[[str], ParsedReminder]
AssistantQuery = Callable[[str], AssistantReply]


# =========================================================
# RESULT SCHEMA
# =========================================================

@dataclass
class TurnResult:
    """Outcome of one utterance.

    `stale` results were superseded by a newer turn; their decision was not
    applied and `screen` reports the session's current screen.
    """

    turn_id: int
    screen: Screen
    decision: RoutingDecision
    message: str | None = None
    reply: InfoReply | None = None
    suggested_routes: list[Screen] = field(default_factory=list)
    medication: Medication | None = None
    volunteer_request: VolunteerRequest | None = None
    volunteer_matches: list[Volunteer] = field(default_factory=list)
    stale: bool = False

    def to_dict(self) -> dict:
        return {
            "turn_id": self.turn_id,
            "screen": self.screen.value,
            "decision": self.decision.to_dict(),
            "message": self.message,
            "reply": self.reply.to_dict() if self.reply else None,
            "suggested_routes": [screen.value for screen in self.suggested_routes],
            "medication": self.medication.to_dict() if self.medication else None,
            "volunteer_need": self.volunteer_request.label if self.volunteer_request else None,
            "volunteer_matches": [v.to_dict() for v in self.volunteer_matches],
            "stale": self.stale,
        }


def _times_phrase(times: list[str]) -> str:
    spoken = [format_time_12h(t) for t in times]
    if len(spoken) <= 1:
        return "".join(spoken)
    return ", ".join(spoken[:-1]) + " and " + spoken[-1]


# =========================================================
# SESSION
# =========================================================

class CareSession:
    """One user's voice session.

    Args:
        store: Medication persistence. Defaults to the file-backed store.
        scheduler: Reminder scheduler. Defaults to a fresh in-process one.
        reminder_parser: Callable used by the medication rule.
        assistant: AI Query callable used on the info screen.
        session_id: Explicit id, otherwise a random hex id.
    """

    def __init__(
        self,
        store: MedicationStore | None = None,
        scheduler: NotificationScheduler | None = None,
        reminder_parser: ReminderParser | None = parse_medication_reminder,
        assistant: AssistantQuery | None = query_assistant,
        session_id: str | None = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.store = store if store is not None else MedicationStore()
        self.scheduler = scheduler if scheduler is not None else NotificationScheduler()
        self.reminder_parser = reminder_parser
        self.assistant = assistant

        self.screen = Screen.HOME
        self.memory = ConversationMemory()

        # Screen-local state
        self.auto_start_matching = False
        self.has_auto_matched = False
        self.volunteer_request: VolunteerRequest | None = None
        self.volunteer_matches: list[Volunteer] = []
        self.info_query: str | None = None
        self.info_reply: InfoReply | None = None
        self.asked_for_details = False
        self.medication_draft: dict | None = None

        self._turn = 0
        self._lock = asyncio.Lock()

    # -----------------------------------------------------
    # Turn bookkeeping
    # -----------------------------------------------------

    def _next_turn(self) -> int:
        self._turn += 1
        return self._turn

    def _is_current(self, turn_id: int) -> bool:
        return turn_id == self._turn

    def _stale(self, turn_id: int, decision: RoutingDecision) -> TurnResult:
        logger.info("Dropping superseded turn=%d (latest=%d)", turn_id, self._turn)
        return TurnResult(turn_id=turn_id, screen=self.screen, decision=decision, stale=True)

    # -----------------------------------------------------
    # Public API
    # -----------------------------------------------------

    async def handle_utterance(self, text) -> TurnResult:
        """Process one utterance and return what the user should see/hear."""
        text = text if isinstance(text, str) else ""
        turn_id = self._next_turn()

        if self.screen == Screen.VOLUNTEER:
            return await self._handle_volunteer_utterance(turn_id, text)

        current = self.screen
        snapshot = self.memory.snapshot()
        decision = await asyncio.to_thread(
            classify,
            text,
            current,
            snapshot,
            self.reminder_parser,
        )

        async with self._lock:
            if not self._is_current(turn_id):
                return self._stale(turn_id, decision)

            self.memory.apply(decision)
            result = TurnResult(turn_id=turn_id, screen=self.screen, decision=decision)

            if decision.kind == DecisionKind.CREATE_MEDICATION_REMINDER:
                decision = await self._create_reminder(decision, text, result)
                result.decision = decision

            self._enter(decision, text, result)

            if DEBUG_ROUTING:
                logger.debug(
                    "session=%s turn=%d %s -> %s kind=%s memory=%s",
                    self.id,
                    turn_id,
                    current.value,
                    self.screen.value,
                    decision.kind.value,
                    self.memory.to_dict(),
                )

        if self.screen == Screen.INFO and self.info_query and result.reply is None:
            await self._answer_with_assistant(turn_id, self.info_query, result)

        result.screen = self.screen
        return result

    async def navigate_to(self, screen) -> dict:
        """Navigate explicitly (button press or CLI command).

        Supersedes any turn in flight.

        Raises:
            ValueError: for unknown screen names.
        """
        target = Screen.parse(screen)
        if target is None:
            raise ValueError(f"Unknown screen: {screen!r}")

        async with self._lock:
            self._next_turn()
            previous = self.screen

            if target == Screen.HOME:
                self._reset_home()
                return self.state()

            auto_start = False
            if target == Screen.VOLUNTEER:
                if previous == Screen.HEALTH:
                    auto_start = True
                elif previous == Screen.INFO and self.memory.volunteer_context_query:
                    auto_start = True
                else:
                    self.memory.clear_volunteer_context()

            self._arrive(target, auto_start=auto_start, previous=previous)
            return self.state()

    async def go_home(self) -> dict:
        async with self._lock:
            self._next_turn()
            self._reset_home()
            return self.state()

    def state(self) -> dict:
        return {
            "session_id": self.id,
            "screen": self.screen.value,
            "memory": self.memory.to_dict(),
            "auto_start_matching": self.auto_start_matching,
            "volunteer_need": self.volunteer_request.label if self.volunteer_request else None,
            "volunteer_matches": [v.to_dict() for v in self.volunteer_matches],
            "info_query": self.info_query,
            "info_reply": self.info_reply.to_dict() if self.info_reply else None,
            "medication_draft": self.medication_draft,
            "turn_id": self._turn,
        }

    # -----------------------------------------------------
    # Screen transitions
    # -----------------------------------------------------

    def _reset_home(self) -> None:
        self.memory.clear_on_navigate_home()
        self._arrive(Screen.HOME, auto_start=False, previous=self.screen)

    def _arrive(self, target: Screen, auto_start: bool, previous: Screen) -> None:
        """Switch screens and reset state owned by the screen being left."""
        if previous == Screen.INFO and target != Screen.INFO:
            # Suggestions only answer the info conversation they came from.
            self.memory.clear_suggestions()
        if target != Screen.VOLUNTEER:
            self.auto_start_matching = False
            self.has_auto_matched = False
            self.volunteer_request = None
            self.volunteer_matches = []
        if target != Screen.INFO:
            self.info_query = None
            self.info_reply = None
            self.asked_for_details = False
        if target != Screen.MEDICATION:
            self.medication_draft = None

        self.screen = target

        if target == Screen.VOLUNTEER:
            self.auto_start_matching = auto_start
            self.has_auto_matched = False
            self.volunteer_request = None
            self.volunteer_matches = []
            if auto_start:
                self._auto_match(previous)

    def _auto_match(self, previous: Screen) -> None:
        context = self.memory.volunteer_context_query
        if context:
            request = request_from_context(context)
        elif previous == Screen.HEALTH:
            request = VolunteerRequest(need=VolunteerNeed.MEDICAL_TRANSPORT)
        else:
            return

        self._match(request)
        self.has_auto_matched = True

    def _match(self, request: VolunteerRequest) -> None:
        self.volunteer_request = request
        self.volunteer_matches = match_volunteers(request.label)
        logger.info(
            "Matched volunteers need=%r count=%d",
            request.label,
            len(self.volunteer_matches),
        )

    def _enter(self, decision: RoutingDecision, text: str, result: TurnResult) -> None:
        """Apply the navigation part of a decision and fill `result`."""
        if decision.kind == DecisionKind.NO_CHANGE or decision.screen is None:
            return

        previous = self.screen
        target = decision.screen

        if target == Screen.INFO:
            self._enter_info(decision, text, result, previous)
            return

        if target == Screen.MEDICATION:
            if decision.kind == DecisionKind.PROMPT_MEDICATION_COMPLETION:
                self._arrive(target, auto_start=False, previous=previous)
                self.medication_draft = {
                    "name": decision.name,
                    "dosage": decision.dosage,
                    "frequency": decision.frequency,
                }
                result.message = (
                    f"I've started a reminder for {decision.name}. "
                    "When should I remind you to take it?"
                )
                return
            if decision.kind == DecisionKind.CREATE_MEDICATION_REMINDER:
                self._arrive(target, auto_start=False, previous=previous)
                return

        self._arrive(target, auto_start=decision.auto_start_matching, previous=previous)
        result.message = f"Opening {SCREEN_TITLES[target]}."
        result.volunteer_request = self.volunteer_request
        result.volunteer_matches = list(self.volunteer_matches)

    def _enter_info(
        self,
        decision: RoutingDecision,
        text: str,
        result: TurnResult,
        previous: Screen,
    ) -> None:
        if previous != Screen.INFO:
            self._arrive(Screen.INFO, auto_start=False, previous=previous)

        query = text.strip()
        self.info_query = query or None
        self.info_reply = None
        if not query:
            return

        reply = respond_locally(query, asked_for_details=self.asked_for_details)
        if reply is not None:
            if reply.kind == "clarify":
                self.asked_for_details = True
            self.info_reply = reply
            result.reply = reply
            result.message = reply.text
            return

        if not is_vague_discomfort(query.lower()):
            self.asked_for_details = False

    # -----------------------------------------------------
    # Collaborators
    # -----------------------------------------------------

    async def _create_reminder(
        self,
        decision: RoutingDecision,
        text: str,
        result: TurnResult,
    ) -> RoutingDecision:
        """Save and schedule a parsed reminder.

        Returns the decision to navigate with: the original one, or a keyword
        routing decision when saving failed.
        """
        try:
            medication = await asyncio.to_thread(
                self.store.save,
                decision.name,
                decision.dosage,
                decision.frequency,
                decision.times,
            )
        except Exception:
            logger.exception("Saving medication reminder failed; routing by keywords")
            fallback = route_by_keywords(text)
            self.memory.apply(fallback)
            return fallback

        try:
            self.scheduler.schedule_all(medication)
        except Exception:
            logger.exception("Scheduling reminders failed for medication=%s", medication.id)

        result.medication = medication
        result.message = (
            f"Reminder set for {medication.name} ({medication.dosage}) "
            f"at {_times_phrase(medication.reminder_times)}."
        )
        return decision

    async def _answer_with_assistant(self, turn_id: int, query: str, result: TurnResult) -> None:
        """Ask the AI Query collaborator and store its suggestions.

        The reply is discarded when a newer turn started while waiting.
        """
        if self.assistant is None:
            reply = fallback_reply(query)
            routes: list[str] = []
        else:
            try:
                answer = await asyncio.to_thread(self.assistant, query)
                reply = InfoReply(text=answer.response, kind="assistant")
                routes = list(answer.suggested_routes)
            except LLMServiceError as err:
                logger.warning("Assistant unavailable: %s (%s)", err, err.error_type)
                if err.is_quota:
                    reply = quota_reply(query, err.service, err.error_type)
                else:
                    reply = fallback_reply(query)
                routes = []
            except Exception:
                logger.exception("Assistant query failed")
                reply = fallback_reply(query)
                routes = []

        async with self._lock:
            if not self._is_current(turn_id) or self.screen != Screen.INFO:
                result.stale = True
                return

            self.info_reply = reply
            result.reply = reply
            result.message = reply.text

            self.memory.set_suggested_routes(routes, query)
            result.suggested_routes = list(self.memory.last_suggested_routes)

    async def _handle_volunteer_utterance(self, turn_id: int, text: str) -> TurnResult:
        decision = no_change()
        request = route_on_volunteer_screen(
            text,
            context_query=self.memory.volunteer_context_query,
            has_auto_matched=self.has_auto_matched,
        )

        async with self._lock:
            if not self._is_current(turn_id):
                return self._stale(turn_id, decision)

            result = TurnResult(turn_id=turn_id, screen=self.screen, decision=decision)
            if request is None:
                return result

            self._match(request)
            if request.from_context:
                self.has_auto_matched = True

            result.volunteer_request = request
            result.volunteer_matches = list(self.volunteer_matches)
            if self.volunteer_matches:
                result.message = (
                    f"I found {len(self.volunteer_matches)} volunteers who can help "
                    f"with {request.label}."
                )
            else:
                result.message = "I couldn't find a volunteer right now."
            return result
