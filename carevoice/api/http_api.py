"""
HTTP API adapter for the CareVoice session engine.

Architectural role:
- Expose session, parsing, assistant and medication endpoints over HTTP.
- Enforce adapter-level input validation.
- Delegate routing work to `carevoice.core.engine.CareSession`.

Endpoint responsibilities:
- `POST /v1/sessions`: create a session on the home screen.
- `POST /v1/sessions/{id}/utterances`: process one utterance.
- `POST /v1/sessions/{id}/navigate`, `POST /v1/sessions/{id}/home`: explicit navigation.
- `GET /v1/sessions/{id}`: session state.
- `DELETE /v1/sessions/{id}`: end a session and release its state.
- `POST /v1/parse-medication-reminder`: Reminder Parser.
- `POST /v1/ai-query`: AI Query.
- `GET /v1/medications`, `DELETE /v1/medications/{id}`: medication store.
- `GET /health`: liveness.

Input validation behavior:
- Missing/blank `text` or unknown `screen` -> HTTP 400 `{"error": ...}`.
- Malformed JSON bodies -> HTTP 400 `{"error": ...}`.
- Unknown session or medication ids -> HTTP 404 `{"error": ...}`.

Error handling strategy:
- Collaborator failures are absorbed by the engine and the collaborators
  themselves; this module only maps validation and lookup failures.

Side effects:
- Sessions live in process memory until deleted and are lost on restart.
- Emits debug logs only when `DEBUG == "true"`.
- Loads environment variables at import time via `load_dotenv()`.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from carevoice.core.engine import CareSession
from carevoice.llm.client import LLMServiceError
from carevoice.memory.medication_store import MedicationStore
from carevoice.memory.reminder_schedule import NotificationScheduler
from carevoice.nlp.assistant_query import query_assistant
from carevoice.nlp.info_responder import fallback_reply, quota_reply
from carevoice.nlp.reminder_parser import parse_medication_reminder


logger = logging.getLogger(__name__)

# Sensitive request/response debug logging is opt-in.
DEBUG = os.getenv("DEBUG") == "true"


# ============================================================
# Request Schemas
# ============================================================

class TextRequest(BaseModel):
    text: str | None = None


class NavigateRequest(BaseModel):
    screen: str | None = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _require_text(payload: TextRequest) -> str | None:
    if payload.text is None or not payload.text.strip():
        return None
    return payload.text


# ============================================================
# Application Factory
# ============================================================

def create_app(
    store: MedicationStore | None = None,
    scheduler: NotificationScheduler | None = None,
    reminder_parser=parse_medication_reminder,
    assistant=query_assistant,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators are shared by every session created through this app and can
    be replaced for tests or alternative deployments.
    """
    api = FastAPI(title="CareVoice")

    store = store if store is not None else MedicationStore()
    scheduler = scheduler if scheduler is not None else NotificationScheduler()
    sessions: dict[str, CareSession] = {}

    api.state.sessions = sessions
    api.state.store = store
    api.state.scheduler = scheduler

    @api.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        if DEBUG:
            logger.debug("Rejected request %s: %s", request.url.path, exc.errors())
        return _error(400, "Invalid request body")

    def _session(session_id: str) -> CareSession | None:
        return sessions.get(session_id)

    # --------------------------------------------------------
    # Sessions
    # --------------------------------------------------------

    @api.post("/v1/sessions")
    async def create_session():
        session = CareSession(
            store=store,
            scheduler=scheduler,
            reminder_parser=reminder_parser,
            assistant=assistant,
        )
        sessions[session.id] = session
        logger.info("Created session=%s", session.id)
        return {"session_id": session.id, "screen": session.screen.value}

    @api.get("/v1/sessions/{session_id}")
    async def get_session(session_id: str):
        session = _session(session_id)
        if session is None:
            return _error(404, "Session not found")
        return session.state()

    @api.post("/v1/sessions/{session_id}/utterances")
    async def post_utterance(session_id: str, payload: TextRequest):
        session = _session(session_id)
        if session is None:
            return _error(404, "Session not found")

        text = _require_text(payload)
        if text is None:
            return _error(400, "No text provided")

        if DEBUG:
            logger.debug("session=%s utterance=%r", session_id, text)

        result = await session.handle_utterance(text)
        return result.to_dict()

    @api.post("/v1/sessions/{session_id}/navigate")
    async def navigate(session_id: str, payload: NavigateRequest):
        session = _session(session_id)
        if session is None:
            return _error(404, "Session not found")

        try:
            return await session.navigate_to(payload.screen)
        except ValueError as err:
            return _error(400, str(err))

    @api.post("/v1/sessions/{session_id}/home")
    async def go_home(session_id: str):
        session = _session(session_id)
        if session is None:
            return _error(404, "Session not found")
        return await session.go_home()

    @api.delete("/v1/sessions/{session_id}")
    async def end_session(session_id: str):
        session = sessions.pop(session_id, None)
        if session is None:
            return _error(404, "Session not found")
        logger.info("Ended session=%s", session_id)
        return {"deleted": session_id}

    # --------------------------------------------------------
    # Collaborators
    # --------------------------------------------------------

    @api.post("/v1/parse-medication-reminder")
    async def parse_reminder(payload: TextRequest):
        text = _require_text(payload)
        if text is None:
            return _error(400, "No text provided")

        parsed = await asyncio.to_thread(reminder_parser, text)
        return parsed.to_dict()

    @api.post("/v1/ai-query")
    async def ai_query(payload: TextRequest):
        text = _require_text(payload)
        if text is None:
            return _error(400, "No text provided")

        try:
            answer = await asyncio.to_thread(assistant, text)
        except LLMServiceError as err:
            logger.warning("AI query failed: %s (%s)", err, err.error_type)
            if err.is_quota:
                reply = quota_reply(text, err.service, err.error_type)
            else:
                reply = fallback_reply(text)
            return {
                "response": reply.text,
                "quotaExceeded": err.is_quota,
                "service": err.service,
                "errorType": err.error_type,
            }

        return answer.to_dict()

    # --------------------------------------------------------
    # Medications
    # --------------------------------------------------------

    @api.get("/v1/medications")
    async def list_medications():
        medications = await asyncio.to_thread(store.list)
        return {"medications": [m.to_dict() for m in medications]}

    @api.delete("/v1/medications/{medication_id}")
    async def delete_medication(medication_id: str):
        removed = await asyncio.to_thread(store.delete, medication_id)
        if not removed:
            return _error(404, "Medication not found")

        cancelled = scheduler.cancel_all(medication_id)
        return {"deleted": medication_id, "cancelled_reminders": cancelled}

    @api.get("/health")
    async def health():
        return {"status": "ok", "sessions": len(sessions)}

    return api


app = create_app()
