"""LLM-backed extraction of medication reminders from free text.

Architectural role:
    Implements the Reminder Parser collaborator used by the intent router's
    medication rule and exposed directly over HTTP.

Processing:
    prompt -> `generate_answer` (low temperature) -> JSON extraction ->
    time normalization -> defaults for accepted requests.

Defaults (applied only when the model reports `success=true`):
    - missing name: first medication keyword found in the text, else "Medication",
    - no valid times: ["08:00"],
    - missing frequency/dosage: "Daily" / "As prescribed".

Failure handling:
    LLM errors and unparseable output never raise; they produce
    `ParsedReminder(success=False)` with a user-facing message.
"""

import json
import logging
import re

from carevoice.core.routing_types import DEFAULT_DOSAGE, DEFAULT_FREQUENCY, ParsedReminder
from carevoice.llm.client import LLMServiceError
from carevoice.llm.service import generate_answer
from carevoice.nlp.time_format import normalize_reminder_times
from carevoice.prompting.prompt_builder import build_reminder_prompt


logger = logging.getLogger(__name__)

DEFAULT_REMINDER_TIME = "08:00"
DEFAULT_NAME = "Medication"

# Scanned in order when the model omits a name.
NAME_KEYWORDS = (
    "aspirin", "metformin", "insulin", "vitamin", "tylenol", "ibuprofen",
    "medicine", "medication", "pill", "tablet",
)

PARSE_FAILED_MESSAGE = (
    "Unable to parse medication reminder information. "
    "Please try again or use the form."
)
SERVICE_FAILED_MESSAGE = (
    "Unable to process medication reminder. "
    "Please try again or use the form."
)


def _extract_json(text: str):
    """Extract the JSON object candidate from raw model output text."""
    if not text:
        return None

    text = text.strip()

    text = re.sub(r"^```json", "", text, flags=re.IGNORECASE).strip()
    text = re.sub(r"^```", "", text).strip()
    text = re.sub(r"```$", "", text).strip()

    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        return match.group(0)

    return None


def _clean_str(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() == "null":
        return None
    return value


def name_from_text(text: str) -> str | None:
    """Best-effort medication name from the original utterance."""
    lower = (text or "").lower()
    for keyword in NAME_KEYWORDS:
        if keyword in lower:
            if keyword == "vitamin" and "vitamin d" in lower:
                return "Vitamin D"
            return keyword.capitalize()
    return None


def _failure(message: str) -> ParsedReminder:
    return ParsedReminder(success=False, message=message)


def parse_medication_reminder(text: str) -> ParsedReminder:
    """Extract name, dosage, frequency and reminder times from `text`.

    Returns:
        `ParsedReminder`. `reminder_times` holds at most three normalized
        `HH:MM` values; malformed entries are dropped.
    """
    if not text or not text.strip():
        return _failure("No text provided")

    try:
        raw = generate_answer(build_reminder_prompt(text), temperature=0.3, max_tokens=500)
    except LLMServiceError as err:
        logger.warning("Reminder parsing unavailable: %s (%s)", err, err.error_type)
        return _failure(SERVICE_FAILED_MESSAGE)

    candidate = _extract_json(raw)
    if candidate is None:
        logger.warning("Reminder parser returned no JSON: %r", (raw or "")[:200])
        return _failure(PARSE_FAILED_MESSAGE)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Reminder parser returned invalid JSON: %r", candidate[:200])
        return _failure(PARSE_FAILED_MESSAGE)

    if not isinstance(data, dict):
        return _failure(PARSE_FAILED_MESSAGE)

    times = data.get("reminderTimes")
    if not isinstance(times, list):
        times = []

    parsed = ParsedReminder(
        success=bool(data.get("success")),
        name=_clean_str(data.get("name")),
        dosage=_clean_str(data.get("dosage")),
        frequency=_clean_str(data.get("frequency")),
        reminder_times=normalize_reminder_times(times),
        message=_clean_str(data.get("message")),
    )

    if parsed.success:
        parsed.name = parsed.name or name_from_text(text) or DEFAULT_NAME
        parsed.reminder_times = parsed.reminder_times or [DEFAULT_REMINDER_TIME]
        parsed.frequency = parsed.frequency or DEFAULT_FREQUENCY
        parsed.dosage = parsed.dosage or DEFAULT_DOSAGE

    logger.info(
        "Parsed reminder success=%s name=%r times=%s",
        parsed.success,
        parsed.name,
        parsed.reminder_times,
    )
    return parsed
