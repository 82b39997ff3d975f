# tests/conftest.py
import sys
import pathlib

import pytest

# Ensure project root is on sys.path so `import carevoice` works without an install
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from carevoice.core.routing_types import ParsedReminder
from carevoice.memory.medication_store import MedicationStore
from carevoice.memory.reminder_schedule import NotificationScheduler
from carevoice.nlp.assistant_query import AssistantReply


class RecordingParser:
    """Reminder Parser stand-in returning a fixed result and recording calls."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result


class RecordingAssistant:
    """AI Query stand-in."""

    def __init__(self, response="How can I help?", routes=None, error=None):
        self.response = response
        self.routes = routes or []
        self.error = error
        self.calls = []

    def __call__(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return AssistantReply(response=self.response, suggested_routes=list(self.routes))


@pytest.fixture
def aspirin_parser():
    return RecordingParser(
        ParsedReminder(success=True, name="Aspirin", reminder_times=["08:00"])
    )


@pytest.fixture
def assistant():
    return RecordingAssistant()


@pytest.fixture
def store(tmp_path):
    return MedicationStore(str(tmp_path / "medications.json"))


@pytest.fixture
def scheduler():
    return NotificationScheduler()
