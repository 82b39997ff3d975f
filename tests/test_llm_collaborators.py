# tests/test_llm_collaborators.py
# Reminder Parser, AI Query and the LLM transport, with the network replaced.

import pytest
import requests

import carevoice.llm.client as client
import carevoice.llm.service as service
import carevoice.nlp.assistant_query as assistant_query
import carevoice.nlp.reminder_parser as reminder_parser
from carevoice.llm.client import LLMServiceError


def fake_answer(text):
    def _generate(prompt, temperature=0.7, max_tokens=500, **kwargs):
        return text
    return _generate


def failing_answer(error):
    def _generate(prompt, temperature=0.7, max_tokens=500, **kwargs):
        raise error
    return _generate


# ---------------------------------------------------------
# Reminder Parser
# ---------------------------------------------------------

def test_parser_reads_fenced_json(monkeypatch):
    raw = (
        "```json\n"
        '{"name": "Insulin", "dosage": "10 units", "frequency": "Twice daily",'
        ' "reminderTimes": ["8:00", "20:00", "25:00"], "success": true,'
        ' "message": "ok"}\n'
        "```"
    )
    monkeypatch.setattr(reminder_parser, "generate_answer", fake_answer(raw))

    parsed = reminder_parser.parse_medication_reminder("take insulin twice daily")

    assert parsed.success is True
    assert parsed.name == "Insulin"
    assert parsed.dosage == "10 units"
    assert parsed.reminder_times == ["08:00", "20:00"]


def test_parser_fills_defaults_on_success(monkeypatch):
    raw = '{"name": null, "reminderTimes": [], "success": true}'
    monkeypatch.setattr(reminder_parser, "generate_answer", fake_answer(raw))

    parsed = reminder_parser.parse_medication_reminder("remind me to take my vitamin d")

    assert parsed.name == "Vitamin D"
    assert parsed.reminder_times == ["08:00"]
    assert parsed.frequency == "Daily"
    assert parsed.dosage == "As prescribed"


def test_parser_keeps_rejection_without_defaults(monkeypatch):
    raw = '{"name": null, "reminderTimes": [], "success": false, "message": "not a reminder"}'
    monkeypatch.setattr(reminder_parser, "generate_answer", fake_answer(raw))

    parsed = reminder_parser.parse_medication_reminder("what's the weather")

    assert parsed.success is False
    assert parsed.name is None
    assert parsed.reminder_times == []


def test_parser_caps_times_at_three(monkeypatch):
    raw = '{"name": "Aspirin", "reminderTimes": ["08:00", "12:00", "18:00", "22:00"], "success": true}'
    monkeypatch.setattr(reminder_parser, "generate_answer", fake_answer(raw))

    parsed = reminder_parser.parse_medication_reminder("aspirin four times a day")

    assert parsed.reminder_times == ["08:00", "12:00", "18:00"]


def test_parser_invalid_json_fails_softly(monkeypatch):
    monkeypatch.setattr(reminder_parser, "generate_answer", fake_answer("Sure! Aspirin at 8."))

    parsed = reminder_parser.parse_medication_reminder("remind me to take aspirin")

    assert parsed.success is False
    assert "Unable to parse" in parsed.message


def test_parser_service_error_fails_softly(monkeypatch):
    error = LLMServiceError("OPENAI HTTP ERROR (500)", "OpenAI ChatGPT", "http")
    monkeypatch.setattr(reminder_parser, "generate_answer", failing_answer(error))

    parsed = reminder_parser.parse_medication_reminder("remind me to take aspirin")

    assert parsed.success is False
    assert parsed.to_dict()["reminderTimes"] == []


# ---------------------------------------------------------
# AI Query
# ---------------------------------------------------------

def test_assistant_extracts_markers_and_mentions(monkeypatch):
    raw = (
        "I can help you find a volunteer. You might also enjoy our walking groups. "
        "[ROUTE:volunteers] [ROUTE:volunteer]"
    )
    monkeypatch.setattr(assistant_query, "generate_answer", fake_answer(raw))

    reply = assistant_query.query_assistant("my sink leaks")

    assert "[ROUTE" not in reply.response
    assert reply.suggested_routes == ["volunteer", "events"]
    assert reply.to_dict()["suggestedRoutes"] == ["volunteer", "events"]


def test_assistant_without_routes_omits_key(monkeypatch):
    monkeypatch.setattr(assistant_query, "generate_answer", fake_answer("Good morning to you too!"))

    reply = assistant_query.query_assistant("good morning")

    assert reply.suggested_routes == []
    assert "suggestedRoutes" not in reply.to_dict()


def test_assistant_propagates_service_errors(monkeypatch):
    error = LLMServiceError("OPENAI HTTP ERROR (429)", "OpenAI ChatGPT", "quota")
    monkeypatch.setattr(assistant_query, "generate_answer", failing_answer(error))

    with pytest.raises(LLMServiceError) as info:
        assistant_query.query_assistant("hello")

    assert info.value.is_quota


# ---------------------------------------------------------
# Transport
# ---------------------------------------------------------

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code}", response=self)

    def json(self):
        return self._payload


@pytest.fixture
def openai_provider(monkeypatch):
    monkeypatch.setattr(client, "PROVIDER", "openai")
    monkeypatch.setattr(client, "load_key", lambda path: "sk-test")


def test_send_request_returns_content(monkeypatch, openai_provider):
    captured = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        captured.update(url=url, headers=headers, timeout=timeout)
        return FakeResponse(payload={"choices": [{"message": {"content": "  Hello there \n"}}]})

    monkeypatch.setattr(client.requests, "post", fake_post)

    assert client.send_request({"messages": []}) == "Hello there"
    assert captured["headers"]["Authorization"] == "Bearer sk-test"
    assert captured["timeout"] == client.REQUEST_TIMEOUT_SECONDS


def test_send_request_classifies_quota(monkeypatch, openai_provider):
    body = '{"error": {"type": "insufficient_quota"}}'
    monkeypatch.setattr(
        client.requests, "post",
        lambda *a, **kw: FakeResponse(status_code=429, text=body),
    )

    with pytest.raises(LLMServiceError) as info:
        client.send_request({"messages": []})

    assert info.value.error_type == "quota"
    assert info.value.service == "OpenAI ChatGPT"
    assert str(info.value) == "OPENAI HTTP ERROR (429)"
    assert info.value.retryable is False


def test_send_request_classifies_rate_limit(monkeypatch, openai_provider):
    monkeypatch.setattr(
        client.requests, "post",
        lambda *a, **kw: FakeResponse(status_code=429, text="slow down"),
    )

    with pytest.raises(LLMServiceError) as info:
        client.send_request({"messages": []})

    assert info.value.error_type == "rate_limit"


def test_missing_key_is_config_error(monkeypatch):
    monkeypatch.setattr(client, "PROVIDER", "openai")
    monkeypatch.setattr(client, "load_key", lambda path: None)

    with pytest.raises(LLMServiceError) as info:
        client.send_request({"messages": []})

    assert info.value.error_type == "config"


def test_generate_answer_retries_network_errors_once(monkeypatch):
    calls = []

    def flaky(payload):
        calls.append(payload)
        if len(calls) == 1:
            raise LLMServiceError("OPENAI HTTP ERROR", "OpenAI ChatGPT", "http", retryable=True)
        return "recovered"

    monkeypatch.setattr(service, "send_request", flaky)
    monkeypatch.setattr(service.time, "sleep", lambda seconds: None)

    assert service.generate_answer("hi", retries=1) == "recovered"
    assert len(calls) == 2
    assert calls[0]["messages"][-1] == {"role": "user", "content": "hi"}


def test_generate_answer_does_not_retry_status_errors(monkeypatch):
    calls = []

    def rejected(payload):
        calls.append(payload)
        raise LLMServiceError("OPENAI HTTP ERROR (429)", "OpenAI ChatGPT", "rate_limit")

    monkeypatch.setattr(service, "send_request", rejected)

    with pytest.raises(LLMServiceError):
        service.generate_answer("hi", retries=3)

    assert len(calls) == 1
