# tests/test_medication_store.py
# File-backed medication store, reminder scheduling and time formatting.

from datetime import datetime

import pytest

from carevoice.memory.medication_store import MedicationStore
from carevoice.memory.reminder_schedule import next_occurrence
from carevoice.nlp.time_format import format_time_12h, normalize_reminder_times


def test_save_and_reload(store):
    saved = store.save("Aspirin", reminder_times=["8:00", "20:30"])

    reloaded = MedicationStore(store.path).get(saved.id)
    assert reloaded.name == "Aspirin"
    assert reloaded.dosage == "As prescribed"
    assert reloaded.frequency == "Daily"
    assert reloaded.reminder_times == ["08:00", "20:30"]
    assert reloaded.created_at


def test_save_requires_name(store):
    with pytest.raises(ValueError):
        store.save("   ")


def test_update_and_delete(store):
    saved = store.save("Metformin", dosage="500mg", reminder_times=["08:00"])

    updated = store.update(saved.id, dosage="1000mg", reminder_times=["09:00", "bad"])
    assert updated.dosage == "1000mg"
    assert updated.reminder_times == ["09:00"]

    assert store.delete(saved.id) is True
    assert store.delete(saved.id) is False
    assert store.list() == []
    assert store.update("missing", name="x") is None


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "medications.json"
    path.write_text("{not json", encoding="utf-8")

    assert MedicationStore(str(path)).list() == []


def test_scheduler_skips_invalid_times(store, scheduler):
    medication = store.save("Insulin", reminder_times=["08:00", "20:00"])
    medication.reminder_times.append("25:00")

    ids = scheduler.schedule_all(medication)

    assert len(ids) == 2
    assert [e.time for e in scheduler.list(medication.id)] == ["08:00", "20:00"]
    assert "Insulin" in scheduler.list()[0].body

    assert scheduler.cancel_all(medication.id) == 2
    assert scheduler.list() == []


def test_due_reminders(store, scheduler):
    medication = store.save("Aspirin", reminder_times=["08:00"])
    scheduler.schedule_all(medication)

    assert len(scheduler.due(datetime(2024, 1, 1, 8, 0))) == 1
    assert scheduler.due(datetime(2024, 1, 1, 8, 1)) == []


def test_next_occurrence_rolls_to_tomorrow():
    now = datetime(2024, 1, 1, 9, 0)

    assert next_occurrence("10:30", now) == datetime(2024, 1, 1, 10, 30)
    assert next_occurrence("08:00", now) == datetime(2024, 1, 2, 8, 0)
    assert next_occurrence("nope", now) is None


def test_time_normalization_and_formatting():
    assert normalize_reminder_times(["8:5", "25:00", "8:05", "12:00", "18:00", "22:00"]) == [
        "08:05", "12:00", "18:00",
    ]
    assert normalize_reminder_times(["8:5", "08:5", "8:005"]) == []
    assert normalize_reminder_times("08:00") == []

    assert format_time_12h("08:00") == "8:00 AM"
    assert format_time_12h("00:15") == "12:15 AM"
    assert format_time_12h("12:00") == "12:00 PM"
    assert format_time_12h("20:30") == "8:30 PM"
