"""In-process scheduler for daily medication reminders.

Each reminder time of a medication becomes one daily notification entry.
Delivery to a device is out of scope: the scheduler keeps the entries and can
report which are due, so an adapter can push them however it likes.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from carevoice.memory.medication_store import Medication
from carevoice.nlp.time_format import parse_hhmm


logger = logging.getLogger(__name__)


@dataclass
class ScheduledReminder:
    id: str
    medication_id: str
    medication_name: str
    time: str
    title: str
    body: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "time": self.time,
            "title": self.title,
            "body": self.body,
        }


def next_occurrence(time_value: str, now: datetime | None = None) -> datetime | None:
    """Next wall-clock datetime for `HH:MM`; tomorrow when today's has passed."""
    parsed = parse_hhmm(time_value)
    if parsed is None:
        return None

    now = now or datetime.now()
    hours, minutes = parsed
    candidate = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class NotificationScheduler:
    """Keeps one daily reminder entry per medication time."""

    def __init__(self):
        self._entries: dict[str, ScheduledReminder] = {}
        self._lock = threading.Lock()

    def schedule(self, medication: Medication, time_value: str) -> str | None:
        """Schedule one daily reminder. Returns its id, or `None` for a bad time."""
        parsed = parse_hhmm(time_value)
        if parsed is None:
            logger.warning(
                "Skipping reminder with invalid time=%r for medication=%s",
                time_value,
                medication.id,
            )
            return None

        entry = ScheduledReminder(
            id=uuid.uuid4().hex,
            medication_id=medication.id,
            medication_name=medication.name,
            time=f"{parsed[0]:02d}:{parsed[1]:02d}",
            title="Medication Reminder",
            body=f"Time to take {medication.name} ({medication.dosage})",
        )
        with self._lock:
            self._entries[entry.id] = entry

        logger.info(
            "Scheduled reminder id=%s medication=%s time=%s next=%s",
            entry.id,
            medication.id,
            entry.time,
            next_occurrence(entry.time),
        )
        return entry.id

    def schedule_all(self, medication: Medication) -> list[str]:
        """Schedule every reminder time of `medication`; returns the ids created."""
        ids = []
        for time_value in medication.reminder_times:
            reminder_id = self.schedule(medication, time_value)
            if reminder_id:
                ids.append(reminder_id)
        return ids

    def cancel_all(self, medication_id: str) -> int:
        """Drop all reminders for a medication; returns how many were removed."""
        with self._lock:
            doomed = [k for k, v in self._entries.items() if v.medication_id == medication_id]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def due(self, now: datetime | None = None) -> list[ScheduledReminder]:
        """Reminders whose time equals the current minute."""
        now = now or datetime.now()
        current = f"{now.hour:02d}:{now.minute:02d}"
        return [e for e in self.list() if e.time == current]

    def list(self, medication_id: str | None = None) -> list[ScheduledReminder]:
        with self._lock:
            entries = list(self._entries.values())
        if medication_id is not None:
            entries = [e for e in entries if e.medication_id == medication_id]
        return sorted(entries, key=lambda e: e.time)
