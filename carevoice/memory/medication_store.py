"""File-backed medication store.

Purpose of this abstraction:
    Persist the user's medications (name, dosage, frequency, daily reminder
    times) so that reminders created by voice survive restarts.

Persistence:
    A single JSON list at `MEDICATION_STORE_PATH` (default `medications.json`).
    Writes go through `atomic_json_save` (temporary file + `os.replace`).
    All access is serialized with a lock.

Failure handling:
    - Missing or unreadable files read as an empty list (logged).
    - Write failures are logged and re-raised so callers can fall back.
"""

import json
import logging
import os
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from carevoice.core.routing_types import DEFAULT_DOSAGE, DEFAULT_FREQUENCY
from carevoice.nlp.time_format import normalize_reminder_times


logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_STORE_PATH = os.getenv(
    "MEDICATION_STORE_PATH",
    os.path.join(BASE_DIR, "medications.json"),
)


@dataclass
class Medication:
    id: str
    name: str
    dosage: str = DEFAULT_DOSAGE
    frequency: str = DEFAULT_FREQUENCY
    reminder_times: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Medication":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            dosage=data.get("dosage") or DEFAULT_DOSAGE,
            frequency=data.get("frequency") or DEFAULT_FREQUENCY,
            reminder_times=normalize_reminder_times(data.get("reminder_times", [])),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def atomic_json_save(path, data):
    """Persist JSON data atomically via temporary file replacement."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


class MedicationStore:
    """CRUD over the medication JSON file."""

    def __init__(self, path: str | None = None):
        self.path = path or DEFAULT_STORE_PATH
        self._lock = threading.Lock()

    def _load(self) -> list[Medication]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except Exception:
            logger.exception("Failed to load medications from %s", self.path)
            return []

        if not isinstance(data, list):
            return []
        return [Medication.from_dict(item) for item in data if isinstance(item, dict)]

    def _write(self, medications: list[Medication]) -> None:
        try:
            atomic_json_save(self.path, [m.to_dict() for m in medications])
        except Exception:
            logger.exception("Failed to write medications to %s", self.path)
            raise

    def list(self) -> list[Medication]:
        with self._lock:
            return self._load()

    def get(self, medication_id: str) -> Medication | None:
        with self._lock:
            for medication in self._load():
                if medication.id == medication_id:
                    return medication
        return None

    def save(
        self,
        name: str,
        dosage: str | None = None,
        frequency: str | None = None,
        reminder_times=None,
    ) -> Medication:
        """Create and persist a medication. Returns the stored record."""
        if not name or not name.strip():
            raise ValueError("Medication name is required")

        now = _utc_now()
        medication = Medication(
            id=uuid.uuid4().hex,
            name=name.strip(),
            dosage=dosage or DEFAULT_DOSAGE,
            frequency=frequency or DEFAULT_FREQUENCY,
            reminder_times=normalize_reminder_times(reminder_times or []),
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            medications = self._load()
            medications.append(medication)
            self._write(medications)

        logger.info("Saved medication id=%s name=%r", medication.id, medication.name)
        return medication

    def update(self, medication_id: str, **changes) -> Medication | None:
        """Apply field changes; returns `None` for unknown ids."""
        with self._lock:
            medications = self._load()
            for index, medication in enumerate(medications):
                if medication.id != medication_id:
                    continue

                data = medication.to_dict()
                for key in ("name", "dosage", "frequency"):
                    if changes.get(key):
                        data[key] = changes[key]
                if "reminder_times" in changes:
                    data["reminder_times"] = changes["reminder_times"]
                data["updated_at"] = _utc_now()

                updated = Medication.from_dict(data)
                medications[index] = updated
                self._write(medications)
                return updated
        return None

    def delete(self, medication_id: str) -> bool:
        """Remove a medication; returns whether anything was removed."""
        with self._lock:
            medications = self._load()
            remaining = [m for m in medications if m.id != medication_id]
            if len(remaining) == len(medications):
                return False
            self._write(remaining)
        return True
