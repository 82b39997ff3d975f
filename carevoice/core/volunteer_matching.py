"""Volunteer matching over the local roster.

Matching rules:
- A volunteer matches when the need label and skill type contain one another
  (case-insensitive) or a fuzzy stem of the need maps onto the skill.
- With no match the whole roster is used.
- Results are ordered available-now first, then by distance, capped at three.
"""

from dataclasses import dataclass


MAX_MATCHES = 3

# need-label stem -> substring of the skill type it implies
FUZZY_SKILL_STEMS = (
    ("tech", "Tech"),
    ("errand", "Errands"),
    ("grocery", "Grocery"),
    ("companion", "Companionship"),
    ("repair", "Repair"),
    ("transport", "Transportation"),
    ("mobility", "Mobility"),
)


@dataclass(frozen=True)
class Volunteer:
    id: str
    name: str
    skill_type: str
    distance_miles: float
    availability: str
    rating: float

    @property
    def available_now(self) -> bool:
        return "now" in self.availability.lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "skill_type": self.skill_type,
            "distance": f"{self.distance_miles:g} mi",
            "availability": self.availability,
            "rating": self.rating,
        }


ROSTER = (
    Volunteer("1", "Sarah Johnson", "Home Repair", 0.5, "Available now", 4.9),
    Volunteer("2", "Michael Chen", "Tech Help", 1.2, "Available in 30 min", 4.8),
    Volunteer("3", "Emma Williams", "Grocery / Errands", 0.8, "Available now", 5.0),
    Volunteer("4", "David Brown", "Medical Transportation", 1.5, "Available in 1 hour", 4.7),
    Volunteer("5", "Lisa Anderson", "Companionship", 0.3, "Available now", 4.9),
)


def _skill_matches(need_label: str, volunteer: Volunteer) -> bool:
    need = need_label.lower()
    skill = volunteer.skill_type.lower()

    if not need:
        return False
    if skill in need or need in skill:
        return True

    return any(
        stem in need and fragment in volunteer.skill_type
        for stem, fragment in FUZZY_SKILL_STEMS
    )


def match_volunteers(need_label: str, roster=ROSTER, limit: int = MAX_MATCHES) -> list[Volunteer]:
    """Return up to `limit` volunteers for a need label or custom need text."""
    matched = [v for v in roster if _skill_matches(need_label or "", v)]
    if not matched:
        matched = list(roster)

    matched.sort(key=lambda v: (not v.available_now, v.distance_miles))
    return matched[:limit]
