from __future__ import annotations
from typing import Any, Optional, Sequence, Tuple
from .errors import InvalidRequest
from .models import Exercise

CATEGORIES = {c.lower(): c for c in ("Mindfulness", "Cognitive", "Somatic", "Behavioral", "Grounding")}
UNSAFE_TERMS = ("fasting", "ice bath", "medication dose")


def normalize_category(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return CATEGORIES.get(value.strip().lower())


def validate_exercises(exercises: Sequence[Exercise]) -> Tuple[bool, str]:
    if not exercises:
        return False, "No exercises returned."
    for ex in exercises:
        if not ex.title.strip():
            return False, "Exercise without a title."
        if not ex.steps or not all(s.strip() for s in ex.steps):
            return False, f"Exercise {ex.title} has no usable steps."
        if ex.duration_minutes <= 0 or ex.duration_minutes > 240:
            return False, f"Invalid duration for exercise {ex.title}."
    # soft safety check
    for ex in exercises:
        text = f"{ex.title} {ex.description}".lower()
        if any(term in text for term in UNSAFE_TERMS):
            return False, "Potentially unsafe recommendation detected."
    return True, ""


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise InvalidRequest(f"{field} is required.")
    return value
