from __future__ import annotations
from typing import Any, Dict, FrozenSet

from .config import logging_opted_out
from .models import ConsentLevel, UserProfile

ENHANCED_FIELDS: FrozenSet[str] = frozenset({
    "age",
    "location",
    "sleep_hours",
    "caffeine_intake",
    "work_environment",
    "access_to_nature",
    "activity_level",
    "coping_styles",
    "learning_modality",
})

CONSENT_FIELDS: Dict[str, FrozenSet[str]] = {
    "essential": frozenset(),
    "enhanced": ENHANCED_FIELDS,
    "complete": ENHANCED_FIELDS | {"diagnosed_disorders"},
}

# Keys allowed into the anonymous interaction log; everything else is dropped.
_SAFE_METADATA_KEYS = {"provider", "model", "language", "consent_level", "exercise_count", "quote_count", "fallback"}


def permitted_fields(consent: ConsentLevel) -> FrozenSet[str]:
    return CONSENT_FIELDS.get(consent, frozenset())


def gate_profile(profile: UserProfile, consent: ConsentLevel) -> UserProfile:
    """Return a copy of ``profile`` holding only the fields ``consent`` releases."""
    allowed = permitted_fields(consent)
    kept = {k: v for k, v in profile.model_dump().items() if k in allowed}
    return UserProfile(**kept)


def should_log() -> bool:
    return not logging_opted_out()


def sanitize_metadata(meta: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in meta.items() if k in _SAFE_METADATA_KEYS and v is not None}
