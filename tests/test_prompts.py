from __future__ import annotations

from datetime import datetime

import pytest

from coping_ai.models import FeedbackEntry, UserProfile
from coping_ai.privacy import gate_profile
from coping_ai.prompts import (
    build_exercise_prompt,
    build_for_you_prompt,
    build_journal_prompt,
    build_quotes_prompt,
    build_thought_challenge_prompt,
    language_name,
    time_of_day,
)

FULL_PROFILE = UserProfile(
    age=73,
    location="Reykjavik",
    sleep_hours=4.5,
    caffeine_intake="high",
    work_environment="student",
    access_to_nature="limited",
    activity_level="sedentary",
    coping_styles="juggling oranges",
    learning_modality="kinesthetic",
    diagnosed_disorders="XYZ-disorder",
)
PRIVATE_VALUES = ["73", "Reykjavik", "4.5", "juggling oranges", "XYZ-disorder", "kinesthetic"]
DOCS = ["Grounding techniques reconnect you with the present.", "Belly breathing calms the body."]


def _system(consent, feedback=None, **kwargs):
    return build_exercise_prompt("racing heart", FULL_PROFILE, consent, feedback, "en", DOCS, **kwargs).system


def test_essential_consent_never_leaks_profile_data():
    for detailed in (True, False):
        system = _system("essential", detailed=detailed)
        assert "PERSONALIZATION CONTEXT" not in system
        for value in PRIVATE_VALUES:
            assert value not in system, f"{value!r} leaked under essential consent"


def test_enhanced_consent_withholds_diagnoses():
    system = _system("enhanced")
    assert "PERSONALIZATION CONTEXT" in system
    assert "- Age: 73." in system
    assert "Reykjavik" in system
    assert "XYZ-disorder" not in system


def test_complete_consent_includes_diagnoses():
    assert '- Diagnosed Conditions: "XYZ-disorder"' in _system("complete")


def test_gate_profile_returns_copy():
    gated = gate_profile(FULL_PROFILE, "essential")
    assert gated.model_dump(exclude_none=True) == {}
    assert FULL_PROFILE.age == 73


def test_sedentary_users_are_kept_still_in_both_forms():
    assert "Avoid suggesting significant physical movement." in _system("enhanced", detailed=True)
    assert "avoid significant physical movement" in _system("enhanced", detailed=False)


def test_feedback_section_omitted_when_no_strong_ratings():
    feedback = {"a": FeedbackEntry(rating=3, title="Body Scan")}
    system = _system("essential", feedback)
    assert "EXERCISE FEEDBACK" not in system
    assert "Body Scan" not in system


def test_feedback_partitions_titles():
    feedback = {
        "a": FeedbackEntry(rating=5, title="Box Breathing"),
        "b": FeedbackEntry(rating=4, title="Mindful Walk"),
        "c": FeedbackEntry(rating=1, title="Cold Shower"),
        "d": FeedbackEntry(rating=3, title="Neutral One"),
    }
    system = _system("essential", feedback)
    assert 'helpful (rated 4-5 stars): "Box Breathing", "Mindful Walk"' in system
    assert 'NOT helpful (rated 1-2 stars): "Cold Shower"' in system
    assert "Neutral One" not in system


def test_documents_and_framing():
    prompt = build_exercise_prompt("racing heart", UserProfile(), "essential", {}, "es", DOCS, framing="array")
    assert "--- RETRIEVED KNOWLEDGE BASE DOCUMENTS ---" in prompt.system
    assert f"Document 1:\n{DOCS[0]}" in prompt.system
    assert f"Document 2:\n{DOCS[1]}" in prompt.system
    assert "valid JSON array" in prompt.system
    assert "Google Search" in prompt.system
    assert "Your response MUST be in the following language: Spanish." in prompt.system
    assert prompt.user == 'Generate coping exercises for the following symptoms: "racing heart"'

    obj = build_exercise_prompt("x", UserProfile(), "essential", {}, "en", [], framing="object_with_sources").system
    assert '"exercises": [' in obj and '"sources": [' in obj
    assert "{{" not in obj


@pytest.mark.parametrize("code,name", [
    ("en", "English"), ("es", "Spanish"), ("pt-pt", "Portuguese"), ("pt_BR", "Portuguese"),
    ("DE", "German"), ("fr-CA", "French"), ("Italiano", "Italiano"),
])
def test_language_codes_become_names(code, name):
    assert language_name(code) == name


@pytest.mark.parametrize("hour,minute,bucket", [
    (0, 0, "morning"), (11, 59, "morning"), (12, 0, "afternoon"),
    (16, 59, "afternoon"), (17, 0, "evening"), (23, 59, "evening"),
])
def test_time_of_day_buckets(hour, minute, bucket):
    assert time_of_day(datetime(2026, 3, 1, hour, minute)) == bucket


def test_for_you_prompt_uses_clock_and_profile():
    profile = UserProfile(work_environment="remote", access_to_nature="yes", coping_styles="music")
    system = build_for_you_prompt(profile, "fr", datetime(2026, 3, 1, 21, 0)).system
    assert "- Current time of day: evening." in system
    assert "break from their screen" in system
    assert "access to nature" in system
    assert '"music"' in system
    assert "French" in system

    no_nature = build_for_you_prompt(UserProfile(access_to_nature="limited"), "en", datetime(2026, 3, 1, 8, 0)).system
    assert "access to nature" not in no_nature
    assert "- Current time of day: morning." in no_nature


def test_text_task_prompts():
    journal = build_journal_prompt("Today was heavy.", "de")
    assert "under 150 words" in journal.system and "German" in journal.system
    assert journal.user == 'Please analyze the following journal entry: "Today was heavy."'

    thought = build_thought_challenge_prompt("Missed a deadline", "I always fail", "en")
    assert "2-3 open-ended questions" in thought.system
    assert 'Negative Thought: "I always fail"' in thought.user

    quotes = build_quotes_prompt("pt")
    assert "JSON array of 3-5 unique strings" in quotes.system
    assert "Portuguese" in quotes.system
