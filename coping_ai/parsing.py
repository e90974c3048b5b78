"""Tolerant extraction of structured data from LLM replies.

Models wrap JSON in markdown fences, prepend reasoning ("thinking") or add a
sentence of chatter around the payload. Everything here strips that noise and
either returns clean data or raises :class:`AIResponseFormatError`.
"""
from __future__ import annotations
import json, logging, re, uuid
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from .errors import AIResponseFormatError
from .models import Exercise, ExercisePlan, Source
from .validators import normalize_category, validate_exercises

logger = logging.getLogger(__name__)

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.S | re.I)
_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?(.*?)```", re.S)
_THINKING_MEMBER = r'"thinking"\s*:\s*"(?:[^"\\]|\\.)*"'
_THINKING_TRAILING_RE = re.compile(r",\s*" + _THINKING_MEMBER)
_THINKING_LEADING_RE = re.compile(_THINKING_MEMBER + r"\s*,?\s*")
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def strip_reasoning(text: str) -> str:
    return _THINK_BLOCK_RE.sub("", text).strip()


def strip_code_fences(text: str) -> str:
    m = _FENCE_RE.search(text)
    if m:
        return m.group(1).strip()
    text = text.strip()
    if text.startswith("```"):
        # opening fence without a closing one (truncated reply)
        text = text.split("\n", 1)[1] if "\n" in text else ""
    return text.strip()


def _excise_thinking(text: str) -> str:
    if '"thinking"' not in text:
        return text
    cleaned, n = _THINKING_TRAILING_RE.subn("", text, count=1)
    if n:
        return cleaned
    return _THINKING_LEADING_RE.sub("", text, count=1)


def _from_span(text: str) -> Any:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise AIResponseFormatError()
    start = min(starts)
    end = text.rfind("}" if text[start] == "{" else "]")
    if end <= start:
        raise AIResponseFormatError()
    try:
        return json.loads(text[start:end + 1])
    except ValueError as exc:
        raise AIResponseFormatError() from exc


def extract_json_payload(text: Optional[str]) -> Any:
    if not text or not text.strip():
        raise AIResponseFormatError()
    cleaned = _excise_thinking(strip_code_fences(strip_reasoning(text)))
    try:
        payload = json.loads(cleaned)
    except ValueError:
        payload = _from_span(cleaned)
    if isinstance(payload, dict):
        payload.pop("thinking", None)
    return payload


def clean_text(text: Optional[str]) -> str:
    cleaned = strip_reasoning(text or "")
    if cleaned.startswith("```"):
        cleaned = strip_code_fences(cleaned)
    return cleaned.strip()


def _coerce_minutes(value: Any) -> Any:
    if isinstance(value, str):
        m = _NUMBER_RE.search(value)
        return m.group(0) if m else value
    return value


def _build_exercise(item: Any) -> Exercise:
    if not isinstance(item, dict):
        raise AIResponseFormatError()
    category = normalize_category(item.get("category"))
    if category is None:
        logger.warning("Unknown exercise category %r", item.get("category"))
        raise AIResponseFormatError()
    steps = item.get("steps")
    if isinstance(steps, str):
        steps = [steps]
    try:
        # model-supplied ids are never trusted
        return Exercise(
            id=str(uuid.uuid4()),
            title=item.get("title"),
            description=item.get("description") or "",
            category=category,
            steps=steps,
            duration_minutes=_coerce_minutes(item.get("duration_minutes")),
        )
    except ValidationError as exc:
        raise AIResponseFormatError() from exc


def parse_sources(raw: Iterable[Any]) -> List[Source]:
    sources: List[Source] = []
    seen = set()
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        url = entry.get("url") or entry.get("uri")
        title = entry.get("title")
        if not isinstance(url, str) or not isinstance(title, str):
            continue
        url, title = url.strip(), title.strip()
        if not url or not title or url in seen:
            continue
        seen.add(url)
        sources.append(Source(url=url, title=title))
    return sources


def parse_exercise_plan(payload: Any, grounded_sources: Optional[List[Source]] = None) -> ExercisePlan:
    """Accepts a bare exercise array or an ``{"exercises": [...], "sources": [...]}`` object."""
    if isinstance(payload, list):
        raw_items, raw_sources = payload, []
    elif isinstance(payload, dict) and isinstance(payload.get("exercises"), list):
        raw_items = payload["exercises"]
        raw_sources = payload["sources"] if isinstance(payload.get("sources"), list) else []
    else:
        raise AIResponseFormatError()
    exercises = [_build_exercise(item) for item in raw_items]
    ok, reason = validate_exercises(exercises)
    if not ok:
        logger.warning("Rejected exercise payload: %s", reason)
        raise AIResponseFormatError()
    merged = [s.model_dump() for s in grounded_sources or []] + list(raw_sources)
    return ExercisePlan(exercises=exercises, sources=parse_sources(merged))


def parse_quotes(text: Optional[str]) -> List[str]:
    try:
        payload = extract_json_payload(text)
    except AIResponseFormatError:
        logger.warning("Quote reply was not parseable JSON; returning no quotes")
        return []
    if isinstance(payload, dict):
        payload = next((v for v in payload.values() if isinstance(v, list)), [])
    if not isinstance(payload, list):
        return []
    quotes: List[str] = []
    for item in payload:
        if isinstance(item, dict):
            item = item.get("quote") or item.get("text")
        if isinstance(item, str) and item.strip() and item.strip() not in quotes:
            quotes.append(item.strip())
    return quotes
