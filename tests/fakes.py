from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx

from coping_ai.config import DEFAULT_KNOWLEDGE_PATH, Settings

EXERCISES: List[Dict[str, Any]] = [
    {
        "id": "model-chosen-id",
        "title": "5-4-3-2-1 Grounding",
        "description": "Anchor yourself in the present using your senses.",
        "category": "Grounding",
        "steps": ["Name five things you see", "Name four things you can touch"],
        "duration_minutes": 5,
    },
    {
        "title": "Belly Breathing",
        "description": "Slow diaphragmatic breaths to calm your body.",
        "category": "somatic",
        "steps": ["Place a hand on your belly", "Inhale for four, exhale for six"],
        "duration_minutes": "3 minutes",
    },
]

GEMINI_HOST = "generativelanguage.googleapis.com"
GROQ_HOST = "api.groq.com"
OLLAMA_LOCAL_HOST = "localhost"
OLLAMA_CLOUD_HOST = "ollama.com"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        gemini_api_key="server-key",
        knowledge_path=DEFAULT_KNOWLEDGE_PATH,
        sqlite_path=str(tmp_path / "interactions.sqlite3"),
    )
    values.update(overrides)
    return Settings(**values)


def gemini_reply(text: str, chunks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    candidate: Dict[str, Any] = {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
    if chunks is not None:
        candidate["groundingMetadata"] = {"groundingChunks": chunks}
    return {"candidates": [candidate]}


def groq_reply(text: str) -> Dict[str, Any]:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]}


def ollama_reply(text: str) -> Dict[str, Any]:
    return {"model": "llama3", "response": text, "done": True}


def ollama_chat_reply(text: str) -> Dict[str, Any]:
    return {"model": "gpt-oss:120b", "message": {"role": "assistant", "content": text}, "done": True}


class Upstream:
    """Fake provider endpoints: records every request and answers from ``handler``."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def to_host(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)
