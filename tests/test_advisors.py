from __future__ import annotations

import asyncio

import httpx
import pytest

from coping_ai.advisors import diagnose, fallback_suggestion, setup_instructions, texts_for
from coping_ai.gemini import GeminiProvider
from coping_ai.groq import GroqProvider
from coping_ai.ollama import OllamaProvider
from fakes import Upstream, make_settings, unreachable


def test_setup_instructions_are_localized():
    assert setup_instructions("gemini", "es").startswith("Para usar Google Gemini")
    assert setup_instructions("gemini", "pt-PT").startswith("Para usar o Google Gemini")
    assert setup_instructions("groq", "ja") == setup_instructions("groq", "en")
    assert "500 RPM" in setup_instructions("groq", "en")


def test_unknown_provider_has_no_texts():
    with pytest.raises(KeyError):
        texts_for("claude", "en")


def test_fallback_suggestion_language():
    assert "ollama serve" in fallback_suggestion("de")
    assert fallback_suggestion(None) == fallback_suggestion("en")


def test_groq_without_key_is_a_warning(tmp_path):
    upstream = Upstream(lambda r: httpx.Response(200, json={"data": []}))
    provider = GroqProvider(make_settings(tmp_path), transport=upstream.transport)
    result = asyncio.run(diagnose(provider, "en"))
    assert result.status == "warning"
    assert any("console.groq.com/keys" in s for s in result.suggestions)
    assert upstream.requests == []


def test_groq_healthy_lists_first_three_models(tmp_path):
    listing = {"data": [{"id": f"model-{i}"} for i in range(5)]}
    provider = GroqProvider(make_settings(tmp_path), transport=Upstream(lambda r: httpx.Response(200, json=listing)).transport)
    result = asyncio.run(diagnose(provider, "en", "gsk_test"))
    assert result.status == "healthy"
    assert result.message == "Groq API is ready for fast inference"
    assert result.suggestions[0] == "Available models (5): model-0, model-1, model-2..."


def test_groq_rejected_key_is_an_error(tmp_path):
    provider = GroqProvider(make_settings(tmp_path), transport=Upstream(lambda r: httpx.Response(401, json={})).transport)
    result = asyncio.run(diagnose(provider, "en", "bad"))
    assert result.status == "error"
    assert result.suggestions[0].startswith("Check that your Groq API key")


def test_gemini_healthy_mentions_search(tmp_path):
    listing = {"models": [{"name": "models/gemini-2.5-flash", "supportedGenerationMethods": ["generateContent"]}]}
    provider = GeminiProvider(make_settings(tmp_path), transport=Upstream(lambda r: httpx.Response(200, json=listing)).transport)
    result = asyncio.run(diagnose(provider, "en"))
    assert result.status == "healthy"
    assert result.suggestions[0] == "Available models (1): gemini-2.5-flash"
    assert len(result.suggestions) == 2


def test_ollama_unreachable(tmp_path):
    provider = OllamaProvider(make_settings(tmp_path), transport=Upstream(unreachable).transport)
    result = asyncio.run(diagnose(provider, "en"))
    assert result.status == "error"
    assert result.message == "Could not connect to Ollama"
    assert result.suggestions[0].startswith("Install Ollama")


def test_ollama_running_without_models(tmp_path):
    provider = OllamaProvider(make_settings(tmp_path), transport=Upstream(lambda r: httpx.Response(200, json={"models": []})).transport)
    result = asyncio.run(diagnose(provider, "en"))
    assert result.status == "warning"
    assert any("ollama pull llama3" in s for s in result.suggestions)


def test_ollama_healthy_counts_local_models_only(tmp_path):
    tags = {"models": [{"name": "llama3:latest"}]}
    provider = OllamaProvider(make_settings(tmp_path), transport=Upstream(lambda r: httpx.Response(200, json=tags)).transport)
    result = asyncio.run(diagnose(provider, "fr", "ol-key"))
    assert result.status == "healthy"
    assert result.suggestions[0].endswith("(1): llama3:latest")
