from __future__ import annotations
import json, logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_TEXTS_PATH
from .models import Diagnosis, DiagnosisStatus, ModelCatalog, OllamaCatalog
from .providers import BaseProvider

logger = logging.getLogger(__name__)

# error kind -> (status, suggestion keys)
REMEDIATION: Dict[str, Tuple[DiagnosisStatus, Sequence[str]]] = {
    "missing_credential": ("warning", ("apikey", "account", "cloud")),
    "invalid_credential": ("error", ("invalid", "apikey")),
    "rate_limited": ("error", ("ratelimit",)),
    "transport_unavailable": ("error", ("install", "start", "connection")),
}
HEALTHY_EXTRAS: Dict[str, Sequence[str]] = {
    "gemini": ("search",),
    "groq": ("apikey", "ratelimit"),
    "ollama": ("cloud",),
}


@lru_cache(maxsize=4)
def load_texts(path: str = DEFAULT_TEXTS_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def texts_for(provider_id: str, language: Optional[str]) -> Dict[str, Any]:
    """Localized strings for a provider; regional codes use their base language, unknown ones English."""
    table = load_texts().get(provider_id)
    if table is None:
        raise KeyError(f"No advisor texts for provider {provider_id!r}")
    code = (language or "en").strip().lower().replace("_", "-")
    return table.get(code) or table.get(code.split("-")[0]) or table["en"]


def setup_instructions(provider_id: str, language: Optional[str] = "en") -> str:
    return texts_for(provider_id, language)["setup"]


def fallback_suggestion(language: Optional[str] = "en") -> str:
    return texts_for("ollama", language)["fallback"]


def _pick(suggestions: Dict[str, str], keys: Sequence[str]) -> List[str]:
    return [suggestions[k] for k in keys if k in suggestions]


def _available_line(label: str, models: Sequence[str]) -> str:
    shown = ", ".join(models[:3])
    return f"{label} ({len(models)}): {shown}{'...' if len(models) > 3 else ''}"


async def diagnose(provider: BaseProvider, language: Optional[str] = "en", api_key: Optional[str] = None) -> Diagnosis:
    texts = texts_for(provider.provider_id, language)
    suggestions = texts["suggestions"]
    catalog: ModelCatalog = await provider.list_models(api_key)
    installed = catalog.local if isinstance(catalog, OllamaCatalog) else catalog.models

    if catalog.error:
        status, keys = REMEDIATION.get(catalog.error, ("error", ("connection",)))
        logger.info("%s diagnosis: %s (%s)", provider.display_name, status, catalog.error)
        return Diagnosis(status=status, message=texts[status], suggestions=_pick(suggestions, keys))
    if not installed:
        return Diagnosis(status="warning", message=texts["warning"], suggestions=_pick(suggestions, ("pull", "models", "cloud")))
    return Diagnosis(
        status="healthy",
        message=texts["healthy"],
        suggestions=[_available_line(texts["available"], installed)] + _pick(suggestions, HEALTHY_EXTRAS.get(provider.provider_id, ())),
    )
