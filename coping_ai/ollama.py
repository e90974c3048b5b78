from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from .errors import MalformedProviderResponse, MissingCredential, ProviderError, TransportUnavailable
from .models import ModelValidation, OllamaCatalog, RecommendedModel
from .prompts import Prompt
from .providers import BaseProvider, Completion, GenerationOptions

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "local:"
CLOUD_PREFIX = "cloud:"

# Ollama Cloud has no public listing endpoint for keyless callers
CLOUD_MODELS: Tuple[str, ...] = (
    "gpt-oss:20b",
    "gpt-oss:120b",
    "deepseek-v3.1:671b",
    "qwen3-coder:480b",
    "kimi-k2:1t",
)

RECOMMENDED_MODELS: Tuple[RecommendedModel, ...] = (
    RecommendedModel(name="llama3", description="Balanced general model, good default for exercises and journaling", size="4.7GB"),
    RecommendedModel(name="llama3.2:3b", description="Small and fast, fits laptops with 8GB of RAM", size="2.0GB"),
    RecommendedModel(name="mistral", description="Concise answers, follows JSON instructions well", size="4.1GB"),
    RecommendedModel(name="gemma2:2b", description="Lightweight option for low-memory machines", size="1.6GB"),
    RecommendedModel(name="qwen2.5:7b", description="Strong multilingual output for non-English users", size="4.7GB"),
)

UNREACHABLE_LOCAL = "Could not connect to Ollama. Make sure it's running and accessible at {url}."


def split_model_id(model: Optional[str]) -> Tuple[str, str]:
    """``cloud:name`` targets Ollama Cloud; ``local:name`` and bare names target the local service."""
    name = (model or "").strip()
    if name.startswith(CLOUD_PREFIX):
        return "cloud", name[len(CLOUD_PREFIX):]
    if name.startswith(LOCAL_PREFIX):
        return "local", name[len(LOCAL_PREFIX):]
    return "local", name


class OllamaProvider(BaseProvider):
    provider_id = "ollama"
    display_name = "Ollama"
    exercise_framing = "object_with_sources"

    def _options(self, options: GenerationOptions) -> Dict[str, Any]:
        return {"temperature": options.temperature, "num_predict": options.max_tokens}

    async def _complete(self, model: str, api_key: Optional[str], prompt: Prompt, options: GenerationOptions) -> Completion:
        target, name = split_model_id(model)
        name = name or self.settings.ollama_fallback_model
        if target == "cloud":
            return await self._complete_cloud(name, api_key, prompt, options)
        body: Dict[str, Any] = {
            "model": name,
            "system": prompt.system,
            "prompt": prompt.user,
            "stream": False,
            "options": self._options(options),
        }
        if options.json_mode:
            body["format"] = "json"
        url = f"{self.settings.ollama_local_url}/api/generate"
        try:
            data = await self._request("POST", url, payload=body)
        except TransportUnavailable as exc:
            raise TransportUnavailable(
                self.display_name, UNREACHABLE_LOCAL.format(url=self.settings.ollama_local_url)
            ) from exc
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise MalformedProviderResponse(self.display_name)
        return Completion(text=text)

    async def _complete_cloud(self, name: str, api_key: Optional[str], prompt: Prompt, options: GenerationOptions) -> Completion:
        key = (api_key or "").strip()
        if not key:
            raise MissingCredential("Ollama Cloud")
        body: Dict[str, Any] = {
            "model": name,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "stream": False,
            "options": self._options(options),
        }
        if options.json_mode:
            body["format"] = "json"
        data = await self._request(
            "POST", f"{self.settings.ollama_cloud_url}/api/chat",
            headers={"Authorization": f"Bearer {key}"}, payload=body,
        )
        try:
            content = data["message"]["content"]
        except (KeyError, TypeError) as exc:
            raise MalformedProviderResponse(self.display_name) from exc
        if content is not None and not isinstance(content, str):
            raise MalformedProviderResponse(self.display_name)
        return Completion(text=content or "")

    async def list_models(self, api_key: Optional[str] = None) -> OllamaCatalog:
        cloud = list(CLOUD_MODELS)
        cloud_ids = [CLOUD_PREFIX + m for m in cloud] if (api_key or "").strip() else []
        try:
            data = await self._request("GET", f"{self.settings.ollama_local_url}/api/tags")
            entries = data.get("models") if isinstance(data, dict) else None
            if not isinstance(entries, list):
                raise MalformedProviderResponse(self.display_name)
        except ProviderError as exc:
            logger.info("Ollama local models unavailable: %s", exc.kind)
            detail = exc.message
            if isinstance(exc, TransportUnavailable):
                detail = UNREACHABLE_LOCAL.format(url=self.settings.ollama_local_url)
            return OllamaCatalog(models=cloud_ids, cloud=cloud, error=exc.kind, detail=detail)
        local = sorted(e["name"] for e in entries if isinstance(e, dict) and isinstance(e.get("name"), str) and e["name"])
        return OllamaCatalog(models=[LOCAL_PREFIX + m for m in local] + cloud_ids, local=local, cloud=cloud)

    def recommended_models(self) -> List[RecommendedModel]:
        return list(RECOMMENDED_MODELS)

    async def validate_model(self, model: str, api_key: Optional[str] = None) -> ModelValidation:
        target, name = split_model_id(model)
        if target == "cloud":
            available = name in CLOUD_MODELS
            suggestion = None if available else f"Choose one of: {', '.join(CLOUD_MODELS)}."
            return ModelValidation(model=model, available=available, suggestion=suggestion)
        catalog = await self.list_models(api_key)
        if catalog.error:
            return ModelValidation(model=model, available=False, suggestion=catalog.detail)
        available = name in catalog.local or f"{name}:latest" in catalog.local
        suggestion = None if available else f"Run 'ollama pull {name}' to download this model."
        return ModelValidation(model=model, available=available, suggestion=suggestion)
