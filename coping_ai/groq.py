from __future__ import annotations
import logging
from typing import Dict, Optional

from .errors import MalformedProviderResponse, MissingCredential, ProviderError
from .models import ModelCatalog
from .prompts import Prompt
from .providers import BaseProvider, Completion, GenerationOptions

logger = logging.getLogger(__name__)


class GroqProvider(BaseProvider):
    provider_id = "groq"
    display_name = "Groq"
    exercise_framing = "object"

    def _headers(self, api_key: Optional[str]) -> Dict[str, str]:
        key = (api_key or "").strip()
        if not key:
            raise MissingCredential(self.display_name)
        return {"Authorization": f"Bearer {key}"}

    async def _complete(self, model: str, api_key: Optional[str], prompt: Prompt, options: GenerationOptions) -> Completion:
        headers = self._headers(api_key)
        body = {
            "model": model or self.settings.groq_model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "stream": False,
        }
        data = await self._request("POST", f"{self.settings.groq_base_url}/chat/completions", headers=headers, payload=body)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise MalformedProviderResponse(self.display_name) from exc
        if content is not None and not isinstance(content, str):
            raise MalformedProviderResponse(self.display_name)
        return Completion(text=content or "")

    async def list_models(self, api_key: Optional[str] = None) -> ModelCatalog:
        if not (api_key or "").strip():
            return ModelCatalog(error="missing_credential", detail="API key required to fetch available models")
        try:
            data = await self._request("GET", f"{self.settings.groq_base_url}/models", headers=self._headers(api_key))
            entries = data.get("data") if isinstance(data, dict) else None
            if not isinstance(entries, list):
                raise MalformedProviderResponse(self.display_name)
        except ProviderError as exc:
            return self._failed_catalog(exc)
        models = [e["id"] for e in entries if isinstance(e, dict) and isinstance(e.get("id"), str) and e["id"]]
        if not models:
            logger.info("Groq returned an empty model list")
        return ModelCatalog(models=models)
