from __future__ import annotations
from typing import Any, Dict, List, Optional

import httpx

from .errors import InvalidCredential, MalformedProviderResponse, MissingCredential, ProviderError
from .models import ModelCatalog, Source
from .parsing import parse_sources
from .prompts import Prompt
from .providers import BaseProvider, Completion, GenerationOptions


class GeminiProvider(BaseProvider):
    """Google Gemini over the generateContent REST API, with Google Search grounding for exercises."""

    provider_id = "gemini"
    display_name = "Gemini"
    exercise_framing = "array"
    detailed_prompts = True

    def _resolve_model(self, model: Optional[str]) -> str:
        name = (model or "").strip()
        if name.startswith("models/"):
            name = name[len("models/"):]
        # ids meant for other providers land here on fallback
        return name if name.startswith("gemini") else self.settings.gemini_model

    def _resolve_key(self, api_key: Optional[str]) -> str:
        key = (api_key or "").strip() or self.settings.gemini_api_key
        if not key:
            raise MissingCredential(self.display_name)
        return key

    def _classify(self, response: httpx.Response) -> ProviderError:
        # Gemini reports a bad key as 400 INVALID_ARGUMENT
        if response.status_code == 400 and "API_KEY_INVALID" in response.text:
            return InvalidCredential(self.display_name)
        return super()._classify(response)

    async def _complete(self, model: str, api_key: Optional[str], prompt: Prompt, options: GenerationOptions) -> Completion:
        key = self._resolve_key(api_key)
        config: Dict[str, Any] = {"temperature": options.temperature}
        body: Dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": prompt.system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt.user}]}],
            "generationConfig": config,
        }
        if options.web_search:
            # search grounding cannot be combined with a JSON response mime type
            body["tools"] = [{"google_search": {}}]
        elif options.json_mode:
            config["responseMimeType"] = "application/json"
            if options.schema:
                config["responseSchema"] = options.schema
        url = f"{self.settings.gemini_base_url}/models/{self._resolve_model(model)}:generateContent"
        data = await self._request("POST", url, headers={"x-goog-api-key": key}, payload=body)
        candidate = self._first_candidate(data)
        return Completion(text=self._candidate_text(candidate), sources=self._grounding_sources(candidate))

    def _first_candidate(self, data: Any) -> Dict[str, Any]:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates or not isinstance(candidates[0], dict):
            raise MalformedProviderResponse(self.display_name)
        return candidates[0]

    def _candidate_text(self, candidate: Dict[str, Any]) -> str:
        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise MalformedProviderResponse(self.display_name)
        texts = [
            p["text"] for p in parts
            if isinstance(p, dict) and isinstance(p.get("text"), str) and not p.get("thought")
        ]
        if not texts:
            raise MalformedProviderResponse(self.display_name)
        return "".join(texts)

    def _grounding_sources(self, candidate: Dict[str, Any]) -> List[Source]:
        metadata = candidate.get("groundingMetadata")
        chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
        if not isinstance(chunks, list):
            return []
        web = [c["web"] for c in chunks if isinstance(c, dict) and isinstance(c.get("web"), dict)]
        return parse_sources({"url": w.get("uri"), "title": w.get("title")} for w in web)

    async def list_models(self, api_key: Optional[str] = None) -> ModelCatalog:
        try:
            key = self._resolve_key(api_key)
            data = await self._request(
                "GET", f"{self.settings.gemini_base_url}/models",
                headers={"x-goog-api-key": key}, params={"pageSize": 200},
            )
            if not isinstance(data, dict) or not isinstance(data.get("models", []), list):
                raise MalformedProviderResponse(self.display_name)
        except ProviderError as exc:
            return self._failed_catalog(exc)
        models = [
            m["name"].split("/", 1)[-1]
            for m in data.get("models", [])
            if isinstance(m, dict) and isinstance(m.get("name"), str)
            and isinstance(m.get("supportedGenerationMethods"), list)
            and "generateContent" in m["supportedGenerationMethods"]
        ]
        return ModelCatalog(models=models)
