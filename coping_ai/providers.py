from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from .config import Settings
from .errors import (
    AIResponseFormatError,
    MalformedProviderResponse,
    ProviderError,
    TransportUnavailable,
    classify_http_status,
)
from .models import (
    ConsentLevel,
    ExercisePlan,
    FeedbackEntry,
    KnowledgeChunk,
    ModelCatalog,
    ModelValidation,
    Source,
    UserProfile,
)
from .parsing import clean_text, extract_json_payload, parse_exercise_plan, parse_quotes
from .prompts import (
    Framing,
    Prompt,
    build_exercise_prompt,
    build_for_you_prompt,
    build_journal_prompt,
    build_quotes_prompt,
    build_thought_challenge_prompt,
)
from .retrieval import retrieve

logger = logging.getLogger(__name__)

QUOTES_SCHEMA = {"type": "ARRAY", "items": {"type": "STRING", "description": "A single motivational quote."}}


@dataclass(frozen=True)
class GenerationOptions:
    temperature: float = 0.7
    max_tokens: int = 2000
    json_mode: bool = False
    web_search: bool = False
    schema: Optional[Dict[str, Any]] = None


EXERCISE_OPTIONS = GenerationOptions(temperature=0.7, max_tokens=2000, json_mode=True, web_search=True)
JOURNAL_OPTIONS = GenerationOptions(temperature=0.7, max_tokens=400)
FOR_YOU_OPTIONS = GenerationOptions(temperature=0.8, max_tokens=150)
THOUGHT_OPTIONS = GenerationOptions(temperature=0.7, max_tokens=300)
QUOTES_OPTIONS = GenerationOptions(temperature=0.9, max_tokens=300, json_mode=True, schema=QUOTES_SCHEMA)


@dataclass
class Completion:
    text: str
    sources: List[Source] = field(default_factory=list)


class BaseProvider:
    """One LLM backend. Subclasses only know their wire format; prompting and parsing live here."""

    provider_id = ""
    display_name = ""
    exercise_framing: Framing = "object"
    detailed_prompts = False

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._transport = transport

    # --- wire -------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self.settings.http_timeout)

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, url, headers=headers, json=payload, params=params)
        except httpx.TransportError as exc:
            logger.warning("%s unreachable at %s: %s", self.display_name, url, exc.__class__.__name__)
            raise TransportUnavailable(self.display_name) from exc
        if response.is_error:
            logger.warning("%s returned HTTP %s for %s", self.display_name, response.status_code, url)
            logger.debug("%s error body: %.500s", self.display_name, response.text)
            raise self._classify(response)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedProviderResponse(self.display_name) from exc

    def _classify(self, response: httpx.Response) -> ProviderError:
        return classify_http_status(self.display_name, response.status_code)

    async def _complete(self, model: str, api_key: Optional[str], prompt: Prompt, options: GenerationOptions) -> Completion:
        raise NotImplementedError

    async def list_models(self, api_key: Optional[str] = None) -> ModelCatalog:
        raise NotImplementedError

    # --- tasks ------------------------------------------------------------

    async def personalized_exercises(
        self,
        model: str,
        api_key: Optional[str],
        symptoms: str,
        profile: UserProfile,
        consent: ConsentLevel,
        feedback: Optional[Mapping[str, FeedbackEntry]],
        language: str,
        knowledge: Sequence[KnowledgeChunk],
    ) -> ExercisePlan:
        documents = retrieve(symptoms, knowledge, top_k=5)
        prompt = build_exercise_prompt(
            symptoms, profile, consent, feedback, language, documents,
            framing=self.exercise_framing, detailed=self.detailed_prompts,
        )
        completion = await self._complete(model, api_key, prompt, EXERCISE_OPTIONS)
        payload = extract_json_payload(completion.text)
        plan = parse_exercise_plan(payload, completion.sources)
        logger.info("%s returned %d exercises and %d sources", self.display_name, len(plan.exercises), len(plan.sources))
        return plan

    async def journal_analysis(self, model: str, api_key: Optional[str], entry_text: str, language: str) -> str:
        completion = await self._complete(model, api_key, build_journal_prompt(entry_text, language), JOURNAL_OPTIONS)
        return self._require_text(completion)

    async def for_you_suggestion(
        self, model: str, api_key: Optional[str], profile: UserProfile, language: str, now: datetime
    ) -> str:
        prompt = build_for_you_prompt(profile, language, now, detailed=self.detailed_prompts)
        completion = await self._complete(model, api_key, prompt, FOR_YOU_OPTIONS)
        return self._require_text(completion)

    async def thought_challenge(
        self, model: str, api_key: Optional[str], situation: str, negative_thought: str, language: str
    ) -> str:
        prompt = build_thought_challenge_prompt(situation, negative_thought, language)
        completion = await self._complete(model, api_key, prompt, THOUGHT_OPTIONS)
        return self._require_text(completion)

    async def motivational_quotes(self, model: str, api_key: Optional[str], language: str) -> List[str]:
        completion = await self._complete(model, api_key, build_quotes_prompt(language), QUOTES_OPTIONS)
        return parse_quotes(completion.text)

    def _require_text(self, completion: Completion) -> str:
        text = clean_text(completion.text)
        if not text:
            raise AIResponseFormatError(provider=self.display_name)
        return text

    # --- catalog ----------------------------------------------------------

    def _failed_catalog(self, exc: ProviderError) -> ModelCatalog:
        return ModelCatalog(models=[], error=exc.kind, detail=exc.message)

    async def validate_model(self, model: str, api_key: Optional[str] = None) -> ModelValidation:
        catalog = await self.list_models(api_key)
        if catalog.error:
            return ModelValidation(model=model, available=False, suggestion=catalog.detail)
        available = model in catalog.models
        suggestion = None if available else f"Choose one of the {len(catalog.models)} models {self.display_name} lists."
        return ModelValidation(model=model, available=available, suggestion=suggestion)
