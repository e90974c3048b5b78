from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Type

import httpx

from .config import Settings
from .errors import InvalidRequest, ProviderError
from .gemini import GeminiProvider
from .groq import GroqProvider
from .models import ConsentLevel, ExercisePlan, FeedbackEntry, KnowledgeChunk, UserProfile
from .ollama import OllamaProvider
from .providers import BaseProvider
from .retrieval import load_knowledge_base
from .validators import require_text

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[str, Type[BaseProvider]] = {
    "gemini": GeminiProvider,
    "groq": GroqProvider,
    "ollama": OllamaProvider,
}

TaskCall = Callable[[BaseProvider, str, Optional[str]], Awaitable[Any]]


def build_providers(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, BaseProvider]:
    return {pid: cls(settings, transport=transport) for pid, cls in PROVIDER_CLASSES.items()}


class Orchestrator:
    """Routes each task to the provider the caller picked.

    Unknown provider ids go to the default provider. Exercises and quotes get one
    retry against the default provider when a non-default provider fails; the
    other tasks surface the error as-is.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        providers: Optional[Mapping[str, BaseProvider]] = None,
        knowledge: Optional[Sequence[KnowledgeChunk]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.providers = dict(providers) if providers is not None else build_providers(self.settings, transport)
        if self.settings.default_provider not in self.providers:
            raise ValueError(f"Default provider {self.settings.default_provider!r} is not registered")
        self.knowledge: List[KnowledgeChunk] = (
            list(knowledge) if knowledge is not None else load_knowledge_base(self.settings.knowledge_path)
        )
        self.clock = clock or datetime.now

    @property
    def default_provider(self) -> BaseProvider:
        return self.providers[self.settings.default_provider]

    def get_provider(self, provider_id: Optional[str]) -> Optional[BaseProvider]:
        return self.providers.get((provider_id or "").strip().lower())

    def resolve(self, provider_id: Optional[str]) -> BaseProvider:
        if not (provider_id or "").strip():
            return self.default_provider
        provider = self.get_provider(provider_id)
        if provider is None:
            logger.warning("Unknown provider %r; routing to %s", provider_id, self.settings.default_provider)
            return self.default_provider
        return provider

    def _default_model(self) -> str:
        return {
            "gemini": self.settings.gemini_model,
            "groq": self.settings.groq_model,
            "ollama": self.settings.ollama_fallback_model,
        }.get(self.settings.default_provider, "")

    async def _with_fallback(self, task: str, provider_id: Optional[str], model: str, api_key: Optional[str], call: TaskCall) -> Any:
        provider = self.resolve(provider_id)
        try:
            return await call(provider, model, api_key)
        except InvalidRequest:
            raise
        except Exception as exc:
            fallback = self.default_provider
            if provider is fallback:
                raise
            kind = exc.kind if isinstance(exc, ProviderError) else exc.__class__.__name__
            logger.warning(
                "%s failed on %s (%s); retrying once with %s",
                provider.display_name, task, kind, fallback.display_name,
                exc_info=not isinstance(exc, ProviderError),
            )
            # the caller's key belongs to the failed provider
            return await call(fallback, self._default_model(), None)

    async def get_personalized_exercises(
        self,
        provider_id: Optional[str],
        model: str,
        api_key: Optional[str],
        symptoms: str,
        profile: UserProfile,
        consent_level: ConsentLevel,
        feedback: Optional[Mapping[str, FeedbackEntry]],
        language: str,
    ) -> ExercisePlan:
        require_text(symptoms, "symptoms")
        return await self._with_fallback(
            "exercises", provider_id, model, api_key,
            lambda p, m, k: p.personalized_exercises(m, k, symptoms, profile, consent_level, feedback, language, self.knowledge),
        )

    async def get_journal_analysis(self, provider_id: Optional[str], model: str, api_key: Optional[str], entry_text: str, language: str) -> str:
        require_text(entry_text, "entryText")
        return await self.resolve(provider_id).journal_analysis(model, api_key, entry_text, language)

    async def get_for_you_suggestion(
        self, provider_id: Optional[str], model: str, api_key: Optional[str], profile: UserProfile, language: str
    ) -> str:
        return await self.resolve(provider_id).for_you_suggestion(model, api_key, profile, language, self.clock())

    async def get_thought_challenge_help(
        self,
        provider_id: Optional[str],
        model: str,
        api_key: Optional[str],
        situation: str,
        negative_thought: str,
        language: str,
    ) -> str:
        require_text(situation, "situation")
        require_text(negative_thought, "negativeThought")
        return await self.resolve(provider_id).thought_challenge(model, api_key, situation, negative_thought, language)

    async def get_motivational_quotes(self, provider_id: Optional[str], model: str, api_key: Optional[str], language: str) -> List[str]:
        return await self._with_fallback(
            "quotes", provider_id, model, api_key,
            lambda p, m, k: p.motivational_quotes(m, k, language),
        )
