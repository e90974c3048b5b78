from __future__ import annotations
import logging, time
from typing import Any, Awaitable, Optional

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import Field

from . import advisors, interaction_log
from .config import Settings, configure_logging
from .errors import InvalidRequest, ProviderError
from .models import CamelModel, ConsentLevel, ExerciseFeedback, UserProfile
from .ollama import CLOUD_PREFIX, OllamaProvider
from .orchestration import Orchestrator

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong while contacting the AI service. Please try again."


class ProviderFields(CamelModel):
    provider: Optional[str] = Field(None, description="gemini, groq or ollama; defaults to gemini")
    model: str = ""
    api_key: Optional[str] = None


class ExercisesRequest(ProviderFields):
    symptoms: str = Field(..., min_length=1)
    profile: UserProfile
    consent_level: ConsentLevel
    feedback: ExerciseFeedback = Field(default_factory=dict)
    language: str = Field(..., min_length=1)


class SuggestionRequest(ProviderFields):
    provider: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    profile: UserProfile
    language: str = Field(..., min_length=1)


class ForYouRequest(CamelModel):
    profile: UserProfile
    language: str = Field(..., min_length=1)


class JournalRequest(ProviderFields):
    entry_text: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)


class ThoughtChallengeRequest(ProviderFields):
    situation: str = Field(..., min_length=1)
    negative_thought: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)


class QuotesRequest(ProviderFields):
    provider: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    language: str = Field(..., min_length=1)


def _register_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def handle_validation(_: Request, exc: RequestValidationError):
        details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
        return JSONResponse({"error": "Invalid request", "code": "invalid_request", "details": details}, status_code=400)

    @app.exception_handler(ProviderError)
    async def handle_provider_error(_: Request, exc: ProviderError):
        logger.warning("Request failed: %s (%s)", exc.kind, exc.provider or "-")
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception):
        logger.exception("Unhandled error")
        return JSONResponse({"error": GENERIC_ERROR, "code": "internal_error"}, status_code=500)


def create_app(orchestrator: Optional[Orchestrator] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or (orchestrator.settings if orchestrator else Settings.from_env())
    configure_logging(settings.log_level)
    orch = orchestrator or Orchestrator(settings)
    db_path = settings.sqlite_path
    interaction_log.init_db(db_path)

    app = FastAPI(title="Coping AI API", version="0.1.0")
    app.state.orchestrator = orch
    _register_handlers(app)

    async def tracked(event_type: str, provider: Optional[str], call: Awaitable[Any], **meta: Any) -> Any:
        started = time.perf_counter()
        outcome = "error"
        try:
            result = await call
            outcome = "ok"
            return result
        except ProviderError as exc:
            outcome = exc.kind
            raise
        finally:
            # sqlite writes stay off the event loop
            await run_in_threadpool(
                interaction_log.record_interaction,
                event_type, outcome, db_path,
                provider=provider or settings.default_provider,
                duration_ms=int((time.perf_counter() - started) * 1000),
                metadata=meta,
            )

    @app.post("/api/exercises")
    async def exercises(req: ExercisesRequest):
        plan = await tracked(
            "exercises", req.provider,
            orch.get_personalized_exercises(
                req.provider, req.model, req.api_key, req.symptoms, req.profile,
                req.consent_level, req.feedback, req.language,
            ),
            language=req.language, consent_level=req.consent_level,
        )
        return JSONResponse(content=plan.model_dump(by_alias=True))

    @app.post("/api/suggestions")
    async def suggestions(req: SuggestionRequest):
        text = await tracked(
            "suggestion", req.provider,
            orch.get_for_you_suggestion(req.provider, req.model, req.api_key, req.profile, req.language),
            language=req.language,
        )
        return {"suggestion": text}

    @app.post("/api/foryou")
    async def for_you(req: ForYouRequest):
        text = await tracked(
            "suggestion", None,
            orch.get_for_you_suggestion(settings.default_provider, "", None, req.profile, req.language),
            language=req.language,
        )
        return {"suggestion": text}

    @app.post("/api/journal")
    async def journal(req: JournalRequest):
        analysis = await tracked(
            "journal", req.provider,
            orch.get_journal_analysis(req.provider, req.model, req.api_key, req.entry_text, req.language),
            language=req.language,
        )
        return {"analysis": analysis}

    @app.post("/api/thought-challenge")
    async def thought_challenge(req: ThoughtChallengeRequest):
        questions = await tracked(
            "thought_challenge", req.provider,
            orch.get_thought_challenge_help(
                req.provider, req.model, req.api_key, req.situation, req.negative_thought, req.language
            ),
            language=req.language,
        )
        return {"questions": questions}

    @app.post("/api/quotes")
    async def quotes(req: QuotesRequest):
        model = req.model
        if req.provider == "ollama" and model.startswith(CLOUD_PREFIX) and not (req.api_key or "").strip():
            logger.info("No key for %s; using local %s for quotes", model, settings.ollama_fallback_model)
            model = settings.ollama_fallback_model
        items = await tracked(
            "quotes", req.provider,
            orch.get_motivational_quotes(req.provider, model, req.api_key, req.language),
            language=req.language,
        )
        return {"quotes": items}

    @app.get("/api/{provider_id}/models")
    async def provider_models(
        provider_id: str,
        action: Optional[str] = Query(None, description="diagnose, setup-instructions, models, recommended-models, validate-model or fallback-suggestion"),
        language: str = Query("en"),
        api_key: Optional[str] = Query(None, alias="apiKey"),
        model: Optional[str] = Query(None),
    ):
        provider = orch.get_provider(provider_id)
        if provider is None:
            return JSONResponse({"error": f"Unknown provider: {provider_id}", "code": "not_found"}, status_code=404)
        if action == "diagnose":
            return (await advisors.diagnose(provider, language, api_key)).model_dump()
        if action == "setup-instructions":
            return {"instructions": advisors.setup_instructions(provider.provider_id, language)}
        if action == "validate-model":
            if not model:
                raise InvalidRequest("Model name is required")
            return (await provider.validate_model(model, api_key)).model_dump()
        if action in ("recommended-models", "fallback-suggestion"):
            if not isinstance(provider, OllamaProvider):
                raise InvalidRequest(f"Action '{action}' is only available for ollama")
            if action == "recommended-models":
                return {"models": [m.model_dump() for m in provider.recommended_models()]}
            return {"message": advisors.fallback_suggestion(language)}
        if action not in (None, "", "models"):
            raise InvalidRequest(f"Unknown action: {action}")
        return (await provider.list_models(api_key)).model_dump()

    @app.get("/metrics/interactions")
    def interaction_metrics(limit: int = Query(50, ge=1, le=interaction_log.MAX_EVENTS)):
        return {
            "events": interaction_log.fetch_recent(db_path, limit=limit),
            "outcomes": interaction_log.outcome_counts(db_path),
        }

    return app


app = create_app()
