from __future__ import annotations
import logging, os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

PACKAGE_DIR = os.path.dirname(__file__)
DEFAULT_KNOWLEDGE_PATH = os.path.join(PACKAGE_DIR, "data", "knowledge_base.json")
DEFAULT_TEXTS_PATH = os.path.join(PACKAGE_DIR, "data", "advisor_texts.json")


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    default_provider: str = Field("gemini", description="Provider used for unknown ids and as the fallback target")
    gemini_api_key: Optional[str] = Field(None, description="Server-side Gemini key used when the caller sends none")
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.3-70b-versatile"
    ollama_local_url: str = "http://localhost:11434"
    ollama_cloud_url: str = "https://ollama.com"
    ollama_fallback_model: str = Field("llama3", description="Local model substituted for keyless cloud quote requests")
    http_timeout: float = Field(60.0, gt=0, description="Seconds before an outbound provider call is abandoned")
    knowledge_path: str = DEFAULT_KNOWLEDGE_PATH
    sqlite_path: str = "coping_interactions.sqlite3"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        env = os.environ
        return cls(
            default_provider=env.get("CA_DEFAULT_PROVIDER", "gemini"),
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            gemini_model=env.get("CA_GEMINI_MODEL", "gemini-2.5-flash"),
            gemini_base_url=env.get("CA_GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
            groq_base_url=env.get("CA_GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
            groq_model=env.get("CA_GROQ_MODEL", "llama-3.3-70b-versatile"),
            ollama_local_url=env.get("CA_OLLAMA_LOCAL_URL", "http://localhost:11434"),
            ollama_cloud_url=env.get("CA_OLLAMA_CLOUD_URL", "https://ollama.com"),
            ollama_fallback_model=env.get("CA_OLLAMA_FALLBACK_MODEL", "llama3"),
            http_timeout=float(env.get("CA_HTTP_TIMEOUT", "60")),
            knowledge_path=env.get("CA_KNOWLEDGE_PATH", DEFAULT_KNOWLEDGE_PATH),
            sqlite_path=env.get("CA_SQLITE_PATH", "coping_interactions.sqlite3"),
            log_level=env.get("CA_LOG_LEVEL", "INFO"),
        )


def logging_opted_out() -> bool:
    return _env_flag("CA_LOGGING_OPTOUT")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
