# shared/config.py
import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AgentSettings:
    """Runtime settings for the analysis pipeline, read from the environment"""
    tavily_api_key: Optional[str] = None
    context7_api_key: Optional[str] = None
    qa_max_iterations: int = 2
    qa_quality_threshold: int = 7
    qa_fail_open: bool = True
    model_timeout_seconds: float = 60.0
    language_model_factory: Optional[str] = None
    database_url: str = "postgresql://localhost:5432/devcontext"
    log_level: str = "INFO"
    json_logs: bool = True
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "AgentSettings":
        return cls(
            tavily_api_key=os.getenv("TAVILY_API_KEY") or None,
            context7_api_key=os.getenv("CONTEXT7_API_KEY") or None,
            qa_max_iterations=int(os.getenv("QA_MAX_ITERATIONS", "2")),
            qa_quality_threshold=int(os.getenv("QA_QUALITY_THRESHOLD", "7")),
            qa_fail_open=_env_bool("QA_FAIL_OPEN", True),
            model_timeout_seconds=float(os.getenv("MODEL_TIMEOUT_SECONDS", "60")),
            language_model_factory=os.getenv("LANGUAGE_MODEL_FACTORY") or None,
            database_url=os.getenv("DATABASE_URL", "postgresql://localhost:5432/devcontext"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=_env_bool("JSON_LOGS", True),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )

    @property
    def has_web_search(self) -> bool:
        return bool(self.tavily_api_key)

    @property
    def has_docs_lookup(self) -> bool:
        return bool(self.context7_api_key)
