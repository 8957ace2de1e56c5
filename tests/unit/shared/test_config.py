# tests/unit/shared/test_config.py
from shared.config import AgentSettings

class TestAgentSettings:
    """Test environment-driven settings"""

    def test_defaults(self, monkeypatch):
        for name in ("TAVILY_API_KEY", "CONTEXT7_API_KEY", "QA_MAX_ITERATIONS", "QA_FAIL_OPEN", "LANGUAGE_MODEL_FACTORY"):
            monkeypatch.delenv(name, raising=False)

        settings = AgentSettings.from_env()

        assert settings.qa_max_iterations == 2
        assert settings.qa_quality_threshold == 7
        assert settings.qa_fail_open is True
        assert settings.language_model_factory is None
        assert not settings.has_web_search
        assert not settings.has_docs_lookup

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TAVILY_API_KEY", "tvly-key")
        monkeypatch.setenv("CONTEXT7_API_KEY", "")
        monkeypatch.setenv("QA_MAX_ITERATIONS", "1")
        monkeypatch.setenv("QA_FAIL_OPEN", "false")
        monkeypatch.setenv("MODEL_TIMEOUT_SECONDS", "12.5")

        settings = AgentSettings.from_env()

        assert settings.has_web_search
        assert settings.context7_api_key is None
        assert not settings.has_docs_lookup
        assert settings.qa_max_iterations == 1
        assert settings.qa_fail_open is False
        assert settings.model_timeout_seconds == 12.5
