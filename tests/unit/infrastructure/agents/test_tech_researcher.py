# tests/unit/infrastructure/agents/test_tech_researcher.py
import json
import pytest

from domain.models.agent_context import AgentCapabilities, Complexity, ResearchMode
from infrastructure.agents.tech_researcher import (
    DEFAULT_BEST_PRACTICES,
    DOCUMENTATION_HINTS,
    RESEARCH_PROMPTS,
    TechResearcher,
    TechResearchPool,
    default_tech_research,
    get_documentation_hints,
)

class TestDocumentationHints:
    """Test documentation link lookup by technology name"""

    def test_exact_match(self):
        assert get_documentation_hints("Next.js") == list(DOCUMENTATION_HINTS["Next.js"])

    def test_versioned_name_matches_base_key(self):
        assert get_documentation_hints("next.js 14") == list(DOCUMENTATION_HINTS["Next.js"])

    def test_case_insensitive_exact(self):
        assert get_documentation_hints("prisma") == list(DOCUMENTATION_HINTS["Prisma"])

    def test_longest_key_wins(self):
        assert get_documentation_hints("mcp server sdk") == list(DOCUMENTATION_HINTS["MCP Server"])

    def test_unknown_technology(self):
        assert get_documentation_hints("Zig") == ["Check official Zig documentation"]

    def test_custom_table(self):
        hints = {"Hapi": ("https://hapi.dev/api",)}
        assert get_documentation_hints("hapi 21", hints) == ["https://hapi.dev/api"]
        assert get_documentation_hints("Next.js", hints) == ["Check official Next.js documentation"]

class TestTechResearcher:
    """Test single-technology research"""

    @pytest.mark.asyncio
    async def test_parses_and_caps_findings(self, scripted_model):
        model = scripted_model(texts=[json.dumps({
            "technology": "Vitest",
            "bestPractices": ["Use vi.mock", "Prefer in-source tests", "a", "b", "c", "d", "e"],
            "antiPatterns": ["Don't share state between tests"],
            "testingTips": ["Use --coverage"],
            "documentationHints": [],
        })])

        result = await TechResearcher(model, ResearchMode.KNOWLEDGE_ONLY).research("Vitest", run_id="run-1")

        assert result.technology == "Vitest"
        assert len(result.best_practices) == 5
        assert result.anti_patterns == ["Don't share state between tests"]
        assert result.documentation_hints == list(DOCUMENTATION_HINTS["Vitest"])
        assert result.research_mode == ResearchMode.KNOWLEDGE_ONLY

        call = model.text_calls[0]
        assert call["tools"] is None
        assert call["max_steps"] == 1
        assert call["system"] == RESEARCH_PROMPTS[ResearchMode.KNOWLEDGE_ONLY]

    @pytest.mark.asyncio
    async def test_model_failure_returns_defaults_with_hints(self, failing_model):
        result = await TechResearcher(failing_model, ResearchMode.WEB_ONLY).research("Supabase")

        assert result == default_tech_research("Supabase", ResearchMode.WEB_ONLY)
        assert result.best_practices == list(DEFAULT_BEST_PRACTICES)
        assert result.documentation_hints == list(DOCUMENTATION_HINTS["Supabase"])

    @pytest.mark.asyncio
    async def test_unparseable_output_returns_defaults(self, scripted_model):
        model = scripted_model(texts=["Next.js is a React framework."])

        result = await TechResearcher(model, ResearchMode.KNOWLEDGE_ONLY).research("Next.js")

        assert result == default_tech_research("Next.js", ResearchMode.KNOWLEDGE_ONLY)

class TestTechResearchPool:
    """Test research mode selection and fan-out"""

    def test_knowledge_only_without_keys(self, failing_model):
        pool = TechResearchPool(failing_model, AgentCapabilities())

        assert pool.mode == ResearchMode.KNOWLEDGE_ONLY
        assert pool.researcher.tools == []

    def test_full_mode_builds_all_tools(self, failing_model):
        pool = TechResearchPool(
            failing_model,
            AgentCapabilities(has_web_search=True, has_docs_lookup=True),
            tavily_api_key="tvly-test",
            context7_api_key="ctx7-test",
        )

        assert pool.mode == ResearchMode.FULL
        assert [tool.name for tool in pool.researcher.tools] == ["web_search", "resolve_library_id", "query_docs"]

    @pytest.mark.asyncio
    async def test_tools_raise_step_budget(self, scripted_model):
        model = scripted_model(texts=['{"bestPractices": ["Use RLS"]}'])
        pool = TechResearchPool(model, AgentCapabilities(has_web_search=True), tavily_api_key="tvly-test")

        await pool.run(["Supabase"], Complexity.HIGH)

        assert pool.mode == ResearchMode.WEB_ONLY
        assert model.text_calls[0]["max_steps"] == 4
        assert [tool.name for tool in model.text_calls[0]["tools"]] == ["web_search"]

    @pytest.mark.asyncio
    async def test_run_returns_one_result_per_technology(self, failing_model):
        pool = TechResearchPool(failing_model, AgentCapabilities())

        results = await pool.run(["Next.js", "Supabase", "Vitest"])

        assert [r.technology for r in results] == ["Next.js", "Supabase", "Vitest"]
        assert failing_model.calls == 3

    @pytest.mark.asyncio
    async def test_run_drops_researchers_that_raise(self, failing_model, monkeypatch):
        pool = TechResearchPool(failing_model, AgentCapabilities())
        original = pool.researcher.research

        async def research(technology, complexity=Complexity.MEDIUM, run_id=None):
            if technology == "Supabase":
                raise RuntimeError("researcher crashed")
            return await original(technology, complexity, run_id)

        monkeypatch.setattr(pool.researcher, "research", research)

        results = await pool.run(["Next.js", "Supabase", "Vitest"])

        assert [r.technology for r in results] == ["Next.js", "Vitest"]
