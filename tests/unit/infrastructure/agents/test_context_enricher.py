# tests/unit/infrastructure/agents/test_context_enricher.py
import json
import pytest

from domain.models.agent_context import AnalysisPlan, Complexity
from domain.models.stack import ScanResult, StackSummary
from application.services.fallbacks import default_enriched_context
from infrastructure.agents.context_enricher import ContextEnricher, parse_enriched_context
from infrastructure.llm.language_model import StepResult, TextGeneration, ToolCall

ENRICHED_JSON = {
    "entryPoints": ["src/app/layout.tsx", "src/middleware.ts"],
    "keyDirectories": {"src/app": "App Router routes", "src/lib": "Shared helpers"},
    "namingConventions": "kebab-case files, PascalCase components",
    "commands": {"test": "pnpm test", "e2e": "pnpm exec playwright test"},
    "answeredQuestions": {"How is auth done?": "Clerk middleware"},
    "projectType": "Next.js App",
}

@pytest.fixture
def plan():
    return AnalysisPlan(
        areas_to_explore=["src/app/"],
        technologies_to_research=["Next.js"],
        questions_to_answer=["How is auth done?"],
        estimated_complexity=Complexity.LOW,
    )

class ToolHungryModel:
    """Calls a tool on every step while any are offered, answers only without tools"""

    def __init__(self):
        self.calls = []

    async def generate_text(self, system, prompt, tools=None, max_steps=1,
                            max_output_tokens=None, temperature=None):
        self.calls.append({"prompt": prompt, "tools": tools, "max_steps": max_steps})
        if not tools:
            return TextGeneration(text=json.dumps({"entryPoints": ["src/main.ts"]}))
        read_file = next(tool for tool in tools if tool.name == "read_file")
        steps = []
        for _ in range(max_steps):
            arguments = {"path": "src/main.ts"}
            result = await read_file.invoke(arguments)
            steps.append(StepResult(text="", tool_calls=[ToolCall("read_file", arguments, result)]))
        return TextGeneration(text="", steps=steps)

class TestContextEnricher:
    """Test tool-driven repository exploration"""

    @pytest.mark.asyncio
    async def test_enrich_parses_final_json(self, plan, nextjs_scan, scripted_model):
        model = scripted_model(texts=["Exploration done.\n```json\n" + json.dumps(ENRICHED_JSON) + "\n```"])

        context = await ContextEnricher(model).enrich(plan, nextjs_scan, run_id="run-1")

        assert context.entry_points == ["src/app/layout.tsx", "src/middleware.ts"]
        assert context.answered_questions == {"How is auth done?": "Clerk middleware"}
        assert context.commands["e2e"] == "pnpm exec playwright test"
        assert context.project_type == "Next.js App"

    @pytest.mark.asyncio
    async def test_call_is_budgeted(self, plan, nextjs_scan, scripted_model):
        """Test the exploration call carries the tool budget for the plan's complexity"""
        model = scripted_model(texts=[json.dumps(ENRICHED_JSON)])

        await ContextEnricher(model).enrich(plan, nextjs_scan)

        call = model.text_calls[0]
        assert call["max_steps"] == 10
        assert call["max_output_tokens"] == 2500
        assert [tool.name for tool in call["tools"]] == [
            "list_directory", "read_file", "search_code", "get_package_info"
        ]
        assert "- How is auth done?" in call["prompt"]

    @pytest.mark.asyncio
    async def test_uses_last_step_text_when_final_text_empty(self, plan, nextjs_scan, scripted_model):
        generation = TextGeneration(
            text="",
            steps=[StepResult(text='{"entryPoints": ["src/server.ts"]}'), StepResult(text="")],
        )
        model = scripted_model(texts=[generation])

        context = await ContextEnricher(model).enrich(plan, nextjs_scan)

        assert context.entry_points == ["src/server.ts"]
        assert context.project_type == "Next.js App"

    @pytest.mark.asyncio
    async def test_unparseable_output_uses_fallback(self, plan, nextjs_scan, scripted_model):
        model = scripted_model(texts=["I could not finish exploring."])

        context = await ContextEnricher(model).enrich(plan, nextjs_scan)

        assert context == default_enriched_context(nextjs_scan)

    @pytest.mark.asyncio
    async def test_spent_budget_forces_tool_less_answer(self, plan, tmp_path):
        """Test a model that never stops calling tools still gets to answer"""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.ts").write_text("export const start = () => {}\n")
        scan = ScanResult(project_root=str(tmp_path), stack=StackSummary())
        model = ToolHungryModel()

        context = await ContextEnricher(model).enrich(plan, scan)

        assert context.entry_points == ["src/main.ts"]
        assert len(model.calls) == 2
        final_call = model.calls[1]
        assert final_call["tools"] is None
        assert final_call["max_steps"] == 1
        assert "export const start" in final_call["prompt"]
        assert "Tool budget exhausted" in final_call["prompt"]

    @pytest.mark.asyncio
    async def test_unspent_budget_gets_no_extra_call(self, plan, nextjs_scan, scripted_model):
        model = scripted_model(texts=["still thinking", json.dumps(ENRICHED_JSON)])

        context = await ContextEnricher(model).enrich(plan, nextjs_scan)

        assert context == default_enriched_context(nextjs_scan)
        assert len(model.text_calls) == 1

    @pytest.mark.asyncio
    async def test_model_failure_uses_fallback(self, plan, nextjs_scan, failing_model):
        context = await ContextEnricher(failing_model).enrich(plan, nextjs_scan)

        assert context == default_enriched_context(nextjs_scan)

class TestParseEnrichedContext:
    def test_missing_fields_come_from_fallback(self, nextjs_scan):
        fallback = default_enriched_context(nextjs_scan)

        context = parse_enriched_context({"namingConventions": "snake_case", "commands": "npm test"}, fallback)

        assert context.naming_conventions == "snake_case"
        assert context.entry_points == fallback.entry_points
        assert context.commands == fallback.commands
        assert context.key_directories == fallback.key_directories
        assert context.answered_questions == {}
