# tests/unit/infrastructure/agents/test_synthesis_agent.py
import pytest

from domain.models.agent_context import (
    CapabilityRecommendations,
    EnrichedContext,
    ResearchMode,
    TechResearchResult,
)
from domain.models.model_outputs import SynthesisDraftModel
from application.services.fallbacks import default_stack_research, derived_guidelines
from infrastructure.agents.synthesis_agent import (
    MAX_BEST_PRACTICES,
    MAX_DOCUMENTATION_HINTS,
    SynthesisAgent,
    merge_research,
)

CAPABILITIES = CapabilityRecommendations(e2e_testing="playwright", database="supabase", additional=["Vercel", "clerk"])

def make_context(entry_points=None) -> EnrichedContext:
    return EnrichedContext(
        entry_points=entry_points if entry_points is not None else ["src/app/layout.tsx"],
        key_directories={"src/app": "Routes"},
        naming_conventions="kebab-case files",
        commands={"test": "pnpm test", "lint": "pnpm lint"},
        answered_questions={"How is auth done?": "Clerk"},
        project_type="Next.js App",
    )

def make_research(technology, mode=ResearchMode.KNOWLEDGE_ONLY, practices=None, hints=None) -> TechResearchResult:
    return TechResearchResult(
        technology=technology,
        best_practices=practices if practices is not None else [f"{technology} practice"],
        anti_patterns=[f"{technology} anti-pattern"],
        testing_tips=[f"{technology} tip"],
        documentation_hints=hints if hints is not None else [f"https://docs/{technology}"],
        research_mode=mode,
    )

class TestMergeResearch:
    """Test folding per-technology research"""

    def test_empty_research_uses_defaults(self):
        assert merge_research([]) == default_stack_research()

    def test_highest_mode_wins(self):
        merged = merge_research([
            make_research("Next.js", ResearchMode.DOCS_ONLY),
            make_research("Supabase", ResearchMode.WEB_ONLY),
            make_research("Vitest", ResearchMode.KNOWLEDGE_ONLY),
        ])

        assert merged.research_mode == ResearchMode.WEB_ONLY
        assert merged.best_practices == ["Next.js practice", "Supabase practice", "Vitest practice"]
        assert merged.testing_tools == ["Next.js tip", "Supabase tip", "Vitest tip"]
        assert merged.debugging_tools == []

    def test_lists_are_capped_and_deduplicated(self):
        practices = [f"practice {i}" for i in range(8)]
        merged = merge_research([
            make_research("A", practices=practices, hints=["h1", "h2", "h3"]),
            make_research("B", practices=practices[:2] + ["extra 1", "extra 2", "extra 3"], hints=["h3", "h4", "h5", "h6"]),
        ])

        assert len(merged.best_practices) == MAX_BEST_PRACTICES
        assert merged.best_practices[-2:] == ["extra 1", "extra 2"]
        assert merged.documentation_hints == ["h1", "h2", "h3", "h4", "h5"]
        assert len(merged.documentation_hints) == MAX_DOCUMENTATION_HINTS

class TestSynthesisAgent:
    """Test phase 3 synthesis and validation"""

    @pytest.mark.asyncio
    async def test_draft_guidelines_are_cleaned(self, nextjs_scan, scripted_model):
        model = scripted_model(objects=[{
            "implementationGuidelines": [
                "Run pnpm test after changes", " ", "Run pnpm test after changes",
                "Use server components", "g3", "g4", "g5", "g6", "g7",
            ],
            "possibleMissedTechnologies": ["Redis caching"],
        }])
        research = [make_research("Next.js")]

        analysis = await SynthesisAgent(model).synthesize(make_context(), research, CAPABILITIES, nextjs_scan, "run-1")

        assert analysis.implementation_guidelines == [
            "Run pnpm test after changes", "Use server components", "g3", "g4", "g5", "g6", "g7",
        ]
        assert analysis.possible_missed_technologies == ["Redis caching"]
        assert model.object_calls[0]["schema"] is SynthesisDraftModel
        assert "Q: How is auth done?" in model.object_calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_model_failure_derives_guidelines(self, nextjs_scan, failing_model):
        context = make_context()

        analysis = await SynthesisAgent(failing_model).synthesize(context, [], CAPABILITIES, nextjs_scan)

        assert analysis.implementation_guidelines == derived_guidelines(context.commands, CAPABILITIES)
        assert analysis.possible_missed_technologies == []
        assert analysis.stack_research == default_stack_research()

    @pytest.mark.asyncio
    async def test_recommendations_are_split(self, nextjs_scan, failing_model):
        analysis = await SynthesisAgent(failing_model).synthesize(make_context(), [], CAPABILITIES, nextjs_scan)

        assert analysis.capability_recommendations.essential == ["playwright", "supabase"]
        assert analysis.capability_recommendations.recommended == ["vercel", "clerk"]

    def test_instruction_entry_points_are_filtered(self, nextjs_scan, failing_model):
        context = make_context(["Check src/app for routes", "src/app/layout.tsx", "src"])

        analysis = SynthesisAgent(failing_model).build_analysis(context, [], CAPABILITIES, nextjs_scan, ["Run tests"], [])

        assert analysis.project_context.entry_points == ["src/app/layout.tsx"]

    def test_no_valid_entry_points_uses_manifest(self, nextjs_scan, failing_model):
        context = make_context(["Look at the app folder"])

        analysis = SynthesisAgent(failing_model).build_analysis(context, [], CAPABILITIES, nextjs_scan, ["Run tests"], [])

        assert analysis.project_context.entry_points == ["src/index.ts"]
        assert analysis.project_context.key_directories == {"src/app": "Routes"}
        assert analysis.commands == {"test": "pnpm test", "lint": "pnpm lint"}
