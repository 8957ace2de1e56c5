# infrastructure/agents/synthesis_agent.py
from datetime import datetime
from typing import List, Optional

from domain.models.stack import ScanResult
from domain.models.agent_context import (
    CapabilityRecommendations,
    EnrichedContext,
    MultiAgentAnalysis,
    ProjectContext,
    ResearchMode,
    StackResearch,
    TechResearchResult,
)
from domain.models.model_outputs import SynthesisDraftModel
from domain.services.artifact_rules import dedupe, filter_valid_entry_points
from application.services.agent_budget_manager import AgentBudgetManager, SYNTHESIS_AGENT
from application.services.capability_resolver import to_recommendation_set
from application.services.fallbacks import (
    MAX_GUIDELINES,
    default_stack_research,
    derived_guidelines,
    manifest_entry_points,
)
from infrastructure.llm.language_model import LanguageModel
from shared.logging import logger, log_agent_execution, elapsed_ms

MAX_BEST_PRACTICES = 10
MAX_ANTI_PATTERNS = 10
MAX_TESTING_TOOLS = 5
MAX_DOCUMENTATION_HINTS = 5

SYNTHESIS_SYSTEM_PROMPT = """You are a Synthesis Agent that merges analysis results into actionable implementation guidelines.

## Your Mission
Based on the enriched context and technology research, generate:
1. Short, actionable implementation guidelines (5-10 words each)
2. List any technologies that may have been missed

## Guidelines Style
- Start with action verbs: "Run", "Use", "Follow", "Avoid"
- Be specific to the detected stack
- Include testing commands
- Mention key patterns from the research
- Max 7 guidelines, prioritize the most important

## Example Output
{
  "implementationGuidelines": [
    "Run npm test after changes",
    "Use App Router for new pages",
    "Follow existing component patterns in src/components",
    "Use Zod for API validation",
    "Run npx playwright test for E2E"
  ],
  "possibleMissedTechnologies": ["Redis caching"]
}"""

def build_synthesis_prompt(context: EnrichedContext, research: List[TechResearchResult],
                           capabilities: CapabilityRecommendations) -> str:
    tech_summary = "\n\n".join(
        f"### {result.technology}\n"
        f"Best practices: {', '.join(result.best_practices[:3])}\n"
        f"Anti-patterns: {', '.join(result.anti_patterns[:2])}"
        for result in research
    )
    directories = ", ".join(f"{path} ({purpose})" for path, purpose in context.key_directories.items())
    commands = "\n".join(f"- {name}: {command}" for name, command in context.commands.items())
    answers = "\n\n".join(f"Q: {q}\nA: {a}" for q, a in context.answered_questions.items())
    return (
        "Synthesize these analysis results into implementation guidelines.\n\n"
        "## Project Context\n"
        f"- Type: {context.project_type}\n"
        f"- Entry Points: {', '.join(context.entry_points)}\n"
        f"- Key Directories: {directories}\n\n"
        f"## Commands Available\n{commands}\n\n"
        f"## Technology Research\n{tech_summary or 'No specific technology research available.'}\n\n"
        "## Integration Servers\n"
        f"- E2E Testing: {capabilities.e2e_testing}\n"
        f"- Database: {capabilities.database or 'None detected'}\n"
        f"- Additional: {', '.join(capabilities.additional) or 'None'}\n\n"
        f"## Analysis Plan Questions & Answers\n{answers or 'No questions answered.'}\n\n"
        "Generate concise, actionable implementation guidelines based on this analysis."
    )

def merge_research(research: List[TechResearchResult]) -> StackResearch:
    """Fold per-technology research into one capped, de-duplicated view"""
    if not research:
        return default_stack_research()

    mode = ResearchMode.KNOWLEDGE_ONLY
    for result in research:
        if result.research_mode.rank > mode.rank:
            mode = result.research_mode

    return StackResearch(
        best_practices=dedupe((p for r in research for p in r.best_practices), MAX_BEST_PRACTICES),
        anti_patterns=dedupe((p for r in research for p in r.anti_patterns), MAX_ANTI_PATTERNS),
        testing_tools=dedupe((t for r in research for t in r.testing_tips), MAX_TESTING_TOOLS),
        debugging_tools=[],
        documentation_hints=dedupe((h for r in research for h in r.documentation_hints), MAX_DOCUMENTATION_HINTS),
        research_mode=mode,
    )

def _clean(items: List[str]) -> List[str]:
    return dedupe(item.strip() for item in items if isinstance(item, str) and item.strip())

class SynthesisAgent:
    """Phase 3: deterministic merge plus an optional model-drafted guideline list"""

    def __init__(self, model: LanguageModel, budget_manager: Optional[AgentBudgetManager] = None):
        self.model = model
        self.budget_manager = budget_manager or AgentBudgetManager()

    async def synthesize(
        self,
        context: EnrichedContext,
        research: List[TechResearchResult],
        capabilities: CapabilityRecommendations,
        scan_result: ScanResult,
        run_id: Optional[str] = None,
    ) -> MultiAgentAnalysis:
        start_time = datetime.utcnow()
        budget = self.budget_manager.budget_for(SYNTHESIS_AGENT)
        guidelines: List[str] = []
        missed: List[str] = []

        try:
            draft = await self.model.generate_object(
                system=SYNTHESIS_SYSTEM_PROMPT,
                prompt=build_synthesis_prompt(context, research, capabilities),
                schema=SynthesisDraftModel,
                temperature=budget.temperature,
            )
            guidelines = _clean(draft.implementation_guidelines)[:MAX_GUIDELINES]
            missed = _clean(draft.possible_missed_technologies)
            log_agent_execution(
                agent_name=SYNTHESIS_AGENT,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=True
            )
        except Exception as e:
            log_agent_execution(
                agent_name=SYNTHESIS_AGENT,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                used_fallback=True,
                error_message=str(e)
            )

        return self.build_analysis(context, research, capabilities, scan_result, guidelines, missed, run_id)

    def build_analysis(
        self,
        context: EnrichedContext,
        research: List[TechResearchResult],
        capabilities: CapabilityRecommendations,
        scan_result: ScanResult,
        guidelines: List[str],
        missed: List[str],
        run_id: Optional[str] = None,
    ) -> MultiAgentAnalysis:
        """Validate and assemble the artifact; every invariant is enforced here"""
        entry_points = filter_valid_entry_points(context.entry_points)
        if not entry_points:
            logger.warning("No valid entry points after filtering, using manifest",
                           run_id=run_id, rejected=context.entry_points)
            entry_points = manifest_entry_points(scan_result.manifest)

        if not guidelines:
            guidelines = derived_guidelines(context.commands, capabilities)

        return MultiAgentAnalysis(
            project_context=ProjectContext(
                entry_points=entry_points,
                key_directories=dict(context.key_directories),
                naming_conventions=context.naming_conventions,
                project_type=context.project_type,
            ),
            commands=dict(context.commands),
            implementation_guidelines=guidelines,
            possible_missed_technologies=missed,
            stack_research=merge_research(research),
            capability_recommendations=to_recommendation_set(capabilities),
        )
