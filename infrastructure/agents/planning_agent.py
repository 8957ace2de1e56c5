# infrastructure/agents/planning_agent.py
from datetime import datetime
from typing import Optional

from domain.models.stack import ScanResult
from domain.models.agent_context import AnalysisPlan
from domain.models.model_outputs import AnalysisPlanModel
from application.services.agent_budget_manager import AgentBudgetManager, PLANNING_AGENT
from application.services.fallbacks import default_plan
from infrastructure.llm.language_model import LanguageModel
from shared.logging import logger, log_agent_execution, elapsed_ms

PLANNING_SYSTEM_PROMPT = """You are a senior software architect analyzing a codebase to create an analysis plan.

Based on the scan result, create a focused analysis plan that identifies:
1. Key areas to explore (directories, config files, entry points)
2. Technologies that need in-depth research (frameworks, libraries, tools)
3. Specific questions that need answers for implementation guidance

## Guidelines
- Focus on areas that would benefit from deeper exploration
- Identify technologies where best practices would be valuable
- Ask questions that would help an AI developer implement features correctly
- Keep lists focused (3-7 items each)
- Consider the project type when prioritizing areas

## Example Output
{
  "areasToExplore": ["src/", "config/", "lib/auth/"],
  "technologiesToResearch": ["Next.js 14", "Prisma", "NextAuth"],
  "questionsToAnswer": ["What is the authentication strategy?", "How is state managed?", "What testing patterns are used?"],
  "estimatedComplexity": "medium"
}"""

def build_planning_prompt(scan_result: ScanResult) -> str:
    stack = scan_result.stack
    technologies = stack.technology_names()
    lines = [
        "Analyze this scan result and create an analysis plan:",
        "",
        f"Project: {scan_result.project_root}",
        f"Framework: {stack.framework.name if stack.framework else 'Unknown'}",
        f"Database: {stack.database.name if stack.database else 'None detected'}",
        f"Testing: {stack.testing.unit.name if stack.testing.unit else 'None detected'}",
        f"Package Manager: {stack.package_manager.name if stack.package_manager else 'npm'}",
        f"Detected Technologies: {', '.join(technologies) or 'None'}",
    ]
    if stack.mcp.is_project:
        lines.append("This is an MCP Server project.")
    lines.append("")
    lines.append("Create a focused analysis plan that will help understand this codebase.")
    return "\n".join(lines)

def _clean(items) -> list:
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]

class PlanningAgent:
    """Phase 1: one structured model call that decides what the workers look at"""

    def __init__(self, model: LanguageModel, budget_manager: Optional[AgentBudgetManager] = None):
        self.model = model
        self.budget_manager = budget_manager or AgentBudgetManager()

    async def create_plan(self, scan_result: ScanResult, run_id: Optional[str] = None) -> AnalysisPlan:
        """Never raises; any failure yields the default plan for this scan"""
        start_time = datetime.utcnow()
        budget = self.budget_manager.budget_for(PLANNING_AGENT)

        try:
            draft = await self.model.generate_object(
                system=PLANNING_SYSTEM_PROMPT,
                prompt=build_planning_prompt(scan_result),
                schema=AnalysisPlanModel,
                temperature=budget.temperature,
            )
            plan = self._complete(draft, scan_result)
        except Exception as e:
            log_agent_execution(
                agent_name=PLANNING_AGENT,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                used_fallback=True,
                error_message=str(e)
            )
            return default_plan(scan_result)

        log_agent_execution(
            agent_name=PLANNING_AGENT,
            run_id=run_id,
            execution_time_ms=elapsed_ms(start_time),
            success=True
        )
        logger.info("Analysis plan created",
                    run_id=run_id,
                    areas=len(plan.areas_to_explore),
                    technologies=len(plan.technologies_to_research),
                    questions=len(plan.questions_to_answer),
                    complexity=plan.estimated_complexity.value)
        return plan

    def _complete(self, draft: AnalysisPlanModel, scan_result: ScanResult) -> AnalysisPlan:
        # empty lists from the model are topped up field by field
        fallback = default_plan(scan_result)
        return AnalysisPlan(
            areas_to_explore=_clean(draft.areas_to_explore) or fallback.areas_to_explore,
            technologies_to_research=_clean(draft.technologies_to_research) or fallback.technologies_to_research,
            questions_to_answer=_clean(draft.questions_to_answer) or fallback.questions_to_answer,
            estimated_complexity=draft.estimated_complexity,
        )

