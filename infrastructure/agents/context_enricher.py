# infrastructure/agents/context_enricher.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from domain.models.stack import ScanResult
from domain.models.agent_context import AnalysisPlan, EnrichedContext
from application.services.agent_budget_manager import AgentBudgetManager, CONTEXT_ENRICHER
from application.services.fallbacks import default_enriched_context
from infrastructure.llm.language_model import LanguageModel, TextGeneration
from infrastructure.tools.exploration_tools import ExplorationTools, BudgetedToolset
from shared.json_repair import extract_json, extract_last_text
from shared.logging import logger, log_agent_execution, elapsed_ms

MAX_FINDING_CHARS = 2000

CONTEXT_ENRICHER_SYSTEM_PROMPT = """You are a Context Enricher worker. Your job is to explore specific areas of a codebase and answer specific questions.

## Your Mission
Based on the analysis plan, explore the codebase to:
1. Identify entry points and key files
2. Understand directory structure and purposes
3. Detect naming conventions
4. Find available commands (from package.json)
5. Answer the specific questions provided

## Tools Available
- search_code: Search file contents with a regular expression
- read_file: Read file contents
- list_directory: List directory structure
- get_package_info: Get package.json info

You have a limited number of tool calls. When a tool reports that the budget is
exhausted, stop exploring and answer with what you have.

## Exploration Strategy
1. List the areas specified in the plan
2. Read package.json to understand scripts and dependencies
3. Search for patterns to answer the specific questions
4. Identify the project type based on structure

## Project Types
- MCP Server: Has @modelcontextprotocol dependencies
- REST API: Express/Fastify/Hono with route handlers
- React SPA: React with components, no server-side rendering
- Next.js App: Next.js with app or pages directory
- CLI Tool: Has bin entry in package.json
- Library: Published package without app entry

## Output Format
After exploration, output ONLY valid JSON:
{
  "entryPoints": ["src/index.ts"],
  "keyDirectories": {"src/routes": "API routes", "src/components": "UI components"},
  "namingConventions": "camelCase files, PascalCase components",
  "commands": {"test": "npm test", "build": "npm run build"},
  "answeredQuestions": {"What is the auth strategy?": "NextAuth with JWT"},
  "projectType": "Next.js App"
}"""

def build_enricher_prompt(plan: AnalysisPlan, scan_result: ScanResult) -> str:
    areas = "\n".join(f"- {area}" for area in plan.areas_to_explore)
    questions = "\n".join(f"- {question}" for question in plan.questions_to_answer)
    return (
        "Explore this codebase and gather enriched context.\n\n"
        f"Project: {scan_result.project_root}\n\n"
        f"## Areas to Explore\n{areas}\n\n"
        f"## Questions to Answer\n{questions}\n\n"
        "Start by exploring the specified areas, then answer the questions and produce your analysis as JSON."
    )

def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]

def _string_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items() if v is not None and str(v).strip()}

def parse_enriched_context(data: Dict[str, Any], fallback: EnrichedContext) -> EnrichedContext:
    """Build an EnrichedContext from parsed model JSON, filling gaps from the fallback"""
    naming = data.get("namingConventions")
    project_type = data.get("projectType")
    return EnrichedContext(
        entry_points=_string_list(data.get("entryPoints")) or fallback.entry_points,
        key_directories=_string_map(data.get("keyDirectories")) or fallback.key_directories,
        naming_conventions=naming.strip() if isinstance(naming, str) and naming.strip() else fallback.naming_conventions,
        commands=_string_map(data.get("commands")) or fallback.commands,
        answered_questions=_string_map(data.get("answeredQuestions")),
        project_type=project_type.strip() if isinstance(project_type, str) and project_type.strip() else fallback.project_type,
    )

def build_final_answer_prompt(base_prompt: str, generation: TextGeneration) -> str:
    """Prompt for the tool-less last turn, carrying what the exploration found"""
    findings: List[str] = []
    for step in generation.steps:
        for call in step.tool_calls:
            arguments = ", ".join(f"{k}={v!r}" for k, v in call.arguments.items())
            result = (call.result or "")[:MAX_FINDING_CHARS]
            findings.append(f"### {call.tool_name}({arguments})\n{result}")
    transcript = "\n\n".join(findings) or "(no tool results)"
    return (
        f"{base_prompt}\n\n"
        "The tool budget is spent and tools are no longer available.\n\n"
        f"## Exploration Results\n{transcript}\n\n"
        "Respond now with ONLY the final JSON."
    )

class ContextEnricher:
    """Explores the repository with read-only tools under a fixed invocation budget"""

    def __init__(self, model: LanguageModel, budget_manager: Optional[AgentBudgetManager] = None):
        self.model = model
        self.budget_manager = budget_manager or AgentBudgetManager()

    async def enrich(self, plan: AnalysisPlan, scan_result: ScanResult, run_id: Optional[str] = None) -> EnrichedContext:
        start_time = datetime.utcnow()
        budget = self.budget_manager.budget_for(CONTEXT_ENRICHER, plan.estimated_complexity)
        toolset = BudgetedToolset(
            ExplorationTools(scan_result.project_root).as_tool_specs(),
            max_invocations=budget.tool_invocations,
        )
        fallback = default_enriched_context(scan_result)

        prompt = build_enricher_prompt(plan, scan_result)
        try:
            generation = await self.model.generate_text(
                system=CONTEXT_ENRICHER_SYSTEM_PROMPT,
                prompt=prompt,
                tools=toolset.tools,
                max_steps=budget.tool_invocations + 2,
                max_output_tokens=budget.max_output_tokens,
                temperature=budget.temperature,
            )
            data = extract_json(extract_last_text(generation.text, generation.step_texts))
            if data is None and toolset.exhausted:
                # tools are revoked for the last turn so the model has to answer
                logger.info("Tool budget spent without an answer, requesting final output",
                            run_id=run_id, tool_calls=toolset.invocations)
                generation = await self.model.generate_text(
                    system=CONTEXT_ENRICHER_SYSTEM_PROMPT,
                    prompt=build_final_answer_prompt(prompt, generation),
                    tools=None,
                    max_steps=1,
                    max_output_tokens=budget.max_output_tokens,
                    temperature=budget.temperature,
                )
                data = extract_json(extract_last_text(generation.text, generation.step_texts))
        except Exception as e:
            log_agent_execution(
                agent_name=CONTEXT_ENRICHER,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                steps_used=toolset.invocations,
                used_fallback=True,
                error_message=str(e)
            )
            return fallback

        if data is None:
            logger.warning("Context enricher returned no parseable JSON", run_id=run_id)
            log_agent_execution(
                agent_name=CONTEXT_ENRICHER,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                steps_used=len(generation.steps),
                used_fallback=True,
                error_message="unparseable output"
            )
            return fallback

        context = parse_enriched_context(data, fallback)
        log_agent_execution(
            agent_name=CONTEXT_ENRICHER,
            run_id=run_id,
            execution_time_ms=elapsed_ms(start_time),
            success=True,
            steps_used=len(generation.steps)
        )
        logger.info("Context enriched",
                    run_id=run_id,
                    entry_points=len(context.entry_points),
                    answered_questions=len(context.answered_questions),
                    tool_calls=toolset.invocations)
        return context
