# infrastructure/agents/tech_researcher.py
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from domain.models.agent_context import AgentCapabilities, Complexity, ResearchMode, TechResearchResult
from application.services.agent_budget_manager import AgentBudgetManager, TECH_RESEARCHER
from infrastructure.llm.language_model import LanguageModel, ToolSpec
from infrastructure.tools.web_search import TavilySearchTool
from infrastructure.tools.docs_lookup import Context7DocsTools
from shared.concurrency import settle_all
from shared.json_repair import extract_json, extract_last_text
from shared.logging import logger, log_agent_execution, elapsed_ms

MAX_ITEMS_PER_LIST = 5

DOCUMENTATION_HINTS: Mapping[str, Sequence[str]] = MappingProxyType({
    # MCP ecosystem
    "MCP": ("https://modelcontextprotocol.io/docs", "https://modelcontextprotocol.io/docs/tools/inspector"),
    "MCP Server": ("https://modelcontextprotocol.io/docs", "https://modelcontextprotocol.io/docs/tools/inspector"),
    "@modelcontextprotocol/sdk": ("https://modelcontextprotocol.io/docs/tools/inspector",),

    # Frontend frameworks
    "Next.js": ("https://nextjs.org/docs/app", "https://nextjs.org/docs/app/building-your-application"),
    "React": ("https://react.dev", "https://react.dev/learn"),
    "Vue": ("https://vuejs.org/guide", "https://vuejs.org/api"),
    "Svelte": ("https://svelte.dev/docs", "https://kit.svelte.dev/docs"),
    "Nuxt": ("https://nuxt.com/docs", "https://nuxt.com/docs/api"),

    # Backend frameworks
    "Express": ("https://expressjs.com/en/guide", "https://expressjs.com/en/api.html"),
    "Fastify": ("https://fastify.dev/docs/latest", "https://fastify.dev/docs/latest/Guides/Getting-Started"),
    "Hono": ("https://hono.dev/docs", "https://hono.dev/docs/guides"),
    "NestJS": ("https://docs.nestjs.com", "https://docs.nestjs.com/first-steps"),

    # Testing
    "Vitest": ("https://vitest.dev/guide", "https://vitest.dev/api"),
    "Jest": ("https://jestjs.io/docs/getting-started", "https://jestjs.io/docs/api"),
    "Playwright": ("https://playwright.dev/docs/intro", "https://playwright.dev/docs/api/class-test"),

    # Validation
    "Zod": ("https://zod.dev", "https://zod.dev/?id=primitives"),
    "Yup": ("https://github.com/jquense/yup#api",),

    # Database
    "Prisma": ("https://www.prisma.io/docs", "https://www.prisma.io/docs/orm/prisma-client"),
    "Drizzle": ("https://orm.drizzle.team/docs/overview", "https://orm.drizzle.team/docs/sql-schema-declaration"),
    "Supabase": ("https://supabase.com/docs", "https://supabase.com/docs/guides/database"),

    "TypeScript": ("https://www.typescriptlang.org/docs", "https://www.typescriptlang.org/docs/handbook"),

    # CLI tools
    "Commander": ("https://github.com/tj/commander.js#readme",),
    "Yargs": ("https://yargs.js.org/docs",),
})

DEFAULT_BEST_PRACTICES = ("Follow official documentation", "Use TypeScript for type safety")
DEFAULT_ANTI_PATTERNS = ("Avoid deprecated APIs", "Don't skip error handling")
DEFAULT_TESTING_TIPS = ("Write unit tests for core logic", "Test edge cases")

def get_documentation_hints(technology: str, hints: Mapping[str, Sequence[str]] = DOCUMENTATION_HINTS) -> List[str]:
    """
    Documentation links for a technology name as the planner wrote it.

    Exact key, then case-insensitive exact key, then the longest key that is a
    substring of the name (or contains it). "Next.js 14" resolves to Next.js
    and "React Native" never falls through to a shorter unrelated key first.
    """
    if technology in hints:
        return list(hints[technology])

    generic = [f"Check official {technology} documentation"]
    if not technology.strip():
        return generic

    lowered = technology.lower()
    for key, urls in hints.items():
        if key.lower() == lowered:
            return list(urls)

    for key in sorted(hints, key=len, reverse=True):
        lowered_key = key.lower()
        if lowered_key in lowered or lowered in lowered_key:
            return list(hints[key])

    return generic

_OUTPUT_FORMAT = """## Output Format
Output ONLY valid JSON:
{
  "technology": "Next.js 14",
  "bestPractices": ["Use App Router for new projects", "Enable strict TypeScript"],
  "antiPatterns": ["Don't use pages/ and app/ together", "Avoid client components for static content"],
  "testingTips": ["Use @testing-library/react", "Mock next/navigation for routing tests"],
  "documentationHints": ["App Router: nextjs.org/docs/app"]
}

Keep each item concise (5-15 words max). Max 5 items per array."""

_WEB_TOOLS = """- web_search: Search the web for current practices
  Good: "Express error handling middleware patterns"
  Bad: "Express Fastify Commander Yargs best practices\""""

_DOCS_TOOLS = """- resolve_library_id: Find the Context7 library id for a package
- query_docs: Query documentation for a resolved library id with a SPECIFIC topic
  Good: resolve_library_id("express") then query_docs(topic="middleware error handling")
  Bad: query_docs(topic="best practices production testing documentation")"""

_MISSION = """## Your Mission
Research the specified technology to find:
1. Current best practices
2. Common anti-patterns to avoid
3. Testing tips and patterns
4. Useful documentation links"""

def _tools_prompt(tool_lines: str) -> str:
    return (
        "You are a Tech Researcher worker focused on a single technology.\n\n"
        f"{_MISSION}\n\n"
        f"## Tools Available\n{tool_lines}\n\n"
        "Break research into focused queries, not broad searches. You have at most a few tool calls.\n\n"
        f"{_OUTPUT_FORMAT}"
    )

RESEARCH_PROMPTS: Mapping[ResearchMode, str] = MappingProxyType({
    ResearchMode.FULL: _tools_prompt(_WEB_TOOLS + "\n" + _DOCS_TOOLS),
    ResearchMode.WEB_ONLY: _tools_prompt(_WEB_TOOLS),
    ResearchMode.DOCS_ONLY: _tools_prompt(_DOCS_TOOLS),
    ResearchMode.KNOWLEDGE_ONLY: (
        "You are a Tech Researcher worker. You don't have web access, so rely on your training knowledge.\n\n"
        f"{_MISSION}\n\n"
        "Note best practices that may be outdated.\n\n"
        f"{_OUTPUT_FORMAT}"
    ),
})

def default_tech_research(technology: str, research_mode: ResearchMode,
                          hints: Mapping[str, Sequence[str]] = DOCUMENTATION_HINTS) -> TechResearchResult:
    return TechResearchResult(
        technology=technology,
        best_practices=list(DEFAULT_BEST_PRACTICES),
        anti_patterns=list(DEFAULT_ANTI_PATTERNS),
        testing_tips=list(DEFAULT_TESTING_TIPS),
        documentation_hints=get_documentation_hints(technology, hints),
        research_mode=research_mode,
    )

def _items(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()][:MAX_ITEMS_PER_LIST]

class TechResearcher:
    """Researches one technology in the mode fixed for the run"""

    def __init__(self, model: LanguageModel, mode: ResearchMode, tools: Optional[List[ToolSpec]] = None,
                 hints: Mapping[str, Sequence[str]] = DOCUMENTATION_HINTS,
                 budget_manager: Optional[AgentBudgetManager] = None):
        self.model = model
        self.mode = mode
        self.tools = tools or []
        self.hints = hints
        self.budget_manager = budget_manager or AgentBudgetManager()

    async def research(self, technology: str, complexity: Complexity = Complexity.MEDIUM,
                       run_id: Optional[str] = None) -> TechResearchResult:
        start_time = datetime.utcnow()
        budget = self.budget_manager.budget_for(TECH_RESEARCHER, complexity)
        prompt = (
            f"Research best practices for: {technology}\n\n"
            "Provide current best practices, anti-patterns to avoid, testing tips, and documentation hints.\n"
            "Output your findings as JSON."
        )

        try:
            generation = await self.model.generate_text(
                system=RESEARCH_PROMPTS[self.mode],
                prompt=prompt,
                tools=self.tools or None,
                max_steps=budget.max_steps if self.tools else 1,
                max_output_tokens=budget.max_output_tokens,
                temperature=budget.temperature,
            )
        except Exception as e:
            log_agent_execution(
                agent_name=TECH_RESEARCHER,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                used_fallback=True,
                error_message=f"{technology}: {e}"
            )
            return default_tech_research(technology, self.mode, self.hints)

        data = extract_json(extract_last_text(generation.text, generation.step_texts))
        if data is None:
            logger.warning("Tech researcher returned no parseable JSON", run_id=run_id, technology=technology)
            return default_tech_research(technology, self.mode, self.hints)

        log_agent_execution(
            agent_name=TECH_RESEARCHER,
            run_id=run_id,
            execution_time_ms=elapsed_ms(start_time),
            success=True,
            steps_used=len(generation.steps)
        )
        return TechResearchResult(
            technology=technology,
            best_practices=_items(data.get("bestPractices")),
            anti_patterns=_items(data.get("antiPatterns")),
            testing_tips=_items(data.get("testingTips")),
            documentation_hints=_items(data.get("documentationHints")) or get_documentation_hints(technology, self.hints),
            research_mode=self.mode,
        )

class TechResearchPool:
    """One researcher per technology; the research mode is decided once per pool"""

    def __init__(self, model: LanguageModel, capabilities: AgentCapabilities,
                 tavily_api_key: Optional[str] = None, context7_api_key: Optional[str] = None,
                 hints: Mapping[str, Sequence[str]] = DOCUMENTATION_HINTS,
                 budget_manager: Optional[AgentBudgetManager] = None):
        self.mode = ResearchMode.from_capabilities(capabilities)
        tools: List[ToolSpec] = []
        if capabilities.has_web_search and tavily_api_key:
            tools.append(TavilySearchTool(tavily_api_key).as_tool_spec())
        if capabilities.has_docs_lookup and context7_api_key:
            tools.extend(Context7DocsTools(context7_api_key).as_tool_specs())
        self.researcher = TechResearcher(model, self.mode, tools, hints, budget_manager)

    def submit(self, technologies: List[str], complexity: Complexity = Complexity.MEDIUM,
               run_id: Optional[str] = None) -> list:
        """Unstarted research coroutines, in technology order"""
        return [self.researcher.research(technology, complexity, run_id) for technology in technologies]

    async def run(self, technologies: List[str], complexity: Complexity = Complexity.MEDIUM,
                  run_id: Optional[str] = None) -> List[TechResearchResult]:
        logger.info("Starting tech research pool", run_id=run_id, technologies=len(technologies), mode=self.mode.value)
        settled = await settle_all(self.submit(technologies, complexity, run_id))
        return [outcome.value for outcome in settled if outcome.ok]
