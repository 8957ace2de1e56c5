# application/services/fallbacks.py
"""
Deterministic stand-ins for every model-backed result.

Everything here is a pure function of the scan result, so a run with no
model available produces the same artifact every time.
"""
from typing import Dict, List, Optional

from domain.models.stack import ScanResult, StackSummary, PackageManifest
from domain.models.agent_context import (
    AnalysisPlan,
    Complexity,
    EnrichedContext,
    MultiAgentAnalysis,
    ProjectContext,
    ResearchMode,
    StackResearch,
    CapabilityRecommendations,
)
from domain.services.artifact_rules import filter_valid_entry_points
from application.services.capability_resolver import CapabilityResolver, to_recommendation_set

DEFAULT_ENTRY_POINT = "src/index.ts"
DEFAULT_KEY_DIRECTORIES = {"src": "Source code"}
DEFAULT_NAMING_CONVENTIONS = "camelCase"
DEFAULT_QUESTIONS = [
    "What is the project structure?",
    "What are the main entry points?",
    "How are tests organized?",
]
MAX_GUIDELINES = 7

# script name in package.json -> canonical command name
_SCRIPT_ALIASES = {
    "test": "test",
    "lint": "lint",
    "typecheck": "typecheck",
    "type-check": "typecheck",
    "check-types": "typecheck",
    "build": "build",
    "dev": "dev",
    "start": "dev",
    "format": "format",
    "fmt": "format",
}


def detect_project_type(stack: Optional[StackSummary]) -> str:
    if stack is None:
        return "Unknown"
    if stack.mcp.is_project:
        return "MCP Server"
    framework = stack.framework.name if stack.framework else ""
    if "Next" in framework:
        return "Next.js App"
    if "React" in framework:
        return "React SPA"
    if framework:
        return f"{framework} Project"
    return "Unknown"


def _package_manager(stack: StackSummary) -> str:
    if stack.package_manager and stack.package_manager.name:
        return stack.package_manager.name.lower()
    return "npm"


def _script_command(package_manager: str, script: str) -> str:
    if package_manager == "npm":
        return f"npm {script}" if script in ("test", "start") else f"npm run {script}"
    if package_manager == "bun":
        return f"bun run {script}"
    return f"{package_manager} {script}"


def manifest_commands(scan_result: ScanResult) -> Dict[str, str]:
    """Canonical commands derived from manifest scripts"""
    package_manager = _package_manager(scan_result.stack)
    scripts = scan_result.manifest.scripts if scan_result.manifest else {}

    commands: Dict[str, str] = {}
    for script in sorted(scripts):
        canonical = _SCRIPT_ALIASES.get(script)
        if canonical and canonical not in commands:
            commands[canonical] = _script_command(package_manager, script)

    if not commands:
        commands = {
            "test": _script_command(package_manager, "test"),
            "build": _script_command(package_manager, "build"),
            "dev": _script_command(package_manager, "dev"),
        }
    return commands


def manifest_entry_points(manifest: Optional[PackageManifest]) -> List[str]:
    candidates: List[str] = []
    if manifest is not None:
        for value in (manifest.main, manifest.module, *sorted(manifest.bin.values())):
            if value:
                candidates.append(value[2:] if value.startswith("./") else value)
    entry_points = filter_valid_entry_points(candidates)
    return entry_points or [DEFAULT_ENTRY_POINT]


def default_plan(scan_result: ScanResult) -> AnalysisPlan:
    stack = scan_result.stack
    technologies = [
        detection.name
        for detection in (stack.framework, stack.database, stack.orm, stack.testing.unit)
        if detection is not None
    ]
    return AnalysisPlan(
        areas_to_explore=["src/", "package.json"],
        technologies_to_research=technologies or ["TypeScript"],
        questions_to_answer=list(DEFAULT_QUESTIONS),
        estimated_complexity=Complexity.MEDIUM,
    )


def default_enriched_context(scan_result: ScanResult) -> EnrichedContext:
    return EnrichedContext(
        entry_points=manifest_entry_points(scan_result.manifest),
        key_directories=dict(DEFAULT_KEY_DIRECTORIES),
        naming_conventions=DEFAULT_NAMING_CONVENTIONS,
        commands=manifest_commands(scan_result),
        answered_questions={},
        project_type=detect_project_type(scan_result.stack),
    )


def derived_guidelines(commands: Dict[str, str], capabilities: Optional[CapabilityRecommendations] = None) -> List[str]:
    """Guidelines built from the detected test/build/lint commands"""
    guidelines = []
    if commands.get("test"):
        guidelines.append(f"Run {commands['test']} after changes")
    if commands.get("lint"):
        guidelines.append(f"Run {commands['lint']} before committing")
    if commands.get("typecheck"):
        guidelines.append(f"Run {commands['typecheck']} to catch type errors")
    if commands.get("build"):
        guidelines.append(f"Run {commands['build']} before committing")
    if capabilities is None or capabilities.e2e_testing == "playwright":
        guidelines.append("Run npx playwright test for E2E testing")
    guidelines.append("Follow existing code patterns")
    guidelines.append("Use TypeScript strict mode")
    return guidelines[:MAX_GUIDELINES]


def default_stack_research() -> StackResearch:
    return StackResearch(
        best_practices=["Follow project conventions"],
        anti_patterns=["Avoid skipping tests"],
        testing_tools=["npm test"],
        debugging_tools=["console.log"],
        documentation_hints=["Check official docs"],
        research_mode=ResearchMode.KNOWLEDGE_ONLY,
    )


def default_analysis(scan_result: ScanResult, resolver: Optional[CapabilityResolver] = None) -> MultiAgentAnalysis:
    """Complete artifact from manifest and stack facts only"""
    resolver = resolver or CapabilityResolver()
    capabilities = resolver.resolve(scan_result.stack)
    context = default_enriched_context(scan_result)
    return MultiAgentAnalysis(
        project_context=ProjectContext(
            entry_points=context.entry_points,
            key_directories=context.key_directories,
            naming_conventions=context.naming_conventions,
            project_type=context.project_type,
        ),
        commands=context.commands,
        implementation_guidelines=derived_guidelines(context.commands, capabilities),
        possible_missed_technologies=[],
        stack_research=default_stack_research(),
        capability_recommendations=to_recommendation_set(capabilities),
    )
