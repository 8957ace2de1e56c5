# application/orchestrators/multi_agent_orchestrator.py
import inspect
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from domain.models.stack import ScanResult
from domain.models.agent_context import AgentCapabilities, MultiAgentAnalysis
from domain.models.quality_gate import LoopOutcome
from domain.models.pipeline_state import PipelinePhase
from application.services.agent_budget_manager import (
    AgentBudgetManager,
    PLANNING_AGENT,
    CONTEXT_ENRICHER,
    TECH_RESEARCHER,
    SYNTHESIS_AGENT,
    EVALUATOR,
    OPTIMIZER,
)
from application.services.capability_resolver import CapabilityResolver
from application.services.fallbacks import default_analysis
from infrastructure.agents.planning_agent import PlanningAgent
from infrastructure.agents.context_enricher import ContextEnricher
from infrastructure.agents.tech_researcher import DOCUMENTATION_HINTS, TechResearchPool
from infrastructure.agents.worker_pool import WorkerPool
from infrastructure.agents.synthesis_agent import SynthesisAgent
from infrastructure.agents.evaluator_optimizer import EvaluatorOptimizerLoop
from infrastructure.llm.guarded_model import guard
from infrastructure.llm.language_model import LanguageModel
from infrastructure.resilience.circuit_breaker import CircuitBreakerRegistry
from shared.config import AgentSettings
from shared.logging import logger, log_phase

# (phase_label, detail) -> None or awaitable
ProgressCallback = Callable[[str, Optional[str]], Any]

@dataclass(frozen=True)
class PipelineResult:
    analysis: MultiAgentAnalysis
    loop_outcome: Optional[LoopOutcome] = None
    used_fallback: bool = False

class MultiAgentOrchestrator:
    """Plans, fans out to workers, synthesizes and quality-gates one analysis"""

    def __init__(self,
                 model: LanguageModel,
                 settings: Optional[AgentSettings] = None,
                 breaker_registry: Optional[CircuitBreakerRegistry] = None,
                 resolver: Optional[CapabilityResolver] = None,
                 budget_manager: Optional[AgentBudgetManager] = None,
                 documentation_hints: Mapping[str, Sequence[str]] = DOCUMENTATION_HINTS):
        self.settings = settings or AgentSettings()
        self.resolver = resolver or CapabilityResolver()
        self.budget_manager = budget_manager or AgentBudgetManager()

        capabilities = AgentCapabilities(
            has_web_search=self.settings.has_web_search,
            has_docs_lookup=self.settings.has_docs_lookup,
        )

        self.planning_agent = PlanningAgent(guard(model, breaker_registry, PLANNING_AGENT), self.budget_manager)
        self.worker_pool = WorkerPool(
            ContextEnricher(guard(model, breaker_registry, CONTEXT_ENRICHER), self.budget_manager),
            TechResearchPool(
                guard(model, breaker_registry, TECH_RESEARCHER),
                capabilities,
                tavily_api_key=self.settings.tavily_api_key,
                context7_api_key=self.settings.context7_api_key,
                hints=documentation_hints,
                budget_manager=self.budget_manager,
            ),
        )
        self.synthesis_agent = SynthesisAgent(guard(model, breaker_registry, SYNTHESIS_AGENT), self.budget_manager)
        self.quality_loop = EvaluatorOptimizerLoop(
            guard(model, breaker_registry, EVALUATOR),
            guard(model, breaker_registry, OPTIMIZER),
            max_iterations=self.settings.qa_max_iterations,
            quality_threshold=self.settings.qa_quality_threshold,
            fail_open=self.settings.qa_fail_open,
            budget_manager=self.budget_manager,
        )

    async def analyze(self, scan_result: ScanResult,
                      on_progress: Optional[ProgressCallback] = None,
                      run_id: Optional[str] = None) -> MultiAgentAnalysis:
        result = await self.run(scan_result, on_progress, run_id)
        return result.analysis

    async def run(self, scan_result: ScanResult,
                  on_progress: Optional[ProgressCallback] = None,
                  run_id: Optional[str] = None) -> PipelineResult:
        """Execute all four phases; always returns a usable artifact"""
        run_id = run_id or str(uuid.uuid4())
        logger.info("Starting multi-agent analysis", run_id=run_id, project_root=scan_result.project_root)

        try:
            return await self._execute(scan_result, on_progress, run_id)
        except Exception as e:
            logger.error("Analysis pipeline failed, using deterministic fallback",
                         run_id=run_id, error=str(e), exc_info=True)
            return PipelineResult(analysis=default_analysis(scan_result, self.resolver), used_fallback=True)

    async def _execute(self, scan_result: ScanResult, on_progress: Optional[ProgressCallback],
                       run_id: str) -> PipelineResult:
        # resolver is pure; needed only from synthesis on
        capabilities = self.resolver.resolve(scan_result.stack)

        await self._report(on_progress, run_id, PipelinePhase.PLANNING, "started")
        plan = await self.planning_agent.create_plan(scan_result, run_id)
        await self._report(on_progress, run_id, PipelinePhase.PLANNING, "completed",
                           f"{len(plan.technologies_to_research)} technologies, {plan.estimated_complexity.value} complexity")

        await self._report(on_progress, run_id, PipelinePhase.WORKERS, "started",
                           f"context enricher + {len(plan.technologies_to_research)} researchers")
        workers = await self.worker_pool.run(plan, scan_result, run_id)
        await self._report(on_progress, run_id, PipelinePhase.WORKERS, "completed",
                           f"{len(workers.research)} research results")

        await self._report(on_progress, run_id, PipelinePhase.SYNTHESIS, "started")
        analysis = await self.synthesis_agent.synthesize(
            workers.enriched_context, workers.research, capabilities, scan_result, run_id
        )
        await self._report(on_progress, run_id, PipelinePhase.SYNTHESIS, "completed",
                           f"{len(analysis.implementation_guidelines)} guidelines")

        await self._report(on_progress, run_id, PipelinePhase.EVALUATION, "started")
        analysis, outcome = await self.quality_loop.run(analysis, scan_result, run_id)
        scores = ", ".join(f"{score:g}" for score in outcome.scores) or "none"
        await self._report(on_progress, run_id, PipelinePhase.EVALUATION, "completed",
                           f"scores: {scores}; gate {'passed' if outcome.gate_passed else 'not passed'}")

        logger.info("Multi-agent analysis completed",
                    run_id=run_id,
                    entry_points=len(analysis.project_context.entry_points),
                    guidelines=len(analysis.implementation_guidelines),
                    optimizations=outcome.optimizations)
        return PipelineResult(analysis=analysis, loop_outcome=outcome)

    async def _report(self, on_progress: Optional[ProgressCallback], run_id: str,
                      phase: PipelinePhase, status: str, detail: Optional[str] = None):
        log_phase(run_id, phase.value, status, detail)
        if on_progress is None:
            return
        try:
            outcome = on_progress(phase.label, detail)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning("Progress callback failed", run_id=run_id, phase=phase.value, error=str(e))
