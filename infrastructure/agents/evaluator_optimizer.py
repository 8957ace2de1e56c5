# infrastructure/agents/evaluator_optimizer.py
"""
Bounded quality gate for the synthesized artifact.

Each cycle evaluates the current artifact and, if the gate does not pass,
asks the optimizer for a patch. At most `max_iterations` optimizations run,
so the loop always terminates. Neither a failing evaluator nor a failing
optimizer can make the loop raise: the evaluator fails open (or closed, if
configured) and a failed optimization keeps the artifact as it was.
"""
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from domain.models.stack import ScanResult
from domain.models.agent_context import MultiAgentAnalysis
from domain.models.model_outputs import EvaluationModel, OptimizerPatchModel
from domain.models.quality_gate import EvaluationResult, LoopOutcome, LoopState
from domain.services.artifact_rules import (
    dedupe,
    filter_valid_entry_points,
    has_valid_entry_points,
    normalize_recommendations,
)
from application.services.agent_budget_manager import AgentBudgetManager, EVALUATOR, OPTIMIZER
from application.services.fallbacks import MAX_GUIDELINES
from infrastructure.llm.language_model import LanguageModel
from shared.logging import logger, log_agent_execution, log_evaluation, elapsed_ms

DEFAULT_MAX_ITERATIONS = 2
DEFAULT_QUALITY_THRESHOLD = 7
FAIL_OPEN_SCORE = 7
FAIL_CLOSED_SCORE = 1

EVALUATOR_SYSTEM_PROMPT = """You are a QA Evaluator for AI-generated codebase analysis.

## Your Mission
Evaluate the analysis result for:
1. Completeness - Are all important areas covered?
2. Accuracy - Do the recommendations match the detected stack?
3. Actionability - Are the guidelines specific and useful?
4. Integration server relevance - Are the right servers recommended?

## Scoring Guidelines
- 9-10: Excellent, comprehensive, highly actionable
- 7-8: Good, covers main areas, useful guidelines
- 5-6: Adequate but missing some important details
- 3-4: Incomplete, vague, or partially incorrect
- 1-2: Poor, missing critical information

## Quality Checks - IMPORTANT
- Entry points MUST be actual file paths (e.g., "src/index.ts", "src/cli.ts")
  - FAIL if they contain instructions like "Check", "If", "Open", "Look"
  - FAIL if they don't look like file paths (no / or . characters)
- Key directories MUST map actual directories to their purposes
  - FAIL if only generic entries like {"src": "Source code"}
- Guidelines MUST be actionable commands, not exploration tasks
  - Good: "Run npm test", "Check API routes in src/routes"
  - Bad: "Investigate the codebase", "Look for patterns"
- Server names MUST be single-word identifiers only (no parenthetical explanations)

Be constructive but honest. If it's good, say so. If it needs work, explain why."""

OPTIMIZER_SYSTEM_PROMPT = """You are an Optimizer that improves AI-generated codebase analysis based on evaluation feedback.

## Your Mission
Based on the evaluation feedback, improve:
1. Implementation guidelines - make them more specific and actionable
2. Entry points - add any obvious ones that were missed
3. Integration servers - add any that would be useful

## Guidelines for Improvement
- Keep guidelines to 5-10 words
- Start with action verbs
- Be specific to the detected stack
- Don't remove good content, only add or improve

## Server Names
- Use ONLY single-word identifiers: "playwright", "supabase", "postgres"
- NEVER add explanations in parentheses
- NEVER add descriptions after the name
- If unsure, omit rather than guess"""

def build_evaluation_prompt(analysis: MultiAgentAnalysis, scan_result: ScanResult) -> str:
    context = analysis.project_context
    stack = scan_result.stack
    top_guidelines = "\n- ".join(analysis.implementation_guidelines[:3])
    return (
        "Evaluate this codebase analysis:\n\n"
        "## Analysis Result\n"
        f"Project Type: {context.project_type}\n"
        f"Entry Points: {', '.join(context.entry_points) or 'None'}\n"
        f"Key Directories: {', '.join(context.key_directories) or 'None'}\n"
        f"Guidelines: {len(analysis.implementation_guidelines)} items\n"
        f"- {top_guidelines}\n"
        f"Essential servers: {', '.join(analysis.capability_recommendations.essential)}\n"
        f"Recommended servers: {', '.join(analysis.capability_recommendations.recommended) or 'None'}\n\n"
        "## Original Project Context\n"
        f"Framework: {stack.framework.name if stack.framework else 'Unknown'}\n"
        f"Database: {stack.database.name if stack.database else 'None detected'}\n"
        f"Testing: {stack.testing.unit.name if stack.testing.unit else 'None detected'}\n\n"
        "Evaluate the quality and completeness of this analysis."
    )

def build_optimizer_prompt(analysis: MultiAgentAnalysis, evaluation: EvaluationResult) -> str:
    guidelines = "\n".join(f"- {g}" for g in analysis.implementation_guidelines)
    return (
        "Improve this codebase analysis based on the evaluation feedback.\n\n"
        "## Current Analysis\n"
        f"Project Type: {analysis.project_context.project_type}\n"
        f"Entry Points: {', '.join(analysis.project_context.entry_points)}\n"
        f"Current Guidelines:\n{guidelines}\n\n"
        "## Evaluation Feedback\n"
        f"Score: {evaluation.quality_score}/10\n"
        f"Issues: {', '.join(evaluation.specific_issues) or 'None'}\n"
        f"Suggestions: {', '.join(evaluation.improvement_suggestions) or 'None'}\n\n"
        "Provide improved guidelines and any additional entry points or integration servers."
    )

def gate_passes(evaluation: EvaluationResult, analysis: MultiAgentAnalysis, threshold: float) -> bool:
    return (
        evaluation.quality_score >= threshold
        and evaluation.has_entry_points
        and has_valid_entry_points(analysis.project_context.entry_points)
        and evaluation.has_implementation_guidelines
    )

def apply_patch(analysis: MultiAgentAnalysis, patch: OptimizerPatchModel) -> MultiAgentAnalysis:
    """New artifact with the patch merged in; valid content is never dropped"""
    improved = dedupe(g.strip() for g in patch.improved_guidelines if isinstance(g, str) and g.strip())
    guidelines = improved[:MAX_GUIDELINES] if improved else list(analysis.implementation_guidelines)

    entry_points = filter_valid_entry_points(
        list(analysis.project_context.entry_points) + list(patch.additional_entry_points)
    ) or list(analysis.project_context.entry_points)

    recommendations = analysis.capability_recommendations
    recommended = normalize_recommendations(
        list(recommendations.recommended) + list(patch.additional_recommendations),
        exclude=recommendations.essential,
    )

    return replace(
        analysis,
        implementation_guidelines=guidelines,
        project_context=replace(analysis.project_context, entry_points=entry_points),
        capability_recommendations=replace(recommendations, recommended=recommended),
    )

class EvaluatorOptimizerLoop:
    def __init__(
        self,
        evaluator_model: LanguageModel,
        optimizer_model: Optional[LanguageModel] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        quality_threshold: float = DEFAULT_QUALITY_THRESHOLD,
        fail_open: bool = True,
        budget_manager: Optional[AgentBudgetManager] = None,
    ):
        self.evaluator_model = evaluator_model
        self.optimizer_model = optimizer_model or evaluator_model
        self.max_iterations = max(0, max_iterations)
        self.quality_threshold = quality_threshold
        self.fail_open = fail_open
        self.budget_manager = budget_manager or AgentBudgetManager()

    async def run(self, analysis: MultiAgentAnalysis, scan_result: ScanResult,
                  run_id: Optional[str] = None) -> Tuple[MultiAgentAnalysis, LoopOutcome]:
        """Return the latest artifact and what the loop did; never raises"""
        current = analysis
        scores: List[float] = []
        evaluations = 0
        optimizations = 0
        gate_passed = False
        state = LoopState.EVALUATING

        while state != LoopState.DONE:
            if state == LoopState.EVALUATING:
                if optimizations >= self.max_iterations:
                    state = LoopState.DONE
                    continue
                evaluation = await self.evaluate(current, scan_result, run_id)
                evaluations += 1
                scores.append(evaluation.quality_score)
                gate_passed = gate_passes(evaluation, current, self.quality_threshold)
                log_evaluation(run_id, evaluations, evaluation.quality_score, gate_passed, evaluation.specific_issues)
                state = LoopState.DONE if gate_passed else LoopState.OPTIMIZING
            else:
                current = await self.optimize(current, evaluation, run_id)
                optimizations += 1
                state = LoopState.EVALUATING

        outcome = LoopOutcome(
            evaluations=evaluations,
            optimizations=optimizations,
            gate_passed=gate_passed,
            scores=scores,
        )
        logger.info("Quality gate finished",
                    run_id=run_id,
                    evaluations=evaluations,
                    optimizations=optimizations,
                    gate_passed=gate_passed)
        return current, outcome

    async def evaluate(self, analysis: MultiAgentAnalysis, scan_result: ScanResult,
                       run_id: Optional[str] = None) -> EvaluationResult:
        start_time = datetime.utcnow()
        budget = self.budget_manager.budget_for(EVALUATOR)
        try:
            verdict = await self.evaluator_model.generate_object(
                system=EVALUATOR_SYSTEM_PROMPT,
                prompt=build_evaluation_prompt(analysis, scan_result),
                schema=EvaluationModel,
                temperature=budget.temperature,
            )
        except Exception as e:
            log_agent_execution(
                agent_name=EVALUATOR,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                used_fallback=True,
                error_message=str(e)
            )
            return self._fallback_evaluation(analysis)

        log_agent_execution(
            agent_name=EVALUATOR,
            run_id=run_id,
            execution_time_ms=elapsed_ms(start_time),
            success=True
        )
        return EvaluationResult(
            quality_score=verdict.quality_score,
            has_entry_points=verdict.has_entry_points,
            has_implementation_guidelines=verdict.has_implementation_guidelines,
            has_relevant_recommendations=verdict.has_relevant_recommendations,
            specific_issues=list(verdict.specific_issues),
            improvement_suggestions=list(verdict.improvement_suggestions),
        )

    def _fallback_evaluation(self, analysis: MultiAgentAnalysis) -> EvaluationResult:
        return EvaluationResult(
            quality_score=FAIL_OPEN_SCORE if self.fail_open else FAIL_CLOSED_SCORE,
            has_entry_points=bool(analysis.project_context.entry_points),
            has_implementation_guidelines=bool(analysis.implementation_guidelines),
            has_relevant_recommendations=bool(analysis.capability_recommendations.essential),
            from_fallback=True,
        )

    async def optimize(self, analysis: MultiAgentAnalysis, evaluation: EvaluationResult,
                       run_id: Optional[str] = None) -> MultiAgentAnalysis:
        start_time = datetime.utcnow()
        budget = self.budget_manager.budget_for(OPTIMIZER)
        try:
            patch = await self.optimizer_model.generate_object(
                system=OPTIMIZER_SYSTEM_PROMPT,
                prompt=build_optimizer_prompt(analysis, evaluation),
                schema=OptimizerPatchModel,
                temperature=budget.temperature,
            )
        except Exception as e:
            log_agent_execution(
                agent_name=OPTIMIZER,
                run_id=run_id,
                execution_time_ms=elapsed_ms(start_time),
                success=False,
                used_fallback=True,
                error_message=str(e)
            )
            return analysis

        log_agent_execution(
            agent_name=OPTIMIZER,
            run_id=run_id,
            execution_time_ms=elapsed_ms(start_time),
            success=True
        )
        return apply_patch(analysis, patch)
