# infrastructure/agents/worker_pool.py
from dataclasses import dataclass
from typing import List, Optional

from domain.models.stack import ScanResult
from domain.models.agent_context import AnalysisPlan, EnrichedContext, TechResearchResult
from application.services.fallbacks import default_enriched_context
from infrastructure.agents.context_enricher import ContextEnricher
from infrastructure.agents.tech_researcher import TechResearchPool
from shared.concurrency import settle_all
from shared.logging import logger

@dataclass(frozen=True)
class WorkerResults:
    enriched_context: EnrichedContext
    research: List[TechResearchResult]
    enricher_failed: bool = False
    failed_researchers: int = 0

class WorkerPool:
    """Phase 2: the context enricher and every tech researcher, settled together"""

    def __init__(self, enricher: ContextEnricher, research_pool: TechResearchPool):
        self.enricher = enricher
        self.research_pool = research_pool

    async def run(self, plan: AnalysisPlan, scan_result: ScanResult, run_id: Optional[str] = None) -> WorkerResults:
        technologies = list(plan.technologies_to_research)
        tasks = [self.enricher.enrich(plan, scan_result, run_id)]
        tasks.extend(self.research_pool.submit(technologies, plan.estimated_complexity, run_id))

        enricher_outcome, *research_outcomes = await settle_all(tasks)

        if enricher_outcome.ok:
            enriched_context = enricher_outcome.value
        else:
            logger.warning("Context enricher failed, using manifest defaults",
                           run_id=run_id, error=str(enricher_outcome.error))
            enriched_context = default_enriched_context(scan_result)

        research = []
        for technology, outcome in zip(technologies, research_outcomes):
            if outcome.ok:
                research.append(outcome.value)
            else:
                logger.warning("Tech researcher failed, dropping result",
                               run_id=run_id, technology=technology, error=str(outcome.error))

        failed = len(research_outcomes) - len(research)
        logger.info("Workers settled",
                    run_id=run_id,
                    research_results=len(research),
                    failed_researchers=failed,
                    enricher_failed=not enricher_outcome.ok)
        return WorkerResults(
            enriched_context=enriched_context,
            research=research,
            enricher_failed=not enricher_outcome.ok,
            failed_researchers=failed,
        )
