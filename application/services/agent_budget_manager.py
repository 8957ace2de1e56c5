# application/services/agent_budget_manager.py
from dataclasses import dataclass
from typing import Dict, Optional

from domain.models.agent_context import Complexity
from shared.logging import logger

PLANNING_AGENT = "planning_agent"
CONTEXT_ENRICHER = "context_enricher"
TECH_RESEARCHER = "tech_researcher"
SYNTHESIS_AGENT = "synthesis_agent"
EVALUATOR = "evaluator"
OPTIMIZER = "optimizer"

@dataclass(frozen=True)
class AgentBudget:
    """Hard caps carried by a single model call"""
    max_steps: int
    max_output_tokens: int
    temperature: float
    tool_invocations: int = 0

class AgentBudgetManager:
    """Per-agent step and token caps, scaled by the plan's estimated complexity"""

    def __init__(self, overrides: Optional[Dict[Complexity, Dict[str, AgentBudget]]] = None):
        # Default budget allocations by complexity
        self.budget_templates: Dict[Complexity, Dict[str, AgentBudget]] = {
            Complexity.LOW: {
                PLANNING_AGENT: AgentBudget(max_steps=1, max_output_tokens=1000, temperature=0.3),
                CONTEXT_ENRICHER: AgentBudget(max_steps=10, max_output_tokens=2500, temperature=0.3, tool_invocations=8),
                TECH_RESEARCHER: AgentBudget(max_steps=3, max_output_tokens=1500, temperature=0.3, tool_invocations=2),
                SYNTHESIS_AGENT: AgentBudget(max_steps=1, max_output_tokens=1000, temperature=0.3),
                EVALUATOR: AgentBudget(max_steps=1, max_output_tokens=800, temperature=0.2),
                OPTIMIZER: AgentBudget(max_steps=1, max_output_tokens=1000, temperature=0.3),
            },
            Complexity.MEDIUM: {
                PLANNING_AGENT: AgentBudget(max_steps=1, max_output_tokens=1000, temperature=0.3),
                CONTEXT_ENRICHER: AgentBudget(max_steps=12, max_output_tokens=3000, temperature=0.3, tool_invocations=10),
                TECH_RESEARCHER: AgentBudget(max_steps=3, max_output_tokens=2000, temperature=0.3, tool_invocations=2),
                SYNTHESIS_AGENT: AgentBudget(max_steps=1, max_output_tokens=1500, temperature=0.3),
                EVALUATOR: AgentBudget(max_steps=1, max_output_tokens=1000, temperature=0.2),
                OPTIMIZER: AgentBudget(max_steps=1, max_output_tokens=1500, temperature=0.3),
            },
            Complexity.HIGH: {
                PLANNING_AGENT: AgentBudget(max_steps=1, max_output_tokens=1500, temperature=0.3),
                CONTEXT_ENRICHER: AgentBudget(max_steps=14, max_output_tokens=4000, temperature=0.3, tool_invocations=12),
                TECH_RESEARCHER: AgentBudget(max_steps=4, max_output_tokens=2500, temperature=0.3, tool_invocations=3),
                SYNTHESIS_AGENT: AgentBudget(max_steps=1, max_output_tokens=2000, temperature=0.3),
                EVALUATOR: AgentBudget(max_steps=1, max_output_tokens=1000, temperature=0.2),
                OPTIMIZER: AgentBudget(max_steps=1, max_output_tokens=2000, temperature=0.3),
            },
        }

        if overrides:
            for complexity, budgets in overrides.items():
                self.budget_templates[complexity].update(budgets)

    def budget_for(self, agent_name: str, complexity: Complexity = Complexity.MEDIUM) -> AgentBudget:
        """Budget for one agent; unknown agents get the medium planning budget"""
        template = self.budget_templates.get(complexity, self.budget_templates[Complexity.MEDIUM])
        budget = template.get(agent_name)
        if budget is None:
            logger.warning("No budget template for agent", agent_name=agent_name, complexity=complexity.value)
            return self.budget_templates[Complexity.MEDIUM][PLANNING_AGENT]
        return budget
