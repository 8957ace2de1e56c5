# domain/models/agent_context.py
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from enum import Enum

class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class ResearchMode(str, Enum):
    """Which optional research tools a tech researcher may use"""
    FULL = "full"
    WEB_ONLY = "web-only"
    DOCS_ONLY = "docs-only"
    KNOWLEDGE_ONLY = "knowledge-only"

    @classmethod
    def from_capabilities(cls, capabilities: "AgentCapabilities") -> "ResearchMode":
        if capabilities.has_web_search and capabilities.has_docs_lookup:
            return cls.FULL
        if capabilities.has_web_search:
            return cls.WEB_ONLY
        if capabilities.has_docs_lookup:
            return cls.DOCS_ONLY
        return cls.KNOWLEDGE_ONLY

    @property
    def rank(self) -> int:
        return _RESEARCH_MODE_RANK[self]

_RESEARCH_MODE_RANK = {
    ResearchMode.KNOWLEDGE_ONLY: 0,
    ResearchMode.DOCS_ONLY: 1,
    ResearchMode.WEB_ONLY: 2,
    ResearchMode.FULL: 3,
}

@dataclass(frozen=True)
class AgentCapabilities:
    """Optional external tools available for this run"""
    has_web_search: bool = False
    has_docs_lookup: bool = False

@dataclass(frozen=True)
class AnalysisPlan:
    """Immutable plan that guides the worker agents"""
    areas_to_explore: List[str]
    technologies_to_research: List[str]
    questions_to_answer: List[str]
    estimated_complexity: Complexity = Complexity.MEDIUM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "areasToExplore": list(self.areas_to_explore),
            "technologiesToResearch": list(self.technologies_to_research),
            "questionsToAnswer": list(self.questions_to_answer),
            "estimatedComplexity": self.estimated_complexity.value,
        }

@dataclass(frozen=True)
class EnrichedContext:
    """Immutable findings from exploring the repository"""
    entry_points: List[str]
    key_directories: Dict[str, str]
    naming_conventions: str
    commands: Dict[str, str]
    answered_questions: Dict[str, str]
    project_type: str

@dataclass(frozen=True)
class TechResearchResult:
    """Immutable research findings for one technology"""
    technology: str
    best_practices: List[str]
    anti_patterns: List[str]
    testing_tips: List[str]
    documentation_hints: List[str]
    research_mode: ResearchMode

@dataclass(frozen=True)
class CapabilityRecommendations:
    """Integration servers derived from the stack without any model call"""
    e2e_testing: Optional[str] = None
    database: Optional[str] = None
    additional: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class ProjectContext:
    entry_points: List[str]
    key_directories: Dict[str, str]
    naming_conventions: str
    project_type: str

@dataclass(frozen=True)
class StackResearch:
    """Research from all technologies merged into one view"""
    best_practices: List[str]
    anti_patterns: List[str]
    testing_tools: List[str]
    debugging_tools: List[str]
    documentation_hints: List[str]
    research_mode: ResearchMode

@dataclass(frozen=True)
class RecommendationSet:
    essential: List[str]
    recommended: List[str]

@dataclass(frozen=True)
class MultiAgentAnalysis:
    """Final development-context artifact produced by the pipeline"""
    project_context: ProjectContext
    commands: Dict[str, str]
    implementation_guidelines: List[str]
    possible_missed_technologies: List[str]
    stack_research: StackResearch
    capability_recommendations: RecommendationSet

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectContext": {
                "entryPoints": list(self.project_context.entry_points),
                "keyDirectories": dict(self.project_context.key_directories),
                "namingConventions": self.project_context.naming_conventions,
                "projectType": self.project_context.project_type,
            },
            "commands": dict(self.commands),
            "implementationGuidelines": list(self.implementation_guidelines),
            "possibleMissedTechnologies": list(self.possible_missed_technologies),
            "stackResearch": {
                "bestPractices": list(self.stack_research.best_practices),
                "antiPatterns": list(self.stack_research.anti_patterns),
                "testingTools": list(self.stack_research.testing_tools),
                "debuggingTools": list(self.stack_research.debugging_tools),
                "documentationHints": list(self.stack_research.documentation_hints),
                "researchMode": self.stack_research.research_mode.value,
            },
            "capabilityRecommendations": {
                "essential": list(self.capability_recommendations.essential),
                "recommended": list(self.capability_recommendations.recommended),
            },
        }
