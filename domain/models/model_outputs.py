# domain/models/model_outputs.py
"""
Pydantic schemas for schema-constrained model calls.

The language model returns instances of these classes already validated,
so the planning, synthesis, evaluation and optimization agents never need
JSON repair. Field names serialise as camelCase.
"""
from typing import List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from domain.models.agent_context import Complexity


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisPlanModel(_CamelModel):
    areas_to_explore: List[str] = Field(..., description="Key directories and files to explore")
    technologies_to_research: List[str] = Field(..., description="Technologies to research in depth")
    questions_to_answer: List[str] = Field(..., description="Specific questions that need answers")
    estimated_complexity: Complexity = Field(..., description="Estimated project complexity")


class SynthesisDraftModel(_CamelModel):
    implementation_guidelines: List[str] = Field(..., description="Short, actionable implementation guidelines")
    possible_missed_technologies: List[str] = Field(default_factory=list, description="Technologies that may have been missed")


class EvaluationModel(_CamelModel):
    quality_score: float = Field(..., ge=1, le=10, description="Overall quality score from 1-10")
    has_entry_points: bool = Field(..., description="Whether entry points are identified")
    has_implementation_guidelines: bool = Field(..., description="Whether implementation guidelines are provided")
    has_relevant_recommendations: bool = Field(..., description="Whether relevant integration servers are recommended")
    specific_issues: List[str] = Field(default_factory=list, description="Specific issues found in the analysis")
    improvement_suggestions: List[str] = Field(default_factory=list, description="Suggestions for improving the analysis")


class OptimizerPatchModel(_CamelModel):
    improved_guidelines: List[str] = Field(default_factory=list, description="Improved implementation guidelines")
    additional_entry_points: List[str] = Field(default_factory=list, description="Additional entry points to add (empty array if none)")
    additional_recommendations: List[str] = Field(default_factory=list, description="Additional integration servers to recommend (empty array if none)")
