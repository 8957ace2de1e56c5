# infrastructure/llm/language_model.py
"""
Contract between the agents and whatever language model backs them.

The pipeline never talks to a provider directly. A collaborator supplies an
object with `generate_text` (free text, optionally tool-augmented and
multi-step) and `generate_object` (a single call constrained to a pydantic
schema). Both raise on provider failure; agents turn those errors into
deterministic fallbacks.
"""
import importlib
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)

class ModelUnavailableError(Exception):
    """No language model is configured for this process"""
    pass

class ModelCallError(Exception):
    """The provider rejected or failed a call"""
    pass

@dataclass(frozen=True)
class ToolSpec:
    """A tool the model may invoke during a multi-step generation"""
    name: str
    description: str
    parameters: Type[BaseModel]
    handler: Callable[..., Awaitable[str]]

    async def invoke(self, arguments: Dict[str, Any]) -> str:
        validated = self.parameters.model_validate(arguments or {})
        return await self.handler(**validated.model_dump())

@dataclass(frozen=True)
class ToolCall:
    tool_name: str
    arguments: Dict[str, Any]
    result: Optional[str] = None

@dataclass(frozen=True)
class StepResult:
    """Text and tool calls produced by one generation step"""
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)

@dataclass(frozen=True)
class TextGeneration:
    text: str
    steps: List[StepResult] = field(default_factory=list)

    @property
    def step_texts(self) -> List[str]:
        return [step.text for step in self.steps]

class LanguageModel(Protocol):
    async def generate_text(
        self,
        system: str,
        prompt: str,
        tools: Optional[List[ToolSpec]] = None,
        max_steps: int = 1,
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> TextGeneration:
        ...

    async def generate_object(
        self,
        system: str,
        prompt: str,
        schema: Type[SchemaT],
        temperature: Optional[float] = None,
    ) -> SchemaT:
        ...

class UnavailableLanguageModel:
    """Stand-in used when no model factory is configured; every call fails"""

    async def generate_text(self, system, prompt, tools=None, max_steps=1,
                            max_output_tokens=None, temperature=None) -> TextGeneration:
        raise ModelUnavailableError("No language model configured")

    async def generate_object(self, system, prompt, schema, temperature=None):
        raise ModelUnavailableError("No language model configured")

def load_language_model(factory_path: Optional[str]) -> LanguageModel:
    """Build the model from a `package.module:callable` path, or the unavailable stand-in"""
    if not factory_path:
        return UnavailableLanguageModel()

    module_name, _, attribute = factory_path.partition(":")
    if not attribute:
        raise ValueError(f"Model factory must look like 'module:callable', got {factory_path!r}")

    factory = getattr(importlib.import_module(module_name), attribute)
    return factory()
