# infrastructure/llm/guarded_model.py
from typing import List, Optional, Type

from infrastructure.llm.language_model import LanguageModel, TextGeneration, ToolSpec, SchemaT
from infrastructure.resilience.circuit_breaker import CircuitBreakerRegistry

class GuardedLanguageModel:
    """Routes one agent's model calls through that agent's circuit breaker"""

    def __init__(self, model: LanguageModel, registry: CircuitBreakerRegistry, agent_name: str):
        self.model = model
        self.registry = registry
        self.agent_name = agent_name

    async def generate_text(
        self,
        system: str,
        prompt: str,
        tools: Optional[List[ToolSpec]] = None,
        max_steps: int = 1,
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> TextGeneration:
        breaker = await self.registry.get_breaker(self.agent_name)
        return await breaker.call(
            self.model.generate_text,
            system=system,
            prompt=prompt,
            tools=tools,
            max_steps=max_steps,
            max_output_tokens=max_output_tokens,
            temperature=temperature,
        )

    async def generate_object(
        self,
        system: str,
        prompt: str,
        schema: Type[SchemaT],
        temperature: Optional[float] = None,
    ) -> SchemaT:
        breaker = await self.registry.get_breaker(self.agent_name)
        return await breaker.call(
            self.model.generate_object,
            system=system,
            prompt=prompt,
            schema=schema,
            temperature=temperature,
        )

def guard(model: LanguageModel, registry: Optional[CircuitBreakerRegistry], agent_name: str) -> LanguageModel:
    if registry is None:
        return model
    return GuardedLanguageModel(model, registry, agent_name)
