# tests/conftest.py
import pytest
from collections import deque
from typing import Any, Dict, List

from domain.models.stack import (
    DetectionResult,
    McpStack,
    PackageManifest,
    ScanResult,
    StackSummary,
    StackTesting,
)
from infrastructure.llm.language_model import StepResult, TextGeneration, ModelCallError


class ScriptedModel:
    """Language model double that replays queued responses.

    Queue a value to return it, or an exception instance to raise it. When a
    queue runs dry the call raises ModelCallError, which is what a broken
    provider looks like to the agents.
    """

    def __init__(self, texts=None, objects=None):
        self.texts = deque(texts or [])
        self.objects = deque(objects or [])
        self.text_calls: List[Dict[str, Any]] = []
        self.object_calls: List[Dict[str, Any]] = []

    async def generate_text(self, system, prompt, tools=None, max_steps=1,
                            max_output_tokens=None, temperature=None):
        self.text_calls.append({
            "system": system,
            "prompt": prompt,
            "tools": tools,
            "max_steps": max_steps,
            "max_output_tokens": max_output_tokens,
            "temperature": temperature,
        })
        if not self.texts:
            raise ModelCallError("no scripted text response")
        response = self.texts.popleft()
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, TextGeneration):
            return response
        return TextGeneration(text=response, steps=[StepResult(text=response)])

    async def generate_object(self, system, prompt, schema, temperature=None):
        self.object_calls.append({
            "system": system,
            "prompt": prompt,
            "schema": schema,
            "temperature": temperature,
        })
        if not self.objects:
            raise ModelCallError("no scripted object response")
        response = self.objects.popleft()
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, dict):
            return schema.model_validate(response)
        return response


class FailingModel:
    """Every call raises"""

    def __init__(self):
        self.calls = 0

    async def generate_text(self, *args, **kwargs):
        self.calls += 1
        raise ModelCallError("provider down")

    async def generate_object(self, *args, **kwargs):
        self.calls += 1
        raise ModelCallError("provider down")


@pytest.fixture
def nextjs_scan():
    """Next.js + Supabase project with Vitest and Playwright"""
    return ScanResult(
        project_root="/projects/shop",
        stack=StackSummary(
            framework=DetectionResult(name="Next.js", version="14.2.0", variant="app-router"),
            package_manager=DetectionResult(name="pnpm"),
            testing=StackTesting(
                unit=DetectionResult(name="Vitest"),
                e2e=DetectionResult(name="Playwright"),
            ),
            styling=DetectionResult(name="Tailwind CSS"),
            database=DetectionResult(name="Supabase"),
            auth=DetectionResult(name="Clerk"),
            deployment=(DetectionResult(name="Vercel"),),
        ),
        manifest=PackageManifest(
            name="shop",
            main="./src/index.ts",
            scripts={"dev": "next dev", "build": "next build", "test": "vitest", "lint": "next lint"},
        ),
    )


@pytest.fixture
def bare_scan():
    """Nothing detected and no manifest"""
    return ScanResult(project_root="/projects/empty", stack=StackSummary())


@pytest.fixture
def mcp_scan():
    return ScanResult(
        project_root="/projects/mcp-tools",
        stack=StackSummary(
            package_manager=DetectionResult(name="npm"),
            testing=StackTesting(unit=DetectionResult(name="Vitest")),
            mcp=McpStack(recommended=("github", "playwright"), is_project=True),
        ),
        manifest=PackageManifest(
            name="mcp-tools",
            bin={"mcp-tools": "./dist/cli.js"},
            scripts={"test": "vitest run", "build": "tsc", "typecheck": "tsc --noEmit"},
        ),
    )


@pytest.fixture
def scripted_model():
    """Factory: scripted_model(texts=[...], objects=[...])"""
    return ScriptedModel


@pytest.fixture
def failing_model():
    return FailingModel()
