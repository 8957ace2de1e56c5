# infrastructure/storage/context_store.py
"""
Persisted development context.

The last analysis of a project is kept in `.devcontext/context.json` under
the project root, stamped with a format version, the analysis time and,
when the project is a git checkout, the commit and branch it describes.
"""
import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from domain.models.stack import DetectionResult, ScanResult
from domain.models.agent_context import MultiAgentAnalysis
from shared.logging import logger

CONTEXT_VERSION = 1
CONTEXT_DIRECTORY = ".devcontext"
CONTEXT_FILENAME = "context.json"

class ContextFileError(Exception):
    """The context file exists but cannot be used"""
    pass

def _name(detection: Optional[DetectionResult]) -> Optional[str]:
    return detection.name if detection else None

def persisted_scan(scan_result: ScanResult) -> Dict[str, Any]:
    stack = scan_result.stack
    data: Dict[str, Any] = {
        "testing": {"unit": _name(stack.testing.unit), "e2e": _name(stack.testing.e2e)},
        "styling": _name(stack.styling),
        "database": _name(stack.database),
        "orm": _name(stack.orm),
        "auth": _name(stack.auth),
    }
    if stack.framework:
        data["framework"] = stack.framework.name
        if stack.framework.version:
            data["frameworkVersion"] = stack.framework.version
        if stack.framework.variant:
            data["frameworkVariant"] = stack.framework.variant
    if stack.package_manager:
        data["packageManager"] = stack.package_manager.name
    return data

def persisted_analysis(analysis: MultiAgentAnalysis) -> Dict[str, Any]:
    context = analysis.project_context
    return {
        "projectContext": {
            "entryPoints": list(context.entry_points),
            "keyDirectories": dict(context.key_directories),
            "namingConventions": context.naming_conventions,
        },
        "commands": dict(analysis.commands),
        "implementationGuidelines": list(analysis.implementation_guidelines),
        "technologyPractices": {
            "projectType": context.project_type,
            "practices": list(analysis.stack_research.best_practices),
            "antiPatterns": list(analysis.stack_research.anti_patterns),
        },
    }

def context_age(context: Dict[str, Any], now: Optional[datetime] = None) -> Tuple[int, str]:
    """Milliseconds since the context was written and a human-readable form"""
    analyzed_at = datetime.fromisoformat(context["lastAnalyzedAt"].replace("Z", "+00:00"))
    if analyzed_at.tzinfo is None:
        analyzed_at = analyzed_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    ms = max(0, int((now - analyzed_at).total_seconds() * 1000))

    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    for amount, unit in ((days, "day"), (hours, "hour"), (minutes, "minute")):
        if amount > 0:
            return ms, f"{amount} {unit}{'' if amount == 1 else 's'}"
    return ms, f"{seconds} second{'' if seconds == 1 else 's'}"

async def _git(project_root: Path, *args: str) -> Optional[str]:
    try:
        process = await asyncio.create_subprocess_exec(
            "git", *args,
            cwd=str(project_root),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await process.communicate()
    except OSError:
        return None
    if process.returncode != 0:
        return None
    return stdout.decode().strip() or None

class ContextStore:
    def __init__(self, project_root: str):
        self.project_root = Path(project_root)

    @property
    def path(self) -> Path:
        return self.project_root / CONTEXT_DIRECTORY / CONTEXT_FILENAME

    async def save(self, analysis: MultiAgentAnalysis, scan_result: ScanResult) -> Dict[str, Any]:
        context: Dict[str, Any] = {
            "version": CONTEXT_VERSION,
            "lastAnalyzedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        commit_hash = await _git(self.project_root, "rev-parse", "HEAD")
        branch = await _git(self.project_root, "rev-parse", "--abbrev-ref", "HEAD")
        if commit_hash:
            context["gitCommitHash"] = commit_hash
        if branch:
            context["gitBranch"] = branch
        context["scanResult"] = persisted_scan(scan_result)
        context["aiAnalysis"] = persisted_analysis(analysis)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(context, indent=2), encoding="utf-8")
        logger.info("Context saved", path=str(self.path), git_commit=commit_hash)
        return context

    def load(self) -> Optional[Dict[str, Any]]:
        """None when no context was saved; ContextFileError when it is unusable"""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            context = json.loads(raw)
        except ValueError as e:
            raise ContextFileError(f"Failed to parse {self.path}: invalid JSON") from e

        if (
            not isinstance(context, dict)
            or not isinstance(context.get("version"), int)
            or isinstance(context.get("version"), bool)
            or not isinstance(context.get("lastAnalyzedAt"), str)
        ):
            raise ContextFileError(
                f"Failed to parse {self.path}: missing required fields (version, lastAnalyzedAt)"
            )
        return context
