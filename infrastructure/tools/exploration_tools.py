# infrastructure/tools/exploration_tools.py
"""
Read-only tools the Context Enricher uses to look around a repository.

Every tool returns a string. Errors are reported to the model as text so a
bad path or an invalid pattern costs one step, not the whole exploration.
"""
import asyncio
import fnmatch
import json
import os
import re
from pathlib import Path
from typing import Iterator, List, Optional

from pydantic import BaseModel, Field

from infrastructure.llm.language_model import ToolSpec
from shared.logging import logger

IGNORED_DIRECTORIES = frozenset({"node_modules", ".git", "dist", "build", ".next", "__pycache__"})
MAX_LISTING_ENTRIES = 200
MAX_FILE_BYTES = 100_000
MAX_SEARCH_LINES = 100

class ListDirectoryArgs(BaseModel):
    path: str = Field(".", description='Relative path to the directory (use "." for project root)')
    recursive: bool = Field(False, description="List recursively (default false)")
    max_depth: int = Field(2, description="Max depth for recursive listing (default 2)")

class ReadFileArgs(BaseModel):
    path: str = Field(..., description="Relative path to the file from project root")
    start_line: Optional[int] = Field(None, ge=1, description="Start line (1-indexed)")
    end_line: Optional[int] = Field(None, ge=1, description="End line (inclusive)")

class SearchCodeArgs(BaseModel):
    pattern: str = Field(..., description="The regex pattern to search for")
    glob: Optional[str] = Field(None, description='Glob pattern like "*.tsx" or "src/**/*.ts"')
    literal: bool = Field(False, description="Treat the pattern as a literal string")
    max_results: int = Field(50, description="Max matching lines per file (default 50)")

class PackageInfoArgs(BaseModel):
    field: Optional[str] = Field(None, description="Specific field to get (scripts, dependencies, etc.)")

class ExplorationTools:
    """Filesystem exploration confined to one project root"""

    def __init__(self, project_root: str):
        self.project_root = Path(project_root).resolve()

    def _resolve(self, relative_path: str) -> Optional[Path]:
        candidate = (self.project_root / relative_path.replace("..", "")).resolve()
        if candidate != self.project_root and self.project_root not in candidate.parents:
            return None
        return candidate

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.project_root).as_posix()

    async def list_directory(self, path: str = ".", recursive: bool = False, max_depth: int = 2) -> str:
        directory = self._resolve(path)
        if directory is None:
            return "Invalid path: cannot access directories outside project"
        if not directory.exists():
            return f"Directory not found: {path}"
        if not directory.is_dir():
            return f"Path is not a directory: {path}"

        entries: List[str] = []

        def scan(current: Path, depth: int):
            if depth > max_depth or len(entries) >= MAX_LISTING_ENTRIES:
                return
            for child in sorted(current.iterdir(), key=lambda p: p.name):
                if child.name in IGNORED_DIRECTORIES:
                    continue
                prefix = "[dir] " if child.is_dir() else "[file] "
                entries.append(prefix + self._relative(child))
                if recursive and child.is_dir() and depth < max_depth:
                    scan(child, depth + 1)

        try:
            await asyncio.to_thread(scan, directory, 1)
        except OSError as e:
            return f"Error listing directory: {e}"
        return "\n".join(entries[:MAX_LISTING_ENTRIES])

    async def read_file(self, path: str, start_line: Optional[int] = None, end_line: Optional[int] = None) -> str:
        file_path = self._resolve(path)
        if file_path is None:
            return "Invalid path: cannot access files outside project"
        if not file_path.exists():
            return f"File not found: {path}"
        if file_path.is_dir():
            return f"Path is a directory, not a file: {path}"

        try:
            size = file_path.stat().st_size
            if size > MAX_FILE_BYTES and not (start_line or end_line):
                return f"File too large ({size} bytes). Use start_line/end_line to read a portion."
            content = await asyncio.to_thread(file_path.read_text, encoding="utf-8", errors="replace")
        except OSError as e:
            return f"Error reading file: {e}"

        if start_line or end_line:
            lines = content.split("\n")
            start = max(start_line or 1, 1) - 1
            end = end_line or len(lines)
            return "\n".join(lines[start:end])
        return content

    async def search_code(self, pattern: str, glob: Optional[str] = None,
                          literal: bool = False, max_results: int = 50) -> str:
        try:
            regex = re.compile(re.escape(pattern) if literal else pattern)
        except re.error as e:
            return f"Search error: {e}"

        def candidate_files() -> Iterator[Path]:
            for directory, dirnames, filenames in os.walk(self.project_root):
                # pruned in place so ignored trees are never entered
                dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
                for filename in sorted(filenames):
                    yield Path(directory) / filename

        def search() -> List[str]:
            matches: List[str] = []
            for file_path in candidate_files():
                if len(matches) >= MAX_SEARCH_LINES:
                    break
                relative = file_path.relative_to(self.project_root)
                if not file_path.is_file():
                    continue
                if glob and not (fnmatch.fnmatch(relative.as_posix(), glob) or fnmatch.fnmatch(file_path.name, glob)):
                    continue
                try:
                    if file_path.stat().st_size > MAX_FILE_BYTES * 10:
                        continue
                    text = file_path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError):
                    continue
                per_file = 0
                for line_number, line in enumerate(text.split("\n"), start=1):
                    if regex.search(line):
                        matches.append(f"{relative.as_posix()}:{line_number}:{line}")
                        per_file += 1
                        if per_file >= max_results:
                            break
            return matches

        matches = await asyncio.to_thread(search)
        if not matches:
            return "No matches found"
        return "\n".join(matches[:MAX_SEARCH_LINES])

    async def get_package_info(self, field: Optional[str] = None) -> str:
        manifest_path = self.project_root / "package.json"
        if not manifest_path.exists():
            return "No package.json found"

        try:
            manifest = json.loads(await asyncio.to_thread(manifest_path.read_text, encoding="utf-8"))
        except (OSError, ValueError) as e:
            return f"Error reading package.json: {e}"

        if field:
            if field not in manifest:
                return f'Field "{field}" not found'
            return json.dumps(manifest[field], indent=2)

        return json.dumps({
            "name": manifest.get("name"),
            "scripts": manifest.get("scripts"),
            "dependencies": sorted(manifest.get("dependencies") or {}),
            "devDependencies": sorted(manifest.get("devDependencies") or {}),
        }, indent=2)

    def as_tool_specs(self) -> List[ToolSpec]:
        return [
            ToolSpec(
                name="list_directory",
                description="List contents of a directory. Shows files and subdirectories.",
                parameters=ListDirectoryArgs,
                handler=self.list_directory,
            ),
            ToolSpec(
                name="read_file",
                description="Read the contents of a file. Use relative paths from project root.",
                parameters=ReadFileArgs,
                handler=self.read_file,
            ),
            ToolSpec(
                name="search_code",
                description=(
                    "Search the codebase with a regular expression. Use word boundaries (\\b) "
                    "when searching for symbols and glob to narrow by file type."
                ),
                parameters=SearchCodeArgs,
                handler=self.search_code,
            ),
            ToolSpec(
                name="get_package_info",
                description="Get package.json contents including scripts, dependencies, and metadata.",
                parameters=PackageInfoArgs,
                handler=self.get_package_info,
            ),
        ]

class BudgetedToolset:
    """Shares one invocation budget across a set of tools"""

    def __init__(self, tools: List[ToolSpec], max_invocations: int):
        self.max_invocations = max_invocations
        self.invocations = 0
        self.tools = [self._wrap(tool) for tool in tools]

    @property
    def exhausted(self) -> bool:
        return self.invocations >= self.max_invocations

    def _wrap(self, tool: ToolSpec) -> ToolSpec:
        async def handler(**kwargs) -> str:
            if self.exhausted:
                logger.info("Tool budget exhausted", tool_name=tool.name, max_invocations=self.max_invocations)
                return (
                    f"Tool budget exhausted ({self.max_invocations} calls). "
                    "Stop exploring and respond with the final JSON now."
                )
            self.invocations += 1
            return await tool.handler(**kwargs)

        return ToolSpec(
            name=tool.name,
            description=tool.description,
            parameters=tool.parameters,
            handler=handler,
        )
