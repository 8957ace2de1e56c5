# infrastructure/tools/docs_lookup.py
"""
Context7 documentation lookup.

Two steps, mirrored as two tools: resolve a library name to a Context7 id,
then query that library's docs for a topic.
"""
from typing import List, Optional

import httpx
from pydantic import BaseModel, Field

from infrastructure.llm.language_model import ToolSpec
from shared.logging import logger

CONTEXT7_BASE_URL = "https://context7.com/api/v1"
MAX_LIBRARY_MATCHES = 5

class ResolveLibraryArgs(BaseModel):
    library_name: str = Field(..., description="Library or framework name, e.g. 'next.js'")

class QueryDocsArgs(BaseModel):
    library_id: str = Field(..., description="Context7 id returned by resolve_library_id, e.g. '/vercel/next.js'")
    topic: Optional[str] = Field(None, description="Topic to focus on, e.g. 'testing' or 'routing'")
    tokens: int = Field(4000, ge=500, le=10000, description="Approximate size of the returned documentation")

class Context7DocsTools:
    def __init__(self, api_key: str, base_url: str = CONTEXT7_BASE_URL,
                 timeout_seconds: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self.transport,
        )

    async def resolve_library_id(self, library_name: str) -> str:
        try:
            async with self._client() as client:
                response = await client.get("/search", params={"query": library_name})
                response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Library lookup failed", library_name=library_name, error=str(e))
            return f"Library lookup error: {e}"

        results = (payload.get("results") if isinstance(payload, dict) else None) or []
        if not results:
            return f"No library found for '{library_name}'"

        lines: List[str] = ["Matching libraries:"]
        for result in results[:MAX_LIBRARY_MATCHES]:
            lines.append(f"- {result.get('id')}: {result.get('title', '')} {result.get('description', '')}".rstrip())
        return "\n".join(lines)

    async def query_docs(self, library_id: str, topic: Optional[str] = None, tokens: int = 4000) -> str:
        params = {"type": "txt", "tokens": tokens}
        if topic:
            params["topic"] = topic
        try:
            async with self._client() as client:
                response = await client.get("/" + library_id.lstrip("/"), params=params)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Documentation query failed", library_id=library_id, error=str(e))
            return f"Documentation query error: {e}"

        return response.text or f"No documentation found for {library_id}"

    def as_tool_specs(self) -> List[ToolSpec]:
        return [
            ToolSpec(
                name="resolve_library_id",
                description="Resolve a library name to a Context7 library id. Call this before query_docs.",
                parameters=ResolveLibraryArgs,
                handler=self.resolve_library_id,
            ),
            ToolSpec(
                name="query_docs",
                description="Fetch up-to-date documentation for a resolved library id, optionally focused on a topic.",
                parameters=QueryDocsArgs,
                handler=self.query_docs,
            ),
        ]
