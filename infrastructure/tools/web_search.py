# infrastructure/tools/web_search.py
from typing import List, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from infrastructure.llm.language_model import ToolSpec
from shared.logging import logger

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

class WebSearchArgs(BaseModel):
    query: str = Field(..., description="Search query - be specific about what you want to find")
    search_depth: Literal["basic", "advanced"] = Field("basic", description='Use "advanced" for comprehensive results')
    max_results: int = Field(5, ge=1, le=10, description="Maximum number of results (default 5)")

class TavilySearchTool:
    """Web search for current best practices through the Tavily API"""

    def __init__(self, api_key: str, timeout_seconds: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def search(self, query: str, search_depth: str = "basic", max_results: int = 5) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(TAVILY_SEARCH_URL, json={
                    "api_key": self.api_key,
                    "query": query,
                    "search_depth": search_depth,
                    "max_results": max_results,
                    "include_answer": True,
                    "include_raw_content": False,
                })
            if response.status_code != 200:
                return f"Search failed: {response.status_code} - {response.text}"
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Web search request failed", query=query, error=str(e))
            return f"Search error: {e}"

        if not isinstance(data, dict):
            return "Search error: unexpected response body"

        lines: List[str] = []
        if data.get("answer"):
            lines.append(f"Summary: {data['answer']}")
            lines.append("")

        lines.append("Sources:")
        for result in data.get("results") or []:
            lines.append(f"- {result.get('title', '')}")
            lines.append(f"  URL: {result.get('url', '')}")
            lines.append(f"  {(result.get('content') or '')[:300]}...")
            lines.append("")
        return "\n".join(lines)

    def as_tool_spec(self) -> ToolSpec:
        return ToolSpec(
            name="web_search",
            description=(
                "Search the web for current best practices, documentation, and recent information: "
                "testing patterns, library examples and recent changes."
            ),
            parameters=WebSearchArgs,
            handler=self.search,
        )
