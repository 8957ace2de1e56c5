# tests/unit/infrastructure/tools/test_research_tools.py
import json
import httpx
import pytest

from infrastructure.tools.web_search import TAVILY_SEARCH_URL, TavilySearchTool
from infrastructure.tools.docs_lookup import Context7DocsTools

def transport_for(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)

class TestTavilySearchTool:
    """Test web search formatting and error reporting"""

    @pytest.mark.asyncio
    async def test_search_formats_answer_and_sources(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={
                "answer": "Use route handlers for APIs.",
                "results": [{"title": "Route Handlers", "url": "https://nextjs.org/docs", "content": "Route handlers let you..."}],
            })

        tool = TavilySearchTool("tvly-key", transport=transport_for(handler))
        output = await tool.search("Next.js route handler patterns", max_results=3)

        assert str(requests[0].url) == TAVILY_SEARCH_URL
        body = json.loads(requests[0].content)
        assert body["api_key"] == "tvly-key"
        assert body["max_results"] == 3
        assert output.startswith("Summary: Use route handlers for APIs.")
        assert "- Route Handlers" in output
        assert "  URL: https://nextjs.org/docs" in output

    @pytest.mark.asyncio
    async def test_non_200_is_reported(self):
        tool = TavilySearchTool("bad-key", transport=transport_for(lambda request: httpx.Response(401, text="unauthorized")))

        assert await tool.search("anything") == "Search failed: 401 - unauthorized"

    @pytest.mark.asyncio
    async def test_transport_error_is_reported(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        tool = TavilySearchTool("tvly-key", transport=transport_for(handler))

        assert await tool.search("anything") == "Search error: connection refused"

    @pytest.mark.asyncio
    async def test_non_json_body_is_reported(self):
        gateway_page = lambda request: httpx.Response(200, text="<html>gateway</html>")
        tool = TavilySearchTool("tvly-key", transport=transport_for(gateway_page))

        assert (await tool.search("express middleware")).startswith("Search error:")

    @pytest.mark.asyncio
    async def test_non_object_body_is_reported(self):
        tool = TavilySearchTool("tvly-key", transport=transport_for(lambda request: httpx.Response(200, json=[1, 2])))

        assert await tool.search("anything") == "Search error: unexpected response body"

    @pytest.mark.asyncio
    async def test_tool_spec_validates_depth(self):
        spec = TavilySearchTool("tvly-key").as_tool_spec()

        assert spec.name == "web_search"
        with pytest.raises(Exception):
            await spec.invoke({"query": "x", "search_depth": "deepest"})

class TestContext7DocsTools:
    """Test documentation lookup"""

    @pytest.mark.asyncio
    async def test_resolve_library_id(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/search"
            assert request.url.params["query"] == "next.js"
            assert request.headers["Authorization"] == "Bearer ctx7-key"
            return httpx.Response(200, json={"results": [
                {"id": "/vercel/next.js", "title": "Next.js", "description": "The React framework"},
            ]})

        tools = Context7DocsTools("ctx7-key", transport=transport_for(handler))

        assert await tools.resolve_library_id("next.js") == (
            "Matching libraries:\n- /vercel/next.js: Next.js The React framework"
        )

    @pytest.mark.asyncio
    async def test_resolve_without_results(self):
        tools = Context7DocsTools("ctx7-key", transport=transport_for(lambda request: httpx.Response(200, json={"results": []})))

        assert await tools.resolve_library_id("left-pad-2") == "No library found for 'left-pad-2'"

    @pytest.mark.asyncio
    async def test_resolve_non_json_body(self):
        gateway_page = lambda request: httpx.Response(200, text="<html>gateway</html>")
        tools = Context7DocsTools("ctx7-key", transport=transport_for(gateway_page))

        assert (await tools.resolve_library_id("next.js")).startswith("Library lookup error:")

    @pytest.mark.asyncio
    async def test_query_docs(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/vercel/next.js"
            assert request.url.params["type"] == "txt"
            assert request.url.params["topic"] == "routing"
            return httpx.Response(200, text="App Router uses folders for routes.")

        tools = Context7DocsTools("ctx7-key", transport=transport_for(handler))

        assert await tools.query_docs("/vercel/next.js", topic="routing") == "App Router uses folders for routes."

    @pytest.mark.asyncio
    async def test_query_docs_http_error(self):
        tools = Context7DocsTools("ctx7-key", transport=transport_for(lambda request: httpx.Response(500)))

        assert (await tools.query_docs("/vercel/next.js")).startswith("Documentation query error:")
