"""
agent.tools.web - Web search, raw HTTP requests and opening a browser.

requests is synchronous, so calls run in the default executor to keep the
event loop free.
"""

from __future__ import annotations

import asyncio
import html
import json
import logging
import re
import webbrowser
from typing import Optional

import requests
from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)

USER_AGENT = "agent-runtime/1.0"
SEARCH_URL = "https://html.duckduckgo.com/html/"
MAX_SNIPPETS = 5
REQUEST_TIMEOUT = 30

_SNIPPET_RE = re.compile(r'<a class="result__snippet"[^>]*>(.*?)</a>', re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")


def extract_snippets(page: str, limit: int = MAX_SNIPPETS) -> list[str]:
    """Plain-text result snippets from a DuckDuckGo HTML results page."""
    snippets = []
    for match in _SNIPPET_RE.finditer(page):
        text = html.unescape(_TAG_RE.sub("", match.group(1))).strip()
        if text:
            snippets.append(" ".join(text.split()))
        if len(snippets) == limit:
            break
    return snippets


# ---------------------------------------------------------------------------
# web_search
# ---------------------------------------------------------------------------

class WebSearchInput(BaseModel):
    query: str = Field(min_length=1, description="Search query")


class WebSearchTool(BaseTool):

    name = "web_search"
    description = (
        "Search the web. Use when you need current information or don't know "
        "something. Returns up to 5 result snippets."
    )

    def get_schema(self) -> type[BaseModel]:
        return WebSearchInput

    async def execute(self, ctx: SessionContext, query: str = "", **kwargs) -> ToolResult:
        logger.info("SEARCH %s", query)
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, lambda: requests.get(
                SEARCH_URL,
                params={"q": query},
                headers={"User-Agent": USER_AGENT},
                timeout=REQUEST_TIMEOUT,
            ))
            response.raise_for_status()
        except requests.RequestException as exc:
            return ToolResult(output=f"Error: Search failed: {exc}")

        snippets = extract_snippets(response.text)
        await ctx.record_action("web_search", query=query[:200])
        return ToolResult(output="\n\n".join(snippets) if snippets else "No results found")


# ---------------------------------------------------------------------------
# http_request
# ---------------------------------------------------------------------------

class HttpRequestInput(BaseModel):
    url: str = Field(description="URL to request")
    method: str = Field(default="GET", description="GET, POST, PUT, PATCH or DELETE")
    body: Optional[str] = Field(default=None, description="Request body (for POST/PUT)")
    headers: Optional[str] = Field(default=None, description="JSON object of headers")


class HttpRequestTool(BaseTool):

    name = "http_request"
    description = "Make an HTTP request to an API and return the status and body."

    def __init__(self, output_limit: int = 50_000):
        self._output_limit = output_limit

    def get_schema(self) -> type[BaseModel]:
        return HttpRequestInput

    async def execute(
        self,
        ctx: SessionContext,
        url: str = "",
        method: str = "GET",
        body: Optional[str] = None,
        headers: Optional[str] = None,
        **kwargs,
    ) -> ToolResult:
        method = (method or "GET").upper()
        try:
            header_map = json.loads(headers) if headers else {}
        except json.JSONDecodeError as exc:
            return ToolResult(output=f"Error: headers is not valid JSON: {exc}")
        if not isinstance(header_map, dict):
            return ToolResult(output="Error: headers must be a JSON object")

        logger.info("HTTP %s %s", method, url)
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, lambda: requests.request(
                method, url, data=body, headers=header_map, timeout=REQUEST_TIMEOUT,
            ))
        except requests.RequestException as exc:
            return ToolResult(output=f"Error: {exc}")

        text = response.text
        if len(text) > self._output_limit:
            text = text[:self._output_limit] + "\n[TRUNCATED]"
        return ToolResult(output=f"Status: {response.status_code}\n\n{text}")


# ---------------------------------------------------------------------------
# open_browser
# ---------------------------------------------------------------------------

class OpenBrowserInput(BaseModel):
    url: str = Field(description="URL to open")


class OpenBrowserTool(BaseTool):

    name = "open_browser"
    description = "Open a URL in the default web browser."

    def get_schema(self) -> type[BaseModel]:
        return OpenBrowserInput

    async def execute(self, ctx: SessionContext, url: str = "", **kwargs) -> ToolResult:
        logger.info("BROWSER %s", url)
        loop = asyncio.get_running_loop()
        opened = await loop.run_in_executor(None, webbrowser.open, url)
        if not opened:
            return ToolResult(output=f"Error: No browser available to open {url}")
        ctx.log_automation(tool=self.name, args={"url": url}, result="opened")
        return ToolResult(output=f"Opened browser to: {url}")
