"""Web Handlers: WebFetch and WebSearch over httpx.

Invariants:
    - Only http(s) URLs are fetched; http:// is upgraded to https://
    - JSON bodies are pretty-printed and capped at 50000 chars; HTML is converted to
      markdown and plain text kept as is, both capped at 30000 chars; other content
      types are refused
    - Search results are capped at 1-10 (default 5)
    - Network failures become is_error results, never exceptions

Design Decisions:
    - httpx.AsyncClient per call with an explicit timeout: no connection state
      outlives a tool call
    - The transport is injectable so tests run against httpx.MockTransport
    - DuckDuckGo HTML endpoint first, Instant Answer API as fallback: no API key needed
    - BeautifulSoup reads the markup (result links, script removal), html2text renders
      pages as markdown the model can quote links from
"""

import json
import logging
from dataclasses import dataclass
from urllib.parse import parse_qs, quote_plus, urlsplit, urlunsplit

import html2text
import httpx
from bs4 import BeautifulSoup

from agentweb.core.domain_types import ToolResult
from agentweb.core.text_format import RULE, truncate
from agentweb.services.tool_input import clamped_int, optional_str, require_str

logger = logging.getLogger(__name__)

JSON_LIMIT = 50_000
TEXT_LIMIT = 30_000
RAW_HTML_LIMIT = 500_000

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; agentweb/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}
SEARCH_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": FETCH_HEADERS["Accept"],
    "Accept-Language": FETCH_HEADERS["Accept-Language"],
}

DDG_HTML_URL = "https://html.duckduckgo.com/html/?q={query}"
DDG_API_URL = "https://api.duckduckgo.com/?q={query}&format=json&no_html=1"


@dataclass(frozen=True)
class SearchHit:
    title: str
    url: str
    snippet: str = ""


def upgrade_url(url: str) -> str | None:
    """https URL for `url`, or None when it is not an http(s) URL."""
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return urlunsplit(("https",) + tuple(parts)[1:])


def html_to_markdown(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    converter = html2text.HTML2Text()
    converter.body_width = 0
    converter.ignore_images = True
    return converter.handle(str(soup)).strip()


def _unwrap_redirect(href: str) -> str:
    target = parse_qs(urlsplit(href).query).get("uddg")
    return target[0] if target else href


def parse_search_results(html: str, limit: int) -> list[SearchHit]:
    soup = BeautifulSoup(html, "html.parser")
    hits: list[SearchHit] = []
    for link in soup.select("a.result__a"):
        url = _unwrap_redirect(link.get("href", ""))
        title = link.get_text(" ", strip=True)
        if not title or not url.startswith("http"):
            continue
        result = link.find_parent(class_="result")
        snippet = result.select_one(".result__snippet") if result else None
        hits.append(SearchHit(title, url, snippet.get_text(" ", strip=True) if snippet else ""))
        if len(hits) >= limit:
            return hits
    if hits:
        return hits
    # markup without result__ classes: fall back to bare redirect links
    for link in soup.select('a[href*="uddg="]'):
        url = _unwrap_redirect(link["href"])
        title = link.get_text(" ", strip=True)
        if title and url.startswith("http"):
            hits.append(SearchHit(title, url))
        if len(hits) >= limit:
            break
    return hits


class WebHandlers:

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self, headers: dict) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers=headers,
            follow_redirects=True,
            transport=self._transport,
        )

    async def web_fetch(self, working_dir: str, input_data: dict) -> ToolResult:
        url = require_str(input_data, "url")
        prompt = require_str(input_data, "prompt")
        target = upgrade_url(url)
        if target is None:
            return ToolResult.error(f"Invalid URL (only http and https are supported): {url}")

        try:
            async with self._client(FETCH_HEADERS) as client:
                response = await client.get(target)
        except httpx.TimeoutException:
            return ToolResult.error(f"Request timed out after {self.timeout_seconds:g}s: {target}")
        except httpx.HTTPError as e:
            return ToolResult.error(f"Request failed: {e}")

        if response.is_error:
            return ToolResult.error(f"HTTP error: {response.status_code} {response.reason_phrase}")

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                body = json.dumps(response.json(), indent=2, ensure_ascii=False)
            except ValueError:
                return ToolResult.error("Response claims to be JSON but does not parse")
            body = truncate(body, JSON_LIMIT, "\n... (JSON truncated)")
        elif "text/html" in content_type:
            body = html_to_markdown(response.text[:RAW_HTML_LIMIT])
            body = truncate(body, TEXT_LIMIT, "\n... (content truncated)")
        elif "text/plain" in content_type:
            body = truncate(response.text, TEXT_LIMIT, "\n... (content truncated)")
        else:
            return ToolResult.error(f"Unsupported content type: {content_type or 'unknown'}")

        return ToolResult(f"URL: {response.url}\nGoal: {prompt}\n{RULE}\n\n{body}")

    async def web_search(self, working_dir: str, input_data: dict) -> ToolResult:
        query = require_str(input_data, "query").strip()
        if not query:
            return ToolResult.error("Search query must not be empty")
        limit = clamped_int(input_data, "limit", 5, 1, 10)
        site = optional_str(input_data, "site")
        search_query = f"site:{site} {query}" if site else query

        try:
            async with self._client(SEARCH_HEADERS) as client:
                response = await client.get(DDG_HTML_URL.format(query=quote_plus(search_query)))
                response.raise_for_status()
            hits = parse_search_results(response.text, limit)
        except httpx.HTTPError as e:
            logger.warning("HTML search failed, trying instant answers", extra={"error": str(e)})
            return await self._instant_answer(query, search_query, e)

        if not hits:
            return ToolResult(f'No results found for "{query}"')

        lines = [f'Search: "{query}"']
        if site:
            lines.append(f"Site: {site}")
        lines.append(f"Found {len(hits)} results:\n")
        for number, hit in enumerate(hits, start=1):
            lines.append(f"{number}. {hit.title}")
            lines.append(f"   {hit.url}")
            if hit.snippet:
                lines.append(f"   {hit.snippet}")
            lines.append("")
        return ToolResult("\n".join(lines).rstrip())

    async def _instant_answer(
        self, query: str, search_query: str, cause: Exception,
    ) -> ToolResult:
        try:
            async with self._client(SEARCH_HEADERS) as client:
                response = await client.get(DDG_API_URL.format(query=quote_plus(search_query)))
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError):
            return ToolResult.error(f"Web search failed: {cause}")

        abstract = data.get("Abstract") if isinstance(data, dict) else None
        if not abstract:
            return ToolResult.error(f"Web search failed: {cause}")
        lines = [f'Search: "{query}"', "", "Instant answer:", abstract]
        if data.get("AbstractURL"):
            lines += ["", f"Source: {data['AbstractURL']}"]
        return ToolResult("\n".join(lines))
