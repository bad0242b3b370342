"""
context7_client.py
==================
Client for the Context7 documentation API.
Fetches up-to-date library documentation to ground the code review.

Every failure here (bad status, wrong content type, unreadable body,
timeout) means "no documentation for this library" and is logged,
never raised. Documentation enrichment is best-effort.
"""

import json
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from docreview.core.config import settings
from docreview.models.schemas import PhaseOutcome

JSON_ACCEPT = "application/json"
DOCS_ACCEPT = "application/json, text/markdown, text/plain"

# Non-JSON content types whose body is usable as documentation as-is
TEXT_CONTENT_TYPES = ("text/markdown", "text/plain")


class Context7Client:
    """Resolves library names to Context7 IDs and fetches their docs."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else (settings.CONTEXT7_API_KEY or "")
        self.base_url = (base_url or settings.CONTEXT7_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CONTEXT7_TIMEOUT
        self._transport = transport

        if not self.api_key:
            logger.info("No CONTEXT7_API_KEY set, documentation requests are unauthenticated")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.api_key)

    def _headers(self, accept: str) -> Dict[str, str]:
        headers = {"Accept": accept}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get(
        self, url: str, accept: str, params: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.get(url, params=params, headers=self._headers(accept))

    # ─────────────────────────────────────────────
    # IDENTIFIER RESOLUTION
    # ─────────────────────────────────────────────

    async def resolve_library_id(self, library_name: str) -> Optional[str]:
        """
        Resolve a library name (e.g. "Supabase", "Next.js") to a Context7 ID.

        Looks at the search response in order: `results[0].id` (or
        `results[0].library_id`), then `libraries[0].id`, then a top-level
        `id`. Returns None when nothing matches or the lookup fails.
        """
        library_name = (library_name or "").strip()
        if not library_name:
            return None

        url = f"{self.base_url}/search"
        logger.debug(f"Context7: resolving library '{library_name}' at {url}")

        try:
            response = await self._get(url, JSON_ACCEPT, params={"query": library_name})
        except httpx.TimeoutException:
            logger.warning(f"Context7: resolve timed out after {self.timeout}s for '{library_name}'")
            return None
        except httpx.HTTPError as e:
            logger.error(f"Context7 resolve error: {e}")
            return None

        if not response.is_success:
            logger.warning(f"Context7: resolve failed with status {response.status_code}")
            return None

        content_type = response.headers.get("content-type", "")
        text = response.text
        if JSON_ACCEPT not in content_type:
            logger.error(
                f"Context7: resolve returned non-JSON response ({content_type}): {text[:100]}..."
            )
            return None

        try:
            data = json.loads(text)
        except ValueError:
            logger.error("Context7: failed to parse resolve JSON")
            return None

        library_id = self._first_library_id(data)
        if library_id is None:
            logger.info(f"Context7: no library found for '{library_name}'")
        return library_id

    @staticmethod
    def _first_library_id(data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None

        results = data.get("results")
        if isinstance(results, list) and results:
            first = results[0] if isinstance(results[0], dict) else {}
            found = first.get("id") or first.get("library_id")
        else:
            libraries = data.get("libraries")
            if isinstance(libraries, list) and libraries:
                first = libraries[0] if isinstance(libraries[0], dict) else {}
                found = first.get("id")
            else:
                found = data.get("id")

        if isinstance(found, str) and found:
            return found
        return None

    # ─────────────────────────────────────────────
    # DOCUMENTATION FETCH
    # ─────────────────────────────────────────────

    async def fetch_documentation(self, library_id: str, topic: Optional[str] = None) -> str:
        """
        Get documentation for a library by its Context7 ID.

        `library_id` may carry a leading slash ("/supabase/supabase").
        `topic` narrows the docs to one subject, e.g. "routing" or "hooks".
        Returns an empty string on any failure.
        """
        clean_id = library_id[1:] if library_id.startswith("/") else library_id
        if not clean_id:
            return ""

        url = f"{self.base_url}/{clean_id}"
        params = {"topic": topic} if topic else None
        logger.debug(f"Context7: fetching docs for '{library_id}' at {url}")

        try:
            response = await self._get(url, DOCS_ACCEPT, params=params)
            text = response.text
        except httpx.TimeoutException:
            logger.warning(f"Context7: docs fetch timed out after {self.timeout}s for '{library_id}'")
            return ""
        except httpx.HTTPError as e:
            logger.error(f"Context7 fetch error: {e}")
            return ""

        if not response.is_success:
            logger.warning(f"Context7: docs fetch failed with status {response.status_code}")
            return ""

        content_type = response.headers.get("content-type", "")

        if JSON_ACCEPT in content_type:
            try:
                data = json.loads(text)
            except ValueError:
                logger.error(f"Context7: failed to parse docs JSON for '{library_id}'")
                return ""
            if not isinstance(data, dict):
                return ""
            for key in ("content", "docs", "markdown"):
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
            return ""

        if any(kind in content_type for kind in TEXT_CONTENT_TYPES):
            return text

        logger.warning(f"Context7: unexpected docs content type ({content_type}) for '{library_id}'")
        return ""

    # ─────────────────────────────────────────────
    # ONE FRAMEWORK, BOTH STEPS
    # ─────────────────────────────────────────────

    async def lookup(self, library_name: str) -> PhaseOutcome[str]:
        """Resolve `library_name` and fetch its docs; degraded if either step comes up empty."""
        library_id = await self.resolve_library_id(library_name)
        if not library_id:
            return PhaseOutcome.fallback("", f"no Context7 library for '{library_name}'")

        docs = await self.fetch_documentation(library_id)
        if not docs:
            return PhaseOutcome.fallback("", f"no documentation for '{library_id}'")

        logger.info(f"Context7: {len(docs)} chars of docs for '{library_name}' ({library_id})")
        return PhaseOutcome.ok(docs)
