"""
HTTP client for the eXist-db editor support app (``atom-editor``).

All calls are blocking ``requests`` calls; the async wrappers run them in a
worker thread so the language server's event loop is never blocked. Request
timeouts are enforced here; callers only see ``RemoteError``.
"""

import asyncio
import logging
from typing import List, Optional

import requests
from pydantic import ValidationError

from xqls.exceptions import RemoteError
from xqls.remote.schema import CompileResponse, LookupQuery, RemoteItem, RemoteItemList
from xqls.settings import ServerSettings

logger = logging.getLogger("xqls")

APP_PATH = "apps/atom-editor"
AUTOCOMPLETE_TARGET = "atom-autocomplete.xql"
COMPILE_TARGET = "compile.xql"


class RemoteService:
    """Shared by all documents; holds no per-document state."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def _url(self, settings: ServerSettings, target: str) -> str:
        return f"{settings.uri.rstrip('/')}/{APP_PATH}/{target}"

    def lookup(self, query: LookupQuery, settings: ServerSettings) -> List[RemoteItem]:
        """
        Ask the server to describe functions visible from the query's scope.

        Raises:
            RemoteError: On transport errors, non-200 responses or a body
                that does not match the expected schema.
        """
        url = self._url(settings, AUTOCOMPLETE_TARGET)
        try:
            response = self.session.get(
                url,
                params=query.to_params(),
                auth=(settings.user, settings.password),
                timeout=settings.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteError(f"Request to {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise RemoteError(f"{url} returned status {response.status_code}")
        if not response.text:
            raise RemoteError(f"{url} returned an empty body")

        try:
            return RemoteItemList.validate_json(response.text)
        except ValidationError as exc:
            raise RemoteError(f"Unexpected response from {url}: {exc}") from exc

    async def lookup_async(
        self, query: LookupQuery, settings: ServerSettings
    ) -> List[RemoteItem]:
        return await asyncio.to_thread(self.lookup, query, settings)

    def compile(
        self, text: str, base: str, settings: ServerSettings
    ) -> CompileResponse:
        """Compile a query on the server, resolving imports against ``base``."""
        url = self._url(settings, COMPILE_TARGET)
        try:
            response = self.session.put(
                url,
                data=text.encode("utf-8"),
                headers={
                    "X-BasePath": base,
                    "Content-Type": "application/octet-stream",
                },
                auth=(settings.user, settings.password),
                timeout=settings.timeout,
            )
        except requests.RequestException as exc:
            raise RemoteError(f"Request to {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise RemoteError(f"{url} returned status {response.status_code}")

        try:
            return CompileResponse.model_validate_json(response.text)
        except ValidationError as exc:
            raise RemoteError(f"Unexpected response from {url}: {exc}") from exc

    async def compile_async(
        self, text: str, base: str, settings: ServerSettings
    ) -> CompileResponse:
        return await asyncio.to_thread(self.compile, text, base, settings)
