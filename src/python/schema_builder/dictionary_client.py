"""Async client for the console's data dictionary API.

The data dictionary stores vocabulary types (classifications) and their
properties. The schema builder only reads from it:

    GET /api/dictionary/vocab-types          -> [VocabType, ...]
    GET /api/dictionary/vocab-types/{id}     -> VocabType

Usage:
    async with DictionaryClient("http://localhost:5174") as client:
        candidates = await client.fetch_vocab_properties("vocab-home")
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx

from schema_builder.config import DEFAULT_DICTIONARY_API_URL
from schema_builder.vocabulary import VocabProperty

DEFAULT_TIMEOUT = 30.0


class DictionaryError(Exception):
    """The data dictionary could not be reached or returned an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DictionaryClient:
    """Read-only client for vocabulary types and their properties."""

    def __init__(
        self,
        base_url: str = DEFAULT_DICTIONARY_API_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> DictionaryClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _get(self, path: str) -> Any:
        try:
            response = await self.client.get(path)
        except httpx.HTTPError as err:
            raise DictionaryError(f"Request to {path} failed: {err}") from err
        return self._handle_response(response)

    @staticmethod
    def _handle_response(response: httpx.Response) -> Any:
        """Map error statuses to DictionaryError and decode the body."""
        if response.status_code == 404:
            raise DictionaryError(
                f"Not found: {response.request.url.path}", response.status_code
            )

        if response.status_code >= 500:
            raise DictionaryError(
                f"Server error: {response.status_code}", response.status_code
            )

        if response.status_code >= 400:
            try:
                message = response.json().get("error", "Dictionary request failed")
            except (json.JSONDecodeError, AttributeError):
                message = f"Dictionary error: {response.status_code}"
            raise DictionaryError(message, response.status_code)

        try:
            return response.json()
        except json.JSONDecodeError as err:
            raise DictionaryError("Invalid response format from dictionary") from err

    # -----------------------------------------------------------------------
    # Vocabulary types
    # -----------------------------------------------------------------------

    async def list_vocab_types(self) -> list[dict[str, Any]]:
        """List every vocabulary type (non-list payloads count as empty)."""
        data = await self._get("/api/dictionary/vocab-types")
        return data if isinstance(data, list) else []

    async def get_vocab_type(self, vocab_type_id: str) -> dict[str, Any]:
        path = f"/api/dictionary/vocab-types/{quote(vocab_type_id, safe='')}"
        data = await self._get(path)
        if not isinstance(data, dict):
            raise DictionaryError(f"Vocab type {vocab_type_id!r} is not an object")
        return data

    async def fetch_vocab_properties(self, vocab_type_id: str) -> list[VocabProperty]:
        """Fetch the properties of one vocabulary type.

        Every call returns freshly built ``VocabProperty`` objects, so callers
        may keep or mutate them without affecting later fetches.
        """
        vocab_type = await self.get_vocab_type(vocab_type_id)
        return [VocabProperty.from_dict(p) for p in vocab_type.get("properties") or []]
