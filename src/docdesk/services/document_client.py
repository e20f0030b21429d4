"""Async HTTP client for the document service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping
from urllib.parse import quote

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..documents.model import Document, DocumentNode
from ..errors import DocumentIntegrityError
from .contracts import ServiceResult

__all__ = ["ClientSettings", "DocumentServiceClient"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the document service client."""

    base_url: str
    token: str = ""
    request_timeout: float | None = 30.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class DocumentServiceClient:
    """Fetches, saves and lists documents over HTTP.

    Implements the fetch and persistence contracts used by
    :class:`~docdesk.session.manager.SessionStateManager` and the tree
    listing used by :class:`~docdesk.session.library.DocumentLibrary`.
    Nothing here raises for transport or service errors; failures come back
    as ``ServiceResult(success=False)``.

    Responses may be a bare document payload or an envelope of the form
    ``{"success": bool, "value": ..., "error": str}`` (``returnValue`` is
    accepted as an alias for ``value``).
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings, transport)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DocumentServiceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Collaborator contracts
    # ------------------------------------------------------------------
    async def fetch(self, document_id: str) -> ServiceResult[Document]:
        result = await self._request("GET", self._document_path(document_id))
        return self._parse_document(result, action="fetch")

    async def save(self, document_id: str, content: str) -> ServiceResult[Document]:
        result = await self._request("PUT", self._document_path(document_id), json={"content": content})
        return self._parse_document(result, action="save")

    async def fetch_public_documents(self) -> ServiceResult[list[DocumentNode]]:
        return self._parse_tree(await self._request("GET", "/documents/public"), scope="public")

    async def fetch_private_documents(self) -> ServiceResult[list[DocumentNode]]:
        return self._parse_tree(await self._request("GET", "/documents/private"), scope="private")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_client(
        self, settings: ClientSettings, transport: httpx.AsyncBaseTransport | None
    ) -> httpx.AsyncClient:
        headers = dict(settings.default_headers) if settings.default_headers else {}
        headers.setdefault("Accept", "application/json")
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"
        return httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            headers=headers,
            transport=transport,
        )

    @staticmethod
    def _document_path(document_id: str) -> str:
        return f"/documents/{quote(document_id, safe='')}"

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception(_is_transient),
        )

    async def _request(self, method: str, path: str, *, json: Any | None = None) -> ServiceResult[Any]:
        LOGGER.debug("%s %s", method, path)
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.request(method, path, json=json)
                    response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            LOGGER.warning("%s %s returned HTTP %s", method, path, status)
            return ServiceResult.fail(f"HTTP {status}: {_error_message(exc.response)}")
        except httpx.HTTPError as exc:
            LOGGER.warning("%s %s failed: %s", method, path, exc)
            return ServiceResult.fail(f"{type(exc).__name__}: {exc}")

        try:
            data = response.json()
        except ValueError:
            LOGGER.warning("%s %s returned a non-JSON body", method, path)
            return ServiceResult.fail("Response body is not valid JSON")
        return _unwrap(data)

    def _parse_document(self, result: ServiceResult[Any], *, action: str) -> ServiceResult[Document]:
        if not result.success:
            return ServiceResult.fail(result.error or f"{action} failed")
        try:
            return ServiceResult.ok(Document.from_payload(result.value))
        except DocumentIntegrityError as exc:
            LOGGER.warning("Document %s returned malformed data: %s", action, exc)
            return ServiceResult.fail(f"Malformed document: {exc}")

    def _parse_tree(self, result: ServiceResult[Any], *, scope: str) -> ServiceResult[list[DocumentNode]]:
        if not result.success:
            return ServiceResult.fail(result.error or f"{scope} listing failed")
        payload = result.value
        if not isinstance(payload, list):
            return ServiceResult.fail(f"{scope} listing is not a list")
        nodes: List[DocumentNode] = []
        for item in payload:
            try:
                nodes.append(DocumentNode.from_payload(item))
            except DocumentIntegrityError as exc:
                LOGGER.warning("Skipping malformed %s tree node: %s", scope, exc)
        return ServiceResult.ok(nodes)


def _unwrap(data: Any) -> ServiceResult[Any]:
    if isinstance(data, Mapping) and isinstance(data.get("success"), bool):
        if not data["success"]:
            message = data.get("error") or data.get("message") or "Service reported failure"
            return ServiceResult.fail(str(message))
        return ServiceResult.ok(data.get("value", data.get("returnValue")))
    return ServiceResult.ok(data)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or "request failed"
    if isinstance(data, Mapping):
        message = data.get("error") or data.get("message") or data.get("detail")
        if message:
            return str(message)
    return response.reason_phrase or "request failed"
