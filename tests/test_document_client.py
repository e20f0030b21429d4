"""Tests for the HTTP document service client."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from docdesk.services.document_client import ClientSettings, DocumentServiceClient

_DOC = {
    "_id": "d1",
    "type": "File",
    "owner": {"_id": "alice"},
    "name": "main.lp",
    "content": "a.",
    "memberAccess": {"owner": 7, "group": 5, "other": 4},
}


def _client(handler: Callable[[httpx.Request], httpx.Response], **overrides: object) -> DocumentServiceClient:
    settings = ClientSettings(
        base_url="https://docs.example.test/api",
        token="secret-token",
        max_retries=3,
        retry_min_seconds=0,
        retry_max_seconds=0,
    )
    for name, value in overrides.items():
        setattr(settings, name, value)
    return DocumentServiceClient(settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_unwraps_success_envelope() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "returnValue": _DOC})

    async with _client(handler) as client:
        result = await client.fetch("d1")

    assert result.success
    assert result.value is not None and result.value.id == "d1"
    assert result.value.owner == "alice"
    assert seen[0].url.path == "/api/documents/d1"
    assert seen[0].headers["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_fetch_accepts_bare_payload_and_quotes_ids() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path.decode())
        return httpx.Response(200, json={**_DOC, "_id": "a/b"})

    async with _client(handler) as client:
        result = await client.fetch("a/b")

    assert result.success and result.value is not None
    assert result.value.id == "a/b"
    assert paths == ["/api/documents/a%2Fb"]


@pytest.mark.asyncio
async def test_envelope_failure_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "Document not available"})

    async with _client(handler) as client:
        result = await client.fetch("d1")

    assert not result.success
    assert result.error == "Document not available"


@pytest.mark.asyncio
async def test_client_errors_are_not_retried() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404, json={"error": "no such document"})

    async with _client(handler) as client:
        result = await client.fetch("missing")

    assert calls == 1
    assert not result.success
    assert result.error == "HTTP 404: no such document"


@pytest.mark.asyncio
async def test_server_errors_are_retried() -> None:
    responses = [httpx.Response(503), httpx.Response(200, json=_DOC)]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    async with _client(handler) as client:
        result = await client.fetch("d1")

    assert result.success
    assert responses == []


@pytest.mark.asyncio
async def test_retries_stop_after_configured_attempts() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler, max_retries=2) as client:
        result = await client.fetch("d1")

    assert calls == 2
    assert not result.success
    assert result.error is not None and result.error.startswith("ConnectError")


@pytest.mark.asyncio
async def test_save_puts_content_and_parses_confirmation() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PUT"
        body = json.loads(request.content)
        bodies.append(body)
        return httpx.Response(200, json={"success": True, "value": {**_DOC, "content": body["content"]}})

    async with _client(handler) as client:
        result = await client.save("d1", "b :- a.")

    assert bodies == [{"content": "b :- a."}]
    assert result.success and result.value is not None
    assert result.value.content == "b :- a."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"_id": "d1", "owner": "alice"}),
        httpx.Response(200, json={"success": True}),
        httpx.Response(200, content=b"<html>oops</html>"),
    ],
)
async def test_malformed_responses_become_failures(response: httpx.Response) -> None:
    async with _client(lambda request: response) as client:
        result = await client.fetch("d1")

    assert not result.success
    assert result.value is None


@pytest.mark.asyncio
async def test_tree_listing_skips_malformed_nodes() -> None:
    tree = [
        {"data": _DOC, "children": [{"data": {**_DOC, "_id": "d2"}}]},
        {"data": {"_id": "broken"}},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/documents/public"
        return httpx.Response(200, json={"success": True, "returnValue": tree})

    async with _client(handler) as client:
        result = await client.fetch_public_documents()

    assert result.success and result.value is not None
    assert [node.document.id for node in result.value] == ["d1"]
    assert [child.document.id for child in result.value[0].children] == ["d2"]


@pytest.mark.asyncio
async def test_tree_listing_requires_a_list() -> None:
    async with _client(lambda request: httpx.Response(200, json={"nodes": []})) as client:
        result = await client.fetch_private_documents()

    assert not result.success
