from __future__ import annotations

import json

import httpx
import pytest

from deeplore.loaders.obsidian import (
    ObsidianConfig,
    ObsidianVaultSource,
    SourceUnavailableError,
    encode_vault_path,
)

pytestmark = pytest.mark.anyio

LISTINGS = {
    "/vault/": ["Characters/", "Top.md", "image.png"],
    "/vault/Characters/": ["Eris.md", "Sub Dir/", "Missing.md"],
    "/vault/Characters/Sub Dir/": ["Deep Note.md"],
}
NOTES = {
    "/vault/Top.md": "# Top",
    "/vault/Characters/Eris.md": "# Eris",
    "/vault/Characters/Sub Dir/Deep Note.md": "# Deep",
}


def vault_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("authorization") != "Bearer secret":
        return httpx.Response(401)
    path = request.url.path
    if path in LISTINGS:
        return httpx.Response(
            200,
            headers={"Content-Type": "application/json"},
            content=json.dumps({"files": LISTINGS[path]}).encode("utf-8"),
        )
    if path in NOTES:
        assert request.headers.get("accept") == "text/markdown"
        return httpx.Response(200, content=NOTES[path].encode("utf-8"))
    return httpx.Response(404)


def make_source(handler, api_key: str = "secret") -> tuple[ObsidianVaultSource, httpx.AsyncClient]:
    transport = httpx.MockTransport(handler)
    client = httpx.AsyncClient(transport=transport, base_url="http://test")
    return ObsidianVaultSource(ObsidianConfig(api_key=api_key, batch_size=2), client=client), client


async def test_fetch_all_walks_directories_and_skips_failed_files() -> None:
    source, client = make_source(vault_handler)
    async with client:
        documents = await source.fetch_all()

    by_path = {document.path: document.content for document in documents}
    assert by_path == {
        "Top.md": "# Top",
        "Characters/Eris.md": "# Eris",
        "Characters/Sub Dir/Deep Note.md": "# Deep",
    }


async def test_listing_failure_raises_source_unavailable() -> None:
    source, client = make_source(vault_handler, api_key="wrong")
    async with client:
        with pytest.raises(SourceUnavailableError, match="HTTP 401"):
            await source.fetch_all()


async def test_malformed_listing_raises_source_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not json")

    source, client = make_source(handler)
    async with client:
        with pytest.raises(SourceUnavailableError):
            await source.fetch_all()


async def test_transport_error_raises_source_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    source, client = make_source(handler)
    async with client:
        with pytest.raises(SourceUnavailableError):
            await source.fetch_all()


async def test_missing_api_key_is_rejected() -> None:
    source, client = make_source(vault_handler, api_key="")
    async with client:
        with pytest.raises(SourceUnavailableError):
            await source.fetch_all()


async def test_check_connection_reports_server_info() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/"
        return httpx.Response(
            200,
            headers={"Content-Type": "application/json"},
            content=json.dumps({"authenticated": True, "versions": {"self": "3.0.1"}}).encode(
                "utf-8"
            ),
        )

    source, client = make_source(handler)
    async with client:
        status = await source.check_connection()

    assert status.ok
    assert status.authenticated
    assert status.versions == {"self": "3.0.1"}


async def test_check_connection_reports_http_error() -> None:
    source, client = make_source(lambda request: httpx.Response(500))
    async with client:
        status = await source.check_connection()

    assert not status.ok
    assert status.error == "HTTP 500"


def test_vault_paths_are_encoded_per_segment() -> None:
    assert encode_vault_path("LA World/Characters/Alice.md") == "LA%20World/Characters/Alice.md"
    assert encode_vault_path("Q&A/50%.md") == "Q%26A/50%25.md"
