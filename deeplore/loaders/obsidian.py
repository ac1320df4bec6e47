from __future__ import annotations

"""Obsidian Local REST API client that serves vault notes as raw documents."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from deeplore.loaders.markdown import is_markdown_path
from deeplore.rag.types import RawDocument

logger = logging.getLogger(__name__)


class SourceUnavailableError(RuntimeError):
    """Raised when the vault cannot be listed or returns a malformed payload."""
    pass


@dataclass(frozen=True)
class ObsidianConfig:
    host: str = "127.0.0.1"
    port: int = 27123
    api_key: str = ""
    timeout: float = 30.0
    batch_size: int = 10

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass(frozen=True)
class ConnectionStatus:
    ok: bool
    authenticated: bool = False
    versions: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


def encode_vault_path(vault_path: str) -> str:
    """URL-encode each path segment, keeping the slashes between them."""
    return "/".join(quote(segment, safe="") for segment in vault_path.split("/"))


class ObsidianVaultSource:
    """Fetch every Markdown note in a vault through the REST API plugin."""

    def __init__(self, config: ObsidianConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._client = client

    def _headers(self, accept: str = "application/json") -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}", "Accept": accept}

    def _open_client(self) -> tuple[httpx.AsyncClient, bool]:
        if self._client is not None:
            return self._client, False
        client = httpx.AsyncClient(base_url=self.config.base_url, timeout=self.config.timeout)
        return client, True

    async def fetch_all(self) -> list[RawDocument]:
        """List the vault recursively and fetch all ``.md`` notes in batches."""
        if not self.config.api_key:
            raise SourceUnavailableError("Obsidian API key is not configured")
        client, owns_client = self._open_client()
        try:
            paths = await self.list_files(client)
            md_paths = [path for path in paths if is_markdown_path(path)]
            batch_size = max(1, self.config.batch_size)
            documents: list[RawDocument] = []
            for start in range(0, len(md_paths), batch_size):
                batch = md_paths[start : start + batch_size]
                results = await asyncio.gather(
                    *(self._fetch_document(client, path) for path in batch)
                )
                documents.extend(document for document in results if document is not None)
            logger.info(
                "vault_fetch_complete",
                extra={"files": len(md_paths), "fetched": len(documents)},
            )
            return documents
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(str(exc)) from exc
        finally:
            if owns_client:
                await client.aclose()

    async def list_files(self, client: httpx.AsyncClient, directory: str = "") -> list[str]:
        """Return full paths of all files under ``directory``.

        The API lists paths relative to the queried directory, and directory
        entries end with ``/``.
        """
        url = f"/vault/{encode_vault_path(directory)}/" if directory else "/vault/"
        response = await client.get(url, headers=self._headers())
        if response.status_code != 200:
            raise SourceUnavailableError(
                f'Failed to list files at "{directory}": HTTP {response.status_code}'
            )
        try:
            listing = response.json()
        except json.JSONDecodeError as exc:
            raise SourceUnavailableError("Invalid directory listing from Obsidian") from exc
        files = listing.get("files", []) if isinstance(listing, dict) else None
        if not isinstance(files, list):
            raise SourceUnavailableError("Invalid directory listing from Obsidian")

        prefix = f"{directory}/" if directory else ""
        all_files: list[str] = []
        for name in files:
            name = str(name)
            if name.endswith("/"):
                all_files.extend(await self.list_files(client, prefix + name[:-1]))
            else:
                all_files.append(prefix + name)
        return all_files

    async def _fetch_document(self, client: httpx.AsyncClient, path: str) -> RawDocument | None:
        try:
            response = await client.get(
                f"/vault/{encode_vault_path(path)}",
                headers=self._headers(accept="text/markdown"),
            )
        except httpx.HTTPError as exc:
            logger.warning("vault_file_fetch_failed", extra={"path": path, "detail": str(exc)})
            return None
        if response.status_code != 200:
            logger.warning(
                "vault_file_fetch_failed",
                extra={"path": path, "status": response.status_code},
            )
            return None
        return RawDocument(path=path, content=response.text)

    async def check_connection(self) -> ConnectionStatus:
        """Probe the API root, which answers without authentication."""
        client, owns_client = self._open_client()
        try:
            response = await client.get("/", headers=self._headers())
            if response.status_code != 200:
                return ConnectionStatus(ok=False, error=f"HTTP {response.status_code}")
            info = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            return ConnectionStatus(ok=False, error=str(exc) or type(exc).__name__)
        finally:
            if owns_client:
                await client.aclose()
        if not isinstance(info, dict):
            return ConnectionStatus(ok=False, error="Invalid server info")
        return ConnectionStatus(
            ok=True,
            authenticated=bool(info.get("authenticated", False)),
            versions=dict(info.get("versions") or {}),
        )
