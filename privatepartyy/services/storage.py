"""
privatepartyy.services.storage — Object Storage Backends
=========================================================

Photos live in an object store, addressed by a storage path such as
``events/<event_id>/posts/<random>_<ts>.jpg``.  Two backends implement the
same small contract:

* :class:`LocalStorage` — files on disk (Docker volume), served by the API
  under ``/media`` and written through signed ``PUT`` URLs.
* :class:`HttpObjectStorage` — a hosted object-storage service spoken to
  over its REST API with ``httpx``.

Both are built once by the process entry point (see
:mod:`privatepartyy.api.deps`) and injected into services; nothing here is a
module-level singleton.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx
import jwt
from jwt.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"


class StorageBackendError(Exception):
    """The object store rejected or failed an operation."""


class StorageBackend(Protocol):
    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> None: ...

    async def remove(self, paths: list[str]) -> None: ...

    async def create_signed_upload_url(self, path: str, expires_in: int) -> str: ...

    def public_url(self, path: str) -> str: ...


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------
class LocalStorage:
    """Store objects under *root* on the local filesystem."""

    def __init__(
        self,
        root: str | Path,
        *,
        signing_secret: str,
        url_prefix: str = "/media",
        upload_prefix: str = "/api/storage/upload",
    ) -> None:
        self.root = Path(root)
        self.signing_secret = signing_secret
        self.url_prefix = url_prefix.rstrip("/")
        self.upload_prefix = upload_prefix.rstrip("/")

    def ensure_root(self) -> None:
        """Create the storage directory if it doesn't exist."""
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        dest = (root / path).resolve()
        if root not in dest.parents:
            raise StorageBackendError(f"Storage path escapes the storage root: {path!r}")
        return dest

    def _write(self, path: str, content: bytes) -> None:
        dest = self._resolve(path)
        if dest.exists():
            raise StorageBackendError(f"Object already exists: {path}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(content)

    def _unlink_all(self, paths: list[str]) -> None:
        for path in paths:
            dest = self._resolve(path)
            if dest.is_file():
                dest.unlink()

    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> None:
        try:
            # Offload blocking file I/O to a thread to avoid stalling the event loop
            await asyncio.to_thread(self._write, path, content)
        except OSError as exc:
            raise StorageBackendError(str(exc)) from exc

    async def remove(self, paths: list[str]) -> None:
        try:
            await asyncio.to_thread(self._unlink_all, paths)
        except OSError as exc:
            raise StorageBackendError(str(exc)) from exc

    async def create_signed_upload_url(self, path: str, expires_in: int) -> str:
        self._resolve(path)
        token = jwt.encode(
            {
                "path": path,
                "purpose": "upload",
                "exp": datetime.now(UTC) + timedelta(seconds=expires_in),
            },
            self.signing_secret,
            algorithm=SIGNING_ALGORITHM,
        )
        return f"{self.upload_prefix}/{quote(path)}?token={token}"

    def verify_upload_token(self, token: str, path: str) -> bool:
        """True if *token* was issued for an upload to exactly *path*."""
        try:
            payload = jwt.decode(token, self.signing_secret, algorithms=[SIGNING_ALGORITHM])
        except InvalidTokenError:
            return False
        return payload.get("purpose") == "upload" and payload.get("path") == path

    def public_url(self, path: str) -> str:
        return f"{self.url_prefix}/{quote(path)}"


# ---------------------------------------------------------------------------
# Hosted object storage over HTTP
# ---------------------------------------------------------------------------
class HttpObjectStorage:
    """Client for a hosted, bucket-based object-storage REST API.

    Endpoints used (relative to ``{base_url}/storage/v1``)::

        POST   /object/{bucket}/{path}              upload
        DELETE /object/{bucket}                     batch remove
        POST   /object/upload/sign/{bucket}/{path}  signed upload URL
        GET    /object/public/{bucket}/{path}       public read
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10,
    ) -> None:
        self.api_url = f"{base_url.rstrip('/')}/storage/v1"
        self.bucket = bucket
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }
        self._client = client
        self._timeout = timeout

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            if self._client is not None:
                resp = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                transport = httpx.AsyncHTTPTransport(retries=1)
                async with httpx.AsyncClient(timeout=self._timeout, transport=transport) as client:
                    resp = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageBackendError(f"{method} {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise StorageBackendError(
                f"{method} {url} returned {resp.status_code}: {resp.text[:200]}"
            )
        return resp

    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> None:
        await self._request(
            "POST",
            f"{self.api_url}/object/{self.bucket}/{quote(path)}",
            content=content,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "false",
            },
        )

    async def remove(self, paths: list[str]) -> None:
        if not paths:
            return
        await self._request(
            "DELETE",
            f"{self.api_url}/object/{self.bucket}",
            json={"prefixes": paths},
        )

    async def create_signed_upload_url(self, path: str, expires_in: int) -> str:
        resp = await self._request(
            "POST",
            f"{self.api_url}/object/upload/sign/{self.bucket}/{quote(path)}",
            json={"expiresIn": expires_in},
        )
        signed = resp.json().get("url")
        if not signed:
            raise StorageBackendError(f"No signed URL returned for {path}")
        return f"{self.api_url}{signed}"

    def public_url(self, path: str) -> str:
        return f"{self.api_url}/object/public/{self.bucket}/{quote(path)}"
