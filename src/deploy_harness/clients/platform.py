"""Async client for the Heroku Platform API (v3).

Only the endpoints the harness needs: apps, config vars, sources, builds,
dynos. Every failure surfaces as ``DeploymentRequestError``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from deploy_harness.config import HarnessSettings
from deploy_harness.errors import DeploymentRequestError

logger = structlog.get_logger(__name__)

ACCEPT_HEADER = "application/vnd.heroku+json; version=3"


class PlatformClient:
    """HTTP client for platform app lifecycle endpoints."""

    def __init__(self, settings: HarnessSettings) -> None:
        self.settings = settings
        self.base_url = settings.api_url
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Accept": ACCEPT_HEADER}
            token = self.settings.api_key.get_secret_value()
            if token:
                headers["Authorization"] = f"Bearer {token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                follow_redirects=True,
                timeout=self.settings.request_timeout,
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise DeploymentRequestError(f"{method} {path} failed: {e!r}") from e

        if resp.is_error:
            raise DeploymentRequestError(
                f"{method} {path} returned {resp.status_code}: {_error_message(resp)}",
                status_code=resp.status_code,
            )
        return resp

    async def _request_json(
        self, method: str, path: str, *, required: tuple[str, ...] = (), **kwargs
    ) -> Any:
        """Like ``_request`` but decode the body, requiring ``required`` keys."""
        resp = await self._request(method, path, **kwargs)
        try:
            body = resp.json()
        except ValueError as e:
            raise DeploymentRequestError(
                f"{method} {path} returned a non-JSON body", status_code=resp.status_code
            ) from e

        if required:
            missing = [key for key in required if not isinstance(body, dict) or key not in body]
            if missing:
                raise DeploymentRequestError(
                    f"{method} {path} response missing {', '.join(missing)}",
                    status_code=resp.status_code,
                )
        return body

    async def create_app(self, name: str, stack: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name}
        if stack:
            payload["stack"] = stack
        return await self._request_json("POST", "/apps", json=payload, required=("id", "name"))

    async def update_config_vars(self, app_id: str, config_vars: dict[str, str]) -> dict:
        return await self._request_json(
            "PATCH", f"/apps/{app_id}/config-vars", json=config_vars
        )

    async def create_source(self, app_id: str) -> dict[str, str]:
        """Request an upload slot. Returns ``{"get_url": ..., "put_url": ...}``."""
        path = f"/apps/{app_id}/sources"
        body = await self._request_json("POST", path, required=("source_blob",))
        blob = body["source_blob"]
        if not isinstance(blob, dict) or not blob.get("put_url") or not blob.get("get_url"):
            raise DeploymentRequestError(f"POST {path} returned no upload URLs", status_code=200)
        return blob

    async def upload_source(self, put_url: str, archive: bytes) -> None:
        # Presigned storage URL: must not carry the API bearer token
        try:
            async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                resp = await client.put(put_url, content=archive, headers={"Content-Type": ""})
        except httpx.TransportError as e:
            raise DeploymentRequestError(f"Source upload failed: {e!r}") from e
        if resp.is_error:
            raise DeploymentRequestError(
                f"Source upload returned {resp.status_code}", status_code=resp.status_code
            )

    async def create_build(
        self,
        app_id: str,
        source_url: str,
        version: str | None = None,
        buildpacks: list[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"source_blob": {"url": source_url, "version": version}}
        if buildpacks:
            payload["buildpacks"] = [{"url": url} for url in buildpacks]
        return await self._request_json(
            "POST", f"/apps/{app_id}/builds", json=payload, required=("id",)
        )

    async def get_build(self, app_id: str, build_id: str) -> dict[str, Any]:
        return await self._request_json(
            "GET", f"/apps/{app_id}/builds/{build_id}", required=("status",)
        )

    async def build_output(self, output_stream_url: str) -> str:
        """Fetch build log text. Returns an empty string when unavailable."""
        try:
            async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                resp = await client.get(output_stream_url)
        except httpx.TransportError as e:
            logger.warning("build_output_unavailable", error=str(e))
            return ""
        return resp.text if resp.is_success else ""

    async def list_dynos(self, app_id: str) -> list[dict[str, Any]]:
        path = f"/apps/{app_id}/dynos"
        dynos = await self._request_json("GET", path)
        if not isinstance(dynos, list) or not all(isinstance(d, dict) for d in dynos):
            raise DeploymentRequestError(f"GET {path} returned no dyno list", status_code=200)
        return dynos

    async def delete_app(self, app_id: str) -> None:
        await self._request("DELETE", f"/apps/{app_id}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("id") or body)
    return str(body)[:200]
