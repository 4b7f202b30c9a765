"""HTTP verifier: one request against a live deployment."""

from __future__ import annotations

import time
from urllib.parse import urljoin

import httpx
import structlog

from deploy_harness.errors import VerificationTransportError
from deploy_harness.models import Deployment, VerificationResult

logger = structlog.get_logger(__name__)


class HttpVerifier:
    """Issues GET requests against deployed apps. No retries."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch(self, deployment: Deployment, path: str = "/") -> VerificationResult:
        url = urljoin(deployment.base_url.rstrip("/") + "/", path.lstrip("/"))
        start = time.monotonic()
        try:
            resp = await self.client.get(url)
        except httpx.TransportError as e:
            logger.error("verification_transport_error", url=url, error=str(e))
            raise VerificationTransportError(f"GET {url} failed: {e!r}") from e

        latency = time.monotonic() - start
        logger.info(
            "verification_response",
            url=url,
            status_code=resp.status_code,
            latency_ms=round(latency * 1000, 2),
        )
        return VerificationResult(status_code=resp.status_code, body=resp.text, latency=latency)
