"""Readiness poller: wait until a deployment serves traffic."""

from __future__ import annotations

import asyncio
import time

import structlog

from deploy_harness.deployments import DeploymentClient
from deploy_harness.errors import (
    DeploymentFailedError,
    DeploymentRequestError,
    DeploymentTimeoutError,
)
from deploy_harness.models import Deployment, DeploymentStatus

logger = structlog.get_logger(__name__)


class ReadinessPoller:
    """Polls deployment status at a fixed interval under a hard deadline."""

    def __init__(self, deployments: DeploymentClient):
        self.deployments = deployments

    async def await_ready(
        self,
        deployment: Deployment,
        timeout: float,
        interval: float,
    ) -> Deployment:
        """Block until the deployment is LIVE.

        Args:
            deployment: PENDING deployment to watch
            timeout: Seconds before giving up
            interval: Seconds between status requests

        Returns:
            The same deployment, now LIVE

        Raises:
            DeploymentFailedError: Platform reported FAILED
            DeploymentTimeoutError: Neither LIVE nor FAILED within timeout
            DeploymentRequestError: Status request failed in a way retrying
                cannot fix (auth, missing app or build, malformed body)
        """
        if timeout <= 0 or interval <= 0:
            raise ValueError("timeout and interval must be positive")

        start = time.monotonic()
        deadline = start + timeout
        attempt = 0

        while True:
            attempt += 1
            try:
                status, detail = await self.deployments.status(deployment)
            except DeploymentRequestError as e:
                if not e.retryable:
                    logger.error(
                        "readiness_poll_rejected",
                        app_name=deployment.app_name,
                        attempt=attempt,
                        status_code=e.status_code,
                        error=str(e),
                    )
                    raise
                # Status endpoint hiccup; the deadline still bounds the loop
                logger.warning(
                    "readiness_poll_error",
                    app_name=deployment.app_name,
                    attempt=attempt,
                    error=str(e),
                )
                status, detail = DeploymentStatus.PENDING, None

            elapsed = time.monotonic() - start
            logger.debug(
                "readiness_poll",
                app_name=deployment.app_name,
                attempt=attempt,
                status=status.value,
                elapsed_sec=round(elapsed, 2),
            )

            if status is DeploymentStatus.LIVE:
                deployment.transition(DeploymentStatus.LIVE)
                logger.info(
                    "deployment_live",
                    app_name=deployment.app_name,
                    attempts=attempt,
                    elapsed_sec=round(elapsed, 2),
                )
                return deployment

            if status is DeploymentStatus.FAILED:
                deployment.transition(DeploymentStatus.FAILED, detail)
                logger.error("deployment_failed", app_name=deployment.app_name, detail=detail)
                raise DeploymentFailedError(deployment.app_name, detail)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                elapsed = time.monotonic() - start
                deployment.transition(
                    DeploymentStatus.FAILED, f"not live after {elapsed:.1f}s"
                )
                logger.error(
                    "deployment_timeout",
                    app_name=deployment.app_name,
                    timeout_sec=timeout,
                    attempts=attempt,
                )
                raise DeploymentTimeoutError(deployment.app_name, timeout, elapsed)

            await asyncio.sleep(min(interval, remaining))
