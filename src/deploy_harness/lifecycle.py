"""Lifecycle manager: provision, hand over, always tear down."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar

import structlog

from deploy_harness.deployments import DeploymentClient
from deploy_harness.errors import DeploymentRequestError, TeardownError
from deploy_harness.logging import bind_app
from deploy_harness.models import Deployment, Fixture
from deploy_harness.poller import ReadinessPoller

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy for deploy requests."""

    max_attempts: int = 1
    backoff_seconds: float = 0.0


class LifecycleManager:
    """Single owner of one deployment for the duration of a scenario.

    Create one per scenario run; ``teardown_error`` describes the last
    teardown performed by this manager.
    """

    def __init__(
        self,
        deployments: DeploymentClient,
        poller: ReadinessPoller,
        *,
        timeout: float,
        poll_interval: float,
        retry_policy: RetryPolicy | None = None,
    ):
        self.deployments = deployments
        self.poller = poller
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.retry_policy = retry_policy or RetryPolicy()
        self.deployment: Deployment | None = None
        self.teardown_error: TeardownError | None = None

    async def _deploy_with_retries(self, fixture: Fixture, **deploy_kwargs) -> Deployment:
        max_attempts = max(1, self.retry_policy.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.deployments.deploy(fixture, **deploy_kwargs)
            except DeploymentRequestError as e:
                if attempt >= max_attempts or not e.retryable:
                    logger.error(
                        "deploy_request_failed",
                        fixture=fixture.name,
                        attempts=attempt,
                        retryable=e.retryable,
                        error=str(e),
                    )
                    raise
                # Exponential backoff
                wait_time = self.retry_policy.backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "deploy_request_retry",
                    fixture=fixture.name,
                    attempt=attempt,
                    wait_sec=wait_time,
                    error=str(e),
                )
                await asyncio.sleep(wait_time)

    @asynccontextmanager
    async def provisioned(
        self,
        fixture: Fixture,
        *,
        config_vars: dict[str, str] | None = None,
        buildpacks: list[str] | None = None,
    ) -> AsyncIterator[Deployment]:
        """Deploy the fixture, wait for it, yield it live, then destroy it."""
        deployment = await self._deploy_with_retries(
            fixture, config_vars=config_vars, buildpacks=buildpacks
        )
        self.deployment = deployment
        bind_app(deployment.app_name)
        try:
            await self.poller.await_ready(deployment, self.timeout, self.poll_interval)
            yield deployment
        finally:
            self.teardown_error = await self.deployments.destroy(deployment)

    async def run_scenario(
        self,
        fixture: Fixture,
        verify_fn: Callable[[Deployment], Awaitable[T]],
        *,
        config_vars: dict[str, str] | None = None,
        buildpacks: list[str] | None = None,
    ) -> T:
        """Run ``verify_fn`` against a live deployment of ``fixture``.

        Errors from deploy, readiness or ``verify_fn`` propagate after teardown.
        """
        async with self.provisioned(
            fixture, config_vars=config_vars, buildpacks=buildpacks
        ) as deployment:
            return await verify_fn(deployment)
