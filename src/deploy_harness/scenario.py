"""Scenario runner: bind an expectation to the deploy/verify/teardown pipeline."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from functools import partial
import json
from pathlib import Path
import time

import httpx
from pydantic import TypeAdapter
import structlog

from deploy_harness.clients.platform import PlatformClient
from deploy_harness.config import HarnessSettings
from deploy_harness.deployments import DeploymentClient
from deploy_harness.errors import AssertionMismatchError, HarnessError
from deploy_harness.fixtures import resolve_fixture
from deploy_harness.lifecycle import LifecycleManager, RetryPolicy
from deploy_harness.logging import bind_scenario, clear_context
from deploy_harness.models import (
    Deployment,
    Expectation,
    Scenario,
    ScenarioOutcome,
    VerificationResult,
)
from deploy_harness.poller import ReadinessPoller
from deploy_harness.verifier import HttpVerifier

logger = structlog.get_logger(__name__)

_scenario_list = TypeAdapter(list[Scenario])


def load_scenarios(path: Path) -> list[Scenario]:
    """Load a JSON list of scenario declarations.

    Raises:
        pydantic.ValidationError: A declaration is malformed
    """
    return _scenario_list.validate_python(json.loads(Path(path).read_text(encoding="utf-8")))


class ScenarioRunner:
    """Runs scenarios against the configured platform.

    Clients passed in are borrowed; clients created here are closed by
    ``aclose()`` (or on leaving ``async with``).
    """

    def __init__(
        self,
        settings: HarnessSettings,
        platform: PlatformClient | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self._owns_platform = platform is None
        self._owns_http = http_client is None
        self.platform = platform or PlatformClient(settings)
        self.http = http_client or httpx.AsyncClient(
            timeout=settings.request_timeout, follow_redirects=True
        )
        self.deployments = DeploymentClient(self.platform, settings)
        self.poller = ReadinessPoller(self.deployments)
        self.verifier = HttpVerifier(self.http)

    async def __aenter__(self) -> ScenarioRunner:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_platform:
            await self.platform.close()
        if self._owns_http:
            await self.http.aclose()

    def lifecycle_for(
        self, timeout: float | None = None, poll_interval: float | None = None
    ) -> LifecycleManager:
        return LifecycleManager(
            self.deployments,
            self.poller,
            timeout=timeout or self.settings.timeout,
            poll_interval=poll_interval or self.settings.poll_interval,
            retry_policy=RetryPolicy(
                max_attempts=self.settings.deploy_retries + 1,
                backoff_seconds=self.settings.retry_backoff,
            ),
        )

    async def verify(self, expectation: Expectation, deployment: Deployment) -> VerificationResult:
        """Fetch the expectation's path and compare trimmed body and status."""
        result = await self.verifier.fetch(deployment, expectation.path)
        if expectation.status is not None and result.status_code != expectation.status:
            raise AssertionMismatchError("status", expectation.status, result.status_code)

        expected_body = expectation.body.strip()
        actual_body = result.body.strip()
        if actual_body != expected_body:
            raise AssertionMismatchError("body", expected_body, actual_body)
        return result

    async def run(self, scenario: Scenario) -> ScenarioOutcome:
        """Run one scenario and report exactly one outcome."""
        bind_scenario(scenario.name)
        start = time.monotonic()
        manager: LifecycleManager | None = None
        logger.info("scenario_started", fixture=scenario.fixture)

        try:
            fixture = resolve_fixture(scenario.fixture, self.settings.fixtures_dir)
            manager = self.lifecycle_for(scenario.timeout, scenario.poll_interval)
            result = await manager.run_scenario(
                fixture,
                partial(self.verify, scenario.expectation),
                config_vars=scenario.config_vars,
                buildpacks=scenario.buildpacks,
            )
        except AssertionMismatchError as e:
            outcome = dict(
                result="fail",
                stage=e.stage,
                message=str(e),
                expected=e.expected,
                actual=e.actual,
            )
        except HarnessError as e:
            outcome = dict(result="error", stage=e.stage, message=str(e))
        except Exception as e:
            # Still one outcome per scenario; suites keep the others
            logger.exception("scenario_crashed", fixture=scenario.fixture)
            outcome = dict(result="error", message=f"unexpected {type(e).__name__}: {e}")
        else:
            outcome = dict(
                result="pass",
                message=f"{scenario.path} answered {result.status_code} "
                f"in {result.latency * 1000:.0f}ms",
            )
        finally:
            duration = time.monotonic() - start
            clear_context()

        teardown_error = manager.teardown_error if manager else None
        report = ScenarioOutcome(
            scenario=scenario.name,
            teardown_error=str(teardown_error) if teardown_error else None,
            duration=round(duration, 3),
            **outcome,
        )
        logger.info(
            "scenario_finished",
            scenario=scenario.name,
            result=report.result,
            stage=report.stage.value if report.stage else None,
            duration_sec=report.duration,
        )
        return report

    async def run_suite(self, scenarios: Iterable[Scenario]) -> list[ScenarioOutcome]:
        """Run scenarios concurrently, at most ``max_concurrency`` deployed at once."""
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def _bounded(scenario: Scenario) -> ScenarioOutcome:
            async with semaphore:
                return await self.run(scenario)

        return list(await asyncio.gather(*(_bounded(s) for s in scenarios)))

    @asynccontextmanager
    async def deploy(
        self,
        fixture: str | Path,
        *,
        timeout: float | None = None,
        poll_interval: float | None = None,
        config_vars: dict[str, str] | None = None,
        buildpacks: list[str] | None = None,
    ) -> AsyncIterator[Deployment]:
        """Yield a live deployment of ``fixture`` for ad-hoc checks.

        Harness errors propagate unchanged; the app is destroyed on exit.
        """
        manager = self.lifecycle_for(timeout, poll_interval)
        async with manager.provisioned(
            resolve_fixture(fixture, self.settings.fixtures_dir),
            config_vars=config_vars,
            buildpacks=buildpacks,
        ) as deployment:
            yield deployment

    async def successful_body(self, deployment: Deployment, path: str = "/") -> str:
        """Body of a 200 response from ``path``, or AssertionMismatchError."""
        result = await self.verifier.fetch(deployment, path)
        if result.status_code != 200:
            raise AssertionMismatchError("status", 200, result.status_code)
        return result.body
