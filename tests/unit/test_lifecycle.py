import asyncio

import pytest

from deploy_harness.errors import (
    DeploymentFailedError,
    DeploymentRequestError,
    DeploymentTimeoutError,
    TeardownError,
)
from deploy_harness.lifecycle import LifecycleManager, RetryPolicy
from deploy_harness.models import DeploymentStatus
from deploy_harness.poller import ReadinessPoller

from fakes import ScriptedDeployments

PENDING = (DeploymentStatus.PENDING, None)
LIVE = (DeploymentStatus.LIVE, None)


def _manager(deployments, retry_policy=None, timeout=1.0):
    return LifecycleManager(
        deployments,
        ReadinessPoller(deployments),
        timeout=timeout,
        poll_interval=0.01,
        retry_policy=retry_policy,
    )


class TestRunScenario:
    @pytest.mark.asyncio
    async def test_success_returns_result_and_tears_down(self, node_fixture):
        deployments = ScriptedDeployments(statuses=[PENDING, LIVE])
        seen = []

        async def verify(deployment):
            seen.append(deployment.status)
            return "ok"

        result = await _manager(deployments).run_scenario(node_fixture, verify)

        assert result == "ok"
        assert seen == [DeploymentStatus.LIVE]
        assert len(deployments.destroyed) == 1
        assert deployments.destroyed[0].status is DeploymentStatus.DESTROYED

    @pytest.mark.asyncio
    async def test_verification_error_propagates_after_teardown(self, node_fixture):
        deployments = ScriptedDeployments()

        async def verify(deployment):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await _manager(deployments).run_scenario(node_fixture, verify)

        assert len(deployments.destroyed) == 1

    @pytest.mark.asyncio
    async def test_failed_deployment_skips_verification(self, node_fixture):
        deployments = ScriptedDeployments(statuses=[(DeploymentStatus.FAILED, "build failed")])
        calls = []

        async def verify(deployment):
            calls.append(deployment)

        with pytest.raises(DeploymentFailedError):
            await _manager(deployments).run_scenario(node_fixture, verify)

        assert calls == []
        assert len(deployments.destroyed) == 1
        assert deployments.destroyed[0].status is DeploymentStatus.DESTROYED

    @pytest.mark.asyncio
    async def test_timeout_tears_down(self, node_fixture):
        deployments = ScriptedDeployments(statuses=[PENDING])

        async def verify(deployment):
            return None

        with pytest.raises(DeploymentTimeoutError):
            await _manager(deployments, timeout=0.05).run_scenario(node_fixture, verify)

        assert len(deployments.destroyed) == 1
        assert deployments.destroyed[0].status is DeploymentStatus.DESTROYED

    @pytest.mark.asyncio
    async def test_cancellation_still_tears_down(self, node_fixture):
        deployments = ScriptedDeployments(statuses=[PENDING])
        manager = _manager(deployments, timeout=30)

        async def verify(deployment):
            return None

        task = asyncio.create_task(manager.run_scenario(node_fixture, verify))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(deployments.destroyed) == 1
        assert deployments.destroyed[0].status is DeploymentStatus.DESTROYED

    @pytest.mark.asyncio
    async def test_teardown_error_does_not_mask_result(self, node_fixture):
        error = TeardownError("platform unavailable")
        deployments = ScriptedDeployments(teardown_error=error)
        manager = _manager(deployments)

        async def verify(deployment):
            return "ok"

        assert await manager.run_scenario(node_fixture, verify) == "ok"
        assert manager.teardown_error is error


class TestDeployRetries:
    @pytest.mark.asyncio
    async def test_transient_deploy_failure_retried(self, node_fixture):
        deployments = ScriptedDeployments(deploy_errors=[DeploymentRequestError("timeout")])
        manager = _manager(deployments, RetryPolicy(max_attempts=3, backoff_seconds=0))

        async def verify(deployment):
            return deployment.app_name

        assert await manager.run_scenario(node_fixture, verify)
        assert deployments.deploy_calls == 2
        assert len(deployments.destroyed) == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, node_fixture):
        deployments = ScriptedDeployments(
            deploy_errors=[DeploymentRequestError("down", status_code=503)] * 2
        )
        manager = _manager(deployments, RetryPolicy(max_attempts=2, backoff_seconds=0))

        async def verify(deployment):
            return None

        with pytest.raises(DeploymentRequestError):
            await manager.run_scenario(node_fixture, verify)

        assert deployments.deploy_calls == 2
        assert deployments.destroyed == []

    @pytest.mark.asyncio
    async def test_auth_failure_not_retried(self, node_fixture):
        deployments = ScriptedDeployments(
            deploy_errors=[DeploymentRequestError("Invalid credentials", status_code=401)]
        )
        manager = _manager(deployments, RetryPolicy(max_attempts=3, backoff_seconds=0))

        async def verify(deployment):
            return None

        with pytest.raises(DeploymentRequestError, match="Invalid credentials"):
            await manager.run_scenario(node_fixture, verify)

        assert deployments.deploy_calls == 1
