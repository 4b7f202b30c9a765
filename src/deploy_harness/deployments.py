"""Deployment client: push a fixture, report its status, tear it down."""

from __future__ import annotations

import asyncio
import hashlib
import uuid

import structlog

from deploy_harness.clients.platform import PlatformClient
from deploy_harness.config import HarnessSettings
from deploy_harness.errors import DeploymentRequestError, TeardownError
from deploy_harness.fixtures import archive_fixture
from deploy_harness.models import Deployment, DeploymentStatus, Fixture

logger = structlog.get_logger(__name__)

# Platform limit on app name length
APP_NAME_MAX_LENGTH = 30
BUILD_OUTPUT_TAIL_LINES = 20


class DeploymentClient:
    """Creates and destroys platform apps built from fixtures."""

    def __init__(self, platform: PlatformClient, settings: HarnessSettings):
        self.platform = platform
        self.settings = settings

    def _app_name(self) -> str:
        suffix_length = APP_NAME_MAX_LENGTH - len(self.settings.app_prefix)
        return f"{self.settings.app_prefix}{uuid.uuid4().hex[:suffix_length]}"

    async def deploy(
        self,
        fixture: Fixture,
        *,
        config_vars: dict[str, str] | None = None,
        buildpacks: list[str] | None = None,
    ) -> Deployment:
        """Upload fixture source and start a build.

        Returns:
            Deployment in PENDING state

        Raises:
            DeploymentRequestError: Any platform call failed or answered with
                a malformed body. An app created before any failure is
                deleted first.
        """
        archive = archive_fixture(fixture)
        version = hashlib.sha256(archive).hexdigest()[:12]

        app = await self.platform.create_app(self._app_name(), stack=self.settings.stack)
        deployment = Deployment(
            id=app["id"],
            app_name=app["name"],
            base_url=app.get("web_url") or f"https://{app['name']}.herokuapp.com/",
        )
        logger.info("deployment_created", app_name=deployment.app_name, fixture=fixture.name)

        try:
            if config_vars:
                await self.platform.update_config_vars(deployment.id, config_vars)

            blob = await self.platform.create_source(deployment.id)
            await self.platform.upload_source(blob["put_url"], archive)

            build = await self.platform.create_build(
                deployment.id,
                blob["get_url"],
                version=version,
                buildpacks=buildpacks if buildpacks is not None else self.settings.buildpacks,
            )
            deployment.build_id = build["id"]
        except (Exception, asyncio.CancelledError):
            await self._discard_app(deployment)
            raise

        logger.info(
            "build_started",
            app_name=deployment.app_name,
            build_id=deployment.build_id,
            version=version,
        )
        return deployment

    async def _discard_app(self, deployment: Deployment) -> None:
        try:
            await self.platform.delete_app(deployment.id)
        except DeploymentRequestError as e:
            logger.error(
                "partial_deployment_cleanup_failed",
                app_name=deployment.app_name,
                error=str(e),
            )
        else:
            logger.info("partial_deployment_removed", app_name=deployment.app_name)

    async def status(self, deployment: Deployment) -> tuple[DeploymentStatus, str | None]:
        """Current remote status and, for failures, the platform's detail."""
        if deployment.build_id is None:
            return DeploymentStatus.PENDING, None

        build = await self.platform.get_build(deployment.id, deployment.build_id)
        build_status = build.get("status")

        if build_status == "failed":
            return DeploymentStatus.FAILED, await self._build_failure_detail(build)
        if build_status != "succeeded":
            return DeploymentStatus.PENDING, None

        dynos = await self.platform.list_dynos(deployment.id)
        web_states = {d.get("state") for d in dynos if d.get("type") == "web"}
        if "up" in web_states:
            return DeploymentStatus.LIVE, None
        if "crashed" in web_states:
            return DeploymentStatus.FAILED, "web dyno crashed after release"
        return DeploymentStatus.PENDING, None

    async def _build_failure_detail(self, build: dict) -> str:
        output = ""
        if build.get("output_stream_url"):
            output = await self.platform.build_output(build["output_stream_url"])
        tail = [line for line in output.splitlines() if line.strip()][-BUILD_OUTPUT_TAIL_LINES:]
        if tail:
            return "\n".join(tail)
        return f"build {build.get('id')} failed"

    async def destroy(self, deployment: Deployment) -> TeardownError | None:
        """Delete the remote app. Safe to call more than once.

        Returns:
            The TeardownError if deletion failed (already logged), else None
        """
        if deployment.status is DeploymentStatus.DESTROYED:
            return None
        if deployment.status is DeploymentStatus.PENDING:
            deployment.transition(DeploymentStatus.FAILED, "abandoned before readiness")

        try:
            await self.platform.delete_app(deployment.id)
        except DeploymentRequestError as e:
            if e.status_code != 404:
                error = TeardownError(f"Failed to destroy {deployment.app_name}: {e}")
                logger.error(
                    "teardown_failed",
                    app_name=deployment.app_name,
                    error=str(e),
                    status_code=e.status_code,
                )
                return error
            logger.info("app_already_deleted", app_name=deployment.app_name)

        deployment.transition(DeploymentStatus.DESTROYED)
        logger.info("deployment_destroyed", app_name=deployment.app_name)
        return None
