"""pytest fixtures for writing deployment tests.

Registered through the ``pytest11`` entry point. Example::

    async def test_node_21_serves_hello(scenario_runner):
        async with scenario_runner.deploy("node-21") as app:
            body = await scenario_runner.successful_body(app)
            assert body.strip() == "Hello, world!"
"""

import pytest
import pytest_asyncio

from deploy_harness.config import HarnessSettings
from deploy_harness.scenario import ScenarioRunner


@pytest.fixture(scope="session")
def harness_settings() -> HarnessSettings:
    """Settings read from DEPLOY_HARNESS_* env vars; override to customise."""
    return HarnessSettings()


@pytest_asyncio.fixture
async def scenario_runner(harness_settings):
    async with ScenarioRunner(harness_settings) as runner:
        yield runner
