import pytest
import respx

from deploy_harness.config import HarnessSettings
from deploy_harness.models import Fixture

from fakes import API_URL, FIXTURES_DIR, PlatformRoutes


@pytest.fixture
def settings() -> HarnessSettings:
    return HarnessSettings(
        _env_file=None,
        api_url=API_URL,
        api_key="test-token",  # noqa: S106
        fixtures_dir=FIXTURES_DIR,
        timeout=1.0,
        poll_interval=0.01,
        request_timeout=5.0,
        deploy_retries=0,
        retry_backoff=0.0,
        max_concurrency=2,
    )


@pytest.fixture
def node_fixture() -> Fixture:
    return Fixture(name="node-21", root=FIXTURES_DIR / "node-21")


@pytest.fixture
def platform_api():
    """respx-backed platform API and deployed app for a single deployment."""
    with respx.mock(assert_all_called=False) as router:
        yield PlatformRoutes(router)
