import httpx
import pytest
import respx

from deploy_harness.errors import Stage, VerificationTransportError
from deploy_harness.models import DeploymentStatus
from deploy_harness.verifier import HttpVerifier

from fakes import WEB_URL, make_deployment


@pytest.fixture
async def verifier():
    async with httpx.AsyncClient() as client:
        yield HttpVerifier(client)


@pytest.mark.asyncio
async def test_fetch_root(verifier, platform_api):
    result = await verifier.fetch(make_deployment(DeploymentStatus.LIVE))

    assert result.status_code == 200
    assert result.body == "Hello, world!\n"
    assert result.latency >= 0
    assert platform_api.app_root.call_count == 1


@pytest.mark.asyncio
async def test_fetch_path_and_error_status_returned():
    with respx.mock() as router:
        route = router.get(f"{WEB_URL}health").mock(
            return_value=httpx.Response(httpx.codes.SERVICE_UNAVAILABLE, text="starting")
        )
        async with httpx.AsyncClient() as client:
            result = await HttpVerifier(client).fetch(
                make_deployment(DeploymentStatus.LIVE), "/health"
            )

    assert route.called
    assert result.status_code == 503
    assert result.body == "starting"


@pytest.mark.asyncio
async def test_connection_failure_not_retried(verifier, platform_api):
    platform_api.app_root.mock(side_effect=httpx.ConnectError)

    with pytest.raises(VerificationTransportError) as exc_info:
        await verifier.fetch(make_deployment(DeploymentStatus.LIVE))

    assert exc_info.value.stage is Stage.VERIFY
    assert platform_api.app_root.call_count == 1
