"""Error taxonomy for scenario runs.

Every error names the stage it was raised in so the scenario runner can
report a single outcome without inspecting the call site.
"""

from enum import Enum


class Stage(str, Enum):
    FIXTURE = "fixture"
    DEPLOY = "deploy"
    POLL = "poll"
    VERIFY = "verify"
    TEARDOWN = "teardown"


class HarnessError(Exception):
    """Base class for all harness errors."""

    stage: Stage = Stage.DEPLOY


class FixtureNotFoundError(HarnessError):
    stage = Stage.FIXTURE


class DeploymentRequestError(HarnessError):
    """Platform API call failed (network, auth, rejected request)."""

    stage = Stage.DEPLOY

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Network errors, rate limits and 5xx responses are worth retrying."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class DeploymentFailedError(HarnessError):
    """Platform reported the deployment as failed."""

    stage = Stage.DEPLOY

    def __init__(self, app_name: str, detail: str | None):
        super().__init__(f"Deployment of {app_name} failed: {detail or 'no detail reported'}")
        self.app_name = app_name
        self.detail = detail


class DeploymentTimeoutError(HarnessError):
    stage = Stage.POLL

    def __init__(self, app_name: str, timeout: float, elapsed: float):
        super().__init__(
            f"Deployment of {app_name} not live after {elapsed:.1f}s (timeout {timeout:.1f}s)"
        )
        self.app_name = app_name
        self.timeout = timeout
        self.elapsed = elapsed


class VerificationTransportError(HarnessError):
    stage = Stage.VERIFY


class TeardownError(HarnessError):
    """Remote resources could not be released. Logged, never raised to callers."""

    stage = Stage.TEARDOWN


class AssertionMismatchError(HarnessError):
    stage = Stage.VERIFY

    def __init__(self, field: str, expected: object, actual: object):
        super().__init__(f"Expected {field} {expected!r}, got {actual!r}")
        self.field = field
        self.expected = expected
        self.actual = actual


class InvalidTransitionError(HarnessError):
    """Deployment status change not allowed by the lifecycle."""
