"""Value objects shared by the harness components."""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from deploy_harness.errors import InvalidTransitionError, Stage


class DeploymentStatus(str, Enum):
    """Deployment status lifecycle."""

    PENDING = "pending"  # Build requested, not serving yet
    LIVE = "live"  # Accepting traffic
    FAILED = "failed"  # Build or release failed, or abandoned before readiness
    DESTROYED = "destroyed"  # Remote app deleted


_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.PENDING: {DeploymentStatus.LIVE, DeploymentStatus.FAILED},
    DeploymentStatus.LIVE: {DeploymentStatus.DESTROYED},
    DeploymentStatus.FAILED: {DeploymentStatus.DESTROYED},
    DeploymentStatus.DESTROYED: set(),
}


class Fixture(BaseModel):
    """Local directory holding a deployable sample application."""

    model_config = ConfigDict(frozen=True)

    name: str
    root: Path


class Deployment(BaseModel):
    """A provisioned app on the platform, owned by one lifecycle manager."""

    id: str
    app_name: str
    base_url: str
    build_id: str | None = None
    status: DeploymentStatus = DeploymentStatus.PENDING
    detail: str | None = None

    def transition(self, status: DeploymentStatus, detail: str | None = None) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"{self.app_name}: illegal transition {self.status.value} -> {status.value}"
            )
        self.status = status
        if detail is not None:
            self.detail = detail


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int
    body: str
    latency: float


class Expectation(BaseModel):
    """What the deployed app must answer with."""

    model_config = ConfigDict(frozen=True)

    body: str
    status: int | None = 200
    path: str = "/"


class Scenario(BaseModel):
    """Declarative test case: deploy a fixture, check one request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    fixture: str
    path: str = "/"
    expected_body: str
    expected_status: int | None = 200
    timeout: float | None = Field(default=None, gt=0)
    poll_interval: float | None = Field(default=None, gt=0)
    config_vars: dict[str, str] = Field(default_factory=dict)
    buildpacks: list[str] | None = None

    @property
    def expectation(self) -> Expectation:
        return Expectation(body=self.expected_body, status=self.expected_status, path=self.path)


class ScenarioOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    scenario: str
    result: Literal["pass", "fail", "error"]
    stage: Stage | None = None
    message: str = ""
    expected: str | int | None = None
    actual: str | int | None = None
    teardown_error: str | None = None
    duration: float = 0.0

    @property
    def passed(self) -> bool:
        return self.result == "pass"
