"""Deployment verification harness.

Deploys fixture apps to a Heroku-style platform, checks what they serve and
always tears them down.
"""

from deploy_harness.config import HarnessSettings, get_settings
from deploy_harness.errors import (
    AssertionMismatchError,
    DeploymentFailedError,
    DeploymentRequestError,
    DeploymentTimeoutError,
    FixtureNotFoundError,
    HarnessError,
    Stage,
    TeardownError,
    VerificationTransportError,
)
from deploy_harness.fixtures import resolve_fixture
from deploy_harness.lifecycle import LifecycleManager, RetryPolicy
from deploy_harness.models import (
    Deployment,
    DeploymentStatus,
    Expectation,
    Fixture,
    Scenario,
    ScenarioOutcome,
    VerificationResult,
)
from deploy_harness.scenario import ScenarioRunner, load_scenarios

__all__ = [
    "AssertionMismatchError",
    "Deployment",
    "DeploymentFailedError",
    "DeploymentRequestError",
    "DeploymentStatus",
    "DeploymentTimeoutError",
    "Expectation",
    "Fixture",
    "FixtureNotFoundError",
    "HarnessError",
    "HarnessSettings",
    "LifecycleManager",
    "RetryPolicy",
    "Scenario",
    "ScenarioOutcome",
    "ScenarioRunner",
    "Stage",
    "TeardownError",
    "VerificationResult",
    "VerificationTransportError",
    "get_settings",
    "load_scenarios",
    "resolve_fixture",
]
