import os
from pathlib import Path

import pytest

from deploy_harness.config import HarnessSettings

FIXTURES_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "repos"


def pytest_collection_modifyitems(config, items):
    if os.getenv("DEPLOY_HARNESS_API_KEY"):
        return
    skip_live = pytest.mark.skip(reason="DEPLOY_HARNESS_API_KEY not set")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(scope="session")
def harness_settings() -> HarnessSettings:
    return HarnessSettings(fixtures_dir=FIXTURES_DIR)
