from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture()
def provider():
    from helpers import RecordingProvider

    return RecordingProvider()


@pytest.fixture()
def runtime(provider):
    from api.dependencies import build_runtime
    from config.settings import Settings

    return build_runtime(provider, Settings(_env_file=None))


@pytest.fixture(scope="session")
def app():
    import main

    return main.app


@pytest.fixture()
def client(app, runtime):
    # Never build a real provider from the environment in tests.
    import api.dependencies as deps

    app.dependency_overrides[deps.get_runtime] = lambda: runtime

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
