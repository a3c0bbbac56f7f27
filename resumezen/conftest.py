# resumezen/conftest.py
import os
import tempfile
from pathlib import Path

import pytest

# Point the app at a throwaway SQLite file before any settings are read
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="resumezen-tests-"))
os.environ["ENV"] = "test"
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR / 'resumezen_test.db'}"
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")
os.environ["INTERNAL_API_KEY"] = "internal-test-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["OTEL_ENABLED"] = "false"


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """Create all tables once per test session."""
    from resumezen.core.database import create_all_tables, dispose_engine

    create_all_tables()
    yield
    dispose_engine()


@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """
    Empty every table and reseed the catalog before each test.

    SQLite has no TRUNCATE; rows are deleted children first.
    """
    from resumezen.core.database import get_engine, metadata
    from resumezen.core.metrics import METRICS
    from resumezen.features.plans.service import seed_plans

    engine = get_engine()
    with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            conn.execute(table.delete())
    seed_plans()
    METRICS.reset()
    yield


@pytest.fixture
def user_id():
    from resumezen.features.users.service import get_or_create_user

    return get_or_create_user("user-123").user_id


@pytest.fixture
def fake_storage():
    from resumezen.tests.mocks import FakeStorage

    return FakeStorage()


@pytest.fixture
def fake_ocr():
    from resumezen.tests.mocks import FakeOcr

    return FakeOcr()


@pytest.fixture
def fake_ai():
    from resumezen.tests.mocks import FakeAiClient

    return FakeAiClient()


@pytest.fixture
def services(fake_storage, fake_ocr, fake_ai):
    from resumezen.features.analysis.orchestrator import AnalysisServices
    from resumezen.features.analysis.validator import ResumeValidator

    return AnalysisServices(
        storage=fake_storage,
        ocr=fake_ocr,
        ai_factory=fake_ai.factory,
        validator=ResumeValidator(),
    )


@pytest.fixture
def client(services):
    """TestClient with provider fakes injected."""
    from fastapi.testclient import TestClient

    from resumezen.api.resume import get_analysis_services
    from resumezen.main import app

    app.dependency_overrides[get_analysis_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.pop(get_analysis_services, None)
