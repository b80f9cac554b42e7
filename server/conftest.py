import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Settings, get_settings
from database import get_db
from errors import UpstreamError
from main import app
from models import Base
from routers.analysis import get_github_client, get_text_provider, limiter
from services.github import RepoInfo, RepoIssue


VALID_RESPONSE = {
    "codeHealth": {"score": 82, "summary": "Healthy project with an active community."},
    "issues": [
        {
            "type": "Testing",
            "severity": "high",
            "file": "src/core.py",
            "message": "Core module has no tests",
            "suggestion": "Add unit tests for the core module",
        }
    ],
    "recommendations": [
        {
            "category": "testing",
            "priority": "high",
            "title": "Add CI test runs",
            "description": "Run the test suite on every pull request.",
            "impact": "Fewer regressions",
        }
    ],
    "metrics": {"linesOfCode": 42000, "filesCount": 350, "avgComplexity": 6, "dependencies": 25},
}


def make_repo_info(**overrides) -> RepoInfo:
    data = dict(
        owner="vercel",
        name="next.js",
        full_name="vercel/next.js",
        description="The React Framework",
        stars=120000,
        forks=26000,
        language="JavaScript",
        url="https://github.com/vercel/next.js",
        default_branch="canary",
        size=500,
    )
    data.update(overrides)
    return RepoInfo(**data)


class FakeGitHub:
    """Stands in for GitHubClient; records calls and can be told to fail."""

    def __init__(self, repo_info: RepoInfo | None = None):
        self.repo_info = repo_info or make_repo_info()
        self.languages = {"JavaScript": 5000, "TypeScript": 12000}
        self.issues = [RepoIssue(number=i, title=f"Bug {i}", state="open") for i in range(1, 13)]
        self.info_error: Exception | None = None
        self.data_error: Exception | None = None
        self.calls: list[tuple[str, str, str]] = []

    async def get_repository_info(self, owner, repo):
        self.calls.append(("info", owner, repo))
        if self.info_error:
            raise self.info_error
        return self.repo_info

    async def fetch_languages_and_issues(self, owner, repo):
        self.calls.append(("data", owner, repo))
        if self.data_error:
            raise self.data_error
        return self.languages, self.issues


class FakeProvider:
    name = "fake"
    model = "fake-model"

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def fake_provider():
    return FakeProvider(response=json.dumps(VALID_RESPONSE))


@pytest.fixture
def client(session_factory, fake_github, fake_provider):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: Settings(github_token="test-token")
    app.dependency_overrides[get_github_client] = lambda: fake_github
    app.dependency_overrides[get_text_provider] = lambda: fake_provider
    limiter.enabled = False

    yield TestClient(app)

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def upstream_not_found():
    return UpstreamError("Not Found", upstream_status=404)
