import os
import tempfile
from datetime import datetime, timedelta, timezone

# Settings are read once at import time; point them at a throwaway database first.
_TMP_DIR = tempfile.mkdtemp(prefix="volunteer-engine-tests-")
os.environ["DATABASE_URL"] = os.getenv(
    "TEST_DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'engine.db')}"
)
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-not-for-production")

import pytest
from fastapi.testclient import TestClient

# FORCE model registration
import app.models  # noqa

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import SessionLocal, engine, get_db
from app.models.enums import ActorRole
from app.policies.rbac import Principal
from app.services.change_notifier import ChangeNotifier
from app.services.opportunity_service import OpportunityService


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    """One session per thread in concurrency tests."""
    return SessionLocal


class RecordingNotifier(ChangeNotifier):
    def __init__(self):
        super().__init__()
        self.events = []
        self.subscribe(self.events.append)

    def kinds(self):
        return [e.kind for e in self.events]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def org():
    return Principal(actor_id="org-1", role=ActorRole.ORGANIZATION, display_name="Harbor Food Bank")


@pytest.fixture
def other_org():
    return Principal(actor_id="org-2", role=ActorRole.ORGANIZATION, display_name="Parks Trust")


@pytest.fixture
def admin():
    return Principal(actor_id="admin-1", role=ActorRole.ADMIN, display_name="Ops")


@pytest.fixture
def make_opportunity(db, org, notifier):
    def _make(
        *,
        principal=None,
        max_volunteers=2,
        days_ahead=2,
        duration_minutes=120,
        **kwargs,
    ):
        return OpportunityService(notifier=notifier).create_opportunity(
            db,
            principal=principal or org,
            title=kwargs.pop("title", "Sort donations"),
            event_start=datetime.now(timezone.utc) + timedelta(days=days_ahead),
            duration_minutes=duration_minutes,
            max_volunteers=max_volunteers,
            **kwargs,
        )

    return _make


def make_token(actor_id: str, role: ActorRole, display_name: str = "Tester") -> str:
    return create_access_token(actor_id, {"role": role.value, "display_name": display_name})


def auth(actor_id: str, role: ActorRole) -> dict:
    return {"Authorization": f"Bearer {make_token(actor_id, role)}"}


@pytest.fixture
def client():
    from app.main import app

    def _get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def org_headers():
    return auth("org-1", ActorRole.ORGANIZATION)


@pytest.fixture
def admin_headers():
    return auth("admin-1", ActorRole.ADMIN)


@pytest.fixture
def volunteer_headers():
    def _headers(volunteer_id: str) -> dict:
        return auth(volunteer_id, ActorRole.VOLUNTEER)

    return _headers
