import pytest
from fastapi.testclient import TestClient

from entity_api.db import models
from entity_api.db.database import engine, SessionLocal
from entity_api.api.main import app
from entity_api.utils.settings import refresh_settings_cache


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # Tests resolve identity from headers unless they opt into DEV_MODE
    monkeypatch.delenv("DEV_MODE", raising=False)
    monkeypatch.delenv("ADMIN_EMAILS", raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Recreate the in-memory schema so every test starts from empty tables."""
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    def _make(email, display_name=None, is_superadmin=False):
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            is_superadmin=is_superadmin,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_article(db_session):
    def _make(author, title="Title", body="Body", status="published"):
        article = models.Article(title=title, body=body, status=status, author_id=author.id)
        db_session.add(article)
        db_session.commit()
        db_session.refresh(article)
        return article
    return _make

