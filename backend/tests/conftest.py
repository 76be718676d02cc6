import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from versionable.database import Base, get_db
from versionable.main import create_app
from versionable.middleware.auth_middleware import create_access_token
from versionable.refs import ModelRef
from versionable.registry import VersionOptions, VersionRegistry, VersionStrategy, registry
from versionable.services.identity import ContextIdentityResolver
from versionable.services.lifecycle_service import VersioningState, VersionLifecycle
from tests.models import Article, Post, User

TEST_DB_URL = "sqlite:///./test_versionable.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def identity():
    return ContextIdentityResolver()


@pytest.fixture
def make_lifecycle(identity):
    """Post 옵션만 바꾼 독립 registry/state 로 VersionLifecycle 을 만든다."""

    def factory(**post_options):
        local = VersionRegistry()
        options = {"versionable": ["title", "content", "extends"], "strategy": VersionStrategy.DIFF}
        options.update(post_options)
        local.register(Post, VersionOptions(**options))
        local.register(Article, registry.options_for(Article))
        return VersionLifecycle(registry=local, identity=identity, state=VersioningState())

    return factory


@pytest.fixture
def lifecycle(make_lifecycle):
    return make_lifecycle()


@pytest.fixture
def api_lifecycle():
    return VersionLifecycle(identity=ContextIdentityResolver(), state=VersioningState())


@pytest.fixture
def client(api_lifecycle):
    app = create_app(api_lifecycle)
    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def seed_user(db):
    user = User(name="John Doe", email="john@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(actor: ModelRef) -> dict:
    return {"Authorization": f"Bearer {create_access_token(actor)}"}
