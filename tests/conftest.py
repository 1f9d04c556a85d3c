import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from backend.config import Settings
from backend.database import init_db
from backend.main import create_app

TEST_SECRET = "test-secret"


# 💡 Отдельная SQLite-база на каждый тест и дешёвый bcrypt
@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
    )


@pytest.fixture()
def app(settings):
    application = create_app(settings)
    init_db(application.state.engine)
    yield application
    application.state.engine.dispose()


@pytest.fixture()
def db_session(app):
    db = app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


# 💡 HTTP-клиент с ASGITransport
@pytest.fixture()
async def aclient(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def auth_headers_for(aclient):
    async def _auth_headers(username="ann", password="123456"):
        await aclient.post("/register", json={"username": username, "password": password})
        token = (await aclient.post("/login", json={"username": username, "password": password})).json()["token"]
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
